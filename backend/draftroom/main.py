"""FastAPI entry point for the snake draft room."""
from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .routers import drafts, players, export


@asynccontextmanager
async def lifespan(app: FastAPI):
    import logging
    logger = logging.getLogger(__name__)
    from .services.player_pool import get_players, seed_default_players
    seed_default_players()
    logger.info(f"Player catalog ready with {len(get_players())} players")
    yield


app = FastAPI(
    title="Draft Room",
    description="Turn-based snake drafts for fantasy leagues, with bot-filled mock drafts",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:5173", "http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(drafts.router, prefix="/api/drafts", tags=["drafts"])
app.include_router(players.router, prefix="/api/players", tags=["players"])
app.include_router(export.router, prefix="/api/export", tags=["export"])

# WebSocket route for real-time draft updates
from .routers.drafts import websocket_endpoint
app.add_api_websocket_route("/ws/drafts/{draft_id}", websocket_endpoint)


@app.get("/api/health")
def health():
    return {"status": "ok"}
