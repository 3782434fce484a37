"""Player catalog endpoints."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, File, HTTPException, Query, UploadFile

from ..errors import PlayerNotFound
from ..services.player_pool import (
    clear_players,
    get_players,
    load_players_csv,
    resolve_player,
    seed_default_players,
)

router = APIRouter()


@router.post("/upload")
async def upload_players(file: UploadFile = File(...)):
    """Upload a player list CSV into the catalog."""
    content = await file.read()
    try:
        players = load_players_csv(content)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {
        "message": f"Loaded {len(players)} players from {file.filename}",
        "player_count": len(players),
        "total_in_pool": len(get_players()),
    }


@router.post("/seed")
async def seed_players(count: Optional[int] = Query(None, ge=1)):
    """Add the default "Player N" entries that are missing."""
    seeded = seed_default_players(count)
    return {"seeded": len(seeded), "total_in_pool": len(get_players())}


@router.delete("/clear")
async def clear_all_players():
    clear_players()
    return {"message": "All players cleared"}


@router.get("/resolve")
async def resolve(identifier: str):
    """Best-effort player search: exact id or name first, then a fuzzy name match.

    Pick submission only accepts exact matches.
    """
    try:
        player = resolve_player(identifier)
    except PlayerNotFound as e:
        raise HTTPException(status_code=404, detail=e.to_detail())
    return player.model_dump()


@router.get("")
async def list_players(position: Optional[str] = None):
    """Get all catalog players with an optional position filter."""
    players = list(get_players().values())
    if position:
        players = [p for p in players if p.position == position]
    return {
        "players": [p.model_dump() for p in players],
        "count": len(players),
    }
