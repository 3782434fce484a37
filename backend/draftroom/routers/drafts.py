"""Draft endpoints with WebSocket support."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Header, HTTPException, WebSocket, WebSocketDisconnect
from pydantic import BaseModel

from ..errors import DraftError, NotAuthenticated
from ..models.draft import DraftEvent, DraftStatus
from ..services import bot_picker, draft_tracker, notifier, roster_registry

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Request / response schemas
# ---------------------------------------------------------------------------

class DraftCreate(BaseModel):
    league_id: Optional[str] = None
    required_teams: Optional[int] = None
    total_rounds: Optional[int] = None


class MockDraftCreate(BaseModel):
    league_id: Optional[str] = None
    user_team_name: str
    num_bots: Optional[int] = None
    total_rounds: Optional[int] = None


class TeamIn(BaseModel):
    name: str


class PickRequest(BaseModel):
    team_name: str
    player: str  # catalog id or display name


class BotRunRequest(BaseModel):
    delay: Optional[float] = None


def _http_error(e: DraftError) -> HTTPException:
    return HTTPException(status_code=e.status_code, detail=e.to_detail())


def _require_user(x_user_id: Optional[str]) -> str:
    if not x_user_id:
        raise _http_error(NotAuthenticated("Not authenticated"))
    return x_user_id


# ---------------------------------------------------------------------------
# Draft instances
# ---------------------------------------------------------------------------

@router.post("")
async def create_draft(body: DraftCreate, x_user_id: Optional[str] = Header(None)):
    """Create a draft instance; the caller becomes its commissioner."""
    try:
        state = draft_tracker.create_draft(
            body.league_id,
            _require_user(x_user_id),
            required_teams=body.required_teams,
            total_rounds=body.total_rounds,
        )
    except DraftError as e:
        raise _http_error(e)
    return state.model_dump(mode="json")


@router.get("")
async def list_drafts(
    league_id: Optional[str] = None,
    creator_id: Optional[str] = None,
    status: Optional[DraftStatus] = None,
):
    drafts = draft_tracker.list_drafts(league_id=league_id, creator_id=creator_id, status=status)
    return {
        "drafts": [d.model_dump(mode="json") for d in drafts],
        "count": len(drafts),
    }


@router.post("/mock")
async def create_mock_draft(body: MockDraftCreate, x_user_id: Optional[str] = Header(None)):
    """Create and start a practice draft against bots."""
    try:
        state = draft_tracker.create_mock_draft(
            body.league_id,
            _require_user(x_user_id),
            body.user_team_name,
            num_bots=body.num_bots,
            total_rounds=body.total_rounds,
        )
    except DraftError as e:
        raise _http_error(e)
    snapshot = draft_tracker.get_draft_state(state.id)
    user_team = next(t for t in snapshot.teams if not t.is_bot)
    if snapshot.next_team != user_team.name:
        # A bot holds the first pick
        bot_picker.schedule_bot_turns(state.id)
    return {
        "draft_id": state.id,
        "user_team_id": user_team.id,
        "draft_order": state.draft_order,
        "next_team": snapshot.next_team,
        "message": "Mock draft created and started successfully",
    }


@router.get("/{draft_id}")
async def get_draft_state(draft_id: str):
    """Full draft snapshot including teams, picks and the team on the clock."""
    try:
        snapshot = draft_tracker.get_draft_state(draft_id)
    except DraftError as e:
        raise _http_error(e)
    return snapshot.model_dump(mode="json")


# ---------------------------------------------------------------------------
# Teams
# ---------------------------------------------------------------------------

@router.post("/{draft_id}/teams")
async def register_team(draft_id: str, body: TeamIn, x_user_id: Optional[str] = Header(None)):
    try:
        team = roster_registry.register_team(draft_id, body.name, _require_user(x_user_id))
    except DraftError as e:
        raise _http_error(e)
    return {
        "message": "Team registered",
        "team": team.model_dump(mode="json"),
        "team_count": roster_registry.team_count(draft_id),
    }


@router.put("/{draft_id}/teams/{team_id}")
async def rename_team(
    draft_id: str, team_id: str, body: TeamIn, x_user_id: Optional[str] = Header(None)
):
    try:
        team = roster_registry.rename_team(draft_id, team_id, body.name, _require_user(x_user_id))
    except DraftError as e:
        raise _http_error(e)
    return team.model_dump(mode="json")


# ---------------------------------------------------------------------------
# Play
# ---------------------------------------------------------------------------

@router.post("/{draft_id}/start")
async def start_draft(draft_id: str, x_user_id: Optional[str] = Header(None)):
    try:
        state = draft_tracker.start_draft(draft_id, _require_user(x_user_id))
    except DraftError as e:
        raise _http_error(e)
    return {"message": "Draft started", "order": state.draft_order, "draft_id": state.id}


@router.get("/{draft_id}/next-team")
async def get_next_team(draft_id: str):
    try:
        return {"next_team": draft_tracker.get_next_team(draft_id)}
    except DraftError as e:
        raise _http_error(e)


@router.post("/{draft_id}/picks")
async def make_pick(draft_id: str, req: PickRequest, x_user_id: Optional[str] = Header(None)):
    """Submit a human pick; a waiting bot loop is restarted behind it."""
    try:
        result = draft_tracker.make_pick(
            draft_id, req.team_name, req.player, caller_id=_require_user(x_user_id)
        )
    except DraftError as e:
        raise _http_error(e)

    # A loop still waiting out its pause is stale now; mock drafts hand the
    # clock straight back to the bots.
    bot_picker.cancel_bot_turns(draft_id)
    if not result.is_complete and draft_tracker.get_draft(draft_id).is_mock:
        next_team = roster_registry.get_team_by_name(draft_id, draft_tracker.get_next_team(draft_id))
        if next_team is not None and next_team.is_bot:
            bot_picker.schedule_bot_turns(draft_id)
    return result.model_dump(mode="json")


@router.get("/{draft_id}/available")
async def list_available_players(draft_id: str):
    try:
        players = draft_tracker.list_available_players(draft_id)
    except DraftError as e:
        raise _http_error(e)
    return {"players": [p.model_dump() for p in players], "count": len(players)}


@router.post("/{draft_id}/bot-turn")
async def run_bot_turn(draft_id: str):
    """Make a single pick for the bot on the clock."""
    try:
        result = bot_picker.run_bot_turn(draft_id)
    except DraftError as e:
        raise _http_error(e)
    return result.model_dump(mode="json")


@router.post("/{draft_id}/bots/run")
async def run_pending_bot_turns(draft_id: str, body: Optional[BotRunRequest] = None):
    """Let bots pick until a human is up; waits for the whole run."""
    delay = body.delay if body is not None else None
    try:
        summary = await bot_picker.process_all_pending_bot_turns(draft_id, delay=delay)
    except DraftError as e:
        raise _http_error(e)
    return summary.model_dump(mode="json")


@router.post("/{draft_id}/bots/schedule")
async def schedule_bot_turns(draft_id: str, body: Optional[BotRunRequest] = None):
    """Start bots picking in the background; progress arrives over the WebSocket."""
    delay = body.delay if body is not None else None
    try:
        bot_picker.schedule_bot_turns(draft_id, delay=delay)
    except DraftError as e:
        raise _http_error(e)
    return {"status": "scheduled", "draft_id": draft_id}


@router.post("/{draft_id}/reset")
async def reset_draft(draft_id: str, x_user_id: Optional[str] = Header(None)):
    try:
        state = draft_tracker.reset_draft(draft_id, _require_user(x_user_id))
    except DraftError as e:
        raise _http_error(e)
    bot_picker.cancel_bot_turns(draft_id)
    return {"status": "reset", "draft_status": state.status.value}


@router.post("/{draft_id}/cancel")
async def cancel_draft(draft_id: str, x_user_id: Optional[str] = Header(None)):
    try:
        state = draft_tracker.cancel_draft(draft_id, _require_user(x_user_id))
    except DraftError as e:
        raise _http_error(e)
    bot_picker.cancel_bot_turns(draft_id)
    return {"status": "cancelled", "draft_status": state.status.value}


@router.post("/{draft_id}/save")
async def save_draft(draft_id: str):
    """Save the draft instance to a JSON file."""
    try:
        filepath = draft_tracker.save_draft(draft_id)
    except DraftError as e:
        raise _http_error(e)
    except OSError as e:
        raise HTTPException(status_code=500, detail=str(e))
    return {"status": "saved", "filepath": filepath}


@router.post("/{draft_id}/load")
async def load_draft(draft_id: str):
    """Load the draft instance from its JSON file."""
    bot_picker.cancel_bot_turns(draft_id)
    try:
        snapshot = draft_tracker.load_draft(draft_id)
    except DraftError as e:
        raise _http_error(e)
    return snapshot.model_dump(mode="json")


# ---------------------------------------------------------------------------
# WebSocket
# ---------------------------------------------------------------------------

async def websocket_endpoint(websocket: WebSocket, draft_id: str) -> None:
    """Push every change event for one draft to the connected client."""
    await websocket.accept()
    loop = asyncio.get_running_loop()
    queue: asyncio.Queue = asyncio.Queue()

    def _enqueue(event: DraftEvent) -> None:
        # Events can be published from worker threads
        loop.call_soon_threadsafe(queue.put_nowait, event.model_dump(mode="json"))

    notifier.subscribe(draft_id, _enqueue)
    sender = asyncio.create_task(_forward(websocket, queue))
    try:
        while True:
            await websocket.receive_text()  # Keep alive
    except WebSocketDisconnect:
        pass
    finally:
        notifier.unsubscribe(draft_id, _enqueue)
        sender.cancel()


async def _forward(websocket: WebSocket, queue: asyncio.Queue) -> None:
    while True:
        message = await queue.get()
        try:
            await websocket.send_json(message)
        except Exception as e:
            logger.debug(f"Dropping WebSocket message: {e}")
            return
