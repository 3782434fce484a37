"""Automatic picks for bot teams."""

from __future__ import annotations

import asyncio
import logging
import random
from typing import Callable, Optional

from ..config import draft_config
from ..errors import AlreadyTerminal, DraftError, NotStarted, TeamNotFound
from ..models.draft import (
    BotRunSummary,
    BotTurnResult,
    DraftStatus,
    NoPlayersAvailable,
    NotABotTurn,
    PickResult,
)
from . import draft_store, draft_tracker, roster_registry
from .turn_resolver import resolve

logger = logging.getLogger(__name__)

# Running bot loops, one per draft instance
_tasks: dict[str, asyncio.Task] = {}


def run_bot_turn(draft_id: str, rng: Optional[random.Random] = None) -> BotTurnResult:
    """Make one pick for the bot on the clock, chosen uniformly at random.

    Turn resolution and the pick happen under the same instance lock, so a
    human pick that lands first makes this return ``NotABotTurn``.
    """
    rng = rng or random.Random()
    with draft_store.draft_lock(draft_id):
        state = draft_store.get_state(draft_id)
        if state.status.is_terminal:
            raise AlreadyTerminal(f"Draft is {state.status.value}")
        if state.status != DraftStatus.IN_PROGRESS:
            raise NotStarted("Draft has not started")

        next_team = resolve(state.draft_order, state.current_round, state.current_pick)
        team = roster_registry.get_team_by_name(draft_id, next_team)
        if team is None:
            raise TeamNotFound("Team not found in draft")
        if not team.is_bot:
            return NotABotTurn(next_team=next_team, message=f"Not a bot's turn, {next_team} is up")

        available = draft_tracker.list_available_players(draft_id)
        if not available:
            logger.warning(f"{team.name} has no players to pick in draft {draft_id}")
            return NoPlayersAvailable(team_name=team.name)

        player = rng.choice(available)
        result = draft_tracker.make_pick(draft_id, team.name, player.id)
        logger.info(f"Bot pick in draft {draft_id}: {result.message}")
        return result


def _bot_on_clock(draft_id: str) -> tuple[Optional[str], Optional[str]]:
    """Return (stop_reason, next_team); stop_reason is None while a bot is up."""
    state = draft_store.get_state(draft_id)
    if state.status == DraftStatus.COMPLETED:
        return "completed", None
    if state.status == DraftStatus.CANCELLED:
        return "cancelled", None
    if state.status != DraftStatus.IN_PROGRESS:
        return "not_in_progress", None
    next_team = resolve(state.draft_order, state.current_round, state.current_pick)
    team = roster_registry.get_team_by_name(draft_id, next_team)
    if team is None or not team.is_bot:
        return "human_turn", next_team
    return None, next_team


async def process_all_pending_bot_turns(
    draft_id: str,
    delay: Optional[float] = None,
    rng: Optional[random.Random] = None,
    on_pick: Optional[Callable[[PickResult], None]] = None,
) -> BotRunSummary:
    """Let bots pick back to back until a human is up or the draft ends.

    Each pick is preceded by a *delay* second pause.  The pause is the only
    suspension point; cancelling the task there leaves the draft untouched.
    """
    delay = draft_config.bot_pick_delay if delay is None else delay
    rng = rng or random.Random()
    picks: list[PickResult] = []

    while True:
        reason, next_team = _bot_on_clock(draft_id)
        if reason is not None:
            return BotRunSummary(picks=picks, stopped_reason=reason, next_team=next_team)

        if delay > 0:
            await asyncio.sleep(delay)
            # The draft may have moved on during the pause
            reason, next_team = _bot_on_clock(draft_id)
            if reason is not None:
                return BotRunSummary(picks=picks, stopped_reason=reason, next_team=next_team)

        try:
            result = run_bot_turn(draft_id, rng)
        except DraftError as e:
            logger.warning(f"Bot pick failed in draft {draft_id}: {e}")
            return BotRunSummary(
                picks=picks,
                stopped_reason="error",
                next_team=draft_tracker.get_next_team(draft_id),
                error=str(e),
            )

        if isinstance(result, NotABotTurn):
            # A human picked during the pause
            return BotRunSummary(picks=picks, stopped_reason="human_turn", next_team=result.next_team)
        if isinstance(result, NoPlayersAvailable):
            return BotRunSummary(picks=picks, stopped_reason="no_players_available", next_team=result.team_name)

        picks.append(result)
        if on_pick is not None:
            on_pick(result)
        if result.is_complete:
            return BotRunSummary(picks=picks, stopped_reason="completed")


# ---------------------------------------------------------------------------
# Background scheduling
# ---------------------------------------------------------------------------

def schedule_bot_turns(draft_id: str, delay: Optional[float] = None) -> asyncio.Task:
    """Run ``process_all_pending_bot_turns`` in the background.

    Must be called from a running event loop.  Any loop already running for
    the draft is cancelled first.
    """
    draft_store.get_state(draft_id)
    cancel_bot_turns(draft_id)
    task = asyncio.get_running_loop().create_task(
        process_all_pending_bot_turns(draft_id, delay=delay),
        name=f"bot-turns-{draft_id}",
    )
    _tasks[draft_id] = task

    def _done(t: asyncio.Task) -> None:
        if _tasks.get(draft_id) is t:
            _tasks.pop(draft_id, None)
        if t.cancelled():
            logger.debug(f"Bot loop for draft {draft_id} cancelled")
        elif t.exception() is not None:
            logger.error(f"Bot loop for draft {draft_id} crashed: {t.exception()}")
        else:
            summary = t.result()
            logger.info(
                f"Bot loop for draft {draft_id} made {len(summary.picks)} pick(s), "
                f"stopped: {summary.stopped_reason}"
            )

    task.add_done_callback(_done)
    return task


def cancel_bot_turns(draft_id: str) -> bool:
    """Cancel the background bot loop for *draft_id*, if one is running."""
    task = _tasks.pop(draft_id, None)
    if task is None or task.done():
        return False
    task.cancel()
    return True


def is_running(draft_id: str) -> bool:
    task = _tasks.get(draft_id)
    return task is not None and not task.done()
