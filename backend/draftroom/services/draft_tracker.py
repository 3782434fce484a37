"""Draft lifecycle and pick application.

A draft instance moves ``not_started -> in_progress -> completed``, or to
``cancelled`` by explicit request.  ``reset_draft`` is the administrative
escape hatch back to ``not_started``.  Every state change happens under the
instance's ``draft_lock``, so the turn check in ``make_pick`` and the commit
that follows it always see the same state.
"""

from __future__ import annotations

import json
import logging
import random
import uuid
from datetime import datetime
from pathlib import Path
from typing import Optional

from ..config import draft_config
from ..errors import (
    AlreadyTerminal,
    DraftNotFound,
    NotAuthenticated,
    NotAuthorized,
    NotStarted,
    PlayerUnavailable,
    PreconditionFailed,
    TeamNotFound,
    WrongTurn,
)
from ..models.draft import (
    DraftEvent,
    DraftSnapshot,
    DraftState,
    DraftStatus,
    Pick,
    PickResult,
    SavedDraft,
)
from ..models.player import Player
from ..models.team import Roster
from . import draft_store, notifier, player_pool, roster_registry
from .draft_order import generate_draft_order
from .turn_resolver import resolve

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Instance management
# ---------------------------------------------------------------------------

def create_draft(
    league_id: Optional[str],
    commissioner_id: Optional[str],
    required_teams: Optional[int] = None,
    total_rounds: Optional[int] = None,
    is_mock: bool = False,
) -> DraftState:
    """Create an independent draft instance in ``not_started``."""
    if not commissioner_id:
        raise NotAuthenticated("Not authenticated")
    required_teams = required_teams or draft_config.required_teams
    total_rounds = total_rounds or draft_config.total_rounds
    if required_teams < 2:
        raise PreconditionFailed("A draft needs at least 2 teams")
    if total_rounds < 1:
        raise PreconditionFailed("A draft needs at least 1 round")

    state = DraftState(
        id=str(uuid.uuid4()),
        league_id=league_id,
        commissioner_id=commissioner_id,
        is_mock=is_mock,
        required_teams=required_teams,
        total_rounds=total_rounds,
    )
    draft_store.create(state, Roster(draft_id=state.id, capacity=required_teams))
    logger.info(
        f"Created {'mock ' if is_mock else ''}draft {state.id} "
        f"({required_teams} teams, {total_rounds} rounds)"
    )
    return state


def get_draft(draft_id: str) -> DraftState:
    return draft_store.get_state(draft_id)


def list_drafts(
    league_id: Optional[str] = None,
    creator_id: Optional[str] = None,
    status: Optional[DraftStatus] = None,
) -> list[DraftState]:
    drafts = draft_store.list_states()
    if league_id is not None:
        drafts = [d for d in drafts if d.league_id == league_id]
    if creator_id is not None:
        drafts = [d for d in drafts if d.commissioner_id == creator_id]
    if status is not None:
        drafts = [d for d in drafts if d.status == status]
    return sorted(drafts, key=lambda d: d.created_at, reverse=True)


def count_active_drafts(creator_id: str) -> int:
    return len(list_drafts(creator_id=creator_id, status=DraftStatus.IN_PROGRESS))


def _require_commissioner(state: DraftState, caller_id: Optional[str], action: str) -> None:
    if not caller_id:
        raise NotAuthenticated("Not authenticated")
    if caller_id != state.commissioner_id:
        raise NotAuthorized(f"Only the draft commissioner can {action}")


def _event(event_type: str, state: DraftState, pick: Optional[Pick] = None) -> DraftEvent:
    next_team = None
    if state.status == DraftStatus.IN_PROGRESS:
        next_team = resolve(state.draft_order, state.current_round, state.current_pick)
    return DraftEvent(
        type=event_type,
        draft_id=state.id,
        status=state.status,
        current_round=state.current_round,
        current_pick=state.current_pick,
        next_team=next_team,
        pick=pick,
    )


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------

def start_draft(
    draft_id: str,
    caller_id: Optional[str],
    rng: Optional[random.Random] = None,
) -> DraftState:
    """Fix the randomized draft order and open the first turn."""
    with draft_store.draft_lock(draft_id):
        state = draft_store.get_state(draft_id)
        _require_commissioner(state, caller_id, "start the draft")
        if state.status.is_terminal:
            raise AlreadyTerminal(f"Draft is already {state.status.value}")
        if state.status == DraftStatus.IN_PROGRESS:
            raise PreconditionFailed("Draft has already started")

        teams = roster_registry.list_teams(draft_id)
        order = generate_draft_order(teams, state.required_teams, rng)

        state = draft_store.put_state(state.model_copy(update={
            "status": DraftStatus.IN_PROGRESS,
            "draft_order": order,
            "current_round": 1,
            "current_pick": 0,
            "completed_at": None,
        }))
        logger.info(f"Draft {draft_id} started, order: {', '.join(order)}")
        notifier.publish(_event("started", state))
        return state


def get_next_team(draft_id: str) -> Optional[str]:
    """Team on the clock, or None when the draft is not in progress."""
    state = draft_store.get_state(draft_id)
    if state.status != DraftStatus.IN_PROGRESS:
        return None
    return resolve(state.draft_order, state.current_round, state.current_pick)


def list_available_players(draft_id: str) -> list[Player]:
    """Catalog players not yet picked in this draft."""
    return player_pool.available_players(draft_store.picked_player_ids(draft_id))


def make_pick(
    draft_id: str,
    team_name: str,
    player_identifier: str,
    caller_id: Optional[str] = None,
) -> PickResult:
    """Validate and commit one pick atomically.

    *player_identifier* is a catalog id or a display name.  When *caller_id*
    is given the team must be a human team owned by that caller.
    """
    with draft_store.draft_lock(draft_id):
        state = draft_store.get_state(draft_id)
        if state.status.is_terminal:
            raise AlreadyTerminal(f"Draft is {state.status.value}")
        if state.status != DraftStatus.IN_PROGRESS:
            raise NotStarted("Draft has not started")

        expected_team = resolve(state.draft_order, state.current_round, state.current_pick)
        if team_name != expected_team:
            logger.warning(f"Rejected pick by {team_name} in draft {draft_id}: {expected_team} is up")
            raise WrongTurn(expected_team, team_name)

        team = roster_registry.get_team_by_name(draft_id, team_name)
        if team is None:
            raise TeamNotFound("Team not found in draft")
        if caller_id is not None and (team.is_bot or team.owner_id != caller_id):
            raise NotAuthorized(f"You do not control {team_name}")

        player = player_pool.find_player(player_identifier)
        if draft_store.is_picked(draft_id, player.id):
            available = len(list_available_players(draft_id))
            logger.warning(f"Rejected pick of {player.name} in draft {draft_id}: already picked")
            raise PlayerUnavailable(
                f"{player.name} was already picked in this draft ({available} players still available)",
                available_count=available,
            )

        new_pick_number = state.current_pick + 1
        new_round = state.current_round
        if new_pick_number % state.team_count == 0:
            new_round += 1
        is_complete = new_round > state.total_rounds

        pick = Pick(
            id=str(uuid.uuid4())[:8],
            draft_id=draft_id,
            team_id=team.id,
            team_name=team.name,
            player_id=player.id,
            player_name=player.name,
            round=state.current_round,
            pick_number=new_pick_number,
        )
        update = {"current_pick": new_pick_number, "current_round": new_round}
        if is_complete:
            update["status"] = DraftStatus.COMPLETED
            update["completed_at"] = datetime.now()
        new_state = state.model_copy(update=update)
        draft_store.append_pick_and_advance(pick, new_state)

        message = f"{team.name} picked {player.name}"
        logger.info(f"Draft {draft_id} pick {new_pick_number} (round {pick.round}): {message}")
        notifier.publish(_event("pick", new_state, pick))
        if is_complete:
            logger.info(f"Draft {draft_id} completed after {new_pick_number} picks")
            notifier.publish(_event("completed", new_state))

        return PickResult(
            message=message,
            pick=pick,
            pick_number=new_pick_number,
            round=pick.round,
            current_round=new_round,
            is_complete=is_complete,
        )


def cancel_draft(draft_id: str, caller_id: Optional[str]) -> DraftState:
    """Abandon an in-progress draft.  Terminal; no picks are removed."""
    with draft_store.draft_lock(draft_id):
        state = draft_store.get_state(draft_id)
        _require_commissioner(state, caller_id, "cancel the draft")
        if state.status.is_terminal:
            raise AlreadyTerminal(f"Draft is already {state.status.value}")
        if state.status != DraftStatus.IN_PROGRESS:
            raise NotStarted("Only a draft in progress can be cancelled")
        state = draft_store.put_state(state.model_copy(update={
            "status": DraftStatus.CANCELLED,
            "completed_at": datetime.now(),
        }))
        logger.info(f"Draft {draft_id} cancelled")
        notifier.publish(_event("cancelled", state))
        return state


def reset_draft(draft_id: str, caller_id: Optional[str]) -> DraftState:
    """Administrative reset: delete every pick and return to ``not_started``.

    Works from any status, terminal ones included.  Registered teams stay.
    """
    with draft_store.draft_lock(draft_id):
        state = draft_store.get_state(draft_id)
        _require_commissioner(state, caller_id, "reset the draft")
        state = state.model_copy(update={
            "status": DraftStatus.NOT_STARTED,
            "draft_order": [],
            "current_round": 1,
            "current_pick": 0,
            "completed_at": None,
        })
        removed = draft_store.reset_instance(state)
        logger.info(f"Draft {draft_id} reset ({removed} picks removed)")
        notifier.publish(_event("reset", state))
        return state


def get_draft_state(draft_id: str) -> DraftSnapshot:
    """Full snapshot: state, teams, picks, and the team on the clock."""
    with draft_store.draft_lock(draft_id):
        state = draft_store.get_state(draft_id)
        picked = draft_store.picked_player_ids(draft_id)
        return DraftSnapshot(
            state=state,
            teams=roster_registry.list_teams(draft_id),
            picks=draft_store.get_picks(draft_id),
            next_team=get_next_team(draft_id),
            total_picks=draft_config.total_picks(state.required_teams, state.total_rounds),
            available_count=len(player_pool.available_players(picked)),
        )


# ---------------------------------------------------------------------------
# Mock drafts
# ---------------------------------------------------------------------------

def create_mock_draft(
    league_id: Optional[str],
    creator_id: Optional[str],
    user_team_name: str,
    num_bots: Optional[int] = None,
    total_rounds: Optional[int] = None,
    rng: Optional[random.Random] = None,
) -> DraftState:
    """Create a practice draft: one human team plus bots, started immediately."""
    if not creator_id:
        raise NotAuthenticated("Not authenticated")
    num_bots = num_bots if num_bots is not None else draft_config.default_num_bots
    if not draft_config.min_bots <= num_bots <= draft_config.max_bots:
        raise PreconditionFailed(
            f"Mock drafts need between {draft_config.min_bots} and {draft_config.max_bots} bots"
        )

    state = create_draft(
        league_id,
        creator_id,
        required_teams=num_bots + 1,
        total_rounds=total_rounds,
        is_mock=True,
    )
    roster_registry.register_team(state.id, user_team_name, creator_id)
    for i in range(num_bots):
        roster_registry.add_bot_team(state.id, draft_config.bot_name(i))
    return start_draft(state.id, creator_id, rng)


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------

def _save_path(draft_id: str, save_dir: Optional[Path] = None) -> Path:
    return (save_dir or draft_config.save_dir) / f"{draft_id}.json"


def save_draft(draft_id: str, save_dir: Optional[Path] = None) -> str:
    """Save one draft instance to ``<save_dir>/<draft_id>.json``."""
    with draft_store.draft_lock(draft_id):
        picks = draft_store.get_picks(draft_id)
        players = [player_pool.get_player(p.player_id) for p in picks]
        saved = SavedDraft(
            state=draft_store.get_state(draft_id),
            teams=roster_registry.list_teams(draft_id),
            picks=picks,
            players=[p for p in players if p is not None],
        )

    filepath = _save_path(draft_id, save_dir)
    filepath.parent.mkdir(parents=True, exist_ok=True)
    with open(filepath, "w") as f:
        json.dump(saved.model_dump(mode="json"), f, indent=2, default=str)
    logger.info(f"Saved draft {draft_id} to {filepath}")
    return str(filepath)


def load_draft(draft_id: str, save_dir: Optional[Path] = None) -> DraftSnapshot:
    """Restore a draft instance from its JSON snapshot."""
    filepath = _save_path(draft_id, save_dir)
    if not filepath.exists():
        raise DraftNotFound(f"No saved draft found at {filepath}")

    with open(filepath, "r") as f:
        saved = SavedDraft(**json.load(f))

    # Picked players must exist in the catalog for name lookups and exports
    for player in saved.players:
        if player_pool.get_player(player.id) is None:
            player_pool.add_player(player.name, player.position, player_id=player.id)

    roster = Roster(
        draft_id=saved.state.id,
        capacity=saved.state.required_teams,
        teams=saved.teams,
    )
    draft_store.restore(saved.state, roster, saved.picks)
    logger.info(f"Loaded draft {draft_id} ({len(saved.picks)} picks) from {filepath}")
    return get_draft_state(draft_id)
