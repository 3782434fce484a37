"""Team registration for draft instances."""

from __future__ import annotations

import logging
import uuid
from typing import Optional

from ..errors import AlreadyTerminal, NotAuthenticated, NotAuthorized, RegistrationError, TeamNotFound
from ..models.draft import DraftStatus
from ..models.team import Team, TeamKind
from . import draft_store

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------

def list_teams(draft_id: str) -> list[Team]:
    return list(draft_store.get_roster(draft_id).teams)


def team_count(draft_id: str) -> int:
    return draft_store.get_roster(draft_id).team_count


def get_team(draft_id: str, team_id: str) -> Optional[Team]:
    return draft_store.get_roster(draft_id).get_team(team_id)


def get_team_by_name(draft_id: str, name: str) -> Optional[Team]:
    return draft_store.get_roster(draft_id).get_team_by_name(name)


# ---------------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------------

def _add_team(draft_id: str, name: str, kind: TeamKind, owner_id: Optional[str]) -> Team:
    """Append a team to the roster.  Caller must hold ``draft_lock``."""
    roster = draft_store.get_roster(draft_id)
    name = name.strip()
    if not name:
        raise RegistrationError("Team name cannot be empty")
    if roster.is_full:
        raise RegistrationError(
            f"Draft is full ({roster.team_count} / {roster.capacity} teams)"
        )
    if roster.get_team_by_name(name) is not None:
        raise RegistrationError(f"Team name '{name}' already taken")
    if owner_id is not None and roster.get_team_by_owner(owner_id) is not None:
        raise RegistrationError("You already have a team in this draft")

    team = Team(
        id=str(uuid.uuid4())[:8],
        draft_id=draft_id,
        name=name,
        kind=kind,
        owner_id=owner_id,
    )
    roster.teams.append(team)
    logger.info(f"Registered {kind.value} team '{name}' in draft {draft_id}")
    return team


def register_team(draft_id: str, name: str, owner_id: Optional[str]) -> Team:
    """Register a human team owned by *owner_id*."""
    if not owner_id:
        raise NotAuthenticated("Not authenticated")
    with draft_store.draft_lock(draft_id):
        state = draft_store.get_state(draft_id)
        if state.status.is_terminal:
            raise AlreadyTerminal(f"Draft is {state.status.value}")
        if state.status != DraftStatus.NOT_STARTED:
            raise RegistrationError("Draft has already started")
        return _add_team(draft_id, name, TeamKind.HUMAN, owner_id)


def add_bot_team(draft_id: str, name: str) -> Team:
    with draft_store.draft_lock(draft_id):
        state = draft_store.get_state(draft_id)
        if state.status != DraftStatus.NOT_STARTED:
            raise RegistrationError("Draft has already started")
        return _add_team(draft_id, name, TeamKind.BOT, None)


def rename_team(draft_id: str, team_id: str, name: str, caller_id: Optional[str]) -> Team:
    """Rename a team.  Only allowed before the draft order is fixed.

    The caller must own the team or be the draft commissioner.
    """
    if not caller_id:
        raise NotAuthenticated("Not authenticated")
    with draft_store.draft_lock(draft_id):
        state = draft_store.get_state(draft_id)
        roster = draft_store.get_roster(draft_id)
        team = roster.get_team(team_id)
        if team is None:
            raise TeamNotFound(f"Team '{team_id}' not found")
        if caller_id not in (team.owner_id, state.commissioner_id):
            raise NotAuthorized("Only the team owner or the commissioner can rename a team")
        if state.status != DraftStatus.NOT_STARTED:
            raise RegistrationError("Teams cannot be renamed once the draft has started")
        name = name.strip()
        if not name:
            raise RegistrationError("Team name cannot be empty")
        other = roster.get_team_by_name(name)
        if other is not None and other.id != team_id:
            raise RegistrationError(f"Team name '{name}' already taken")
        team.name = name
        return team
