"""Draft state, pick ledger, and result models."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Literal, Optional, Union

from pydantic import BaseModel, Field

from .player import Player
from .team import Team


class DraftStatus(str, Enum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (DraftStatus.COMPLETED, DraftStatus.CANCELLED)


class Pick(BaseModel):
    id: str
    draft_id: str
    team_id: str
    team_name: str
    player_id: str
    player_name: str
    round: int  # round the pick was made in
    pick_number: int  # 1-indexed, global across rounds
    created_at: datetime = Field(default_factory=datetime.now)


class DraftState(BaseModel):
    id: str
    league_id: Optional[str] = None
    commissioner_id: Optional[str] = None
    is_mock: bool = False
    status: DraftStatus = DraftStatus.NOT_STARTED
    draft_order: list[str] = []  # team names, set once at start
    current_round: int = 1
    current_pick: int = 0  # picks made so far
    required_teams: int = 4
    total_rounds: int = 5
    created_at: datetime = Field(default_factory=datetime.now)
    completed_at: Optional[datetime] = None

    @property
    def team_count(self) -> int:
        return len(self.draft_order)

    @property
    def total_picks(self) -> int:
        return self.required_teams * self.total_rounds


class PickResult(BaseModel):
    outcome: Literal["picked"] = "picked"
    message: str
    pick: Pick
    pick_number: int
    round: int
    current_round: int
    is_complete: bool


class NotABotTurn(BaseModel):
    outcome: Literal["not_a_bot_turn"] = "not_a_bot_turn"
    next_team: Optional[str] = None
    message: str = "Not a bot's turn"


class NoPlayersAvailable(BaseModel):
    outcome: Literal["no_players_available"] = "no_players_available"
    team_name: str
    message: str = "No players available"


BotTurnResult = Union[PickResult, NotABotTurn, NoPlayersAvailable]


class DraftSnapshot(BaseModel):
    """Everything a client needs to render a draft in one read."""
    state: DraftState
    teams: list[Team] = []
    picks: list[Pick] = []
    next_team: Optional[str] = None
    total_picks: int = 0
    available_count: int = 0


class DraftEvent(BaseModel):
    type: Literal["started", "pick", "reset", "cancelled", "completed"]
    draft_id: str
    status: DraftStatus
    current_round: int
    current_pick: int
    next_team: Optional[str] = None
    pick: Optional[Pick] = None
    timestamp: datetime = Field(default_factory=datetime.now)


class SavedDraft(BaseModel):
    """On-disk snapshot of one draft instance."""
    state: DraftState
    teams: list[Team] = []
    picks: list[Pick] = []
    players: list[Player] = []


class BotRunSummary(BaseModel):
    """Outcome of driving consecutive bot turns."""
    picks: list[PickResult] = []
    stopped_reason: Literal[
        "human_turn", "completed", "cancelled", "not_in_progress",
        "no_players_available", "error",
    ]
    next_team: Optional[str] = None
    error: Optional[str] = None
