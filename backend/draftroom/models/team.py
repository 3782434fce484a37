"""Team models."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class TeamKind(str, Enum):
    HUMAN = "human"
    BOT = "bot"


class Team(BaseModel):
    id: str
    draft_id: str
    name: str
    kind: TeamKind = TeamKind.HUMAN
    owner_id: Optional[str] = None  # None for bots
    created_at: datetime = Field(default_factory=datetime.now)

    @property
    def is_bot(self) -> bool:
        return self.kind == TeamKind.BOT


class Roster(BaseModel):
    """All teams registered for one draft instance."""
    draft_id: str
    capacity: int
    teams: list[Team] = []

    def get_team(self, team_id: str) -> Optional[Team]:
        return next((t for t in self.teams if t.id == team_id), None)

    def get_team_by_name(self, name: str) -> Optional[Team]:
        return next((t for t in self.teams if t.name == name), None)

    def get_team_by_owner(self, owner_id: str) -> Optional[Team]:
        return next((t for t in self.teams if t.owner_id == owner_id), None)

    @property
    def team_count(self) -> int:
        return len(self.teams)

    @property
    def is_full(self) -> bool:
        return self.team_count >= self.capacity
