"""Draft configuration for snake drafts and mock drafts."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel


BOT_TEAM_NAMES = [
    "Bot Warriors",
    "AI Titans",
    "Robo Raiders",
    "Cyber Crusaders",
    "Digital Dragons",
    "Machine Monsters",
    "Virtual Vikings",
    "Binary Bears",
    "Circuit Sharks",
    "Data Demons",
    "Neural Knights",
]


class DraftConfig(BaseModel):
    required_teams: int = 4  # standalone league drafts need exactly this many
    total_rounds: int = 5

    # Mock drafts
    min_bots: int = 1
    max_bots: int = 11
    default_num_bots: int = 3
    bot_pick_delay: float = 1.5  # seconds of bot "thinking" between picks
    bot_team_names: list[str] = BOT_TEAM_NAMES

    # Player catalog
    default_player_count: int = 20
    default_player_position: str = "QB"
    fuzzy_match_threshold: int = 80

    save_dir: Path = Path(__file__).resolve().parent.parent / "data" / "drafts"

    def bot_name(self, index: int) -> str:
        """Name for the bot at 0-based *index*, cycling through the list."""
        return self.bot_team_names[index % len(self.bot_team_names)]

    @staticmethod
    def total_picks(team_count: int, total_rounds: int) -> int:
        return team_count * total_rounds


# Default draft config singleton
draft_config = DraftConfig()
