"""Player catalog: CSV import, seeding, and identifier resolution."""

from __future__ import annotations

import io
import logging
import re
import uuid
from typing import Iterable, Optional

import pandas as pd
from thefuzz import fuzz, process

from ..config import draft_config
from ..errors import PlayerNotFound
from ..models.player import Player

logger = logging.getLogger(__name__)

# Column name mappings for common player-list CSV exports
PLAYER_COLUMN_MAP = {
    "Name": "name",
    "\ufeffName": "name",  # BOM-prefixed
    "name": "name",
    "Player": "name",
    "player_name": "name",
    "PlayerId": "id",
    "playerid": "id",
    "player_id": "id",
    "ID": "id",
    "id": "id",
    "Pos": "position",
    "POS": "position",
    "Position": "position",
    "position": "position",
    "first_name": "first_name",
    "First": "first_name",
    "last_name": "last_name",
    "Last": "last_name",
}

# In-memory player catalog, shared by every draft instance.  Availability is
# never stored here; it is derived per draft from that draft's picks.
_players: dict[str, Player] = {}


def get_players() -> dict[str, Player]:
    return _players


def get_player(player_id: str) -> Optional[Player]:
    return _players.get(player_id)


def player_exists(player_id: str) -> bool:
    return player_id in _players


def clear_players() -> None:
    _players.clear()


def add_player(name: str, position: Optional[str] = None, player_id: Optional[str] = None) -> Player:
    player = Player(id=player_id or str(uuid.uuid4())[:8], name=name, position=position)
    _players[player.id] = player
    return player


def seed_default_players(count: Optional[int] = None) -> list[Player]:
    """Make sure "Player 1" .. "Player N" exist in the catalog."""
    count = count or draft_config.default_player_count
    existing = {p.name for p in _players.values()}
    seeded = []
    for i in range(1, count + 1):
        name = f"Player {i}"
        if name in existing:
            continue
        seeded.append(add_player(name, draft_config.default_player_position))
    if seeded:
        logger.info(f"Seeded {len(seeded)} default players")
    return seeded


def available_players(picked_ids: Iterable[str]) -> list[Player]:
    """Catalog players whose id is not in *picked_ids*."""
    picked = set(picked_ids)
    return [p for p in _players.values() if p.id not in picked]


# ---------------------------------------------------------------------------
# CSV import
# ---------------------------------------------------------------------------

def _normalize_columns(df: pd.DataFrame, col_map: dict) -> pd.DataFrame:
    """Rename columns using the mapping, keeping only mapped ones."""
    rename = {}
    for orig, target in col_map.items():
        if orig in df.columns and target not in rename.values():
            rename[orig] = target
    return df.rename(columns=rename)


def load_players_csv(csv_content: bytes) -> list[Player]:
    """Parse a player list CSV into the catalog.

    Accepts either a single name column (``Name``/``Player``) or separate
    ``first_name``/``last_name`` columns.  Ids are generated when absent.
    """
    df = pd.read_csv(io.BytesIO(csv_content))
    df = _normalize_columns(df, PLAYER_COLUMN_MAP)

    if "name" not in df.columns:
        if "first_name" in df.columns and "last_name" in df.columns:
            df["name"] = (
                df["first_name"].fillna("").astype(str).str.strip()
                + " "
                + df["last_name"].fillna("").astype(str).str.strip()
            ).str.strip()
        else:
            raise ValueError("CSV must contain a 'Name' column or 'first_name'/'last_name' columns")

    df = df[df["name"].notna() & (df["name"].astype(str).str.strip() != "")].copy()

    if "id" not in df.columns:
        df["id"] = [str(uuid.uuid4())[:8] for _ in range(len(df))]
    df["id"] = df["id"].astype(str)

    players = []
    for _, row in df.iterrows():
        position = row.get("position")
        player = Player(
            id=row["id"],
            name=str(row["name"]).strip(),
            position=str(position) if pd.notna(position) else None,
        )
        _players[player.id] = player
        players.append(player)

    logger.info(f"Loaded {len(players)} players from CSV ({len(_players)} in catalog)")
    return players


# ---------------------------------------------------------------------------
# Identifier resolution
# ---------------------------------------------------------------------------

def _normalize_name(name: str) -> str:
    name = name.lower().strip()
    name = re.sub(r"[.\-']", "", name)
    return re.sub(r"\s+", " ", name).strip()


def _fuzzy_match(name: str, choices: dict[str, str], threshold: int) -> Optional[str]:
    """Return the best matching player_id for *name*, or None.

    ``choices`` maps player_id -> player_name.
    """
    if not choices:
        return None
    result = process.extractOne(name, choices, scorer=fuzz.token_sort_ratio, score_cutoff=threshold)
    if result is None:
        return None
    # result is (matched_name, score, key)
    _matched_name, _score, player_id = result
    return player_id


def find_player(identifier: str) -> Player:
    """Look up a player by id or exact (normalized) display name.

    This is the lookup used when committing a pick; it never guesses.
    """
    player = _players.get(identifier)
    if player is not None:
        return player

    target = _normalize_name(identifier)
    for candidate in _players.values():
        if _normalize_name(candidate.name) == target:
            return candidate

    raise PlayerNotFound(f"Player '{identifier}' not found")


def resolve_player(identifier: str) -> Player:
    """Best-effort lookup for search boxes: exact match first, then fuzzy."""
    try:
        return find_player(identifier)
    except PlayerNotFound:
        matched_id = _fuzzy_match(
            identifier,
            {p.id: p.name for p in _players.values()},
            draft_config.fuzzy_match_threshold,
        )
        if matched_id is None:
            raise
    logger.debug(f"Fuzzy-matched '{identifier}' to {_players[matched_id].name}")
    return _players[matched_id]
