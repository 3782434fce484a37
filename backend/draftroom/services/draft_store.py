"""In-memory persistence for draft instances and their pick ledgers.

Every draft instance owns one re-entrant lock.  All read-modify-write
sequences on an instance (turn check + pick commit, start, reset, cancel)
run inside ``draft_lock(draft_id)``; different instances never contend.

The lock is process-local.  Running several worker processes against the
same drafts needs a shared store with serializable transactions instead.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from threading import RLock
from typing import Iterator, Optional

from ..errors import DraftNotFound
from ..models.draft import DraftState, Pick
from ..models.team import Roster

logger = logging.getLogger(__name__)

_drafts: dict[str, DraftState] = {}
_rosters: dict[str, Roster] = {}
_picks: dict[str, list[Pick]] = {}
_picked_ids: dict[str, set[str]] = {}

_locks: dict[str, RLock] = {}
_registry_lock = RLock()  # guards the dicts above, never held during play


def _lock_for(draft_id: str) -> RLock:
    with _registry_lock:
        lock = _locks.get(draft_id)
    if lock is None:
        raise DraftNotFound(f"Draft '{draft_id}' not found")
    return lock


@contextmanager
def draft_lock(draft_id: str, *, timeout_s: Optional[float] = None) -> Iterator[None]:
    """Serialize critical sections for one draft instance.

    Raises:
        DraftNotFound: no instance with *draft_id* exists.
        TimeoutError: the lock could not be acquired within *timeout_s*.
    """
    lock = _lock_for(draft_id)
    if timeout_s is None:
        acquired = lock.acquire()
    else:
        acquired = lock.acquire(timeout=max(0.0, timeout_s))
    if not acquired:
        raise TimeoutError(f"draft_lock timeout for draft {draft_id} (timeout_s={timeout_s})")
    try:
        yield
    finally:
        lock.release()


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------

def get_state(draft_id: str) -> DraftState:
    state = _drafts.get(draft_id)
    if state is None:
        raise DraftNotFound(f"Draft '{draft_id}' not found")
    return state


def get_roster(draft_id: str) -> Roster:
    roster = _rosters.get(draft_id)
    if roster is None:
        raise DraftNotFound(f"Draft '{draft_id}' not found")
    return roster


def get_picks(draft_id: str) -> list[Pick]:
    get_state(draft_id)
    return list(_picks.get(draft_id, []))


def picked_player_ids(draft_id: str) -> set[str]:
    get_state(draft_id)
    return set(_picked_ids.get(draft_id, set()))


def is_picked(draft_id: str, player_id: str) -> bool:
    return player_id in _picked_ids.get(draft_id, set())


def list_states() -> list[DraftState]:
    with _registry_lock:
        return list(_drafts.values())


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------

def create(state: DraftState, roster: Roster) -> DraftState:
    with _registry_lock:
        _drafts[state.id] = state
        _rosters[state.id] = roster
        _picks[state.id] = []
        _picked_ids[state.id] = set()
        _locks[state.id] = RLock()
    return state


def put_state(state: DraftState) -> DraftState:
    """Replace the stored state.  Caller must hold ``draft_lock``."""
    get_state(state.id)
    _drafts[state.id] = state
    return state


def append_pick_and_advance(pick: Pick, state: DraftState) -> None:
    """Commit a pick together with the state it advances to.

    Caller must hold ``draft_lock`` and must have validated the pick; the
    ledger and the state are both updated before the lock is released.
    """
    ledger = _picks[pick.draft_id]
    expected = len(ledger) + 1
    if pick.pick_number != expected:
        raise RuntimeError(
            f"Pick ledger for draft {pick.draft_id} out of sequence: "
            f"got pick {pick.pick_number}, expected {expected}"
        )
    ledger.append(pick)
    _picked_ids[pick.draft_id].add(pick.player_id)
    _drafts[state.id] = state


def reset_instance(state: DraftState) -> int:
    """Drop every pick for the instance and store *state*.  Returns picks removed."""
    removed = len(_picks.get(state.id, []))
    _picks[state.id] = []
    _picked_ids[state.id] = set()
    _drafts[state.id] = state
    return removed


def restore(state: DraftState, roster: Roster, picks: list[Pick]) -> None:
    """Install a previously saved instance wholesale."""
    with _registry_lock:
        _locks.setdefault(state.id, RLock())
    with draft_lock(state.id):
        with _registry_lock:
            _drafts[state.id] = state
            _rosters[state.id] = roster
            _picks[state.id] = sorted(picks, key=lambda p: p.pick_number)
            _picked_ids[state.id] = {p.player_id for p in picks}


def clear_store() -> None:
    """Drop every draft instance (useful in tests)."""
    with _registry_lock:
        _drafts.clear()
        _rosters.clear()
        _picks.clear()
        _picked_ids.clear()
        _locks.clear()
