"""Per-draft change notifications."""

from __future__ import annotations

import logging
from threading import RLock
from typing import Callable

from ..models.draft import DraftEvent

logger = logging.getLogger(__name__)

Listener = Callable[[DraftEvent], None]

_listeners: dict[str, list[Listener]] = {}
_lock = RLock()


def subscribe(draft_id: str, listener: Listener) -> Listener:
    with _lock:
        _listeners.setdefault(draft_id, []).append(listener)
    return listener


def unsubscribe(draft_id: str, listener: Listener) -> None:
    with _lock:
        listeners = _listeners.get(draft_id, [])
        if listener in listeners:
            listeners.remove(listener)
        if not listeners:
            _listeners.pop(draft_id, None)


def listener_count(draft_id: str) -> int:
    with _lock:
        return len(_listeners.get(draft_id, []))


def publish(event: DraftEvent) -> int:
    """Deliver *event* to every listener of its draft.

    A failing listener is logged and skipped; the change it reports has
    already been committed.  Returns the number of listeners notified.
    """
    with _lock:
        listeners = list(_listeners.get(event.draft_id, []))
    delivered = 0
    for listener in listeners:
        try:
            listener(event)
            delivered += 1
        except Exception as e:
            logger.warning(f"Draft listener failed for {event.type} on {event.draft_id}: {e}")
    logger.debug(f"Published {event.type} for draft {event.draft_id} to {delivered} listener(s)")
    return delivered


def clear_listeners() -> None:
    with _lock:
        _listeners.clear()
