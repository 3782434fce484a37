"""Shared fixtures: clean in-memory state and ready-made drafts."""

import random

import pytest

from draftroom.services import bot_picker, draft_store, draft_tracker, notifier, roster_registry
from draftroom.services.player_pool import clear_players, seed_default_players

COMMISSIONER = "user-commish"


class FixedOrder(random.Random):
    """Leaves the draft order in registration order."""

    def shuffle(self, x):
        return None


@pytest.fixture(autouse=True)
def clean_state():
    """Reset all state between tests."""
    clear_players()
    draft_store.clear_store()
    notifier.clear_listeners()
    bot_picker._tasks.clear()
    yield
    clear_players()
    draft_store.clear_store()
    notifier.clear_listeners()
    bot_picker._tasks.clear()


@pytest.fixture
def players():
    return seed_default_players(20)


@pytest.fixture
def make_draft(players):
    """Build a draft whose order is exactly the given team names.

    ``bots`` names the teams that should be registered as bots.
    """
    def _make(names=("A", "B", "C", "D"), total_rounds=2, bots=(), start=True):
        state = draft_tracker.create_draft(
            "league-1", COMMISSIONER, required_teams=len(names), total_rounds=total_rounds
        )
        for name in names:
            if name in bots:
                roster_registry.add_bot_team(state.id, name)
            else:
                roster_registry.register_team(state.id, name, f"owner-{name}")
        if start:
            state = draft_tracker.start_draft(state.id, COMMISSIONER, FixedOrder())
        return state

    return _make
