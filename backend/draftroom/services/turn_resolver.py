"""Snake-order turn resolution."""

from __future__ import annotations

from typing import Optional, Sequence


def snake_position(current_round: int, current_pick: int, team_count: int) -> int:
    """Index into the base order for the team on the clock.

    Odd rounds run the order forward, even rounds run it backward.
    """
    position_in_round = current_pick % team_count
    if current_round % 2 == 0:
        return team_count - 1 - position_in_round
    return position_in_round


def resolve(
    order: Sequence[str],
    current_round: int,
    current_pick: int,
) -> Optional[str]:
    """Return the team whose turn it is, or None when there is no order yet.

    Must be called with the pre-pick state.
    """
    if not order:
        return None
    return order[snake_position(current_round, current_pick, len(order))]
