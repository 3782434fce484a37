"""Randomized base draft order."""

from __future__ import annotations

import logging
import random
from typing import Optional

from ..errors import PreconditionFailed
from ..models.team import Team

logger = logging.getLogger(__name__)


def generate_draft_order(
    teams: list[Team],
    required_teams: int,
    rng: Optional[random.Random] = None,
) -> list[str]:
    """Shuffle the registered team names into the base rotation.

    Raises PreconditionFailed unless exactly *required_teams* are registered.
    """
    if len(teams) != required_teams:
        raise PreconditionFailed(
            f"Need exactly {required_teams} teams to start (currently have {len(teams)})"
        )
    rng = rng or random.Random()
    order = [t.name for t in teams]
    rng.shuffle(order)
    logger.debug(f"Generated draft order: {order}")
    return order
