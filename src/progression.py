"""User level progression."""

import logging

from scoring import round_half_up
from typedefs import ProgressionResult, UserProfile

logger = logging.getLogger(__name__)

# Each level needs 20% more XP than the previous one
XP_GROWTH_FACTOR = 1.2


def next_xp_required(xp_required: int) -> int:
    return max(1, round_half_up(xp_required * XP_GROWTH_FACTOR))


def apply_xp(profile: UserProfile, xp_earned: int) -> ProgressionResult:
    """Add earned XP to a profile, rolling over as many levels as it covers.

    Args:
        profile: Current user profile
        xp_earned: XP awarded by a finished or aborted session

    Returns:
        ProgressionResult with the updated profile and the number of levels
        gained (0 when no threshold was crossed)

    Examples:
        Level 1 with 950/1000 XP earning 120 XP ends at level 2 with
        70/1200 XP.
    """
    level = profile.level
    xp = profile.current_xp + max(0, xp_earned)
    xp_required = profile.xp_required
    levels_gained = 0

    while xp >= xp_required:
        xp -= xp_required
        level += 1
        levels_gained += 1
        xp_required = next_xp_required(xp_required)

    if levels_gained:
        logger.info("Level up: %d -> %d", profile.level, level)

    return ProgressionResult(
        profile=profile.model_copy(
            update={"level": level, "current_xp": xp, "xp_required": xp_required}
        ),
        levels_gained=levels_gained,
    )
