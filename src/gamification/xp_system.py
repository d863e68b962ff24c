"""
XP and Leveling System

Resolves experience into levels, titles, and exp multipliers.

Leveling Curve:
- Exp needed to leave level L: floor(L * 100 * 1.5)
  (150 at level 1, 300 at level 2, 450 at level 3, ...)
- Leftover exp carries over into the next level

Exp Multipliers:
- Level 40+: x1.3
- Level 20+: x1.2
- Level 10+: x1.1
- Streak 30+: x1.5, 14+: x1.3, 7+: x1.2, 3+: x1.1
"""

from bisect import bisect_right
from typing import Any, Dict, List, Optional
import logging
import math

from src.gamification.catalog import DEFAULT_CATALOG
from src.models.catalog import Catalog, LevelDefinition
from src.models.progress import ProgressState
from src.models.rewards import LevelRewards, LevelUpEvent

logger = logging.getLogger(__name__)


def find_level_definition(level: int, catalog: Catalog = DEFAULT_CATALOG) -> Optional[LevelDefinition]:
    """
    Floor-match a level against the level table

    Returns the definition with the greatest level <= the given level,
    or None if every definition is above it.
    """
    keys = [definition.level for definition in catalog.levels]
    index = bisect_right(keys, level)
    if index == 0:
        return None
    return catalog.levels[index - 1]


def get_exact_level_definition(level: int, catalog: Catalog = DEFAULT_CATALOG) -> Optional[LevelDefinition]:
    """Definition whose level equals the given level exactly"""
    for definition in catalog.levels:
        if definition.level == level:
            return definition
    return None


def compute_level_title(level: int, catalog: Catalog = DEFAULT_CATALOG) -> str:
    """Title for a level; the catalog's default title when nothing matches"""
    definition = find_level_definition(level, catalog)
    return definition.title if definition else catalog.default_title


def compute_exp_for_next_level(level: int) -> int:
    """Exp required to advance from the given level"""
    if level < 1:
        raise ValueError(f"level must be >= 1, got {level}")
    return math.floor(level * 100 * 1.5)


def compute_exp_bonus_multiplier(level: int) -> float:
    """Level-based exp multiplier"""
    if level >= 40:
        return 1.3
    if level >= 20:
        return 1.2
    if level >= 10:
        return 1.1
    return 1.0


def compute_streak_bonus_multiplier(streak: int) -> float:
    """Streak-based exp multiplier"""
    if streak >= 30:
        return 1.5
    if streak >= 14:
        return 1.3
    if streak >= 7:
        return 1.2
    if streak >= 3:
        return 1.1
    return 1.0


def scale_exp(amount: int, multiplier: float) -> int:
    """Apply a multiplier to raw exp, flooring to an integer"""
    # round() first so 100 * 1.1 == 110.00000000000001 doesn't leak through
    return math.floor(round(amount * multiplier, 6))


def apply_level_ups(state: ProgressState, catalog: Catalog = DEFAULT_CATALOG) -> List[LevelUpEvent]:
    """
    Run the level-up loop on a state that just received exp

    Loops (not a single branch) so one large reward can span several levels.
    Mutates level, current_exp and max_exp of the given state; the caller
    credits the level coins from the returned events.

    Args:
        state: Working copy owned by the engine
        catalog: Level table for titles and rewards

    Returns:
        One LevelUpEvent per level gained, in order
    """
    events: List[LevelUpEvent] = []

    while state.current_exp >= state.max_exp:
        state.current_exp -= state.max_exp
        state.level += 1
        state.max_exp = compute_exp_for_next_level(state.level)

        definition = get_exact_level_definition(state.level, catalog)
        if definition:
            rewards = LevelRewards(coins=definition.coins, unlocks=list(definition.unlocks))
        else:
            rewards = LevelRewards(coins=catalog.default_level_coins)

        events.append(LevelUpEvent(
            level=state.level,
            title=compute_level_title(state.level, catalog),
            rewards=rewards,
        ))

    if events:
        logger.debug(
            f"Level-up loop: +{len(events)} level(s) to {state.level}, "
            f"carry-over {state.current_exp}/{state.max_exp}"
        )

    return events


def get_level_progress(state: ProgressState, catalog: Catalog = DEFAULT_CATALOG) -> Dict[str, Any]:
    """
    Summarize level progress for rendering

    Returns:
        {
            'level': int,
            'title': str,
            'current_exp': int,
            'max_exp': int,
            'percent': float (0-100),
            'exp_multiplier': float,
            'next_title_level': int | None
        }
    """
    next_title_level = None
    for definition in catalog.levels:
        if definition.level > state.level:
            next_title_level = definition.level
            break

    return {
        "level": state.level,
        "title": compute_level_title(state.level, catalog),
        "current_exp": state.current_exp,
        "max_exp": state.max_exp,
        "percent": round(state.current_exp / state.max_exp * 100, 1),
        "exp_multiplier": compute_exp_bonus_multiplier(state.level),
        "next_title_level": next_title_level,
    }
