"""
Static Catalogs

Built-in level table, entitlement definitions and quest reward tables.

Level Table (floor-matched for titles):
- Level 1: Novice User
- Level 5: Apprentice (unlocks achievements)
- Level 10: Expert (+10% exp)
- Level 15: Elite
- Level 20: Master (+20% exp)
- Level 30: Grandmaster
- Level 40: Legend (+30% exp)
- Level 50: Epic

Entitlements:
- Avatar frames gated by default / level / quests completed / coins spent
- Quest-count achievements

A JSON file with the same shape as Catalog can replace the built-ins
(see CATALOG_PATH in src.config).
"""

from pathlib import Path
from typing import Optional
import json
import logging

import pydantic

from src.exceptions import ConfigurationError
from src.models.activity import QuestPriority, QuestType
from src.models.catalog import (
    Catalog,
    EntitlementDefinition,
    HabitBaseReward,
    LevelDefinition,
    QuestBaseReward,
    UnlockCondition,
    UnlockType,
)
from src.models.progress import AttributeKey

logger = logging.getLogger(__name__)


LEVEL_DEFINITIONS = (
    LevelDefinition(level=1, title="Novice User", exp_required=0, coins=0,
                    reward_description="Welcome to your workspace!"),
    LevelDefinition(level=5, title="Apprentice", exp_required=500, coins=50,
                    reward_description="Achievement system unlocked",
                    unlocks=("Achievements",)),
    LevelDefinition(level=10, title="Expert", exp_required=1500, coins=100,
                    reward_description="Experience gain +10%",
                    unlocks=("Exp bonus 10%",)),
    LevelDefinition(level=15, title="Elite", exp_required=3000, coins=150,
                    reward_description="Focus mode unlocked",
                    unlocks=("Focus mode",)),
    LevelDefinition(level=20, title="Master", exp_required=5000, coins=250,
                    reward_description="Experience gain +20%",
                    unlocks=("Exp bonus 20%",)),
    LevelDefinition(level=30, title="Grandmaster", exp_required=10000, coins=500,
                    reward_description="Analytics dashboard unlocked",
                    unlocks=("Analytics",)),
    LevelDefinition(level=40, title="Legend", exp_required=18000, coins=750,
                    reward_description="Experience gain +30%",
                    unlocks=("Exp bonus 30%",)),
    LevelDefinition(level=50, title="Epic", exp_required=30000, coins=1000,
                    reward_description="Every feature unlocked",
                    unlocks=("All features",)),
)


def _frame(entitlement_id: str, name: str, unlock_type: UnlockType, value: Optional[int] = None) -> EntitlementDefinition:
    return EntitlementDefinition(
        id=entitlement_id,
        name=name,
        unlock_condition=UnlockCondition(type=unlock_type, value=value),
    )


ENTITLEMENT_DEFINITIONS = (
    # Basic frames (free)
    _frame("frame-none", "No Frame", UnlockType.DEFAULT),
    _frame("frame-basic-white", "Plain White", UnlockType.DEFAULT),
    _frame("frame-basic-black", "Classic Black", UnlockType.DEFAULT),
    # Gradient frames (level)
    _frame("frame-gradient-cyber", "Cyberpunk", UnlockType.LEVEL, 5),
    _frame("frame-gradient-fire", "Heart of Flame", UnlockType.LEVEL, 10),
    _frame("frame-gradient-ocean", "Deep Ocean", UnlockType.LEVEL, 15),
    _frame("frame-gradient-nature", "Forest Green", UnlockType.LEVEL, 20),
    _frame("frame-gradient-sunset", "Sunset Glow", UnlockType.LEVEL, 25),
    # Animated frames (high level)
    _frame("frame-animated-rainbow", "Rainbow Spin", UnlockType.LEVEL, 30),
    _frame("frame-animated-pulse-cyan", "Cyan Pulse", UnlockType.LEVEL, 35),
    _frame("frame-animated-pulse-gold", "Golden Pulse", UnlockType.LEVEL, 40),
    # Special frames
    _frame("frame-special-diamond", "Diamond Radiance", UnlockType.LEVEL, 50),
    _frame("frame-special-master", "Mark of the Master", UnlockType.ACHIEVEMENT, 1000),
    _frame("frame-special-dragon", "Dragon's Guard", UnlockType.COINS, 10000),
    # Quest-count achievements
    _frame("achievement-first-quest", "First Steps", UnlockType.ACHIEVEMENT, 1),
    _frame("achievement-quests-10", "Getting Things Done", UnlockType.ACHIEVEMENT, 10),
    _frame("achievement-quests-100", "Centurion", UnlockType.ACHIEVEMENT, 100),
    _frame("achievement-quests-500", "Unstoppable", UnlockType.ACHIEVEMENT, 500),
)

QUEST_BASE_REWARDS = {
    QuestType.MAIN: QuestBaseReward(exp=60, coins=40, attribute=AttributeKey.INT),
    QuestType.SIDE: QuestBaseReward(exp=40, coins=25, attribute=AttributeKey.MNG),
    QuestType.DAILY: QuestBaseReward(exp=20, coins=15, attribute=AttributeKey.VIT),
}

PRIORITY_WEIGHTS = {
    QuestPriority.LOW: 0.8,
    QuestPriority.MEDIUM: 1.0,
    QuestPriority.HIGH: 1.25,
    QuestPriority.URGENT: 1.5,
}

DEFAULT_CATALOG = Catalog(
    levels=LEVEL_DEFINITIONS,
    entitlements=ENTITLEMENT_DEFINITIONS,
    quest_rewards=QUEST_BASE_REWARDS,
    priority_weights=PRIORITY_WEIGHTS,
    habit_reward=HabitBaseReward(exp=10, coins=5),
)


def load_catalog(path: Optional[Path] = None) -> Catalog:
    """
    Load the static catalog

    Args:
        path: JSON file matching the Catalog shape; None returns the built-in catalog

    Returns:
        Validated, immutable Catalog

    Raises:
        ConfigurationError: file missing, unreadable, or invalid
    """
    if path is None:
        return DEFAULT_CATALOG

    try:
        raw = Path(path).read_text(encoding="utf-8")
        catalog = Catalog.model_validate(json.loads(raw))
    except (OSError, json.JSONDecodeError, pydantic.ValidationError) as e:
        raise ConfigurationError(
            message=f"Invalid catalog file {path}: {e}",
            config_key="CATALOG_PATH",
            cause=e,
        )

    logger.info(
        f"Loaded catalog from {path}: {len(catalog.levels)} levels, "
        f"{len(catalog.entitlements)} entitlements"
    )
    return catalog
