"""
Progression & Rewards Engine

This package converts activity events into progression state changes:
- XP and leveling (xp_system)
- Multi-domain streak tracking and check-in rewards (streak_system)
- Reward resolution (rewards)
- Entitlement unlocks (entitlements)
- The single-writer apply sequence (engine)
"""

from src.gamification.xp_system import (
    compute_level_title,
    compute_exp_for_next_level,
    compute_exp_bonus_multiplier,
    compute_streak_bonus_multiplier,
    apply_level_ups,
)
from src.gamification.streak_system import (
    record_completion,
    get_milestone_reward,
    get_next_milestone,
    calculate_check_in_reward,
)
from src.gamification.rewards import resolve, parse_activity
from src.gamification.entitlements import evaluate, describe_unlock_condition
from src.gamification.engine import ProgressionEngine

__all__ = [
    "compute_level_title",
    "compute_exp_for_next_level",
    "compute_exp_bonus_multiplier",
    "compute_streak_bonus_multiplier",
    "apply_level_ups",
    "record_completion",
    "get_milestone_reward",
    "get_next_milestone",
    "calculate_check_in_reward",
    "resolve",
    "parse_activity",
    "evaluate",
    "describe_unlock_condition",
    "ProgressionEngine",
]
