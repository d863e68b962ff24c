"""
Reward Resolver

Turns one activity into a RewardBundle. Resolution is pure: it reads the
current ProgressState but never mutates it. ProgressionEngine applies the
bundle.

Reward Rules:
- Quest: catalog base (by type, scaled by priority) or the quest's explicit
  reward; exp scaled by the level multiplier; 70% of coins split across the
  quest's attributes; +10 per attribute
- Check-in: streak-based reward (see streak_system) with exp scaled by the
  level multiplier; one per calendar day
- Habit: base reward with exp scaled by the habit's streak multiplier;
  a second log on the same day earns nothing
- Focus session: completed work sessions add focus minutes
"""

from typing import Any, Dict, List, Union
import logging

import pydantic
from pydantic import TypeAdapter

from src.exceptions import AlreadyCheckedInError, InvalidActivityError
from src.gamification.catalog import DEFAULT_CATALOG
from src.gamification.streak_system import (
    calculate_check_in_reward,
    is_same_day_repeat,
    record_completion,
)
from src.gamification.xp_system import (
    compute_exp_bonus_multiplier,
    compute_streak_bonus_multiplier,
    scale_exp,
)
from src.models.activity import (
    Activity,
    CheckIn,
    FocusMode,
    FocusSession,
    HabitCompletion,
    QuestCompletion,
)
from src.models.catalog import Catalog
from src.models.progress import AttributeKey, CHECKIN_DOMAIN, ProgressState
from src.models.rewards import RewardBundle, StatsDelta

logger = logging.getLogger(__name__)

_activity_adapter = TypeAdapter(Activity)

ActivityLike = Union[QuestCompletion, HabitCompletion, CheckIn, FocusSession, Dict[str, Any]]


def parse_activity(payload: ActivityLike) -> Activity:
    """
    Validate a raw activity payload

    Raises:
        InvalidActivityError: unknown type or malformed fields
    """
    if isinstance(payload, (QuestCompletion, HabitCompletion, CheckIn, FocusSession)):
        return payload
    if not isinstance(payload, dict):
        raise InvalidActivityError(
            message=f"Activity must be a mapping, got {type(payload).__name__}",
            field="activity",
            value=repr(payload)[:100],
        )
    try:
        return _activity_adapter.validate_python(payload)
    except pydantic.ValidationError as e:
        raise InvalidActivityError(
            message=f"Malformed activity payload: {e.error_count()} error(s)",
            field="type" if "type" not in payload else None,
            value=payload.get("type"),
            cause=e,
        )


def resolve(activity: Activity, state: ProgressState, catalog: Catalog = DEFAULT_CATALOG) -> RewardBundle:
    """
    Resolve an activity into a reward bundle

    Args:
        activity: Parsed activity event
        state: Current progress (read only)
        catalog: Static reward tables

    Returns:
        RewardBundle to apply

    Raises:
        AlreadyCheckedInError: second check-in on the same day
        StaleCompletionError: completion dated before the last one
        InvalidActivityError: unsupported activity object
    """
    if isinstance(activity, QuestCompletion):
        return resolve_quest(activity, state, catalog)
    if isinstance(activity, CheckIn):
        return resolve_check_in(activity, state)
    if isinstance(activity, HabitCompletion):
        return resolve_habit(activity, state, catalog)
    if isinstance(activity, FocusSession):
        return resolve_focus_session(activity)

    raise InvalidActivityError(
        message=f"Unsupported activity: {type(activity).__name__}",
        field="activity",
        value=type(activity).__name__,
    )


def split_quest_coins(coins: int, attributes: List[AttributeKey], share: float) -> Dict[AttributeKey, int]:
    """
    Per-attribute wallet credit for a quest's coin reward

    floor(coins * share) is divided evenly across the attributes;
    the rounding remainder stays in the general currency only.
    """
    if not attributes:
        return {}
    attribute_coins = scale_exp(coins, share)
    per_attribute = attribute_coins // len(attributes)
    return {attr: per_attribute for attr in attributes}


def resolve_quest(quest: QuestCompletion, state: ProgressState, catalog: Catalog = DEFAULT_CATALOG) -> RewardBundle:
    base = catalog.quest_rewards[quest.quest_type]
    weight = catalog.priority_weights[quest.priority]

    raw_exp = quest.exp_reward if quest.exp_reward is not None else scale_exp(base.exp, weight)
    coins = quest.coin_reward if quest.coin_reward is not None else scale_exp(base.coins, weight)

    multiplier = compute_exp_bonus_multiplier(state.level)
    attributes = quest.attributes or [base.attribute]

    bundle = RewardBundle(
        exp=scale_exp(raw_exp, multiplier),
        currency=coins,
        categorized_currency=split_quest_coins(coins, attributes, catalog.quest_attribute_coin_share),
        attribute_deltas={attr: catalog.quest_attribute_gain for attr in attributes},
        stats_delta=StatsDelta(quests_completed=1),
        multiplier=multiplier,
    )

    logger.debug(
        f"Resolved quest {quest.quest_id} ({quest.quest_type.value}/{quest.priority.value}): "
        f"{raw_exp} exp x{multiplier} -> {bundle.exp}, {coins} coins"
    )
    return bundle


def resolve_check_in(check_in: CheckIn, state: ProgressState) -> RewardBundle:
    if is_same_day_repeat(state, CHECKIN_DOMAIN, check_in.checkin_date):
        raise AlreadyCheckedInError(checkin_date=check_in.checkin_date)

    counter = record_completion(state, CHECKIN_DOMAIN, check_in.checkin_date)
    bundle = calculate_check_in_reward(counter.current_streak)
    bundle.multiplier = compute_exp_bonus_multiplier(state.level)
    bundle.exp = scale_exp(bundle.exp, bundle.multiplier)
    bundle.streak_updates = {CHECKIN_DOMAIN: counter}
    bundle.stats_delta = StatsDelta(check_ins=1)

    logger.debug(
        f"Resolved check-in on {check_in.checkin_date}: day {counter.current_streak}, "
        f"{bundle.exp} exp, {bundle.currency} coins"
    )
    return bundle


def resolve_habit(habit: HabitCompletion, state: ProgressState, catalog: Catalog = DEFAULT_CATALOG) -> RewardBundle:
    counter = record_completion(state, habit.habit_id, habit.completion_date)

    if is_same_day_repeat(state, habit.habit_id, habit.completion_date):
        return RewardBundle(bonus_message="Already logged today. Streak unchanged.")

    multiplier = compute_streak_bonus_multiplier(counter.current_streak)
    bundle = RewardBundle(
        exp=scale_exp(catalog.habit_reward.exp, multiplier),
        currency=catalog.habit_reward.coins,
        streak_updates={habit.habit_id: counter},
        stats_delta=StatsDelta(habit_completions=1),
        multiplier=multiplier,
    )

    logger.debug(
        f"Resolved habit {habit.habit_id}: streak {counter.current_streak}, "
        f"x{multiplier} -> {bundle.exp} exp"
    )
    return bundle


def resolve_focus_session(session: FocusSession) -> RewardBundle:
    # Only finished work sessions count towards focus time
    if session.mode != FocusMode.WORK or not session.completed:
        return RewardBundle()
    return RewardBundle(stats_delta=StatsDelta(focus_minutes=session.minutes))
