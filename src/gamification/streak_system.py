"""
Multi-Domain Streak Tracking System

Tracks consecutive-day completions per domain:
- checkin (daily check-in)
- one domain per habit id

Rules:
- First completion: streak starts at 1
- Same calendar day again: no-op
- Exactly one day later: streak + 1
- Any larger gap: reset to 1
- Earlier than the last completion: rejected (StaleCompletionError)

Check-in rewards:
- Base: 20 exp / 10 coins, +5 each per full 5 days of streak
- Days 7, 14, 21, 28, 30: fixed special bonuses
- Past day 30: every multiple of 100 or of 30 earns a scaling bonus
  (multiple of 100 wins when both apply)
"""

from typing import Dict, Optional
from datetime import date, timedelta
import logging

from src.exceptions import StaleCompletionError
from src.models.progress import AttributeKey, CHECKIN_DOMAIN, ProgressState, StreakCounter
from src.models.rewards import RewardBundle

logger = logging.getLogger(__name__)

CHECKIN_BASE_EXP = 20
CHECKIN_BASE_COINS = 10

# day -> (exp, coins, per-attribute coins, message)
SPECIAL_DAY_BONUSES = {
    7: (50, 30, 10, "🎉 7-day check-in streak! Bonus reward unlocked!"),
    14: (80, 50, 15, "✨ 14 days in a row! Keep it up!"),
    21: (120, 70, 20, "🔥 21 days! This is where habits are made!"),
    28: (150, 100, 25, "🏆 28 days! You're a master now!"),
    30: (200, 150, 40, "👑 30 days! Monthly legend!"),
}

HUNDRED_DAY_BONUS = (500, 500, 100)
THIRTY_DAY_BONUS = (250, 200, 50)

MILESTONES = (7, 14, 21, 28, 30, 60, 90, 100, 180, 365)


def advance_streak(
    counter: Optional[StreakCounter],
    completion_date: date,
    domain: str = "",
) -> StreakCounter:
    """
    Compute the counter after a completion on completion_date

    Pure: the given counter is never modified.

    Raises:
        StaleCompletionError: completion_date is before the last completion
    """
    if counter is None or counter.last_completion_date is None:
        return StreakCounter(
            current_streak=1,
            longest_streak=max(1, counter.longest_streak if counter else 0),
            last_completion_date=completion_date,
        )

    last_date = counter.last_completion_date

    if completion_date < last_date:
        raise StaleCompletionError(
            message=f"Completion {completion_date} for '{domain}' is before last completion {last_date}",
            domain=domain,
            completion_date=completion_date,
            last_completion_date=last_date,
        )

    # Already counted for this day
    if completion_date == last_date:
        return counter.model_copy()

    if completion_date == last_date + timedelta(days=1):
        current = counter.current_streak + 1
    else:
        gap_days = (completion_date - last_date).days
        logger.info(
            f"Streak broken for '{domain}': was {counter.current_streak}, "
            f"gap was {gap_days} days"
        )
        current = 1

    return StreakCounter(
        current_streak=current,
        longest_streak=max(counter.longest_streak, current),
        last_completion_date=completion_date,
    )


def record_completion(state: ProgressState, domain: str, completion_date: date) -> StreakCounter:
    """
    Streak counter for a domain after a completion on completion_date

    Reads the state's counter without mutating it; the engine stores the
    returned counter when it applies the reward bundle.
    """
    return advance_streak(state.streaks.get(domain), completion_date, domain)


def is_same_day_repeat(state: ProgressState, domain: str, completion_date: date) -> bool:
    """True if the domain already has a completion on completion_date"""
    counter = state.streaks.get(domain)
    return bool(counter and counter.last_completion_date == completion_date)


def streak_is_active(counter: Optional[StreakCounter], today: Optional[date] = None) -> bool:
    """A streak is alive while its last completion is today or yesterday"""
    if counter is None or counter.last_completion_date is None:
        return False
    if today is None:
        today = date.today()
    return (today - counter.last_completion_date).days <= 1


def effective_streak(counter: Optional[StreakCounter], today: Optional[date] = None) -> int:
    """Current streak as it should be displayed today (0 once broken)"""
    if not streak_is_active(counter, today):
        return 0
    return counter.current_streak


def _categorized(amount: int) -> Dict[AttributeKey, int]:
    return {key: amount for key in AttributeKey}


def get_milestone_reward(domain: str, consecutive_days: int) -> Optional[RewardBundle]:
    """
    Special-day bonus for a check-in streak length

    Returns None for non check-in domains and for ordinary days.
    """
    if domain != CHECKIN_DOMAIN or consecutive_days <= 0:
        return None

    if consecutive_days in SPECIAL_DAY_BONUSES:
        exp, coins, per_attribute, message = SPECIAL_DAY_BONUSES[consecutive_days]
    elif consecutive_days > 30 and consecutive_days % 100 == 0:
        exp, coins, per_attribute = HUNDRED_DAY_BONUS
        message = f"💎 {consecutive_days}-day check-in streak! Hundred-day milestone!"
    elif consecutive_days > 30 and consecutive_days % 30 == 0:
        exp, coins, per_attribute = THIRTY_DAY_BONUS
        message = f"🌟 {consecutive_days}-day check-in streak! A true legend!"
    else:
        return None

    return RewardBundle(
        exp=exp,
        currency=coins,
        categorized_currency=_categorized(per_attribute),
        bonus_message=message,
        is_special=True,
    )


def calculate_check_in_reward(consecutive_days: int) -> RewardBundle:
    """
    Full check-in reward for a streak length (base + any special bonus)

    Example:
        Day 7 -> exp 20 + 5 + 50 = 75, coins 10 + 5 + 30 = 45,
        categorized coins 10 per attribute
    """
    daily_bonus = (consecutive_days // 5) * 5
    bundle = RewardBundle(
        exp=CHECKIN_BASE_EXP + daily_bonus,
        currency=CHECKIN_BASE_COINS + daily_bonus,
    )

    milestone = get_milestone_reward(CHECKIN_DOMAIN, consecutive_days)
    if milestone:
        bundle.exp += milestone.exp
        bundle.currency += milestone.currency
        bundle.categorized_currency = dict(milestone.categorized_currency)
        bundle.bonus_message = milestone.bonus_message
        bundle.is_special = True

    return bundle


def get_next_milestone(current_days: int) -> int:
    """Smallest milestone strictly above current_days"""
    for milestone in MILESTONES:
        if current_days < milestone:
            return milestone

    # Past every preset milestone: next multiple of 30
    return (current_days // 30 + 1) * 30
