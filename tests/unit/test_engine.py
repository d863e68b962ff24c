"""Unit tests for Progression Engine (src/gamification/engine.py)"""
import pytest
import threading
from datetime import date, timedelta

from prometheus_client import REGISTRY

from src.exceptions import (
    AlreadyCheckedInError,
    EntitlementLockedError,
    InsufficientCurrencyError,
    InvalidActivityError,
    StaleCompletionError,
    UnknownEntitlementError,
)
from src.gamification.engine import ProgressionEngine
from src.models.progress import AttributeKey, CHECKIN_DOMAIN, ProgressState, StreakCounter
from src.models.rewards import RewardBundle


# ============================================================================
# Quest Application Tests
# ============================================================================

def test_first_quest_applies_everything(engine):
    """Test a quest updates exp, currency, wallet, attributes, stats and unlocks"""
    result = engine.submit_activity({"type": "quest", "quest_id": "q1"})

    state = engine.state
    assert result.applied is True
    assert state.current_exp == 60
    assert state.currency == 40
    assert state.wallet[AttributeKey.INT] == 28
    assert state.attributes[AttributeKey.INT] == 70
    assert state.attributes[AttributeKey.VIT] == 60
    assert state.stats.total_quests_completed == 1
    assert "achievement-first-quest" in result.newly_unlocked
    assert "frame-none" in result.newly_unlocked
    assert "achievement-first-quest" in state.unlocked_entitlements


def test_level_up_with_carry_over(engine):
    """Test 400 exp from level 1 lands on level 2 with 250/300"""
    result = engine.submit_activity({"type": "quest", "quest_id": "q1", "exp_reward": 400, "coin_reward": 0})

    state = engine.state
    assert result.leveled_up is True
    assert result.new_level == 2
    assert state.level == 2
    assert state.current_exp == 250
    assert state.max_exp == 300
    assert state.currency == 10  # default level coins


def test_multi_level_up(engine):
    """Test 450 exp from level 1 spans two levels"""
    result = engine.submit_activity({"type": "quest", "quest_id": "q1", "exp_reward": 450, "coin_reward": 0})

    state = engine.state
    assert [e.level for e in result.level_ups] == [2, 3]
    assert state.level == 3
    assert state.current_exp == 0
    assert state.max_exp == 450
    assert state.currency == 20


def test_level_up_unlocks_level_entitlements(test_user_id):
    """Test entitlements are evaluated against the post-level-up state"""
    engine = ProgressionEngine(state=ProgressState(level=4, current_exp=590, max_exp=600), user_id=test_user_id)

    result = engine.submit_activity({"type": "quest", "quest_id": "q1", "exp_reward": 20, "coin_reward": 0})

    assert result.new_level == 5
    assert result.level_ups[0].rewards.coins == 50
    assert "frame-gradient-cyber" in result.newly_unlocked
    assert engine.state.currency == 50


def test_attributes_clamped_at_max(test_user_id):
    """Test attribute gains stop at 100"""
    engine = ProgressionEngine(
        state=ProgressState(attributes={AttributeKey.INT: 95}), user_id=test_user_id
    )

    engine.submit_activity({"type": "quest", "quest_id": "q1", "attributes": ["int"]})

    assert engine.state.attributes[AttributeKey.INT] == 100


def test_recurring_quest_id_pays_each_completion(engine):
    """Test a daily quest completed again under the same id is rewarded again"""
    event = {"type": "quest", "quest_id": "daily-water", "quest_type": "daily"}

    first = engine.submit_activity(event)
    second = engine.submit_activity(event)

    assert second.bundle.exp == first.bundle.exp > 0
    assert engine.state.stats.total_quests_completed == 2


def test_negative_attribute_delta_clamped_at_min(engine):
    """Test an attribute loss larger than the value stops at 0"""
    engine.apply_bundle(RewardBundle(attribute_deltas={AttributeKey.VIT: -500}))

    state = engine.state
    assert state.attributes[AttributeKey.VIT] == 0
    assert state.attributes[AttributeKey.INT] == 60


def test_unlocked_set_never_shrinks_while_leveling(engine):
    """Test each level-raising submission keeps every earlier unlock"""
    previous = set(engine.state.unlocked_entitlements)
    previous_level = engine.state.level

    for i in range(12):
        needed = engine.state.max_exp - engine.state.current_exp
        result = engine.submit_activity(
            {"type": "quest", "quest_id": f"q{i}", "exp_reward": needed, "coin_reward": 0}
        )

        unlocked = engine.state.unlocked_entitlements
        assert result.leveled_up is True
        assert engine.state.level > previous_level
        assert previous <= unlocked
        previous, previous_level = set(unlocked), engine.state.level

    assert engine.state.level >= 13
    assert "frame-gradient-cyber" in previous


def test_state_property_returns_copy(engine):
    """Test callers can't mutate the engine's state"""
    snapshot = engine.state
    snapshot.currency = 9999
    snapshot.unlocked_entitlements.add("hacked")

    assert engine.state.currency == 0
    assert "hacked" not in engine.state.unlocked_entitlements


def test_engine_copies_initial_state(test_user_id):
    """Test the engine doesn't alias the state it was given"""
    state = ProgressState()
    engine = ProgressionEngine(state=state, user_id=test_user_id)

    engine.submit_activity({"type": "quest", "quest_id": "q1"})

    assert state.current_exp == 0


# ============================================================================
# Check-in Application Tests
# ============================================================================

def test_seven_day_check_in_streak(engine):
    """Test seven consecutive check-ins reach the day-7 bonus"""
    start = date(2024, 1, 1)
    results = [
        engine.submit_activity({"type": "checkin", "checkin_date": (start + timedelta(days=i)).isoformat()})
        for i in range(7)
    ]

    day_seven = results[-1]
    assert day_seven.bundle.exp == 75
    assert day_seven.bundle.currency == 45
    assert day_seven.bundle.is_special is True

    state = engine.state
    assert state.streaks[CHECKIN_DOMAIN].current_streak == 7
    assert state.stats.total_check_ins == 7
    assert all(state.wallet[key] == 10 for key in AttributeKey)
    # 4 * 20 + 2 * 25 + 75 = 205 exp: one level-up, 55 carried
    assert state.level == 2
    assert state.current_exp == 55


def test_check_in_at_level_ten_gets_exp_bonus(test_user_id):
    """Test check-in exp is multiplied by the level bonus before it's added"""
    engine = ProgressionEngine(state=ProgressState(level=10, max_exp=1500), user_id=test_user_id)

    result = engine.submit_activity({"type": "checkin", "checkin_date": "2024-01-01"})

    assert result.bundle.exp == 22
    assert engine.state.current_exp == 22
    assert engine.state.currency == 10


def test_duplicate_check_in_leaves_state_unchanged(engine):
    """Test a same-day check-in raises and changes nothing"""
    engine.submit_activity({"type": "checkin", "checkin_date": "2024-01-01"})
    before = engine.state

    with pytest.raises(AlreadyCheckedInError) as exc_info:
        engine.submit_activity({"type": "checkin", "checkin_date": "2024-01-01"})

    assert exc_info.value.user_id == engine.user_id
    assert engine.state == before


# ============================================================================
# Rejection Tests
# ============================================================================

def test_invalid_activity_leaves_state_unchanged(engine):
    """Test malformed payloads are rejected before touching state"""
    before = engine.state

    with pytest.raises(InvalidActivityError):
        engine.submit_activity({"type": "focus", "minutes": "lots"})

    assert engine.state == before


def test_invalid_activity_metric_label_is_bounded(engine):
    """Test arbitrary payload types are counted under a fixed label"""
    labels = {"activity_type": "unknown", "status": "invalid"}
    before = REGISTRY.get_sample_value("progression_activities_total", labels) or 0

    with pytest.raises(InvalidActivityError):
        engine.submit_activity({"type": "made-up-type-42"})

    assert REGISTRY.get_sample_value("progression_activities_total", labels) == before + 1
    assert REGISTRY.get_sample_value(
        "progression_activities_total", {"activity_type": "made-up-type-42", "status": "invalid"}
    ) is None


def test_stale_habit_leaves_state_unchanged(test_user_id):
    """Test an out-of-order habit completion is rejected atomically"""
    state = ProgressState(
        streaks={"water": StreakCounter(current_streak=3, longest_streak=3, last_completion_date=date(2024, 1, 5))}
    )
    engine = ProgressionEngine(state=state, user_id=test_user_id)

    with pytest.raises(StaleCompletionError):
        engine.submit_activity({"type": "habit", "habit_id": "water", "completion_date": "2024-01-04"})

    assert engine.state == state


def test_apply_bundle_is_all_or_nothing(engine):
    """Test a bundle that breaks an invariant is never partially applied"""
    bundle = RewardBundle.model_construct(
        exp=10,
        currency=5,
        categorized_currency={AttributeKey.INT: -1000},
        attribute_deltas={},
        bonus_message=None,
        is_special=False,
        streak_updates={},
        stats_delta=RewardBundle().stats_delta,
        multiplier=1.0,
    )
    before = engine.state

    with pytest.raises(ValueError):
        engine.apply_bundle(bundle)

    assert engine.state == before


# ============================================================================
# Habit & Focus Application Tests
# ============================================================================

def test_habit_same_day_repeat_is_noop(engine):
    """Test a repeated habit log changes nothing"""
    engine.submit_activity({"type": "habit", "habit_id": "water", "completion_date": "2024-01-01"})
    before = engine.state

    result = engine.submit_activity({"type": "habit", "habit_id": "water", "completion_date": "2024-01-01"})

    assert result.bundle.is_empty
    assert result.message
    assert engine.state == before


def test_focus_session_adds_focus_time(engine):
    """Test completed work sessions accumulate focus time"""
    engine.submit_activity({"type": "focus", "minutes": 25})
    engine.submit_activity({"type": "focus", "minutes": 50})

    assert engine.state.stats.total_focus_time == 75


# ============================================================================
# Purchase Tests
# ============================================================================

def test_coin_gated_entitlement_reported_not_merged(test_user_id):
    """Test crossing a coin threshold reports the entitlement as affordable"""
    engine = ProgressionEngine(state=ProgressState(currency=9990), user_id=test_user_id)

    result = engine.submit_activity({"type": "quest", "quest_id": "q1", "exp_reward": 0, "coin_reward": 10})

    assert "frame-special-dragon" in result.affordable
    assert "frame-special-dragon" not in engine.state.unlocked_entitlements
    assert engine.state.currency == 10000


def test_purchase_entitlement_deducts_currency(test_user_id):
    """Test buying a coin-gated entitlement"""
    engine = ProgressionEngine(state=ProgressState(currency=12000), user_id=test_user_id)

    result = engine.purchase_entitlement("frame-special-dragon")

    assert result.newly_unlocked == ["frame-special-dragon"]
    assert engine.state.currency == 2000
    assert "frame-special-dragon" in engine.state.unlocked_entitlements


def test_purchase_entitlement_insufficient_currency(test_user_id):
    """Test purchase fails without enough coins"""
    engine = ProgressionEngine(state=ProgressState(currency=100), user_id=test_user_id)

    with pytest.raises(InsufficientCurrencyError) as exc_info:
        engine.purchase_entitlement("frame-special-dragon")

    assert exc_info.value.required == 10000
    assert exc_info.value.available == 100
    assert engine.state.currency == 100


def test_purchase_entitlement_rejections(test_user_id):
    """Test unknown, non-purchasable and already-owned entitlements"""
    engine = ProgressionEngine(
        state=ProgressState(currency=20000, unlocked_entitlements={"frame-special-dragon"}),
        user_id=test_user_id,
    )

    with pytest.raises(UnknownEntitlementError):
        engine.purchase_entitlement("frame-unicorn")
    with pytest.raises(EntitlementLockedError):
        engine.purchase_entitlement("frame-gradient-fire")
    with pytest.raises(EntitlementLockedError):
        engine.purchase_entitlement("frame-special-dragon")

    assert engine.state.currency == 20000


# ============================================================================
# Concurrency Tests
# ============================================================================

def test_concurrent_submissions_serialized(engine):
    """Test parallel submissions from threads lose no updates"""
    def submit(n):
        for i in range(n):
            engine.submit_activity({"type": "quest", "quest_id": f"q{i}", "exp_reward": 1, "coin_reward": 1})

    threads = [threading.Thread(target=submit, args=(25,)) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    state = engine.state
    assert state.stats.total_quests_completed == 100
    assert state.currency == 100
