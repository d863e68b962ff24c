"""Unit tests for Entitlement System (src/gamification/entitlements.py)"""
from src.gamification.entitlements import (
    describe_unlock_condition,
    evaluate,
    is_unlocked,
    partition_spend_gated,
)
from src.models.catalog import EntitlementDefinition, UnlockCondition, UnlockType
from src.models.progress import ProgressState, Stats


DEFAULT_FRAMES = {"frame-none", "frame-basic-white", "frame-basic-black"}


# ============================================================================
# Predicate Tests
# ============================================================================

def test_default_always_unlocked(fresh_state):
    """Test default entitlements need nothing"""
    definition = EntitlementDefinition(id="x")
    assert is_unlocked(definition, fresh_state) is True


def test_level_predicate():
    """Test level-gated entitlements unlock at the level"""
    definition = EntitlementDefinition(
        id="x", unlock_condition=UnlockCondition(type=UnlockType.LEVEL, value=5)
    )

    assert is_unlocked(definition, ProgressState(level=4, max_exp=600)) is False
    assert is_unlocked(definition, ProgressState(level=5, max_exp=750)) is True


def test_achievement_predicate():
    """Test achievement entitlements count completed quests"""
    definition = EntitlementDefinition(
        id="x", unlock_condition=UnlockCondition(type=UnlockType.ACHIEVEMENT, value=10)
    )

    assert is_unlocked(definition, ProgressState(stats=Stats(total_quests_completed=9))) is False
    assert is_unlocked(definition, ProgressState(stats=Stats(total_quests_completed=10))) is True


def test_coins_predicate():
    """Test coin-gated entitlements compare against the balance"""
    definition = EntitlementDefinition(
        id="x", unlock_condition=UnlockCondition(type=UnlockType.COINS, value=100)
    )

    assert is_unlocked(definition, ProgressState(currency=99)) is False
    assert is_unlocked(definition, ProgressState(currency=100)) is True


# ============================================================================
# Evaluation Tests
# ============================================================================

def test_evaluate_fresh_state(fresh_state, catalog):
    """Test a new user satisfies exactly the default frames"""
    assert evaluate(fresh_state, catalog) == DEFAULT_FRAMES


def test_evaluate_skips_already_unlocked(catalog):
    """Test owned ids aren't reported again"""
    state = ProgressState(unlocked_entitlements=DEFAULT_FRAMES)

    assert evaluate(state, catalog) == set()


def test_evaluate_is_idempotent(catalog):
    """Test merging the result and re-evaluating finds nothing new"""
    state = ProgressState(level=12, max_exp=1800, stats=Stats(total_quests_completed=10))

    first = evaluate(state, catalog)
    state.unlocked_entitlements |= first

    assert "frame-gradient-cyber" in first
    assert "frame-gradient-fire" in first
    assert "achievement-quests-10" in first
    assert "frame-gradient-ocean" not in first
    assert evaluate(state, catalog) == set()


def test_evaluate_does_not_deduct(catalog):
    """Test evaluation never touches currency"""
    state = ProgressState(currency=20000, unlocked_entitlements=DEFAULT_FRAMES)

    assert evaluate(state, catalog) == {"frame-special-dragon"}
    assert state.currency == 20000


def test_partition_spend_gated(catalog):
    """Test coin-gated ids are separated from free ones"""
    free, spend_gated = partition_spend_gated(
        {"frame-none", "frame-special-dragon", "achievement-first-quest"}, catalog
    )

    assert free == {"frame-none", "achievement-first-quest"}
    assert spend_gated == {"frame-special-dragon"}


# ============================================================================
# Description Tests
# ============================================================================

def test_describe_unlock_condition(catalog):
    """Test human-readable requirements"""
    assert describe_unlock_condition(catalog.get_entitlement("frame-none")) == "Unlocked by default"
    assert describe_unlock_condition(catalog.get_entitlement("frame-gradient-fire")) == "Reach level 10"
    assert describe_unlock_condition(catalog.get_entitlement("frame-special-master")) == "Complete 1000 quests"
    assert describe_unlock_condition(catalog.get_entitlement("frame-special-dragon")) == "Spend 10000 coins"
