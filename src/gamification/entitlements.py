"""
Entitlement System

Decides which cosmetics, achievements and feature gates are unlocked for a
given ProgressState.

Unlock Conditions:
- default: always unlocked
- level: state.level >= value
- achievement: total quests completed >= value
- coins: state.currency >= value (spend-gate; the evaluator never deducts)

Predicates only read progress, never another entitlement's unlock state, so
evaluation is idempotent and independent of catalog order.
"""

from typing import Iterable, Set, Tuple
import logging

from src.gamification.catalog import DEFAULT_CATALOG
from src.models.catalog import Catalog, EntitlementDefinition, UnlockType
from src.models.progress import ProgressState

logger = logging.getLogger(__name__)


def is_unlocked(definition: EntitlementDefinition, state: ProgressState) -> bool:
    """Test one entitlement's predicate against the state"""
    condition = definition.unlock_condition
    value = condition.value or 0

    if condition.type == UnlockType.DEFAULT:
        return True
    if condition.type == UnlockType.LEVEL:
        return state.level >= value
    if condition.type == UnlockType.ACHIEVEMENT:
        return state.stats.total_quests_completed >= value
    if condition.type == UnlockType.COINS:
        return state.currency >= value

    logger.warning(f"Unknown unlock condition type for {definition.id}: {condition.type}")
    return False


def evaluate(state: ProgressState, catalog: Catalog = DEFAULT_CATALOG) -> Set[str]:
    """
    Entitlements newly satisfied by the state

    Skips ids already in state.unlocked_entitlements. The caller merges the
    result and handles notifications (and the currency deduction for
    coin-gated ids).
    """
    newly_unlocked = {
        definition.id
        for definition in catalog.entitlements
        if definition.id not in state.unlocked_entitlements and is_unlocked(definition, state)
    }

    if newly_unlocked:
        logger.debug(f"Entitlements newly satisfied: {sorted(newly_unlocked)}")

    return newly_unlocked


def is_spend_gated(definition: EntitlementDefinition) -> bool:
    return definition.unlock_condition.type == UnlockType.COINS


def partition_spend_gated(
    entitlement_ids: Iterable[str],
    catalog: Catalog = DEFAULT_CATALOG,
) -> Tuple[Set[str], Set[str]]:
    """
    Split ids into (free to merge, needs a purchase)
    """
    free, spend_gated = set(), set()
    for entitlement_id in entitlement_ids:
        definition = catalog.get_entitlement(entitlement_id)
        if definition and is_spend_gated(definition):
            spend_gated.add(entitlement_id)
        else:
            free.add(entitlement_id)
    return free, spend_gated


def describe_unlock_condition(definition: EntitlementDefinition) -> str:
    """Human-readable unlock requirement"""
    condition = definition.unlock_condition

    if condition.type == UnlockType.LEVEL:
        return f"Reach level {condition.value}"
    if condition.type == UnlockType.ACHIEVEMENT:
        return f"Complete {condition.value} quests"
    if condition.type == UnlockType.COINS:
        return f"Spend {condition.value} coins"
    return "Unlocked by default"
