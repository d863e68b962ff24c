"""
Progression Engine

The single writer of a user's ProgressState. Every mutation goes through one
apply sequence:

    parse -> resolve -> apply bundle (exp, level-up loop, currency,
    attributes, streaks, stats) -> evaluate entitlements -> commit

The bundle is applied to a deep copy that replaces the live state only after
every step succeeds, so a partially applied bundle is never observable.
The sequence holds a lock; concurrent submissions on one engine are serialized.
"""

from typing import Optional
import logging
import threading

from src.exceptions import (
    EntitlementLockedError,
    InsufficientCurrencyError,
    InvalidActivityError,
    ProgressionError,
    UnknownEntitlementError,
)
from src.gamification.catalog import DEFAULT_CATALOG
from src.gamification.entitlements import evaluate, is_spend_gated, partition_spend_gated
from src.gamification.rewards import ActivityLike, parse_activity, resolve
from src.gamification.xp_system import apply_level_ups
from src.models.catalog import Catalog
from src.models.progress import ProgressState, clamp_attribute
from src.models.rewards import ActivityResult, RewardBundle
from src.observability import metrics

logger = logging.getLogger(__name__)

ACTIVITY_TYPES = ("quest", "habit", "checkin", "focus")


def _invalid_activity_label(event) -> str:
    # Raw payload strings never become label values
    raw_type = event.get("type") if isinstance(event, dict) else None
    return raw_type if raw_type in ACTIVITY_TYPES else "unknown"


class ProgressionEngine:
    """
    Owns one user's ProgressState and applies activities to it.

    Responsibilities:
    - Validate and resolve activity events into reward bundles
    - Apply bundles atomically and run the level-up loop
    - Merge newly unlocked entitlements
    - Sell coin-gated entitlements
    """

    def __init__(
        self,
        state: Optional[ProgressState] = None,
        catalog: Catalog = DEFAULT_CATALOG,
        user_id: Optional[str] = None,
    ):
        """
        Initialize ProgressionEngine.

        Args:
            state: Existing progress (a copy is taken); None starts fresh
            catalog: Static level/entitlement/reward tables
            user_id: Used for logging and error context only
        """
        self.catalog = catalog
        self.user_id = user_id
        self._state = state.model_copy(deep=True) if state else ProgressState()
        self._lock = threading.RLock()

    @property
    def state(self) -> ProgressState:
        """Read-only snapshot of the current progress"""
        with self._lock:
            return self._state.model_copy(deep=True)

    def submit_activity(self, event: ActivityLike) -> ActivityResult:
        """
        Resolve and apply one activity event.

        Args:
            event: Activity model or raw dict payload

        Returns:
            ActivityResult with the bundle, level-ups and newly unlocked ids

        Raises:
            InvalidActivityError: malformed payload (state untouched)
            AlreadyCheckedInError: second check-in today (state untouched)
            StaleCompletionError: out-of-order completion (state untouched)
        """
        try:
            activity = parse_activity(event)
        except InvalidActivityError as e:
            e.user_id = self.user_id
            metrics.progression_activities_total.labels(
                activity_type=_invalid_activity_label(event), status="invalid"
            ).inc()
            raise

        with self._lock:
            try:
                bundle = resolve(activity, self._state, self.catalog)
            except ProgressionError as e:
                e.user_id = self.user_id
                metrics.progression_activities_total.labels(
                    activity_type=activity.type, status="rejected"
                ).inc()
                raise

            result = self._commit(bundle)

        metrics.progression_activities_total.labels(
            activity_type=activity.type,
            status="noop" if bundle.is_empty else "applied",
        ).inc()
        if bundle.exp:
            metrics.progression_exp_awarded_total.labels(activity_type=activity.type).inc(bundle.exp)

        logger.info(
            f"User {self.user_id}: {activity.type} -> +{bundle.exp} exp, +{bundle.currency} coins, "
            f"level {self._state.level}"
        )
        return result

    def apply_bundle(self, bundle: RewardBundle) -> ActivityResult:
        """
        Apply an already-resolved bundle (the application routine on its own).

        All fields apply together or not at all.
        """
        with self._lock:
            return self._commit(bundle)

    def purchase_entitlement(self, entitlement_id: str) -> ActivityResult:
        """
        Unlock a coin-gated entitlement, deducting its price from currency.

        Raises:
            UnknownEntitlementError: id not in the catalog
            EntitlementLockedError: not coin-gated, or already unlocked
            InsufficientCurrencyError: currency below the price
        """
        definition = self.catalog.get_entitlement(entitlement_id)
        if definition is None:
            raise UnknownEntitlementError(
                message=f"Unknown entitlement: {entitlement_id}",
                entitlement_id=entitlement_id,
                user_id=self.user_id,
            )
        if not is_spend_gated(definition):
            raise EntitlementLockedError(
                message=f"Entitlement {entitlement_id} is not purchasable",
                entitlement_id=entitlement_id,
                user_id=self.user_id,
            )

        price = definition.unlock_condition.value or 0

        with self._lock:
            if entitlement_id in self._state.unlocked_entitlements:
                raise EntitlementLockedError(
                    message=f"Entitlement {entitlement_id} already unlocked",
                    entitlement_id=entitlement_id,
                    user_id=self.user_id,
                )
            if self._state.currency < price:
                raise InsufficientCurrencyError(
                    message=f"Need {price} coins for {entitlement_id}, have {self._state.currency}",
                    entitlement_id=entitlement_id,
                    required=price,
                    available=self._state.currency,
                    user_id=self.user_id,
                )

            working = self._state.model_copy(deep=True)
            working.currency -= price
            working.unlocked_entitlements.add(entitlement_id)
            self._state = ProgressState.model_validate(working.model_dump())

        metrics.progression_entitlements_unlocked_total.labels(unlock_type="coins").inc()
        logger.info(f"User {self.user_id} purchased {entitlement_id} for {price} coins")

        return ActivityResult(newly_unlocked=[entitlement_id], message=definition.name or None)

    def _commit(self, bundle: RewardBundle) -> ActivityResult:
        """Apply bundle to a working copy, then swap it in. Caller holds the lock."""
        working = self._state.model_copy(deep=True)

        working.current_exp += bundle.exp
        level_ups = apply_level_ups(working, self.catalog)

        working.currency += bundle.currency + sum(event.rewards.coins for event in level_ups)
        for attr, amount in bundle.categorized_currency.items():
            working.wallet[attr] = working.wallet.get(attr, 0) + amount
        for attr, delta in bundle.attribute_deltas.items():
            working.attributes[attr] = clamp_attribute(working.attributes.get(attr, 0) + delta)

        for domain, counter in bundle.streak_updates.items():
            working.streaks[domain] = counter.model_copy()

        working.stats.total_quests_completed += bundle.stats_delta.quests_completed
        working.stats.total_focus_time += bundle.stats_delta.focus_minutes
        working.stats.total_check_ins += bundle.stats_delta.check_ins
        working.stats.total_habit_completions += bundle.stats_delta.habit_completions

        newly_satisfied = evaluate(working, self.catalog)
        unlocked, affordable = partition_spend_gated(newly_satisfied, self.catalog)
        working.unlocked_entitlements |= unlocked

        # Re-validate before the swap so a broken invariant never goes live
        self._state = ProgressState.model_validate(working.model_dump())

        if level_ups:
            metrics.progression_level_ups_total.inc(len(level_ups))
            logger.info(f"User {self.user_id} leveled up to {self._state.level} (+{len(level_ups)})")
        for entitlement_id in unlocked:
            definition = self.catalog.get_entitlement(entitlement_id)
            metrics.progression_entitlements_unlocked_total.labels(
                unlock_type=definition.unlock_condition.type.value if definition else "unknown"
            ).inc()
        if unlocked:
            logger.info(f"User {self.user_id} unlocked: {sorted(unlocked)}")

        return ActivityResult(
            bundle=bundle,
            leveled_up=bool(level_ups),
            new_level=self._state.level if level_ups else None,
            level_ups=level_ups,
            newly_unlocked=sorted(unlocked),
            affordable=sorted(affordable),
            message=bundle.bonus_message,
        )
