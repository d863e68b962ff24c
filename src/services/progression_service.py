"""
ProgressionService - Progression Business Logic

Serializes activity submissions per user, runs the synchronous
ProgressionEngine, and syncs results to the persistence collaborator.
"""

import asyncio
import logging
import weakref
from typing import Dict, Optional

from src.db.progress_store import ProgressStore
from src.exceptions import AlreadyCheckedInError, PersistenceError
from src.gamification.catalog import DEFAULT_CATALOG
from src.gamification.engine import ProgressionEngine
from src.gamification.rewards import ActivityLike
from src.models.catalog import Catalog
from src.models.progress import ProgressState
from src.models.rewards import ActivityResult
from src.observability import metrics
from src.resilience.retry import MAX_RETRIES, retry_with_backoff

logger = logging.getLogger(__name__)


class ProgressionService:
    """
    Service for progression features.

    Responsibilities:
    - One engine per user, loaded lazily from the store and dropped by release()
    - Per-user serialization of the resolve/apply/evaluate/save sequence
    - Best-effort persistence (a failed save never rolls back progress)
    - Recovering same-day check-in retries into no-op results
    """

    def __init__(
        self,
        store: ProgressStore,
        catalog: Catalog = DEFAULT_CATALOG,
        max_save_retries: int = MAX_RETRIES,
    ):
        """
        Initialize ProgressionService.

        Args:
            store: Persistence collaborator
            catalog: Static level/entitlement/reward tables
            max_save_retries: Retry attempts for each save
        """
        self.store = store
        self.catalog = catalog
        self.max_save_retries = max_save_retries
        self._engines: Dict[str, ProgressionEngine] = {}
        # Entries vanish once no coroutine holds or awaits the lock
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()
        logger.debug("ProgressionService initialized")

    def _lock_for(self, user_id: str) -> asyncio.Lock:
        lock = self._locks.get(user_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[user_id] = lock
        return lock

    async def _get_engine(self, user_id: str) -> ProgressionEngine:
        """Cached engine, else one built from stored (or fresh) progress. Caller holds the user lock."""
        engine = self._engines.get(user_id)
        if engine is not None:
            return engine

        state = await self.store.load(user_id)
        if state is None:
            logger.info(f"No stored progress for {user_id}, starting fresh")
        engine = ProgressionEngine(state=state, catalog=self.catalog, user_id=user_id)
        self._engines[user_id] = engine
        return engine

    async def _save(self, user_id: str, state: ProgressState) -> bool:
        """Save with retries; failures are logged and counted, never raised"""
        try:
            await retry_with_backoff(
                self.store.save, user_id, state, max_retries=self.max_save_retries
            )
            return True
        except (PersistenceError, OSError, asyncio.TimeoutError) as e:
            # Covers everything is_retryable_error retries
            metrics.progression_persistence_failures_total.labels(
                error_type=e.__class__.__name__
            ).inc()
            logger.warning(
                f"Progress for {user_id} kept locally, sync failed: {getattr(e, 'message', e)}"
            )
            return False

    async def submit_activity(self, user_id: str, event: ActivityLike) -> ActivityResult:
        """
        Submit one activity for a user.

        Args:
            user_id: User identifier
            event: Activity model or raw dict payload

        Returns:
            ActivityResult; persisted tells whether the save succeeded.
            A same-day check-in retry returns applied=False with a user message.

        Raises:
            InvalidActivityError, StaleCompletionError: rejected, nothing changed
        """
        async with self._lock_for(user_id):
            engine = await self._get_engine(user_id)

            try:
                result = engine.submit_activity(event)
            except AlreadyCheckedInError as e:
                return ActivityResult(applied=False, message=e.user_message)

            if result.bundle.is_empty:
                return result

            result.persisted = await self._save(user_id, engine.state)

        logger.info(
            f"Progression processed for {user_id}: exp={result.bundle.exp}, "
            f"level_up={result.leveled_up}, unlocked={len(result.newly_unlocked)}, "
            f"persisted={result.persisted}"
        )
        return result

    async def purchase_entitlement(self, user_id: str, entitlement_id: str) -> ActivityResult:
        """
        Buy a coin-gated entitlement for a user.

        Raises:
            UnknownEntitlementError, EntitlementLockedError, InsufficientCurrencyError
        """
        async with self._lock_for(user_id):
            engine = await self._get_engine(user_id)
            result = engine.purchase_entitlement(entitlement_id)
            result.persisted = await self._save(user_id, engine.state)
        return result

    async def get_progress(self, user_id: str) -> ProgressState:
        """Read-only copy of a user's current progress"""
        async with self._lock_for(user_id):
            engine = await self._get_engine(user_id)
            return engine.state

    async def flush(self, user_id: Optional[str] = None) -> Dict[str, bool]:
        """
        Re-save cached progress (one user, or every loaded user).

        Returns:
            {user_id: saved}
        """
        user_ids = [user_id] if user_id else list(self._engines)
        results = {}
        for uid in user_ids:
            async with self._lock_for(uid):
                engine = self._engines.get(uid)
                if engine is None:
                    continue
                results[uid] = await self._save(uid, engine.state)
        return results

    async def release(self, user_id: str) -> bool:
        """
        Save a user's progress and drop it from the cache.

        The engine stays cached if the save fails, so unsynced progress
        is never discarded.

        Returns:
            True if the user is no longer cached
        """
        async with self._lock_for(user_id):
            engine = self._engines.get(user_id)
            if engine is None:
                return True
            if not await self._save(user_id, engine.state):
                return False
            del self._engines[user_id]
        logger.debug(f"Released cached progress for {user_id}")
        return True
