"""Retry logic with exponential backoff and jitter

Implements smart retry logic for progress persistence that:
1. Only retries transient errors (storage hiccups, timeouts)
2. Uses exponential backoff with jitter to prevent thundering herd
3. Gives up after max retries to avoid infinite loops
"""

import asyncio
import random
import logging
from typing import Callable, Any, TypeVar

from src.config import PERSIST_BASE_DELAY, PERSIST_MAX_DELAY, PERSIST_MAX_RETRIES
from src.exceptions import TransientPersistenceError

logger = logging.getLogger(__name__)

T = TypeVar('T')

# Retry configuration
MAX_RETRIES = PERSIST_MAX_RETRIES
BASE_DELAY = PERSIST_BASE_DELAY  # seconds
MAX_DELAY = PERSIST_MAX_DELAY  # seconds
JITTER = 0.1  # 10% random jitter


def is_retryable_error(exc: Exception) -> bool:
    """
    Determine if error is transient and should be retried.

    Retryable errors:
    - TransientPersistenceError (wrapped filesystem/storage failures)
    - Raw OSError / TimeoutError from a store that doesn't wrap its errors

    Non-retryable errors:
    - CorruptStateError and other PersistenceErrors
    - Validation errors
    - Anything else

    Args:
        exc: The exception to check

    Returns:
        True if error should be retried, False otherwise
    """
    if isinstance(exc, TransientPersistenceError):
        return True

    if isinstance(exc, (asyncio.TimeoutError, TimeoutError, ConnectionError)):
        return True

    # Plain OSError (disk full, locked file) is usually temporary
    if type(exc) is OSError:
        return True

    # Default: don't retry unknown errors
    return False


def calculate_backoff(attempt: int, base_delay: float = BASE_DELAY, max_delay: float = MAX_DELAY) -> float:
    """
    Calculate exponential backoff delay with jitter.

    Formula: delay = min(base_delay * (2 ** attempt), max_delay) + jitter
    Jitter is random value between -10% and +10% of delay

    Args:
        attempt: The retry attempt number (0-indexed)

    Returns:
        Delay in seconds

    Example (base 0.5s):
        Attempt 0: ~0.5s
        Attempt 1: ~1s
        Attempt 2: ~2s
    """
    # Exponential backoff
    delay = min(base_delay * (2 ** attempt), max_delay)

    # Add jitter to prevent thundering herd
    jitter_amount = random.uniform(-JITTER * delay, JITTER * delay)
    final_delay = delay + jitter_amount

    return max(final_delay, 0.0)  # Ensure non-negative


async def retry_with_backoff(
    func: Callable[..., T],
    *args: Any,
    max_retries: int = MAX_RETRIES,
    **kwargs: Any
) -> T:
    """
    Retry async function with exponential backoff.

    Only retries transient errors. Gives up after max_retries attempts.

    Args:
        func: Async function to retry
        max_retries: Maximum number of retry attempts (default: PERSIST_MAX_RETRIES)
        *args, **kwargs: Arguments to pass to func

    Returns:
        Result from func

    Raises:
        Last exception if all retries exhausted or non-retryable error

    Example:
        await retry_with_backoff(store.save, user_id, state, max_retries=3)
    """
    for attempt in range(max_retries + 1):
        try:
            return await func(*args, **kwargs)

        except Exception as e:
            # If this was the last attempt, give up
            if attempt == max_retries:
                if max_retries:
                    logger.error(
                        f"[RETRY] All {max_retries} retries exhausted for {func.__name__}"
                    )
                raise

            if not is_retryable_error(e):
                logger.warning(
                    f"[RETRY] Non-retryable error for {func.__name__}: "
                    f"{type(e).__name__}: {e}"
                )
                raise

            backoff = calculate_backoff(attempt)

            # Imported lazily so retry stays usable without metrics wiring
            from src.observability.metrics import progression_persistence_retries_total
            progression_persistence_retries_total.labels(operation=func.__name__).inc()

            logger.info(
                f"[RETRY] Attempt {attempt + 1}/{max_retries} for {func.__name__} "
                f"after {backoff:.2f}s (error: {type(e).__name__})"
            )

            await asyncio.sleep(backoff)

    raise RuntimeError("Retry logic failed unexpectedly")
