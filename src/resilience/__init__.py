"""Resilience patterns for progress persistence

This module provides retry logic with exponential backoff for
transient storage failures.
"""

from src.resilience.retry import (
    retry_with_backoff,
    is_retryable_error,
    calculate_backoff,
)

__all__ = [
    "retry_with_backoff",
    "is_retryable_error",
    "calculate_backoff",
]
