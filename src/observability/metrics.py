"""
Prometheus metrics definitions for the progression engine.

Metrics are organized by category:
- Activity metrics: submissions by type and outcome
- Progression metrics: exp awarded, level-ups, entitlement unlocks
- Persistence metrics: save failures and retries

The host application decides whether and where to expose them
(e.g. prometheus_client.start_http_server).
"""

import logging
import sys
from prometheus_client import Counter, Info

logger = logging.getLogger(__name__)

# =============================================================================
# Activity Metrics
# =============================================================================

progression_activities_total = Counter(
    "progression_activities_total",
    "Total activities submitted",
    ["activity_type", "status"],  # status: applied/rejected/invalid/noop
)

# =============================================================================
# Progression Metrics
# =============================================================================

progression_exp_awarded_total = Counter(
    "progression_exp_awarded_total",
    "Total exp awarded",
    ["activity_type"],
)

progression_level_ups_total = Counter(
    "progression_level_ups_total",
    "Total levels gained",
)

progression_entitlements_unlocked_total = Counter(
    "progression_entitlements_unlocked_total",
    "Total entitlements unlocked",
    ["unlock_type"],
)

# =============================================================================
# Persistence Metrics
# =============================================================================

progression_persistence_failures_total = Counter(
    "progression_persistence_failures_total",
    "Total failed progress saves (after retries)",
    ["error_type"],
)

progression_persistence_retries_total = Counter(
    "progression_persistence_retries_total",
    "Total progress save retry attempts",
    ["operation"],
)

# =============================================================================
# Application Info
# =============================================================================

app_info = Info(
    "progression_app",
    "Application information",
)


def init_metrics(version: str = "dev") -> None:
    """
    Initialize metrics with application information.

    Call once at application startup.
    """
    app_info.info(
        {
            "version": version,
            "python_version": f"{sys.version_info.major}.{sys.version_info.minor}",
        }
    )

    logger.info("Prometheus metrics initialized")
