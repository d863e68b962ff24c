"""Global test fixtures and utilities for progression engine tests"""
import pytest
from datetime import date

from src.db.progress_store import InMemoryProgressStore, JsonFileProgressStore
from src.gamification.catalog import DEFAULT_CATALOG
from src.gamification.engine import ProgressionEngine
from src.models.progress import ProgressState, StreakCounter, CHECKIN_DOMAIN
from src.services.progression_service import ProgressionService


# ============================================================================
# User Fixtures
# ============================================================================

@pytest.fixture
def test_user_id():
    """Standard test user ID"""
    return "123456789"


@pytest.fixture
def base_date():
    """Fixed calendar day so streak tests don't depend on the clock"""
    return date(2024, 1, 1)


# ============================================================================
# Progress Fixtures
# ============================================================================

@pytest.fixture
def catalog():
    """Built-in catalog"""
    return DEFAULT_CATALOG


@pytest.fixture
def fresh_state():
    """Brand-new user progress"""
    return ProgressState()


@pytest.fixture
def checked_in_state(base_date):
    """Progress with a 6-day check-in streak ending on base_date"""
    return ProgressState(
        streaks={
            CHECKIN_DOMAIN: StreakCounter(
                current_streak=6,
                longest_streak=6,
                last_completion_date=base_date,
            )
        },
        stats={"total_check_ins": 6},
    )


@pytest.fixture
def engine(test_user_id):
    """Engine for a fresh user"""
    return ProgressionEngine(user_id=test_user_id)


# ============================================================================
# Store & Service Fixtures
# ============================================================================

@pytest.fixture
def memory_store():
    """Process-local store"""
    return InMemoryProgressStore()


@pytest.fixture
def file_store(tmp_path):
    """JSON file store rooted in a temp directory"""
    return JsonFileProgressStore(tmp_path / "data")


@pytest.fixture
def progression_service(memory_store):
    """Service over the in-memory store, no save retries"""
    return ProgressionService(memory_store, max_save_retries=0)

