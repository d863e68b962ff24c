"""
Service Layer Package

Core Services:
- ProgressionService: per-user serialized activity submission with best-effort persistence

Wiring:
- ServiceContainer / build_container: builds the store, catalog and services from configuration
"""

from src.services.container import ServiceContainer, build_container
from src.services.progression_service import ProgressionService

__all__ = [
    "ServiceContainer",
    "build_container",
    "ProgressionService",
]
