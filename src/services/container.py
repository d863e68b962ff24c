"""
Service Container - Dependency Injection Container

Simple DI container for managing service instances and their dependencies.
Uses lazy loading to only instantiate services when first accessed.

No module-level instance: the entry point builds a container and passes
it (or the services it yields) to whatever needs them.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional
import logging

from src.db.progress_store import InMemoryProgressStore, JsonFileProgressStore, ProgressStore
from src.gamification.catalog import load_catalog
from src.models.catalog import Catalog

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    """
    Simple dependency injection container for services.

    Services are lazy-loaded on first access via properties.
    Infrastructure dependencies (store, catalog) are injected.
    """

    # Infrastructure dependencies (injected)
    store: ProgressStore
    catalog: Catalog
    max_save_retries: Optional[int] = None  # None uses the configured default

    # Services (lazy-loaded via properties)
    _progression_service: Optional[object] = field(default=None, init=False, repr=False)

    @property
    def progression_service(self):
        """Get ProgressionService instance (lazy-loaded)"""
        if self._progression_service is None:
            from src.services.progression_service import ProgressionService
            kwargs = {}
            if self.max_save_retries is not None:
                kwargs["max_save_retries"] = self.max_save_retries
            self._progression_service = ProgressionService(self.store, self.catalog, **kwargs)
            logger.debug("ProgressionService instantiated")
        return self._progression_service


def build_container(
    store_backend: str = "file",
    data_path: Optional[Path] = None,
    catalog_path: Optional[Path] = None,
    max_save_retries: Optional[int] = None,
) -> ServiceContainer:
    """
    Build a container from configuration values.

    Args:
        store_backend: 'file' or 'memory'
        data_path: Root directory for the file store (None uses DATA_PATH)
        catalog_path: Catalog JSON override (None uses the built-in catalog)
        max_save_retries: Save retry attempts (None uses PERSIST_MAX_RETRIES)

    Returns:
        ServiceContainer: The initialized container
    """
    if store_backend == "memory":
        store: ProgressStore = InMemoryProgressStore()
    elif store_backend == "file":
        store = JsonFileProgressStore(data_path) if data_path else JsonFileProgressStore()
    else:
        raise ValueError(f"Unknown store backend: {store_backend}")

    container = ServiceContainer(
        store=store,
        catalog=load_catalog(catalog_path),
        max_save_retries=max_save_retries,
    )

    logger.info(f"Service container initialized (store={store_backend})")
    return container
