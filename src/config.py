"""Configuration management"""
import os
from pathlib import Path
from typing import Optional
from dotenv import load_dotenv

load_dotenv()

# Logging
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

# Storage
# - 'file' (default): one JSON document per user under DATA_PATH
# - 'memory': process-local store, nothing survives a restart
STORE_BACKEND: str = os.getenv("STORE_BACKEND", "file")
DATA_PATH: Path = Path(os.getenv("DATA_PATH", "./data"))

# Static catalogs (levels, entitlements, quest reward tables)
# Unset means the built-in catalog is used.
_catalog_path = os.getenv("CATALOG_PATH", "")
CATALOG_PATH: Optional[Path] = Path(_catalog_path) if _catalog_path else None

# Persistence retry policy (saves are best-effort)
PERSIST_MAX_RETRIES: int = int(os.getenv("PERSIST_MAX_RETRIES", "3"))
PERSIST_BASE_DELAY: float = float(os.getenv("PERSIST_BASE_DELAY", "0.5"))
PERSIST_MAX_DELAY: float = float(os.getenv("PERSIST_MAX_DELAY", "10.0"))


# Validation
def validate_config() -> None:
    """Validate configuration values"""
    if STORE_BACKEND not in ("file", "memory"):
        raise ValueError(f"STORE_BACKEND must be 'file' or 'memory', got {STORE_BACKEND!r}")
    if PERSIST_MAX_RETRIES < 0:
        raise ValueError("PERSIST_MAX_RETRIES must be >= 0")
    if PERSIST_BASE_DELAY < 0 or PERSIST_MAX_DELAY < 0:
        raise ValueError("PERSIST_BASE_DELAY and PERSIST_MAX_DELAY must be >= 0")
    if CATALOG_PATH is not None and not CATALOG_PATH.exists():
        raise ValueError(f"CATALOG_PATH does not exist: {CATALOG_PATH}")
