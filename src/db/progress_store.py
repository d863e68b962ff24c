"""Progress persistence

The engine's in-memory state is authoritative; stores are best-effort sync
targets. The persisted format is the ProgressState JSON shape.

STORES:
- InMemoryProgressStore: process-local, for tests and the 'memory' backend
- JsonFileProgressStore: <data_path>/<user_id>/progress.json
"""
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Optional
import asyncio
import logging
import os
import re
import tempfile

from src.config import DATA_PATH
from src.exceptions import ValidationError, wrap_external_exception
from src.models.progress import ProgressState

logger = logging.getLogger(__name__)

_USER_ID_PATTERN = re.compile(r"^[A-Za-z0-9_.-]{1,128}$")


def dump_progress_state(state: ProgressState) -> str:
    """Serialize progress to its persisted JSON form"""
    return state.model_dump_json()


def load_progress_state(payload: str, user_id: Optional[str] = None) -> ProgressState:
    """
    Deserialize persisted JSON into a ProgressState

    Raises:
        CorruptStateError: payload is not valid JSON or violates the model
    """
    try:
        return ProgressState.model_validate_json(payload)
    except ValueError as e:
        # pydantic.ValidationError subclasses ValueError
        raise wrap_external_exception(e, operation="load_progress", user_id=user_id)


class ProgressStore(ABC):
    """Persistence collaborator interface"""

    @abstractmethod
    async def load(self, user_id: str) -> Optional[ProgressState]:
        """Stored progress for a user, or None if the user has none"""

    @abstractmethod
    async def save(self, user_id: str, state: ProgressState) -> None:
        """Persist progress; raises PersistenceError on failure"""


class InMemoryProgressStore(ProgressStore):
    """Process-local store (not persisted across restarts)"""

    def __init__(self):
        # Serialized documents, so callers never share state objects with the store
        self._documents: Dict[str, str] = {}

    async def load(self, user_id: str) -> Optional[ProgressState]:
        payload = self._documents.get(user_id)
        if payload is None:
            return None
        return load_progress_state(payload, user_id)

    async def save(self, user_id: str, state: ProgressState) -> None:
        self._documents[user_id] = dump_progress_state(state)
        logger.debug(f"Saved progress for {user_id} to memory store")


class JsonFileProgressStore(ProgressStore):
    """One JSON document per user under data_path"""

    FILENAME = "progress.json"

    def __init__(self, data_path: Path = DATA_PATH):
        self.data_path = Path(data_path)

    def get_user_dir(self, user_id: str) -> Path:
        """Get user's data directory"""
        if not _USER_ID_PATTERN.match(user_id) or user_id in (".", ".."):
            raise ValidationError(
                message="User id contains unsupported characters",
                field="user_id",
                value=user_id,
            )
        return self.data_path / user_id

    async def load(self, user_id: str) -> Optional[ProgressState]:
        filepath = self.get_user_dir(user_id) / self.FILENAME
        try:
            payload = await asyncio.to_thread(self._read, filepath)
        except OSError as e:
            raise wrap_external_exception(e, operation="load_progress", user_id=user_id)

        if payload is None:
            return None
        return load_progress_state(payload, user_id)

    async def save(self, user_id: str, state: ProgressState) -> None:
        filepath = self.get_user_dir(user_id) / self.FILENAME
        payload = dump_progress_state(state)
        try:
            await asyncio.to_thread(self._write_atomic, filepath, payload)
        except OSError as e:
            raise wrap_external_exception(
                e,
                operation="save_progress",
                user_id=user_id,
                context={"path": str(filepath)},
            )
        logger.info(f"Saved progress for {user_id} to {filepath}")

    @staticmethod
    def _read(filepath: Path) -> Optional[str]:
        if not filepath.exists():
            return None
        return filepath.read_text(encoding="utf-8")

    @staticmethod
    def _write_atomic(filepath: Path, payload: str) -> None:
        # Write to a sibling temp file then rename, so readers never see half a document
        filepath.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=filepath.parent, prefix=".progress-", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, filepath)
        except Exception:
            Path(tmp_name).unlink(missing_ok=True)
            raise
