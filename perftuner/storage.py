"""
Key-value blob persistence.

The engine only depends on the ``KeyValueStore`` protocol: byte payloads
under string keys. ``InMemoryStore`` backs tests and ephemeral hosts,
``JsonFileStore`` writes one JSON file per key into a directory.

``load_record`` and ``save_record`` are the only places store errors are
caught: a failed or malformed read falls back to a default, a failed write is
logged and reported as ``False``. Neither ever raises into the host.
"""

import logging
import os
import re
import tempfile
import time
from pathlib import Path
from typing import Callable, Dict, List, Optional, Protocol, Type, TypeVar

from pydantic import BaseModel, Field, ValidationError

from .errors import PersistenceFailureError
from .types import DeviceInfo, OptimizationResult, ValidationResult

logger = logging.getLogger(__name__)

LEARNING_MODEL_KEY = "learning_model"
OPTIMIZATION_HISTORY_KEY = "optimization_history"
VALIDATION_HISTORY_KEY = "validation_history"

M = TypeVar("M", bound=BaseModel)


class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[bytes]:
        ...

    def set(self, key: str, value: bytes) -> None:
        ...

    def delete(self, key: str) -> None:
        ...


class InMemoryStore:
    def __init__(self):
        self._data: Dict[str, bytes] = {}

    def get(self, key: str) -> Optional[bytes]:
        return self._data.get(key)

    def set(self, key: str, value: bytes) -> None:
        self._data[key] = bytes(value)

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> List[str]:
        return list(self._data)


_SAFE_KEY = re.compile(r"^[A-Za-z0-9_.-]+$")


class JsonFileStore:
    """One ``<key>.json`` file per key. Writes go through a temp file + rename."""

    def __init__(self, directory: str):
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        if not _SAFE_KEY.match(key):
            raise PersistenceFailureError(f"Invalid store key '{key}'")
        return self.directory / f"{key}.json"

    def get(self, key: str) -> Optional[bytes]:
        path = self._path(key)
        try:
            return path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise PersistenceFailureError(f"Failed to read {path}: {e}") from e

    def set(self, key: str, value: bytes) -> None:
        path = self._path(key)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(dir=str(self.directory), suffix=".tmp")
            with os.fdopen(fd, "wb") as f:
                f.write(value)
            os.replace(tmp, path)
        except OSError as e:
            raise PersistenceFailureError(f"Failed to write {path}: {e}") from e

    def delete(self, key: str) -> None:
        path = self._path(key)
        try:
            path.unlink()
        except FileNotFoundError:
            return
        except OSError as e:
            raise PersistenceFailureError(f"Failed to delete {path}: {e}") from e


class OptimizationHistory(BaseModel):
    entries: List[OptimizationResult] = Field(default_factory=list)


class ValidationRecord(BaseModel):
    device: DeviceInfo
    results: List[ValidationResult]
    timestamp: float = Field(default_factory=time.time)


class ValidationHistory(BaseModel):
    entries: List[ValidationRecord] = Field(default_factory=list)


def decode_record(payload: bytes, model_cls: Type[M]) -> M:
    """Validate a stored blob, raising ``PersistenceFailureError`` when malformed."""
    try:
        return model_cls.model_validate_json(payload)
    except ValidationError as e:
        raise PersistenceFailureError(
            f"Stored {model_cls.__name__} failed validation ({e.error_count()} errors)"
        ) from e


def load_record(store: KeyValueStore, key: str, model_cls: Type[M],
                default_factory: Callable[[], M]) -> M:
    """Read and validate ``key``; any failure yields ``default_factory()``."""
    try:
        payload = store.get(key)
        if payload is None:
            logger.info(f"No stored '{key}', starting from defaults")
            return default_factory()
        return decode_record(payload, model_cls)
    except (PersistenceFailureError, OSError) as e:
        logger.warning(f"Could not load '{key}', falling back to defaults: {e}")
        return default_factory()


def save_record(store: KeyValueStore, key: str, record: BaseModel) -> bool:
    try:
        store.set(key, record.model_dump_json().encode("utf-8"))
        return True
    except (PersistenceFailureError, OSError) as e:
        logger.error(f"Could not save '{key}': {e}")
        return False


def delete_record(store: KeyValueStore, key: str) -> None:
    try:
        store.delete(key)
    except (PersistenceFailureError, OSError) as e:
        logger.error(f"Could not delete '{key}': {e}")
