"""
Key-Value Store - Persistence between stateless invocations

Holds string values under flat keys (latest_code, latest_code_timestamp,
processed_mail_ids). Implementations:
- MemoryStore: process-local dict (tests, or no MAIL_KV_PATH configured)
- JsonFileStore: single JSON object on disk, rewritten atomically
"""

import asyncio
import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Optional

from app.core.errors import StoreError

logger = logging.getLogger(__name__)


class KeyValueStore(ABC):
    """Async string key-value store"""

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """
        Read a value

        Raises:
            StoreError: If the backing storage cannot be read
        """

    @abstractmethod
    async def put(self, key: str, value: str) -> None:
        """
        Write a value

        Raises:
            StoreError: If the backing storage cannot be written
        """

    async def get_json(self, key: str) -> Any:
        """
        Read and decode a JSON value

        Returns:
            Any: Decoded value, or None if the key is absent

        Raises:
            StoreError: If the value is not valid JSON or the read fails
        """
        raw = await self.get(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except (TypeError, ValueError) as e:
            raise StoreError(f"Value under '{key}' is not valid JSON: {e}")


class MemoryStore(KeyValueStore):
    """In-memory store (does not survive the process)"""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self.data: Dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    async def put(self, key: str, value: str) -> None:
        self.data[key] = value


class JsonFileStore(KeyValueStore):
    """File-backed store; every get re-reads the file"""

    def __init__(self, path: str):
        """
        Initialize JSON File Store

        Args:
            path: Path to the JSON file (created on first write)
        """
        self.path = Path(path)
        self._lock = asyncio.Lock()

    def _read_all(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise StoreError(f"Failed to read {self.path}: {e}")

        if not isinstance(data, dict):
            raise StoreError(f"Store file {self.path} does not contain an object")
        return data

    def _write_all(self, data: Dict[str, str]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                dir=str(self.path.parent), prefix=f".{self.path.name}.", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(data, f, ensure_ascii=False)
                os.replace(tmp_path, self.path)
            except BaseException:
                Path(tmp_path).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise StoreError(f"Failed to write {self.path}: {e}")

    async def get(self, key: str) -> Optional[str]:
        async with self._lock:
            value = self._read_all().get(key)
        return None if value is None else str(value)

    async def put(self, key: str, value: str) -> None:
        async with self._lock:
            data = self._read_all()
            data[key] = value
            self._write_all(data)
        logger.debug(f"Stored '{key}' in {self.path}")


def build_store(store_path: Optional[str]) -> KeyValueStore:
    """
    Create the store for the configured path

    Args:
        store_path: JSON file path, or None for an in-memory store

    Returns:
        KeyValueStore: Store instance
    """
    if store_path:
        logger.info(f"Using JSON file store: {store_path}")
        return JsonFileStore(store_path)

    logger.warning(
        "⚠️ MAIL_KV_PATH not set - using in-memory store, "
        "processed mail IDs will not survive a restart"
    )
    return MemoryStore()
