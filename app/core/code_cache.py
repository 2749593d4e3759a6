"""
Latest Code Cache - Single-slot record of the most recent extraction
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from app.core.kv_store import KeyValueStore

logger = logging.getLogger(__name__)

LATEST_CODE_KEY = "latest_code"
LATEST_CODE_TIMESTAMP_KEY = "latest_code_timestamp"


def utc_now_iso() -> str:
    """Current UTC time as ISO 8601 with a "Z" suffix"""
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass(frozen=True)
class LatestCode:
    code: str
    timestamp: Optional[str] = None


class LatestCodeCache:
    """Reads and overwrites the latest_code / latest_code_timestamp keys"""

    def __init__(self, store: Optional[KeyValueStore]):
        self.store = store

    async def save(self, code: str, timestamp: Optional[str] = None) -> bool:
        """
        Overwrite the cached code

        Store failures are logged and dropped.

        Args:
            code: Extracted verification code
            timestamp: ISO 8601 time (defaults to now)

        Returns:
            bool: True if both keys were written
        """
        if self.store is None:
            return False

        timestamp = timestamp or utc_now_iso()
        try:
            await self.store.put(LATEST_CODE_KEY, code)
            await self.store.put(LATEST_CODE_TIMESTAMP_KEY, timestamp)
        except Exception as e:
            logger.warning(f"Failed to save code to store: {e}")
            return False

        return True

    async def get(self) -> Optional[LatestCode]:
        """
        Read the cached code

        Returns:
            Optional[LatestCode]: Cached code, or None if nothing is stored

        Raises:
            StoreError: If the store cannot be read
        """
        if self.store is None:
            return None

        code = await self.store.get(LATEST_CODE_KEY)
        if not code:
            return None

        timestamp = await self.store.get(LATEST_CODE_TIMESTAMP_KEY)
        return LatestCode(code=code, timestamp=timestamp)
