"""
Dedup Ledger - Bounded record of already-processed mail IDs

Lifecycle per pipeline run:
1. load() once at the start (missing/malformed/unreadable -> empty)
2. contains()/record() in memory while the batch is processed
3. persist() once at the end, keeping only the newest max_size IDs

A run interrupted before persist() leaves the previous ledger intact, so
its mails are reprocessed on the next run (at-least-once on crash).
"""

import json
import logging
from typing import Dict, Iterable, List, Optional

from app.config import DEFAULT_MAX_PROCESSED_IDS
from app.core.kv_store import KeyValueStore

logger = logging.getLogger(__name__)

PROCESSED_IDS_KEY = "processed_mail_ids"


class ProcessedIdSet:
    """Insertion-ordered set of mail identifiers"""

    def __init__(self, ids: Optional[Iterable[str]] = None):
        # dict keeps insertion order and gives O(1) membership
        self._ids: Dict[str, None] = {}
        for mail_id in ids or []:
            self.add(mail_id)

    def __contains__(self, mail_id: object) -> bool:
        return mail_id in self._ids

    def __len__(self) -> int:
        return len(self._ids)

    def add(self, mail_id: str) -> None:
        """Add an identifier; re-adding keeps its original position"""
        if mail_id not in self._ids:
            self._ids[mail_id] = None

    def to_list(self) -> List[str]:
        return list(self._ids)

    def newest(self, limit: int) -> List[str]:
        """
        Return the most recently inserted identifiers

        Args:
            limit: Maximum number of identifiers

        Returns:
            List[str]: Up to `limit` IDs, oldest first
        """
        ids = self.to_list()
        if limit <= 0:
            return []
        return ids[-limit:]


class DedupLedger:
    """Persistent, size-bounded set of processed mail identifiers"""

    def __init__(
        self,
        store: Optional[KeyValueStore],
        max_size: int = DEFAULT_MAX_PROCESSED_IDS,
    ):
        """
        Initialize Dedup Ledger

        Args:
            store: Key-value store (None disables persistence)
            max_size: Maximum number of identifiers kept on persist
        """
        self.store = store
        self.max_size = max_size
        self.processed_ids = ProcessedIdSet()

    async def load(self) -> ProcessedIdSet:
        """
        Load the persisted set into the working set

        Never raises: absent, malformed or unreadable state yields an
        empty set.

        Returns:
            ProcessedIdSet: Working set for this run
        """
        self.processed_ids = ProcessedIdSet()
        if self.store is None:
            return self.processed_ids

        try:
            stored = await self.store.get_json(PROCESSED_IDS_KEY)
        except Exception as e:
            logger.warning(f"Failed to load processed IDs: {e}")
            return self.processed_ids

        if isinstance(stored, list):
            self.processed_ids = ProcessedIdSet(
                str(mail_id) for mail_id in stored if mail_id is not None
            )
        elif stored is not None:
            logger.warning(
                f"Ignoring malformed '{PROCESSED_IDS_KEY}' value "
                f"(expected list, got {type(stored).__name__})"
            )

        logger.debug(f"Loaded {len(self.processed_ids)} processed mail ID(s)")
        return self.processed_ids

    def contains(self, mail_id: Optional[str]) -> bool:
        if mail_id is None:
            return False
        return mail_id in self.processed_ids

    def record(self, mail_id: Optional[str]) -> bool:
        """
        Mark a mail as processed for this run

        Args:
            mail_id: Mail identifier (None cannot be recorded)

        Returns:
            bool: True if the identifier was recorded
        """
        if mail_id is None:
            return False
        self.processed_ids.add(mail_id)
        return True

    async def persist(self) -> bool:
        """
        Write the newest max_size identifiers back to the store

        Write failures are logged and dropped.

        Returns:
            bool: True if the write succeeded
        """
        if self.store is None:
            return False

        ids = self.processed_ids.newest(self.max_size)
        dropped = len(self.processed_ids) - len(ids)
        if dropped > 0:
            logger.info(f"🗑️ Evicting {dropped} oldest processed mail ID(s)")

        try:
            await self.store.put(PROCESSED_IDS_KEY, json.dumps(ids, ensure_ascii=False))
        except Exception as e:
            logger.warning(f"Failed to save processed IDs: {e}")
            return False

        return True
