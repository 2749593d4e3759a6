"""
Relay Service - One polling cycle end to end

Wires settings, store, mailbox client, pipeline and notifier together.
Built once at startup and shared by the HTTP routes and the CLI.
"""

import asyncio
import logging
from typing import Any, Dict, Optional

from app.config import Settings
from app.core.code_cache import LatestCode, LatestCodeCache
from app.core.errors import ConfigurationError
from app.core.kv_store import KeyValueStore, build_store
from app.core.ledger import DedupLedger
from app.core.mailbox_client import MailboxClient
from app.core.notifier import Notifier, build_notifier
from app.core.pipeline import MailPipeline, PipelineResult
from app.core.template_matcher import TemplateMatcher

logger = logging.getLogger(__name__)


class RelayService:
    """Fetches mails, runs the pipeline, exposes the cached code"""

    def __init__(
        self,
        settings: Settings,
        store: Optional[KeyValueStore] = None,
        mailbox: Optional[MailboxClient] = None,
        notifier: Optional[Notifier] = None,
        matcher: Optional[TemplateMatcher] = None,
    ):
        """
        Initialize Relay Service

        Args:
            settings: Relay settings
            store: Key-value store (defaults to one built from settings)
            mailbox: Mailbox client (defaults to one built from settings)
            notifier: Notifier (defaults to Telegram when configured)
            matcher: Template matcher (defaults to the built-in templates)
        """
        self.settings = settings
        self.store = store if store is not None else build_store(settings.store_path)
        self.mailbox = mailbox or MailboxClient(settings)
        self.notifier = notifier or build_notifier(
            settings.telegram_bot_token,
            settings.telegram_chat_id,
            timeout=settings.request_timeout,
        )
        self.code_cache = LatestCodeCache(self.store)
        self.pipeline = MailPipeline(
            ledger=DedupLedger(self.store, max_size=settings.max_processed_ids),
            code_cache=self.code_cache,
            matcher=matcher,
            notifier=self.notifier,
        )

        # Serializes load-mutate-persist cycles within this process
        self._cycle_lock = asyncio.Lock()

    async def process_mails(self) -> PipelineResult:
        """
        Fetch the latest mails and run the pipeline on them

        Returns:
            PipelineResult: Counts and new extractions

        Raises:
            ConfigurationError: If WORKER_URL is not configured
            MailboxFetchError: If the mail API returns a non-success status
            httpx.RequestError: On network failure reaching the mail API
        """
        if not self.settings.is_mailbox_configured:
            raise ConfigurationError("WORKER_URL not configured")

        async with self._cycle_lock:
            batch = await self.mailbox.fetch_batch()
            return await self.pipeline.run(batch, self.settings.allowed_senders)

    async def list_mails(
        self,
        limit: Optional[int] = None,
        offset: int = 0,
        address: str = "",
        keyword: str = "",
    ) -> Any:
        """Proxy one page of the upstream mail listing"""
        return await self.mailbox.fetch(
            limit=limit, offset=offset, address=address, keyword=keyword
        )

    async def get_latest_code(self) -> Optional[LatestCode]:
        return await self.code_cache.get()

    def get_status(self) -> Dict[str, Any]:
        """
        Get service status for monitoring

        Returns:
            dict: Configuration flags and collaborator types
        """
        return {
            "mailbox_configured": self.settings.is_mailbox_configured,
            "api_type": self.settings.api_type,
            "notifier_enabled": self.notifier.enabled,
            "store": type(self.store).__name__,
            "allowed_senders": len(self.settings.allowed_senders),
            "templates": len(self.pipeline.matcher.templates),
        }
