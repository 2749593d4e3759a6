"""
Mail Pipeline - Extraction and deduplication over one batch

Per run:
1. Keep mails whose sender contains an allowed substring (empty = all)
2. Load the dedup ledger
3. For each unseen mail, in order: extract, cache, notify, record
4. Persist the ledger once
5. Report counts and the new extractions only

Mails are handled strictly one at a time since the ledger is a single
mutable set with no conflict resolution.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from app.core.code_cache import LatestCodeCache, utc_now_iso
from app.core.ledger import DedupLedger
from app.core.notifier import Notifier, NullNotifier
from app.core.template_matcher import TemplateMatcher
from app.models.mail import ExtractionResult, MailRecord

logger = logging.getLogger(__name__)


@dataclass
class PipelineResult:
    processed_count: int
    total_count: int
    filtered_count: int
    results: List[ExtractionResult] = field(default_factory=list)

    def to_response(self) -> Dict[str, Any]:
        return {
            "success": True,
            "processed": self.processed_count,
            "total_mails": self.total_count,
            "filtered_mails": self.filtered_count,
            "results": [result.to_dict() for result in self.results],
        }


def filter_by_sender(
    mails: Iterable[MailRecord], allowed_senders: Optional[List[str]]
) -> List[MailRecord]:
    """
    Keep mails whose sender contains at least one allowed substring

    Args:
        mails: Candidate mails
        allowed_senders: Substrings to match (empty or None keeps everything)

    Returns:
        List[MailRecord]: Matching mails in input order
    """
    mails = list(mails)
    senders = [sender for sender in (allowed_senders or []) if sender]
    if not senders:
        return mails
    return [mail for mail in mails if any(s in mail.sender for s in senders)]


class MailPipeline:
    """Runs extraction and deduplication over a batch of mails"""

    def __init__(
        self,
        ledger: DedupLedger,
        code_cache: LatestCodeCache,
        matcher: Optional[TemplateMatcher] = None,
        notifier: Optional[Notifier] = None,
    ):
        """
        Initialize Mail Pipeline

        Args:
            ledger: Dedup ledger for processed mail IDs
            code_cache: Latest-code cache
            matcher: Template matcher (defaults to the built-in templates)
            notifier: Notification channel (defaults to none)
        """
        self.ledger = ledger
        self.code_cache = code_cache
        self.matcher = matcher or TemplateMatcher()
        self.notifier = notifier or NullNotifier()

    async def run(
        self,
        batch: List[MailRecord],
        allowed_senders: Optional[List[str]] = None,
    ) -> PipelineResult:
        """
        Process one batch

        Args:
            batch: Mails fetched for this run
            allowed_senders: Sender substrings to accept (empty = all)

        Returns:
            PipelineResult: Counts plus extractions new to this run
        """
        filtered = filter_by_sender(batch, allowed_senders)
        await self.ledger.load()

        results: List[ExtractionResult] = []
        skipped = 0

        for mail in filtered:
            mail_id = mail.identifier

            if self.ledger.contains(mail_id):
                skipped += 1
                continue

            try:
                extracted = await self._process_mail(mail)
            except Exception as e:
                logger.error(f"❌ Failed to process mail {mail_id or '<no id>'}: {e}")
                extracted = None

            if extracted is not None:
                results.append(extracted)

            if not self.ledger.record(mail_id):
                logger.debug(
                    f"Mail from {mail.sender or '<unknown>'} has no id/message_id, "
                    f"it cannot be deduplicated"
                )

        await self.ledger.persist()

        logger.info(
            f"✅ Processed batch: {len(batch)} total, {len(filtered)} after sender "
            f"filter, {skipped} already seen, {len(results)} new code(s)"
        )

        return PipelineResult(
            processed_count=len(results),
            total_count=len(batch),
            filtered_count=len(filtered),
            results=results,
        )

    async def _process_mail(self, mail: MailRecord) -> Optional[ExtractionResult]:
        extracted = self.matcher.extract(mail)
        if extracted is None:
            return None

        logger.info(
            f"🔐 Extracted code {extracted.code} from {extracted.sender} "
            f"(template: {extracted.template_name})"
        )

        await self.code_cache.save(extracted.code, utc_now_iso())

        if self.notifier.enabled:
            try:
                outcome = await self.notifier.send(extracted)
            except Exception as e:
                logger.error(f"❌ Notifier raised for code {extracted.code}: {e}")
            else:
                if not outcome.success:
                    logger.warning(f"⚠️ Notification not delivered: {outcome.error}")

        return extracted
