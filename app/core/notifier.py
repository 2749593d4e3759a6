"""
Notifier - Best-effort delivery of extracted codes

send() never raises: the outcome is returned as a NotificationResult so
callers can log it without a catch-all of their own.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import httpx

from app.models.mail import ExtractionResult

logger = logging.getLogger(__name__)

TELEGRAM_API_BASE = "https://api.telegram.org"


@dataclass(frozen=True)
class NotificationResult:
    success: bool
    error: Optional[str] = None

    @classmethod
    def ok(cls) -> "NotificationResult":
        return cls(success=True)

    @classmethod
    def failed(cls, error: str) -> "NotificationResult":
        return cls(success=False, error=error)


def format_message(extracted: ExtractionResult) -> str:
    """Render the notification text (code, sender, subject, template)"""
    return (
        f"🔐 验证码: {extracted.code}\n\n"
        f"来源: {extracted.sender}\n"
        f"主题: {extracted.subject}\n"
        f"模板: {extracted.template_name}"
    )


class Notifier:
    """Notification channel interface"""

    enabled: bool = False

    async def send(self, extracted: ExtractionResult) -> NotificationResult:
        raise NotImplementedError


class NullNotifier(Notifier):
    """Used when no channel is configured"""

    async def send(self, extracted: ExtractionResult) -> NotificationResult:
        return NotificationResult.failed("notifier not configured")


class TelegramNotifier(Notifier):
    """Sends codes through the Telegram Bot API"""

    enabled = True

    def __init__(
        self,
        bot_token: str,
        chat_id: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize Telegram Notifier

        Args:
            bot_token: Bot API token
            chat_id: Target chat ID
            timeout: Request timeout in seconds
            transport: Optional httpx transport (tests)
        """
        self.bot_token = bot_token
        self.chat_id = chat_id
        self.timeout = timeout
        self.transport = transport

    async def send(self, extracted: ExtractionResult) -> NotificationResult:
        url = f"{TELEGRAM_API_BASE}/bot{self.bot_token}/sendMessage"
        payload = {"chat_id": self.chat_id, "text": format_message(extracted)}

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self.transport
            ) as client:
                response = await client.post(url, json=payload)
        except httpx.HTTPError as e:
            logger.error(f"❌ Telegram notification failed: {type(e).__name__}: {e}")
            return NotificationResult.failed(f"Network error: {e}")

        if response.status_code >= 400:
            logger.error(
                f"❌ Telegram notification failed: HTTP {response.status_code}"
            )
            return NotificationResult.failed(f"HTTP {response.status_code}")

        logger.info(f"📨 Notified code {extracted.code} from {extracted.sender}")
        return NotificationResult.ok()


def build_notifier(
    bot_token: str,
    chat_id: str,
    timeout: float = 30.0,
) -> Notifier:
    if bot_token and chat_id:
        return TelegramNotifier(bot_token, chat_id, timeout=timeout)
    return NullNotifier()
