"""
Settings - Explicit runtime configuration

Built once at process start (Settings.from_env) and passed by reference
into the relay service and its collaborators.
"""

import logging
import os
from dataclasses import dataclass, field
from typing import List, Mapping, Optional

logger = logging.getLogger(__name__)

DEFAULT_API_TYPE = "admin"
DEFAULT_FETCH_LIMIT = 10
DEFAULT_MAX_PROCESSED_IDS = 1000


def parse_allowed_senders(raw: Optional[str]) -> List[str]:
    """
    Split a comma-delimited sender list

    Args:
        raw: Raw value such as "noreply@a.com,@b.com"

    Returns:
        List[str]: Non-empty, stripped entries (empty list = allow all)
    """
    if not raw:
        return []
    return [item.strip() for item in raw.split(",") if item.strip()]


@dataclass
class Settings:
    """Mail relay settings"""

    worker_url: str = ""
    api_type: str = DEFAULT_API_TYPE
    admin_password: str = ""
    jwt_password: str = ""
    telegram_bot_token: str = ""
    telegram_chat_id: str = ""
    allowed_senders: List[str] = field(default_factory=list)
    mail_fetch_limit: int = DEFAULT_FETCH_LIMIT
    store_path: Optional[str] = None
    max_processed_ids: int = DEFAULT_MAX_PROCESSED_IDS
    request_timeout: float = 30.0

    def __post_init__(self) -> None:
        # Trailing slashes would produce "//admin/mails"
        self.worker_url = (self.worker_url or "").rstrip("/")
        self.api_type = self.api_type or DEFAULT_API_TYPE

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """
        Build settings from environment variables

        Args:
            environ: Mapping to read from (defaults to os.environ)

        Returns:
            Settings: Populated settings

        Raises:
            ValueError: If a numeric variable cannot be parsed
        """
        env = os.environ if environ is None else environ

        try:
            mail_fetch_limit = int(env.get("MAIL_FETCH_LIMIT", DEFAULT_FETCH_LIMIT))
            max_processed_ids = int(
                env.get("MAX_PROCESSED_IDS", DEFAULT_MAX_PROCESSED_IDS)
            )
            request_timeout = float(env.get("REQUEST_TIMEOUT", 30.0))
        except ValueError as e:
            raise ValueError(f"Invalid numeric setting: {e}")

        settings = cls(
            worker_url=env.get("WORKER_URL", ""),
            api_type=env.get("API_TYPE", DEFAULT_API_TYPE),
            admin_password=env.get("ADMIN_PASSWORD", ""),
            jwt_password=env.get("JWT_PASSWORD", ""),
            telegram_bot_token=env.get("TELEGRAM_BOT_TOKEN", ""),
            telegram_chat_id=env.get("TELEGRAM_CHAT_ID", ""),
            allowed_senders=parse_allowed_senders(env.get("ALLOWED_SENDERS")),
            mail_fetch_limit=mail_fetch_limit,
            store_path=env.get("MAIL_KV_PATH") or None,
            max_processed_ids=max_processed_ids,
            request_timeout=request_timeout,
        )

        logger.info(
            f"Loaded settings (api_type: {settings.api_type}, "
            f"mailbox configured: {settings.is_mailbox_configured}, "
            f"notifier configured: {settings.is_notifier_configured}, "
            f"allowed senders: {len(settings.allowed_senders)})"
        )
        return settings

    @property
    def is_mailbox_configured(self) -> bool:
        return bool(self.worker_url)

    @property
    def is_notifier_configured(self) -> bool:
        return bool(self.telegram_bot_token and self.telegram_chat_id)
