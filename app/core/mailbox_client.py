"""
Mailbox Client - Fetch mail listings from the upstream mail worker

Endpoint and auth header depend on API type:
- admin: /admin/mails     (x-admin-auth)
- user:  /user_api/mails  (x-admin-auth)
- other: /api/mails       (Authorization: Bearer)
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

import httpx

from app.config import Settings
from app.core.errors import ConfigurationError, MailboxFetchError
from app.models.mail import MailRecord

logger = logging.getLogger(__name__)


def extract_batch(payload: Any) -> List[Dict[str, Any]]:
    """
    Pull the mail list out of an upstream response

    Shapes are probed in order: {data: {results: [...]}}, {results: [...]},
    {data: [...]}. Anything else is an empty batch.

    Args:
        payload: Decoded JSON response

    Returns:
        List[dict]: Raw mail items
    """
    if not isinstance(payload, dict):
        return []

    data = payload.get("data")
    if isinstance(data, dict) and isinstance(data.get("results"), list):
        return data["results"]
    if isinstance(payload.get("results"), list):
        return payload["results"]
    if isinstance(data, list):
        return data
    return []


class MailboxClient:
    """Async client for the mail worker listing API"""

    def __init__(
        self,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize Mailbox Client

        Args:
            settings: Relay settings (worker URL, API type, credentials)
            transport: Optional httpx transport (tests)
        """
        self.settings = settings
        self.transport = transport

    def build_request(
        self,
        limit: Optional[int] = None,
        offset: int = 0,
        address: str = "",
        keyword: str = "",
    ) -> Tuple[str, Dict[str, str], Dict[str, Any]]:
        """
        Build URL, headers and query params for a listing request

        Returns:
            tuple: (url, headers, params)

        Raises:
            ConfigurationError: If WORKER_URL is not configured
        """
        settings = self.settings
        if not settings.is_mailbox_configured:
            raise ConfigurationError("WORKER_URL not configured")

        params: Dict[str, Any] = {
            "limit": settings.mail_fetch_limit if limit is None else limit,
            "offset": offset,
        }
        headers = {"Content-Type": "application/json"}

        if settings.api_type in ("admin", "user"):
            path = "/admin/mails" if settings.api_type == "admin" else "/user_api/mails"
            headers["x-admin-auth"] = settings.admin_password
            if address:
                params["address"] = address
            if keyword:
                params["keyword"] = keyword
        else:
            path = "/api/mails"
            headers["Authorization"] = f"Bearer {settings.jwt_password}"

        return f"{settings.worker_url}{path}", headers, params

    async def fetch(
        self,
        limit: Optional[int] = None,
        offset: int = 0,
        address: str = "",
        keyword: str = "",
    ) -> Any:
        """
        Fetch one page of mails as decoded JSON

        Raises:
            ConfigurationError: If WORKER_URL is not configured
            MailboxFetchError: If the upstream returns a non-success status
            httpx.RequestError: On network failure
        """
        url, headers, params = self.build_request(limit, offset, address, keyword)

        async with httpx.AsyncClient(
            timeout=self.settings.request_timeout, transport=self.transport
        ) as client:
            response = await client.get(url, params=params, headers=headers)

        if not response.is_success:
            logger.error(f"❌ Mail API returned {response.status_code} for {url}")
            raise MailboxFetchError(response.status_code)

        return response.json()

    async def fetch_batch(self) -> List[MailRecord]:
        """
        Fetch the latest mails as records for the pipeline

        Returns:
            List[MailRecord]: Mails in upstream order
        """
        payload = await self.fetch()
        items = extract_batch(payload)
        logger.debug(f"Fetched {len(items)} mail(s) from upstream")
        return [MailRecord.from_api(item) for item in items]
