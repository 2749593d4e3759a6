"""
Mail Models - Inbound mail records and extraction results

Represents:
- A single mail as reported by the upstream mailbox API
- A successful code extraction with template provenance
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional


def _as_text(value: Any) -> str:
    """Coerce an upstream field to str (None and missing become "")"""
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def _as_optional_text(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    return _as_text(value)


@dataclass(frozen=True)
class MailRecord:
    """
    One inbound mail

    Upstream items are loosely shaped: the sender may be under "from" or
    "source", the identifier under "id" or "message_id", and the body may
    only exist as raw MIME source.
    """

    id: Optional[str] = None
    message_id: Optional[str] = None
    sender: str = ""
    subject: str = ""
    text: str = ""
    html: Optional[str] = None
    raw: Optional[str] = None

    @classmethod
    def from_api(cls, item: Dict[str, Any]) -> "MailRecord":
        """
        Build a MailRecord from an upstream JSON item

        Args:
            item: Mail dictionary from the mailbox API

        Returns:
            MailRecord: Normalized record (missing fields become empty)
        """
        if not isinstance(item, dict):
            return cls()

        return cls(
            id=_as_optional_text(item.get("id")),
            message_id=_as_optional_text(item.get("message_id")),
            sender=_as_text(item.get("from") or item.get("source")),
            subject=_as_text(item.get("subject")),
            text=_as_text(item.get("text")),
            html=_as_optional_text(item.get("html")),
            raw=_as_optional_text(item.get("raw")),
        )

    @property
    def identifier(self) -> Optional[str]:
        """
        Dedup identifier: id, else message_id

        Returns:
            Optional[str]: None when the mail carries neither field
        """
        return self.id or self.message_id


@dataclass(frozen=True)
class ExtractionResult:
    """A verification code found in one mail"""

    code: str
    template_name: str
    sender: str
    subject: str

    def to_dict(self) -> Dict[str, str]:
        """
        Serialize for API responses and notifications

        Returns:
            dict: {code, template, from, subject}
        """
        return {
            "code": self.code,
            "template": self.template_name,
            "from": self.sender,
            "subject": self.subject,
        }
