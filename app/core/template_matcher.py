"""
Template Matcher - Ordered verification code templates

Templates are tried strictly in list order and the first one that yields
a non-empty first capture group wins. Order runs most-specific to
most-general:

1. Labeled Chinese phrasing ("验证码：N", "验证码为：N", "N 为您的验证码")
2. English phrasing ("code is N", "code: N", "verification code N", ...)
3. Bare 6-digit token (catch-all, will also hit phone numbers, dates, IDs)
"""

import logging
import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Pattern, Tuple, Union

from app.core.normalizer import normalize, resolve_subject
from app.models.mail import ExtractionResult, MailRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExtractionTemplate:
    """A named pattern whose first capture group is the code"""

    name: str
    pattern: Pattern[str]

    def __post_init__(self) -> None:
        if self.pattern.groups < 1:
            raise ValueError(
                f"Template '{self.name}' must define at least one capturing group"
            )

    @classmethod
    def compile(
        cls, name: str, pattern: Union[str, Pattern[str]], flags: int = 0
    ) -> "ExtractionTemplate":
        if isinstance(pattern, str):
            pattern = re.compile(pattern, flags)
        return cls(name=name, pattern=pattern)

    def search(self, content: str) -> Optional[str]:
        """
        Return the first capture of the first match in document order

        Returns:
            Optional[str]: Captured code, or None when there is no match or
                           the first match captured an empty string
        """
        match = self.pattern.search(content)
        if match is None:
            return None
        return match.group(1) or None


# [0-9] rather than \d: full-width and other Unicode digits are not codes
DEFAULT_TEMPLATES: List[ExtractionTemplate] = [
    ExtractionTemplate.compile("验证码提取", r"验证码[：:]\s*([0-9]+)"),
    ExtractionTemplate.compile("验证码提取2", r"验证码为[：:]\s*([0-9]+)"),
    ExtractionTemplate.compile("验证码提取3", r"([0-9]{4,8})\s*为您的验证码"),
    ExtractionTemplate.compile(
        "验证码提取 - code is",
        r"code[：:\s&nbsp;]+is[：:\s&nbsp;]+([0-9]{4,8})",
        re.IGNORECASE,
    ),
    ExtractionTemplate.compile(
        "验证码提取 - 简单code", r"code[：:]\s*([0-9]{4,8})", re.IGNORECASE
    ),
    ExtractionTemplate.compile(
        "验证码提取 - verification code",
        r"verification\s+code[：:\s]+([0-9]{4,8})",
        re.IGNORECASE,
    ),
    ExtractionTemplate.compile(
        "验证码提取 - recovery code",
        r"recovery\s+code[：:\s-]+([0-9]{4,8})",
        re.IGNORECASE,
    ),
    # ASCII word boundaries: CJK characters next to the digits count as a boundary
    ExtractionTemplate.compile("验证码提取 - 纯6位数字", r"\b([0-9]{6})\b", re.ASCII),
]


def match(
    content: str, templates: Iterable[ExtractionTemplate]
) -> Optional[Tuple[ExtractionTemplate, str]]:
    """
    Find the first template that matches content

    Args:
        content: Normalized mail text
        templates: Templates in priority order

    Returns:
        Optional[Tuple]: (template, code) for the winning template, or None
    """
    for template in templates:
        code = template.search(content)
        if code:
            return template, code
    return None


class TemplateMatcher:
    """Applies an ordered template table to mail records"""

    def __init__(self, templates: Optional[Iterable[ExtractionTemplate]] = None):
        """
        Initialize Template Matcher

        Args:
            templates: Templates in priority order (defaults to DEFAULT_TEMPLATES)
        """
        self.templates: List[ExtractionTemplate] = list(
            DEFAULT_TEMPLATES if templates is None else templates
        )

    def match_content(
        self, content: str, sender: str = "", subject: str = ""
    ) -> Optional[ExtractionResult]:
        found = match(content, self.templates)
        if found is None:
            return None

        template, code = found
        return ExtractionResult(
            code=code,
            template_name=template.name,
            sender=sender,
            subject=subject,
        )

    def extract(self, mail: MailRecord) -> Optional[ExtractionResult]:
        """
        Extract a verification code from a mail

        Malformed records never raise; they are logged and treated as
        "no match".

        Args:
            mail: Mail record

        Returns:
            Optional[ExtractionResult]: Code with provenance, or None
        """
        try:
            content = normalize(mail)
            return self.match_content(
                content, sender=mail.sender, subject=resolve_subject(mail)
            )
        except Exception as e:
            logger.warning(
                f"Extraction failed for mail {mail.identifier or '<no id>'}: {e}"
            )
            return None
