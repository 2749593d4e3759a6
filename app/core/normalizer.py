"""
Content Normalizer - Flatten a mail record into matchable text

The blob is ordered subject, plain body, HTML text so that templates
anchored near the subject are tried against it before a noisy HTML body.
"""

import re
from typing import Optional

from app.models.mail import MailRecord

_STYLE_RE = re.compile(r"<style[^>]*>[\s\S]*?</style>", re.IGNORECASE)
_SCRIPT_RE = re.compile(r"<script[^>]*>[\s\S]*?</script>", re.IGNORECASE)
_TAG_RE = re.compile(r"<[^>]+>")
_WHITESPACE_RE = re.compile(r"\s+")
_SUBJECT_RE = re.compile(r"^Subject:\s*(.+?)$", re.MULTILINE)

_ENTITIES = (
    ("&nbsp;", " "),
    ("&amp;", "&"),
    ("&lt;", "<"),
    ("&gt;", ">"),
)


def html_to_text(html: Optional[str]) -> str:
    """
    Extract visible text from an HTML body

    Args:
        html: HTML source (None or "" yields "")

    Returns:
        str: Tag-free text with whitespace collapsed and trimmed
    """
    if not html:
        return ""

    text = _STYLE_RE.sub("", html)
    text = _SCRIPT_RE.sub("", text)
    text = _TAG_RE.sub(" ", text)
    for entity, replacement in _ENTITIES:
        text = text.replace(entity, replacement)
    return _WHITESPACE_RE.sub(" ", text).strip()


def extract_subject(raw: Optional[str]) -> str:
    """Return the first "Subject:" header value in raw MIME source"""
    if not raw:
        return ""
    match = _SUBJECT_RE.search(raw)
    return match.group(1).strip() if match else ""


def resolve_subject(mail: MailRecord) -> str:
    return mail.subject or extract_subject(mail.raw)


def normalize(mail: MailRecord) -> str:
    """
    Build the text blob the template matcher runs against

    Args:
        mail: Mail record

    Returns:
        str: "subject\\nbody\\nhtml_text" where body is the plain text,
             falling back to the raw source
    """
    subject = resolve_subject(mail)
    body = mail.text or mail.raw or ""
    html_text = html_to_text(mail.html)
    return f"{subject}\n{body}\n{html_text}"
