"""
Unit tests for Template Matcher

Tests template ordering, first-match semantics and provenance.
"""

import re
from unittest.mock import patch

import pytest

from app.core.template_matcher import (
    DEFAULT_TEMPLATES,
    ExtractionTemplate,
    TemplateMatcher,
    match,
)
from app.models.mail import MailRecord


@pytest.fixture
def matcher():
    """Matcher with the built-in templates"""
    return TemplateMatcher()


class TestExtractionTemplate:
    """Test ExtractionTemplate"""

    def test_requires_capture_group(self):
        """Pattern without a capturing group is rejected"""
        with pytest.raises(ValueError, match="capturing group"):
            ExtractionTemplate.compile("bad", r"\d{6}")

    def test_accepts_compiled_pattern(self):
        """Pre-compiled patterns are used as-is"""
        pattern = re.compile(r"PIN (\d+)")
        template = ExtractionTemplate.compile("pin", pattern)

        assert template.pattern is pattern
        assert template.search("your PIN 4455") == "4455"

    def test_search_takes_first_occurrence(self):
        """Only the first match in document order is used"""
        template = ExtractionTemplate.compile("code", r"code: (\d+)")

        assert template.search("code: 111 then code: 222") == "111"

    def test_empty_first_capture_is_no_match(self):
        """A first match with empty group 1 does not count"""
        template = ExtractionTemplate.compile("opt", r"code:(\d*)")

        assert template.search("code: later code:55") is None


class TestMatchFunction:
    """Test module-level match()"""

    def test_first_template_wins(self):
        """Earlier templates take precedence over later ones"""
        templates = [
            ExtractionTemplate.compile("labeled", r"PIN (\d+)"),
            ExtractionTemplate.compile("bare", r"(\d{6})"),
        ]

        template, code = match("123456 and PIN 42", templates)

        assert template.name == "labeled"
        assert code == "42"

    def test_no_templates(self):
        """Empty template list never matches"""
        assert match("123456", []) is None


class TestDefaultTemplates:
    """Test the built-in template table"""

    def test_order_ends_with_bare_six_digits(self):
        """The bare 6-digit catch-all is tried last"""
        assert DEFAULT_TEMPLATES[-1].name == "验证码提取 - 纯6位数字"
        assert DEFAULT_TEMPLATES[0].name == "验证码提取"

    def test_labeled_beats_bare_digits(self, matcher):
        """Labeled code wins over an unrelated 6-digit number"""
        result = matcher.match_content("订单号 654321\n验证码：123456")

        assert result.code == "123456"
        assert result.template_name == "验证码提取"

    def test_code_wei(self, matcher):
        """验证码为：N phrasing"""
        result = matcher.match_content("您的验证码为:884422，请勿泄露")

        assert result.code == "884422"
        assert result.template_name == "验证码提取2"

    def test_suffix_phrasing(self, matcher):
        """N 为您的验证码 phrasing"""
        result = matcher.match_content("7788 为您的验证码")

        assert result.code == "7788"
        assert result.template_name == "验证码提取3"

    def test_code_is(self, matcher):
        """English "code is N" phrasing, case-insensitive"""
        result = matcher.match_content("Your Code is 5566")

        assert result.code == "5566"
        assert result.template_name == "验证码提取 - code is"

    def test_simple_code(self, matcher):
        """English "code: N" phrasing"""
        result = matcher.match_content("Login CODE: 99887766")

        assert result.code == "99887766"
        assert result.template_name == "验证码提取 - 简单code"

    def test_verification_code(self, matcher):
        """English "verification code N" phrasing"""
        result = matcher.match_content("Enter verification code 4321 to continue")

        assert result.code == "4321"
        assert result.template_name == "验证码提取 - verification code"

    def test_recovery_code(self, matcher):
        """English "recovery code - N" phrasing"""
        result = matcher.match_content("Your recovery code - 24680")

        assert result.code == "24680"
        assert result.template_name == "验证码提取 - recovery code"

    def test_bare_six_digits_fallback(self, matcher):
        """Bare 6-digit token when nothing labeled is present"""
        result = matcher.match_content("Welcome!\n412536\nThanks")

        assert result.code == "412536"
        assert result.template_name == "验证码提取 - 纯6位数字"

    def test_bare_six_digits_next_to_cjk(self, matcher):
        """CJK characters adjacent to the digits act as a boundary"""
        result = matcher.match_content("您好246810谢谢")

        assert result.code == "246810"

    def test_bare_six_digits_ignores_longer_numbers(self, matcher):
        """Digits inside a longer number are not a 6-digit token"""
        assert matcher.match_content("call 13800138000") is None

    def test_no_match(self, matcher):
        """Content without any code returns None"""
        assert matcher.match_content("Hello there, no code here") is None

    def test_full_width_digits_not_a_code(self, matcher):
        """Full-width digits are not extracted"""
        mail = MailRecord(id="1", subject="验证码：１２３４５６")

        assert matcher.extract(mail) is None

    @pytest.mark.parametrize(
        "content",
        [
            "Your verification code ٤٨٢٩١٣",
            "code: ４８２９",
            "您好２４６８１０谢谢",
        ],
    )
    def test_non_ascii_digits_never_match(self, matcher, content):
        """Only ASCII 0-9 count as code digits in any template"""
        assert matcher.match_content(content) is None

    def test_ascii_code_after_full_width_noise(self, matcher):
        """An ASCII code still wins when full-width digits appear earlier"""
        result = matcher.match_content("编号１２３ 验证码：778899")

        assert result.code == "778899"
        assert result.template_name == "验证码提取"


class TestExtract:
    """Test TemplateMatcher.extract"""

    def test_extract_from_html(self, matcher):
        """HTML body is normalized before matching"""
        mail = MailRecord(
            id="m1",
            sender="noreply@example.com",
            subject="Login",
            html="<style>.x{}</style><p>验证码: 4821</p>",
        )

        result = matcher.extract(mail)

        assert result.code == "4821"
        assert result.sender == "noreply@example.com"
        assert result.subject == "Login"

    def test_extract_subject_from_raw(self, matcher):
        """Result subject falls back to the raw Subject header"""
        mail = MailRecord(raw="Subject: 验证码：998877\n\nbody")

        result = matcher.extract(mail)

        assert result.code == "998877"
        assert result.subject == "验证码：998877"

    def test_custom_templates(self):
        """Custom template tables replace the defaults"""
        custom = TemplateMatcher([ExtractionTemplate.compile("pin", r"PIN-(\w+)")])

        result = custom.extract(MailRecord(text="PIN-ab12 and 123456"))

        assert result.code == "ab12"
        assert result.template_name == "pin"

    def test_extract_never_raises(self, matcher):
        """Normalization failures are reported as no match"""
        with patch(
            "app.core.template_matcher.normalize", side_effect=RuntimeError("boom")
        ):
            assert matcher.extract(MailRecord(id="bad")) is None
