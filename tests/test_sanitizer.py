"""Tests for message sanitization."""

import pytest

from confess_wall.errors import EmptyContent
from confess_wall.sanitizer import sanitize, strip_tags


class TestSanitize:
    """Test sanitize() behaviour."""

    def test_plain_text_unchanged(self):
        """Test plain text passes through untouched."""
        assert sanitize("I ate the last cookie") == "I ate the last cookie"

    def test_trims_whitespace(self):
        """Test leading and trailing whitespace is removed."""
        assert sanitize("  \n hello there \t ") == "hello there"

    def test_keeps_inner_whitespace(self):
        """Test internal spacing and newlines are preserved."""
        assert sanitize("line one\n\nline   two") == "line one\n\nline   two"

    def test_strips_tags(self):
        """Test markup is removed and text content kept."""
        assert sanitize("<b>hi</b><script>bad()</script>") == "hibad()"

    def test_strips_attributes(self):
        """Test tags with attributes leave nothing behind."""
        cleaned = sanitize('<a href="javascript:x()" onclick="y()">click</a> me')
        assert cleaned == "click me"
        assert "<" not in cleaned and ">" not in cleaned

    def test_escapes_ampersand(self):
        """Test a literal ampersand is stored as an entity."""
        assert sanitize("fish &amp; chips") == "fish &amp; chips"
        assert sanitize("fish & chips") == "fish &amp; chips"

    def test_encoded_script_stays_inert(self):
        """Test escaped tags are not decoded back into markup."""
        cleaned = sanitize("&lt;script&gt;alert(1)&lt;/script&gt;")

        assert cleaned == "&lt;script&gt;alert(1)&lt;/script&gt;"
        assert "<" not in cleaned and ">" not in cleaned

    def test_encoded_event_handler_stays_inert(self):
        """Test an escaped img tag with an event handler cannot become live."""
        cleaned = sanitize("hi &lt;img src=x onerror=alert(1)&gt;")

        assert cleaned.startswith("hi ")
        assert "<" not in cleaned and ">" not in cleaned

    def test_numeric_references_stay_inert(self):
        """Test numeric character references for angle brackets are escaped."""
        cleaned = sanitize("&#60;b&#62;bold&#x3C;/b&#x3E;")
        assert "<" not in cleaned and ">" not in cleaned

    def test_trailing_unclosed_tag(self):
        """Test an unterminated tag at the end leaves no delimiter behind."""
        cleaned = sanitize("hi <script")

        assert cleaned.startswith("hi")
        assert "<" not in cleaned and ">" not in cleaned

    def test_does_not_truncate(self):
        """Test long messages are not shortened."""
        message = "x" * 10_000
        assert sanitize(message) == message

    @pytest.mark.parametrize("raw", [None, "", "   ", "\n\t "])
    def test_rejects_empty(self, raw):
        """Test absent or blank messages are rejected."""
        with pytest.raises(EmptyContent):
            sanitize(raw)

    def test_rejects_markup_only(self):
        """Test a message that is empty once tags are removed is rejected."""
        with pytest.raises(EmptyContent):
            sanitize("<p> </p><br/>")


class TestStripTags:
    """Test the low-level tag stripper."""

    def test_nested_tags(self):
        """Test nested elements flatten to their text."""
        assert strip_tags("<div><p>a<i>b</i></p>c</div>") == "abc"

    def test_comparison_operators_survive(self):
        """Test a bare less-than sign is kept as text, escaped."""
        assert strip_tags("1 < 2") == "1 &lt; 2"
