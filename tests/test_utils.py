from notifeed.utils import (
    base_domain,
    first_sentences,
    host_of,
    split_sentences,
    strip_html_to_text,
    truncate_at_word,
    truncate_text,
)


# ── truncate_text ─────────────────────────────────────────────

class TestTruncateText:
    def test_short_text_unchanged(self):
        assert truncate_text("hello", 10) == "hello"

    def test_exact_length_unchanged(self):
        assert truncate_text("hello", 5) == "hello"

    def test_long_text_truncated(self):
        assert truncate_text("hello world", 5) == "hello…"

    def test_none(self):
        assert truncate_text(None, 5) == ""


class TestTruncateAtWord:
    def test_short_text_unchanged(self):
        assert truncate_at_word("one two", 20) == "one two"

    def test_cuts_on_word_boundary(self):
        assert truncate_at_word("one two three four", 10) == "one two…"

    def test_single_long_word(self):
        assert truncate_at_word("abcdefghijkl", 5) == "abcde…"


# ── strip_html_to_text ────────────────────────────────────────

class TestStripHtml:
    def test_plain_text_passthrough(self):
        assert strip_html_to_text("Hello world") == "Hello world"

    def test_removes_tags(self):
        result = strip_html_to_text("<p>Hello <b>world</b></p>")
        assert "<" not in result
        assert "Hello" in result
        assert "world" in result

    def test_unescapes_entities(self):
        assert strip_html_to_text("Fish &amp; Chips") == "Fish & Chips"

    def test_empty(self):
        assert strip_html_to_text("") == ""
        assert strip_html_to_text(None) == ""


# ── sentences ─────────────────────────────────────────────────

class TestSentences:
    def test_split(self):
        assert split_sentences("One. Two! Three? Four") == ["One.", "Two!", "Three?", "Four"]

    def test_first_two(self):
        assert first_sentences("One. Two. Three.", 2) == "One. Two."

    def test_collapses_whitespace(self):
        assert first_sentences("One.\n\n  Two.", 2) == "One. Two."


# ── domains ───────────────────────────────────────────────────

class TestDomains:
    def test_host_of(self):
        assert host_of("https://WWW.Example.com/a") == "www.example.com"

    def test_host_of_invalid(self):
        assert host_of("not a url") is None
        assert host_of(None) is None

    def test_base_domain_strips_feed_prefixes(self):
        assert base_domain("www.example.com") == "example.com"
        assert base_domain("feeds.example.com") == "example.com"
        assert base_domain("rss.example.com") == "example.com"

    def test_base_domain_keeps_last_two_labels(self):
        assert base_domain("blog.news.example.com") == "example.com"

    def test_base_domain_none(self):
        assert base_domain(None) is None
