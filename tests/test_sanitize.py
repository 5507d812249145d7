from notifeed.sanitize import decode_best_effort, sanitize, sanitize_text


# ── sanitize_text ─────────────────────────────────────────────

class TestSanitizeText:
    def test_bare_ampersand_escaped(self):
        assert sanitize_text("<title>Fish & Chips</title>") == "<title>Fish &amp; Chips</title>"

    def test_known_entities_untouched(self):
        text = "a &amp; b &lt; c &gt; d &quot;e&quot; &apos;f&apos;"
        assert sanitize_text(text) == text

    def test_numeric_references_kept(self):
        assert sanitize_text("&#8217; &#x2019;") == "&#8217; &#x2019;"

    def test_nbsp_removed(self):
        assert sanitize_text("a&nbsp;b") == "ab"

    def test_two_digit_char_ref_removed(self):
        assert sanitize_text("it&#39;s") == "its"

    def test_unknown_named_entity_removed(self):
        assert sanitize_text("&copy; 2025") == " 2025"

    def test_bare_br_self_closed(self):
        assert sanitize_text("a<br>b<BR >c") == "a<br/>b<br/>c"

    def test_self_closed_br_untouched(self):
        assert sanitize_text("a<br/>b") == "a<br/>b"


# ── bytes ─────────────────────────────────────────────────────

class TestSanitizeBytes:
    def test_returns_bytes(self):
        assert sanitize(b"<t>Fish & Chips</t>") == b"<t>Fish &amp; Chips</t>"

    def test_bom_stripped(self):
        assert decode_best_effort(b"\xef\xbb\xbf<rss/>") == "<rss/>"

    def test_invalid_utf8_replaced(self):
        text = decode_best_effort(b"<t>caf\xe9</t>")
        assert text.startswith("<t>caf")
        assert "\ufffd" in text

    def test_utf8_preserved(self):
        assert sanitize("<t>café</t>".encode("utf-8")).decode("utf-8") == "<t>café</t>"
