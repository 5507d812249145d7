import pytest
from notifeed.parser import FeedParser, first_image_src, short_title


def _rss(items: str, extra_ns: str = "") -> bytes:
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        f'<rss version="2.0"{extra_ns}><channel><title>Feed</title>'
        f"{items}"
        "</channel></rss>"
    ).encode("utf-8")


@pytest.fixture
def parser():
    return FeedParser()


# ── short_title ───────────────────────────────────────────────

class TestShortTitle:
    def test_cut_at_colon(self):
        assert short_title("Apple: new iPhone announced") == "Apple"

    def test_boilerplate_removed(self):
        assert short_title("Breaking iPhone sales") == "iPhone sales"

    def test_boilerplate_whole_words_only(self):
        assert short_title("Newsroom reporters") == "Newsroom reporters"

    def test_truncated_with_ellipsis(self):
        title = "x" * 60
        assert short_title(title) == "x" * 45 + "…"

    def test_empty_after_cleanup_uses_full_title_instead_of_empty_string(self):
        assert short_title("News") == "News"

    def test_boilerplate_prefix_before_colon_keeps_full_title(self):
        assert short_title("Update: the rest") == "Update: the rest"

    def test_whitespace_prefix_before_colon_keeps_full_title(self):
        assert short_title("  : Headline") == ": Headline"


class TestFirstImageSrc:
    def test_finds_first_img(self):
        html = '<p>hi</p><img alt="a" src="https://img/1.jpg"><img src="https://img/2.jpg">'
        assert first_image_src(html) == "https://img/1.jpg"

    def test_single_quotes(self):
        assert first_image_src("<img src='https://img/x.png'/>") == "https://img/x.png"

    def test_none_without_img(self):
        assert first_image_src("<p>text</p>") is None


# ── RSS ───────────────────────────────────────────────────────

class TestParseRss:
    def test_basic_item(self, parser):
        data = _rss(
            "<item><title>  Hello  </title><link> https://example.com/1 </link>"
            "<description>Body</description>"
            "<pubDate>Tue, 25 Nov 2025 12:34:56 GMT</pubDate>"
            "<author>jane@example.com</author></item>"
        )
        entries = parser.parse(data)
        assert len(entries) == 1
        e = entries[0]
        assert e.title == "Hello"
        assert e.link == "https://example.com/1"
        assert e.content == "Body"
        assert e.pub_date_string == "Tue, 25 Nov 2025 12:34:56 GMT"
        assert e.author == "jane@example.com"

    def test_bare_ampersand_in_title(self, parser):
        entries = parser.parse(_rss("<item><title>Fish & Chips</title><link>https://a/1</link></item>"))
        assert entries[0].title == "Fish & Chips"

    def test_entities_and_br_tolerated(self, parser):
        data = _rss("<item><title>A&nbsp;B &copy;</title><link>https://a/1</link>"
                    "<description>line<br>next</description></item>")
        entries = parser.parse(data)
        assert len(entries) == 1
        assert entries[0].title == "AB"

    def test_channel_title_not_an_entry(self, parser):
        entries = parser.parse(_rss("<item><title>Only</title><link>https://a/1</link></item>"))
        assert [e.title for e in entries] == ["Only"]

    def test_order_preserved(self, parser):
        items = "".join(f"<item><title>T{i}</title><link>https://a/{i}</link></item>" for i in range(5))
        assert [e.link for e in parser.parse(_rss(items))] == [f"https://a/{i}" for i in range(5)]

    def test_cdata_description(self, parser):
        data = _rss("<item><title>T</title><link>https://a/1</link>"
                    "<description><![CDATA[<p>Hi <b>there</b></p>]]></description></item>")
        assert parser.parse(data)[0].content == "<p>Hi <b>there</b></p>"

    def test_content_encoded_preferred(self, parser):
        ns = ' xmlns:content="http://purl.org/rss/1.0/modules/content/"'
        data = _rss("<item><title>T</title><link>https://a/1</link>"
                    "<description>short</description>"
                    "<content:encoded><![CDATA[<p>full</p>]]></content:encoded></item>", ns)
        assert parser.parse(data)[0].content == "<p>full</p>"

    def test_dc_creator_and_date(self, parser):
        ns = ' xmlns:dc="http://purl.org/dc/elements/1.1/"'
        data = _rss("<item><title>T</title><link>https://a/1</link>"
                    "<dc:creator>Jane</dc:creator><dc:date>2025-11-25T12:34:56Z</dc:date></item>", ns)
        e = parser.parse(data)[0]
        assert e.author == "Jane"
        assert e.pub_date_string == "2025-11-25T12:34:56Z"

    def test_media_content_image(self, parser):
        ns = ' xmlns:media="http://search.yahoo.com/mrss/"'
        data = _rss('<item><title>T</title><link>https://a/1</link>'
                    '<media:content url="https://img/m.jpg" medium="image"/>'
                    '<description><![CDATA[<img src="https://img/d.jpg">]]></description></item>', ns)
        assert parser.parse(data)[0].image_url == "https://img/m.jpg"

    def test_image_enclosure(self, parser):
        data = _rss('<item><title>T</title><link>https://a/1</link>'
                    '<enclosure url="https://img/e.png" type="image/png" length="1"/></item>')
        assert parser.parse(data)[0].image_url == "https://img/e.png"

    def test_audio_enclosure_ignored(self, parser):
        data = _rss('<item><title>T</title><link>https://a/1</link>'
                    '<enclosure url="https://a/e.mp3" type="audio/mpeg" length="1"/></item>')
        assert parser.parse(data)[0].image_url is None

    def test_image_fallback_from_description(self, parser):
        data = _rss('<item><title>T</title><link>https://a/1</link>'
                    '<description><![CDATA[<p>x</p><img src="https://img/d.jpg">]]></description></item>')
        assert parser.parse(data)[0].image_url == "https://img/d.jpg"

    def test_source_attribution(self, parser):
        data = _rss('<item><title>T</title><link>https://a/1</link>'
                    '<source url="https://origin.example.com/rss">Origin</source></item>')
        e = parser.parse(data)[0]
        assert e.source_title == "Origin"
        assert e.source_url == "https://origin.example.com/rss"

    def test_short_title_derived(self, parser):
        data = _rss("<item><title>Apple Update: iOS 19 released</title><link>https://a/1</link></item>")
        assert parser.parse(data)[0].short_title == "Apple"

    def test_missing_link_kept_empty(self, parser):
        entries = parser.parse(_rss("<item><title>No link</title></item>"))
        assert entries[0].link == ""


# ── Atom ──────────────────────────────────────────────────────

class TestParseAtom:
    def test_atom_entry(self, parser):
        data = (
            '<?xml version="1.0" encoding="utf-8"?>'
            '<feed xmlns="http://www.w3.org/2005/Atom"><title>Feed</title>'
            '<entry><title>Atom item</title>'
            '<link rel="self" href="https://a/self"/>'
            '<link rel="alternate" href="https://a/post"/>'
            '<author><name>Ann</name></author>'
            '<summary>Sum</summary>'
            '<content type="html">&lt;p&gt;Full&lt;/p&gt;</content>'
            '<updated>2025-11-26T00:00:00Z</updated>'
            '<published>2025-11-25T12:34:56Z</published>'
            '</entry></feed>'
        ).encode("utf-8")
        entries = parser.parse(data)
        assert len(entries) == 1
        e = entries[0]
        assert e.title == "Atom item"
        assert e.link == "https://a/post"
        assert e.author == "Ann"
        assert e.content == "<p>Full</p>"
        assert e.pub_date_string == "2025-11-25T12:34:56Z"

    def test_link_without_rel_is_alternate(self, parser):
        data = ('<feed xmlns="http://www.w3.org/2005/Atom">'
                '<entry><title>T</title><link href="https://a/1"/></entry></feed>').encode("utf-8")
        assert parser.parse(data)[0].link == "https://a/1"


# ── recovery ──────────────────────────────────────────────────

class TestRecovery:
    def test_empty_input(self, parser):
        assert parser.parse(b"") == []

    def test_garbage_input(self, parser):
        assert parser.parse(b"this is not xml at all") == []

    def test_structural_error_keeps_finished_items(self, parser):
        data = (
            "<rss><channel>"
            "<item><title>A</title><link>https://a/1</link></item>"
            "<item><title>B</title><link>https://a/2</link></item>"
            "<item><title>C</title><link>https://a/3</link></broken>"
            "</channel></rss>"
        ).encode("utf-8")
        entries = parser.parse(data)
        assert [e.title for e in entries] == ["A", "B"]

    def test_truncated_document(self, parser):
        data = b"<rss><channel><item><title>A</title><link>https://a/1</link></item><item><title>B"
        entries = parser.parse(data)
        assert [e.title for e in entries] == ["A"]
