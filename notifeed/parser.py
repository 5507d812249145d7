"""Recovering RSS/Atom parser.

The byte stream is repaired by ``sanitize`` and then streamed through lxml's
target interface. An ``_EntryCollector`` keeps the state machine: it resets an
accumulator on ``item``/``entry``, routes character data into the field of the
current element and finalizes a ``RawEntry`` when the item closes. A
structural error stops parsing; entries finalized before it are kept.
"""

import re
import logging
from typing import Dict, List, Optional

from lxml import etree

from notifeed.models import RawEntry
from notifeed.sanitize import sanitize
from notifeed.utils import truncate_text

log = logging.getLogger("notifeed.parser")

SHORT_TITLE_MAX = 45

_KNOWN_NAMESPACES = {
    "http://purl.org/rss/1.0/modules/content/": "content",
    "http://purl.org/dc/elements/1.1/": "dc",
    "http://search.yahoo.com/mrss/": "media",
}

_ITEM_TAGS = {"item", "entry"}

# element key -> accumulator field
_FIELDS = {
    "title": "title",
    "link": "link",
    "description": "description",
    "summary": "description",
    "content": "content",
    "content:encoded": "encoded",
    "author": "author",
    "dc:creator": "author",
    "pubDate": "pubDate",
    "published": "published",
    "dc:date": "dcDate",
    "updated": "updated",
    "source": "source",
}
_CONTENT_PRIORITY = ("encoded", "content", "description")
_DATE_PRIORITY = ("pubDate", "published", "dcDate", "updated")

_BOILERPLATE = re.compile(r"\b(news|update|report|breaking)\b", re.I)
_IMG_SRC = re.compile(r"""<img[^>]+src\s*=\s*['"]([^'"]+)['"][^>]*>""", re.I)


def short_title(title: str, limit: int = SHORT_TITLE_MAX) -> str:
    result = title.split(":", 1)[0]
    result = _BOILERPLATE.sub("", result).strip()
    if not result:
        result = title.strip()
    return truncate_text(result, limit)


def first_image_src(html: str) -> Optional[str]:
    m = _IMG_SRC.search(html or "")
    return m.group(1) if m else None


def _element_key(tag) -> str:
    if not isinstance(tag, str):
        return ""
    if tag.startswith("{"):
        ns, _, local = tag[1:].partition("}")
        prefix = _KNOWN_NAMESPACES.get(ns)
        return f"{prefix}:{local}" if prefix else local
    return tag


def _is_image_media(attrib) -> bool:
    medium = (attrib.get("medium") or "").lower()
    mime = (attrib.get("type") or "").lower()
    if medium:
        return medium == "image"
    if mime:
        return mime.startswith("image/")
    return True


class _EntryCollector:
    """lxml parser target holding the per-item accumulator."""

    def __init__(self, short_title_max: int = SHORT_TITLE_MAX):
        self.short_title_max = short_title_max
        self.entries: List[RawEntry] = []
        self._stack: List[str] = []
        self._item_depth: Optional[int] = None
        self._field: Optional[str] = None
        self._buffers: Dict[str, List[str]] = {}
        self._image_url: Optional[str] = None
        self._link_href: Optional[str] = None
        self._source_url: Optional[str] = None

    def _reset(self) -> None:
        self._field = None
        self._buffers = {}
        self._image_url = None
        self._link_href = None
        self._source_url = None

    def _text(self, field: str) -> str:
        return "".join(self._buffers.get(field, [])).strip()

    def start(self, tag, attrib, nsmap=None) -> None:
        key = _element_key(tag)
        self._stack.append(key)
        depth = len(self._stack)

        if self._item_depth is None:
            if key in _ITEM_TAGS:
                self._item_depth = depth
                self._reset()
            return

        if key in ("media:content", "media:thumbnail"):
            if not self._image_url and attrib.get("url") and _is_image_media(attrib):
                self._image_url = attrib.get("url")
            return
        if key == "enclosure":
            if not self._image_url and (attrib.get("type") or "").lower().startswith("image/"):
                self._image_url = attrib.get("url") or None
            return

        parent = self._stack[-2]
        if depth == self._item_depth + 1:
            if key == "link" and attrib.get("href"):
                if not self._link_href and attrib.get("rel", "alternate") == "alternate":
                    self._link_href = attrib.get("href")
            if key == "source" and attrib.get("url"):
                self._source_url = attrib.get("url")
            self._field = _FIELDS.get(key)
        elif key == "name" and parent == "author" and depth == self._item_depth + 2:
            self._field = "author"
        else:
            self._field = None

    def data(self, data) -> None:
        if self._field is not None:
            self._buffers.setdefault(self._field, []).append(data)

    def end(self, tag) -> None:
        depth = len(self._stack)
        self._stack.pop()
        if self._item_depth is None:
            return
        if depth == self._item_depth:
            self._finalize()
            self._item_depth = None
            self._reset()
            return
        # tail text after a child element is not part of any field
        self._field = None

    def close(self) -> List[RawEntry]:
        return self.entries

    def _finalize(self) -> None:
        title = self._text("title")
        link = self._text("link") or (self._link_href or "").strip()
        content = next((self._text(f) for f in _CONTENT_PRIORITY if self._text(f)), "")
        pub_date = next((self._text(f) for f in _DATE_PRIORITY if self._text(f)), "")
        author = self._text("author")
        source_title = self._text("source")

        image_url = self._image_url or first_image_src(content)

        self.entries.append(RawEntry(
            title=title,
            short_title=short_title(title, self.short_title_max),
            link=link,
            content=content,
            image_url=image_url or None,
            author=author or None,
            pub_date_string=pub_date or None,
            source_title=source_title or None,
            source_url=self._source_url or None,
        ))


class FeedParser:
    """Parses feed bytes into RawEntry objects; never raises."""

    def __init__(self, short_title_max: int = SHORT_TITLE_MAX):
        self.short_title_max = short_title_max

    def parse(self, data: bytes) -> List[RawEntry]:
        if not data:
            return []
        collector = _EntryCollector(self.short_title_max)
        parser = etree.XMLParser(
            target=collector,
            encoding="utf-8",
            resolve_entities=False,
            no_network=True,
        )
        try:
            parser.feed(sanitize(data))
            parser.close()
        except etree.LxmlError as e:
            log.warning("Feed parse aborted after %d entries: %s", len(collector.entries), e)
        return list(collector.entries)
