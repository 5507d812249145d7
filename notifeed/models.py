from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class FeedSource:
    title: str
    url: str  # identity

    def to_dict(self) -> Dict[str, str]:
        return {"title": self.title, "url": self.url}


@dataclass(frozen=True)
class RawEntry:
    title: str
    short_title: str
    link: str
    content: str = ""  # HTML
    image_url: Optional[str] = None
    author: Optional[str] = None
    pub_date_string: Optional[str] = None
    # Attribution embedded by the feed itself (RSS <source url="...">)
    source_title: Optional[str] = None
    source_url: Optional[str] = None


@dataclass(frozen=True)
class EnrichedEntry(RawEntry):
    # The configured feed the entry was fetched from; it owns the entry
    feed_title: Optional[str] = None
    feed_url: Optional[str] = None

    @classmethod
    def from_raw(cls, raw: RawEntry, source: FeedSource) -> "EnrichedEntry":
        return cls(
            title=raw.title,
            short_title=raw.short_title,
            link=raw.link,
            content=raw.content,
            image_url=raw.image_url,
            author=raw.author,
            pub_date_string=raw.pub_date_string,
            source_title=raw.source_title,
            source_url=raw.source_url,
            feed_title=source.title,
            feed_url=source.url,
        )


@dataclass(frozen=True)
class StoredArticle:
    title: str
    link: str
    published_at: Optional[datetime]  # UTC, None when the feed date was unparseable
    summary: str  # plain text, never markup
    feed_title: Optional[str] = None

    def with_display_fields(self, title: str, summary: str) -> "StoredArticle":
        return replace(self, title=title, summary=summary)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "link": self.link,
            "published_at": self.published_at.isoformat() if self.published_at else None,
            "summary": self.summary,
            "feed_title": self.feed_title,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StoredArticle":
        published = data.get("published_at")
        return cls(
            title=str(data.get("title") or ""),
            link=str(data["link"]),
            published_at=datetime.fromisoformat(published) if published else None,
            summary=str(data.get("summary") or ""),
            feed_title=data.get("feed_title"),
        )


@dataclass(frozen=True)
class Notification:
    id: str  # article link; presenting the same id twice replaces, never duplicates
    title: str
    body: str
    subtitle: Optional[str] = None


@dataclass
class CycleReport:
    started_at: datetime
    finished_at: Optional[datetime] = None
    fetched: Dict[str, int] = field(default_factory=dict)
    failed: List[str] = field(default_factory=list)
    added_articles: int = 0
    new_entries: List[EnrichedEntry] = field(default_factory=list)
    notified: List[EnrichedEntry] = field(default_factory=list)
