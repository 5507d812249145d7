import logging
import threading
from typing import Dict, Iterable, List, Sequence

from notifeed.dates import DISTANT_PAST, is_sentinel, parse_date
from notifeed.models import EnrichedEntry, StoredArticle
from notifeed.state import read_json, write_json_best_effort
from notifeed.utils import strip_html_to_text

log = logging.getLogger("notifeed.store")


def sort_articles(articles: Iterable[StoredArticle]) -> List[StoredArticle]:
    """Newest first; undated articles last, ordered by case-insensitive title."""
    by_title = sorted(articles, key=lambda a: a.title.casefold())
    return sorted(by_title, key=lambda a: a.published_at or DISTANT_PAST, reverse=True)


def to_stored_article(entry: EnrichedEntry) -> StoredArticle:
    published = parse_date(entry.pub_date_string)
    return StoredArticle(
        title=entry.title,
        link=entry.link,
        published_at=None if is_sentinel(published) else published,
        summary=strip_html_to_text(entry.content),
        feed_title=entry.feed_title,
    )


class ArticleStore:
    """
    Per-feed article history, keyed by feed url.

    On disk:
    { "<feed url>": [ {title, link, published_at, summary, feed_title}, ... ] }
    """

    def __init__(self, path: str, max_per_feed: int = 100):
        self.path = path
        self.max_per_feed = max_per_feed
        self._lock = threading.Lock()
        self._by_feed: Dict[str, List[StoredArticle]] = self._load()

    def _load(self) -> Dict[str, List[StoredArticle]]:
        data = read_json(self.path, {})
        if not isinstance(data, dict):
            log.warning("%s: expected an object keyed by feed url.", self.path)
            return {}
        out: Dict[str, List[StoredArticle]] = {}
        for feed_url, items in data.items():
            if not isinstance(items, list):
                continue
            bucket: List[StoredArticle] = []
            for item in items:
                try:
                    bucket.append(StoredArticle.from_dict(item))
                except (KeyError, TypeError, ValueError) as e:
                    log.warning("%s: skipping invalid article in %s: %s", self.path, feed_url, e)
            out[str(feed_url)] = bucket
        return out

    def _save_locked(self) -> None:
        payload = {url: [a.to_dict() for a in bucket] for url, bucket in self._by_feed.items()}
        write_json_best_effort(self.path, payload)

    def articles(self, feed_url: str) -> List[StoredArticle]:
        with self._lock:
            return list(self._by_feed.get(feed_url, []))

    def feed_urls(self) -> List[str]:
        with self._lock:
            return list(self._by_feed)

    def merge(self, feed_url: str, entries: Sequence[EnrichedEntry]) -> int:
        """Merge fresh entries into the feed bucket. Returns how many links were new."""
        with self._lock:
            bucket = list(self._by_feed.get(feed_url, []))
            index = {a.link: i for i, a in enumerate(bucket)}
            batch_links = set()
            added = 0
            changed = False

            for entry in entries:
                # first occurrence of a link in a batch wins
                if not entry.link or entry.link in batch_links:
                    continue
                batch_links.add(entry.link)
                fresh = to_stored_article(entry)
                pos = index.get(entry.link)
                if pos is None:
                    index[entry.link] = len(bucket)
                    bucket.append(fresh)
                    added += 1
                    continue
                current = bucket[pos]
                if current.title != fresh.title or current.summary != fresh.summary:
                    bucket[pos] = current.with_display_fields(fresh.title, fresh.summary)
                    changed = True

            bucket = sort_articles(bucket)
            if len(bucket) > self.max_per_feed:
                log.debug("%s: trimming %d old article(s).", feed_url, len(bucket) - self.max_per_feed)
                bucket = bucket[:self.max_per_feed]
                changed = True

            if not added and not changed:
                return 0
            self._by_feed[feed_url] = bucket
            self._save_locked()
        if added:
            log.info("%s: %d new article(s) stored.", feed_url, added)
        return added

    def prune(self, live_feed_urls: Iterable[str]) -> int:
        """Drop buckets of feeds that are no longer configured. Returns articles removed."""
        live = set(live_feed_urls)
        with self._lock:
            stale = [url for url in self._by_feed if url not in live]
            if not stale:
                return 0
            removed = sum(len(self._by_feed.pop(url)) for url in stale)
            self._save_locked()
        log.info("Pruned %d article(s) from %d removed feed(s).", removed, len(stale))
        return removed
