import os
import json
import logging
import threading
from typing import Any, Iterable, List, Set, TypeVar

log = logging.getLogger("notifeed.state")

T = TypeVar("T")


def _atomic_write_json(path: str, data: Any) -> None:
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    tmp = f"{path}.tmp"
    with open(tmp, "w", encoding="utf-8") as f:
        json.dump(data, f, ensure_ascii=False, indent=2)
    os.replace(tmp, path)


def write_json_best_effort(path: str, data: Any) -> bool:
    """Persist ``data``; failures are logged and swallowed, memory stays authoritative."""
    try:
        _atomic_write_json(path, data)
        return True
    except (OSError, TypeError, ValueError) as e:
        log.error("Could not write %s: %s", path, e)
        return False


def read_json(path: str, default: T) -> Any:
    if not os.path.exists(path):
        return default
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except (json.JSONDecodeError, UnicodeDecodeError, OSError) as e:
        log.warning("Unreadable %s, starting empty: %s", path, e)
        return default


class LinkSetStore:
    """A persisted set of article links (JSON list on disk, set in memory)."""

    def __init__(self, path: str):
        self.path = path
        self._lock = threading.Lock()
        self._links: Set[str] = self._load()

    def _load(self) -> Set[str]:
        data = read_json(self.path, [])
        if not isinstance(data, list):
            log.warning("%s: expected a list of links, got %s.", self.path, type(data).__name__)
            return set()
        return {str(x) for x in data if x}

    def _save_locked(self) -> None:
        write_json_best_effort(self.path, sorted(self._links))

    def __contains__(self, link: object) -> bool:
        with self._lock:
            return link in self._links

    def __len__(self) -> int:
        with self._lock:
            return len(self._links)

    def links(self) -> Set[str]:
        with self._lock:
            return set(self._links)


class DeliveryTracker(LinkSetStore):
    """
    Every link ever observed during ingestion, across all feeds.

    The set only grows: a feed that republishes a known link, even with edited
    content, is never reported as new again.
    """

    def has_tracked_links(self) -> bool:
        with self._lock:
            return bool(self._links)

    def mark_and_return_new(self, entries: Iterable[T]) -> List[T]:
        new_entries: List[T] = []
        with self._lock:
            for entry in entries:
                link = getattr(entry, "link", "")
                if not link or link in self._links:
                    continue
                self._links.add(link)
                new_entries.append(entry)
            if new_entries:
                self._save_locked()
        return new_entries


class ReadStateStore(LinkSetStore):
    """Links the user marked read; persisted on every change."""

    def is_read(self, link: str) -> bool:
        return link in self

    def set_read(self, link: str, is_read: bool = True) -> None:
        with self._lock:
            if is_read:
                self._links.add(link)
            else:
                self._links.discard(link)
            self._save_locked()

    def mark_all_read(self, links: Iterable[str]) -> int:
        with self._lock:
            before = len(self._links)
            self._links.update(link for link in links if link)
            added = len(self._links) - before
            if added:
                self._save_locked()
        return added

    def read_links(self) -> Set[str]:
        return self.links()


class BookmarkStore(LinkSetStore):
    """Links the user bookmarked; a toggle set persisted on every change."""

    def is_bookmarked(self, link: str) -> bool:
        return link in self

    def toggle(self, link: str) -> bool:
        """Flip the bookmark for ``link``. Returns True when it is now bookmarked."""
        with self._lock:
            if link in self._links:
                self._links.discard(link)
                bookmarked = False
            else:
                self._links.add(link)
                bookmarked = True
            self._save_locked()
        return bookmarked

    def bookmarked_links(self) -> Set[str]:
        return self.links()
