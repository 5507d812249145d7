"""Notification preferences: global toggle plus per-feed opt-in.

Schema (version 2)::

    {
      "version": 2,
      "enabled": true,
      "enabled_feeds": ["https://..."],
      "known_feeds": ["https://..."]
    }

Older payloads are migrated once at load time by ``migrate``:

- a bare list of urls (version 0): those feeds are both enabled and known;
- ``{"enabledFeeds": [...], "knownFeeds": [...]}`` (version 1).
"""

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Set

from notifeed.models import FeedSource
from notifeed.state import read_json, write_json_best_effort

log = logging.getLogger("notifeed.preferences")

SCHEMA_VERSION = 2


@dataclass
class NotificationPreferences:
    enabled: bool = True
    enabled_feeds: Set[str] = field(default_factory=set)
    known_feeds: Set[str] = field(default_factory=set)

    def allows(self, feed_url: str) -> bool:
        return feed_url in self.enabled_feeds

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": SCHEMA_VERSION,
            "enabled": self.enabled,
            "enabled_feeds": sorted(self.enabled_feeds),
            "known_feeds": sorted(self.known_feeds),
        }


def _url_set(value: Any) -> Set[str]:
    if not isinstance(value, (list, tuple, set)):
        return set()
    return {str(v) for v in value if v}


def migrate(payload: Any) -> NotificationPreferences:
    """Turn any stored payload shape into current preferences."""
    if isinstance(payload, list):
        urls = _url_set(payload)
        return NotificationPreferences(enabled=True, enabled_feeds=urls, known_feeds=set(urls))

    if not isinstance(payload, dict):
        return NotificationPreferences()

    if "version" not in payload and ("enabledFeeds" in payload or "knownFeeds" in payload):
        enabled_feeds = _url_set(payload.get("enabledFeeds"))
        known = _url_set(payload.get("knownFeeds")) | enabled_feeds
        return NotificationPreferences(
            enabled=bool(payload.get("enabled", True)),
            enabled_feeds=enabled_feeds,
            known_feeds=known,
        )

    enabled_feeds = _url_set(payload.get("enabled_feeds"))
    return NotificationPreferences(
        enabled=bool(payload.get("enabled", True)),
        enabled_feeds=enabled_feeds,
        known_feeds=_url_set(payload.get("known_feeds")) | enabled_feeds,
    )


class PreferencesStore:
    def __init__(self, path: str):
        self.path = path
        self._lock = threading.Lock()
        self._prefs = self.load()

    def load(self) -> NotificationPreferences:
        raw = read_json(self.path, None)
        if raw is None:
            return NotificationPreferences()
        prefs = migrate(raw)
        if not (isinstance(raw, dict) and raw.get("version") == SCHEMA_VERSION):
            log.info("Migrating notification preferences in %s to version %d.", self.path, SCHEMA_VERSION)
            write_json_best_effort(self.path, prefs.to_dict())
        return prefs

    def _save_locked(self) -> None:
        write_json_best_effort(self.path, self._prefs.to_dict())

    def save(self) -> None:
        with self._lock:
            self._save_locked()

    @property
    def preferences(self) -> NotificationPreferences:
        with self._lock:
            p = self._prefs
            return NotificationPreferences(p.enabled, set(p.enabled_feeds), set(p.known_feeds))

    def set_enabled(self, value: bool) -> None:
        with self._lock:
            self._prefs.enabled = bool(value)
            self._save_locked()

    def set_feed_enabled(self, feed_url: str, value: bool) -> None:
        with self._lock:
            self._prefs.known_feeds.add(feed_url)
            if value:
                self._prefs.enabled_feeds.add(feed_url)
            else:
                self._prefs.enabled_feeds.discard(feed_url)
            self._save_locked()

    def reconcile(self, feeds: Iterable[FeedSource]) -> NotificationPreferences:
        """Auto-enable feeds seen for the first time, exactly once."""
        with self._lock:
            discovered = [f.url for f in feeds if f.url not in self._prefs.known_feeds]
            if discovered:
                self._prefs.enabled_feeds.update(discovered)
                self._prefs.known_feeds.update(discovered)
                log.info("Notifications enabled for %d new feed(s).", len(discovered))
                self._save_locked()
        return self.preferences
