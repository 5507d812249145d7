"""Centralized configuration for the notifeed watcher."""

import os
import json
import logging
from typing import List

from notifeed.models import FeedSource

log = logging.getLogger("notifeed.config")

# =========================
# File paths
# =========================
DATA_DIR: str = os.getenv("NOTIFEED_DATA_DIR", "data")
ARTICLES_FILE: str = os.getenv("ARTICLES_FILE", os.path.join(DATA_DIR, "articles.json"))
READ_STATE_FILE: str = os.getenv("READ_STATE_FILE", os.path.join(DATA_DIR, "read_articles.json"))
SEEN_LINKS_FILE: str = os.getenv("SEEN_LINKS_FILE", os.path.join(DATA_DIR, "seen_links.json"))
BOOKMARKS_FILE: str = os.getenv("BOOKMARKS_FILE", os.path.join(DATA_DIR, "bookmarks.json"))
PREFERENCES_FILE: str = os.getenv(
    "PREFERENCES_FILE", os.path.join(DATA_DIR, "notification_preferences.json")
)
FEEDS_FILE: str = os.getenv("FEEDS_FILE", os.path.join(DATA_DIR, "feeds.json"))

# =========================
# Fetch / schedule
# =========================
FETCH_TIMEOUT_SECONDS: float = float(os.getenv("FETCH_TIMEOUT_SECONDS", "12"))
POLL_MINUTES: float = float(os.getenv("POLL_MINUTES", "30"))
REFRESH_DEBOUNCE_SECONDS: float = float(os.getenv("REFRESH_DEBOUNCE_SECONDS", "0.4"))

# =========================
# Article cache
# =========================
MAX_ARTICLES_PER_FEED: int = int(os.getenv("MAX_ARTICLES_PER_FEED", "100"))
SHORT_TITLE_MAX: int = int(os.getenv("SHORT_TITLE_MAX", "45"))

# =========================
# Notifications
# =========================
NOTIFICATION_BATCH_MAX: int = int(os.getenv("NOTIFICATION_BATCH_MAX", "3"))
NOTIFICATION_BODY_MAX: int = int(os.getenv("NOTIFICATION_BODY_MAX", "160"))
TELEGRAM_TOKEN: str = os.environ.get("TELEGRAM_TOKEN", "")
TELEGRAM_CHAT_ID: str = os.environ.get("TELEGRAM_CHAT_ID", "")

# =========================
# Monitoring / logging
# =========================
FAILURE_ALERT_THRESHOLD: int = int(os.getenv("FAILURE_ALERT_THRESHOLD", "5"))
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

DEFAULT_FEEDS: List[FeedSource] = [
    FeedSource(title="MacRumors", url="https://feeds.macrumors.com/MacRumors-All"),
]


def telegram_configured() -> bool:
    if any([TELEGRAM_TOKEN, TELEGRAM_CHAT_ID]) and not all([TELEGRAM_TOKEN, TELEGRAM_CHAT_ID]):
        log.warning("Telegram partially configured: TELEGRAM_TOKEN or TELEGRAM_CHAT_ID missing.")
    return bool(TELEGRAM_TOKEN and TELEGRAM_CHAT_ID)


def load_feed_sources(path: str = FEEDS_FILE) -> List[FeedSource]:
    """Load the ordered feed list, falling back to DEFAULT_FEEDS."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, list):
            raise ValueError("feeds file must contain a list")
    except FileNotFoundError:
        log.info("Feeds file %s not found, using defaults.", path)
        return list(DEFAULT_FEEDS)
    except (json.JSONDecodeError, ValueError, OSError) as e:
        log.error("Error reading %s: %s", path, e)
        return list(DEFAULT_FEEDS)

    out: List[FeedSource] = []
    seen = set()
    for item in data:
        if not isinstance(item, dict):
            log.warning("Invalid feed entry in %s: %r", path, item)
            continue
        url = str(item.get("url") or "").strip()
        if not url or url in seen:
            continue
        seen.add(url)
        out.append(FeedSource(title=str(item.get("title") or url).strip(), url=url))
    return out


def save_feed_sources(sources: List[FeedSource], path: str = FEEDS_FILE) -> None:
    """Atomic write of the feed list."""
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    tmp = f"{path}.tmp"
    with open(tmp, "w", encoding="utf-8") as f:
        json.dump([s.to_dict() for s in sources], f, ensure_ascii=False, indent=2)
    os.replace(tmp, path)
