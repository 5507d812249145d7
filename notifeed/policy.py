import logging
from typing import List, Optional, Sequence

from notifeed.models import EnrichedEntry, FeedSource, Notification
from notifeed.preferences import NotificationPreferences
from notifeed.utils import (
    base_domain,
    first_sentences,
    host_of,
    single_line,
    strip_html_to_text,
    truncate_at_word,
)

log = logging.getLogger("notifeed.policy")

GENERIC_BODY = "New article available"
TEST_NOTIFICATION_ID = "notifeed:test-notification"


def resolve_feed(entry: EnrichedEntry, feeds: Sequence[FeedSource]) -> Optional[FeedSource]:
    """Owning feed of an entry: exact feed url first, then same registrable domain."""
    if entry.feed_url:
        for feed in feeds:
            if feed.url == entry.feed_url:
                return feed

    article_domain = base_domain(host_of(entry.link))
    if not article_domain:
        return None
    for feed in feeds:
        if base_domain(host_of(feed.url)) == article_domain:
            return feed
    return None


def summarize_body(entry: EnrichedEntry, feed_title: Optional[str] = None, limit: int = 160) -> str:
    text = single_line(strip_html_to_text(entry.content))
    if text:
        return truncate_at_word(first_sentences(text, 2) or text, limit)
    if entry.author:
        return f"by {entry.author}"
    feed_title = feed_title or entry.feed_title or entry.source_title
    if feed_title:
        return f"new article on {feed_title}"
    return GENERIC_BODY


class NotificationPolicy:
    def __init__(self, batch_max: int = 3, body_max: int = 160):
        self.batch_max = batch_max
        self.body_max = body_max

    def qualifies(self, entry: EnrichedEntry, prefs: NotificationPreferences,
                  feeds: Sequence[FeedSource]) -> bool:
        feed = resolve_feed(entry, feeds)
        if feed is None:
            # unattributable content is notified rather than silently dropped
            return True
        return prefs.allows(feed.url)

    def decide(self, new_entries: Sequence[EnrichedEntry], prefs: NotificationPreferences,
               feeds: Sequence[FeedSource]) -> List[EnrichedEntry]:
        if not prefs.enabled:
            log.info("Notifications disabled, skipping %d new entries.", len(new_entries))
            return []
        eligible = [e for e in new_entries if self.qualifies(e, prefs, feeds)]
        if len(eligible) > self.batch_max:
            log.info("%d entries qualify, notifying the first %d.", len(eligible), self.batch_max)
        return eligible[:self.batch_max]

    def build_notification(self, entry: EnrichedEntry, feeds: Sequence[FeedSource]) -> Notification:
        feed = resolve_feed(entry, feeds)
        subtitle = (feed.title if feed else None) or entry.feed_title or entry.source_title or None
        return Notification(
            id=entry.link,
            title=entry.title,
            subtitle=subtitle,
            body=summarize_body(entry, subtitle, self.body_max),
        )


def build_test_notification() -> Notification:
    """Fixed notification used to check that the notifier path works end to end."""
    return Notification(
        id=TEST_NOTIFICATION_ID,
        title="notifeed test notification",
        subtitle="notifeed",
        body="Notifications are working.",
    )
