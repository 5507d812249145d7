import asyncio
import argparse
import logging
from typing import List

from notifeed import config
from notifeed.events import EventBus
from notifeed.fetcher import FeedFetcher
from notifeed.models import CycleReport
from notifeed.monitoring import HealthMonitor
from notifeed.parser import FeedParser
from notifeed.pipeline import IngestionPipeline, RefreshCoordinator
from notifeed.policy import NotificationPolicy
from notifeed.preferences import PreferencesStore
from notifeed.state import BookmarkStore, DeliveryTracker, ReadStateStore
from notifeed.store import ArticleStore
from notifiers.base import Notifier
from notifiers.log_notifier import LogNotifier
from notifiers.telegram_notifier import TelegramNotifier

logging.basicConfig(level=config.LOG_LEVEL, format="%(asctime)s %(levelname)s %(message)s")
log = logging.getLogger("notifeed")


def build_notifiers() -> List[Notifier]:
    notifiers: List[Notifier] = [LogNotifier()]
    if config.telegram_configured():
        notifiers.append(TelegramNotifier(config.TELEGRAM_TOKEN, config.TELEGRAM_CHAT_ID))
    return notifiers


def build_pipeline(events: EventBus) -> IngestionPipeline:
    monitor = HealthMonitor(alert_threshold=config.FAILURE_ALERT_THRESHOLD)
    fetcher = FeedFetcher(
        timeout=config.FETCH_TIMEOUT_SECONDS,
        parser=FeedParser(short_title_max=config.SHORT_TITLE_MAX),
        monitor=monitor,
    )
    return IngestionPipeline(
        fetcher=fetcher,
        store=ArticleStore(config.ARTICLES_FILE, max_per_feed=config.MAX_ARTICLES_PER_FEED),
        tracker=DeliveryTracker(config.SEEN_LINKS_FILE),
        preferences=PreferencesStore(config.PREFERENCES_FILE),
        policy=NotificationPolicy(
            batch_max=config.NOTIFICATION_BATCH_MAX,
            body_max=config.NOTIFICATION_BODY_MAX,
        ),
        notifiers=build_notifiers(),
        events=events,
    )


def log_report(report: CycleReport) -> None:
    for entry in report.new_entries:
        log.debug("New: %s (%s)", entry.title, entry.link)
    if report.failed:
        log.warning("Feeds without data this cycle: %s", ", ".join(report.failed))


async def send_test_notification() -> bool:
    pipeline = build_pipeline(EventBus())
    try:
        outcomes = await pipeline.send_test_notification()
    finally:
        await pipeline.fetcher.close()
        for notifier in pipeline.notifiers:
            await notifier.close()
    return all(outcomes.values())


async def run(once: bool = False) -> None:
    events = EventBus()
    events.subscribe(log_report)
    pipeline = build_pipeline(events)
    coordinator = RefreshCoordinator(pipeline, debounce_seconds=config.REFRESH_DEBOUNCE_SECONDS)

    try:
        while True:
            sources = config.load_feed_sources()
            log.info("Refreshing %d feed(s).", len(sources))
            try:
                await coordinator.request(sources)
            except Exception:
                log.exception("Ingestion cycle failed.")
            if once:
                return
            await asyncio.sleep(config.POLL_MINUTES * 60)
    finally:
        await pipeline.fetcher.close()
        for notifier in pipeline.notifiers:
            await notifier.close()


def main() -> None:
    parser = argparse.ArgumentParser(description="Poll RSS/Atom feeds and notify about new articles.")
    parser.add_argument("--once", action="store_true", help="run a single ingestion cycle and exit")
    parser.add_argument("--mark-read", metavar="LINK", action="append", default=[],
                        help="mark an article read and exit")
    parser.add_argument("--mark-unread", metavar="LINK", action="append", default=[],
                        help="mark an article unread and exit")
    parser.add_argument("--bookmark", metavar="LINK", action="append", default=[],
                        help="toggle the bookmark of an article and exit")
    parser.add_argument("--test-notification", action="store_true",
                        help="send a test notification through every notifier and exit")
    args = parser.parse_args()

    if args.mark_read or args.mark_unread:
        read_state = ReadStateStore(config.READ_STATE_FILE)
        for link in args.mark_read:
            read_state.set_read(link, True)
        for link in args.mark_unread:
            read_state.set_read(link, False)
        log.info("%d article(s) marked read.", len(read_state))
        return

    if args.bookmark:
        bookmarks = BookmarkStore(config.BOOKMARKS_FILE)
        for link in args.bookmark:
            state = "bookmarked" if bookmarks.toggle(link) else "unbookmarked"
            log.info("%s %s.", link, state)
        return

    if args.test_notification:
        if not asyncio.run(send_test_notification()):
            raise SystemExit(1)
        return

    try:
        asyncio.run(run(once=args.once))
    except KeyboardInterrupt:
        log.info("Stopped.")


if __name__ == "__main__":
    main()
