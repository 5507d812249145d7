import time
import asyncio
import logging
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Sequence

from notifeed.events import EventBus
from notifeed.fetcher import FeedFetcher
from notifeed.models import CycleReport, EnrichedEntry, FeedSource, Notification
from notifeed.policy import NotificationPolicy, build_test_notification
from notifeed.preferences import PreferencesStore
from notifeed.state import DeliveryTracker
from notifeed.store import ArticleStore
from notifiers.base import Notifier

log = logging.getLogger("notifeed.pipeline")


def _unique_sources(sources: Sequence[FeedSource]) -> List[FeedSource]:
    unique: Dict[str, FeedSource] = {}
    for source in sources:
        unique.setdefault(source.url, source)
    return list(unique.values())


class IngestionPipeline:
    """fetch -> merge -> track -> decide -> present, one cycle at a time."""

    def __init__(self, fetcher: FeedFetcher, store: ArticleStore, tracker: DeliveryTracker,
                 preferences: PreferencesStore, policy: NotificationPolicy,
                 notifiers: Sequence[Notifier], events: Optional[EventBus] = None):
        self.fetcher = fetcher
        self.store = store
        self.tracker = tracker
        self.preferences = preferences
        self.policy = policy
        self.notifiers = list(notifiers)
        self.events = events or EventBus()

    def _prune(self, sources: Sequence[FeedSource]) -> None:
        live = {s.url for s in sources}
        self.store.prune(live)
        for url in self.fetcher.monitor.get_status():
            if url not in live:
                self.fetcher.monitor.forget(url)

    async def _present(self, notification: Notification) -> Dict[str, bool]:
        outcomes: Dict[str, bool] = {}
        for notifier in self.notifiers:
            try:
                ok = await notifier.present(notification)
            except Exception:
                log.exception("%s: present failed for %s", notifier.name, notification.id)
                ok = False
            else:
                if not ok:
                    log.warning("%s: notification not delivered: %s", notifier.name, notification.id)
            outcomes[notifier.name] = ok
        return outcomes

    async def _present_all(self, entries: Sequence[EnrichedEntry], sources: Sequence[FeedSource]) -> None:
        for entry in entries:
            await self._present(self.policy.build_notification(entry, sources))

    async def send_test_notification(self) -> Dict[str, bool]:
        """Present the fixed test notification to every notifier. Returns name -> delivered."""
        outcomes = await self._present(build_test_notification())
        for name, ok in outcomes.items():
            log.info("Test notification via %s: %s", name, "delivered" if ok else "failed")
        return outcomes

    async def run_cycle(self, sources: Sequence[FeedSource]) -> CycleReport:
        sources = _unique_sources(sources)
        report = CycleReport(started_at=datetime.now(timezone.utc))
        self._prune(sources)

        results, failed = await self.fetcher.fetch_all_with_status(sources)
        report.failed = failed

        discovered: List[EnrichedEntry] = []
        for source in sources:
            entries = results.get(source.url, [])
            report.fetched[source.url] = len(entries)
            if entries:
                report.added_articles += self.store.merge(source.url, entries)
            discovered.extend(entries)

        report.new_entries = self.tracker.mark_and_return_new(discovered)
        prefs = self.preferences.reconcile(sources)
        report.notified = self.policy.decide(report.new_entries, prefs, sources)

        if report.notified:
            # links are already marked seen; presenting runs to completion even if the cycle is cancelled
            await asyncio.shield(self._present_all(report.notified, sources))

        report.finished_at = datetime.now(timezone.utc)
        log.info(
            "Cycle done: %d feed(s), %d failed, %d stored, %d new, %d notified.",
            len(sources), len(failed), report.added_articles,
            len(report.new_entries), len(report.notified),
        )
        self.events.publish(report)
        return report


class RefreshCoordinator:
    """
    Debounces refresh requests and lets a newer request replace a running one.

    A request within ``debounce_seconds`` of the previous start is dropped. A
    request arriving while a cycle is still running cancels that cycle; its
    fetch results are discarded.
    """

    def __init__(self, pipeline: IngestionPipeline, debounce_seconds: float = 0.4,
                 clock: Callable[[], float] = time.monotonic):
        self.pipeline = pipeline
        self.debounce_seconds = debounce_seconds
        self._clock = clock
        self._last_start: Optional[float] = None
        self._current: Optional[asyncio.Future] = None

    @property
    def running(self) -> bool:
        return self._current is not None and not self._current.done()

    async def request(self, sources: Sequence[FeedSource]) -> Optional[CycleReport]:
        now = self._clock()
        if self._last_start is not None and now - self._last_start < self.debounce_seconds:
            log.debug("Refresh suppressed, previous one started %.3fs ago.", now - self._last_start)
            return None
        self._last_start = now

        if self.running:
            log.info("New refresh requested, abandoning the running cycle.")
            self._current.cancel()

        task = asyncio.ensure_future(self.pipeline.run_cycle(list(sources)))
        self._current = task
        try:
            await asyncio.wait({task})
        except asyncio.CancelledError:
            task.cancel()
            raise

        if task.cancelled():
            return None
        return task.result()
