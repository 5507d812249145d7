"""Health monitoring for configured feeds."""

import logging
from typing import Dict

log = logging.getLogger("notifeed.monitoring")


class HealthMonitor:
    """Tracks consecutive fetch failures per feed url and raises a one-time alert."""

    def __init__(self, alert_threshold: int = 5):
        self.alert_threshold = alert_threshold
        self._consecutive_failures: Dict[str, int] = {}
        self._alerted: Dict[str, bool] = {}

    def record_success(self, feed_url: str) -> None:
        prev = self._consecutive_failures.get(feed_url, 0)
        if prev > 0:
            log.info("%s: recovered after %d consecutive failure(s).", feed_url, prev)
        self._consecutive_failures[feed_url] = 0
        self._alerted[feed_url] = False

    def record_failure(self, feed_url: str) -> bool:
        """Record a failure. Returns True if the alert threshold was just crossed."""
        count = self._consecutive_failures.get(feed_url, 0) + 1
        self._consecutive_failures[feed_url] = count
        log.warning("%s: consecutive failure #%d.", feed_url, count)

        if count >= self.alert_threshold and not self._alerted.get(feed_url, False):
            self._alerted[feed_url] = True
            log.error("ALERT: %s failed %d times in a row!", feed_url, count)
            return True
        return False

    def forget(self, feed_url: str) -> None:
        self._consecutive_failures.pop(feed_url, None)
        self._alerted.pop(feed_url, None)

    def get_failures(self, feed_url: str) -> int:
        return self._consecutive_failures.get(feed_url, 0)

    def get_status(self) -> Dict[str, int]:
        return dict(self._consecutive_failures)
