import logging
import threading
from typing import Any, Callable, List

log = logging.getLogger("notifeed.events")

Subscriber = Callable[[Any], None]


class EventBus:
    """Observer registry the pipeline publishes to after each completed cycle."""

    def __init__(self):
        self._lock = threading.Lock()
        self._subscribers: List[Subscriber] = []

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def publish(self, event: Any) -> None:
        with self._lock:
            subscribers = list(self._subscribers)
        for callback in subscribers:
            try:
                callback(event)
            except Exception:
                log.exception("Event subscriber %r failed.", callback)
