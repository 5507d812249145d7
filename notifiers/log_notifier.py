import logging
from typing import Set

from notifeed.models import Notification
from notifiers.base import Notifier

log = logging.getLogger("notifeed.notifier.log")


class LogNotifier(Notifier):
    """Writes notifications to the log; a repeated id replaces instead of duplicating."""

    name = "log"

    def __init__(self):
        self.presented: Set[str] = set()

    async def present(self, notification: Notification) -> bool:
        verb = "Replaced" if notification.id in self.presented else "New"
        self.presented.add(notification.id)
        if notification.subtitle:
            log.info("%s notification [%s] %s: %s (%s)", verb, notification.subtitle,
                     notification.title, notification.body, notification.id)
        else:
            log.info("%s notification %s: %s (%s)", verb, notification.title,
                     notification.body, notification.id)
        return True
