from abc import ABC, abstractmethod

from notifeed.models import Notification


class Notifier(ABC):
    name: str

    @abstractmethod
    async def present(self, notification: Notification) -> bool:
        ...

    async def close(self) -> None:
        return None
