import asyncio
import html as htmlmod
import logging
from typing import Optional, Set

import aiohttp

from notifeed.models import Notification
from notifiers.base import Notifier

log = logging.getLogger("notifeed.notifier.telegram")


def build_message(notification: Notification) -> str:
    parts = [f"📰 <b>{htmlmod.escape(notification.title)}</b>"]
    if notification.subtitle:
        parts.append(f"<i>{htmlmod.escape(notification.subtitle)}</i>")
    parts.append("")
    parts.append(htmlmod.escape(notification.body))
    if notification.id.startswith(("http://", "https://")):
        parts.append("")
        parts.append(f"👉 <a href='{htmlmod.escape(notification.id)}'>Read the article</a>")
    return "\n".join(parts).strip()


class TelegramNotifier(Notifier):
    """Sends notifications to a Telegram chat. Ids already sent by this process are skipped."""

    name = "telegram"

    def __init__(self, token: str, chat_id: str, timeout: float = 20,
                 session: Optional[aiohttp.ClientSession] = None):
        self.token = token
        self.chat_id = chat_id
        self.timeout = timeout
        self._session = session
        self._sent: Set[str] = set()

    async def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=self.timeout)
            self._session = aiohttp.ClientSession(timeout=timeout)
        return self._session

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()

    async def present(self, notification: Notification) -> bool:
        if notification.id in self._sent:
            log.debug("Already sent: %s", notification.id)
            return True

        endpoint = f"https://api.telegram.org/bot{self.token}/sendMessage"
        payload = {
            "chat_id": self.chat_id,
            "text": build_message(notification),
            "parse_mode": "HTML",
            "disable_web_page_preview": "false",
        }
        try:
            sess = await self._ensure_session()
            async with sess.post(endpoint, data=payload) as resp:
                if resp.status != 200:
                    body = await resp.text()
                    log.warning("Telegram error status=%s body=%s", resp.status, body[:600])
                    return False
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            log.warning("Telegram exception: %s", e)
            return False

        self._sent.add(notification.id)
        return True
