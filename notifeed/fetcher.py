import asyncio
import logging
from typing import Dict, List, Optional, Sequence, Tuple

import aiohttp

from notifeed.models import EnrichedEntry, FeedSource, RawEntry
from notifeed.monitoring import HealthMonitor
from notifeed.parser import FeedParser

log = logging.getLogger("notifeed.fetcher")

FetchResults = Dict[str, List[EnrichedEntry]]


def enrich_entries(raw_entries: Sequence[RawEntry], source: FeedSource) -> List[EnrichedEntry]:
    """Stamp source metadata; entries without a link never leave this function."""
    out: List[EnrichedEntry] = []
    for raw in raw_entries:
        if not raw.link:
            log.debug("%s: dropping entry without link (%r).", source.url, raw.title)
            continue
        out.append(EnrichedEntry.from_raw(raw, source))
    return out


class FeedFetcher:
    """One bounded GET per feed, all feeds concurrently, failures isolated per feed."""

    def __init__(self, timeout: float = 12, parser: Optional[FeedParser] = None,
                 monitor: Optional[HealthMonitor] = None,
                 session: Optional[aiohttp.ClientSession] = None):
        self.timeout = timeout
        self.parser = parser or FeedParser()
        self.monitor = monitor or HealthMonitor()
        self._session = session
        self._owns_session = session is None

    async def _ensure_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=self.timeout)
            self._session = aiohttp.ClientSession(timeout=timeout)
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        if self._owns_session and self._session and not self._session.closed:
            await self._session.close()

    async def _get_bytes(self, url: str) -> bytes:
        sess = await self._ensure_session()
        timeout = aiohttp.ClientTimeout(total=self.timeout)
        async with sess.get(url, timeout=timeout) as resp:
            resp.raise_for_status()
            return await resp.read()

    async def fetch_one(self, source: FeedSource) -> Tuple[List[EnrichedEntry], bool]:
        try:
            body = await self._get_bytes(source.url)
        except asyncio.TimeoutError:
            log.warning("%s: timed out after %ss.", source.url, self.timeout)
            self.monitor.record_failure(source.url)
            return [], False
        except (aiohttp.ClientError, ValueError) as e:
            log.warning("%s: fetch failed: %s", source.url, e)
            self.monitor.record_failure(source.url)
            return [], False
        except Exception:
            log.exception("%s: unexpected fetch failure.", source.url)
            self.monitor.record_failure(source.url)
            return [], False

        try:
            raw_entries = self.parser.parse(body)
        except Exception:
            log.exception("%s: unexpected parser failure.", source.url)
            self.monitor.record_failure(source.url)
            return [], False

        self.monitor.record_success(source.url)
        entries = enrich_entries(raw_entries, source)
        log.info("%s: %d entries.", source.url, len(entries))
        return entries, True

    async def fetch_all_with_status(self, sources: Sequence[FeedSource]) -> Tuple[FetchResults, List[str]]:
        unique: Dict[str, FeedSource] = {}
        for source in sources:
            unique.setdefault(source.url, source)
        targets = list(unique.values())

        outcomes = await asyncio.gather(*(self.fetch_one(s) for s in targets))

        results: FetchResults = {}
        failed: List[str] = []
        for source, (entries, ok) in zip(targets, outcomes):
            results[source.url] = entries
            if not ok:
                failed.append(source.url)
        return results, failed

    async def fetch_all(self, sources: Sequence[FeedSource]) -> FetchResults:
        results, _ = await self.fetch_all_with_status(sources)
        return results
