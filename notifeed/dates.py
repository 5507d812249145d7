"""Date normalization for the heterogeneous pubDate strings found in feeds.

``parse_date`` never raises. Anything it cannot read maps to ``DISTANT_PAST``,
a sentinel that sorts before every real timestamp.

Rules, first match wins:

1. ISO-8601 with fractional seconds and offset
2. ISO-8601 internet date-time
3. ISO-8601 date and time without zone (UTC)
4. RFC-822 with a four-digit year, after widening a two-digit year
5. RFC-822 with a literal two-digit year

Two-digit years always resolve inside the 100-year window that starts 80 years
before the current year, so ``25`` reads as 2025 and ``50`` as 1950 (in 2026).
"""

import re
import logging
import email.utils
from datetime import datetime, timezone
from functools import lru_cache
from typing import Optional

log = logging.getLogger("notifeed.dates")

DISTANT_PAST = datetime.min.replace(tzinfo=timezone.utc)

PIVOT_YEARS_BACK = 80

_ISO = re.compile(
    r"^(\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2})(?:\.(\d+))?(Z|[+-]\d{2}:?\d{2})?$",
    re.I,
)

_WEEKDAY = r"(?:Mon|Tue|Wed|Thu|Fri|Sat|Sun)"
_MONTH = r"(?:Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Oct|Nov|Dec)"

# Strict shape whose year field gets widened: "Tue, 25 Nov 25 12:34:56 GMT"
_RFC822_SHORT_YEAR_FIELD = re.compile(
    rf"^({_WEEKDAY},\s\d{{2}}\s{_MONTH}\s)(\d{{2}})(\s\d{{2}}:\d{{2}}:\d{{2}}\s[A-Za-z+\-0-9:]+)$",
    re.I,
)
# Any other two-digit year: "25 Nov 25 12:34 EST", "Tue,25 Nov 25 12:34"
_RFC822_SHORT_YEAR = re.compile(
    rf"^((?:{_WEEKDAY},?\s*)?\d{{1,2}}\s+{_MONTH}\s+)(\d{{2}})(\s+\d{{1,2}}:\d{{2}}.*)$",
    re.I,
)


def is_sentinel(value: Optional[datetime]) -> bool:
    return value is None or value == DISTANT_PAST


def expand_two_digit_year(yy: int, current_year: Optional[int] = None) -> int:
    """Place ``yy`` in the window [current_year - 80, current_year + 20)."""
    if current_year is None:
        current_year = datetime.now(timezone.utc).year
    start = current_year - PIVOT_YEARS_BACK
    year = start - start % 100 + yy
    if year < start:
        year += 100
    return year


def _widen_year(s: str, pattern: "re.Pattern[str]") -> Optional[str]:
    m = pattern.match(s)
    if not m:
        return None
    return f"{m.group(1)}{expand_two_digit_year(int(m.group(2)))}{m.group(3)}"


def _full_year_form(s: str) -> Optional[str]:
    widened = _widen_year(s, _RFC822_SHORT_YEAR_FIELD)
    if widened:
        return widened
    if _RFC822_SHORT_YEAR.match(s):
        # left to the next rule; email.utils has its own two-digit year pivot
        return None
    return s


def _parse_iso(s: str) -> Optional[datetime]:
    m = _ISO.match(s)
    if not m:
        return None
    base, fraction, zone = m.groups()
    text = base
    if fraction:
        text += "." + (fraction + "000000")[:6]
    if zone:
        if zone.upper() == "Z":
            zone = "+00:00"
        elif ":" not in zone:
            zone = f"{zone[:3]}:{zone[3:]}"
        text += zone
    return datetime.fromisoformat(text)


def _parse_rfc822(s: Optional[str]) -> Optional[datetime]:
    if not s:
        return None
    return email.utils.parsedate_to_datetime(s)


@lru_cache(maxsize=4096)
def parse_date(raw: Optional[str]) -> datetime:
    """Normalize a feed date string to an aware UTC datetime or DISTANT_PAST."""
    s = (raw or "").strip()
    if not s:
        return DISTANT_PAST

    attempts = (
        lambda: _parse_iso(s),
        lambda: _parse_rfc822(_full_year_form(s)),
        lambda: _parse_rfc822(_widen_year(s, _RFC822_SHORT_YEAR)),
    )
    for attempt in attempts:
        try:
            value = attempt()
            if value is None:
                continue
            if value.tzinfo is None:
                value = value.replace(tzinfo=timezone.utc)
            return value.astimezone(timezone.utc)
        except (TypeError, ValueError, OverflowError, IndexError):
            continue

    log.warning("Unparseable date: %r", s)
    return DISTANT_PAST
