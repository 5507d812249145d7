import re
import html
from typing import List, Optional
from urllib.parse import urlparse

from bs4 import BeautifulSoup

ELLIPSIS = "…"

_SENTENCE_END = re.compile(r"(?<=[.!?…])\s+")
_HOST_PREFIXES = ("www.", "feeds.", "feed.", "rss.")


def truncate_text(text: Optional[str], limit: int) -> str:
    text = text or ""
    if len(text) > limit:
        return text[:max(0, limit)] + ELLIPSIS
    return text


def truncate_at_word(text: Optional[str], limit: int) -> str:
    """Cut to ``limit`` characters on a word boundary and mark the cut."""
    text = (text or "").strip()
    if len(text) <= limit:
        return text
    candidate = text[:limit]
    last_space = candidate.rfind(" ")
    if last_space > 0:
        candidate = candidate[:last_space]
    return candidate.strip() + ELLIPSIS


def strip_html_to_text(raw_html: Optional[str]) -> str:
    raw_html = raw_html or ""
    if "<" not in raw_html and "&" not in raw_html:
        return raw_html.strip()
    text = BeautifulSoup(raw_html, "html.parser").get_text("\n")
    text = html.unescape(text)
    text = re.sub(r"[ \t\r\f\v]+", " ", text)
    text = re.sub(r" *\n *", "\n", text)
    text = re.sub(r"\n{3,}", "\n\n", text).strip()
    return text


def single_line(text: Optional[str]) -> str:
    return re.sub(r"\s+", " ", text or "").strip()


def split_sentences(text: Optional[str]) -> List[str]:
    return [s.strip() for s in _SENTENCE_END.split(single_line(text)) if s.strip()]


def first_sentences(text: Optional[str], count: int = 2) -> str:
    return " ".join(split_sentences(text)[:count])


def host_of(url: Optional[str]) -> Optional[str]:
    try:
        host = urlparse(url or "").hostname
    except ValueError:
        return None
    return host.lower() if host else None


def base_domain(host: Optional[str]) -> Optional[str]:
    """Registrable-domain guess: drop one feed-ish prefix, keep the last two labels."""
    if not host:
        return None
    h = host.lower()
    for prefix in _HOST_PREFIXES:
        if h.startswith(prefix):
            h = h[len(prefix):]
            break
    parts = [p for p in h.split(".") if p]
    if len(parts) >= 2:
        return ".".join(parts[-2:])
    return h or None
