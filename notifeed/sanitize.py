"""String-level repair of common well-formedness defects in feed XML.

Kept behind ``sanitize(bytes) -> bytes`` so a tolerant tokenizer can replace
it later without touching the parser.
"""

import re
import logging

log = logging.getLogger("notifeed.sanitize")

_NBSP = "&nbsp;"
_TWO_DIGIT_CHAR_REF = re.compile(r"&#\d{2};")
_UNKNOWN_NAMED_ENTITY = re.compile(r"&(?!(?:amp|lt|gt|quot|apos);)[A-Za-z][A-Za-z0-9]*;")
_BARE_AMPERSAND = re.compile(r"&(?!(?:amp|lt|gt|quot|apos|#\d+|#[xX][0-9a-fA-F]+);)")
_BARE_BR = re.compile(r"<br\s*>", re.I)


def decode_best_effort(data: bytes) -> str:
    text = data.decode("utf-8", errors="replace")
    if "\ufffd" in text:
        log.debug("Feed body is not valid UTF-8, undecodable bytes replaced.")
    return text.lstrip("\ufeff")


def sanitize_text(text: str) -> str:
    text = text.replace(_NBSP, "")
    text = _TWO_DIGIT_CHAR_REF.sub("", text)
    text = _UNKNOWN_NAMED_ENTITY.sub("", text)
    text = _BARE_AMPERSAND.sub("&amp;", text)
    text = _BARE_BR.sub("<br/>", text)
    return text


def sanitize(data: bytes) -> bytes:
    """Return a UTF-8 byte string the structural parser can digest."""
    return sanitize_text(decode_best_effort(data)).encode("utf-8")
