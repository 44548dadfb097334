"""
RSS Parser + Normalization
==========================

1. PARSING
   feedparser does the XML work: RSS 0.9x/2.0, RDF and Atom, element names
   lowercased, every item list returned as a list (a channel with one
   <item> is still a one-element list). What comes back is a loose
   FeedParserDict, so we never pass it further than this module.

2. NORMALIZATION
   Each entry is mapped field by field into a FeedItem:
     guid / atom id   -> identifier   (required, item dropped if missing)
     title            -> title        (default "")
     description      -> description  (default "")
     link             -> link         (default "")
     pubDate          -> published_at (ISO-8601 UTC, raw string if the
                                       date won't parse, "" if missing)

3. WHAT IS FATAL
   A broken document fails the whole pass with ParseError: bytes that are
   not well-formed XML, XML that is not a feed, or a feed without its channel
   container (<channel>, or <feed> for Atom). An empty channel is fine.
   We never hand back half a parse.
"""

import io
import logging
import re
from datetime import datetime, timezone
from typing import Optional, Union

import feedparser
from feedparser.exceptions import (
    CharacterEncodingOverride,
    NonXMLContentType,
    UndeclaredNamespace,
)

from rss_sync.errors import ParseError
from rss_sync.models import FeedItem

logger = logging.getLogger(__name__)

# bozo exceptions feedparser raises for documents it still reads correctly
_TOLERATED_BOZO = (CharacterEncodingOverride, NonXMLContentType, UndeclaredNamespace)

# container element each feed family must have, with or without a prefix
_CHANNEL_RE = re.compile(rb"<(?:[\w.-]+:)?channel[\s>/]", re.IGNORECASE)
_ATOM_FEED_RE = re.compile(rb"<(?:[\w.-]+:)?feed[\s>/]", re.IGNORECASE)


def has_container(raw: bytes, version: str) -> bool:
    """
    feedparser happily reads <item>s sitting straight under <rss>, so the
    channel has to be looked for in the document itself.
    """
    if version.startswith("atom"):
        return bool(_ATOM_FEED_RE.search(raw))
    return bool(_CHANNEL_RE.search(raw))


def _text(entry, key: str) -> str:
    value = entry.get(key)
    if value is None:
        return ""
    return str(value).strip()


def normalize_published(entry) -> str:
    """
    feedparser gives us both the raw date string and a parsed UTC
    struct_time. Prefer the parsed one; a date it can't read is kept as
    the opaque string so the item still goes through.
    """
    for key in ("published", "updated"):
        parsed = entry.get(f"{key}_parsed")
        if parsed:
            try:
                return datetime(*parsed[:6], tzinfo=timezone.utc).isoformat()
            except (ValueError, TypeError):
                pass
        raw = _text(entry, key)
        if raw:
            return raw
    return ""


def normalize_entry(entry) -> Optional[FeedItem]:
    """Map one feedparser entry into a FeedItem, or None if it has no id."""
    identifier = _text(entry, "id")
    if not identifier:
        return None

    return FeedItem(
        identifier=identifier,
        title=_text(entry, "title"),
        description=_text(entry, "summary"),
        link=_text(entry, "link"),
        published_at=normalize_published(entry),
    )


def parse_feed(raw: Union[bytes, str]) -> list[FeedItem]:
    """
    Parse a raw feed document into FeedItems, in document order.

    Zero items is a valid result. Items without an identifier are dropped
    and logged; they are not an error.
    """
    if isinstance(raw, str):
        raw = raw.encode("utf-8")
    if not raw or not raw.strip():
        raise ParseError("empty feed document")

    # BytesIO so feedparser never mistakes the document for a URL or path
    parsed = feedparser.parse(io.BytesIO(raw))

    if parsed.get("bozo"):
        exc = parsed.get("bozo_exception")
        if not isinstance(exc, _TOLERATED_BOZO):
            raise ParseError(f"feed document is not well-formed: {exc}") from exc
        logger.debug("Tolerating feed quirk: %s", exc)

    version = parsed.get("version")
    if not version:
        raise ParseError("document is not a recognized RSS/Atom feed")
    if not has_container(raw, version):
        raise ParseError(f"{version} document has no channel container")

    entries = parsed.get("entries") or []

    items = []
    for position, entry in enumerate(entries):
        item = normalize_entry(entry)
        if item is None:
            logger.warning(
                "Dropping item #%d without identifier (title=%r, link=%r)",
                position, _text(entry, "title"), _text(entry, "link"),
            )
            continue
        items.append(item)

    logger.info("Parsed %d items (%d dropped) from %s feed",
                len(items), len(entries) - len(items), version)
    return items
