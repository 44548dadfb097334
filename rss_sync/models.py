"""
Data Model
==========

FeedItem is what the parser hands over: one normalized RSS item, alive for
one pass only. ArticleRecord is what the store keeps: the same fields plus
the time of the last successful write.

The parser library returns loosely-typed nested dicts. Everything past the
parser works on these models instead, so a missing key can't leak into the
store as None.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class FeedItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    identifier: str
    title: str = ""
    description: str = ""
    link: str = ""
    published_at: str = ""

    @field_validator("identifier")
    @classmethod
    def identifier_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("identifier must be non-empty")
        return value

    def content_fields(self) -> dict:
        """Fields compared to decide between updated and unchanged."""
        return {
            "title": self.title,
            "description": self.description,
            "link": self.link,
            "published_at": self.published_at,
        }


class ArticleRecord(FeedItem):
    imported_at: str


class Outcome(str, Enum):
    INSERTED = "inserted"
    UPDATED = "updated"
    UNCHANGED = "unchanged"
    FAILED = "failed"


class ItemResult(BaseModel):
    identifier: str
    outcome: Outcome
    error: str = ""


class SyncState(str, Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    PARSING = "parsing"
    PERSISTING = "persisting"
    DONE = "done"
    FAILED = "failed"


class SyncSummary(BaseModel):
    """Result of one sync pass. Counts always add up to `fetched`."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    url: str
    state: SyncState = SyncState.IDLE
    fetched: int = 0
    inserted: int = 0
    updated: int = 0
    unchanged: int = 0
    failed: int = 0
    error: Optional[Exception] = None
    items: list[ItemResult] = Field(default_factory=list)
    started_at: str = Field(default_factory=utc_now_iso)
    finished_at: str = ""

    @property
    def ok(self) -> bool:
        return self.state == SyncState.DONE

    def record(self, result: ItemResult) -> None:
        self.items.append(result)
        if result.outcome == Outcome.INSERTED:
            self.inserted += 1
        elif result.outcome == Outcome.UPDATED:
            self.updated += 1
        elif result.outcome == Outcome.UNCHANGED:
            self.unchanged += 1
        else:
            self.failed += 1

    def as_dict(self) -> dict:
        """Flat, log-friendly view of the summary."""
        return {
            "url": self.url,
            "state": self.state.value,
            "fetched": self.fetched,
            "inserted": self.inserted,
            "updated": self.updated,
            "unchanged": self.unchanged,
            "failed": self.failed,
            "error": repr(self.error) if self.error else None,
        }
