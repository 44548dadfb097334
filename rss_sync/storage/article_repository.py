"""
Article Repository
==================

Idempotent upsert of feed items into a chroma collection, one record per
identifier.

  no record            -> insert, stamp imported_at        -> INSERTED
  record, fields differ -> overwrite every field, stamp    -> UPDATED
  record, same fields  -> stamp imported_at only           -> UNCHANGED

imported_at is a "last seen by a sync pass" marker, so it moves forward
even when nothing else changed.

Chroma has no compare-and-set. The read-compare-write for one identifier
runs under a lock keyed by that identifier, which makes concurrent
upserts of the same item inside this process safe. Separate processes
writing the same collection get last-writer-wins.
"""

import logging
import threading
from typing import Optional

from rss_sync.db import get_article_collection, get_chroma_client, parse_store_url
from rss_sync.embedding.embedder import EmbedFunction, SentenceEmbedder, article_text
from rss_sync.errors import ConfigurationError, StorageError
from rss_sync.ingestion.sources import DEFAULT_COLLECTION
from rss_sync.models import ArticleRecord, FeedItem, Outcome, utc_now_iso

logger = logging.getLogger(__name__)


class ArticleRepository:
    """
    Use as a context manager so the connection is released on every path:

        with ArticleRepository("memory://") as repo:
            repo.upsert(item)
    """

    def __init__(
        self,
        store_url: str,
        collection_name: str = DEFAULT_COLLECTION,
        embed: Optional[EmbedFunction] = None,
        embedding_model: str = "all-MiniLM-L6-v2",
    ):
        if not store_url:
            raise ConfigurationError("ArticleRepository needs a store connection string")
        self.store_url = store_url
        self.collection_name = collection_name
        self.embed = embed or SentenceEmbedder(embedding_model)

        self._client = None
        self._collection = None
        self._locks: dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    # ──────────────────────────────────────────────
    # Connection lifetime
    # ──────────────────────────────────────────────

    def open(self) -> "ArticleRepository":
        if self._collection is not None:
            return self
        try:
            self._client = get_chroma_client(self.store_url)
            self._collection = get_article_collection(self._client, self.collection_name)
        except ConfigurationError:
            raise
        except Exception as e:
            self._client = None
            raise StorageError(f"cannot connect to article store: {e}") from e
        logger.info("Article store open: collection %r (%d records)",
                    self.collection_name, self._collection.count())
        return self

    def close(self) -> None:
        if self._client is None:
            return
        client = self._client
        self._collection = None
        self._client = None
        # in-memory clients share one process-wide system; only servers and
        # on-disk stores hold something of ours to let go of
        if parse_store_url(self.store_url).mode != "memory":
            release = getattr(client, "close", None)
            if callable(release):
                try:
                    release()
                except Exception as e:
                    logger.warning("Error releasing article store connection: %s", e)
        with self._locks_guard:
            self._locks.clear()
        logger.info("Article store closed")

    @property
    def is_open(self) -> bool:
        return self._collection is not None

    def __enter__(self) -> "ArticleRepository":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _require_collection(self, identifier: str = ""):
        if self._collection is None:
            raise StorageError("article store is not open", identifier=identifier)
        return self._collection

    def _lock_for(self, identifier: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(identifier)
            if lock is None:
                lock = self._locks[identifier] = threading.Lock()
            return lock

    # ──────────────────────────────────────────────
    # Reads
    # ──────────────────────────────────────────────

    def _stored_metadata(self, identifier: str) -> Optional[dict]:
        collection = self._require_collection(identifier)
        try:
            found = collection.get(ids=[identifier], include=["metadatas"])
        except Exception as e:
            raise StorageError(f"read failed for {identifier!r}: {e}", identifier=identifier) from e
        if not found["ids"]:
            return None
        return found["metadatas"][0] or {}

    def get(self, identifier: str) -> Optional[ArticleRecord]:
        stored = self._stored_metadata(identifier)
        if stored is None:
            return None
        return ArticleRecord(
            identifier=identifier,
            title=stored.get("title", ""),
            description=stored.get("description", ""),
            link=stored.get("link", ""),
            published_at=stored.get("published_at", ""),
            imported_at=stored.get("imported_at", ""),
        )

    def count(self) -> int:
        collection = self._require_collection()
        try:
            return collection.count()
        except Exception as e:
            raise StorageError(f"count failed: {e}") from e

    # ──────────────────────────────────────────────
    # Upsert
    # ──────────────────────────────────────────────

    def upsert(self, item: FeedItem) -> Outcome:
        """
        Insert or update one item. Raises StorageError if the store can't
        be read or written; nothing else about the pass is affected.
        """
        identifier = item.identifier
        collection = self._require_collection(identifier)

        with self._lock_for(identifier):
            stored = self._stored_metadata(identifier)
            fields = item.content_fields()

            if stored is None:
                outcome = Outcome.INSERTED
            elif any(stored.get(key, "") != value for key, value in fields.items()):
                outcome = Outcome.UPDATED
            else:
                outcome = Outcome.UNCHANGED

            metadata = {**fields, "imported_at": utc_now_iso()}

            try:
                if outcome == Outcome.UNCHANGED:
                    # content and vector are already right, refresh the stamp
                    collection.update(ids=[identifier], metadatas=[metadata])
                else:
                    collection.upsert(
                        ids=[identifier],
                        embeddings=self.embed([article_text(item)]),
                        metadatas=[metadata],
                    )
            except Exception as e:
                raise StorageError(f"write failed for {identifier!r}: {e}", identifier=identifier) from e

        logger.debug("Upserted %s: %s", identifier, outcome.value)
        return outcome
