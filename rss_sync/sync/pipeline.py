"""
Sync Pipeline
=============

One pass over one feed:

    idle -> fetching -> parsing -> persisting -> done
                |          |
                +----------+---> failed   (nothing persisted)

Fetch and parse failures end the pass. Once parsing succeeds the pass
always reaches `done`: an item the store refuses is counted as failed
and the next item is tried. There is no cross-item transaction, so a pass
can leave some items written and others not. Running the pass again
converges because every write is an idempotent upsert.

The store connection is opened before fetching and released on every
exit path, including fetch/parse failure and Ctrl-C.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Optional

from rss_sync.errors import FetchError, ParseError, StorageError
from rss_sync.ingestion.rss_fetcher import FeedFetcher
from rss_sync.ingestion.rss_parser import parse_feed
from rss_sync.models import FeedItem, ItemResult, Outcome, SyncState, SyncSummary, utc_now_iso
from rss_sync.storage.article_repository import ArticleRepository

logger = logging.getLogger(__name__)


class SyncPipeline:

    def __init__(
        self,
        repository: ArticleRepository,
        fetcher: Optional[FeedFetcher] = None,
        parser: Callable[[bytes], list[FeedItem]] = parse_feed,
        max_workers: int = 1,
    ):
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self.repository = repository
        self.fetcher = fetcher or FeedFetcher()
        self.parser = parser
        self.max_workers = max_workers

    def run(self, url: str) -> SyncSummary:
        """Run one pass. Never raises for Fetch/Parse/Storage errors."""
        summary = SyncSummary(url=url)
        logger.info("Sync pass starting: %s", url)

        opened_here = not self.repository.is_open
        try:
            if opened_here:
                self.repository.open()
        except StorageError as e:
            self._fail(summary, e)
            return summary

        try:
            self._run_pass(url, summary)
        finally:
            if opened_here:
                self.repository.close()
            summary.finished_at = utc_now_iso()

        if summary.ok:
            logger.info("Sync pass done: %s", summary.as_dict())
        return summary

    def _fail(self, summary: SyncSummary, error: Exception) -> None:
        logger.error("Sync pass failed while %s: %s", summary.state.value, error)
        summary.state = SyncState.FAILED
        summary.error = error
        summary.finished_at = utc_now_iso()

    def _run_pass(self, url: str, summary: SyncSummary) -> None:
        summary.state = SyncState.FETCHING
        try:
            raw = self.fetcher.fetch(url)
        except FetchError as e:
            self._fail(summary, e)
            return

        summary.state = SyncState.PARSING
        try:
            items = self.parser(raw)
        except ParseError as e:
            self._fail(summary, e)
            return

        summary.state = SyncState.PERSISTING
        summary.fetched = len(items)
        for result in self._persist(items):
            summary.record(result)
        summary.state = SyncState.DONE

    # ──────────────────────────────────────────────
    # Persisting
    # ──────────────────────────────────────────────

    def _upsert_one(self, item: FeedItem) -> ItemResult:
        try:
            outcome = self.repository.upsert(item)
        except StorageError as e:
            logger.warning("Item %s not stored: %s", item.identifier, e)
            return ItemResult(identifier=item.identifier, outcome=Outcome.FAILED, error=str(e))
        return ItemResult(identifier=item.identifier, outcome=outcome)

    def _upsert_group(self, group: list[tuple[int, FeedItem]]) -> list[tuple[int, ItemResult]]:
        return [(position, self._upsert_one(item)) for position, item in group]

    def _persist(self, items: list[FeedItem]) -> list[ItemResult]:
        """Upsert every item and return the results in feed order."""
        if self.max_workers == 1 or len(items) < 2:
            return [self._upsert_one(item) for item in items]

        # a feed can repeat an identifier; those upserts stay sequential,
        # in feed order, inside one task
        groups: dict[str, list[tuple[int, FeedItem]]] = {}
        for position, item in enumerate(items):
            groups.setdefault(item.identifier, []).append((position, item))

        results: list[Optional[ItemResult]] = [None] * len(items)
        executor = ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="rss-sync")
        try:
            futures = [executor.submit(self._upsert_group, group) for group in groups.values()]
            for future in futures:
                for position, result in future.result():
                    results[position] = result
        except BaseException:
            # committed upserts stay committed, queued ones are dropped
            executor.shutdown(wait=True, cancel_futures=True)
            raise
        executor.shutdown(wait=True)
        return results
