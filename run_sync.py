"""
CLI entry point. Runs one sync pass and prints the summary.
Logic lives in rss_sync/, this just wires it up.

Usage:
    python run_sync.py                 # FEED_URL from .env, or El País
    python run_sync.py <feed_url>
"""
import argparse
import logging
import sys
from datetime import datetime, timezone

from rss_sync.config import load_settings
from rss_sync.errors import ConfigurationError
from rss_sync.ingestion.rss_fetcher import FeedFetcher
from rss_sync.models import SyncSummary
from rss_sync.storage.article_repository import ArticleRepository
from rss_sync.sync.pipeline import SyncPipeline


def print_summary(summary: SyncSummary) -> None:
    print(f"\n{'='*50}")
    print(f"RSS Sync: {datetime.now(timezone.utc).strftime('%Y-%m-%d %H:%M UTC')}")
    print(f"{'='*50}")
    print(f"Feed:       {summary.url}")
    print(f"State:      {summary.state.value}")
    print(f"  Items fetched:  {summary.fetched}")
    print(f"  Inserted:       {summary.inserted}")
    print(f"  Updated:        {summary.updated}")
    print(f"  Unchanged:      {summary.unchanged}")
    print(f"  Failed:         {summary.failed}")
    for result in summary.items:
        if result.error:
            print(f"    {result.identifier}: {result.error}")
    if summary.error:
        print(f"Error:      {type(summary.error).__name__}: {summary.error}")
    print(f"{'='*50}\n")


def main(argv=None) -> int:
    arg_parser = argparse.ArgumentParser(description="Sync one RSS feed into the article store.")
    arg_parser.add_argument("feed_url", nargs="?", help="feed to sync (default: FEED_URL)")
    args = arg_parser.parse_args(argv)

    try:
        settings = load_settings()
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    repository = ArticleRepository(
        settings.store_url,
        collection_name=settings.collection_name,
        embedding_model=settings.embedding_model,
    )
    fetcher = FeedFetcher(timeout=settings.fetch_timeout)
    pipeline = SyncPipeline(repository, fetcher=fetcher, max_workers=settings.workers)

    try:
        summary = pipeline.run(args.feed_url or settings.feed_url)
    finally:
        fetcher.close()

    print_summary(summary)
    return 0 if summary.ok else 1


if __name__ == "__main__":
    sys.exit(main())
