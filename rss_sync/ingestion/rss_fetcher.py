"""
RSS Feed Fetcher
================

One HTTP GET per call, nothing more. Every failure mode (connection
refused, DNS, timeout, 4xx/5xx) comes back as a FetchError so the pipeline
has a single thing to catch.

No retries here. A pass that fails to fetch is cheap to re-run, and the
caller decides how often.
"""

import logging
from typing import Optional

import requests

from rss_sync.errors import FetchError

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "rss-sync/0.1"


class FeedFetcher:
    """
    Fetches raw feed documents.

    Holds a requests.Session so repeated passes reuse the connection pool.
    Tests hand in their own session object.
    """

    def __init__(
        self,
        timeout: float = 15.0,
        user_agent: str = DEFAULT_USER_AGENT,
        session: Optional[requests.Session] = None,
    ):
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({
            "User-Agent": user_agent,
            "Accept": "application/rss+xml, application/xml;q=0.9, */*;q=0.8",
        })

    def fetch(self, url: str) -> bytes:
        """
        GET the feed and return the response body as bytes.

        Bytes, not text: feedparser reads the XML declaration and the
        encoding sniffing is better left to it.
        """
        logger.info("Fetching feed %s", url)

        try:
            response = self.session.get(url, timeout=self.timeout)
        except requests.exceptions.Timeout as e:
            raise FetchError(f"timed out after {self.timeout}s fetching {url}", url=url) from e
        except requests.exceptions.RequestException as e:
            raise FetchError(f"network error fetching {url}: {e}", url=url) from e

        try:
            response.raise_for_status()
        except requests.exceptions.HTTPError as e:
            raise FetchError(
                f"HTTP {response.status_code} fetching {url}",
                url=url,
                status_code=response.status_code,
            ) from e

        body = response.content
        logger.info("Fetched %d bytes from %s", len(body), url)
        return body

    def close(self) -> None:
        self.session.close()
