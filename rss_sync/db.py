# rss_sync/db.py
import logging
import os
from typing import NamedTuple
from urllib.parse import urlparse

import chromadb

from rss_sync.errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_HTTP_PORT = 8000


class StoreLocation(NamedTuple):
    mode: str  # "http", "memory" or "local"
    host: str = ""
    port: int = DEFAULT_HTTP_PORT
    ssl: bool = False
    path: str = ""


def parse_store_url(store_url: str) -> StoreLocation:
    """
    Connection string -> where the chroma store lives.

      http://chromadb:8000    chroma server
      https://chroma.example  chroma server over TLS
      memory://               in-process, gone when the process exits
      file:///data/articles   on-disk store
      data/articles           on-disk store, relative path
    """
    if not store_url:
        raise ConfigurationError("store connection string is empty")

    parsed = urlparse(store_url)
    scheme = parsed.scheme.lower()

    if scheme in ("http", "https"):
        if not parsed.hostname:
            raise ConfigurationError(f"no host in store URL {store_url!r}")
        try:
            port = parsed.port or (443 if scheme == "https" else DEFAULT_HTTP_PORT)
        except ValueError:
            raise ConfigurationError(f"bad port in store URL {store_url!r}") from None
        return StoreLocation("http", host=parsed.hostname, port=port, ssl=scheme == "https")
    if scheme == "memory":
        return StoreLocation("memory")
    if scheme == "file":
        return StoreLocation("local", path=parsed.path)
    # one-letter schemes are Windows drive letters
    if scheme == "" or len(scheme) == 1:
        return StoreLocation("local", path=store_url)

    raise ConfigurationError(f"unsupported store scheme {scheme!r} in {store_url!r}")


def get_chroma_client(store_url: str):
    location = parse_store_url(store_url)

    if location.mode == "http":
        logger.info("ChromaDB mode: HTTP (%s:%s)", location.host, location.port)
        return chromadb.HttpClient(host=location.host, port=location.port, ssl=location.ssl)
    if location.mode == "memory":
        logger.info("ChromaDB mode: in-memory")
        return chromadb.EphemeralClient()

    os.makedirs(location.path, exist_ok=True)
    logger.info("ChromaDB mode: local (%s)", location.path)
    return chromadb.PersistentClient(path=location.path)


def get_article_collection(client, collection_name: str) -> chromadb.Collection:
    # vectors are computed by us, never by chroma's default embedding function
    return client.get_or_create_collection(
        name=collection_name,
        metadata={"hnsw:space": "cosine"},
        embedding_function=None,
    )
