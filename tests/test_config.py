"""Tests for settings loading, store URL parsing and the CLI entry point."""
import pytest
from pydantic import ValidationError

import run_sync
from rss_sync.config import load_settings
from rss_sync.db import parse_store_url
from rss_sync.errors import ConfigurationError, FetchError
from rss_sync.ingestion.sources import DEFAULT_FEED_URL
from rss_sync.storage.article_repository import ArticleRepository


def test_missing_store_url_raises():
    with pytest.raises(ConfigurationError):
        load_settings({})

def test_blank_store_url_raises():
    with pytest.raises(ConfigurationError):
        load_settings({"ARTICLE_STORE_URL": "   "})

def test_defaults():
    settings = load_settings({"ARTICLE_STORE_URL": "memory://"})
    assert settings.store_url == "memory://"
    assert settings.collection_name == "articles"
    assert settings.feed_url == DEFAULT_FEED_URL
    assert settings.fetch_timeout == 15.0
    assert settings.workers == 1
    assert settings.log_level == "INFO"

def test_overrides():
    settings = load_settings({
        "ARTICLE_STORE_URL": "http://chromadb:8000",
        "ARTICLE_COLLECTION": "elpais",
        "FEED_URL": "https://example.com/feed.xml",
        "FETCH_TIMEOUT": "2.5",
        "SYNC_WORKERS": "4",
        "LOG_LEVEL": "debug",
    })
    assert settings.collection_name == "elpais"
    assert settings.feed_url == "https://example.com/feed.xml"
    assert settings.fetch_timeout == 2.5
    assert settings.workers == 4
    assert settings.log_level == "DEBUG"

def test_bad_timeout_raises():
    with pytest.raises(ConfigurationError):
        load_settings({"ARTICLE_STORE_URL": "memory://", "FETCH_TIMEOUT": "soon"})

def test_zero_workers_raises():
    with pytest.raises(ConfigurationError):
        load_settings({"ARTICLE_STORE_URL": "memory://", "SYNC_WORKERS": "0"})

def test_unsupported_store_scheme_raises():
    with pytest.raises(ConfigurationError):
        load_settings({"ARTICLE_STORE_URL": "mongodb://localhost:27017"})


# ── Store URLs ──

def test_parse_http_store_url():
    location = parse_store_url("http://chromadb:8001")
    assert (location.mode, location.host, location.port, location.ssl) == ("http", "chromadb", 8001, False)

def test_parse_https_store_url_default_port():
    location = parse_store_url("https://chroma.example.com")
    assert (location.port, location.ssl) == (443, True)

def test_parse_memory_store_url():
    assert parse_store_url("memory://").mode == "memory"

def test_parse_file_store_url():
    location = parse_store_url("file:///data/articles")
    assert (location.mode, location.path) == ("local", "/data/articles")

def test_parse_bare_path_store_url():
    location = parse_store_url("data/articles")
    assert (location.mode, location.path) == ("local", "data/articles")


# ── CLI ──

class CannedFetcher:
    document = (
        b'<?xml version="1.0"?><rss version="2.0"><channel><title>T</title>'
        b'<item><title>One</title><guid isPermaLink="false">one</guid></item>'
        b"</channel></rss>"
    )

    def __init__(self, timeout=None):
        self.timeout = timeout

    def fetch(self, url):
        return self.document

    def close(self):
        pass


class DownFetcher(CannedFetcher):
    def fetch(self, url):
        raise FetchError("HTTP 500", url=url, status_code=500)


def _patch_cli(monkeypatch, fetcher_cls, embed, collection_name):
    monkeypatch.setenv("ARTICLE_STORE_URL", "memory://")
    monkeypatch.setattr(run_sync, "FeedFetcher", fetcher_cls)
    monkeypatch.setattr(
        run_sync,
        "ArticleRepository",
        lambda store_url, **kwargs: ArticleRepository(store_url, collection_name=collection_name, embed=embed),
    )

def test_cli_config_error_exit_code(monkeypatch):
    monkeypatch.setattr(run_sync, "load_settings", lambda: load_settings({}))
    assert run_sync.main([]) == 2

def test_cli_successful_pass(monkeypatch, capsys, embed, collection_name):
    _patch_cli(monkeypatch, CannedFetcher, embed, collection_name)
    assert run_sync.main(["https://example.com/feed.xml"]) == 0
    out = capsys.readouterr().out
    assert "State:      done" in out
    assert "Inserted:       1" in out

def test_cli_failed_pass(monkeypatch, capsys, embed, collection_name):
    _patch_cli(monkeypatch, DownFetcher, embed, collection_name)
    assert run_sync.main(["https://example.com/feed.xml"]) == 1
    assert "FetchError" in capsys.readouterr().out

def test_settings_are_frozen():
    settings = load_settings({"ARTICLE_STORE_URL": "memory://"})
    with pytest.raises(ValidationError):
        settings.workers = 3

def test_negative_timeout_raises():
    with pytest.raises(ConfigurationError):
        load_settings({"ARTICLE_STORE_URL": "memory://", "FETCH_TIMEOUT": "-1"})

def test_fractional_workers_raises():
    with pytest.raises(ConfigurationError):
        load_settings({"ARTICLE_STORE_URL": "memory://", "SYNC_WORKERS": "2.5"})

def test_blank_optional_values_use_defaults():
    settings = load_settings({"ARTICLE_STORE_URL": "memory://", "FETCH_TIMEOUT": "", "LOG_LEVEL": " "})
    assert settings.fetch_timeout == 15.0
    assert settings.log_level == "INFO"
