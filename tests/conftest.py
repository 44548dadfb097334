"""Shared fixtures: a fresh in-memory article store per test."""
import uuid

import pytest

from rss_sync.storage.article_repository import ArticleRepository


def fake_embed(texts):
    # deterministic, never all-zero (cosine space)
    return [[float(len(t)) + 1.0, 1.0, 0.5] for t in texts]


def unique_collection_name() -> str:
    return f"test_{uuid.uuid4().hex[:12]}"


@pytest.fixture
def embed():
    return fake_embed


@pytest.fixture
def collection_name():
    return unique_collection_name()


@pytest.fixture
def repo(collection_name):
    repository = ArticleRepository("memory://", collection_name=collection_name, embed=fake_embed)
    with repository:
        yield repository
