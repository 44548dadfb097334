"""
Article Embedding
=================

Chroma stores a vector next to every record, so each article we write
needs one. We embed "title + description" with all-MiniLM-L6-v2: small,
CPU-only, 384 dimensions.

The model is loaded lazily on the first write. A pass where every item
fails before reaching the store never pays the ~2s load.
"""

import logging
import threading
from typing import Callable, Optional, Sequence

from sentence_transformers import SentenceTransformer

from rss_sync.models import FeedItem

logger = logging.getLogger(__name__)

EmbedFunction = Callable[[Sequence[str]], list]


def load_embedding_model(model_name: str = "all-MiniLM-L6-v2") -> SentenceTransformer:
    """
    Load the sentence-transformers embedding model.

    First call downloads the model (~80MB). Subsequent calls use cache.
    """
    logger.info("Loading embedding model: %s", model_name)
    model = SentenceTransformer(model_name)
    logger.info("Model loaded. Embedding dimension: %s", model.get_sentence_embedding_dimension())
    return model


def article_text(item: FeedItem) -> str:
    return f"{item.title}\n\n{item.description}".strip()


class SentenceEmbedder:
    """Callable texts -> vectors, backed by a lazily loaded model."""

    def __init__(self, model_name: str = "all-MiniLM-L6-v2"):
        self.model_name = model_name
        self._model: Optional[SentenceTransformer] = None
        self._load_lock = threading.Lock()

    def __call__(self, texts: Sequence[str]) -> list:
        with self._load_lock:
            if self._model is None:
                self._model = load_embedding_model(self.model_name)
        return self._model.encode(list(texts), show_progress_bar=False).tolist()
