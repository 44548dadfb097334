"""
Runtime configuration.

Values come from a .env file (python-dotenv) and the process environment,
and are resolved ONCE at startup into a Settings object. Core classes take
what they need as constructor arguments; nothing below the entry point
reads os.environ.
"""

import os
from typing import Mapping, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from rss_sync.db import parse_store_url
from rss_sync.errors import ConfigurationError
from rss_sync.ingestion.sources import DEFAULT_COLLECTION, DEFAULT_FEED_URL

# environment variable -> Settings field
ENV_FIELDS = {
    "ARTICLE_STORE_URL": "store_url",
    "ARTICLE_COLLECTION": "collection_name",
    "FEED_URL": "feed_url",
    "FETCH_TIMEOUT": "fetch_timeout",
    "SYNC_WORKERS": "workers",
    "EMBEDDING_MODEL": "embedding_model",
    "LOG_LEVEL": "log_level",
}


class Settings(BaseModel):
    model_config = ConfigDict(frozen=True)

    store_url: str
    collection_name: str = DEFAULT_COLLECTION
    feed_url: str = DEFAULT_FEED_URL
    fetch_timeout: float = Field(default=15.0, gt=0)
    workers: int = Field(default=1, gt=0)
    embedding_model: str = "all-MiniLM-L6-v2"
    log_level: str = "INFO"

    @field_validator("store_url")
    @classmethod
    def store_url_supported(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("ARTICLE_STORE_URL is not set")
        parse_store_url(value)
        return value

    @field_validator("log_level")
    @classmethod
    def upper_log_level(cls, value: str) -> str:
        return value.strip().upper()


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Build Settings from `env`, or from .env + os.environ when env is None.

    ARTICLE_STORE_URL is the only required value. Without it there is no
    store to sync into, so we refuse to start. Unset or blank variables
    fall back to the defaults.
    """
    if env is None:
        load_dotenv()
        env = os.environ

    values = {
        field: env[name]
        for name, field in ENV_FIELDS.items()
        if name in env and env[name].strip()
    }
    if "store_url" not in values:
        raise ConfigurationError("ARTICLE_STORE_URL is not set")

    try:
        return Settings(**values)
    except ValidationError as e:
        problems = "; ".join(
            f"{error['loc'][0] if error['loc'] else 'settings'}: {error['msg']}"
            for error in e.errors()
        )
        raise ConfigurationError(f"invalid configuration: {problems}") from e
