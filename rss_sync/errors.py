"""
Error taxonomy for a sync pass.

FetchError and ParseError are fatal to the pass. StorageError is scoped to
a single item and is absorbed into the summary. ConfigurationError is
raised at startup, before any pass begins.
"""

from typing import Optional


class RssSyncError(Exception):
    """Base class for every error this package raises on purpose."""


class ConfigurationError(RssSyncError):
    pass


class FetchError(RssSyncError):
    def __init__(self, message: str, url: str = "", status_code: Optional[int] = None):
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class ParseError(RssSyncError):
    pass


class StorageError(RssSyncError):
    def __init__(self, message: str, identifier: str = ""):
        super().__init__(message)
        self.identifier = identifier
