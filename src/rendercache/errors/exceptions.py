"""Custom exception hierarchy for rendercache."""

from __future__ import annotations

from pathlib import Path


class RenderCacheError(Exception):
    """Base exception for all rendercache errors."""

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        self.message = message


class ConfigurationError(RenderCacheError):
    """Cache root cannot be created or is not writable.

    The facade never lets this escape: it logs once and runs disabled.
    """

    def __init__(self, message: str = "", path: Path | None = None) -> None:
        super().__init__(message)
        self.path = path


class SourceNotFoundError(RenderCacheError):
    """``put`` was handed a source file that does not exist."""

    def __init__(self, message: str = "", source: Path | None = None) -> None:
        super().__init__(message)
        self.source = source


class MetadataError(RenderCacheError):
    """A group metadata file or the group registry could not be decoded."""

    def __init__(
        self,
        message: str = "",
        path: Path | None = None,
        original: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.path = path
        self.original = original
