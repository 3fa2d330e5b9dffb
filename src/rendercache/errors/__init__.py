"""Error handling — the rendercache exception hierarchy."""

from rendercache.errors.exceptions import (
    ConfigurationError,
    MetadataError,
    RenderCacheError,
    SourceNotFoundError,
)

__all__ = [
    "RenderCacheError",
    "ConfigurationError",
    "SourceNotFoundError",
    "MetadataError",
]
