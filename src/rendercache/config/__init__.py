"""Configuration — defaults, YAML/env hierarchy, validated settings."""

from rendercache.config.hierarchy import load_config_hierarchy, load_settings
from rendercache.config.schema import CacheSettings

__all__ = ["CacheSettings", "load_config_hierarchy", "load_settings"]
