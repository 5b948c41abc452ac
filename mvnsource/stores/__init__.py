"""Descriptor cache tiers and their storage engines."""

from .engine import KeyValueEngine, SqliteEngine
from .pom_cache import (
    CompositePomCache,
    DEFAULT_POM_CACHE_FACTORY,
    InMemoryPomCache,
    PersistentPomCache,
    PomCache,
    PomCacheFactory,
    cache_key,
)

__all__ = [
    "CompositePomCache",
    "DEFAULT_POM_CACHE_FACTORY",
    "InMemoryPomCache",
    "KeyValueEngine",
    "PersistentPomCache",
    "PomCache",
    "PomCacheFactory",
    "SqliteEngine",
    "cache_key",
]
