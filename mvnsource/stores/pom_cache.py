"""Tiered cache of parsed descriptors keyed by canonical descriptor path."""

from __future__ import annotations

import sys
import threading
from pathlib import Path
from typing import Callable, Dict, List, Optional, Protocol, Sequence

from ..logging import get_logger
from ..models import Pom
from ..utils import canonical_path
from .engine import KeyValueEngine, SqliteEngine

logger = get_logger("stores.pom_cache")

CACHE_DIRECTORY_NAME = ".mvnsource-cache"


def cache_key(path: Path | str) -> str:
    """Normalise a descriptor path into a cache key."""
    return canonical_path(path).as_posix()


class PomCache(Protocol):
    def get(self, key: str) -> Optional[Pom]:
        ...

    def put(self, key: str, pom: Pom) -> None:
        ...


class InMemoryPomCache:
    """First tier; entries live for the whole run and are never evicted."""

    def __init__(self) -> None:
        self._entries: Dict[str, Pom] = {}

    def get(self, key: str) -> Optional[Pom]:
        return self._entries.get(key)

    def put(self, key: str, pom: Pom) -> None:
        self._entries[key] = pom

    def __len__(self) -> int:
        return len(self._entries)


class PersistentPomCache:
    """Second tier; serialises poms to JSON bytes over a key-value engine."""

    def __init__(self, engine: KeyValueEngine) -> None:
        self._engine = engine

    @property
    def engine(self) -> KeyValueEngine:
        return self._engine

    def get(self, key: str) -> Optional[Pom]:
        payload = self._engine.get(key.encode("utf-8"))
        if payload is None:
            return None
        try:
            return Pom.from_bytes(payload)
        except (ValueError, TypeError, AttributeError, KeyError) as exc:
            logger.debug("Ignoring unreadable cache entry for %s: %s", key, exc)
            return None

    def put(self, key: str, pom: Pom) -> None:
        self._engine.put(key.encode("utf-8"), pom.to_bytes())


class CompositePomCache:
    """Ordered tiers with fallback on miss and backfill on hit.

    Writes go to the first tier synchronously; later tiers are best effort.
    """

    def __init__(self, tiers: Sequence[PomCache]) -> None:
        if not tiers:
            raise ValueError("CompositePomCache requires at least one tier")
        self._tiers: List[PomCache] = list(tiers)

    @property
    def tiers(self) -> List[PomCache]:
        return list(self._tiers)

    def get(self, key: str) -> Optional[Pom]:
        for index, tier in enumerate(self._tiers):
            pom = tier.get(key)
            if pom is None:
                continue
            for upper in self._tiers[:index]:
                upper.put(key, pom)
            return pom
        return None

    def put(self, key: str, pom: Pom) -> None:
        self._tiers[0].put(key, pom)
        for tier in self._tiers[1:]:
            try:
                tier.put(key, pom)
            except Exception as exc:
                logger.debug("Deferred cache write for %s failed: %s", key, exc)


def is_64bit_interpreter() -> bool:
    return sys.maxsize > 2**32


class PomCacheFactory:
    """Builds the run's pom cache exactly once, whoever asks first.

    The persistent tier holds an exclusive lock on its directory, so the cache
    is never rebuilt: later calls return the first instance even when they ask
    for a different directory.
    """

    def __init__(
        self,
        *,
        is_64bit: Callable[[], bool] = is_64bit_interpreter,
        engine_factory: Callable[[Path], KeyValueEngine] = SqliteEngine,
    ) -> None:
        self._is_64bit = is_64bit
        self._engine_factory = engine_factory
        self._lock = threading.Lock()
        self._cache: Optional[PomCache] = None

    def get(self, directory: Path | str | None = None) -> PomCache:
        with self._lock:
            if self._cache is None:
                self._cache = self._build(directory)
            return self._cache

    def _build(self, directory: Path | str | None) -> PomCache:
        if not self._is_64bit():
            logger.warning(
                "The persistent pom cache is not supported on a 32-bit interpreter; "
                "falling back to the in-memory pom cache"
            )
            return InMemoryPomCache()

        base = Path(directory).expanduser() if directory is not None else Path.home()
        try:
            engine = self._engine_factory(base / CACHE_DIRECTORY_NAME)
        except Exception as exc:
            logger.warning("Unable to initialize the persistent pom cache, falling back to the in-memory pom cache")
            logger.debug("Persistent pom cache failure: %s", exc, exc_info=True)
            return InMemoryPomCache()
        return CompositePomCache([InMemoryPomCache(), PersistentPomCache(engine)])


DEFAULT_POM_CACHE_FACTORY = PomCacheFactory()


__all__ = [
    "CACHE_DIRECTORY_NAME",
    "CompositePomCache",
    "DEFAULT_POM_CACHE_FACTORY",
    "InMemoryPomCache",
    "PersistentPomCache",
    "PomCache",
    "PomCacheFactory",
    "cache_key",
    "is_64bit_interpreter",
]
