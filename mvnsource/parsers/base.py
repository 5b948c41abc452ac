"""Contracts for the descriptor, source and resource parsers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Set, Tuple

from ..markers import JavaSourceSet, MarkerSet, ParseExceptionResult
from ..models import SourceFile
from ..settings import MavenSettings
from ..stores.pom_cache import InMemoryPomCache, PomCache
from ..utils import relativize


@dataclass
class ParseContext:
    """State shared by the parsers of one run."""

    pom_cache: PomCache = field(default_factory=InMemoryPomCache)
    settings: Optional[MavenSettings] = None
    charset: str = "utf-8"
    active_profiles: Tuple[str, ...] = ()


class DescriptorParser(ABC):
    """Parses ``pom.xml`` files into descriptor records."""

    @abstractmethod
    def parse(self, paths: Iterable[Path], base_dir: Path, ctx: ParseContext) -> List[SourceFile]:
        """Return one record per readable descriptor."""


class SourceParser(ABC):
    """Parses language sources as one batch under a classpath."""

    @abstractmethod
    def set_classpath(self, classpath: Sequence[Path]) -> None:
        """Set the classpath used for subsequent ``parse`` calls."""

    @abstractmethod
    def set_source_set(self, name: str) -> None:
        """Name the source set (``main`` or ``test``) being parsed."""

    @abstractmethod
    def source_set(self) -> JavaSourceSet:
        """Return the marker for the current source set and classpath."""

    @abstractmethod
    def parse(self, paths: Iterable[Path], base_dir: Path, ctx: ParseContext) -> List[SourceFile]:
        """Return one record per path; failures carry a ``ParseExceptionResult``."""


class ResourceCollector(ABC):
    """Sweeps a directory for files that no other parser claimed."""

    @abstractmethod
    def parse(self, root: Path, already_parsed: Set[Path]) -> List[SourceFile]:
        """Parse unclaimed files under ``root`` and add them to ``already_parsed``."""


def parse_failure(
    path: Path,
    base_dir: Path,
    *,
    kind: str,
    scope: str,
    parser: str,
    error: BaseException,
    markers: MarkerSet | None = None,
    charset: str = "utf-8",
) -> SourceFile:
    """Return a partial record that carries the parse diagnostic."""
    diagnostic = ParseExceptionResult(
        parser=parser,
        exception_type=type(error).__name__,
        message=str(error),
    )
    return SourceFile(
        source_path=relativize(base_dir, path),
        kind=kind,
        scope=scope,
        tree=None,
        markers=(markers or MarkerSet()).add(diagnostic),
        charset=charset,
    )


__all__ = [
    "DescriptorParser",
    "ParseContext",
    "ResourceCollector",
    "SourceParser",
    "parse_failure",
]
