"""Provenance markers attached to parsed source files.

Every parsed file carries three markers describing how it was built:

``BuildTool``
    The build tool that compiles the file (always Maven).
``JavaVersion``
    The Java runtime version and vendor, plus source/target compatibility.
``JavaProject``
    The module the file belongs to. Every file of a module shares the same
    instance.

Optional markers:

``GitProvenance``
    Present when the project lives in a git repository; every file of every
    module in a run shares the same instance.
``BuildEnvironment``
    Present when a CI system is detected from the environment.
``JavaSourceSet``
    Sources and resources under ``src/main`` or ``src/test``.

Markers are immutable and carry a random ``id``, so sharing is always by
reference: two independently built markers never compare equal.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterable, Iterator, List, Optional, Tuple, Type, TypeVar

if TYPE_CHECKING:
    from .models import Coordinate


def random_id() -> str:
    return str(uuid.uuid4())


class Marker:
    """Base type for immutable facts attached to a source file."""

    id: str


M = TypeVar("M", bound=Marker)


@dataclass(frozen=True)
class BuildTool(Marker):
    type: str
    version: Optional[str]
    id: str = field(default_factory=random_id)


@dataclass(frozen=True)
class JavaVersion(Marker):
    created_by: Optional[str]
    vm_vendor: Optional[str]
    source_compatibility: Optional[str]
    target_compatibility: Optional[str]
    id: str = field(default_factory=random_id)


@dataclass(frozen=True)
class JavaProject(Marker):
    project_name: str
    publication: "Coordinate"
    id: str = field(default_factory=random_id)


@dataclass(frozen=True)
class GitProvenance(Marker):
    origin: Optional[str]
    branch: Optional[str]
    change: Optional[str]
    id: str = field(default_factory=random_id)


@dataclass(frozen=True)
class BuildEnvironment(Marker):
    ci: str
    build_id: Optional[str] = None
    build_url: Optional[str] = None
    job: Optional[str] = None
    branch: Optional[str] = None
    id: str = field(default_factory=random_id)


@dataclass(frozen=True)
class JavaSourceSet(Marker):
    name: str
    classpath: Tuple[str, ...] = ()
    id: str = field(default_factory=random_id)


@dataclass(frozen=True)
class Generated(Marker):
    id: str = field(default_factory=random_id)


@dataclass(frozen=True)
class ParseExceptionResult(Marker):
    """Diagnostic left on a partial record when its file failed to parse."""

    parser: str
    exception_type: str
    message: str
    id: str = field(default_factory=random_id)


class MarkerSet:
    """Ordered, immutable collection holding at most one marker per type."""

    __slots__ = ("_markers",)

    def __init__(self, markers: Iterable[Marker] = ()) -> None:
        self._markers: Tuple[Marker, ...] = tuple(markers)

    def __iter__(self) -> Iterator[Marker]:
        return iter(self._markers)

    def __len__(self) -> int:
        return len(self._markers)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MarkerSet):
            return NotImplemented
        return self._markers == other._markers

    def __hash__(self) -> int:
        return hash(self._markers)

    def __repr__(self) -> str:
        names = ", ".join(type(marker).__name__ for marker in self._markers)
        return f"MarkerSet([{names}])"

    def add_if_absent(self, marker: Marker) -> "MarkerSet":
        """Return a set containing ``marker`` unless one of its type is already present."""
        if any(type(existing) is type(marker) for existing in self._markers):
            return self
        return MarkerSet(self._markers + (marker,))

    def add(self, marker: Marker) -> "MarkerSet":
        """Return a set containing ``marker``, replacing any marker of the same type."""
        kept = [existing for existing in self._markers if type(existing) is not type(marker)]
        kept.append(marker)
        return MarkerSet(kept)

    def find(self, marker_type: Type[M]) -> Optional[M]:
        for marker in self._markers:
            if isinstance(marker, marker_type):
                return marker
        return None

    def find_all(self, marker_type: Type[M]) -> List[M]:
        return [marker for marker in self._markers if isinstance(marker, marker_type)]


__all__ = [
    "BuildEnvironment",
    "BuildTool",
    "Generated",
    "GitProvenance",
    "JavaProject",
    "JavaSourceSet",
    "JavaVersion",
    "Marker",
    "MarkerSet",
    "ParseExceptionResult",
    "random_id",
]
