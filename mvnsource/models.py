"""Core data models shared across mvnsource components."""

from __future__ import annotations

import json
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from .markers import Generated, Marker, MarkerSet, ParseExceptionResult

SCOPE_MAIN = "main"
SCOPE_TEST = "test"
SCOPE_RESOURCE = "resource"
SCOPE_DESCRIPTOR = "descriptor"


@dataclass(frozen=True)
class Coordinate:
    """Maven group/artifact/version triple."""

    group_id: str
    artifact_id: str
    version: str

    @property
    def gav(self) -> str:
        return f"{self.group_id}:{self.artifact_id}:{self.version}"

    def __str__(self) -> str:
        return self.gav


@dataclass(frozen=True)
class ArtifactPolicy:
    enabled: Optional[bool]


@dataclass(frozen=True)
class RawRepository:
    """Repository declaration as written in a pom or settings profile."""

    id: Optional[str]
    url: str
    releases: Optional[ArtifactPolicy] = None
    snapshots: Optional[ArtifactPolicy] = None


@dataclass(frozen=True)
class Dependency:
    group_id: str
    artifact_id: str
    version: Optional[str] = None
    scope: Optional[str] = None


@dataclass
class Pom:
    """Parsed descriptor, the value type stored in the pom cache."""

    path: str
    coordinate: Coordinate
    parent: Optional[Coordinate] = None
    parent_relative_path: Optional[str] = None
    packaging: str = "jar"
    name: Optional[str] = None
    properties: Dict[str, str] = field(default_factory=dict)
    modules: List[str] = field(default_factory=list)
    dependencies: List[Dependency] = field(default_factory=list)
    repositories: List[RawRepository] = field(default_factory=list)
    profiles: List[str] = field(default_factory=list)
    active_by_default_profiles: List[str] = field(default_factory=list)
    build: Dict[str, str] = field(default_factory=dict)
    checksum: str = ""

    def to_bytes(self) -> bytes:
        return json.dumps(_pom_to_dict(self), sort_keys=True).encode("utf-8")

    @classmethod
    def from_bytes(cls, payload: bytes) -> "Pom":
        data = json.loads(payload.decode("utf-8"))
        if not isinstance(data, dict):
            raise ValueError("Cached pom payload must be a JSON object")
        return _pom_from_dict(data)


@dataclass(frozen=True)
class ResolvedPom:
    """A descriptor resolved against the ancestors parsed in the same batch."""

    pom: Pom
    ancestors: Tuple[Coordinate, ...]
    properties: Dict[str, str]
    active_profiles: Tuple[str, ...]


@dataclass(frozen=True)
class SourceFile:
    """A parsed file together with the markers describing where it came from."""

    source_path: Path
    kind: str
    scope: str
    tree: Any = None
    markers: MarkerSet = field(default_factory=MarkerSet)
    charset: str = "utf-8"

    @property
    def generated(self) -> bool:
        return self.markers.find(Generated) is not None

    @property
    def diagnostics(self) -> List[ParseExceptionResult]:
        return self.markers.find_all(ParseExceptionResult)

    def with_markers(self, markers: MarkerSet) -> "SourceFile":
        if markers is self.markers:
            return self
        return replace(self, markers=markers)

    def add_marker_if_absent(self, marker: Marker) -> "SourceFile":
        return self.with_markers(self.markers.add_if_absent(marker))


# ----------------------------------------------------------------------
# Serialisation helpers


def _coordinate_to_dict(coordinate: Optional[Coordinate]) -> Optional[Dict[str, str]]:
    if coordinate is None:
        return None
    return {
        "group_id": coordinate.group_id,
        "artifact_id": coordinate.artifact_id,
        "version": coordinate.version,
    }


def _coordinate_from_dict(payload: Any) -> Optional[Coordinate]:
    if not isinstance(payload, dict):
        return None
    return Coordinate(
        group_id=str(payload.get("group_id", "")),
        artifact_id=str(payload.get("artifact_id", "")),
        version=str(payload.get("version", "")),
    )


def _policy_to_dict(policy: Optional[ArtifactPolicy]) -> Optional[Dict[str, Any]]:
    return None if policy is None else {"enabled": policy.enabled}


def _policy_from_dict(payload: Any) -> Optional[ArtifactPolicy]:
    if not isinstance(payload, dict):
        return None
    return ArtifactPolicy(enabled=payload.get("enabled"))


def _pom_to_dict(pom: Pom) -> Dict[str, Any]:
    return {
        "path": pom.path,
        "coordinate": _coordinate_to_dict(pom.coordinate),
        "parent": _coordinate_to_dict(pom.parent),
        "parent_relative_path": pom.parent_relative_path,
        "packaging": pom.packaging,
        "name": pom.name,
        "properties": dict(pom.properties),
        "modules": list(pom.modules),
        "dependencies": [
            {
                "group_id": dep.group_id,
                "artifact_id": dep.artifact_id,
                "version": dep.version,
                "scope": dep.scope,
            }
            for dep in pom.dependencies
        ],
        "repositories": [
            {
                "id": repo.id,
                "url": repo.url,
                "releases": _policy_to_dict(repo.releases),
                "snapshots": _policy_to_dict(repo.snapshots),
            }
            for repo in pom.repositories
        ],
        "profiles": list(pom.profiles),
        "active_by_default_profiles": list(pom.active_by_default_profiles),
        "build": dict(pom.build),
        "checksum": pom.checksum,
    }


def _pom_from_dict(data: Dict[str, Any]) -> Pom:
    coordinate = _coordinate_from_dict(data.get("coordinate"))
    if coordinate is None:
        raise ValueError("Cached pom payload is missing its coordinate")
    dependencies = [
        Dependency(
            group_id=str(item.get("group_id", "")),
            artifact_id=str(item.get("artifact_id", "")),
            version=item.get("version"),
            scope=item.get("scope"),
        )
        for item in data.get("dependencies", [])
        if isinstance(item, dict)
    ]
    repositories = [
        RawRepository(
            id=item.get("id"),
            url=str(item.get("url", "")),
            releases=_policy_from_dict(item.get("releases")),
            snapshots=_policy_from_dict(item.get("snapshots")),
        )
        for item in data.get("repositories", [])
        if isinstance(item, dict)
    ]
    return Pom(
        path=str(data.get("path", "")),
        coordinate=coordinate,
        parent=_coordinate_from_dict(data.get("parent")),
        parent_relative_path=data.get("parent_relative_path"),
        packaging=str(data.get("packaging") or "jar"),
        name=data.get("name"),
        properties={str(k): str(v) for k, v in (data.get("properties") or {}).items()},
        modules=[str(item) for item in data.get("modules", [])],
        dependencies=dependencies,
        repositories=repositories,
        profiles=[str(item) for item in data.get("profiles", [])],
        active_by_default_profiles=[
            str(item) for item in data.get("active_by_default_profiles", [])
        ],
        build={str(k): str(v) for k, v in (data.get("build") or {}).items()},
        checksum=str(data.get("checksum", "")),
    )


__all__ = [
    "ArtifactPolicy",
    "Coordinate",
    "Dependency",
    "Pom",
    "RawRepository",
    "ResolvedPom",
    "SCOPE_DESCRIPTOR",
    "SCOPE_MAIN",
    "SCOPE_RESOURCE",
    "SCOPE_TEST",
    "SourceFile",
]
