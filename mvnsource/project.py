"""Module model handed to the parser by the host build (or by ``reactor``)."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Set

from .errors import DependencyResolutionRequired
from .models import Coordinate, RawRepository
from .settings import ExecutionRequest


@dataclass
class BuildPaths:
    """Source, test and output directories of one module."""

    directory: Path
    source_directory: Path
    test_source_directory: Path
    resource_directory: Path
    test_resource_directory: Path

    @classmethod
    def defaults(cls, basedir: Path) -> "BuildPaths":
        return cls(
            directory=basedir / "target",
            source_directory=basedir / "src" / "main" / "java",
            test_source_directory=basedir / "src" / "test" / "java",
            resource_directory=basedir / "src" / "main" / "resources",
            test_resource_directory=basedir / "src" / "test" / "resources",
        )

    @property
    def output_directory(self) -> Path:
        return self.directory / "classes"

    @property
    def test_output_directory(self) -> Path:
        return self.directory / "test-classes"

    @property
    def generated_sources_directory(self) -> Path:
        return self.directory / "generated-sources"


@dataclass(eq=False)
class MavenProject:
    """One module of the build.

    ``file`` is ``None`` for projects only known through a repository (for
    example a parent resolved remotely). Classpaths left as ``None`` have not
    been resolved by the host and raise ``DependencyResolutionRequired``.
    """

    coordinate: Coordinate
    basedir: Path
    file: Optional[Path] = None
    name: Optional[str] = None
    packaging: str = "jar"
    properties: Dict[str, str] = field(default_factory=dict)
    build: Optional[BuildPaths] = None
    parent: Optional["MavenProject"] = None
    collected_projects: List["MavenProject"] = field(default_factory=list)
    repositories: List[RawRepository] = field(default_factory=list)
    active_profiles: List[str] = field(default_factory=list)
    compile_classpath: Optional[List[str]] = None
    test_classpath: Optional[List[str]] = None

    def __post_init__(self) -> None:
        if self.build is None:
            self.build = BuildPaths.defaults(self.basedir)

    @property
    def display_name(self) -> str:
        return self.name or self.coordinate.artifact_id

    @property
    def paths(self) -> BuildPaths:
        if self.build is None:
            raise ValueError(f"Build paths of {self.coordinate} are not set")
        return self.build

    def compile_classpath_elements(self) -> List[str]:
        if self.compile_classpath is None:
            raise DependencyResolutionRequired(
                f"Compile classpath of {self.coordinate} has not been resolved"
            )
        return list(self.compile_classpath)

    def test_classpath_elements(self) -> List[str]:
        if self.test_classpath is None:
            raise DependencyResolutionRequired(
                f"Test classpath of {self.coordinate} has not been resolved"
            )
        return list(self.test_classpath)

    def __repr__(self) -> str:
        return f"MavenProject({self.coordinate.gav})"


@dataclass
class ProjectDependencyGraph:
    """Direct upstream edges (dependencies and parents) between reactor modules."""

    upstream: Dict[Coordinate, List[MavenProject]] = field(default_factory=dict)

    def add_edge(self, project: MavenProject, upstream: MavenProject) -> None:
        edges = self.upstream.setdefault(project.coordinate, [])
        if all(existing is not upstream for existing in edges):
            edges.append(upstream)

    def upstream_projects(self, project: MavenProject, transitive: bool = True) -> List[MavenProject]:
        direct = list(self.upstream.get(project.coordinate, []))
        if not transitive:
            return direct

        ordered: List[MavenProject] = []
        seen: Set[Coordinate] = {project.coordinate}
        pending = direct
        while pending:
            current = pending.pop(0)
            if current.coordinate in seen:
                continue
            seen.add(current.coordinate)
            ordered.append(current)
            pending.extend(self.upstream.get(current.coordinate, []))
        return ordered


@dataclass
class MavenSession:
    """Reactor projects in build order plus the host request."""

    projects: List[MavenProject] = field(default_factory=list)
    request: ExecutionRequest = field(default_factory=ExecutionRequest)
    dependency_graph: ProjectDependencyGraph = field(default_factory=ProjectDependencyGraph)

    def other_project_directories(self, project: MavenProject) -> Set[Path]:
        """Base directories of every reactor module other than ``project``."""
        return {other.basedir for other in self.projects if other is not project}


__all__ = [
    "BuildPaths",
    "MavenProject",
    "MavenSession",
    "ProjectDependencyGraph",
]
