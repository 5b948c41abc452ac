"""Builds a ``MavenSession`` from the ``pom.xml`` files of a checkout.

This stands in for the host build when mvnsource runs on its own: modules are
discovered through ``<modules>``, parents through ``<relativePath>``, and the
classpath of each module is limited to the output directories of the reactor
modules it depends on. Nothing is downloaded.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence

from .errors import FatalConfigurationError
from .logging import get_logger
from .models import Coordinate, Pom
from .parsers.pom import PomReadError, read_pom
from .project import BuildPaths, MavenProject, MavenSession, ProjectDependencyGraph
from .settings import ExecutionRequest
from .utils import canonical_path

logger = get_logger("reactor")

_PROPERTY_REFERENCE = re.compile(r"\$\{([^}]+)\}")
_MAX_INTERPOLATION_PASSES = 10


def load_session(
    root: Path,
    request: ExecutionRequest | None = None,
    *,
    active_profiles: Sequence[str] = (),
) -> MavenSession:
    """Read the reactor rooted at ``root`` (a directory or a ``pom.xml``)."""
    request = request or ExecutionRequest()
    root_pom = _descriptor_path(canonical_path(root))
    if not root_pom.is_file():
        raise FatalConfigurationError(root_pom.parent.name, f"no pom.xml found at '{root_pom}'")

    loader = _ReactorLoader(request, [*request.active_profiles, *active_profiles])
    loader.load_module(root_pom)
    return loader.session()


def _descriptor_path(path: Path) -> Path:
    if path.is_dir() or path.suffix != ".xml":
        return path / "pom.xml"
    return path


def _interpolate(value: str, properties: Mapping[str, str]) -> str:
    for _ in range(_MAX_INTERPOLATION_PASSES):
        replaced = _PROPERTY_REFERENCE.sub(lambda m: properties.get(m.group(1), m.group(0)), value)
        if replaced == value:
            break
        value = replaced
    return value


class _ReactorLoader:
    def __init__(self, request: ExecutionRequest, active_profiles: List[str]) -> None:
        self._request = request
        self._active_profiles = active_profiles
        self._poms: Dict[Path, Pom] = {}
        self._projects: Dict[Path, MavenProject] = {}
        self._reactor: List[MavenProject] = []
        self._remote: Dict[Coordinate, MavenProject] = {}

    # ------------------------------------------------------------------
    # Discovery

    def load_module(self, path: Path) -> MavenProject:
        existing = self._projects.get(path)
        if existing is not None:
            if all(project is not existing for project in self._reactor):
                self._reactor.append(existing)
            return existing

        project = self._project_for(path)
        self._reactor.append(project)
        pom = self._poms[path]
        for module in pom.modules:
            module_pom = _descriptor_path(canonical_path(project.basedir / module))
            if not module_pom.is_file():
                raise FatalConfigurationError(
                    project.display_name, f"module '{module}' has no pom.xml at '{module_pom}'"
                )
            child = self.load_module(module_pom)
            if all(existing is not child for existing in project.collected_projects):
                project.collected_projects.append(child)
        return project

    def _read(self, path: Path) -> Pom:
        pom = self._poms.get(path)
        if pom is None:
            try:
                pom = read_pom(path)
            except (OSError, PomReadError) as exc:
                raise FatalConfigurationError(path.parent.name, f"unable to read '{path}': {exc}") from exc
            self._poms[path] = pom
        return pom

    def _project_for(self, path: Path) -> MavenProject:
        """Return the project declared by ``path``, building its parents first."""
        existing = self._projects.get(path)
        if existing is not None:
            return existing

        pom = self._read(path)
        parent = self._parent_of(pom, path)
        basedir = path.parent

        inherited: Dict[str, str] = dict(parent.properties) if parent is not None else {}
        properties = {**inherited, **pom.properties}
        properties.update(
            {
                "basedir": str(basedir),
                "project.basedir": str(basedir),
                "project.groupId": pom.coordinate.group_id,
                "project.artifactId": pom.coordinate.artifact_id,
                "project.version": pom.coordinate.version,
            }
        )
        coordinate = Coordinate(
            group_id=_interpolate(pom.coordinate.group_id, properties),
            artifact_id=_interpolate(pom.coordinate.artifact_id, properties),
            version=_interpolate(pom.coordinate.version, properties),
        )
        build = self._build_paths(pom, basedir, properties)
        properties["project.build.directory"] = str(build.directory)

        project = MavenProject(
            coordinate=coordinate,
            basedir=basedir,
            file=path,
            name=pom.name,
            packaging=pom.packaging,
            properties={key: _interpolate(value, properties) for key, value in properties.items()},
            build=build,
            parent=parent,
            repositories=list(pom.repositories),
            active_profiles=self._profiles_for(pom),
        )
        self._projects[path] = project
        return project

    def _parent_of(self, pom: Pom, path: Path) -> Optional[MavenProject]:
        if pom.parent is None:
            return None
        if pom.parent_relative_path:
            candidate = _descriptor_path(canonical_path(path.parent / pom.parent_relative_path))
            if candidate.is_file() and candidate != path:
                try:
                    parent_pom = self._read(candidate)
                except FatalConfigurationError as exc:
                    logger.debug("Ignoring unreadable parent candidate %s: %s", candidate, exc)
                else:
                    if parent_pom.coordinate == pom.parent:
                        return self._project_for(candidate)
        return self._remote_parent(pom.parent)

    def _remote_parent(self, coordinate: Coordinate) -> MavenProject:
        project = self._remote.get(coordinate)
        if project is None:
            logger.debug("Parent %s is not available in the checkout", coordinate)
            basedir = (
                Path(self._request.local_repository_path).expanduser()
                / Path(*coordinate.group_id.split("."))
                / coordinate.artifact_id
                / coordinate.version
            )
            project = MavenProject(coordinate=coordinate, basedir=basedir, file=None)
            self._remote[coordinate] = project
        return project

    @staticmethod
    def _build_paths(pom: Pom, basedir: Path, properties: Mapping[str, str]) -> BuildPaths:
        defaults = BuildPaths.defaults(basedir)

        def _resolve(key: str, default: Path) -> Path:
            value = pom.build.get(key)
            if not value:
                return default
            resolved = Path(_interpolate(value, properties))
            return resolved if resolved.is_absolute() else basedir / resolved

        return BuildPaths(
            directory=_resolve("directory", defaults.directory),
            source_directory=_resolve("sourceDirectory", defaults.source_directory),
            test_source_directory=_resolve("testSourceDirectory", defaults.test_source_directory),
            resource_directory=_resolve("resourceDirectory", defaults.resource_directory),
            test_resource_directory=_resolve("testResourceDirectory", defaults.test_resource_directory),
        )

    def _profiles_for(self, pom: Pom) -> List[str]:
        active = [profile for profile in self._active_profiles if profile in pom.profiles]
        if not active:
            active = list(pom.active_by_default_profiles)
        return active

    # ------------------------------------------------------------------
    # Session assembly

    def session(self) -> MavenSession:
        graph = ProjectDependencyGraph()
        by_key = {
            (project.coordinate.group_id, project.coordinate.artifact_id): project
            for project in self._reactor
        }
        for project in self._reactor:
            if project.file is None:
                raise FatalConfigurationError(project.display_name, "has no descriptor file")
            pom = self._poms[project.file]
            if project.parent is not None and project.parent.file is not None:
                graph.add_edge(project, project.parent)
            for dependency in pom.dependencies:
                upstream = by_key.get((dependency.group_id, dependency.artifact_id))
                if upstream is not None and upstream is not project:
                    graph.add_edge(project, upstream)

        ordered = _reactor_order(self._reactor, graph)
        for project in ordered:
            upstream_outputs = [
                str(upstream.paths.output_directory)
                for upstream in graph.upstream_projects(project, transitive=True)
                if upstream.file is not None and upstream.packaging != "pom"
            ]
            project.compile_classpath = [str(project.paths.output_directory), *upstream_outputs]
            project.test_classpath = [
                str(project.paths.test_output_directory),
                str(project.paths.output_directory),
                *upstream_outputs,
            ]
        return MavenSession(projects=ordered, request=self._request, dependency_graph=graph)


def _reactor_order(projects: List[MavenProject], graph: ProjectDependencyGraph) -> List[MavenProject]:
    """Order projects so that every module follows the modules it depends on."""
    ordered: List[MavenProject] = []
    done: set[Coordinate] = set()
    visiting: set[Coordinate] = set()

    def visit(project: MavenProject) -> None:
        if project.coordinate in done:
            return
        if project.coordinate in visiting:
            raise FatalConfigurationError(
                project.display_name, "the reactor contains a dependency cycle"
            )
        visiting.add(project.coordinate)
        for upstream in graph.upstream_projects(project, transitive=False):
            if any(candidate is upstream for candidate in projects):
                visit(upstream)
        visiting.discard(project.coordinate)
        done.add(project.coordinate)
        ordered.append(project)

    for project in projects:
        visit(project)
    return ordered


__all__ = ["load_session"]
