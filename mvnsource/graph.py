"""Collects the descriptor paths needed to resolve a module's inheritance."""

from __future__ import annotations

from pathlib import Path
from typing import Dict, List

from .errors import FatalConfigurationError
from .logging import get_logger
from .project import MavenProject, MavenSession
from .utils import canonical_path

logger = get_logger("graph")

_FLATTENED_POM = ".flattened-pom.xml"


def pom_path(project: MavenProject) -> Path:
    """Return the canonical descriptor path of ``project``.

    The flatten plugin writes a synthetic ``.flattened-pom.xml`` that drops the
    inheritance information; the sibling ``pom.xml`` is used instead.
    """
    if project.file is None:
        raise ValueError(f"{project.coordinate} has no descriptor on disk")
    path = project.file
    if path.name == _FLATTENED_POM:
        path = project.basedir / "pom.xml"
    return canonical_path(path)


class ProjectGraphCollector:
    """Walks children, ancestors and upstream modules of one project."""

    def __init__(self, session: MavenSession) -> None:
        self._session = session

    def collect(self, project: MavenProject) -> List[Path]:
        """Return every local descriptor needed to resolve ``project``.

        That is the project itself, its collected children (recursively), its
        ancestor chain, and the ancestor chains of every upstream module. Paths
        are unique and kept in discovery order.
        """
        if project.file is None:
            raise FatalConfigurationError(project.display_name, "has no descriptor file")
        root = pom_path(project)
        if not root.is_file():
            raise FatalConfigurationError(
                project.display_name, f"descriptor '{root}' does not exist or is not readable"
            )

        paths = self._collect(project, {})
        for upstream in self._session.dependency_graph.upstream_projects(project, transitive=True):
            if upstream.file is None:
                logger.debug("Skipping upstream project %s without a local descriptor", upstream.coordinate)
                continue
            self._collect(upstream, paths)
        return list(paths)

    def _collect(self, project: MavenProject, paths: Dict[Path, None]) -> Dict[Path, None]:
        paths[pom_path(project)] = None

        for child in project.collected_projects:
            if child.file is None:
                continue
            if pom_path(child) not in paths:
                self._collect(child, paths)

        parent = project.parent
        while parent is not None and parent.file is not None:
            path = pom_path(parent)
            if path not in paths:
                self._collect(parent, paths)
            parent = parent.parent
        if parent is not None:
            logger.debug(
                "Ancestor %s of %s is not available locally; omitting it",
                parent.coordinate,
                project.coordinate,
            )
        return paths


def collect_poms(project: MavenProject, session: MavenSession) -> List[Path]:
    return ProjectGraphCollector(session).collect(project)


__all__ = ["ProjectGraphCollector", "collect_poms", "pom_path"]
