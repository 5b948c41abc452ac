"""Parses the Java sources and resources of one scope (``main`` or ``test``)."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Iterator, List, Sequence, Set

from .errors import DependencyResolutionRequired, FatalConfigurationError
from .logging import ProjectLogger, get_logger
from .markers import Generated, Marker, MarkerSet
from .models import SCOPE_MAIN, SCOPE_TEST, SourceFile
from .parsers.base import ParseContext, ResourceCollector, SourceParser
from .project import MavenProject
from .styles import NamedStyles, autodetect, merge
from .utils import canonical_path, is_within

MAX_SOURCE_DEPTH = 16

logger = ProjectLogger(get_logger("source_sets"))


def list_java_sources(root: Path, max_depth: int = MAX_SOURCE_DEPTH) -> List[Path]:
    """Return ``*.java`` files under ``root`` (at most ``max_depth`` levels deep), sorted."""
    directory = canonical_path(root)
    if not directory.is_dir():
        return []
    return sorted(_walk_java(directory, max_depth))


def _walk_java(directory: Path, max_depth: int) -> Iterator[Path]:
    base_depth = len(directory.parts)
    for dirpath, dirnames, filenames in os.walk(directory):
        current = Path(dirpath)
        depth = len(current.parts) - base_depth
        if depth >= max_depth - 1:
            dirnames[:] = []
        for filename in filenames:
            if filename.endswith(".java"):
                yield current / filename


class SourceSetProcessor:
    """Lists, parses and tags the files of one source set.

    One instance is created per scope; the source and resource parsers it is
    given are shared with the rest of the run.
    """

    def __init__(
        self,
        scope: str,
        *,
        parser: SourceParser,
        resource_parser: ResourceCollector,
        styles: Sequence[NamedStyles] = (),
    ) -> None:
        if scope not in (SCOPE_MAIN, SCOPE_TEST):
            raise ValueError(f"Unknown source set '{scope}'")
        self.scope = scope
        self._parser = parser
        self._resource_parser = resource_parser
        self._styles = list(styles)

    def process(
        self,
        project: MavenProject,
        base_dir: Path,
        provenance: Sequence[Marker],
        already_parsed: Set[Path],
        ctx: ParseContext,
    ) -> List[SourceFile]:
        """Return the scope's compilation units followed by its resources."""
        base_dir = canonical_path(base_dir)
        paths = project.paths

        candidates = self._candidates(project)
        already_parsed.update(candidates)

        self._parser.set_classpath(self._classpath(project))
        self._parser.set_source_set(self.scope)
        logger.debug(project.display_name, "Parsing %d %s Java files", len(candidates), self.scope)
        units = self._parser.parse(candidates, base_dir, ctx)

        style = merge([*self._styles, *filter(None, [autodetect(units)])])
        if style is not None:
            units = [
                unit.with_markers(unit.markers.add(style)) if unit.kind == "java" else unit
                for unit in units
            ]

        units = [with_provenance(unit, provenance) for unit in units]
        units = self._partition_build_output(units, base_dir, paths.directory, paths.generated_sources_directory)

        resource_root = paths.resource_directory if self.scope == SCOPE_MAIN else paths.test_resource_directory
        source_set = self._parser.source_set()
        resources = [
            with_provenance(resource, provenance).add_marker_if_absent(source_set)
            for resource in self._resource_parser.parse(resource_root, already_parsed)
        ]
        logger.debug(
            project.display_name,
            "Collected %d %s sources and %d resources",
            len(units),
            self.scope,
            len(resources),
        )
        return [*units, *resources]

    # ------------------------------------------------------------------
    # Internal helpers

    def _candidates(self, project: MavenProject) -> List[Path]:
        paths = project.paths
        if self.scope == SCOPE_MAIN:
            roots = [paths.directory, paths.source_directory]
        else:
            roots = [paths.test_source_directory]
        candidates: List[Path] = []
        for root in roots:
            for path in list_java_sources(root):
                if path not in candidates:
                    candidates.append(path)
        return candidates

    def _classpath(self, project: MavenProject) -> List[Path]:
        try:
            if self.scope == SCOPE_MAIN:
                elements = project.compile_classpath_elements()
            else:
                elements = project.test_classpath_elements()
        except DependencyResolutionRequired as exc:
            raise FatalConfigurationError(
                project.display_name, f"unable to resolve the {self.scope} classpath: {exc}"
            ) from exc
        return [Path(element) for element in dict.fromkeys(elements)]

    def _partition_build_output(
        self,
        units: List[SourceFile],
        base_dir: Path,
        build_directory: Path,
        generated_directory: Path,
    ) -> List[SourceFile]:
        generated = Generated()
        kept: List[SourceFile] = []
        for unit in units:
            path = base_dir / unit.source_path
            if is_within(path, generated_directory):
                kept.append(unit.add_marker_if_absent(generated))
            elif is_within(path, build_directory):
                continue
            else:
                kept.append(unit)
        return kept


def with_provenance(record: SourceFile, provenance: Sequence[Marker]) -> SourceFile:
    markers: MarkerSet = record.markers
    for marker in provenance:
        markers = markers.add_if_absent(marker)
    return record.with_markers(markers)


__all__ = ["MAX_SOURCE_DEPTH", "SourceSetProcessor", "list_java_sources", "with_provenance"]
