"""Sweep of non-Java files: resources and anything left over in a module."""

from __future__ import annotations

import json
import os
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Sequence, Set

import yaml

from ..globs import PathMatcher, compile_matchers, matches_any
from ..logging import get_logger
from ..markers import MarkerSet
from ..models import SCOPE_RESOURCE, SourceFile
from ..utils import canonical_path, relativize
from .base import ResourceCollector, parse_failure

logger = get_logger("parsers.resources")

DEFAULT_PLAIN_TEXT_MASKS: Sequence[str] = (
    "**/*.txt",
    "**/*.md",
    "**/*.adoc",
    "**/*.sql",
    "**/*.sh",
    "**/CODEOWNERS",
    "**/Dockerfile*",
    "**/META-INF/services/**",
    "**/.gitignore",
    "**/.gitattributes",
    "**/.java-version",
    "**/.sdkmanrc",
    "**/lombok.config",
    "**/mvnw",
)

_SKIPPED_DIRECTORIES = {
    "target",
    "build",
    "out",
    "bin",
    "node_modules",
    "__pycache__",
}

_YAML_SUFFIXES = {".yml", ".yaml"}

_PARSER_NAME = "ResourceParser"


class ResourceParser(ResourceCollector):
    """Parses XML, YAML, JSON, properties and plain-text files under a directory.

    Hidden directories, build output directories and the directories of other
    reactor modules are pruned. Files matching an exclusion or larger than the
    size threshold are skipped. Anything else that is not recognised becomes a
    ``quark`` record carrying only its path.
    """

    def __init__(
        self,
        base_dir: Path,
        *,
        exclusions: Iterable[str] = (),
        plain_text_masks: Iterable[str] = DEFAULT_PLAIN_TEXT_MASKS,
        size_threshold_mb: int = 10,
        excluded_directories: Iterable[Path] = (),
        charset: str = "utf-8",
    ) -> None:
        self._base_dir = canonical_path(base_dir)
        self._exclusions: List[PathMatcher] = compile_matchers(exclusions)
        self._plain_text_masks: List[PathMatcher] = compile_matchers(plain_text_masks)
        self._size_threshold = size_threshold_mb * 1024 * 1024 if size_threshold_mb > 0 else 0
        self._excluded_directories: Set[Path] = {canonical_path(path) for path in excluded_directories}
        self._charset = charset

    def parse(self, root: Path, already_parsed: Set[Path]) -> List[SourceFile]:
        search_dir = canonical_path(root)
        if not search_dir.is_dir():
            return []

        records: List[SourceFile] = []
        for path in self._iter_files(search_dir, already_parsed):
            already_parsed.add(path)
            records.append(self._parse_file(path))
        return records

    # ------------------------------------------------------------------
    # Internal helpers

    def _iter_files(self, search_dir: Path, already_parsed: Set[Path]) -> Iterator[Path]:
        for dirpath, dirnames, filenames in os.walk(search_dir):
            current_dir = Path(dirpath)
            kept = []
            for name in sorted(dirnames):
                if name.startswith(".") or name in _SKIPPED_DIRECTORIES:
                    continue
                if current_dir / name in self._excluded_directories:
                    continue
                kept.append(name)
            dirnames[:] = kept

            for filename in sorted(filenames):
                path = current_dir / filename
                if path in already_parsed:
                    continue
                if self._is_excluded(path):
                    continue
                if self._exceeds_threshold(path):
                    already_parsed.add(path)
                    continue
                yield path

    def _is_excluded(self, path: Path) -> bool:
        return matches_any(relativize(self._base_dir, path), self._exclusions)

    def _exceeds_threshold(self, path: Path) -> bool:
        if not self._size_threshold:
            return False
        try:
            size = path.stat().st_size
        except OSError:
            return False
        if size > self._size_threshold:
            logger.info(
                "Skipping parsing of %s as its size (%d bytes) exceeds the %d byte threshold",
                path,
                size,
                self._size_threshold,
            )
            return True
        return False

    def _parse_file(self, path: Path) -> SourceFile:
        kind = self._kind_for(path)
        if kind == "quark":
            return self._record(path, kind, None)
        try:
            text = path.read_text(encoding=self._charset)
            tree = _PARSERS[kind](text)
        except (OSError, UnicodeDecodeError, ValueError, ET.ParseError, yaml.YAMLError) as exc:
            logger.debug("Unable to parse %s: %s", path, exc)
            return parse_failure(
                path,
                self._base_dir,
                kind=kind,
                scope=SCOPE_RESOURCE,
                parser=_PARSER_NAME,
                error=exc,
                charset=self._charset,
            )
        return self._record(path, kind, tree)

    def _kind_for(self, path: Path) -> str:
        suffix = path.suffix.lower()
        if suffix == ".xml":
            return "xml"
        if suffix in _YAML_SUFFIXES:
            return "yaml"
        if suffix == ".json":
            return "json"
        if suffix == ".properties":
            return "properties"
        if matches_any(path.as_posix(), self._plain_text_masks):
            return "text"
        return "quark"

    def _record(self, path: Path, kind: str, tree: Any) -> SourceFile:
        return SourceFile(
            source_path=relativize(self._base_dir, path),
            kind=kind,
            scope=SCOPE_RESOURCE,
            tree=tree,
            markers=MarkerSet(),
            charset=self._charset,
        )


def _parse_xml(text: str) -> ET.Element:
    return ET.fromstring(text)


def _parse_yaml(text: str) -> List[Any]:
    return list(yaml.safe_load_all(text))


def _parse_json(text: str) -> Any:
    return json.loads(text)


def _parse_properties(text: str) -> Dict[str, str]:
    properties: Dict[str, str] = {}
    pending = ""
    for raw_line in text.splitlines():
        line = pending + raw_line.strip()
        pending = ""
        if not line or line.startswith(("#", "!")):
            continue
        if line.endswith("\\") and not line.endswith("\\\\"):
            pending = line[:-1]
            continue
        separator = min(
            (index for index in (line.find("="), line.find(":")) if index != -1),
            default=-1,
        )
        if separator == -1:
            key, value = line, ""
        else:
            key, value = line[:separator], line[separator + 1 :]
        properties[key.strip()] = value.strip()
    if pending:
        properties[pending.strip()] = ""
    return properties


def _parse_text(text: str) -> str:
    return text


_PARSERS = {
    "xml": _parse_xml,
    "yaml": _parse_yaml,
    "json": _parse_json,
    "properties": _parse_properties,
    "text": _parse_text,
}


__all__ = ["DEFAULT_PLAIN_TEXT_MASKS", "ResourceParser"]
