"""Descriptor (``pom.xml``) parsing backed by the pom cache."""

from __future__ import annotations

import shlex
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

from ..logging import get_logger
from ..markers import MarkerSet
from ..models import SCOPE_DESCRIPTOR, Coordinate, Dependency, Pom, RawRepository, ResolvedPom, SourceFile
from ..settings import build_raw_repositories, read_host_repository
from ..stores.pom_cache import cache_key
from ..utils import (
    canonical_path,
    child_bool,
    child_text,
    element_properties,
    find_child,
    hash_file,
    iter_children,
    nested_texts,
    relativize,
)
from .base import DescriptorParser, ParseContext, parse_failure

logger = get_logger("parsers.pom")

_PARSER_NAME = "PomParser"


class PomReadError(ValueError):
    """Raised when a descriptor is malformed or lacks required elements."""


def read_pom(path: Path) -> Pom:
    """Parse the descriptor at ``path``; raises ``PomReadError`` or ``OSError``."""
    canonical = canonical_path(path)
    try:
        root = ET.fromstring(canonical.read_bytes())
    except ET.ParseError as exc:
        raise PomReadError(f"{canonical}: {exc}") from exc

    parent_element = find_child(root, "parent")
    parent: Optional[Coordinate] = None
    parent_relative_path: Optional[str] = None
    if parent_element is not None:
        parent = Coordinate(
            group_id=child_text(parent_element, "groupId") or "",
            artifact_id=child_text(parent_element, "artifactId") or "",
            version=child_text(parent_element, "version") or "",
        )
        relative = find_child(parent_element, "relativePath")
        if relative is None:
            parent_relative_path = "../pom.xml"
        else:
            # An empty <relativePath/> disables the local lookup.
            parent_relative_path = (relative.text or "").strip() or None

    artifact_id = child_text(root, "artifactId")
    if not artifact_id:
        raise PomReadError(f"{canonical}: missing <artifactId>")
    group_id = child_text(root, "groupId") or (parent.group_id if parent else "")
    version = child_text(root, "version") or (parent.version if parent else "")

    profiles: List[str] = []
    active_by_default: List[str] = []
    for profile in iter_children(find_child(root, "profiles"), "profile"):
        profile_id = child_text(profile, "id")
        if not profile_id:
            continue
        profiles.append(profile_id)
        if child_bool(find_child(profile, "activation"), "activeByDefault"):
            active_by_default.append(profile_id)

    dependencies = [
        Dependency(
            group_id=child_text(element, "groupId") or "",
            artifact_id=child_text(element, "artifactId") or "",
            version=child_text(element, "version"),
            scope=child_text(element, "scope"),
        )
        for element in iter_children(find_child(root, "dependencies"), "dependency")
    ]

    repositories: List[RawRepository] = list(
        build_raw_repositories(
            [read_host_repository(item) for item in iter_children(find_child(root, "repositories"), "repository")]
        )
        or ()
    )

    return Pom(
        path=canonical.as_posix(),
        coordinate=Coordinate(group_id=group_id, artifact_id=artifact_id, version=version),
        parent=parent,
        parent_relative_path=parent_relative_path,
        packaging=child_text(root, "packaging") or "jar",
        name=child_text(root, "name"),
        properties=element_properties(root),
        modules=nested_texts(root, "modules", "module"),
        dependencies=dependencies,
        repositories=repositories,
        profiles=profiles,
        active_by_default_profiles=active_by_default,
        build=_read_build(find_child(root, "build")),
        checksum=hash_file(canonical),
    )


def _read_build(build: Optional[ET.Element]) -> Dict[str, str]:
    values: Dict[str, str] = {}
    for name in ("directory", "sourceDirectory", "testSourceDirectory"):
        text = child_text(build, name)
        if text:
            values[name] = text
    # Only the first declared resource root of each kind is tracked.
    for container, item, key in (
        ("resources", "resource", "resourceDirectory"),
        ("testResources", "testResource", "testResourceDirectory"),
    ):
        for element in iter_children(find_child(build, container), item):
            text = child_text(element, "directory")
            if text:
                values[key] = text
                break
    return values


@dataclass(frozen=True)
class MavenConfig:
    """Options read from ``.mvn/maven.config``."""

    active_profiles: Tuple[str, ...] = ()
    inactive_profiles: Tuple[str, ...] = ()
    properties: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def load(cls, path: Optional[Path]) -> "MavenConfig":
        if path is None or not path.is_file():
            return cls()
        tokens = shlex.split(path.read_text(encoding="utf-8"), comments=True)
        active: List[str] = []
        inactive: List[str] = []
        properties: Dict[str, str] = {}
        index = 0
        while index < len(tokens):
            token = tokens[index]
            value: Optional[str] = None
            if token in ("-P", "--activate-profiles", "-D", "--define") and index + 1 < len(tokens):
                value = tokens[index + 1]
                index += 1
            elif token.startswith("--activate-profiles="):
                token, value = "-P", token.split("=", 1)[1]
            elif token.startswith("--define="):
                token, value = "-D", token.split("=", 1)[1]
            elif token.startswith(("-P", "-D")):
                token, value = token[:2], token[2:]
            index += 1
            if value is None:
                continue
            if token in ("-P", "--activate-profiles"):
                for profile in value.split(","):
                    profile = profile.strip()
                    if profile.startswith(("!", "-")):
                        inactive.append(profile[1:])
                    elif profile:
                        active.append(profile.lstrip("+"))
            else:
                key, _, prop_value = value.partition("=")
                properties[key] = prop_value or "true"
        return cls(tuple(active), tuple(inactive), properties)


class PomParser(DescriptorParser):
    """Reads descriptors through the context's pom cache and resolves them as a batch."""

    def __init__(self, *, maven_config: Optional[Path] = None) -> None:
        self._maven_config = maven_config

    def parse(self, paths: Iterable[Path], base_dir: Path, ctx: ParseContext) -> List[SourceFile]:
        config = MavenConfig.load(self._maven_config)
        records: List[SourceFile] = []
        poms: Dict[str, Pom] = {}
        order: List[Path] = []

        for path in paths:
            canonical = canonical_path(path)
            try:
                pom = self._load(canonical, ctx)
            except (OSError, PomReadError) as exc:
                logger.debug("Unable to parse descriptor %s: %s", canonical, exc)
                records.append(
                    parse_failure(
                        canonical,
                        base_dir,
                        kind="pom",
                        scope=SCOPE_DESCRIPTOR,
                        parser=_PARSER_NAME,
                        error=exc,
                    )
                )
                continue
            poms[cache_key(canonical)] = pom
            order.append(canonical)

        by_coordinate = {pom.coordinate: pom for pom in poms.values()}
        for canonical in order:
            pom = poms[cache_key(canonical)]
            resolved = self._resolve(pom, poms, by_coordinate, config, ctx)
            records.append(
                SourceFile(
                    source_path=relativize(base_dir, canonical),
                    kind="pom",
                    scope=SCOPE_DESCRIPTOR,
                    tree=resolved,
                    markers=MarkerSet(),
                    charset="utf-8",
                )
            )
        return records

    # ------------------------------------------------------------------
    # Internal helpers

    @staticmethod
    def _load(path: Path, ctx: ParseContext) -> Pom:
        key = cache_key(path)
        cached = ctx.pom_cache.get(key)
        if cached is not None and cached.checksum == hash_file(path):
            return cached
        pom = read_pom(path)
        ctx.pom_cache.put(key, pom)
        return pom

    @staticmethod
    def _resolve(
        pom: Pom,
        poms: Dict[str, Pom],
        by_coordinate: Dict[Coordinate, Pom],
        config: MavenConfig,
        ctx: ParseContext,
    ) -> ResolvedPom:
        chain: List[Pom] = []
        ancestors: List[Coordinate] = []
        current = pom
        seen = {pom.coordinate}
        while current.parent is not None and current.parent not in seen:
            seen.add(current.parent)
            ancestors.append(current.parent)
            parent = None
            if current.parent_relative_path:
                candidate = Path(current.path).parent / current.parent_relative_path
                if candidate.name != "pom.xml" and not candidate.suffix:
                    candidate = candidate / "pom.xml"
                parent = poms.get(cache_key(candidate))
                if parent is not None and parent.coordinate != current.parent:
                    parent = None
            if parent is None:
                parent = by_coordinate.get(current.parent)
            if parent is None:
                break
            chain.append(parent)
            current = parent

        properties: Dict[str, str] = {}
        for ancestor in reversed(chain):
            properties.update(ancestor.properties)
        properties.update(pom.properties)
        properties.update(
            {
                "project.groupId": pom.coordinate.group_id,
                "project.artifactId": pom.coordinate.artifact_id,
                "project.version": pom.coordinate.version,
            }
        )
        properties.update(config.properties)

        requested = [*ctx.active_profiles, *config.active_profiles]
        declared = set(pom.profiles)
        active = [profile for profile in requested if profile not in config.inactive_profiles]
        if not any(profile in declared for profile in active):
            active.extend(
                profile
                for profile in pom.active_by_default_profiles
                if profile not in config.inactive_profiles
            )
        return ResolvedPom(
            pom=pom,
            ancestors=tuple(ancestors),
            properties=properties,
            active_profiles=tuple(dict.fromkeys(active)),
        )


__all__ = ["MavenConfig", "PomParser", "PomReadError", "read_pom"]
