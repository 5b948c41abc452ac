"""Helper utilities for constructing temporary Maven builds in tests."""

from __future__ import annotations

import textwrap
from pathlib import Path
from typing import Iterable, Mapping, Optional, Sequence, Tuple

from mvnsource.project import MavenSession
from mvnsource.reactor import load_session
from mvnsource.settings import ExecutionRequest

GROUP_ID = "com.example"
VERSION = "1.0.0"


class ReactorBuilder:
    """Utility for writing a multi-module build into a throwaway directory."""

    def __init__(self, tmp_path: Path) -> None:
        self.root = tmp_path / "reactor"
        self.root.mkdir()
        self.local_repository = tmp_path / "m2" / "repository"

    def write(self, files: Mapping[str, str]) -> None:
        """Write `path -> contents` entries into the build."""
        for relative, content in files.items():
            path = self.root / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            normalised = textwrap.dedent(content).lstrip("\n")
            path.write_text(normalised, encoding="utf-8")

    def pom(
        self,
        directory: str,
        artifact_id: str,
        *,
        parent: Optional[str] = None,
        parent_relative_path: Optional[str] = None,
        modules: Sequence[str] = (),
        packaging: Optional[str] = None,
        properties: Optional[Mapping[str, str]] = None,
        dependencies: Iterable[str] = (),
        extra: str = "",
    ) -> Path:
        """Write a ``pom.xml`` under ``directory`` and return its path.

        ``parent`` and ``dependencies`` name artifacts of the same group and
        version.
        """
        lines = [
            '<project xmlns="http://maven.apache.org/POM/4.0.0">',
            "  <modelVersion>4.0.0</modelVersion>",
        ]
        if parent is not None:
            lines.append("  <parent>")
            lines.append(f"    <groupId>{GROUP_ID}</groupId>")
            lines.append(f"    <artifactId>{parent}</artifactId>")
            lines.append(f"    <version>{VERSION}</version>")
            if parent_relative_path is not None:
                lines.append(f"    <relativePath>{parent_relative_path}</relativePath>")
            lines.append("  </parent>")
        else:
            lines.append(f"  <groupId>{GROUP_ID}</groupId>")
            lines.append(f"  <version>{VERSION}</version>")
        lines.append(f"  <artifactId>{artifact_id}</artifactId>")
        if packaging is not None:
            lines.append(f"  <packaging>{packaging}</packaging>")
        if properties:
            lines.append("  <properties>")
            lines.extend(f"    <{key}>{value}</{key}>" for key, value in properties.items())
            lines.append("  </properties>")
        if modules:
            lines.append("  <modules>")
            lines.extend(f"    <module>{module}</module>" for module in modules)
            lines.append("  </modules>")
        dependencies = list(dependencies)
        if dependencies:
            lines.append("  <dependencies>")
            for dependency in dependencies:
                lines.append("    <dependency>")
                lines.append(f"      <groupId>{GROUP_ID}</groupId>")
                lines.append(f"      <artifactId>{dependency}</artifactId>")
                lines.append(f"      <version>{VERSION}</version>")
                lines.append("    </dependency>")
            lines.append("  </dependencies>")
        if extra:
            lines.append(textwrap.indent(textwrap.dedent(extra).strip("\n"), "  "))
        lines.append("</project>")

        relative = f"{directory}/pom.xml" if directory not in ("", ".") else "pom.xml"
        self.write({relative: "\n".join(lines) + "\n"})
        return (self.root / relative).resolve()

    def request(self, active_profiles: Tuple[str, ...] = ()) -> ExecutionRequest:
        return ExecutionRequest(
            local_repository_path=self.local_repository,
            active_profiles=list(active_profiles),
        )

    def session(self) -> MavenSession:
        """Load the reactor rooted at the build directory."""
        return load_session(self.root, self.request())

    def path(self, relative: str = "") -> Path:
        """Return the resolved path of ``relative`` inside the build."""
        return (self.root / relative).resolve() if relative else self.root.resolve()


__all__ = ["GROUP_ID", "ReactorBuilder", "VERSION"]
