"""Tests for descriptor parsing through the pom cache."""

from __future__ import annotations

from pathlib import Path
from typing import List

import pytest

from mvnsource.markers import ParseExceptionResult
from mvnsource.models import Coordinate, Pom, ResolvedPom
from mvnsource.parsers import MavenConfig, ParseContext, PomParser, PomReadError, read_pom
from mvnsource.stores import InMemoryPomCache, cache_key
from tests._fixtures.reactor_builder import ReactorBuilder


class _RecordingCache(InMemoryPomCache):
    def __init__(self) -> None:
        super().__init__()
        self.puts: List[str] = []

    def put(self, key: str, pom: Pom) -> None:
        self.puts.append(key)
        super().put(key, pom)


def test_read_pom_inherits_coordinates_from_parent(reactor_builder: ReactorBuilder) -> None:
    path = reactor_builder.pom(
        "core",
        "core",
        parent="root",
        properties={"java.version": "17"},
        extra="""
        <build>
          <sourceDirectory>src/java</sourceDirectory>
          <resources><resource><directory>conf</directory></resource></resources>
        </build>
        <profiles>
          <profile><id>fast</id><activation><activeByDefault>true</activeByDefault></activation></profile>
          <profile><id>slow</id></profile>
        </profiles>
        """,
    )

    pom = read_pom(path)

    assert pom.coordinate == Coordinate("com.example", "core", "1.0.0")
    assert pom.parent == Coordinate("com.example", "root", "1.0.0")
    assert pom.parent_relative_path == "../pom.xml"
    assert pom.properties == {"java.version": "17"}
    assert pom.profiles == ["fast", "slow"]
    assert pom.active_by_default_profiles == ["fast"]
    assert pom.build == {"sourceDirectory": "src/java", "resourceDirectory": "conf"}
    assert len(pom.checksum) == 64


def test_read_pom_rejects_malformed_documents(tmp_path: Path) -> None:
    broken = tmp_path / "pom.xml"
    broken.write_text("<project><artifactId>oops</project>", encoding="utf-8")
    anonymous = tmp_path / "anonymous.xml"
    anonymous.write_text("<project><groupId>g</groupId></project>", encoding="utf-8")

    with pytest.raises(PomReadError):
        read_pom(broken)
    with pytest.raises(PomReadError):
        read_pom(anonymous)


def test_parser_resolves_properties_and_ancestors(reactor_builder: ReactorBuilder) -> None:
    root = reactor_builder.pom(".", "root", packaging="pom", properties={"java.version": "11", "team": "core"})
    child = reactor_builder.pom("app", "app", parent="root", properties={"java.version": "17"})

    records = PomParser().parse([child, root], reactor_builder.path(), ParseContext())

    assert [record.source_path for record in records] == [Path("app/pom.xml"), Path("pom.xml")]
    resolved = records[0].tree
    assert isinstance(resolved, ResolvedPom)
    assert resolved.ancestors == (Coordinate("com.example", "root", "1.0.0"),)
    assert resolved.properties["java.version"] == "17"
    assert resolved.properties["team"] == "core"
    assert resolved.properties["project.artifactId"] == "app"
    assert all(record.kind == "pom" and record.scope == "descriptor" for record in records)


def test_parser_reuses_cached_poms_until_the_file_changes(reactor_builder: ReactorBuilder) -> None:
    path = reactor_builder.pom(".", "root")
    cache = _RecordingCache()
    ctx = ParseContext(pom_cache=cache)
    parser = PomParser()

    parser.parse([path], reactor_builder.path(), ctx)
    parser.parse([path], reactor_builder.path(), ctx)
    assert cache.puts == [cache_key(path)]

    reactor_builder.pom(".", "root", properties={"changed": "yes"})
    records = parser.parse([path], reactor_builder.path(), ctx)

    assert cache.puts == [cache_key(path), cache_key(path)]
    assert records[0].tree.properties["changed"] == "yes"


def test_parser_reports_unreadable_descriptors(reactor_builder: ReactorBuilder) -> None:
    good = reactor_builder.pom(".", "root")
    reactor_builder.write({"bad/pom.xml": "<project>"})

    records = PomParser().parse([good, reactor_builder.path("bad/pom.xml")], reactor_builder.path(), ParseContext())

    failed = next(record for record in records if record.source_path == Path("bad/pom.xml"))
    assert failed.tree is None
    (diagnostic,) = failed.diagnostics
    assert isinstance(diagnostic, ParseExceptionResult)
    assert diagnostic.parser == "PomParser"


def test_parser_applies_maven_config(reactor_builder: ReactorBuilder) -> None:
    path = reactor_builder.pom(
        ".",
        "root",
        extra="""
        <profiles>
          <profile><id>default</id><activation><activeByDefault>true</activeByDefault></activation></profile>
          <profile><id>release</id></profile>
        </profiles>
        """,
    )
    reactor_builder.write({".mvn/maven.config": "-Prelease,!default -Drevision=2.0.0\n--define skipTests"})
    config_path = reactor_builder.path(".mvn/maven.config")

    config = MavenConfig.load(config_path)
    records = PomParser(maven_config=config_path).parse([path], reactor_builder.path(), ParseContext())

    assert config.active_profiles == ("release",)
    assert config.inactive_profiles == ("default",)
    assert config.properties == {"revision": "2.0.0", "skipTests": "true"}
    resolved = records[0].tree
    assert resolved.active_profiles == ("release",)
    assert resolved.properties["revision"] == "2.0.0"


def test_parser_activates_default_profiles(reactor_builder: ReactorBuilder) -> None:
    path = reactor_builder.pom(
        ".",
        "root",
        extra="""
        <profiles>
          <profile><id>default</id><activation><activeByDefault>true</activeByDefault></activation></profile>
        </profiles>
        """,
    )

    records = PomParser().parse([path], reactor_builder.path(), ParseContext(active_profiles=("elsewhere",)))

    assert records[0].tree.active_profiles == ("elsewhere", "default")
