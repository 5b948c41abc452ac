"""Tests for the resource sweep."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Set

import pytest

from mvnsource.parsers import ResourceParser
from tests._fixtures.reactor_builder import ReactorBuilder


def test_sweep_parses_known_formats(reactor_builder: ReactorBuilder) -> None:
    reactor_builder.write(
        {
            "src/main/resources/application.yml": "server:\n  port: 8080\n---\nspring: {}\n",
            "src/main/resources/beans.xml": "<beans><bean id='a'/></beans>",
            "src/main/resources/data.json": '{"enabled": true}',
            "src/main/resources/messages.properties": "# comment\ngreeting = hello \\\n  world\nfarewell:bye\n",
            "src/main/resources/notes.txt": "plain text",
            "src/main/resources/logo.png": "binary-ish",
        }
    )
    parser = ResourceParser(reactor_builder.path())
    already_parsed: Set[Path] = set()

    records = parser.parse(reactor_builder.path("src/main/resources"), already_parsed)

    by_name = {record.source_path.name: record for record in records}
    assert [record.source_path.name for record in records] == sorted(by_name)
    assert by_name["application.yml"].kind == "yaml"
    assert by_name["application.yml"].tree == [{"server": {"port": 8080}}, {"spring": {}}]
    assert by_name["beans.xml"].tree.tag == "beans"
    assert by_name["data.json"].tree == {"enabled": True}
    assert by_name["messages.properties"].tree == {"greeting": "hello world", "farewell": "bye"}
    assert by_name["notes.txt"].kind == "text"
    assert by_name["logo.png"].kind == "quark"
    assert by_name["logo.png"].tree is None
    assert all(record.scope == "resource" for record in records)
    assert len(already_parsed) == 6


def test_sweep_skips_claimed_excluded_and_pruned_paths(reactor_builder: ReactorBuilder) -> None:
    reactor_builder.write(
        {
            "pom.xml": "<project/>",
            "README.md": "# readme",
            "secrets/key.txt": "hidden",
            "target/classes/app.properties": "a=b",
            ".idea/workspace.xml": "<project/>",
            "module/pom.xml": "<project/>",
        }
    )
    parser = ResourceParser(
        reactor_builder.path(),
        exclusions=["secrets/**"],
        excluded_directories=[reactor_builder.path("module")],
    )

    records = parser.parse(reactor_builder.path(), {reactor_builder.path("pom.xml")})

    assert [record.source_path for record in records] == [Path("README.md")]


def test_sweep_skips_files_over_the_size_threshold(
    reactor_builder: ReactorBuilder, caplog: pytest.LogCaptureFixture
) -> None:
    reactor_builder.write({"big.txt": "x" * (1024 * 1024 + 1), "small.txt": "x"})
    parser = ResourceParser(reactor_builder.path(), size_threshold_mb=1)
    already_parsed: Set[Path] = set()

    with caplog.at_level(logging.INFO, logger="mvnsource.parsers.resources"):
        records = parser.parse(reactor_builder.path(), already_parsed)

    assert [record.source_path for record in records] == [Path("small.txt")]
    assert reactor_builder.path("big.txt") in already_parsed
    assert any("big.txt" in message for message in caplog.messages)


def test_sweep_reports_parse_failures(reactor_builder: ReactorBuilder) -> None:
    reactor_builder.write({"broken.json": "{not json", "broken.yaml": "key: [unclosed"})

    records = ResourceParser(reactor_builder.path()).parse(reactor_builder.path(), set())

    assert {record.source_path.name for record in records} == {"broken.json", "broken.yaml"}
    assert all(record.tree is None and record.diagnostics for record in records)


def test_sweep_of_missing_directory_is_empty(tmp_path: Path) -> None:
    assert ResourceParser(tmp_path).parse(tmp_path / "absent", set()) == []
