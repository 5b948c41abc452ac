"""Tests for the tree-sitter backed Java parser."""

from __future__ import annotations

from pathlib import Path

from mvnsource.markers import JavaSourceSet
from mvnsource.parsers import CompilationUnit, JavaParser, ParseContext


def _write(path: Path, content: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


def test_parse_extracts_package_imports_and_types(tmp_path: Path) -> None:
    source = _write(
        tmp_path / "src" / "main" / "java" / "com" / "example" / "App.java",
        "package com.example;\n\n"
        "import java.util.List;\n"
        "import static java.util.Objects.requireNonNull;\n\n"
        "public class App {\n    List<String> names;\n}\n\n"
        "interface Helper {}\n",
    )
    parser = JavaParser()
    parser.set_classpath([tmp_path / "target" / "classes"])
    parser.set_source_set("main")

    (record,) = parser.parse([source], tmp_path, ParseContext())

    assert record.source_path == Path("src/main/java/com/example/App.java")
    assert record.kind == "java"
    assert record.scope == "main"
    unit = record.tree
    assert isinstance(unit, CompilationUnit)
    assert unit.package == "com.example"
    assert unit.imports == ("java.util.List", "java.util.Objects.requireNonNull")
    assert unit.fully_qualified_types == ("com.example.App", "com.example.Helper")
    marker = record.markers.find(JavaSourceSet)
    assert marker is not None
    assert marker.classpath == (str(tmp_path / "target" / "classes"),)
    assert record.diagnostics == []


def test_source_set_marker_is_shared_per_classpath(tmp_path: Path) -> None:
    first = _write(tmp_path / "A.java", "class A {}\n")
    second = _write(tmp_path / "B.java", "class B {}\n")
    parser = JavaParser()
    parser.set_source_set("test")

    records = parser.parse([first, second], tmp_path, ParseContext())
    again = parser.source_set()
    parser.set_classpath([tmp_path / "other"])

    assert records[0].markers.find(JavaSourceSet) is records[1].markers.find(JavaSourceSet)
    assert records[0].markers.find(JavaSourceSet) is again
    assert parser.source_set() is not again
    assert parser.source_set().name == "test"


def test_syntax_errors_are_reported_as_diagnostics(tmp_path: Path) -> None:
    broken = _write(tmp_path / "Broken.java", "class Broken {\n    void run( {\n}\n")

    (record,) = JavaParser().parse([broken], tmp_path, ParseContext())

    assert record.tree is not None
    (diagnostic,) = record.diagnostics
    assert diagnostic.parser == "JavaParser"
    assert diagnostic.exception_type == "SyntaxError"


def test_unreadable_files_become_partial_records(tmp_path: Path) -> None:
    latin = tmp_path / "Latin.java"
    latin.write_bytes("class Café {}\n".encode("latin-1"))

    (record,) = JavaParser().parse([latin], tmp_path, ParseContext(charset="utf-8"))
    (decoded,) = JavaParser().parse([latin], tmp_path, ParseContext(charset="latin-1"))

    assert record.tree is None
    assert record.diagnostics[0].exception_type == "UnicodeDecodeError"
    assert decoded.tree is not None
    assert decoded.charset == "latin-1"
