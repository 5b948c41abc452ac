"""Java source parsing powered by the tree-sitter Java grammar."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

import tree_sitter_java
from tree_sitter import Language, Node, Parser

from ..markers import JavaSourceSet, MarkerSet, ParseExceptionResult
from ..models import SCOPE_MAIN, SourceFile
from ..utils import relativize
from .base import ParseContext, SourceParser, parse_failure

JAVA_LANGUAGE = Language(tree_sitter_java.language())

_PARSER_NAME = "JavaParser"

_TYPE_DECLARATIONS = {
    "class_declaration",
    "interface_declaration",
    "enum_declaration",
    "record_declaration",
    "annotation_type_declaration",
}


@dataclass(frozen=True)
class CompilationUnit:
    """Summary of one Java file: package, imports and top-level types."""

    package: Optional[str]
    imports: Tuple[str, ...]
    types: Tuple[str, ...]
    source: str

    @property
    def fully_qualified_types(self) -> Tuple[str, ...]:
        if not self.package:
            return self.types
        return tuple(f"{self.package}.{name}" for name in self.types)


class JavaParser(SourceParser):
    """Parses ``*.java`` files; one shared instance serves every scope of a run."""

    def __init__(self) -> None:
        self._parser = Parser(JAVA_LANGUAGE)
        self._classpath: Tuple[str, ...] = ()
        self._source_set_name = SCOPE_MAIN
        self._source_sets: Dict[Tuple[str, Tuple[str, ...]], JavaSourceSet] = {}

    def set_classpath(self, classpath: Sequence[Path]) -> None:
        self._classpath = tuple(str(path) for path in classpath)

    def set_source_set(self, name: str) -> None:
        self._source_set_name = name

    def source_set(self) -> JavaSourceSet:
        key = (self._source_set_name, self._classpath)
        marker = self._source_sets.get(key)
        if marker is None:
            marker = JavaSourceSet(name=self._source_set_name, classpath=self._classpath)
            self._source_sets[key] = marker
        return marker

    def parse(self, paths: Iterable[Path], base_dir: Path, ctx: ParseContext) -> List[SourceFile]:
        source_set = self.source_set()
        markers = MarkerSet([source_set])
        records: List[SourceFile] = []
        for path in paths:
            try:
                text = path.read_text(encoding=ctx.charset)
            except (OSError, UnicodeDecodeError) as exc:
                records.append(
                    parse_failure(
                        path,
                        base_dir,
                        kind="java",
                        scope=self._source_set_name,
                        parser=_PARSER_NAME,
                        error=exc,
                        markers=markers,
                        charset=ctx.charset,
                    )
                )
                continue

            tree = self._parser.parse(text.encode("utf-8"))
            unit = _compilation_unit(tree.root_node, text)
            file_markers = markers
            if tree.root_node.has_error:
                error = _first_error(tree.root_node)
                line = error.start_point[0] + 1 if error is not None else 1
                file_markers = markers.add(
                    ParseExceptionResult(
                        parser=_PARSER_NAME,
                        exception_type="SyntaxError",
                        message=f"Syntax error at line {line}",
                    )
                )
            records.append(
                SourceFile(
                    source_path=relativize(base_dir, path),
                    kind="java",
                    scope=self._source_set_name,
                    tree=unit,
                    markers=file_markers,
                    charset=ctx.charset,
                )
            )
        return records


def _node_text(node: Node, source: bytes) -> str:
    return source[node.start_byte : node.end_byte].decode("utf-8", errors="replace")


def _compilation_unit(root: Node, text: str) -> CompilationUnit:
    source = text.encode("utf-8")
    package: Optional[str] = None
    imports: List[str] = []
    types: List[str] = []
    for child in root.named_children:
        if child.type == "package_declaration":
            for part in child.named_children:
                if part.type in {"scoped_identifier", "identifier"}:
                    package = _node_text(part, source)
        elif child.type == "import_declaration":
            statement = _node_text(child, source).strip().rstrip(";")
            statement = statement[len("import") :].strip()
            if statement.startswith("static "):
                statement = statement[len("static ") :].strip()
            imports.append(" ".join(statement.split()))
        elif child.type in _TYPE_DECLARATIONS:
            name = child.child_by_field_name("name")
            if name is not None:
                types.append(_node_text(name, source))
    return CompilationUnit(package=package, imports=tuple(imports), types=tuple(types), source=text)


def _first_error(node: Node) -> Optional[Node]:
    for candidate in _walk(node):
        if candidate.type == "ERROR" or candidate.is_missing:
            return candidate
    return None


def _walk(node: Node) -> Iterator[Node]:
    yield node
    for child in node.children:
        yield from _walk(child)


__all__ = ["CompilationUnit", "JAVA_LANGUAGE", "JavaParser"]
