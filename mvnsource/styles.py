"""Named formatting styles: autodetection over a batch and merging."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence

from .markers import Marker, random_id
from .models import SourceFile

AUTODETECT_NAME = "mvnsource.Autodetect"
MERGED_NAME = "mvnsource.MergedStyles"

_STYLE_FIELDS = ("tab_size", "indent_size", "continuation_indent", "use_tab_character")
_CANDIDATE_INDENTS = (2, 3, 4, 8)


@dataclass(frozen=True)
class NamedStyles(Marker):
    """Tabs-and-indents settings attached to Java compilation units."""

    name: str
    display_name: str
    tab_size: Optional[int] = None
    indent_size: Optional[int] = None
    continuation_indent: Optional[int] = None
    use_tab_character: Optional[bool] = None
    id: str = field(default_factory=random_id)

    def is_empty(self) -> bool:
        return all(getattr(self, name) is None for name in _STYLE_FIELDS)


def merge(styles: Sequence[NamedStyles]) -> Optional[NamedStyles]:
    """Merge styles; for each setting the first style that defines it wins."""
    candidates = [style for style in styles if not style.is_empty()]
    if not candidates:
        return None
    if len(candidates) == 1:
        return candidates[0]

    values = {}
    for name in _STYLE_FIELDS:
        for style in candidates:
            value = getattr(style, name)
            if value is not None:
                values[name] = value
                break
    return NamedStyles(
        name=MERGED_NAME,
        display_name=" + ".join(style.display_name for style in candidates),
        **values,
    )


def autodetect(units: Iterable[SourceFile]) -> Optional[NamedStyles]:
    """Infer indentation settings from the leading whitespace of Java sources."""
    tab_lines = 0
    space_lines = 0
    deltas: Counter[int] = Counter()

    for unit in units:
        source = getattr(unit.tree, "source", None)
        if not isinstance(source, str):
            continue
        previous = 0
        for line in source.splitlines():
            stripped = line.lstrip(" \t")
            if not stripped or stripped.startswith("*"):
                continue
            leading = line[: len(line) - len(stripped)]
            if leading.startswith("\t"):
                tab_lines += 1
            elif leading:
                space_lines += 1
                width = len(leading)
                if width > previous and (width - previous) in _CANDIDATE_INDENTS:
                    deltas[width - previous] += 1
            previous = len(leading.expandtabs(4))

    if not tab_lines and not space_lines:
        return None

    use_tabs = tab_lines > space_lines
    indent_size = 4 if use_tabs or not deltas else _most_common(deltas)
    return NamedStyles(
        name=AUTODETECT_NAME,
        display_name="Auto-detected",
        tab_size=4 if use_tabs else indent_size,
        indent_size=indent_size,
        continuation_indent=indent_size * 2,
        use_tab_character=use_tabs,
    )


def _most_common(counter: Counter[int]) -> int:
    # Ties resolve to the smaller indent.
    ranked: List[tuple[int, int]] = sorted(counter.items(), key=lambda item: (-item[1], item[0]))
    return ranked[0][0]


__all__ = ["AUTODETECT_NAME", "MERGED_NAME", "NamedStyles", "autodetect", "merge"]
