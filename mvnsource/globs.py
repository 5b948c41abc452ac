"""Glob matching with the semantics of Java ``PathMatcher`` globs."""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import PurePath
from typing import Iterable, List, Sequence


@dataclass(frozen=True)
class PathMatcher:
    """Matches POSIX-style paths against one glob pattern.

    ``*`` and ``?`` never cross a ``/``; ``**`` does. ``{a,b}`` is an
    alternation and ``[...]`` a character class (``[!...]`` negated).
    """

    pattern: str
    regex: "re.Pattern[str]"

    @classmethod
    def compile(cls, pattern: str) -> "PathMatcher":
        return cls(pattern=pattern, regex=re.compile(_translate(pattern)))

    def matches(self, path: PurePath | str) -> bool:
        text = path.as_posix() if isinstance(path, PurePath) else str(path).replace("\\", "/")
        return self.regex.fullmatch(text) is not None


def compile_matchers(patterns: Iterable[str]) -> List[PathMatcher]:
    return [PathMatcher.compile(pattern) for pattern in patterns if pattern.strip()]


def matches_any(path: PurePath | str, matchers: Sequence[PathMatcher]) -> bool:
    return any(matcher.matches(path) for matcher in matchers)


def _translate(pattern: str) -> str:
    parts: List[str] = []
    index = 0
    group_depth = 0
    length = len(pattern)
    while index < length:
        char = pattern[index]
        if char == "*":
            if index + 1 < length and pattern[index + 1] == "*":
                parts.append(".*")
                index += 2
                continue
            parts.append("[^/]*")
        elif char == "?":
            parts.append("[^/]")
        elif char == "[":
            end = pattern.find("]", index + 1)
            if end == -1:
                parts.append(re.escape(char))
            else:
                body = pattern[index + 1 : end]
                if body.startswith("!"):
                    body = "^" + body[1:]
                parts.append("[" + body.replace("\\", "\\\\") + "]")
                index = end
        elif char == "{":
            group_depth += 1
            parts.append("(?:")
        elif char == "}" and group_depth:
            group_depth -= 1
            parts.append(")")
        elif char == "," and group_depth:
            parts.append("|")
        elif char == "\\" and index + 1 < length:
            index += 1
            parts.append(re.escape(pattern[index]))
        else:
            parts.append(re.escape(char))
        index += 1
    if group_depth:
        raise ValueError(f"Unbalanced '{{' in glob pattern: {pattern}")
    return "".join(parts)


__all__ = ["PathMatcher", "compile_matchers", "matches_any"]
