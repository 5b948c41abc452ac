"""Shared helpers for paths, hashing and namespace-agnostic XML access."""

from __future__ import annotations

import hashlib
import os
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Dict, Iterator, List, Optional


def canonical_path(path: Path | str) -> Path:
    """Return the absolute, symlink-resolved form of ``path``."""
    return Path(path).expanduser().resolve()


def relativize(base_dir: Path, path: Path) -> Path:
    """Return ``path`` relative to ``base_dir``, climbing out with ``..`` when needed."""
    return Path(os.path.relpath(canonical_path(path), canonical_path(base_dir)))


def is_within(path: Path, directory: Path) -> bool:
    try:
        canonical_path(path).relative_to(canonical_path(directory))
    except ValueError:
        return False
    return True


def hash_file(path: Path) -> str:
    digest = hashlib.sha256()
    with path.open("rb") as handle:
        for chunk in iter(lambda: handle.read(1024 * 1024), b""):
            digest.update(chunk)
    return digest.hexdigest()


# XML helpers


def local_name(element: ET.Element) -> str:
    tag = element.tag
    if isinstance(tag, str) and tag.startswith("{"):
        return tag.split("}", 1)[1]
    return str(tag)


def find_child(element: Optional[ET.Element], name: str) -> Optional[ET.Element]:
    if element is None:
        return None
    for child in element:
        if local_name(child) == name:
            return child
    return None


def iter_children(element: Optional[ET.Element], name: str) -> Iterator[ET.Element]:
    if element is None:
        return
    for child in element:
        if local_name(child) == name:
            yield child


def child_text(element: Optional[ET.Element], name: str) -> Optional[str]:
    child = find_child(element, name)
    if child is None or child.text is None:
        return None
    text = child.text.strip()
    return text or None


def child_bool(element: Optional[ET.Element], name: str) -> Optional[bool]:
    text = child_text(element, name)
    if text is None:
        return None
    return text.lower() == "true"


def nested_texts(element: Optional[ET.Element], container: str, item: str) -> List[str]:
    values: List[str] = []
    for child in iter_children(find_child(element, container), item):
        if child.text and child.text.strip():
            values.append(child.text.strip())
    return values


def element_properties(element: Optional[ET.Element]) -> Dict[str, str]:
    properties: Dict[str, str] = {}
    container = find_child(element, "properties")
    if container is None:
        return properties
    for child in container:
        properties[local_name(child)] = (child.text or "").strip()
    return properties


__all__ = [
    "canonical_path",
    "child_bool",
    "child_text",
    "element_properties",
    "find_child",
    "hash_file",
    "is_within",
    "iter_children",
    "local_name",
    "nested_texts",
    "relativize",
]
