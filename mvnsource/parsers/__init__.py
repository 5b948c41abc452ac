"""Parsers for descriptors, Java sources and resource files."""

from .base import DescriptorParser, ParseContext, ResourceCollector, SourceParser, parse_failure
from .java import CompilationUnit, JavaParser
from .pom import MavenConfig, PomParser, PomReadError, read_pom
from .resources import DEFAULT_PLAIN_TEXT_MASKS, ResourceParser

__all__ = [
    "CompilationUnit",
    "DEFAULT_PLAIN_TEXT_MASKS",
    "DescriptorParser",
    "JavaParser",
    "MavenConfig",
    "ParseContext",
    "PomParser",
    "PomReadError",
    "ResourceCollector",
    "ResourceParser",
    "SourceParser",
    "parse_failure",
    "read_pom",
]
