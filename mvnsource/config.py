"""Configuration loading for mvnsource (.mvnsource.yml)."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml

from .errors import ConfigError
from .parsers.resources import DEFAULT_PLAIN_TEXT_MASKS
from .styles import NamedStyles

CONFIG_FILENAME = ".mvnsource.yml"


@dataclass
class PomCacheConfig:
    """Descriptor cache settings."""

    enabled: bool = True
    directory: Optional[Path] = None


@dataclass
class StyleConfig:
    """A named style declared in configuration."""

    name: str
    display_name: Optional[str] = None
    tab_size: Optional[int] = None
    indent_size: Optional[int] = None
    continuation_indent: Optional[int] = None
    use_tab_character: Optional[bool] = None

    def to_named_styles(self) -> NamedStyles:
        return NamedStyles(
            name=self.name,
            display_name=self.display_name or self.name,
            tab_size=self.tab_size,
            indent_size=self.indent_size,
            continuation_indent=self.continuation_indent,
            use_tab_character=self.use_tab_character,
        )


@dataclass
class ParserConfig:
    """Represents the settings defined in .mvnsource.yml."""

    root: Path
    pom_cache: PomCacheConfig = field(default_factory=PomCacheConfig)
    skip_maven_parsing: bool = False
    exclusions: List[str] = field(default_factory=list)
    plain_text_masks: List[str] = field(default_factory=lambda: list(DEFAULT_PLAIN_TEXT_MASKS))
    size_threshold_mb: int = 10
    styles: List[StyleConfig] = field(default_factory=list)

    def named_styles(self) -> List[NamedStyles]:
        return [style.to_named_styles() for style in self.styles]


def load_config(config_path: Path) -> ParserConfig:
    """Load configuration from disk; a missing file yields the defaults."""
    config_file = _resolve_config_path(config_path)
    root = config_file.parent.resolve()

    if not config_file.exists():
        return ParserConfig(root=root)

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{CONFIG_FILENAME} must contain a mapping at the root")

    config = ParserConfig(root=root)

    cache_data = _as_dict(data.get("pom_cache"))
    if cache_data:
        enabled = _as_bool(cache_data.get("enabled"))
        directory = _as_str(cache_data.get("directory"))
        config.pom_cache = PomCacheConfig(
            enabled=True if enabled is None else enabled,
            directory=Path(directory).expanduser() if directory else None,
        )

    skip = _as_bool(data.get("skip_maven_parsing"))
    if skip is not None:
        config.skip_maven_parsing = skip

    config.exclusions = _as_str_list(data.get("exclusions"))
    if "plain_text_masks" in data:
        config.plain_text_masks = _as_str_list(data.get("plain_text_masks"))

    threshold = _as_int(data.get("size_threshold_mb"))
    if threshold is not None:
        config.size_threshold_mb = threshold

    styles_data = data.get("styles")
    if styles_data is not None:
        if not isinstance(styles_data, list):
            raise ConfigError("styles must be a list of style definitions")
        config.styles = [_read_style(item) for item in styles_data]

    return config


def _read_style(item: Any) -> StyleConfig:
    style = _as_dict(item)
    name = _as_str(style.get("name"))
    if not name:
        raise ConfigError("Every style definition requires a name")
    return StyleConfig(
        name=name,
        display_name=_as_str(style.get("display_name")),
        tab_size=_as_int(style.get("tab_size")),
        indent_size=_as_int(style.get("indent_size")),
        continuation_indent=_as_int(style.get("continuation_indent")),
        use_tab_character=_as_bool(style.get("use_tab_character")),
    )


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    if config_path.name != CONFIG_FILENAME:
        return (config_path.parent / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return loaded or {}


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float, bool)) else None


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return None
    return None


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "1"}:
            return True
        if lowered in {"false", "no", "0"}:
            return False
    return None


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float, bool))]
    return []


__all__ = ["CONFIG_FILENAME", "ParserConfig", "PomCacheConfig", "StyleConfig", "load_config"]
