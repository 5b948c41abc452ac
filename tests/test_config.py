"""Tests for mvnsource.config."""

from __future__ import annotations

from pathlib import Path

import pytest

from mvnsource.config import ParserConfig, PomCacheConfig, load_config
from mvnsource.errors import ConfigError
from mvnsource.parsers.resources import DEFAULT_PLAIN_TEXT_MASKS


def test_load_config_returns_defaults_when_missing(tmp_path: Path) -> None:
    config = load_config(tmp_path)

    assert isinstance(config, ParserConfig)
    assert config.root == tmp_path.resolve()
    assert config.pom_cache == PomCacheConfig(enabled=True, directory=None)
    assert config.skip_maven_parsing is False
    assert config.exclusions == []
    assert config.plain_text_masks == list(DEFAULT_PLAIN_TEXT_MASKS)
    assert config.size_threshold_mb == 10
    assert config.named_styles() == []


def test_load_config_parses_expected_fields(tmp_path: Path) -> None:
    config_file = tmp_path / ".mvnsource.yml"
    config_file.write_text(
        """
pom_cache:
  enabled: false
  directory: "~/caches"
skip_maven_parsing: "yes"
exclusions:
  - "**/Excluded*.java"
plain_text_masks: ["**/*.txt"]
size_threshold_mb: "25"
styles:
  - name: com.example.Team
    display_name: Team style
    tab_size: 4
    indent_size: 4
    use_tab_character: false
""",
        encoding="utf-8",
    )

    config = load_config(config_file)

    assert config.pom_cache.enabled is False
    assert config.pom_cache.directory == Path("~/caches").expanduser()
    assert config.skip_maven_parsing is True
    assert config.exclusions == ["**/Excluded*.java"]
    assert config.plain_text_masks == ["**/*.txt"]
    assert config.size_threshold_mb == 25
    (style,) = config.named_styles()
    assert style.name == "com.example.Team"
    assert style.display_name == "Team style"
    assert (style.tab_size, style.indent_size, style.use_tab_character) == (4, 4, False)
    assert style.continuation_indent is None


def test_load_config_resolves_sibling_file(tmp_path: Path) -> None:
    (tmp_path / ".mvnsource.yml").write_text("exclusions: '**/Foo.java'\n", encoding="utf-8")

    config = load_config(tmp_path / "pom.xml")

    assert config.exclusions == ["**/Foo.java"]


def test_load_config_rejects_invalid_yaml(tmp_path: Path) -> None:
    (tmp_path / ".mvnsource.yml").write_text("exclusions: [unclosed\n", encoding="utf-8")

    with pytest.raises(ConfigError):
        load_config(tmp_path)


@pytest.mark.parametrize(
    "content",
    ["- just\n- a list\n", "styles: {name: x}\n", "styles:\n  - tab_size: 4\n"],
    ids=["root-list", "styles-mapping", "style-without-name"],
)
def test_load_config_rejects_invalid_structure(tmp_path: Path, content: str) -> None:
    (tmp_path / ".mvnsource.yml").write_text(content, encoding="utf-8")

    with pytest.raises(ConfigError):
        load_config(tmp_path)
