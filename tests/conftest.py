from __future__ import annotations

from pathlib import Path

import pytest

from tests._fixtures.reactor_builder import ReactorBuilder


@pytest.fixture
def reactor_builder(tmp_path: Path) -> ReactorBuilder:
    """Provide a reusable reactor builder rooted at the pytest tmp_path."""
    return ReactorBuilder(tmp_path)
