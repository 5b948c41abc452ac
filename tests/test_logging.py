"""Tests for mvnsource.logging."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from mvnsource.logging import ProjectLogger, configure_logging, get_logger


def test_get_logger_uses_package_hierarchy() -> None:
    assert get_logger("orchestrator").name == "mvnsource.orchestrator"
    assert get_logger().name == "mvnsource"


def test_project_logger_prefixes_messages(caplog: pytest.LogCaptureFixture) -> None:
    logger = ProjectLogger(get_logger("tests"))

    with caplog.at_level(logging.DEBUG, logger="mvnsource.tests"):
        logger.info("app", "Parsed %d files", 3)
        assert logger.is_debug_enabled()

    assert caplog.messages == ["Project [app] Parsed 3 files"]


def test_configure_logging_writes_file(tmp_path: Path) -> None:
    log_file = tmp_path / "run.log"
    logger = configure_logging(verbose=True, log_file=log_file)
    try:
        get_logger("tests").debug("hello from tests")
        for handler in logger.handlers:
            handler.flush()

        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 2
        assert "hello from tests" in log_file.read_text(encoding="utf-8")
    finally:
        for handler in list(logger.handlers):
            handler.close()
            logger.removeHandler(handler)
        logger.propagate = True
        logger.setLevel(logging.NOTSET)
