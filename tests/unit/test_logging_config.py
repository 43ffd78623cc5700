"""Unit tests for parsebridge/logging_config.py."""
# ParseBridge - Build File Evaluation Bridge
# Copyright (C) 2026 ParseBridge Authors
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import json
import logging
from collections.abc import Iterator
from logging.handlers import RotatingFileHandler
from pathlib import Path

import pytest
import structlog

from parsebridge.logging_config import bound_build_file, setup_logging


@pytest.fixture(autouse=True)
def _restore_root_logger() -> Iterator[None]:
    root = logging.getLogger()
    level = root.level
    yield
    for handler in root.handlers[:]:
        if type(handler) in (logging.StreamHandler, RotatingFileHandler):
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)
    structlog.reset_defaults()


def _flush() -> None:
    for handler in logging.getLogger().handlers:
        handler.flush()


class TestSetupLogging:
    def test_console_only_by_default(self):
        setup_logging(level="WARNING")
        root = logging.getLogger()
        assert root.level == logging.WARNING
        assert len(root.handlers) == 1

    def test_unknown_level_falls_back_to_info(self):
        setup_logging(level="chatty")
        assert logging.getLogger().level == logging.INFO

    def test_json_file_carries_build_file(self, tmp_path: Path):
        setup_logging(level="DEBUG", log_dir=tmp_path / "logs")

        with bound_build_file(Path("/repo/pkg/BUCK")):
            logging.getLogger("parsebridge.test").info("parsing %s", "now")
        logging.getLogger("parsebridge.test").info("after")
        _flush()

        lines = (tmp_path / "logs" / "parsebridge.log").read_text(encoding="utf-8").splitlines()
        first, second = (json.loads(line) for line in lines)
        assert first["event"] == "parsing now"
        assert first["build_file"] == "/repo/pkg/BUCK"
        assert first["logger"] == "parsebridge.test"
        assert "build_file" not in second

    def test_plain_file_format(self, tmp_path: Path):
        setup_logging(level="INFO", log_dir=tmp_path, json_file=False)
        logging.getLogger("parsebridge.test").warning("plain text")
        _flush()

        content = (tmp_path / "parsebridge.log").read_text(encoding="utf-8")
        assert "plain text" in content
        assert not content.lstrip().startswith("{")
