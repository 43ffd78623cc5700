# ParseBridge - Build File Evaluation Bridge
# Copyright (C) 2026 ParseBridge Authors
# SPDX-License-Identifier: Apache-2.0
"""Global test fixtures for ParseBridge tests.

Provides a fake evaluator, parser options pointing at it, build files
that script the evaluator's responses, and an event recorder.
"""

from __future__ import annotations

import json
import sys
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any

import pytest

from parsebridge.config import ParserOptions, invalidate_cache
from parsebridge.parser import ProjectBuildFileParser
from tests.helpers.events import EventRecorder

HELPERS_DIR = Path(__file__).resolve().parent / "helpers"
FAKE_EVALUATOR = HELPERS_DIR / "fake_evaluator.py"


# ── Fixtures ──────────────────────────────────────────────


@pytest.fixture(autouse=True)
def _reset_options_cache() -> Iterator[None]:
    invalidate_cache()
    yield
    invalidate_cache()


@pytest.fixture
def project_root(tmp_path: Path) -> Path:
    root = tmp_path / "repo"
    root.mkdir()
    return root


@pytest.fixture
def make_options(project_root: Path) -> Callable[..., ParserOptions]:
    def _make(**overrides: Any) -> ParserOptions:
        data: dict[str, Any] = {
            "python_interpreter": sys.executable,
            "evaluator_script": FAKE_EVALUATOR,
            "project_root": project_root,
        }
        data.update(overrides)
        return ParserOptions(**data)

    return _make


@pytest.fixture
def options(make_options: Callable[..., ParserOptions]) -> ParserOptions:
    return make_options()


@pytest.fixture
def make_build_file(project_root: Path) -> Callable[..., Path]:
    """Write a build file whose content scripts the fake evaluator's reply."""

    def _make(relpath: str = "pkg/BUCK", **script: Any) -> Path:
        path = project_root / relpath
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(script), encoding="utf-8")
        return path

    return _make


@pytest.fixture
def recorder() -> EventRecorder:
    return EventRecorder()


@pytest.fixture
def parser(options: ParserOptions, recorder: EventRecorder) -> Iterator[ProjectBuildFileParser]:
    p = ProjectBuildFileParser(options, recorder)
    yield p
    if not p.is_closed:
        try:
            p.close()
        except Exception:
            pass
