# ParseBridge - Build File Evaluation Bridge
# Copyright (C) 2026 ParseBridge Authors
# SPDX-License-Identifier: Apache-2.0
#
# This file is part of ParseBridge, licensed under Apache-2.0.
# See LICENSE for the full license text.

"""Configuration models for the build file parser.

Defines Pydantic models for the parser options JSON and provides
load / save helpers with a module-level singleton cache.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ValidationError, field_validator

from parsebridge.exceptions import ConfigNotFoundError, ConfigValidationError

logger = logging.getLogger("parsebridge.config")

# ---------------------------------------------------------------------------
# Pydantic models
# ---------------------------------------------------------------------------


class ProjectWatch(BaseModel):
    """Watchman watch covering a cell: the watched root plus the cell's prefix in it."""

    watch_root: str
    project_prefix: str | None = None


class WatchmanOptions(BaseModel):
    transport_path: Path | None = None
    project_watches: dict[Path, ProjectWatch] = {}


class ParserOptions(BaseModel):
    """Everything needed to launch the evaluator for one project cell."""

    python_interpreter: str = sys.executable
    evaluator_script: Path
    python_module_search_path: str | None = None
    project_root: Path
    cell_roots: dict[str, Path] = {}
    build_file_name: str = "BUCK"
    allow_empty_globs: bool = False
    use_watchman_glob: bool = False
    watchman_glob_stat_results: bool = False
    watchman_use_glob_generator: bool = False
    watchman: WatchmanOptions = WatchmanOptions()
    watchman_query_timeout_ms: int | None = None
    use_mercurial_glob: bool = False
    build_file_import_whitelist: list[str] = []
    autodeps_files_have_signatures: bool = True
    default_includes: list[str] = []
    raw_config: dict[str, dict[str, str]] = {}
    ignore_paths: list[str] = []

    @field_validator("project_root")
    @classmethod
    def _require_absolute_root(cls, value: Path) -> Path:
        if not value.is_absolute():
            raise ValueError(f"project_root must be absolute: {value}")
        return value

    @field_validator("watchman_query_timeout_ms")
    @classmethod
    def _require_positive_timeout(cls, value: int | None) -> int | None:
        if value is not None and value <= 0:
            raise ValueError(
                f"watchman_query_timeout_ms must be positive, got {value}"
            )
        return value

    @property
    def evaluator_dir(self) -> Path:
        """Directory the evaluator is installed in; its frames are hidden from users."""
        return self.evaluator_script.absolute().parent


# ---------------------------------------------------------------------------
# Singleton cache
# ---------------------------------------------------------------------------

_options: ParserOptions | None = None
_options_path: Path | None = None
_options_mtime: float = 0.0


def invalidate_cache() -> None:
    """Reset the module-level singleton cache."""
    global _options, _options_path, _options_mtime
    _options = None
    _options_path = None
    _options_mtime = 0.0


def get_options_path() -> Path:
    """Return the options file path, respecting PARSEBRIDGE_OPTIONS env var."""
    env_val = os.environ.get("PARSEBRIDGE_OPTIONS")
    if env_val:
        return Path(env_val).expanduser().resolve()
    return Path.cwd() / "parsebridge.json"


# ---------------------------------------------------------------------------
# Load / Save
# ---------------------------------------------------------------------------


def load_options(path: Path | None = None) -> ParserOptions:
    """Load parser options from disk, returning the cached instance when possible.

    The cache is invalidated when the file's mtime changes.

    Raises:
        ConfigNotFoundError: If the file does not exist.
        ConfigValidationError: If the file is not valid JSON or fails validation.
    """
    global _options, _options_path, _options_mtime

    if path is None:
        path = get_options_path()

    if _options is not None and _options_path == path:
        try:
            disk_mtime = path.stat().st_mtime
        except OSError:
            disk_mtime = 0.0
        if disk_mtime == _options_mtime:
            return _options
        logger.debug("Options file changed on disk (mtime %.3f → %.3f); reloading", _options_mtime, disk_mtime)

    if not path.is_file():
        raise ConfigNotFoundError(f"Parser options not found: {path}")

    logger.debug("Loading parser options from %s", path)
    try:
        data: dict[str, Any] = json.loads(path.read_text(encoding="utf-8"))
        options = ParserOptions.model_validate(data)
    except json.JSONDecodeError as exc:
        logger.error("Failed to parse %s: %s", path, exc)
        raise ConfigValidationError(f"Invalid JSON in {path}: {exc}") from exc
    except ValidationError as exc:
        logger.error("Invalid parser options in %s: %s", path, exc)
        raise ConfigValidationError(f"Invalid parser options in {path}:\n{exc}") from exc

    _options = options
    _options_path = path
    try:
        _options_mtime = path.stat().st_mtime
    except OSError:
        _options_mtime = 0.0
    return options


def save_options(options: ParserOptions, path: Path | None = None) -> None:
    """Persist *options* to disk as pretty-printed JSON and refresh the cache."""
    global _options, _options_path, _options_mtime

    if path is None:
        path = get_options_path()

    path.parent.mkdir(parents=True, exist_ok=True)

    payload = options.model_dump(mode="json")
    text = json.dumps(payload, indent=2, ensure_ascii=False) + "\n"
    path.write_text(text, encoding="utf-8")

    logger.debug("Parser options saved to %s", path)

    _options = options
    _options_path = path
    try:
        _options_mtime = path.stat().st_mtime
    except OSError:
        _options_mtime = 0.0
