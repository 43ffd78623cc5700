# ParseBridge - Build File Evaluation Bridge
# Copyright (C) 2026 ParseBridge Authors
# SPDX-License-Identifier: Apache-2.0

"""Temporary JSON files handed to the evaluator on its command line."""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Any

from parsebridge.config.models import ParserOptions

logger = logging.getLogger(__name__)


def _write_temp_json(prefix: str, payload: Any) -> Path:
    fd, name = tempfile.mkstemp(prefix=prefix, suffix=".json")
    with os.fdopen(fd, "w", encoding="utf-8") as fh:
        json.dump(payload, fh)
    logger.debug("Wrote %s", name)
    return Path(name)


class ConfigFiles:
    """Lazily written, memoized config and ignore-path files.

    Each file is created on first access and reused for the lifetime of
    the owner. :meth:`cleanup` removes whatever was created.
    """

    def __init__(self, options: ParserOptions) -> None:
        self._options = options
        self._lock = threading.Lock()
        self._raw_config_json: Path | None = None
        self._ignore_paths_json: Path | None = None

    @property
    def raw_config_json(self) -> Path:
        with self._lock:
            if self._raw_config_json is None:
                self._raw_config_json = _write_temp_json(
                    "raw_config", self._options.raw_config,
                )
            return self._raw_config_json

    @property
    def ignore_paths_json(self) -> Path:
        with self._lock:
            if self._ignore_paths_json is None:
                self._ignore_paths_json = _write_temp_json(
                    "ignore_paths", list(self._options.ignore_paths),
                )
            return self._ignore_paths_json

    def cleanup(self) -> None:
        with self._lock:
            for path in (self._raw_config_json, self._ignore_paths_json):
                if path is None:
                    continue
                try:
                    path.unlink()
                except FileNotFoundError:
                    pass
                except OSError:
                    logger.debug("Failed to remove %s", path, exc_info=True)
            self._raw_config_json = None
            self._ignore_paths_json = None
