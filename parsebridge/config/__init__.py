# ParseBridge - Build File Evaluation Bridge
# Copyright (C) 2026 ParseBridge Authors
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

from parsebridge.config.files import ConfigFiles
from parsebridge.config.models import (
    ParserOptions,
    ProjectWatch,
    WatchmanOptions,
    get_options_path,
    invalidate_cache,
    load_options,
    save_options,
)
