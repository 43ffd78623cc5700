# ParseBridge - Build File Evaluation Bridge
# Copyright (C) 2026 ParseBridge Authors
# SPDX-License-Identifier: Apache-2.0
"""
Evaluation bridge between a build tool and an external build file evaluator.
"""

from __future__ import annotations

from parsebridge.events import EventBus, EventSink
from parsebridge.exceptions import (
    BuildFileEvaluationError,
    BuildFileParseError,
    BuildFileSyntaxError,
    EvaluatorProcessError,
    InvalidBuildFilePathError,
    ParseBridgeError,
    ParseInterruptedError,
    ParserStateError,
    ProtocolViolationError,
)
from parsebridge.parser import ParserState, ProjectBuildFileParser

__all__ = [
    "BuildFileEvaluationError",
    "BuildFileParseError",
    "BuildFileSyntaxError",
    "EvaluatorProcessError",
    "EventBus",
    "EventSink",
    "InvalidBuildFilePathError",
    "ParseBridgeError",
    "ParseInterruptedError",
    "ParserState",
    "ParserStateError",
    "ProjectBuildFileParser",
    "ProtocolViolationError",
]
