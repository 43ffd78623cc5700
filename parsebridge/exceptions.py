from __future__ import annotations
# ParseBridge - Build File Evaluation Bridge
# Copyright (C) 2026 ParseBridge Authors
# SPDX-License-Identifier: Apache-2.0
#
# This file is part of ParseBridge, licensed under Apache-2.0.
# See LICENSE for the full license text.

"""Unified exception hierarchy for ParseBridge.

All domain-specific exceptions derive from :class:`ParseBridgeError`,
enabling callers to catch the entire family with a single clause::

    try:
        parser.get_all(build_file)
    except ParseBridgeError as e:
        logger.error("Parse failed: %s", e)

Failures tied to a build file derive from :class:`BuildFileParseError`,
which carries the path so the caller always knows which file broke.
:class:`ParseInterruptedError` is deliberately outside that branch.
"""

from pathlib import Path
from typing import Any


class ParseBridgeError(Exception):
    """Base exception for all ParseBridge errors."""


# ── Build file parsing ───────────────────────────────────────


class BuildFileParseError(ParseBridgeError):
    """A parse call failed; carries the build file it failed for."""

    def __init__(self, detail: str, *, build_file: Path | None = None) -> None:
        self.detail = detail
        self.build_file = build_file
        if build_file is not None:
            message = f"Parse error for build file {build_file}:\n{detail}"
        else:
            message = f"Parse error: {detail}"
        super().__init__(message)


class ProtocolViolationError(BuildFileParseError):
    """The evaluator sent a malformed response or diagnostic."""


class BuildFileEvaluationError(BuildFileParseError):
    """The evaluator reported a fatal error while running the build file."""

    def __init__(
        self,
        detail: str,
        *,
        build_file: Path | None = None,
        exception_type: str | None = None,
        value: str | None = None,
        stack_trace: list[Any] | None = None,
    ) -> None:
        super().__init__(detail, build_file=build_file)
        self.exception_type = exception_type
        self.value = value
        self.stack_trace = stack_trace or []


class BuildFileSyntaxError(BuildFileEvaluationError):
    """The build file (or a file it includes) has a syntax error."""

    def __init__(
        self,
        detail: str,
        *,
        build_file: Path | None = None,
        file_name: Path | None = None,
        line_number: int | None = None,
        column_offset: int | None = None,
        text: str = "",
    ) -> None:
        super().__init__(detail, build_file=build_file, exception_type="SyntaxError")
        self.file_name = file_name
        self.line_number = line_number
        self.column_offset = column_offset
        self.text = text


class EvaluatorProcessError(BuildFileParseError):
    """Evaluator failed to launch, exited non-zero, or its streams broke."""


# ── Caller errors ────────────────────────────────────────────


class ParserStateError(ParseBridgeError):
    """Operation invoked on a closed parser, or concurrent use detected."""


class InvalidBuildFilePathError(ParseBridgeError, ValueError):
    """Build file path is not absolute or lies outside the project root."""


class ParseInterruptedError(ParseBridgeError):
    """A blocking read or write on the evaluator's streams was interrupted."""


# ── Configuration ────────────────────────────────────────────


class ConfigError(ParseBridgeError):
    """Configuration errors."""


class ConfigNotFoundError(ConfigError):
    """Configuration file not found."""


class ConfigValidationError(ConfigError):
    """Configuration validation failure."""
