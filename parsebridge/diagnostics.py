# ParseBridge - Build File Evaluation Bridge
# Copyright (C) 2026 ParseBridge Authors
# SPDX-License-Identifier: Apache-2.0

"""Dispatch the diagnostics returned alongside each parse result.

Diagnostics are handled strictly in the order the evaluator emitted them.
Each one is logged, forwarded to the event sink, or turned into an error;
the first fatal one stops processing.  Watchman diagnostics follow a
simpler mapping than the evaluator's own.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any

from parsebridge.error_translator import create_parse_error
from parsebridge.events import ConsoleEvent, EventSink, WatchmanDiagnosticEvent
from parsebridge.exceptions import EvaluatorProcessError, ProtocolViolationError

logger = logging.getLogger(__name__)

WATCHMAN_SOURCE = "watchman"


class DiagnosticLevel(Enum):
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    FATAL = "fatal"


@dataclass(frozen=True)
class Diagnostic:
    level: str
    message: str
    source: str | None = None
    exception: Any = None

    @classmethod
    def from_dict(cls, data: Any, build_file: Path | None = None) -> Diagnostic:
        """Validate one wire diagnostic; ``level`` and ``message`` are required."""
        if not isinstance(data, dict):
            raise ProtocolViolationError(
                f"Invalid diagnostic: {data!r}", build_file=build_file,
            )
        level = data.get("level")
        message = data.get("message")
        source = data.get("source")
        if not isinstance(level, str) or not isinstance(message, str):
            raise ProtocolViolationError(
                f"Invalid diagnostic(level={level}, message={message}, source={source})",
                build_file=build_file,
            )
        return cls(level=level, message=message, source=source, exception=data.get("exception"))

    @property
    def known_level(self) -> DiagnosticLevel | None:
        try:
            return DiagnosticLevel(self.level)
        except ValueError:
            return None


def handle_diagnostics(
    build_file: Path,
    evaluator_dir: Path,
    diagnostics: list[Any],
    event_sink: EventSink,
) -> None:
    """Process *diagnostics* in order, raising on the first fatal one.

    Raises:
        ProtocolViolationError: A diagnostic is missing ``level`` or ``message``.
        EvaluatorProcessError: Watchman reported a fatal error.
        BuildFileParseError: The evaluator reported a fatal error; the
            concrete subclass depends on the attached exception.
    """
    for raw in diagnostics:
        diagnostic = Diagnostic.from_dict(raw, build_file)
        if diagnostic.source == WATCHMAN_SOURCE:
            _handle_watchman_diagnostic(build_file, diagnostic, event_sink)
        else:
            _handle_evaluator_diagnostic(build_file, evaluator_dir, diagnostic, event_sink)


def _handle_evaluator_diagnostic(
    build_file: Path,
    evaluator_dir: Path,
    diagnostic: Diagnostic,
    event_sink: EventSink,
) -> None:
    if diagnostic.source is not None:
        header = f"{build_file} ({diagnostic.source})"
    else:
        header = str(build_file)
    message = diagnostic.message

    level = diagnostic.known_level
    if level is DiagnosticLevel.DEBUG:
        logger.debug("%s: %s", header, message)
    elif level is DiagnosticLevel.INFO:
        logger.info("%s: %s", header, message)
    elif level is DiagnosticLevel.WARNING:
        logger.warning("Warning raised by BUCK file parser for file %s: %s", header, message)
        event_sink.post(
            ConsoleEvent.warning("Warning raised by BUCK file parser: %s", message)
        )
    elif level is DiagnosticLevel.ERROR:
        logger.warning("Error raised by BUCK file parser for file %s: %s", header, message)
        event_sink.post(
            ConsoleEvent.severe("Error raised by BUCK file parser: %s", message)
        )
    elif level is DiagnosticLevel.FATAL:
        logger.warning("Fatal error raised by BUCK file parser for file %s: %s", header, message)
        raise create_parse_error(build_file, evaluator_dir, message, diagnostic.exception)
    else:
        logger.warning(
            "Unknown diagnostic (level %s) raised by BUCK file parser for build file %s: %s",
            diagnostic.level,
            build_file,
            message,
        )


def _handle_watchman_diagnostic(
    build_file: Path,
    diagnostic: Diagnostic,
    event_sink: EventSink,
) -> None:
    level = diagnostic.known_level
    message = diagnostic.message

    # Watchman itself doesn't issue debug or info; log them if someone adds them.
    if level is DiagnosticLevel.DEBUG:
        logger.debug("%s (watchman): %s", build_file, message)
    elif level is DiagnosticLevel.INFO:
        logger.info("%s (watchman): %s", build_file, message)
    elif level in (DiagnosticLevel.WARNING, DiagnosticLevel.ERROR):
        event_sink.post(WatchmanDiagnosticEvent(level=level.value, message=message))
    elif level is DiagnosticLevel.FATAL:
        raise EvaluatorProcessError(f"{build_file}: {message}", build_file=build_file)
    else:
        logger.warning(
            "Unrecognized watchman diagnostic level: %s (message=%s)",
            diagnostic.level,
            message,
        )
