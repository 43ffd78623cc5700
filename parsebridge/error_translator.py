# ParseBridge - Build File Evaluation Bridge
# Copyright (C) 2026 ParseBridge Authors
# SPDX-License-Identifier: Apache-2.0

"""Turn the evaluator's exception payloads into readable parse errors.

A fatal diagnostic may carry an ``exception`` object.  It comes in three
shapes the user cares about:

- a syntax error (``type == "SyntaxError"``) with file/line/column/text,
  rendered with the offending line and a caret under the column;
- an argument error (``type == "IncorrectArgumentsException"``) raised by
  the evaluator's own calling convention, rendered as the bare message;
- any other exception, rendered as ``"{type}: {value}"`` plus a call stack
  with the evaluator's own frames removed.

The payload is classified once into :class:`ExceptionKind` when parsed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from parsebridge.exceptions import (
    BuildFileEvaluationError,
    BuildFileParseError,
    BuildFileSyntaxError,
    ProtocolViolationError,
)

logger = logging.getLogger(__name__)

SYNTAX_ERROR_TYPE = "SyntaxError"
INCORRECT_ARGUMENTS_TYPE = "IncorrectArgumentsException"
MODULE_FUNCTION_NAME = "<module>"


class ExceptionKind(Enum):
    SYNTAX = "syntax"
    ARGUMENTS = "arguments"
    GENERIC = "generic"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class SyntaxErrorDetail:
    file_name: Path
    line_number: int
    column_offset: int | None
    text: str


@dataclass(frozen=True)
class StackFrame:
    file_name: Path
    line_number: int
    function_name: str
    text: str


@dataclass(frozen=True)
class ExceptionData:
    kind: ExceptionKind
    type: str | None = None
    value: str | None = None
    syntax_error: SyntaxErrorDetail | None = None
    stack_trace: list[StackFrame] = field(default_factory=list)


# ── Payload parsing ───────────────────────────────────────────


def _require(mapping: dict[str, Any], key: str, what: str, build_file: Path | None) -> Any:
    value = mapping.get(key)
    if value is None:
        raise ProtocolViolationError(
            f"Invalid {what}: missing '{key}' in {mapping!r}",
            build_file=build_file,
        )
    return value


def _as_int(value: Any, key: str, build_file: Path | None) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ProtocolViolationError(
            f"Invalid exception payload: '{key}' is not a number: {value!r}",
            build_file=build_file,
        )
    return int(value)


def _parse_syntax_error(
    payload: dict[str, Any], build_file: Path | None,
) -> SyntaxErrorDetail:
    offset = payload.get("offset")
    return SyntaxErrorDetail(
        file_name=Path(_require(payload, "filename", "syntax error", build_file)),
        line_number=_as_int(_require(payload, "lineno", "syntax error", build_file), "lineno", build_file),
        column_offset=_as_int(offset, "offset", build_file) if offset is not None else None,
        text=str(_require(payload, "text", "syntax error", build_file)),
    )


def _parse_stack_trace(
    payload: dict[str, Any], build_file: Path | None,
) -> list[StackFrame]:
    traceback = payload.get("traceback") or []
    if not isinstance(traceback, list):
        raise ProtocolViolationError(
            f"Invalid exception payload: 'traceback' is not a list: {traceback!r}",
            build_file=build_file,
        )
    frames = []
    for item in traceback:
        if not isinstance(item, dict):
            raise ProtocolViolationError(
                f"Invalid stack frame: {item!r}", build_file=build_file,
            )
        frames.append(
            StackFrame(
                file_name=Path(_require(item, "filename", "stack frame", build_file)),
                line_number=_as_int(
                    _require(item, "line_number", "stack frame", build_file),
                    "line_number",
                    build_file,
                ),
                function_name=str(_require(item, "function_name", "stack frame", build_file)),
                text=str(_require(item, "text", "stack frame", build_file)),
            )
        )
    return frames


def parse_exception_data(
    payload: Any, build_file: Path | None = None,
) -> ExceptionData:
    """Classify and parse an ``exception`` object from a diagnostic.

    Anything that is not an object with a string ``type`` is UNKNOWN and
    is rendered as the diagnostic message alone.  A known shape with
    missing fields raises :class:`ProtocolViolationError`.
    """
    if not isinstance(payload, dict) or not isinstance(payload.get("type"), str):
        return ExceptionData(kind=ExceptionKind.UNKNOWN)

    exc_type = payload["type"]
    value = str(_require(payload, "value", "exception payload", build_file))
    stack_trace = _parse_stack_trace(payload, build_file)

    if exc_type == SYNTAX_ERROR_TYPE:
        return ExceptionData(
            kind=ExceptionKind.SYNTAX,
            type=exc_type,
            value=value,
            syntax_error=_parse_syntax_error(payload, build_file),
            stack_trace=stack_trace,
        )
    if exc_type == INCORRECT_ARGUMENTS_TYPE:
        kind = ExceptionKind.ARGUMENTS
    else:
        kind = ExceptionKind.GENERIC
    return ExceptionData(kind=kind, type=exc_type, value=value, stack_trace=stack_trace)


# ── Formatting ────────────────────────────────────────────────


def format_syntax_error(build_file: Path, syntax_error: SyntaxErrorDetail) -> str:
    if syntax_error.file_name == build_file:
        # the parse error itself names the build file
        header = f"Syntax error on line {syntax_error.line_number}"
    else:
        # error is in a file included by the build file
        header = (
            f"Syntax error in {syntax_error.file_name}\n"
            f"Line {syntax_error.line_number}"
        )
    if syntax_error.column_offset is not None:
        header += f", column {syntax_error.column_offset}"

    lines = [header + ":", syntax_error.text.rstrip("\r\n")]
    if syntax_error.column_offset is not None:
        lines.append(" " * max(syntax_error.column_offset - 1, 0) + "^")
    return "\n".join(lines)


def format_stack_trace(evaluator_dir: Path, stack_trace: list[StackFrame]) -> str:
    """Render frames like a Python traceback, skipping the evaluator's own files."""
    formatted = []
    for frame in stack_trace:
        if frame.file_name.parent == evaluator_dir:
            continue
        if frame.function_name == MODULE_FUNCTION_NAME:
            location = ""
        else:
            location = f", in {frame.function_name}"
        formatted.append(
            f'  File "{frame.file_name}", line {frame.line_number}{location}\n'
            f"    {frame.text}\n"
        )
    return "".join(formatted)


def create_parse_error(
    build_file: Path,
    evaluator_dir: Path,
    message: str,
    payload: Any,
) -> BuildFileParseError:
    """Build the error to raise for a fatal, non-watchman diagnostic."""
    data = parse_exception_data(payload, build_file)
    logger.debug("Received exception from evaluator: %s", data)

    if data.kind is ExceptionKind.SYNTAX:
        syntax_error = data.syntax_error
        return BuildFileSyntaxError(
            format_syntax_error(build_file, syntax_error),
            build_file=build_file,
            file_name=syntax_error.file_name,
            line_number=syntax_error.line_number,
            column_offset=syntax_error.column_offset,
            text=syntax_error.text,
        )
    if data.kind is ExceptionKind.GENERIC:
        return BuildFileEvaluationError(
            f"{data.type}: {data.value}\nCall stack:\n"
            + format_stack_trace(evaluator_dir, data.stack_trace),
            build_file=build_file,
            exception_type=data.type,
            value=data.value,
            stack_trace=data.stack_trace,
        )
    # ARGUMENTS and UNKNOWN: the message is all the user needs
    return BuildFileEvaluationError(
        message,
        build_file=build_file,
        exception_type=data.type,
        value=data.value,
    )
