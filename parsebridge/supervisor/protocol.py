"""
Wire protocol with the evaluator: newline-delimited JSON over stdin/stdout.
"""

# ParseBridge - Build File Evaluation Bridge
# Copyright (C) 2026 ParseBridge Authors
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import IO, Any

from parsebridge.exceptions import EvaluatorProcessError, ProtocolViolationError

logger = logging.getLogger(__name__)

# Trailing records the evaluator appends to every result: includes, configs, env
META_RULE_COUNT = 3


# ── Protocol Types ──────────────────────────────────────────────────

@dataclass
class ParseRequest:
    """One request: evaluate a single build file."""

    build_file: Path
    watch_root: str
    project_prefix: str = ""

    def to_json(self) -> str:
        """Serialize to a single JSON object (no trailing newline)."""
        return json.dumps({
            "buildFile": str(self.build_file),
            "watchRoot": self.watch_root,
            "projectPrefix": self.project_prefix,
        })


@dataclass
class ParseResponse:
    """One response: rule records (meta records included), diagnostics, profile."""

    values: list[dict[str, Any]]
    diagnostics: list[Any] = field(default_factory=list)
    profile: str | None = None

    @classmethod
    def from_dict(cls, data: Any, build_file: Path | None = None) -> ParseResponse:
        if not isinstance(data, dict):
            raise ProtocolViolationError(
                f"Expected a JSON object from the evaluator, got {type(data).__name__}",
                build_file=build_file,
            )
        values = data.get("values")
        if not isinstance(values, list) or not all(isinstance(v, dict) for v in values):
            raise ProtocolViolationError(
                f"Invalid 'values' in evaluator response: {values!r}",
                build_file=build_file,
            )
        diagnostics = data.get("diagnostics") or []
        if not isinstance(diagnostics, list):
            raise ProtocolViolationError(
                f"Invalid 'diagnostics' in evaluator response: {diagnostics!r}",
                build_file=build_file,
            )
        profile = data.get("profile")
        if profile is not None and not isinstance(profile, str):
            raise ProtocolViolationError(
                f"Invalid 'profile' in evaluator response: {profile!r}",
                build_file=build_file,
            )
        return cls(values=values, diagnostics=diagnostics, profile=profile)


# ── Response Decoder ─────────────────────────────────────────────

class ResponseDecoder:
    """Reads whole JSON values off a byte stream, one per call.

    Lines are accumulated until they decode to a complete value, so a
    response may span several lines.  Leftover text after a value is kept
    for the next call.
    """

    def __init__(self, stream: IO[bytes]):
        self._stream = stream
        self._decoder = json.JSONDecoder()
        self._buffer = ""

    def read_value(self) -> Any:
        """
        Returns:
            The next decoded JSON value.

        Raises:
            EOFError: The stream ended before a complete value arrived.
            ValueError: The data is not valid JSON / UTF-8.
        """
        while True:
            text = self._buffer.lstrip()
            if text:
                try:
                    value, end = self._decoder.raw_decode(text)
                except json.JSONDecodeError as e:
                    # An error before the end of the data is malformed input;
                    # at the end it only means the value continues on the next line.
                    if e.pos < len(text.rstrip()):
                        # drop the bad text so the next read starts on a fresh line
                        self._buffer = ""
                        raise
                else:
                    self._buffer = text[end:]
                    return value

            line = self._stream.readline()
            if not line:
                self._buffer = text
                if text:
                    raise EOFError(f"stream ended mid-response ({len(text)} chars buffered)")
                raise EOFError("stream ended before a response was written")
            self._buffer = text + line.decode("utf-8")

    def close(self) -> None:
        self._stream.close()


# ── Channel ─────────────────────────────────────────────────────

class ProtocolChannel:
    """
    Request/response channel over the evaluator's stdin and stdout.

    Strictly one response per request; no pipelining.
    """

    def __init__(self, stdin: IO[bytes], stdout: IO[bytes]):
        self._stdin = stdin
        self._stdout = stdout
        # Created on first read, after the first request has been flushed.
        self._decoder: ResponseDecoder | None = None

    def send(self, request: ParseRequest) -> None:
        """Write one request line and flush it."""
        payload = request.to_json().encode("utf-8")
        try:
            self._stdin.write(payload)
            self._stdin.write(b"\n")
            self._stdin.flush()
        except BrokenPipeError as e:
            # The evaluator already exited; receive() reports it.
            logger.debug("Swallowing exception on flush: %s", e)

    def receive(self, build_file: Path) -> ParseResponse:
        """
        Read exactly one response.

        Raises:
            EvaluatorProcessError: The evaluator died before a full response.
            ProtocolViolationError: The response is not valid JSON or has the wrong shape.
        """
        if self._decoder is None:
            self._decoder = ResponseDecoder(self._stdout)
        try:
            data = self._decoder.read_value()
        except EOFError as e:
            logger.warning("Parser exited while decoding JSON data: %s", e)
            raise EvaluatorProcessError(
                f"Parser exited while decoding JSON data: {e}", build_file=build_file,
            ) from e
        except ValueError as e:
            logger.warning("Malformed JSON from parser: %s", e)
            raise ProtocolViolationError(
                f"Malformed JSON from parser: {e}", build_file=build_file,
            ) from e
        return ParseResponse.from_dict(data, build_file)

    def exchange(self, request: ParseRequest) -> ParseResponse:
        self.send(request)
        return self.receive(request.build_file)

    def close(self) -> None:
        """Close stdin (asks the evaluator to exit) and then stdout."""
        try:
            logger.debug("Closing evaluator process stdin")
            self._stdin.close()
        except OSError:
            # everything wanted was already flushed
            logger.debug("Error closing evaluator stdin", exc_info=True)
        try:
            if self._decoder is not None:
                self._decoder.close()
            else:
                self._stdout.close()
        except OSError:
            logger.debug("Error closing evaluator stdout", exc_info=True)
        self._decoder = None
