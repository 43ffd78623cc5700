# ParseBridge - Build File Evaluation Bridge
# Copyright (C) 2026 ParseBridge Authors
# SPDX-License-Identifier: Apache-2.0

"""Build file parser backed by a long-lived evaluator subprocess.

A :class:`ProjectBuildFileParser` is created for a parse session, starts
the evaluator lazily on first use, sends it one request per build file,
and must be closed at the end of the session::

    with ProjectBuildFileParser(options, event_bus) as parser:
        rules = parser.get_all(Path("/repo/pkg/BUCK"))

Lifecycle is NEW → READY → CLOSED.  Only one caller may use an instance
at a time; a concurrent call fails with :class:`ParserStateError`.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from enum import Enum
from pathlib import Path
from typing import Any

from parsebridge.config.files import ConfigFiles
from parsebridge.config.models import ParserOptions
from parsebridge.diagnostics import handle_diagnostics
from parsebridge.events import (
    EventSink,
    ParseBuildFileFinished,
    ParseBuildFileStarted,
    ParserSessionFinished,
    ParserSessionStarted,
    perf_scope,
)
from parsebridge.exceptions import (
    BuildFileParseError,
    EvaluatorProcessError,
    InvalidBuildFilePathError,
    ParseInterruptedError,
    ParserStateError,
    ProtocolViolationError,
)
from parsebridge.exclusive_access import ScopeExclusiveAccess
from parsebridge.logging_config import bound_build_file
from parsebridge.supervisor.command import build_command, build_environment
from parsebridge.supervisor.process_handle import ProcessHandle, ProcessSupervisor
from parsebridge.supervisor.protocol import META_RULE_COUNT, ParseRequest, ProtocolChannel
from parsebridge.supervisor.stderr_forwarder import StderrForwarder

logger = logging.getLogger(__name__)


class ParserState(Enum):
    NEW = "new"
    READY = "ready"
    CLOSED = "closed"


class ProjectBuildFileParser:
    """Hands build files to the evaluator and returns their rule records."""

    def __init__(
        self,
        options: ParserOptions,
        event_sink: EventSink,
        *,
        environment: Mapping[str, str] | None = None,
        ignore_autodeps_files: bool = False,
    ):
        self.options = options
        self.event_sink = event_sink
        self.environment = dict(os.environ if environment is None else environment)
        self.ignore_autodeps_files = ignore_autodeps_files
        self.enable_profiling = False

        self.state = ParserState.NEW
        self.config_files = ConfigFiles(options)
        self._exclusive = ScopeExclusiveAccess()

        self._supervisor: ProcessSupervisor | None = None
        self._process: ProcessHandle | None = None
        self._channel: ProtocolChannel | None = None
        self._stderr_forwarder: StderrForwarder | None = None
        self._session_started: ParserSessionStarted | None = None

    # ── Lifecycle ─────────────────────────────────────────────

    @property
    def is_closed(self) -> bool:
        return self.state is ParserState.CLOSED

    def set_enable_profiling(self, enable_profiling: bool) -> None:
        """Ask the evaluator to profile; only allowed before it is started."""
        if self.state is not ParserState.NEW:
            raise ParserStateError(
                f"Cannot change profiling on a parser in state {self.state.value}"
            )
        self.enable_profiling = enable_profiling

    def _ensure_not_closed(self, build_file: Path | None = None) -> None:
        if self.state is ParserState.CLOSED:
            target = f" {build_file}" if build_file is not None else ""
            raise ParserStateError(f"Cannot parse{target}: parser is closed")

    def init_if_needed(self) -> None:
        """Start the evaluator if it is not running yet.

        Deferring this to the first parse attributes interpreter start-up
        time to the parse phase.
        """
        self._ensure_not_closed()
        if self.state is ParserState.NEW:
            self._init()
            self.state = ParserState.READY

    def _init(self) -> None:
        if self._session_started is None:
            self._session_started = ParserSessionStarted()
            self.event_sink.post(self._session_started)

        with perf_scope(self.event_sink, "ParserInit"):
            env = build_environment(self.environment, self.options.python_module_search_path)
            command = build_command(
                self.options,
                self.config_files,
                enable_profiling=self.enable_profiling,
                ignore_autodeps_files=self.ignore_autodeps_files,
            )
            self._supervisor = ProcessSupervisor(command, env)
            self._process = self._supervisor.launch()
            try:
                self._channel = ProtocolChannel(self._process.stdin, self._process.stdout)
                self._stderr_forwarder = StderrForwarder(
                    self._process.stderr, self.event_sink, source=type(self).__name__,
                )
                self._stderr_forwarder.start()
            except BaseException:
                self._supervisor.terminate_gracefully(self._process)
                raise

    def close(self) -> None:
        """Shut the evaluator down and check that it exited cleanly.

        Calling close() again is a no-op.

        Raises:
            EvaluatorProcessError: The evaluator exited non-zero or its
                stderr stream failed.
            ParserStateError: A parse is in progress on another thread.
        """
        if self.state is ParserState.CLOSED:
            return

        with self._exclusive.scope("close"):
            try:
                if self.state is ParserState.READY:
                    self._shutdown_process()
            finally:
                self.config_files.cleanup()
                if self._session_started is not None:
                    self.event_sink.post(ParserSessionFinished(self._session_started))
                self.state = ParserState.CLOSED

    def _shutdown_process(self) -> None:
        process = self._process
        try:
            # Closing stdin lets the evaluator terminate gracefully.
            self._channel.close()

            try:
                self._stderr_forwarder.join()
            except OSError as e:
                raise EvaluatorProcessError(
                    f"Reading parser stderr failed: {e}"
                ) from e

            exit_code = self._supervisor.await_exit(process)
            if exit_code != 0:
                detail = f"Parser did not exit cleanly (exit code {exit_code})"
                stderr_tail = self._stderr_forwarder.tail()
                if stderr_tail:
                    detail += "\nstderr:\n" + "\n".join(stderr_tail)
                logger.warning("%s: %s", process, detail)
                raise EvaluatorProcessError(detail)
            logger.debug("Process %s exited cleanly.", process)
        finally:
            if process.is_alive():
                self._supervisor.terminate_gracefully(process)

    def __enter__(self) -> ProjectBuildFileParser:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # ── Parsing ───────────────────────────────────────────────

    def get_all(self, build_file: Path | str) -> list[dict[str, Any]]:
        """Collect all rules from a build file, without the trailing meta records.

        Args:
            build_file: Absolute path to a build file under the project root.
        """
        values = self.get_all_rules_and_meta_rules(build_file)
        return values[:len(values) - META_RULE_COUNT]

    def get_all_rules_and_meta_rules(self, build_file: Path | str) -> list[dict[str, Any]]:
        """Collect all rules from a build file plus the evaluator's meta records.

        The last three records are the includes, configs and environment
        the build file depended on.
        """
        build_file = self._validate_build_file(build_file)
        try:
            return self._get_all_rules_internal(build_file)
        except InterruptedError as e:
            raise ParseInterruptedError(f"Parsing {build_file} was interrupted") from e
        except BuildFileParseError:
            raise
        except OSError as e:
            logger.warning("Error getting all rules for %s: %s", build_file, e)
            raise EvaluatorProcessError(str(e), build_file=build_file) from e

    def _validate_build_file(self, build_file: Path | str) -> Path:
        build_file = Path(build_file)
        if not build_file.is_absolute():
            raise InvalidBuildFilePathError(f"Build file path must be absolute: {build_file}")
        if not build_file.is_relative_to(self.options.project_root):
            raise InvalidBuildFilePathError(
                f"Build file {build_file} is not under project root {self.options.project_root}"
            )
        return build_file

    def _build_request(self, build_file: Path) -> ParseRequest:
        cell_path = self.options.project_root.absolute()
        watch_root = str(cell_path)
        project_prefix = ""
        project_watch = self.options.watchman.project_watches.get(cell_path)
        if project_watch is not None:
            watch_root = project_watch.watch_root
            if project_watch.project_prefix is not None:
                project_prefix = project_watch.project_prefix
        return ParseRequest(
            build_file=build_file, watch_root=watch_root, project_prefix=project_prefix,
        )

    def _get_all_rules_internal(self, build_file: Path) -> list[dict[str, Any]]:
        self._ensure_not_closed(build_file)

        with self._exclusive.scope(f"parse of {build_file}"), bound_build_file(build_file):
            try:
                self.init_if_needed()
            except EvaluatorProcessError as e:
                raise EvaluatorProcessError(e.detail, build_file=build_file) from e

            started = ParseBuildFileStarted(build_file)
            self.event_sink.post(started)

            values: list[dict[str, Any]] = []
            profile: str | None = None
            try:
                response = self._channel.exchange(self._build_request(build_file))
                handle_diagnostics(
                    build_file, self.options.evaluator_dir, response.diagnostics, self.event_sink,
                )
                if len(response.values) < META_RULE_COUNT:
                    raise ProtocolViolationError(
                        f"Expected at least {META_RULE_COUNT} meta records, "
                        f"got {len(response.values)} values",
                        build_file=build_file,
                    )
                values = response.values
                profile = response.profile

                logger.debug("Parsed %d rules from %s", len(values) - META_RULE_COUNT, build_file)
                if profile:
                    logger.debug("Profile result: %s", profile)
                return values
            finally:
                self.event_sink.post(ParseBuildFileFinished(started, values, profile))
