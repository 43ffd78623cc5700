"""
Process handle and supervisor for the evaluator subprocess.
"""

# ParseBridge - Build File Evaluation Bridge
# Copyright (C) 2026 ParseBridge Authors
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import logging
import subprocess
from collections.abc import Mapping, Sequence
from typing import IO

from parsebridge.exceptions import EvaluatorProcessError

logger = logging.getLogger(__name__)


# ── Process Handle ──────────────────────────────────────────────────

class ProcessHandle:
    """
    The running evaluator and its three standard streams.

    Owned by exactly one :class:`ProcessSupervisor` user; never shared.
    """

    def __init__(self, process: subprocess.Popen, command: Sequence[str]):
        self.process = process
        self.command = list(command)

    @property
    def stdin(self) -> IO[bytes]:
        return self.process.stdin

    @property
    def stdout(self) -> IO[bytes]:
        return self.process.stdout

    @property
    def stderr(self) -> IO[bytes]:
        return self.process.stderr

    def is_alive(self) -> bool:
        """Check if process is alive."""
        return self.process.poll() is None

    def get_pid(self) -> int:
        return self.process.pid

    def __repr__(self) -> str:
        return f"<ProcessHandle pid={self.process.pid} cmd={self.command[:3]!r}>"


# ── Process Supervisor ─────────────────────────────────────────────

class ProcessSupervisor:
    """Launches the evaluator with a fixed command and environment."""

    def __init__(self, command: Sequence[str], env: Mapping[str, str]):
        self.command = list(command)
        self.env = dict(env)

    def launch(self) -> ProcessHandle:
        """
        Spawn the evaluator with all three standard streams piped.

        Raises:
            EvaluatorProcessError: If the executable cannot be started.
        """
        logger.debug("Starting evaluator command: %s", " ".join(self.command))
        try:
            process = subprocess.Popen(
                self.command,
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                env=self.env,
            )
        except OSError as e:
            logger.error("Failed to start evaluator %s: %s", self.command[0], e)
            raise EvaluatorProcessError(
                f"Failed to start evaluator {self.command[0]!r}: {e}"
            ) from e
        handle = ProcessHandle(process, self.command)
        logger.debug("Started process %s successfully", handle)
        return handle

    def await_exit(self, handle: ProcessHandle) -> int:
        """Block until the process exits and return its exit code."""
        logger.debug("Waiting for process %s to exit...", handle)
        return handle.process.wait()

    def terminate_gracefully(self, handle: ProcessHandle, timeout: float = 5.0) -> None:
        """
        Stop the process, escalating as needed.

        Shutdown flow:
        1. Close stdin (the evaluator exits at end of input), wait timeout/2
        2. If not exited, send SIGTERM (wait timeout/2)
        3. If still not exited, send SIGKILL
        """
        if not handle.is_alive():
            return

        logger.info("Stopping evaluator process: %s", handle)
        try:
            handle.stdin.close()
        except OSError:
            logger.debug("stdin already closed for %s", handle, exc_info=True)

        try:
            handle.process.wait(timeout=timeout / 2)
            return
        except subprocess.TimeoutExpired:
            logger.warning("Process did not exit gracefully, sending SIGTERM: %s", handle)

        handle.process.terminate()
        try:
            handle.process.wait(timeout=timeout / 2)
        except subprocess.TimeoutExpired:
            logger.error("Process did not respond to SIGTERM, sending SIGKILL: %s", handle)
            handle.process.kill()
            handle.process.wait()
