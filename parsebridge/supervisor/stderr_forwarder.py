"""
Background drain of the evaluator's stderr.
"""

# ParseBridge - Build File Evaluation Bridge
# Copyright (C) 2026 ParseBridge Authors
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import logging
import threading
from collections import deque
from concurrent.futures import Future
from typing import IO

from parsebridge.events import ConsoleEvent, EventSink

logger = logging.getLogger(__name__)

STDERR_TAIL_LINES = 50


class StderrForwarder:
    """
    Forwards every stderr line to the event sink as a warning.

    Runs on its own thread from process launch until the stream closes.
    The outcome (clean EOF or the I/O error that stopped it) is kept in
    :attr:`outcome` and re-raised by :meth:`join`.  The last few lines
    are retained for error messages about the process.
    """

    def __init__(self, stream: IO[bytes], event_sink: EventSink, source: str):
        self._stream = stream
        self._event_sink = event_sink
        self.source = source
        self.outcome: Future[None] = Future()
        self._tail: deque[str] = deque(maxlen=STDERR_TAIL_LINES)
        self._tail_lock = threading.Lock()
        self._thread = threading.Thread(
            target=self._run, daemon=True, name=source,
        )

    def start(self) -> None:
        self.outcome.set_running_or_notify_cancel()
        self._thread.start()

    def _run(self) -> None:
        try:
            for raw in iter(self._stream.readline, b""):
                line = raw.decode("utf-8", errors="replace").rstrip("\r\n")
                with self._tail_lock:
                    self._tail.append(line)
                event = ConsoleEvent.warning(
                    "Warning raised by BUCK file parser: %s", line, source=self.source,
                )
                try:
                    self._event_sink.post(event)
                except Exception:
                    # keep draining so the stderr pipe never fills
                    logger.exception("Event sink failed for stderr line: %s", line)
        except OSError as e:
            logger.debug("stderr forwarder stopped on I/O error", exc_info=True)
            self.outcome.set_exception(e)
        except Exception as e:
            logger.exception("stderr forwarder crashed")
            self.outcome.set_exception(e)
        else:
            self.outcome.set_result(None)

    def join(self) -> None:
        """Wait for the stream to close, re-raising whatever stopped the forwarder."""
        self._thread.join()
        self.outcome.result()

    def tail(self) -> list[str]:
        with self._tail_lock:
            return list(self._tail)
