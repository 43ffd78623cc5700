# ParseBridge - Build File Evaluation Bridge
# Copyright (C) 2026 ParseBridge Authors
# SPDX-License-Identifier: Apache-2.0

"""Events posted by the parser, and the sink they are posted to.

The parser only needs something with a ``post(event)`` method. It posts
from the calling thread and from the stderr forwarder thread, so sinks
must tolerate concurrent calls. :class:`EventBus` does.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol

logger = logging.getLogger(__name__)


# ── Event Types ───────────────────────────────────────────────


@dataclass(frozen=True)
class ConsoleEvent:
    """A message meant for the user's console."""

    level: str
    message: str
    source: str | None = None

    @classmethod
    def warning(cls, fmt: str, *args: Any, source: str | None = None) -> ConsoleEvent:
        return cls(level="warning", message=fmt % args if args else fmt, source=source)

    @classmethod
    def severe(cls, fmt: str, *args: Any, source: str | None = None) -> ConsoleEvent:
        return cls(level="severe", message=fmt % args if args else fmt, source=source)


@dataclass(frozen=True)
class WatchmanDiagnosticEvent:
    level: str  # "warning" | "error"
    message: str


@dataclass(frozen=True)
class ParseBuildFileStarted:
    build_file: Path
    timestamp: float = field(default_factory=time.monotonic)


@dataclass(frozen=True)
class ParseBuildFileFinished:
    started: ParseBuildFileStarted
    values: list[dict[str, Any]]
    profile: str | None = None
    timestamp: float = field(default_factory=time.monotonic)

    @property
    def elapsed(self) -> float:
        return self.timestamp - self.started.timestamp


@dataclass(frozen=True)
class ParserSessionStarted:
    timestamp: float = field(default_factory=time.monotonic)


@dataclass(frozen=True)
class ParserSessionFinished:
    started: ParserSessionStarted
    timestamp: float = field(default_factory=time.monotonic)


@dataclass(frozen=True)
class PerfEventStarted:
    event_id: str
    timestamp: float = field(default_factory=time.monotonic)


@dataclass(frozen=True)
class PerfEventFinished:
    started: PerfEventStarted
    timestamp: float = field(default_factory=time.monotonic)


# ── Sinks ─────────────────────────────────────────────────────


class EventSink(Protocol):
    def post(self, event: Any) -> None: ...


Subscriber = Callable[[Any], None]


class EventBus:
    """Thread-safe fan-out of events to subscribers."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._subscribers: list[Subscriber] = []

    def subscribe(self, callback: Subscriber) -> None:
        with self._lock:
            self._subscribers.append(callback)

    def unsubscribe(self, callback: Subscriber) -> None:
        with self._lock:
            try:
                self._subscribers.remove(callback)
            except ValueError:
                pass

    def post(self, event: Any) -> None:
        with self._lock:
            subscribers = list(self._subscribers)
        for callback in subscribers:
            try:
                callback(event)
            except Exception:
                logger.exception("Event subscriber failed for %s", type(event).__name__)


@contextmanager
def perf_scope(sink: EventSink, event_id: str) -> Iterator[PerfEventStarted]:
    """Post a started/finished pair around the enclosed block."""
    started = PerfEventStarted(event_id)
    sink.post(started)
    try:
        yield started
    finally:
        sink.post(PerfEventFinished(started))
