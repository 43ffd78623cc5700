# ParseBridge - Build File Evaluation Bridge
# Copyright (C) 2026 ParseBridge Authors
# SPDX-License-Identifier: Apache-2.0
"""Unit tests for the event bus and event helpers."""

from __future__ import annotations

import threading

import pytest

from parsebridge.events import (
    ConsoleEvent,
    EventBus,
    PerfEventFinished,
    PerfEventStarted,
    perf_scope,
)
from tests.helpers.events import EventRecorder


def test_console_event_formatting():
    assert ConsoleEvent.warning("a %s c", "b").message == "a b c"
    assert ConsoleEvent.severe("100%").message == "100%"
    assert ConsoleEvent.severe("x").level == "severe"


def test_bus_fans_out_and_survives_failing_subscriber():
    bus = EventBus()
    received: list[object] = []

    def broken(event: object) -> None:
        raise RuntimeError("subscriber bug")

    bus.subscribe(broken)
    bus.subscribe(received.append)
    bus.post("hello")
    assert received == ["hello"]

    bus.unsubscribe(received.append)
    bus.unsubscribe(received.append)
    bus.post("again")
    assert received == ["hello"]


def test_bus_concurrent_posts():
    bus = EventBus()
    recorder = EventRecorder()
    bus.subscribe(recorder.post)

    threads = [
        threading.Thread(target=lambda i=i: [bus.post((i, n)) for n in range(100)])
        for i in range(4)
    ]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert len(recorder.events) == 400


def test_perf_scope_posts_finished_on_error(recorder: EventRecorder):
    with pytest.raises(ValueError):
        with perf_scope(recorder, "ParserInit"):
            raise ValueError("launch failed")

    started, finished = recorder.events
    assert isinstance(started, PerfEventStarted)
    assert started.event_id == "ParserInit"
    assert isinstance(finished, PerfEventFinished)
    assert finished.started is started
