# ParseBridge - Build File Evaluation Bridge
# Copyright (C) 2026 ParseBridge Authors
# SPDX-License-Identifier: Apache-2.0
"""Unit tests for the fail-fast exclusive access guard."""

from __future__ import annotations

import threading

import pytest

from parsebridge.exceptions import ParserStateError
from parsebridge.exclusive_access import ScopeExclusiveAccess


def test_reentry_fails_fast():
    guard = ScopeExclusiveAccess()
    with guard.scope("parse"):
        with pytest.raises(ParserStateError, match="Concurrent parse"):
            with guard.scope("parse"):
                pass
    assert not guard.held


def test_released_on_error():
    guard = ScopeExclusiveAccess()
    with pytest.raises(RuntimeError):
        with guard.scope():
            raise RuntimeError("boom")
    with guard.scope():
        assert guard.held


def test_other_thread_fails_while_held():
    guard = ScopeExclusiveAccess()
    entered = threading.Event()
    release = threading.Event()

    def holder() -> None:
        with guard.scope():
            entered.set()
            release.wait(5)

    t = threading.Thread(target=holder)
    t.start()
    try:
        assert entered.wait(5)
        with pytest.raises(ParserStateError):
            with guard.scope():
                pass
    finally:
        release.set()
        t.join()
