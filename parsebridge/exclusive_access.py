# ParseBridge - Build File Evaluation Bridge
# Copyright (C) 2026 ParseBridge Authors
# SPDX-License-Identifier: Apache-2.0

"""Fail-fast guard for code that must never run concurrently."""

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager

from parsebridge.exceptions import ParserStateError


class ScopeExclusiveAccess:
    """Asserts that at most one caller is inside :meth:`scope` at a time.

    A second caller, from another thread or re-entering from the same
    one, gets :class:`ParserStateError` immediately instead of waiting.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()

    @contextmanager
    def scope(self, what: str = "operation") -> Iterator[None]:
        if not self._lock.acquire(blocking=False):
            raise ParserStateError(
                f"Concurrent {what}: another caller is already using this parser"
            )
        try:
            yield
        finally:
            self._lock.release()

    @property
    def held(self) -> bool:
        return self._lock.locked()
