# ParseBridge - Build File Evaluation Bridge
# Copyright (C) 2026 ParseBridge Authors
# SPDX-License-Identifier: Apache-2.0
"""
Evaluator process supervision.

Launches the evaluator subprocess, talks to it over newline-delimited
JSON on its standard streams, and drains its stderr in the background.
"""

from __future__ import annotations

from parsebridge.supervisor.command import build_command, build_environment
from parsebridge.supervisor.process_handle import ProcessHandle, ProcessSupervisor
from parsebridge.supervisor.protocol import (
    META_RULE_COUNT,
    ParseRequest,
    ParseResponse,
    ProtocolChannel,
    ResponseDecoder,
)
from parsebridge.supervisor.stderr_forwarder import StderrForwarder

__all__ = [
    "META_RULE_COUNT",
    "ParseRequest",
    "ParseResponse",
    "ProcessHandle",
    "ProcessSupervisor",
    "ProtocolChannel",
    "ResponseDecoder",
    "StderrForwarder",
    "build_command",
    "build_environment",
]
