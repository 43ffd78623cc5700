# ParseBridge - Build File Evaluation Bridge
# Copyright (C) 2026 ParseBridge Authors
# SPDX-License-Identifier: Apache-2.0
"""
Unit tests for the newline-delimited JSON channel to the evaluator.
"""

from __future__ import annotations

import io
import json
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from parsebridge.exceptions import EvaluatorProcessError, ProtocolViolationError
from parsebridge.supervisor.protocol import (
    ParseRequest,
    ParseResponse,
    ProtocolChannel,
    ResponseDecoder,
)

BUILD_FILE = Path("/repo/pkg/BUCK")
META = [{"__includes": []}, {"__configs": {}}, {"__env": {}}]


def _response(values=None, diagnostics=None, profile=None) -> dict:
    return {
        "values": (values or []) + META,
        "diagnostics": diagnostics or [],
        "profile": profile,
    }


def _channel(stdout_bytes: bytes = b"") -> tuple[ProtocolChannel, io.BytesIO]:
    stdin = io.BytesIO()
    return ProtocolChannel(stdin, io.BytesIO(stdout_bytes)), stdin


# ── Protocol Tests ────────────────────────────────────────────────

def test_request_serialization():
    request = ParseRequest(build_file=BUILD_FILE, watch_root="/repo", project_prefix="sub")
    assert json.loads(request.to_json()) == {
        "buildFile": "/repo/pkg/BUCK",
        "watchRoot": "/repo",
        "projectPrefix": "sub",
    }
    assert "\n" not in request.to_json()


def test_response_keeps_meta_records():
    response = ParseResponse.from_dict(_response([{"name": "a"}, {"name": "b"}]))
    assert response.values[:2] == [{"name": "a"}, {"name": "b"}]
    assert response.values[-3:] == META


@pytest.mark.parametrize(
    "data",
    [
        [],
        {"diagnostics": []},
        {"values": "nope"},
        {"values": [1, 2, 3]},
        {"values": [], "diagnostics": {}},
        {"values": [], "profile": 12},
    ],
)
def test_response_shape_violations(data):
    with pytest.raises(ProtocolViolationError):
        ParseResponse.from_dict(data, BUILD_FILE)


def test_send_writes_one_line_and_flushes():
    stdin = MagicMock()
    channel = ProtocolChannel(stdin, io.BytesIO())
    channel.send(ParseRequest(build_file=BUILD_FILE, watch_root="/repo"))

    written = b"".join(call.args[0] for call in stdin.write.call_args_list)
    assert written.endswith(b"}\n")
    assert written.count(b"\n") == 1
    stdin.flush.assert_called_once()


def test_send_swallows_broken_pipe():
    stdin = MagicMock()
    stdin.flush.side_effect = BrokenPipeError("gone")
    channel = ProtocolChannel(stdin, io.BytesIO())
    channel.send(ParseRequest(build_file=BUILD_FILE, watch_root="/repo"))


def test_decoder_created_lazily():
    line = json.dumps(_response()).encode() + b"\n"
    channel, _ = _channel(line)
    assert channel._decoder is None
    channel.exchange(ParseRequest(build_file=BUILD_FILE, watch_root="/repo"))
    assert channel._decoder is not None


def test_exchange_reads_one_response_per_request():
    stream = (
        json.dumps(_response([{"name": "a"}])).encode() + b"\n"
        + json.dumps(_response([{"name": "b"}])).encode() + b"\n"
    )
    channel, stdin = _channel(stream)
    request = ParseRequest(build_file=BUILD_FILE, watch_root="/repo")

    first = channel.exchange(request)
    second = channel.exchange(request)

    assert first.values[:-3] == [{"name": "a"}]
    assert second.values[:-3] == [{"name": "b"}]
    assert stdin.getvalue().count(b"\n") == 2


def test_multiline_response():
    stream = json.dumps(_response([{"name": "a"}], profile="p"), indent=2).encode() + b"\n"
    channel, _ = _channel(stream)
    response = channel.receive(BUILD_FILE)
    assert response.values[:-3] == [{"name": "a"}]
    assert response.profile == "p"


def test_truncated_response_is_process_error():
    channel, _ = _channel(b'{"values": [{"name": "a"},\n')
    with pytest.raises(EvaluatorProcessError) as exc_info:
        channel.receive(BUILD_FILE)
    assert exc_info.value.build_file == BUILD_FILE
    assert "mid-response" in str(exc_info.value)


def test_missing_response_is_process_error():
    channel, _ = _channel(b"")
    with pytest.raises(EvaluatorProcessError, match="before a response"):
        channel.receive(BUILD_FILE)


def test_malformed_json_is_protocol_violation():
    channel, _ = _channel(b"Traceback (most recent call last):\n")
    with pytest.raises(ProtocolViolationError) as exc_info:
        channel.receive(BUILD_FILE)
    assert str(BUILD_FILE) in str(exc_info.value)


def test_channel_recovers_after_malformed_line():
    stream = b"garbage\n" + json.dumps(_response([{"name": "a"}])).encode() + b"\n"
    channel, _ = _channel(stream)

    with pytest.raises(ProtocolViolationError):
        channel.receive(BUILD_FILE)
    response = channel.receive(BUILD_FILE)
    assert response.values[:-3] == [{"name": "a"}]


def test_decoder_keeps_leftover_for_next_value():
    decoder = ResponseDecoder(io.BytesIO(b'{"a": 1} {"b": 2}\n'))
    assert decoder.read_value() == {"a": 1}
    assert decoder.read_value() == {"b": 2}


def test_close_closes_both_streams():
    stdin, stdout = io.BytesIO(), io.BytesIO()
    channel = ProtocolChannel(stdin, stdout)
    channel.close()
    assert stdin.closed
    assert stdout.closed
