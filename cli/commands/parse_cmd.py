"""CLI commands for parsing build files."""

# ParseBridge - Build File Evaluation Bridge
# Copyright (C) 2026 ParseBridge Authors
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import argparse
import json
import logging
import shlex
import sys
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


def _load_options_or_exit():
    from parsebridge.config import load_options
    from parsebridge.exceptions import ConfigError

    try:
        return load_options()
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


def _print_console_event(event: Any) -> None:
    from parsebridge.events import ConsoleEvent, WatchmanDiagnosticEvent

    if isinstance(event, ConsoleEvent):
        print(f"[{event.level}] {event.message}", file=sys.stderr)
    elif isinstance(event, WatchmanDiagnosticEvent):
        print(f"[watchman {event.level}] {event.message}", file=sys.stderr)


def cmd_parse(args: argparse.Namespace) -> None:
    """Parse each build file in one session and print {build_file: rules} as JSON."""
    from parsebridge.events import EventBus
    from parsebridge.exceptions import ParseBridgeError
    from parsebridge.parser import ProjectBuildFileParser

    options = _load_options_or_exit()
    bus = EventBus()
    bus.subscribe(_print_console_event)

    results: dict[str, list[dict[str, Any]]] = {}
    try:
        with ProjectBuildFileParser(
            options, bus, ignore_autodeps_files=args.ignore_autodeps_files,
        ) as parser:
            parser.set_enable_profiling(args.profile)
            for build_file in args.build_files:
                path = Path(build_file).absolute()
                if args.with_meta:
                    results[str(path)] = parser.get_all_rules_and_meta_rules(path)
                else:
                    results[str(path)] = parser.get_all(path)
    except ParseBridgeError as e:
        logger.debug("Parse failed", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    print(json.dumps(results, indent=2, ensure_ascii=False))


def cmd_show_command(args: argparse.Namespace) -> None:
    """Print the evaluator command line for the configured options."""
    from parsebridge.config import ConfigFiles
    from parsebridge.supervisor.command import build_command

    options = _load_options_or_exit()
    config_files = ConfigFiles(options)
    try:
        print(shlex.join(build_command(options, config_files)))
    finally:
        if not args.keep_config_files:
            config_files.cleanup()
