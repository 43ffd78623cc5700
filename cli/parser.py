# ParseBridge - Build File Evaluation Bridge
# Copyright (C) 2026 ParseBridge Authors
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import argparse
import os
from collections.abc import Sequence
from pathlib import Path


def cli_main(argv: Sequence[str] | None = None) -> None:
    from dotenv import load_dotenv

    load_dotenv()

    from parsebridge.logging_config import setup_logging

    log_dir = os.environ.get("PARSEBRIDGE_LOG_DIR")
    setup_logging(
        level=os.environ.get("PARSEBRIDGE_LOG_LEVEL", "WARNING"),
        log_dir=Path(log_dir) if log_dir else None,
    )

    parser = argparse.ArgumentParser(
        description="ParseBridge - evaluate build files through an external evaluator"
    )
    parser.add_argument(
        "--options",
        default=None,
        help="Parser options JSON (default: $PARSEBRIDGE_OPTIONS or ./parsebridge.json)",
    )
    sub = parser.add_subparsers(dest="command")

    # ── Parse ─────────────────────────────────────────────
    p_parse = sub.add_parser("parse", help="Parse build files and print their rules as JSON")
    p_parse.add_argument("build_files", nargs="+", metavar="BUILD_FILE")
    p_parse.add_argument(
        "--with-meta", action="store_true",
        help="Include the trailing includes/configs/env meta records",
    )
    p_parse.add_argument(
        "--profile", action="store_true",
        help="Run the evaluator with profiling enabled",
    )
    p_parse.add_argument(
        "--ignore-autodeps-files", action="store_true",
        help="Tell the evaluator to ignore autodeps files",
    )
    p_parse.set_defaults(func=_lazy_parse)

    # ── Show Command ──────────────────────────────────────
    p_show = sub.add_parser(
        "show-command",
        help="Print the evaluator command line that would be launched",
        description=(
            "Print the evaluator command line. The --config and --ignore_paths "
            "files it names are temporary and removed on exit unless "
            "--keep-config-files is given."
        ),
    )
    p_show.add_argument(
        "--keep-config-files", action="store_true",
        help="Leave the temporary config files in place so the command can be run",
    )
    p_show.set_defaults(func=_lazy_show_command)

    args = parser.parse_args(argv)

    if args.options:
        os.environ["PARSEBRIDGE_OPTIONS"] = args.options

    if hasattr(args, "func"):
        args.func(args)
    else:
        parser.print_help()


# ── Lazy import wrappers ──────────────────────────────────


def _lazy_parse(args: argparse.Namespace) -> None:
    from cli.commands.parse_cmd import cmd_parse

    cmd_parse(args)


def _lazy_show_command(args: argparse.Namespace) -> None:
    from cli.commands.parse_cmd import cmd_show_command

    cmd_show_command(args)
