# ParseBridge - Build File Evaluation Bridge
# Copyright (C) 2026 ParseBridge Authors
# SPDX-License-Identifier: Apache-2.0

"""Command line and environment for launching the evaluator."""

from __future__ import annotations

from collections.abc import Mapping

from parsebridge.config.files import ConfigFiles
from parsebridge.config.models import ParserOptions

PYTHONPATH_ENV_VAR_NAME = "PYTHONPATH"


def build_environment(
    base_env: Mapping[str, str],
    module_search_path: str | None,
) -> dict[str, str]:
    """Copy *base_env* without PYTHONPATH, then set the configured one.

    The build tool's own module path must not leak into the evaluator.
    """
    env = {k: v for k, v in base_env.items() if k != PYTHONPATH_ENV_VAR_NAME}
    if module_search_path is not None:
        env[PYTHONPATH_ENV_VAR_NAME] = module_search_path
    return env


def build_command(
    options: ParserOptions,
    config_files: ConfigFiles,
    *,
    enable_profiling: bool = False,
    ignore_autodeps_files: bool = False,
) -> list[str]:
    # -u: unbuffered stdout so each response is visible as soon as it is written
    cmd = [options.python_interpreter, "-u", str(options.evaluator_script)]

    if enable_profiling:
        cmd.append("--profile")
    if ignore_autodeps_files:
        cmd.append("--ignore_buck_autodeps_files")
    if options.allow_empty_globs:
        cmd.append("--allow_empty_globs")
    if options.use_watchman_glob:
        cmd.append("--use_watchman_glob")
    if options.watchman_glob_stat_results:
        cmd.append("--watchman_glob_stat_results")
    if options.watchman_use_glob_generator:
        cmd.append("--watchman_use_glob_generator")
    if options.watchman.transport_path is not None:
        cmd += ["--watchman_socket_path", str(options.watchman.transport_path.absolute())]
    if options.watchman_query_timeout_ms is not None:
        cmd += ["--watchman_query_timeout_ms", str(options.watchman_query_timeout_ms)]
    if options.use_mercurial_glob:
        cmd.append("--use_mercurial_glob")

    for module in options.build_file_import_whitelist:
        cmd += ["--build_file_import_whitelist", module]

    cmd += ["--project_root", str(options.project_root.absolute())]

    for name, path in options.cell_roots.items():
        cmd += ["--cell_root", f"{name}={path}"]

    cmd += ["--build_file_name", options.build_file_name]

    if not options.autodeps_files_have_signatures:
        cmd.append("--no_autodeps_signatures")

    # Exceptions come back as diagnostics; keep them off stderr.
    cmd.append("--quiet")

    for include in options.default_includes:
        cmd += ["--include", include]

    cmd += ["--config", str(config_files.raw_config_json)]
    cmd += ["--ignore_paths", str(config_files.ignore_paths_json)]
    return cmd
