"""Command line entrypoint for the Nido control panel."""

from __future__ import annotations

import argparse
import logging as py_logging
import shutil
import sys
from collections.abc import Callable, Sequence
from pathlib import Path

from .config import DEFAULT_CONFIG_PATH, DEFAULT_LOG_LIMIT, DEFAULT_TICK_INTERVAL, UiSettings, load_config
from .demo_provider import MemoryProvider
from .errors import ExitCode, NidoTuiError, user_facing_error
from .logging import configure_logging, default_log_path
from .nido_provider import NidoCliProvider
from .theme import THEMES, Theme, resolve_theme

_VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARN", "ERROR")


def _log_level_type(value: str) -> str:
    normalized = value.upper()
    if normalized == "WARNING":
        normalized = "WARN"
    if normalized not in _VALID_LOG_LEVELS:
        accepted = ", ".join(_VALID_LOG_LEVELS)
        raise argparse.ArgumentTypeError(f"--log-level must be one of: {accepted}")
    return normalized


def _positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError("--log-limit must be an integer") from exc
    if number < 1:
        raise argparse.ArgumentTypeError("--log-limit must be at least 1")
    return number


def _interval_type(value: str) -> float:
    try:
        number = float(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError("--tick must be a number of seconds") from exc
    if number <= 0:
        raise argparse.ArgumentTypeError("--tick must be greater than zero")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="nido-tui",
        description="Interactive control panel for a local nido VM fleet",
    )
    parser.add_argument("--config", type=Path, default=DEFAULT_CONFIG_PATH, help="Path to config.env")
    parser.add_argument("--nido-bin", default="nido", help="nido executable to drive")
    parser.add_argument("--demo", action="store_true", help="Use an in-memory demo fleet")
    parser.add_argument("--theme", choices=sorted(THEMES), default="dark")
    parser.add_argument("--log-level", type=_log_level_type, default="INFO")
    parser.add_argument("--log-file", type=Path, default=None)
    parser.add_argument("--log-limit", type=_positive_int, default=DEFAULT_LOG_LIMIT, help="Operator log lines kept")
    parser.add_argument("--tick", type=_interval_type, default=DEFAULT_TICK_INTERVAL, help="Spinner interval in seconds")
    return parser


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    return build_parser().parse_args(argv)


def build_provider(namespace: argparse.Namespace):
    if namespace.demo:
        return MemoryProvider.demo()
    if shutil.which(namespace.nido_bin) is None:
        raise NidoTuiError(
            f"nido executable not found: {namespace.nido_bin}",
            code=ExitCode.STARTUP_ERROR,
            hint="Install nido, pass --nido-bin, or run with --demo",
        )
    return NidoCliProvider(namespace.nido_bin)


def launch_tui(namespace: argparse.Namespace) -> int:
    from .app import run
    from .dispatcher import Dispatcher

    config = load_config(namespace.config)
    settings = UiSettings(
        log_limit=namespace.log_limit,
        tick_interval=namespace.tick,
        nido_bin=namespace.nido_bin,
    )
    dispatcher = Dispatcher(build_provider(namespace), config, settings)
    palette: Theme = resolve_theme(namespace.theme)
    run(dispatcher, palette)
    return int(ExitCode.SUCCESS)


def main(
    argv: Sequence[str] | None = None,
    *,
    tui_launcher: Callable[[argparse.Namespace], int | None] | None = None,
) -> int:
    log_path = default_log_path()
    logger = configure_logging(log_file=log_path)
    parser = build_parser()
    try:
        namespace = parser.parse_args(argv)
    except SystemExit as exc:
        if exc.code not in (None, 0):
            logger.warning("Argument parsing failed with exit code %s", exc.code)
            return int(ExitCode.INVALID_ARGS)
        return int(ExitCode.SUCCESS)

    if namespace.log_file is not None:
        log_path = namespace.log_file.expanduser()
    logger = configure_logging(level=namespace.log_level, log_file=log_path)

    launcher = tui_launcher or launch_tui
    try:
        logger.debug("Starting TUI (demo=%s)", namespace.demo)
        result = launcher(namespace)
        if isinstance(result, int):
            return result
        return int(ExitCode.SUCCESS)
    except NidoTuiError as exc:
        logger.error(
            "Handled NidoTuiError (code=%s): %s",
            int(exc.code),
            exc.message,
            exc_info=logger.isEnabledFor(py_logging.DEBUG),
        )
        print(user_facing_error(exc.message, hint=exc.hint), file=sys.stderr)
        return int(exc.code)
    except Exception:
        logger.exception("Unhandled exception in TUI entrypoint")
        print(user_facing_error("Unexpected runtime failure", hint=f"Inspect logs: {log_path}"), file=sys.stderr)
        return int(ExitCode.STARTUP_ERROR)


def run(argv: Sequence[str] | None = None) -> int:
    return main(argv)
