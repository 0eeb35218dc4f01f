"""Application logging helpers.

The TUI owns the terminal, so diagnostics go to a rotating file under
``~/.nido/logs``. Records logged with ``extra=OPERATOR`` are also mirrored
into the Logs tab through :class:`OperatorLogHandler`.
"""

from __future__ import annotations

import logging as py_logging
from collections.abc import Callable
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import TextIO

from nido_tui.messages import LogLine

LOG_LEVELS = {
    "DEBUG": py_logging.DEBUG,
    "INFO": py_logging.INFO,
    "WARN": py_logging.WARNING,
    "WARNING": py_logging.WARNING,
    "ERROR": py_logging.ERROR,
}
DEFAULT_LOG_PATH = Path("~/.nido/logs/nido-tui.log")
_FALLBACK_LOG_PATH = Path(".nido/logs/nido-tui.log")
# Commands run on Textual worker threads; the thread name tells them apart.
_FORMAT = "%(asctime)s %(levelname)s %(name)s [%(threadName)s] %(message)s"
_MAX_BYTES = 5 * 1024 * 1024
_BACKUP_COUNT = 3

# Pass as ``extra=`` to show a record to the operator as well.
OPERATOR = {"operator": True}


def default_log_path() -> Path:
    try:
        resolved = DEFAULT_LOG_PATH.expanduser()
    except RuntimeError:
        resolved = (Path.cwd() / _FALLBACK_LOG_PATH).resolve()
    return resolved


class OperatorLogHandler(py_logging.Handler):
    """Forwards operator-marked records as :class:`LogLine` messages.

    ``post`` must be safe to call from any thread; the app passes its
    ``post_message`` wrapper so lines reach the dispatcher on the event loop.
    """

    def __init__(self, post: Callable[[object], None], level: int = py_logging.INFO) -> None:
        super().__init__(level)
        self._post = post
        self.setFormatter(py_logging.Formatter("%(message)s"))
        self.addFilter(lambda record: bool(getattr(record, "operator", False)))

    def emit(self, record: py_logging.LogRecord) -> None:
        try:
            self._post(LogLine(self.format(record)))
        except Exception:
            self.handleError(record)


def attach_operator_log(post: Callable[[object], None]) -> OperatorLogHandler:
    handler = OperatorLogHandler(post)
    py_logging.getLogger("nido_tui").addHandler(handler)
    return handler


def detach_operator_log(handler: OperatorLogHandler) -> None:
    py_logging.getLogger("nido_tui").removeHandler(handler)


def configure_logging(
    level: str = "INFO",
    stream: TextIO | None = None,
    *,
    log_file: str | Path | None = None,
) -> py_logging.Logger:
    resolved = LOG_LEVELS.get(level.upper(), py_logging.INFO)

    logger = py_logging.getLogger("nido_tui")
    logger.setLevel(resolved)
    logger.handlers.clear()
    formatter = py_logging.Formatter(_FORMAT, datefmt="%Y-%m-%dT%H:%M:%S")

    if stream is not None:
        handler = py_logging.StreamHandler(stream)
        handler.setLevel(resolved)
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    if log_file:
        log_path = Path(log_file).expanduser().resolve()
        try:
            log_path.parent.mkdir(parents=True, exist_ok=True)
            file_handler = RotatingFileHandler(
                log_path,
                maxBytes=_MAX_BYTES,
                backupCount=_BACKUP_COUNT,
                encoding="utf-8",
            )
        except OSError:
            # An unwritable log directory must not keep the TUI from starting.
            pass
        else:
            file_handler.setLevel(resolved)
            file_handler.setFormatter(formatter)
            logger.addHandler(file_handler)

    if not logger.handlers:
        logger.addHandler(py_logging.NullHandler())
    logger.propagate = False
    return logger
