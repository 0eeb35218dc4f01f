"""
Command scheduler.

Single-flight bookkeeping for Commands. The host supplies how work runs:
``run_worker`` takes a zero-argument callable and runs it off the event
loop (``App.run_worker(..., thread=True)``), ``set_timer`` calls back after a
delay on the event loop (``App.set_timer``). Every message a command
produces goes to ``post``, which must be safe to call from a worker thread
(``App.post_message`` is). A command whose (kind, target) is already in
flight is dropped.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from functools import partial

from nido_tui.commands import Command
from nido_tui.logging import OPERATOR

logger = logging.getLogger(__name__)

Work = Callable[[], None]


class CommandScheduler:
    """Fire-and-forget runner for Commands."""

    def __init__(
        self,
        post: Callable[[object], None],
        run_worker: Callable[[Work], object],
        set_timer: Callable[[float, Work], object],
    ) -> None:
        self._post = post
        self._run_worker = run_worker
        self._set_timer = set_timer
        self._lock = threading.Lock()
        self._in_flight: set[tuple[str, str]] = set()
        self._streams: set[tuple[str, str]] = set()
        self._closed = False

    @property
    def in_flight(self) -> frozenset[tuple[str, str]]:
        with self._lock:
            return frozenset(self._in_flight)

    @property
    def active_streams(self) -> frozenset[tuple[str, str]]:
        with self._lock:
            return frozenset(self._streams)

    def is_running(self, kind: str, target: str = "") -> bool:
        with self._lock:
            return (kind, target) in self._in_flight

    def submit(self, command: Command) -> bool:
        """Schedule ``command``; returns False if it was dropped."""
        with self._lock:
            if self._closed:
                return False
            if command.coalesce and command.key in self._in_flight:
                logger.info(
                    "%s %s is already running; ignoring the repeat",
                    command.kind,
                    command.target,
                    extra=OPERATOR if command.operator else None,
                )
                return False
            if command.coalesce:
                self._in_flight.add(command.key)
            if command.streaming:
                self._streams.add(command.key)

        if command.delay > 0:
            # Delayed commands are timer callbacks on the event loop and must not block.
            self._set_timer(command.delay, partial(self._fire, command))
        else:
            self._run_worker(partial(self._run, command))
        return True

    def submit_all(self, commands: list[Command]) -> None:
        for command in commands:
            self.submit(command)

    def _fire(self, command: Command) -> None:
        if self._closed:
            self._release(command)
            return
        self._run(command)

    def _release(self, command: Command) -> None:
        with self._lock:
            self._in_flight.discard(command.key)
            self._streams.discard(command.key)

    def _run(self, command: Command) -> None:
        # Hold back the last message until the key is released, so a handler
        # reacting to it can resubmit the same command.
        held = None
        try:
            for message in command.execute():
                if held is not None:
                    self._post(held)
                held = message
        finally:
            self._release(command)
            if held is not None and not self._closed:
                self._post(held)

    def shutdown(self) -> None:
        with self._lock:
            self._closed = True
