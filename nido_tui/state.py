"""
Application state.

One ApplicationState value describes the whole UI. Only the dispatcher
mutates it; viewlet sub-state is reached through the viewlet contract.
"""

from __future__ import annotations

import time
from collections import deque
from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import datetime
from enum import IntEnum
from typing import TYPE_CHECKING

from nido_tui.config import DEFAULT_LOG_LIMIT
from nido_tui.focus import FocusTarget
from nido_tui.layout import Geometry, compute_geometry

if TYPE_CHECKING:
    from nido_tui.views.base import BaseViewlet
    from nido_tui.views.widgets import TextInput


class Tab(IntEnum):
    FLEET = 0
    HATCHERY = 1
    LOGS = 2
    CONFIG = 3
    HELP = 4

    @property
    def label(self) -> str:
        return f"{self.value + 1} {self.name}"


@dataclass(frozen=True)
class PendingOperation:
    kind: str
    target: str
    started_at: float = field(default_factory=time.monotonic)


@dataclass(frozen=True)
class DownloadState:
    label: str
    progress: float = 0.0


@dataclass(frozen=True)
class LogEntry:
    timestamp: datetime
    text: str

    def format(self) -> str:
        return f"[{self.timestamp:%H:%M:%S}] {self.text}"


class LogBuffer:
    """Bounded, append-only operator log; oldest lines fall off first."""

    def __init__(self, limit: int = DEFAULT_LOG_LIMIT) -> None:
        self._entries: deque[LogEntry] = deque(maxlen=max(1, limit))
        self.dropped = 0

    @property
    def limit(self) -> int:
        return self._entries.maxlen or 0

    def append(self, text: str, *, now: datetime | None = None) -> LogEntry:
        if len(self._entries) == self._entries.maxlen:
            self.dropped += 1
        entry = LogEntry(now or datetime.now(), text)
        self._entries.append(entry)
        return entry

    def tail(self, count: int, offset: int = 0) -> list[LogEntry]:
        """Last ``count`` entries, ending ``offset`` entries before the newest."""
        if count <= 0:
            return []
        entries = list(self._entries)
        end = max(0, len(entries) - max(0, offset))
        return entries[max(0, end - count):end]

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[LogEntry]:
        return iter(self._entries)


@dataclass
class ApplicationState:
    viewlets: dict[Tab, BaseViewlet]
    active_tab: Tab = Tab.FLEET
    pending: PendingOperation | None = None
    download: DownloadState | None = None
    logs: LogBuffer = field(default_factory=LogBuffer)
    width: int = 0
    height: int = 0
    detail_name: str = ""
    cursor_owner: TextInput | None = None
    ticking: bool = False
    spinner_frame: int = 0
    quit_requested: bool = False

    @property
    def active_viewlet(self) -> BaseViewlet:
        return self.viewlets[self.active_tab]

    @property
    def focus_target(self) -> FocusTarget:
        return self.active_viewlet.focus_state.target

    @property
    def modal_open(self) -> bool:
        return self.active_viewlet.modal_open

    @property
    def busy(self) -> bool:
        return self.pending is not None or self.download is not None

    @property
    def geometry(self) -> Geometry:
        return compute_geometry(self.width, self.height)

    def begin(self, kind: str, target: str = "") -> None:
        self.pending = PendingOperation(kind, target)

    def finish(self, kind: str, target: str = "") -> bool:
        """Clear the pending operation if it matches; returns whether it did."""
        if self.pending and (self.pending.kind, self.pending.target) == (kind, target):
            self.pending = None
            return True
        return False

    def log(self, text: str) -> LogEntry:
        return self.logs.append(text)
