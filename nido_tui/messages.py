"""
Events consumed by the dispatcher.

Input events come from the host terminal; result events come back from
commands executed by the scheduler. All of them are immutable values.
"""

from __future__ import annotations

from dataclasses import dataclass

from nido_tui.providers import CacheItem, CacheStats, VMDetail, VMStatus


# --- Input -------------------------------------------------------------------


@dataclass(frozen=True)
class KeyPress:
    key: str
    character: str | None = None

    @property
    def printable(self) -> bool:
        return (
            self.character is not None
            and len(self.character) == 1
            and self.character.isprintable()
        )


@dataclass(frozen=True)
class MouseClick:
    x: int
    y: int


@dataclass(frozen=True)
class Resize:
    width: int
    height: int


@dataclass(frozen=True)
class Tick:
    pass


# --- Results -----------------------------------------------------------------


@dataclass(frozen=True)
class VmListResult:
    vms: tuple[VMStatus, ...] = ()
    error: Exception | None = None


@dataclass(frozen=True)
class DetailResult:
    name: str
    detail: VMDetail | None = None
    error: Exception | None = None


@dataclass(frozen=True)
class OpResult:
    """Outcome of a lifecycle operation (spawn, start, stop, ...)."""

    kind: str
    target: str
    error: Exception | None = None
    message: str = ""


@dataclass(frozen=True)
class SourcesResult:
    mode: str
    sources: tuple = ()
    error: Exception | None = None


@dataclass(frozen=True)
class CacheResult:
    items: tuple[CacheItem, ...] = ()
    stats: CacheStats | None = None
    error: Exception | None = None


@dataclass(frozen=True)
class PruneResult:
    removed: int = 0
    error: Exception | None = None


@dataclass(frozen=True)
class ConfigSaved:
    key: str
    value: str
    error: Exception | None = None


@dataclass(frozen=True)
class UpdateChecked:
    current: str = ""
    latest: str = ""
    error: Exception | None = None


@dataclass(frozen=True)
class DownloadProgress:
    label: str
    progress: float


@dataclass(frozen=True)
class DownloadFinished:
    label: str
    path: str = ""
    error: Exception | None = None
    resume: object | None = None


@dataclass(frozen=True)
class LogLine:
    text: str


@dataclass(frozen=True)
class CommandFailed:
    """An unexpected exception escaped a command."""

    kind: str
    target: str
    error: Exception
