"""
Requests a viewlet hands back to the dispatcher.

Viewlets never touch providers or application state directly; they return
these values from ``update`` and the dispatcher turns them into state
changes and commands.
"""

from __future__ import annotations

from dataclasses import dataclass

from nido_tui.items import SourceEntry
from nido_tui.providers import VMDetail


@dataclass(frozen=True)
class RefreshFleet:
    pass


@dataclass(frozen=True)
class FetchInfo:
    name: str


@dataclass(frozen=True)
class ClearDetail:
    pass


@dataclass(frozen=True)
class StartVm:
    name: str


@dataclass(frozen=True)
class StopVm:
    name: str
    force: bool = False


@dataclass(frozen=True)
class DeleteVm:
    name: str


@dataclass(frozen=True)
class OpenSsh:
    detail: VMDetail


@dataclass(frozen=True)
class OpenVnc:
    detail: VMDetail


@dataclass(frozen=True)
class SwitchTab:
    index: int


@dataclass(frozen=True)
class LoadSources:
    mode: str


@dataclass(frozen=True)
class SubmitSpawn:
    name: str
    source: SourceEntry
    gui: bool = False


@dataclass(frozen=True)
class SubmitTemplate:
    name: str
    vm_name: str


@dataclass(frozen=True)
class SaveConfig:
    key: str
    value: str


@dataclass(frozen=True)
class LoadCache:
    pass


@dataclass(frozen=True)
class PruneCache:
    unused_only: bool = False


@dataclass(frozen=True)
class CheckUpdate:
    pass


@dataclass(frozen=True)
class Log:
    text: str


@dataclass(frozen=True)
class ClearLogs:
    pass
