"""
List items shown in sidebars and pickers.

The set of item kinds is closed. Code that needs to tell them apart goes
through ``isinstance`` chains ending in ``TypeError`` so a new kind cannot be
silently ignored.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from nido_tui.providers import VMStatus

SOURCE_KINDS = ("template", "image", "vm")


@dataclass(frozen=True)
class VmEntry:
    status: VMStatus

    @property
    def name(self) -> str:
        return self.status.name


@dataclass(frozen=True)
class SpawnAction:
    label: str = "+ SPAWN NEW"


@dataclass(frozen=True)
class HatchTypeEntry:
    mode: str
    label: str


@dataclass(frozen=True)
class SourceEntry:
    kind: str
    value: str

    def __post_init__(self) -> None:
        if self.kind not in SOURCE_KINDS:
            raise ValueError(f"unknown source kind: {self.kind}")

    @property
    def label(self) -> str:
        return f"[{self.kind.upper()}] {self.value}"

    def image_tag(self) -> tuple[str, str]:
        """Split an image ``name:version`` value."""
        name, _, version = self.value.partition(":")
        return name, version


@dataclass(frozen=True)
class ConfigEntry:
    key: str
    value: str = ""
    # action | text | toggle
    kind: str = "text"


ListItem = Union[VmEntry, SpawnAction, HatchTypeEntry, SourceEntry, ConfigEntry]


def item_label(item: ListItem) -> str:
    if isinstance(item, VmEntry):
        return item.name
    if isinstance(item, SpawnAction):
        return item.label
    if isinstance(item, HatchTypeEntry):
        return item.label
    if isinstance(item, SourceEntry):
        return item.label
    if isinstance(item, ConfigEntry):
        return item.key
    raise TypeError(f"unknown list item: {item!r}")


def item_detail(item: ListItem) -> str:
    """Secondary text for an item, or empty."""
    if isinstance(item, VmEntry):
        return item.status.state
    if isinstance(item, SpawnAction):
        return ""
    if isinstance(item, HatchTypeEntry):
        return item.mode
    if isinstance(item, SourceEntry):
        return item.kind
    if isinstance(item, ConfigEntry):
        return item.value
    raise TypeError(f"unknown list item: {item!r}")
