"""Explicit style palette passed into every render call."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Theme:
    """Rich style strings for each semantic role."""

    name: str
    text: str
    dim: str
    muted: str
    accent: str
    accent_strong: str
    success: str
    warning: str
    error: str
    focus: str
    tab_active: str
    tab_inactive: str
    border: str

    def state_style(self, state: str) -> str:
        if state == "running":
            return self.success
        if state in ("stopped", "shutoff"):
            return self.dim
        return self.warning


DARK = Theme(
    name="dark",
    text="#E6EBF2",
    dim="#707D8C",
    muted="#4A5568",
    accent="#76C7FF",
    accent_strong="bold #3BA3E6",
    success="#3DDC84",
    warning="#F5C26B",
    error="#F06D79",
    focus="bold #76C7FF",
    tab_active="bold #0F1216 on #76C7FF",
    tab_inactive="#707D8C",
    border="#4A5568",
)

LIGHT = Theme(
    name="light",
    text="#1A1A1A",
    dim="#666666",
    muted="#999999",
    accent="#3BA3E6",
    accent_strong="bold #2B7CB8",
    success="#2DA866",
    warning="#D4940A",
    error="#D93F4C",
    focus="bold #3BA3E6",
    tab_active="bold #FFFFFF on #3BA3E6",
    tab_inactive="#666666",
    border="#999999",
)

THEMES = {theme.name: theme for theme in (DARK, LIGHT)}


def resolve_theme(name: str | None) -> Theme:
    """Look up a palette by name, defaulting to dark."""
    return THEMES.get((name or "").lower(), DARK)
