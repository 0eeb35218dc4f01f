"""Global key bindings shared by the dispatcher and the help tab."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class GlobalKey:
    action: str
    description: str
    # Only honored while the active tab's focus is on its sidebar.
    sidebar_only: bool = False


GLOBAL_KEYMAP: dict[str, GlobalKey] = {
    "q": GlobalKey("quit", "quit"),
    "ctrl+c": GlobalKey("quit", "quit"),
    "1": GlobalKey("tab_0", "fleet"),
    "2": GlobalKey("tab_1", "hatchery"),
    "3": GlobalKey("tab_2", "logs"),
    "4": GlobalKey("tab_3", "config"),
    "5": GlobalKey("tab_4", "help"),
    "h": GlobalKey("help", "help"),
    "r": GlobalKey("refresh", "refresh fleet"),
    "left": GlobalKey("prev_tab", "previous tab", sidebar_only=True),
    "right": GlobalKey("next_tab", "next tab", sidebar_only=True),
}

GLOBAL_HELP = [
    ("1-5", "switch tab"),
    ("←/→", "cycle tabs (from a sidebar)"),
    ("r", "refresh fleet"),
    ("h", "help"),
    ("q / ctrl+c", "quit (not while typing)"),
]
