"""Logs tab: the operator log, newest at the bottom."""

from __future__ import annotations

from typing import ClassVar

from rich.text import Text

from nido_tui.focus import FocusTarget
from nido_tui.intents import ClearLogs
from nido_tui.state import LogBuffer
from nido_tui.theme import Theme
from nido_tui.views.base import BaseViewlet, Shortcut


class LogsViewlet(BaseViewlet):
    title = "LOGS"
    NAVIGABLE = False

    KEYMAP: ClassVar[dict[FocusTarget, dict[str, str]]] = {
        FocusTarget.GLOBAL_CHROME: {
            "up": "scroll_up",
            "down": "scroll_down",
            "k": "scroll_up",
            "j": "scroll_down",
            "pageup": "page_up",
            "pagedown": "page_down",
            "home": "top",
            "end": "follow",
            "c": "clear",
        },
    }

    def __init__(self, buffer: LogBuffer) -> None:
        super().__init__()
        self.buffer = buffer
        # Lines scrolled back from the newest entry; 0 follows the tail.
        self.scroll = 0

    @property
    def page(self) -> int:
        return max(1, self.height - 8)

    def _max_scroll(self) -> int:
        return max(0, len(self.buffer) - self.page)

    def _scroll_by(self, delta: int) -> list:
        self.scroll = max(0, min(self._max_scroll(), self.scroll + delta))
        return []

    def action_scroll_up(self) -> list:
        return self._scroll_by(1)

    def action_scroll_down(self) -> list:
        return self._scroll_by(-1)

    def action_page_up(self) -> list:
        return self._scroll_by(self.page)

    def action_page_down(self) -> list:
        return self._scroll_by(-self.page)

    def action_top(self) -> list:
        self.scroll = self._max_scroll()
        return []

    def action_follow(self) -> list:
        self.scroll = 0
        return []

    def action_clear(self) -> list:
        self.scroll = 0
        return [ClearLogs()]

    def shortcuts(self) -> list[Shortcut]:
        return [
            Shortcut("↑↓", "scroll"),
            Shortcut("pgup/pgdn", "page"),
            Shortcut("end", "follow"),
            Shortcut("c", "clear"),
        ]

    def render_sidebar(self, width: int, height: int, theme: Theme) -> list[Text]:
        lines = [
            Text("LINES", style=theme.dim),
            Text(str(len(self.buffer)), style=theme.text),
            Text(""),
            Text("LIMIT", style=theme.dim),
            Text(str(self.buffer.limit), style=theme.text),
        ]
        if self.buffer.dropped:
            lines += [Text(""), Text("ROTATED", style=theme.dim), Text(str(self.buffer.dropped), style=theme.warning)]
        if self.scroll:
            lines += [Text(""), Text(f"-{self.scroll} lines", style=theme.warning)]
        return lines

    def render_content(self, width: int, height: int, theme: Theme) -> list[Text]:
        entries = self.buffer.tail(height, self.scroll)
        if not entries:
            return [Text("No log entries yet.", style=theme.dim)]
        lines = []
        for entry in entries:
            line = Text(no_wrap=True, overflow="ellipsis")
            line.append(f"[{entry.timestamp:%H:%M:%S}] ", style=theme.dim)
            style = theme.error if "failed" in entry.text.lower() else theme.text
            line.append(entry.text, style=style)
            lines.append(line)
        return lines
