"""Reusable sub-widgets for viewlets."""

from __future__ import annotations

from collections.abc import Sequence

from rich.text import Text

from nido_tui.items import ListItem, item_detail, item_label
from nido_tui.layout import clamp
from nido_tui.theme import Theme


class TextInput:
    """Single-line text buffer with a cursor."""

    def __init__(self, placeholder: str = "", value: str = "", max_length: int = 50) -> None:
        self.placeholder = placeholder
        self.max_length = max_length
        self.value = value[:max_length]
        self.cursor = len(self.value)
        self._focused = False

    @property
    def focused(self) -> bool:
        return self._focused

    def focus(self) -> None:
        self._focused = True

    def blur(self) -> None:
        self._focused = False

    def set_value(self, value: str) -> None:
        self.value = value[: self.max_length]
        self.cursor = len(self.value)

    def handle_key(self, key: str, character: str | None = None) -> bool:
        """Edit the buffer; returns False for keys it does not use."""
        if key == "left":
            self.cursor = max(0, self.cursor - 1)
        elif key == "right":
            self.cursor = min(len(self.value), self.cursor + 1)
        elif key in ("home", "ctrl+a"):
            self.cursor = 0
        elif key in ("end", "ctrl+e"):
            self.cursor = len(self.value)
        elif key == "backspace":
            if self.cursor:
                self.value = self.value[: self.cursor - 1] + self.value[self.cursor :]
                self.cursor -= 1
        elif key == "delete":
            self.value = self.value[: self.cursor] + self.value[self.cursor + 1 :]
        elif key == "ctrl+u":
            self.value = self.value[self.cursor :]
            self.cursor = 0
        elif character is not None and len(character) == 1 and character.isprintable():
            if len(self.value) >= self.max_length:
                return True
            self.value = self.value[: self.cursor] + character + self.value[self.cursor :]
            self.cursor += 1
        else:
            return False
        return True

    def render(self, width: int, theme: Theme) -> Text:
        width = max(1, width)
        text = Text(no_wrap=True, overflow="crop")
        if not self.value and not self._focused:
            text.append(self.placeholder[:width], style=theme.muted)
            return text

        start = max(0, self.cursor - width + 1)
        visible = self.value[start : start + width]
        text.append(visible, style=theme.text)
        if self._focused:
            pos = self.cursor - start
            if pos >= len(visible):
                text.append(" ", style="reverse")
            else:
                text.stylize("reverse", pos, pos + 1)
        return text


class SelectList:
    """Scrolling list of items with one selected row."""

    def __init__(self, items: Sequence[ListItem] = ()) -> None:
        self.items: list[ListItem] = list(items)
        self.index = 0
        self.offset = 0

    @property
    def selected(self) -> ListItem | None:
        if not self.items:
            return None
        return self.items[self.index]

    def set_items(self, items: Sequence[ListItem], keep: bool = True) -> None:
        previous = self.selected
        self.items = list(items)
        if keep and previous is not None:
            label = item_label(previous)
            for i, item in enumerate(self.items):
                if type(item) is type(previous) and item_label(item) == label:
                    self.index = i
                    return
        self.index = clamp(self.index, 0, len(self.items) - 1)

    def move(self, delta: int) -> bool:
        """Move the selection; returns whether it changed."""
        return self.select(self.index + delta)

    def select(self, index: int) -> bool:
        if not self.items:
            return False
        new = clamp(index, 0, len(self.items) - 1)
        changed = new != self.index
        self.index = new
        return changed

    def visible(self, height: int) -> list[tuple[int, ListItem]]:
        """Rows that fit in ``height``, keeping the selection in view."""
        height = max(1, height)
        if self.index < self.offset:
            self.offset = self.index
        elif self.index >= self.offset + height:
            self.offset = self.index - height + 1
        self.offset = clamp(self.offset, 0, max(0, len(self.items) - height))
        end = self.offset + height
        return list(enumerate(self.items))[self.offset:end]

    def row_at(self, row: int, height: int) -> int | None:
        """Item index under a visible row, or None."""
        if row < 0 or row >= height:
            return None
        index = self.offset + row
        if index >= len(self.items):
            return None
        return index

    def render(self, width: int, height: int, theme: Theme, active: bool) -> list[Text]:
        lines = []
        for i, item in self.visible(height):
            label = item_label(item)
            detail = item_detail(item)
            marker = "▸ " if i == self.index else "  "
            line = Text(no_wrap=True, overflow="ellipsis")
            if i == self.index:
                line.append(marker + label, style=theme.focus if active else theme.accent)
            else:
                line.append(marker + label, style=theme.text)
            if detail and width > len(label) + 6:
                line.append(" " + detail, style=theme.dim)
            line.truncate(max(1, width))
            lines.append(line)
        return lines


def render_box(rows: Sequence[str | Text], width: int, style: str, max_width: int = 48) -> list[Text]:
    """Frame ``rows`` in a single-line box no wider than ``width``."""
    inner = max(4, min(width, max_width) - 2)
    lines = [Text(f"┌{'─' * inner}┐", style=style)]
    for row in rows:
        body = row.copy() if isinstance(row, Text) else Text(row)
        body.truncate(inner, pad=True)
        line = Text("│", style=style)
        line.append_text(body)
        line.append("│", style=style)
        lines.append(line)
    lines.append(Text(f"└{'─' * inner}┘", style=style))
    return lines
