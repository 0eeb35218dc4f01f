"""
Viewlet contract.

A viewlet is the content of one tab. The dispatcher only ever talks to the
active viewlet through the methods below; tab-specific behavior stays
behind them.

Key routing inside a viewlet is data-driven: ``KEYMAP`` maps the current
focus target to ``{key: action}``, and ``run_action`` calls the matching
``action_<name>`` method. Keys not in the map reach ``update``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import ClassVar

from rich.text import Text

from nido_tui import layout
from nido_tui.focus import FocusMachine, FocusTarget
from nido_tui.layout import Geometry
from nido_tui.messages import KeyPress
from nido_tui.theme import Theme
from nido_tui.views.widgets import SelectList, TextInput

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Shortcut:
    key: str
    description: str


@dataclass(frozen=True)
class SidebarHit:
    row: int


@dataclass(frozen=True)
class ActionHit:
    name: str


Hit = SidebarHit | ActionHit


class BaseViewlet:
    """Shared plumbing for every tab's content."""

    title: ClassVar[str] = ""
    NAVIGABLE: ClassVar[bool] = True
    KEYMAP: ClassVar[dict[FocusTarget, dict[str, str]]] = {}

    def __init__(self) -> None:
        self.focus_state = FocusMachine(self.NAVIGABLE)
        self.sidebar = SelectList()
        self.width = 0
        self.height = 0
        self._focused = False

    # --- Contract ------------------------------------------------------------

    def init(self) -> list:
        """Intents to issue at startup."""
        return []

    def update(self, event: KeyPress) -> list:
        """Handle an event no key map claimed; the default edits the focused input."""
        field = self.text_input()
        if field is not None and field.handle_key(event.key, event.character):
            return self.on_text_changed()
        return []

    def render(self, geometry: Geometry, theme: Theme) -> list[Text]:
        """Body lines for one frame, exactly ``geometry.body_height`` of them."""
        height = geometry.body_height
        if geometry.has_sidebar:
            side = self.render_sidebar(geometry.sidebar_width, height, theme)
            content = self.render_content(geometry.content_width, height, theme)
            lines = []
            for i in range(height):
                line = Text(no_wrap=True, overflow="crop")
                left = side[i].copy() if i < len(side) else Text()
                left.truncate(geometry.sidebar_width, pad=True)
                line.append_text(left)
                line.append("│", style=theme.border)
                line.append(" ")
                right = content[i].copy() if i < len(content) else Text()
                right.truncate(geometry.content_width)
                line.append_text(right)
                lines.append(line)
            return lines

        if self.NAVIGABLE and self.focus_state.in_sidebar:
            body = self.render_sidebar(geometry.content_width, height, theme)
        else:
            body = self.render_content(geometry.content_width, height, theme)
        lines = []
        for i in range(height):
            line = Text(" ", no_wrap=True, overflow="crop")
            if i < len(body):
                part = body[i].copy()
                part.truncate(geometry.content_width)
                line.append_text(part)
            lines.append(line)
        return lines

    def resize(self, width: int, height: int) -> None:
        self.width = width
        self.height = height

    def shortcuts(self) -> list[Shortcut]:
        return []

    def focus(self) -> None:
        if not self._focused:
            self._focused = True
            self.on_focus()

    def blur(self) -> None:
        if self._focused:
            self._focused = False

    @property
    def focused(self) -> bool:
        return self._focused

    # --- Focus helpers -------------------------------------------------------

    @property
    def modal_open(self) -> bool:
        return self.focus_state.modal_open

    def reset_focus(self) -> None:
        self.focus_state.reset()

    def text_input(self) -> TextInput | None:
        """The input that should hold the terminal cursor, if any."""
        return None

    def on_focus(self) -> None:
        pass

    def on_text_changed(self) -> list:
        return []

    # --- Keys ----------------------------------------------------------------

    def action_for(self, key: str) -> str | None:
        return self.KEYMAP.get(self.focus_state.target, {}).get(key)

    def run_action(self, name: str) -> list:
        handler = getattr(self, f"action_{name}", None)
        if handler is None:
            logger.warning("%s has no action %s", type(self).__name__, name)
            return []
        return handler() or []

    def handle_modal_key(self, event: KeyPress) -> list:
        action = self.KEYMAP.get(FocusTarget.MODAL, {}).get(event.key)
        if action is not None:
            return self.run_action(action)
        return self.modal_update(event)

    def modal_update(self, event: KeyPress) -> list:
        return []

    def action_modal_confirm(self) -> list:
        if self.focus_state.confirm():
            return self.on_modal_confirm()
        return []

    def action_modal_dismiss(self) -> list:
        self.focus_state.dismiss()
        return []

    def on_modal_confirm(self) -> list:
        return []

    def action_activate_form(self) -> list:
        self.focus_state.activate()
        return []

    def action_back(self) -> list:
        self.focus_state.back()
        return []

    def action_up(self) -> list:
        if self.sidebar.move(-1):
            return self.on_select()
        return []

    def action_down(self) -> list:
        if self.sidebar.move(1):
            return self.on_select()
        return []

    def on_select(self) -> list:
        """Called after the sidebar selection changes."""
        return []

    # --- Mouse ---------------------------------------------------------------

    def hit_test(self, geometry: Geometry, x: int, y: int) -> Hit | None:
        """Translate a body click into a hit using the rendered geometry."""
        x = layout.clamp(x, 0, max(0, geometry.width - 1))
        row = layout.body_row(geometry, y)
        if row is None:
            return None
        if layout.in_sidebar(geometry, x):
            return self._sidebar_hit(row, geometry.body_height)
        col = layout.content_column(geometry, x)
        if col is None:
            return None
        if not geometry.has_sidebar and self.NAVIGABLE and self.focus_state.in_sidebar:
            return self._sidebar_hit(row, geometry.body_height)
        return self.content_hit(row, col)

    def _sidebar_hit(self, row: int, height: int) -> SidebarHit | None:
        index = self.sidebar.row_at(row, height)
        if index is None:
            return None
        return SidebarHit(index)

    def content_hit(self, row: int, col: int) -> ActionHit | None:
        return None

    def click(self, hit: Hit) -> list:
        if isinstance(hit, SidebarHit):
            if self.focus_state.in_form:
                self.focus_state.back()
            if self.sidebar.select(hit.row):
                return self.on_select()
            return []
        if isinstance(hit, ActionHit):
            if self.focus_state.in_sidebar:
                self.focus_state.activate()
            return self.run_action(hit.name)
        raise TypeError(f"unknown hit: {hit!r}")

    # --- Results -------------------------------------------------------------

    def apply_result(self, message: object) -> list:
        """React to a backend result; returns follow-up intents."""
        return []

    # --- Rendering helpers ---------------------------------------------------

    def render_sidebar(self, width: int, height: int, theme: Theme) -> list[Text]:
        return self.sidebar.render(
            width, height, theme, active=self._focused and self.focus_state.in_sidebar
        )

    def render_content(self, width: int, height: int, theme: Theme) -> list[Text]:
        return []
