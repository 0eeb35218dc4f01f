"""Help tab."""

from __future__ import annotations

from collections.abc import Callable

from rich.text import Text

from nido_tui.keys import GLOBAL_HELP
from nido_tui.theme import Theme
from nido_tui.views.base import BaseViewlet, Shortcut

KEY_WIDTH = 14


class HelpViewlet(BaseViewlet):
    title = "HELP"
    NAVIGABLE = False

    def __init__(self, sections: Callable[[], list[tuple[str, list[Shortcut]]]] | None = None) -> None:
        super().__init__()
        self._sections = sections or (lambda: [])

    def render_sidebar(self, width: int, height: int, theme: Theme) -> list[Text]:
        lines = [Text("GLOBAL", style=theme.accent)]
        lines += [Text(title, style=theme.dim) for title, _ in self._sections()]
        return lines

    def render_content(self, width: int, height: int, theme: Theme) -> list[Text]:
        lines = [Text("GLOBAL", style=theme.accent_strong)]
        lines += [self._row(key, text, theme) for key, text in GLOBAL_HELP]
        for title, shortcuts in self._sections():
            if not shortcuts:
                continue
            lines.append(Text(""))
            lines.append(Text(title, style=theme.accent_strong))
            lines += [self._row(s.key, s.description, theme) for s in shortcuts]
        return lines[:height]

    @staticmethod
    def _row(key: str, text: str, theme: Theme) -> Text:
        line = Text(no_wrap=True)
        line.append(f"  {key}".ljust(KEY_WIDTH), style=theme.focus)
        line.append(text, style=theme.text)
        return line
