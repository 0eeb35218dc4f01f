"""
Frame rendering.

Paints the whole screen as one rich Text: tab bar, title, rule, section
title, the active viewlet's body, and the footer block. Every row is
exactly the terminal width so the body starts at ``layout.BODY_TOP``.
"""

from __future__ import annotations

from rich.text import Text

from nido_tui.errors import LayoutUnviable
from nido_tui.focus import FocusTarget
from nido_tui.layout import EXIT_ZONE, Geometry, require_viable, tab_width
from nido_tui.state import ApplicationState, Tab
from nido_tui.theme import Theme

SPINNER = "⠋⠙⠹⠸⠼⠴⠦⠧⠇⠏"
PROGRESS_WIDTH = 20
EXIT_LABEL = " [X]"

FOCUS_LABELS = {
    FocusTarget.TAB_SIDEBAR: "sidebar",
    FocusTarget.TAB_FORM: "form",
    FocusTarget.MODAL: "confirm",
    FocusTarget.GLOBAL_CHROME: "",
}


def render_frame(state: ApplicationState, geometry: Geometry, theme: Theme) -> Text:
    """Render one full frame, or the size advisory when the layout is unviable."""
    try:
        require_viable(geometry)
    except LayoutUnviable as exc:
        return Text(exc.message, style=theme.warning)

    lines = [
        render_tab_bar(state, geometry, theme),
        render_title(state, geometry, theme),
        Text("─" * geometry.width, style=theme.border),
        render_section(state, geometry, theme),
    ]
    lines += state.active_viewlet.render(geometry, theme)
    lines += render_footer(state, geometry, theme)
    return Text("\n").join(_fit(line, geometry.width) for line in lines)


def _fit(line: Text, width: int) -> Text:
    line = line.copy()
    line.no_wrap = True
    line.truncate(width, pad=True)
    return line


def render_tab_bar(state: ApplicationState, geometry: Geometry, theme: Theme) -> Text:
    """Tabs share the row evenly; the exit control takes the last columns."""
    cell = tab_width(geometry)
    line = Text(no_wrap=True)
    for tab in Tab:
        label = f" {tab.label} "[:cell].center(cell)
        style = theme.tab_active if tab is state.active_tab else theme.tab_inactive
        line.append(label, style=style)
    line.append(" " * max(0, geometry.width - EXIT_ZONE - line.cell_len))
    line.append(EXIT_LABEL, style=theme.error)
    return line


def render_title(state: ApplicationState, geometry: Geometry, theme: Theme) -> Text:
    line = Text(no_wrap=True)
    line.append(" NIDO", style=theme.accent_strong)
    line.append("  VM CONTROL PANEL", style=theme.dim)
    info = f"{geometry.width}x{geometry.height} {geometry.breakpoint.value} "
    line.append(" " * max(1, geometry.width - line.cell_len - len(info)))
    line.append(info, style=theme.muted)
    return line


def render_section(state: ApplicationState, geometry: Geometry, theme: Theme) -> Text:
    viewlet = state.active_viewlet
    line = Text(no_wrap=True)
    line.append(f" {viewlet.title}", style=theme.accent)
    focus = FOCUS_LABELS[viewlet.focus_state.target]
    if focus:
        line.append(f"  [{focus}]", style=theme.dim)
    return line


def progress_bar(fraction: float, width: int = PROGRESS_WIDTH) -> str:
    fraction = max(0.0, min(1.0, fraction))
    filled = int(round(fraction * width))
    return "█" * filled + "░" * (width - filled)


def render_status(state: ApplicationState, theme: Theme) -> Text:
    line = Text(no_wrap=True)
    if state.download is not None:
        download = state.download
        line.append(" Downloading... ", style=theme.warning)
        line.append(progress_bar(download.progress), style=theme.accent)
        line.append(f" {int(download.progress * 100):3d}% {download.label}", style=theme.text)
    elif state.pending is not None:
        frame = SPINNER[state.spinner_frame % len(SPINNER)]
        line.append(f" {frame} EXECUTING OP... ", style=theme.warning)
        line.append(f"{state.pending.kind} {state.pending.target}".strip(), style=theme.text)
    else:
        line.append(" ● NOMINAL", style=theme.success)

    last = state.logs.tail(1)
    if last:
        line.append("  │  ", style=theme.border)
        line.append(last[0].text, style=theme.dim)
    return line


def render_shortcuts(state: ApplicationState, theme: Theme) -> Text:
    line = Text(no_wrap=True)
    for shortcut in state.active_viewlet.shortcuts():
        line.append(f" {shortcut.key}", style=theme.focus)
        line.append(f" {shortcut.description} ", style=theme.dim)
    line.append(" 1-5", style=theme.focus)
    line.append(" tabs ", style=theme.dim)
    line.append(" q", style=theme.focus)
    line.append(" quit", style=theme.dim)
    return line


def render_footer(state: ApplicationState, geometry: Geometry, theme: Theme) -> list[Text]:
    return [
        Text("─" * geometry.width, style=theme.border),
        render_status(state, theme),
        render_shortcuts(state, theme),
        Text(""),
    ]
