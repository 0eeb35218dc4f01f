"""Config tab: shared settings, cache maintenance, and the update check."""

from __future__ import annotations

from typing import ClassVar

from rich.text import Text

from nido_tui.config import AppConfig
from nido_tui.focus import FocusTarget
from nido_tui.intents import CheckUpdate, LoadCache, PruneCache, SaveConfig
from nido_tui.items import ConfigEntry
from nido_tui.messages import CacheResult, ConfigSaved, PruneResult, UpdateChecked
from nido_tui.providers import CacheItem, CacheStats
from nido_tui.theme import Theme
from nido_tui.views.base import ActionHit, BaseViewlet, Shortcut
from nido_tui.views.widgets import TextInput, render_box

ACTION_KEYS = ("UPDATE", "CACHE")
TOGGLE_KEYS = ("LINKED_CLONES",)
TEXT_KEYS = ("BACKUP_DIR", "IMAGE_DIR", "SSH_USER", "TEMPLATE_DEFAULT")
SETTING_ORDER = ("BACKUP_DIR", "IMAGE_DIR", "LINKED_CLONES", "SSH_USER", "TEMPLATE_DEFAULT")

# Row of the action button in the UPDATE and CACHE forms.
UPDATE_BUTTON_ROW = 4
TEXT_INPUT_ROW = 2
CACHE_LIST_ROWS = 6


def _format_bytes(size: int) -> str:
    value = float(size)
    for unit in ("B", "KB", "MB", "GB"):
        if value < 1024 or unit == "GB":
            return f"{value:.1f} {unit}" if unit != "B" else f"{int(value)} B"
        value /= 1024
    return f"{value:.1f} TB"


class ConfigViewlet(BaseViewlet):
    title = "CONFIG"

    KEYMAP: ClassVar[dict[FocusTarget, dict[str, str]]] = {
        FocusTarget.TAB_SIDEBAR: {
            "up": "up",
            "down": "down",
            "k": "up",
            "j": "down",
            "enter": "activate",
            "tab": "activate",
            "space": "activate",
        },
        FocusTarget.TAB_FORM: {
            "enter": "press",
            "escape": "back",
            "shift+tab": "back",
        },
        FocusTarget.MODAL: {
            "enter": "modal_confirm",
            "y": "modal_confirm",
            "escape": "modal_dismiss",
            "n": "modal_dismiss",
        },
    }

    def __init__(self, config: AppConfig | None = None) -> None:
        super().__init__()
        config = config or AppConfig()
        entries = [ConfigEntry(key, "", "action") for key in ACTION_KEYS]
        for key in SETTING_ORDER:
            kind = "toggle" if key in TOGGLE_KEYS else "text"
            entries.append(ConfigEntry(key, config.get(key), kind))
        self.sidebar.set_items(entries)
        self.editor = TextInput(max_length=200)
        self.current_version = ""
        self.latest_version = ""
        self.checking = False
        self.cache_items: tuple[CacheItem, ...] = ()
        self.cache_stats: CacheStats | None = None
        self.cache_loading = False

    @property
    def entry(self) -> ConfigEntry:
        item = self.sidebar.selected
        if not isinstance(item, ConfigEntry):
            raise TypeError(f"unexpected config item: {item!r}")
        return item

    def value(self, key: str) -> str:
        for item in self.sidebar.items:
            if isinstance(item, ConfigEntry) and item.key == key:
                return item.value
        raise KeyError(key)

    def _replace_value(self, key: str, value: str) -> None:
        items = [
            ConfigEntry(item.key, value, item.kind) if item.key == key else item
            for item in self.sidebar.items
            if isinstance(item, ConfigEntry)
        ]
        self.sidebar.set_items(items)

    # --- Focus ---------------------------------------------------------------

    def text_input(self) -> TextInput | None:
        if self.focused and self.focus_state.in_form and self.entry.kind == "text":
            return self.editor
        return None

    def on_select(self) -> list:
        self.editor.set_value(self.entry.value)
        return []

    # --- Actions -------------------------------------------------------------

    def action_activate(self) -> list:
        entry = self.entry
        if entry.kind == "toggle":
            flipped = "false" if entry.value == "true" else "true"
            return [SaveConfig(entry.key, flipped)]
        self.focus_state.activate()
        if entry.kind == "text":
            self.editor.set_value(entry.value)
            return []
        if entry.key == "CACHE":
            self.cache_loading = True
            return [LoadCache()]
        return []

    def action_press(self) -> list:
        entry = self.entry
        if entry.kind == "text":
            value = self.editor.value.strip()
            if value == entry.value:
                return []
            return [SaveConfig(entry.key, value)]
        if entry.key == "UPDATE":
            return self.action_check_update()
        if entry.key == "CACHE":
            return self.action_confirm_prune()
        return []

    def action_check_update(self) -> list:
        if self.checking:
            return []
        self.checking = True
        return [CheckUpdate()]

    def action_confirm_prune(self) -> list:
        self.focus_state.open_modal()
        return []

    def on_modal_confirm(self) -> list:
        return [PruneCache()]

    def action_toggle(self) -> list:
        return self.action_activate()

    # --- Results -------------------------------------------------------------

    def apply_result(self, message: object) -> list:
        if isinstance(message, ConfigSaved):
            if message.error is None:
                self._replace_value(message.key, message.value)
        elif isinstance(message, UpdateChecked):
            self.checking = False
            if message.error is None:
                self.current_version = message.current
                self.latest_version = message.latest
        elif isinstance(message, CacheResult):
            self.cache_loading = False
            if message.error is None:
                self.cache_items = message.items
                self.cache_stats = message.stats
        elif isinstance(message, PruneResult) and message.error is None:
            self.cache_loading = True
            return [LoadCache()]
        return []

    # --- Mouse ---------------------------------------------------------------

    def content_hit(self, row: int, col: int) -> ActionHit | None:
        entry = self.entry
        if entry.key == "UPDATE" and row == UPDATE_BUTTON_ROW:
            return ActionHit("check_update")
        if entry.key == "CACHE" and row == self._prune_row():
            return ActionHit("confirm_prune")
        if entry.kind == "toggle" and row == TEXT_INPUT_ROW:
            return ActionHit("toggle")
        return None

    def _prune_row(self) -> int:
        return 4 + min(len(self.cache_items), CACHE_LIST_ROWS) + 1

    # --- Rendering -----------------------------------------------------------

    def shortcuts(self) -> list[Shortcut]:
        if self.modal_open:
            return [Shortcut("y/enter", "prune cache"), Shortcut("n/esc", "cancel")]
        if self.focus_state.in_form:
            return [Shortcut("enter", "save / run"), Shortcut("esc", "back")]
        return [Shortcut("↑↓", "select"), Shortcut("enter", "edit / toggle")]

    def render_content(self, width: int, height: int, theme: Theme) -> list[Text]:
        if self.modal_open:
            rows = [
                Text(" PRUNE IMAGE CACHE?", style=theme.warning),
                Text(" Removes cached images not in use.", style=theme.dim),
                Text(""),
                Text(" [Y] confirm   [N] cancel", style=theme.text),
            ]
            return render_box(rows, width, theme.warning)

        entry = self.entry
        active = self.focused and self.focus_state.in_form
        lines = [Text(entry.key, style=theme.accent_strong), Text("")]
        if entry.key == "UPDATE":
            lines += [
                self._pair("CURRENT", self.current_version or "-", theme),
                self._pair("LATEST", self.latest_version or "-", theme),
                self._button("[ CHECK FOR UPDATES ]", active, theme),
            ]
            if self.checking:
                lines.append(Text("checking...", style=theme.dim))
            elif self.latest_version and self.latest_version != self.current_version:
                lines.append(Text(f"Update available: {self.latest_version}", style=theme.warning))
            return lines

        if entry.key == "CACHE":
            return lines + self._render_cache(active, theme)

        if entry.kind == "toggle":
            state = "[x] enabled" if entry.value == "true" else "[ ] disabled"
            lines.append(Text(state, style=theme.text))
            lines += [Text(""), Text("enter toggles and saves immediately", style=theme.dim)]
            return lines

        if active:
            lines.append(self.editor.render(width, theme))
            lines += [Text(""), Text("enter saves, esc cancels", style=theme.dim)]
        else:
            lines.append(Text(entry.value or "<unset>", style=theme.text))
        return lines

    def _render_cache(self, active: bool, theme: Theme) -> list[Text]:
        if self.cache_loading:
            return [Text("loading cache...", style=theme.dim)]
        stats = self.cache_stats
        lines = [
            self._pair("IMAGES", str(stats.total_images) if stats else "-", theme),
            self._pair("SIZE", _format_bytes(stats.total_size) if stats else "-", theme),
        ]
        for item in self.cache_items[:CACHE_LIST_ROWS]:
            lines.append(
                Text(f"  {item.name}:{item.version}  {_format_bytes(item.size_bytes)}", style=theme.text)
            )
        lines.append(Text(""))
        lines.append(self._button("[ PRUNE CACHE ]", active, theme))
        return lines

    @staticmethod
    def _pair(label: str, value: str, theme: Theme) -> Text:
        line = Text(no_wrap=True)
        line.append(label.ljust(10), style=theme.dim)
        line.append(value, style=theme.text)
        return line

    @staticmethod
    def _button(label: str, active: bool, theme: Theme) -> Text:
        return Text(label, style=theme.tab_active if active else theme.accent)
