"""
Hatchery tab: spawn a VM from a template or image, or turn a VM into a template.

The form's source field opens a picker modal. Its entries arrive
asynchronously; the picker only opens if the operator is still on that
field when they land.
"""

from __future__ import annotations

from typing import ClassVar

from rich.text import Text

from nido_tui.focus import FocusTarget
from nido_tui.intents import LoadSources, Log, SubmitSpawn, SubmitTemplate
from nido_tui.items import HatchTypeEntry, SourceEntry
from nido_tui.messages import SourcesResult
from nido_tui.theme import Theme
from nido_tui.views.base import ActionHit, BaseViewlet, Shortcut
from nido_tui.views.widgets import SelectList, TextInput, render_box

SPAWN = "spawn"
TEMPLATE = "template"

FIELDS = {
    SPAWN: ("name", "source", "gui", "submit"),
    TEMPLATE: ("name", "source", "submit"),
}
# Each field takes a label row and a blank row.
FIELD_ROWS = 2
LABEL_WIDTH = 10
PICKER_HEIGHT = 8


class HatcheryViewlet(BaseViewlet):
    title = "HATCHERY"

    KEYMAP: ClassVar[dict[FocusTarget, dict[str, str]]] = {
        FocusTarget.TAB_SIDEBAR: {
            "up": "up",
            "down": "down",
            "k": "up",
            "j": "down",
            "enter": "activate_form",
            "tab": "activate_form",
        },
        FocusTarget.TAB_FORM: {
            "up": "prev_field",
            "down": "next_field",
            "tab": "next_field",
            "shift+tab": "prev_field",
            "enter": "press",
            "space": "toggle",
            "escape": "back",
        },
        FocusTarget.MODAL: {
            "up": "picker_up",
            "down": "picker_down",
            "enter": "modal_confirm",
            "escape": "modal_dismiss",
        },
    }

    def __init__(self) -> None:
        super().__init__()
        self.sidebar.set_items(
            [HatchTypeEntry(SPAWN, "SPAWN VM"), HatchTypeEntry(TEMPLATE, "CREATE TEMPLATE")]
        )
        self.inputs = {
            SPAWN: TextInput(placeholder="vm-name"),
            TEMPLATE: TextInput(placeholder="template-name"),
        }
        self.sources: dict[str, SourceEntry | None] = {SPAWN: None, TEMPLATE: None}
        self.gui = False
        self.field_index = 0
        self.picker = SelectList()
        self.awaiting: str | None = None

    @property
    def mode(self) -> str:
        item = self.sidebar.selected
        return item.mode if isinstance(item, HatchTypeEntry) else SPAWN

    @property
    def fields(self) -> tuple[str, ...]:
        return FIELDS[self.mode]

    @property
    def field(self) -> str:
        return self.fields[min(self.field_index, len(self.fields) - 1)]

    def set_default_template(self, name: str) -> None:
        """Preselect ``name`` as the spawn source when none is chosen."""
        if name and self.sources[SPAWN] is None:
            self.sources[SPAWN] = SourceEntry("template", name)

    # --- Focus ---------------------------------------------------------------

    def text_input(self) -> TextInput | None:
        if self.focused and self.focus_state.in_form and self.field == "name":
            return self.inputs[self.mode]
        return None

    def on_select(self) -> list:
        self.field_index = 0
        return []

    def action_activate_form(self) -> list:
        self.field_index = 0
        return super().action_activate_form()

    # --- Form ----------------------------------------------------------------

    def action_prev_field(self) -> list:
        self.field_index = max(0, self.field_index - 1)
        return []

    def action_next_field(self) -> list:
        self.field_index = min(len(self.fields) - 1, self.field_index + 1)
        return []

    def action_press(self) -> list:
        field = self.field
        if field == "name":
            return self.action_next_field()
        if field == "source":
            return self.action_choose_source()
        if field == "gui":
            return self.action_toggle()
        return self.action_submit()

    def action_toggle(self) -> list:
        if self.field == "gui":
            self.gui = not self.gui
        return []

    def action_choose_source(self) -> list:
        self.field_index = self.fields.index("source")
        self.awaiting = self.mode
        return [LoadSources(self.mode)]

    def action_submit(self) -> list:
        mode = self.mode
        name = self.inputs[mode].value.strip()
        source = self.sources[mode]
        if not name:
            return [Log("Hatchery: Name is required!")]
        if source is None:
            return [Log("Hatchery: Source is required!")]
        if mode == SPAWN:
            return [SubmitSpawn(name, source, self.gui)]
        return [SubmitTemplate(name, source.value)]

    # --- Picker modal --------------------------------------------------------

    def action_picker_up(self) -> list:
        self.picker.move(-1)
        return []

    def action_picker_down(self) -> list:
        self.picker.move(1)
        return []

    def on_modal_confirm(self) -> list:
        choice = self.picker.selected
        if isinstance(choice, SourceEntry):
            self.sources[self.mode] = choice
            self.field_index = self.fields.index("source")
        return []

    def apply_result(self, message: object) -> list:
        if not isinstance(message, SourcesResult):
            return []
        if message.mode != self.awaiting:
            return []
        self.awaiting = None
        if message.error is not None:
            return []
        if not message.sources:
            return [Log(f"Hatchery: no sources available for {message.mode}")]
        self.picker.set_items(list(message.sources), keep=False)
        current = self.sources[message.mode]
        if current is not None and current in self.picker.items:
            self.picker.select(self.picker.items.index(current))
        # Open only if the operator is still waiting on this exact field.
        if (
            self.focused
            and self.focus_state.in_form
            and self.mode == message.mode
            and self.field == "source"
        ):
            self.focus_state.open_modal()
        return []

    # --- Mouse ---------------------------------------------------------------

    def content_hit(self, row: int, col: int) -> ActionHit | None:
        if row % FIELD_ROWS:
            return None
        index = row // FIELD_ROWS
        if index >= len(self.fields):
            return None
        self.field_index = index
        field = self.fields[index]
        if field == "name":
            return ActionHit("focus_name")
        if field == "source":
            return ActionHit("choose_source")
        if field == "gui":
            return ActionHit("toggle")
        return ActionHit("submit")

    def action_focus_name(self) -> list:
        self.field_index = 0
        return []

    # --- Rendering -----------------------------------------------------------

    def shortcuts(self) -> list[Shortcut]:
        if self.modal_open:
            return [Shortcut("↑↓", "choose"), Shortcut("enter", "select"), Shortcut("esc", "cancel")]
        if self.focus_state.in_form:
            return [
                Shortcut("↑↓/tab", "field"),
                Shortcut("enter", "edit/submit"),
                Shortcut("space", "toggle"),
                Shortcut("esc", "back"),
            ]
        return [Shortcut("↑↓", "mode"), Shortcut("enter", "open form")]

    def render_content(self, width: int, height: int, theme: Theme) -> list[Text]:
        if self.modal_open:
            rows: list[Text] = [Text(" SELECT SOURCE", style=theme.accent_strong)]
            rows += self.picker.render(width - 4, PICKER_HEIGHT, theme, active=True)
            return render_box(rows, width, theme.accent)

        active = self.focused and self.focus_state.in_form
        mode = self.mode
        lines: list[Text] = []
        for index, field in enumerate(self.fields):
            selected = active and index == self.field_index
            label_style = theme.focus if selected else theme.dim
            line = Text(no_wrap=True)
            if field == "submit":
                label = "[ SPAWN ]" if mode == SPAWN else "[ CREATE TEMPLATE ]"
                line.append(label, style=theme.tab_active if selected else theme.accent)
            else:
                line.append(field.upper().ljust(LABEL_WIDTH), style=label_style)
                line.append_text(self._field_value(field, width - LABEL_WIDTH, theme))
            lines.append(line)
            lines.append(Text(""))
        return lines

    def _field_value(self, field: str, width: int, theme: Theme) -> Text:
        if field == "name":
            return self.inputs[self.mode].render(width, theme)
        if field == "source":
            source = self.sources[self.mode]
            if self.awaiting == self.mode:
                return Text("loading...", style=theme.dim)
            if source is None:
                return Text("<press enter to choose>", style=theme.muted)
            return Text(source.label, style=theme.text)
        if field == "gui":
            return Text("[x] enabled" if self.gui else "[ ] disabled", style=theme.text)
        raise ValueError(f"unknown field: {field}")
