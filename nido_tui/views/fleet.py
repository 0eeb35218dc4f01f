"""Fleet tab: the VM list and the selected VM's connection details."""

from __future__ import annotations

from typing import ClassVar

from rich.text import Text

from nido_tui.focus import FocusTarget
from nido_tui.intents import (
    ClearDetail,
    DeleteVm,
    FetchInfo,
    Log,
    OpenSsh,
    OpenVnc,
    RefreshFleet,
    StartVm,
    StopVm,
    SwitchTab,
)
from nido_tui.items import SpawnAction, VmEntry
from nido_tui.messages import DetailResult, OpResult, VmListResult
from nido_tui.providers import VMDetail
from nido_tui.state import Tab
from nido_tui.theme import Theme
from nido_tui.views.base import ActionHit, BaseViewlet, Shortcut
from nido_tui.views.widgets import render_box

BUTTON_ROW = 10
BUTTON_GAP = 2
LABEL_WIDTH = 10

_COMMON = {
    "x": "force_stop",
    "delete": "confirm_delete",
    "s": "ssh",
    "v": "vnc",
}


class FleetViewlet(BaseViewlet):
    title = "FLEET"

    KEYMAP: ClassVar[dict[FocusTarget, dict[str, str]]] = {
        FocusTarget.TAB_SIDEBAR: {
            "up": "up",
            "down": "down",
            "k": "up",
            "j": "down",
            "enter": "activate",
            "tab": "activate_form",
            **_COMMON,
        },
        FocusTarget.TAB_FORM: {
            "left": "prev_button",
            "right": "next_button",
            "up": "prev_button",
            "down": "next_button",
            "tab": "next_button",
            "shift+tab": "prev_button",
            "enter": "press",
            "escape": "back",
            **_COMMON,
        },
        FocusTarget.MODAL: {
            "enter": "modal_confirm",
            "y": "modal_confirm",
            "escape": "modal_dismiss",
            "n": "modal_dismiss",
        },
    }

    def __init__(self) -> None:
        super().__init__()
        self.sidebar.set_items([SpawnAction()])
        self.detail: VMDetail | None = None
        self.button_index = 0
        self.delete_target = ""

    def init(self) -> list:
        return [RefreshFleet()]

    # --- Selection -----------------------------------------------------------

    @property
    def selected_vm(self) -> VmEntry | None:
        item = self.sidebar.selected
        return item if isinstance(item, VmEntry) else None

    def on_select(self) -> list:
        vm = self.selected_vm
        if vm is None:
            self.detail = None
            return [ClearDetail()]
        if self.detail is not None and self.detail.name != vm.name:
            self.detail = None
        return [FetchInfo(vm.name)]

    def buttons(self) -> list[tuple[str, str]]:
        vm = self.selected_vm
        toggle = "STOP" if vm is not None and vm.status.running else "START"
        return [("ssh", "SSH"), ("vnc", "VNC"), ("toggle", toggle), ("confirm_delete", "DELETE")]

    # --- Actions -------------------------------------------------------------

    def action_activate(self) -> list:
        item = self.sidebar.selected
        if isinstance(item, SpawnAction):
            return [SwitchTab(Tab.HATCHERY)]
        return self.action_toggle()

    def action_toggle(self) -> list:
        vm = self.selected_vm
        if vm is None:
            return []
        if vm.status.running:
            return [StopVm(vm.name)]
        return [StartVm(vm.name)]

    def action_force_stop(self) -> list:
        vm = self.selected_vm
        if vm is None:
            return []
        return [StopVm(vm.name, force=True)]

    def action_confirm_delete(self) -> list:
        vm = self.selected_vm
        if vm is None:
            return []
        if self.focus_state.in_sidebar:
            self.focus_state.activate()
        if self.focus_state.open_modal():
            self.delete_target = vm.name
        return []

    def on_modal_confirm(self) -> list:
        name, self.delete_target = self.delete_target, ""
        if not name:
            return []
        return [DeleteVm(name)]

    def action_modal_dismiss(self) -> list:
        self.delete_target = ""
        return super().action_modal_dismiss()

    def _connection(self) -> VMDetail | None:
        vm = self.selected_vm
        if vm is None or self.detail is None or self.detail.name != vm.name:
            return None
        return self.detail

    def action_ssh(self) -> list:
        detail = self._connection()
        if detail is None:
            return self._no_detail()
        return [OpenSsh(detail)]

    def action_vnc(self) -> list:
        detail = self._connection()
        if detail is None:
            return self._no_detail()
        return [OpenVnc(detail)]

    def _no_detail(self) -> list:
        vm = self.selected_vm
        if vm is None:
            return []
        return [Log(f"No connection details for {vm.name} yet")]

    def action_prev_button(self) -> list:
        self.button_index = max(0, self.button_index - 1)
        return []

    def action_next_button(self) -> list:
        self.button_index = min(len(self.buttons()) - 1, self.button_index + 1)
        return []

    def action_press(self) -> list:
        name, _ = self.buttons()[self.button_index]
        return self.run_action(name)

    # --- Results -------------------------------------------------------------

    def apply_result(self, message: object) -> list:
        if isinstance(message, VmListResult) and message.error is None:
            entries = [VmEntry(vm) for vm in message.vms]
            # Follow the previous VM; the first listing starts on the first VM.
            had_vms = any(isinstance(item, VmEntry) for item in self.sidebar.items)
            self.sidebar.set_items([*entries, SpawnAction()], keep=had_vms)
            vm = self.selected_vm
            if vm is None:
                self.detail = None
                return []
            return [FetchInfo(vm.name)]
        if isinstance(message, DetailResult):
            self.detail = message.detail if message.error is None else None
        elif isinstance(message, OpResult) and message.kind == "delete" and message.error is None:
            if self.detail is not None and self.detail.name == message.target:
                self.detail = None
        return []

    # --- Mouse ---------------------------------------------------------------

    def _button_spans(self) -> list[tuple[str, int, int]]:
        spans = []
        col = 0
        for name, label in self.buttons():
            width = len(label) + 2
            spans.append((name, col, col + width))
            col += width + BUTTON_GAP
        return spans

    def content_hit(self, row: int, col: int) -> ActionHit | None:
        if row != BUTTON_ROW or self.selected_vm is None:
            return None
        for index, (name, start, end) in enumerate(self._button_spans()):
            if start <= col < end:
                self.button_index = index
                return ActionHit(name)
        return None

    # --- Rendering -----------------------------------------------------------

    def shortcuts(self) -> list[Shortcut]:
        if self.modal_open:
            return [Shortcut("y/enter", "confirm delete"), Shortcut("n/esc", "cancel")]
        hints = [
            Shortcut("↑↓", "select"),
            Shortcut("enter", "start/stop"),
            Shortcut("x", "force stop"),
            Shortcut("del", "delete"),
            Shortcut("s", "ssh"),
            Shortcut("v", "vnc"),
        ]
        if self.focus_state.in_form:
            hints.append(Shortcut("esc", "back"))
        else:
            hints.append(Shortcut("tab", "actions"))
        return hints

    def render_content(self, width: int, height: int, theme: Theme) -> list[Text]:
        if self.modal_open:
            return self._render_delete_modal(width, theme)

        item = self.sidebar.selected
        if isinstance(item, SpawnAction):
            return [
                Text("SPAWN A NEW VM", style=theme.accent_strong),
                Text(""),
                Text("Press enter to open the Hatchery.", style=theme.dim),
            ]
        vm = self.selected_vm
        if vm is None:
            return [Text("No VMs yet.", style=theme.dim)]

        detail = self._connection()
        lines = [
            Text(vm.name.upper(), style=theme.accent_strong),
            Text(vm.status.state, style=theme.state_style(vm.status.state)),
            Text(""),
        ]
        if detail is None:
            lines.append(Text("Loading details...", style=theme.dim))
            while len(lines) < BUTTON_ROW:
                lines.append(Text(""))
        else:
            lines += [
                self._field("IP", detail.ip or "-", theme),
                self._field("SSH", f"{detail.ssh_user}@{detail.host}:{detail.ssh_port}", theme),
                self._field("VNC", str(detail.vnc_port) if detail.vnc_port else "-", theme),
                Text(""),
                Text("SSH COMMAND", style=theme.dim),
                Text(detail.ssh_command(), style=theme.muted),
                Text(""),
            ]
        lines.append(self._render_buttons(theme))
        return lines

    @staticmethod
    def _field(label: str, value: str, theme: Theme) -> Text:
        line = Text(no_wrap=True)
        line.append(label.ljust(LABEL_WIDTH), style=theme.dim)
        line.append(value, style=theme.text)
        return line

    def _render_buttons(self, theme: Theme) -> Text:
        line = Text(no_wrap=True)
        active = self.focused and self.focus_state.in_form
        for index, (_, label) in enumerate(self.buttons()):
            if index:
                line.append(" " * BUTTON_GAP)
            style = theme.tab_active if active and index == self.button_index else theme.accent
            line.append(f"[{label}]", style=style)
        return line

    def _render_delete_modal(self, width: int, theme: Theme) -> list[Text]:
        rows = [
            Text(f" DELETE {self.delete_target}?", style=theme.error),
            Text(" This cannot be undone.", style=theme.dim),
            Text(""),
            Text(" [Y] confirm   [N] cancel", style=theme.text),
        ]
        return render_box(rows, width, theme.error)
