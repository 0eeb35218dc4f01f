"""Scenario tests for event routing in the Dispatcher."""

from pathlib import Path

from nido_tui.commands import Command
from nido_tui.demo_provider import MemoryProvider
from nido_tui.dispatcher import Dispatcher
from nido_tui.intents import SubmitSpawn
from nido_tui.items import SourceEntry
from nido_tui.layout import BODY_TOP
from nido_tui.messages import (
    DetailResult,
    DownloadFinished,
    DownloadProgress,
    KeyPress,
    MouseClick,
    Resize,
    Tick,
)
from nido_tui.providers import VMDetail, VMOptions
from nido_tui.scheduler import CommandScheduler
from nido_tui.state import Tab

from conftest import ManualTimers, run_inline


def press(d: Dispatcher, *names: str) -> list[Command]:
    """Feed key presses; single characters are sent as printable."""
    result = []
    for name in names:
        character = name if len(name) == 1 else None
        result += d.handle(KeyPress(name, character))
    return result


def type_text(d: Dispatcher, text: str) -> None:
    for ch in text:
        d.handle(KeyPress(ch, ch))


def log_texts(d: Dispatcher) -> list[str]:
    return [entry.text for entry in d.state.logs]


def started(d: Dispatcher, drain) -> Dispatcher:
    drain(d, d.start())
    d.render()
    return d


class SingleStopProvider(MemoryProvider):
    """In-memory fleet with the nido CLI's limits."""

    supports_force_stop = False
    uses_disk_path = False


class TestStartup:
    """Tests for the initial fleet load."""

    def test_loads_fleet_and_first_detail(self, dispatcher, drain) -> None:
        started(dispatcher, drain)
        fleet = dispatcher.state.viewlets[Tab.FLEET]

        assert fleet.selected_vm.name == "falcon"
        assert fleet.detail is not None and fleet.detail.name == "falcon"
        assert dispatcher.state.detail_name == "falcon"
        assert "Nido control panel ready." in log_texts(dispatcher)

    def test_spawn_entry_is_last(self, dispatcher, drain) -> None:
        started(dispatcher, drain)
        fleet = dispatcher.state.viewlets[Tab.FLEET]

        assert fleet.sidebar.items[-1].label == "+ SPAWN NEW"


class TestFleetOperations:
    """Tests for lifecycle operations from the Fleet tab."""

    def test_stop_running_vm(self, dispatcher, drain, provider) -> None:
        started(dispatcher, drain)

        commands = press(dispatcher, "enter")

        assert [c.kind for c in commands] == ["stop", "tick"]
        assert (dispatcher.state.pending.kind, dispatcher.state.pending.target) == ("stop", "falcon")

        drain(dispatcher, commands)

        assert dispatcher.state.pending is None
        assert "Operation stop complete." in log_texts(dispatcher)
        assert dispatcher.state.viewlets[Tab.FLEET].selected_vm.status.state == "stopped"

    def test_force_stop(self, dispatcher, drain, provider) -> None:
        started(dispatcher, drain)

        drain(dispatcher, press(dispatcher, "x"))

        assert ("stop", "falcon", False) in provider.calls

    def test_force_stop_on_backend_without_it_is_explained(self, config, catalog, drain) -> None:
        provider = SingleStopProvider.demo()
        d = Dispatcher(provider, config, catalog_loader=lambda: catalog)
        d.handle(Resize(120, 40))
        started(d, drain)

        drain(d, press(d, "x"))

        assert "Force stop is not supported by this backend; sending a normal stop to falcon." in log_texts(d)
        assert "Operation stop complete." in log_texts(d)

    def test_disk_outside_image_dir_is_explained(self, config) -> None:
        d = Dispatcher(SingleStopProvider.demo(), config)
        expected = Path(config.image_dir) / "ubuntu-24.04.qcow2"

        d._spawn("vm1", VMOptions(image="ubuntu:24.04", disk_path=str(expected)))
        assert log_texts(d) == []

        d._spawn("vm2", VMOptions(image="ubuntu:24.04", disk_path="/elsewhere/u.qcow2"))
        assert log_texts(d) == [f"Backend ignores disk /elsewhere/u.qcow2; nido will look for {expected}."]

    def test_failed_operation_is_logged(self, dispatcher, drain, provider) -> None:
        started(dispatcher, drain)
        provider.delete("falcon")

        drain(dispatcher, press(dispatcher, "enter"))

        assert any(text.startswith("Operation stop failed:") for text in log_texts(dispatcher))
        assert dispatcher.state.pending is None

    def test_spawn_entry_opens_hatchery(self, dispatcher, drain) -> None:
        started(dispatcher, drain)

        press(dispatcher, "down", "down", "enter")

        assert dispatcher.state.active_tab is Tab.HATCHERY
        assert dispatcher.state.detail_name == ""


class TestModal:
    """Tests for modal exclusivity."""

    def test_modal_swallows_global_keys(self, dispatcher, drain) -> None:
        started(dispatcher, drain)
        press(dispatcher, "delete")
        assert dispatcher.state.modal_open

        press(dispatcher, "q", "2", "right")
        dispatcher.handle(MouseClick(70, 0))

        assert not dispatcher.state.quit_requested
        assert dispatcher.state.active_tab is Tab.FLEET
        assert dispatcher.state.modal_open

    def test_dismiss_then_confirm_delete(self, dispatcher, drain, provider) -> None:
        started(dispatcher, drain)
        press(dispatcher, "delete", "n")
        assert not dispatcher.state.modal_open

        press(dispatcher, "delete")
        commands = press(dispatcher, "y")

        assert commands[0].key == ("delete", "falcon")
        drain(dispatcher, commands)
        assert [vm.name for vm in provider.list_vms()] == ["kestrel"]
        assert dispatcher.state.viewlets[Tab.FLEET].selected_vm.name == "kestrel"


class TestGlobalKeys:
    """Tests for global shortcuts and their suppression."""

    def test_number_keys_switch_tabs(self, dispatcher) -> None:
        press(dispatcher, "4")
        assert dispatcher.state.active_tab is Tab.CONFIG

        press(dispatcher, "h")
        assert dispatcher.state.active_tab is Tab.HELP

    def test_quit(self, dispatcher) -> None:
        press(dispatcher, "ctrl+c")

        assert dispatcher.state.quit_requested

    def test_arrows_cycle_tabs_from_sidebar_only(self, dispatcher, drain) -> None:
        started(dispatcher, drain)
        press(dispatcher, "right")
        assert dispatcher.state.active_tab is Tab.HATCHERY

        press(dispatcher, "left", "tab", "right")
        fleet = dispatcher.state.viewlets[Tab.FLEET]
        assert dispatcher.state.active_tab is Tab.FLEET
        assert fleet.button_index == 1

    def test_arrows_wrap_around(self, dispatcher) -> None:
        press(dispatcher, "left")

        assert dispatcher.state.active_tab is Tab.HELP

    def test_typing_suppresses_globals(self, dispatcher) -> None:
        press(dispatcher, "2", "enter")
        hatchery = dispatcher.state.viewlets[Tab.HATCHERY]
        assert dispatcher.state.cursor_owner is hatchery.inputs["spawn"]
        assert dispatcher.state.cursor_owner.focused

        type_text(dispatcher, "q1h")

        assert hatchery.inputs["spawn"].value == "q1h"
        assert dispatcher.state.active_tab is Tab.HATCHERY
        assert not dispatcher.state.quit_requested

    def test_ctrl_c_is_suppressed_while_typing(self, dispatcher) -> None:
        press(dispatcher, "2", "enter", "ctrl+c")

        assert not dispatcher.state.quit_requested
        assert dispatcher.state.cursor_owner is not None

        press(dispatcher, "escape", "ctrl+c")

        assert dispatcher.state.quit_requested

    def test_leaving_form_releases_cursor(self, dispatcher) -> None:
        press(dispatcher, "2", "enter")
        name_input = dispatcher.state.cursor_owner

        press(dispatcher, "escape")

        assert dispatcher.state.cursor_owner is None
        assert not name_input.focused

    def test_tab_switch_resets_focus(self, dispatcher) -> None:
        press(dispatcher, "2", "enter")
        dispatcher.handle(MouseClick(2, 0))
        assert dispatcher.state.cursor_owner is None

        press(dispatcher, "2")

        hatchery = dispatcher.state.viewlets[Tab.HATCHERY]
        assert hatchery.focus_state.in_sidebar
        assert hatchery.focused
        assert not dispatcher.state.viewlets[Tab.FLEET].focused


class TestMouse:
    """Tests for click routing."""

    def test_header_tab_click(self, dispatcher) -> None:
        tab_width = (120 - 6) // 5

        dispatcher.handle(MouseClick(tab_width * 3 + 2, 0))

        assert dispatcher.state.active_tab is Tab.CONFIG

    def test_exit_zone(self, dispatcher) -> None:
        dispatcher.handle(MouseClick(118, 0))

        assert dispatcher.state.quit_requested

    def test_sidebar_click_selects_vm(self, dispatcher, drain) -> None:
        started(dispatcher, drain)

        commands = dispatcher.handle(MouseClick(3, BODY_TOP + 1))

        assert dispatcher.state.viewlets[Tab.FLEET].selected_vm.name == "kestrel"
        assert [c.key for c in commands] == [("info", "kestrel")]

    def test_button_click(self, dispatcher, drain) -> None:
        started(dispatcher, drain)
        geometry = dispatcher.last_geometry

        commands = dispatcher.handle(MouseClick(geometry.content_x + 1, BODY_TOP + 10))

        assert [c.kind for c in commands] == ["ssh"]

    def test_clicks_outside_body_are_ignored(self, dispatcher, drain) -> None:
        started(dispatcher, drain)

        assert dispatcher.handle(MouseClick(3, 39)) == []
        assert dispatcher.state.viewlets[Tab.FLEET].selected_vm.name == "falcon"


class TestStaleResults:
    """Tests for identity-tagged result handling."""

    def test_detail_for_other_vm_is_dropped(self, dispatcher, drain) -> None:
        started(dispatcher, drain)
        press(dispatcher, "down")
        fleet = dispatcher.state.viewlets[Tab.FLEET]
        assert dispatcher.state.detail_name == "kestrel"

        dispatcher.handle(DetailResult("falcon", VMDetail("falcon", "running", ssh_port=1)))

        assert fleet.detail is None

    def test_mismatched_completion_keeps_pending(self, dispatcher, drain) -> None:
        started(dispatcher, drain)
        press(dispatcher, "enter")

        dispatcher.state.finish("stop", "kestrel")

        assert dispatcher.state.pending is not None


class TestTick:
    """Tests for the spinner tick loop."""

    def test_tick_rearms_while_busy(self, dispatcher, drain) -> None:
        started(dispatcher, drain)
        commands = press(dispatcher, "enter")
        assert [c.kind for c in commands].count("tick") == 1

        assert [c.kind for c in press(dispatcher, "down")].count("tick") == 0
        frame = dispatcher.state.spinner_frame
        assert [c.kind for c in dispatcher.handle(Tick())] == ["tick"]
        assert dispatcher.state.spinner_frame == frame + 1

    def test_tick_stops_when_idle(self, dispatcher) -> None:
        assert dispatcher.handle(Tick()) == []


def fake_downloader(url, dest, size):
    yield 0.0
    yield 0.3
    yield 0.7
    Path(dest).write_bytes(b"QFI\xfb")


class TestHatcherySpawn:
    """Tests for the spawn flow from the Hatchery tab."""

    def _choose_source(self, d: Dispatcher, drain, *moves: str) -> None:
        press(d, "2", "enter")
        type_text(d, "vm9")
        press(d, "enter")
        drain(d, press(d, "enter"))
        assert d.state.modal_open
        press(d, *moves, "enter")

    def test_spawn_from_template(self, dispatcher, drain, provider) -> None:
        started(dispatcher, drain)
        self._choose_source(dispatcher, drain)

        commands = press(dispatcher, "down", "down", "enter")

        assert dispatcher.state.active_tab is Tab.FLEET
        assert commands[0].key == ("spawn", "vm9")
        drain(dispatcher, commands)
        assert ("spawn", "vm9", VMOptions(template="ubuntu-base")) in provider.calls

    def test_name_required(self, dispatcher, drain) -> None:
        press(dispatcher, "2", "enter", "down", "down", "down", "enter")

        assert "Hatchery: Name is required!" in log_texts(dispatcher)
        assert dispatcher.state.active_tab is Tab.HATCHERY

    def test_source_required(self, dispatcher) -> None:
        press(dispatcher, "2", "enter")
        type_text(dispatcher, "vm9")
        press(dispatcher, "down", "down", "down", "enter")

        assert "Hatchery: Source is required!" in log_texts(dispatcher)

    def test_image_download_then_spawn(self, provider, config, catalog, drain, tmp_path) -> None:
        d = Dispatcher(provider, config, catalog_loader=lambda: catalog, downloader=fake_downloader)
        d.handle(Resize(120, 40))
        started(d, drain)
        self._choose_source(d, drain, "down")

        commands = press(d, "down", "down", "enter")

        assert d.state.download is not None
        assert d.state.download.label == "ubuntu:24.04"
        assert "Starting download for ubuntu:24.04..." in log_texts(d)
        [download] = [c for c in commands if c.kind == "download"]

        posted = []
        scheduler = CommandScheduler(posted.append, run_inline, ManualTimers())
        scheduler.submit(download)
        assert scheduler.active_streams == frozenset()

        progress = []
        follow_up = []
        for message in posted:
            follow_up += d.handle(message)
            if isinstance(message, DownloadProgress):
                progress.append(d.state.download.progress)

        assert progress == [0.0, 0.3, 0.7]
        assert isinstance(posted[-1], DownloadFinished)
        assert d.state.download is None
        assert log_texts(d).count("Download complete for ubuntu:24.04.") == 1
        assert follow_up[0].key == ("spawn", "vm9")

        drain(d, follow_up)
        expected = VMOptions(image="ubuntu:24.04", disk_path=str(tmp_path / "images" / "ubuntu-24.04.qcow2"))
        assert ("spawn", "vm9", expected) in provider.calls

    def test_second_spawn_waits_for_running_download(self, provider, config, catalog, drain, tmp_path) -> None:
        d = Dispatcher(provider, config, catalog_loader=lambda: catalog, downloader=fake_downloader)
        d.handle(Resize(120, 40))
        source = SourceEntry("image", "ubuntu:24.04")

        first = d._run_intents([SubmitSpawn("vm-a", source)])
        d.handle(DownloadProgress("ubuntu:24.04", 0.4))
        second = d._run_intents([SubmitSpawn("vm-b", source)])

        assert [c.kind for c in first if c.kind == "download"] == ["download"]
        assert [c for c in second if c.kind == "download"] == []
        assert d.state.download.progress == 0.4
        assert "Download for ubuntu:24.04 already running; vm-b will spawn when it finishes." in log_texts(d)

        disk = tmp_path / "images" / "ubuntu-24.04.qcow2"
        follow_up = d.handle(DownloadFinished("ubuntu:24.04", path=str(disk), resume=SubmitSpawn("vm-a", source)))

        assert [c.key for c in follow_up if c.kind == "spawn"] == [("spawn", "vm-a"), ("spawn", "vm-b")]
        drain(d, follow_up)
        assert ("spawn", "vm-b", VMOptions(image="ubuntu:24.04", disk_path=str(disk))) in provider.calls

    def test_waiting_spawns_are_reported_when_download_fails(self, dispatcher) -> None:
        source = SourceEntry("image", "ubuntu:24.04")
        dispatcher._run_intents([SubmitSpawn("vm-a", source), SubmitSpawn("vm-b", source)])

        result = dispatcher.handle(DownloadFinished("ubuntu:24.04", error=RuntimeError("disk full")))

        assert [c for c in result if c.kind == "spawn"] == []
        assert "Not spawning vm-b: download for ubuntu:24.04 failed" in log_texts(dispatcher)

    def test_download_failure(self, dispatcher, drain) -> None:
        started(dispatcher, drain)
        self._choose_source(dispatcher, drain, "down")
        press(dispatcher, "down", "down", "enter")

        result = dispatcher.handle(DownloadFinished("ubuntu:24.04", error=RuntimeError("disk full")))

        assert result == []
        assert dispatcher.state.download is None
        assert "Download failed: disk full" in log_texts(dispatcher)

    def test_sources_arriving_late_do_not_open_picker(self, dispatcher, drain) -> None:
        press(dispatcher, "2", "enter", "enter")
        commands = press(dispatcher, "enter")
        press(dispatcher, "escape")

        drain(dispatcher, commands)

        assert not dispatcher.state.modal_open


class TestConfigTab:
    """Tests for editing settings from the Config tab."""

    def test_edit_text_setting(self, dispatcher, drain, config) -> None:
        press(dispatcher, "4", "down", "down", "down", "down", "down", "enter", "ctrl+u")
        type_text(dispatcher, "alice")

        drain(dispatcher, press(dispatcher, "enter"))

        assert config.ssh_user == "alice"
        assert config.path.read_text() == "SSH_USER=alice\n"
        assert "Config SSH_USER updated to alice" in log_texts(dispatcher)

    def test_invalid_value_is_not_saved(self, dispatcher, drain, config) -> None:
        press(dispatcher, "4", "down", "down", "down", "down", "down", "enter", "ctrl+u")
        type_text(dispatcher, "bad user")

        commands = press(dispatcher, "enter")

        assert [c for c in commands if c.kind == "config"] == []
        assert config.ssh_user == "vmuser"
        assert not config.path.exists()
        assert any(line.startswith("Config SSH_USER rejected:") for line in log_texts(dispatcher))

    def test_toggle_saves_immediately(self, dispatcher, drain, config) -> None:
        drain(dispatcher, press(dispatcher, "4", "down", "down", "down", "down", "enter"))

        assert config.linked_clones is False
        assert dispatcher.state.viewlets[Tab.CONFIG].value("LINKED_CLONES") == "false"

    def test_update_check(self, dispatcher, drain) -> None:
        press(dispatcher, "4", "enter")

        drain(dispatcher, press(dispatcher, "enter"))

        assert "Version check complete: v0.0.0-demo" in log_texts(dispatcher)
        assert "New version available: v1.2.0" in log_texts(dispatcher)

    def test_cache_prune(self, dispatcher, drain, provider) -> None:
        drain(dispatcher, press(dispatcher, "4", "down", "enter"))
        config_tab = dispatcher.state.viewlets[Tab.CONFIG]
        assert len(config_tab.cache_items) == 1

        press(dispatcher, "enter")
        assert dispatcher.state.modal_open
        drain(dispatcher, press(dispatcher, "y"))

        assert "Cache pruned successfully (1 removed)" in log_texts(dispatcher)
        assert config_tab.cache_items == ()
        assert dispatcher.state.pending is None


class TestLogsTab:
    """Tests for the Logs tab."""

    def test_clear(self, dispatcher) -> None:
        dispatcher.state.log("something")
        press(dispatcher, "3", "c")

        assert len(dispatcher.state.logs) == 0
