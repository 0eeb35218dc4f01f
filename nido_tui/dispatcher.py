"""
Event dispatcher.

Takes one event at a time, mutates the ApplicationState, and returns the
Commands the event produced. Key routing precedence, first match wins:

1. An open modal on the active tab gets the key and nothing else does.
2. Global shortcuts, unless a text input holds the cursor.
3. The active viewlet's key map for its current focus target.
4. The active viewlet's ``update``.

Backend work is requested by viewlets as intents; ``INTENT_HANDLERS`` turns
each intent type into state changes and commands. Results coming back are
routed by ``EVENT_HANDLERS`` and dropped when their identity tag no longer
matches what the UI is showing.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from pathlib import Path

from pydantic import ValidationError
from rich.text import Text

from nido_tui import commands
from nido_tui.catalog import Catalog, latest_version, load_catalog, stream_download
from nido_tui.commands import Command
from nido_tui.config import AppConfig, UiSettings
from nido_tui.errors import NotFoundError
from nido_tui.focus import FocusTarget
from nido_tui.intents import (
    CheckUpdate,
    ClearDetail,
    ClearLogs,
    DeleteVm,
    FetchInfo,
    LoadCache,
    LoadSources,
    Log,
    OpenSsh,
    OpenVnc,
    PruneCache,
    RefreshFleet,
    SaveConfig,
    StartVm,
    StopVm,
    SubmitSpawn,
    SubmitTemplate,
    SwitchTab,
)
from nido_tui.keys import GLOBAL_KEYMAP
from nido_tui.layout import Geometry, clamp, compute_geometry, header_hit
from nido_tui.messages import (
    CacheResult,
    CommandFailed,
    ConfigSaved,
    DetailResult,
    DownloadFinished,
    DownloadProgress,
    KeyPress,
    LogLine,
    MouseClick,
    OpResult,
    PruneResult,
    Resize,
    SourcesResult,
    Tick,
    UpdateChecked,
    VmListResult,
)
from nido_tui.providers import VMOptions, VMProvider
from nido_tui.render import render_frame
from nido_tui.state import ApplicationState, DownloadState, LogBuffer, Tab
from nido_tui.theme import DARK, Theme
from nido_tui.views.base import Shortcut
from nido_tui.views.config import ConfigViewlet
from nido_tui.views.fleet import FleetViewlet
from nido_tui.views.hatchery import HatcheryViewlet
from nido_tui.views.help import HelpViewlet
from nido_tui.views.logs import LogsViewlet

logger = logging.getLogger(__name__)

# Focus targets from which left/right cycle tabs.
TAB_CYCLE_FOCUS = (FocusTarget.TAB_SIDEBAR, FocusTarget.GLOBAL_CHROME)


class Dispatcher:
    """Owns the ApplicationState and applies events to it."""

    EVENT_HANDLERS: dict[type, str] = {
        KeyPress: "_on_key",
        MouseClick: "_on_click",
        Resize: "_on_resize",
        Tick: "_on_tick",
        VmListResult: "_on_vm_list",
        DetailResult: "_on_detail",
        OpResult: "_on_op",
        SourcesResult: "_on_sources",
        CacheResult: "_on_cache",
        PruneResult: "_on_prune",
        ConfigSaved: "_on_config_saved",
        UpdateChecked: "_on_update_checked",
        DownloadProgress: "_on_download_progress",
        DownloadFinished: "_on_download_finished",
        LogLine: "_on_log_line",
        CommandFailed: "_on_command_failed",
    }

    INTENT_HANDLERS: dict[type, str] = {
        RefreshFleet: "_do_refresh",
        FetchInfo: "_do_fetch_info",
        ClearDetail: "_do_clear_detail",
        StartVm: "_do_start",
        StopVm: "_do_stop",
        DeleteVm: "_do_delete",
        OpenSsh: "_do_open_ssh",
        OpenVnc: "_do_open_vnc",
        SwitchTab: "_do_switch_tab",
        LoadSources: "_do_load_sources",
        SubmitSpawn: "_do_spawn",
        SubmitTemplate: "_do_create_template",
        SaveConfig: "_do_save_config",
        LoadCache: "_do_load_cache",
        PruneCache: "_do_prune",
        CheckUpdate: "_do_check_update",
        Log: "_do_log",
        ClearLogs: "_do_clear_logs",
    }

    GLOBAL_ACTIONS: dict[str, str] = {
        "quit": "_global_quit",
        "help": "_global_help",
        "refresh": "_global_refresh",
        "prev_tab": "_global_prev_tab",
        "next_tab": "_global_next_tab",
    }

    def __init__(
        self,
        provider: VMProvider,
        config: AppConfig | None = None,
        settings: UiSettings | None = None,
        *,
        catalog_loader: Callable[[], Catalog] | None = None,
        latest: Callable[[], str] = latest_version,
        downloader: Callable[..., Iterator[float]] = stream_download,
        launch_kwargs: dict | None = None,
    ) -> None:
        self.provider = provider
        self.config = config or AppConfig()
        self.settings = settings or UiSettings()
        self.catalog_loader = catalog_loader or self._load_catalog
        self.latest = latest
        self.downloader = downloader
        self.launch_kwargs = launch_kwargs or {}
        # Spawns waiting on a download that is already running, by image label.
        self._waiting: dict[str, list[SubmitSpawn]] = {}

        logs = LogBuffer(self.settings.log_limit)
        hatchery = HatcheryViewlet()
        hatchery.set_default_template(self.config.template_default)
        viewlets = {
            Tab.FLEET: FleetViewlet(),
            Tab.HATCHERY: hatchery,
            Tab.LOGS: LogsViewlet(logs),
            Tab.CONFIG: ConfigViewlet(self.config),
            Tab.HELP: HelpViewlet(self._help_sections),
        }
        self.state = ApplicationState(viewlets=viewlets, logs=logs)
        self.state.active_viewlet.focus()
        self.last_geometry: Geometry = compute_geometry(0, 0)

    def _load_catalog(self) -> Catalog:
        return load_catalog(Path(self.config.image_dir).expanduser())

    def _help_sections(self) -> list[tuple[str, list[Shortcut]]]:
        return [
            (viewlet.title, viewlet.shortcuts())
            for tab, viewlet in self.state.viewlets.items()
            if tab is not Tab.HELP
        ]

    # --- Entry points --------------------------------------------------------

    def start(self) -> list[Command]:
        """Startup commands from every viewlet's ``init``."""
        self.state.log("Nido control panel ready.")
        result = []
        for viewlet in self.state.viewlets.values():
            result += self._run_intents(viewlet.init())
        return result + self._after_event()

    def handle(self, event: object) -> list[Command]:
        name = self.EVENT_HANDLERS.get(type(event))
        if name is None:
            logger.debug("Ignoring event %r", event)
            return []
        result = getattr(self, name)(event)
        return result + self._after_event()

    def render(self, theme: Theme = DARK) -> Text:
        """Paint a frame; hit-testing reuses the geometry painted here."""
        geometry = compute_geometry(self.state.width, self.state.height)
        self.last_geometry = geometry
        return render_frame(self.state, geometry, theme)

    def _after_event(self) -> list[Command]:
        self._sync_cursor()
        if self.state.busy and not self.state.ticking:
            self.state.ticking = True
            return [commands.tick(self.settings.tick_interval)]
        return []

    def _sync_cursor(self) -> None:
        """Hand the terminal cursor to at most one text input."""
        holder = self.state.active_viewlet.text_input()
        owner = self.state.cursor_owner
        if holder is owner:
            return
        if owner is not None:
            owner.blur()
        if holder is not None:
            holder.focus()
        self.state.cursor_owner = holder

    def _run_intents(self, intents: list) -> list[Command]:
        result: list[Command] = []
        for intent in intents:
            name = self.INTENT_HANDLERS.get(type(intent))
            if name is None:
                raise TypeError(f"unhandled intent: {intent!r}")
            result += getattr(self, name)(intent)
        return result

    def _broadcast(self, message: object) -> list[Command]:
        intents = []
        for viewlet in self.state.viewlets.values():
            intents += viewlet.apply_result(message)
        return self._run_intents(intents)

    # --- Input ---------------------------------------------------------------

    def _on_key(self, event: KeyPress) -> list[Command]:
        viewlet = self.state.active_viewlet
        if viewlet.modal_open:
            return self._run_intents(viewlet.handle_modal_key(event))

        typing = self.state.cursor_owner is not None
        binding = GLOBAL_KEYMAP.get(event.key)
        if binding is not None and not typing:
            if not binding.sidebar_only or viewlet.focus_state.target in TAB_CYCLE_FOCUS:
                return self._global(binding.action)

        if not (typing and event.printable):
            action = viewlet.action_for(event.key)
            if action is not None:
                return self._run_intents(viewlet.run_action(action))

        return self._run_intents(viewlet.update(event))

    def _global(self, action: str) -> list[Command]:
        if action.startswith("tab_"):
            return self.switch_tab(Tab(int(action[4:])))
        return getattr(self, self.GLOBAL_ACTIONS[action])()

    def _global_quit(self) -> list[Command]:
        self.state.quit_requested = True
        return []

    def _global_help(self) -> list[Command]:
        return self.switch_tab(Tab.HELP)

    def _global_refresh(self) -> list[Command]:
        return self._do_refresh(RefreshFleet())

    def _global_prev_tab(self) -> list[Command]:
        return self.switch_tab(Tab((self.state.active_tab - 1) % len(Tab)))

    def _global_next_tab(self) -> list[Command]:
        return self.switch_tab(Tab((self.state.active_tab + 1) % len(Tab)))

    def switch_tab(self, tab: Tab) -> list[Command]:
        previous = self.state.active_viewlet
        previous.blur()
        self.state.active_tab = tab
        target = self.state.active_viewlet
        target.reset_focus()
        target.focus()
        logger.debug("Switched to %s", tab.name)
        return []

    def _on_click(self, event: MouseClick) -> list[Command]:
        geometry = self.last_geometry
        if not geometry.viable:
            return []
        viewlet = self.state.active_viewlet
        if viewlet.modal_open:
            return []
        x = clamp(event.x, 0, geometry.width - 1)
        y = clamp(event.y, 0, geometry.height - 1)
        if y == 0:
            hit = header_hit(geometry, x)
            if hit == "exit":
                return self._global_quit()
            if isinstance(hit, int):
                return self.switch_tab(Tab(hit))
            return []
        hit = viewlet.hit_test(geometry, x, y)
        if hit is None:
            return []
        return self._run_intents(viewlet.click(hit))

    def _on_resize(self, event: Resize) -> list[Command]:
        self.state.width = max(0, event.width)
        self.state.height = max(0, event.height)
        for viewlet in self.state.viewlets.values():
            viewlet.resize(self.state.width, self.state.height)
        return []

    def _on_tick(self, event: Tick) -> list[Command]:
        self.state.ticking = False
        self.state.spinner_frame += 1
        return []

    # --- Results -------------------------------------------------------------

    def _on_vm_list(self, message: VmListResult) -> list[Command]:
        if message.error is not None:
            self.state.log(f"Refresh failed: {message.error}")
            return []
        return self._broadcast(message)

    def _on_detail(self, message: DetailResult) -> list[Command]:
        if message.name != self.state.detail_name:
            logger.debug("Dropping stale detail for %s", message.name)
            return []
        if message.error is not None:
            self.state.log(f"Info failed: {message.error}")
            if isinstance(message.error, NotFoundError):
                self.state.detail_name = ""
        return self._broadcast(message)

    def _on_op(self, message: OpResult) -> list[Command]:
        self.state.finish(message.kind, message.target)
        if message.error is not None:
            self.state.log(f"Operation {message.kind} failed: {message.error}")
        else:
            self.state.log(f"Operation {message.kind} complete.")
            if message.message:
                self.state.log(f"{message.target}: {message.message}")
        return self._broadcast(message) + self._do_refresh(RefreshFleet())

    def _on_sources(self, message: SourcesResult) -> list[Command]:
        if message.error is not None:
            self.state.log(f"Failed to load sources: {message.error}")
        return self._broadcast(message)

    def _on_cache(self, message: CacheResult) -> list[Command]:
        self.state.finish("cache")
        if message.error is not None:
            self.state.log(f"Cache list failed: {message.error}")
        return self._broadcast(message)

    def _on_prune(self, message: PruneResult) -> list[Command]:
        self.state.finish("prune")
        if message.error is not None:
            self.state.log(f"Cache prune failed: {message.error}")
        else:
            self.state.log(f"Cache pruned successfully ({message.removed} removed)")
        return self._broadcast(message)

    def _on_config_saved(self, message: ConfigSaved) -> list[Command]:
        if message.error is not None:
            self.state.log(f"Config save failed: {message.error}")
            return []
        self.config.set(message.key, message.value)
        self.state.log(f"Config {message.key} updated to {message.value}")
        return self._broadcast(message)

    def _on_update_checked(self, message: UpdateChecked) -> list[Command]:
        if message.error is not None:
            self.state.log(f"Update check failed: {message.error}")
        else:
            self.state.log(f"Version check complete: {message.current}")
            if message.latest != message.current:
                self.state.log(f"New version available: {message.latest}")
        return self._broadcast(message)

    def _on_download_progress(self, message: DownloadProgress) -> list[Command]:
        current = self.state.download
        if current is None or current.label != message.label:
            return []
        self.state.download = DownloadState(message.label, clamp_fraction(message.progress))
        return []

    def _on_download_finished(self, message: DownloadFinished) -> list[Command]:
        current = self.state.download
        if current is not None and current.label == message.label:
            self.state.download = None
        waiting = self._waiting.pop(message.label, [])
        if message.error is not None:
            self.state.log(f"Download failed: {message.error}")
            if waiting:
                names = ", ".join(w.name for w in waiting)
                self.state.log(f"Not spawning {names}: download for {message.label} failed")
            return []
        self.state.log(f"Download complete for {message.label}.")
        spawns = [message.resume, *waiting]
        result = []
        for resume in spawns:
            if isinstance(resume, SubmitSpawn):
                options = VMOptions(image=resume.source.value, disk_path=message.path, gui=resume.gui)
                result += self._spawn(resume.name, options)
        return result

    def _on_log_line(self, message: LogLine) -> list[Command]:
        self.state.log(message.text)
        return []

    def _on_command_failed(self, message: CommandFailed) -> list[Command]:
        self.state.finish(message.kind, message.target)
        self.state.log(f"{message.kind} failed: {message.error}")
        return []

    # --- Intents -------------------------------------------------------------

    def _do_refresh(self, intent: RefreshFleet) -> list[Command]:
        return [commands.list_vms(self.provider)]

    def _do_fetch_info(self, intent: FetchInfo) -> list[Command]:
        self.state.detail_name = intent.name
        return [commands.fetch_info(self.provider, intent.name)]

    def _do_clear_detail(self, intent: ClearDetail) -> list[Command]:
        self.state.detail_name = ""
        return []

    def _do_start(self, intent: StartVm) -> list[Command]:
        self.state.begin("start", intent.name)
        return [commands.start_vm(self.provider, intent.name)]

    def _do_stop(self, intent: StopVm) -> list[Command]:
        self.state.begin("stop", intent.name)
        if intent.force and not self.provider.supports_force_stop:
            self.state.log(f"Force stop is not supported by this backend; sending a normal stop to {intent.name}.")
        return [commands.stop_vm(self.provider, intent.name, force=intent.force)]

    def _do_delete(self, intent: DeleteVm) -> list[Command]:
        self.state.begin("delete", intent.name)
        return [commands.delete_vm(self.provider, intent.name)]

    def _do_open_ssh(self, intent: OpenSsh) -> list[Command]:
        return [commands.open_ssh(intent.detail, **self.launch_kwargs)]

    def _do_open_vnc(self, intent: OpenVnc) -> list[Command]:
        return [commands.open_vnc(intent.detail, **self.launch_kwargs)]

    def _do_switch_tab(self, intent: SwitchTab) -> list[Command]:
        return self.switch_tab(Tab(intent.index))

    def _do_load_sources(self, intent: LoadSources) -> list[Command]:
        return [commands.load_sources(self.provider, intent.mode, self.catalog_loader)]

    def _do_spawn(self, intent: SubmitSpawn) -> list[Command]:
        source = intent.source
        if source.kind == "template":
            result = self._spawn(intent.name, VMOptions(template=source.value, gui=intent.gui))
        elif source.kind == "image":
            name, version = source.image_tag()
            label = f"{name}:{version}"
            path = commands.image_path(self.config.image_dir, name, version)
            if path.exists():
                options = VMOptions(image=source.value, disk_path=str(path), gui=intent.gui)
                result = self._spawn(intent.name, options)
            elif label in self._waiting:
                self._waiting[label].append(intent)
                self.state.log(f"Download for {label} already running; {intent.name} will spawn when it finishes.")
                result = []
            else:
                self._waiting[label] = []
                self.state.download = DownloadState(label, 0.0)
                self.state.log(f"Starting download for {label}...")
                result = [
                    commands.download_image(
                        self.catalog_loader,
                        name,
                        version,
                        path,
                        resume=intent,
                        downloader=self.downloader,
                    )
                ]
        else:
            self.state.log(f"Hatchery: cannot spawn from {source.label}")
            return []
        return self.switch_tab(Tab.FLEET) + result

    def _spawn(self, name: str, options: VMOptions) -> list[Command]:
        self.state.begin("spawn", name)
        if options.disk_path and not self.provider.uses_disk_path:
            image_name, _, version = options.image.partition(":")
            expected = commands.image_path(self.config.image_dir, image_name, version)
            if Path(options.disk_path) != expected:
                self.state.log(f"Backend ignores disk {options.disk_path}; nido will look for {expected}.")
        return [commands.spawn_vm(self.provider, name, options)]

    def _do_create_template(self, intent: SubmitTemplate) -> list[Command]:
        self.state.begin("create-template", intent.name)
        result = [commands.create_template(self.provider, intent.vm_name, intent.name)]
        return self.switch_tab(Tab.FLEET) + result

    def _do_save_config(self, intent: SaveConfig) -> list[Command]:
        try:
            self.config.model_copy().set(intent.key, intent.value)
        except ValidationError as exc:
            self.state.log(f"Config {intent.key} rejected: {exc.errors()[0]['msg']}")
            return []
        return [commands.save_config(self.config.path, intent.key, intent.value)]

    def _do_load_cache(self, intent: LoadCache) -> list[Command]:
        self.state.begin("cache")
        return [commands.cache_overview(self.provider)]

    def _do_prune(self, intent: PruneCache) -> list[Command]:
        self.state.begin("prune")
        return [commands.prune_cache(self.provider, intent.unused_only)]

    def _do_check_update(self, intent: CheckUpdate) -> list[Command]:
        return [commands.check_update(self.provider, self.latest)]

    def _do_log(self, intent: Log) -> list[Command]:
        self.state.log(intent.text)
        return []

    def _do_clear_logs(self, intent: ClearLogs) -> list[Command]:
        self.state.logs.clear()
        return []


def clamp_fraction(value: float) -> float:
    return max(0.0, min(1.0, value))
