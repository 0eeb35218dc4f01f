"""
Deferred units of backend work.

A Command wraps a callable that runs on a worker thread. Plain commands
produce exactly one message; streaming commands produce a generator of
messages ending in a terminal one. Any exception is turned into a message
at this boundary, so nothing escapes into the dispatch loop.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from pathlib import Path

from nido_tui import catalog as catalog_mod
from nido_tui import launcher
from nido_tui.config import update_config
from nido_tui.errors import NidoTuiError, ResourceUnavailable
from nido_tui.logging import OPERATOR
from nido_tui.items import SourceEntry
from nido_tui.messages import (
    CacheResult,
    CommandFailed,
    ConfigSaved,
    DetailResult,
    DownloadFinished,
    DownloadProgress,
    LogLine,
    OpResult,
    PruneResult,
    SourcesResult,
    Tick,
    UpdateChecked,
    VmListResult,
)
from nido_tui.providers import VMDetail, VMOptions, VMProvider

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Command:
    kind: str
    target: str
    fn: Callable[[], object]
    on_error: Callable[[Exception], object] | None = None
    streaming: bool = False
    delay: float = 0.0
    coalesce: bool = True
    # Lifecycle operations the operator started by hand.
    operator: bool = False

    @property
    def key(self) -> tuple[str, str]:
        return (self.kind, self.target)

    def execute(self) -> Iterator[object]:
        """Run the work, yielding every message it produces."""
        try:
            if self.streaming:
                yield from self.fn()
            else:
                message = self.fn()
                if message is not None:
                    yield message
        except Exception as exc:
            if isinstance(exc, NidoTuiError):
                logger.warning("%s %s failed: %s", self.kind, self.target, exc)
            else:
                logger.exception("%s %s raised", self.kind, self.target)
            if self.on_error is not None:
                yield self.on_error(exc)
            else:
                yield CommandFailed(self.kind, self.target, exc)


# --- Factories ---------------------------------------------------------------


def tick(interval: float) -> Command:
    return Command("tick", "", Tick, delay=interval)


def list_vms(provider: VMProvider) -> Command:
    return Command(
        "list",
        "",
        lambda: VmListResult(vms=tuple(provider.list_vms())),
        on_error=lambda exc: VmListResult(error=exc),
    )


def fetch_info(provider: VMProvider, name: str) -> Command:
    return Command(
        "info",
        name,
        lambda: DetailResult(name=name, detail=provider.info(name)),
        on_error=lambda exc: DetailResult(name=name, error=exc),
    )


def vm_operation(kind: str, name: str, work: Callable[[], object]) -> Command:
    """Lifecycle operation whose only output is success or failure."""

    def run() -> OpResult:
        result = work()
        return OpResult(kind, name, message=result if isinstance(result, str) else "")

    return Command(kind, name, run, on_error=lambda exc: OpResult(kind, name, error=exc), operator=True)


def start_vm(provider: VMProvider, name: str) -> Command:
    return vm_operation("start", name, lambda: provider.start(name))


def stop_vm(provider: VMProvider, name: str, force: bool = False) -> Command:
    return vm_operation("stop", name, lambda: provider.stop(name, graceful=not force))


def delete_vm(provider: VMProvider, name: str) -> Command:
    return vm_operation("delete", name, lambda: provider.delete(name))


def spawn_vm(provider: VMProvider, name: str, options: VMOptions) -> Command:
    return vm_operation("spawn", name, lambda: provider.spawn(name, options))


def create_template(provider: VMProvider, vm_name: str, template_name: str) -> Command:
    return vm_operation(
        "create-template",
        template_name,
        lambda: provider.create_template(vm_name, template_name),
    )


def load_sources(
    provider: VMProvider,
    mode: str,
    catalog_loader: Callable[[], object] | None = None,
) -> Command:
    """Spawn mode lists templates then images; template mode lists VMs."""

    def run() -> SourcesResult:
        if mode == "template":
            entries = [SourceEntry("vm", vm.name) for vm in provider.list_vms()]
            return SourcesResult(mode, tuple(entries))

        entries = [SourceEntry("template", name) for name in sorted(provider.list_templates())]
        if catalog_loader is not None:
            try:
                labels = catalog_loader().labels()
            except NidoTuiError as exc:
                logger.warning("Catalog unavailable: %s", exc, extra=OPERATOR)
                labels = []
            entries += [SourceEntry("image", label) for label in labels]
        return SourcesResult(mode, tuple(entries))

    return Command("sources", mode, run, on_error=lambda exc: SourcesResult(mode, error=exc))


def download_image(
    catalog_loader: Callable[[], object],
    name: str,
    version: str,
    dest: Path,
    resume: object | None = None,
    downloader: Callable[..., Iterator[float]] = catalog_mod.stream_download,
) -> Command:
    """Streaming command: progress messages, then one DownloadFinished."""
    label = f"{name}:{version}"

    def run() -> Iterator[object]:
        image = catalog_loader().find_image(name, version)
        for fraction in catalog_mod.fetch_image(image, dest, downloader):
            yield DownloadProgress(label, fraction)
        yield DownloadFinished(label, path=str(dest), resume=resume)

    return Command(
        "download",
        label,
        run,
        on_error=lambda exc: DownloadFinished(label, error=exc, resume=resume),
        streaming=True,
    )


def cache_overview(provider: VMProvider) -> Command:
    return Command(
        "cache",
        "",
        lambda: CacheResult(items=tuple(provider.cache_list()), stats=provider.cache_info()),
        on_error=lambda exc: CacheResult(error=exc),
    )


def prune_cache(provider: VMProvider, unused_only: bool = False) -> Command:
    return Command(
        "prune",
        "",
        lambda: PruneResult(removed=provider.cache_prune(unused_only)),
        on_error=lambda exc: PruneResult(error=exc),
    )


def save_config(path: Path, key: str, value: str) -> Command:
    def run() -> ConfigSaved:
        update_config(path, key, value)
        return ConfigSaved(key, value)

    return Command(
        "config",
        key,
        run,
        on_error=lambda exc: ConfigSaved(key, value, error=exc),
        coalesce=False,
    )


def check_update(
    provider: VMProvider,
    latest: Callable[[], str] = catalog_mod.latest_version,
) -> Command:
    def run() -> UpdateChecked:
        current = provider.version()
        try:
            newest = latest()
        except NidoTuiError as exc:
            logger.info("Release lookup failed: %s", exc)
            newest = current
        return UpdateChecked(current=current, latest=newest or current)

    return Command("update", "", run, on_error=lambda exc: UpdateChecked(error=exc))


def _launch_outcome(exc: Exception) -> LogLine:
    if isinstance(exc, ResourceUnavailable):
        return LogLine(exc.message)
    return LogLine(f"Launch failed: {exc}")


def open_ssh(detail: VMDetail, **launch_kwargs) -> Command:
    def run() -> LogLine:
        launcher.launch(launcher.build_terminal_command(detail.ssh_command()), **launch_kwargs)
        return LogLine(f"Opening SSH session to {detail.name}...")

    return Command("ssh", detail.name, run, on_error=_launch_outcome)


def open_vnc(detail: VMDetail, **launch_kwargs) -> Command:
    def run() -> LogLine:
        if not detail.vnc_port:
            raise ResourceUnavailable(f"{detail.name} has no VNC display")
        address = f"{detail.host}:{detail.vnc_port}"
        launcher.launch(launcher.build_vnc_command(address), **launch_kwargs)
        return LogLine(f"Opening VNC viewer for {detail.name}...")

    return Command("vnc", detail.name, run, on_error=_launch_outcome)


def image_path(image_dir: str, name: str, version: str) -> Path:
    return Path(os.path.expanduser(image_dir)) / f"{name}-{version}.qcow2"
