"""Shared fixtures for the nido_tui test suite."""

from __future__ import annotations

from collections.abc import Callable

import pytest

from nido_tui.catalog import Catalog
from nido_tui.commands import Command
from nido_tui.config import AppConfig, UiSettings
from nido_tui.demo_provider import MemoryProvider
from nido_tui.dispatcher import Dispatcher
from nido_tui.messages import Resize

CATALOG = {
    "schema_version": "1",
    "images": [
        {
            "name": "ubuntu",
            "versions": [
                {
                    "version": "24.04",
                    "aliases": ["latest", "noble"],
                    "url": "https://images.example/ubuntu-24.04.qcow2",
                    "size_bytes": 1000,
                },
                {
                    "version": "22.04",
                    "aliases": ["jammy"],
                    "url": "https://images.example/ubuntu-22.04.qcow2",
                    "size_bytes": 900,
                },
            ],
        },
        {
            "name": "debian",
            "versions": [
                {"version": "12", "url": "https://images.example/debian-12.qcow2", "size_bytes": 800},
            ],
        },
    ],
}


def run_inline(work: Callable[[], None]) -> None:
    """Worker hook that runs scheduled work on the calling thread."""
    work()


class ManualTimers:
    """Timer hook that holds callbacks until told to fire them."""

    def __init__(self) -> None:
        self.pending: list[tuple[float, Callable[[], None]]] = []

    def __call__(self, delay: float, callback: Callable[[], None]) -> None:
        self.pending.append((delay, callback))

    def fire_all(self) -> None:
        pending, self.pending = self.pending, []
        for _, callback in pending:
            callback()


@pytest.fixture
def catalog_data() -> dict:
    return CATALOG


@pytest.fixture
def catalog(catalog_data) -> Catalog:
    return Catalog.from_dict(catalog_data)


@pytest.fixture
def provider() -> MemoryProvider:
    return MemoryProvider.demo()


@pytest.fixture
def config(tmp_path) -> AppConfig:
    return AppConfig(
        image_dir=str(tmp_path / "images"),
        backup_dir=str(tmp_path / "backups"),
        path=tmp_path / "config.env",
    )


@pytest.fixture
def dispatcher(provider, config, catalog) -> Dispatcher:
    d = Dispatcher(
        provider,
        config,
        UiSettings(log_limit=50, tick_interval=0.05),
        catalog_loader=lambda: catalog,
        latest=lambda: "v1.2.0",
    )
    d.handle(Resize(120, 40))
    d.render()
    return d


@pytest.fixture
def drain() -> Callable[[Dispatcher, list[Command]], list[object]]:
    """Execute commands inline, feeding every message back into the dispatcher.

    Tick commands are skipped so a busy spinner cannot loop forever.
    Returns the messages that were delivered, in order.
    """

    def run(d: Dispatcher, commands: list[Command]) -> list[object]:
        delivered = []
        queue = list(commands)
        while queue:
            command = queue.pop(0)
            if command.kind == "tick":
                continue
            for message in command.execute():
                delivered.append(message)
                queue.extend(d.handle(message))
        return delivered

    return run
