"""
In-memory VMProvider.

Backs ``--demo`` runs and the test suite; no processes or disks are touched.
"""

from __future__ import annotations

import threading
from dataclasses import replace
from datetime import datetime, timezone

from nido_tui.errors import NotFoundError, ProviderError
from nido_tui.providers import CacheItem, CacheStats, VMDetail, VMOptions, VMStatus

BASE_SSH_PORT = 50022
BASE_VNC_PORT = 5900


class MemoryProvider:
    """VMProvider implementation that keeps the fleet in a dict."""

    supports_force_stop = True
    uses_disk_path = True

    def __init__(
        self,
        vms: list[VMStatus] | None = None,
        templates: list[str] | None = None,
        cache: list[CacheItem] | None = None,
        version: str = "v0.0.0-demo",
    ) -> None:
        self._lock = threading.Lock()
        self._vms: dict[str, VMStatus] = {vm.name: vm for vm in vms or []}
        self._templates = list(templates or [])
        self._cache = list(cache or [])
        self._version = version
        self.calls: list[tuple] = []

    @classmethod
    def demo(cls) -> MemoryProvider:
        now = datetime.now(timezone.utc)
        return cls(
            vms=[
                VMStatus("falcon", "running", 4242, 50022, 5900, "vmuser"),
                VMStatus("kestrel", "stopped", 0, 50023, 0, "vmuser"),
            ],
            templates=["ubuntu-base"],
            cache=[CacheItem("ubuntu", "24.04", 612 * 1024 * 1024, now)],
        )

    def _get(self, name: str) -> VMStatus:
        try:
            return self._vms[name]
        except KeyError:
            raise NotFoundError(f"VM {name} not found") from None

    def list_vms(self) -> list[VMStatus]:
        self.calls.append(("list_vms",))
        with self._lock:
            return sorted(self._vms.values(), key=lambda vm: vm.name)

    def info(self, name: str) -> VMDetail:
        self.calls.append(("info", name))
        with self._lock:
            vm = self._get(name)
        return VMDetail(
            name=vm.name,
            state=vm.state,
            ip="" if not vm.running else "127.0.0.1",
            ssh_user=vm.ssh_user,
            ssh_port=vm.ssh_port,
            vnc_port=vm.vnc_port,
        )

    def spawn(self, name: str, options: VMOptions) -> None:
        self.calls.append(("spawn", name, options))
        with self._lock:
            if name in self._vms:
                raise ProviderError(f"VM {name} already exists")
            index = len(self._vms)
            self._vms[name] = VMStatus(
                name=name,
                state="running",
                pid=1000 + index,
                ssh_port=BASE_SSH_PORT + index,
                vnc_port=BASE_VNC_PORT + index if options.gui else 0,
                ssh_user="vmuser",
            )

    def start(self, name: str) -> None:
        self.calls.append(("start", name))
        with self._lock:
            vm = self._get(name)
            self._vms[name] = replace(vm, state="running", pid=vm.pid or 1000)

    def stop(self, name: str, graceful: bool = True) -> None:
        self.calls.append(("stop", name, graceful))
        with self._lock:
            vm = self._get(name)
            self._vms[name] = replace(vm, state="stopped", pid=0)

    def delete(self, name: str) -> None:
        self.calls.append(("delete", name))
        with self._lock:
            self._get(name)
            del self._vms[name]

    def list_templates(self) -> list[str]:
        self.calls.append(("list_templates",))
        return sorted(self._templates)

    def create_template(self, vm_name: str, template_name: str) -> str:
        self.calls.append(("create_template", vm_name, template_name))
        with self._lock:
            self._get(vm_name)
            self._templates.append(template_name)
        return f"/demo/backups/{template_name}.compact.qcow2"

    def cache_list(self) -> list[CacheItem]:
        self.calls.append(("cache_list",))
        return list(self._cache)

    def cache_info(self) -> CacheStats:
        self.calls.append(("cache_info",))
        stamps = [item.modified_at for item in self._cache if item.modified_at]
        return CacheStats(
            total_images=len(self._cache),
            total_size=sum(item.size_bytes for item in self._cache),
            oldest=min(stamps) if stamps else None,
            newest=max(stamps) if stamps else None,
        )

    def cache_prune(self, unused_only: bool = False) -> int:
        self.calls.append(("cache_prune", unused_only))
        removed = len(self._cache)
        self._cache.clear()
        return removed

    def version(self) -> str:
        return self._version
