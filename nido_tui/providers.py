"""
Data providers for the TUI.

Protocols define the interface; implementations can be swapped
for testing or alternative backends.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Protocol


@dataclass(frozen=True)
class VMStatus:
    """Row of the fleet listing."""

    name: str
    state: str
    pid: int = 0
    ssh_port: int = 0
    vnc_port: int = 0
    ssh_user: str = ""

    @property
    def running(self) -> bool:
        return self.state == "running"


@dataclass(frozen=True)
class VMDetail:
    """Connection details for one VM."""

    name: str
    state: str
    ip: str = ""
    ssh_user: str = ""
    ssh_port: int = 0
    vnc_port: int = 0

    @property
    def host(self) -> str:
        return self.ip or "127.0.0.1"

    def ssh_command(self) -> str:
        return (
            "ssh -o StrictHostKeyChecking=no -o UserKnownHostsFile=/dev/null "
            f"-p {self.ssh_port} {self.ssh_user}@{self.host}"
        )


@dataclass(frozen=True)
class VMOptions:
    """Spawn options. At most one of ``template`` and ``image`` is set."""

    template: str = ""
    image: str = ""
    disk_path: str = ""
    user_data_path: str = ""
    gui: bool = False


@dataclass(frozen=True)
class CacheItem:
    name: str
    version: str
    size_bytes: int
    modified_at: datetime | None = None


@dataclass(frozen=True)
class CacheStats:
    total_images: int
    total_size: int
    oldest: datetime | None = None
    newest: datetime | None = None


@dataclass(frozen=True)
class ImageVersion:
    """Downloadable image located in the catalog."""

    name: str
    version: str
    url: str
    size_bytes: int = 0
    aliases: tuple[str, ...] = ()
    checksum: str = ""
    checksum_type: str = "sha256"
    part_urls: tuple[str, ...] = ()

    @property
    def file_name(self) -> str:
        return f"{self.name}-{self.version}.qcow2"

    @property
    def archive_suffix(self) -> str:
        """Suffix of the compressed payload, or empty for a plain disk image."""
        source = self.part_urls[0] if self.part_urls else self.url
        if source.endswith(".tar.xz"):
            return ".tar.xz"
        if ".zst" in source or ".zstandard" in source:
            return ".zst"
        return ""


class VMProvider(Protocol):
    """Protocol for the VM backend."""

    # stop(graceful=False) kills instead of asking the guest to shut down.
    supports_force_stop: bool
    # spawn() boots VMOptions.disk_path rather than resolving the image itself.
    uses_disk_path: bool

    def list_vms(self) -> list[VMStatus]:
        """List every known VM."""
        ...

    def info(self, name: str) -> VMDetail:
        """Fetch connection details; raises NotFoundError."""
        ...

    def spawn(self, name: str, options: VMOptions) -> None: ...

    def start(self, name: str) -> None: ...

    def stop(self, name: str, graceful: bool = True) -> None: ...

    def delete(self, name: str) -> None: ...

    def list_templates(self) -> list[str]: ...

    def create_template(self, vm_name: str, template_name: str) -> str:
        """Snapshot a VM into a template; returns the template path."""
        ...

    def cache_list(self) -> list[CacheItem]: ...

    def cache_info(self) -> CacheStats: ...

    def cache_prune(self, unused_only: bool = False) -> int:
        """Remove cached images; returns how many were removed."""
        ...

    def version(self) -> str: ...


class ImageCatalog(Protocol):
    """Protocol for the downloadable image registry."""

    def find_image(self, name: str, version: str = "") -> ImageVersion:
        """Locate an image; raises NotFoundError."""
        ...

    def labels(self) -> list[str]:
        """``name:version`` labels for every image."""
        ...
