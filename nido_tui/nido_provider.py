"""
Concrete VMProvider that drives the ``nido`` command line in JSON mode.
"""

from __future__ import annotations

import json
import logging as py_logging
import subprocess
from collections.abc import Callable
from datetime import datetime

from nido_tui.errors import NotFoundError, ProviderError
from nido_tui.providers import CacheItem, CacheStats, VMDetail, VMOptions, VMStatus

logger = py_logging.getLogger(__name__)

DEFAULT_TIMEOUT = 600.0

Runner = Callable[..., subprocess.CompletedProcess]


def _parse_datetime(s: str | None) -> datetime | None:
    """Parse ISO datetime string."""
    if not s:
        return None
    try:
        return datetime.fromisoformat(s.replace("Z", "+00:00"))
    except (ValueError, TypeError):
        return None


def _status_from_dict(data: dict) -> VMStatus:
    return VMStatus(
        name=data.get("name", ""),
        state=data.get("state", "unknown"),
        pid=int(data.get("pid") or 0),
        ssh_port=int(data.get("ssh_port") or 0),
        vnc_port=int(data.get("vnc_port") or 0),
        ssh_user=data.get("ssh_user", ""),
    )


def _detail_from_dict(data: dict) -> VMDetail:
    return VMDetail(
        name=data.get("name", ""),
        state=data.get("state", "unknown"),
        ip=data.get("ip", ""),
        ssh_user=data.get("ssh_user", ""),
        ssh_port=int(data.get("ssh_port") or 0),
        vnc_port=int(data.get("vnc_port") or 0),
    )


def parse_envelope(raw: str, command: str) -> dict:
    """Return ``data`` from a nido JSON response or raise a ProviderError."""
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ProviderError(f"{command}: malformed response from nido") from exc
    if not isinstance(payload, dict):
        raise ProviderError(f"{command}: unexpected response from nido")

    if payload.get("status") != "ok":
        problem = payload.get("error") or {}
        detail = problem.get("detail") or problem.get("title") or "unknown error"
        error_cls = NotFoundError if problem.get("code") == "ERR_NOT_FOUND" else ProviderError
        raise error_cls(detail, hint=problem.get("hint", ""))
    return payload.get("data") or {}


class NidoCliProvider:
    """VMProvider implementation backed by ``nido <command> --json``."""

    # nido has one stop path, and --image looks the disk up in its own IMAGE_DIR.
    supports_force_stop = False
    uses_disk_path = False

    def __init__(
        self,
        binary: str = "nido",
        *,
        runner: Runner = subprocess.run,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self._binary = binary
        self._runner = runner
        self._timeout = timeout

    def _call(self, *args: str) -> dict:
        command = " ".join(args[:2]) if args[:1] in (("template",), ("cache",)) else args[0]
        argv = [self._binary, *args, "--json"]
        logger.debug("Running %s", argv)
        try:
            proc = self._runner(
                argv,
                capture_output=True,
                text=True,
                timeout=self._timeout,
                check=False,
            )
        except FileNotFoundError as exc:
            raise ProviderError(
                f"{self._binary} not found",
                hint="Install nido or pass --nido-bin.",
            ) from exc
        except subprocess.TimeoutExpired as exc:
            raise ProviderError(f"{command} timed out after {self._timeout:.0f}s") from exc

        if not proc.stdout.strip():
            raise ProviderError(proc.stderr.strip() or f"{command} exited with {proc.returncode}")
        return parse_envelope(proc.stdout, command)

    def list_vms(self) -> list[VMStatus]:
        data = self._call("ls")
        return [_status_from_dict(vm) for vm in data.get("vms") or []]

    def info(self, name: str) -> VMDetail:
        data = self._call("info", name)
        return _detail_from_dict(data.get("vm") or {"name": name})

    def spawn(self, name: str, options: VMOptions) -> None:
        args = ["spawn", name]
        if options.image:
            args += ["--image", options.image]
            if options.disk_path:
                logger.info("nido resolves %s from its IMAGE_DIR; %s is not passed", options.image, options.disk_path)
        elif options.template:
            args.append(options.template)
        if options.user_data_path:
            args += ["--user-data", options.user_data_path]
        if options.gui:
            args.append("--gui")
        self._call(*args)

    def start(self, name: str) -> None:
        self._call("start", name)

    def stop(self, name: str, graceful: bool = True) -> None:
        if not graceful:
            logger.info("nido has no forced stop; stopping %s normally", name)
        self._call("stop", name)

    def delete(self, name: str) -> None:
        self._call("delete", name)

    def list_templates(self) -> list[str]:
        data = self._call("template", "list")
        names = []
        for item in data.get("templates") or []:
            names.append(item.get("name", "") if isinstance(item, dict) else str(item))
        return sorted(n for n in names if n)

    def create_template(self, vm_name: str, template_name: str) -> str:
        data = self._call("template", "create", vm_name, template_name)
        return (data.get("action") or {}).get("path", "")

    def cache_list(self) -> list[CacheItem]:
        data = self._call("cache", "ls")
        return [
            CacheItem(
                name=item.get("name", ""),
                version=item.get("version", ""),
                size_bytes=int(item.get("size_bytes") or 0),
                modified_at=_parse_datetime(item.get("modified_at")),
            )
            for item in data.get("cache") or []
        ]

    def cache_info(self) -> CacheStats:
        stats = self._call("cache", "info").get("stats") or {}
        return CacheStats(
            total_images=int(stats.get("total_images") or 0),
            total_size=int(stats.get("total_size") or 0),
            oldest=_parse_datetime(stats.get("oldest")),
            newest=_parse_datetime(stats.get("newest")),
        )

    def cache_prune(self, unused_only: bool = False) -> int:
        args = ["cache", "prune"]
        if unused_only:
            args.append("--unused")
        stats = self._call(*args).get("stats") or {}
        return int(stats.get("count") or 0)

    def version(self) -> str:
        return str(self._call("version").get("version", ""))
