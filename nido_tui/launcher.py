"""Helpers that hand a VM session off to a host terminal or VNC viewer."""

from __future__ import annotations

import logging as py_logging
import shutil
import subprocess
import sys
from collections.abc import Callable

from nido_tui.errors import ResourceUnavailable

logger = py_logging.getLogger(__name__)

TERMINALS = ("x-terminal-emulator", "gnome-terminal", "konsole", "xfce4-terminal", "xterm")
VNC_VIEWERS = ("gvncviewer", "vncviewer")

Which = Callable[[str], "str | None"]


def _keep_open(command: str) -> str:
    return (
        f"{command} || (echo ''; echo 'SSH SESSION FAILED'; "
        "echo 'Press Enter to close this terminal...'; read)"
    )


def build_terminal_command(
    ssh_command: str, *, platform: str | None = None, which: Which = shutil.which
) -> list[str]:
    platform = platform or sys.platform
    if platform == "darwin":
        script = f'tell application "Terminal" to do script "{ssh_command}"'
        return ["osascript", "-e", script]
    if platform.startswith("win"):
        return ["cmd", "/c", "start", "cmd", "/k", ssh_command]

    for terminal in TERMINALS:
        if which(terminal):
            wrapped = _keep_open(ssh_command)
            if terminal in ("gnome-terminal", "xfce4-terminal"):
                return [terminal, "--", "bash", "-c", wrapped]
            return [terminal, "-e", "bash", "-c", wrapped]
    raise ResourceUnavailable("No terminal emulator found")


def build_vnc_command(
    address: str, *, platform: str | None = None, which: Which = shutil.which
) -> list[str]:
    platform = platform or sys.platform
    if platform == "darwin":
        return ["open", f"vnc://{address}"]
    if platform.startswith("win"):
        return ["cmd", "/c", "start", f"vnc://{address}"]

    if which("xdg-open"):
        return ["xdg-open", f"vnc://{address}"]
    for viewer in VNC_VIEWERS:
        if which(viewer):
            return [viewer, address]
    raise ResourceUnavailable("No VNC viewer or xdg-open found")


def launch(command: list[str], *, popen: Callable = subprocess.Popen) -> None:
    """Start ``command`` detached from the TUI's terminal."""
    logger.info("Launching %s", command[0])
    try:
        popen(
            command,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            start_new_session=True,
        )
    except OSError as exc:
        raise ResourceUnavailable(f"Failed to launch {command[0]}: {exc}") from exc
