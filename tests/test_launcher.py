"""Unit tests for terminal and VNC launch helpers."""

import pytest

from nido_tui.errors import ResourceUnavailable
from nido_tui.launcher import build_terminal_command, build_vnc_command, launch


def which_only(*names: str):
    return lambda name: f"/usr/bin/{name}" if name in names else None


class TestBuildTerminalCommand:
    """Tests for build_terminal_command."""

    def test_darwin_uses_osascript(self) -> None:
        argv = build_terminal_command("ssh host", platform="darwin")

        assert argv[0] == "osascript"
        assert "ssh host" in argv[2]

    def test_windows(self) -> None:
        assert build_terminal_command("ssh host", platform="win32")[:2] == ["cmd", "/c"]

    def test_gnome_terminal_uses_double_dash(self) -> None:
        argv = build_terminal_command("ssh host", platform="linux", which=which_only("gnome-terminal"))

        assert argv[:4] == ["gnome-terminal", "--", "bash", "-c"]
        assert argv[4].startswith("ssh host || ")

    def test_first_available_terminal_wins(self) -> None:
        argv = build_terminal_command(
            "ssh host", platform="linux", which=which_only("konsole", "xterm")
        )

        assert argv[:2] == ["konsole", "-e"]

    def test_no_terminal(self) -> None:
        with pytest.raises(ResourceUnavailable, match="No terminal emulator found"):
            build_terminal_command("ssh host", platform="linux", which=which_only())


class TestBuildVncCommand:
    """Tests for build_vnc_command."""

    def test_prefers_xdg_open(self) -> None:
        argv = build_vnc_command("127.0.0.1:5900", platform="linux", which=which_only("xdg-open", "vncviewer"))

        assert argv == ["xdg-open", "vnc://127.0.0.1:5900"]

    def test_falls_back_to_viewer(self) -> None:
        argv = build_vnc_command("127.0.0.1:5900", platform="linux", which=which_only("vncviewer"))

        assert argv == ["vncviewer", "127.0.0.1:5900"]

    def test_nothing_available(self) -> None:
        with pytest.raises(ResourceUnavailable):
            build_vnc_command("127.0.0.1:5900", platform="linux", which=which_only())


class TestLaunch:
    """Tests for launch."""

    def test_starts_detached(self) -> None:
        seen = {}

        def popen(argv, **kwargs):
            seen["argv"] = argv
            seen.update(kwargs)

        launch(["xterm", "-e", "true"], popen=popen)

        assert seen["argv"] == ["xterm", "-e", "true"]
        assert seen["start_new_session"] is True

    def test_os_error_becomes_resource_unavailable(self) -> None:
        def popen(argv, **kwargs):
            raise OSError("exec format error")

        with pytest.raises(ResourceUnavailable):
            launch(["broken"], popen=popen)
