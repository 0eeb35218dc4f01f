"""Unit tests for ApplicationState pieces: log buffer and pending tracking."""

from datetime import datetime

from nido_tui.state import ApplicationState, DownloadState, LogBuffer, LogEntry, Tab


class TestLogBuffer:
    """Tests for the bounded operator log."""

    def test_entries_are_timestamped(self) -> None:
        buffer = LogBuffer()
        entry = buffer.append("hello", now=datetime(2024, 1, 1, 9, 5, 7))

        assert entry.format() == "[09:05:07] hello"

    def test_oldest_lines_fall_off(self) -> None:
        buffer = LogBuffer(limit=3)
        for i in range(5):
            buffer.append(f"line {i}")

        assert [e.text for e in buffer] == ["line 2", "line 3", "line 4"]
        assert buffer.dropped == 2
        assert len(buffer) == 3

    def test_tail_with_offset(self) -> None:
        buffer = LogBuffer()
        for i in range(10):
            buffer.append(str(i))

        assert [e.text for e in buffer.tail(3)] == ["7", "8", "9"]
        assert [e.text for e in buffer.tail(3, offset=2)] == ["5", "6", "7"]
        assert buffer.tail(0) == []

    def test_tail_offset_past_start(self) -> None:
        buffer = LogBuffer()
        buffer.append("only")

        assert buffer.tail(5, offset=10) == []

    def test_clear(self) -> None:
        buffer = LogBuffer()
        buffer.append("x")
        buffer.clear()

        assert len(buffer) == 0


class TestApplicationState:
    """Tests for pending operation bookkeeping."""

    def _state(self) -> ApplicationState:
        return ApplicationState(viewlets={})

    def test_finish_requires_matching_tag(self) -> None:
        state = self._state()
        state.begin("stop", "falcon")

        assert not state.finish("stop", "kestrel")
        assert state.pending is not None
        assert state.finish("stop", "falcon")
        assert state.pending is None

    def test_busy_tracks_pending_and_download(self) -> None:
        state = self._state()
        assert not state.busy

        state.download = DownloadState("ubuntu:24.04")
        assert state.busy

        state.download = None
        state.begin("cache")
        assert state.busy

    def test_log_appends(self) -> None:
        state = self._state()
        entry = state.log("ready")

        assert isinstance(entry, LogEntry)
        assert state.logs.tail(1)[0].text == "ready"

    def test_tab_labels(self) -> None:
        assert Tab.FLEET.label == "1 FLEET"
        assert Tab.HELP.label == "5 HELP"
