"""Unit tests for the viewlet focus contract."""

from nido_tui.views.fleet import FleetViewlet


class CountingFleet(FleetViewlet):
    """FleetViewlet that counts on_focus calls."""

    def __init__(self) -> None:
        super().__init__()
        self.focus_calls = 0

    def on_focus(self) -> None:
        super().on_focus()
        self.focus_calls += 1


class TestViewletFocus:
    """Tests for BaseViewlet.focus and blur."""

    def test_focus_twice_runs_hook_once(self) -> None:
        viewlet = CountingFleet()

        viewlet.focus()
        viewlet.focus()

        assert viewlet.focused
        assert viewlet.focus_calls == 1

    def test_blur_twice_is_harmless(self) -> None:
        viewlet = CountingFleet()
        viewlet.focus()

        viewlet.blur()
        viewlet.blur()

        assert not viewlet.focused
        assert viewlet.focus_calls == 1

    def test_refocus_after_blur_runs_hook_again(self) -> None:
        viewlet = CountingFleet()

        viewlet.focus()
        viewlet.blur()
        viewlet.focus()

        assert viewlet.focused
        assert viewlet.focus_calls == 2

    def test_blur_without_focus(self) -> None:
        viewlet = CountingFleet()

        viewlet.blur()

        assert not viewlet.focused
        assert viewlet.focus_calls == 0
