"""Unit tests for the focus state machine."""

from nido_tui.focus import TRANSITIONS, FocusMachine, FocusTarget


class TestFocusMachine:
    """Tests for FocusMachine transitions."""

    def test_navigable_starts_in_sidebar(self) -> None:
        assert FocusMachine().target is FocusTarget.TAB_SIDEBAR

    def test_non_navigable_stays_on_chrome(self) -> None:
        machine = FocusMachine(navigable=False)

        assert machine.target is FocusTarget.GLOBAL_CHROME
        assert not machine.activate()
        assert not machine.open_modal()
        assert machine.target is FocusTarget.GLOBAL_CHROME

    def test_full_cycle(self) -> None:
        machine = FocusMachine()

        assert machine.activate()
        assert machine.in_form
        assert machine.open_modal()
        assert machine.modal_open
        assert machine.confirm()
        assert machine.in_form
        assert machine.back()
        assert machine.in_sidebar

    def test_dismiss_returns_to_form(self) -> None:
        machine = FocusMachine()
        machine.activate()
        machine.open_modal()

        assert machine.dismiss()
        assert machine.target is FocusTarget.TAB_FORM

    def test_modal_cannot_open_from_sidebar(self) -> None:
        machine = FocusMachine()

        assert not machine.open_modal()
        assert machine.in_sidebar

    def test_undefined_events_are_noops(self) -> None:
        machine = FocusMachine()

        assert not machine.fire("explode")
        assert not machine.back()
        assert machine.in_sidebar

    def test_reset(self) -> None:
        machine = FocusMachine()
        machine.activate()
        machine.open_modal()
        machine.reset()

        assert machine.in_sidebar

    def test_every_transition_leaves_chrome_alone(self) -> None:
        for (source, _), target in TRANSITIONS.items():
            assert FocusTarget.GLOBAL_CHROME not in (source, target)
