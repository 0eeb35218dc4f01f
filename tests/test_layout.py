"""Unit tests for the layout engine and header hit-testing."""

import pytest

from nido_tui.errors import LayoutUnviable
from nido_tui.layout import (
    ADVISORY,
    BODY_TOP,
    Breakpoint,
    body_row,
    compute_geometry,
    content_column,
    header_hit,
    in_sidebar,
    is_viable,
    require_viable,
)


class TestComputeGeometry:
    """Tests for compute_geometry breakpoints."""

    def test_narrow_has_no_sidebar(self) -> None:
        geom = compute_geometry(80, 24)

        assert geom.breakpoint is Breakpoint.NARROW
        assert geom.sidebar_width == 0
        assert geom.content_width == 78
        assert geom.body_height == 16

    def test_regular_sidebar(self) -> None:
        geom = compute_geometry(120, 40)

        assert geom.breakpoint is Breakpoint.REGULAR
        assert geom.sidebar_width == 18
        assert geom.content_width == 120 - 18 - 3

    def test_wide_sidebar(self) -> None:
        geom = compute_geometry(200, 50)

        assert geom.breakpoint is Breakpoint.WIDE
        assert geom.sidebar_width == 28
        assert geom.content_width == 200 - 28 - 3

    @pytest.mark.parametrize(
        "width,expected",
        [(99, Breakpoint.NARROW), (100, Breakpoint.REGULAR), (140, Breakpoint.REGULAR), (141, Breakpoint.WIDE)],
    )
    def test_breakpoint_boundaries(self, width: int, expected: Breakpoint) -> None:
        assert compute_geometry(width, 30).breakpoint is expected

    def test_body_height_never_below_one(self) -> None:
        assert compute_geometry(80, 3).body_height == 1

    def test_negative_sizes_are_clamped(self) -> None:
        geom = compute_geometry(-5, -5)

        assert geom.width == 0
        assert geom.height == 0
        assert not geom.viable


class TestViability:
    """Tests for the minimum size check."""

    def test_minimum_is_viable(self) -> None:
        assert is_viable(60, 15)

    def test_below_minimum(self) -> None:
        assert not is_viable(59, 40)
        assert not is_viable(120, 14)

    def test_require_viable_raises_with_advisory(self) -> None:
        with pytest.raises(LayoutUnviable) as info:
            require_viable(compute_geometry(40, 10))

        assert info.value.message == ADVISORY
        assert (info.value.width, info.value.height) == (40, 10)


class TestHeaderHit:
    """Tests for header row hit-testing."""

    def test_exit_zone(self) -> None:
        geom = compute_geometry(120, 40)

        assert header_hit(geom, 116) == "exit"
        assert header_hit(geom, 119) == "exit"

    def test_tab_columns(self) -> None:
        geom = compute_geometry(120, 40)
        width = (120 - 6) // 5

        assert header_hit(geom, 0) == 0
        assert header_hit(geom, width) == 1
        assert header_hit(geom, width * 4 + 1) == 4

    def test_gap_between_tabs_and_exit(self) -> None:
        geom = compute_geometry(120, 40)

        assert header_hit(geom, 114) is None

    def test_out_of_range_is_clamped(self) -> None:
        geom = compute_geometry(120, 40)

        assert header_hit(geom, 500) == "exit"
        assert header_hit(geom, -3) == 0


class TestBodyHit:
    """Tests for body row and column mapping."""

    def test_body_row_bounds(self) -> None:
        geom = compute_geometry(120, 40)

        assert body_row(geom, BODY_TOP - 1) is None
        assert body_row(geom, BODY_TOP) == 0
        assert body_row(geom, BODY_TOP + geom.body_height) is None

    def test_sidebar_and_content_columns(self) -> None:
        geom = compute_geometry(120, 40)

        assert in_sidebar(geom, 5)
        assert not in_sidebar(geom, 18)
        assert content_column(geom, 18) is None
        assert content_column(geom, 20) == 0

    def test_narrow_content_starts_after_pad(self) -> None:
        geom = compute_geometry(80, 24)

        assert not in_sidebar(geom, 0)
        assert content_column(geom, 1) == 0
