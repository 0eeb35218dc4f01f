"""
Responsive layout engine.

Turns terminal dimensions into the geometry used for one render pass.
Rendering and mouse hit-testing must read the same Geometry value, so the
dispatcher keeps the one it last rendered with.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from nido_tui.errors import LayoutUnviable

MIN_WIDTH = 60
MIN_HEIGHT = 15

NARROW_MAX = 100
REGULAR_MAX = 140

REGULAR_SIDEBAR = 18
WIDE_SIDEBAR = 28

# Tab bar (1) + title (1) + rule (1) + section title (1) + footer block (4).
FIXED_OVERHEAD = 8
BODY_TOP = 4

# The last 4 header columns are the exit control.
EXIT_ZONE = 4
TAB_COUNT = 5

ADVISORY = f"Terminal too small. Need at least {MIN_WIDTH}x{MIN_HEIGHT}."


class Breakpoint(Enum):
    NARROW = "narrow"
    REGULAR = "regular"
    WIDE = "wide"


@dataclass(frozen=True)
class Geometry:
    """Measurements derived from one terminal size."""

    breakpoint: Breakpoint
    sidebar_width: int
    content_width: int
    body_height: int
    width: int
    height: int

    @property
    def has_sidebar(self) -> bool:
        return self.sidebar_width > 0

    @property
    def content_x(self) -> int:
        """First column of the content area."""
        if self.has_sidebar:
            # sidebar, border column, one pad column
            return self.sidebar_width + 2
        return 1

    @property
    def viable(self) -> bool:
        return is_viable(self.width, self.height)


def breakpoint_for(width: int) -> Breakpoint:
    if width < NARROW_MAX:
        return Breakpoint.NARROW
    if width <= REGULAR_MAX:
        return Breakpoint.REGULAR
    return Breakpoint.WIDE


def compute_geometry(width: int, height: int) -> Geometry:
    """Pure mapping from terminal size to geometry."""
    width = max(0, width)
    height = max(0, height)
    bp = breakpoint_for(width)
    if bp is Breakpoint.NARROW:
        sidebar = 0
        content = max(1, width - 2)
    else:
        sidebar = REGULAR_SIDEBAR if bp is Breakpoint.REGULAR else WIDE_SIDEBAR
        content = max(1, width - sidebar - 3)
    return Geometry(
        breakpoint=bp,
        sidebar_width=sidebar,
        content_width=content,
        body_height=max(1, height - FIXED_OVERHEAD),
        width=width,
        height=height,
    )


def is_viable(width: int, height: int) -> bool:
    return width >= MIN_WIDTH and height >= MIN_HEIGHT


def require_viable(geometry: Geometry) -> Geometry:
    if not geometry.viable:
        raise LayoutUnviable(
            ADVISORY, width=geometry.width, height=geometry.height
        )
    return geometry


def clamp(value: int, low: int, high: int) -> int:
    if high < low:
        return low
    return max(low, min(value, high))


# --- Header hit-testing -----------------------------------------------------


def tab_width(geometry: Geometry) -> int:
    return max(1, (geometry.width - 6) // TAB_COUNT)


def header_hit(geometry: Geometry, x: int) -> int | str | None:
    """Map a header-row column to a tab index or ``"exit"``."""
    x = clamp(x, 0, max(0, geometry.width - 1))
    if x >= geometry.width - EXIT_ZONE:
        return "exit"
    index = x // tab_width(geometry)
    if index >= TAB_COUNT:
        return None
    return index


# --- Body hit-testing -------------------------------------------------------


def body_row(geometry: Geometry, y: int) -> int | None:
    """Row offset inside the body, or None if y is outside it."""
    if y < BODY_TOP or y >= BODY_TOP + geometry.body_height:
        return None
    return y - BODY_TOP


def in_sidebar(geometry: Geometry, x: int) -> bool:
    return geometry.has_sidebar and 0 <= x < geometry.sidebar_width


def content_column(geometry: Geometry, x: int) -> int | None:
    """Column offset inside the content area, or None."""
    col = x - geometry.content_x
    if col < 0 or col >= geometry.content_width:
        return None
    return col
