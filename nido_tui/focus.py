"""
Focus and mode state machine.

Each sub-navigable tab moves between a sidebar, a form, and a modal.
Transitions live in one table so the routing contract can be checked on
its own; anything not in the table is a no-op.
"""

from __future__ import annotations

import logging
from enum import Enum

logger = logging.getLogger(__name__)


class FocusTarget(Enum):
    GLOBAL_CHROME = "global"
    TAB_SIDEBAR = "sidebar"
    TAB_FORM = "form"
    MODAL = "modal"


TRANSITIONS: dict[tuple[FocusTarget, str], FocusTarget] = {
    (FocusTarget.TAB_SIDEBAR, "activate"): FocusTarget.TAB_FORM,
    (FocusTarget.TAB_FORM, "back"): FocusTarget.TAB_SIDEBAR,
    (FocusTarget.TAB_FORM, "open_modal"): FocusTarget.MODAL,
    (FocusTarget.MODAL, "confirm"): FocusTarget.TAB_FORM,
    (FocusTarget.MODAL, "dismiss"): FocusTarget.TAB_FORM,
}


class FocusMachine:
    """Focus state for one tab.

    Tabs without sub-navigation stay on GLOBAL_CHROME forever.
    """

    def __init__(self, navigable: bool = True) -> None:
        self.navigable = navigable
        self.target = self.initial

    @property
    def initial(self) -> FocusTarget:
        return FocusTarget.TAB_SIDEBAR if self.navigable else FocusTarget.GLOBAL_CHROME

    @property
    def modal_open(self) -> bool:
        return self.target is FocusTarget.MODAL

    @property
    def in_sidebar(self) -> bool:
        return self.target is FocusTarget.TAB_SIDEBAR

    @property
    def in_form(self) -> bool:
        return self.target is FocusTarget.TAB_FORM

    def fire(self, event: str) -> bool:
        """Apply ``event``; returns False when the transition is not defined."""
        following = TRANSITIONS.get((self.target, event))
        if following is None:
            return False
        logger.debug("focus %s -[%s]-> %s", self.target.value, event, following.value)
        self.target = following
        return True

    def activate(self) -> bool:
        return self.fire("activate")

    def back(self) -> bool:
        return self.fire("back")

    def open_modal(self) -> bool:
        return self.fire("open_modal")

    def confirm(self) -> bool:
        return self.fire("confirm")

    def dismiss(self) -> bool:
        return self.fire("dismiss")

    def reset(self) -> None:
        self.target = self.initial
