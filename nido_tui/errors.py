"""Error model and exit code contract."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum


class ExitCode(IntEnum):
    SUCCESS = 0
    STARTUP_ERROR = 1
    INVALID_ARGS = 2
    CONFIG_ERROR = 3


@dataclass
class NidoTuiError(Exception):
    message: str
    code: ExitCode = ExitCode.STARTUP_ERROR
    hint: str = ""

    def __str__(self) -> str:
        if self.hint:
            return f"{self.message} Hint: {self.hint}"
        return self.message


@dataclass
class ProviderError(NidoTuiError):
    """A backend operation failed. Never fatal to the UI."""


@dataclass
class NotFoundError(ProviderError):
    """The lookup target no longer exists."""


@dataclass
class ResourceUnavailable(NidoTuiError):
    """No host program available for an external integration."""


@dataclass
class LayoutUnviable(NidoTuiError):
    width: int = 0
    height: int = 0


def user_facing_error(message: str, *, hint: str = "") -> str:
    if hint:
        return f"Error: {message}. Next step: {hint}"
    return f"Error: {message}."
