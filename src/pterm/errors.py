"""Error taxonomy and exit code contract."""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum


class ExitCode(IntEnum):
    SUCCESS = 0
    INVALID_ARGS = 2
    CONFIG_ERROR = 3
    RUNTIME_ERROR = 4
    BACKEND_UNAVAILABLE = 5
    SESSION_ERROR = 6
    VALIDATION_ERROR = 7


@dataclass
class PtermError(Exception):
    message: str
    code: ExitCode = ExitCode.RUNTIME_ERROR
    hint: str = ""

    def __str__(self) -> str:
        if self.hint:
            return f"{self.message} Hint: {self.hint}"
        return self.message


@dataclass
class BackendUnavailable(PtermError):
    """Multiplexer is not installed; terminals degrade to bare shells."""

    code: ExitCode = ExitCode.BACKEND_UNAVAILABLE


@dataclass
class SessionCreateFailed(PtermError):
    """Multiplexer is installed but the session could not be spawned."""

    code: ExitCode = ExitCode.SESSION_ERROR


@dataclass
class InvalidSlotReference(PtermError):
    """Caller referenced a destroyed or unknown terminal slot."""

    code: ExitCode = ExitCode.VALIDATION_ERROR


def user_facing_error(message: str, *, hint: str = "") -> str:
    if hint:
        return f"Error: {message}. Next step: {hint}"
    return f"Error: {message}."
