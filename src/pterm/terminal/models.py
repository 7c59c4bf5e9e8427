"""Terminal slot domain models."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from pterm.backends.base import NONE_KIND


class Visibility(str, Enum):
    OPEN = "open"
    CLOSED = "closed"
    DESTROYED = "destroyed"


class CycleDirection(str, Enum):
    FORWARD = "forward"
    BACKWARD = "backward"

    @property
    def step(self) -> int:
        return 1 if self is CycleDirection.FORWARD else -1


@dataclass(frozen=True)
class ViewState:
    """Cursor position (1-based row, 0-based column) and viewport geometry."""

    cursor_row: int
    cursor_col: int = 0
    top_row: int = 1
    height: int = 0
    width: int = 0

    def clamped(self, content_rows: int) -> ViewState:
        last_row = max(1, content_rows)
        row = min(max(1, self.cursor_row), last_row)
        top = min(max(1, self.top_row), row)
        return ViewState(
            cursor_row=row,
            cursor_col=max(0, self.cursor_col),
            top_row=top,
            height=self.height,
            width=self.width,
        )


@dataclass
class TerminalSlot:
    slot_id: int
    display_name: str
    session_id: str
    working_directory: str
    backend_kind: str = NONE_KIND
    visibility: Visibility = Visibility.OPEN
    adopted: bool = False

    @property
    def persistent(self) -> bool:
        return self.backend_kind != NONE_KIND

    @property
    def is_open(self) -> bool:
        return self.visibility == Visibility.OPEN
