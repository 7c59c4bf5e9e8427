"""Host UI collaborator contract and a headless in-memory host."""

from __future__ import annotations

import logging as py_logging
from dataclasses import dataclass, field
from typing import Protocol

from pterm.terminal.models import TerminalSlot, ViewState

logger = py_logging.getLogger(__name__)


class ViewClosedError(RuntimeError):
    """The view went away while an operation on it was in flight."""


class TerminalHost(Protocol):
    def open_view(self, slot: TerminalSlot, command: list[str] | None) -> None: ...

    def show_view(self, slot_id: int) -> None: ...

    def hide_view(self, slot_id: int) -> None: ...

    def destroy_view(self, slot_id: int) -> None: ...

    def has_view(self, slot_id: int) -> bool: ...

    def view_ready(self, slot_id: int) -> bool: ...

    def capture_view(self, slot_id: int) -> ViewState | None: ...

    def content_rows(self, slot_id: int) -> int: ...

    def apply_view(self, slot_id: int, state: ViewState) -> None: ...

    def send(self, slot_id: int, text: str) -> None: ...

    def notify(self, message: str, level: int = py_logging.INFO) -> None: ...


@dataclass
class HeadlessView:
    slot_id: int
    command: list[str] | None
    cwd: str
    visible: bool = True
    rows: int = 1
    state: ViewState = field(default_factory=lambda: ViewState(cursor_row=1))
    sent: list[str] = field(default_factory=list)


class HeadlessHost:
    """Keeps views as plain records; used when no editor drives the registry."""

    def __init__(self) -> None:
        self.views: dict[int, HeadlessView] = {}
        self.notices: list[tuple[int, str]] = []

    def open_view(self, slot: TerminalSlot, command: list[str] | None) -> None:
        self.views[slot.slot_id] = HeadlessView(
            slot_id=slot.slot_id,
            command=list(command) if command else None,
            cwd=slot.working_directory,
        )

    def show_view(self, slot_id: int) -> None:
        self._view(slot_id).visible = True

    def hide_view(self, slot_id: int) -> None:
        self._view(slot_id).visible = False

    def destroy_view(self, slot_id: int) -> None:
        self.views.pop(slot_id, None)

    def has_view(self, slot_id: int) -> bool:
        view = self.views.get(slot_id)
        return view is not None and view.visible

    def view_ready(self, slot_id: int) -> bool:
        return self.has_view(slot_id)

    def capture_view(self, slot_id: int) -> ViewState | None:
        view = self.views.get(slot_id)
        if view is None or not view.visible:
            return None
        return view.state

    def content_rows(self, slot_id: int) -> int:
        return self._view(slot_id).rows

    def apply_view(self, slot_id: int, state: ViewState) -> None:
        self._view(slot_id).state = state

    def send(self, slot_id: int, text: str) -> None:
        self._view(slot_id).sent.append(text)

    def notify(self, message: str, level: int = py_logging.INFO) -> None:
        self.notices.append((level, message))
        logger.log(level, "host-notice %s", message)

    def _view(self, slot_id: int) -> HeadlessView:
        view = self.views.get(slot_id)
        if view is None:
            raise ViewClosedError(f"No view for terminal {slot_id}")
        return view
