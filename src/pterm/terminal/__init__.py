"""Terminal slot registry domain package."""

from .host import HeadlessHost, TerminalHost, ViewClosedError
from .models import CycleDirection, TerminalSlot, ViewState, Visibility
from .registry import RegistryEvent, TerminalRegistry
from .view_state import ViewStateStore

__all__ = [
    "CycleDirection",
    "HeadlessHost",
    "RegistryEvent",
    "TerminalHost",
    "TerminalRegistry",
    "TerminalSlot",
    "ViewClosedError",
    "ViewState",
    "ViewStateStore",
    "Visibility",
]
