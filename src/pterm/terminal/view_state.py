"""Scroll position memory across hide/show cycles."""

from __future__ import annotations

import logging as py_logging
import threading
import time
from collections.abc import Callable

from pterm.retry import RetryPolicy, wait_until
from pterm.terminal.host import TerminalHost, ViewClosedError
from pterm.terminal.models import ViewState

logger = py_logging.getLogger(__name__)


class ViewStateStore:
    def __init__(
        self,
        host: TerminalHost,
        *,
        ready_policy: RetryPolicy | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._host = host
        self._ready_policy = ready_policy or RetryPolicy(max_attempts=4)
        self._sleep = sleep
        self._states: dict[int, ViewState] = {}
        self._lock = threading.Lock()

    def get(self, slot_id: int) -> ViewState | None:
        with self._lock:
            return self._states.get(slot_id)

    def save(self, slot_id: int) -> ViewState | None:
        """Capture the live view of a slot, overwriting any earlier capture."""
        if not self._host.has_view(slot_id):
            return self.get(slot_id)
        try:
            state = self._host.capture_view(slot_id)
        except ViewClosedError:
            logger.debug("view-save slot=%s skipped: view closed", slot_id)
            return self.get(slot_id)
        if state is None:
            return self.get(slot_id)
        with self._lock:
            self._states[slot_id] = state
        logger.debug("view-save slot=%s row=%s top=%s", slot_id, state.cursor_row, state.top_row)
        return state

    def restore(self, slot_id: int) -> bool:
        saved = self.get(slot_id)
        if saved is None:
            return False

        ready = wait_until(
            lambda: self._host.view_ready(slot_id),
            policy=self._ready_policy,
            sleep=self._sleep,
            label=f"view-ready slot={slot_id}",
        )
        if not ready:
            logger.debug("view-restore slot=%s proceeding without ready signal", slot_id)

        try:
            if not self._host.has_view(slot_id):
                logger.debug("view-restore slot=%s skipped: view closed", slot_id)
                return False
            target = saved.clamped(self._host.content_rows(slot_id))
            self._host.apply_view(slot_id, target)
        except ViewClosedError:
            logger.debug("view-restore slot=%s abandoned: view closed mid-restore", slot_id)
            return False
        logger.debug("view-restore slot=%s row=%s", slot_id, target.cursor_row)
        return True

    def discard(self, slot_id: int) -> None:
        with self._lock:
            self._states.pop(slot_id, None)

    def clear(self) -> None:
        with self._lock:
            self._states.clear()
