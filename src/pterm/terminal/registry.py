"""Terminal slot registry: reconciles logical terminals with backend sessions."""

from __future__ import annotations

import logging as py_logging
import threading
import time
from collections import deque
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

from pterm.backends.base import NONE_KIND, SessionBackend
from pterm.directory import resolve_directory
from pterm.errors import (
    BackendUnavailable,
    ExitCode,
    InvalidSlotReference,
    PtermError,
    SessionCreateFailed,
)
from pterm.naming import SESSION_PREFIX, default_display_name, normalize_label, normalize_session_id
from pterm.retry import RetryPolicy, wait_until
from pterm.terminal.host import TerminalHost, ViewClosedError
from pterm.terminal.models import CycleDirection, TerminalSlot, Visibility
from pterm.terminal.view_state import ViewStateStore

logger = py_logging.getLogger(__name__)

SlotRef = TerminalSlot | int

MAX_EVENTS = 1000


@dataclass(frozen=True)
class RegistryEvent:
    slot_id: int
    step: str
    message: str


class TerminalRegistry:
    """Owns terminal slots, the current pointer and their backend sessions.

    Slots keep insertion order, which is the order ``cycle`` walks. Allocation
    is serialised per session id so concurrent requests for one name can never
    produce two slots; every other mutation runs under the registry lock.
    """

    def __init__(
        self,
        *,
        backend: SessionBackend,
        host: TerminalHost,
        view_store: ViewStateStore | None = None,
        session_prefix: str = SESSION_PREFIX,
        ready_policy: RetryPolicy | None = None,
        default_directory: Callable[[], str | Path] | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._backend = backend
        self._host = host
        self._views = view_store or ViewStateStore(host, sleep=sleep)
        self._prefix = session_prefix
        self._ready_policy = ready_policy or RetryPolicy()
        self._default_directory = default_directory or resolve_directory
        self._sleep = sleep
        self._slots: dict[int, TerminalSlot] = {}
        self._current_id: int | None = None
        self._next_id = 1
        self._lock = threading.RLock()
        self._name_locks: dict[str, threading.Lock] = {}
        self._name_locks_guard = threading.Lock()
        self._events: deque[RegistryEvent] = deque(maxlen=MAX_EVENTS)

    @property
    def backend(self) -> SessionBackend:
        return self._backend

    @property
    def views(self) -> ViewStateStore:
        return self._views

    @property
    def current(self) -> TerminalSlot | None:
        with self._lock:
            if self._current_id is None:
                return None
            return self._slots[self._current_id]

    def __len__(self) -> int:
        with self._lock:
            return len(self._slots)

    def list_slots(self) -> list[TerminalSlot]:
        with self._lock:
            return list(self._slots.values())

    def get(self, slot_id: int) -> TerminalSlot:
        return self._resolve(slot_id)

    def find_by_session(self, session_id: str) -> TerminalSlot | None:
        with self._lock:
            for slot in self._slots.values():
                if slot.session_id == session_id:
                    return slot
        return None

    def list_events(self) -> list[RegistryEvent]:
        with self._lock:
            return list(self._events)

    def find_or_allocate(
        self,
        display_name: str | None = None,
        working_directory: str | Path | None = None,
    ) -> TerminalSlot:
        """Return the single slot for a logical name, creating it when missing.

        Backend trouble never raises here: the slot degrades to a bare
        terminal (``backend_kind == "none"``) and the user is warned.
        """
        if normalize_label(display_name):
            session_id = normalize_session_id(display_name, slot_id=0, prefix=self._prefix)
            with self._locked_name(session_id):
                existing = self.find_by_session(session_id)
                if existing is not None:
                    logger.debug("registry-reuse slot=%s session=%s", existing.slot_id, session_id)
                    return existing
                return self._allocate(session_id, display_name, working_directory)

        # A synthesized id must name a new terminal, so skip ids a user label already took.
        while True:
            reserved_id = self._reserve_id()
            session_id = normalize_session_id(None, slot_id=reserved_id, prefix=self._prefix)
            with self._locked_name(session_id):
                taken = self.find_by_session(session_id)
                if taken is None:
                    return self._allocate(session_id, None, working_directory, slot_id=reserved_id)
            logger.debug("registry-skip id=%s session=%s owner=%s", reserved_id, session_id, taken.slot_id)

    def show(self, slot: SlotRef) -> TerminalSlot:
        with self._lock:
            resolved = self._resolve(slot)
            self._focus(resolved)
            return resolved

    def toggle(self, slot: SlotRef) -> TerminalSlot:
        with self._lock:
            resolved = self._resolve(slot)
            if resolved.is_open:
                self._close_view(resolved)
            else:
                self._focus(resolved)
            return resolved

    def close(self, slot: SlotRef, *, destroy_backend: bool = False) -> TerminalSlot:
        with self._lock:
            resolved = self._resolve(slot)
            order = list(self._slots)
            index = order.index(resolved.slot_id)
            del self._slots[resolved.slot_id]
            if self._current_id == resolved.slot_id:
                remaining = list(self._slots)
                self._current_id = remaining[index % len(remaining)] if remaining else None
            resolved.visibility = Visibility.DESTROYED

        self._views.discard(resolved.slot_id)
        self._host.destroy_view(resolved.slot_id)
        self._drop_name_lock(resolved.session_id)
        if destroy_backend and resolved.persistent:
            if not self._backend.kill(resolved.session_id):
                self._warn(
                    resolved.slot_id,
                    PtermError(
                        f"Could not kill session {resolved.session_id}",
                        code=ExitCode.SESSION_ERROR,
                        hint="Kill it with the multiplexer directly.",
                    ),
                )
        kept = "destroyed" if destroy_backend and resolved.persistent else "kept"
        self._record(resolved.slot_id, "close", f"Closed; session {resolved.session_id} {kept}.")
        return resolved

    def cycle(
        self,
        direction: CycleDirection | str = CycleDirection.FORWARD,
        *,
        working_directory: str | Path | None = None,
    ) -> TerminalSlot:
        step = CycleDirection(direction).step
        with self._lock:
            if self._slots:
                current = self._slots[self._current_id]
                if current.is_open:
                    self._close_view(current)
                order = list(self._slots)
                target = self._slots[order[(order.index(current.slot_id) + step) % len(order)]]
                self._current_id = target.slot_id
                self._open(target)
                self._record(target.slot_id, "cycle", f"Cycled {CycleDirection(direction).value}.")
                return target
        return self.find_or_allocate(None, working_directory)

    def rename(self, slot: SlotRef, new_display_name: str) -> TerminalSlot:
        label = new_display_name.strip()
        if not label:
            raise PtermError(
                "Terminal name cannot be empty.",
                code=ExitCode.VALIDATION_ERROR,
                hint="Provide a non-blank name.",
            )
        with self._lock:
            resolved = self._resolve(slot)
            previous = resolved.display_name
            resolved.display_name = label
        self._record(resolved.slot_id, "rename", f"Renamed '{previous}' -> '{label}'.")
        return resolved

    def kill_all(self) -> list[str]:
        """Destroy every slot and its session; numbering restarts at 1 afterwards."""
        with self._lock:
            snapshot = list(self._slots.values())
            self._slots.clear()
            self._current_id = None
            self._next_id = 1
            for slot in snapshot:
                slot.visibility = Visibility.DESTROYED

        killed: list[str] = []
        for slot in snapshot:
            self._views.discard(slot.slot_id)
            self._host.destroy_view(slot.slot_id)
            self._drop_name_lock(slot.session_id)
            if slot.persistent and self._backend.kill(slot.session_id):
                killed.append(slot.session_id)
        self._views.clear()
        self._record(0, "kill-all", f"Removed {len(snapshot)} terminals; killed {len(killed)} sessions.")
        return killed

    def _allocate(
        self,
        session_id: str,
        display_name: str | None,
        working_directory: str | Path | None,
        *,
        slot_id: int | None = None,
    ) -> TerminalSlot:
        directory = str(working_directory or self._default_directory())
        backend_kind, adopted = self._provision(session_id, directory)

        if slot_id is None:
            slot_id = self._reserve_id()
        label = (display_name or "").strip() or default_display_name(slot_id)
        slot = TerminalSlot(
            slot_id=slot_id,
            display_name=label,
            session_id=session_id,
            working_directory=directory,
            backend_kind=backend_kind,
            visibility=Visibility.OPEN,
            adopted=adopted,
        )
        with self._lock:
            self._hide_current()
        self._host.open_view(slot, self._attach_command(slot))
        with self._lock:
            self._slots[slot_id] = slot
            self._current_id = slot_id
        origin = "adopted" if adopted else "created"
        self._record(
            slot_id,
            "allocate",
            f"{origin} '{label}' session={session_id} backend={backend_kind} dir={directory}",
        )
        return slot

    def _provision(self, session_id: str, directory: str) -> tuple[str, bool]:
        backend = self._backend
        if backend.name == NONE_KIND:
            return NONE_KIND, False
        if not backend.is_available():
            self._warn(
                0,
                BackendUnavailable(
                    f"{backend.name} is not installed; using a regular terminal",
                    hint=f"Install {backend.name} to keep sessions alive.",
                ),
            )
            return NONE_KIND, False
        if backend.exists(session_id):
            logger.info("registry-adopt session=%s backend=%s", session_id, backend.name)
            return backend.name, True
        if not backend.create(session_id, directory):
            self._warn(
                0,
                SessionCreateFailed(
                    f"Failed to create {backend.name} session {session_id}, using regular terminal"
                ),
            )
            return NONE_KIND, False
        ready = wait_until(
            lambda: backend.exists(session_id),
            policy=self._ready_policy,
            sleep=self._sleep,
            label=f"session-ready session={session_id}",
        )
        if not ready:
            self._warn(
                0,
                SessionCreateFailed(
                    f"{backend.name} session {session_id} did not become ready, using regular terminal"
                ),
            )
            return NONE_KIND, False
        return backend.name, False

    def _attach_command(self, slot: TerminalSlot) -> list[str] | None:
        if not slot.persistent:
            return None
        return self._backend.attach_command(slot.session_id, slot.working_directory)

    def _hide_current(self) -> None:
        current = self.current
        if current is not None and current.is_open:
            self._close_view(current)

    def _focus(self, slot: TerminalSlot) -> None:
        if self._current_id != slot.slot_id:
            self._hide_current()
            self._current_id = slot.slot_id
        if not slot.is_open:
            self._open(slot)

    def _open(self, slot: TerminalSlot) -> None:
        try:
            self._host.show_view(slot.slot_id)
        except ViewClosedError:
            logger.debug("registry-reopen slot=%s view was gone", slot.slot_id)
            self._host.open_view(slot, self._attach_command(slot))
        slot.visibility = Visibility.OPEN
        self._views.restore(slot.slot_id)

    def _close_view(self, slot: TerminalSlot) -> None:
        self._views.save(slot.slot_id)
        try:
            self._host.hide_view(slot.slot_id)
        except ViewClosedError:
            logger.debug("registry-hide slot=%s view already gone", slot.slot_id)
        slot.visibility = Visibility.CLOSED

    def _resolve(self, slot: SlotRef) -> TerminalSlot:
        slot_id = slot.slot_id if isinstance(slot, TerminalSlot) else slot
        with self._lock:
            live = self._slots.get(slot_id)
        if live is None or (isinstance(slot, TerminalSlot) and live is not slot):
            raise InvalidSlotReference(
                f"Terminal {slot_id} does not exist",
                hint="It was closed or never created.",
            )
        return live

    def _reserve_id(self) -> int:
        with self._lock:
            slot_id = self._next_id
            self._next_id += 1
            return slot_id

    @contextmanager
    def _locked_name(self, session_id: str) -> Iterator[None]:
        while True:
            with self._name_locks_guard:
                lock = self._name_locks.get(session_id)
                if lock is None:
                    lock = self._name_locks[session_id] = threading.Lock()
            lock.acquire()
            with self._name_locks_guard:
                if self._name_locks.get(session_id) is lock:
                    break
            # Dropped while we waited; a newer lock guards this name now.
            lock.release()
        try:
            yield
        finally:
            lock.release()

    def _drop_name_lock(self, session_id: str) -> None:
        with self._name_locks_guard:
            lock = self._name_locks.get(session_id)
            if lock is not None and not lock.locked():
                del self._name_locks[session_id]

    def _warn(self, slot_id: int, error: PtermError) -> None:
        self._record(slot_id, "warning", str(error), level=py_logging.WARNING)
        self._host.notify(str(error), py_logging.WARNING)

    def _record(self, slot_id: int, step: str, message: str, *, level: int = py_logging.INFO) -> None:
        with self._lock:
            self._events.append(RegistryEvent(slot_id=slot_id, step=step, message=message))
        logger.log(level, "registry-event slot=%s step=%s message=%s", slot_id, step, message)
