"""Command facade consumed by the host UI and the CLI."""

from __future__ import annotations

import logging as py_logging
import shutil
import subprocess
import time
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from pterm.backends import CommandRunner, select_backend
from pterm.backends.base import Which
from pterm.config import AppConfig
from pterm.directory import resolve_directory
from pterm.errors import ExitCode, PtermError
from pterm.naming import normalize_session_id
from pterm.presets import get_predefined, startup_command
from pterm.retry import wait_until
from pterm.terminal.host import TerminalHost, ViewClosedError
from pterm.terminal.models import CycleDirection, TerminalSlot
from pterm.terminal.registry import TerminalRegistry
from pterm.terminal.view_state import ViewStateStore

logger = py_logging.getLogger(__name__)

CurrentFile = Callable[[], str | Path | None]


@dataclass(frozen=True)
class SessionInfo:
    session_id: str
    slot_id: int | None = None
    display_name: str = ""

    @property
    def orphan(self) -> bool:
        return self.slot_id is None


class TerminalManager:
    def __init__(
        self,
        registry: TerminalRegistry,
        host: TerminalHost,
        *,
        config: AppConfig | None = None,
        current_file: CurrentFile | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.registry = registry
        self.host = host
        self.config = config or AppConfig()
        self._current_file = current_file
        self._sleep = sleep

    @property
    def current(self) -> TerminalSlot | None:
        return self.registry.current

    def new(self, name: str | None = None, directory: str | Path | None = None) -> TerminalSlot:
        slot = self.registry.find_or_allocate(name, self._resolve_directory(directory))
        return self.registry.show(slot)

    def toggle_current(self) -> TerminalSlot:
        current = self.registry.current
        if current is None:
            return self.registry.find_or_allocate(None, self._resolve_directory())
        return self.registry.toggle(current)

    def close_current(self, *, destroy_backend: bool = False) -> TerminalSlot | None:
        current = self.registry.current
        if current is None:
            logger.debug("close-current skipped: no terminals")
            return None
        return self.registry.close(current, destroy_backend=destroy_backend)

    def cycle_forward(self) -> TerminalSlot:
        return self.registry.cycle(CycleDirection.FORWARD, working_directory=self._resolve_directory())

    def cycle_backward(self) -> TerminalSlot:
        return self.registry.cycle(CycleDirection.BACKWARD, working_directory=self._resolve_directory())

    def rename_current(self, new_name: str) -> TerminalSlot:
        current = self.registry.current
        if current is None:
            raise PtermError(
                "No terminal to rename.",
                code=ExitCode.VALIDATION_ERROR,
                hint="Open a terminal first.",
            )
        return self.registry.rename(current, new_name)

    def send_text(self, text: str) -> TerminalSlot:
        slot = self.registry.current
        if slot is None:
            slot = self.registry.find_or_allocate(None, self._resolve_directory())
        self._send(slot, text)
        return slot

    def send_to_session(self, text: str) -> TerminalSlot:
        """Type ``text`` into the current terminal's multiplexer session.

        Unlike ``send_text`` there is no host fallback: a bare terminal or a
        backend that rejects the input raises ``SESSION_ERROR``.
        """
        slot = self.registry.current
        if slot is None or not slot.persistent:
            raise PtermError(
                "No multiplexer session to send text to",
                code=ExitCode.SESSION_ERROR,
                hint="Install tmux or zellij, or pick one with --backend.",
            )
        if not self.registry.backend.send_text(slot.session_id, text):
            raise PtermError(
                f"Could not send text to session {slot.session_id}",
                code=ExitCode.SESSION_ERROR,
                hint=f"{self.registry.backend.name} rejected the input; abduco cannot inject text.",
            )
        return slot

    def kill_all(self) -> list[str]:
        return self.registry.kill_all()

    def list_sessions(self) -> list[SessionInfo]:
        """Backend sessions in this tool's namespace, with their owning terminal if any."""
        prefix = self.config.session_prefix
        sessions: list[SessionInfo] = []
        for session_id in sorted(self.registry.backend.list()):
            if not session_id.startswith(prefix):
                continue
            owner = self.registry.find_by_session(session_id)
            if owner is None:
                sessions.append(SessionInfo(session_id=session_id))
            else:
                sessions.append(
                    SessionInfo(
                        session_id=session_id,
                        slot_id=owner.slot_id,
                        display_name=owner.display_name,
                    )
                )
        return sessions

    def kill_session(self, session_id: str) -> bool:
        owner = self.registry.find_by_session(session_id)
        if owner is not None:
            self.registry.close(owner, destroy_backend=True)
            return True
        if not session_id.startswith(self.config.session_prefix):
            raise PtermError(
                f"Session {session_id} is not managed by pterm",
                code=ExitCode.VALIDATION_ERROR,
                hint=f"Only sessions prefixed with '{self.config.session_prefix}' can be killed.",
            )
        killed = self.registry.backend.kill(session_id)
        logger.info("kill-session session=%s killed=%s", session_id, killed)
        return killed

    def open_predefined(self, kind: str) -> TerminalSlot:
        """Open a named task terminal; a freshly created one gets its startup command."""
        preset = get_predefined(kind)
        session_id = normalize_session_id(
            preset.display_name,
            slot_id=0,
            prefix=self.config.session_prefix,
        )
        existed = self.registry.find_by_session(session_id) is not None
        directory = self._resolve_directory()
        slot = self.new(preset.display_name, directory)
        if existed or slot.adopted:
            logger.debug("predefined kind=%s reused slot=%s; startup skipped", preset.kind, slot.slot_id)
            return slot

        command = startup_command(
            preset.kind,
            slot.working_directory,
            overrides=self.config.preset_commands,
        )
        wait_until(
            lambda: self.host.view_ready(slot.slot_id),
            policy=self.config.ready_policy(),
            sleep=self._sleep,
            label=f"startup slot={slot.slot_id}",
        )
        self._send(slot, command)
        return slot

    def info(self) -> str:
        slot = self.registry.current
        if slot is None:
            return "No terminal"
        session = f" [{slot.backend_kind}: {slot.session_id}]" if slot.persistent else ""
        return (
            f"Terminal {slot.slot_id} '{slot.display_name}'{session} "
            f"({slot.visibility.value}, dir: {slot.working_directory})"
        )

    def _send(self, slot: TerminalSlot, text: str) -> None:
        if slot.persistent:
            if self.registry.backend.send_text(slot.session_id, text):
                return
            logger.warning(
                "send-text backend=%s session=%s rejected input; using terminal view",
                self.registry.backend.name,
                slot.session_id,
            )
        payload = text.rstrip("\r\n") + "\r"
        try:
            self.host.send(slot.slot_id, payload)
        except ViewClosedError as exc:
            raise PtermError(
                f"Terminal {slot.slot_id} has no running process",
                code=ExitCode.RUNTIME_ERROR,
                hint="Toggle the terminal open and retry.",
            ) from exc

    def _resolve_directory(self, directory: str | Path | None = None) -> Path:
        current_file = self._current_file() if self._current_file else None
        return resolve_directory(directory, current_file=current_file)


def build_manager(
    host: TerminalHost,
    *,
    config: AppConfig | None = None,
    runner: CommandRunner = subprocess.run,
    which: Which = shutil.which,
    current_file: CurrentFile | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> TerminalManager:
    cfg = config or AppConfig()
    backend, degraded = select_backend(
        cfg.backend,
        runner=runner,
        which=which,
        timeout_seconds=cfg.command_timeout_seconds,
        shell=cfg.shell,
    )
    if degraded is not None:
        host.notify(str(degraded), py_logging.WARNING)
    registry = TerminalRegistry(
        backend=backend,
        host=host,
        view_store=ViewStateStore(host, ready_policy=cfg.restore_policy(), sleep=sleep),
        session_prefix=cfg.session_prefix,
        ready_policy=cfg.ready_policy(),
        sleep=sleep,
    )
    return TerminalManager(registry, host, config=cfg, current_file=current_file, sleep=sleep)
