"""zellij session adapter."""

from __future__ import annotations

from pterm.backends.base import SessionBackend

_EXITED_MARKER = "EXITED"


class ZellijBackend(SessionBackend):
    name = "zellij"
    executable = "zellij"

    def _sessions(self) -> dict[str, bool]:
        """Map session name to whether it is still running."""
        sessions: dict[str, bool] = {}
        for line in self._stdout_lines(["zellij", "list-sessions", "--no-formatting"]):
            name = line.split()[0]
            sessions[name] = _EXITED_MARKER not in line
        return sessions

    def exists(self, session_id: str) -> bool:
        return self._sessions().get(session_id, False)

    def create(self, session_id: str, directory: str) -> bool:
        return self._succeeds(
            ["zellij", "attach", "--create-background", session_id],
            cwd=directory or None,
        )

    def kill(self, session_id: str) -> bool:
        killed = self._succeeds(["zellij", "kill-session", session_id])
        # Killed zellij sessions stay resurrectable until deleted.
        deleted = self._succeeds(["zellij", "delete-session", session_id])
        return killed or deleted

    def list(self) -> set[str]:
        return {name for name, running in self._sessions().items() if running}

    def attach_command(self, session_id: str, directory: str | None = None) -> list[str] | None:
        return ["zellij", "attach", session_id]

    def send_text(self, session_id: str, text: str) -> bool:
        payload = text if text.endswith("\n") else f"{text}\n"
        return self._succeeds(["zellij", "--session", session_id, "action", "write-chars", payload])
