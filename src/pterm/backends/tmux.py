"""tmux session adapter."""

from __future__ import annotations

from pterm.backends.base import SessionBackend


def _target(session_id: str) -> str:
    # "=" forces an exact session-name match instead of tmux's prefix lookup.
    return f"={session_id}"


def _pane_target(session_id: str) -> str:
    # send-keys resolves a pane; the trailing ":" selects the session's active one.
    return f"{_target(session_id)}:"


class TmuxBackend(SessionBackend):
    name = "tmux"
    executable = "tmux"

    def exists(self, session_id: str) -> bool:
        return self._succeeds(["tmux", "has-session", "-t", _target(session_id)])

    def create(self, session_id: str, directory: str) -> bool:
        argv = ["tmux", "new-session", "-d", "-s", session_id]
        if directory:
            argv.extend(["-c", directory])
        return self._succeeds(argv)

    def kill(self, session_id: str) -> bool:
        return self._succeeds(["tmux", "kill-session", "-t", _target(session_id)])

    def list(self) -> set[str]:
        return set(self._stdout_lines(["tmux", "list-sessions", "-F", "#{session_name}"]))

    def attach_command(self, session_id: str, directory: str | None = None) -> list[str] | None:
        return ["tmux", "attach-session", "-t", _target(session_id)]

    def send_text(self, session_id: str, text: str) -> bool:
        target = _pane_target(session_id)
        payload = text.rstrip("\r\n")
        argv = ["tmux"]
        if payload:
            argv.extend(["send-keys", "-t", target, "-l", payload, ";"])
        argv.extend(["send-keys", "-t", target, "Enter"])
        return self._succeeds(argv)
