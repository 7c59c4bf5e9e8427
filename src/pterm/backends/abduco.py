"""abduco session adapter."""

from __future__ import annotations

import os
import re

from pterm.backends.base import SessionBackend

_HEADER = "Active sessions"
_TERMINATED = "+"


class AbducoBackend(SessionBackend):
    name = "abduco"
    executable = "abduco"

    def __init__(self, *, shell: str = "", **kwargs: object) -> None:
        super().__init__(**kwargs)
        self.shell = shell or os.environ.get("SHELL", "") or "/bin/sh"

    def exists(self, session_id: str) -> bool:
        return session_id in self.list()

    def create(self, session_id: str, directory: str) -> bool:
        return self._succeeds(["abduco", "-n", session_id, self.shell], cwd=directory or None)

    def kill(self, session_id: str) -> bool:
        # abduco has no kill command; the session server keeps its creation argv.
        pattern = f"^abduco -[nc] {re.escape(session_id)}( |$)"
        return self._succeeds(["pkill", "-TERM", "-f", pattern])

    def list(self) -> set[str]:
        # Listing exits non-zero when there are no sessions, so only stdout counts.
        result = self._run(["abduco"])
        if result is None:
            return set()
        sessions: set[str] = set()
        for raw in (result.stdout or "").splitlines():
            line = raw.strip()
            if not line or line.startswith(_HEADER) or "\t" not in line:
                continue
            if line.startswith(_TERMINATED):
                continue
            sessions.add(line.rsplit("\t", 1)[-1].strip())
        return sessions

    def attach_command(self, session_id: str, directory: str | None = None) -> list[str] | None:
        return ["abduco", "-a", session_id]
