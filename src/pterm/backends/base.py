"""Session backend contract shared by all multiplexer adapters."""

from __future__ import annotations

import logging as py_logging
import shutil
import subprocess
from abc import ABC, abstractmethod
from collections.abc import Callable

logger = py_logging.getLogger(__name__)

CommandRunner = Callable[..., subprocess.CompletedProcess]
Which = Callable[[str], str | None]

NONE_KIND = "none"


class SessionBackend(ABC):
    """Translate session operations into one multiplexer's CLI.

    Every operation reports failure as ``False`` or an empty result. A missing
    binary, a timeout or a non-zero exit never escapes as an exception.
    """

    name: str = NONE_KIND
    executable: str = ""

    def __init__(
        self,
        *,
        runner: CommandRunner = subprocess.run,
        which: Which = shutil.which,
        timeout_seconds: float = 5.0,
    ) -> None:
        self._runner = runner
        self._which = which
        self.timeout_seconds = timeout_seconds

    def is_available(self) -> bool:
        return bool(self.executable) and self._which(self.executable) is not None

    @abstractmethod
    def exists(self, session_id: str) -> bool: ...

    @abstractmethod
    def create(self, session_id: str, directory: str) -> bool: ...

    @abstractmethod
    def kill(self, session_id: str) -> bool: ...

    @abstractmethod
    def list(self) -> set[str]: ...

    @abstractmethod
    def attach_command(self, session_id: str, directory: str | None = None) -> list[str] | None: ...

    def send_text(self, session_id: str, text: str) -> bool:
        """Type ``text`` into the session; backends without input injection return False."""
        return False

    def _run(self, argv: list[str], *, cwd: str | None = None) -> subprocess.CompletedProcess | None:
        if not self.is_available():
            logger.debug("backend=%s unavailable; skipped argv=%s", self.name, argv)
            return None
        kwargs: dict[str, object] = {
            "capture_output": True,
            "text": True,
            "check": False,
            "timeout": self.timeout_seconds,
        }
        if cwd:
            kwargs["cwd"] = cwd
        try:
            result = self._runner(argv, **kwargs)
        except subprocess.TimeoutExpired:
            logger.warning("backend=%s command timed out argv=%s", self.name, argv)
            return None
        except (OSError, subprocess.SubprocessError) as exc:
            logger.warning("backend=%s command failed argv=%s error=%s", self.name, argv, exc)
            return None
        if result.returncode != 0:
            logger.debug(
                "backend=%s exit=%s argv=%s stderr=%s",
                self.name,
                result.returncode,
                argv,
                (result.stderr or "").strip()[:200],
            )
        return result

    def _succeeds(self, argv: list[str], *, cwd: str | None = None) -> bool:
        result = self._run(argv, cwd=cwd)
        return result is not None and result.returncode == 0

    def _stdout_lines(self, argv: list[str]) -> list[str]:
        result = self._run(argv)
        if result is None or result.returncode != 0:
            return []
        return [line.strip() for line in (result.stdout or "").splitlines() if line.strip()]


class NullBackend(SessionBackend):
    """Bare, non-persistent terminals; no multiplexer is involved."""

    name = NONE_KIND

    def is_available(self) -> bool:
        return False

    def exists(self, session_id: str) -> bool:
        return False

    def create(self, session_id: str, directory: str) -> bool:
        return False

    def kill(self, session_id: str) -> bool:
        return False

    def list(self) -> set[str]:
        return set()

    def attach_command(self, session_id: str, directory: str | None = None) -> list[str] | None:
        return None
