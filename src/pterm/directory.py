"""Working directory resolution for new terminal sessions."""

from __future__ import annotations

import logging as py_logging
import os
import subprocess
from collections.abc import Callable
from pathlib import Path

from pterm.backends.base import CommandRunner

logger = py_logging.getLogger(__name__)

GIT_TIMEOUT_SECONDS = 3.0


def git_toplevel(directory: str | Path, *, runner: CommandRunner = subprocess.run) -> Path | None:
    try:
        result = runner(
            ["git", "-C", str(directory), "rev-parse", "--show-toplevel"],
            capture_output=True,
            text=True,
            check=False,
            timeout=GIT_TIMEOUT_SECONDS,
        )
    except (OSError, subprocess.SubprocessError):
        logger.debug("git toplevel lookup failed directory=%s", directory, exc_info=True)
        return None
    if result.returncode != 0:
        return None
    root = (result.stdout or "").strip()
    if not root:
        return None
    path = Path(root)
    return path if path.is_dir() else None


def _safe_cwd(cwd: Callable[[], str]) -> Path | None:
    try:
        value = Path(cwd())
    except OSError:
        # The process directory may have been deleted underneath us.
        return None
    return value if value.is_dir() else None


def resolve_directory(
    explicit_dir: str | Path | None = None,
    *,
    current_file: str | Path | None = None,
    runner: CommandRunner = subprocess.run,
    cwd: Callable[[], str] = os.getcwd,
    home: Callable[[], Path] = Path.home,
) -> Path:
    """Pick the directory a new session starts in.

    Order: explicit directory, the current file's git root (or its directory
    outside version control), the process working directory, then home.
    """
    if explicit_dir:
        candidate = Path(explicit_dir).expanduser()
        if candidate.is_dir():
            return candidate.resolve()
        logger.debug("explicit directory ignored path=%s", candidate)

    if current_file:
        parent = Path(current_file).expanduser().parent
        if parent.is_dir():
            root = git_toplevel(parent, runner=runner)
            return root if root is not None else parent.resolve()

    working = _safe_cwd(cwd)
    if working is not None:
        return working

    try:
        return home()
    except (KeyError, RuntimeError):
        return Path(os.sep)
