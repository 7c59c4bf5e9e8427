"""Pluggable multiplexer session backends."""

from __future__ import annotations

import logging as py_logging
import shutil
import subprocess

from pterm.backends.abduco import AbducoBackend
from pterm.backends.base import NONE_KIND, CommandRunner, NullBackend, SessionBackend, Which
from pterm.backends.tmux import TmuxBackend
from pterm.backends.zellij import ZellijBackend
from pterm.errors import BackendUnavailable, PtermError

logger = py_logging.getLogger(__name__)

BACKEND_TYPES: dict[str, type[SessionBackend]] = {
    TmuxBackend.name: TmuxBackend,
    ZellijBackend.name: ZellijBackend,
    AbducoBackend.name: AbducoBackend,
}
AUTO_ORDER: tuple[str, ...] = (TmuxBackend.name, ZellijBackend.name, AbducoBackend.name)

__all__ = [
    "AbducoBackend",
    "BACKEND_TYPES",
    "CommandRunner",
    "NONE_KIND",
    "NullBackend",
    "AUTO_ORDER",
    "SessionBackend",
    "TmuxBackend",
    "ZellijBackend",
    "build_backend",
    "select_backend",
]


def build_backend(
    name: str,
    *,
    runner: CommandRunner = subprocess.run,
    which: Which = shutil.which,
    timeout_seconds: float = 5.0,
    shell: str = "",
) -> SessionBackend:
    normalized = name.strip().lower()
    if normalized == NONE_KIND:
        return NullBackend(runner=runner, which=which, timeout_seconds=timeout_seconds)
    backend_type = BACKEND_TYPES.get(normalized)
    if backend_type is None:
        raise PtermError(
            f"Unknown backend: {name}",
            hint=f"Use one of: auto, {', '.join(AUTO_ORDER)}, {NONE_KIND}.",
        )
    if backend_type is AbducoBackend:
        return AbducoBackend(shell=shell, runner=runner, which=which, timeout_seconds=timeout_seconds)
    return backend_type(runner=runner, which=which, timeout_seconds=timeout_seconds)


def select_backend(
    preference: str = "auto",
    *,
    runner: CommandRunner = subprocess.run,
    which: Which = shutil.which,
    timeout_seconds: float = 5.0,
    shell: str = "",
) -> tuple[SessionBackend, BackendUnavailable | None]:
    """Pick the backend used for new terminals.

    Returns the backend plus the reason it degraded to bare terminals, if it
    did. An explicit preference that is not installed degrades rather than
    falling through to another multiplexer.
    """
    normalized = preference.strip().lower()
    candidates = AUTO_ORDER if normalized == "auto" else (normalized,)
    if normalized == NONE_KIND:
        logger.debug("backend-select preference=none")
        return build_backend(NONE_KIND, runner=runner, which=which), None

    for candidate in candidates:
        backend = build_backend(
            candidate,
            runner=runner,
            which=which,
            timeout_seconds=timeout_seconds,
            shell=shell,
        )
        if backend.is_available():
            logger.info("backend-select preference=%s selected=%s", normalized, candidate)
            return backend, None

    reason = BackendUnavailable(
        f"No multiplexer available for preference '{normalized}'",
        hint=f"Install one of: {', '.join(candidates)}; terminals will not persist.",
    )
    logger.warning("backend-select preference=%s selected=none reason=%s", normalized, reason.message)
    return build_backend(NONE_KIND, runner=runner, which=which), reason
