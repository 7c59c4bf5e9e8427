"""Public CLI contract and entrypoint."""

from __future__ import annotations

import argparse
import logging as py_logging
import shlex
import shutil
import subprocess
import sys
from collections.abc import Callable, Sequence
from pathlib import Path

from .backends import CommandRunner
from .backends.base import Which
from .config import load_config
from .errors import ExitCode, PtermError, user_facing_error
from .logging import configure_logging, default_log_path, normalize_level
from .manager import TerminalManager, build_manager
from .presets import predefined_choices
from .terminal.host import HeadlessHost, TerminalHost
from .terminal.models import TerminalSlot

_VALID_BACKENDS = ("auto", "tmux", "zellij", "abduco", "none")
_VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARN", "ERROR")


def _log_level_type(value: str) -> str:
    normalized = normalize_level(value)
    if normalized not in _VALID_LOG_LEVELS:
        accepted = ", ".join(_VALID_LOG_LEVELS)
        raise argparse.ArgumentTypeError(f"--log-level must be one of: {accepted}")
    return normalized


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="pterm")
    parser.add_argument("--backend", choices=_VALID_BACKENDS, default=None)
    parser.add_argument("--config", type=Path, default=None)
    parser.add_argument("--log-level", type=_log_level_type, default=None)
    parser.add_argument("--log-file", type=Path, default=None)

    commands = parser.add_subparsers(dest="command", required=True)

    new = commands.add_parser("new", help="Create or reuse a named session and print its attach command")
    new.add_argument("--name", default=None)
    new.add_argument("--dir", type=Path, default=None)

    preset = commands.add_parser("open", help="Open a predefined terminal")
    preset.add_argument("kind", choices=predefined_choices())

    send = commands.add_parser("send", help="Send a line of text to a named session")
    send.add_argument("name")
    send.add_argument("text", nargs="+")

    commands.add_parser("sessions", help="List pterm sessions known to the backend")

    kill = commands.add_parser("kill-session", help="Kill one pterm session")
    kill.add_argument("session_id")

    commands.add_parser("kill-all", help="Kill every pterm session")
    return parser


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    return build_parser().parse_args(argv)


def _print_attach(manager: TerminalManager, slot: TerminalSlot) -> int:
    command = manager.registry.backend.attach_command(slot.session_id, slot.working_directory)
    if not slot.persistent or not command:
        raise PtermError(
            f"No multiplexer session for '{slot.display_name}'",
            code=ExitCode.BACKEND_UNAVAILABLE,
            hint="Install tmux, zellij or abduco, or pick one with --backend.",
        )
    print(shlex.join(command))
    return int(ExitCode.SUCCESS)


def run_command(namespace: argparse.Namespace, manager: TerminalManager) -> int:
    if namespace.command == "new":
        slot = manager.new(namespace.name, namespace.dir)
        return _print_attach(manager, slot)

    if namespace.command == "open":
        slot = manager.open_predefined(namespace.kind)
        return _print_attach(manager, slot)

    if namespace.command == "send":
        manager.new(namespace.name)
        manager.send_to_session(" ".join(namespace.text))
        return int(ExitCode.SUCCESS)

    if namespace.command == "sessions":
        for info in manager.list_sessions():
            status = "orphan" if info.orphan else f"terminal {info.slot_id}"
            print(f"{info.session_id}\t{status}")
        return int(ExitCode.SUCCESS)

    if namespace.command == "kill-session":
        if not manager.kill_session(namespace.session_id):
            raise PtermError(
                f"Could not kill session {namespace.session_id}",
                code=ExitCode.SESSION_ERROR,
                hint="Check the session name with `pterm sessions`.",
            )
        return int(ExitCode.SUCCESS)

    if namespace.command == "kill-all":
        killed = manager.kill_all()
        for info in manager.list_sessions():
            if manager.kill_session(info.session_id):
                killed.append(info.session_id)
        for session_id in killed:
            print(session_id)
        return int(ExitCode.SUCCESS)

    raise PtermError(f"Unknown command: {namespace.command}", code=ExitCode.INVALID_ARGS)


def main(
    argv: Sequence[str] | None = None,
    *,
    host_factory: Callable[[], TerminalHost] = HeadlessHost,
    runner: CommandRunner = subprocess.run,
    which: Which = shutil.which,
) -> int:
    log_path = default_log_path()
    logger = configure_logging(level="WARN")
    parser = build_parser()
    try:
        namespace = parser.parse_args(argv)
    except SystemExit as exc:
        if exc.code not in (None, 0):
            logger.warning("Argument parsing failed with exit code %s", exc.code)
        return int(exc.code or 0)

    config = load_config(namespace.config)
    if namespace.backend is not None:
        config.backend = namespace.backend
    if namespace.log_file is not None:
        log_path = namespace.log_file.expanduser()
    logger = configure_logging(level=namespace.log_level or config.log_level, log_file=log_path)

    try:
        manager = build_manager(host_factory(), config=config, runner=runner, which=which)
        logger.debug("Running command=%s backend=%s", namespace.command, manager.registry.backend.name)
        return run_command(namespace, manager)
    except PtermError as exc:
        logger.error(
            "Handled PtermError (code=%s): %s",
            int(exc.code),
            exc.message,
            exc_info=logger.isEnabledFor(py_logging.DEBUG),
        )
        print(user_facing_error(exc.message, hint=exc.hint), file=sys.stderr)
        return int(exc.code)
    except Exception:
        logger.exception("Unhandled exception in CLI entrypoint")
        print(user_facing_error("Unexpected runtime failure", hint=f"Inspect logs: {log_path}"), file=sys.stderr)
        return int(ExitCode.RUNTIME_ERROR)


def run(argv: Sequence[str] | None = None) -> int:
    return main(argv)
