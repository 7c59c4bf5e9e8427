from __future__ import annotations

import subprocess

import pytest

from pterm.backends import (
    AbducoBackend,
    NullBackend,
    TmuxBackend,
    ZellijBackend,
    build_backend,
    select_backend,
)
from pterm.errors import BackendUnavailable, PtermError


def _cp(returncode: int, stdout: str = "", stderr: str = "") -> subprocess.CompletedProcess:
    return subprocess.CompletedProcess(args=[], returncode=returncode, stdout=stdout, stderr=stderr)


class _Runner:
    def __init__(self, responses: dict[tuple[str, ...], subprocess.CompletedProcess] | None = None) -> None:
        self.responses = responses or {}
        self.calls: list[tuple[list[str], dict[str, object]]] = []

    def __call__(self, argv: list[str], **kwargs: object) -> subprocess.CompletedProcess:
        self.calls.append((list(argv), kwargs))
        return self.responses.get(tuple(argv), _cp(0))


def _installed(_: str) -> str:
    return "/usr/bin/found"


def _missing(_: str) -> None:
    return None


def test_tmux_commands_target_exact_session_names() -> None:
    runner = _Runner()
    backend = TmuxBackend(runner=runner, which=_installed)

    assert backend.exists("pterm-git")
    assert backend.create("pterm-git", "/repo")
    assert backend.kill("pterm-git")

    assert [call[0] for call in runner.calls] == [
        ["tmux", "has-session", "-t", "=pterm-git"],
        ["tmux", "new-session", "-d", "-s", "pterm-git", "-c", "/repo"],
        ["tmux", "kill-session", "-t", "=pterm-git"],
    ]
    assert backend.attach_command("pterm-git") == ["tmux", "attach-session", "-t", "=pterm-git"]


def test_tmux_runner_receives_timeout_and_no_check() -> None:
    runner = _Runner()
    TmuxBackend(runner=runner, which=_installed, timeout_seconds=2.5).exists("pterm-git")

    kwargs = runner.calls[0][1]
    assert kwargs["timeout"] == 2.5
    assert kwargs["check"] is False
    assert kwargs["capture_output"] is True


def test_tmux_list_sessions_parses_names() -> None:
    runner = _Runner({("tmux", "list-sessions", "-F", "#{session_name}"): _cp(0, "pterm-git\nwork\n\n")})

    assert TmuxBackend(runner=runner, which=_installed).list() == {"pterm-git", "work"}


def test_tmux_list_without_server_is_empty() -> None:
    runner = _Runner({("tmux", "list-sessions", "-F", "#{session_name}"): _cp(1, stderr="no server running")})

    assert TmuxBackend(runner=runner, which=_installed).list() == set()


def test_tmux_send_text_types_literally_then_presses_enter() -> None:
    runner = _Runner()

    assert TmuxBackend(runner=runner, which=_installed).send_text("pterm-git", "git status\n")
    assert runner.calls[0][0] == [
        "tmux",
        "send-keys", "-t", "=pterm-git:", "-l", "git status", ";",
        "send-keys", "-t", "=pterm-git:", "Enter",
    ]


def test_tmux_send_keys_targets_a_pane_not_a_bare_session() -> None:
    runner = _Runner()
    backend = TmuxBackend(runner=runner, which=_installed)

    assert backend.send_text("pterm-git", "\n")

    argv = runner.calls[0][0]
    assert argv == ["tmux", "send-keys", "-t", "=pterm-git:", "Enter"]
    targets = [argv[index + 1] for index, arg in enumerate(argv) if arg == "-t"]
    assert all(target.endswith(":") for target in targets)


def test_tmux_send_failure_is_reported() -> None:
    argv = ("tmux", "send-keys", "-t", "=pterm-git:", "-l", "ls", ";", "send-keys", "-t", "=pterm-git:", "Enter")
    runner = _Runner({argv: _cp(1, stderr="can't find pane: =pterm-git:")})

    assert TmuxBackend(runner=runner, which=_installed).send_text("pterm-git", "ls") is False


def test_backend_failures_become_false_not_exceptions() -> None:
    def exploding(argv: list[str], **_: object) -> subprocess.CompletedProcess:
        raise FileNotFoundError(argv[0])

    def slow(argv: list[str], **_: object) -> subprocess.CompletedProcess:
        raise subprocess.TimeoutExpired(argv, 5)

    for runner in (exploding, slow):
        backend = TmuxBackend(runner=runner, which=_installed)
        assert backend.exists("pterm-git") is False
        assert backend.create("pterm-git", "/repo") is False
        assert backend.kill("pterm-git") is False
        assert backend.list() == set()
        assert backend.send_text("pterm-git", "ls") is False


def test_non_zero_exit_reports_false() -> None:
    runner = _Runner({("tmux", "has-session", "-t", "=pterm-git"): _cp(1, stderr="can't find session")})

    assert TmuxBackend(runner=runner, which=_installed).exists("pterm-git") is False


def test_missing_binary_skips_runner_entirely() -> None:
    runner = _Runner()
    backend = TmuxBackend(runner=runner, which=_missing)

    assert backend.is_available() is False
    assert backend.create("pterm-git", "/repo") is False
    assert runner.calls == []


def test_zellij_ignores_exited_sessions() -> None:
    listing = (
        "pterm-git [Created 2h ago]\n"
        "pterm-old [Created 1d ago] (EXITED - attach to resurrect)\n"
    )
    runner = _Runner({("zellij", "list-sessions", "--no-formatting"): _cp(0, listing)})
    backend = ZellijBackend(runner=runner, which=_installed)

    assert backend.list() == {"pterm-git"}
    assert backend.exists("pterm-git") is True
    assert backend.exists("pterm-old") is False


def test_zellij_create_runs_in_directory_and_kill_deletes() -> None:
    runner = _Runner({("zellij", "kill-session", "pterm-git"): _cp(1)})
    backend = ZellijBackend(runner=runner, which=_installed)

    assert backend.create("pterm-git", "/repo")
    assert backend.kill("pterm-git")

    create_argv, create_kwargs = runner.calls[0]
    assert create_argv == ["zellij", "attach", "--create-background", "pterm-git"]
    assert create_kwargs["cwd"] == "/repo"
    assert runner.calls[-1][0] == ["zellij", "delete-session", "pterm-git"]
    assert backend.attach_command("pterm-git") == ["zellij", "attach", "pterm-git"]


def test_zellij_send_text_appends_newline() -> None:
    runner = _Runner()

    assert ZellijBackend(runner=runner, which=_installed).send_text("pterm-git", "ls")
    assert runner.calls[0][0] == ["zellij", "--session", "pterm-git", "action", "write-chars", "ls\n"]


def test_abduco_parses_listing_even_on_non_zero_exit() -> None:
    listing = (
        "Active sessions (on host dev)\n"
        "* Mon    2024-01-01 10:00:00\tpterm-git\n"
        "  Mon    2024-01-01 10:05:00\tpterm-test\n"
        "+ Mon    2024-01-01 10:06:00\tpterm-dead\n"
    )
    runner = _Runner({("abduco",): _cp(1, listing)})
    backend = AbducoBackend(runner=runner, which=_installed, shell="/bin/bash")

    assert backend.list() == {"pterm-git", "pterm-test"}
    assert backend.exists("pterm-test") is True


def test_abduco_create_kill_and_attach() -> None:
    runner = _Runner()
    backend = AbducoBackend(runner=runner, which=_installed, shell="/bin/zsh")

    assert backend.create("pterm-git", "/repo")
    assert backend.kill("pterm-git")

    assert runner.calls[0][0] == ["abduco", "-n", "pterm-git", "/bin/zsh"]
    assert runner.calls[0][1]["cwd"] == "/repo"
    assert runner.calls[1][0][:3] == ["pkill", "-TERM", "-f"]
    assert "pterm\\-git" in runner.calls[1][0][3]
    assert backend.attach_command("pterm-git") == ["abduco", "-a", "pterm-git"]
    assert backend.send_text("pterm-git", "ls") is False


def test_null_backend_never_persists() -> None:
    backend = NullBackend()

    assert backend.is_available() is False
    assert backend.exists("pterm-git") is False
    assert backend.create("pterm-git", "/repo") is False
    assert backend.list() == set()
    assert backend.attach_command("pterm-git") is None


def test_auto_selection_tries_backends_in_order() -> None:
    available = {"zellij", "abduco"}
    backend, degraded = select_backend("auto", which=lambda name: name if name in available else None)

    assert isinstance(backend, ZellijBackend)
    assert degraded is None


def test_explicit_backend_that_is_missing_degrades_without_fallthrough() -> None:
    available = {"zellij"}
    backend, degraded = select_backend("tmux", which=lambda name: name if name in available else None)

    assert isinstance(backend, NullBackend)
    assert isinstance(degraded, BackendUnavailable)
    assert "tmux" in degraded.hint


def test_auto_selection_with_nothing_installed_degrades() -> None:
    backend, degraded = select_backend("auto", which=_missing)

    assert backend.name == "none"
    assert isinstance(degraded, BackendUnavailable)


def test_none_preference_is_not_a_degradation() -> None:
    backend, degraded = select_backend("none", which=_installed)

    assert isinstance(backend, NullBackend)
    assert degraded is None


def test_build_backend_rejects_unknown_names() -> None:
    with pytest.raises(PtermError):
        build_backend("screen")
