from __future__ import annotations

from pathlib import Path

import pytest

from pterm.errors import ExitCode, PtermError
from pterm.presets import (
    FALLBACK_COMMANDS,
    detect_project_command,
    get_predefined,
    predefined_choices,
    startup_command,
)


def test_predefined_choices_are_stable() -> None:
    assert predefined_choices() == ("git", "dev", "test", "claude")


def test_predefined_display_names() -> None:
    assert get_predefined("git").display_name == "Git"
    assert get_predefined(" DEV ").display_name == "Dev Server"


def test_unknown_predefined_kind_is_rejected() -> None:
    with pytest.raises(PtermError) as exc:
        get_predefined("docs")

    assert exc.value.code == ExitCode.VALIDATION_ERROR
    assert "git" in exc.value.hint


def test_fixed_commands_ignore_project_markers(tmp_path: Path) -> None:
    (tmp_path / "package.json").write_text("{}", encoding="utf-8")

    assert startup_command("git", tmp_path) == "git status"
    assert startup_command("claude", tmp_path) == "claude"


@pytest.mark.parametrize(
    ("marker", "dev", "test"),
    [
        ("package.json", "npm run dev", "npm test"),
        ("Cargo.toml", "cargo run", "cargo test"),
    ],
)
def test_project_markers_pick_dev_and_test_commands(tmp_path: Path, marker: str, dev: str, test: str) -> None:
    (tmp_path / marker).write_text("", encoding="utf-8")

    assert detect_project_command("dev", tmp_path) == dev
    assert detect_project_command("test", tmp_path) == test


def test_package_json_takes_precedence_over_cargo(tmp_path: Path) -> None:
    (tmp_path / "package.json").write_text("{}", encoding="utf-8")
    (tmp_path / "Cargo.toml").write_text("", encoding="utf-8")

    assert startup_command("test", tmp_path) == "npm test"


def test_unknown_project_falls_back_to_hint(tmp_path: Path) -> None:
    assert startup_command("dev", tmp_path) == FALLBACK_COMMANDS["dev"]
    assert startup_command("test", tmp_path) == FALLBACK_COMMANDS["test"]


def test_configured_override_wins(tmp_path: Path) -> None:
    (tmp_path / "package.json").write_text("{}", encoding="utf-8")

    assert startup_command("test", tmp_path, overrides={"test": "pytest -q"}) == "pytest -q"
    assert startup_command("dev", tmp_path, overrides={"test": "pytest -q"}) == "npm run dev"
