"""Predefined terminals and their startup commands."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from pterm.errors import ExitCode, PtermError


@dataclass(frozen=True)
class PredefinedTerminal:
    kind: str
    display_name: str
    description: str


@dataclass(frozen=True)
class ProjectCommand:
    marker: str
    dev: str
    test: str


PREDEFINED_TERMINALS: dict[str, PredefinedTerminal] = {
    "git": PredefinedTerminal("git", "Git", "Git terminal"),
    "dev": PredefinedTerminal("dev", "Dev Server", "Dev server terminal"),
    "test": PredefinedTerminal("test", "Test", "Test terminal"),
    "claude": PredefinedTerminal("claude", "Claude", "Claude terminal"),
}

FIXED_COMMANDS = {
    "git": "git status",
    "claude": "claude",
}

PROJECT_COMMANDS: tuple[ProjectCommand, ...] = (
    ProjectCommand(marker="package.json", dev="npm run dev", test="npm test"),
    ProjectCommand(marker="Cargo.toml", dev="cargo run", test="cargo test"),
)

FALLBACK_COMMANDS = {
    "dev": "echo 'No dev command detected. Run your dev server manually.'",
    "test": "echo 'No test command detected. Run your tests manually.'",
}


def predefined_choices() -> tuple[str, ...]:
    return tuple(PREDEFINED_TERMINALS)


def get_predefined(kind: str) -> PredefinedTerminal:
    normalized = kind.strip().lower()
    preset = PREDEFINED_TERMINALS.get(normalized)
    if preset is None:
        raise PtermError(
            f"Unknown predefined terminal: {kind}",
            code=ExitCode.VALIDATION_ERROR,
            hint=f"Use one of: {', '.join(predefined_choices())}.",
        )
    return preset


def detect_project_command(kind: str, directory: str | Path) -> str:
    """Pick the dev/test command for the project rooted at ``directory``."""
    root = Path(directory)
    for candidate in PROJECT_COMMANDS:
        if (root / candidate.marker).is_file():
            return candidate.dev if kind == "dev" else candidate.test
    return FALLBACK_COMMANDS[kind]


def startup_command(
    kind: str,
    directory: str | Path,
    *,
    overrides: Mapping[str, str] | None = None,
) -> str:
    preset = get_predefined(kind)
    if overrides and overrides.get(preset.kind):
        return overrides[preset.kind]
    if preset.kind in FIXED_COMMANDS:
        return FIXED_COMMANDS[preset.kind]
    return detect_project_command(preset.kind, directory)
