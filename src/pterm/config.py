"""XDG config loading/saving."""

from __future__ import annotations

import os
import sys
from contextlib import suppress
from pathlib import Path
from typing import Literal, cast

from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing_extensions import TypedDict

if sys.version_info >= (3, 11):
    import tomllib
else:  # pragma: no cover
    import tomli as tomllib

from pterm.naming import SESSION_PREFIX
from pterm.retry import RetryPolicy

DEFAULT_CONFIG_PATH = Path("~/.config/pterm/config.toml").expanduser()
BACKEND_ENV = "PTERM_BACKEND"

BackendChoice = Literal["auto", "tmux", "zellij", "abduco", "none"]
DEFAULT_BACKEND: BackendChoice = "auto"
DEFAULT_COMMAND_TIMEOUT = 5.0
DEFAULT_READY_ATTEMPTS = 6
DEFAULT_READY_BACKOFF = 0.05
DEFAULT_RESTORE_ATTEMPTS = 4
DEFAULT_LOG_LEVEL = "INFO"

_VALID_BACKENDS = {"auto", "tmux", "zellij", "abduco", "none"}
_VALID_PRESETS = {"git", "dev", "test", "claude"}
_VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARN", "WARNING", "ERROR"}


class PresetCommands(TypedDict, total=False):
    git: str
    dev: str
    test: str
    claude: str


class AppConfig(BaseModel):
    model_config = ConfigDict(validate_assignment=True)

    backend: BackendChoice = DEFAULT_BACKEND
    session_prefix: str = SESSION_PREFIX
    shell: str = ""
    command_timeout_seconds: float = Field(default=DEFAULT_COMMAND_TIMEOUT, gt=0, le=120)
    ready_max_attempts: int = Field(default=DEFAULT_READY_ATTEMPTS, ge=1, le=50)
    ready_initial_backoff_seconds: float = Field(default=DEFAULT_READY_BACKOFF, gt=0, le=5)
    restore_max_attempts: int = Field(default=DEFAULT_RESTORE_ATTEMPTS, ge=1, le=50)
    log_level: str = DEFAULT_LOG_LEVEL
    preset_commands: PresetCommands = Field(default_factory=lambda: PresetCommands())

    @field_validator("session_prefix")
    @classmethod
    def _validate_prefix(cls, value: str) -> str:
        if not value or any(char.isspace() or char in ".:" for char in value):
            raise ValueError(f"Invalid session prefix: {value!r}")
        return value

    @field_validator("log_level")
    @classmethod
    def _validate_log_level(cls, value: str) -> str:
        normalized = value.strip().upper()
        if normalized not in _VALID_LOG_LEVELS:
            raise ValueError(f"Invalid log level: {value}")
        return normalized

    @field_validator("preset_commands", mode="before")
    @classmethod
    def _validate_presets(cls, value: object) -> object:
        unknown = sorted(set(value) - _VALID_PRESETS) if isinstance(value, dict) else []
        if unknown:
            raise ValueError(f"Unknown presets: {', '.join(unknown)}")
        return value

    def ready_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_attempts=self.ready_max_attempts,
            initial_backoff_seconds=self.ready_initial_backoff_seconds,
        )

    def restore_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_attempts=self.restore_max_attempts,
            initial_backoff_seconds=self.ready_initial_backoff_seconds,
        )


def get_config_path(path: str | Path | None = None) -> Path:
    if path is None:
        return DEFAULT_CONFIG_PATH
    return Path(path).expanduser()


def _escape(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


def _toml_scalar(value: object) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return repr(value)
    if isinstance(value, str):
        return f'"{_escape(value)}"'
    raise TypeError(f"Unsupported TOML scalar type: {type(value)!r}")


def _positive_number(value: object, *, upper: float) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if value <= 0 or value > upper:
        return None
    return float(value)


def _bounded_int(value: object, *, lower: int, upper: int) -> int | None:
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    if value < lower or value > upper:
        return None
    return value


def _normalize_preset_commands(value: object) -> PresetCommands:
    normalized = PresetCommands()
    if not isinstance(value, dict):
        return normalized
    for kind, command in value.items():
        if not isinstance(kind, str) or not isinstance(command, str):
            continue
        key = kind.strip().lower()
        if key in _VALID_PRESETS and command.strip():
            normalized[key] = command.strip()  # type: ignore[literal-required]
    return normalized


def _sanitize(raw: dict[str, object]) -> AppConfig:
    cfg = AppConfig()

    backend = raw.get("backend", cfg.backend)
    if isinstance(backend, str) and backend.strip().lower() in _VALID_BACKENDS:
        cfg.backend = cast(BackendChoice, backend.strip().lower())

    prefix = raw.get("session_prefix", cfg.session_prefix)
    if isinstance(prefix, str):
        with suppress(ValueError):
            cfg.session_prefix = prefix

    shell = raw.get("shell", cfg.shell)
    if isinstance(shell, str):
        cfg.shell = shell.strip()

    timeout = _positive_number(raw.get("command_timeout_seconds"), upper=120)
    if timeout is not None:
        cfg.command_timeout_seconds = timeout

    ready_attempts = _bounded_int(raw.get("ready_max_attempts"), lower=1, upper=50)
    if ready_attempts is not None:
        cfg.ready_max_attempts = ready_attempts

    ready_backoff = _positive_number(raw.get("ready_initial_backoff_seconds"), upper=5)
    if ready_backoff is not None:
        cfg.ready_initial_backoff_seconds = ready_backoff

    restore_attempts = _bounded_int(raw.get("restore_max_attempts"), lower=1, upper=50)
    if restore_attempts is not None:
        cfg.restore_max_attempts = restore_attempts

    log_level = raw.get("log_level", cfg.log_level)
    if isinstance(log_level, str):
        with suppress(ValueError):
            cfg.log_level = log_level

    cfg.preset_commands = _normalize_preset_commands(raw.get("preset_commands", {}))
    return cfg


def _apply_env(cfg: AppConfig) -> AppConfig:
    env_backend = os.getenv(BACKEND_ENV, "").strip().lower()
    if env_backend in _VALID_BACKENDS:
        cfg.backend = cast(BackendChoice, env_backend)
    return cfg


def load_config(path: str | Path | None = None) -> AppConfig:
    resolved = get_config_path(path)
    if not resolved.exists():
        return _apply_env(AppConfig())
    try:
        with resolved.open("rb") as handle:
            raw = tomllib.load(handle)
    except (tomllib.TOMLDecodeError, OSError):
        return _apply_env(AppConfig())
    return _apply_env(_sanitize(raw))


def save_config(config: AppConfig, path: str | Path | None = None) -> Path:
    resolved = get_config_path(path)
    resolved.parent.mkdir(parents=True, exist_ok=True)

    lines = [
        f"backend = {_toml_scalar(config.backend)}",
        f"session_prefix = {_toml_scalar(config.session_prefix)}",
        f"shell = {_toml_scalar(config.shell)}",
        f"command_timeout_seconds = {_toml_scalar(config.command_timeout_seconds)}",
        f"ready_max_attempts = {_toml_scalar(config.ready_max_attempts)}",
        f"ready_initial_backoff_seconds = {_toml_scalar(config.ready_initial_backoff_seconds)}",
        f"restore_max_attempts = {_toml_scalar(config.restore_max_attempts)}",
        f"log_level = {_toml_scalar(config.log_level)}",
    ]
    if config.preset_commands:
        lines.append("")
        lines.append("[preset_commands]")
        for kind, command in sorted(config.preset_commands.items()):
            lines.append(f"{kind} = {_toml_scalar(command)}")

    resolved.write_text("\n".join(lines) + "\n", encoding="utf-8")
    with suppress(OSError):
        resolved.chmod(0o600)
    return resolved
