from __future__ import annotations

from pathlib import Path

import pytest

from pterm.backends.base import SessionBackend
from pterm.retry import RetryPolicy
from pterm.terminal import HeadlessHost, TerminalRegistry, ViewStateStore

_REGRESSION_TEST_FILES = {
    "test_registry.py",
    "test_registry_cycle.py",
}


@pytest.hookimpl(trylast=True)
def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    del config
    for item in items:
        path = Path(str(getattr(item, "path", item.fspath)))

        if "integration" in path.parts:
            item.add_marker(pytest.mark.integration)
            item.add_marker(pytest.mark.slow)

        if path.name in _REGRESSION_TEST_FILES:
            item.add_marker(pytest.mark.critical_regression)


class FakeBackend(SessionBackend):
    """In-memory multiplexer with switchable failure modes."""

    name = "tmux"
    executable = "tmux"

    def __init__(
        self,
        *,
        available: bool = True,
        fail_create: bool = False,
        ready_after: int = 0,
        sessions: set[str] | None = None,
    ) -> None:
        super().__init__(which=lambda _: "/usr/bin/tmux" if available else None)
        self.available = available
        self.fail_create = fail_create
        self.ready_after = ready_after
        self.sessions: set[str] = set(sessions or ())
        self.pending: dict[str, int] = {}
        self.created: list[tuple[str, str]] = []
        self.killed: list[str] = []
        self.sent: list[tuple[str, str]] = []

    def is_available(self) -> bool:
        return self.available

    def exists(self, session_id: str) -> bool:
        remaining = self.pending.get(session_id)
        if remaining:
            self.pending[session_id] = remaining - 1
            return False
        return session_id in self.sessions

    def create(self, session_id: str, directory: str) -> bool:
        self.created.append((session_id, directory))
        if self.fail_create:
            return False
        self.sessions.add(session_id)
        if self.ready_after:
            self.pending[session_id] = self.ready_after
        return True

    def kill(self, session_id: str) -> bool:
        self.killed.append(session_id)
        if session_id not in self.sessions:
            return False
        self.sessions.discard(session_id)
        return True

    def list(self) -> set[str]:
        return set(self.sessions)

    def attach_command(self, session_id: str, directory: str | None = None) -> list[str] | None:
        return ["tmux", "attach-session", "-t", f"={session_id}"]

    def send_text(self, session_id: str, text: str) -> bool:
        if session_id not in self.sessions:
            return False
        self.sent.append((session_id, text))
        return True


FAST_POLICY = RetryPolicy(max_attempts=3, initial_backoff_seconds=0.0)


def make_registry(
    backend: SessionBackend | None = None,
    host: HeadlessHost | None = None,
    *,
    tmp_dir: Path | None = None,
) -> tuple[TerminalRegistry, FakeBackend | SessionBackend, HeadlessHost]:
    resolved_backend = backend or FakeBackend()
    resolved_host = host or HeadlessHost()
    registry = TerminalRegistry(
        backend=resolved_backend,
        host=resolved_host,
        view_store=ViewStateStore(resolved_host, ready_policy=FAST_POLICY, sleep=lambda _: None),
        ready_policy=FAST_POLICY,
        default_directory=lambda: str(tmp_dir or Path.cwd()),
        sleep=lambda _: None,
    )
    return registry, resolved_backend, resolved_host


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def host() -> HeadlessHost:
    return HeadlessHost()


@pytest.fixture
def registry(backend: FakeBackend, host: HeadlessHost, tmp_path: Path) -> TerminalRegistry:
    built, _, _ = make_registry(backend, host, tmp_dir=tmp_path)
    return built


@pytest.fixture
def backend_factory() -> type[FakeBackend]:
    return FakeBackend


@pytest.fixture
def registry_factory(tmp_path: Path):
    def build(
        backend: SessionBackend | None = None,
        host: HeadlessHost | None = None,
    ) -> tuple[TerminalRegistry, SessionBackend, HeadlessHost]:
        return make_registry(backend, host, tmp_dir=tmp_path)

    return build
