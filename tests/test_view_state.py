from __future__ import annotations

from pterm.retry import RetryPolicy
from pterm.terminal import HeadlessHost, TerminalSlot, ViewClosedError, ViewState, ViewStateStore


def _host_with_view(slot_id: int = 1, *, rows: int = 100) -> HeadlessHost:
    host = HeadlessHost()
    host.open_view(
        TerminalSlot(slot_id=slot_id, display_name="Git", session_id="pterm-git", working_directory="/"),
        None,
    )
    host.views[slot_id].rows = rows
    return host


def _store(host: HeadlessHost, *, sleeps: list[float] | None = None, attempts: int = 3) -> ViewStateStore:
    recorder = sleeps if sleeps is not None else []
    return ViewStateStore(
        host,
        ready_policy=RetryPolicy(max_attempts=attempts, initial_backoff_seconds=0.01),
        sleep=recorder.append,
    )


def test_restore_clamps_row_when_content_shrank() -> None:
    host = _host_with_view(rows=100)
    host.views[1].state = ViewState(cursor_row=50, cursor_col=3, top_row=45)
    store = _store(host)
    store.save(1)

    host.views[1].rows = 10
    assert store.restore(1) is True

    restored = host.views[1].state
    assert restored.cursor_row == 10
    assert restored.top_row == 10
    assert restored.cursor_col == 3


def test_restore_without_saved_state_is_noop() -> None:
    host = _host_with_view()
    host.views[1].state = ViewState(cursor_row=5)

    assert _store(host).restore(1) is False
    assert host.views[1].state.cursor_row == 5


def test_repeated_saves_overwrite() -> None:
    host = _host_with_view()
    store = _store(host)
    host.views[1].state = ViewState(cursor_row=5)
    store.save(1)
    host.views[1].state = ViewState(cursor_row=9)
    store.save(1)

    assert store.get(1) == ViewState(cursor_row=9)


def test_save_without_live_view_keeps_previous_capture() -> None:
    host = _host_with_view()
    store = _store(host)
    host.views[1].state = ViewState(cursor_row=5)
    store.save(1)
    host.hide_view(1)
    host.views[1].state = ViewState(cursor_row=70)

    assert store.save(1) == ViewState(cursor_row=5)
    assert store.save(2) is None


def test_restore_after_view_closed_fails_silently() -> None:
    host = _host_with_view()
    store = _store(host)
    store.save(1)
    host.destroy_view(1)

    assert store.restore(1) is False


def test_restore_tolerates_view_closing_mid_restore() -> None:
    class _ClosingHost(HeadlessHost):
        def apply_view(self, slot_id: int, state: ViewState) -> None:
            self.destroy_view(slot_id)
            raise ViewClosedError("gone")

    host = _ClosingHost()
    host.open_view(
        TerminalSlot(slot_id=1, display_name="Git", session_id="pterm-git", working_directory="/"),
        None,
    )
    store = _store(host)
    store.save(1)

    assert store.restore(1) is False


def test_restore_waits_for_ready_signal_within_bound() -> None:
    class _SlowHost(HeadlessHost):
        def __init__(self) -> None:
            super().__init__()
            self.checks = 0

        def view_ready(self, slot_id: int) -> bool:
            self.checks += 1
            return self.checks >= 3

    host = _SlowHost()
    host.open_view(
        TerminalSlot(slot_id=1, display_name="Git", session_id="pterm-git", working_directory="/"),
        None,
    )
    host.views[1].rows = 40
    host.views[1].state = ViewState(cursor_row=20)
    sleeps: list[float] = []
    store = _store(host, sleeps=sleeps, attempts=5)
    store.save(1)
    host.views[1].state = ViewState(cursor_row=1)

    assert store.restore(1) is True
    assert host.checks == 3
    assert sleeps == [0.01, 0.02]
    assert host.views[1].state.cursor_row == 20


def test_restore_proceeds_after_bounded_wait_without_ready_signal() -> None:
    class _NeverReadyHost(HeadlessHost):
        def view_ready(self, slot_id: int) -> bool:
            return False

    host = _NeverReadyHost()
    host.open_view(
        TerminalSlot(slot_id=1, display_name="Git", session_id="pterm-git", working_directory="/"),
        None,
    )
    host.views[1].rows = 40
    host.views[1].state = ViewState(cursor_row=20)
    sleeps: list[float] = []
    store = _store(host, sleeps=sleeps, attempts=3)
    store.save(1)

    assert store.restore(1) is True
    assert len(sleeps) == 2


def test_discard_and_clear_forget_saved_state() -> None:
    host = _host_with_view()
    store = _store(host)
    store.save(1)
    store.discard(1)

    assert store.get(1) is None

    store.save(1)
    store.clear()

    assert store.get(1) is None


def test_view_state_clamp_never_goes_below_first_row() -> None:
    clamped = ViewState(cursor_row=-4, cursor_col=-2, top_row=0).clamped(0)

    assert clamped == ViewState(cursor_row=1, cursor_col=0, top_row=1)
