"""Shutdown Coordinator — tests for the RUNNING → DRAINING → CLOSED | FORCED_EXIT machine.

Tests cover:
    - begin() moves to DRAINING, arms the deadline, stops the listener
    - a second trigger is ignored
    - mark_closed() cancels the deadline and yields exit code 0
    - the deadline forces exit(1) only while still draining
    - loop and thread faults route into the same shutdown path
"""

import threading

import pytest

from restaurant_api.core.domain_types import ShutdownState
from restaurant_api.core.shutdown import ShutdownCoordinator


@pytest.fixture
def exits():
    return []


@pytest.fixture
def coordinator(exits, timer_factory):
    return ShutdownCoordinator(10.0, exit_func=exits.append, timer_factory=timer_factory)


def test_starts_running(coordinator):
    assert coordinator.state is ShutdownState.RUNNING
    assert coordinator.exit_code == 0


def test_begin_moves_to_draining_and_arms_deadline(coordinator, timers):
    stopped = []
    coordinator.attach(lambda: stopped.append(True))

    assert coordinator.begin("SIGTERM") is True

    assert coordinator.state is ShutdownState.DRAINING
    assert coordinator.reason == "SIGTERM"
    assert stopped == [True]
    assert len(timers) == 1
    assert timers[0].interval == 10.0
    assert timers[0].started
    assert timers[0].daemon


def test_second_trigger_is_ignored(coordinator, timers):
    coordinator.begin("SIGTERM")
    assert coordinator.begin("SIGINT") is False
    assert coordinator.reason == "SIGTERM"
    assert len(timers) == 1


def test_mark_closed_cancels_deadline(coordinator, timers, exits):
    coordinator.begin("SIGINT")
    coordinator.mark_closed()

    assert coordinator.state is ShutdownState.CLOSED
    assert timers[0].cancelled
    timers[0].fire()
    assert exits == []
    assert coordinator.exit_code == 0


def test_deadline_forces_exit_while_draining(coordinator, timers, exits):
    coordinator.begin("SIGTERM")
    timers[0].fire()

    assert coordinator.state is ShutdownState.FORCED_EXIT
    assert exits == [1]
    assert coordinator.exit_code == 1


def test_mark_closed_after_forced_exit_keeps_forced_state(coordinator, timers):
    coordinator.begin("SIGTERM")
    timers[0].fire()
    coordinator.mark_closed()
    assert coordinator.state is ShutdownState.FORCED_EXIT


def test_mark_closed_without_trigger_closes(coordinator, timers):
    coordinator.mark_closed()
    assert coordinator.state is ShutdownState.CLOSED
    assert timers == []


def test_begin_after_close_is_ignored(coordinator, timers):
    coordinator.mark_closed()
    assert coordinator.begin("SIGTERM") is False
    assert timers == []


# ─── Fault hooks ─────────────────────────────────────────────────

def test_loop_exception_triggers_shutdown(coordinator):
    coordinator.handle_loop_exception(None, {
        "message": "Task exception was never retrieved",
        "exception": RuntimeError("boom"),
    })
    assert coordinator.state is ShutdownState.DRAINING
    assert coordinator.reason == "uncaught async fault"


def test_loop_connection_errors_do_not_trigger_shutdown(coordinator):
    coordinator.handle_loop_exception(None, {
        "message": "socket.send() raised exception.",
        "exception": ConnectionResetError(),
    })
    assert coordinator.state is ShutdownState.RUNNING


def test_loop_context_without_exception_still_shuts_down(coordinator):
    coordinator.handle_loop_exception(None, {"message": "something odd"})
    assert coordinator.state is ShutdownState.DRAINING


def test_thread_exception_triggers_shutdown(coordinator):
    try:
        raise ValueError("worker died")
    except ValueError as e:
        args = threading.ExceptHookArgs((type(e), e, e.__traceback__, threading.current_thread()))
    coordinator.handle_thread_exception(args)
    assert coordinator.state is ShutdownState.DRAINING
    assert coordinator.reason == "uncaught thread fault"


def test_thread_system_exit_is_ignored(coordinator):
    args = threading.ExceptHookArgs((SystemExit, SystemExit(0), None, None))
    coordinator.handle_thread_exception(args)
    assert coordinator.state is ShutdownState.RUNNING
