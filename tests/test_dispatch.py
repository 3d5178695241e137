from __future__ import annotations

import logging
import threading

import pytest

from apollosub.config import DispatchPolicy
from apollosub.dispatch import ChangeDispatcher


def test_block_policy_runs_one_pass_per_notification() -> None:
    calls: list[int] = []
    dispatcher = ChangeDispatcher(lambda: calls.append(1), policy=DispatchPolicy.BLOCK, max_pending=2)
    dispatcher.start()
    try:
        for _ in range(10):
            dispatcher.notify()
        dispatcher.join(timeout=5.0)
    finally:
        dispatcher.stop()

    assert len(calls) == 10
    assert dispatcher.dropped == 0


def test_handler_runs_off_the_notifying_thread() -> None:
    threads: list[str] = []
    dispatcher = ChangeDispatcher(lambda: threads.append(threading.current_thread().name), name="worker-x")
    dispatcher.start()
    dispatcher.notify()
    dispatcher.join(timeout=5.0)
    dispatcher.stop()

    assert threads == ["worker-x"]


def test_coalesce_policy_drops_while_a_pass_is_pending() -> None:
    started = threading.Event()
    gate = threading.Event()
    calls: list[int] = []

    def handler() -> None:
        calls.append(1)
        started.set()
        gate.wait(5.0)

    dispatcher = ChangeDispatcher(handler, policy=DispatchPolicy.COALESCE, max_pending=1)
    dispatcher.start()
    try:
        dispatcher.notify()
        assert started.wait(5.0)
        for _ in range(5):
            dispatcher.notify()
        gate.set()
        dispatcher.join(timeout=5.0)
    finally:
        gate.set()
        dispatcher.stop()

    assert len(calls) == 2
    assert dispatcher.dropped == 4


def test_inline_policy_runs_on_caller() -> None:
    threads: list[threading.Thread] = []
    dispatcher = ChangeDispatcher(lambda: threads.append(threading.current_thread()), policy=DispatchPolicy.INLINE)
    dispatcher.start()
    dispatcher.notify()
    dispatcher.stop()

    assert threads == [threading.current_thread()]


def test_notifications_ignored_when_not_running() -> None:
    calls: list[int] = []
    dispatcher = ChangeDispatcher(lambda: calls.append(1), policy=DispatchPolicy.INLINE)
    dispatcher.notify()
    dispatcher.start()
    dispatcher.stop()
    dispatcher.notify()

    assert calls == []
    assert not dispatcher.is_running


def test_failing_handler_does_not_kill_worker(caplog: pytest.LogCaptureFixture) -> None:
    calls: list[int] = []

    def handler() -> None:
        calls.append(1)
        if len(calls) == 1:
            raise RuntimeError("boom")

    dispatcher = ChangeDispatcher(handler)
    dispatcher.start()
    with caplog.at_level(logging.WARNING):
        dispatcher.notify()
        dispatcher.notify()
        dispatcher.join(timeout=5.0)
    dispatcher.stop()

    assert len(calls) == 2
    assert "Change handler failed" in caplog.text


def test_stop_drains_pending_notifications() -> None:
    calls: list[int] = []
    dispatcher = ChangeDispatcher(lambda: calls.append(1), max_pending=8)
    dispatcher.start()
    for _ in range(5):
        dispatcher.notify()
    dispatcher.stop()

    assert len(calls) == 5


def test_coalesce_ignores_max_pending_and_keeps_one_pass_queued() -> None:
    started = threading.Event()
    gate = threading.Event()
    calls: list[int] = []

    def handler() -> None:
        calls.append(1)
        started.set()
        gate.wait(5.0)

    dispatcher = ChangeDispatcher(handler, policy=DispatchPolicy.COALESCE, max_pending=16)
    dispatcher.start()
    try:
        dispatcher.notify()
        assert started.wait(5.0)
        for _ in range(10):
            dispatcher.notify()
        gate.set()
        dispatcher.join(timeout=5.0)
    finally:
        gate.set()
        dispatcher.stop()

    assert len(calls) == 2
    assert dispatcher.dropped == 9


def test_stop_from_handler_exits_worker(caplog: pytest.LogCaptureFixture) -> None:
    calls: list[int] = []
    holder: list[ChangeDispatcher] = []

    def handler() -> None:
        calls.append(1)
        holder[0].stop()

    dispatcher = ChangeDispatcher(handler)
    holder.append(dispatcher)
    dispatcher.start()
    worker = dispatcher._thread  # noqa: SLF001
    assert worker is not None

    with caplog.at_level(logging.WARNING):
        dispatcher.notify()
        worker.join(5.0)

    assert calls == [1]
    assert not worker.is_alive()
    assert not dispatcher.is_running
    assert "Change handler failed" not in caplog.text
