import threading
import time

import pytest

from mockinterview.interview.dispatch import ControlLoop, TimerTick, UserAction
from mockinterview.interview.testing import ManualControlLoop


def test_drain_processes_in_order():
    received = []
    loop = ControlLoop(received.append)
    loop.post(TimerTick(1))
    loop.post(UserAction("pause"))
    assert loop.drain() == 2
    assert received == [TimerTick(1), UserAction("pause")]


def test_drain_without_handler_fails():
    loop = ControlLoop()
    loop.post(TimerTick(1))
    with pytest.raises(RuntimeError):
        loop.drain()


def test_messages_posted_while_draining_are_handled():
    loop = ControlLoop()
    received = []

    def handler(message):
        received.append(message)
        if message == TimerTick(1):
            loop.post(TimerTick(2))

    loop.bind(handler)
    loop.post(TimerTick(1))
    loop.drain()
    assert received == [TimerTick(1), TimerTick(2)]


def test_call_later_posts_after_delay():
    loop = ControlLoop()
    received = []
    loop.bind(received.append)
    loop.call_later(0.01, TimerTick(5))
    deadline = time.time() + 2.0
    while loop.pending == 0 and time.time() < deadline:
        time.sleep(0.005)
    loop.drain()
    assert received == [TimerTick(5)]


def test_close_cancels_timers_and_drops_posts():
    loop = ControlLoop()
    received = []
    loop.bind(received.append)
    loop.call_later(0.05, TimerTick(1))
    loop.close()
    loop.post(TimerTick(2))
    time.sleep(0.1)
    assert loop.drain() == 0
    assert received == []


def test_run_until_stopped():
    loop = ControlLoop()
    received = []
    stop = threading.Event()

    def handler(message):
        received.append(message)
        stop.set()

    loop.bind(handler)
    worker = threading.Thread(target=loop.run, args=(stop, 0.01))
    worker.start()
    loop.post(UserAction("submit_answer"))
    worker.join(timeout=2.0)
    assert not worker.is_alive()
    assert received == [UserAction("submit_answer")]


def test_manual_loop_holds_delayed_messages():
    received = []
    loop = ManualControlLoop(received.append)
    loop.call_later(1.0, TimerTick(1))
    loop.call_later(0, TimerTick(2))
    loop.drain()
    assert received == [TimerTick(2)]
    assert loop.release_scheduled() == 1
    assert received == [TimerTick(2), TimerTick(1)]


def test_run_survives_a_failing_handler(caplog):
    loop = ControlLoop()
    received = []
    stop = threading.Event()

    def handler(message):
        if message == TimerTick(1):
            raise ValueError("broken handler")
        received.append(message)
        stop.set()

    loop.bind(handler)
    worker = threading.Thread(target=loop.run, args=(stop, 0.01))
    worker.start()
    loop.post(TimerTick(1))
    loop.post(TimerTick(2))
    worker.join(timeout=2.0)
    assert not worker.is_alive()
    assert received == [TimerTick(2)]
    assert any("Failed to handle" in r.getMessage() for r in caplog.records)
