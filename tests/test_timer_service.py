"""
Tests for TimerService using real background threads.

Intervals are kept short and every wait is bounded so a broken timer fails
the test instead of hanging it.
"""

import threading
import time

import pytest

from services.timer_service import TimerService

INTERVAL = 0.01
WAIT = 2.0


@pytest.fixture
def timers():
    created = []
    yield created
    for timer in created:
        timer.stop(wait=True)


def make_timer(timers, task, **kwargs) -> TimerService:
    timer = TimerService(INTERVAL, task, **kwargs)
    timers.append(timer)
    return timer


class TestTimerService:
    def test_rejects_non_positive_interval(self):
        with pytest.raises(ValueError):
            TimerService(0, lambda: None)

    def test_runs_periodically(self, timers):
        calls = []
        reached = threading.Event()

        def task():
            calls.append(time.monotonic())
            if len(calls) >= 3:
                reached.set()

        timer = make_timer(timers, task)
        timer.start()

        assert reached.wait(WAIT)
        assert timer.running is True

    def test_not_running_until_started(self, timers):
        task_ran = threading.Event()
        timer = make_timer(timers, task_ran.set)

        assert timer.running is False
        assert task_ran.wait(INTERVAL * 5) is False

    def test_run_immediately_invokes_before_first_interval(self, timers):
        ran = threading.Event()
        timer = TimerService(60.0, ran.set, run_immediately=True)
        timers.append(timer)

        timer.start()

        assert ran.wait(WAIT)

    def test_without_run_immediately_waits_one_interval(self, timers):
        ran = threading.Event()
        timer = TimerService(60.0, ran.set)
        timers.append(timer)

        timer.start()

        assert ran.wait(0.1) is False

    def test_stop_halts_invocations(self, timers):
        calls = []
        first = threading.Event()

        def task():
            calls.append(1)
            first.set()

        timer = make_timer(timers, task)
        timer.start()
        assert first.wait(WAIT)

        timer.stop(wait=True)
        count = len(calls)
        time.sleep(INTERVAL * 5)

        assert timer.running is False
        assert len(calls) == count

    def test_start_and_stop_are_idempotent(self, timers):
        timer = make_timer(timers, lambda: None)

        timer.stop()
        timer.start()
        thread = timer._thread
        timer.start()

        assert timer._thread is thread
        timer.stop()
        timer.stop()
        assert timer.running is False

    def test_restart_after_stop(self, timers):
        ran = threading.Event()
        timer = make_timer(timers, ran.set)
        timer.start()
        timer.stop(wait=True)
        ran.clear()

        timer.start()

        assert ran.wait(WAIT)

    def test_task_can_stop_its_own_timer(self, timers):
        calls = []
        timer = None

        def task():
            calls.append(1)
            timer.stop(wait=True)

        timer = make_timer(timers, task)
        timer.start()
        time.sleep(INTERVAL * 10)

        assert calls == [1]
        assert timer.running is False

    def test_task_exception_keeps_timer_running(self, timers):
        calls = []
        recovered = threading.Event()

        def task():
            calls.append(1)
            if len(calls) == 1:
                raise RuntimeError("boom")
            recovered.set()

        timer = make_timer(timers, task)
        timer.start()

        assert recovered.wait(WAIT)

    def test_stop_wait_joins_thread(self, timers):
        timer = make_timer(timers, lambda: None)
        timer.start()
        thread = timer._thread

        timer.stop(wait=True)

        assert not thread.is_alive()
