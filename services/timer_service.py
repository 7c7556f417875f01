"""
TimerService: runs a task at a fixed interval on a background thread.

Thread Safety:
    start() and stop() may be called from any thread, including from inside
    the task itself. Both are idempotent: starting a running timer or
    stopping a stopped one does nothing.
"""

import logging
import threading
from collections.abc import Callable

logger = logging.getLogger("matchmaker.services.timer")


class TimerService:
    """
    Periodic runner.

    Each start() spawns a fresh daemon thread bound to its own stop event, so
    a stop() followed quickly by start() never revives the old loop.
    """

    def __init__(
        self,
        interval: float,
        task: Callable[[], None],
        run_immediately: bool = False,
        name: str | None = None,
    ):
        if interval <= 0:
            raise ValueError(f"Timer interval must be positive, got {interval!r}")
        self.interval = interval
        self.task = task
        self.run_immediately = run_immediately
        self.name = name or getattr(task, "__name__", "timer")
        self._lock = threading.Lock()
        self._thread: threading.Thread | None = None
        self._stop_event: threading.Event | None = None

    @property
    def running(self) -> bool:
        with self._lock:
            return self._thread is not None

    def start(self) -> None:
        with self._lock:
            if self._thread is not None:
                return
            stop_event = threading.Event()
            thread = threading.Thread(
                target=self._run,
                args=(stop_event,),
                name=f"timer-{self.name}",
                daemon=True,
            )
            self._stop_event = stop_event
            self._thread = thread
        thread.start()
        logger.debug(f"Timer {self.name} started (interval={self.interval}s)")

    def stop(self, wait: bool = False) -> None:
        """
        Stop the timer.

        Args:
            wait: Block until the loop thread has exited. Ignored when called
                from the timer's own thread.
        """
        with self._lock:
            thread, stop_event = self._thread, self._stop_event
            if thread is None:
                return
            stop_event.set()
            self._thread = None
            self._stop_event = None
        logger.debug(f"Timer {self.name} stopped")
        if wait and thread is not threading.current_thread():
            thread.join()

    def _run(self, stop_event: threading.Event) -> None:
        if self.run_immediately and not stop_event.is_set():
            self._invoke()
        while not stop_event.wait(self.interval):
            self._invoke()

    def _invoke(self) -> None:
        try:
            self.task()
        except Exception:
            logger.exception(f"Timer task {self.name} raised; timer keeps running")
