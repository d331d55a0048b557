# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Background task queue. Supervised work that must not block a request.

A bounded queue drained by one worker thread. Every submission returns a
``Future`` carrying the result or the error, and every failure is logged and
counted; nothing is dropped silently.
"""

import queue
import threading
from concurrent.futures import Future
from typing import Any, Callable, Optional

from oncall_roster.core.logging import get_logger
from oncall_roster.metrics.prometheus import BACKGROUND_QUEUE_DEPTH, BACKGROUND_TASKS

logger = get_logger(__name__)

_STOP = object()


class QueueFullError(RuntimeError):
    """The background queue is at capacity."""


class BackgroundQueue:
    def __init__(self, maxsize: int = 256) -> None:
        self._queue: queue.Queue = queue.Queue(maxsize=maxsize)
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        with self._lock:
            if self.running:
                return
            self._thread = threading.Thread(
                target=self._run, name="roster-background", daemon=True
            )
            self._thread.start()
        logger.info("Background queue started")

    def stop(self, timeout: float = 10.0) -> None:
        """Finish queued work, then stop the worker."""
        with self._lock:
            thread, self._thread = self._thread, None
        if thread is None:
            return
        self._queue.put(_STOP, timeout=timeout)
        thread.join(timeout)
        logger.info("Background queue stopped")

    def join(self) -> None:
        """Block until every task submitted so far has finished."""
        self._queue.join()

    def submit(self, name: str, func: Callable[..., Any], *args: Any, **kwargs: Any) -> Future:
        future: Future = Future()
        try:
            self._queue.put_nowait((name, future, func, args, kwargs))
        except queue.Full:
            BACKGROUND_TASKS.labels(task=name, outcome="rejected").inc()
            logger.error("Background queue full, task rejected", extra={"task": name})
            future.set_exception(QueueFullError(f"background queue full, {name} rejected"))
            return future
        BACKGROUND_QUEUE_DEPTH.set(self._queue.qsize())
        return future

    def _run(self) -> None:
        while True:
            item = self._queue.get()
            try:
                if item is _STOP:
                    return
                self._execute(*item)
            finally:
                self._queue.task_done()
                BACKGROUND_QUEUE_DEPTH.set(self._queue.qsize())

    def _execute(self, name: str, future: Future, func, args, kwargs) -> None:
        if not future.set_running_or_notify_cancel():
            BACKGROUND_TASKS.labels(task=name, outcome="cancelled").inc()
            return
        try:
            result = func(*args, **kwargs)
        except Exception as exc:
            BACKGROUND_TASKS.labels(task=name, outcome="failed").inc()
            logger.error("Background task failed: %s", exc, exc_info=True, extra={"task": name})
            future.set_exception(exc)
            return
        BACKGROUND_TASKS.labels(task=name, outcome="succeeded").inc()
        future.set_result(result)


class PeriodicWorker:
    """Runs ``func`` every ``interval`` seconds on its own thread until stopped.

    An exception from one run is logged and the loop carries on with the next.
    """

    def __init__(
        self,
        name: str,
        interval: float,
        func: Callable[[], Any],
        run_immediately: bool = False,
    ) -> None:
        self._name = name
        self._interval = interval
        self._func = func
        self._run_immediately = run_immediately
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        if self._thread is not None:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name=self._name, daemon=True)
        self._thread.start()
        logger.info("Worker started: interval=%ss", self._interval, extra={"task": self._name})

    def stop(self, timeout: float = 10.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        logger.info("Worker stopped", extra={"task": self._name})

    def _loop(self) -> None:
        if self._run_immediately:
            self._run_once()
        while not self._stop.wait(self._interval):
            self._run_once()

    def _run_once(self) -> None:
        try:
            self._func()
        except Exception as exc:
            logger.error("Worker run failed: %s", exc, exc_info=True, extra={"task": self._name})
