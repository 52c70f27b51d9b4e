"""
Fixed-size thread pool draining a bounded job queue.

[WorkerPool][urlchecker.core.workers.WorkerPool] runs ``workers`` daemon
threads that take jobs from a ``queue.Queue`` of capacity ``2 * workers``
and pass each to a single handler. The queue is the only hand-off between
producers and workers.

Shutdown never deadlocks: producers blocked on a full queue and workers
waiting on an empty one both poll the stop event. ``stop()`` lets
in-flight jobs finish and discards jobs that were queued but not started.
``signal_stop()`` only sets the stop event, so another thread (a signal
handler on the event loop) can release a ``wait_idle()`` without blocking.

Examples:
    ```python
    with WorkerPool(5, checker.check) as pool:
        for target in targets:
            pool.add_job(target)
        pool.wait_idle()
    ```
"""

from __future__ import annotations

import queue
import threading
from collections.abc import Callable
from types import TracebackType
from typing import Any, Generic, Self, TypeVar

from .logger import Logger


JobT = TypeVar("JobT")

# Seconds between stop-event checks while blocked on the queue
POLL_INTERVAL = 0.1


class WorkerPool(Generic[JobT]):
    """Pool of OS threads applying ``handler`` to queued jobs.

    Args:
        workers: Number of worker threads (>= 1).
        handler: Called once per job on a worker thread. Exceptions are
            logged and the worker moves on to the next job.
        name: Prefix for thread names and the logger name.

    Raises:
        ValueError: If ``workers`` < 1.
    """

    def __init__(
        self,
        workers: int,
        handler: Callable[[JobT], Any],
        *,
        name: str = "worker",
    ) -> None:
        if workers < 1:
            raise ValueError(f"workers must be >= 1, got {workers}")

        self._workers = workers
        self._handler = handler
        self._name = name
        self._queue: queue.Queue[JobT] = queue.Queue(maxsize=2 * workers)
        self._stop = threading.Event()
        self._threads: list[threading.Thread] = []
        self._started = False
        self._stopped = False
        self._put_lock = threading.Lock()
        self._logger = Logger(name)

    @property
    def workers(self) -> int:
        return self._workers

    @property
    def capacity(self) -> int:
        return self._queue.maxsize

    @property
    def is_running(self) -> bool:
        return self._started and not self._stop.is_set()

    def start(self) -> None:
        """Spawn the worker threads.

        Raises:
            RuntimeError: If the pool was already started.
        """
        if self._started:
            raise RuntimeError("worker pool already started")
        self._started = True

        for i in range(self._workers):
            thread = threading.Thread(
                target=self._run_worker,
                args=(i,),
                name=f"{self._name}-{i}",
                daemon=True,
            )
            thread.start()
            self._threads.append(thread)

        self._logger.info("pool_started", workers=self._workers, capacity=self.capacity)

    def add_job(self, job: JobT) -> bool:
        """Enqueue a job, blocking while the queue is full.

        Returns:
            True once the job is queued, False if the pool is stopped (or
            gets stopped while waiting for room).
        """
        while True:
            with self._put_lock:
                if self._stop.is_set():
                    return False
                try:
                    self._queue.put(job, timeout=POLL_INTERVAL)
                    return True
                except queue.Full:
                    pass

    def wait_idle(self) -> None:
        """Block until every queued job has been processed or dropped.

        Also returns as soon as a stop is signalled; jobs still running at
        that point finish inside ``stop()``.
        """
        done = self._queue.all_tasks_done
        with done:
            while self._queue.unfinished_tasks and not self._stop.is_set():
                done.wait(POLL_INTERVAL)

    def signal_stop(self) -> None:
        """Ask producers and workers to stop without waiting for them.

        Safe to call from any thread, including an event loop. Queued jobs
        are no longer started; ``stop()`` still has to be called to join
        the workers and drop the queue.
        """
        self._stop.set()

    def stop(self) -> None:
        """Stop the workers, waiting for in-flight jobs. Idempotent."""
        if self._stopped:
            return
        self._stopped = True
        self._stop.set()

        for thread in self._threads:
            thread.join()

        dropped = 0
        # Producers re-check the stop event under this lock, so nothing lands after the drain
        with self._put_lock:
            while True:
                try:
                    self._queue.get_nowait()
                except queue.Empty:
                    break
                self._queue.task_done()
                dropped += 1

        self._logger.info("pool_stopped", dropped_jobs=dropped)

    def _run_worker(self, index: int) -> None:
        self._logger.debug("worker_started", worker=index)

        while not self._stop.is_set():
            try:
                job = self._queue.get(timeout=POLL_INTERVAL)
            except queue.Empty:
                continue

            try:
                self._handler(job)
            except Exception as e:  # Intentionally broad: a bad job must not kill the worker
                self._logger.exception("job_failed", worker=index, error=str(e))
            finally:
                self._queue.task_done()

        self._logger.debug("worker_stopped", worker=index)

    # -------------------------------------------------------------------------
    # Context Manager
    # -------------------------------------------------------------------------

    def __enter__(self) -> Self:
        self.start()
        return self

    def __exit__(
        self,
        _exc_type: type[BaseException] | None,
        _exc_val: BaseException | None,
        _exc_tb: TracebackType | None,
    ) -> None:
        self.stop()
