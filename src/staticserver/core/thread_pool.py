"""
=============================================================================
WORKER THREAD POOL
=============================================================================

Connections are served by a bounded pool of threads fed from a bounded
queue:

    accept loop ──► submit(conn) ──► [ queue (maxsize) ] ──► Worker-0
                        │                                    Worker-1
                        │                                    ...
                        └── queue full → False, caller       Worker-N
                            answers 503 and closes            (≤ max_workers)

    min_workers threads start with the pool. One more is added whenever
    every worker is busy and work is waiting, up to max_workers.

A task that raises is logged with its traceback; the worker survives.

Shutdown puts one `None` per worker on the queue. A worker that takes
`None` exits.

=============================================================================
"""

import logging
import queue
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional


logger = logging.getLogger(__name__)


class WorkerState(Enum):
    IDLE = "idle"
    BUSY = "busy"
    STOPPED = "stopped"


@dataclass
class Task:
    """A deferred call: func(*args, **kwargs)."""

    func: Callable[..., Any]
    args: tuple = ()
    kwargs: Dict[str, Any] = field(default_factory=dict)
    submitted_at: float = field(default_factory=time.monotonic)

    def run(self) -> Any:
        return self.func(*self.args, **self.kwargs)


class Worker(threading.Thread):
    """Takes tasks off the shared queue until it receives None."""

    def __init__(self, tasks: "queue.Queue[Optional[Task]]", worker_id: int):
        super().__init__(name=f"staticserver-worker-{worker_id}", daemon=True)
        self.tasks = tasks
        self.worker_id = worker_id
        self.state = WorkerState.IDLE
        self.completed = 0
        self.failed = 0

    def run(self):
        while True:
            task = self.tasks.get()
            try:
                if task is None:
                    break
                self._execute(task)
            finally:
                self.tasks.task_done()
        self.state = WorkerState.STOPPED

    def _execute(self, task: Task):
        self.state = WorkerState.BUSY
        started = time.monotonic()
        try:
            task.run()
            self.completed += 1
        except Exception:
            self.failed += 1
            logger.exception(
                "Task failed in %s after %.3fs",
                self.name, time.monotonic() - started,
            )
        finally:
            self.state = WorkerState.IDLE


class ThreadPool:
    """
    Bounded pool of worker threads.

    Usage:
        pool = ThreadPool(min_workers=4, max_workers=16)
        pool.start()
        if not pool.submit(handle_connection, conn):
            reject(conn)
        pool.shutdown()
    """

    def __init__(self, min_workers: int = 4, max_workers: int = 16, queue_size: int = 100):
        if min_workers < 1 or max_workers < min_workers:
            raise ValueError(
                f"Invalid worker counts: min={min_workers}, max={max_workers}"
            )
        self.min_workers = min_workers
        self.max_workers = max_workers
        self._tasks: "queue.Queue[Optional[Task]]" = queue.Queue(maxsize=queue_size)
        self._workers: List[Worker] = []
        self._lock = threading.Lock()
        self._started = False
        self._closing = False

    @property
    def is_running(self) -> bool:
        return self._started and not self._closing

    def start(self) -> None:
        with self._lock:
            if self._started:
                return
            for _ in range(self.min_workers):
                self._spawn()
            self._started = True
            self._closing = False
        logger.debug("Thread pool started with %d workers", self.min_workers)

    def _spawn(self) -> Worker:
        """Start one more worker. Caller holds the lock."""
        worker = Worker(self._tasks, len(self._workers))
        self._workers.append(worker)
        worker.start()
        return worker

    def submit(self, func: Callable[..., Any], *args, **kwargs) -> bool:
        """
        Queue func(*args, **kwargs) without blocking.

        Returns:
            False if the queue is full.

        Raises:
            RuntimeError: If the pool is not running.
        """
        if not self.is_running:
            raise RuntimeError("Thread pool is not running")

        try:
            self._tasks.put_nowait(Task(func, args, kwargs))
        except queue.Full:
            return False

        self._grow_if_saturated()
        return True

    def _grow_if_saturated(self) -> None:
        with self._lock:
            if len(self._workers) >= self.max_workers or self._tasks.empty():
                return
            if all(w.state is WorkerState.BUSY for w in self._workers):
                logger.debug("Scaling up to %d workers", len(self._workers) + 1)
                self._spawn()

    def shutdown(self, timeout: Optional[float] = 5.0) -> None:
        """
        Stop all workers after the tasks already queued.

        Args:
            timeout: Seconds to wait for each worker; they are daemon
                     threads, so a stuck one does not block exit.
        """
        with self._lock:
            if not self._started or self._closing:
                return
            self._closing = True
            workers = list(self._workers)

        for _ in workers:
            self._tasks.put(None)
        for worker in workers:
            worker.join(timeout)

        with self._lock:
            self._workers.clear()
            self._started = False
        logger.debug("Thread pool stopped")

    @property
    def stats(self) -> dict:
        return {
            "workers": len(self._workers),
            "busy": sum(1 for w in self._workers if w.state is WorkerState.BUSY),
            "queued": self._tasks.qsize(),
            "completed": sum(w.completed for w in self._workers),
            "failed": sum(w.failed for w in self._workers),
        }
