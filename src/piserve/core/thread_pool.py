"""
=============================================================================
WORKER THREAD POOL
=============================================================================

Runs connection dispatches on a bounded set of worker threads.

=============================================================================
WHY THREADS ARE ENOUGH HERE
=============================================================================

Each dispatch is short and blocking: one recv(), one open()/read() or
scandir(), one sendall(). Threads release the GIL on all of those, and the
dispatcher shares nothing mutable, so workers never need a lock.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                     │
    │   accept loop ──► submit(fn, conn) ──► [ queue ] ──► Worker-0       │
    │                                            │    └──► Worker-1       │
    │                                            │    └──► ...            │
    │                                            │                        │
    │                    queue full ─► submit() returns False             │
    │                                                                     │
    │   min_workers start at once; one more is added (up to max_workers) │
    │   whenever every worker is busy and work is waiting.                │
    │                                                                     │
    └─────────────────────────────────────────────────────────────────────┘

A task that raises is logged; the worker survives and takes the next task.
Workers block on the queue and leave when they dequeue the STOP marker.

=============================================================================
"""

import threading
import queue
import time
import logging
from typing import Callable, Optional, Any, List
from dataclasses import dataclass, field
from enum import Enum


logger = logging.getLogger(__name__)

# Dequeued by a worker as "exit now"
STOP = None


class WorkerState(Enum):
    IDLE = "idle"
    BUSY = "busy"
    STOPPED = "stopped"


@dataclass
class Task:
    """One queued call: ``func(*args)``."""

    func: Callable[..., Any]
    args: tuple = ()
    queued_at: float = field(default_factory=time.perf_counter)

    @property
    def wait_time(self) -> float:
        """Seconds spent in the queue so far."""
        return time.perf_counter() - self.queued_at


class Worker(threading.Thread):
    """Runs tasks from the shared queue until it dequeues STOP."""

    def __init__(self, tasks: queue.Queue, number: int):
        super().__init__(name=f"piserve-worker-{number}", daemon=True)

        self.tasks = tasks
        self.number = number
        self.state = WorkerState.IDLE

    def run(self):
        logger.debug(f"{self.name} started")

        for task in iter(self.tasks.get, STOP):
            self.state = WorkerState.BUSY
            try:
                task.func(*task.args)
            except Exception:
                logger.exception(f"{self.name}: task failed after {task.wait_time:.3f}s")
            finally:
                self.state = WorkerState.IDLE
                self.tasks.task_done()

        # The STOP marker itself
        self.tasks.task_done()
        self.state = WorkerState.STOPPED
        logger.debug(f"{self.name} stopped")


class ThreadPool:
    """
    Fixed-floor, capped-ceiling thread pool.

    Usage:
        pool = ThreadPool(min_workers=4, max_workers=8)
        pool.start()
        pool.submit(handle, conn)
        ...
        pool.shutdown(wait=True, timeout=10.0)
    """

    def __init__(
        self,
        min_workers: int = 4,
        max_workers: int = 16,
        queue_size: int = 100,
    ):
        self.min_workers = min_workers
        self.max_workers = max_workers
        self.queue_size = queue_size

        self._tasks: queue.Queue = queue.Queue(maxsize=queue_size)
        self._workers: List[Worker] = []
        self._lock = threading.Lock()
        self._accepting = False

    def start(self):
        with self._lock:
            if self._accepting:
                return
            logger.info(f"Starting {self.min_workers} workers (max {self.max_workers})")
            for _ in range(self.min_workers):
                self._spawn()
            self._accepting = True

    def _spawn(self) -> Worker:
        # Caller holds self._lock
        worker = Worker(self._tasks, number=len(self._workers))
        self._workers.append(worker)
        worker.start()
        return worker

    def submit(self, func: Callable[..., Any], *args: Any) -> bool:
        """
        Queue ``func(*args)`` for a worker without blocking.

        Returns:
            True if queued, False if the queue was full.

        Raises:
            RuntimeError: The pool is not running.
        """
        if not self._accepting:
            raise RuntimeError("Thread pool is not running")

        try:
            self._tasks.put_nowait(Task(func=func, args=args))
        except queue.Full:
            return False

        self._grow_if_saturated()
        return True

    def _grow_if_saturated(self):
        with self._lock:
            if len(self._workers) >= self.max_workers:
                return
            if self.busy_workers < len(self._workers) or self._tasks.empty():
                return
            worker = self._spawn()

        logger.debug(f"All workers busy, added {worker.name}")

    def shutdown(self, wait: bool = True, timeout: Optional[float] = None):
        """
        Stop accepting work and stop all workers.

        Args:
            wait: Let already queued tasks run first.
            timeout: Upper bound in seconds on waiting for queued tasks.
        """
        with self._lock:
            if not self._accepting:
                return
            self._accepting = False
            workers = list(self._workers)

        logger.info("Shutting down thread pool...")

        if wait:
            deadline = time.monotonic() + timeout if timeout else None
            while self._tasks.unfinished_tasks:
                if deadline and time.monotonic() > deadline:
                    logger.warning("Queued tasks did not finish in time, stopping anyway")
                    break
                time.sleep(0.05)

        for _ in workers:
            try:
                self._tasks.put(STOP, timeout=1.0)
            except queue.Full:
                break

        for worker in workers:
            worker.join(timeout=2.0)

        with self._lock:
            self._workers.clear()
        logger.info("Thread pool stopped")

    @property
    def busy_workers(self) -> int:
        return sum(1 for w in self._workers if w.state == WorkerState.BUSY)

