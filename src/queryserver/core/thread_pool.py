"""
=============================================================================
THREAD POOL
=============================================================================

A fixed set of worker threads pulling tasks off a bounded queue.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   accept loop ──submit()──►  [ task | task | task | ... ]  bounded   │
    │                                   │      │      │                    │
    │                              Worker-0 Worker-1 Worker-N              │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

submit() never blocks the accept loop: when the queue is full it returns
False and the caller answers 503.

Shutdown puts one ``None`` (a poison pill) on the queue per worker. Each
worker exits when it takes one, after finishing whatever was ahead of it.
=============================================================================
"""

from typing import Any, Callable, Optional
import logging
import queue
import threading
import time


logger = logging.getLogger(__name__)


class Worker(threading.Thread):
    """Runs tasks until it receives the poison pill."""

    def __init__(self, task_queue: queue.Queue, worker_id: int):
        super().__init__(name=f"Worker-{worker_id}", daemon=True)
        self.task_queue = task_queue
        self.worker_id = worker_id
        self.tasks_completed = 0
        self.tasks_failed = 0

    def run(self):
        logger.debug(f"Worker {self.worker_id} started")
        while True:
            task = self.task_queue.get()
            try:
                if task is None:
                    break
                self._execute(*task)
            finally:
                self.task_queue.task_done()
        logger.debug(f"Worker {self.worker_id} stopped")

    def _execute(self, func: Callable[..., Any], args: tuple):
        start = time.perf_counter()
        try:
            func(*args)
            self.tasks_completed += 1
        except Exception as e:
            # A failing task must not take the worker down with it.
            self.tasks_failed += 1
            logger.exception(
                f"Worker {self.worker_id} task failed after "
                f"{time.perf_counter() - start:.3f}s: {e}"
            )


class ThreadPool:
    """
    Fixed-size worker pool.

        pool = ThreadPool(workers=8, queue_size=64)
        pool.start()
        if not pool.submit(handle, conn):
            reject(conn)
        pool.shutdown()
    """

    def __init__(self, workers: int = 8, queue_size: int = 64):
        if workers < 1:
            raise ValueError("workers must be >= 1")
        self.num_workers = workers
        self._queue: queue.Queue[Optional[tuple]] = queue.Queue(maxsize=queue_size)
        self._workers: list[Worker] = []
        self._lock = threading.Lock()
        self._started = False
        self._closing = False

    @property
    def is_running(self) -> bool:
        return self._started and not self._closing

    def start(self):
        with self._lock:
            if self._started:
                return
            logger.info(f"Starting thread pool with {self.num_workers} workers")
            for worker_id in range(self.num_workers):
                worker = Worker(self._queue, worker_id)
                worker.start()
                self._workers.append(worker)
            self._started = True

    def submit(self, func: Callable[..., Any], *args: Any) -> bool:
        """
        Queue ``func(*args)``.

        Returns False when the queue is full.

        Raises:
            RuntimeError: the pool is not running.
        """
        if not self.is_running:
            raise RuntimeError("Thread pool is not running")
        try:
            self._queue.put_nowait((func, args))
            return True
        except queue.Full:
            return False

    def shutdown(self, timeout: Optional[float] = 30.0):
        """
        Let queued tasks finish, then stop every worker.

        Waits at most ``timeout`` seconds per worker; workers are daemon
        threads, so any that are still stuck do not keep the process alive.
        """
        with self._lock:
            if not self._started or self._closing:
                return
            self._closing = True

        logger.info("Shutting down thread pool...")
        for _ in self._workers:
            self._queue.put(None)
        for worker in self._workers:
            worker.join(timeout)
            if worker.is_alive():
                logger.warning(f"{worker.name} did not stop within {timeout}s")

        stats = self.stats
        self._workers.clear()
        logger.info(
            f"Thread pool shutdown complete: {stats['completed']} tasks completed, "
            f"{stats['failed']} failed"
        )

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    @property
    def stats(self) -> dict:
        return {
            "workers": len(self._workers),
            "pending": self.pending,
            "completed": sum(w.tasks_completed for w in self._workers),
            "failed": sum(w.tasks_failed for w in self._workers),
        }
