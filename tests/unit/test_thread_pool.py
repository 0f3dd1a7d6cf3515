"""
Unit tests for the worker pool.
"""

import logging
import threading

import pytest

from queryserver.core.thread_pool import ThreadPool


class TestThreadPool:
    """Tests for ThreadPool."""

    def test_runs_tasks(self):
        pool = ThreadPool(workers=2, queue_size=4)
        pool.start()
        done = threading.Event()
        results = []

        def task(value):
            results.append(value)
            done.set()

        assert pool.submit(task, 42)
        assert done.wait(5.0)
        pool.shutdown()

        assert results == [42]

    def test_full_queue_rejects(self):
        pool = ThreadPool(workers=1, queue_size=1)
        pool.start()
        release = threading.Event()
        started = threading.Event()

        def blocker():
            started.set()
            release.wait(5.0)

        try:
            assert pool.submit(blocker)
            assert started.wait(5.0)
            assert pool.submit(blocker)      # waits in the queue
            assert not pool.submit(blocker)  # no room left
        finally:
            release.set()
            pool.shutdown()

    def test_failing_task_does_not_kill_worker(self, caplog):
        pool = ThreadPool(workers=1, queue_size=4)
        pool.start()
        done = threading.Event()

        def boom():
            raise RuntimeError("boom")

        pool.submit(boom)
        pool.submit(done.set)
        assert done.wait(5.0)

        with caplog.at_level(logging.INFO, logger="queryserver.core.thread_pool"):
            pool.shutdown()

        assert "1 tasks completed, 1 failed" in caplog.text

    def test_submit_requires_running_pool(self):
        pool = ThreadPool(workers=1)

        with pytest.raises(RuntimeError):
            pool.submit(print)

        pool.start()
        pool.shutdown()
        with pytest.raises(RuntimeError):
            pool.submit(print)

    def test_shutdown_is_idempotent(self):
        pool = ThreadPool(workers=2)
        pool.start()
        pool.shutdown()
        pool.shutdown()

        assert not pool.is_running

    def test_invalid_worker_count(self):
        with pytest.raises(ValueError):
            ThreadPool(workers=0)
