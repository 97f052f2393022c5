"""
Unit tests for Task and TaskQueue.
"""

import queue
import threading

import pytest

from eventchat.core import STOP, Task, TaskQueue


class TestTask:
    """Tests for the Task dataclass."""

    def test_call_runs_function_with_arguments(self):
        """Calling a task calls func(*args, **kwargs)."""
        calls = []
        task = Task(func=lambda a, b=0: calls.append((a, b)), args=(1,), kwargs={"b": 2})

        task()

        assert calls == [(1, 2)]

    def test_defaults(self):
        """Args and kwargs default to empty; submitted_at is set."""
        task = Task(func=print)

        assert task.args == ()
        assert task.kwargs == {}
        assert task.submitted_at > 0
        assert task.waited >= 0

    def test_name(self):
        def handler():
            pass

        assert Task(func=handler).name.endswith("handler")


class TestTaskQueue:
    """Tests for TaskQueue."""

    def test_fifo_order(self):
        """Tasks come out in submission order."""
        tasks = TaskQueue()
        seen = []
        for i in range(5):
            tasks.submit(seen.append, i)

        for _ in range(5):
            tasks.take_next()()

        assert seen == [0, 1, 2, 3, 4]

    def test_submit_returns_task(self):
        tasks = TaskQueue()
        task = tasks.submit(print, "x", sep="")

        assert isinstance(task, Task)
        assert task.args == ("x",)
        assert task.kwargs == {"sep": ""}
        assert len(tasks) == 1

    def test_submit_prebuilt_task(self):
        """An existing Task is queued as-is."""
        tasks = TaskQueue()
        task = Task(func=print)

        assert tasks.submit(task) is task
        assert tasks.take_next() is task

    def test_submit_task_with_arguments_rejected(self):
        tasks = TaskQueue()

        with pytest.raises(TypeError):
            tasks.submit(Task(func=print), 1)

    def test_take_next_timeout(self):
        """take_next() with a timeout raises queue.Empty when nothing arrives."""
        tasks = TaskQueue()

        with pytest.raises(queue.Empty):
            tasks.take_next(timeout=0.05)

    def test_take_next_wakes_on_submit(self):
        """A blocked consumer wakes up when another thread submits."""
        tasks = TaskQueue()
        got = []

        consumer = threading.Thread(target=lambda: got.append(tasks.take_next(timeout=5.0)))
        consumer.start()
        submitted = tasks.submit(print)
        consumer.join(timeout=5.0)

        assert got == [submitted]

    def test_try_take(self):
        tasks = TaskQueue()
        assert tasks.try_take() is None

        task = tasks.submit(print)
        assert tasks.try_take() is task
        assert tasks.try_take() is None

    def test_sentinel(self):
        tasks = TaskQueue()
        tasks.put_sentinel()

        assert tasks.take_next() is STOP

    def test_unbounded(self):
        """Submitting never blocks, however many tasks are queued."""
        tasks = TaskQueue()
        for i in range(10_000):
            tasks.submit(print, i)

        assert tasks.qsize == 10_000

    def test_order_preserved_per_producer(self):
        """Across concurrent producers, each producer's tasks stay in order."""
        tasks = TaskQueue()
        producers = 8
        per_producer = 200

        def produce(pid):
            for seq in range(per_producer):
                tasks.submit(print, pid, seq)

        threads = [threading.Thread(target=produce, args=(p,)) for p in range(producers)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        last = {}
        count = 0
        while True:
            task = tasks.try_take()
            if task is None:
                break
            pid, seq = task.args
            assert seq == last.get(pid, -1) + 1
            last[pid] = seq
            count += 1

        assert count == producers * per_producer
