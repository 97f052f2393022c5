"""
=============================================================================
EVENT LOOP
=============================================================================

One thread, one queue, one task at a time, forever.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        Event Loop                                    │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   1. task = queue.take_next()      (blocks while the queue is empty) │
    │          │                                                           │
    │          ├── STOP?  → leave the loop (tests / embedding only)        │
    │          │                                                           │
    │   2. task()                                                          │
    │          │                                                           │
    │          └── raised? → log it, count it, carry on                    │
    │                                                                      │
    │   3. back to 1                                                       │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Because exactly one thread executes tasks and each task runs to completion
before the next is taken, anything that only tasks touch needs no lock.
The chat registry relies on this: it is mutated from task bodies only, and
it checks in_loop_thread() to make that structural.

=============================================================================
HEAD-OF-LINE BLOCKING
=============================================================================

A task that blocks (e.g. a write to a peer whose socket buffer is full)
blocks the whole loop. Every other task waits behind it. This is a known
weakness of the design; keep tasks short.

=============================================================================
"""

import logging
import threading
from typing import Any, Callable, Optional

from .task_queue import STOP, Task, TaskQueue


logger = logging.getLogger(__name__)


class EventLoop:
    """
    Single-threaded executor of Tasks.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                      EventLoop Usage                                 │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   loop = EventLoop()                                                 │
    │                                                                      │
    │   # Production: run on the main thread until the process dies       │
    │   loop.run_forever()                                                 │
    │                                                                      │
    │   # Tests: run on a background thread, stop when done               │
    │   loop.start()                                                       │
    │   loop.submit(do_something, arg)                                     │
    │   loop.stop(); loop.join()                                           │
    │                                                                      │
    │   # Tests: drive it by hand, no extra thread at all                 │
    │   loop.submit(do_something, arg)                                     │
    │   loop.run_pending()                                                 │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘
    """

    def __init__(self, tasks: Optional[TaskQueue] = None):
        """
        Args:
            tasks: Queue to consume. A fresh one is created if not given.
        """
        self._tasks = tasks if tasks is not None else TaskQueue()

        # Ident of the thread currently executing tasks (None = nobody)
        self._owner: Optional[int] = None
        self._owner_lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None

        # Metrics
        self.tasks_completed = 0
        self.tasks_failed = 0

    @property
    def tasks(self) -> TaskQueue:
        """The queue this loop consumes."""
        return self._tasks

    def submit(self, func: Callable[..., Any], *args: Any, **kwargs: Any) -> Task:
        """Schedule func(*args, **kwargs) on the loop. Safe from any thread."""
        return self._tasks.submit(func, *args, **kwargs)

    def in_loop_thread(self) -> bool:
        """True if the calling thread is the one executing this loop's tasks."""
        return self._owner is not None and self._owner == threading.get_ident()

    # =========================================================================
    # RUNNING
    # =========================================================================

    def run_forever(self) -> None:
        """
        Execute tasks on the calling thread until stop() is requested.

        In the server this never returns: nothing ever calls stop().
        """
        previous = self._claim()
        logger.debug("Event loop running")

        try:
            while True:
                task = self._tasks.take_next()
                if task is STOP:
                    break
                self._execute(task)
        finally:
            self._release(previous)
            logger.debug("Event loop stopped")

    def run_pending(self) -> int:
        """
        Execute everything queued right now, then return.

        Tasks enqueued by the tasks being run are executed too. Never blocks.
        A STOP found on the queue ends the run early.

        Returns:
            Number of tasks executed.
        """
        previous = self._claim()
        executed = 0

        try:
            while True:
                task = self._tasks.try_take()
                if task is None or task is STOP:
                    break
                self._execute(task)
                executed += 1
        finally:
            self._release(previous)

        return executed

    def _claim(self) -> Optional[int]:
        """Make the calling thread the executor; refuse a second concurrent one."""
        me = threading.get_ident()
        with self._owner_lock:
            previous = self._owner
            if previous is not None and previous != me:
                raise RuntimeError("Event loop is already running on another thread")
            self._owner = me
        return previous

    def _release(self, previous: Optional[int]) -> None:
        with self._owner_lock:
            self._owner = previous

    def _execute(self, task: Task) -> None:
        """
        Run one task to completion.

        A task that raises is logged with its traceback and counted; the
        loop itself must survive any single bad task.
        """
        logger.debug(f"Running {task.name} after {task.waited * 1000:.1f}ms in queue")
        try:
            task()
            self.tasks_completed += 1
        except Exception as e:
            self.tasks_failed += 1
            logger.exception(f"Task {task.name} failed: {e}")

    # =========================================================================
    # BACKGROUND THREAD (tests and embedding)
    # =========================================================================

    def start(self) -> None:
        """Run the loop on a dedicated daemon thread named 'EventLoop'."""
        if self._thread is not None and self._thread.is_alive():
            raise RuntimeError("Event loop thread already started")

        self._thread = threading.Thread(target=self.run_forever, name="EventLoop", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        """
        Ask the loop to stop after the tasks already queued.

        Enqueues the poison pill, so everything submitted before this call
        still runs first.
        """
        self._tasks.put_sentinel()

    def join(self, timeout: Optional[float] = None) -> bool:
        """
        Wait for the loop thread started by start() to exit.

        Returns:
            True if the thread has exited (or was never started).
        """
        if self._thread is None:
            return True
        self._thread.join(timeout)
        return not self._thread.is_alive()

    # =========================================================================
    # MONITORING
    # =========================================================================

    @property
    def stats(self) -> dict:
        """Task counts, for debugging and tests."""
        return {
            "queued": self._tasks.qsize,
            "completed": self.tasks_completed,
            "failed": self.tasks_failed,
        }
