"""
=============================================================================
TASK QUEUE
=============================================================================

The task queue is the ONLY synchronization primitive in the server. Every
background thread talks to the event loop by putting a Task on this queue;
nothing else is shared.

    ┌────────────────┐
    │ Acceptor thread│──┐
    └────────────────┘  │
    ┌────────────────┐  │   submit()   ┌──────────────────────┐  take_next()  ┌────────────┐
    │ Session-0 read │──┼─────────────►│ T1 │ T2 │ T3 │ ...  │──────────────►│ Event loop │
    └────────────────┘  │              └──────────────────────┘               └────────────┘
    ┌────────────────┐  │                 FIFO, unbounded
    │ Session-1 read │──┘
    └────────────────┘
       many producers                                                      exactly ONE consumer

=============================================================================
WHY UNBOUNDED?
=============================================================================

submit() must never block: a producer is usually a reader thread that has
just pulled a line off a socket, and there is nothing sensible for it to do
if the queue is full. The price is that a flood of input grows memory
without limit. That risk is accepted; there is no capacity, no priority and
no cancellation.

queue.Queue does all the locking for us:
- put() from many threads at once is safe
- get() blocks until something arrives and wakes up as soon as it does
- items come out in the order they went in

=============================================================================
"""

import queue
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Union


@dataclass
class Task:
    """
    A deferred function call: "run this on the event loop later".

    Attributes:
        func: The function to execute.
        args: Positional arguments for the function.
        kwargs: Keyword arguments for the function.
        submitted_at: time.monotonic() at submission (queue latency is logged at DEBUG).
    """
    func: Callable[..., Any]
    args: tuple = ()
    kwargs: dict = field(default_factory=dict)
    submitted_at: float = field(default_factory=time.monotonic)

    def __call__(self) -> None:
        self.func(*self.args, **self.kwargs)

    @property
    def name(self) -> str:
        """Best-effort name of the wrapped function, for log lines."""
        return getattr(self.func, "__qualname__", None) or repr(self.func)

    @property
    def waited(self) -> float:
        """Seconds since the task was submitted."""
        return time.monotonic() - self.submitted_at


# The "poison pill": put on the queue by EventLoop.stop(), never executed.
STOP = object()


class TaskQueue:
    """
    Unbounded multi-producer / single-consumer FIFO of Tasks.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                      TaskQueue Usage                                 │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   tasks = TaskQueue()                                                │
    │                                                                      │
    │   # Any thread                                                       │
    │   tasks.submit(registry.on_line, session, "hello")                   │
    │   tasks.submit(lambda: print("hi"))                                  │
    │                                                                      │
    │   # The event loop thread only                                       │
    │   task = tasks.take_next()   # blocks until something arrives        │
    │   task()                                                             │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

    Single-consumer is a usage contract, not something the queue enforces.
    """

    def __init__(self):
        # maxsize=0 means unbounded: put() never blocks, never raises Full
        self._queue: queue.Queue = queue.Queue()

    def submit(self, func: Callable[..., Any], *args: Any, **kwargs: Any) -> Task:
        """
        Enqueue a call at the tail. Never blocks, never fails.

        Safe from any thread, including the event loop itself (a task may
        schedule follow-up work).

        Args:
            func: A callable, or an already-built Task (args must be empty).
            *args, **kwargs: Arguments for func.

        Returns:
            The Task that was queued.
        """
        if isinstance(func, Task):
            if args or kwargs:
                raise TypeError("cannot pass arguments together with a Task")
            task = func
        else:
            task = Task(func=func, args=args, kwargs=kwargs)

        self._queue.put(task)
        return task

    def put_sentinel(self) -> None:
        """Enqueue the poison pill (STOP) that tells the consumer to stop."""
        self._queue.put(STOP)

    def take_next(self, timeout: Optional[float] = None) -> Union[Task, object]:
        """
        Remove and return the head, blocking until one is available.

        Args:
            timeout: None = wait forever (normal operation). Otherwise raise
                     queue.Empty after this many seconds.

        Returns:
            The next Task, or STOP for the poison pill.
        """
        return self._queue.get(timeout=timeout)

    def try_take(self) -> Union[Task, object, None]:
        """Return the head (a Task or STOP) without blocking, or None if empty."""
        try:
            return self._queue.get_nowait()
        except queue.Empty:
            return None

    @property
    def qsize(self) -> int:
        """Approximate number of pending items."""
        return self._queue.qsize()

    def __len__(self) -> int:
        return self._queue.qsize()
