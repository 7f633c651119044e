"""Durable asynchronous task execution.

Batch items, collection chunks and deferred media acquisitions run as
independent tasks submitted through :class:`TaskQueue`.  A task is a
``(callback_name, args, run_at)`` triple; callbacks are looked up by name
on the worker that executes the task, which may not be the process that
scheduled it.  Delivery is at-least-once, so every callback must be safe
to run again after a partial run.

:class:`MemoryTaskQueue` is an in-process implementation used for local
runs and tests.  It redelivers a failing task up to ``max_attempts`` times
and then hands it to the registered dead-task handler.
"""

from __future__ import annotations

import threading
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Protocol, runtime_checkable

from notionpress.models import utcnow
from notionpress.observability import get_logger

log = get_logger("notionpress.tasks")

TaskHandler = Callable[[dict[str, Any]], None]
DeadTaskHandler = Callable[[str, dict[str, Any], BaseException], None]


@runtime_checkable
class TaskQueue(Protocol):
    """Protocol for the platform's durable task queue."""

    def enqueue_async_task(
        self,
        callback_name: str,
        args: dict[str, Any],
        run_at: datetime,
    ) -> str:
        """Schedule *callback_name* with *args* no earlier than *run_at*.

        Returns a task id usable with :meth:`unschedule`.
        """
        ...

    def unschedule(self, task_id: str) -> bool:
        """Remove a task that has not started.  Returns ``True`` if removed."""
        ...


@dataclass
class ScheduledTask:
    """A task held by :class:`MemoryTaskQueue`."""

    task_id: str
    callback_name: str
    args: dict[str, Any]
    run_at: datetime
    attempts: int = 0
    last_error: str | None = None
    history: list[str] = field(default_factory=list)


class MemoryTaskQueue:
    """In-process :class:`TaskQueue` with at-least-once redelivery.

    Parameters
    ----------
    max_attempts:
        Deliveries per task before it is handed to the dead-task handler.
    clock:
        Zero-argument callable returning "now"; injectable for tests.
    """

    def __init__(
        self,
        max_attempts: int = 3,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")
        self.max_attempts = max_attempts
        self._clock = clock
        self._tasks: dict[str, ScheduledTask] = {}
        self._handlers: dict[str, TaskHandler] = {}
        self._dead_handlers: list[DeadTaskHandler] = []
        self._lock = threading.RLock()

    # -- registration ------------------------------------------------------

    def register(self, callback_name: str, handler: TaskHandler) -> None:
        """Bind *callback_name* to the function that executes it."""
        self._handlers[callback_name] = handler

    def on_dead_task(self, handler: DeadTaskHandler) -> None:
        """Register a handler called once a task exhausts its attempts."""
        self._dead_handlers.append(handler)

    # -- TaskQueue ---------------------------------------------------------

    def enqueue_async_task(
        self,
        callback_name: str,
        args: dict[str, Any],
        run_at: datetime,
    ) -> str:
        task = ScheduledTask(
            task_id=uuid.uuid4().hex,
            callback_name=callback_name,
            args=dict(args),
            run_at=run_at,
        )
        with self._lock:
            self._tasks[task.task_id] = task
        log.debug(
            "Task enqueued",
            extra={
                "extra_fields": {
                    "task_id": task.task_id,
                    "callback": callback_name,
                    "run_at": run_at.isoformat(),
                }
            },
        )
        return task.task_id

    def unschedule(self, task_id: str) -> bool:
        with self._lock:
            return self._tasks.pop(task_id, None) is not None

    # -- inspection --------------------------------------------------------

    def pending(self, callback_name: str | None = None) -> list[ScheduledTask]:
        """Return queued tasks ordered by ``run_at``."""
        with self._lock:
            tasks = sorted(self._tasks.values(), key=lambda t: t.run_at)
        if callback_name is not None:
            tasks = [t for t in tasks if t.callback_name == callback_name]
        return tasks

    def __len__(self) -> int:
        with self._lock:
            return len(self._tasks)

    # -- execution ---------------------------------------------------------

    def run_due(self, now: datetime | None = None) -> int:
        """Execute every task whose ``run_at`` is not after *now*.

        Tasks enqueued by running callbacks are picked up in the same call
        when they are already due.  Returns the number of deliveries made.
        """
        deliveries = 0
        while True:
            cutoff = now if now is not None else self._clock()
            task = self._pop_next(cutoff)
            if task is None:
                return deliveries
            deliveries += 1
            self._deliver(task)

    def run_all(self) -> int:
        """Execute every queued task regardless of ``run_at``."""
        deliveries = 0
        while True:
            task = self._pop_next(None)
            if task is None:
                return deliveries
            deliveries += 1
            self._deliver(task)

    def _pop_next(self, cutoff: datetime | None) -> ScheduledTask | None:
        with self._lock:
            ready = [
                t for t in self._tasks.values()
                if cutoff is None or t.run_at <= cutoff
            ]
            if not ready:
                return None
            task = min(ready, key=lambda t: t.run_at)
            del self._tasks[task.task_id]
            return task

    def _deliver(self, task: ScheduledTask) -> None:
        task.attempts += 1
        handler = self._handlers.get(task.callback_name)
        try:
            if handler is None:
                raise LookupError(f"No handler registered for {task.callback_name!r}")
            handler(task.args)
        except Exception as exc:
            task.last_error = str(exc)
            task.history.append(task.last_error)
            log.warning(
                "Task delivery failed",
                exc_info=True,
                extra={
                    "extra_fields": {
                        "task_id": task.task_id,
                        "callback": task.callback_name,
                        "attempt": task.attempts,
                        "max_attempts": self.max_attempts,
                    }
                },
            )
            if task.attempts < self.max_attempts and handler is not None:
                with self._lock:
                    self._tasks[task.task_id] = task
                return
            for dead_handler in self._dead_handlers:
                dead_handler(task.callback_name, task.args, exc)
