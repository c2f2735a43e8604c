"""Single-owner execution context for capture state.

Every mutation of session/movement/buffer state happens on one thread (the
"owner"). Other threads, such as the sample stream worker or a relay reader,
hand work over through :meth:`OwnerContext.submit` and the owner drains the
queue with :meth:`run_pending` (from its own loop or UI timer) or
:meth:`run_forever`.
"""

from __future__ import annotations

import logging
import queue
import threading
from concurrent.futures import Future
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, Tuple

logger = logging.getLogger(__name__)


@dataclass
class _Task:
    fn: Callable[..., Any]
    args: Tuple[Any, ...] = ()
    kwargs: Dict[str, Any] = field(default_factory=dict)
    future: Future = field(default_factory=Future)


class OwnerContext:
    """Queue-backed thread confinement (bound to the constructing thread by default)."""

    def __init__(self, name: str = "capture-owner") -> None:
        self.name = name
        self._tasks: "queue.Queue[_Task]" = queue.Queue()
        self._owner_ident: Optional[int] = threading.get_ident()
        self._stop_event = threading.Event()

    # ------------------------------------------------------------------ affinity
    def bind_to_current_thread(self) -> None:
        self._owner_ident = threading.get_ident()

    def is_owner_thread(self) -> bool:
        return threading.get_ident() == self._owner_ident

    def require_owner(self, operation: str) -> None:
        if not self.is_owner_thread():
            raise RuntimeError(
                f"{operation} must run on the {self.name} thread; use submit() from other threads"
            )

    # ------------------------------------------------------------------ marshal
    def submit(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Future:
        """Queue ``fn`` for the owner thread and return a future for its result."""
        task = _Task(fn=fn, args=args, kwargs=kwargs)
        self._tasks.put(task)
        return task.future

    def call(self, fn: Callable[..., Any], *args: Any, timeout: Optional[float] = None, **kwargs: Any) -> Any:
        """Run ``fn`` on the owner thread and wait for the result."""
        if self.is_owner_thread():
            return fn(*args, **kwargs)
        return self.submit(fn, *args, **kwargs).result(timeout)

    @property
    def pending(self) -> int:
        return self._tasks.qsize()

    # ------------------------------------------------------------------ drain
    def run_pending(self, max_tasks: Optional[int] = None) -> int:
        """Execute queued tasks without blocking; returns how many ran."""
        self.require_owner("run_pending")
        ran = 0
        while max_tasks is None or ran < max_tasks:
            try:
                task = self._tasks.get_nowait()
            except queue.Empty:
                break
            self._execute(task)
            ran += 1
        return ran

    def run_forever(self, poll_interval_s: float = 0.05) -> None:
        """Block the owner thread processing tasks until :meth:`stop` is called."""
        self.require_owner("run_forever")
        self._stop_event.clear()
        while not self._stop_event.is_set():
            try:
                task = self._tasks.get(timeout=poll_interval_s)
            except queue.Empty:
                continue
            self._execute(task)
        self.run_pending()

    def stop(self) -> None:
        self._stop_event.set()

    def _execute(self, task: _Task) -> None:
        if not task.future.set_running_or_notify_cancel():
            return
        try:
            result = task.fn(*task.args, **task.kwargs)
        except Exception as exc:
            logger.exception("Task %r failed on %s", task.fn, self.name)
            task.future.set_exception(exc)
        else:
            task.future.set_result(result)


__all__ = ["OwnerContext"]
