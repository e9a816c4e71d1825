"""
Presentation dispatcher.

Worker threads (capture, inference callbacks) never mutate shared state
directly; they post closures here. The main thread drains the queue, so the
frame history store and published detection state have a single writer.
"""

from __future__ import annotations

import logging
import queue
import threading
from typing import Callable, Optional


Task = Callable[[], None]


class PresentationDispatcher:
    """Thread-safe FIFO of tasks executed only by the owning thread."""

    def __init__(self) -> None:
        self._tasks: "queue.Queue[Task]" = queue.Queue()
        self._owner: Optional[int] = None

    def bind_current_thread(self) -> None:
        """Mark the calling thread as the presentation thread."""
        self._owner = threading.get_ident()

    @property
    def on_presentation_thread(self) -> bool:
        return self._owner is None or self._owner == threading.get_ident()

    def post(self, task: Task) -> None:
        """Schedule a task; safe from any thread."""
        self._tasks.put(task)

    def pending(self) -> int:
        return self._tasks.qsize()

    def drain(self, max_tasks: Optional[int] = None, timeout: float = 0.0) -> int:
        """
        Run queued tasks in post order.

        Args:
            max_tasks: Stop after this many tasks (None = until empty).
            timeout: Seconds to wait for the first task if the queue is empty.

        Returns:
            Number of tasks executed.
        """
        if not self.on_presentation_thread:
            raise RuntimeError("drain() called off the presentation thread")

        executed = 0
        block = timeout > 0
        while max_tasks is None or executed < max_tasks:
            try:
                task = self._tasks.get(block=block, timeout=timeout if block else None)
            except queue.Empty:
                break
            block = False
            try:
                task()
            except Exception as e:
                logging.error(f"Presentation task failed: {e}")
                raise
            finally:
                executed += 1
        return executed
