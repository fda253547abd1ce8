"""Strictly ordered execution of index mutations."""

import asyncio
import logging
from collections import deque
from typing import Any, Awaitable, Callable, Deque, Optional, Tuple, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

Task = Callable[[], Awaitable[Any]]


class WriteSerializer:
    """Single-worker FIFO queue for read-modify-write cycles on an index.

    Every submitted task runs to completion before the next one starts, in
    submission order, so each task sees the committed result of the one
    before it. A task that raises only fails its own submitter.

    Tasks are not cancellable once submitted: if the submitter stops
    waiting (timeout, cancellation) the task still runs. The queue is
    unbounded.

    The worker is started lazily on the running event loop and exits when
    the queue drains, so an idle serializer holds no task.
    """

    def __init__(self, name: str = "index"):
        self.name = name
        self._pending: Deque[Tuple[Task, asyncio.Future]] = deque()
        self._worker: Optional[asyncio.Task] = None

    @property
    def pending(self) -> int:
        """Number of submitted tasks that have not started yet."""
        return len(self._pending)

    async def submit(self, task: Callable[[], Awaitable[T]]) -> T:
        """Queue a task and wait for its result.

        Args:
            task: Zero-argument callable returning an awaitable.

        Returns:
            The task's result.

        Raises:
            Whatever the task raises.
        """
        loop = asyncio.get_running_loop()
        future = loop.create_future()
        self._pending.append((task, future))
        self._ensure_worker(loop)
        return await future

    async def join(self) -> None:
        """Wait until every submitted task has run."""
        while self._worker is not None and not self._worker.done():
            await asyncio.shield(self._worker)

    def _ensure_worker(self, loop: asyncio.AbstractEventLoop) -> None:
        worker = self._worker
        if worker is None or worker.done() or worker.get_loop() is not loop:
            self._worker = loop.create_task(self._drain())

    async def _drain(self) -> None:
        while self._pending:
            task, future = self._pending.popleft()
            try:
                result = await task()
            except asyncio.CancelledError:
                # Only reached when the loop itself shuts the worker down
                future.cancel()
                while self._pending:
                    self._pending.popleft()[1].cancel()
                raise
            except Exception as e:
                logger.debug(f"Task on {self.name} serializer failed: {e!r}")
                if not future.done():
                    future.set_exception(e)
            else:
                if not future.done():
                    future.set_result(result)
