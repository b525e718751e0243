"""FIFO, single-worker queue that serializes pipeline runs."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

T = TypeVar("T")

Job = tuple[Callable[[], Awaitable[Any]], "asyncio.Future[Any]"]


class OperationQueue:
    """
    Runs submitted coroutines one at a time, in submission order.

    Each run may suspend many times internally; the next run is not started
    until the previous one has finished, successfully or not. Capacity is
    unbounded.
    """

    def __init__(self) -> None:
        self._pending: asyncio.Queue[Job] = asyncio.Queue()
        self._worker: asyncio.Task[None] | None = None
        self._active = False

    @property
    def depth(self) -> int:
        """Number of runs waiting, including the one in progress."""
        return self._pending.qsize() + (1 if self._active else 0)

    def enqueue(self, run: Callable[[], Awaitable[T]]) -> asyncio.Future[T]:
        """
        Admit a run to the queue.

        Must be called from the event loop thread.

        Returns:
            Future resolved with the run's result (or its exception)
        """
        loop = asyncio.get_running_loop()
        fut: asyncio.Future[T] = loop.create_future()
        self._pending.put_nowait((run, fut))
        self._ensure_worker()
        return fut

    def _ensure_worker(self) -> None:
        if self._worker is None or self._worker.done():
            self._worker = asyncio.get_running_loop().create_task(self._drain())

    async def _drain(self) -> None:
        while True:
            run, fut = await self._pending.get()
            self._active = True
            try:
                result = await run()
            except asyncio.CancelledError:
                if not fut.done():
                    fut.cancel()
                raise
            except Exception as e:  # noqa: BLE001
                # Failures stay with their own run; the queue keeps draining.
                if not fut.done():
                    fut.set_exception(e)
            else:
                if not fut.done():
                    fut.set_result(result)
            finally:
                self._active = False
                self._pending.task_done()

    async def join(self) -> None:
        """Wait until every admitted run has finished."""
        await self._pending.join()

    async def close(self) -> None:
        """Stop the worker. Runs still waiting are cancelled."""
        if self._worker is not None:
            self._worker.cancel()
            try:
                await self._worker
            except asyncio.CancelledError:
                pass
            self._worker = None
        while not self._pending.empty():
            _, fut = self._pending.get_nowait()
            if not fut.done():
                fut.cancel()
            self._pending.task_done()
