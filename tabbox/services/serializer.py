"""
Event serializer - one FIFO queue for every session event and UI command.

Each unit of work runs to completion, including all of its awaits on the
provider and the store, before the next one starts. That is the only thing
keeping read-modify-write passes on the StorageDocument from interleaving.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

__all__ = ['EventSerializer', 'Unit']

logger = logging.getLogger(__name__)

Unit = Callable[[], Awaitable[Any]]


class EventSerializer:
    """
    Single-worker asyncio queue.

    ``post`` is fire-and-forget (session events); ``submit`` returns a future
    resolved with the unit's result (UI commands). A failing unit is logged and
    the worker moves on to the next one.
    """

    def __init__(self) -> None:
        self._queue: asyncio.Queue[tuple[Unit, str, asyncio.Future[Any] | None]] = asyncio.Queue()
        self._worker: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    def start(self) -> None:
        """Start the worker task. Idempotent; requires a running event loop."""
        if not self.running:
            self._worker = asyncio.create_task(self._run(), name='tabbox-serializer')

    def post(self, unit: Unit, label: str = 'unit') -> None:
        """Enqueue ``unit`` without waiting for it."""
        self._queue.put_nowait((unit, label, None))

    def submit(self, unit: Unit, label: str = 'unit') -> asyncio.Future[Any]:
        """
        Enqueue ``unit`` and return a future for its result.

        The unit's exception, if any, is set on the future as well as logged.
        """
        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        self._queue.put_nowait((unit, label, future))
        return future

    async def join(self) -> None:
        """Wait until every queued unit (including ones they enqueue) has run."""
        self.start()
        await self._queue.join()

    async def aclose(self) -> None:
        """
        Stop the worker. Units still queued are dropped and the futures of
        dropped ``submit`` calls are cancelled, so their callers don't hang.
        """
        if self._worker is not None:
            self._worker.cancel()
            try:
                await self._worker
            except asyncio.CancelledError:
                pass
            self._worker = None

        dropped = 0
        while not self._queue.empty():
            _, label, future = self._queue.get_nowait()
            self._queue.task_done()
            dropped += 1
            logger.debug(f'Dropping {label}')
            if future is not None and not future.done():
                future.cancel()
        if dropped:
            logger.warning(f'Serializer closed with {dropped} queued units dropped')

    async def _run(self) -> None:
        while True:
            unit, label, future = await self._queue.get()
            try:
                logger.debug(f'Running {label}')
                result = await unit()
            except asyncio.CancelledError:
                if future is not None and not future.done():
                    future.cancel()
                raise
            except Exception as e:
                logger.exception(f'{label} failed')
                if future is not None and not future.done():
                    future.set_exception(e)
            else:
                if future is not None and not future.done():
                    future.set_result(result)
            finally:
                self._queue.task_done()
