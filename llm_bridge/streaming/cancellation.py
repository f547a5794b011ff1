"""Cooperative cancellation of a response read loop."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import AsyncIterable, AsyncIterator, Awaitable
from typing import TypeVar

from llm_bridge.errors import AbortedError

logger = logging.getLogger(__name__)

T = TypeVar("T")

_EXHAUSTED = object()


class CancellationGate:
    """
    Wraps the caller's cancellation signal around a chunk iterator.

    The signal is checked before every read and raced against the pending
    read, so a reader blocked on a silent upstream stops as soon as the
    signal fires. The pending read is cancelled, never drained.
    """

    def __init__(self, signal: asyncio.Event | None = None) -> None:
        self._signal = signal

    @property
    def cancelled(self) -> bool:
        return self._signal is not None and self._signal.is_set()

    def check(self) -> None:
        if self.cancelled:
            raise AbortedError()

    async def run(self, awaitable: Awaitable[T]) -> T:
        """Await ``awaitable`` unless the signal fires first."""
        if self.cancelled:
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            raise AbortedError()
        if self._signal is None:
            return await awaitable

        read = asyncio.ensure_future(awaitable)
        waiter = asyncio.ensure_future(self._signal.wait())
        try:
            done, _ = await asyncio.wait(
                {read, waiter}, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            waiter.cancel()
            if not read.done():
                read.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await read

        if read in done:
            return read.result()
        logger.info("Pending read cancelled by caller")
        raise AbortedError()

    async def guard(self, chunks: AsyncIterable[T]) -> AsyncIterator[T]:
        """Yield from ``chunks`` until exhausted; raise AbortedError on cancel."""
        iterator = aiter(chunks)
        while True:
            chunk = await self.run(anext(iterator, _EXHAUSTED))
            if chunk is _EXHAUSTED:
                return
            yield chunk
