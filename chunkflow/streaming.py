"""Caller-facing streaming result.

A StreamingResult wraps an async iterator of StreamChunk events. Callers
can consume the incremental text through ``text_stream`` and/or await the
fully resolved ``text()``, ``finish_reason()`` and ``usage()``; awaiting any
of those drains whatever part of the stream has not been read yet.

Backends build one from their native token stream. The orchestrator builds
one with ``from_text`` when it has merged several chunk results, so callers
see the same interface whichever path produced the answer.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Awaitable
from typing import TypeVar

from chunkflow.errors import StreamCancelledError
from chunkflow.schemas.streaming import StreamChunk, TokenUsage

T = TypeVar("T")

# Returned by a pull once the source is exhausted
_EXHAUSTED = object()


async def until_aborted(awaitable: Awaitable[T], abort: asyncio.Event, what: str) -> T:
    """Await ``awaitable`` unless ``abort`` fires first.

    On abort the pending work is cancelled and StreamCancelledError raised.

    Raises:
        StreamCancelledError: If ``abort`` is set before ``awaitable`` finishes.
    """
    if abort.is_set():
        if asyncio.iscoroutine(awaitable):
            awaitable.close()
        raise StreamCancelledError(f"Request aborted before {what}")

    work = asyncio.ensure_future(awaitable)
    abort_task = asyncio.ensure_future(abort.wait())
    try:
        done, _ = await asyncio.wait({work, abort_task}, return_when=asyncio.FIRST_COMPLETED)
    except asyncio.CancelledError:
        work.cancel()
        raise
    finally:
        abort_task.cancel()

    if work in done:
        return work.result()

    work.cancel()
    # Wait for the cancellation to land without re-raising its outcome
    await asyncio.wait({work})
    if not work.cancelled() and work.exception() is None:
        late = work.result()
        if isinstance(late, StreamingResult):
            await late.aclose()
    raise StreamCancelledError(f"Request aborted during {what}")


class StreamingResult:
    """Incremental text stream plus its eventually resolved outcome."""

    def __init__(self, source: AsyncIterator[StreamChunk]) -> None:
        self._source = source
        self._parts: list[str] = []
        self._finish_reason: str | None = None
        self._usage: TokenUsage | None = None
        self._done = False
        self._abort: asyncio.Event | None = None

    @classmethod
    def from_text(
        cls,
        text: str,
        *,
        usage: TokenUsage | None = None,
        finish_reason: str = "stop",
    ) -> StreamingResult:
        """Build a result whose stream yields ``text`` as a single unit."""

        async def _single() -> AsyncIterator[StreamChunk]:
            yield StreamChunk(
                delta=text,
                accumulated=text,
                token_count=usage.completion_tokens if usage else 0,
                is_complete=True,
                finish_reason=finish_reason,
                usage=usage,
            )

        return cls(_single())

    def cancel_on(self, abort: asyncio.Event) -> StreamingResult:
        """Tie the stream to ``abort``.

        Once ``abort`` is set the next read, or the one in progress, closes
        the source and raises StreamCancelledError.
        """
        self._abort = abort
        return self

    @property
    def done(self) -> bool:
        """True once the underlying stream has been fully consumed."""
        return self._done

    @property
    def text_stream(self) -> AsyncIterator[str]:
        """Async iterator over the text deltas not yet consumed."""
        return self._iter_text()

    async def text(self) -> str:
        """Drain the stream and return the full response text."""
        while await self._advance() is not None:
            pass
        return "".join(self._parts)

    async def finish_reason(self) -> str:
        await self.text()
        return self._finish_reason or "stop"

    async def usage(self) -> TokenUsage:
        await self.text()
        return self._usage or TokenUsage()

    async def aclose(self) -> None:
        """Stop the underlying stream early."""
        self._done = True
        aclose = getattr(self._source, "aclose", None)
        if aclose is not None:
            await aclose()

    async def _iter_text(self) -> AsyncIterator[str]:
        while (delta := await self._advance()) is not None:
            if delta:
                yield delta

    async def _advance(self) -> str | None:
        """Pull one event from the source; None once the stream is exhausted."""
        if self._done:
            return None
        if self._abort is None:
            chunk = await self._pull()
        else:
            try:
                chunk = await until_aborted(self._pull(), self._abort, "streaming")
            except StreamCancelledError:
                await self.aclose()
                raise

        if chunk is _EXHAUSTED:
            self._done = True
            return None

        if chunk.delta:
            self._parts.append(chunk.delta)
        if chunk.finish_reason:
            self._finish_reason = chunk.finish_reason
        if chunk.usage is not None:
            self._usage = chunk.usage
        return chunk.delta

    async def _pull(self) -> StreamChunk | object:
        try:
            return await anext(self._source)
        except StopAsyncIteration:
            return _EXHAUSTED
