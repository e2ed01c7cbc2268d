"""Streaming JSON array sink.

Writes ``[``, then each record separated by ``,``, then ``]`` to an async
writer as pages arrive, so memory use is bounded by one page. The writer is
opened lazily on the first page (or on close for an empty result): a scan
that fails before emitting anything leaves the response untouched and the
caller can still send a regular error status.

After fail() the closing ``]`` is never written. Whoever owns the transport
must abort it so a truncated array is never delivered as a complete response.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Sequence
from typing import Protocol

from ..models import Record
from .base import encode_record

logger = logging.getLogger(__name__)


class AsyncWriter(Protocol):
    async def write(self, data: bytes) -> None: ...


class StreamingJsonSink:
    """Incrementally emits a JSON array to an async writer."""

    def __init__(self, open_writer: Callable[[], Awaitable[AsyncWriter]]) -> None:
        """Initialize streaming sink.

        Args:
            open_writer: Coroutine factory returning the writer; called at most once
        """
        self._open_writer = open_writer
        self._writer: AsyncWriter | None = None
        self._count = 0
        self._closed = False
        self._error: BaseException | None = None

    @property
    def started(self) -> bool:
        """Whether any bytes have been handed to the writer."""
        return self._writer is not None

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def failed(self) -> bool:
        return self._error is not None

    @property
    def records_written(self) -> int:
        return self._count

    async def _ensure_open(self) -> AsyncWriter:
        if self._writer is None:
            self._writer = await self._open_writer()
            await self._writer.write(b"[")
        return self._writer

    async def write_page(self, records: Sequence[Record]) -> None:
        if self._closed or self._error is not None:
            raise RuntimeError("sink is already finished")
        if not records:
            return
        writer = await self._ensure_open()
        chunk = ",".join(encode_record(r) for r in records)
        if self._count:
            chunk = "," + chunk
        await writer.write(chunk.encode("utf-8"))
        self._count += len(records)

    async def close(self) -> None:
        if self._error is not None:
            raise RuntimeError("cannot close a failed sink")
        if self._closed:
            return
        writer = await self._ensure_open()
        await writer.write(b"]")
        self._closed = True

    async def fail(self, exc: BaseException) -> None:
        self._error = exc
        if self.started:
            logger.warning(
                "stream_truncated",
                extra={"records_written": self._count, "error_type": type(exc).__name__},
            )
