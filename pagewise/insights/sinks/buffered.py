"""Buffered JSON array sink."""

from __future__ import annotations

from collections.abc import Sequence

from ..models import Record
from .base import encode_record


class BufferedJsonSink:
    """Holds every record in memory and renders one JSON array at the end."""

    def __init__(self) -> None:
        self._records: list[Record] = []
        self._closed = False
        self._error: BaseException | None = None

    @property
    def records(self) -> list[Record]:
        return list(self._records)

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def failed(self) -> bool:
        return self._error is not None

    async def write_page(self, records: Sequence[Record]) -> None:
        if self._closed or self._error is not None:
            raise RuntimeError("sink is already finished")
        self._records.extend(records)

    async def close(self) -> None:
        self._closed = True

    async def fail(self, exc: BaseException) -> None:
        self._error = exc

    def body(self) -> bytes:
        """Return the JSON array of all records (``[]`` when empty)."""
        if self._error is not None:
            raise RuntimeError("cannot render a failed scan") from self._error
        return ("[" + ",".join(encode_record(r) for r in self._records) + "]").encode("utf-8")

    def __len__(self) -> int:
        return len(self._records)
