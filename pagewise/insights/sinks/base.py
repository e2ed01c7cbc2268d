"""Sink protocol for normalized records.

Architecture:
    The pagination engine hands each normalized page to a sink and signals
    the end of the scan with either close() or fail(). Sinks decide whether
    records are held in memory or written out as they arrive.

Design Decision:
    Protocol chosen so the engine does not depend on any response type;
    tests can pass a plain recording object.
"""

from __future__ import annotations

import json
from collections.abc import Sequence
from typing import Protocol

from ..models import Record


class RecordSink(Protocol):
    """Protocol for sinks that receive normalized records page by page."""

    async def write_page(self, records: Sequence[Record]) -> None:
        """Accept one page of records, in order.

        Args:
            records: Normalized records of a single page
        """
        ...

    async def close(self) -> None:
        """Finish the output after the last page. Called once on success."""
        ...

    async def fail(self, exc: BaseException) -> None:
        """Mark the output as failed. Called once instead of close()."""
        ...


def encode_record(record: Record) -> str:
    """Serialize one record as compact JSON text."""
    return json.dumps(record, ensure_ascii=False, separators=(",", ":"))
