"""Pagination metadata definitions.

This module defines the data structures used to describe a single page
request and the outcome of a whole paginated scan, plus the page query
builder that turns a scan window into query text.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta

from ...core.enums import ScanState
from ...models import TimeWindow
from ...normalization import format_canonical_timestamp

# Finest unit the cursor advances by past the last emitted row.
TIME_QUANTUM = timedelta(milliseconds=1)


@dataclass(frozen=True)
class PagePlan:
    """Plan for a single page fetch.

    Attributes:
        window: Time window this page covers
        limit: Maximum rows requested
        query: Full query text sent to the service
        page_index: Zero-based index of this page in the scan
    """

    window: TimeWindow
    limit: int
    query: str
    page_index: int = 0


@dataclass
class PageResult:
    """Result of a paginated scan.

    Attributes:
        pages_fetched: Number of fetches performed (including a terminal sentinel)
        total_records: Number of records written to the sink
        windows: Every window requested, in order
        state: Terminal state of the scan
        start_timestamp: Timestamp of the first emitted record
        end_timestamp: Timestamp of the last emitted record
    """

    pages_fetched: int = 0
    total_records: int = 0
    windows: list[TimeWindow] = field(default_factory=list)
    state: ScanState = ScanState.IDLE
    start_timestamp: datetime | None = None
    end_timestamp: datetime | None = None


def build_page_query(query: str, window: TimeWindow, limit: int) -> str:
    """Conjoin ``query`` with the window predicate, timestamp order and row limit.

    The ascending timestamp sort is required: cursor advance assumes rows
    arrive in non-decreasing timestamp order. An unbounded window emits no
    upper predicate.
    """
    predicate = f"timestamp >= datetime('{format_canonical_timestamp(window.start)}')"
    if window.end is not None:
        predicate += f" and timestamp < datetime('{format_canonical_timestamp(window.end)}')"
    return f"{query} | where {predicate} | order by timestamp asc | take {limit}"
