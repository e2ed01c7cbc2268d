"""Incremental pagination over a time window.

This module provides the PaginationEngine class that repeatedly fetches
bounded pages, normalizes them, forwards the records to a sink, and derives
each next window's lower bound from the last record already emitted.
"""

from __future__ import annotations

import uuid
from collections.abc import Awaitable, Callable
from datetime import datetime
from time import perf_counter

from ...core.config import DEFAULT_PAGE_SIZE
from ...core.enums import ScanState, UpstreamShapePolicy
from ...core.exceptions import CursorComputationError, ScanCancelledError, UpstreamShapeError
from ...models import Page, Record, TimeWindow
from ...normalization import RecordNormalizer, parse_source_timestamp
from ...sinks import RecordSink
from .definitions import TIME_QUANTUM, PagePlan, PageResult, build_page_query
from .telemetry import (
    log_boundary_tie,
    log_page_fetched,
    log_page_requested,
    log_scan_cancelled,
    log_scan_complete,
    log_scan_failed,
)

FetchPage = Callable[[str], Awaitable[Page | None]]


class PaginationEngine:
    """Drives a paginated scan of one query over one time window.

    Each page query asks for rows in ``[start, end)`` ordered by timestamp
    and capped at ``page_size``. A sentinel page or a page shorter than
    ``page_size`` ends the scan; otherwise the next window starts one
    quantum past the last emitted timestamp, keeping ``end`` fixed.

    Known gap: whenever a full page is cut by the row limit, rows that did
    not fit and whose timestamp falls in ``[last, last + quantum)`` are never
    fetched, since the next window starts at ``last + quantum``. This holds
    even when only one row of the page carries the last timestamp. The
    engine logs a ``page_boundary_tie`` warning for every full page, reporting how
    many of its rows share the last timestamp.
    """

    def __init__(
        self,
        fetch_page: FetchPage,
        *,
        normalizer: RecordNormalizer | None = None,
        page_size: int = DEFAULT_PAGE_SIZE,
        shape_policy: UpstreamShapePolicy = UpstreamShapePolicy.FIRST_PAGE_STRICT,
    ) -> None:
        """Initialize pagination engine.

        Args:
            fetch_page: Async function taking query text and returning a Page,
                or None when the response had no table
            normalizer: Row normalizer (default: RecordNormalizer())
            page_size: Row limit per page; must be positive
            shape_policy: Treatment of responses without a table
        """
        if isinstance(page_size, bool) or not isinstance(page_size, int) or page_size <= 0:
            raise ValueError(f"page_size must be a positive integer, got {page_size!r}")
        self._fetch_page = fetch_page
        self._normalizer = normalizer or RecordNormalizer()
        self._page_size = page_size
        self._shape_policy = shape_policy
        self._state = ScanState.IDLE

    @property
    def page_size(self) -> int:
        return self._page_size

    @property
    def state(self) -> ScanState:
        return self._state

    async def run(
        self,
        query: str,
        window: TimeWindow,
        sink: RecordSink,
        *,
        is_cancelled: Callable[[], bool] | None = None,
    ) -> PageResult:
        """Fetch every row of ``query`` in ``window`` and write it to ``sink``.

        Args:
            query: Caller's query text
            window: Initial scan window
            sink: Destination for normalized records
            is_cancelled: Checked before every fetch; True aborts the scan

        Returns:
            PageResult describing the completed scan

        Raises:
            ScanCancelledError: If is_cancelled() returned True
            UpstreamShapeError: If a response had no table and the policy says error
            PageProcessingError: If a page cannot be normalized or the cursor
                cannot be advanced
            TransportError: Propagated from fetch_page
        """
        if self._state != ScanState.IDLE:
            raise RuntimeError("PaginationEngine.run() may only be called once")

        scan_id = uuid.uuid4().hex[:12]
        result = PageResult()
        page_index = 0
        scan_start = perf_counter()
        self._transition(ScanState.AWAITING_FIRST_PAGE, result)

        try:
            while True:
                if is_cancelled is not None and is_cancelled():
                    log_scan_cancelled(
                        scan_id=scan_id, page_index=page_index, records_emitted=result.total_records
                    )
                    raise ScanCancelledError("scan cancelled by caller")

                plan = PagePlan(
                    window=window,
                    limit=self._page_size,
                    query=build_page_query(query, window, self._page_size),
                    page_index=page_index,
                )
                result.windows.append(window)
                log_page_requested(scan_id=scan_id, plan=plan)

                fetch_start = perf_counter()
                page = await self._fetch_page(plan.query)
                result.pages_fetched += 1
                latency_ms = (perf_counter() - fetch_start) * 1000.0

                if page is None:
                    if self._shape_policy.is_error(page_index):
                        raise UpstreamShapeError(
                            "query service response has no tables/columns/rows"
                        )
                    break

                log_page_fetched(
                    scan_id=scan_id, page_index=page_index, rows=page.row_count, latency_ms=latency_ms
                )

                if page.is_sentinel:
                    break

                records = self._normalizer.normalize_page(page, page_index=page_index)
                self._transition(ScanState.EMITTING_PAGE, result)
                await sink.write_page(records)
                self._record_timestamps(result, records)
                result.total_records += len(records)

                if page.row_count < self._page_size:
                    break

                cursor = self._next_cursor(records, window, page_index)
                self._check_boundary_tie(scan_id, records, page_index)
                if window.end is not None and cursor >= window.end:
                    break
                window = window.advance(cursor)
                page_index += 1

            await sink.close()
        except BaseException as exc:
            self._transition(ScanState.FAILED, result)
            if not isinstance(exc, ScanCancelledError):
                log_scan_failed(
                    scan_id=scan_id,
                    page_index=page_index,
                    error_type=type(exc).__name__,
                    error_message=str(exc),
                    records_emitted=result.total_records,
                )
            await sink.fail(exc)
            raise

        self._transition(ScanState.COMPLETE, result)
        log_scan_complete(
            scan_id=scan_id,
            result=result,
            total_latency_ms=(perf_counter() - scan_start) * 1000.0,
        )
        return result

    def _transition(self, state: ScanState, result: PageResult) -> None:
        self._state = state
        result.state = state

    def _extract_timestamp(self, record: Record) -> datetime | None:
        value = record.get(self._normalizer.timestamp_column)
        if not isinstance(value, str):
            return None
        try:
            return parse_source_timestamp(value)
        except ValueError:
            return None

    def _next_cursor(self, records: list[Record], window: TimeWindow, page_index: int) -> datetime:
        """Return the last record's timestamp plus one quantum.

        Raises:
            CursorComputationError: If the timestamp is missing or unparseable,
                or if the cursor would not move past the current window start
        """
        last_ts = self._extract_timestamp(records[-1])
        if last_ts is None:
            raise CursorComputationError(
                f"last row of page {page_index} has no parseable "
                f"'{self._normalizer.timestamp_column}' value",
                page_index=page_index,
            )
        cursor = last_ts + TIME_QUANTUM
        if cursor <= window.start:
            raise CursorComputationError(
                f"cursor {cursor.isoformat()} does not advance past window start "
                f"{window.start.isoformat()}",
                page_index=page_index,
            )
        return cursor

    def _check_boundary_tie(self, scan_id: str, records: list[Record], page_index: int) -> None:
        column = self._normalizer.timestamp_column
        boundary = records[-1].get(column)
        tied = 0
        for record in reversed(records):
            if record.get(column) != boundary:
                break
            tied += 1
        log_boundary_tie(
            scan_id=scan_id, page_index=page_index, timestamp=str(boundary), tied_rows=tied
        )

    def _record_timestamps(self, result: PageResult, records: list[Record]) -> None:
        if result.start_timestamp is None:
            result.start_timestamp = self._extract_timestamp(records[0])
        last_ts = self._extract_timestamp(records[-1])
        if last_ts is not None:
            result.end_timestamp = last_ts
