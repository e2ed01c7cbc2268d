"""Structured logging for pagination.

This module provides telemetry hooks for paginated scans, emitting
structured logs with fixed event names and ``extra`` payloads.
"""

from __future__ import annotations

import logging
from datetime import datetime

from .definitions import PagePlan, PageResult

logger = logging.getLogger(__name__)


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def log_page_requested(*, scan_id: str, plan: PagePlan) -> None:
    """Log a page request before it is sent."""
    logger.debug(
        "page_requested",
        extra={
            "scan_id": scan_id,
            "page_index": plan.page_index,
            "limit": plan.limit,
            "window_start": _iso(plan.window.start),
            "window_end": _iso(plan.window.end),
        },
    )


def log_page_fetched(
    *,
    scan_id: str,
    page_index: int,
    rows: int,
    latency_ms: float | None = None,
) -> None:
    """Log receipt of a single page.

    Args:
        scan_id: Identifier of the scan
        page_index: Zero-based index of the page
        rows: Number of rows in the page
        latency_ms: Fetch latency in milliseconds (optional)
    """
    logger.info(
        "page_fetched",
        extra={
            "scan_id": scan_id,
            "page_index": page_index,
            "rows": rows,
            "latency_ms": latency_ms,
        },
    )


def log_boundary_tie(*, scan_id: str, page_index: int, timestamp: str, tied_rows: int) -> None:
    """Warn that a full page was cut at the row limit.

    Rows beyond the limit stamped within one quantum of ``timestamp`` are
    not fetched, since the next window starts one quantum past it.
    """
    logger.warning(
        "page_boundary_tie",
        extra={
            "scan_id": scan_id,
            "page_index": page_index,
            "timestamp": timestamp,
            "tied_rows": tied_rows,
        },
    )


def log_scan_complete(
    *,
    scan_id: str,
    result: PageResult,
    total_latency_ms: float | None = None,
) -> None:
    """Log completion of a scan."""
    logger.info(
        "scan_complete",
        extra={
            "scan_id": scan_id,
            "pages_fetched": result.pages_fetched,
            "total_records": result.total_records,
            "start_timestamp": _iso(result.start_timestamp),
            "end_timestamp": _iso(result.end_timestamp),
            "total_latency_ms": total_latency_ms,
        },
    )


def log_scan_failed(
    *,
    scan_id: str,
    page_index: int,
    error_type: str,
    error_message: str,
    records_emitted: int,
) -> None:
    """Log a scan that ended in the failed state.

    Args:
        scan_id: Identifier of the scan
        page_index: Zero-based index of the page being processed
        error_type: Exception class name
        error_message: Error message
        records_emitted: Records already written to the sink
    """
    logger.error(
        "scan_failed",
        extra={
            "scan_id": scan_id,
            "page_index": page_index,
            "error_type": error_type,
            "error_message": error_message,
            "records_emitted": records_emitted,
        },
    )


def log_scan_cancelled(*, scan_id: str, page_index: int, records_emitted: int) -> None:
    logger.info(
        "scan_cancelled",
        extra={
            "scan_id": scan_id,
            "page_index": page_index,
            "records_emitted": records_emitted,
        },
    )
