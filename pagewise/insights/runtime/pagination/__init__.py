"""Incremental pagination engine.

This module provides the time-window pagination that turns one unbounded
query into successive bounded page fetches.

Architecture:
    - definitions.py: Page plan/result structures and the page query builder
    - engine.py: Pagination loop (fetch, normalize, emit, advance cursor)
    - telemetry.py: Structured logging
"""

from __future__ import annotations

from .definitions import TIME_QUANTUM, PagePlan, PageResult, build_page_query
from .engine import FetchPage, PaginationEngine

__all__ = [
    "TIME_QUANTUM",
    "PagePlan",
    "PageResult",
    "build_page_query",
    "FetchPage",
    "PaginationEngine",
]
