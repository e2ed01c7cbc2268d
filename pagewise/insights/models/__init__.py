"""Data models for the pagination pipeline.

Architecture:
    Pydantic v2 models for values crossing a boundary (the inbound body, the
    upstream page, the scan window). All models are frozen: a window is
    replaced between pages, never mutated.

Model Categories:
    - Request: ProxyQueryBody, QueryContext
    - Scan: TimeWindow
    - Results: Page, Record
"""

from .page import Page, Record
from .request import ProxyQueryBody, QueryContext
from .window import TimeWindow

__all__ = [
    "Page",
    "Record",
    "ProxyQueryBody",
    "QueryContext",
    "TimeWindow",
]
