"""Pagewise Insights - paginated time-window proxy for telemetry queries."""

from .core import (
    ClientInputError,
    CursorComputationError,
    OutputMode,
    PageProcessingError,
    ProxyError,
    RowShapeError,
    ScanCancelledError,
    ScanState,
    Settings,
    TransportError,
    UpstreamError,
    UpstreamShapeError,
    UpstreamShapePolicy,
    WindowMode,
    get_settings,
)
from .models import Page, ProxyQueryBody, QueryContext, Record, TimeWindow
from .normalization import (
    RecordNormalizer,
    format_canonical_timestamp,
    parse_source_timestamp,
)
from .runtime import HTTPClient, PageResult, PaginationEngine, QueryServiceClient
from .sinks import BufferedJsonSink, RecordSink, StreamingJsonSink
from .window import TimeWindowResolver, parse_instant

__version__ = "0.1.0"

__all__ = [
    # Errors
    "ProxyError",
    "ClientInputError",
    "UpstreamError",
    "TransportError",
    "UpstreamShapeError",
    "PageProcessingError",
    "CursorComputationError",
    "RowShapeError",
    "ScanCancelledError",
    # Config
    "Settings",
    "get_settings",
    "OutputMode",
    "ScanState",
    "UpstreamShapePolicy",
    "WindowMode",
    # Models
    "Page",
    "ProxyQueryBody",
    "QueryContext",
    "Record",
    "TimeWindow",
    # Pipeline
    "TimeWindowResolver",
    "parse_instant",
    "RecordNormalizer",
    "format_canonical_timestamp",
    "parse_source_timestamp",
    "PaginationEngine",
    "PageResult",
    "HTTPClient",
    "QueryServiceClient",
    "RecordSink",
    "BufferedJsonSink",
    "StreamingJsonSink",
]
