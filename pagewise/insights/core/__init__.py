"""Core components."""

from .config import DEFAULT_PAGE_SIZE, Settings, get_settings
from .enums import OutputMode, ScanState, UpstreamShapePolicy, WindowMode
from .exceptions import (
    ClientInputError,
    CursorComputationError,
    PageProcessingError,
    ProxyError,
    RowShapeError,
    ScanCancelledError,
    TransportError,
    UpstreamError,
    UpstreamShapeError,
)

__all__ = [
    "DEFAULT_PAGE_SIZE",
    "Settings",
    "get_settings",
    "OutputMode",
    "ScanState",
    "UpstreamShapePolicy",
    "WindowMode",
    "ProxyError",
    "ClientInputError",
    "UpstreamError",
    "TransportError",
    "UpstreamShapeError",
    "PageProcessingError",
    "CursorComputationError",
    "RowShapeError",
    "ScanCancelledError",
]
