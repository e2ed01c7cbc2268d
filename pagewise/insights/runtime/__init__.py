"""Runtime: query service transport and pagination."""

from .pagination import PageResult, PaginationEngine
from .rest import HTTPClient, QueryServiceClient

__all__ = [
    "HTTPClient",
    "QueryServiceClient",
    "PageResult",
    "PaginationEngine",
]
