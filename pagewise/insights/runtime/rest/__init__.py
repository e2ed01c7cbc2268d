"""REST runtime for the query service."""

from .http_client import HTTPClient
from .query_client import QueryServiceClient, parse_page

__all__ = [
    "HTTPClient",
    "QueryServiceClient",
    "parse_page",
]
