"""HTTP API for the query proxy."""

from .server import create_app, parse_page_size, status_for

__all__ = [
    "create_app",
    "parse_page_size",
    "status_for",
]
