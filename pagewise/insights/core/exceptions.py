"""Custom exception hierarchy."""

from __future__ import annotations


class ProxyError(Exception):
    """Base exception for all proxy errors."""

    pass


class ClientInputError(ProxyError):
    """Caller supplied an unusable request.

    Missing credential, empty or malformed body, missing query field, invalid
    header override, or (strict window mode) a query without a lower-bound
    time predicate. Surfaced as a 4xx response and never retried.
    """

    def __init__(self, message: str, status_code: int = 400) -> None:
        super().__init__(message)
        self.status_code = status_code


class UpstreamError(ProxyError):
    """Error raised while talking to the query service."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code


class TransportError(UpstreamError):
    """Network failure or non-success status from the query service."""

    pass


class UpstreamShapeError(UpstreamError):
    """Query service response lacks the expected tables/columns/rows shape."""

    pass


class PageProcessingError(ProxyError):
    """A fetched page could not be turned into records."""

    def __init__(self, message: str, page_index: int | None = None) -> None:
        super().__init__(message)
        self.page_index = page_index


class CursorComputationError(PageProcessingError):
    """The next window's lower bound cannot be derived from the last row."""

    pass


class RowShapeError(PageProcessingError):
    """A row's arity does not match the page's column count."""

    def __init__(
        self,
        message: str,
        row_index: int,
        expected: int,
        actual: int,
        page_index: int | None = None,
    ) -> None:
        super().__init__(message, page_index=page_index)
        self.row_index = row_index
        self.expected = expected
        self.actual = actual


class ScanCancelledError(ProxyError):
    """The caller went away before the scan completed."""

    pass
