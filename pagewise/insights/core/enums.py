"""Core enumerations for the pagination pipeline.

Architecture:
    The pipeline is a single control flow parameterized by a handful of
    orthogonal strategy choices. Each choice is a string enum so it can be
    read straight from environment configuration.

Key Types:
    - WindowMode: How an unresolvable time predicate is treated
    - OutputMode: Buffered vs streaming result sink
    - UpstreamShapePolicy: What an absent table in a response means
    - ScanState: Lifecycle of a single paginated scan
"""

from enum import Enum


class WindowMode(str, Enum):
    """Strictness of time window resolution."""

    STRICT = "strict"  # missing lower-bound predicate is a client error
    PERMISSIVE = "permissive"  # missing predicate falls back to default window


class OutputMode(str, Enum):
    """How normalized records reach the HTTP response."""

    BUFFERED = "buffered"
    STREAMING = "streaming"


class UpstreamShapePolicy(str, Enum):
    """Treatment of a response without the expected table structure.

    FIRST_PAGE_STRICT surfaces an error when the very first page has no
    table, and treats an absent table after successful pages as end-of-data.
    """

    STRICT = "strict"
    TOLERANT = "tolerant"
    FIRST_PAGE_STRICT = "first_page_strict"

    def is_error(self, pages_fetched: int) -> bool:
        """Whether an absent table is an error given the pages seen so far."""
        if self == UpstreamShapePolicy.STRICT:
            return True
        if self == UpstreamShapePolicy.TOLERANT:
            return False
        return pages_fetched == 0


class ScanState(str, Enum):
    """Lifecycle of a paginated scan."""

    IDLE = "idle"
    AWAITING_FIRST_PAGE = "awaiting_first_page"
    EMITTING_PAGE = "emitting_page"
    COMPLETE = "complete"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (ScanState.COMPLETE, ScanState.FAILED)
