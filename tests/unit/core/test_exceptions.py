"""Precise unit tests for exception hierarchy.

Tests focus on meaningful behavior, not just field access.
"""

from pagewise.insights.core import (
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


def test_client_input_error_defaults_to_400():
    error = ClientInputError("Missing X-Api-Key header")
    assert error.status_code == 400
    assert str(error) == "Missing X-Api-Key header"
    assert isinstance(error, ProxyError)


def test_transport_error_with_status_code():
    """Test TransportError keeps the upstream status (meaningful behavior)."""
    error = TransportError("bad gateway", status_code=503)
    assert error.status_code == 503
    assert isinstance(error, UpstreamError)
    assert isinstance(error, ProxyError)


def test_upstream_shape_error_is_upstream_error():
    error = UpstreamShapeError("no tables")
    assert error.status_code is None
    assert isinstance(error, UpstreamError)


def test_cursor_computation_error_carries_page_index():
    error = CursorComputationError("no timestamp", page_index=4)
    assert error.page_index == 4
    assert isinstance(error, PageProcessingError)


def test_row_shape_error_with_context():
    """Test RowShapeError with arity context."""
    error = RowShapeError("bad row", row_index=2, expected=3, actual=1, page_index=0)
    assert error.row_index == 2
    assert error.expected == 3
    assert error.actual == 1
    assert error.page_index == 0
    assert isinstance(error, PageProcessingError)


def test_scan_cancelled_is_not_upstream_error():
    error = ScanCancelledError("gone")
    assert isinstance(error, ProxyError)
    assert not isinstance(error, UpstreamError)
