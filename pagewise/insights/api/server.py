"""HTTP surface of the proxy.

``POST /proxy/{app_id}`` with body ``{"query": "..."}`` runs the query over
its whole time window and answers with one JSON array of records.

Headers:
    X-Api-Key: Query service API key (required)
    X-Batch-Size: Rows per page (positive integer)
    X-Date-Start: Explicit window start, overrides the query predicate
    X-Date-Interval: Window length in minutes from the start
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from aiohttp import web
from pydantic import ValidationError

from ..core.config import Settings, get_settings
from ..core.enums import OutputMode
from ..core.exceptions import (
    ClientInputError,
    ProxyError,
    ScanCancelledError,
    UpstreamError,
)
from ..models import ProxyQueryBody, QueryContext
from ..runtime.pagination import PaginationEngine
from ..runtime.rest import HTTPClient, QueryServiceClient
from ..sinks import BufferedJsonSink, StreamingJsonSink
from ..window import TimeWindowResolver, parse_duration_override, parse_start_override

logger = logging.getLogger(__name__)

API_KEY_HEADER = "X-Api-Key"
PAGE_SIZE_HEADER = "X-Batch-Size"
WINDOW_START_HEADER = "X-Date-Start"
WINDOW_INTERVAL_HEADER = "X-Date-Interval"

SETTINGS_KEY = web.AppKey("settings", Settings)
QUERY_CLIENT_KEY = web.AppKey("query_client", QueryServiceClient)
RESOLVER_KEY = web.AppKey("window_resolver", TimeWindowResolver)
HTTP_CLIENT_KEY = web.AppKey("http_client", HTTPClient)

CLIENT_CLOSED_REQUEST = 499


@dataclass(frozen=True)
class ScanRequest:
    """Validated inputs of one proxy call."""

    context: QueryContext
    query: str
    page_size: int
    start_override: datetime | None
    duration_override: timedelta | None


def parse_page_size(text: str | None, default: int) -> int:
    if text is None or not text.strip():
        return default
    try:
        value = int(text.strip())
    except ValueError as e:
        raise ClientInputError(f"Invalid {PAGE_SIZE_HEADER} header: {text!r}") from e
    if value <= 0:
        raise ClientInputError(f"{PAGE_SIZE_HEADER} must be a positive integer")
    return value


async def parse_scan_request(request: web.Request, settings: Settings) -> ScanRequest:
    """Validate headers and body.

    Raises:
        ClientInputError: On a missing key, bad header, or bad body
    """
    api_key = (request.headers.get(API_KEY_HEADER) or "").strip()
    if not api_key:
        raise ClientInputError(f"Missing {API_KEY_HEADER} header")

    page_size = parse_page_size(request.headers.get(PAGE_SIZE_HEADER), settings.default_page_size)
    start_override = parse_start_override(request.headers.get(WINDOW_START_HEADER))
    duration_override = parse_duration_override(request.headers.get(WINDOW_INTERVAL_HEADER))

    try:
        raw = await request.text()
    except UnicodeDecodeError as e:
        raise ClientInputError("Request body is not valid UTF-8") from e
    if not raw.strip():
        raise ClientInputError("Empty request body")
    try:
        body = ProxyQueryBody.model_validate(json.loads(raw))
    except (ValueError, ValidationError) as e:
        raise ClientInputError("Invalid JSON body or missing 'query' property") from e

    return ScanRequest(
        context=QueryContext(app_id=request.match_info["app_id"], api_key=api_key),
        query=body.query,
        page_size=page_size,
        start_override=start_override,
        duration_override=duration_override,
    )


def status_for(exc: ProxyError) -> int:
    if isinstance(exc, ClientInputError):
        return exc.status_code
    if isinstance(exc, UpstreamError):
        return 502
    if isinstance(exc, ScanCancelledError):
        return CLIENT_CLOSED_REQUEST
    return 500


def error_response(status: int, message: str) -> web.Response:
    return web.json_response({"error": message}, status=status)


def _caller_gone(request: web.Request) -> bool:
    transport = request.transport
    return transport is None or transport.is_closing()


async def proxy_query(request: web.Request) -> web.StreamResponse:
    settings = request.app[SETTINGS_KEY]
    try:
        scan = await parse_scan_request(request, settings)
        window = request.app[RESOLVER_KEY].resolve(
            scan.query,
            start_override=scan.start_override,
            duration_override=scan.duration_override,
        )
    except ClientInputError as e:
        logger.info("request_rejected", extra={"reason": str(e)})
        return error_response(e.status_code, str(e))

    engine = PaginationEngine(
        request.app[QUERY_CLIENT_KEY].bind(scan.context),
        page_size=scan.page_size,
        shape_policy=settings.shape_policy,
    )
    logger.info(
        "scan_started",
        extra={
            "app_id": scan.context.app_id,
            "page_size": scan.page_size,
            "window_start": window.start.isoformat(),
            "window_end": window.end.isoformat() if window.end else None,
            "output_mode": settings.output_mode.value,
        },
    )

    if settings.output_mode == OutputMode.STREAMING:
        return await _stream_scan(request, engine, scan, window)
    return await _buffer_scan(request, engine, scan, window)


async def _buffer_scan(request, engine, scan, window) -> web.StreamResponse:
    sink = BufferedJsonSink()
    try:
        await engine.run(scan.query, window, sink, is_cancelled=lambda: _caller_gone(request))
    except ProxyError as e:
        return error_response(status_for(e), str(e))
    return web.Response(body=sink.body(), content_type="application/json")


async def _stream_scan(request, engine, scan, window) -> web.StreamResponse:
    response = web.StreamResponse(status=200)
    response.content_type = "application/json"
    response.enable_chunked_encoding()

    async def open_stream() -> web.StreamResponse:
        await response.prepare(request)
        return response

    sink = StreamingJsonSink(open_stream)
    try:
        await engine.run(scan.query, window, sink, is_cancelled=lambda: _caller_gone(request))
    except ProxyError as e:
        if not sink.started:
            return error_response(status_for(e), str(e))
        # Headers are gone already; aiohttp drops the connection without the
        # terminating chunk, so the client sees a truncated transfer.
        raise
    await response.write_eof()
    return response


async def health(request: web.Request) -> web.Response:
    return web.json_response({"status": "ok"})


def create_app(
    settings: Settings | None = None,
    query_client: QueryServiceClient | None = None,
) -> web.Application:
    """Build the aiohttp application.

    Args:
        settings: Settings to use (default: get_settings())
        query_client: Query service client; one backed by a shared HTTPClient
            is created (and closed on cleanup) when omitted
    """
    settings = settings or get_settings()
    app = web.Application()
    app[SETTINGS_KEY] = settings
    app[RESOLVER_KEY] = TimeWindowResolver(
        mode=settings.window_mode,
        default_lookback=settings.default_lookback,
    )

    if query_client is None:
        http = HTTPClient(timeout=settings.http_timeout)
        app[HTTP_CLIENT_KEY] = http
        query_client = QueryServiceClient(http, settings.query_service_url)

        async def close_http(app: web.Application) -> None:
            await app[HTTP_CLIENT_KEY].close()

        app.on_cleanup.append(close_http)
    app[QUERY_CLIENT_KEY] = query_client

    app.router.add_post("/proxy/{app_id}", proxy_query)
    app.router.add_get("/health", health)
    return app
