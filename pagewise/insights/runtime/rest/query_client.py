"""Query service client.

Sends one query to ``{base_url}/apps/{app_id}/query`` and extracts the first
table of the ``{"tables": [{"columns": [...], "rows": [...]}]}`` response.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Any
from urllib.parse import quote

from pydantic import ValidationError

from ...core.exceptions import UpstreamShapeError
from ...models import Page, QueryContext
from .http_client import HTTPClient

logger = logging.getLogger(__name__)


def parse_page(payload: Any) -> Page | None:
    """Extract the first table of a query response.

    Returns:
        The Page, or None when the response has no table with both
        ``columns`` and ``rows``

    Raises:
        UpstreamShapeError: If a table is present but its rows are not lists
    """
    if not isinstance(payload, dict):
        return None
    tables = payload.get("tables")
    if not isinstance(tables, list) or not tables or not isinstance(tables[0], dict):
        return None
    table = tables[0]
    columns = table.get("columns")
    rows = table.get("rows")
    if not isinstance(columns, list) or not isinstance(rows, list):
        return None

    names = [column.get("name") if isinstance(column, dict) else None for column in columns]
    try:
        return Page(columns=[n if isinstance(n, str) else None for n in names], rows=rows)
    except ValidationError as e:
        raise UpstreamShapeError(f"malformed table rows: {e.error_count()} invalid") from e


class QueryServiceClient:
    """Fetches pages from the query service over a shared HTTP client."""

    def __init__(self, http: HTTPClient, base_url: str) -> None:
        self._http = http
        self._base_url = base_url.rstrip("/")

    def url_for(self, app_id: str) -> str:
        return f"{self._base_url}/apps/{quote(app_id, safe='')}/query"

    async def fetch_page(self, context: QueryContext, query: str) -> Page | None:
        """Run ``query`` for ``context.app_id`` and return its first table.

        Raises:
            TransportError: On network failure or non-2xx status
            UpstreamShapeError: On a non-JSON body or malformed rows
        """
        payload = await self._http.post(
            self.url_for(context.app_id),
            json_body={"query": query},
            headers=context.headers(),
        )
        page = parse_page(payload)
        if page is None:
            logger.warning("response_missing_table", extra={"app_id": context.app_id})
        return page

    def bind(self, context: QueryContext) -> Callable[[str], Awaitable[Page | None]]:
        """Return a fetch function bound to one request's credentials."""

        async def fetch(query: str) -> Page | None:
            return await self.fetch_page(context, query)

        return fetch
