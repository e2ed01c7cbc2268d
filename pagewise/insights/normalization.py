"""Record normalization for tabular query service pages.

A page arrives as ordered column names plus rows of positional values. The
normalizer zips them into named records, synthesizing ``col{index}`` for
unnamed columns, and rewrites the timestamp column into one canonical UTC
form so that downstream consumers (and the pagination cursor) see a single
representation regardless of the precision the service chose.
"""

from __future__ import annotations

import re
from collections.abc import Iterator, Sequence
from datetime import UTC, datetime
from typing import Any

from .core.exceptions import RowShapeError
from .models import Page, Record

TIMESTAMP_COLUMN = "timestamp"

# Accepted source formats, tried in order: whole seconds, then one through
# seven fractional digits. All are UTC with a trailing "Z".
SOURCE_TIMESTAMP_FORMATS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(
        r"^(\d{4})-(\d{2})-(\d{2})T(\d{2}):(\d{2}):(\d{2})"
        + (rf"\.(\d{{{digits}}})" if digits else "")
        + r"Z$"
    )
    for digits in range(0, 8)
)

CANONICAL_TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"


def parse_source_timestamp(text: str) -> datetime:
    """Parse a service timestamp into an aware UTC datetime.

    Seven-digit fractions (100ns ticks) are truncated to microseconds, so
    re-parsing the canonical rendering of such a value yields the same
    instant only to the microsecond.

    Raises:
        ValueError: If ``text`` matches none of the accepted formats.
    """
    for pattern in SOURCE_TIMESTAMP_FORMATS:
        match = pattern.match(text)
        if match is None:
            continue
        year, month, day, hour, minute, second = (int(g) for g in match.groups()[:6])
        fraction = match.group(7) if pattern.groups == 7 else ""
        microsecond = int(fraction[:6].ljust(6, "0")) if fraction else 0
        return datetime(year, month, day, hour, minute, second, microsecond, tzinfo=UTC)
    raise ValueError(f"unrecognized timestamp format: {text!r}")


def format_canonical_timestamp(value: datetime) -> str:
    """Render ``value`` as ``YYYY-MM-DDTHH:MM:SS.ffffffZ`` in UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).strftime(CANONICAL_TIMESTAMP_FORMAT)


class RecordNormalizer:
    """Converts pages into ordered JSON records."""

    def __init__(self, timestamp_column: str = TIMESTAMP_COLUMN) -> None:
        self._timestamp_column = timestamp_column

    @property
    def timestamp_column(self) -> str:
        return self._timestamp_column

    def column_names(self, columns: Sequence[str | None]) -> list[str]:
        return [name if name else f"col{index}" for index, name in enumerate(columns)]

    def normalize_value(self, name: str, value: Any) -> Any:
        """Normalize one raw value.

        Only string values in the timestamp column are rewritten; anything
        that fails to parse is passed through unchanged. All other JSON
        values (null, bool, number, string, object, array) pass through.
        """
        if name != self._timestamp_column or not isinstance(value, str):
            return value
        try:
            return format_canonical_timestamp(parse_source_timestamp(value))
        except ValueError:
            return value

    def iter_records(self, page: Page, page_index: int | None = None) -> Iterator[Record]:
        names = self.column_names(page.columns)
        width = len(names)
        for row_index, row in enumerate(page.rows):
            if len(row) != width:
                raise RowShapeError(
                    f"row {row_index} has {len(row)} values, expected {width}",
                    row_index=row_index,
                    expected=width,
                    actual=len(row),
                    page_index=page_index,
                )
            yield {name: self.normalize_value(name, value) for name, value in zip(names, row)}

    def normalize_page(self, page: Page, page_index: int | None = None) -> list[Record]:
        """Normalize every row of ``page``, preserving row and column order.

        Raises:
            RowShapeError: If any row's arity differs from the column count.
        """
        return list(self.iter_records(page, page_index=page_index))
