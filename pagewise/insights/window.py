"""Time window resolution for incoming queries.

The initial scan window comes either from explicit overrides supplied by the
caller or from a ``timestamp <op> datetime(...)`` predicate embedded in the
query text. Strict mode only accepts a strictly-greater-than lower bound,
since the caller's own cursor is the timestamp of the last row it already
holds.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

from .core.enums import WindowMode
from .core.exceptions import ClientInputError
from .models import TimeWindow
from .normalization import parse_source_timestamp
from .runtime.pagination.definitions import TIME_QUANTUM

logger = logging.getLogger(__name__)

DEFAULT_LOOKBACK = timedelta(hours=1)

_PREDICATE_TEMPLATE = (
    r"\btimestamp\s*{op}\s*datetime\s*\(\s*"
    r"(?:'(?P<single>[^']+)'|\"(?P<double>[^\"]+)\"|(?P<bare>[^)\s'\"]+))"
    r"\s*\)"
)
_LOWER_STRICT_RE = re.compile(_PREDICATE_TEMPLATE.format(op=r">(?!=)"), re.IGNORECASE)
_LOWER_INCLUSIVE_RE = re.compile(_PREDICATE_TEMPLATE.format(op=r">="), re.IGNORECASE)
_UPPER_EXCLUSIVE_RE = re.compile(_PREDICATE_TEMPLATE.format(op=r"<(?!=)"), re.IGNORECASE)
_UPPER_INCLUSIVE_RE = re.compile(_PREDICATE_TEMPLATE.format(op=r"<="), re.IGNORECASE)


def utc_now() -> datetime:
    return datetime.now(UTC)


def parse_instant(text: str) -> datetime:
    """Parse an ISO-ish instant literal into an aware UTC datetime.

    Service-native formats (``Z`` suffix, up to seven fractional digits) are
    tried first, then anything :meth:`datetime.fromisoformat` accepts
    (date-only, space separator, explicit offsets). Naive values are UTC.

    Raises:
        ValueError: If the literal is not a recognizable instant.
    """
    text = text.strip()
    try:
        return parse_source_timestamp(text)
    except ValueError:
        pass
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


def parse_start_override(text: str | None) -> datetime | None:
    """Parse an explicit window-start header value."""
    if text is None or not text.strip():
        return None
    try:
        return parse_instant(text)
    except ValueError as e:
        raise ClientInputError(f"Invalid window start: {text!r}") from e


def parse_duration_override(text: str | None) -> timedelta | None:
    """Parse an explicit window-duration header value, in whole minutes."""
    if text is None or not text.strip():
        return None
    try:
        minutes = int(text.strip())
    except ValueError as e:
        raise ClientInputError(f"Invalid window duration: {text!r}") from e
    if minutes <= 0:
        raise ClientInputError("Window duration must be a positive number of minutes")
    return timedelta(minutes=minutes)


def _literal(match: re.Match[str]) -> str:
    return match.group("single") or match.group("double") or match.group("bare")


class TimeWindowResolver:
    """Determines the initial scan window for a query."""

    def __init__(
        self,
        mode: WindowMode = WindowMode.STRICT,
        default_lookback: timedelta = DEFAULT_LOOKBACK,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        if default_lookback <= timedelta(0):
            raise ValueError("default_lookback must be positive")
        self._mode = mode
        self._default_lookback = default_lookback
        self._clock = clock

    @property
    def mode(self) -> WindowMode:
        return self._mode

    def resolve(
        self,
        query: str,
        *,
        start_override: datetime | None = None,
        duration_override: timedelta | None = None,
    ) -> TimeWindow:
        """Resolve the scan window.

        Args:
            query: Raw query text
            start_override: Explicit lower bound; wins over the query text, though
                strict mode still requires the query predicate
            duration_override: Explicit window length measured from the lower bound

        Returns:
            The initial TimeWindow

        Raises:
            ClientInputError: In strict mode when no usable lower bound is found,
                or when the resulting window is empty
        """
        start = None
        if start_override is None or self._mode == WindowMode.STRICT:
            start = self.extract_lower_bound(query)
        if start_override is not None:
            start = start_override

        if start is None:
            now = self._clock()
            start = now - self._default_lookback
            end = start + duration_override if duration_override else self._extract_upper_bound(query)
            if end is None:
                end = now
            logger.info(
                "window_default_applied",
                extra={"start": start.isoformat(), "end": end.isoformat()},
            )
        elif duration_override is not None:
            end = start + duration_override
        else:
            end = self._extract_upper_bound(query)

        if end is not None and end <= start:
            raise ClientInputError("Time window end must be after its start")
        return TimeWindow(start=start, end=end)

    def extract_lower_bound(self, query: str) -> datetime | None:
        """Find the query's lower-bound literal.

        Returns None only in permissive mode; strict mode raises instead.
        """
        match = _LOWER_STRICT_RE.search(query)
        if match is None and self._mode == WindowMode.PERMISSIVE:
            match = _LOWER_INCLUSIVE_RE.search(query)

        if match is None:
            if self._mode == WindowMode.STRICT:
                raise ClientInputError("Start DateTime must be specified in the query")
            return None

        literal = _literal(match)
        try:
            return parse_instant(literal)
        except ValueError as e:
            if self._mode == WindowMode.STRICT:
                raise ClientInputError(f"Unparseable start DateTime: {literal!r}") from e
            logger.warning("window_literal_unparseable", extra={"literal": literal})
            return None

    def _extract_upper_bound(self, query: str) -> datetime | None:
        """Find the query's upper bound as an exclusive window end.

        An inclusive ``<=`` literal is widened by one quantum so rows stamped
        exactly at the literal stay inside the window.
        """
        match = _UPPER_EXCLUSIVE_RE.search(query)
        widen = match is None
        if widen:
            match = _UPPER_INCLUSIVE_RE.search(query)
        if match is None:
            return None
        literal = _literal(match)
        try:
            end = parse_instant(literal)
        except ValueError:
            logger.warning("window_literal_unparseable", extra={"literal": literal})
            return None
        return end + TIME_QUANTUM if widen else end
