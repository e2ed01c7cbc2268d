"""Time window data model."""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, field_validator, model_validator


class TimeWindow(BaseModel):
    """Half-open scan window ``[start, end)``.

    ``end`` of None means the window is unbounded (infinite future). Windows
    are immutable; the pagination engine replaces the window between pages
    via :meth:`advance` rather than mutating it.
    """

    start: datetime
    end: datetime | None = None

    @field_validator("start", "end")
    @classmethod
    def ensure_utc(cls, v: datetime | None) -> datetime | None:
        """Treat naive instants as UTC and convert aware ones to UTC."""
        if v is None:
            return v
        if v.tzinfo is None:
            return v.replace(tzinfo=UTC)
        return v.astimezone(UTC)

    @model_validator(mode="after")
    def validate_bounds(self) -> TimeWindow:
        if self.end is not None and self.end <= self.start:
            raise ValueError("end must be after start")
        return self

    @property
    def is_unbounded(self) -> bool:
        return self.end is None

    def contains(self, instant: datetime) -> bool:
        if instant < self.start:
            return False
        return self.end is None or instant < self.end

    def advance(self, cursor: datetime) -> TimeWindow:
        """Return a window starting at ``cursor`` with the same upper bound."""
        return TimeWindow(start=cursor, end=self.end)

    model_config = ConfigDict(frozen=True)
