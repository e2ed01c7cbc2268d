"""Page data model for one bounded fetch result."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

Record = dict[str, Any]


class Page(BaseModel):
    """One table returned by the query service.

    ``columns`` holds the declared column names in order (None where the
    service gave no name). ``rows`` holds positional raw JSON values.
    """

    columns: list[str | None] = Field(default_factory=list)
    rows: list[list[Any]] = Field(default_factory=list)

    @property
    def is_sentinel(self) -> bool:
        """A page with no columns or no rows signals end-of-data."""
        return not self.columns or not self.rows

    @property
    def row_count(self) -> int:
        return len(self.rows)

    model_config = ConfigDict(frozen=True)
