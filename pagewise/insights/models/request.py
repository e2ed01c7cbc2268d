"""Inbound request models."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic import BaseModel, ConfigDict, Field


class ProxyQueryBody(BaseModel):
    """JSON body of ``POST /proxy/{app_id}``."""

    query: str = Field(..., min_length=1)

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True, extra="ignore")


@dataclass(frozen=True)
class QueryContext:
    """Per-request credential context for the query service.

    Passed explicitly into every fetch so that a shared HTTP session never
    carries one caller's API key into another caller's request.
    """

    app_id: str
    api_key: str

    def headers(self) -> dict[str, str]:
        return {
            "Accept": "application/json",
            "X-Api-Key": self.api_key,
        }

    def __repr__(self) -> str:
        return f"QueryContext(app_id={self.app_id!r}, api_key='***')"
