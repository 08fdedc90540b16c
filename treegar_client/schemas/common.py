"""Common schemas for the Treegar API."""

from __future__ import annotations

from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class CamelModel(BaseModel):
    """Base model for camelCase wire payloads."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        """Dump to a JSON-ready dict using wire field names."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class ApiEnvelope(BaseModel, Generic[T]):
    """Response envelope wrapped around every backend payload."""

    success: bool = Field(..., description="Whether the backend accepted the request")
    message: str | None = Field(default=None, description="Human-readable outcome")
    data: T | None = Field(default=None, description="Response payload")
    errors: list[Any] | None = Field(default=None, description="Error details")
