"""Shared Pydantic schemas for common API elements."""
from __future__ import annotations

from decimal import Decimal
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer
from pydantic.alias_generators import to_camel

# Fixed-point text on the wire ("50.000000"); a float would drop digits above ~1e10.
DisplayAmount = Annotated[
    Decimal,
    PlainSerializer(lambda value: format(value, "f"), return_type=str, when_used="json"),
]


class CamelModel(BaseModel):
    """Base model exposing camelCase field names to API clients."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class ErrorResponse(BaseModel):
    """Body returned for every rejected request."""

    success: bool = Field(False, description="Always false for errors")
    error: str = Field(..., description="Human-readable failure reason")
