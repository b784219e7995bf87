"""
Shared schema building blocks: camelCase wire format and the response envelope.
"""

from decimal import Decimal
from typing import Annotated, Any, Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, PlainSerializer
from pydantic.alias_generators import to_camel

T = TypeVar("T")

# Weights and lengths travel as JSON numbers, not decimal strings
Measure = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


class CamelModel(BaseModel):
    """Reads and writes camelCase on the wire; snake_case is accepted on input too."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class Envelope(BaseModel, Generic[T]):
    ok: bool = True
    data: T
    message: Optional[str] = None


class ErrorBody(BaseModel):
    kind: str
    code: str
    message: str
    details: Optional[dict[str, Any]] = None


class ErrorEnvelope(BaseModel):
    ok: bool = False
    error: ErrorBody
