"""Common shared schema types used across the API."""

from decimal import ROUND_HALF_UP, Decimal
from typing import Annotated, Any, Generic, Optional, TypeVar

from pydantic import AfterValidator, BaseModel

T = TypeVar("T")


def round_to_cents(value: Decimal) -> Decimal:
    return value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


# Serialized as a string with exactly two decimal places, e.g. "4.50"
Money = Annotated[Decimal, AfterValidator(round_to_cents)]


class ErrorBody(BaseModel):
    code: str
    message: str
    details: Optional[Any] = None


class ErrorResponse(BaseModel):
    """Standard error response envelope."""

    error: ErrorBody


class DataResponse(BaseModel, Generic[T]):
    """Standard success envelope: every 2xx body is {"data": ...}."""

    data: T


class CursorPage(BaseModel, Generic[T]):
    """Keyset-paginated list. next_cursor is passed back as ?cursor= for the next page."""

    items: list[T]
    next_cursor: Optional[int] = None
