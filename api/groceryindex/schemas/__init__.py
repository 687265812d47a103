"""GroceryIndex Pydantic schemas package.

Re-exports the request schemas and envelopes for convenient importing:

    from groceryindex.schemas import PriceReportCreate, DataResponse, ...
"""

from groceryindex.schemas.auth import APIKeyCreate, APIKeyResponse, SessionResponse
from groceryindex.schemas.common import CursorPage, DataResponse, ErrorResponse, Money
from groceryindex.schemas.price_report import (
    CommentCreate,
    PriceReportCreate,
    PriceReportResponse,
    RejectRequest,
)
from groceryindex.schemas.vote import VoteResponse

__all__ = [
    # Price reports
    "PriceReportCreate",
    "PriceReportResponse",
    "RejectRequest",
    "CommentCreate",
    # Vote
    "VoteResponse",
    # Auth
    "APIKeyCreate",
    "APIKeyResponse",
    "SessionResponse",
    # Common
    "DataResponse",
    "CursorPage",
    "ErrorResponse",
    "Money",
]
