"""Pydantic schemas for helpful votes on price reports."""

from pydantic import BaseModel


class VoteResponse(BaseModel):
    """State of a report's helpful votes after a cast or retract."""

    report_id: int
    helpful_count: int
    has_helpful_vote: bool
