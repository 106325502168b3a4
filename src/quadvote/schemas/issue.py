"""Issue aggregate Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, field_validator

from quadvote.db.time import as_utc


class IssueStatsResponse(BaseModel):
    """Cached per-issue vote statistics."""

    issue_id: str
    weighted_votes: int
    voter_count: int
    total_credits: int
    urgency_score: float
    private_ballots: int = 0
    revealed_private_votes: int | None = None

    model_config = ConfigDict(from_attributes=True)


class VotingWindowResponse(BaseModel):
    """State of an issue's voting window."""

    issue_id: str
    closed: bool
    closed_at: datetime | None = None

    @field_validator("closed_at")
    @classmethod
    def _utc(cls, value: datetime | None) -> datetime | None:
        return as_utc(value) if value is not None else None
