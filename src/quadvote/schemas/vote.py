"""Vote-related Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from quadvote.db.time import as_utc


class VoteCastRequest(BaseModel):
    """Schema for casting quadratic votes on an issue."""

    issue_id: str = Field(..., min_length=1, max_length=128)
    votes: int = Field(..., description="Number of votes; costs votes squared credits")
    private: bool = Field(False, description="Encrypt the ballot for the tally trustees")


class VoteReceiptResponse(BaseModel):
    """Receipt returned after a successful vote."""

    vote_id: int
    issue_id: str
    user_id: str
    votes_cast: int
    credits_spent: int
    remaining_balance: int
    is_private: bool
    commitment: str | None = Field(None, description="Hex ElGamal ciphertext for private votes")
    commitment_digest: str | None = None

    model_config = ConfigDict(from_attributes=True)


class VoteQuoteResponse(BaseModel):
    """Affordability hint for a prospective vote count."""

    votes: int
    cost: int
    marginal_cost: int
    balance: int
    max_affordable_votes: int
    affordable: bool


class PublicVoteResponse(BaseModel):
    """Transparency listing entry; private ballots carry no count."""

    vote_id: int
    issue_id: str
    user_id: str
    votes_cast: int | None
    credits_spent: int | None
    is_private: bool
    commitment: str | None
    commitment_digest: str | None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @field_validator("created_at")
    @classmethod
    def _utc(cls, value: datetime) -> datetime:
        return as_utc(value)
