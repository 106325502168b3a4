"""Credit ledger Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from quadvote.db.time import as_utc


class CreditBalanceResponse(BaseModel):
    """A user's current credit account."""

    user_id: str
    balance: int
    total_earned: int
    total_spent: int
    last_replenished_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @field_validator("last_replenished_at")
    @classmethod
    def _utc(cls, value: datetime) -> datetime:
        return as_utc(value)


class CreditTransactionResponse(BaseModel):
    """One immutable ledger entry."""

    id: int
    user_id: str
    amount: int = Field(..., description="Positive when earned, negative when spent")
    kind: str
    description: str
    reference_id: str | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @field_validator("created_at")
    @classmethod
    def _utc(cls, value: datetime) -> datetime:
        return as_utc(value)


class AwardRequest(BaseModel):
    """Privileged request to grant credits."""

    amount: int = Field(..., description="Credits to add; must be positive")
    description: str = Field(..., min_length=1, max_length=500)
    reference_id: str | None = Field(None, max_length=128)
    kind: str = Field("merit_award", description="merit_award or administrative_grant")


class ReplenishResponse(BaseModel):
    """Result of a batch replenishment sweep."""

    granted: int = Field(..., description="Accounts that received a grant")
