"""
Pydantic schemas for API request/response models.

These schemas define the structure of API data for serialization and validation.
"""

from .credit import AwardRequest, CreditBalanceResponse, CreditTransactionResponse, ReplenishResponse
from .issue import IssueStatsResponse, VotingWindowResponse
from .privacy import (
    EncryptedAggregateResponse,
    InclusionRequest,
    InclusionResponse,
    RevealResponse,
)
from .vote import PublicVoteResponse, VoteCastRequest, VoteQuoteResponse, VoteReceiptResponse

__all__ = [
    "AwardRequest", "CreditBalanceResponse", "CreditTransactionResponse", "ReplenishResponse",
    "IssueStatsResponse", "VotingWindowResponse",
    "EncryptedAggregateResponse", "InclusionRequest", "InclusionResponse", "RevealResponse",
    "PublicVoteResponse", "VoteCastRequest", "VoteQuoteResponse", "VoteReceiptResponse",
]
