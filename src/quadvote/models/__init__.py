"""SQLAlchemy models for the quadvote service."""

from .credit import CreditTransaction, UserCredit
from .vote import IssueVoteStats, IssueWindow, VoteRecord

__all__ = [
    "CreditTransaction", "UserCredit",
    "IssueVoteStats", "IssueWindow", "VoteRecord",
]
