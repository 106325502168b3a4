"""Exception taxonomy shared by the ledger and voting services."""

from __future__ import annotations


class QuadVoteError(RuntimeError):
    """Base exception for all quadvote service failures."""

    code = "quadvote_error"

    def to_detail(self) -> dict[str, object]:
        """Return a JSON-friendly description for API responses."""
        return {"code": self.code, "message": str(self)}


class InvalidVoteCountError(QuadVoteError):
    """Raised when a caller asks to cast zero or negative votes."""

    code = "invalid_vote_count"

    def __init__(self, votes: int) -> None:
        super().__init__(f"Vote count must be a positive integer, got {votes}")
        self.votes = votes


class InvalidAmountError(QuadVoteError):
    """Raised when a ledger amount is zero, negative or over the configured cap."""

    code = "invalid_amount"


class InsufficientCreditError(QuadVoteError):
    """Raised when a spend exceeds the available balance. Nothing was mutated."""

    code = "insufficient_credit"

    def __init__(self, have: int, need: int) -> None:
        super().__init__(f"Insufficient credits: have {have}, need {need}")
        self.have = have
        self.need = need

    def to_detail(self) -> dict[str, object]:
        detail = super().to_detail()
        detail.update({"have": self.have, "need": self.need, "short": self.need - self.have})
        return detail


class StorageFailureError(QuadVoteError):
    """Raised when the store rejects or cannot complete a unit of work.

    The unit of work was rolled back, so the caller may retry.
    """

    code = "storage_failure"


class PrivacyServiceUnavailableError(QuadVoteError):
    """Raised when a private vote is requested but no tally key is configured."""

    code = "privacy_unavailable"


class VotingClosedError(QuadVoteError):
    """Raised when casting a vote on an issue whose window has closed."""

    code = "voting_closed"

    def __init__(self, issue_id: str) -> None:
        super().__init__(f"Voting on issue {issue_id} is closed")
        self.issue_id = issue_id


class VotingWindowOpenError(QuadVoteError):
    """Raised when revealing an aggregate before the voting window closes."""

    code = "voting_open"

    def __init__(self, issue_id: str) -> None:
        super().__init__(f"Voting on issue {issue_id} is still open")
        self.issue_id = issue_id


class AuthorizationError(QuadVoteError):
    """Raised when the caller lacks the capability for an operation."""

    code = "forbidden"
