"""Quadratic voting engine.

Casting a vote spends ``votes**2`` credits and records the vote in one unit of
work: either both rows land or neither does. Aggregate recomputation runs
after the commit because the stats row is always rebuilt from vote records
and heals on the next recompute if it fails.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from quadvote.db.dialects import dialect_insert
from quadvote.db.time import utcnow
from quadvote.models import IssueWindow, VoteRecord
from quadvote.services import cost as cost_model
from quadvote.services.aggregation import VoteAggregator
from quadvote.services.errors import (
    InvalidVoteCountError,
    StorageFailureError,
    VotingClosedError,
    VotingWindowOpenError,
)
from quadvote.services.ledger import CreditLedger
from quadvote.services.notifications import ChangeNotifier
from quadvote.services.privacy import (
    Commitment,
    EncryptedAggregate,
    PrivacyLayer,
    RevealedAggregate,
    get_privacy_layer,
)
from quadvote.services.unit_of_work import unit_of_work

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VoteReceipt:
    """Outcome of a successful ``cast_vote``."""

    vote_id: int
    issue_id: str
    user_id: str
    votes_cast: int
    credits_spent: int
    remaining_balance: int
    is_private: bool
    commitment: str | None = None
    commitment_digest: str | None = None


@dataclass(frozen=True)
class PublicVote:
    """Transparency view of a vote record; private ballots expose no count."""

    vote_id: int
    issue_id: str
    user_id: str
    votes_cast: int | None
    credits_spent: int | None
    is_private: bool
    commitment: str | None
    commitment_digest: str | None
    created_at: datetime


class VotingEngine:
    """Coordinates cost, ledger, storage and aggregation for each vote."""

    def __init__(
        self,
        db: Session,
        ledger: CreditLedger | None = None,
        aggregator: VoteAggregator | None = None,
        privacy: PrivacyLayer | None = None,
        notifier: ChangeNotifier | None = None,
        *,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.db = db
        self._clock = clock
        self.ledger = ledger or CreditLedger(db, notifier, clock=clock)
        self.aggregator = aggregator or VoteAggregator(db, notifier, clock=clock)
        self.privacy = privacy or get_privacy_layer()

    def cast_vote(
        self,
        user_id: str,
        issue_id: str,
        votes: int,
        private: bool = False,
    ) -> VoteReceipt:
        """Spend ``votes**2`` credits and record the vote.

        Raises:
            InvalidVoteCountError: ``votes`` is zero or negative.
            PrivacyServiceUnavailableError: A private vote was requested without
                a configured tally key; nothing is stored in clear instead.
            VotingClosedError: The issue's voting window has closed.
            InsufficientCreditError: The balance does not cover the cost.
            StorageFailureError: The store failed; nothing was applied.
        """
        if votes <= 0:
            raise InvalidVoteCountError(votes)
        price = cost_model.cost(votes)

        commitment: Commitment | None = None
        if private:
            commitment = self.privacy.commit(issue_id, user_id, votes)

        self.ledger.get_balance(user_id)

        with unit_of_work(self.db):
            if self._closed_at(issue_id) is not None:
                raise VotingClosedError(issue_id)
            credit = self.ledger.try_spend(
                user_id,
                price,
                description=f"{votes} vote(s) on issue {issue_id}",
                reference_id=issue_id,
                commit=False,
            )
            record = VoteRecord(
                issue_id=issue_id,
                user_id=user_id,
                votes_cast=votes,
                credits_spent=price,
                is_private=private,
                commitment=commitment.ciphertext if commitment is not None else None,
                created_at=self._clock(),
            )
            self.db.add(record)
            self.db.flush()
            vote_id = record.id
            remaining = credit.balance

        logger.info(
            "User %s cast %d vote(s) on %s for %d credits (private=%s)",
            user_id,
            votes,
            issue_id,
            price,
            private,
        )
        self.ledger.publish_balance(credit)

        try:
            self.aggregator.recompute(issue_id)
        except StorageFailureError:
            logger.error("Stats recompute failed for issue %s", issue_id, exc_info=True)

        return VoteReceipt(
            vote_id=vote_id,
            issue_id=issue_id,
            user_id=user_id,
            votes_cast=votes,
            credits_spent=price,
            remaining_balance=remaining,
            is_private=private,
            commitment=commitment.ciphertext.hex() if commitment is not None else None,
            commitment_digest=commitment.digest if commitment is not None else None,
        )

    def quote(self, user_id: str, votes: int) -> dict[str, int | bool]:
        """Price ``votes`` against the user's current balance."""
        if votes < 0:
            raise InvalidVoteCountError(votes)
        credit = self.ledger.get_balance(user_id)
        return cost_model.quote(votes, credit.balance)

    # --- Voting windows -------------------------------------------------------------
    def is_closed(self, issue_id: str) -> bool:
        return self._closed_at(issue_id) is not None

    def close_voting(self, issue_id: str) -> datetime:
        """Close the issue's voting window; closing twice keeps the first time."""
        now = self._clock()
        with unit_of_work(self.db):
            self.db.execute(
                dialect_insert(self.db, IssueWindow)
                .values(issue_id=issue_id, closed_at=now)
                .on_conflict_do_nothing(index_elements=["issue_id"])
            )
            self.db.execute(
                update(IssueWindow)
                .where(IssueWindow.issue_id == issue_id, IssueWindow.closed_at.is_(None))
                .values(closed_at=now)
                .execution_options(synchronize_session=False)
            )
            closed_at = self.db.execute(
                select(IssueWindow.closed_at).where(IssueWindow.issue_id == issue_id)
            ).scalar_one()
        logger.info("Closed voting on issue %s", issue_id)
        return closed_at

    # --- Transparency ---------------------------------------------------------------
    def list_votes(self, issue_id: str, limit: int = 100, offset: int = 0) -> list[PublicVote]:
        """Return the issue's vote records with private ballots redacted."""
        stmt = (
            select(VoteRecord)
            .where(VoteRecord.issue_id == issue_id)
            .order_by(VoteRecord.id)
            .offset(offset)
            .limit(limit)
        )
        return [self._public_view(record) for record in self.db.execute(stmt).scalars()]

    def encrypted_aggregate(self, issue_id: str) -> EncryptedAggregate:
        """Fold every private ballot on the issue into one ciphertext."""
        return self.privacy.aggregate_commitments(issue_id, self._commitments(issue_id))

    def reveal(self, issue_id: str) -> tuple[EncryptedAggregate, RevealedAggregate]:
        """Decrypt the private total once voting has closed.

        The issue's public stats include private ballots only from this point.

        Raises:
            VotingWindowOpenError: The issue is still accepting votes.
            PrivacyServiceUnavailableError: The tally key is not held here.
        """
        if not self.is_closed(issue_id):
            raise VotingWindowOpenError(issue_id)
        commitments = self._commitments(issue_id)
        aggregate = self.privacy.aggregate_commitments(issue_id, commitments)
        voters = len({commitment.user_id for commitment in commitments})
        revealed = self.privacy.reveal_aggregate(aggregate, voter_count=voters)
        self.aggregator.record_reveal(issue_id, revealed.total_votes)
        logger.info(
            "Revealed private total for %s: %d vote(s) from %d voter(s)",
            issue_id,
            revealed.total_votes,
            revealed.voter_count,
        )
        return aggregate, revealed

    def verify_inclusion(self, issue_id: str, user_id: str, ciphertext: bytes) -> bool:
        """Check that the ballot from a receipt is part of the issue's aggregate."""
        commitment = Commitment.from_ciphertext(issue_id, user_id, ciphertext)
        return self.privacy.verify_inclusion(commitment, self.encrypted_aggregate(issue_id))

    # --- Internals ------------------------------------------------------------------
    def _closed_at(self, issue_id: str) -> datetime | None:
        return self.db.execute(
            select(IssueWindow.closed_at).where(IssueWindow.issue_id == issue_id)
        ).scalar_one_or_none()

    def _commitments(self, issue_id: str) -> list[Commitment]:
        stmt = (
            select(VoteRecord)
            .where(
                VoteRecord.issue_id == issue_id,
                VoteRecord.is_private.is_(True),
                VoteRecord.commitment.is_not(None),
            )
            .order_by(VoteRecord.id)
        )
        return [
            Commitment.from_ciphertext(record.issue_id, record.user_id, record.commitment)
            for record in self.db.execute(stmt).scalars()
            if record.commitment is not None
        ]

    @staticmethod
    def _public_view(record: VoteRecord) -> PublicVote:
        if record.is_private and record.commitment is not None:
            commitment = Commitment.from_ciphertext(
                record.issue_id, record.user_id, record.commitment
            )
            return PublicVote(
                vote_id=record.id,
                issue_id=record.issue_id,
                user_id=record.user_id,
                votes_cast=None,
                credits_spent=None,
                is_private=True,
                commitment=commitment.ciphertext.hex(),
                commitment_digest=commitment.digest,
                created_at=record.created_at,
            )
        return PublicVote(
            vote_id=record.id,
            issue_id=record.issue_id,
            user_id=record.user_id,
            votes_cast=record.votes_cast,
            credits_spent=record.credits_spent,
            is_private=False,
            commitment=None,
            commitment_digest=None,
            created_at=record.created_at,
        )
