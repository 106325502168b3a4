"""Models capturing quadratic votes on issues."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Float,
    Index,
    Integer,
    LargeBinary,
    String,
)
from sqlalchemy.orm import Mapped, mapped_column

from quadvote.db.session import Base
from quadvote.db.time import utcnow


class VoteRecord(Base):
    """One vote-casting event by a user on an issue.

    Each batch is priced independently off its own count; repeated batches on
    the same issue are separate rows.
    """

    __tablename__ = "vote_record"
    __table_args__ = (
        CheckConstraint("votes_cast > 0", name="ck_vote_record_votes_positive"),
        CheckConstraint(
            "credits_spent = votes_cast * votes_cast",
            name="ck_vote_record_quadratic_cost",
        ),
        Index("ix_vote_record_issue_id", "issue_id"),
        Index("ix_vote_record_user_id", "user_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    issue_id: Mapped[str] = mapped_column(String(128), nullable=False)
    user_id: Mapped[str] = mapped_column(String(128), nullable=False)
    votes_cast: Mapped[int] = mapped_column(Integer, nullable=False)
    credits_spent: Mapped[int] = mapped_column(Integer, nullable=False)
    is_private: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    # ElGamal ciphertext (c1 || c2), present only for private votes.
    commitment: Mapped[bytes | None] = mapped_column(LargeBinary(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )


class IssueVoteStats(Base):
    """Materialized per-issue aggregate, always recomputed from vote records.

    Private ballots stay out of the vote, voter and credit figures until their
    encrypted total has been revealed; until then only ``private_ballots``
    counts them.
    """

    __tablename__ = "issue_vote_stats"

    issue_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    weighted_votes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    voter_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_credits: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    urgency_score: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    private_ballots: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    revealed_private_votes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )


class IssueWindow(Base):
    """Voting window bookkeeping; an issue without a row is open."""

    __tablename__ = "issue_window"

    issue_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    closed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
