"""Models backing the voice-credit ledger."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from quadvote.db.session import Base
from quadvote.db.time import utcnow

TX_PERIODIC_REPLENISH = "periodic_replenish"
TX_MERIT_AWARD = "merit_award"
TX_VOTE_SPEND = "vote_spend"
TX_ADMINISTRATIVE_GRANT = "administrative_grant"

TRANSACTION_KINDS = (
    TX_PERIODIC_REPLENISH,
    TX_MERIT_AWARD,
    TX_VOTE_SPEND,
    TX_ADMINISTRATIVE_GRANT,
)


class UserCredit(Base):
    """Spendable voting budget for a single user.

    Mutated only through the credit ledger; the table constraints restate the
    balance invariant so a bad write fails at the storage layer too.
    """

    __tablename__ = "user_credit"
    __table_args__ = (
        CheckConstraint("balance >= 0", name="ck_user_credit_balance_non_negative"),
        CheckConstraint(
            "balance = total_earned - total_spent",
            name="ck_user_credit_balance_reconciles",
        ),
    )

    user_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    balance: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_earned: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_spent: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_replenished_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )


class CreditTransaction(Base):
    """Append-only audit row for every balance change."""

    __tablename__ = "credit_transaction"
    __table_args__ = (
        CheckConstraint("amount <> 0", name="ck_credit_transaction_amount_nonzero"),
        CheckConstraint(
            "kind IN ('periodic_replenish', 'merit_award', 'vote_spend', 'administrative_grant')",
            name="ck_credit_transaction_kind",
        ),
        Index("ix_credit_transaction_user_id", "user_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(128), nullable=False)
    # Positive = earned, negative = spent.
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    kind: Mapped[str] = mapped_column(String(32), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    reference_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
