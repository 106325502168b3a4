"""initial credit ledger and vote tables

Revision ID: 5b1e7c2a9d40
Revises:
Create Date: 2026-10-18 09:12:44.318020

"""
from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "5b1e7c2a9d40"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the ledger, vote, stats and voting-window tables."""
    op.create_table(
        "user_credit",
        sa.Column("user_id", sa.String(length=128), nullable=False),
        sa.Column("balance", sa.Integer(), nullable=False),
        sa.Column("total_earned", sa.Integer(), nullable=False),
        sa.Column("total_spent", sa.Integer(), nullable=False),
        sa.Column("last_replenished_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("balance >= 0", name="ck_user_credit_balance_non_negative"),
        sa.CheckConstraint(
            "balance = total_earned - total_spent",
            name="ck_user_credit_balance_reconciles",
        ),
        sa.PrimaryKeyConstraint("user_id"),
    )
    op.create_table(
        "credit_transaction",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.String(length=128), nullable=False),
        sa.Column("amount", sa.Integer(), nullable=False),
        sa.Column("kind", sa.String(length=32), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("reference_id", sa.String(length=128), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("amount <> 0", name="ck_credit_transaction_amount_nonzero"),
        sa.CheckConstraint(
            "kind IN ('periodic_replenish', 'merit_award', 'vote_spend', 'administrative_grant')",
            name="ck_credit_transaction_kind",
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_credit_transaction_user_id", "credit_transaction", ["user_id"])

    op.create_table(
        "vote_record",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("issue_id", sa.String(length=128), nullable=False),
        sa.Column("user_id", sa.String(length=128), nullable=False),
        sa.Column("votes_cast", sa.Integer(), nullable=False),
        sa.Column("credits_spent", sa.Integer(), nullable=False),
        sa.Column("is_private", sa.Boolean(), nullable=False),
        sa.Column("commitment", sa.LargeBinary(length=64), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("votes_cast > 0", name="ck_vote_record_votes_positive"),
        sa.CheckConstraint(
            "credits_spent = votes_cast * votes_cast",
            name="ck_vote_record_quadratic_cost",
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_vote_record_issue_id", "vote_record", ["issue_id"])
    op.create_index("ix_vote_record_user_id", "vote_record", ["user_id"])

    op.create_table(
        "issue_vote_stats",
        sa.Column("issue_id", sa.String(length=128), nullable=False),
        sa.Column("weighted_votes", sa.Integer(), nullable=False),
        sa.Column("voter_count", sa.Integer(), nullable=False),
        sa.Column("total_credits", sa.Integer(), nullable=False),
        sa.Column("urgency_score", sa.Float(), nullable=False),
        sa.Column("private_ballots", sa.Integer(), nullable=False),
        sa.Column("revealed_private_votes", sa.Integer(), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("issue_id"),
    )
    op.create_table(
        "issue_window",
        sa.Column("issue_id", sa.String(length=128), nullable=False),
        sa.Column("closed_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("issue_id"),
    )


def downgrade() -> None:
    """Drop every quadvote table."""
    op.drop_table("issue_window")
    op.drop_table("issue_vote_stats")
    op.drop_index("ix_vote_record_user_id", table_name="vote_record")
    op.drop_index("ix_vote_record_issue_id", table_name="vote_record")
    op.drop_table("vote_record")
    op.drop_index("ix_credit_transaction_user_id", table_name="credit_transaction")
    op.drop_table("credit_transaction")
    op.drop_table("user_credit")
