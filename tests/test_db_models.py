# tests/test_db_models.py
"""Storage-level constraints backing the ledger invariants."""

import pytest
from sqlalchemy.exc import IntegrityError

from quadvote.models import CreditTransaction, IssueWindow, UserCredit, VoteRecord


@pytest.mark.parametrize(
    ("balance", "earned", "spent"),
    [(-1, 0, 1), (10, 100, 80)],
)
def test_user_credit_rejects_broken_balances(db_session, balance, earned, spent) -> None:
    db_session.add(
        UserCredit(user_id="alice", balance=balance, total_earned=earned, total_spent=spent)
    )
    with pytest.raises(IntegrityError):
        db_session.flush()
    db_session.rollback()


def test_transaction_kind_and_amount_are_checked(db_session) -> None:
    db_session.add(CreditTransaction(user_id="alice", amount=5, kind="gift", description=""))
    with pytest.raises(IntegrityError):
        db_session.flush()
    db_session.rollback()

    db_session.add(CreditTransaction(user_id="alice", amount=0, kind="merit_award", description=""))
    with pytest.raises(IntegrityError):
        db_session.flush()
    db_session.rollback()


def test_vote_record_cost_must_be_quadratic(db_session) -> None:
    db_session.add(
        VoteRecord(issue_id="road", user_id="alice", votes_cast=3, credits_spent=3, is_private=False)
    )
    with pytest.raises(IntegrityError):
        db_session.flush()
    db_session.rollback()

    db_session.add(
        VoteRecord(issue_id="road", user_id="alice", votes_cast=3, credits_spent=9, is_private=False)
    )
    db_session.flush()


def test_issue_without_window_row_is_open(db_session) -> None:
    assert db_session.get(IssueWindow, "road") is None
