"""Credit ledger: balances, replenishment, awards and spends.

Every balance-mutating operation is a single conditional UPDATE evaluated by
the store, so concurrent requests for the same user serialize on the row
instead of racing on a value read into application memory.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timedelta

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from quadvote.core.settings import settings
from quadvote.db.dialects import dialect_insert
from quadvote.db.time import utcnow
from quadvote.models import CreditTransaction, UserCredit
from quadvote.models.credit import (
    TX_ADMINISTRATIVE_GRANT,
    TX_MERIT_AWARD,
    TX_PERIODIC_REPLENISH,
    TX_VOTE_SPEND,
)
from quadvote.services.errors import InsufficientCreditError, InvalidAmountError
from quadvote.services.notifications import ChangeNotifier, balance_topic
from quadvote.services.unit_of_work import unit_of_work

logger = logging.getLogger(__name__)

AWARD_KINDS = (TX_MERIT_AWARD, TX_ADMINISTRATIVE_GRANT)


class CreditLedger:
    """Service owning ``UserCredit`` and ``CreditTransaction`` rows.

    The ledger holds no balances of its own; every read goes to the store.
    Mutations commit in their own unit of work unless called with
    ``commit=False``, in which case the caller owns the transaction and the
    balance notification. Accounts returned by mutations are detached
    snapshots; ``find`` returns the session-bound row.
    """

    def __init__(
        self,
        db: Session,
        notifier: ChangeNotifier | None = None,
        *,
        clock: Callable[[], datetime] = utcnow,
        starting_credits: int | None = None,
        replenish_grant: int | None = None,
        replenish_period: timedelta | None = None,
    ) -> None:
        self.db = db
        self.notifier = notifier
        self._clock = clock
        self.starting_credits = (
            settings.starting_credits if starting_credits is None else starting_credits
        )
        self.replenish_grant = settings.replenish_grant if replenish_grant is None else replenish_grant
        self.replenish_period = replenish_period or timedelta(
            seconds=settings.replenish_period_seconds
        )

    # --- Reads ----------------------------------------------------------------------
    def find(self, user_id: str) -> UserCredit | None:
        """Return the stored account for ``user_id`` without creating one."""
        stmt = (
            select(UserCredit)
            .where(UserCredit.user_id == user_id)
            .execution_options(populate_existing=True)
        )
        return self.db.execute(stmt).scalar_one_or_none()

    def get_balance(self, user_id: str) -> UserCredit:
        """Return the account, creating it and applying any due replenishment."""
        return self.maybe_replenish(user_id)

    def get_transactions(self, user_id: str, limit: int = 50, offset: int = 0) -> list[CreditTransaction]:
        """Return the user's ledger history, newest first."""
        stmt = (
            select(CreditTransaction)
            .where(CreditTransaction.user_id == user_id)
            .order_by(CreditTransaction.id.desc())
            .offset(offset)
            .limit(limit)
        )
        return list(self.db.execute(stmt).scalars())

    def reconcile(self, user_id: str) -> dict[str, int | bool]:
        """Audit an account against its counters and its transaction log."""
        credit = self._load(user_id)
        logged = self.db.execute(
            select(func.coalesce(func.sum(CreditTransaction.amount), 0)).where(
                CreditTransaction.user_id == user_id
            )
        ).scalar_one()
        earned_minus_spent = credit.total_earned - credit.total_spent
        return {
            "balance": credit.balance,
            "earned_minus_spent": earned_minus_spent,
            "transaction_sum": int(logged),
            "consistent": credit.balance == earned_minus_spent == int(logged) and credit.balance >= 0,
        }

    # --- Mutations ------------------------------------------------------------------
    def get_or_initialize(self, user_id: str) -> UserCredit:
        """Return the account, creating it with the starting grant exactly once.

        Concurrent first accesses race on the primary key; the loser's insert
        is ignored and it reads the winner's row.
        """
        existing = self.find(user_id)
        if existing is not None:
            self.db.expunge(existing)
            return existing

        now = self._clock()
        with unit_of_work(self.db):
            stmt = (
                dialect_insert(self.db, UserCredit)
                .values(
                    user_id=user_id,
                    balance=self.starting_credits,
                    total_earned=self.starting_credits,
                    total_spent=0,
                    last_replenished_at=now,
                    created_at=now,
                )
                .on_conflict_do_nothing(index_elements=["user_id"])
            )
            created = self.db.execute(stmt).rowcount == 1
            if created and self.starting_credits > 0:
                self._log(
                    user_id,
                    self.starting_credits,
                    TX_PERIODIC_REPLENISH,
                    "Initial credit allocation",
                )
            credit = self._load(user_id)

        if created:
            logger.info("Initialized credit account for %s with %d", user_id, credit.balance)
            self.publish_balance(credit)
        return credit

    def maybe_replenish(self, user_id: str) -> UserCredit:
        """Grant the periodic replenishment if a full period has elapsed.

        The staleness check and the grant are one conditional UPDATE, so two
        calls inside the same period grant at most once.
        """
        credit, _ = self._replenish(user_id)
        return credit

    def replenish_all_due(self) -> int:
        """Replenish every account whose period has elapsed; return grants made."""
        cutoff = self._clock() - self.replenish_period
        due = list(
            self.db.execute(
                select(UserCredit.user_id).where(UserCredit.last_replenished_at <= cutoff)
            ).scalars()
        )
        granted = 0
        for user_id in due:
            _, applied = self._replenish(user_id)
            granted += int(applied)
        if granted:
            logger.info("Replenished %d of %d due credit accounts", granted, len(due))
        return granted

    def award(
        self,
        user_id: str,
        amount: int,
        description: str,
        reference_id: str | None = None,
        *,
        kind: str = TX_MERIT_AWARD,
    ) -> UserCredit:
        """Add ``amount`` credits for merit or by administrative grant."""
        self._require_positive(amount)
        if amount > settings.max_award_amount:
            raise InvalidAmountError(
                f"Awards are capped at {settings.max_award_amount} credits, got {amount}"
            )
        if kind not in AWARD_KINDS:
            raise InvalidAmountError(f"Unsupported award kind: {kind}")

        self.get_or_initialize(user_id)
        with unit_of_work(self.db):
            self.db.execute(
                update(UserCredit)
                .where(UserCredit.user_id == user_id)
                .values(
                    balance=UserCredit.balance + amount,
                    total_earned=UserCredit.total_earned + amount,
                )
                .execution_options(synchronize_session=False)
            )
            self._log(user_id, amount, kind, description, reference_id)
            credit = self._load(user_id)

        logger.info("Awarded %d credits (%s) to %s", amount, kind, user_id)
        self.publish_balance(credit)
        return credit

    def try_spend(
        self,
        user_id: str,
        amount: int,
        *,
        description: str = "Vote spend",
        reference_id: str | None = None,
        commit: bool = True,
    ) -> UserCredit:
        """Debit ``amount`` if and only if the balance covers it.

        Raises:
            InsufficientCreditError: The balance was short; nothing was changed.
            StorageFailureError: The store failed; nothing was changed.
        """
        self._require_positive(amount)
        if not commit:
            return self._debit(user_id, amount, description, reference_id)

        with unit_of_work(self.db):
            credit = self._debit(user_id, amount, description, reference_id)
        self.publish_balance(credit)
        return credit

    def publish_balance(self, credit: UserCredit) -> None:
        """Announce the account's current balance to subscribers."""
        if self.notifier is None:
            return
        self.notifier.publish(
            balance_topic(credit.user_id),
            {"user_id": credit.user_id, "balance": credit.balance},
        )

    # --- Internals ------------------------------------------------------------------
    def _replenish(self, user_id: str) -> tuple[UserCredit, bool]:
        self.get_or_initialize(user_id)
        now = self._clock()
        cutoff = now - self.replenish_period
        grant = self.replenish_grant

        with unit_of_work(self.db):
            result = self.db.execute(
                update(UserCredit)
                .where(
                    UserCredit.user_id == user_id,
                    UserCredit.last_replenished_at <= cutoff,
                )
                .values(
                    balance=UserCredit.balance + grant,
                    total_earned=UserCredit.total_earned + grant,
                    last_replenished_at=now,
                )
                .execution_options(synchronize_session=False)
            )
            applied = result.rowcount == 1
            if applied and grant > 0:
                self._log(user_id, grant, TX_PERIODIC_REPLENISH, "Periodic credit replenishment")
            credit = self._load(user_id)

        if applied:
            logger.info("Replenished %d credits for %s", grant, user_id)
            self.publish_balance(credit)
        return credit, applied

    def _debit(
        self,
        user_id: str,
        amount: int,
        description: str,
        reference_id: str | None,
    ) -> UserCredit:
        result = self.db.execute(
            update(UserCredit)
            .where(UserCredit.user_id == user_id, UserCredit.balance >= amount)
            .values(
                balance=UserCredit.balance - amount,
                total_spent=UserCredit.total_spent + amount,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            current = self.find(user_id)
            have = current.balance if current is not None else 0
            raise InsufficientCreditError(have=have, need=amount)

        self._log(user_id, -amount, TX_VOTE_SPEND, description, reference_id)
        return self._load(user_id)

    def _log(
        self,
        user_id: str,
        amount: int,
        kind: str,
        description: str,
        reference_id: str | None = None,
    ) -> None:
        self.db.add(
            CreditTransaction(
                user_id=user_id,
                amount=amount,
                kind=kind,
                description=description,
                reference_id=reference_id,
                created_at=self._clock(),
            )
        )
        self.db.flush()

    def _load(self, user_id: str) -> UserCredit:
        """Return a detached snapshot of the account as of this operation.

        Later ledger calls refresh rows in the identity map; detaching keeps
        each returned result at the balance its own operation produced.
        """
        stmt = (
            select(UserCredit)
            .where(UserCredit.user_id == user_id)
            .execution_options(populate_existing=True)
        )
        credit = self.db.execute(stmt).scalar_one()
        self.db.expunge(credit)
        return credit

    @staticmethod
    def _require_positive(amount: int) -> None:
        if amount <= 0:
            raise InvalidAmountError(f"Amount must be a positive integer, got {amount}")
