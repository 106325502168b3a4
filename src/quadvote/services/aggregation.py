"""Per-issue aggregation of quadratic votes."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from quadvote.db.dialects import dialect_insert
from quadvote.db.time import utcnow
from quadvote.models import IssueVoteStats, VoteRecord
from quadvote.services.notifications import ChangeNotifier, votes_topic
from quadvote.services.unit_of_work import unit_of_work

logger = logging.getLogger(__name__)


def urgency(total_credits: int, weighted_votes: int) -> float:
    """Average credits spent per vote; 0 when nothing has been cast."""
    if weighted_votes <= 0:
        return 0.0
    return total_credits / weighted_votes


def stats_payload(stats: IssueVoteStats) -> dict[str, object]:
    """Serialize stats for change notifications."""
    return {
        "issue_id": stats.issue_id,
        "weighted_votes": stats.weighted_votes,
        "voter_count": stats.voter_count,
        "total_credits": stats.total_credits,
        "urgency_score": stats.urgency_score,
        "private_ballots": stats.private_ballots,
        "revealed_private_votes": stats.revealed_private_votes,
    }


class VoteAggregator:
    """Maintains the ``IssueVoteStats`` cache.

    Stats are always recomputed from the complete set of vote records rather
    than patched incrementally, so concurrent recomputes converge once the
    last one lands.
    """

    def __init__(
        self,
        db: Session,
        notifier: ChangeNotifier | None = None,
        *,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.db = db
        self.notifier = notifier
        self._clock = clock

    def recompute(self, issue_id: str) -> IssueVoteStats:
        """Rebuild and store the cached stats for ``issue_id``.

        Until the issue's private total has been revealed, only public
        ballots contribute to the vote, voter and credit figures.
        """
        with unit_of_work(self.db):
            revealed = self.db.execute(
                select(IssueVoteStats.revealed_private_votes).where(
                    IssueVoteStats.issue_id == issue_id
                )
            ).scalar_one_or_none()
            counted = [VoteRecord.issue_id == issue_id]
            if revealed is None:
                counted.append(VoteRecord.is_private.is_(False))
            weighted, voters, credits = self.db.execute(
                select(
                    func.coalesce(func.sum(VoteRecord.votes_cast), 0),
                    func.count(func.distinct(VoteRecord.user_id)),
                    func.coalesce(func.sum(VoteRecord.credits_spent), 0),
                ).where(*counted)
            ).one()
            private_ballots = self.db.execute(
                select(func.count(VoteRecord.id)).where(
                    VoteRecord.issue_id == issue_id,
                    VoteRecord.is_private.is_(True),
                )
            ).scalar_one()
            values = {
                "weighted_votes": int(weighted),
                "voter_count": int(voters),
                "total_credits": int(credits),
                "urgency_score": urgency(int(credits), int(weighted)),
                "private_ballots": int(private_ballots),
                "updated_at": self._clock(),
            }
            stmt = dialect_insert(self.db, IssueVoteStats).values(issue_id=issue_id, **values)
            stmt = stmt.on_conflict_do_update(index_elements=["issue_id"], set_=values)
            self.db.execute(stmt)
            stats = self._load(issue_id)

        logger.debug(
            "Recomputed stats for %s: %d votes from %d voters",
            issue_id,
            stats.weighted_votes,
            stats.voter_count,
        )
        if self.notifier is not None:
            self.notifier.publish(votes_topic(issue_id), stats_payload(stats))
        return stats

    def record_reveal(self, issue_id: str, private_total: int) -> IssueVoteStats:
        """Store the decrypted private total and fold private ballots into the stats."""
        now = self._clock()
        with unit_of_work(self.db):
            stmt = dialect_insert(self.db, IssueVoteStats).values(
                issue_id=issue_id,
                weighted_votes=0,
                voter_count=0,
                total_credits=0,
                urgency_score=0.0,
                private_ballots=0,
                revealed_private_votes=private_total,
                updated_at=now,
            )
            stmt = stmt.on_conflict_do_update(
                index_elements=["issue_id"],
                set_={"revealed_private_votes": private_total, "updated_at": now},
            )
            self.db.execute(stmt)
        logger.info("Recorded revealed private total %d for %s", private_total, issue_id)
        return self.recompute(issue_id)

    def get_stats(self, issue_id: str) -> IssueVoteStats:
        """Return cached stats, or an all-zero value when nothing is cached."""
        cached = self.db.get(IssueVoteStats, issue_id)
        if cached is not None:
            return cached
        return IssueVoteStats(
            issue_id=issue_id,
            weighted_votes=0,
            voter_count=0,
            total_credits=0,
            urgency_score=0.0,
            private_ballots=0,
            revealed_private_votes=None,
            updated_at=self._clock(),
        )

    def ranked_by_urgency(self, limit: int = 50, offset: int = 0) -> list[IssueVoteStats]:
        """Return issues ordered by urgency, then by weighted votes."""
        stmt = (
            select(IssueVoteStats)
            .order_by(
                IssueVoteStats.urgency_score.desc(),
                IssueVoteStats.weighted_votes.desc(),
                IssueVoteStats.issue_id,
            )
            .offset(offset)
            .limit(limit)
        )
        return list(self.db.execute(stmt).scalars())

    def _load(self, issue_id: str) -> IssueVoteStats:
        stmt = (
            select(IssueVoteStats)
            .where(IssueVoteStats.issue_id == issue_id)
            .execution_options(populate_existing=True)
        )
        return self.db.execute(stmt).scalar_one()
