"""Tests for per-issue vote aggregation."""

import pytest

from quadvote.models import VoteRecord
from quadvote.services.aggregation import urgency


def _record(db_session, issue_id: str, user_id: str, votes: int, private: bool = False) -> None:
    db_session.add(
        VoteRecord(
            issue_id=issue_id,
            user_id=user_id,
            votes_cast=votes,
            credits_spent=votes * votes,
            is_private=private,
        )
    )
    db_session.commit()


def test_urgency_is_average_credits_per_vote() -> None:
    assert urgency(0, 0) == 0.0
    assert urgency(500, 50) == 10.0
    assert urgency(50, 50) == 1.0


def test_get_stats_defaults_to_zero(aggregator) -> None:
    stats = aggregator.get_stats("untouched")

    assert stats.issue_id == "untouched"
    assert (stats.weighted_votes, stats.voter_count, stats.total_credits) == (0, 0, 0)
    assert stats.urgency_score == 0.0


def test_recompute_sums_full_record_set(aggregator, db_session) -> None:
    _record(db_session, "road", "alice", 3)
    _record(db_session, "road", "alice", 2)
    _record(db_session, "road", "bob", 4)
    _record(db_session, "park", "bob", 9)

    stats = aggregator.recompute("road")

    assert stats.weighted_votes == 9
    assert stats.voter_count == 2
    assert stats.total_credits == 9 + 4 + 16
    assert stats.urgency_score == pytest.approx(29 / 9)
    assert aggregator.get_stats("road").weighted_votes == 9


def test_recompute_overwrites_stale_cache(aggregator, db_session) -> None:
    _record(db_session, "road", "alice", 1)
    aggregator.recompute("road")
    _record(db_session, "road", "bob", 5)

    stats = aggregator.recompute("road")

    assert stats.weighted_votes == 6
    assert stats.voter_count == 2


def test_recompute_publishes_votes_topic(aggregator, db_session, notifier) -> None:
    events: list[dict] = []
    notifier.subscribe("votes:road", lambda topic, payload: events.append(payload))
    _record(db_session, "road", "alice", 2)

    aggregator.recompute("road")

    assert events == [
        {
            "issue_id": "road",
            "weighted_votes": 2,
            "voter_count": 1,
            "total_credits": 4,
            "urgency_score": 2.0,
            "private_ballots": 0,
            "revealed_private_votes": None,
        }
    ]


def test_private_ballots_stay_out_of_stats_until_revealed(aggregator, db_session, notifier) -> None:
    events: list[dict] = []
    notifier.subscribe("votes:road", lambda topic, payload: events.append(payload))
    _record(db_session, "road", "alice", 2)
    before = aggregator.recompute("road")
    _record(db_session, "road", "bob", 7, private=True)

    after = aggregator.recompute("road")

    assert (after.weighted_votes, after.voter_count, after.total_credits) == (2, 1, 4)
    assert after.urgency_score == before.urgency_score
    assert after.private_ballots == 1
    assert after.revealed_private_votes is None
    first, second = events
    assert {key: value for key, value in second.items() if key != "private_ballots"} == {
        key: value for key, value in first.items() if key != "private_ballots"
    }


def test_record_reveal_folds_private_ballots_in(aggregator, db_session) -> None:
    _record(db_session, "road", "alice", 2)
    _record(db_session, "road", "bob", 7, private=True)
    _record(db_session, "road", "carol", 1, private=True)
    aggregator.recompute("road")

    stats = aggregator.record_reveal("road", 8)

    assert stats.revealed_private_votes == 8
    assert (stats.weighted_votes, stats.voter_count, stats.total_credits) == (10, 3, 54)
    assert stats.urgency_score == pytest.approx(5.4)
    assert aggregator.recompute("road").weighted_votes == 10


def test_record_reveal_without_cached_row(aggregator, db_session) -> None:
    _record(db_session, "park", "bob", 3, private=True)

    stats = aggregator.record_reveal("park", 3)

    assert (stats.weighted_votes, stats.private_ballots, stats.revealed_private_votes) == (3, 1, 3)


def test_ranked_by_urgency_orders_by_intensity(aggregator, db_session) -> None:
    # Intense minority: 5 voters x 10 votes. Broad but lukewarm: 50 voters x 1 vote.
    for index in range(5):
        _record(db_session, "A", f"intense-{index}", 10)
    for index in range(50):
        _record(db_session, "B", f"casual-{index}", 1)
    _record(db_session, "C", "solo", 3)
    for issue_id in ("A", "B", "C"):
        aggregator.recompute(issue_id)

    ranked = aggregator.ranked_by_urgency()

    assert [stats.issue_id for stats in ranked] == ["A", "C", "B"]
    assert ranked[0].weighted_votes == ranked[2].weighted_votes == 50
    assert ranked[0].urgency_score == pytest.approx(10.0)
    assert ranked[2].urgency_score == pytest.approx(1.0)
    assert [s.issue_id for s in aggregator.ranked_by_urgency(limit=1, offset=1)] == ["C"]
