"""Quadratic cost model: N votes on one issue cost N squared credits."""

from __future__ import annotations

import math


def _require_non_negative(value: int, name: str) -> None:
    if value < 0:
        raise ValueError(f"{name} must be non-negative, got {value}")


def cost(votes: int) -> int:
    """Return the credit price of casting ``votes`` votes in one batch."""
    _require_non_negative(votes, "votes")
    return votes * votes


def max_affordable_votes(credits: int) -> int:
    """Return the largest N such that ``cost(N) <= credits``."""
    _require_non_negative(credits, "credits")
    return math.isqrt(credits)


def marginal_cost(current_votes: int) -> int:
    """Return the price of one more vote on top of ``current_votes``."""
    _require_non_negative(current_votes, "current_votes")
    return 2 * current_votes + 1


def quote(votes: int, balance: int) -> dict[str, int | bool]:
    """Summarize affordability of ``votes`` against ``balance`` for UI hints."""
    price = cost(votes)
    return {
        "votes": votes,
        "cost": price,
        "marginal_cost": marginal_cost(votes),
        "balance": balance,
        "max_affordable_votes": max_affordable_votes(max(balance, 0)),
        "affordable": price <= balance,
    }
