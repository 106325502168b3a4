"""Quadratic-voting credit ledger and issue prioritization service."""

__version__ = "0.1.0"
