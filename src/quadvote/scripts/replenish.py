"""
Cron job granting the periodic credit replenishment.

Run it at least once per replenishment period so dormant accounts are topped
up even when their owners never read their balance. Safe to run more often:
an account already replenished this period is skipped.
"""
from __future__ import annotations

import argparse
import logging
import sys

from quadvote.db.session import SessionLocal
from quadvote.services.errors import StorageFailureError
from quadvote.services.ledger import CreditLedger
from quadvote.services.notifications import get_notifier


def replenish_due_accounts() -> int:
    """Replenish every due account and return how many were granted."""
    with SessionLocal() as db:
        return CreditLedger(db, get_notifier()).replenish_all_due()


def main() -> None:
    parser = argparse.ArgumentParser(description="Grant periodic credit replenishment")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log each grant")
    args = parser.parse_args()
    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING)

    try:
        granted = replenish_due_accounts()
    except StorageFailureError as exc:
        print(f"[replenish] ERROR: {exc}", file=sys.stderr)
        sys.exit(1)
    print(f"[replenish] granted replenishment to {granted} account(s)")


if __name__ == "__main__":
    main()
