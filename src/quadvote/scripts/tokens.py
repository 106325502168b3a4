"""Mint bearer tokens for operators and the service identity."""
from __future__ import annotations

import argparse

from quadvote.core.security import ROLE_SERVICE, ROLE_USER, create_access_token


def main() -> None:
    parser = argparse.ArgumentParser(description="Issue a quadvote access token")
    parser.add_argument("subject", help="Opaque user id placed in the token's sub claim")
    parser.add_argument(
        "--role",
        choices=[ROLE_USER, ROLE_SERVICE],
        default=ROLE_USER,
        help="Role claim; 'service' may award credits, close voting and reveal totals",
    )
    args = parser.parse_args()
    print(create_access_token(args.subject, role=args.role))


if __name__ == "__main__":
    main()
