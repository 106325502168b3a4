"""Generate a tally key pair for private ballots.

Publish ``TALLY_PUBLIC_KEY`` to the API; hand ``TALLY_SECRET_KEY`` only to
the deployment that performs reveals.
"""
from __future__ import annotations

import argparse

from quadvote.services.privacy import generate_keypair


def main() -> None:
    parser = argparse.ArgumentParser(description="Generate an ElGamal tally key pair")
    parser.add_argument(
        "--public-only",
        action="store_true",
        help="Print only the public key line (the secret is discarded)",
    )
    args = parser.parse_args()

    keypair = generate_keypair()
    print(f"TALLY_PUBLIC_KEY={keypair.public_hex}")
    if not args.public_only:
        print(f"TALLY_SECRET_KEY={keypair.secret_hex}")


if __name__ == "__main__":
    main()
