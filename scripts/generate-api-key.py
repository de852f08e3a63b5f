#!/usr/bin/env python3
"""
generate-api-key.py - Create an analytics API key.

Generates a cryptographically secure key, stores its SHA-256 hash in the
database configured by DATABASE_URL, and prints the raw key once.

Usage:
    python scripts/generate-api-key.py --name dashboard
    python scripts/generate-api-key.py --name editor-team --role editor
    python scripts/generate-api-key.py --name ci --database-url sqlite+aiosqlite:///./blogstats.db
"""

import argparse
import asyncio
import secrets
import string
import sys

from blogstats.config import get_settings
from blogstats.db.engine import Database
from blogstats.dependencies import hash_key
from blogstats.models.api_key import ROLES, ApiKey


# ANSI color codes
class C:
    RED = "\033[91m"
    GREEN = "\033[92m"
    YELLOW = "\033[93m"
    CYAN = "\033[96m"
    BOLD = "\033[1m"
    DIM = "\033[2m"
    RESET = "\033[0m"


CHARSET = string.ascii_letters + string.digits
KEY_PREFIX = "bs_sk_"


def generate_api_key() -> str:
    """Generate an API key: bs_sk_ + 40 random alphanumeric characters."""
    random_part = "".join(secrets.choice(CHARSET) for _ in range(40))
    return f"{KEY_PREFIX}{random_part}"


async def store_api_key(database_url: str, name: str, role: str, raw_key: str) -> str:
    """Persist the hashed key and return its row id."""
    database = Database(database_url)
    try:
        await database.create_all()
        async with database.session_factory() as db:
            api_key = ApiKey(
                name=name,
                key_hash=hash_key(raw_key),
                prefix=raw_key[:11],
                role=role,
            )
            db.add(api_key)
            await db.commit()
            return api_key.id
    finally:
        await database.dispose()


def main() -> None:
    parser = argparse.ArgumentParser(description="Create a blogstats analytics API key")
    parser.add_argument("--name", type=str, required=True, help="Label for the key")
    parser.add_argument(
        "--role",
        choices=ROLES,
        default="admin",
        help="admin reads sessions and stats; editor reads stats only (default: admin)",
    )
    parser.add_argument(
        "--database-url",
        type=str,
        default=None,
        help="Override DATABASE_URL",
    )
    args = parser.parse_args()

    database_url = args.database_url or get_settings().database_url
    raw_key = generate_api_key()

    print(f"\n{C.BOLD}blogstats API Key Generator{C.RESET}")
    print(f"{C.DIM}{'=' * 60}{C.RESET}\n")

    try:
        key_id = asyncio.run(store_api_key(database_url, args.name, args.role, raw_key))
    except Exception as exc:
        print(f"  {C.RED}Failed to store key{C.RESET} {C.DIM}{exc}{C.RESET}\n")
        sys.exit(1)

    print(f"  {C.BOLD}API Key:{C.RESET}   {C.CYAN}{raw_key}{C.RESET}")
    print(f"  {C.BOLD}Key ID:{C.RESET}    {key_id}")
    print(f"  {C.BOLD}Name:{C.RESET}      {args.name}")
    print(f"  {C.BOLD}Role:{C.RESET}      {args.role}")

    print(f"\n{C.DIM}{'=' * 60}{C.RESET}\n")

    print(f"  {C.BOLD}Usage:{C.RESET}")
    print(f'  {C.DIM}curl -H "Authorization: Bearer {raw_key}" http://localhost:8788/v1/stats{C.RESET}')
    print()

    # Security reminder
    print(f"  {C.YELLOW}Keep your API key secret!{C.RESET}")
    print(f"  {C.DIM}Only its hash is stored; it cannot be shown again.{C.RESET}\n")


if __name__ == "__main__":
    main()
