#!/usr/bin/env python3
"""
User Login API -- command-line entry point.

Usage:
  python main.py serve
  python main.py serve --host 0.0.0.0 --port 8080 --reload
  python main.py seed
  python main.py seed --count 250 --keep
  python main.py cleanup

Environment variables (also read from .env):
  SECRET_KEY     JWT signing key, 32+ characters. Required unless DEBUG=true.
  DATABASE_URL   SQLAlchemy URL (default: sqlite:///./users.db)
  PORT           Listen port for "serve" (default: 3000)
"""

import argparse
import logging
import random
import sys

from auth.cleanup import TokenCleanup
from auth.models import User
from auth.store import TokenStore, UserStore
from auth.tokens import hash_password
from core.config import get_settings
from core.logging import configure_logging

logger = logging.getLogger("userapi.cli")

_FIRST_NAMES = [
    "John", "Jane", "Michael", "Emily", "David", "Sarah", "Robert", "Lisa",
    "William", "Emma", "James", "Olivia", "Daniel", "Sophia", "Matthew", "Ava",
]
_LAST_NAMES = [
    "Smith", "Johnson", "Williams", "Brown", "Jones", "Garcia", "Miller", "Davis",
    "Rodriguez", "Martinez", "Wilson", "Anderson", "Taylor", "Thomas", "Moore", "Lee",
]
_ROLES = ["admin", "user", "manager"]


def _sample_users(count: int, rng: random.Random) -> list[User]:
    """Build count users with unique emails and passwords pass1..passN."""
    users = []
    for n in range(1, count + 1):
        firstname = rng.choice(_FIRST_NAMES)
        lastname = rng.choice(_LAST_NAMES)
        users.append(
            User(
                email=f"{firstname.lower()}.{lastname.lower()}{n}@example.com",
                password=hash_password(f"pass{n}"),
                firstname=firstname,
                lastname=lastname,
                age=rng.randint(18, 67),
                phone=f"555-{rng.randint(100, 999)}-{rng.randint(1000, 9999)}",
                role=rng.choice(_ROLES),
                is_active=rng.random() < 0.7,
            )
        )
    return users


def cmd_serve(args: argparse.Namespace) -> int:
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "asgi:app",
        host=args.host or settings.host,
        port=args.port or settings.port,
        reload=args.reload,
    )
    return 0


def cmd_seed(args: argparse.Namespace) -> int:
    settings = get_settings()
    if args.count < 1:
        print("  [!] --count must be at least 1.", file=sys.stderr)
        return 2

    store = UserStore(settings.database_url)
    try:
        if not args.keep:
            removed = store.delete_all()
            logger.info("Cleared %d existing users", removed)
        users = _sample_users(args.count, random.Random(args.seed))
        inserted = store.create_users(users)
    finally:
        store.close()

    print(f"  Inserted {inserted} users. Sign in as {users[0].email} / pass1")
    return 0


def cmd_cleanup(args: argparse.Namespace) -> int:
    settings = get_settings()
    tokens = TokenStore(settings.database_url)
    try:
        removed = TokenCleanup(tokens, stale_seconds=settings.token_stale_seconds).sweep()
    finally:
        tokens.close()
    print(f"  Removed {removed} token records.")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="user-login-api",
        description="User registration and token-session service.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py serve --reload
  python main.py seed --count 100
  DATABASE_URL=sqlite:///./dev.db python main.py cleanup
        """,
    )
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the HTTP server with uvicorn")
    serve.add_argument("--host", default=None, help="Bind address (default: HOST setting)")
    serve.add_argument("--port", type=int, default=None, help="Listen port (default: PORT setting)")
    serve.add_argument("--reload", action="store_true", help="Restart on code changes (development only)")
    serve.set_defaults(func=cmd_serve)

    seed = sub.add_parser("seed", help="Replace the users table with random sample users")
    seed.add_argument("--count", type=int, default=100, metavar="N", help="Number of users to insert (default: 100)")
    seed.add_argument("--seed", type=int, default=None, metavar="INT", help="Random seed for reproducible data")
    seed.add_argument("--keep", action="store_true", help="Keep existing users instead of clearing them first")
    seed.set_defaults(func=cmd_seed)

    cleanup = sub.add_parser("cleanup", help="Delete revoked and stale token records once")
    cleanup.set_defaults(func=cmd_cleanup)

    args = parser.parse_args(argv)
    configure_logging(get_settings())
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
