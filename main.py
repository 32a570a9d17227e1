#!/usr/bin/env python3
"""
Account Management -- registration, login, and rotating refresh-token sessions.

Usage:
  python main.py                      # serve on HTTP_HOST:HTTP_PORT (default 0.0.0.0:8080)
  python main.py --port 9000
  python main.py --reload             # auto-reload for local development
  python main.py --purge-expired      # delete expired refresh tokens and exit

Environment variables:
  JWT_SECRET_KEY   Required. HS256 signing key, at least 32 characters.
  DATABASE_URL     Required. SQLAlchemy URL, e.g. postgresql+psycopg2://user:pw@host/accounts
  DEBUG            Set to true to allow a generated key and a local SQLite database.

See core/config.py for the full list.
"""

import argparse
import logging

import uvicorn

from auth.store import AccountStore
from core.config import get_settings


def _purge_expired() -> None:
    """Run the expired refresh token sweep once against DATABASE_URL."""
    settings = get_settings()
    store = AccountStore(settings.database_url)
    try:
        removed = store.delete_expired_refresh_tokens()
    finally:
        store.close()
    print(f"  Removed {removed} expired refresh token(s).")


def main() -> None:
    settings = get_settings()

    parser = argparse.ArgumentParser(
        description="Account Management -- token-based authentication service",
        epilog=__doc__,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--host", default=settings.http_host, help="Bind address (default: HTTP_HOST)")
    parser.add_argument("--port", type=int, default=settings.http_port, help="Bind port (default: HTTP_PORT)")
    parser.add_argument("--reload", action="store_true", help="Reload on code changes (development only)")
    parser.add_argument(
        "--purge-expired",
        action="store_true",
        help="Delete expired refresh tokens from the database and exit",
    )
    args = parser.parse_args()

    if args.purge_expired:
        logging.basicConfig(level=settings.log_level.upper())
        _purge_expired()
        return

    uvicorn.run(
        "api.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
