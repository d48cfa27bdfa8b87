#!/usr/bin/env python3
"""
Coffee catalog -- command-line entry point.

Usage:
  python main.py add-user alice
  python main.py add-user alice --password s3cret-pass
  python main.py serve
  python main.py serve --host 0.0.0.0 --port 8080 --reload

Environment variables (or .env):
  SECRET_KEY     Token signing key, at least 32 characters. Required unless DEBUG=true.
  DATABASE_URL   SQLAlchemy URL. Defaults to coffeeshop.db next to this file.
"""

import argparse
import getpass
import sys
from typing import Optional

from sqlalchemy.exc import IntegrityError

from auth.models import Credential
from auth.store import CredentialStore
from auth.tokens import hash_password
from core.config import get_settings


def add_user(username: str, password: Optional[str], db_url: str) -> int:
    """Hash `password` and store a credential for `username`. Returns a process exit code."""
    if not username.strip():
        print("  [!] Username must not be empty.")
        return 1
    if password is None:
        password = getpass.getpass(f"  Password for {username}: ")
        if password != getpass.getpass("  Repeat password: "):
            print("  [!] Passwords do not match.")
            return 1
    if not password:
        print("  [!] Password must not be empty.")
        return 1
    if len(password.encode("utf-8")) > 72:
        print("  [!] Password must be 72 bytes or shorter.")
        return 1

    store = CredentialStore(db_url)
    try:
        user_id = store.create_credential(Credential(username=username, hashed_password=hash_password(password)))
    except IntegrityError:
        print(f"  [!] User '{username}' already exists.")
        return 1
    finally:
        store.close()
    print(f"  Created user '{username}' (id {user_id}).")
    return 0


def serve(host: str, port: int, reload: bool) -> int:
    import uvicorn

    uvicorn.run("api.main:app", host=host, port=port, reload=reload)
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="coffeeshop",
        description="Coffee catalog service and administration.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py add-user alice
  python main.py serve --port 8080
        """,
    )
    sub = parser.add_subparsers(dest="command")

    add = sub.add_parser("add-user", help="Create a login credential")
    add.add_argument("username", help="Login name (case-sensitive, unique)")
    add.add_argument(
        "--password",
        default=None,
        help="Plaintext password. Prompted for when omitted -- prefer the prompt, "
        "command lines end up in shell history.",
    )

    run = sub.add_parser("serve", help="Run the HTTP API with uvicorn")
    run.add_argument("--host", default="127.0.0.1")
    run.add_argument("--port", type=int, default=8000)
    run.add_argument("--reload", action="store_true", help="Restart on code changes (development only)")

    args = parser.parse_args(argv)

    if args.command == "add-user":
        return add_user(args.username, args.password, get_settings().resolved_database_url)
    if args.command == "serve":
        return serve(args.host, args.port, args.reload)

    parser.print_help()
    return 0


if __name__ == "__main__":
    sys.exit(main())
