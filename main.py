#!/usr/bin/env python3
"""
Gatekeeper -- admin command line.

Signup only ever creates "user" accounts, so the first admin (and any guide
or lead-guide) is created here, directly against the configured database.

Usage:
  python main.py create-user --email admin@example.com --name "Site Admin" --role admin
  python main.py create-user --email guide@example.com --name "Guide" --role guide --password '...'
  python main.py serve
  python main.py serve --host 0.0.0.0 --port 8080 --reload

Environment variables:
  DATABASE_URL  SQLAlchemy URL of the user database (default: auth/gatekeeper.db)
  SECRET_KEY    Required unless DEBUG=true. See core/config.py.
"""

import argparse
import getpass
import sys

from sqlalchemy.exc import IntegrityError

from auth.models import Role, User
from auth.passwords import hash_password
from auth.store import UserStore
from core.config import get_settings

_MIN_PASSWORD = 8


def _read_password(supplied: str | None) -> str | None:
    """Return the password from --password or an interactive prompt (entered twice)."""
    if supplied:
        return supplied
    first = getpass.getpass("Password: ")
    second = getpass.getpass("Confirm password: ")
    if first != second:
        print("  [!] Passwords are not the same.")
        return None
    return first


def create_user(args: argparse.Namespace) -> int:
    password = _read_password(args.password)
    if password is None:
        return 1
    if len(password) < _MIN_PASSWORD:
        print(f"  [!] Password must be at least {_MIN_PASSWORD} characters.")
        return 1

    store = UserStore(db_url=get_settings().database_url)
    try:
        user_id = store.create_user(
            User(
                name=args.name,
                email=args.email,
                role=args.role,
                hashed_password=hash_password(password),
            )
        )
    except IntegrityError:
        print(f"  [!] An account with email '{args.email}' already exists.")
        return 1
    finally:
        store.close()

    print(f"  Created {args.role} account {args.email} (id={user_id}).")
    return 0


def serve(args: argparse.Namespace) -> int:
    import uvicorn

    uvicorn.run("api.main:app", host=args.host, port=args.port, reload=args.reload)
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="gatekeeper",
        description="Administration commands for the Gatekeeper auth API.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py create-user --email admin@example.com --name "Site Admin" --role admin
  python main.py serve --reload
        """,
    )
    sub = parser.add_subparsers(dest="command")

    p_create = sub.add_parser("create-user", help="Create an account with any role")
    p_create.add_argument("--email", required=True, help="Login email (stored lower-cased)")
    p_create.add_argument("--name", required=True, help="Display name")
    p_create.add_argument(
        "--role",
        choices=[r.value for r in Role],
        default=Role.user.value,
        help="Account role (default: user)",
    )
    p_create.add_argument(
        "--password",
        default=None,
        help="Password. Omit to be prompted (keeps it out of shell history).",
    )
    p_create.set_defaults(func=create_user)

    p_serve = sub.add_parser("serve", help="Run the API with uvicorn")
    p_serve.add_argument("--host", default="127.0.0.1")
    p_serve.add_argument("--port", type=int, default=8000)
    p_serve.add_argument("--reload", action="store_true", help="Auto-reload on code changes (dev only)")
    p_serve.set_defaults(func=serve)

    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        return 0
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
