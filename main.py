#!/usr/bin/env python3
"""
InternHub -- management commands.

The HTTP API never lets an account grant itself a role, so the first
administrator is created (or promoted) from the command line.

Usage:
  python main.py create-admin --email admin@example.com --name "Site Admin"
  python main.py create-admin --email admin@example.com --name "Site Admin" --password s3cret!
  python main.py promote --email student@example.com
  python main.py list-users

Environment variables:
  DATABASE_URL  Database to operate on (same variable the API reads).
  SECRET_KEY    Required unless DEBUG=true (see core/config.py).
"""

import argparse
import getpass
import re
import sys
from typing import Optional

from auth.models import Role, User
from auth.store import UserStore
from auth.tokens import BCRYPT_MAX_BYTES, hash_password, password_too_long
from core.config import Settings, get_settings
from core.models import EMAIL_PATTERN, normalize_email

_EMAIL_RE = re.compile(EMAIL_PATTERN)


def _read_password(settings: Settings, given: Optional[str]) -> Optional[str]:
    """Return the password from --password or an interactive prompt, or None if it is unusable."""
    password = given if given is not None else getpass.getpass("Password: ")
    if len(password) < settings.min_password_length:
        print(f"  [!] Password must be at least {settings.min_password_length} characters.")
        return None
    if password_too_long(password):
        print(f"  [!] Password must be at most {BCRYPT_MAX_BYTES} bytes.")
        return None
    return password


def create_admin(store: UserStore, settings: Settings, email: str, name: str, password: str) -> int:
    """Create a verified admin account and return its ID.

    An existing account with the same e-mail is promoted instead; its
    password is left unchanged.
    """
    existing = store.get_by_email(email)
    if existing is not None:
        store.update_user(existing.id, role=Role.admin.value)
        return existing.id
    return store.create_user(
        User(
            email=email,
            name=name,
            hashed_password=hash_password(password, settings),
            role=Role.admin.value,
            is_verified=True,
        )
    )


def promote(store: UserStore, email: str) -> bool:
    """Give an existing account the admin role. False if there is no such account."""
    user = store.get_by_email(email)
    if user is None:
        return False
    return store.update_user(user.id, role=Role.admin.value)


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="internhub",
        description="InternHub management commands.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    sub = parser.add_subparsers(dest="command", metavar="COMMAND")

    p_create = sub.add_parser("create-admin", help="Create an admin account (or promote an existing one)")
    p_create.add_argument("--email", required=True, help="Login e-mail of the admin")
    p_create.add_argument("--name", required=True, help="Display name")
    p_create.add_argument("--password", default=None, help="Password (prompted for when omitted)")

    p_promote = sub.add_parser("promote", help="Give an existing account the admin role")
    p_promote.add_argument("--email", required=True)

    sub.add_parser("list-users", help="Print every account")

    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        return 1

    settings = get_settings()
    store = UserStore(settings.database_url)
    try:
        if args.command == "create-admin":
            email = normalize_email(args.email)
            if not _EMAIL_RE.match(email):
                print(f"  [!] '{args.email}' doesn't look like an e-mail address.")
                return 1
            existing = store.get_by_email(email)
            password = "" if existing else _read_password(settings, args.password)
            if password is None:
                return 1
            user_id = create_admin(store, settings, email, args.name.strip(), password)
            verb = "Promoted" if existing else "Created"
            print(f"  {verb} admin {email} (id={user_id}).")

        elif args.command == "promote":
            if not promote(store, args.email):
                print(f"  [!] No account found for {args.email}.")
                return 1
            print(f"  {normalize_email(args.email)} is now an admin.")

        elif args.command == "list-users":
            for user in store.list_users():
                flag = "verified" if user.is_verified else "unverified"
                print(f"  {user.id:>5}  {user.role:<8} {flag:<10} {user.email}  ({user.name})")
    finally:
        store.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
