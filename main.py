#!/usr/bin/env python3
"""
BookStore API -- operator command line.

Manages the credential store directly, without going through HTTP. Useful for
creating the first Administrator, since /users/register only ever grants the
default role.

Usage:
  python main.py seed-roles
  python main.py create-user admin@bookstore.com --role Administrator
  python main.py create-user reader@example.com
  python main.py issue-token admin@bookstore.com
  python main.py grant-role reader@example.com --role Administrator

Passwords are always read with getpass, never from arguments, so they do not
end up in shell history.

Environment variables:
  AUTH_DATABASE_URL   Credential store location (default: auth/bookstore_auth.db)
  SECRET_KEY          Required by issue-token unless DEBUG=true
"""

import argparse
import getpass
import sys
from typing import Optional

from auth.models import Role
from auth.service import AuthenticationFault, authenticate, register
from auth.store import UserStore
from core.config import get_settings


def _open_store(db_url: Optional[str]) -> UserStore:
    store = UserStore(db_url or get_settings().auth_database_url)
    store.ensure_roles(r.value for r in Role)
    return store


def cmd_seed_roles(args: argparse.Namespace) -> int:
    store = _open_store(args.db_url)
    try:
        print(f"  Roles: {', '.join(store.list_roles())}")
    finally:
        store.close()
    return 0


def cmd_create_user(args: argparse.Namespace) -> int:
    password = getpass.getpass("  Password: ")
    if password != getpass.getpass("  Confirm password: "):
        print("  [!] Passwords do not match.")
        return 1

    roles = args.role or [get_settings().default_role]
    store = _open_store(args.db_url)
    try:
        result = register(store, args.login_name, password, get_settings(), roles=roles)
    finally:
        store.close()

    if not result.succeeded:
        for error in result.errors:
            print(f"  [!] {error.description}")
        return 1
    print(f"  Created {args.login_name} ({result.user_id}) with roles: {', '.join(roles)}")
    return 0


def cmd_issue_token(args: argparse.Namespace) -> int:
    password = getpass.getpass("  Password: ")
    store = _open_store(args.db_url)
    try:
        result = authenticate(store, args.login_name, password)
    except AuthenticationFault as exc:
        print(f"  [!] Could not authenticate: {exc}")
        return 2
    finally:
        store.close()

    if not result.succeeded:
        print("  [!] Invalid login name or password.")
        return 1
    print(result.token)
    return 0


def cmd_grant_role(args: argparse.Namespace) -> int:
    store = _open_store(args.db_url)
    try:
        identity = store.get_by_username(args.login_name)
        if identity is None:
            print(f"  [!] No such user: {args.login_name}")
            return 1
        store.add_to_roles(identity.id, args.role)
        roles = store.get_roles(identity.id)
    finally:
        store.close()
    print(f"  {identity.username} now has roles: {', '.join(roles)} (effective from the next login)")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bookstore",
        description="BookStore API credential store administration.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py seed-roles
  python main.py create-user admin@bookstore.com --role Administrator
  python main.py issue-token admin@bookstore.com
  python main.py grant-role reader@example.com --role Administrator
        """,
    )
    parser.add_argument(
        "--db-url",
        metavar="URL",
        default=None,
        help="SQLAlchemy URL of the credential store (default: AUTH_DATABASE_URL)",
    )
    sub = parser.add_subparsers(dest="command", metavar="COMMAND")

    seed = sub.add_parser("seed-roles", help="Create the standard roles if missing")
    seed.set_defaults(func=cmd_seed_roles)

    create = sub.add_parser("create-user", help="Create a user (prompts for the password)")
    create.add_argument("login_name", metavar="LOGIN", help="Login name (email address)")
    create.add_argument(
        "--role",
        action="append",
        choices=[r.value for r in Role],
        help="Role to assign; repeat for several (default: DEFAULT_ROLE)",
    )
    create.set_defaults(func=cmd_create_user)

    issue = sub.add_parser("issue-token", help="Log in and print a bearer token")
    issue.add_argument("login_name", metavar="LOGIN", help="Login name (email address)")
    issue.set_defaults(func=cmd_issue_token)

    grant = sub.add_parser("grant-role", help="Add roles to an existing user")
    grant.add_argument("login_name", metavar="LOGIN", help="Login name (email address)")
    grant.add_argument(
        "--role",
        action="append",
        required=True,
        choices=[r.value for r in Role],
        help="Role to add; repeat for several",
    )
    grant.set_defaults(func=cmd_grant_role)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not getattr(args, "func", None):
        parser.print_help()
        return 0
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
