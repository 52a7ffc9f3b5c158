#!/usr/bin/env python3
"""
AuthEngine -- credential storage and bearer token service.

Usage:
  python main.py serve
  python main.py serve --host 0.0.0.0 --port 8080
  python main.py create-user alice --first-name Alice --last-name Liddell
  python main.py create-user root --first-name Root --last-name Admin --admin
  python main.py show-user alice

Environment variables (see core/config.py for the full list):
  DATABASE_URL   SQLAlchemy URL of the credential database.
                 Defaults to a SQLite file next to the auth package.
  LOG_LEVEL      Logging level for the API server (default INFO).
"""

import argparse
import getpass
import sys
from typing import Optional

from auth.service import AccountService
from auth.store import CredentialStore


def _prompt_password() -> Optional[str]:
    """Read a password twice without echo. Returns None if the entries differ."""
    first = getpass.getpass("  Password: ")
    second = getpass.getpass("  Repeat password: ")
    if first != second:
        print("  [!] Passwords do not match.")
        return None
    return first


def _cmd_serve(args: argparse.Namespace) -> int:
    import uvicorn

    uvicorn.run("api.main:app", host=args.host, port=args.port, reload=args.reload)
    return 0


def _cmd_create_user(args: argparse.Namespace, store: CredentialStore) -> int:
    password = _prompt_password()
    if password is None:
        return 1
    outcome = AccountService(store).register(
        args.username,
        password,
        args.first_name,
        args.last_name,
        email=args.email,
        phone=args.phone,
        is_admin=args.admin,
        is_disabled=args.disabled,
    )
    if not outcome.ok:
        print(f"  [!] {outcome.error.message} ({outcome.error.status})")
        return 1
    print(f"  {outcome.value}: {args.username}" + (" (admin)" if args.admin else ""))
    return 0


def _cmd_show_user(args: argparse.Namespace, store: CredentialStore) -> int:
    record = store.get_by_username(args.username)
    if record is None:
        print(f"  [!] No user named '{args.username}'.")
        return 1
    service = AccountService(store)
    info = store.get_user_info(record.user_id)
    print(f"  Username        {record.username}")
    print(f"  User ID         {record.user_id}")
    if info is not None:
        print(f"  Name            {info.first_name} {info.last_name}")
        print(f"  Email           {info.email or '-'}")
        print(f"  Phone           {info.phone_number or '-'}")
    else:
        print("  Name            [!] identity record missing")
    print(f"  Admin           {'yes' if record.is_admin else 'no'}")
    print(f"  Disabled        {'yes' if record.is_disabled else 'no'}")
    print(f"  Created         {record.created_at.isoformat()}")
    print(f"  Last login      {record.last_login.isoformat() if record.last_login else '-'}")
    print(f"  Password change {record.last_password_change.isoformat() if record.last_password_change else '-'}")
    print(f"  Session         {service.tokens.phase(record).value}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="authengine",
        description="AuthEngine -- credential storage and bearer token service.",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    serve = sub.add_parser("serve", help="Run the HTTP API with uvicorn")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)
    serve.add_argument("--reload", action="store_true", help="Reload on code changes (development only)")

    create = sub.add_parser("create-user", help="Register an account (prompts for the password)")
    create.add_argument("username")
    create.add_argument("--first-name", required=True)
    create.add_argument("--last-name", required=True)
    create.add_argument("--email")
    create.add_argument("--phone")
    create.add_argument("--admin", action="store_true", help="Grant the admin flag")
    create.add_argument("--disabled", action="store_true", help="Create the account disabled")

    show = sub.add_parser("show-user", help="Print account flags and session state")
    show.add_argument("username")

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    if args.command == "serve":
        return _cmd_serve(args)

    store = CredentialStore()
    try:
        if args.command == "create-user":
            return _cmd_create_user(args, store)
        return _cmd_show_user(args, store)
    finally:
        store.close()


if __name__ == "__main__":
    sys.exit(main())
