#!/usr/bin/env python3
from __future__ import annotations

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.append(str(ROOT))

from sqlalchemy import inspect  # noqa: E402

from canteen.core.config import IS_DEV  # noqa: E402
from canteen.core.database import SessionLocal, engine  # noqa: E402
from canteen.services.users import upsert_admin  # noqa: E402


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Create or promote a canteen admin account.")
    parser.add_argument("--email", required=True, help="Admin email")
    parser.add_argument("--password", required=True, help="Admin password (plain or already hashed)")
    parser.add_argument("--name", default="Canteen Manager", help="Display name for a new account")
    parser.add_argument(
        "--reset-password",
        action="store_true",
        help="Overwrite the password when the account already exists",
    )
    return parser.parse_args()


def main() -> int:
    args = parse_args()

    if not inspect(engine).has_table("users"):
        print("Table 'users' not found. Run `alembic upgrade head` first.")
        return 1

    db = SessionLocal()
    try:
        admin, created = upsert_admin(
            db,
            email=args.email,
            name=args.name,
            password=args.password,
            reset_password=args.reset_password,
        )
    finally:
        db.close()

    action = "created" if created else "updated"
    print(f"Admin {action}: id={admin.id} email={admin.email}")
    if IS_DEV and (created or args.reset_password):
        print(f"DEV summary -> Email: {admin.email} | Password: {args.password}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
