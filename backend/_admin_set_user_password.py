from __future__ import annotations

import argparse
import getpass
import sys
from datetime import datetime, timezone
from pathlib import Path

# Allow running this script from any working directory.
BACKEND_DIR = Path(__file__).resolve().parents[0]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from sqlalchemy import func, select

from core.database import SessionLocal
from core.security import hash_password
from models.user import User


def main() -> None:
    parser = argparse.ArgumentParser(description="Set a local account's password by email (idempotent update).")
    parser.add_argument("email", help="Account email")
    parser.add_argument("--approve", action="store_true", help="Also mark the account approved")
    parser.add_argument("--admin", action="store_true", help="Also grant the ADMIN role")
    parser.add_argument("--yes", action="store_true", help="Actually apply changes")
    args = parser.parse_args()

    email = (args.email or "").strip().lower()
    if not email:
        raise SystemExit("Email is required")

    if not args.yes:
        print("Dry run. Re-run with --yes to apply.")
        print(f"Would set password for email={email!r} approve={args.approve} admin={args.admin}")
        return

    pw1 = getpass.getpass("New password: ")
    pw2 = getpass.getpass("Confirm password: ")
    if pw1 != pw2:
        raise SystemExit("Passwords do not match")
    if len(pw1) < 8:
        raise SystemExit("Password must be at least 8 characters")

    with SessionLocal() as db:
        user = db.execute(select(User).where(func.lower(User.email) == email)).scalar_one_or_none()
        if user is None:
            raise SystemExit(f"No such user: {email!r}")

        user.password_hash = hash_password(pw1)
        if args.approve and user.email_confirmed_at is None:
            user.email_confirmed_at = datetime.now(timezone.utc)
        if args.admin:
            user.role = "ADMIN"
        db.commit()

        print({"id": str(user.id), "email": user.email, "role": user.role, "approved": user.email_confirmed_at is not None})


if __name__ == "__main__":
    main()
