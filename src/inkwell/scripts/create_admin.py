"""Create the first admin account, or promote an existing user to admin."""
from __future__ import annotations

import argparse
import getpass
import sys

from inkwell.core.security import hash_password
from inkwell.db.session import SessionLocal
from inkwell.models import UserRole
from inkwell.repositories.user_repo import UserRepository


def ensure_admin(email: str, name: str, password: str | None) -> int:
    """Return the id of an admin with ``email``, creating or promoting as needed."""
    db = SessionLocal()
    try:
        users = UserRepository(db)
        user = users.get_by_email(email)
        if user is None:
            if not password:
                raise ValueError("A password is required to create a new admin")
            user = users.create(
                email=email,
                name=name,
                password_hash=hash_password(password),
                role=UserRole.ADMIN.value,
            )
        elif user.is_anonymous_sentinel:
            raise ValueError("The anonymous user cannot be made an admin")
        else:
            user.role = UserRole.ADMIN.value
        users.save(user)
        return user.id
    finally:
        db.close()


def main() -> None:
    parser = argparse.ArgumentParser(description="Create or promote an admin account")
    parser.add_argument("email")
    parser.add_argument("--name", default="Admin")
    parser.add_argument(
        "--password",
        default=None,
        help="Password for a new account (prompted when omitted)",
    )
    args = parser.parse_args()

    password = args.password
    if password is None and sys.stdin.isatty():
        password = getpass.getpass("Password (leave empty to promote an existing user): ")

    try:
        user_id = ensure_admin(args.email, args.name, password or None)
    except ValueError as exc:
        print(f"[create_admin] ERROR: {exc}", file=sys.stderr)
        sys.exit(1)
    print(f"[create_admin] user {user_id} is an admin")


if __name__ == "__main__":
    main()
