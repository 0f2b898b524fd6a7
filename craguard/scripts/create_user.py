"""
Create a user (e.g. first admin). Run from project root:
  python -m craguard.scripts.create_user USERNAME PASSWORD [role] [--email EMAIL]
Example:
  python -m craguard.scripts.create_user admin your-secure-password admin --email sec@example.com
"""
import argparse
import sys

from craguard.core.database import SessionLocal
from craguard.core.security import (
    PASSWORD_MAX_LEN,
    PASSWORD_MIN_LEN,
    USERNAME_MAX_LEN,
    hash_password,
)
from craguard.models.user import User
from craguard.repositories.users import UserRepository


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Create a CRA Guard user (no registration UI).")
    parser.add_argument("username", help="Username (1-255 chars)")
    parser.add_argument("password", help="Password (8-128 chars)")
    parser.add_argument("role", nargs="?", default="user", choices=["user", "admin"])
    parser.add_argument("--email", default=None, help="Address for notification delivery")
    args = parser.parse_args(argv)

    username = args.username.strip()
    if not username or len(username) > USERNAME_MAX_LEN:
        print("Invalid username length.", file=sys.stderr)
        return 1
    if not (PASSWORD_MIN_LEN <= len(args.password) <= PASSWORD_MAX_LEN):
        print(f"Password must be {PASSWORD_MIN_LEN}-{PASSWORD_MAX_LEN} characters.", file=sys.stderr)
        return 1

    db = SessionLocal()
    try:
        if UserRepository(db).get_by_username(username) is not None:
            print(f"User '{username}' already exists.", file=sys.stderr)
            return 1
        user = User(
            username=username,
            password_hash=hash_password(args.password),
            role=args.role,
            email=args.email,
        )
        db.add(user)
        db.commit()
        print(f"Created user '{username}' with role '{args.role}' (id {user.id}).")
        return 0
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
