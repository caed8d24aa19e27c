import argparse
from pathlib import Path
import sys

from sqlalchemy import select

if __package__ is None or __package__ == "":
    sys.path.append(str(Path(__file__).resolve().parents[1]))

from housepoints.core.config import get_settings
from housepoints.core.security import hash_password
from housepoints.db.session import session_scope
from housepoints.models.user import User


def parse_args() -> argparse.Namespace:
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Create or update a staff account.")
    parser.add_argument("--login", default=settings.bootstrap_admin_login)
    parser.add_argument("--password", default=settings.bootstrap_admin_password)
    parser.add_argument("--role", choices=("admin", "teacher"), default="admin")
    parser.add_argument("--first-name", default="")
    parser.add_argument("--last-name", default="")
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    with session_scope() as db:
        existing = db.scalar(select(User).where(User.login == args.login))
        if existing:
            existing.password_hash = hash_password(args.password)
            existing.role = args.role
            db.add(existing)
            action = "updated"
        else:
            db.add(
                User(
                    login=args.login,
                    password_hash=hash_password(args.password),
                    first_name=args.first_name,
                    last_name=args.last_name,
                    role=args.role,
                )
            )
            action = "created"
        db.commit()
    print(f"{args.role.capitalize()} {args.login} {action}.")


if __name__ == "__main__":
    main()
