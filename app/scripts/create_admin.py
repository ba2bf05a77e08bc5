"""
Create an admin account without the public registration endpoint. Run from project root:
  python -m app.scripts.create_admin USERNAME EMAIL PASSWORD FIRST_NAME LAST_NAME
Example:
  python -m app.scripts.create_admin admin admin@example.com your-secure-password Site Admin
"""
import argparse
import logging
import sys

from pydantic import ValidationError

from app.core.database import SessionLocal
from app.schemas.auth import RegisterRequest
from app.services.accounts import AccountConflictError, register_admin

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Create an Expense Tracker admin.")
    parser.add_argument("username", help="Username (3-50 chars)")
    parser.add_argument("email", help="Email address used to log in")
    parser.add_argument("password", help="Password (6-128 chars)")
    parser.add_argument("first_name")
    parser.add_argument("last_name")
    args = parser.parse_args(argv)

    try:
        body = RegisterRequest(
            username=args.username,
            email=args.email,
            password=args.password,
            first_name=args.first_name,
            last_name=args.last_name,
        )
    except ValidationError as e:
        for err in e.errors():
            print(f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}", file=sys.stderr)
        return 1

    db = SessionLocal()
    try:
        admin = register_admin(db, body)
    except AccountConflictError as e:
        print(e.message, file=sys.stderr)
        return 1
    finally:
        db.close()
    print(f"Created admin '{admin.username}' ({admin.email}).")
    return 0


if __name__ == "__main__":
    sys.exit(main())
