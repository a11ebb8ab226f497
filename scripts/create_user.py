"""Create a user directly in the database.

Usage:
  python scripts/create_user.py --username alice --email alice@example.com --password '...' --role user

NOTE: This is intended for local/dev, e.g. to seed an admin account.
"""

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from blog_platform.config import load_config
from blog_platform.db import init_db, connect
from blog_platform.auth.crud import create_user, validate_registration
from blog_platform.errors import BlogError


def main() -> None:
    ap = argparse.ArgumentParser()
    ap.add_argument("--username", required=True)
    ap.add_argument("--email", required=True)
    ap.add_argument("--password", required=True)
    ap.add_argument("--role", choices=["user", "admin"], default="user")
    args = ap.parse_args()

    cfg = load_config()
    init_db(cfg.DB_DSN)

    try:
        validate_registration(args.username, args.email, args.password)
        with connect(cfg.DB_DSN) as conn:
            u = create_user(
                conn,
                username=args.username,
                email=args.email,
                password=args.password,
                role=args.role,
            )
    except BlogError as e:
        print(f"Error: {e.message}")
        sys.exit(1)

    print("Created user:")
    print(u)


if __name__ == "__main__":
    main()
