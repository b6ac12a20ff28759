from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))


def main() -> int:
    parser = argparse.ArgumentParser(description="Create tables and load the demo studio workspace")
    parser.add_argument(
        "--database-url",
        default=os.getenv("DATABASE_URL", "sqlite+pysqlite:///./studiodesk.db"),
        help="database url to initialize",
    )
    parser.add_argument("--print-token", action="store_true", help="print an admin bearer token for the demo firm")
    args = parser.parse_args()
    os.environ["DATABASE_URL"] = args.database_url

    from sqlalchemy import select

    from app.studiodesk.core.security import create_profile_access_token
    from app.studiodesk.db.models import Profile
    from app.studiodesk.db.seed import run_seed
    from app.studiodesk.db.session import SessionLocal, init_db

    init_db()
    db = SessionLocal()
    try:
        firm = run_seed(db)
        print(f"seeded firm {firm.name} ({firm.id})")
        if args.print_token:
            admin = db.execute(
                select(Profile).where(Profile.firm_id == firm.id, Profile.role == "Admin")
            ).scalars().first()
            print(create_profile_access_token(admin))
    finally:
        db.close()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
