from __future__ import annotations

import argparse
from datetime import date

from app.db.base import Base
from app.db.session import SessionLocal, engine
from app.services.seed import DEMO_BUSINESS_NAME, seed_demo_data


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Seed the demo manufacturing ledgers.")
    parser.add_argument(
        "--today",
        type=date.fromisoformat,
        default=None,
        help="Last day of generated history (YYYY-MM-DD). Defaults to today.",
    )
    parser.add_argument(
        "--create-schema",
        action="store_true",
        help="Create missing tables before seeding instead of relying on migrations.",
    )
    return parser.parse_args()


def main() -> None:
    args = _parse_args()
    if args.create_schema:
        Base.metadata.create_all(bind=engine)
    with SessionLocal() as db:
        seed_demo_data(db, today=args.today)
        print(f"Demo data seeded for {DEMO_BUSINESS_NAME}.")


if __name__ == "__main__":
    main()
