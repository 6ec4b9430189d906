#!/usr/bin/env python3
"""Create the dashboard audit tables."""

from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path

from sqlalchemy import create_engine, inspect

APP_DIR = Path(__file__).resolve().parents[1]
if str(APP_DIR) not in sys.path:
    sys.path.insert(0, str(APP_DIR))

from db.base import Base
import models.dashboard_models  # noqa: F401  (registers the tables on Base)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Create RentalDash audit tables.")
    parser.add_argument(
        "--db-url",
        default=os.environ.get("DASHBOARD_DB_URL", "").strip(),
        help="SQLAlchemy DB URL; defaults to DASHBOARD_DB_URL env var.",
    )
    parser.add_argument("--drop", action="store_true", help="Drop existing tables first.")
    return parser


def main() -> int:
    args = _build_parser().parse_args()

    db_url = (args.db_url or "").strip()
    if not db_url:
        print("DASHBOARD_DB_URL is not set. Provide --db-url or export env first.")
        return 2

    try:
        engine = create_engine(db_url, future=True)
        if args.drop:
            Base.metadata.drop_all(engine)
        Base.metadata.create_all(engine)
    except Exception as exc:
        print(f"Could not initialise DB: {exc}")
        return 3

    tables = sorted(inspect(engine).get_table_names())
    print("Tables: " + ", ".join(tables))
    return 0


if __name__ == "__main__":
    sys.exit(main())
