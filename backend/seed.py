#!/usr/bin/env python
"""
Seed script — creates the tables and issues an operator API key.

Usage:
    python seed.py [label]
"""
import sys

from moneybuddy.db import crud
from moneybuddy.db.models import Base
from moneybuddy.db.session import SessionLocal, engine


def main() -> None:
    label = sys.argv[1] if len(sys.argv) > 1 else "operator"
    Base.metadata.create_all(engine)
    db = SessionLocal()
    try:
        api_key = crud.issue_api_key(db, label)
    finally:
        db.close()
    print("=== Operator API key issued ===")
    print(f"Label   : {label}")
    print(f"API KEY : {api_key}  (store this securely!)")


if __name__ == "__main__":
    main()
