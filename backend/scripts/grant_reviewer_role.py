#!/usr/bin/env python3
"""Grant (or revoke) the hr_manager role so a user receives flag notifications."""
from __future__ import annotations

import argparse

from sqlalchemy import create_engine, delete, select
from sqlalchemy.orm import Session

from pulse.config import get_settings
from pulse.models.profile import AppRole, UserRole


def main() -> None:
    parser = argparse.ArgumentParser(description="Manage the HR reviewer role for an auth user id.")
    parser.add_argument("user_id")
    parser.add_argument("--revoke", action="store_true")
    args = parser.parse_args()

    engine = create_engine(get_settings().database_url_sync)
    with Session(engine) as session:
        if args.revoke:
            session.execute(
                delete(UserRole).where(UserRole.user_id == args.user_id, UserRole.role == AppRole.hr_manager)
            )
            session.commit()
            print(f"Revoked hr_manager from {args.user_id}")
            return

        existing = session.execute(
            select(UserRole.id).where(UserRole.user_id == args.user_id, UserRole.role == AppRole.hr_manager)
        ).scalar_one_or_none()
        if existing is not None:
            print(f"{args.user_id} already holds hr_manager")
            return
        session.add(UserRole(user_id=args.user_id, role=AppRole.hr_manager))
        session.commit()
        print(f"Granted hr_manager to {args.user_id}")


if __name__ == "__main__":
    main()
