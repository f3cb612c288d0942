#!/usr/bin/env python3
"""Give an existing user profile a staff role (idempotent).

Usage:
  python scripts/promote_admin.py --email someone@example.com [--role MANAGER]
"""

import argparse
import sys
from pathlib import Path

from sqlalchemy import select

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.studylinker.constants import STAFF_ROLES  # noqa: E402
from app.studylinker.modules.users.models import UserProfile  # noqa: E402
from scripts._db_utils import script_database_url, script_session  # noqa: E402


def main() -> None:
    parser = argparse.ArgumentParser()
    parser.add_argument("--email", required=True, help="Email of the user profile to promote")
    parser.add_argument("--role", default="ADMIN", choices=sorted(STAFF_ROLES))
    args = parser.parse_args()

    with script_session(script_database_url()) as s:
        profile = s.execute(
            select(UserProfile).where(UserProfile.email.ilike(args.email.strip()))
        ).scalar_one_or_none()
        if not profile:
            print(f"User profile not found: {args.email}")
            return
        if profile.role == args.role:
            print(f"{args.email} already has role {args.role}")
            return
        profile.role = args.role
        print(f"{args.email} is now {args.role}")


if __name__ == "__main__":
    main()
