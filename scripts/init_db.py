"""
Create tables (local/dev) and seed the bootstrap admin.

Usage:
  python scripts/init_db.py            # create_all + seed
  ADMIN_EMAIL=... ADMIN_PASSWORD=... python scripts/init_db.py
"""
import os
import sys
from pathlib import Path

from sqlalchemy import select

# Ensure repo root is on sys.path when running as a script (Windows-friendly).
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.studylinker.constants import ROLE_ADMIN  # noqa: E402
from app.studylinker.models import Account, Base  # noqa: E402
from app.studylinker.security import hash_password  # noqa: E402
from app.studylinker.modules.users.models import UserProfile  # noqa: E402
from scripts._db_utils import create_script_engine, script_database_url, script_session  # noqa: E402


def seed_only(*, database_url: str | None = None) -> None:
    """
    Seed the admin account + ADMIN profile in an idempotent way.
    Does NOT overwrite an existing admin account's password.
    """
    admin_email = (os.environ.get("ADMIN_EMAIL") or "admin@studylinker.local").strip().lower()
    admin_password = os.environ.get("ADMIN_PASSWORD") or "change-me-now"
    db_url = script_database_url(database_url)

    with script_session(db_url) as s:
        account = s.execute(select(Account).where(Account.email == admin_email)).scalar_one_or_none()
        if account is None:
            account = Account(email=admin_email, password_hash=hash_password(admin_password))
            s.add(account)
            s.flush()
            print(f"Created admin account {admin_email}")

        profile = s.execute(select(UserProfile).where(UserProfile.auth_id == account.id)).scalar_one_or_none()
        if profile is None:
            s.add(UserProfile(auth_id=account.id, email=admin_email, first_name="Admin", role=ROLE_ADMIN))
            print("Created ADMIN user profile")
        elif profile.role != ROLE_ADMIN:
            profile.role = ROLE_ADMIN
            print("Promoted existing profile to ADMIN")


def main() -> None:
    db_url = script_database_url()
    engine = create_script_engine(db_url)
    try:
        Base.metadata.create_all(engine)
    finally:
        engine.dispose()
    seed_only(database_url=db_url)
    print("Database initialized.")


if __name__ == "__main__":
    main()
