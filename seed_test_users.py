import os

from dotenv import load_dotenv
from sqlalchemy.exc import SQLAlchemyError

load_dotenv(os.path.join(os.path.dirname(os.path.abspath(__file__)), ".env"))

from school_portal.database import Base, SessionLocal, engine  # noqa: E402
from school_portal.permissions import ROLE_LABELS  # noqa: E402
from school_portal.services import DEFAULT_USERS, seed_default_users, seed_modules  # noqa: E402


def seed_test_users():
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        seed_modules(db)
        created = seed_default_users(db)
        print(f"Created {created} new user(s); existing usernames were left untouched.\n")
    except SQLAlchemyError as e:
        db.rollback()
        print(f"Error: {e}")
        raise
    finally:
        db.close()

    print(f"{'ROLE':<20} {'USERNAME':<18} PASSWORD")
    print("-" * 50)
    for username, password, _, role in DEFAULT_USERS:
        print(f"{ROLE_LABELS[role]:<20} {username:<18} {password}")


if __name__ == "__main__":
    seed_test_users()
