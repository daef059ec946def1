import os

from dotenv import load_dotenv

load_dotenv(os.path.join(os.path.dirname(os.path.abspath(__file__)), ".env"))

from school_portal.database import SessionLocal  # noqa: E402
from school_portal.models import User  # noqa: E402
from school_portal.permissions import get_accessible_modules  # noqa: E402


def check_users():
    db = SessionLocal()
    try:
        users = db.query(User).order_by(User.id).all()
        print(f"Found {len(users)} users:")
        for u in users:
            modules = ", ".join(module.value for module in get_accessible_modules(u.role))
            state = "active" if u.is_active else "disabled"
            print(f"- {u.username} ({u.name}) [{u.role.value}, {state}] -> {modules}")
    finally:
        db.close()


if __name__ == "__main__":
    check_users()
