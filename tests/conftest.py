import os
from datetime import date

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["SEED_TEST_USERS"] = "false"

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from backend import app  # noqa: E402
from school_portal.database import Base, get_db_session  # noqa: E402
from school_portal.models import Student, User  # noqa: E402
from school_portal.services import DEFAULT_USERS, seed_default_users, seed_modules  # noqa: E402


PASSWORDS = {username: password for username, password, _, _ in DEFAULT_USERS}


@pytest.fixture()
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    seed_modules(session)
    seed_default_users(session, rounds=4)
    yield session
    session.close()


@pytest.fixture()
def client(db, session_factory):
    def override_get_db_session():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db_session] = override_get_db_session
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture()
def login(client):
    def _login(username: str) -> dict[str, str]:
        response = client.post(
            "/api/auth/login",
            json={"username": username, "password": PASSWORDS[username]},
        )
        assert response.status_code == 200, response.text
        return {"Authorization": f"Bearer {response.json()['token']}"}

    return _login


@pytest.fixture()
def make_student(db):
    counter = {"n": 0}

    def _make(**overrides) -> Student:
        counter["n"] += 1
        values = {
            "roll_number": f"R{counter['n']:03d}",
            "name": f"Student {counter['n']}",
            "date_of_birth": date(2012, 5, 1),
            "gender": "female",
            "class_name": "5",
            "section": "A",
            "parent_name": "Parent Name",
            "parent_phone": "555-0100",
        }
        values.update(overrides)
        student = Student(**values)
        db.add(student)
        db.commit()
        db.refresh(student)
        return student

    return _make


@pytest.fixture()
def user_id(db):
    def _user_id(username: str) -> int:
        return db.query(User).filter(User.username == username).one().id

    return _user_id
