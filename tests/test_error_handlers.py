from sqlalchemy.exc import OperationalError

from backend import app
from school_portal import storage
from school_portal.database import get_db_session


def test_integrity_error_maps_to_conflict(client, login, make_student, monkeypatch):
    existing = make_student()
    headers = login("principal")
    application = client.post(
        "/api/admissions",
        json={
            "name": "Late Joiner",
            "date_of_birth": "2016-01-10",
            "gender": "female",
            "class_name": "2",
            "parent_name": "Parent",
            "parent_phone": "555-0177",
        },
        headers=headers,
    ).json()

    # another enrollment took the generated roll number first
    monkeypatch.setattr(storage, "next_code", lambda db, column, prefix: existing.roll_number)
    response = client.post(f"/api/admissions/{application['id']}/approve", json={}, headers=headers)

    assert response.status_code == 409
    assert response.json() == {"detail": "Record conflicts with existing data"}


def test_database_failure_maps_to_server_error(client, login, session_factory):
    headers = login("principal")

    def failing_query(*args, **kwargs):
        raise OperationalError("SELECT * FROM students", {}, Exception("database is locked"))

    def broken_session():
        session = session_factory()
        session.query = failing_query
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db_session] = broken_session
    response = client.get("/api/students", headers=headers)

    assert response.status_code == 500
    assert response.json() == {"detail": "Internal server error"}
