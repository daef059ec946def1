import pytest

from school_portal.models import Attendance, Fee, Notice, Result


@pytest.fixture()
def family(db, make_student, user_id):
    own = make_student(name="Own Student", user_id=user_id("student"), parent_user_id=user_id("parent"))
    sibling = make_student(name="Sibling", parent_user_id=user_id("parent"))
    make_student(name="Unrelated")
    return own, sibling


def test_student_profile(client, login, family):
    own, _ = family
    response = client.get("/api/students/profile", headers=login("student"))
    assert response.status_code == 200
    assert response.json()["id"] == own.id


def test_parent_children(client, login, family):
    response = client.get("/api/students/children", headers=login("parent"))
    assert [child["name"] for child in response.json()] == ["Own Student", "Sibling"]


def test_self_service_rejects_other_roles(client, login, family):
    teacher = login("teacher")
    for path in ("/api/students/profile", "/api/students/children", "/api/fees/student", "/api/results/children", "/api/notices/parent"):
        response = client.get(path, headers=teacher)
        assert response.status_code == 403
        assert response.json()["detail"] == "Access denied"
    assert client.get("/api/students/children", headers=login("student")).status_code == 403


def test_missing_profile_is_404(client, login):
    assert client.get("/api/students/profile", headers=login("student")).status_code == 404
    assert client.get("/api/fees/children", headers=login("parent")).status_code == 404


def test_fees_attendance_results_scoped_to_family(client, login, db, family):
    own, sibling = family
    db.add_all(
        [
            Fee(student_id=own.id, fee_type="tuition", amount=100, due_date=own.date_of_birth),
            Fee(student_id=sibling.id, fee_type="tuition", amount=200, due_date=own.date_of_birth),
            Attendance(student_id=own.id, date=own.date_of_birth, status="present"),
            Attendance(student_id=sibling.id, date=own.date_of_birth, status="absent"),
            Result(
                student_id=sibling.id,
                exam_type="final",
                exam_date=own.date_of_birth,
                max_marks=100,
                obtained_marks=72,
                percentage=72,
                grade="B+",
            ),
        ]
    )
    db.commit()

    student = login("student")
    parent = login("parent")
    assert [fee["student_id"] for fee in client.get("/api/fees/student", headers=student).json()] == [own.id]
    assert {fee["student_id"] for fee in client.get("/api/fees/children", headers=parent).json()} == {own.id, sibling.id}
    assert [row["status"] for row in client.get("/api/attendance/student", headers=student).json()] == ["present"]
    assert len(client.get("/api/attendance/children", headers=parent).json()) == 2
    assert client.get("/api/results/student", headers=student).json() == []
    assert [row["grade"] for row in client.get("/api/results/children", headers=parent).json()] == ["B+"]


def test_notices_by_audience(client, login, db, user_id, family):
    author = user_id("principal")
    db.add_all(
        [
            Notice(title="Everyone", content="c", target_audience="all", created_by=author),
            Notice(title="Students", content="c", target_audience="students", created_by=author),
            Notice(title="Parents", content="c", target_audience="parents", created_by=author),
            Notice(title="Old", content="c", target_audience="all", created_by=author, is_active=False),
        ]
    )
    db.commit()

    student_titles = {row["title"] for row in client.get("/api/notices/student", headers=login("student")).json()}
    parent_titles = {row["title"] for row in client.get("/api/notices/parent", headers=login("parent")).json()}
    assert student_titles == {"Everyone", "Students"}
    assert parent_titles == {"Everyone", "Parents"}
