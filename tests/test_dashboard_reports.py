from datetime import date, timedelta

import pytest

from school_portal.models import Attendance, CalendarEvent, Fee, Notice, Result, Student, Teacher, User
from school_portal.storage import calculate_grade, calculate_percentage, next_code


@pytest.mark.parametrize(
    "percentage, grade",
    [(100, "A+"), (90, "A+"), (89.99, "A"), (80, "A"), (70, "B+"), (60, "B"), (50, "C"), (40, "D"), (39.99, "F"), (0, "F")],
)
def test_grade_boundaries(percentage, grade):
    assert calculate_grade(percentage) == grade


def test_percentage_rounding():
    assert str(calculate_percentage(2, 3)) == "66.67"
    assert str(calculate_percentage(0, 0)) == "0.00"


def test_next_code_continues_from_highest(db, make_student):
    assert next_code(db, Student.admission_number, "ADM") == "ADM0001"
    make_student(admission_number="ADM0009")
    make_student(admission_number="ADM0010")
    assert next_code(db, Student.admission_number, "ADM") == "ADM0011"


@pytest.fixture()
def school_data(db, make_student, user_id):
    today = date.today()
    own = make_student(class_name="5", user_id=user_id("student"), parent_user_id=user_id("parent"))
    other = make_student(class_name="6")
    db.add(Teacher(employee_id="TCH0001", name="T", email="t@school.local", phone="1"))
    db.add_all(
        [
            Attendance(student_id=own.id, date=today, status="present"),
            Attendance(student_id=own.id, date=today - timedelta(days=1), status="late"),
            Attendance(student_id=other.id, date=today, status="absent"),
            Attendance(student_id=other.id, date=today - timedelta(days=1), status="present"),
            Fee(student_id=own.id, fee_type="tuition", amount=1000, due_date=today, status="paid", paid_date=today),
            Fee(student_id=own.id, fee_type="transport", amount=250, due_date=today, status="pending"),
            Fee(student_id=other.id, fee_type="tuition", amount=1000, due_date=today, status="overdue"),
            Result(student_id=own.id, exam_type="final", exam_date=today, max_marks=100, obtained_marks=95, percentage=95, grade="A+"),
            Result(student_id=other.id, exam_type="final", exam_date=today, max_marks=100, obtained_marks=30, percentage=30, grade="F"),
            Notice(title="Welcome", content="Term starts", target_audience="all", created_by=user_id("principal")),
            Notice(title="Staff meeting", content="3pm", target_audience="teachers", created_by=user_id("principal")),
            CalendarEvent(title="Holiday", event_type="holiday", start_date=today + timedelta(days=3)),
        ]
    )
    db.commit()
    return own, other


def test_stats(client, login, school_data):
    response = client.get("/api/stats", headers=login("principal"))
    assert response.status_code == 200
    assert response.json() == {
        "totalStudents": 2,
        "totalTeachers": 1,
        "attendanceRate": 75.0,
        "feeCollection": 1000.0,
        "pendingFees": 1250.0,
    }


def test_stats_empty_database(client, login):
    body = client.get("/api/stats", headers=login("admin")).json()
    assert body["attendanceRate"] == 0
    assert body["feeCollection"] == 0


def test_admin_dashboard(client, login, school_data):
    body = client.get("/api/dashboard", headers=login("principal")).json()
    assert body["role"] == "principal"
    assert body["stats"]["total_students"] == 2
    assert {notice["title"] for notice in body["notices"]} == {"Welcome", "Staff meeting"}
    assert body["recent_activities"]


def test_student_dashboard(client, login, school_data):
    own, _ = school_data
    body = client.get("/api/dashboard", headers=login("student")).json()
    assert [notice["title"] for notice in body["notices"]] == ["Welcome"]
    panel = body["students"][0]
    assert panel["student"]["id"] == own.id
    assert panel["attendance_rate"] == 100.0
    assert panel["pending_fees"]["total"] == 250.0
    assert [row["grade"] for row in panel["results"]] == ["A+"]
    assert "stats" not in body


def test_teacher_dashboards(client, login, db, school_data, user_id):
    teacher = db.get(User, user_id("teacher"))
    teacher.assigned_class = "5"
    db.commit()

    class_teacher = client.get("/api/dashboard", headers=login("teacher")).json()
    assert class_teacher["class_attendance"] == {"class_name": "5", "present": 1, "absent": 0, "late": 0}
    assert [event["title"] for event in class_teacher["holidays"]] == ["Holiday"]

    subject_teacher = client.get("/api/dashboard", headers=login("subject_teacher")).json()
    assert "holidays" in subject_teacher and "class_attendance" not in subject_teacher

    staff = client.get("/api/dashboard", headers=login("staff")).json()
    assert [notice["title"] for notice in staff["notices"]] == ["Welcome"]


def test_accountant_has_no_reports(client, login):
    assert client.get("/api/reports", headers=login("accountant")).status_code == 403


def test_report_types_for_staff(client, login, school_data):
    headers = login("principal")
    summary = client.get("/api/reports", headers=headers).json()
    assert summary["available_reports"] == ["attendance", "fees", "results"]

    attendance = client.get("/api/reports/attendance", headers=headers).json()["data"]
    assert attendance["total_records"] == 4
    assert attendance["attendance_rate"] == 75.0
    assert [row["class_name"] for row in attendance["by_class"]] == ["5", "6"]

    fees = client.get("/api/reports/fees", headers=headers).json()["data"]
    assert fees == {
        "collected": 1000.0,
        "pending": 250.0,
        "overdue": 1000.0,
        "by_type": [
            {"fee_type": "transport", "count": 1, "paid": 0.0, "unpaid": 250.0},
            {"fee_type": "tuition", "count": 2, "paid": 1000.0, "unpaid": 1000.0},
        ],
    }

    results = client.get("/api/reports/results", headers=login("subject_teacher")).json()["data"]
    assert results["total_results"] == 2
    assert results["pass_rate"] == 50.0
    assert results["grade_distribution"] == {"A+": 1, "F": 1}


def test_family_reports_are_restricted_and_scoped(client, login, school_data):
    parent = login("parent")
    summary = client.get("/api/reports", headers=parent).json()
    assert summary["available_reports"] == ["attendance", "fees"]

    fees = client.get("/api/reports/fees", headers=parent).json()["data"]
    assert fees["collected"] == 1000.0
    assert fees["overdue"] == 0.0

    denied = client.get("/api/reports/results", headers=parent)
    assert denied.status_code == 403


def test_unknown_report_type(client, login):
    assert client.get("/api/reports/library", headers=login("principal")).status_code == 404
    assert client.get("/api/reports/library", headers=login("student")).status_code == 404
