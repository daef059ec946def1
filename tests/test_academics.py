from datetime import date, timedelta

from school_portal.models import Period


def test_attendance_by_date_and_student(client, login, make_student):
    student = make_student()
    other = make_student()
    headers = login("teacher")
    today = date.today().isoformat()
    yesterday = (date.today() - timedelta(days=1)).isoformat()

    for student_id, day, mark in [(student.id, today, "present"), (student.id, yesterday, "absent"), (other.id, today, "late")]:
        response = client.post("/api/attendance", json={"student_id": student_id, "date": day, "status": mark}, headers=headers)
        assert response.status_code == 201

    assert len(client.get("/api/attendance", headers=headers).json()) == 3
    assert len(client.get("/api/attendance", params={"date": today}, headers=headers).json()) == 2
    history = client.get(f"/api/attendance/student/{student.id}", headers=headers).json()
    assert [row["status"] for row in history] == ["present", "absent"]


def test_attendance_rejects_unknown_status_and_student(client, login, make_student):
    headers = login("teacher")
    student = make_student()
    bad_status = client.post(
        "/api/attendance",
        json={"student_id": student.id, "date": date.today().isoformat(), "status": "sick"},
        headers=headers,
    )
    assert bad_status.status_code == 400
    missing = client.post(
        "/api/attendance",
        json={"student_id": 999, "date": date.today().isoformat(), "status": "present"},
        headers=headers,
    )
    assert missing.status_code == 404


def test_accountant_reads_but_cannot_mark_attendance(client, login, make_student):
    student = make_student()
    headers = login("accountant")
    assert client.get("/api/attendance", headers=headers).status_code == 200
    response = client.post(
        "/api/attendance",
        json={"student_id": student.id, "date": date.today().isoformat(), "status": "present"},
        headers=headers,
    )
    assert response.status_code == 403


def test_timetable_bulk_and_filter(client, login):
    headers = login("principal")
    entries = [
        {"class_name": "5", "section": "A", "day": "monday", "period_number": 2, "room": "101"},
        {"class_name": "5", "section": "A", "day": "monday", "period_number": 1, "room": "101"},
        {"class_name": "6", "section": "A", "day": "monday", "period_number": 1},
    ]
    created = client.post("/api/timetable/bulk", json=entries, headers=headers)
    assert created.status_code == 201
    assert len(created.json()) == 3

    listing = client.get("/api/timetable", params={"class": "5", "section": "A"}, headers=login("student"))
    assert [row["period_number"] for row in listing.json()] == [1, 2]
    assert client.post("/api/timetable", json=entries[0], headers=login("subject_teacher")).status_code == 403


def test_period_delete_is_soft(client, login, db):
    headers = login("principal")
    created = client.post(
        "/api/periods",
        json={"period_number": 1, "start_time": "08:00", "end_time": "08:45"},
        headers=headers,
    )
    assert created.status_code == 201
    period_id = created.json()["id"]

    assert client.delete(f"/api/periods/{period_id}", headers=headers).status_code == 204
    assert client.get("/api/periods", headers=headers).json() == []

    db.expire_all()
    assert db.get(Period, period_id).is_active is False


def test_period_must_end_after_start(client, login):
    response = client.post(
        "/api/periods",
        json={"period_number": 1, "start_time": "09:00", "end_time": "08:00"},
        headers=login("principal"),
    )
    assert response.status_code == 400


def test_result_percentage_and_grade(client, login, make_student):
    student = make_student()
    headers = login("subject_teacher")
    created = client.post(
        "/api/results",
        json={
            "student_id": student.id,
            "exam_type": "midterm",
            "exam_date": date.today().isoformat(),
            "max_marks": 80,
            "obtained_marks": 67,
        },
        headers=headers,
    )
    assert created.status_code == 201
    result = created.json()
    assert float(result["percentage"]) == 83.75
    assert result["grade"] == "A"

    updated = client.put(f"/api/results/{result['id']}", json={"obtained_marks": 30}, headers=headers)
    assert float(updated.json()["percentage"]) == 37.5
    assert updated.json()["grade"] == "F"

    by_student = client.get(f"/api/results/student/{student.id}", headers=headers).json()
    assert [row["id"] for row in by_student] == [result["id"]]


def test_result_marks_cannot_exceed_maximum(client, login, make_student):
    student = make_student()
    response = client.post(
        "/api/results",
        json={"student_id": student.id, "exam_type": "final", "exam_date": "2025-03-01", "max_marks": 50, "obtained_marks": 51},
        headers=login("teacher"),
    )
    assert response.status_code == 400


def test_only_admins_delete_results(client, login, make_student):
    student = make_student()
    result = client.post(
        "/api/results",
        json={"student_id": student.id, "exam_type": "final", "exam_date": "2025-03-01", "max_marks": 100, "obtained_marks": 91},
        headers=login("teacher"),
    ).json()
    assert result["grade"] == "A+"
    assert client.delete(f"/api/results/{result['id']}", headers=login("teacher")).status_code == 403
    assert client.delete(f"/api/results/{result['id']}", headers=login("principal")).status_code == 204


def test_exams(client, login):
    headers = login("teacher")
    created = client.post(
        "/api/exams",
        json={"name": "Term 1", "exam_type": "midterm", "class_name": "5", "start_date": "2025-09-01", "end_date": "2025-09-05"},
        headers=headers,
    )
    assert created.status_code == 201
    assert created.json()["status"] == "upcoming"
    updated = client.put(f"/api/exams/{created.json()['id']}", json={"status": "completed"}, headers=headers)
    assert updated.json()["status"] == "completed"
    backwards = client.post(
        "/api/exams",
        json={"name": "Bad", "class_name": "5", "start_date": "2025-09-05", "end_date": "2025-09-01"},
        headers=headers,
    )
    assert backwards.status_code == 400


def test_homework_submission_and_grading(client, login, make_student, user_id):
    make_student(class_name="5", user_id=user_id("student"))
    teacher = login("teacher")
    due = (date.today() + timedelta(days=7)).isoformat() + "T17:00:00"
    assignment = client.post(
        "/api/assignments",
        json={"title": "Fractions worksheet", "class_name": "5", "due_date": due, "max_marks": 10},
        headers=teacher,
    ).json()

    student = login("student")
    assert client.get("/api/assignments", headers=student).status_code == 200
    assert client.post("/api/assignments", json={"title": "x", "class_name": "5", "due_date": due}, headers=student).status_code == 403

    submitted = client.post(f"/api/assignments/{assignment['id']}/submit", json={"content": "1/2 + 1/4 = 3/4"}, headers=student)
    assert submitted.status_code == 201
    assert submitted.json()["status"] == "submitted"

    again = client.post(f"/api/assignments/{assignment['id']}/submit", json={"content": "again"}, headers=student)
    assert again.status_code == 409

    assert client.post(f"/api/assignments/{assignment['id']}/submit", json={"content": "x"}, headers=teacher).status_code == 403

    submissions = client.get(f"/api/assignments/{assignment['id']}/submissions", headers=teacher).json()
    assert len(submissions) == 1

    too_many = client.put(f"/api/submissions/{submissions[0]['id']}/grade", json={"marks": 11}, headers=teacher)
    assert too_many.status_code == 400
    graded = client.put(f"/api/submissions/{submissions[0]['id']}/grade", json={"marks": 9, "feedback": "Good"}, headers=teacher)
    assert graded.json()["status"] == "graded"
    assert graded.json()["marks"] == 9
    assert client.put(f"/api/submissions/{submissions[0]['id']}/grade", json={"marks": 9}, headers=student).status_code == 403


def test_submit_for_other_class_rejected(client, login, make_student, user_id):
    make_student(class_name="7", user_id=user_id("student"))
    assignment = client.post(
        "/api/assignments",
        json={"title": "Essay", "class_name": "5", "due_date": "2030-01-01T00:00:00"},
        headers=login("teacher"),
    ).json()
    response = client.post(f"/api/assignments/{assignment['id']}/submit", json={"content": "text"}, headers=login("student"))
    assert response.status_code == 400


def test_result_update_rejects_null_marks(client, login, make_student):
    student = make_student()
    headers = login("teacher")
    result = client.post(
        "/api/results",
        json={"student_id": student.id, "exam_type": "final", "exam_date": "2025-03-01", "max_marks": 100, "obtained_marks": 64},
        headers=headers,
    ).json()

    response = client.put(f"/api/results/{result['id']}", json={"max_marks": None}, headers=headers)
    assert response.status_code == 400
    assert response.json()["detail"] == "Fields cannot be null: max_marks"

    cleared = client.put(f"/api/results/{result['id']}", json={"remarks": None}, headers=headers)
    assert cleared.status_code == 200
    assert float(cleared.json()["max_marks"]) == 100.0
    assert cleared.json()["grade"] == "B"


def test_period_update_keeps_end_after_start(client, login):
    headers = login("principal")
    period = client.post(
        "/api/periods",
        json={"period_number": 2, "start_time": "09:00", "end_time": "09:45"},
        headers=headers,
    ).json()

    assert client.put(f"/api/periods/{period['id']}", json={"end_time": "08:30"}, headers=headers).status_code == 400
    assert client.put(f"/api/periods/{period['id']}", json={"start_time": "10:00"}, headers=headers).status_code == 400
    moved = client.put(f"/api/periods/{period['id']}", json={"start_time": "10:00", "end_time": "10:45"}, headers=headers)
    assert moved.status_code == 200
    assert moved.json()["start_time"] == "10:00"


def test_exam_update_keeps_date_order(client, login):
    headers = login("teacher")
    exam = client.post(
        "/api/exams",
        json={"name": "Term 2", "class_name": "5", "start_date": "2025-12-01", "end_date": "2025-12-05"},
        headers=headers,
    ).json()

    backwards = client.put(f"/api/exams/{exam['id']}", json={"end_date": "2025-11-30"}, headers=headers)
    assert backwards.status_code == 400
    extended = client.put(f"/api/exams/{exam['id']}", json={"end_date": "2025-12-08"}, headers=headers)
    assert extended.json()["end_date"] == "2025-12-08"


def test_homework_and_result_collections(client, login, make_student):
    student = make_student()
    teacher = login("teacher")
    created = client.post(
        "/api/homework",
        json={"title": "Map work", "class_name": "5", "due_date": "2030-02-01T09:00:00"},
        headers=teacher,
    )
    assert created.status_code == 201

    homework = client.get("/api/homework", headers=login("student"))
    assert homework.status_code == 200
    assert [row["title"] for row in homework.json()] == ["Map work"]
    assert client.get("/api/assignments", headers=login("parent")).json() == homework.json()
    assert client.post("/api/homework", json={"title": "x", "class_name": "5", "due_date": "2030-02-01T09:00:00"}, headers=login("student")).status_code == 403

    result = client.post(
        "/api/result",
        json={"student_id": student.id, "exam_type": "unit_test", "exam_date": "2025-08-01", "max_marks": 20, "obtained_marks": 18},
        headers=teacher,
    )
    assert result.status_code == 201
    assert [row["id"] for row in client.get("/api/result", headers=login("student")).json()] == [result.json()["id"]]
    assert client.get("/api/result", headers=login("accountant")).status_code == 403
