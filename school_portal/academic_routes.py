from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.orm import Session

from .database import get_db_session
from .middleware import get_current_user, require_module_access, require_roles
from .models import (
    Assignment,
    Attendance,
    Exam,
    Period,
    Result,
    Student,
    Subject,
    Submission,
    Teacher,
    TimetableEntry,
    User,
)
from .permissions import AccessLevel, ModuleName, UserRole
from .schemas import (
    AssignmentCreate,
    AssignmentOut,
    AssignmentUpdate,
    AttendanceCreate,
    AttendanceOut,
    ExamCreate,
    ExamOut,
    ExamUpdate,
    GradeSubmissionRequest,
    PeriodCreate,
    PeriodOut,
    PeriodUpdate,
    ResultCreate,
    ResultOut,
    ResultUpdate,
    StudentCreate,
    StudentOut,
    StudentUpdate,
    SubjectCreate,
    SubjectOut,
    SubjectUpdate,
    SubmissionCreate,
    SubmissionOut,
    TeacherCreate,
    TeacherOut,
    TeacherUpdate,
    TimetableCreate,
    TimetableOut,
    TimetableUpdate,
)
from .storage import (
    create_result,
    create_row,
    create_student,
    create_subject,
    create_teacher,
    delete_row,
    get_or_404,
    linked_students,
    list_attendance,
    mark_attendance,
    timetable_for,
    update_result,
    update_row,
    update_values,
)


router = APIRouter(prefix="/api", tags=["Academics"])

NO_CONTENT = status.HTTP_204_NO_CONTENT


# --- students ---

@router.get("/students", response_model=list[StudentOut])
def get_students(
    class_name: str | None = Query(default=None, alias="class"),
    section: str | None = None,
    db: Session = Depends(get_db_session),
    _: User = Depends(require_module_access(ModuleName.STUDENTS)),
):
    query = db.query(Student)
    if class_name:
        query = query.filter(Student.class_name == class_name)
    if section:
        query = query.filter(Student.section == section)
    return query.order_by(Student.roll_number).all()


@router.get("/students/{student_id}", response_model=StudentOut)
def get_student(
    student_id: int,
    db: Session = Depends(get_db_session),
    _: User = Depends(require_module_access(ModuleName.STUDENTS)),
):
    return get_or_404(db, Student, student_id, "Student")


@router.post("/students", response_model=StudentOut, status_code=status.HTTP_201_CREATED)
def add_student(
    payload: StudentCreate,
    db: Session = Depends(get_db_session),
    _: User = Depends(require_module_access(ModuleName.STUDENTS, AccessLevel.WRITE)),
):
    return create_student(db, payload.model_dump())


@router.put("/students/{student_id}", response_model=StudentOut)
def edit_student(
    student_id: int,
    payload: StudentUpdate,
    db: Session = Depends(get_db_session),
    _: User = Depends(require_module_access(ModuleName.STUDENTS, AccessLevel.WRITE)),
):
    student = get_or_404(db, Student, student_id, "Student")
    return update_row(db, student, update_values(Student, payload))


@router.delete("/students/{student_id}", status_code=NO_CONTENT)
def remove_student(
    student_id: int,
    db: Session = Depends(get_db_session),
    _: User = Depends(require_module_access(ModuleName.STUDENTS, AccessLevel.ADMIN)),
):
    delete_row(db, get_or_404(db, Student, student_id, "Student"))
    return Response(status_code=NO_CONTENT)


# --- teachers ---

@router.get("/teachers", response_model=list[TeacherOut])
def get_teachers(
    db: Session = Depends(get_db_session),
    _: User = Depends(require_module_access(ModuleName.TEACHERS)),
):
    return db.query(Teacher).order_by(Teacher.employee_id).all()


@router.get("/teachers/{teacher_id}", response_model=TeacherOut)
def get_teacher(
    teacher_id: int,
    db: Session = Depends(get_db_session),
    _: User = Depends(require_module_access(ModuleName.TEACHERS)),
):
    return get_or_404(db, Teacher, teacher_id, "Teacher")


@router.post("/teachers", response_model=TeacherOut, status_code=status.HTTP_201_CREATED)
def add_teacher(
    payload: TeacherCreate,
    db: Session = Depends(get_db_session),
    _: User = Depends(require_module_access(ModuleName.TEACHERS, AccessLevel.WRITE)),
):
    return create_teacher(db, payload.model_dump())


@router.put("/teachers/{teacher_id}", response_model=TeacherOut)
def edit_teacher(
    teacher_id: int,
    payload: TeacherUpdate,
    db: Session = Depends(get_db_session),
    _: User = Depends(require_module_access(ModuleName.TEACHERS, AccessLevel.WRITE)),
):
    teacher = get_or_404(db, Teacher, teacher_id, "Teacher")
    return update_row(db, teacher, update_values(Teacher, payload))


@router.delete("/teachers/{teacher_id}", status_code=NO_CONTENT)
def remove_teacher(
    teacher_id: int,
    db: Session = Depends(get_db_session),
    _: User = Depends(require_module_access(ModuleName.TEACHERS, AccessLevel.ADMIN)),
):
    delete_row(db, get_or_404(db, Teacher, teacher_id, "Teacher"))
    return Response(status_code=NO_CONTENT)


# --- subjects ---

@router.get("/subjects", response_model=list[SubjectOut])
def get_subjects(db: Session = Depends(get_db_session), _: User = Depends(get_current_user)):
    return db.query(Subject).filter(Subject.is_active.is_(True)).order_by(Subject.name).all()


@router.post("/subjects", response_model=SubjectOut, status_code=status.HTTP_201_CREATED)
def add_subject(
    payload: SubjectCreate,
    db: Session = Depends(get_db_session),
    _: User = Depends(require_module_access(ModuleName.SETTINGS, AccessLevel.WRITE)),
):
    return create_subject(db, payload.model_dump())


@router.put("/subjects/{subject_id}", response_model=SubjectOut)
def edit_subject(
    subject_id: int,
    payload: SubjectUpdate,
    db: Session = Depends(get_db_session),
    _: User = Depends(require_module_access(ModuleName.SETTINGS, AccessLevel.WRITE)),
):
    subject = get_or_404(db, Subject, subject_id, "Subject")
    return update_row(db, subject, update_values(Subject, payload))


@router.delete("/subjects/{subject_id}", status_code=NO_CONTENT)
def remove_subject(
    subject_id: int,
    db: Session = Depends(get_db_session),
    _: User = Depends(require_module_access(ModuleName.SETTINGS, AccessLevel.WRITE)),
):
    delete_row(db, get_or_404(db, Subject, subject_id, "Subject"))
    return Response(status_code=NO_CONTENT)


# --- attendance ---

@router.get("/attendance", response_model=list[AttendanceOut])
def get_attendance(
    on_date: date | None = Query(default=None, alias="date"),
    db: Session = Depends(get_db_session),
    _: User = Depends(require_module_access(ModuleName.ATTENDANCE)),
):
    return list_attendance(db, on_date)


@router.get("/attendance/student/{student_id}", response_model=list[AttendanceOut])
def get_student_attendance(
    student_id: int,
    db: Session = Depends(get_db_session),
    _: User = Depends(require_module_access(ModuleName.ATTENDANCE)),
):
    get_or_404(db, Student, student_id, "Student")
    return (
        db.query(Attendance)
        .filter(Attendance.student_id == student_id)
        .order_by(Attendance.date.desc())
        .all()
    )


@router.post("/attendance", response_model=AttendanceOut, status_code=status.HTTP_201_CREATED)
def add_attendance(
    payload: AttendanceCreate,
    db: Session = Depends(get_db_session),
    _: User = Depends(require_module_access(ModuleName.ATTENDANCE, AccessLevel.WRITE)),
):
    return mark_attendance(db, payload.model_dump())


@router.put("/attendance/{attendance_id}", response_model=AttendanceOut)
def edit_attendance(
    attendance_id: int,
    payload: AttendanceCreate,
    db: Session = Depends(get_db_session),
    _: User = Depends(require_module_access(ModuleName.ATTENDANCE, AccessLevel.WRITE)),
):
    record = get_or_404(db, Attendance, attendance_id, "Attendance record")
    return update_row(db, record, payload.model_dump())


@router.delete("/attendance/{attendance_id}", status_code=NO_CONTENT)
def remove_attendance(
    attendance_id: int,
    db: Session = Depends(get_db_session),
    _: User = Depends(require_module_access(ModuleName.ATTENDANCE, AccessLevel.ADMIN)),
):
    delete_row(db, get_or_404(db, Attendance, attendance_id, "Attendance record"))
    return Response(status_code=NO_CONTENT)


# --- timetable & periods ---

@router.get("/timetable", response_model=list[TimetableOut])
def get_timetable(
    class_name: str | None = Query(default=None, alias="class"),
    section: str | None = None,
    db: Session = Depends(get_db_session),
    _: User = Depends(require_module_access(ModuleName.TIMETABLE)),
):
    return timetable_for(db, class_name, section)


@router.post("/timetable", response_model=TimetableOut, status_code=status.HTTP_201_CREATED)
def add_timetable_entry(
    payload: TimetableCreate,
    db: Session = Depends(get_db_session),
    _: User = Depends(require_module_access(ModuleName.TIMETABLE, AccessLevel.WRITE)),
):
    return create_row(db, TimetableEntry, payload.model_dump())


@router.post("/timetable/bulk", response_model=list[TimetableOut], status_code=status.HTTP_201_CREATED)
def add_timetable_entries(
    payload: list[TimetableCreate],
    db: Session = Depends(get_db_session),
    _: User = Depends(require_module_access(ModuleName.TIMETABLE, AccessLevel.WRITE)),
):
    if not payload:
        raise HTTPException(status_code=400, detail="At least one timetable entry is required")
    entries = [TimetableEntry(**item.model_dump()) for item in payload]
    db.add_all(entries)
    db.commit()
    for entry in entries:
        db.refresh(entry)
    return entries


@router.put("/timetable/{entry_id}", response_model=TimetableOut)
def edit_timetable_entry(
    entry_id: int,
    payload: TimetableUpdate,
    db: Session = Depends(get_db_session),
    _: User = Depends(require_module_access(ModuleName.TIMETABLE, AccessLevel.WRITE)),
):
    entry = get_or_404(db, TimetableEntry, entry_id, "Timetable entry")
    return update_row(db, entry, update_values(TimetableEntry, payload))


@router.delete("/timetable/{entry_id}", status_code=NO_CONTENT)
def remove_timetable_entry(
    entry_id: int,
    db: Session = Depends(get_db_session),
    _: User = Depends(require_module_access(ModuleName.TIMETABLE, AccessLevel.ADMIN)),
):
    delete_row(db, get_or_404(db, TimetableEntry, entry_id, "Timetable entry"))
    return Response(status_code=NO_CONTENT)


@router.get("/periods", response_model=list[PeriodOut])
def get_periods(
    db: Session = Depends(get_db_session),
    _: User = Depends(require_module_access(ModuleName.TIMETABLE)),
):
    return db.query(Period).filter(Period.is_active.is_(True)).order_by(Period.period_number).all()


@router.post("/periods", response_model=PeriodOut, status_code=status.HTTP_201_CREATED)
def add_period(
    payload: PeriodCreate,
    db: Session = Depends(get_db_session),
    _: User = Depends(require_module_access(ModuleName.TIMETABLE, AccessLevel.WRITE)),
):
    if payload.end_time <= payload.start_time:
        raise HTTPException(status_code=400, detail="Period must end after it starts")
    return create_row(db, Period, payload.model_dump())


@router.put("/periods/{period_id}", response_model=PeriodOut)
def edit_period(
    period_id: int,
    payload: PeriodUpdate,
    db: Session = Depends(get_db_session),
    _: User = Depends(require_module_access(ModuleName.TIMETABLE, AccessLevel.WRITE)),
):
    period = get_or_404(db, Period, period_id, "Period")
    changes = update_values(Period, payload)
    if changes.get("end_time", period.end_time) <= changes.get("start_time", period.start_time):
        raise HTTPException(status_code=400, detail="Period must end after it starts")
    return update_row(db, period, changes)


@router.delete("/periods/{period_id}", status_code=NO_CONTENT)
def remove_period(
    period_id: int,
    db: Session = Depends(get_db_session),
    _: User = Depends(require_module_access(ModuleName.TIMETABLE, AccessLevel.ADMIN)),
):
    period = get_or_404(db, Period, period_id, "Period")
    update_row(db, period, {"is_active": False})
    return Response(status_code=NO_CONTENT)


# --- exams & results ---

@router.get("/exams", response_model=list[ExamOut])
def get_exams(
    db: Session = Depends(get_db_session),
    _: User = Depends(require_module_access(ModuleName.RESULTS)),
):
    return db.query(Exam).order_by(Exam.start_date.desc()).all()


@router.post("/exams", response_model=ExamOut, status_code=status.HTTP_201_CREATED)
def add_exam(
    payload: ExamCreate,
    db: Session = Depends(get_db_session),
    current_user: User = Depends(require_module_access(ModuleName.RESULTS, AccessLevel.WRITE)),
):
    if payload.end_date < payload.start_date:
        raise HTTPException(status_code=400, detail="End date cannot be before start date")
    return create_row(db, Exam, {**payload.model_dump(), "created_by": current_user.id})


@router.put("/exams/{exam_id}", response_model=ExamOut)
def edit_exam(
    exam_id: int,
    payload: ExamUpdate,
    db: Session = Depends(get_db_session),
    _: User = Depends(require_module_access(ModuleName.RESULTS, AccessLevel.WRITE)),
):
    exam = get_or_404(db, Exam, exam_id, "Exam")
    changes = update_values(Exam, payload)
    if changes.get("end_date", exam.end_date) < changes.get("start_date", exam.start_date):
        raise HTTPException(status_code=400, detail="End date cannot be before start date")
    return update_row(db, exam, changes)


@router.delete("/exams/{exam_id}", status_code=NO_CONTENT)
def remove_exam(
    exam_id: int,
    db: Session = Depends(get_db_session),
    _: User = Depends(require_module_access(ModuleName.RESULTS, AccessLevel.ADMIN)),
):
    delete_row(db, get_or_404(db, Exam, exam_id, "Exam"))
    return Response(status_code=NO_CONTENT)


@router.get("/result", response_model=list[ResultOut])
@router.get("/results", response_model=list[ResultOut])
def get_results(
    db: Session = Depends(get_db_session),
    _: User = Depends(require_module_access(ModuleName.RESULTS)),
):
    return db.query(Result).order_by(Result.exam_date.desc(), Result.id.desc()).all()


@router.get("/results/student/{student_id}", response_model=list[ResultOut])
def get_student_results(
    student_id: int,
    db: Session = Depends(get_db_session),
    _: User = Depends(require_module_access(ModuleName.RESULTS)),
):
    get_or_404(db, Student, student_id, "Student")
    return (
        db.query(Result)
        .filter(Result.student_id == student_id)
        .order_by(Result.exam_date.desc())
        .all()
    )


@router.post("/result", response_model=ResultOut, status_code=status.HTTP_201_CREATED)
@router.post("/results", response_model=ResultOut, status_code=status.HTTP_201_CREATED)
def add_result(
    payload: ResultCreate,
    db: Session = Depends(get_db_session),
    _: User = Depends(require_module_access(ModuleName.RESULTS, AccessLevel.WRITE)),
):
    return create_result(db, payload.model_dump())


@router.put("/results/{result_id}", response_model=ResultOut)
def edit_result(
    result_id: int,
    payload: ResultUpdate,
    db: Session = Depends(get_db_session),
    _: User = Depends(require_module_access(ModuleName.RESULTS, AccessLevel.WRITE)),
):
    result = get_or_404(db, Result, result_id, "Result")
    return update_result(db, result, update_values(Result, payload))


@router.delete("/results/{result_id}", status_code=NO_CONTENT)
def remove_result(
    result_id: int,
    db: Session = Depends(get_db_session),
    _: User = Depends(require_module_access(ModuleName.RESULTS, AccessLevel.ADMIN)),
):
    delete_row(db, get_or_404(db, Result, result_id, "Result"))
    return Response(status_code=NO_CONTENT)


# --- homework ---

@router.get("/homework", response_model=list[AssignmentOut])
@router.get("/assignments", response_model=list[AssignmentOut])
def get_assignments(
    class_name: str | None = Query(default=None, alias="class"),
    db: Session = Depends(get_db_session),
    _: User = Depends(require_module_access(ModuleName.HOMEWORK)),
):
    query = db.query(Assignment)
    if class_name:
        query = query.filter(Assignment.class_name == class_name)
    return query.order_by(Assignment.due_date).all()


@router.get("/assignments/{assignment_id}", response_model=AssignmentOut)
def get_assignment(
    assignment_id: int,
    db: Session = Depends(get_db_session),
    _: User = Depends(require_module_access(ModuleName.HOMEWORK)),
):
    return get_or_404(db, Assignment, assignment_id, "Assignment")


@router.post("/homework", response_model=AssignmentOut, status_code=status.HTTP_201_CREATED)
@router.post("/assignments", response_model=AssignmentOut, status_code=status.HTTP_201_CREATED)
def add_assignment(
    payload: AssignmentCreate,
    db: Session = Depends(get_db_session),
    current_user: User = Depends(require_module_access(ModuleName.HOMEWORK, AccessLevel.WRITE)),
):
    return create_row(db, Assignment, {**payload.model_dump(), "created_by": current_user.id})


@router.put("/assignments/{assignment_id}", response_model=AssignmentOut)
def edit_assignment(
    assignment_id: int,
    payload: AssignmentUpdate,
    db: Session = Depends(get_db_session),
    _: User = Depends(require_module_access(ModuleName.HOMEWORK, AccessLevel.WRITE)),
):
    assignment = get_or_404(db, Assignment, assignment_id, "Assignment")
    return update_row(db, assignment, update_values(Assignment, payload))


@router.delete("/assignments/{assignment_id}", status_code=NO_CONTENT)
def remove_assignment(
    assignment_id: int,
    db: Session = Depends(get_db_session),
    _: User = Depends(require_module_access(ModuleName.HOMEWORK, AccessLevel.ADMIN)),
):
    delete_row(db, get_or_404(db, Assignment, assignment_id, "Assignment"))
    return Response(status_code=NO_CONTENT)


@router.get("/assignments/{assignment_id}/submissions", response_model=list[SubmissionOut])
def get_submissions(
    assignment_id: int,
    db: Session = Depends(get_db_session),
    _: User = Depends(require_module_access(ModuleName.HOMEWORK, AccessLevel.WRITE)),
):
    assignment = get_or_404(db, Assignment, assignment_id, "Assignment")
    return assignment.submissions


@router.post(
    "/assignments/{assignment_id}/submit",
    response_model=SubmissionOut,
    status_code=status.HTTP_201_CREATED,
)
def submit_assignment(
    assignment_id: int,
    payload: SubmissionCreate,
    db: Session = Depends(get_db_session),
    current_user: User = Depends(require_roles(UserRole.STUDENT)),
):
    assignment = get_or_404(db, Assignment, assignment_id, "Assignment")
    students = linked_students(db, current_user)
    if not students:
        raise HTTPException(status_code=404, detail="Student profile not found")
    student = students[0]
    if assignment.class_name != student.class_name:
        raise HTTPException(status_code=400, detail="Assignment is not for your class")
    exists = (
        db.query(Submission)
        .filter(Submission.assignment_id == assignment.id, Submission.student_id == student.id)
        .first()
    )
    if exists:
        raise HTTPException(status_code=409, detail="Assignment already submitted")
    return create_row(
        db,
        Submission,
        {"assignment_id": assignment.id, "student_id": student.id, "content": payload.content},
    )


@router.put("/submissions/{submission_id}/grade", response_model=SubmissionOut)
def grade_submission(
    submission_id: int,
    payload: GradeSubmissionRequest,
    db: Session = Depends(get_db_session),
    _: User = Depends(require_module_access(ModuleName.HOMEWORK, AccessLevel.WRITE)),
):
    submission = get_or_404(db, Submission, submission_id, "Submission")
    max_marks = submission.assignment.max_marks
    if max_marks is not None and payload.marks > max_marks:
        raise HTTPException(status_code=400, detail="Marks cannot exceed the assignment maximum")
    return update_row(
        db,
        submission,
        {"marks": payload.marks, "feedback": payload.feedback, "status": "graded"},
    )
