"""Data-access helpers shared by the REST routers.

Routers stay thin: they validate the request body, check the caller's module
access and hand the rest to the functions here. Every helper raises
``HTTPException`` for missing rows or rejected state changes and commits its
own work.
"""
import logging
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal

from fastapi import HTTPException, status
from sqlalchemy import func, inspect
from sqlalchemy.orm import Session

from .models import (
    Admission,
    Attendance,
    CalendarEvent,
    Document,
    Fee,
    FeeStructure,
    FeeStructureItem,
    Notice,
    PayrollRecord,
    Result,
    Student,
    Subject,
    Teacher,
    TimetableEntry,
    User,
)
from .permissions import UserRole


logger = logging.getLogger(__name__)

GRADE_THRESHOLDS = [
    (90, "A+"),
    (80, "A"),
    (70, "B+"),
    (60, "B"),
    (50, "C"),
    (40, "D"),
]

INSTALLMENTS_BY_FREQUENCY = {"annually": 1, "quarterly": 4, "monthly": 12}

UNPAID_FEE_STATUSES = ("pending", "overdue")


# --- generic helpers ---

def get_or_404(db: Session, model, object_id: int, label: str):
    obj = db.get(model, object_id)
    if obj is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"{label} not found")
    return obj


def create_row(db: Session, model, values: dict):
    obj = model(**values)
    db.add(obj)
    db.commit()
    db.refresh(obj)
    return obj


def update_values(model, payload) -> dict:
    """Fields the client sent, rejecting ``null`` for columns that cannot hold it."""
    changes = payload.model_dump(exclude_unset=True)
    columns = inspect(model).columns
    blank = sorted(
        name for name, value in changes.items()
        if value is None and name in columns and not columns[name].nullable
    )
    if blank:
        raise HTTPException(status_code=400, detail=f"Fields cannot be null: {', '.join(blank)}")
    return changes


def update_row(db: Session, obj, changes: dict):
    for field_name, value in changes.items():
        setattr(obj, field_name, value)
    db.commit()
    db.refresh(obj)
    return obj


def delete_row(db: Session, obj) -> None:
    db.delete(obj)
    db.commit()


def next_code(db: Session, column, prefix: str) -> str:
    """Next ``<prefix><seq:04d>`` value, continuing from the highest stored code.

    Codes whose suffix is not all digits (manually entered ones such as
    ``2026-TRANSFER``) are ignored.
    """
    last_seq = 0
    for (code,) in db.query(column).filter(column.like(f"{prefix}%")).all():
        suffix = str(code)[len(prefix):]
        if suffix.isascii() and suffix.isdigit():
            last_seq = max(last_seq, int(suffix))
    return f"{prefix}{last_seq + 1:04d}"


def calculate_percentage(obtained: Decimal, maximum: Decimal) -> Decimal:
    if not maximum:
        return Decimal("0.00")
    value = Decimal(obtained) / Decimal(maximum) * 100
    return value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def calculate_grade(percentage) -> str:
    for threshold, grade in GRADE_THRESHOLDS:
        if percentage >= threshold:
            return grade
    return "F"


# --- people ---

def create_student(db: Session, values: dict) -> Student:
    roll_number = values.get("roll_number") or next_code(db, Student.roll_number, str(date.today().year))
    if db.query(Student).filter(Student.roll_number == roll_number).first():
        raise HTTPException(status_code=409, detail="Roll number already exists")
    values = {**values, "roll_number": roll_number}
    student = create_row(db, Student, values)
    logger.info(f"Created student {student.roll_number}")
    return student


def create_teacher(db: Session, values: dict) -> Teacher:
    employee_id = values.get("employee_id") or next_code(db, Teacher.employee_id, "TCH")
    if db.query(Teacher).filter(Teacher.employee_id == employee_id).first():
        raise HTTPException(status_code=409, detail="Employee ID already exists")
    teacher = create_row(db, Teacher, {**values, "employee_id": employee_id})
    logger.info(f"Created teacher {teacher.employee_id}")
    return teacher


def create_subject(db: Session, values: dict) -> Subject:
    code = values["code"].strip().upper()
    if db.query(Subject).filter(Subject.code == code).first():
        raise HTTPException(status_code=409, detail="Subject code already exists")
    return create_row(db, Subject, {**values, "code": code})


def linked_students(db: Session, user: User) -> list[Student]:
    """Students reachable by a student (own profile) or parent (children) account."""
    if user.role == UserRole.STUDENT:
        return db.query(Student).filter(Student.user_id == user.id).all()
    if user.role == UserRole.PARENT:
        return db.query(Student).filter(Student.parent_user_id == user.id).order_by(Student.id).all()
    return []


# --- attendance & results ---

def list_attendance(db: Session, on_date: date | None = None) -> list[Attendance]:
    query = db.query(Attendance)
    if on_date is not None:
        query = query.filter(Attendance.date == on_date)
    return query.order_by(Attendance.date.desc(), Attendance.id).all()


def mark_attendance(db: Session, values: dict) -> Attendance:
    get_or_404(db, Student, values["student_id"], "Student")
    return create_row(db, Attendance, values)


def create_result(db: Session, values: dict) -> Result:
    get_or_404(db, Student, values["student_id"], "Student")
    if values["obtained_marks"] > values["max_marks"]:
        raise HTTPException(status_code=400, detail="Obtained marks cannot exceed maximum marks")
    percentage = calculate_percentage(values["obtained_marks"], values["max_marks"])
    return create_row(db, Result, {**values, "percentage": percentage, "grade": calculate_grade(percentage)})


def update_result(db: Session, result: Result, changes: dict) -> Result:
    max_marks = changes.get("max_marks", result.max_marks)
    obtained = changes.get("obtained_marks", result.obtained_marks)
    if obtained > max_marks:
        raise HTTPException(status_code=400, detail="Obtained marks cannot exceed maximum marks")
    percentage = calculate_percentage(obtained, max_marks)
    return update_row(db, result, {**changes, "percentage": percentage, "grade": calculate_grade(percentage)})


# --- fees & payroll ---

def create_fee_structure(db: Session, values: dict) -> FeeStructure:
    items = values.pop("items", [])
    structure = FeeStructure(**values)
    structure.items = [FeeStructureItem(**item) for item in items]
    db.add(structure)
    db.commit()
    db.refresh(structure)
    return structure


def add_fee_structure_item(db: Session, structure: FeeStructure, values: dict) -> FeeStructureItem:
    item = FeeStructureItem(structure_id=structure.id, **values)
    db.add(item)
    db.commit()
    db.refresh(item)
    return item


def generate_fees_from_structure(db: Session, structure: FeeStructure, student_ids: list[int]) -> list[Fee]:
    if not structure.items:
        raise HTTPException(status_code=400, detail="Fee structure has no items")
    students = db.query(Student).filter(Student.id.in_(student_ids)).all()
    missing = sorted(set(student_ids) - {student.id for student in students})
    if missing:
        raise HTTPException(status_code=404, detail=f"Students not found: {missing}")

    today = date.today()
    fees = []
    for student_id in dict.fromkeys(student_ids):
        for item in structure.items:
            fee = Fee(
                student_id=student_id,
                fee_type=item.fee_type,
                amount=item.amount,
                due_date=today.replace(day=item.due_day),
                status="pending",
                academic_year=structure.academic_year,
                installment_number=1,
                total_installments=INSTALLMENTS_BY_FREQUENCY.get(item.frequency, 1),
                remarks=item.description or f"Generated from {structure.name}",
            )
            db.add(fee)
            fees.append(fee)
    db.commit()
    for fee in fees:
        db.refresh(fee)
    logger.info(f"Generated {len(fees)} fee(s) from structure {structure.id}")
    return fees


def _net_salary(basic: Decimal, allowances: Decimal, deductions: Decimal) -> Decimal:
    return Decimal(basic) + Decimal(allowances) - Decimal(deductions)


def create_payroll(db: Session, values: dict) -> PayrollRecord:
    teacher = get_or_404(db, Teacher, values["teacher_id"], "Teacher")
    basic = values.get("basic_salary")
    if basic is None:
        basic = teacher.salary
    if basic is None:
        raise HTTPException(status_code=400, detail="Basic salary is required when the teacher has no salary on file")
    exists = (
        db.query(PayrollRecord)
        .filter(PayrollRecord.teacher_id == teacher.id, PayrollRecord.month == values["month"])
        .first()
    )
    if exists:
        raise HTTPException(status_code=409, detail="Payroll already exists for this month")

    record = PayrollRecord(
        teacher_id=teacher.id,
        month=values["month"],
        basic_salary=basic,
        allowances=values["allowances"],
        deductions=values["deductions"],
        net_salary=_net_salary(basic, values["allowances"], values["deductions"]),
        status="pending",
    )
    db.add(record)
    db.commit()
    db.refresh(record)
    return record


def update_payroll(db: Session, record: PayrollRecord, changes: dict) -> PayrollRecord:
    if record.status == "paid":
        raise HTTPException(status_code=400, detail="Paid payroll cannot be changed")
    basic = changes.get("basic_salary", record.basic_salary)
    allowances = changes.get("allowances", record.allowances)
    deductions = changes.get("deductions", record.deductions)
    return update_row(db, record, {**changes, "net_salary": _net_salary(basic, allowances, deductions)})


def pay_payroll(db: Session, record: PayrollRecord) -> PayrollRecord:
    if record.status == "paid":
        raise HTTPException(status_code=400, detail="Payroll already paid")
    logger.info(f"Payroll {record.id} paid for teacher {record.teacher_id} ({record.month})")
    return update_row(db, record, {"status": "paid", "paid_date": date.today()})


# --- documents & admissions ---

def decide_document(db: Session, document: Document, *, approve: bool, actor: User, remarks: str | None) -> Document:
    if document.status != "pending":
        raise HTTPException(status_code=400, detail=f"Document already {document.status}")
    document.status = "approved" if approve else "rejected"
    document.remarks = remarks
    document.processed_by = actor.id
    document.processed_at = datetime.utcnow()
    db.commit()
    db.refresh(document)
    logger.info(f"Document {document.id} {document.status} by {actor.username}")
    return document


def create_admission(db: Session, values: dict) -> Admission:
    application_number = next_code(db, Admission.application_number, "APP")
    return create_row(db, Admission, {**values, "application_number": application_number})


def _pending_admission(admission: Admission) -> None:
    if admission.status != "pending":
        raise HTTPException(status_code=400, detail=f"Application already {admission.status}")


def approve_admission(db: Session, admission: Admission, remarks: str | None = None) -> Student:
    _pending_admission(admission)
    student = Student(
        roll_number=next_code(db, Student.roll_number, str(date.today().year)),
        admission_number=next_code(db, Student.admission_number, "ADM"),
        name=admission.name,
        email=admission.email,
        phone=admission.phone,
        date_of_birth=admission.date_of_birth,
        gender=admission.gender,
        class_name=admission.class_name,
        section=admission.section,
        parent_name=admission.parent_name,
        parent_phone=admission.parent_phone,
        parent_email=admission.parent_email,
        address=admission.address,
    )
    db.add(student)
    db.flush()

    admission.status = "approved"
    admission.remarks = remarks
    admission.student_id = student.id
    admission.decided_at = datetime.utcnow()
    db.commit()
    db.refresh(student)
    db.refresh(admission)
    logger.info(f"Admission {admission.application_number} approved as student {student.roll_number}")
    return student


def reject_admission(db: Session, admission: Admission, remarks: str | None = None) -> Admission:
    _pending_admission(admission)
    logger.info(f"Admission {admission.application_number} rejected")
    return update_row(db, admission, {"status": "rejected", "remarks": remarks, "decided_at": datetime.utcnow()})


# --- notices, calendar, timetable ---

def active_notices(db: Session, audiences: tuple[str, ...] | None = None, limit: int | None = None) -> list[Notice]:
    query = db.query(Notice).filter(Notice.is_active.is_(True))
    if audiences:
        query = query.filter(Notice.target_audience.in_(audiences))
    query = query.order_by(Notice.created_at.desc(), Notice.id.desc())
    if limit:
        query = query.limit(limit)
    return query.all()


def upcoming_holidays(db: Session, limit: int = 5) -> list[CalendarEvent]:
    return (
        db.query(CalendarEvent)
        .filter(CalendarEvent.event_type == "holiday", CalendarEvent.start_date >= date.today())
        .order_by(CalendarEvent.start_date)
        .limit(limit)
        .all()
    )


def timetable_for(db: Session, class_name: str | None = None, section: str | None = None, day: str | None = None):
    query = db.query(TimetableEntry)
    if class_name:
        query = query.filter(TimetableEntry.class_name == class_name)
    if section:
        query = query.filter(TimetableEntry.section == section)
    if day:
        query = query.filter(TimetableEntry.day == day)
    return query.order_by(TimetableEntry.day, TimetableEntry.period_number).all()


# --- stats & reports ---

def _sum_amount(db: Session, *criteria) -> float:
    total = db.query(func.coalesce(func.sum(Fee.amount), 0)).filter(*criteria).scalar()
    return float(total or 0)


def attendance_rate(db: Session, *criteria) -> float:
    total = db.query(func.count(Attendance.id)).filter(*criteria).scalar() or 0
    if not total:
        return 0.0
    attended = (
        db.query(func.count(Attendance.id))
        .filter(*criteria, Attendance.status.in_(("present", "late")))
        .scalar()
        or 0
    )
    return round(attended / total * 100, 2)


def get_stats(db: Session) -> dict:
    return {
        "total_students": db.query(func.count(Student.id)).scalar() or 0,
        "total_teachers": db.query(func.count(Teacher.id)).scalar() or 0,
        "attendance_rate": attendance_rate(db),
        "fee_collection": _sum_amount(db, Fee.status == "paid"),
        "pending_fees": _sum_amount(db, Fee.status.in_(UNPAID_FEE_STATUSES)),
    }


def attendance_report(db: Session, student_ids: list[int] | None = None) -> dict:
    criteria = [Attendance.student_id.in_(student_ids)] if student_ids is not None else []
    rows = (
        db.query(Student.class_name, Attendance.status, func.count(Attendance.id))
        .join(Student, Attendance.student_id == Student.id)
        .filter(*criteria)
        .group_by(Student.class_name, Attendance.status)
        .all()
    )
    by_status: dict[str, int] = {}
    classes: dict[str, dict[str, int]] = {}
    for class_name, row_status, count in rows:
        by_status[row_status] = by_status.get(row_status, 0) + count
        classes.setdefault(class_name, {})[row_status] = count

    by_class = []
    for class_name, counts in sorted(classes.items()):
        total = sum(counts.values())
        attended = counts.get("present", 0) + counts.get("late", 0)
        by_class.append(
            {
                "class_name": class_name,
                "total": total,
                "present": counts.get("present", 0),
                "absent": counts.get("absent", 0),
                "late": counts.get("late", 0),
                "rate": round(attended / total * 100, 2) if total else 0.0,
            }
        )
    return {
        "total_records": sum(by_status.values()),
        "by_status": by_status,
        "attendance_rate": attendance_rate(db, *criteria),
        "by_class": by_class,
    }


def fees_report(db: Session, student_ids: list[int] | None = None) -> dict:
    criteria = [Fee.student_id.in_(student_ids)] if student_ids is not None else []
    rows = (
        db.query(Fee.fee_type, Fee.status, func.count(Fee.id), func.coalesce(func.sum(Fee.amount), 0))
        .filter(*criteria)
        .group_by(Fee.fee_type, Fee.status)
        .all()
    )
    by_type: dict[str, dict] = {}
    for fee_type, row_status, count, amount in rows:
        bucket = by_type.setdefault(fee_type, {"fee_type": fee_type, "count": 0, "paid": 0.0, "unpaid": 0.0})
        bucket["count"] += count
        if row_status == "paid":
            bucket["paid"] += float(amount)
        else:
            bucket["unpaid"] += float(amount)
    return {
        "collected": _sum_amount(db, Fee.status == "paid", *criteria),
        "pending": _sum_amount(db, Fee.status == "pending", *criteria),
        "overdue": _sum_amount(db, Fee.status == "overdue", *criteria),
        "by_type": sorted(by_type.values(), key=lambda bucket: bucket["fee_type"]),
    }


def results_report(db: Session, student_ids: list[int] | None = None) -> dict:
    criteria = [Result.student_id.in_(student_ids)] if student_ids is not None else []
    total, average = db.query(func.count(Result.id), func.avg(Result.percentage)).filter(*criteria).one()
    grade_rows = db.query(Result.grade, func.count(Result.id)).filter(*criteria).group_by(Result.grade).all()
    passed = db.query(func.count(Result.id)).filter(Result.grade != "F", *criteria).scalar() or 0
    return {
        "total_results": total or 0,
        "average_percentage": round(float(average), 2) if average is not None else 0.0,
        "pass_rate": round(passed / total * 100, 2) if total else 0.0,
        "grade_distribution": {grade: count for grade, count in grade_rows},
    }


REPORT_BUILDERS = {
    "attendance": attendance_report,
    "fees": fees_report,
    "results": results_report,
}


# --- dashboards ---

def _fee_summary(fees: list[Fee]) -> dict:
    pending = [fee for fee in fees if fee.status in UNPAID_FEE_STATUSES]
    return {
        "count": len(pending),
        "total": float(sum((fee.amount for fee in pending), Decimal("0"))),
        "items": [
            {"id": fee.id, "fee_type": fee.fee_type, "amount": float(fee.amount), "due_date": fee.due_date.isoformat(), "status": fee.status}
            for fee in pending
        ],
    }


def _attendance_graph(db: Session, student_id: int) -> list[dict]:
    rows = (
        db.query(Attendance)
        .filter(Attendance.student_id == student_id)
        .order_by(Attendance.date.desc())
        .limit(30)
        .all()
    )
    return [{"date": row.date.isoformat(), "status": row.status} for row in reversed(rows)]


def _notice_rows(notices: list[Notice]) -> list[dict]:
    return [
        {
            "id": notice.id,
            "title": notice.title,
            "content": notice.content,
            "priority": notice.priority,
            "created_at": notice.created_at.isoformat(),
        }
        for notice in notices
    ]


def _student_panel(db: Session, student: Student) -> dict:
    today = date.today().strftime("%A").lower()
    results = (
        db.query(Result)
        .filter(Result.student_id == student.id)
        .order_by(Result.exam_date.desc())
        .limit(10)
        .all()
    )
    fees = db.query(Fee).filter(Fee.student_id == student.id).all()
    return {
        "student": {"id": student.id, "name": student.name, "class_name": student.class_name, "section": student.section, "roll_number": student.roll_number},
        "attendance_graph": _attendance_graph(db, student.id),
        "attendance_rate": attendance_rate(db, Attendance.student_id == student.id),
        "results": [
            {"id": r.id, "exam_type": r.exam_type, "subject_id": r.subject_id, "percentage": float(r.percentage), "grade": r.grade}
            for r in results
        ],
        "pending_fees": _fee_summary(fees),
        "timetable": [
            {"period_number": entry.period_number, "subject_id": entry.subject_id, "teacher_id": entry.teacher_id, "start_time": entry.start_time, "end_time": entry.end_time, "room": entry.room}
            for entry in timetable_for(db, student.class_name, student.section, today)
        ],
    }


def _holiday_rows(db: Session) -> list[dict]:
    return [
        {"id": event.id, "title": event.title, "start_date": event.start_date.isoformat(), "end_date": event.end_date.isoformat() if event.end_date else None}
        for event in upcoming_holidays(db)
    ]


def _class_attendance_today(db: Session, class_name: str | None) -> dict:
    query = (
        db.query(Attendance.status, func.count(Attendance.id))
        .join(Student, Attendance.student_id == Student.id)
        .filter(Attendance.date == date.today())
    )
    if class_name:
        query = query.filter(Student.class_name == class_name)
    counts = {row_status: count for row_status, count in query.group_by(Attendance.status).all()}
    return {
        "class_name": class_name,
        "present": counts.get("present", 0),
        "absent": counts.get("absent", 0),
        "late": counts.get("late", 0),
    }


def _recent_activities(db: Session, limit: int = 10) -> list[dict]:
    activities = []
    for student in db.query(Student).order_by(Student.admission_date.desc()).limit(limit).all():
        activities.append({"type": "student_added", "message": f"New student {student.name} enrolled", "at": student.admission_date})
    for fee in db.query(Fee).filter(Fee.status == "paid", Fee.paid_date.isnot(None)).order_by(Fee.paid_date.desc()).limit(limit).all():
        activities.append(
            {"type": "fee_paid", "message": f"Fee {fee.fee_type} paid for student {fee.student_id}", "at": datetime.combine(fee.paid_date, datetime.min.time())}
        )
    for document in db.query(Document).order_by(Document.created_at.desc()).limit(limit).all():
        activities.append({"type": "document_request", "message": f"{document.document_type} requested for {document.student_name}", "at": document.created_at})
    activities.sort(key=lambda activity: activity["at"], reverse=True)
    return [{**activity, "at": activity["at"].isoformat()} for activity in activities[:limit]]


def build_dashboard(db: Session, user: User) -> dict:
    role = user.role
    payload = {"role": role.value}
    if role in (UserRole.STUDENT, UserRole.PARENT):
        audience = "students" if role == UserRole.STUDENT else "parents"
        payload["notices"] = _notice_rows(active_notices(db, ("all", audience), limit=5))
        payload["students"] = [_student_panel(db, student) for student in linked_students(db, user)]
    elif role == UserRole.SUBJECT_TEACHER:
        payload["notices"] = _notice_rows(active_notices(db, ("all", "teachers"), limit=5))
        payload["holidays"] = _holiday_rows(db)
    elif role == UserRole.CLASS_TEACHER:
        payload["notices"] = _notice_rows(active_notices(db, ("all", "teachers"), limit=5))
        payload["holidays"] = _holiday_rows(db)
        payload["class_attendance"] = _class_attendance_today(db, user.assigned_class)
    elif role == UserRole.NON_TEACHING_STAFF:
        payload["notices"] = _notice_rows(active_notices(db, ("all",), limit=5))
    else:
        payload["notices"] = _notice_rows(active_notices(db, limit=5))
        payload["stats"] = get_stats(db)
        payload["recent_activities"] = _recent_activities(db)
    return payload
