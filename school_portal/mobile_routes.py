"""Self-service routes for student and parent accounts.

A student account reaches its own profile through ``students.user_id``; a
parent account reaches its children through ``students.parent_user_id``.
"""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from .database import get_db_session
from .middleware import get_current_user
from .models import Attendance, Fee, Result, Student, User
from .permissions import UserRole
from .schemas import AttendanceOut, FeeOut, NoticeOut, ResultOut, StudentOut
from .storage import active_notices, linked_students


router = APIRouter(prefix="/api", tags=["Student & Parent"])


def _require_role(user: User, role: UserRole) -> None:
    if user.role != role:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")


def _own_student(db: Session, user: User) -> Student:
    _require_role(user, UserRole.STUDENT)
    students = linked_students(db, user)
    if not students:
        raise HTTPException(status_code=404, detail="Student profile not found")
    return students[0]


def _children(db: Session, user: User) -> list[Student]:
    _require_role(user, UserRole.PARENT)
    children = linked_students(db, user)
    if not children:
        raise HTTPException(status_code=404, detail="No children linked to this account")
    return children


@router.get("/students/profile", response_model=StudentOut)
def student_profile(db: Session = Depends(get_db_session), current_user: User = Depends(get_current_user)):
    return _own_student(db, current_user)


@router.get("/students/children", response_model=list[StudentOut])
def parent_children(db: Session = Depends(get_db_session), current_user: User = Depends(get_current_user)):
    return _children(db, current_user)


@router.get("/fees/student", response_model=list[FeeOut])
def student_fees(db: Session = Depends(get_db_session), current_user: User = Depends(get_current_user)):
    student = _own_student(db, current_user)
    return db.query(Fee).filter(Fee.student_id == student.id).order_by(Fee.due_date).all()


@router.get("/fees/children", response_model=list[FeeOut])
def children_fees(db: Session = Depends(get_db_session), current_user: User = Depends(get_current_user)):
    ids = [child.id for child in _children(db, current_user)]
    return db.query(Fee).filter(Fee.student_id.in_(ids)).order_by(Fee.student_id, Fee.due_date).all()


@router.get("/attendance/student", response_model=list[AttendanceOut])
def student_attendance(db: Session = Depends(get_db_session), current_user: User = Depends(get_current_user)):
    student = _own_student(db, current_user)
    return (
        db.query(Attendance)
        .filter(Attendance.student_id == student.id)
        .order_by(Attendance.date.desc())
        .all()
    )


@router.get("/attendance/children", response_model=list[AttendanceOut])
def children_attendance(db: Session = Depends(get_db_session), current_user: User = Depends(get_current_user)):
    ids = [child.id for child in _children(db, current_user)]
    return (
        db.query(Attendance)
        .filter(Attendance.student_id.in_(ids))
        .order_by(Attendance.student_id, Attendance.date.desc())
        .all()
    )


@router.get("/results/student", response_model=list[ResultOut])
def student_results(db: Session = Depends(get_db_session), current_user: User = Depends(get_current_user)):
    student = _own_student(db, current_user)
    return (
        db.query(Result)
        .filter(Result.student_id == student.id)
        .order_by(Result.exam_date.desc())
        .all()
    )


@router.get("/results/children", response_model=list[ResultOut])
def children_results(db: Session = Depends(get_db_session), current_user: User = Depends(get_current_user)):
    ids = [child.id for child in _children(db, current_user)]
    return (
        db.query(Result)
        .filter(Result.student_id.in_(ids))
        .order_by(Result.student_id, Result.exam_date.desc())
        .all()
    )


@router.get("/notices/student", response_model=list[NoticeOut])
def student_notices(db: Session = Depends(get_db_session), current_user: User = Depends(get_current_user)):
    _require_role(current_user, UserRole.STUDENT)
    return active_notices(db, ("all", "students"))


@router.get("/notices/parent", response_model=list[NoticeOut])
def parent_notices(db: Session = Depends(get_db_session), current_user: User = Depends(get_current_user)):
    _require_role(current_user, UserRole.PARENT)
    return active_notices(db, ("all", "parents"))
