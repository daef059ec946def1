import datetime as dt
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from .permissions import UserRole


AttendanceStatus = Literal["present", "absent", "late"]
FeeStatus = Literal["pending", "paid", "overdue"]
PaymentMethod = Literal["cash", "card", "online", "cheque", "bank_transfer"]
FeeFrequency = Literal["monthly", "quarterly", "annually"]
Weekday = Literal["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]
ExamType = Literal["unit_test", "midterm", "final", "assignment", "project", "practical"]
ExamStatus = Literal["upcoming", "ongoing", "completed", "cancelled"]
NoticePriority = Literal["low", "normal", "high", "urgent"]
NoticeAudience = Literal["all", "students", "teachers", "parents"]
EventType = Literal["holiday", "exam", "event", "meeting"]


class OrmModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


# --- auth & users ---

class LoginRequest(BaseModel):
    username: str = Field(min_length=1, max_length=100)
    password: str = Field(min_length=1)


class UserOut(OrmModel):
    id: int
    username: str
    name: str
    email: str | None = None
    phone: str | None = None
    role: UserRole
    assigned_class: str | None = None
    assigned_subject: str | None = None
    is_active: bool
    last_login_at: dt.datetime | None = None
    created_at: dt.datetime


class LoginResponse(BaseModel):
    message: str = "Login successful"
    token: str
    token_type: str = "bearer"
    user: UserOut


class UserCreateRequest(BaseModel):
    username: str = Field(min_length=3, max_length=100)
    password: str = Field(min_length=6)
    name: str = Field(min_length=1, max_length=255)
    email: str | None = Field(default=None, max_length=255)
    phone: str | None = None
    role: UserRole
    assigned_class: str | None = None
    assigned_subject: str | None = None
    is_active: bool = True


class UserUpdateRequest(BaseModel):
    password: str | None = Field(default=None, min_length=6)
    name: str | None = Field(default=None, min_length=1, max_length=255)
    email: str | None = Field(default=None, max_length=255)
    phone: str | None = None
    role: UserRole | None = None
    assigned_class: str | None = None
    assigned_subject: str | None = None
    is_active: bool | None = None


class FcmTokenRequest(BaseModel):
    fcm_token: str = Field(min_length=1, max_length=512)


class RoleRouteResponse(BaseModel):
    message: str
    acting_role: UserRole


# --- people ---

class StudentCreate(BaseModel):
    roll_number: str | None = Field(default=None, max_length=50)
    name: str = Field(min_length=1, max_length=255)
    email: str | None = None
    phone: str | None = None
    date_of_birth: dt.date
    gender: str = Field(min_length=1, max_length=20)
    class_name: str = Field(min_length=1, max_length=50)
    section: str = Field(min_length=1, max_length=10)
    parent_name: str = Field(min_length=1, max_length=255)
    parent_phone: str = Field(min_length=1, max_length=50)
    parent_email: str | None = None
    address: str | None = None
    user_id: int | None = None
    parent_user_id: int | None = None


class StudentUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    email: str | None = None
    phone: str | None = None
    date_of_birth: dt.date | None = None
    gender: str | None = None
    class_name: str | None = None
    section: str | None = None
    parent_name: str | None = None
    parent_phone: str | None = None
    parent_email: str | None = None
    address: str | None = None
    user_id: int | None = None
    parent_user_id: int | None = None
    is_active: bool | None = None


class StudentOut(OrmModel):
    id: int
    roll_number: str
    admission_number: str | None = None
    name: str
    email: str | None = None
    phone: str | None = None
    date_of_birth: dt.date
    gender: str
    class_name: str
    section: str
    parent_name: str
    parent_phone: str
    parent_email: str | None = None
    address: str | None = None
    user_id: int | None = None
    parent_user_id: int | None = None
    admission_date: dt.datetime
    is_active: bool


class TeacherCreate(BaseModel):
    employee_id: str | None = Field(default=None, max_length=50)
    name: str = Field(min_length=1, max_length=255)
    email: str = Field(min_length=3, max_length=255)
    phone: str = Field(min_length=1, max_length=50)
    date_of_birth: dt.date | None = None
    gender: str | None = None
    subject: str | None = None
    qualification: str | None = None
    experience: int | None = Field(default=None, ge=0)
    salary: Decimal | None = Field(default=None, ge=0)
    user_id: int | None = None


class TeacherUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    email: str | None = None
    phone: str | None = None
    date_of_birth: dt.date | None = None
    gender: str | None = None
    subject: str | None = None
    qualification: str | None = None
    experience: int | None = Field(default=None, ge=0)
    salary: Decimal | None = Field(default=None, ge=0)
    user_id: int | None = None
    is_active: bool | None = None


class TeacherOut(OrmModel):
    id: int
    employee_id: str
    name: str
    email: str
    phone: str
    date_of_birth: dt.date | None = None
    gender: str | None = None
    subject: str | None = None
    qualification: str | None = None
    experience: int | None = None
    salary: Decimal | None = None
    user_id: int | None = None
    join_date: dt.datetime
    is_active: bool


# --- academics ---

class SubjectCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    code: str = Field(min_length=1, max_length=20)
    description: str | None = None


class SubjectUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = None
    is_active: bool | None = None


class SubjectOut(OrmModel):
    id: int
    name: str
    code: str
    description: str | None = None
    is_active: bool


class AttendanceCreate(BaseModel):
    student_id: int
    date: dt.date
    status: AttendanceStatus
    remarks: str | None = None


class AttendanceOut(OrmModel):
    id: int
    student_id: int
    date: dt.date
    status: str
    remarks: str | None = None


class PeriodCreate(BaseModel):
    period_number: int = Field(ge=1)
    start_time: str = Field(pattern=r"^\d{2}:\d{2}$")
    end_time: str = Field(pattern=r"^\d{2}:\d{2}$")
    is_break: bool = False


class PeriodUpdate(BaseModel):
    period_number: int | None = Field(default=None, ge=1)
    start_time: str | None = Field(default=None, pattern=r"^\d{2}:\d{2}$")
    end_time: str | None = Field(default=None, pattern=r"^\d{2}:\d{2}$")
    is_break: bool | None = None


class PeriodOut(OrmModel):
    id: int
    period_number: int
    start_time: str
    end_time: str
    is_break: bool
    is_active: bool


class TimetableCreate(BaseModel):
    class_name: str = Field(min_length=1, max_length=50)
    section: str = Field(min_length=1, max_length=10)
    day: Weekday
    period_number: int = Field(ge=1)
    subject_id: int | None = None
    teacher_id: int | None = None
    start_time: str | None = Field(default=None, pattern=r"^\d{2}:\d{2}$")
    end_time: str | None = Field(default=None, pattern=r"^\d{2}:\d{2}$")
    room: str | None = None


class TimetableUpdate(BaseModel):
    day: Weekday | None = None
    period_number: int | None = Field(default=None, ge=1)
    subject_id: int | None = None
    teacher_id: int | None = None
    start_time: str | None = Field(default=None, pattern=r"^\d{2}:\d{2}$")
    end_time: str | None = Field(default=None, pattern=r"^\d{2}:\d{2}$")
    room: str | None = None


class TimetableOut(OrmModel):
    id: int
    class_name: str
    section: str
    day: str
    period_number: int
    subject_id: int | None = None
    teacher_id: int | None = None
    start_time: str | None = None
    end_time: str | None = None
    room: str | None = None


class ExamCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    exam_type: ExamType = "unit_test"
    class_name: str = Field(min_length=1, max_length=50)
    section: str | None = None
    start_date: dt.date
    end_date: dt.date
    max_marks: int = Field(default=100, gt=0)


class ExamUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    start_date: dt.date | None = None
    end_date: dt.date | None = None
    max_marks: int | None = Field(default=None, gt=0)
    status: ExamStatus | None = None


class ExamOut(OrmModel):
    id: int
    name: str
    exam_type: str
    class_name: str
    section: str | None = None
    start_date: dt.date
    end_date: dt.date
    max_marks: int
    status: str
    created_by: int | None = None


class ResultCreate(BaseModel):
    student_id: int
    subject_id: int | None = None
    exam_id: int | None = None
    exam_type: ExamType
    exam_date: dt.date
    max_marks: Decimal = Field(gt=0)
    obtained_marks: Decimal = Field(ge=0)
    remarks: str | None = None


class ResultUpdate(BaseModel):
    max_marks: Decimal | None = Field(default=None, gt=0)
    obtained_marks: Decimal | None = Field(default=None, ge=0)
    exam_date: dt.date | None = None
    remarks: str | None = None


class ResultOut(OrmModel):
    id: int
    student_id: int
    subject_id: int | None = None
    exam_id: int | None = None
    exam_type: str
    exam_date: dt.date
    max_marks: Decimal
    obtained_marks: Decimal
    percentage: Decimal
    grade: str
    remarks: str | None = None
    created_at: dt.datetime


class AssignmentCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    description: str | None = None
    subject_id: int | None = None
    class_name: str = Field(min_length=1, max_length=50)
    section: str | None = None
    teacher_id: int | None = None
    due_date: dt.datetime
    max_marks: int | None = Field(default=None, gt=0)


class AssignmentUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    due_date: dt.datetime | None = None
    max_marks: int | None = Field(default=None, gt=0)


class AssignmentOut(OrmModel):
    id: int
    title: str
    description: str | None = None
    subject_id: int | None = None
    class_name: str
    section: str | None = None
    teacher_id: int | None = None
    due_date: dt.datetime
    max_marks: int | None = None
    created_by: int | None = None
    created_at: dt.datetime


class SubmissionCreate(BaseModel):
    content: str = Field(min_length=1)


class GradeSubmissionRequest(BaseModel):
    marks: int = Field(ge=0)
    feedback: str | None = None


class SubmissionOut(OrmModel):
    id: int
    assignment_id: int
    student_id: int
    content: str
    submitted_at: dt.datetime
    marks: int | None = None
    feedback: str | None = None
    status: str


# --- finance ---

class FeeCreate(BaseModel):
    student_id: int
    fee_type: str = Field(min_length=1, max_length=50)
    amount: Decimal = Field(gt=0)
    due_date: dt.date
    paid_date: dt.date | None = None
    status: FeeStatus = "pending"
    payment_method: PaymentMethod | None = None
    academic_year: str | None = None
    installment_number: int = Field(default=1, ge=1)
    total_installments: int = Field(default=1, ge=1)
    remarks: str | None = None


class FeeUpdate(BaseModel):
    amount: Decimal | None = Field(default=None, gt=0)
    due_date: dt.date | None = None
    paid_date: dt.date | None = None
    status: FeeStatus | None = None
    payment_method: PaymentMethod | None = None
    remarks: str | None = None


class FeeOut(OrmModel):
    id: int
    student_id: int
    fee_type: str
    amount: Decimal
    due_date: dt.date
    paid_date: dt.date | None = None
    status: str
    payment_method: str | None = None
    academic_year: str | None = None
    installment_number: int
    total_installments: int
    remarks: str | None = None


class FeeStructureItemCreate(BaseModel):
    fee_type: str = Field(min_length=1, max_length=50)
    amount: Decimal = Field(gt=0)
    frequency: FeeFrequency = "annually"
    due_day: int = Field(default=10, ge=1, le=28)
    description: str | None = None


class FeeStructureItemOut(OrmModel):
    id: int
    structure_id: int
    fee_type: str
    amount: Decimal
    frequency: str
    due_day: int
    description: str | None = None


class FeeStructureCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    academic_year: str = Field(min_length=4, max_length=20)
    class_name: str | None = None
    description: str | None = None
    items: list[FeeStructureItemCreate] = Field(default_factory=list)


class FeeStructureOut(OrmModel):
    id: int
    name: str
    academic_year: str
    class_name: str | None = None
    description: str | None = None
    is_active: bool
    created_at: dt.datetime
    items: list[FeeStructureItemOut] = Field(default_factory=list)


class GenerateFeesRequest(BaseModel):
    student_ids: list[int] = Field(min_length=1)


class PayrollCreate(BaseModel):
    teacher_id: int
    month: str = Field(pattern=r"^\d{4}-\d{2}$")
    basic_salary: Decimal | None = Field(default=None, ge=0)
    allowances: Decimal = Field(default=Decimal("0"), ge=0)
    deductions: Decimal = Field(default=Decimal("0"), ge=0)


class PayrollUpdate(BaseModel):
    basic_salary: Decimal | None = Field(default=None, ge=0)
    allowances: Decimal | None = Field(default=None, ge=0)
    deductions: Decimal | None = Field(default=None, ge=0)


class PayrollOut(OrmModel):
    id: int
    teacher_id: int
    month: str
    basic_salary: Decimal
    allowances: Decimal
    deductions: Decimal
    net_salary: Decimal
    status: str
    paid_date: dt.date | None = None


# --- office ---

class DocumentCreate(BaseModel):
    document_type: str = Field(min_length=1, max_length=50)
    student_id: int | None = None
    student_name: str = Field(min_length=1, max_length=255)
    student_class: str = Field(min_length=1, max_length=50)
    student_section: str = Field(min_length=1, max_length=10)
    roll_number: str = Field(min_length=1, max_length=50)
    purpose: str | None = None
    reason: str | None = None
    parent_name: str = Field(min_length=1, max_length=255)
    parent_phone: str = Field(min_length=1, max_length=50)


class DocumentDecisionRequest(BaseModel):
    remarks: str | None = None


class DocumentOut(OrmModel):
    id: int
    document_type: str
    student_id: int | None = None
    student_name: str
    student_class: str
    student_section: str
    roll_number: str
    purpose: str | None = None
    reason: str | None = None
    parent_name: str
    parent_phone: str
    status: str
    remarks: str | None = None
    requested_by: int | None = None
    processed_by: int | None = None
    created_at: dt.datetime
    processed_at: dt.datetime | None = None


class NoticeCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    content: str = Field(min_length=1)
    priority: NoticePriority = "normal"
    target_audience: NoticeAudience = "all"


class NoticeOut(OrmModel):
    id: int
    title: str
    content: str
    priority: str
    target_audience: str
    created_by: int
    created_at: dt.datetime
    is_active: bool


class CalendarEventCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    description: str | None = None
    event_type: EventType = "event"
    start_date: dt.date
    end_date: dt.date | None = None


class CalendarEventUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    event_type: EventType | None = None
    start_date: dt.date | None = None
    end_date: dt.date | None = None


class CalendarEventOut(OrmModel):
    id: int
    title: str
    description: str | None = None
    event_type: str
    start_date: dt.date
    end_date: dt.date | None = None
    created_by: int | None = None
    created_at: dt.datetime


class AdmissionCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    email: str | None = None
    phone: str | None = None
    date_of_birth: dt.date
    gender: str = Field(min_length=1, max_length=20)
    class_name: str = Field(min_length=1, max_length=50)
    section: str = Field(default="A", min_length=1, max_length=10)
    parent_name: str = Field(min_length=1, max_length=255)
    parent_phone: str = Field(min_length=1, max_length=50)
    parent_email: str | None = None
    address: str | None = None
    previous_school: str | None = None


class AdmissionDecisionRequest(BaseModel):
    remarks: str | None = None


class AdmissionOut(OrmModel):
    id: int
    application_number: str
    name: str
    email: str | None = None
    phone: str | None = None
    date_of_birth: dt.date
    gender: str
    class_name: str
    section: str
    parent_name: str
    parent_phone: str
    parent_email: str | None = None
    address: str | None = None
    previous_school: str | None = None
    status: str
    remarks: str | None = None
    student_id: int | None = None
    application_date: dt.datetime
    decided_at: dt.datetime | None = None


class AdmissionApprovalResponse(BaseModel):
    message: str
    admission: AdmissionOut
    student: StudentOut


# --- modules ---

class ModuleOut(OrmModel):
    id: int
    name: str
    display_name: str
    description: str | None = None
    icon: str | None = None
    route: str
    is_active: bool


class ModuleUpdateRequest(BaseModel):
    is_active: bool


class UserModuleOut(BaseModel):
    id: int
    name: str
    display_name: str
    description: str | None = None
    icon: str | None = None
    route: str
    can_read: bool = Field(serialization_alias="canRead")
    can_write: bool = Field(serialization_alias="canWrite")
    can_delete: bool = Field(serialization_alias="canDelete")


class StatsOut(BaseModel):
    total_students: int = Field(serialization_alias="totalStudents")
    total_teachers: int = Field(serialization_alias="totalTeachers")
    attendance_rate: float = Field(serialization_alias="attendanceRate")
    fee_collection: float = Field(serialization_alias="feeCollection")
    pending_fees: float = Field(serialization_alias="pendingFees")
