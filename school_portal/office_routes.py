from datetime import date

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from .database import get_db_session
from .middleware import require_any_module_access, require_module_access, require_roles
from .models import Admission, Document, Fee, FeeStructure, FeeStructureItem, PayrollRecord, Student, User
from .permissions import AccessLevel, ModuleName, UserRole
from .schemas import (
    AdmissionApprovalResponse,
    AdmissionCreate,
    AdmissionDecisionRequest,
    AdmissionOut,
    DocumentCreate,
    DocumentDecisionRequest,
    DocumentOut,
    FeeCreate,
    FeeOut,
    FeeStructureCreate,
    FeeStructureItemCreate,
    FeeStructureItemOut,
    FeeStructureOut,
    FeeUpdate,
    GenerateFeesRequest,
    PayrollCreate,
    PayrollOut,
    PayrollUpdate,
    StudentOut,
)
from .storage import (
    add_fee_structure_item,
    approve_admission,
    create_admission,
    create_fee_structure,
    create_payroll,
    create_row,
    decide_document,
    delete_row,
    generate_fees_from_structure,
    get_or_404,
    pay_payroll,
    reject_admission,
    update_payroll,
    update_row,
    update_values,
)


router = APIRouter(prefix="/api", tags=["Office"])

NO_CONTENT = status.HTTP_204_NO_CONTENT

read_fees = require_any_module_access(ModuleName.FEES, AccessLevel.READ, AccessLevel.WRITE, AccessLevel.ADMIN)

PAYROLL_VIEWERS = (UserRole.ACCOUNTANT, UserRole.PRINCIPAL, UserRole.ADMIN, UserRole.SUPER_ADMIN)


# --- fees ---

@router.get("/fees", response_model=list[FeeOut])
def get_fees(
    fee_status: str | None = Query(default=None, alias="status"),
    db: Session = Depends(get_db_session),
    _: User = Depends(read_fees),
):
    query = db.query(Fee)
    if fee_status:
        query = query.filter(Fee.status == fee_status)
    return query.order_by(Fee.due_date, Fee.id).all()


@router.get("/fees/student/{student_id}", response_model=list[FeeOut])
def get_student_fees(
    student_id: int,
    db: Session = Depends(get_db_session),
    _: User = Depends(read_fees),
):
    get_or_404(db, Student, student_id, "Student")
    return db.query(Fee).filter(Fee.student_id == student_id).order_by(Fee.due_date).all()


@router.get("/fees/{fee_id}", response_model=FeeOut)
def get_fee(fee_id: int, db: Session = Depends(get_db_session), _: User = Depends(read_fees)):
    return get_or_404(db, Fee, fee_id, "Fee")


@router.post("/fees", response_model=FeeOut, status_code=status.HTTP_201_CREATED)
def add_fee(
    payload: FeeCreate,
    db: Session = Depends(get_db_session),
    _: User = Depends(require_module_access(ModuleName.FEES, AccessLevel.WRITE)),
):
    get_or_404(db, Student, payload.student_id, "Student")
    values = payload.model_dump()
    if values["status"] == "paid" and values["paid_date"] is None:
        values["paid_date"] = date.today()
    return create_row(db, Fee, values)


@router.put("/fees/{fee_id}", response_model=FeeOut)
def edit_fee(
    fee_id: int,
    payload: FeeUpdate,
    db: Session = Depends(get_db_session),
    _: User = Depends(require_module_access(ModuleName.FEES, AccessLevel.WRITE)),
):
    fee = get_or_404(db, Fee, fee_id, "Fee")
    changes = update_values(Fee, payload)
    if changes.get("status") == "paid" and not changes.get("paid_date") and fee.paid_date is None:
        changes["paid_date"] = date.today()
    return update_row(db, fee, changes)


@router.delete("/fees/{fee_id}", status_code=NO_CONTENT)
def remove_fee(
    fee_id: int,
    db: Session = Depends(get_db_session),
    _: User = Depends(require_module_access(ModuleName.FEES, AccessLevel.ADMIN)),
):
    delete_row(db, get_or_404(db, Fee, fee_id, "Fee"))
    return Response(status_code=NO_CONTENT)


# --- fee structures ---

@router.get("/fee-structures", response_model=list[FeeStructureOut])
def get_fee_structures(
    db: Session = Depends(get_db_session),
    _: User = Depends(require_module_access(ModuleName.FEES, AccessLevel.ADMIN)),
):
    return db.query(FeeStructure).order_by(FeeStructure.academic_year.desc(), FeeStructure.id).all()


@router.get("/fee-structures/{structure_id}", response_model=FeeStructureOut)
def get_fee_structure(
    structure_id: int,
    db: Session = Depends(get_db_session),
    _: User = Depends(require_module_access(ModuleName.FEES, AccessLevel.ADMIN)),
):
    return get_or_404(db, FeeStructure, structure_id, "Fee structure")


@router.post("/fee-structures", response_model=FeeStructureOut, status_code=status.HTTP_201_CREATED)
def add_fee_structure(
    payload: FeeStructureCreate,
    db: Session = Depends(get_db_session),
    _: User = Depends(require_module_access(ModuleName.FEES, AccessLevel.ADMIN)),
):
    return create_fee_structure(db, payload.model_dump())


@router.delete("/fee-structures/{structure_id}", status_code=NO_CONTENT)
def remove_fee_structure(
    structure_id: int,
    db: Session = Depends(get_db_session),
    _: User = Depends(require_module_access(ModuleName.FEES, AccessLevel.ADMIN)),
):
    delete_row(db, get_or_404(db, FeeStructure, structure_id, "Fee structure"))
    return Response(status_code=NO_CONTENT)


@router.post(
    "/fee-structures/{structure_id}/items",
    response_model=FeeStructureItemOut,
    status_code=status.HTTP_201_CREATED,
)
def add_structure_item(
    structure_id: int,
    payload: FeeStructureItemCreate,
    db: Session = Depends(get_db_session),
    _: User = Depends(require_module_access(ModuleName.FEES, AccessLevel.ADMIN)),
):
    structure = get_or_404(db, FeeStructure, structure_id, "Fee structure")
    return add_fee_structure_item(db, structure, payload.model_dump())


@router.delete("/fee-structure-items/{item_id}", status_code=NO_CONTENT)
def remove_structure_item(
    item_id: int,
    db: Session = Depends(get_db_session),
    _: User = Depends(require_module_access(ModuleName.FEES, AccessLevel.ADMIN)),
):
    delete_row(db, get_or_404(db, FeeStructureItem, item_id, "Fee structure item"))
    return Response(status_code=NO_CONTENT)


@router.post(
    "/fee-structures/{structure_id}/generate-fees",
    response_model=list[FeeOut],
    status_code=status.HTTP_201_CREATED,
)
def generate_fees(
    structure_id: int,
    payload: GenerateFeesRequest,
    db: Session = Depends(get_db_session),
    _: User = Depends(require_module_access(ModuleName.FEES, AccessLevel.WRITE)),
):
    structure = get_or_404(db, FeeStructure, structure_id, "Fee structure")
    return generate_fees_from_structure(db, structure, payload.student_ids)


# --- payroll ---

@router.get("/payroll", response_model=list[PayrollOut])
def get_payroll(
    month: str | None = None,
    db: Session = Depends(get_db_session),
    _: User = Depends(require_roles(*PAYROLL_VIEWERS)),
):
    query = db.query(PayrollRecord)
    if month:
        query = query.filter(PayrollRecord.month == month)
    return query.order_by(PayrollRecord.month.desc(), PayrollRecord.teacher_id).all()


@router.get("/payroll/{record_id}", response_model=PayrollOut)
def get_payroll_record(
    record_id: int,
    db: Session = Depends(get_db_session),
    _: User = Depends(require_roles(*PAYROLL_VIEWERS)),
):
    return get_or_404(db, PayrollRecord, record_id, "Payroll record")


@router.post("/payroll", response_model=PayrollOut, status_code=status.HTTP_201_CREATED)
def add_payroll(
    payload: PayrollCreate,
    db: Session = Depends(get_db_session),
    _: User = Depends(require_module_access(ModuleName.PAYROLL, AccessLevel.WRITE)),
):
    return create_payroll(db, payload.model_dump())


@router.put("/payroll/{record_id}", response_model=PayrollOut)
def edit_payroll(
    record_id: int,
    payload: PayrollUpdate,
    db: Session = Depends(get_db_session),
    _: User = Depends(require_module_access(ModuleName.PAYROLL, AccessLevel.WRITE)),
):
    record = get_or_404(db, PayrollRecord, record_id, "Payroll record")
    return update_payroll(db, record, update_values(PayrollRecord, payload))


@router.post("/payroll/{record_id}/pay", response_model=PayrollOut)
def pay_payroll_record(
    record_id: int,
    db: Session = Depends(get_db_session),
    _: User = Depends(require_module_access(ModuleName.PAYROLL, AccessLevel.WRITE)),
):
    return pay_payroll(db, get_or_404(db, PayrollRecord, record_id, "Payroll record"))


# --- documents ---

@router.get("/documents", response_model=list[DocumentOut])
def get_documents(
    doc_status: str | None = Query(default=None, alias="status"),
    document_type: str | None = Query(default=None, alias="type"),
    student_id: int | None = None,
    db: Session = Depends(get_db_session),
    _: User = Depends(require_module_access(ModuleName.DOCUMENTS)),
):
    query = db.query(Document)
    if doc_status:
        query = query.filter(Document.status == doc_status)
    if document_type:
        query = query.filter(Document.document_type == document_type)
    if student_id is not None:
        query = query.filter(Document.student_id == student_id)
    return query.order_by(Document.created_at.desc(), Document.id.desc()).all()


@router.get("/documents/{document_id}", response_model=DocumentOut)
def get_document(
    document_id: int,
    db: Session = Depends(get_db_session),
    _: User = Depends(require_module_access(ModuleName.DOCUMENTS)),
):
    return get_or_404(db, Document, document_id, "Document")


@router.post("/documents", response_model=DocumentOut, status_code=status.HTTP_201_CREATED)
def request_document(
    payload: DocumentCreate,
    db: Session = Depends(get_db_session),
    current_user: User = Depends(require_module_access(ModuleName.DOCUMENTS, AccessLevel.WRITE)),
):
    if payload.student_id is not None:
        get_or_404(db, Student, payload.student_id, "Student")
    return create_row(db, Document, {**payload.model_dump(), "requested_by": current_user.id})


@router.post("/documents/{document_id}/approve", response_model=DocumentOut)
def approve_document(
    document_id: int,
    payload: DocumentDecisionRequest | None = None,
    db: Session = Depends(get_db_session),
    current_user: User = Depends(require_module_access(ModuleName.DOCUMENTS, AccessLevel.ADMIN)),
):
    document = get_or_404(db, Document, document_id, "Document")
    remarks = payload.remarks if payload else None
    return decide_document(db, document, approve=True, actor=current_user, remarks=remarks)


@router.post("/documents/{document_id}/reject", response_model=DocumentOut)
def reject_document(
    document_id: int,
    payload: DocumentDecisionRequest | None = None,
    db: Session = Depends(get_db_session),
    current_user: User = Depends(require_module_access(ModuleName.DOCUMENTS, AccessLevel.ADMIN)),
):
    document = get_or_404(db, Document, document_id, "Document")
    remarks = payload.remarks if payload else None
    return decide_document(db, document, approve=False, actor=current_user, remarks=remarks)


@router.delete("/documents/{document_id}", status_code=NO_CONTENT)
def remove_document(
    document_id: int,
    db: Session = Depends(get_db_session),
    _: User = Depends(require_module_access(ModuleName.DOCUMENTS, AccessLevel.ADMIN)),
):
    delete_row(db, get_or_404(db, Document, document_id, "Document"))
    return Response(status_code=NO_CONTENT)


# --- admissions ---

@router.get("/admissions", response_model=list[AdmissionOut])
def get_admissions(
    admission_status: str | None = Query(default=None, alias="status"),
    db: Session = Depends(get_db_session),
    _: User = Depends(require_module_access(ModuleName.ADMISSIONS)),
):
    query = db.query(Admission)
    if admission_status:
        query = query.filter(Admission.status == admission_status)
    return query.order_by(Admission.application_date.desc(), Admission.id.desc()).all()


@router.get("/admissions/{admission_id}", response_model=AdmissionOut)
def get_admission(
    admission_id: int,
    db: Session = Depends(get_db_session),
    _: User = Depends(require_module_access(ModuleName.ADMISSIONS)),
):
    return get_or_404(db, Admission, admission_id, "Admission")


@router.post("/admissions", response_model=AdmissionOut, status_code=status.HTTP_201_CREATED)
def add_admission(
    payload: AdmissionCreate,
    db: Session = Depends(get_db_session),
    _: User = Depends(require_module_access(ModuleName.ADMISSIONS, AccessLevel.WRITE)),
):
    return create_admission(db, payload.model_dump())


@router.post("/admissions/{admission_id}/approve", response_model=AdmissionApprovalResponse)
def approve_application(
    admission_id: int,
    payload: AdmissionDecisionRequest | None = None,
    db: Session = Depends(get_db_session),
    _: User = Depends(require_module_access(ModuleName.ADMISSIONS, AccessLevel.WRITE)),
):
    admission = get_or_404(db, Admission, admission_id, "Admission")
    student = approve_admission(db, admission, payload.remarks if payload else None)
    return AdmissionApprovalResponse(
        message="Admission approved",
        admission=AdmissionOut.model_validate(admission),
        student=StudentOut.model_validate(student),
    )


@router.post("/admissions/{admission_id}/reject", response_model=AdmissionOut)
def reject_application(
    admission_id: int,
    payload: AdmissionDecisionRequest | None = None,
    db: Session = Depends(get_db_session),
    _: User = Depends(require_module_access(ModuleName.ADMISSIONS, AccessLevel.WRITE)),
):
    admission = get_or_404(db, Admission, admission_id, "Admission")
    return reject_admission(db, admission, payload.remarks if payload else None)


@router.delete("/admissions/{admission_id}", status_code=NO_CONTENT)
def remove_admission(
    admission_id: int,
    db: Session = Depends(get_db_session),
    _: User = Depends(require_module_access(ModuleName.ADMISSIONS, AccessLevel.ADMIN)),
):
    delete_row(db, get_or_404(db, Admission, admission_id, "Admission"))
    return Response(status_code=NO_CONTENT)
