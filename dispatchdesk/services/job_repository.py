"""
Persistence for jobs, audit entries and the price matrix.

The billing core works on frozen `JobRecord`s; this module converts rows to
records and writes the resulting records back together with their audit
entries in the same transaction.

Functions taking `db` follow one rule: if a session is passed in, the caller
owns the transaction and nothing is committed or closed here. If `db` is
None, the function opens, commits and closes its own session.
"""

import logging
from datetime import date, datetime, timezone
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from dispatchdesk.core.config import billing_commit_attempts
from dispatchdesk.core.errors import (
    BatchCommitFailed,
    BillingRuleError,
    DuplicateJob,
    InvoiceNotFound,
    JobNotFound,
)
from dispatchdesk.database import SessionLocal
from dispatchdesk.models.audit_log import AuditLog
from dispatchdesk.models.job import Job
from dispatchdesk.models.price_matrix import PriceMatrixRow
from dispatchdesk.models.records import (
    AccountingStatus,
    Actor,
    AuditEntry,
    JobRecord,
    JobStatus,
    PriceMatrixEntry,
)
from dispatchdesk.services import accounting_workflow as workflow
from dispatchdesk.services import invoice_builder
from dispatchdesk.services.job_operations import STATUS_FIELD, OperationResult
from dispatchdesk.services.money import (
    from_basis_points,
    from_satang,
    to_basis_points,
    to_satang,
)
from dispatchdesk.services.prompts import ConfirmationPrompt

logger = logging.getLogger(__name__)


def _naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def _aware_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def to_record(row: Job) -> JobRecord:
    return JobRecord(
        id=row.id,
        status=JobStatus(row.status),
        date_of_service=row.date_of_service,
        origin=row.origin or "",
        destination=row.destination or "",
        truck_type=row.truck_type or "",
        subcontractor=row.subcontractor,
        license_plate=row.license_plate,
        driver_name=row.driver_name,
        cost=from_satang(row.cost_satang or 0),
        extra_charge=from_satang(row.extra_charge_satang or 0),
        pod_documents=tuple(row.pod_documents or ()),
        accounting_status=AccountingStatus(row.accounting_status) if row.accounting_status else None,
        accounting_remark=row.accounting_remark,
        is_base_cost_locked=bool(row.is_base_cost_locked),
        billing_doc_no=row.billing_doc_no,
        billing_date=row.billing_date,
        reference_no=row.reference_no,
        billing_vat_rate=from_basis_points(row.billing_vat_rate_bp),
        billing_vat_amount=from_satang(row.billing_vat_amount_satang),
        billing_wht_rate=from_basis_points(row.billing_wht_rate_bp),
        billing_wht_amount=from_satang(row.billing_wht_amount_satang),
        billing_net_total=from_satang(row.billing_net_total_satang),
        billing_due_date=row.billing_due_date,
        billing_payment_type=row.billing_payment_type,
        billing_credit_days=row.billing_credit_days,
        payment_date=row.payment_date,
        payment_slip_ref=row.payment_slip_ref,
        created_at=_aware_utc(row.created_at),
    )


def _optional_satang(value) -> Optional[int]:
    return None if value is None else to_satang(value)


def _apply_record(row: Job, record: JobRecord) -> None:
    row.status = record.status.value
    row.date_of_service = record.date_of_service
    row.origin = record.origin
    row.destination = record.destination
    row.truck_type = record.truck_type
    row.subcontractor = record.subcontractor
    row.license_plate = record.license_plate
    row.driver_name = record.driver_name
    row.cost_satang = to_satang(record.cost)
    row.extra_charge_satang = to_satang(record.extra_charge)
    row.pod_documents = list(record.pod_documents)
    row.accounting_status = record.accounting_status.value if record.accounting_status else None
    row.accounting_remark = record.accounting_remark
    row.is_base_cost_locked = record.is_base_cost_locked
    row.billing_doc_no = record.billing_doc_no
    row.billing_date = record.billing_date
    row.reference_no = record.reference_no
    row.billing_vat_rate_bp = to_basis_points(record.billing_vat_rate)
    row.billing_vat_amount_satang = _optional_satang(record.billing_vat_amount)
    row.billing_wht_rate_bp = to_basis_points(record.billing_wht_rate)
    row.billing_wht_amount_satang = _optional_satang(record.billing_wht_amount)
    row.billing_net_total_satang = _optional_satang(record.billing_net_total)
    row.billing_due_date = record.billing_due_date
    row.billing_payment_type = record.billing_payment_type
    row.billing_credit_days = record.billing_credit_days
    row.payment_date = record.payment_date
    row.payment_slip_ref = record.payment_slip_ref


def _add_audit(db: Session, entry: AuditEntry) -> None:
    db.add(
        AuditLog(
            id=entry.id,
            job_id=entry.job_id,
            user_id=entry.user_id,
            user_name=entry.user_name,
            user_role=entry.user_role,
            timestamp=_naive_utc(entry.timestamp),
            field=entry.field,
            old_value=entry.old_value,
            new_value=entry.new_value,
            reason=entry.reason,
        )
    )


def to_audit_entry(row: AuditLog) -> AuditEntry:
    return AuditEntry(
        id=row.id,
        job_id=row.job_id,
        user_id=row.user_id,
        user_name=row.user_name,
        user_role=row.user_role,
        timestamp=_aware_utc(row.timestamp),
        field=row.field,
        old_value=row.old_value,
        new_value=row.new_value,
        reason=row.reason,
    )


def _get_row(db: Session, job_id: str) -> Job:
    row = db.get(Job, job_id)
    if row is None:
        raise JobNotFound(job_id)
    return row


def _load_rows(db: Session, job_ids: Sequence[str]) -> List[Job]:
    """Rows in the order requested; duplicates collapse to the first occurrence."""
    unique_ids = list(dict.fromkeys(job_ids))
    rows = {r.id: r for r in db.query(Job).filter(Job.id.in_(unique_ids)).all()} if unique_ids else {}
    missing = [i for i in unique_ids if i not in rows]
    if missing:
        raise JobNotFound(missing[0])
    return [rows[i] for i in unique_ids]


def _run(db: Optional[Session], work: Callable[[Session], object]):
    owns_db = db is None
    if owns_db:
        db = SessionLocal()

    try:
        result = work(db)
        if owns_db:
            db.commit()
        else:
            db.flush()
        return result
    except Exception:
        if owns_db:
            db.rollback()
        raise
    finally:
        if owns_db:
            db.close()


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


def get_job(job_id: str, *, db: Optional[Session] = None) -> JobRecord:
    return _run(db, lambda s: to_record(_get_row(s, job_id)))


def load_jobs(job_ids: Sequence[str], *, db: Optional[Session] = None) -> List[JobRecord]:
    return _run(db, lambda s: [to_record(r) for r in _load_rows(s, job_ids)])


def list_jobs(
    *,
    statuses: Optional[Iterable[JobStatus]] = None,
    db: Optional[Session] = None,
) -> List[JobRecord]:
    def work(s: Session):
        q = s.query(Job)
        if statuses is not None:
            q = q.filter(Job.status.in_([st.value for st in statuses]))
        return [to_record(r) for r in q.order_by(Job.id.asc()).all()]

    return _run(db, work)


def list_audit_logs(job_id: str, *, db: Optional[Session] = None) -> List[AuditEntry]:
    def work(s: Session):
        _get_row(s, job_id)
        rows = (
            s.query(AuditLog)
            .filter(AuditLog.job_id == job_id)
            .order_by(AuditLog.timestamp.asc(), AuditLog.id.asc())
            .all()
        )
        return [to_audit_entry(r) for r in rows]

    return _run(db, work)


def load_invoice_jobs(document_number: str, *, db: Optional[Session] = None) -> List[JobRecord]:
    def work(s: Session):
        rows = s.query(Job).filter(Job.billing_doc_no == document_number).order_by(Job.id.asc()).all()
        if not rows:
            raise InvoiceNotFound(document_number)
        return [to_record(r) for r in rows]

    return _run(db, work)


# ---------------------------------------------------------------------------
# Price matrix
# ---------------------------------------------------------------------------


def _to_price_entry(row: PriceMatrixRow) -> PriceMatrixEntry:
    return PriceMatrixEntry(
        origin=row.origin,
        destination=row.destination,
        truck_type=row.truck_type,
        subcontractor=row.subcontractor,
        base_price=from_satang(row.base_price_satang or 0),
        selling_base_price=from_satang(row.selling_base_price_satang or 0),
        payment_type=row.payment_type,
        credit_days=row.credit_days,
    )


def load_price_matrix(*, db: Optional[Session] = None) -> List[PriceMatrixEntry]:
    def work(s: Session):
        rows = (
            s.query(PriceMatrixRow)
            .order_by(
                PriceMatrixRow.subcontractor.asc(),
                PriceMatrixRow.origin.asc(),
                PriceMatrixRow.destination.asc(),
                PriceMatrixRow.truck_type.asc(),
            )
            .all()
        )
        return [_to_price_entry(r) for r in rows]

    return _run(db, work)


def replace_price_matrix(entries: Sequence[PriceMatrixEntry], *, db: Optional[Session] = None) -> int:
    def work(s: Session):
        s.query(PriceMatrixRow).delete(synchronize_session=False)
        for e in entries:
            s.add(
                PriceMatrixRow(
                    origin=e.origin,
                    destination=e.destination,
                    truck_type=e.truck_type,
                    subcontractor=e.subcontractor,
                    base_price_satang=to_satang(e.base_price),
                    selling_base_price_satang=to_satang(e.selling_base_price),
                    payment_type=e.payment_type,
                    credit_days=e.credit_days,
                )
            )
        return len(entries)

    return _run(db, work)


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------


def insert_job(result: OperationResult, *, db: Optional[Session] = None) -> JobRecord:
    def work(s: Session):
        if s.get(Job, result.job.id) is not None:
            raise DuplicateJob(result.job.id)
        row = Job(id=result.job.id, created_at=_naive_utc(result.job.created_at))
        _apply_record(row, result.job)
        s.add(row)
        for entry in result.audit_entries:
            _add_audit(s, entry)
        return result.job

    return _run(db, work)


def update_job(
    job_id: str,
    operation: Callable[[JobRecord], OperationResult],
    *,
    db: Optional[Session] = None,
) -> JobRecord:
    """Load one job, apply a pure operation to it and persist the outcome."""

    def work(s: Session):
        row = _get_row(s, job_id)
        result = operation(to_record(row))
        if result.job != to_record(row):
            _apply_record(row, result.job)
        for entry in result.audit_entries:
            _add_audit(s, entry)
        return result.job

    return _run(db, work)


def apply_accounting_transition(
    job_id: str,
    action: workflow.AccountingAction,
    actor: Actor,
    prompt: ConfirmationPrompt,
    reason: Optional[str] = None,
    *,
    db: Optional[Session] = None,
) -> workflow.TransitionResult:
    def work(s: Session):
        row = _get_row(s, job_id)
        result = workflow.request_transition(to_record(row), action, actor, prompt, reason)
        _apply_record(row, result.job)
        _add_audit(s, result.audit_entry)
        return result

    result = _run(db, work)
    logger.info(
        "Accounting transition applied",
        extra={
            "job_id": job_id,
            "action": action.value,
            "old_status": result.audit_entry.old_value,
            "new_status": result.audit_entry.new_value,
            "user_id": actor.user_id,
        },
    )
    return result


def record_payment_batch(
    job_ids: Sequence[str],
    actor: Actor,
    payment_date: date,
    slip_ref: Optional[str] = None,
    *,
    db: Optional[Session] = None,
) -> List[JobRecord]:
    def work(s: Session):
        rows = _load_rows(s, job_ids)
        results = workflow.record_payment([to_record(r) for r in rows], actor, payment_date, slip_ref)
        for row, result in zip(rows, results):
            _apply_record(row, result.job)
            _add_audit(s, result.audit_entry)
        return [r.job for r in results]

    paid = _run(db, work)
    logger.info(
        "Payment recorded",
        extra={"job_count": len(paid), "payment_date": payment_date.isoformat(), "user_id": actor.user_id},
    )
    return paid


def _stamp_batch(
    db: Session,
    job_ids: Sequence[str],
    actor: Actor,
    *,
    reference_no: Optional[str],
    issue_date: Optional[date],
    tax: Optional[invoice_builder.TaxOptions],
) -> Tuple[invoice_builder.Invoice, List[JobRecord]]:
    rows = _load_rows(db, job_ids)
    records = [to_record(r) for r in rows]
    lookup = invoice_builder.matrix_lookup([_to_price_entry(r) for r in db.query(PriceMatrixRow).all()])

    invoice = invoice_builder.build_invoice(
        records,
        lookup,
        reference_no,
        issue_date,
        tax=tax,
    )
    stamped = invoice_builder.commit_invoice(invoice, records)

    for row, before, after in zip(rows, records, stamped):
        _apply_record(row, after)
        _add_audit(
            db,
            workflow.new_audit_entry(
                before,
                actor,
                field=STATUS_FIELD,
                old_value=before.status.value,
                new_value=after.status.value,
                reason=f"Billed on {invoice.document_number}",
            ),
        )
    return invoice, stamped


def commit_invoice_batch(
    job_ids: Sequence[str],
    actor: Actor,
    *,
    reference_no: Optional[str],
    issue_date: Optional[date] = None,
    tax: Optional[invoice_builder.TaxOptions] = None,
    session_factory: Callable[[], Session] = SessionLocal,
) -> Tuple[invoice_builder.Invoice, List[JobRecord]]:
    """
    Stamp a whole batch BILLED in a single transaction.

    Every attempt uses a fresh session and re-validates from the database.
    Transient OperationalError is retried; any other failure rolls the batch
    back. Rule violations propagate unchanged; persistence failures surface
    as BatchCommitFailed. No job is ever left half-stamped.
    """
    workflow.require_accounting_role(actor)

    attempts = billing_commit_attempts()
    last_error: Optional[BaseException] = None

    for attempt in range(1, attempts + 1):
        db = session_factory()
        try:
            invoice, stamped = _stamp_batch(
                db,
                job_ids,
                actor,
                reference_no=reference_no,
                issue_date=issue_date,
                tax=tax,
            )
            db.commit()
        except (BillingRuleError, JobNotFound):
            db.rollback()
            raise
        except OperationalError as exc:
            db.rollback()
            last_error = exc
            logger.warning(
                "Invoice batch commit attempt failed",
                extra={"attempt": attempt, "attempts": attempts, "job_count": len(job_ids)},
            )
            continue
        except Exception as exc:
            db.rollback()
            logger.exception("Invoice batch commit failed", extra={"job_count": len(job_ids)})
            raise BatchCommitFailed(
                "บันทึกใบวางบิลไม่สำเร็จ ระบบยกเลิกทั้งชุด (Invoice batch rolled back)",
                attempts=attempt,
            ) from exc
        finally:
            db.close()

        logger.info(
            "Invoice batch committed",
            extra={
                "document_number": invoice.document_number,
                "job_count": len(stamped),
                "net_total": str(invoice.net_total),
                "attempt": attempt,
                "user_id": actor.user_id,
            },
        )
        return invoice, stamped

    raise BatchCommitFailed(
        "บันทึกใบวางบิลไม่สำเร็จ ระบบยกเลิกทั้งชุด (Invoice batch rolled back after retries)",
        attempts=attempts,
    ) from last_error
