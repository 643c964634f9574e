import uuid
from dataclasses import dataclass, replace
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Optional, Sequence, Tuple

from dispatchdesk.core.errors import (
    BaseCostLocked,
    InvalidTransition,
    SegregationOfDutiesViolation,
)
from dispatchdesk.models.records import (
    OPERATIONS_ROLES,
    AccountingStatus,
    Actor,
    AuditEntry,
    JobRecord,
    JobStatus,
)
from dispatchdesk.services.accounting_workflow import new_audit_entry
from dispatchdesk.services.money import MAX_AMOUNT, format_currency, round_half_up, to_decimal

STATUS_FIELD = "Status"
COST_FIELD = "Cost"
POD_FIELD = "POD"

PDF = "pdf"
IMAGE = "image"


@dataclass(frozen=True)
class OperationResult:
    job: JobRecord
    audit_entries: Tuple[AuditEntry, ...] = ()


def pod_kind(reference: str) -> str:
    """Display routing only; the document content is never parsed."""
    ref = (reference or "").strip().lower()
    if ref.startswith("data:"):
        return PDF if ref.startswith("data:application/pdf") else IMAGE
    path = ref.split("?", 1)[0]
    return PDF if path.endswith(".pdf") else IMAGE


def normalize_pod_documents(references: Optional[Sequence[str]]) -> Tuple[str, ...]:
    return tuple(r.strip() for r in (references or []) if r and r.strip())


def require_operations_role(actor: Actor) -> None:
    if actor.role not in OPERATIONS_ROLES:
        raise SegregationOfDutiesViolation()


def _require_mutable(job: JobRecord) -> None:
    if job.is_locked:
        raise InvalidTransition("งานถูกปิดถาวรแล้ว (Job is locked and can no longer change)")


def _non_negative(value) -> Decimal:
    raw = to_decimal(value)
    if not raw.is_finite() or raw > MAX_AMOUNT:
        raise InvalidTransition(
            f"จำนวนเงินเกินกำหนด (Amount must not exceed {format_currency(MAX_AMOUNT)})"
        )
    amount = round_half_up(raw)
    if amount < 0:
        raise InvalidTransition("จำนวนเงินต้องไม่ติดลบ (Amounts must not be negative)")
    return amount


def new_job_id(service_date: Optional[date] = None) -> str:
    d = service_date or datetime.now(timezone.utc).date()
    return f"JOB-{d:%y%m}-{uuid.uuid4().hex[:6].upper()}"


def create_job(
    actor: Actor,
    *,
    origin: str,
    destination: str,
    truck_type: str,
    date_of_service: Optional[date] = None,
    job_id: Optional[str] = None,
    now: Optional[datetime] = None,
) -> OperationResult:
    require_operations_role(actor)

    job = JobRecord(
        id=job_id or new_job_id(date_of_service),
        status=JobStatus.NEW_REQUEST,
        date_of_service=date_of_service,
        origin=origin,
        destination=destination,
        truck_type=truck_type,
        created_at=now or datetime.now(timezone.utc),
    )
    entry = new_audit_entry(
        job,
        actor,
        field=STATUS_FIELD,
        old_value="None",
        new_value=job.status.value,
        reason="Job created",
        now=now,
    )
    return OperationResult(job=job, audit_entries=(entry,))


def assign_job(
    job: JobRecord,
    actor: Actor,
    *,
    subcontractor: str,
    cost,
    license_plate: Optional[str] = None,
    driver_name: Optional[str] = None,
    truck_type: Optional[str] = None,
    now: Optional[datetime] = None,
) -> OperationResult:
    require_operations_role(actor)
    _require_mutable(job)

    if job.status not in (JobStatus.NEW_REQUEST, JobStatus.ASSIGNED):
        raise InvalidTransition(f"Job {job.id} cannot be assigned from {job.status.value}")
    if not (subcontractor or "").strip():
        raise InvalidTransition("กรุณาระบุผู้รับเหมา (Subcontractor is required)")

    updated = replace(
        job,
        status=JobStatus.ASSIGNED,
        subcontractor=subcontractor.strip(),
        cost=_non_negative(cost),
        license_plate=license_plate,
        driver_name=driver_name,
        truck_type=truck_type or job.truck_type,
    )

    entries = []
    if job.status != updated.status:
        entries.append(
            new_audit_entry(
                job,
                actor,
                field=STATUS_FIELD,
                old_value=job.status.value,
                new_value=updated.status.value,
                reason=f"Assigned to {updated.subcontractor}",
                now=now,
            )
        )
    return OperationResult(job=updated, audit_entries=tuple(entries))


def complete_job(
    job: JobRecord,
    actor: Actor,
    *,
    pod_documents: Optional[Sequence[str]] = None,
    extra_charge=0,
    now: Optional[datetime] = None,
) -> OperationResult:
    require_operations_role(actor)
    _require_mutable(job)

    if job.status != JobStatus.ASSIGNED:
        raise InvalidTransition(f"Job {job.id} cannot be completed from {job.status.value}")

    updated = replace(
        job,
        status=JobStatus.COMPLETED,
        pod_documents=job.pod_documents + normalize_pod_documents(pod_documents),
        extra_charge=_non_negative(extra_charge),
    )
    entry = new_audit_entry(
        job,
        actor,
        field=STATUS_FIELD,
        old_value=job.status.value,
        new_value=updated.status.value,
        reason=f"Job completed with {len(updated.pod_documents)} POD document(s)",
        now=now,
    )
    return OperationResult(job=updated, audit_entries=(entry,))


def attach_pod(
    job: JobRecord,
    actor: Actor,
    pod_documents: Sequence[str],
    *,
    now: Optional[datetime] = None,
) -> OperationResult:
    """Add proof-of-delivery to a completed job that accounting has not yet approved."""
    require_operations_role(actor)
    _require_mutable(job)

    if job.status != JobStatus.COMPLETED or job.is_base_cost_locked:
        raise InvalidTransition(f"POD can only be added to a completed job under review ({job.id})")

    added = normalize_pod_documents(pod_documents)
    if not added:
        return OperationResult(job=job)

    updated = replace(job, pod_documents=job.pod_documents + added)
    entry = new_audit_entry(
        job,
        actor,
        field=POD_FIELD,
        old_value=str(len(job.pod_documents)),
        new_value=str(len(updated.pod_documents)),
        reason=f"Attached {len(added)} POD document(s)",
        now=now,
    )
    return OperationResult(job=updated, audit_entries=(entry,))


def cancel_job(
    job: JobRecord,
    actor: Actor,
    reason: str = "",
    *,
    now: Optional[datetime] = None,
) -> OperationResult:
    require_operations_role(actor)
    _require_mutable(job)

    if job.status in (JobStatus.BILLED, JobStatus.CANCELLED):
        raise InvalidTransition(f"Job {job.id} cannot be cancelled from {job.status.value}")
    if job.accounting_status in (AccountingStatus.APPROVED, AccountingStatus.PAID):
        raise InvalidTransition(f"Job {job.id} is already approved by accounting")

    updated = replace(job, status=JobStatus.CANCELLED)
    entry = new_audit_entry(
        job,
        actor,
        field=STATUS_FIELD,
        old_value=job.status.value,
        new_value=updated.status.value,
        reason=reason.strip() or "Job cancelled",
        now=now,
    )
    return OperationResult(job=updated, audit_entries=(entry,))


def update_cost(
    job: JobRecord,
    actor: Actor,
    *,
    cost=None,
    extra_charge=None,
    reason: str = "",
    now: Optional[datetime] = None,
) -> OperationResult:
    require_operations_role(actor)
    _require_mutable(job)

    if job.is_base_cost_locked:
        raise BaseCostLocked()
    if job.status in (JobStatus.BILLED, JobStatus.CANCELLED):
        raise InvalidTransition(f"Cost of job {job.id} cannot change once {job.status.value}")

    new_cost = job.cost if cost is None else _non_negative(cost)
    new_extra = job.extra_charge if extra_charge is None else _non_negative(extra_charge)
    if new_cost == job.cost and new_extra == job.extra_charge:
        return OperationResult(job=job)

    updated = replace(job, cost=new_cost, extra_charge=new_extra)
    entry = new_audit_entry(
        job,
        actor,
        field=COST_FIELD,
        old_value=f"{format_currency(job.cost)} + {format_currency(job.extra_charge)}",
        new_value=f"{format_currency(new_cost)} + {format_currency(new_extra)}",
        reason=reason.strip() or "Cost updated",
        now=now,
    )
    return OperationResult(job=updated, audit_entries=(entry,))
