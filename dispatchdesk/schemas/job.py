from datetime import date
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from dispatchdesk.models.records import AuditEntry, JobRecord
from dispatchdesk.services.job_operations import pod_kind
from dispatchdesk.services.money import MAX_AMOUNT


class JobCreate(BaseModel):
    id: Optional[str] = None
    origin: str = Field(min_length=1)
    destination: str = Field(min_length=1)
    truck_type: str = Field(min_length=1)
    date_of_service: Optional[date] = None


class JobAssign(BaseModel):
    subcontractor: str = Field(min_length=1)
    cost: Decimal = Field(ge=0, le=MAX_AMOUNT)
    license_plate: Optional[str] = None
    driver_name: Optional[str] = None
    truck_type: Optional[str] = None


class JobComplete(BaseModel):
    pod_documents: List[str] = Field(default_factory=list)
    extra_charge: Decimal = Field(default=Decimal("0"), ge=0, le=MAX_AMOUNT)


class PodAttach(BaseModel):
    pod_documents: List[str] = Field(min_length=1)


class JobCancel(BaseModel):
    reason: str = ""


class CostUpdate(BaseModel):
    cost: Optional[Decimal] = Field(default=None, ge=0, le=MAX_AMOUNT)
    extra_charge: Optional[Decimal] = Field(default=None, ge=0, le=MAX_AMOUNT)
    reason: str = ""


def _money(value: Optional[Decimal]) -> Optional[str]:
    return None if value is None else f"{value:.2f}"


def _iso(value) -> Optional[str]:
    return value.isoformat() if value is not None else None


def serialize_job(job: JobRecord) -> dict:
    return {
        "id": job.id,
        "status": job.status.value,
        "date_of_service": _iso(job.date_of_service),
        "origin": job.origin,
        "destination": job.destination,
        "truck_type": job.truck_type,
        "subcontractor": job.subcontractor,
        "license_plate": job.license_plate,
        "driver_name": job.driver_name,
        "cost": _money(job.cost),
        "extra_charge": _money(job.extra_charge),
        "pod_documents": [{"ref": ref, "kind": pod_kind(ref)} for ref in job.pod_documents],
        "accounting_status": job.accounting_status.value if job.accounting_status else None,
        "accounting_remark": job.accounting_remark,
        "is_base_cost_locked": job.is_base_cost_locked,
        "billing_doc_no": job.billing_doc_no,
        "billing_date": _iso(job.billing_date),
        "reference_no": job.reference_no,
        "billing_vat_amount": _money(job.billing_vat_amount),
        "billing_wht_amount": _money(job.billing_wht_amount),
        "billing_net_total": _money(job.billing_net_total),
        "billing_due_date": _iso(job.billing_due_date),
        "payment_date": _iso(job.payment_date),
        "payment_slip_ref": job.payment_slip_ref,
        "created_at": _iso(job.created_at),
    }


def serialize_audit(entry: AuditEntry) -> dict:
    return {
        "id": entry.id,
        "job_id": entry.job_id,
        "user_id": entry.user_id,
        "user_name": entry.user_name,
        "user_role": entry.user_role,
        "timestamp": _iso(entry.timestamp),
        "field": entry.field,
        "old_value": entry.old_value,
        "new_value": entry.new_value,
        "reason": entry.reason,
    }
