from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.exc import IntegrityError

from dispatchdesk.core.errors import BillingRuleError, DuplicateJob, to_http_exception
from dispatchdesk.database import SessionLocal
from dispatchdesk.deps.auth import require_auth
from dispatchdesk.models.records import Actor, JobStatus
from dispatchdesk.schemas.job import (
    CostUpdate,
    JobAssign,
    JobCancel,
    JobComplete,
    JobCreate,
    PodAttach,
    serialize_audit,
    serialize_job,
)
from dispatchdesk.services import job_operations as ops
from dispatchdesk.services import job_repository as repo

router = APIRouter(prefix="/jobs", tags=["Jobs"])


def _update(job_id: str, operation):
    db = SessionLocal()
    try:
        job = repo.update_job(job_id, operation, db=db)
        db.commit()
        return serialize_job(job)
    except (BillingRuleError, LookupError) as exc:
        db.rollback()
        raise to_http_exception(exc) from exc
    finally:
        db.close()


@router.post("", status_code=201)
def create_job(payload: JobCreate, actor: Actor = Depends(require_auth)):
    db = SessionLocal()
    try:
        result = ops.create_job(
            actor,
            origin=payload.origin,
            destination=payload.destination,
            truck_type=payload.truck_type,
            date_of_service=payload.date_of_service,
            job_id=payload.id,
        )
        job = repo.insert_job(result, db=db)
        db.commit()
        return serialize_job(job)
    except BillingRuleError as exc:
        db.rollback()
        raise to_http_exception(exc) from exc
    except IntegrityError as exc:
        # a concurrent create took the same id between the check and the commit
        db.rollback()
        raise to_http_exception(DuplicateJob(result.job.id)) from exc
    finally:
        db.close()


@router.get("")
def list_jobs(
    status: Optional[JobStatus] = Query(default=None),
    _actor: Actor = Depends(require_auth),
):
    jobs = repo.list_jobs(statuses=[status] if status is not None else None)
    return [serialize_job(j) for j in jobs]


@router.get("/{job_id}")
def get_job(job_id: str, _actor: Actor = Depends(require_auth)):
    try:
        return serialize_job(repo.get_job(job_id))
    except LookupError as exc:
        raise to_http_exception(exc) from exc


@router.post("/{job_id}/assign")
def assign_job(job_id: str, payload: JobAssign, actor: Actor = Depends(require_auth)):
    return _update(
        job_id,
        lambda job: ops.assign_job(
            job,
            actor,
            subcontractor=payload.subcontractor,
            cost=payload.cost,
            license_plate=payload.license_plate,
            driver_name=payload.driver_name,
            truck_type=payload.truck_type,
        ),
    )


@router.post("/{job_id}/complete")
def complete_job(job_id: str, payload: JobComplete, actor: Actor = Depends(require_auth)):
    return _update(
        job_id,
        lambda job: ops.complete_job(
            job,
            actor,
            pod_documents=payload.pod_documents,
            extra_charge=payload.extra_charge,
        ),
    )


@router.post("/{job_id}/pod")
def attach_pod(job_id: str, payload: PodAttach, actor: Actor = Depends(require_auth)):
    return _update(job_id, lambda job: ops.attach_pod(job, actor, payload.pod_documents))


@router.post("/{job_id}/cancel")
def cancel_job(job_id: str, payload: JobCancel, actor: Actor = Depends(require_auth)):
    return _update(job_id, lambda job: ops.cancel_job(job, actor, payload.reason))


@router.patch("/{job_id}/cost")
def update_cost(job_id: str, payload: CostUpdate, actor: Actor = Depends(require_auth)):
    return _update(
        job_id,
        lambda job: ops.update_cost(
            job,
            actor,
            cost=payload.cost,
            extra_charge=payload.extra_charge,
            reason=payload.reason,
        ),
    )


@router.get("/{job_id}/audit-logs")
def list_audit_logs(job_id: str, _actor: Actor = Depends(require_auth)):
    try:
        return [serialize_audit(e) for e in repo.list_audit_logs(job_id)]
    except LookupError as exc:
        raise to_http_exception(exc) from exc
