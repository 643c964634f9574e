from fastapi import APIRouter, Depends, HTTPException

from dispatchdesk.core.errors import BillingRuleError, to_http_exception
from dispatchdesk.deps.auth import require_auth
from dispatchdesk.models.records import Actor
from dispatchdesk.schemas.billing import AccountingActionRequest, PaymentRequest
from dispatchdesk.schemas.job import serialize_audit, serialize_job
from dispatchdesk.services import job_repository as repo
from dispatchdesk.services.accounting_workflow import AccountingAction
from dispatchdesk.services.prompts import StaticPrompt

router = APIRouter(prefix="/accounting", tags=["Accounting"])


@router.post("/jobs/{job_id}/{action}")
def apply_action(
    job_id: str,
    action: str,
    payload: AccountingActionRequest,
    actor: Actor = Depends(require_auth),
):
    try:
        accounting_action = AccountingAction(action.upper())
    except ValueError as exc:
        raise HTTPException(status_code=404, detail=f"Unknown action: {action}") from exc

    # The HTTP client has already answered the dialog; replay its answer.
    prompt = StaticPrompt(text=payload.reason, confirmed=payload.confirmed)
    try:
        result = repo.apply_accounting_transition(
            job_id,
            accounting_action,
            actor,
            prompt,
            payload.reason,
        )
    except (BillingRuleError, LookupError) as exc:
        raise to_http_exception(exc) from exc

    return {
        "job": serialize_job(result.job),
        "audit_log": serialize_audit(result.audit_entry),
    }


@router.post("/payments")
def record_payment(payload: PaymentRequest, actor: Actor = Depends(require_auth)):
    try:
        jobs = repo.record_payment_batch(
            payload.job_ids,
            actor,
            payload.payment_date,
            payload.slip_ref,
        )
    except (BillingRuleError, LookupError) as exc:
        raise to_http_exception(exc) from exc

    return {"jobs": [serialize_job(j) for j in jobs]}
