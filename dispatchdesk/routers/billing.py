from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response

from dispatchdesk.core.errors import BatchCommitFailed, BillingRuleError, to_http_exception
from dispatchdesk.deps.auth import require_auth
from dispatchdesk.models.records import Actor, JobStatus
from dispatchdesk.schemas.billing import InvoiceRequest, serialize_invoice, serialize_job_list
from dispatchdesk.schemas.job import serialize_job
from dispatchdesk.services import invoice_builder
from dispatchdesk.services import job_repository as repo
from dispatchdesk.services.accounting_workflow import require_accounting_role
from dispatchdesk.services.job_view import FilterState, StatusBucket, filter_jobs, project_jobs
from dispatchdesk.services.payment_report import payment_report_csv

router = APIRouter(prefix="/billing", tags=["Billing"])

BILLING_STATUSES = [JobStatus.COMPLETED, JobStatus.BILLED]


def _filter_state(
    search: str = Query(default=""),
    start_date: Optional[date] = Query(default=None),
    end_date: Optional[date] = Query(default=None),
    subcontractor: Optional[str] = Query(default=None),
    bucket: StatusBucket = Query(default=StatusBucket.ALL),
    page: int = Query(default=1, ge=1),
) -> FilterState:
    return FilterState(
        search=search.strip(),
        start_date=start_date,
        end_date=end_date,
        subcontractor=subcontractor or None,
        bucket=bucket,
        page=page,
    )


@router.get("/jobs")
def list_billing_jobs(
    state: FilterState = Depends(_filter_state),
    _actor: Actor = Depends(require_auth),
):
    view = project_jobs(repo.list_jobs(statuses=BILLING_STATUSES), state)
    body = serialize_job_list(view)
    body["filter"] = state.to_dict()
    return body


@router.post("/invoices/preview")
def preview_invoice(payload: InvoiceRequest, actor: Actor = Depends(require_auth)):
    try:
        require_accounting_role(actor)
        jobs = repo.load_jobs(payload.job_ids)
        lookup = invoice_builder.matrix_lookup(repo.load_price_matrix())
        invoice = invoice_builder.preview_invoice(
            jobs,
            lookup,
            payload.reference_no,
            payload.issue_date,
            tax=payload.tax_options(),
        )
    except (BillingRuleError, LookupError) as exc:
        raise to_http_exception(exc) from exc
    return serialize_invoice(invoice)


@router.post("/invoices", status_code=201)
def commit_invoice(payload: InvoiceRequest, actor: Actor = Depends(require_auth)):
    try:
        invoice, stamped = repo.commit_invoice_batch(
            payload.job_ids,
            actor,
            reference_no=payload.reference_no,
            issue_date=payload.issue_date,
            tax=payload.tax_options(),
        )
    except (BillingRuleError, LookupError, BatchCommitFailed) as exc:
        raise to_http_exception(exc) from exc

    body = serialize_invoice(invoice)
    body["jobs"] = [serialize_job(j) for j in stamped]
    return body


def _reopen(document_number: str) -> invoice_builder.Invoice:
    try:
        jobs = repo.load_invoice_jobs(document_number)
        lookup = invoice_builder.matrix_lookup(repo.load_price_matrix())
        return invoice_builder.reopen_invoice(jobs, lookup)
    except (BillingRuleError, LookupError) as exc:
        raise to_http_exception(exc) from exc


@router.get("/invoices/{document_number}")
def reopen_invoice(document_number: str, _actor: Actor = Depends(require_auth)):
    return serialize_invoice(_reopen(document_number))


@router.get("/invoices/{document_number}/document.txt")
def render_invoice(document_number: str, _actor: Actor = Depends(require_auth)):
    return Response(
        content=invoice_builder.render_invoice(_reopen(document_number)),
        media_type="text/plain; charset=utf-8",
    )


@router.get("/payment-report.csv")
def payment_report(
    state: FilterState = Depends(_filter_state),
    _actor: Actor = Depends(require_auth),
):
    jobs = filter_jobs(repo.list_jobs(statuses=BILLING_STATUSES), state)
    return Response(
        content=payment_report_csv(jobs),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": 'attachment; filename="payment-report.csv"'},
    )
