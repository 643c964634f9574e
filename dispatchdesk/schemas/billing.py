from datetime import date
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from dispatchdesk.services.baht_text import baht_text
from dispatchdesk.services.invoice_builder import Invoice, InvoiceLine, TaxOptions
from dispatchdesk.services.job_view import JobListView
from dispatchdesk.services.money import format_currency, format_rate
from dispatchdesk.schemas.job import serialize_job


class AccountingActionRequest(BaseModel):
    reason: Optional[str] = None
    confirmed: bool = True


class PaymentRequest(BaseModel):
    job_ids: List[str] = Field(min_length=1)
    payment_date: date
    slip_ref: Optional[str] = None


class InvoiceRequest(BaseModel):
    job_ids: List[str] = Field(default_factory=list)
    reference_no: Optional[str] = None
    issue_date: Optional[date] = None
    apply_vat: Optional[bool] = None
    vat_rate: Optional[Decimal] = Field(default=None, ge=0, le=100)
    apply_wht: Optional[bool] = None
    wht_rate: Optional[Decimal] = Field(default=None, ge=0, le=100)

    def tax_options(self) -> TaxOptions:
        base = TaxOptions.from_env()
        return TaxOptions(
            apply_vat=base.apply_vat if self.apply_vat is None else self.apply_vat,
            vat_rate=base.vat_rate if self.vat_rate is None else self.vat_rate,
            apply_wht=base.apply_wht if self.apply_wht is None else self.apply_wht,
            wht_rate=base.wht_rate if self.wht_rate is None else self.wht_rate,
        )


def _line(line: InvoiceLine) -> dict:
    return {
        "kind": line.kind,
        "row_number": line.row_number,
        "job_id": line.job_id,
        "description": line.description,
        "details": line.details,
        "quantity": line.quantity_label,
        "unit_price": format_currency(line.unit_price),
        "amount": format_currency(line.amount),
    }


def serialize_invoice(invoice: Invoice) -> dict:
    h = invoice.header
    t = invoice.totals
    return {
        "document_number": h.document_number,
        "reference_no": h.reference_no,
        "issue_date": h.issue_date.isoformat(),
        "due_date": h.due_date.isoformat(),
        "payment_terms": {
            "payment_type": h.payment_terms.payment_type,
            "credit_days": h.payment_terms.credit_days,
            "label": h.payment_terms.label,
        },
        "subcontractor": h.subcontractor,
        "company": {
            "name_th": h.company.name_th,
            "name_en": h.company.name_en,
            "address": h.company.address,
            "tax_line": h.company.tax_line,
        },
        "title": f"{h.title_th} / {h.title_en}",
        "job_ids": list(invoice.job_ids),
        "read_only": invoice.read_only,
        "totals": {
            "subtotal": f"{t.subtotal:.2f}",
            "vat_rate": format_rate(t.vat_rate),
            "vat_amount": f"{t.vat_amount:.2f}",
            "wht_rate": format_rate(t.wht_rate),
            "wht_amount": f"{t.wht_amount:.2f}",
            "net_total": f"{t.net_total:.2f}",
            "net_total_text": baht_text(t.net_total),
        },
        "pages": [
            {
                "number": p.number,
                "footer": p.footer,
                "lines": [_line(line) for line in p.lines],
                "has_summary": p.tax_block is not None,
            }
            for p in invoice.pages
        ],
    }


def serialize_job_list(view: JobListView) -> dict:
    return {
        "items": [serialize_job(j) for j in view.items],
        "page": view.page,
        "page_count": view.page_count,
        "total_count": view.total_count,
        "totals": {
            "cost": f"{view.totals.cost:.2f}",
            "extra_charge": f"{view.totals.extra_charge:.2f}",
            "total": f"{view.totals.total:.2f}",
        },
        "counts": {
            "pending_review": view.counts.pending_review,
            "ready_to_bill": view.counts.ready_to_bill,
            "ready_to_lock": view.counts.ready_to_lock,
        },
        "bucket_counts": dict(view.bucket_counts),
        "subcontractors": list(view.subcontractors),
    }
