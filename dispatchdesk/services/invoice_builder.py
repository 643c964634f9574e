"""
Billing acknowledgement (ใบรับวางบิล) documents.

An invoice is a computed view over a batch of approved jobs from one
subcontractor. Building it never mutates a job; `commit_invoice` returns
the stamped records and is the only place a job becomes BILLED.
"""

from dataclasses import dataclass, replace
from datetime import date, timedelta
from decimal import Decimal
from typing import Callable, List, Optional, Sequence, Tuple

from dispatchdesk.core.config import (
    CompanyProfile,
    company_profile,
    default_credit_days,
    env_bool,
    env_decimal,
    invoice_doc_prefix,
)
from dispatchdesk.core.errors import (
    EmptySelection,
    InvalidTransition,
    MissingDocumentation,
    MissingReference,
    MixedSubcontractor,
)
from dispatchdesk.models.records import ZERO, JobRecord, JobStatus, PriceMatrixEntry
from dispatchdesk.services.accounting_workflow import mark_billable
from dispatchdesk.services.baht_text import baht_text
from dispatchdesk.services.money import (
    format_currency,
    format_date,
    format_date_numeric,
    format_rate,
    round_half_up,
)

TITLE_TH = "ใบรับวางบิล"
TITLE_EN = "Billing Acknowledgement"

JOBS_PER_PAGE = 10

CASH = "CASH"
CREDIT = "CREDIT"

BASE = "BASE"
EXTRA = "EXTRA"

REMARKS = (
    "1. ได้รับเอกสารพัสดุเป็นที่เรียบร้อยและถูกต้องตามเงื่อนไขการวางบิล",
    "2. การรับชำระเงินจะดำเนินการตามรอบบัญชีที่บริษัทกำหนดไว้",
)

RECEIVER_SIGNATURE = "ผู้รับวางบิล (Receiver Signature)"
AUTHORIZED_SIGNATURE = "ผู้วางบิล / ผู้รับเงิน (Authorized By)"


@dataclass(frozen=True)
class PaymentTerms:
    payment_type: str = CREDIT
    credit_days: int = 30

    @property
    def label(self) -> str:
        if self.payment_type == CASH:
            return "เงินสด"
        return f"เครดิต {self.credit_days} วัน"


@dataclass(frozen=True)
class TaxOptions:
    apply_vat: bool = False
    vat_rate: Decimal = Decimal("7")
    apply_wht: bool = True
    wht_rate: Decimal = Decimal("1")

    @classmethod
    def from_env(cls) -> "TaxOptions":
        return cls(
            apply_vat=env_bool("DEFAULT_APPLY_VAT", False),
            vat_rate=env_decimal("DEFAULT_VAT_RATE", "7"),
            apply_wht=env_bool("DEFAULT_APPLY_WHT", True),
            wht_rate=env_decimal("DEFAULT_WHT_RATE", "1"),
        )


@dataclass(frozen=True)
class InvoiceTotals:
    subtotal: Decimal
    vat_rate: Decimal
    vat_amount: Decimal
    wht_rate: Decimal
    wht_amount: Decimal
    net_total: Decimal


@dataclass(frozen=True)
class InvoiceLine:
    kind: str
    row_number: Optional[int]
    job_id: str
    description: str
    details: str
    quantity_label: str
    unit_price: Decimal
    amount: Decimal


@dataclass(frozen=True)
class InvoiceTaxBlock:
    totals: InvoiceTotals
    amount_text: str
    remarks: Tuple[str, ...] = REMARKS


@dataclass(frozen=True)
class SignatureBlock:
    receiver_title: str = RECEIVER_SIGNATURE
    authorized_title: str = AUTHORIZED_SIGNATURE


@dataclass(frozen=True)
class InvoicePage:
    number: int
    page_count: int
    lines: Tuple[InvoiceLine, ...]
    tax_block: Optional[InvoiceTaxBlock] = None
    signatures: Optional[SignatureBlock] = None

    @property
    def footer(self) -> str:
        return f"หน้า {self.number} จาก {self.page_count}"

    @property
    def is_last(self) -> bool:
        return self.number == self.page_count


@dataclass(frozen=True)
class InvoiceHeader:
    company: CompanyProfile
    title_th: str
    title_en: str
    document_number: str
    reference_no: Optional[str]
    issue_date: date
    due_date: date
    payment_terms: PaymentTerms
    subcontractor: str


@dataclass(frozen=True)
class Invoice:
    header: InvoiceHeader
    job_ids: Tuple[str, ...]
    lines: Tuple[InvoiceLine, ...]
    totals: InvoiceTotals
    pages: Tuple[InvoicePage, ...]
    read_only: bool = False

    @property
    def document_number(self) -> str:
        return self.header.document_number

    @property
    def issue_date(self) -> date:
        return self.header.issue_date

    @property
    def due_date(self) -> date:
        return self.header.due_date

    @property
    def reference_no(self) -> Optional[str]:
        return self.header.reference_no

    @property
    def subtotal(self) -> Decimal:
        return self.totals.subtotal

    @property
    def vat_amount(self) -> Decimal:
        return self.totals.vat_amount

    @property
    def wht_amount(self) -> Decimal:
        return self.totals.wht_amount

    @property
    def net_total(self) -> Decimal:
        return self.totals.net_total


PriceLookup = Callable[[JobRecord], Optional[PriceMatrixEntry]]


def matrix_lookup(entries: Sequence[PriceMatrixEntry]) -> PriceLookup:
    """Exact match on (origin, destination, truck type, subcontractor)."""
    index = {
        (e.origin, e.destination, e.truck_type, e.subcontractor): e
        for e in entries
    }

    def lookup(job: JobRecord) -> Optional[PriceMatrixEntry]:
        return index.get((job.origin, job.destination, job.truck_type, job.subcontractor))

    return lookup


def resolve_payment_terms(jobs: Sequence[JobRecord], lookup: Optional[PriceLookup]) -> PaymentTerms:
    fallback = default_credit_days()
    if not jobs or lookup is None:
        return PaymentTerms(CREDIT, fallback)

    entry = lookup(jobs[0])
    if entry is None:
        return PaymentTerms(CREDIT, fallback)
    if entry.payment_type == CASH:
        return PaymentTerms(CASH, 0)
    return PaymentTerms(CREDIT, entry.credit_days if entry.credit_days is not None else fallback)


def document_number_for(jobs: Sequence[JobRecord], issue_date: date, prefix: Optional[str] = None) -> str:
    suffix = jobs[0].id.split("-")[-1]
    return f"{prefix or invoice_doc_prefix()}-{issue_date:%Y%m}-{suffix}"


def compute_totals(jobs: Sequence[JobRecord], tax: TaxOptions) -> InvoiceTotals:
    subtotal = round_half_up(sum((j.cost + j.extra_charge for j in jobs), ZERO))
    vat_rate = Decimal(tax.vat_rate) if tax.apply_vat else ZERO
    wht_rate = Decimal(tax.wht_rate) if tax.apply_wht else ZERO
    vat = round_half_up(subtotal * vat_rate / 100) if tax.apply_vat else ZERO
    wht = round_half_up(subtotal * wht_rate / 100) if tax.apply_wht else ZERO
    return InvoiceTotals(
        subtotal=subtotal,
        vat_rate=vat_rate,
        vat_amount=vat,
        wht_rate=wht_rate,
        wht_amount=wht,
        net_total=round_half_up(subtotal + vat - wht),
    )


def validate_selection(
    jobs: Sequence[JobRecord],
    reference_no: Optional[str] = None,
    *,
    require_reference: bool = True,
) -> None:
    if not jobs:
        raise EmptySelection()

    missing = sum(1 for j in jobs if not j.has_pod)
    if missing:
        raise MissingDocumentation(missing)

    if len({j.subcontractor for j in jobs}) > 1:
        raise MixedSubcontractor()

    if require_reference and not (reference_no or "").strip():
        raise MissingReference()


def _job_lines(job: JobRecord, row_number: int) -> List[InvoiceLine]:
    lines = [
        InvoiceLine(
            kind=BASE,
            row_number=row_number,
            job_id=job.id,
            description=f"ค่าระวางขนส่ง: {job.origin} - {job.destination}",
            details=(
                f"Service: {format_date(job.date_of_service)} | "
                f"Truck: {job.license_plate or '-'} ({job.truck_type or '-'})"
            ),
            quantity_label="1 Trip",
            unit_price=job.cost,
            amount=job.cost,
        )
    ]
    if job.extra_charge > 0:
        lines.append(
            InvoiceLine(
                kind=EXTRA,
                row_number=None,
                job_id=job.id,
                description="- Extra Charge / ค่าใช้จ่ายเพิ่มเติม",
                details="",
                quantity_label="1 Job",
                unit_price=job.extra_charge,
                amount=job.extra_charge,
            )
        )
    return lines


def paginate(jobs: Sequence[JobRecord], totals: InvoiceTotals) -> Tuple[InvoicePage, ...]:
    """Ten jobs per page; an extra-charge line always stays with its base line."""
    chunks = [jobs[i:i + JOBS_PER_PAGE] for i in range(0, len(jobs), JOBS_PER_PAGE)] or [[]]
    page_count = len(chunks)

    pages = []
    row = 0
    for index, chunk in enumerate(chunks, start=1):
        lines: List[InvoiceLine] = []
        for job in chunk:
            row += 1
            lines.extend(_job_lines(job, row))

        last = index == page_count
        pages.append(
            InvoicePage(
                number=index,
                page_count=page_count,
                lines=tuple(lines),
                tax_block=InvoiceTaxBlock(totals, baht_text(totals.net_total)) if last else None,
                signatures=SignatureBlock() if last else None,
            )
        )
    return tuple(pages)


def _assemble(
    jobs: Sequence[JobRecord],
    *,
    document_number: str,
    reference_no: Optional[str],
    issue_date: date,
    due_date: date,
    terms: PaymentTerms,
    totals: InvoiceTotals,
    read_only: bool,
) -> Invoice:
    header = InvoiceHeader(
        company=company_profile(),
        title_th=TITLE_TH,
        title_en=TITLE_EN,
        document_number=document_number,
        reference_no=(reference_no or "").strip() or None,
        issue_date=issue_date,
        due_date=due_date,
        payment_terms=terms,
        subcontractor=jobs[0].subcontractor or "-",
    )
    pages = paginate(jobs, totals)
    return Invoice(
        header=header,
        job_ids=tuple(j.id for j in jobs),
        lines=tuple(line for page in pages for line in page.lines),
        totals=totals,
        pages=pages,
        read_only=read_only,
    )


def build_invoice(
    jobs: Sequence[JobRecord],
    lookup: Optional[PriceLookup] = None,
    reference_no: Optional[str] = None,
    issue_date: Optional[date] = None,
    due_date: Optional[date] = None,
    *,
    tax: Optional[TaxOptions] = None,
    document_number: Optional[str] = None,
    require_reference: bool = True,
) -> Invoice:
    """
    Validate the selection and compute the document. Nothing is stamped.

    `require_reference=False` is the preview mode: the reference number is
    only demanded at confirmation time. When `due_date` is omitted it is the
    issue date plus the resolved credit term.
    """
    validate_selection(jobs, reference_no, require_reference=require_reference)

    jobs = list(jobs)
    issued = issue_date or date.today()
    terms = resolve_payment_terms(jobs, lookup)
    totals = compute_totals(jobs, tax or TaxOptions.from_env())

    return _assemble(
        jobs,
        document_number=document_number or document_number_for(jobs, issued),
        reference_no=reference_no,
        issue_date=issued,
        due_date=due_date or issued + timedelta(days=terms.credit_days),
        terms=terms,
        totals=totals,
        read_only=False,
    )


def preview_invoice(
    jobs: Sequence[JobRecord],
    lookup: Optional[PriceLookup] = None,
    reference_no: Optional[str] = None,
    issue_date: Optional[date] = None,
    *,
    tax: Optional[TaxOptions] = None,
) -> Invoice:
    return build_invoice(
        jobs,
        lookup,
        reference_no,
        issue_date,
        tax=tax,
        require_reference=False,
    )


def reopen_invoice(jobs: Sequence[JobRecord], lookup: Optional[PriceLookup] = None) -> Invoice:
    """
    Rebuild a committed document from the figures stamped on its jobs.
    Tax, payment terms and due date are never recomputed; the result is
    read-only and cannot be committed.
    """
    if not jobs:
        raise EmptySelection()

    jobs = sorted(jobs, key=lambda j: j.id)
    first = jobs[0]
    doc_nos = {j.billing_doc_no for j in jobs}
    if len(doc_nos) != 1 or first.billing_doc_no is None:
        raise InvalidTransition("Jobs do not belong to a single committed invoice")

    subtotal = round_half_up(sum((j.cost + j.extra_charge for j in jobs), ZERO))
    totals = InvoiceTotals(
        subtotal=subtotal,
        vat_rate=first.billing_vat_rate or ZERO,
        vat_amount=first.billing_vat_amount or ZERO,
        wht_rate=first.billing_wht_rate or ZERO,
        wht_amount=first.billing_wht_amount or ZERO,
        net_total=(
            first.billing_net_total
            if first.billing_net_total is not None
            else round_half_up(subtotal + (first.billing_vat_amount or ZERO) - (first.billing_wht_amount or ZERO))
        ),
    )
    issued = first.billing_date or date.today()
    if first.billing_payment_type is not None:
        terms = PaymentTerms(first.billing_payment_type, first.billing_credit_days or 0)
    else:
        terms = resolve_payment_terms(jobs, lookup)
    due = first.billing_due_date or issued + timedelta(days=terms.credit_days)

    return _assemble(
        jobs,
        document_number=first.billing_doc_no,
        reference_no=first.reference_no,
        issue_date=issued,
        due_date=due,
        terms=terms,
        totals=totals,
        read_only=True,
    )


def commit_invoice(invoice: Invoice, jobs: Sequence[JobRecord]) -> List[JobRecord]:
    """
    Stamp every job of the batch as BILLED. Either every job is returned
    stamped or an error is raised before any record is built.
    """
    if invoice.read_only:
        raise InvalidTransition("A reopened invoice is read-only and cannot be committed")
    if not invoice.reference_no:
        raise MissingReference()
    if sorted(j.id for j in jobs) != sorted(invoice.job_ids):
        raise InvalidTransition("Jobs do not match the invoice being committed")

    validate_selection(jobs, invoice.reference_no)
    for job in jobs:
        mark_billable(job)

    totals = invoice.totals
    return [
        replace(
            job,
            status=JobStatus.BILLED,
            billing_doc_no=invoice.document_number,
            billing_date=invoice.issue_date,
            reference_no=invoice.reference_no,
            billing_vat_rate=totals.vat_rate,
            billing_vat_amount=totals.vat_amount,
            billing_wht_rate=totals.wht_rate,
            billing_wht_amount=totals.wht_amount,
            billing_net_total=totals.net_total,
            billing_due_date=invoice.header.due_date,
            billing_payment_type=invoice.header.payment_terms.payment_type,
            billing_credit_days=invoice.header.payment_terms.credit_days,
        )
        for job in jobs
    ]


class TextRenderer:
    """Plain-text DocumentRenderer; stands in for a PDF engine."""

    width = 78

    def render(self, invoice: Invoice) -> bytes:
        return "\f".join(self._page(invoice, page) for page in invoice.pages).encode("utf-8")

    def _page(self, invoice: Invoice, page: InvoicePage) -> str:
        h = invoice.header
        rule = "-" * self.width
        out = [
            h.company.name_th,
            h.company.name_en,
            h.company.address,
            h.company.tax_line,
            rule,
            f"{h.title_th} / {h.title_en}",
            f"เลขที่ No: {h.document_number}",
            f"เอกสารอ้างอิง Ref: {h.reference_no or '________________'}",
            f"วันที่ Date: {format_date_numeric(h.issue_date)}",
            f"กำหนด Due: {format_date_numeric(h.due_date)}",
            f"เงื่อนไข: {h.payment_terms.label}",
            f"SUBCONTRACTOR: {h.subcontractor}",
            rule,
        ]
        for line in page.lines:
            row = str(line.row_number) if line.row_number is not None else ""
            out.append(
                f"{row:>3} {line.description:<40} {line.quantity_label:>7} "
                f"{format_currency(line.unit_price):>12} {format_currency(line.amount):>12}"
            )
            if line.details:
                out.append(f"    {line.details}")

        if page.tax_block is not None:
            t = page.tax_block.totals
            out.append(rule)
            out.append(f"รวมเงิน Subtotal: {format_currency(t.subtotal)}")
            if t.vat_amount:
                out.append(f"VAT {format_rate(t.vat_rate)}%: {format_currency(t.vat_amount)}")
            if t.wht_amount:
                out.append(f"หัก ณ ที่จ่าย WHT {format_rate(t.wht_rate)}%: -{format_currency(t.wht_amount)}")
            out.append(f"ยอดสุทธิ Net Total: {format_currency(t.net_total)}")
            out.append(f"({page.tax_block.amount_text})")
            out.append("Remarks / หมายเหตุ")
            out.extend(page.tax_block.remarks)

        if page.signatures is not None:
            out.append("")
            out.append(f"{page.signatures.receiver_title}    {page.signatures.authorized_title}")

        out.append(page.footer)
        return "\n".join(out)


def render_invoice(invoice: Invoice, renderer=None) -> bytes:
    return (renderer or TextRenderer()).render(invoice)
