from dataclasses import replace
from datetime import date
from decimal import Decimal

import pytest

from dispatchdesk.core.errors import (
    EmptySelection,
    InvalidTransition,
    MissingDocumentation,
    MissingReference,
    MixedSubcontractor,
)
from dispatchdesk.models.records import AccountingStatus, JobRecord, JobStatus, PriceMatrixEntry
from dispatchdesk.services.invoice_builder import (
    TaxOptions,
    TextRenderer,
    build_invoice,
    commit_invoice,
    matrix_lookup,
    preview_invoice,
    render_invoice,
    reopen_invoice,
)

ISSUED = date(2026, 10, 19)
VAT_AND_WHT = TaxOptions(apply_vat=True, vat_rate=Decimal("7"), apply_wht=True, wht_rate=Decimal("1"))


def _job(job_id: str, cost="1000", extra="0", **kw) -> JobRecord:
    base = dict(
        id=job_id,
        status=JobStatus.COMPLETED,
        date_of_service=date(2026, 10, 1),
        origin="Bangkok",
        destination="Nakhon Sawan",
        truck_type="6W",
        subcontractor="SiamTruck",
        license_plate="70-1234",
        cost=Decimal(cost),
        extra_charge=Decimal(extra),
        pod_documents=(f"pod/{job_id}.jpg",),
        accounting_status=AccountingStatus.APPROVED,
        is_base_cost_locked=True,
    )
    base.update(kw)
    return JobRecord(**base)


def _pair():
    return [_job("JOB-2610-A1", "1000", "0"), _job("JOB-2610-A2", "500", "50")]


def test_totals_with_vat_and_wht():
    invoice = build_invoice(_pair(), reference_no="PO-1", issue_date=ISSUED, tax=VAT_AND_WHT)

    assert invoice.subtotal == Decimal("1550.00")
    assert invoice.vat_amount == Decimal("108.50")
    assert invoice.wht_amount == Decimal("15.50")
    assert invoice.net_total == Decimal("1643.00")
    assert invoice.pages[-1].tax_block.amount_text == "หนึ่งพันหกร้อยสี่สิบสามบาทถ้วน"


def test_default_tax_options_come_from_environment(monkeypatch):
    invoice = build_invoice(_pair(), reference_no="PO-1", issue_date=ISSUED)
    assert invoice.vat_amount == Decimal("0.00")
    assert invoice.wht_amount == Decimal("15.50")
    assert invoice.net_total == Decimal("1534.50")

    monkeypatch.setenv("DEFAULT_APPLY_VAT", "true")
    monkeypatch.setenv("DEFAULT_APPLY_WHT", "false")
    invoice = build_invoice(_pair(), reference_no="PO-1", issue_date=ISSUED)
    assert invoice.vat_amount == Decimal("108.50")
    assert invoice.wht_amount == Decimal("0.00")


def test_document_number_is_deterministic(monkeypatch):
    a = build_invoice(_pair(), reference_no="PO-1", issue_date=ISSUED)
    b = build_invoice(_pair(), reference_no="PO-2", issue_date=ISSUED)
    assert a.document_number == "BA-202610-A1"
    assert a.document_number == b.document_number

    monkeypatch.setenv("INVOICE_DOC_PREFIX", "BL")
    assert build_invoice(_pair(), reference_no="PO-1", issue_date=ISSUED).document_number == "BL-202610-A1"


def test_supplied_document_number_is_reused():
    invoice = build_invoice(_pair(), reference_no="PO-1", issue_date=ISSUED, document_number="BA-202601-XYZ")
    assert invoice.document_number == "BA-202601-XYZ"


def test_empty_selection():
    with pytest.raises(EmptySelection):
        build_invoice([], reference_no="PO-1")


def test_missing_pod_reports_offending_count():
    jobs = [_job("J-1", pod_documents=()), _job("J-2", pod_documents=()), _job("J-3")]
    with pytest.raises(MissingDocumentation) as exc:
        build_invoice(jobs, reference_no="PO-1")
    assert exc.value.count == 2
    assert exc.value.to_dict()["count"] == 2


def test_mixed_subcontractor_is_rejected_without_mutation():
    jobs = [_job("J-1"), _job("J-2", subcontractor="OtherCo")]
    snapshot = list(jobs)
    with pytest.raises(MixedSubcontractor):
        build_invoice(jobs, reference_no="PO-1")
    assert jobs == snapshot
    assert all(j.status == JobStatus.COMPLETED for j in jobs)


def test_missing_documentation_is_checked_before_subcontractor():
    jobs = [_job("J-1", pod_documents=()), _job("J-2", subcontractor="OtherCo")]
    with pytest.raises(MissingDocumentation):
        build_invoice(jobs, reference_no="PO-1")


def test_reference_is_only_required_at_confirmation():
    invoice = preview_invoice(_pair(), issue_date=ISSUED)
    assert invoice.reference_no is None

    with pytest.raises(MissingReference):
        build_invoice(_pair(), reference_no="  ", issue_date=ISSUED)


def test_default_payment_terms_without_matrix_match():
    invoice = build_invoice(_pair(), matrix_lookup([]), "PO-1", ISSUED)
    terms = invoice.header.payment_terms
    assert terms.payment_type == "CREDIT"
    assert terms.credit_days == 30
    assert terms.label == "เครดิต 30 วัน"
    assert invoice.due_date == date(2026, 11, 18)


def test_payment_terms_from_price_matrix():
    cash = PriceMatrixEntry("Bangkok", "Nakhon Sawan", "6W", "SiamTruck", payment_type="CASH")
    invoice = build_invoice(_pair(), matrix_lookup([cash]), "PO-1", ISSUED)
    assert invoice.header.payment_terms.label == "เงินสด"
    assert invoice.due_date == ISSUED

    credit = PriceMatrixEntry("Bangkok", "Nakhon Sawan", "6W", "SiamTruck", credit_days=45)
    invoice = build_invoice(_pair(), matrix_lookup([credit]), "PO-1", ISSUED)
    assert invoice.header.payment_terms.credit_days == 45

    other_route = PriceMatrixEntry("Bangkok", "Chiang Mai", "6W", "SiamTruck", credit_days=7)
    invoice = build_invoice(_pair(), matrix_lookup([other_route]), "PO-1", ISSUED)
    assert invoice.header.payment_terms.credit_days == 30


def test_extra_charge_adds_a_line_beneath_its_job():
    invoice = build_invoice(_pair(), reference_no="PO-1", issue_date=ISSUED)
    kinds = [(line.kind, line.job_id, line.row_number) for line in invoice.lines]
    assert kinds == [
        ("BASE", "JOB-2610-A1", 1),
        ("BASE", "JOB-2610-A2", 2),
        ("EXTRA", "JOB-2610-A2", None),
    ]


def test_pagination_ten_jobs_per_page_with_summary_on_last():
    jobs = [_job(f"JOB-2610-{i:04d}", extra="10" if i % 3 == 0 else "0") for i in range(1, 13)]
    invoice = build_invoice(jobs, reference_no="PO-1", issue_date=ISSUED)

    assert len(invoice.pages) == 2
    first, last = invoice.pages
    assert [l.row_number for l in first.lines if l.kind == "BASE"] == list(range(1, 11))
    assert [l.row_number for l in last.lines if l.kind == "BASE"] == [11, 12]
    assert first.tax_block is None and first.signatures is None
    assert last.tax_block is not None and last.signatures is not None
    assert first.footer == "หน้า 1 จาก 2"
    assert last.footer == "หน้า 2 จาก 2"

    for page in invoice.pages:
        job_ids = {l.job_id for l in page.lines}
        assert all(l.job_id in job_ids for l in page.lines if l.kind == "EXTRA")


def test_commit_stamps_every_job_and_leaves_inputs_untouched():
    jobs = _pair()
    invoice = build_invoice(jobs, reference_no="PO-1", issue_date=ISSUED, tax=VAT_AND_WHT)
    stamped = commit_invoice(invoice, jobs)

    assert [j.status for j in jobs] == [JobStatus.COMPLETED, JobStatus.COMPLETED]
    for job in stamped:
        assert job.status == JobStatus.BILLED
        assert job.billing_doc_no == "BA-202610-A1"
        assert job.billing_date == ISSUED
        assert job.reference_no == "PO-1"
        assert job.billing_vat_rate == Decimal("7")
        assert job.billing_vat_amount == Decimal("108.50")
        assert job.billing_wht_amount == Decimal("15.50")
        assert job.billing_net_total == Decimal("1643.00")


def test_commit_rejects_jobs_not_in_invoice():
    invoice = build_invoice(_pair(), reference_no="PO-1", issue_date=ISSUED)
    with pytest.raises(InvalidTransition):
        commit_invoice(invoice, _pair()[:1])


def test_commit_rejects_unapproved_job():
    jobs = _pair()
    invoice = build_invoice(jobs, reference_no="PO-1", issue_date=ISSUED)
    jobs[1] = replace(jobs[1], accounting_status=AccountingStatus.PENDING_REVIEW)
    with pytest.raises(InvalidTransition):
        commit_invoice(invoice, jobs)


def test_reopen_uses_stored_figures(monkeypatch):
    jobs = _pair()
    invoice = build_invoice(jobs, reference_no="PO-1", issue_date=ISSUED, tax=VAT_AND_WHT)
    stamped = commit_invoice(invoice, jobs)

    # toggles changing afterwards must not alter the reopened document
    monkeypatch.setenv("DEFAULT_APPLY_VAT", "false")
    monkeypatch.setenv("DEFAULT_APPLY_WHT", "false")
    reopened = reopen_invoice(list(reversed(stamped)))

    assert reopened.read_only is True
    assert reopened.document_number == invoice.document_number
    assert reopened.reference_no == "PO-1"
    assert reopened.totals == invoice.totals

    with pytest.raises(InvalidTransition):
        commit_invoice(reopened, stamped)


def test_reopen_keeps_payment_terms_from_commit():
    jobs = _pair()
    credit = PriceMatrixEntry("Bangkok", "Nakhon Sawan", "6W", "SiamTruck", credit_days=45)
    invoice = build_invoice(jobs, matrix_lookup([credit]), "PO-1", ISSUED)
    stamped = commit_invoice(invoice, jobs)

    assert {j.billing_due_date for j in stamped} == {date(2026, 12, 3)}
    assert {j.billing_payment_type for j in stamped} == {"CREDIT"}
    assert {j.billing_credit_days for j in stamped} == {45}

    # the route switches to cash after billing
    cash = PriceMatrixEntry("Bangkok", "Nakhon Sawan", "6W", "SiamTruck", payment_type="CASH")
    reopened = reopen_invoice(stamped, matrix_lookup([cash]))

    assert reopened.due_date == date(2026, 12, 3)
    assert reopened.header.payment_terms.payment_type == "CREDIT"
    assert reopened.header.payment_terms.label == "เครดิต 45 วัน"


def test_reopen_without_stored_terms_falls_back_to_lookup():
    jobs = _pair()
    invoice = build_invoice(jobs, reference_no="PO-1", issue_date=ISSUED)
    legacy = [
        replace(j, billing_due_date=None, billing_payment_type=None, billing_credit_days=None)
        for j in commit_invoice(invoice, jobs)
    ]

    cash = PriceMatrixEntry("Bangkok", "Nakhon Sawan", "6W", "SiamTruck", payment_type="CASH")
    reopened = reopen_invoice(legacy, matrix_lookup([cash]))

    assert reopened.header.payment_terms.label == "เงินสด"
    assert reopened.due_date == ISSUED


def test_reopen_requires_a_single_committed_invoice():
    with pytest.raises(InvalidTransition):
        reopen_invoice(_pair())


def test_text_renderer_produces_every_page():
    jobs = [_job(f"JOB-2610-{i:04d}") for i in range(1, 12)]
    invoice = build_invoice(jobs, reference_no="PO-77", issue_date=ISSUED, tax=VAT_AND_WHT)

    text = render_invoice(invoice).decode("utf-8")
    assert "ใบรับวางบิล / Billing Acknowledgement" in text
    assert "BA-202610-0001" in text
    assert "PO-77" in text
    assert "หน้า 1 จาก 2" in text
    assert "หน้า 2 จาก 2" in text
    assert "VAT 7%" in text
    assert text.count("\f") == 1
    assert TextRenderer().render(invoice) == render_invoice(invoice)
