from dataclasses import replace
from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from dispatchdesk.core.errors import (
    BaseCostLocked,
    InvalidTransition,
    SegregationOfDutiesViolation,
)
from dispatchdesk.models.records import AccountingStatus, Actor, JobStatus, Role
from dispatchdesk.services.job_operations import (
    IMAGE,
    PDF,
    assign_job,
    attach_pod,
    cancel_job,
    complete_job,
    create_job,
    new_job_id,
    pod_kind,
    update_cost,
)
from dispatchdesk.services.money import MAX_AMOUNT

DISPATCHER = Actor("u-dis", "Somchai", Role.DISPATCHER)
ACCOUNTANT = Actor("u-acc", "Ploy", Role.ACCOUNTANT)
NOW = datetime(2026, 10, 19, 9, 0, tzinfo=timezone.utc)


def _new_job():
    return create_job(
        DISPATCHER,
        origin="Bangkok",
        destination="Chiang Mai",
        truck_type="6W",
        date_of_service=date(2026, 10, 5),
        job_id="JOB-2610-0001",
        now=NOW,
    ).job


def _completed_job():
    job = assign_job(_new_job(), DISPATCHER, subcontractor="SiamTruck", cost="1500").job
    return complete_job(job, DISPATCHER, pod_documents=["pod/1.jpg"]).job


def test_create_job_records_status_audit():
    result = create_job(
        DISPATCHER,
        origin="Bangkok",
        destination="Chiang Mai",
        truck_type="6W",
        date_of_service=date(2026, 10, 5),
        now=NOW,
    )
    assert result.job.status == JobStatus.NEW_REQUEST
    assert result.job.id.startswith("JOB-2610-")
    [entry] = result.audit_entries
    assert entry.field == "Status"
    assert entry.new_value == "NEW_REQUEST"
    assert entry.user_role == "DISPATCHER"


def test_new_job_id_format():
    job_id = new_job_id(date(2026, 1, 31))
    prefix, yymm, suffix = job_id.split("-")
    assert (prefix, yymm) == ("JOB", "2601")
    assert len(suffix) == 6
    assert suffix == suffix.upper()


def test_accountant_cannot_run_operations():
    with pytest.raises(SegregationOfDutiesViolation):
        create_job(ACCOUNTANT, origin="A", destination="B", truck_type="4W")
    with pytest.raises(SegregationOfDutiesViolation):
        assign_job(_new_job(), ACCOUNTANT, subcontractor="SiamTruck", cost=100)


def test_assign_then_reassign_only_audits_status_change():
    first = assign_job(_new_job(), DISPATCHER, subcontractor=" SiamTruck ", cost="1500.005")
    assert first.job.status == JobStatus.ASSIGNED
    assert first.job.subcontractor == "SiamTruck"
    assert first.job.cost == Decimal("1500.01")
    assert len(first.audit_entries) == 1

    again = assign_job(first.job, DISPATCHER, subcontractor="NorthLine", cost=1200)
    assert again.job.subcontractor == "NorthLine"
    assert again.audit_entries == ()


def test_assign_requires_subcontractor_and_non_negative_cost():
    with pytest.raises(InvalidTransition):
        assign_job(_new_job(), DISPATCHER, subcontractor="  ", cost=100)
    with pytest.raises(InvalidTransition):
        assign_job(_new_job(), DISPATCHER, subcontractor="SiamTruck", cost=-1)


def test_assign_rejects_amounts_beyond_ceiling():
    with pytest.raises(InvalidTransition):
        assign_job(_new_job(), DISPATCHER, subcontractor="SiamTruck", cost="1e30")
    with pytest.raises(InvalidTransition):
        assign_job(_new_job(), DISPATCHER, subcontractor="SiamTruck", cost="Infinity")

    top = assign_job(_new_job(), DISPATCHER, subcontractor="SiamTruck", cost=MAX_AMOUNT)
    assert top.job.cost == MAX_AMOUNT


def test_complete_requires_assigned():
    with pytest.raises(InvalidTransition):
        complete_job(_new_job(), DISPATCHER)

    job = _completed_job()
    assert job.status == JobStatus.COMPLETED
    assert job.pod_documents == ("pod/1.jpg",)


def test_attach_pod_appends_and_skips_blanks():
    job = _completed_job()
    result = attach_pod(job, DISPATCHER, ["pod/2.pdf", "  ", ""])
    assert result.job.pod_documents == ("pod/1.jpg", "pod/2.pdf")
    assert result.audit_entries[0].field == "POD"

    noop = attach_pod(job, DISPATCHER, [" "])
    assert noop.job == job
    assert noop.audit_entries == ()


def test_attach_pod_refused_after_approval():
    job = replace(_completed_job(), accounting_status=AccountingStatus.APPROVED, is_base_cost_locked=True)
    with pytest.raises(InvalidTransition):
        attach_pod(job, DISPATCHER, ["pod/late.jpg"])


def test_update_cost_writes_cost_audit():
    job = _completed_job()
    result = update_cost(job, DISPATCHER, extra_charge="250", reason="  toll  ")
    assert result.job.extra_charge == Decimal("250.00")
    [entry] = result.audit_entries
    assert entry.field == "Cost"
    assert entry.old_value == "1,500.00 + 0.00"
    assert entry.new_value == "1,500.00 + 250.00"
    assert entry.reason == "toll"


def test_update_cost_without_change_is_noop():
    job = _completed_job()
    result = update_cost(job, DISPATCHER, cost="1500")
    assert result.job is job
    assert result.audit_entries == ()


def test_update_cost_blocked_once_cost_locked():
    job = replace(_completed_job(), accounting_status=AccountingStatus.APPROVED, is_base_cost_locked=True)
    with pytest.raises(BaseCostLocked):
        update_cost(job, DISPATCHER, cost=999)


def test_locked_job_refuses_every_operation():
    job = replace(_completed_job(), accounting_status=AccountingStatus.LOCKED, is_base_cost_locked=True)
    with pytest.raises(InvalidTransition):
        cancel_job(job, DISPATCHER)
    with pytest.raises(InvalidTransition):
        update_cost(job, DISPATCHER, cost=1)


def test_cancel_rules():
    result = cancel_job(_new_job(), DISPATCHER, "customer called off")
    assert result.job.status == JobStatus.CANCELLED
    assert result.audit_entries[0].reason == "customer called off"

    with pytest.raises(InvalidTransition):
        cancel_job(result.job, DISPATCHER)

    billed = replace(_completed_job(), status=JobStatus.BILLED)
    with pytest.raises(InvalidTransition):
        cancel_job(billed, DISPATCHER)

    approved = replace(_completed_job(), accounting_status=AccountingStatus.APPROVED)
    with pytest.raises(InvalidTransition):
        cancel_job(approved, DISPATCHER)


@pytest.mark.parametrize(
    "ref,kind",
    [
        ("pod/1.jpg", IMAGE),
        ("https://cdn.example.com/pod/1.PDF?sig=abc", PDF),
        ("data:application/pdf;base64,AAAA", PDF),
        ("data:image/png;base64,AAAA", IMAGE),
        ("", IMAGE),
    ],
)
def test_pod_kind(ref, kind):
    assert pod_kind(ref) == kind
