from datetime import date, timedelta
from decimal import Decimal

from dispatchdesk.models.records import AccountingStatus, JobRecord, JobStatus
from dispatchdesk.services.job_view import FilterState, StatusBucket, filter_jobs, project_jobs


def _job(job_id, status=JobStatus.COMPLETED, accounting=None, sub="SiamTruck", day=1, cost="100", extra="0"):
    return JobRecord(
        id=job_id,
        status=status,
        date_of_service=date(2026, 10, day) if day else None,
        subcontractor=sub,
        cost=Decimal(cost),
        extra_charge=Decimal(extra),
        accounting_status=accounting,
    )


def _ids(jobs):
    return [j.id for j in jobs]


def test_cancelled_and_open_jobs_never_appear():
    jobs = [
        _job("J-1"),
        _job("J-2", status=JobStatus.CANCELLED),
        _job("J-3", status=JobStatus.ASSIGNED),
        _job("J-4", status=JobStatus.NEW_REQUEST),
        _job("J-5", status=JobStatus.BILLED, accounting=AccountingStatus.APPROVED),
    ]
    for bucket in StatusBucket:
        for search in ["", "J-2", "siam"]:
            view = project_jobs(jobs, FilterState(search=search, bucket=bucket))
            assert "J-2" not in _ids(view.filtered)
            assert "J-3" not in _ids(view.filtered)
            assert "J-4" not in _ids(view.filtered)


def test_search_matches_id_or_subcontractor_case_insensitively():
    jobs = [_job("JOB-AAA", sub="SiamTruck"), _job("JOB-BBB", sub="NorthLine")]
    assert _ids(filter_jobs(jobs, FilterState(search="siam"))) == ["JOB-AAA"]
    assert _ids(filter_jobs(jobs, FilterState(search="bbb"))) == ["JOB-BBB"]


def test_date_range_is_inclusive_and_undated_jobs_never_appear():
    jobs = [_job("J-1", day=1), _job("J-5", day=5), _job("J-9", day=9), _job("J-X", day=None)]
    state = FilterState(start_date=date(2026, 10, 1), end_date=date(2026, 10, 5))
    assert _ids(filter_jobs(jobs, state)) == ["J-5", "J-1"]
    assert "J-X" not in _ids(filter_jobs(jobs, FilterState()))


def test_subcontractor_filter_is_exact():
    jobs = [_job("J-1", sub="SiamTruck"), _job("J-2", sub="SiamTruck Co")]
    assert _ids(filter_jobs(jobs, FilterState(subcontractor="SiamTruck"))) == ["J-1"]


def test_buckets():
    jobs = [
        _job("J-unset"),
        _job("J-pending", accounting=AccountingStatus.PENDING_REVIEW),
        _job("J-approved", accounting=AccountingStatus.APPROVED),
        _job("J-rejected", accounting=AccountingStatus.REJECTED),
        _job("J-billed", status=JobStatus.BILLED, accounting=AccountingStatus.APPROVED),
        _job("J-paid", status=JobStatus.BILLED, accounting=AccountingStatus.PAID),
        _job("J-locked", status=JobStatus.BILLED, accounting=AccountingStatus.LOCKED),
    ]

    def bucket(b):
        return sorted(_ids(filter_jobs(jobs, FilterState(bucket=b))))

    assert bucket(StatusBucket.PENDING_REVIEW) == ["J-pending", "J-unset"]
    assert bucket(StatusBucket.PENDING_BILL) == ["J-approved"]
    assert bucket(StatusBucket.APPROVED) == ["J-approved", "J-billed"]
    assert bucket(StatusBucket.TO_PAY) == ["J-billed"]
    assert bucket(StatusBucket.SETTLED) == ["J-locked", "J-paid"]
    assert bucket(StatusBucket.LOCKED) == ["J-locked"]
    assert len(bucket(StatusBucket.ALL)) == 7


def test_pagination_is_most_recent_first():
    base = date(2026, 9, 1)
    jobs = [
        JobRecord(id=f"J-{i:02d}", status=JobStatus.COMPLETED, date_of_service=base + timedelta(days=i))
        for i in range(23)
    ]

    view = project_jobs(jobs, FilterState(page=1))
    assert view.page_count == 3
    assert view.total_count == 23
    assert _ids(view.items)[0] == "J-22"
    assert len(view.items) == 10

    last = project_jobs(jobs, FilterState(page=3))
    assert _ids(last.items) == ["J-02", "J-01", "J-00"]

    clamped = project_jobs(jobs, FilterState(page=99))
    assert clamped.page == 3


def test_empty_view():
    view = project_jobs([], FilterState())
    assert view.items == ()
    assert view.page_count == 0
    assert view.totals.total == Decimal("0")


def test_totals_and_counts():
    jobs = [
        _job("J-1", cost="1000", extra="50"),
        _job("J-2", cost="500", accounting=AccountingStatus.APPROVED),
        _job("J-3", status=JobStatus.BILLED, accounting=AccountingStatus.APPROVED, cost="200"),
        _job("J-4", status=JobStatus.CANCELLED, cost="9999"),
    ]
    view = project_jobs(jobs, FilterState(bucket=StatusBucket.PENDING_BILL))

    assert _ids(view.filtered) == ["J-2"]
    assert view.totals.cost == Decimal("500")
    # counts ignore the bucket tab
    assert view.counts.pending_review == 1
    assert view.counts.ready_to_bill == 1
    assert view.counts.ready_to_lock == 1
    assert view.bucket_counts["ALL"] == 3

    all_view = project_jobs(jobs, FilterState())
    assert all_view.totals.cost == Decimal("1700")
    assert all_view.totals.extra_charge == Decimal("50")
    assert all_view.totals.total == Decimal("1750")


def test_subcontractor_options_are_sorted_and_distinct():
    jobs = [_job("J-1", sub="Zeta"), _job("J-2", sub="Alpha"), _job("J-3", sub="Zeta"), _job("J-4", sub=None)]
    assert project_jobs(jobs, FilterState()).subcontractors == ("Alpha", "Zeta")


def test_filter_state_serializes():
    state = FilterState(
        search="siam",
        start_date=date(2026, 10, 1),
        bucket=StatusBucket.TO_PAY,
        page=2,
    )
    data = state.to_dict()
    assert data["bucket"] == "TO_PAY"
    assert data["start_date"] == "2026-10-01"
    assert FilterState.from_dict(data) == state
