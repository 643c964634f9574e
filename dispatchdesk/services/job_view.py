"""
Read-only projections of the billing job list.

`project_jobs` is recomputed from the full job collection and an explicit
`FilterState` on every call; nothing is cached between filter changes.
"""

import math
from dataclasses import asdict, dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple

from dispatchdesk.models.records import ZERO, AccountingStatus, JobRecord, JobStatus
from dispatchdesk.services.money import coerce_date

PAGE_SIZE = 10

ELIGIBLE_STATUSES = frozenset({JobStatus.COMPLETED, JobStatus.BILLED})


class StatusBucket(Enum):
    ALL = "ALL"
    PENDING_REVIEW = "PENDING_REVIEW"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    PAID = "PAID"
    LOCKED = "LOCKED"
    PENDING_BILL = "PENDING_BILL"
    TO_PAY = "TO_PAY"
    SETTLED = "SETTLED"


def _is_pending_review(job: JobRecord) -> bool:
    return job.accounting_status in (None, AccountingStatus.PENDING_REVIEW)


def _is_pending_bill(job: JobRecord) -> bool:
    return job.status == JobStatus.COMPLETED and job.accounting_status == AccountingStatus.APPROVED


def _is_ready_to_lock(job: JobRecord) -> bool:
    return job.status == JobStatus.BILLED and job.accounting_status in (
        AccountingStatus.APPROVED,
        AccountingStatus.PAID,
    )


def _is_to_pay(job: JobRecord) -> bool:
    return job.status == JobStatus.BILLED and job.accounting_status not in (
        AccountingStatus.PAID,
        AccountingStatus.LOCKED,
    )


def _is_settled(job: JobRecord) -> bool:
    return job.accounting_status in (AccountingStatus.PAID, AccountingStatus.LOCKED)


BUCKET_PREDICATES = {
    StatusBucket.ALL: lambda j: True,
    StatusBucket.PENDING_REVIEW: _is_pending_review,
    StatusBucket.APPROVED: lambda j: j.accounting_status == AccountingStatus.APPROVED,
    StatusBucket.REJECTED: lambda j: j.accounting_status == AccountingStatus.REJECTED,
    StatusBucket.PAID: lambda j: j.accounting_status == AccountingStatus.PAID,
    StatusBucket.LOCKED: lambda j: j.accounting_status == AccountingStatus.LOCKED,
    StatusBucket.PENDING_BILL: _is_pending_bill,
    StatusBucket.TO_PAY: _is_to_pay,
    StatusBucket.SETTLED: _is_settled,
}


@dataclass(frozen=True)
class FilterState:
    search: str = ""
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    subcontractor: Optional[str] = None
    bucket: StatusBucket = StatusBucket.ALL
    page: int = 1

    def to_dict(self) -> dict:
        d = asdict(self)
        d["start_date"] = self.start_date.isoformat() if self.start_date else None
        d["end_date"] = self.end_date.isoformat() if self.end_date else None
        d["bucket"] = self.bucket.value
        return d

    @classmethod
    def from_dict(cls, data: dict) -> "FilterState":
        bucket = data.get("bucket") or StatusBucket.ALL.value
        try:
            page = int(data.get("page") or 1)
        except (TypeError, ValueError):
            page = 1
        return cls(
            search=(data.get("search") or "").strip(),
            start_date=coerce_date(data.get("start_date")),
            end_date=coerce_date(data.get("end_date")),
            subcontractor=(data.get("subcontractor") or None),
            bucket=StatusBucket(bucket),
            page=max(1, page),
        )


@dataclass(frozen=True)
class ViewTotals:
    cost: Decimal
    extra_charge: Decimal

    @property
    def total(self) -> Decimal:
        return self.cost + self.extra_charge


@dataclass(frozen=True)
class ViewCounts:
    pending_review: int
    ready_to_bill: int
    ready_to_lock: int


@dataclass(frozen=True)
class JobListView:
    items: Tuple[JobRecord, ...]
    filtered: Tuple[JobRecord, ...]
    page: int
    page_count: int
    total_count: int
    totals: ViewTotals
    counts: ViewCounts
    bucket_counts: Dict[str, int]
    subcontractors: Tuple[str, ...]


def _matches_search(job: JobRecord, term: str) -> bool:
    if not term:
        return True
    t = term.lower()
    return t in job.id.lower() or t in (job.subcontractor or "").lower()


def _in_range(job: JobRecord, start: Optional[date], end: Optional[date]) -> bool:
    d = job.date_of_service
    if d is None:
        return False
    if start is not None and d < start:
        return False
    if end is not None and d > end:
        return False
    return True


def _sort_key(job: JobRecord):
    return (job.date_of_service or date.min, job.id)


def eligible_jobs(jobs: Sequence[JobRecord]) -> List[JobRecord]:
    return [j for j in jobs if j.status in ELIGIBLE_STATUSES]


def filter_jobs(jobs: Sequence[JobRecord], state: FilterState, *, with_bucket: bool = True) -> List[JobRecord]:
    out = []
    for job in eligible_jobs(jobs):
        if not _matches_search(job, state.search):
            continue
        if not _in_range(job, state.start_date, state.end_date):
            continue
        if state.subcontractor and job.subcontractor != state.subcontractor:
            continue
        if with_bucket and not BUCKET_PREDICATES[state.bucket](job):
            continue
        out.append(job)
    out.sort(key=_sort_key, reverse=True)
    return out


def project_jobs(jobs: Sequence[JobRecord], state: FilterState, page_size: int = PAGE_SIZE) -> JobListView:
    # counts reflect the search/date/subcontractor filters but not the bucket tab
    unbucketed = filter_jobs(jobs, state, with_bucket=False)
    filtered = [j for j in unbucketed if BUCKET_PREDICATES[state.bucket](j)]

    page_count = math.ceil(len(filtered) / page_size)
    page = min(max(1, state.page), max(1, page_count))
    start = (page - 1) * page_size

    totals = ViewTotals(
        cost=sum((j.cost for j in filtered), ZERO),
        extra_charge=sum((j.extra_charge for j in filtered), ZERO),
    )
    counts = ViewCounts(
        pending_review=sum(1 for j in unbucketed if _is_pending_review(j)),
        ready_to_bill=sum(1 for j in unbucketed if _is_pending_bill(j)),
        ready_to_lock=sum(1 for j in unbucketed if _is_ready_to_lock(j)),
    )
    bucket_counts = {
        bucket.value: sum(1 for j in unbucketed if pred(j))
        for bucket, pred in BUCKET_PREDICATES.items()
    }
    subcontractors = tuple(sorted({j.subcontractor for j in eligible_jobs(jobs) if j.subcontractor}))

    return JobListView(
        items=tuple(filtered[start:start + page_size]),
        filtered=tuple(filtered),
        page=page,
        page_count=page_count,
        total_count=len(filtered),
        totals=totals,
        counts=counts,
        bucket_counts=bucket_counts,
        subcontractors=subcontractors,
    )
