import csv
import io
from typing import Sequence

from dispatchdesk.models.records import JobRecord
from dispatchdesk.services.money import format_currency

HEADERS = [
    "Job ID",
    "Date",
    "Subcontractor",
    "Origin",
    "Destination",
    "Cost",
    "Extra",
    "Total",
    "Payment Date",
    "Status",
]


def _status_label(job: JobRecord) -> str:
    if job.accounting_status is not None:
        return job.accounting_status.value
    return job.status.value


def payment_report_rows(jobs: Sequence[JobRecord]) -> list:
    rows = []
    for j in jobs:
        rows.append(
            [
                j.id,
                j.date_of_service.isoformat() if j.date_of_service else "",
                j.subcontractor or "",
                j.origin,
                j.destination,
                format_currency(j.cost),
                format_currency(j.extra_charge),
                format_currency(j.line_total),
                j.payment_date.isoformat() if j.payment_date else "",
                _status_label(j),
            ]
        )
    return rows


def payment_report_csv(jobs: Sequence[JobRecord]) -> bytes:
    """UTF-8 with BOM so spreadsheet apps open the Thai text correctly."""
    out = io.StringIO()
    wri = csv.writer(out, quoting=csv.QUOTE_MINIMAL)
    wri.writerow(HEADERS)
    wri.writerows(payment_report_rows(jobs))
    return out.getvalue().encode("utf-8-sig")
