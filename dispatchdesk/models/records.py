from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional, Tuple


class Role(Enum):
    BOOKING_OFFICER = "BOOKING_OFFICER"
    DISPATCHER = "DISPATCHER"
    ACCOUNTANT = "ACCOUNTANT"
    ADMIN = "ADMIN"


ACCOUNTING_ROLES = frozenset({Role.ACCOUNTANT, Role.ADMIN})
OPERATIONS_ROLES = frozenset({Role.BOOKING_OFFICER, Role.DISPATCHER, Role.ADMIN})


class JobStatus(Enum):
    NEW_REQUEST = "NEW_REQUEST"
    ASSIGNED = "ASSIGNED"
    COMPLETED = "COMPLETED"
    BILLED = "BILLED"
    CANCELLED = "CANCELLED"


class AccountingStatus(Enum):
    PENDING_REVIEW = "PENDING_REVIEW"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    PAID = "PAID"
    LOCKED = "LOCKED"


# is_base_cost_locked is derived from this set
COST_LOCKING_STATUSES = frozenset(
    {AccountingStatus.APPROVED, AccountingStatus.PAID, AccountingStatus.LOCKED}
)

ZERO = Decimal("0.00")


@dataclass(frozen=True)
class Actor:
    user_id: str
    user_name: str
    role: Role


@dataclass(frozen=True)
class JobRecord:
    id: str
    status: JobStatus
    date_of_service: Optional[date] = None
    origin: str = ""
    destination: str = ""
    truck_type: str = ""
    subcontractor: Optional[str] = None
    license_plate: Optional[str] = None
    driver_name: Optional[str] = None

    cost: Decimal = ZERO
    extra_charge: Decimal = ZERO
    pod_documents: Tuple[str, ...] = ()

    accounting_status: Optional[AccountingStatus] = None
    accounting_remark: Optional[str] = None
    is_base_cost_locked: bool = False

    billing_doc_no: Optional[str] = None
    billing_date: Optional[date] = None
    reference_no: Optional[str] = None
    billing_vat_rate: Optional[Decimal] = None
    billing_vat_amount: Optional[Decimal] = None
    billing_wht_rate: Optional[Decimal] = None
    billing_wht_amount: Optional[Decimal] = None
    billing_net_total: Optional[Decimal] = None
    billing_due_date: Optional[date] = None
    billing_payment_type: Optional[str] = None
    billing_credit_days: Optional[int] = None

    payment_date: Optional[date] = None
    payment_slip_ref: Optional[str] = None

    created_at: Optional[datetime] = None

    @property
    def has_pod(self) -> bool:
        return len(self.pod_documents) > 0

    @property
    def is_locked(self) -> bool:
        return self.accounting_status == AccountingStatus.LOCKED

    @property
    def line_total(self) -> Decimal:
        return self.cost + self.extra_charge


@dataclass(frozen=True)
class AuditEntry:
    id: str
    job_id: str
    user_id: str
    user_name: str
    user_role: str
    timestamp: datetime
    field: str
    old_value: str
    new_value: str
    reason: str


@dataclass(frozen=True)
class PriceMatrixEntry:
    origin: str
    destination: str
    truck_type: str
    subcontractor: str
    base_price: Decimal = ZERO
    selling_base_price: Decimal = ZERO
    payment_type: str = "CREDIT"
    credit_days: Optional[int] = None
