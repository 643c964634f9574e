"""
Accounting review lifecycle of a job.

    (unset) | PENDING_REVIEW | REJECTED --APPROVE--> APPROVED
    (unset) | PENDING_REVIEW --REJECT--> REJECTED
    (unset) | REJECTED --SUBMIT--> PENDING_REVIEW
    APPROVED --(payment)--> PAID
    APPROVED | PAID --LOCK--> LOCKED   (job must be BILLED; LOCKED is terminal)

All functions here are pure: they take frozen records and return new ones.
Every precondition is checked before anything is built, so a failure leaves
no partial state and produces no audit entry.
"""

import uuid
from dataclasses import dataclass, replace
from datetime import date, datetime, timezone
from enum import Enum
from typing import FrozenSet, List, Optional, Sequence

from dispatchdesk.core.errors import (
    EmptySelection,
    InvalidTransition,
    MissingDocumentation,
    MissingReason,
    SegregationOfDutiesViolation,
    UserCancelled,
)
from dispatchdesk.models.records import (
    ACCOUNTING_ROLES,
    COST_LOCKING_STATUSES,
    AccountingStatus,
    Actor,
    AuditEntry,
    JobRecord,
    JobStatus,
)
from dispatchdesk.services.prompts import ConfirmationPrompt

ACCOUNTING_STATUS_FIELD = "Accounting Status"
PAYMENT_FIELD = "Payment"


class AccountingAction(Enum):
    SUBMIT = "SUBMIT"
    APPROVE = "APPROVE"
    REJECT = "REJECT"
    LOCK = "LOCK"


class TransitionRule:
    def __init__(
        self,
        action: AccountingAction,
        target: AccountingStatus,
        sources: FrozenSet[Optional[AccountingStatus]],
        job_statuses: FrozenSet[JobStatus],
        requires_pod: bool = False,
        requires_reason: bool = False,
        reason_may_be_blank: bool = False,
        prompt_title: str = "",
    ):
        self.action = action
        self.target = target
        self.sources = sources
        self.job_statuses = job_statuses
        self.requires_pod = requires_pod
        self.requires_reason = requires_reason
        self.reason_may_be_blank = reason_may_be_blank
        self.prompt_title = prompt_title


RULES = {
    AccountingAction.SUBMIT: TransitionRule(
        AccountingAction.SUBMIT,
        target=AccountingStatus.PENDING_REVIEW,
        sources=frozenset({None, AccountingStatus.REJECTED}),
        job_statuses=frozenset({JobStatus.COMPLETED}),
    ),
    AccountingAction.APPROVE: TransitionRule(
        AccountingAction.APPROVE,
        target=AccountingStatus.APPROVED,
        sources=frozenset({None, AccountingStatus.PENDING_REVIEW, AccountingStatus.REJECTED}),
        job_statuses=frozenset({JobStatus.COMPLETED}),
        requires_pod=True,
        prompt_title="ยืนยันการอนุมัติ (Confirm Approval)",
    ),
    AccountingAction.REJECT: TransitionRule(
        AccountingAction.REJECT,
        target=AccountingStatus.REJECTED,
        sources=frozenset({None, AccountingStatus.PENDING_REVIEW}),
        job_statuses=frozenset({JobStatus.COMPLETED}),
        requires_reason=True,
        prompt_title="Reason for Rejection / ระบุเหตุผลที่ปฏิเสธ",
    ),
    AccountingAction.LOCK: TransitionRule(
        AccountingAction.LOCK,
        target=AccountingStatus.LOCKED,
        sources=frozenset({AccountingStatus.APPROVED, AccountingStatus.PAID}),
        job_statuses=frozenset({JobStatus.BILLED}),
        requires_pod=True,
        requires_reason=True,
        reason_may_be_blank=True,
        prompt_title="Confirm Final Lock / ยืนยันปิดงานถาวร",
    ),
}


def get_rule(action: AccountingAction) -> TransitionRule:
    if action not in RULES:
        raise InvalidTransition(f"Unknown accounting action: {action}")
    return RULES[action]


@dataclass(frozen=True)
class TransitionResult:
    job: JobRecord
    audit_entry: AuditEntry


@dataclass(frozen=True)
class PendingInvoice:
    """A job cleared for billing; only the invoice builder turns it into BILLED."""

    job: JobRecord


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _status_text(status: Optional[Enum]) -> str:
    return "None" if status is None else status.value


def new_audit_entry(
    job: JobRecord,
    actor: Actor,
    *,
    field: str,
    old_value: str,
    new_value: str,
    reason: str,
    now: Optional[datetime] = None,
) -> AuditEntry:
    return AuditEntry(
        id=f"LOG-{uuid.uuid4().hex}",
        job_id=job.id,
        user_id=actor.user_id,
        user_name=actor.user_name,
        user_role=actor.role.value,
        timestamp=now or _utc_now(),
        field=field,
        old_value=old_value,
        new_value=new_value,
        reason=reason,
    )


def require_accounting_role(actor: Actor) -> None:
    # Operations staff complete jobs; only accounting may review them.
    if actor.role not in ACCOUNTING_ROLES:
        raise SegregationOfDutiesViolation()


def check_transition(job: JobRecord, action: AccountingAction, actor: Actor) -> TransitionRule:
    """Validate everything except the reason; raises without side effects."""
    rule = get_rule(action)
    require_accounting_role(actor)

    if job.is_locked:
        raise InvalidTransition("งานถูกปิดถาวรแล้ว (Job is locked and can no longer change)")

    if rule.requires_pod and not job.has_pod:
        raise MissingDocumentation(
            1,
            "ไม่สามารถดำเนินการได้เนื่องจากไม่มีเอกสารประกอบ (POD) "
            "(Blocked: no proof-of-delivery documentation)",
        )

    if job.status not in rule.job_statuses:
        allowed = ", ".join(sorted(s.value for s in rule.job_statuses))
        raise InvalidTransition(
            f"{action.value} requires job status {allowed} (job {job.id} is {job.status.value})"
        )

    if job.accounting_status not in rule.sources:
        raise InvalidTransition(
            f"Cannot {action.value} job {job.id} from accounting status "
            f"{_status_text(job.accounting_status)}"
        )

    return rule


def transition(
    job: JobRecord,
    action: AccountingAction,
    actor: Actor,
    reason: Optional[str] = None,
    *,
    now: Optional[datetime] = None,
) -> TransitionResult:
    rule = check_transition(job, action, actor)

    text = (reason or "").strip()
    if rule.requires_reason:
        if reason is None or (not text and not rule.reason_may_be_blank):
            raise MissingReason()

    target = rule.target
    remark = text or f"Updated to {target.value}"

    updated = replace(
        job,
        accounting_status=target,
        accounting_remark=remark,
        is_base_cost_locked=target in COST_LOCKING_STATUSES,
    )
    entry = new_audit_entry(
        job,
        actor,
        field=ACCOUNTING_STATUS_FIELD,
        old_value=_status_text(job.accounting_status),
        new_value=target.value,
        reason=remark,
        now=now,
    )
    return TransitionResult(job=updated, audit_entry=entry)


def request_transition(
    job: JobRecord,
    action: AccountingAction,
    actor: Actor,
    prompt: ConfirmationPrompt,
    reason: Optional[str] = None,
    *,
    now: Optional[datetime] = None,
) -> TransitionResult:
    """
    Two-phase transition: validate first, then ask the user only for what is
    still missing. A cancelled prompt raises UserCancelled and nothing changes.
    """
    rule = check_transition(job, action, actor)

    if rule.requires_reason and (reason is None or (not reason.strip() and not rule.reason_may_be_blank)):
        reason = prompt.ask_text(rule.prompt_title, f"Job #{job.id}")
        if reason is None:
            raise UserCancelled()
    elif not rule.requires_reason and rule.prompt_title:
        if not prompt.confirm(rule.prompt_title, f"Job #{job.id}"):
            raise UserCancelled()

    return transition(job, action, actor, reason, now=now)


def mark_billable(job: JobRecord) -> PendingInvoice:
    if not job.has_pod:
        raise MissingDocumentation(
            1,
            "ไม่สามารถออกใบวางบิลได้เนื่องจากไม่มีหลักฐาน POD "
            "(Blocked: missing proof-of-delivery)",
        )
    if job.status != JobStatus.COMPLETED or job.accounting_status != AccountingStatus.APPROVED:
        raise InvalidTransition(
            f"Job {job.id} is not ready for billing "
            f"(status {job.status.value}, accounting {_status_text(job.accounting_status)})"
        )
    return PendingInvoice(job=job)


def record_payment(
    jobs: Sequence[JobRecord],
    actor: Actor,
    payment_date: date,
    slip_ref: Optional[str] = None,
    *,
    now: Optional[datetime] = None,
) -> List[TransitionResult]:
    """Mark billed jobs as paid. All jobs are validated before any result is built."""
    require_accounting_role(actor)

    if not jobs:
        raise EmptySelection()

    for job in jobs:
        if job.status != JobStatus.BILLED or job.accounting_status != AccountingStatus.APPROVED:
            raise InvalidTransition(
                f"Job {job.id} cannot record payment "
                f"(status {job.status.value}, accounting {_status_text(job.accounting_status)})"
            )

    results = []
    for job in jobs:
        updated = replace(
            job,
            accounting_status=AccountingStatus.PAID,
            is_base_cost_locked=True,
            payment_date=payment_date,
            payment_slip_ref=slip_ref,
        )
        entry = new_audit_entry(
            job,
            actor,
            field=PAYMENT_FIELD,
            old_value=_status_text(job.accounting_status),
            new_value=AccountingStatus.PAID.value,
            reason=f"Payment Recorded: {payment_date.isoformat()}",
            now=now,
        )
        results.append(TransitionResult(job=updated, audit_entry=entry))
    return results
