from typing import Optional

from fastapi import HTTPException


class BillingRuleError(ValueError):
    """
    A recoverable, user-facing rule violation.

    Raised before any mutation. `code` is stable for API clients, `message`
    is the localized explanation shown to the user.
    """

    code = "BillingRuleError"
    default_message = "ไม่สามารถทำรายการได้ (Operation not allowed)"

    def __init__(self, message: Optional[str] = None, *, count: Optional[int] = None):
        self.message = message or self.default_message
        self.count = count
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message, "count": self.count}


class MissingDocumentation(BillingRuleError):
    code = "MissingDocumentation"

    def __init__(self, count: int = 1, message: Optional[str] = None):
        if message is None:
            message = (
                f"งานจำนวน {count} รายการ ขาดเอกสารประกอบ POD "
                f"({count} job(s) missing proof-of-delivery documents)"
            )
        super().__init__(message, count=count)


class MixedSubcontractor(BillingRuleError):
    code = "MixedSubcontractor"
    default_message = (
        "กรุณาเลือกงานจากผู้รับเหมาเจ้าเดียวกันเท่านั้น "
        "(You can only batch invoice jobs from the same subcontractor)"
    )


class EmptySelection(BillingRuleError):
    code = "EmptySelection"
    default_message = "กรุณาเลือกงานอย่างน้อย 1 รายการ (Select at least one job)"


class MissingReference(BillingRuleError):
    code = "MissingReference"
    default_message = "กรุณาระบุเลขที่เอกสารอ้างอิง (Reference number is required)"


class MissingReason(BillingRuleError):
    code = "MissingReason"
    default_message = "กรุณาระบุเหตุผล (Reason is required)"


class UserCancelled(BillingRuleError):
    code = "UserCancelled"
    default_message = "ยกเลิกการทำรายการ (Operation cancelled)"


class InvalidTransition(BillingRuleError):
    code = "InvalidTransition"


class BaseCostLocked(InvalidTransition):
    code = "BaseCostLocked"
    default_message = "ต้นทุนถูกล็อกหลังการอนุมัติ (Base cost is locked after approval)"


class SegregationOfDutiesViolation(BillingRuleError):
    code = "SegregationOfDuties"
    default_message = "สิทธิ์ไม่เพียงพอสำหรับการทำรายการนี้ (Role not permitted for this action)"


class DuplicateJob(BillingRuleError):
    code = "DuplicateJob"

    def __init__(self, job_id: str):
        self.job_id = job_id
        super().__init__(f"เลขที่งาน {job_id} มีอยู่แล้ว (Job {job_id} already exists)")


class JobNotFound(LookupError):
    def __init__(self, job_id: str):
        self.job_id = job_id
        super().__init__(f"Job not found: {job_id}")


class BatchCommitFailed(RuntimeError):
    """The batch was rolled back; no job in it was stamped."""

    code = "BatchCommitFailed"

    def __init__(self, message: str, *, attempts: int):
        self.attempts = attempts
        super().__init__(message)


class InvoiceNotFound(LookupError):
    def __init__(self, document_number: str):
        self.document_number = document_number
        super().__init__(f"Invoice not found: {document_number}")


def to_http_exception(exc: Exception) -> HTTPException:
    """Map a domain error to the HTTP response routers raise."""
    if isinstance(exc, DuplicateJob):
        return HTTPException(status_code=409, detail=exc.to_dict())
    if isinstance(exc, SegregationOfDutiesViolation):
        return HTTPException(status_code=403, detail=exc.to_dict())
    if isinstance(exc, BillingRuleError):
        return HTTPException(status_code=400, detail=exc.to_dict())
    if isinstance(exc, LookupError):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, BatchCommitFailed):
        return HTTPException(
            status_code=503,
            detail={"code": exc.code, "message": str(exc), "attempts": exc.attempts},
        )
    return HTTPException(status_code=400, detail=str(exc))
