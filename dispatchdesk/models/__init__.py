from dispatchdesk.models.audit_log import AuditLog
from dispatchdesk.models.job import Job
from dispatchdesk.models.price_matrix import PriceMatrixRow

__all__ = [
    "AuditLog",
    "Job",
    "PriceMatrixRow",
]
