from sqlalchemy import Column, DateTime, String, Text

from dispatchdesk.database import Base


class AuditLog(Base):
    """Append-only; UPDATE/DELETE are rejected by database triggers."""

    __tablename__ = "audit_logs"

    id = Column(String, primary_key=True, index=True)
    job_id = Column(String, nullable=False, index=True)

    user_id = Column(String, nullable=False)
    user_name = Column(String, nullable=False)
    user_role = Column(String, nullable=False)

    timestamp = Column(DateTime, nullable=False, index=True)

    field = Column(String, nullable=False)
    old_value = Column(String, nullable=False)
    new_value = Column(String, nullable=False)
    reason = Column(Text, nullable=False)
