from datetime import datetime

from sqlalchemy import JSON, BigInteger, Boolean, Column, Date, DateTime, Integer, String, Text
from sqlalchemy.ext.mutable import MutableList

from dispatchdesk.database import Base


class Job(Base):
    __tablename__ = "jobs"

    id = Column(String, primary_key=True, index=True)

    status = Column(String, nullable=False, index=True)  # NEW_REQUEST|ASSIGNED|COMPLETED|BILLED|CANCELLED
    date_of_service = Column(Date, nullable=True, index=True)

    origin = Column(String, nullable=False, default="")
    destination = Column(String, nullable=False, default="")
    truck_type = Column(String, nullable=False, default="")
    subcontractor = Column(String, nullable=True, index=True)
    license_plate = Column(String, nullable=True)
    driver_name = Column(String, nullable=True)

    cost_satang = Column(BigInteger, nullable=False, default=0)
    extra_charge_satang = Column(BigInteger, nullable=False, default=0)
    pod_documents = Column(MutableList.as_mutable(JSON), nullable=False, default=list)

    accounting_status = Column(String, nullable=True, index=True)
    accounting_remark = Column(Text, nullable=True)
    is_base_cost_locked = Column(Boolean, nullable=False, default=False)

    billing_doc_no = Column(String, nullable=True, index=True)
    billing_date = Column(Date, nullable=True)
    reference_no = Column(String, nullable=True)
    billing_vat_rate_bp = Column(Integer, nullable=True)
    billing_vat_amount_satang = Column(BigInteger, nullable=True)
    billing_wht_rate_bp = Column(Integer, nullable=True)
    billing_wht_amount_satang = Column(BigInteger, nullable=True)
    billing_net_total_satang = Column(BigInteger, nullable=True)
    billing_due_date = Column(Date, nullable=True)
    billing_payment_type = Column(String, nullable=True)  # CREDIT|CASH
    billing_credit_days = Column(Integer, nullable=True)

    payment_date = Column(Date, nullable=True)
    payment_slip_ref = Column(String, nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
