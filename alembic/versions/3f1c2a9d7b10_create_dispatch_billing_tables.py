"""create jobs, audit_logs and price_matrix

Revision ID: 3f1c2a9d7b10
Revises:
Create Date: 2026-10-05

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "3f1c2a9d7b10"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "jobs",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("date_of_service", sa.Date(), nullable=True),
        sa.Column("origin", sa.String(), nullable=False, server_default=""),
        sa.Column("destination", sa.String(), nullable=False, server_default=""),
        sa.Column("truck_type", sa.String(), nullable=False, server_default=""),
        sa.Column("subcontractor", sa.String(), nullable=True),
        sa.Column("license_plate", sa.String(), nullable=True),
        sa.Column("driver_name", sa.String(), nullable=True),
        sa.Column("cost_satang", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("extra_charge_satang", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("pod_documents", sa.JSON(), nullable=False),
        sa.Column("accounting_status", sa.String(), nullable=True),
        sa.Column("accounting_remark", sa.Text(), nullable=True),
        sa.Column("is_base_cost_locked", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("billing_doc_no", sa.String(), nullable=True),
        sa.Column("billing_date", sa.Date(), nullable=True),
        sa.Column("reference_no", sa.String(), nullable=True),
        sa.Column("billing_vat_rate_bp", sa.Integer(), nullable=True),
        sa.Column("billing_vat_amount_satang", sa.BigInteger(), nullable=True),
        sa.Column("billing_wht_rate_bp", sa.Integer(), nullable=True),
        sa.Column("billing_wht_amount_satang", sa.BigInteger(), nullable=True),
        sa.Column("billing_net_total_satang", sa.BigInteger(), nullable=True),
        sa.Column("billing_due_date", sa.Date(), nullable=True),
        sa.Column("billing_payment_type", sa.String(), nullable=True),
        sa.Column("billing_credit_days", sa.Integer(), nullable=True),
        sa.Column("payment_date", sa.Date(), nullable=True),
        sa.Column("payment_slip_ref", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.CheckConstraint("cost_satang >= 0", name="ck_jobs_cost_nonnegative"),
        sa.CheckConstraint("extra_charge_satang >= 0", name="ck_jobs_extra_charge_nonnegative"),
    )
    op.create_index("ix_jobs_id", "jobs", ["id"])
    op.create_index("ix_jobs_status", "jobs", ["status"])
    op.create_index("ix_jobs_date_of_service", "jobs", ["date_of_service"])
    op.create_index("ix_jobs_subcontractor", "jobs", ["subcontractor"])
    op.create_index("ix_jobs_accounting_status", "jobs", ["accounting_status"])
    op.create_index("ix_jobs_billing_doc_no", "jobs", ["billing_doc_no"])

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("job_id", sa.String(), nullable=False),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("user_name", sa.String(), nullable=False),
        sa.Column("user_role", sa.String(), nullable=False),
        sa.Column("timestamp", sa.DateTime(), nullable=False),
        sa.Column("field", sa.String(), nullable=False),
        sa.Column("old_value", sa.String(), nullable=False),
        sa.Column("new_value", sa.String(), nullable=False),
        sa.Column("reason", sa.Text(), nullable=False),
    )
    op.create_index("ix_audit_logs_id", "audit_logs", ["id"])
    op.create_index("ix_audit_logs_job_id", "audit_logs", ["job_id"])
    op.create_index("ix_audit_logs_timestamp", "audit_logs", ["timestamp"])

    op.create_table(
        "price_matrix",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("origin", sa.String(), nullable=False),
        sa.Column("destination", sa.String(), nullable=False),
        sa.Column("truck_type", sa.String(), nullable=False),
        sa.Column("subcontractor", sa.String(), nullable=False),
        sa.Column("base_price_satang", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("selling_base_price_satang", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("payment_type", sa.String(), nullable=False, server_default="CREDIT"),
        sa.Column("credit_days", sa.Integer(), nullable=True),
        sa.UniqueConstraint(
            "origin",
            "destination",
            "truck_type",
            "subcontractor",
            name="uq_price_matrix_route_key",
        ),
    )
    op.create_index("ix_price_matrix_id", "price_matrix", ["id"])
    op.create_index("ix_price_matrix_subcontractor", "price_matrix", ["subcontractor"])


def downgrade() -> None:
    op.drop_table("price_matrix")
    op.drop_table("audit_logs")
    op.drop_table("jobs")
