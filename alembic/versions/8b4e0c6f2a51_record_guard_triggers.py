"""audit_logs append-only and locked job triggers

Revision ID: 8b4e0c6f2a51
Revises: 3f1c2a9d7b10
Create Date: 2026-10-05

"""
from typing import Sequence, Union

from alembic import op

from dispatchdesk.services.record_guards import guard_statements


# revision identifiers, used by Alembic.
revision: str = "8b4e0c6f2a51"
down_revision: Union[str, Sequence[str], None] = "3f1c2a9d7b10"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    for stmt in guard_statements(op.get_bind().dialect.name):
        op.execute(stmt)


def downgrade() -> None:
    """Downgrade schema."""
    bind = op.get_bind()
    if bind.dialect.name == "postgresql":
        op.execute(
            """
            DROP TRIGGER IF EXISTS trg_audit_logs_block_update ON audit_logs;
            DROP TRIGGER IF EXISTS trg_audit_logs_block_delete ON audit_logs;
            DROP FUNCTION IF EXISTS audit_logs_block_mutation();
            DROP TRIGGER IF EXISTS trg_jobs_block_locked_update ON jobs;
            DROP TRIGGER IF EXISTS trg_jobs_block_locked_delete ON jobs;
            DROP FUNCTION IF EXISTS jobs_block_locked_mutation();
            """
        )
    else:
        for name in (
            "trg_audit_logs_block_update",
            "trg_audit_logs_block_delete",
            "trg_jobs_block_locked_update",
            "trg_jobs_block_locked_delete",
        ):
            op.execute(f"DROP TRIGGER IF EXISTS {name}")
