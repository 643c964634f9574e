from sqlalchemy import inspect, text


def table_exists(engine, table_name: str) -> bool:
    if engine is None:
        return False
    return inspect(engine).has_table(table_name)


_POSTGRES_DDL = """
CREATE OR REPLACE FUNCTION audit_logs_block_mutation()
RETURNS trigger AS $$
BEGIN
    RAISE EXCEPTION 'audit_logs is append-only';
END;
$$ LANGUAGE plpgsql;

DROP TRIGGER IF EXISTS trg_audit_logs_block_update ON audit_logs;
CREATE TRIGGER trg_audit_logs_block_update
BEFORE UPDATE ON audit_logs
FOR EACH ROW
EXECUTE FUNCTION audit_logs_block_mutation();

DROP TRIGGER IF EXISTS trg_audit_logs_block_delete ON audit_logs;
CREATE TRIGGER trg_audit_logs_block_delete
BEFORE DELETE ON audit_logs
FOR EACH ROW
EXECUTE FUNCTION audit_logs_block_mutation();

CREATE OR REPLACE FUNCTION jobs_block_locked_mutation()
RETURNS trigger AS $$
BEGIN
    IF OLD.accounting_status = 'LOCKED' THEN
        RAISE EXCEPTION 'job % is locked', OLD.id;
    END IF;
    IF TG_OP = 'DELETE' THEN
        RETURN OLD;
    END IF;
    RETURN NEW;
END;
$$ LANGUAGE plpgsql;

DROP TRIGGER IF EXISTS trg_jobs_block_locked_update ON jobs;
CREATE TRIGGER trg_jobs_block_locked_update
BEFORE UPDATE ON jobs
FOR EACH ROW
EXECUTE FUNCTION jobs_block_locked_mutation();

DROP TRIGGER IF EXISTS trg_jobs_block_locked_delete ON jobs;
CREATE TRIGGER trg_jobs_block_locked_delete
BEFORE DELETE ON jobs
FOR EACH ROW
EXECUTE FUNCTION jobs_block_locked_mutation();
"""

# sqlite executes one statement per call
_SQLITE_DDL = (
    """
    CREATE TRIGGER IF NOT EXISTS trg_audit_logs_block_update
    BEFORE UPDATE ON audit_logs
    BEGIN
        SELECT RAISE(ABORT, 'audit_logs is append-only');
    END
    """,
    """
    CREATE TRIGGER IF NOT EXISTS trg_audit_logs_block_delete
    BEFORE DELETE ON audit_logs
    BEGIN
        SELECT RAISE(ABORT, 'audit_logs is append-only');
    END
    """,
    """
    CREATE TRIGGER IF NOT EXISTS trg_jobs_block_locked_update
    BEFORE UPDATE ON jobs
    WHEN OLD.accounting_status = 'LOCKED'
    BEGIN
        SELECT RAISE(ABORT, 'job is locked');
    END
    """,
    """
    CREATE TRIGGER IF NOT EXISTS trg_jobs_block_locked_delete
    BEFORE DELETE ON jobs
    WHEN OLD.accounting_status = 'LOCKED'
    BEGIN
        SELECT RAISE(ABORT, 'job is locked');
    END
    """,
)


def guard_statements(dialect: str) -> tuple:
    if dialect == "postgresql":
        return (_POSTGRES_DDL,)
    if dialect == "sqlite":
        return _SQLITE_DDL
    return ()


def install_record_guards(engine) -> None:
    """
    Install triggers that keep audit_logs append-only and LOCKED jobs frozen.
    PostgreSQL and SQLite; other dialects are left alone. Idempotent.
    """
    if engine is None:
        return

    dialect = getattr(getattr(engine, "dialect", None), "name", "")
    statements = guard_statements(dialect)
    if not statements:
        return

    if not (table_exists(engine, "audit_logs") and table_exists(engine, "jobs")):
        return

    with engine.begin() as conn:
        for stmt in statements:
            conn.execute(text(stmt))
