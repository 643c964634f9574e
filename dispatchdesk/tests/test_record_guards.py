from datetime import date, datetime, timezone

import pytest
from sqlalchemy.exc import DBAPIError

from dispatchdesk.database import SessionLocal
from dispatchdesk.models.audit_log import AuditLog
from dispatchdesk.models.job import Job
from dispatchdesk.models.records import Actor, Role
from dispatchdesk.services.job_operations import create_job
from dispatchdesk.services.job_repository import insert_job

DISPATCHER = Actor("u-dis", "Somchai", Role.DISPATCHER)


def _insert(job_id: str) -> None:
    insert_job(
        create_job(
            DISPATCHER,
            origin="Bangkok",
            destination="Rayong",
            truck_type="4W",
            date_of_service=date(2026, 10, 1),
            job_id=job_id,
            now=datetime(2026, 10, 1, tzinfo=timezone.utc),
        )
    )


def _set_accounting_status(job_id: str, status: str) -> None:
    db = SessionLocal()
    try:
        row = db.get(Job, job_id)
        row.accounting_status = status
        db.commit()
    finally:
        db.close()


def test_audit_log_update_is_blocked():
    _insert("JOB-G-1")
    db = SessionLocal()
    try:
        row = db.query(AuditLog).filter(AuditLog.job_id == "JOB-G-1").first()
        row.reason = "MUTATED"
        with pytest.raises(DBAPIError):
            db.commit()
    finally:
        db.rollback()
        db.close()


def test_audit_log_delete_is_blocked():
    _insert("JOB-G-2")
    db = SessionLocal()
    try:
        db.query(AuditLog).filter(AuditLog.job_id == "JOB-G-2").delete(synchronize_session=False)
        with pytest.raises(DBAPIError):
            db.commit()
    finally:
        db.rollback()
        db.close()


def test_locked_job_row_is_frozen():
    _insert("JOB-G-3")
    _set_accounting_status("JOB-G-3", "LOCKED")

    db = SessionLocal()
    try:
        row = db.get(Job, "JOB-G-3")
        row.driver_name = "MUTATED"
        with pytest.raises(DBAPIError):
            db.commit()
    finally:
        db.rollback()
        db.close()


def test_unlocked_job_row_updates_normally():
    _insert("JOB-G-4")
    _set_accounting_status("JOB-G-4", "APPROVED")

    db = SessionLocal()
    try:
        assert db.get(Job, "JOB-G-4").accounting_status == "APPROVED"
    finally:
        db.close()
