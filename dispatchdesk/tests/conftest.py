import os
_default_test_secret = "test-jwt-secret-for-pytest-only-0000000000000000"
if len(os.environ.get("JWT_SECRET", "")) < 32:
    os.environ["JWT_SECRET"] = _default_test_secret

import tempfile

import pytest

_default_test_db = os.path.join(tempfile.gettempdir(), f"dispatchdesk_test_{os.getpid()}.sqlite3")
TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL", f"sqlite:///{_default_test_db}")
os.environ["DATABASE_URL"] = TEST_DATABASE_URL
os.environ.setdefault("ENV", "test")

from dispatchdesk import database
from dispatchdesk import models  # noqa: F401
from dispatchdesk.services.record_guards import install_record_guards


@pytest.fixture(scope="function", autouse=True)
def _fresh_schema():
    # audit_logs rejects DELETE, so the schema is rebuilt instead of truncated.
    database.configure_database()
    database.Base.metadata.drop_all(database.engine)
    database.Base.metadata.create_all(database.engine)
    install_record_guards(database.engine)
    yield


@pytest.fixture(autouse=True)
def _billing_defaults(monkeypatch):
    for name in (
        "INVOICE_DOC_PREFIX",
        "DEFAULT_VAT_RATE",
        "DEFAULT_WHT_RATE",
        "DEFAULT_APPLY_VAT",
        "DEFAULT_APPLY_WHT",
        "DEFAULT_CREDIT_DAYS",
        "BILLING_COMMIT_ATTEMPTS",
        "TELEGRAM_BOT_TOKEN",
        "TELEGRAM_CHAT_ID",
    ):
        monkeypatch.delenv(name, raising=False)
