"""
Environment-backed settings.

Values are read at call time so tests can monkeypatch the environment.
A malformed value never raises; the default is used instead.
"""

import os
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation


def env_str(name: str, default: str) -> str:
    v = os.getenv(name)
    if v is None or v.strip() == "":
        return default
    return v.strip()


def env_int(name: str, default: int) -> int:
    v = os.getenv(name)
    if v is None or v == "":
        return default
    try:
        return int(v)
    except ValueError:
        return default


def env_decimal(name: str, default: str) -> Decimal:
    v = os.getenv(name)
    if v is None or v.strip() == "":
        return Decimal(default)
    try:
        return Decimal(v.strip())
    except InvalidOperation:
        return Decimal(default)


def env_bool(name: str, default: bool) -> bool:
    v = os.getenv(name)
    if v is None or v.strip() == "":
        return default
    return v.strip().lower() not in {"0", "false", "no", "off"}


@dataclass(frozen=True)
class CompanyProfile:
    name_th: str
    name_en: str
    address: str
    tax_line: str


def company_profile() -> CompanyProfile:
    return CompanyProfile(
        name_th=env_str("COMPANY_NAME_TH", "บริษัท ดิสแพตช์เดสก์ โลจิสติกส์ จำกัด"),
        name_en=env_str("COMPANY_NAME_EN", "DISPATCHDESK LOGISTICS CO., LTD."),
        address=env_str("COMPANY_ADDRESS", "-"),
        tax_line=env_str("COMPANY_TAX_LINE", "Tax ID: -"),
    )


def invoice_doc_prefix() -> str:
    return env_str("INVOICE_DOC_PREFIX", "BA")


def default_credit_days() -> int:
    return env_int("DEFAULT_CREDIT_DAYS", 30)


def billing_commit_attempts() -> int:
    return max(1, env_int("BILLING_COMMIT_ATTEMPTS", 3))
