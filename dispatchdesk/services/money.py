from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Optional

CENT = Decimal("0.01")

# Largest amount accepted for a single cost or price (ten billion baht less one satang).
MAX_AMOUNT = Decimal("9999999999.99")

THAI_MONTHS_SHORT = [
    "ม.ค.", "ก.พ.", "มี.ค.", "เม.ย.", "พ.ค.", "มิ.ย.",
    "ก.ค.", "ส.ค.", "ก.ย.", "ต.ค.", "พ.ย.", "ธ.ค.",
]

THAI_MONTHS_LONG = [
    "มกราคม", "กุมภาพันธ์", "มีนาคม", "เมษายน", "พฤษภาคม", "มิถุนายน",
    "กรกฎาคม", "สิงหาคม", "กันยายน", "ตุลาคม", "พฤศจิกายน", "ธันวาคม",
]

# Thai civil calendar: Buddhist Era = Gregorian + 543
BUDDHIST_ERA_OFFSET = 543


def to_decimal(value) -> Decimal:
    """
    Coerce user/database input to Decimal without going through binary floats.
    None, blanks and garbage become 0.
    """
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        return Decimal(int(value))
    if isinstance(value, (int, float)):
        try:
            return Decimal(str(value))
        except InvalidOperation:
            return Decimal("0")

    s = str(value).strip().replace(",", "")
    if s == "" or s.lower() in ("nan", "none"):
        return Decimal("0")
    try:
        return Decimal(s)
    except InvalidOperation:
        return Decimal("0")


def round_half_up(amount, places: int = 2) -> Decimal:
    """Round to `places` fractional digits, ties away from zero (10.125 -> 10.13)."""
    value = to_decimal(amount)
    if not value.is_finite():
        return Decimal("0").quantize(Decimal(1).scaleb(-places))
    return value.quantize(Decimal(1).scaleb(-places), rounding=ROUND_HALF_UP)


def format_currency(amount) -> str:
    """Thousands separators and exactly two decimals; negative or missing input renders as 0.00."""
    if amount is None:
        return "0.00"
    value = round_half_up(amount)
    if value < 0:
        value = Decimal("0.00")
    return f"{value:,.2f}"


def to_satang(amount) -> int:
    return int(round_half_up(amount) * 100)


def from_satang(value: Optional[int]) -> Optional[Decimal]:
    if value is None:
        return None
    return (Decimal(int(value)) / 100).quantize(CENT)


def to_basis_points(rate) -> Optional[int]:
    if rate is None:
        return None
    return int(round_half_up(rate) * 100)


def from_basis_points(value: Optional[int]) -> Optional[Decimal]:
    if value is None:
        return None
    return Decimal(int(value)) / 100


def format_rate(rate) -> str:
    """7 -> '7', 7.50 -> '7.5'; never scientific notation."""
    return format(to_decimal(rate).normalize(), "f")


def coerce_date(value) -> Optional[date]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    s = str(value).strip()
    if not s:
        return None
    try:
        return date.fromisoformat(s[:10])
    except ValueError:
        return None


def format_date(value) -> str:
    """'19 ต.ค. 2569' style; '-' when the value is missing or unparseable."""
    d = coerce_date(value)
    if d is None:
        return "-"
    return f"{d.day} {THAI_MONTHS_SHORT[d.month - 1]} {d.year + BUDDHIST_ERA_OFFSET}"


def format_date_numeric(value) -> str:
    """'19/10/2569' style used in document headers."""
    d = coerce_date(value)
    if d is None:
        return "-"
    return f"{d.day:02d}/{d.month:02d}/{d.year + BUDDHIST_ERA_OFFSET}"


def format_date_long(value) -> str:
    d = coerce_date(value)
    if d is None:
        return "-"
    return f"{d.day} {THAI_MONTHS_LONG[d.month - 1]} {d.year + BUDDHIST_ERA_OFFSET}"
