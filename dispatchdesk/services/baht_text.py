"""
Spell an amount of money in Thai baht and satang, as printed on billing documents.

    0        -> ศูนย์บาทถ้วน
    21       -> ยี่สิบเอ็ดบาทถ้วน
    1643.00  -> หนึ่งพันหกร้อยสี่สิบสามบาทถ้วน
    0.50     -> ห้าสิบสตางค์
    0.01     -> เอ็ดสตางค์

The integer part is read in groups of six digits joined by "ล้าน". Within a
group the tens digit 1 is silent ("สิบ"), the tens digit 2 reads "ยี่", and a
units digit 1 reads "เอ็ด" when the group has more than one digit. Satang
are always read as two digits, so a single satang is "เอ็ดสตางค์".
"""

from dispatchdesk.services.money import round_half_up, to_decimal

ZERO_BAHT = "ศูนย์บาทถ้วน"

DIGITS = ["ศูนย์", "หนึ่ง", "สอง", "สาม", "สี่", "ห้า", "หก", "เจ็ด", "แปด", "เก้า"]
UNITS = ["", "สิบ", "ร้อย", "พัน", "หมื่น", "แสน"]

MILLION = "ล้าน"
BAHT = "บาท"
SATANG = "สตางค์"
EXACT = "ถ้วน"

_GROUP = 6


def _read_group(digits: str) -> str:
    out = []
    n = len(digits)
    for i, ch in enumerate(digits):
        digit = int(ch)
        pos = n - i - 1
        if digit == 0:
            continue
        if pos == 1 and digit == 1:
            word = ""
        elif pos == 1 and digit == 2:
            word = "ยี่"
        elif pos == 0 and digit == 1 and n > 1:
            word = "เอ็ด"
        else:
            word = DIGITS[digit]
        out.append(word + UNITS[pos])
    return "".join(out)


def read_number(digits: str) -> str:
    """Read a string of decimal digits (no sign, no separators)."""
    groups = []
    while digits:
        groups.append(digits[-_GROUP:])
        digits = digits[:-_GROUP]

    out = []
    for i in range(len(groups) - 1, -1, -1):
        out.append(_read_group(groups[i]))
        if i > 0:
            out.append(MILLION)
    return "".join(out)


def baht_text(amount) -> str:
    value = round_half_up(to_decimal(amount))
    if value <= 0:
        return ZERO_BAHT

    int_part, dec_part = f"{value:.2f}".split(".")
    baht = int(int_part)
    satang = int(dec_part)

    result = ""
    if baht > 0:
        result += read_number(int_part) + BAHT

    if satang > 0:
        # read as two digits: 0.01 -> เอ็ดสตางค์
        result += read_number(dec_part) + SATANG
    elif baht > 0:
        result += EXACT

    return result
