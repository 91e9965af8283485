from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Optional


_INT_RE = re.compile(r"[-+]?\d[\d,]*")


def money_to_decimal(value: Optional[str]) -> Decimal:
    """
    Parse balance strings as shown on the account page:
    - "$43.98"
    - "$1,043.98"
    - "43.98"
    - "($2.50)" -> -2.50

    Missing/blank values are treated as zero (the row was not on the page).
    """
    s = (value or "").replace("\u00a0", " ").strip()
    if not s:
        return Decimal("0.00")

    s = s.replace("$", "").replace(",", "").strip()

    # Handle parentheses as negative
    if s.startswith("(") and s.endswith(")"):
        s = "-" + s[1:-1].strip()

    try:
        dec = Decimal(s)
    except InvalidOperation:
        raise ValueError(f"money_to_decimal: not a money value: {value!r}") from None
    return dec.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def count_to_int(value: Optional[str]) -> int:
    """
    Parse swipe counts like "6" or "12 " (first integer wins). Missing -> 0.
    """
    m = _INT_RE.search(value or "")
    if not m:
        return 0
    return int(m.group(0).replace(",", ""))


def usage_percent(remaining: Decimal | int, total: Decimal | int) -> float:
    """
    Remaining as a percentage of total, clamped to 0..100 (progress-bar friendly).
    """
    total_dec = Decimal(total)
    if total_dec <= 0:
        return 0.0
    pct = Decimal(remaining) / total_dec * 100
    return float(max(Decimal(0), min(Decimal(100), pct)))


def format_money(value: Decimal) -> str:
    dec = value.quantize(Decimal("0.01"))
    return f"${dec:,.2f}"
