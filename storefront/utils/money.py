# storefront/utils/money.py

from decimal import Decimal, ROUND_HALF_UP

Money = Decimal

def D(x) -> Money:
    return x if isinstance(x, Decimal) else Decimal(str(x or "0"))

def round_cents(x) -> int:
    """Round half up to a whole number of cents."""
    return int(D(x).quantize(Decimal("1"), rounding=ROUND_HALF_UP))

def percent_of(cents: int, percent) -> int:
    return round_cents(D(cents) * D(percent) / Decimal(100))

def format_price(cents, symbol: str = "$") -> str:
    dollars = (D(cents) / Decimal(100)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    return f"{symbol}{dollars:,.2f}"
