from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def to_money(value: str | int | float | Decimal | None) -> Decimal:
    """Decimal rounded to cents. Floats go through str() so 0.1 stays 0.10."""
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value.quantize(CENT, rounding=ROUND_HALF_UP)
    if isinstance(value, (int, float)):
        return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)

    raw = str(value).strip()
    clean = "".join(char for char in raw if char.isdigit() or char in ".-")
    if not clean:
        return ZERO
    try:
        return Decimal(clean).quantize(CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        return ZERO


def format_usd(amount: Decimal) -> str:
    return f"${amount:,.2f}"
