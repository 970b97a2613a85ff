from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

MONEY_QUANT = Decimal("0.01")
ZERO_MONEY = Decimal("0.00")


def to_money(value: Decimal | int | float | str) -> Decimal:
    return Decimal(str(value)).quantize(MONEY_QUANT, rounding=ROUND_HALF_UP)


def parse_money(value: str | None) -> Decimal:
    """Lenient parse for money stored as free text (settings); bad input counts as zero."""
    if value is None:
        return ZERO_MONEY
    try:
        parsed = Decimal(value.strip())
    except InvalidOperation:
        return ZERO_MONEY
    if not parsed.is_finite():
        return ZERO_MONEY
    return to_money(parsed)


def money_out(value: Decimal | int | float | None) -> float:
    if value is None:
        return 0.0
    return float(to_money(value))
