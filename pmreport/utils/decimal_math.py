from decimal import ROUND_HALF_UP, Decimal


ZERO = Decimal("0.00")
MONEY_QUANT = Decimal("0.01")
WHOLE_QUANT = Decimal("1")


def money(value: Decimal | int | float | str | None) -> Decimal:
    if value is None:
        return ZERO
    return Decimal(str(value)).quantize(MONEY_QUANT, rounding=ROUND_HALF_UP)


def whole(value: Decimal) -> int:
    return int(value.quantize(WHOLE_QUANT, rounding=ROUND_HALF_UP))


def safe_pct(numerator: Decimal, denominator: Decimal) -> Decimal:
    if denominator <= 0:
        return ZERO
    return money(numerator * Decimal("100") / denominator)
