from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

TOKENS_PER_UNIT = 10
DISPLAY_QUANTUM = Decimal("0.01")


def RoundHalfUpDiv(numerator: int, denominator: int) -> int:
    if denominator <= 0:
        raise ValueError("denominator must be positive")
    if numerator >= 0:
        return (numerator + denominator // 2) // denominator
    return -((-numerator + denominator // 2) // denominator)


def DisplayToTokens(value: Decimal | float | int | str | None) -> int:
    if value is None:
        return 0
    tokens = Decimal(str(value)) * TOKENS_PER_UNIT
    return int(tokens.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def TokensToDisplay(tokens: int | None) -> Decimal:
    if not tokens:
        return Decimal("0.00")
    return (Decimal(tokens) / TOKENS_PER_UNIT).quantize(DISPLAY_QUANTUM, rounding=ROUND_HALF_UP)


def FormatTokens(tokens: int | None) -> str:
    return f"${TokensToDisplay(tokens):,.2f}"
