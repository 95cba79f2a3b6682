from decimal import ROUND_HALF_UP, Decimal, InvalidOperation


def round1(value: float) -> float:
    """One decimal, halves rounded up (7.25 -> 7.3)."""
    try:
        return float(Decimal(repr(float(value))).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))
    except (InvalidOperation, ValueError, TypeError):
        return 0.0


def to_score(value) -> float | None:
    try:
        score = float(value)
    except (TypeError, ValueError):
        return None
    if score != score:  # NaN
        return None
    return score
