"""
Numeric helpers shared by the insight rules.

Everything here is a pure function. Degenerate input to
`pearson_correlation` returns 0.0 so the rules can threshold it without
special cases; `mean` refuses empty input and the rules only call it
behind a precondition that guarantees values.
"""

from decimal import Decimal, ROUND_HALF_UP
from math import isfinite, sqrt
from typing import Dict, Sequence


MOOD_SCORES: Dict[str, int] = {
    "Sad": 2,
    "Anxious": 3,
    "Tired": 4,
    "Neutral": 5,
    "Calm": 6,
    "Happy": 7,
    "Energetic": 8,
}
NEUTRAL_MOOD_SCORE = 5


def mean(xs: Sequence[float]) -> float:
    if not xs:
        raise ValueError("mean() of an empty sequence")
    return sum(xs) / len(xs)


def pearson_correlation(xs: Sequence[float], ys: Sequence[float]) -> float:
    """Pearson coefficient of two equal-length sequences.

    Computed from running sums:
        r = (n*Sxy - Sx*Sy) / sqrt((n*Sxx - Sx^2) * (n*Syy - Sy^2))

    Returns 0.0 for empty input or when either side has no variance.
    """

    if len(xs) != len(ys):
        raise ValueError(f"length mismatch: {len(xs)} != {len(ys)}")
    n = len(xs)
    if n == 0:
        return 0.0

    sum_x = sum(xs)
    sum_y = sum(ys)
    sum_xy = sum(x * y for x, y in zip(xs, ys))
    sum_xx = sum(x * x for x in xs)
    sum_yy = sum(y * y for y in ys)

    numerator = n * sum_xy - sum_x * sum_y
    var_x = n * sum_xx - sum_x * sum_x
    var_y = n * sum_yy - sum_y * sum_y
    if var_x <= 0 or var_y <= 0:
        return 0.0
    r = numerator / sqrt(var_x * var_y)
    if not isfinite(r):
        return 0.0
    # float noise can push a perfect fit just past +/-1
    return max(-1.0, min(1.0, r))


def mood_name_to_score(name: str) -> int:
    """Map a mood name onto the 2..8 ordinal scale; unknown names are neutral."""
    return MOOD_SCORES.get(name, NEUTRAL_MOOD_SCORE)


def frequency_pct(count: int, total: int) -> float:
    return count / total * 100


def round_half_up(x: float, ndigits: int = 0) -> float:
    """Round the exact binary value half up, as the insight texts display it.

    2.25 -> 2.3 (an exact tie), but 29/20 -> 1.4 because the stored float
    is 1.44999...
    """
    quantum = Decimal(1).scaleb(-ndigits)
    return float(Decimal(x).quantize(quantum, rounding=ROUND_HALF_UP))


def fmt(x: float, ndigits: int = 0) -> str:
    return f"{round_half_up(x, ndigits):.{ndigits}f}"
