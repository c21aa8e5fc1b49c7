"""
Credit score rules
"""
from decimal import Decimal, ROUND_HALF_UP

MIN_SCORE = 300
MAX_SCORE = 850

# (lower bound inclusive, rating), checked top-down
SCORE_RATINGS = (
    (800, "Excellent"),
    (740, "Very Good"),
    (670, "Good"),
    (580, "Fair"),
)


def get_score_rating(score: int) -> str:
    for lower_bound, rating in SCORE_RATINGS:
        if score >= lower_bound:
            return rating
    return "Poor"


def calculate_utilization(balance, limit) -> float:
    """Balance as a percentage of limit, 2 decimal places; 0 for a zero limit"""
    limit = Decimal(str(limit))
    if limit == 0:
        return 0.0
    ratio = Decimal(str(balance)) / limit * 100
    return float(ratio.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def score_trend(change: int) -> str:
    if change > 5:
        return "up"
    if change < -5:
        return "down"
    return "stable"


def clamp_score(score: int) -> int:
    return max(MIN_SCORE, min(MAX_SCORE, score))
