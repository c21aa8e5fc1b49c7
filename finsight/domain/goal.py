"""
Financial goal metrics (pure functions, computed at read time)
"""
import math
from datetime import date, datetime, time
from decimal import Decimal, ROUND_HALF_UP

SECONDS_PER_DAY = 24 * 60 * 60


def progress_percentage(current_amount: Decimal, target_amount: Decimal) -> int:
    """
    round(current / target * 100); 0 when target is not positive

    Example:
        >>> progress_percentage(Decimal("250"), Decimal("1000"))
        25
    """
    current = Decimal(current_amount)
    target = Decimal(target_amount)
    if target <= 0:
        return 0
    ratio = current / target * 100
    return int(ratio.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def days_remaining(target_date: date | None, now: datetime) -> int | None:
    """
    ceil((target_date - now) / 1 day); None when no target date

    target_date is taken at midnight UTC, now is naive UTC.
    """
    if target_date is None:
        return None
    target = datetime.combine(target_date, time.min)
    delta = (target - now).total_seconds()
    return math.ceil(delta / SECONDS_PER_DAY)
