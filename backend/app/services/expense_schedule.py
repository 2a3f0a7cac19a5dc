"""Due-date arithmetic for recurring expenses."""

import calendar as cal
from datetime import datetime

from app.models.expense import ExpenseFrequency

_FREQUENCY_MONTHS = {
    ExpenseFrequency.MONTHLY.value: 1,
    ExpenseFrequency.QUARTERLY.value: 3,
    ExpenseFrequency.YEARLY.value: 12,
}


def _add_months(dt: datetime, months: int) -> datetime:
    """Add months to a datetime, clamping to last day of month."""
    month = dt.month - 1 + months
    year = dt.year + month // 12
    month = month % 12 + 1
    max_day = cal.monthrange(year, month)[1]
    day = min(dt.day, max_day)
    return dt.replace(year=year, month=month, day=day)


def advance_due_date(dt: datetime, frequency: str) -> datetime:
    """Move a due date forward by one recurrence period."""
    try:
        months = _FREQUENCY_MONTHS[frequency]
    except KeyError:
        raise ValueError(f"Unknown expense frequency: {frequency}") from None
    return _add_months(dt, months)
