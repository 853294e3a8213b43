"""Date arithmetic utilities."""

from datetime import date, timedelta

SATURDAY = 5  # date.weekday() value; Sunday is 6


def is_business_day(day: date) -> bool:
    """True for Monday through Friday."""
    return day.weekday() < SATURDAY


def add_days(start: date, offset_days: int, use_business_days: bool = False) -> date:
    """Offset a date by calendar or business days.

    Business-day mode steps one day at a time in the direction of the offset,
    counting only weekdays, so a Friday plus one business day is the next
    Monday. A zero offset returns the input unchanged in both modes, even when
    it falls on a weekend.
    """
    if not use_business_days or offset_days == 0:
        return start + timedelta(days=offset_days)

    step = timedelta(days=1 if offset_days > 0 else -1)
    remaining = abs(offset_days)
    current = start
    while remaining > 0:
        current += step
        if is_business_day(current):
            remaining -= 1
    return current
