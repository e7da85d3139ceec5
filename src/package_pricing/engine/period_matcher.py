"""
Period Matcher - Matches pricing periods against an arrival date.

Month and special periods are a tagged variant on `period_type`;
each variant has its own date test, and precedence between matching
periods lives in a single comparator.
"""
from datetime import date
from typing import Optional

from .models import MONTH_NAMES, PeriodType, PricingPeriod


def month_number(period_name: str) -> Optional[int]:
    """Map a month name (any case, surrounding spaces ignored) to 1-12."""
    name = period_name.strip().lower()
    for number, month in enumerate(MONTH_NAMES, start=1):
        if month.lower() == name:
            return number
    return None


def _matches_month(period: PricingPeriod, arrival_date: date) -> bool:
    return month_number(period.period) == arrival_date.month


def _matches_special(period: PricingPeriod, arrival_date: date) -> bool:
    if period.start_date is None or period.end_date is None:
        return False
    return period.start_date <= arrival_date <= period.end_date


_DATE_TESTS = {
    PeriodType.MONTH: _matches_month,
    PeriodType.SPECIAL: _matches_special,
}


def matches_date(period: PricingPeriod, arrival_date: date) -> bool:
    """Whether `period` covers `arrival_date`."""
    return _DATE_TESTS[period.period_type](period, arrival_date)


def precedence_key(position: int, period: PricingPeriod) -> tuple[int, int]:
    """
    Sort key for matching periods (lower wins).

    Special periods beat month periods; within a kind the earlier
    position in the matrix wins.
    """
    rank = 0 if period.period_type == PeriodType.SPECIAL else 1
    return rank, position


def find_matching_periods(
    matrix: list[PricingPeriod],
    arrival_date: date
) -> list[tuple[int, PricingPeriod]]:
    """
    Find all periods covering the date.

    Returns (position, period) pairs sorted by precedence.
    """
    matched = [
        (position, period)
        for position, period in enumerate(matrix)
        if matches_date(period, arrival_date)
    ]
    matched.sort(key=lambda pair: precedence_key(*pair))
    return matched


def select_period(matrix: list[PricingPeriod], arrival_date: date) -> Optional[PricingPeriod]:
    """Return the winning period for the date, or None."""
    matched = find_matching_periods(matrix, arrival_date)
    return matched[0][1] if matched else None
