"""
Pricing matrix helpers - completeness, cell edits and authoring checks.

All helpers operate on the in-memory matrix being edited. Expected
authoring problems (empty cells, bad input, overlaps) come back as
result objects or message lists; only caller mistakes such as an
out-of-range period index raise.
"""
import math
from dataclasses import dataclass, field, replace
from itertools import combinations
from typing import Any, Optional

import pandas as pd

from .models import (
    ON_REQUEST,
    GroupSizeTier,
    Package,
    PeriodType,
    Price,
    PriceCell,
    PriceMarker,
    PricingPeriod,
)
from .period_matcher import month_number

ON_REQUEST_LABEL = "ON REQUEST"


@dataclass
class MatrixValidation:
    """Result of a completeness check."""
    is_valid: bool
    errors: list[str] = field(default_factory=list)
    filled_cells: int = 0
    total_cells: int = 0


@dataclass
class CellUpdate:
    """Outcome of parsing or applying a cell value."""
    accepted: bool
    price: Optional[Price] = None
    error: Optional[str] = None


def is_complete(
    matrix: list[PricingPeriod],
    tiers: list[GroupSizeTier],
    duration_options: list[int]
) -> MatrixValidation:
    """
    Check that every (period, tier, nights) combination has a cell.

    ON_REQUEST cells count as filled. A matrix without periods is
    incomplete rather than vacuously valid.
    """
    if not matrix:
        return MatrixValidation(is_valid=False, errors=["no pricing periods defined"])

    errors = []
    filled = 0
    total = len(matrix) * len(tiers) * len(duration_options)

    for period in matrix:
        for tier_index, tier in enumerate(tiers):
            for nights in duration_options:
                if period.find_cell(tier_index, nights) is None:
                    errors.append(f"{period.period}: tier {tier.label}, {nights} nights is empty")
                else:
                    filled += 1

    return MatrixValidation(
        is_valid=not errors,
        errors=errors,
        filled_cells=filled,
        total_cells=total,
    )


def parse_price_input(value: Any) -> CellUpdate:
    """
    Parse a cell value typed by an author.

    "ON REQUEST" in any case, with any spacing or an underscore, maps
    to ON_REQUEST. Numbers must be finite and non-negative.
    """
    if isinstance(value, PriceMarker):
        return CellUpdate(accepted=True, price=value)

    if isinstance(value, bool):
        return CellUpdate(accepted=False, error="Price must be a number or ON REQUEST")

    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return CellUpdate(accepted=False, error="Price is required")
        compact = "".join(text.split()).replace("_", "").upper()
        if compact == "ONREQUEST":
            return CellUpdate(accepted=True, price=ON_REQUEST)
        try:
            number = float(text)
        except ValueError:
            return CellUpdate(accepted=False, error=f"'{text}' is not a number or ON REQUEST")
    else:
        return CellUpdate(accepted=False, error="Price must be a number or ON REQUEST")

    if not math.isfinite(number):
        return CellUpdate(accepted=False, error="Price must be a finite number")
    if number < 0:
        return CellUpdate(accepted=False, error="Price must be non-negative")
    return CellUpdate(accepted=True, price=number)


def get_cell(matrix: list[PricingPeriod], period_index: int, tier_index: int, nights: int) -> Optional[Price]:
    """Current price for a cell, or None when not authored."""
    cell = matrix[period_index].find_cell(tier_index, nights)
    return cell.price if cell else None


def set_cell(
    matrix: list[PricingPeriod],
    period_index: int,
    tier_index: int,
    nights: int,
    value: Any
) -> CellUpdate:
    """
    Set one cell of the matrix.

    Invalid values are rejected without touching the matrix.
    """
    period = matrix[period_index]
    if tier_index < 0:
        raise ValueError(f"tier_index must be non-negative, got {tier_index}")
    if nights < 1:
        raise ValueError(f"nights must be at least 1, got {nights}")

    update = parse_price_input(value)
    if not update.accepted:
        return update

    cell = period.find_cell(tier_index, nights)
    if cell is not None:
        cell.price = update.price
    else:
        period.prices.append(PriceCell(group_size_tier_index=tier_index, nights=nights, price=update.price))
    return update


def validate_period(period: PricingPeriod) -> list[str]:
    """Check a single period definition."""
    errors = []
    if not period.period.strip():
        errors.append("Period name is required")
    if period.period_type == PeriodType.MONTH:
        if period.period.strip() and month_number(period.period) is None:
            errors.append(f'"{period.period}" is not a calendar month')
    else:
        if period.start_date is None or period.end_date is None:
            errors.append(f'Special period "{period.period}" needs start and end dates')
        elif period.end_date < period.start_date:
            errors.append(f'Special period "{period.period}": end date is before start date')
    return errors


def add_period(matrix: list[PricingPeriod], period: PricingPeriod) -> list[str]:
    """
    Append a period to the matrix.

    Returns validation errors; the matrix is unchanged when any exist.
    """
    errors = validate_period(period)
    if errors:
        return errors
    period.period = period.period.strip()
    matrix.append(period)
    return []


def remove_period(matrix: list[PricingPeriod], period_index: int) -> PricingPeriod:
    """Remove and return a period. Confirming the loss is the caller's job."""
    return matrix.pop(period_index)


def rename_period(matrix: list[PricingPeriod], period_index: int, new_name: str) -> bool:
    """
    Rename a period.

    Rejected (returns False) when the name is blank, or when a month
    period would no longer be named after a calendar month.
    """
    if not new_name or not new_name.strip():
        return False
    renamed = replace(matrix[period_index], period=new_name.strip())
    if validate_period(renamed):
        return False
    matrix[period_index].period = renamed.period
    return True


def validate_tiers(tiers: list[GroupSizeTier]) -> list[str]:
    """
    Report tier authoring problems: inverted ranges, overlaps and gaps.

    Gaps are allowed but headcounts inside them cannot be priced.
    """
    problems = []
    for tier in tiers:
        if tier.min_people > tier.max_people:
            problems.append(
                f'Tier "{tier.label}": minimum {tier.min_people} exceeds maximum {tier.max_people}'
            )

    for a, b in combinations(tiers, 2):
        if a.min_people <= b.max_people and b.min_people <= a.max_people:
            low = max(a.min_people, b.min_people)
            high = min(a.max_people, b.max_people)
            problems.append(f'Tiers "{a.label}" and "{b.label}" overlap ({low}-{high} people)')

    ordered = sorted(
        (t for t in tiers if t.min_people <= t.max_people),
        key=lambda t: t.min_people
    )
    for current, following in zip(ordered, ordered[1:]):
        if following.min_people > current.max_people + 1:
            problems.append(f"No tier covers {current.max_people + 1}-{following.min_people - 1} people")

    return problems


def find_overlapping_specials(matrix: list[PricingPeriod]) -> list[str]:
    """Report special periods whose date ranges overlap."""
    specials = [
        p for p in matrix
        if p.is_special and p.start_date is not None and p.end_date is not None
    ]
    return [
        f'Special periods "{a.period}" and "{b.period}" overlap'
        for a, b in combinations(specials, 2)
        if a.start_date <= b.end_date and b.start_date <= a.end_date
    ]


def format_price(value: Optional[Price]) -> Optional[Any]:
    """Display value for a cell: number, "ON REQUEST" or None."""
    if value is None:
        return None
    if value == ON_REQUEST:
        return ON_REQUEST_LABEL
    return float(value)


def pricing_grid(package: Package) -> pd.DataFrame:
    """
    Tabular view of the matrix for editors and exports.

    Rows are periods; columns are a (tier, nights) MultiIndex.
    Missing cells are None.
    """
    columns = pd.MultiIndex.from_product(
        [[t.label for t in package.group_size_tiers], list(package.duration_options)],
        names=["tier", "nights"],
    )
    rows = []
    for period in package.pricing_matrix:
        row = []
        for tier_index in range(len(package.group_size_tiers)):
            for nights in package.duration_options:
                cell = period.find_cell(tier_index, nights)
                row.append(format_price(cell.price) if cell else None)
        rows.append(row)

    return pd.DataFrame(
        rows,
        index=pd.Index([p.period for p in package.pricing_matrix], name="period"),
        columns=columns,
        dtype=object,
    )
