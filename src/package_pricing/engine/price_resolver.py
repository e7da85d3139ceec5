"""
Price Resolver - Pure mapping from quote parameters to a package price.

Resolution order:
1. Tier match: first tier whose [min_people, max_people] contains the headcount
2. Period match: periods covering the arrival date, special before month
3. Cell lookup: (tier index, nights) within the winning period
4. ON_REQUEST cells resolve successfully with price_was_on_request set

Failures come back as typed results on PriceResolution, never as exceptions.
The resolver returns the per-person price; totals are the caller's concern.
"""
import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional, Union

from .models import (
    ON_REQUEST,
    Package,
    PriceResolution,
    ResolutionFailure,
)
from .period_matcher import select_period

logger = logging.getLogger(__name__)

DateLike = Union[date, datetime, str]


def coerce_date(value: DateLike) -> date:
    """
    Normalize an arrival date.

    Accepts date, datetime, or an ISO string (YYYY-MM-DD or full ISO 8601).
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and len(value.strip()) >= 10:
        return date.fromisoformat(value.strip()[:10])
    raise ValueError(f"Invalid arrival date: {value!r}")


def _check_counts(people_count: int, nights: int):
    if people_count < 1:
        raise ValueError(f"people_count must be at least 1, got {people_count}")
    if nights < 1:
        raise ValueError(f"nights must be at least 1, got {nights}")


def resolve(
    package: Package,
    people_count: int,
    nights: int,
    arrival_date: DateLike
) -> PriceResolution:
    """
    Resolve the per-person price for a package.

    Args:
        package: Package with tiers and pricing matrix
        people_count: Number of people travelling
        nights: Number of nights
        arrival_date: Arrival date (date, datetime or ISO string)

    Returns:
        PriceResolution with price, tier, period and trace, or a typed failure
    """
    _check_counts(people_count, nights)
    arrival = coerce_date(arrival_date)

    result = PriceResolution(
        package_id=package.id,
        people_count=people_count,
        nights=nights,
        arrival_date=arrival,
        currency=package.currency,
    )
    result.add_trace("Package", f"Resolving {package.name} v{package.version}", package.id)

    # 1. Tier match (first in list order wins on overlap)
    tier_index = None
    for index, tier in enumerate(package.group_size_tiers):
        if tier.contains(people_count):
            tier_index = index
            break

    if tier_index is None:
        return _fail(
            result,
            ResolutionFailure.NO_MATCHING_TIER,
            f"No group size tier covers {people_count} people",
        )

    tier = package.group_size_tiers[tier_index]
    result.tier_index = tier_index
    result.tier_label = tier.label
    result.add_trace("Tier Match", f"{people_count} people in {tier.min_people}-{tier.max_people}", tier.label)

    # 2. Period match
    period = select_period(package.pricing_matrix, arrival)
    if period is None:
        return _fail(
            result,
            ResolutionFailure.NO_MATCHING_PERIOD,
            f"No pricing period covers {arrival.isoformat()}",
        )

    result.period_name = period.period
    result.period_type = period.period_type
    result.add_trace("Period Match", f"{period.period_type.value} period covers {arrival.isoformat()}", period.period)

    # 3. Cell lookup
    cell = period.find_cell(tier_index, nights)
    if cell is None:
        return _fail(
            result,
            ResolutionFailure.NO_PRICE_FOR_DURATION,
            f"No price for {nights} nights ({tier.label}, {period.period})",
        )

    if cell.is_on_request:
        result.price = ON_REQUEST
        result.price_was_on_request = True
        result.add_trace("Price Resolution", f"{nights} nights priced on request", "ON REQUEST")
        return result

    # 4. Numeric price
    result.price = float(cell.price)
    result.add_trace("Price Resolution", f"{nights} nights per person", f"{package.currency} {result.price:.2f}")
    return result


def _fail(result: PriceResolution, failure: ResolutionFailure, detail: str) -> PriceResolution:
    result.failure = failure
    result.detail = detail
    result.add_trace("Failure", detail, failure.value)
    logger.debug("Resolution failed for package %s: %s (%s)", result.package_id, failure.value, detail)
    return result


@dataclass
class ParameterWarning:
    """A quote parameter the package cannot price, with suggestions."""
    field: str
    message: str
    suggested_values: list = field(default_factory=list)


def check_parameters(
    package: Package,
    people_count: int,
    nights: int,
    arrival_date: DateLike
) -> list[ParameterWarning]:
    """
    Check quote parameters against package constraints.

    Returns one warning per incompatible field; empty when the package
    has a tier, duration and period for the parameters.
    """
    warnings = []
    arrival: Optional[date] = None
    try:
        arrival = coerce_date(arrival_date)
    except ValueError:
        warnings.append(ParameterWarning("arrivalDate", f"Invalid arrival date: {arrival_date!r}"))

    if not any(tier.contains(people_count) for tier in package.group_size_tiers):
        limits = [f"{t.min_people}-{t.max_people}" for t in package.group_size_tiers]
        warnings.append(ParameterWarning(
            "numberOfPeople",
            f"{people_count} people is outside the package group sizes",
            limits,
        ))

    if nights not in package.duration_options:
        warnings.append(ParameterWarning(
            "numberOfNights",
            f"{nights} nights is not available for this package",
            sorted(package.duration_options),
        ))

    if arrival is not None and select_period(package.pricing_matrix, arrival) is None:
        warnings.append(ParameterWarning(
            "arrivalDate",
            f"Date {arrival.isoformat()} is outside available pricing periods",
            [p.period for p in package.pricing_matrix],
        ))

    return warnings
