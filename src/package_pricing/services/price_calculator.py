"""
Price Calculator - The price calculation collaborator used by the sync engine.

LocalPriceCalculator runs the resolver in-process against a PackageStore
and raises the typed QuotePriceError subclasses a remote endpoint would
return as error responses.
"""
import logging
from dataclasses import dataclass
from typing import Optional, Protocol

from ..engine.models import (
    ON_REQUEST,
    PackageStatus,
    Price,
    PriceBreakdown,
    ResolutionFailure,
)
from ..engine.price_resolver import DateLike, resolve
from ..exceptions import (
    DateOutOfRangeError,
    DurationNotAvailableError,
    InvalidParametersError,
    PackageInactiveError,
    TierLimitExceededError,
)
from .package_store import PackageStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PriceCalculation:
    """
    Result of a price calculation.

    `price` is the total for the group (same as `total_price`),
    `price_per_person` the matrix cell. Both are ON_REQUEST together.
    """
    price: Price
    price_per_person: Price
    total_price: Price
    tier_label: str
    tier_index: int
    period: str
    currency: str
    package_version: int
    price_was_on_request: bool
    breakdown: Optional[PriceBreakdown] = None


class PriceCalculator(Protocol):
    async def calculate_price(
        self,
        package_id: str,
        number_of_people: int,
        number_of_nights: int,
        arrival_date: DateLike
    ) -> PriceCalculation:
        ...


class LocalPriceCalculator:
    """Price calculation backed by an in-memory PackageStore."""

    def __init__(self, store: PackageStore):
        self.store = store

    async def calculate_price(
        self,
        package_id: str,
        number_of_people: int,
        number_of_nights: int,
        arrival_date: DateLike
    ) -> PriceCalculation:
        package = self.store.get_package(package_id)
        if package.status != PackageStatus.ACTIVE:
            raise PackageInactiveError(package_id, package.status.value)

        try:
            resolution = resolve(package, number_of_people, number_of_nights, arrival_date)
        except ValueError as e:
            raise InvalidParametersError(str(e), [str(e)], {"package_id": package_id}) from e

        if not resolution.ok:
            logger.info("Price calculation failed for %s: %s", package_id, resolution.detail)
            if resolution.failure == ResolutionFailure.NO_MATCHING_TIER:
                max_people = max((t.max_people for t in package.group_size_tiers), default=0)
                raise TierLimitExceededError(number_of_people, max_people)
            if resolution.failure == ResolutionFailure.NO_MATCHING_PERIOD:
                raise DateOutOfRangeError(
                    resolution.arrival_date.isoformat(),
                    [p.period for p in package.pricing_matrix],
                )
            raise DurationNotAvailableError(number_of_nights, sorted(package.duration_options))

        if resolution.price_was_on_request:
            total = ON_REQUEST
            breakdown = None
        else:
            total = round(resolution.price * number_of_people, 2)
            breakdown = PriceBreakdown(
                price_per_person=resolution.price,
                number_of_people=number_of_people,
                total_price=total,
                tier_used=resolution.tier_label,
                period_used=resolution.period_name,
                currency=package.currency,
            )

        return PriceCalculation(
            price=total,
            price_per_person=resolution.price,
            total_price=total,
            tier_label=resolution.tier_label,
            tier_index=resolution.tier_index,
            period=resolution.period_name,
            currency=package.currency,
            package_version=package.version,
            price_was_on_request=resolution.price_was_on_request,
            breakdown=breakdown,
        )
