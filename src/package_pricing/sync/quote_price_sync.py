"""
Quote Price Sync - Keeps a quote's price consistent with its linked package.

The engine owns the quote-side price state (status, calculated and
displayed price, breakdown, error) and drives the price calculation
collaborator. Parameter edits only compare against the last resolved
snapshot; calculations happen on explicit actions.

Every calculation is tagged with a generation number. Parameter edits,
manual prices and unlinking bump the generation, so a response that
arrives for an older generation is discarded.
"""
import asyncio
import logging
import math
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from enum import Enum
from typing import Optional

from ..config.settings import get_settings
from ..engine.models import (
    LinkedPackageSelection,
    Price,
    PriceBreakdown,
    SelectedTier,
)
from ..engine.price_resolver import coerce_date
from ..events.aggregator import EventSelection, quote_total
from ..exceptions import (
    CalculationTimeoutError,
    InvalidParametersError,
    PackageInactiveError,
    PackageNotFoundError,
    QuotePriceError,
    as_quote_price_error,
)
from ..services.price_calculator import PriceCalculation, PriceCalculator
from .state_machine import SyncEvent, SyncStatus, next_status

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QuoteParameters:
    """Quote fields that feed price resolution."""
    number_of_people: int
    number_of_nights: int
    arrival_date: date
    currency: str = field(default_factory=lambda: get_settings().default_currency)
    # Live version of the linked package, as last reported
    package_version: Optional[int] = None

    def __post_init__(self):
        object.__setattr__(self, 'arrival_date', coerce_date(self.arrival_date))
        object.__setattr__(self, 'currency', self.currency.upper())


class PriceChangeReason(str, Enum):
    PACKAGE_SELECTION = "package_selection"
    RECALCULATION = "recalculation"
    MANUAL_OVERRIDE = "manual_override"


@dataclass(frozen=True)
class PriceHistoryEntry:
    price: float
    reason: PriceChangeReason
    timestamp: datetime = field(default_factory=datetime.now)


class RecoveryAction(str, Enum):
    RETRY = "retry"
    ENTER_MANUAL_PRICE = "enter manual price"
    UNLINK_PACKAGE = "unlink package"
    SELECT_DIFFERENT_PACKAGE = "select different package"
    ADJUST_PARAMETERS = "adjust parameters"


@dataclass(frozen=True)
class _PriceState:
    """Quote price state captured when a calculation starts."""
    displayed_price: Optional[Price]
    calculated_price: Optional[Price]
    price_breakdown: Optional[PriceBreakdown]
    error: Optional[QuotePriceError] = None
    # Status to return to if the calculation is abandoned (reset and retry)
    resume_status: Optional[SyncStatus] = None


class QuotePriceSync:
    """
    Price sync engine for a single quote.

    Starts in `custom` (nothing to sync against) until a package is linked.
    Actions never raise for collaborator failures; they end in `error`
    with the failure kept on `error`.
    """

    def __init__(
        self,
        calculator: PriceCalculator,
        parameters: QuoteParameters,
        displayed_price: Optional[Price] = None,
        timeout: Optional[float] = None,
        events: Optional[EventSelection] = None
    ):
        settings = get_settings()
        self.calculator = calculator
        self.parameters = parameters
        self.timeout = timeout if timeout is not None else settings.calculation_timeout
        self.price_tolerance = settings.price_tolerance

        self.status = SyncStatus.CUSTOM
        self.displayed_price: Optional[Price] = displayed_price
        self.calculated_price: Optional[Price] = None
        self.price_breakdown: Optional[PriceBreakdown] = None
        self.linked_package: Optional[LinkedPackageSelection] = None
        self.error: Optional[QuotePriceError] = None
        self.price_history: list[PriceHistoryEntry] = []
        self.events = events if events is not None else EventSelection()

        self._package_id: Optional[str] = None
        self._resolved: Optional[QuoteParameters] = None
        self._generation = 0
        self._pending: Optional[_PriceState] = None

    # -- state ------------------------------------------------------------

    @property
    def package_id(self) -> Optional[str]:
        return self._package_id

    @property
    def is_linked(self) -> bool:
        return self._package_id is not None

    @property
    def is_calculating(self) -> bool:
        return self.status == SyncStatus.CALCULATING

    @property
    def price_was_on_request(self) -> bool:
        return bool(self.linked_package and self.linked_package.price_was_on_request)

    @property
    def total_price(self) -> Optional[Price]:
        """Displayed package price plus the selected events in the quote currency."""
        return quote_total(self.displayed_price, self.events.events, self.parameters.currency)

    @property
    def error_message(self) -> Optional[str]:
        """Raw message of the last failure."""
        return self.error.message if self.error else None

    @property
    def is_retryable(self) -> bool:
        return self.error is not None and self.error.is_retryable

    @property
    def validation_warnings(self) -> list[str]:
        if isinstance(self.error, InvalidParametersError):
            return list(self.error.validation_errors)
        return []

    @property
    def recovery_actions(self) -> list[RecoveryAction]:
        """Ways out of the `error` state for the current failure."""
        if self.status != SyncStatus.ERROR or self.error is None:
            return []
        actions = []
        if isinstance(self.error, InvalidParametersError):
            actions.append(RecoveryAction.ADJUST_PARAMETERS)
        if isinstance(self.error, (PackageNotFoundError, PackageInactiveError)):
            actions.append(RecoveryAction.SELECT_DIFFERENT_PACKAGE)
        # Retry is always offered; it leads when the failure may be transient
        if self.error.is_retryable:
            actions.insert(0, RecoveryAction.RETRY)
        else:
            actions.append(RecoveryAction.RETRY)
        actions.append(RecoveryAction.ENTER_MANUAL_PRICE)
        actions.append(RecoveryAction.UNLINK_PACKAGE)
        return actions

    # -- actions ----------------------------------------------------------

    async def link_package(self, package_id: str, optimistic_price: Optional[Price] = None):
        """Link a package and resolve its price for the current parameters."""
        if not package_id:
            raise ValueError("package_id is required")
        self._abandon_inflight()
        self._package_id = package_id
        self.linked_package = None
        self._resolved = None
        self.parameters = replace(self.parameters, package_version=None)
        self._transition(SyncEvent.LINK)
        await self._calculate(PriceChangeReason.PACKAGE_SELECTION, optimistic_price)

    def update_parameters(self, **changes):
        """
        Apply edits to quote parameters.

        While linked, any difference from the last resolved snapshot marks
        the quote out-of-sync; returning to the snapshot marks it synced.
        No calculation is started.
        """
        updated = replace(self.parameters, **changes)
        if updated == self.parameters:
            return
        self.parameters = updated
        if not self.is_linked:
            return
        self._parameters_changed()

    def notify_package_version(self, version: int):
        """Report the live version of the linked package."""
        if not self.is_linked or version == self.parameters.package_version:
            return
        self.parameters = replace(self.parameters, package_version=version)
        self._parameters_changed()

    async def recalculate_price(self, optimistic_price: Optional[Price] = None):
        """
        Re-resolve the price for the current parameters.

        A no-op while a calculation is in flight, while the price is
        custom, or in `error` (use retry).
        """
        if not self.is_linked or not self._transition(SyncEvent.RECALCULATE):
            return
        await self._calculate(PriceChangeReason.RECALCULATION, optimistic_price)

    def mark_as_custom_price(self, value: float):
        """Override the price by hand. The linked selection is kept."""
        if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value) or value < 0:
            raise ValueError(f"Custom price must be a finite non-negative number, got {value!r}")
        self._abandon_inflight()
        self._transition(SyncEvent.MANUAL_PRICE)
        self.displayed_price = float(value)
        self.price_history.append(PriceHistoryEntry(float(value), PriceChangeReason.MANUAL_OVERRIDE))

    async def reset_to_calculated(self):
        """Drop the custom price and re-resolve with the current parameters."""
        if not self.is_linked or not self._transition(SyncEvent.RESET):
            return
        await self._calculate(PriceChangeReason.RECALCULATION, resume_status=SyncStatus.CUSTOM)

    async def retry(self):
        """Retry the failed calculation."""
        if not self.is_linked or not self._transition(SyncEvent.RETRY):
            return
        await self._calculate(PriceChangeReason.RECALCULATION, resume_status=SyncStatus.ERROR)

    def unlink_package(self):
        """Detach from the package; the current price becomes custom."""
        self._abandon_inflight()
        self._transition(SyncEvent.UNLINK)
        self._package_id = None
        self.linked_package = None
        self._resolved = None
        self.calculated_price = None
        self.price_breakdown = None
        self.error = None
        self.parameters = replace(self.parameters, package_version=None)

    # -- internals --------------------------------------------------------

    def _transition(self, event: SyncEvent) -> bool:
        status = next_status(self.status, event)
        if status is None:
            logger.debug("Ignoring %s while %s", event.value, self.status.value)
            return False
        if status != self.status:
            logger.debug("Quote price status %s -> %s on %s", self.status.value, status.value, event.value)
        self.status = status
        return True

    def _parameters_changed(self):
        if self.status == SyncStatus.CALCULATING:
            abandoned = self._abandon_inflight()
            if abandoned is not None and abandoned.resume_status is not None:
                self._resume(abandoned)
                return
            self._transition(SyncEvent.PARAMETERS_CHANGED)

        if self.parameters == self._resolved:
            self._transition(SyncEvent.PARAMETERS_RESTORED)
        else:
            self._transition(SyncEvent.PARAMETERS_CHANGED)

    def _abandon_inflight(self) -> Optional[_PriceState]:
        """Invalidate any in-flight calculation and undo its optimistic price."""
        self._generation += 1
        pending = self._pending
        if pending is not None:
            self.displayed_price = pending.displayed_price
            self.calculated_price = pending.calculated_price
            self.price_breakdown = pending.price_breakdown
            self._pending = None
        return pending

    def _resume(self, abandoned: _PriceState):
        """Return to the custom or error state an abandoned reset or retry started from."""
        logger.debug("Quote price status %s -> %s (calculation abandoned)", self.status.value, abandoned.resume_status.value)
        self.status = abandoned.resume_status
        self.error = abandoned.error

    async def _calculate(
        self,
        reason: PriceChangeReason,
        optimistic_price: Optional[Price] = None,
        resume_status: Optional[SyncStatus] = None
    ):
        self._generation += 1
        generation = self._generation
        params = self.parameters
        package_id = self._package_id

        self._pending = _PriceState(
            self.displayed_price,
            self.calculated_price,
            self.price_breakdown,
            error=self.error,
            resume_status=resume_status,
        )
        self.error = None
        if optimistic_price is not None:
            self.displayed_price = optimistic_price

        error: Optional[QuotePriceError] = None
        result: Optional[PriceCalculation] = None
        try:
            result = await asyncio.wait_for(
                self.calculator.calculate_price(
                    package_id,
                    params.number_of_people,
                    params.number_of_nights,
                    params.arrival_date,
                ),
                timeout=self.timeout,
            )
        # Before the generic mapping: TimeoutError is an OSError
        except asyncio.TimeoutError:
            error = CalculationTimeoutError(self.timeout)
        except Exception as e:
            error = as_quote_price_error(e)

        if generation != self._generation:
            logger.info("Discarding stale price response for package %s", package_id)
            return

        previous = self._pending
        self._pending = None

        if error is not None:
            self.displayed_price = previous.displayed_price
            self.calculated_price = previous.calculated_price
            self.price_breakdown = previous.price_breakdown
            self.error = error
            self._transition(SyncEvent.FAILED)
            logger.warning("Price calculation failed for package %s: [%s] %s", package_id, error.code, error.message)
            return

        self._accept(package_id, params, result, previous, reason)

    def _accept(
        self,
        package_id: str,
        params: QuoteParameters,
        result: PriceCalculation,
        previous: _PriceState,
        reason: PriceChangeReason
    ):
        snapshot = replace(params, package_version=result.package_version)
        self.parameters = snapshot
        self._resolved = snapshot
        self.linked_package = LinkedPackageSelection(
            package_id=package_id,
            package_version=result.package_version,
            selected_tier=SelectedTier(result.tier_index, result.tier_label),
            selected_nights=params.number_of_nights,
            selected_period=result.period,
            calculated_price=result.total_price,
            price_was_on_request=result.price_was_on_request,
            number_of_people=params.number_of_people,
            arrival_date=params.arrival_date,
        )
        self.calculated_price = result.total_price
        self.price_breakdown = result.breakdown

        if result.price_was_on_request:
            # Nothing to display; the price is entered by hand
            self.displayed_price = previous.displayed_price
        else:
            self._record(float(result.total_price), reason, previous.displayed_price)
            self.displayed_price = result.total_price

        self._transition(SyncEvent.SUCCEEDED)

    def _record(self, price: float, reason: PriceChangeReason, last: Optional[Price]):
        unchanged = isinstance(last, (int, float)) and abs(last - price) <= self.price_tolerance
        if unchanged and reason == PriceChangeReason.RECALCULATION:
            return
        self.price_history.append(PriceHistoryEntry(price, reason))
