"""
Event Aggregator - Add-on event totals for a quote.

Only events priced in the quote currency count toward the total. Events
in another currency are still listed, flagged with a mismatch warning.
"""
import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional

from pydantic import ValidationError

from ..config.settings import get_settings
from ..engine.models import ON_REQUEST, Price, SelectedEvent
from ..validation.schemas import FieldError, SelectedEventPayload, ValidationResult, flatten_errors

logger = logging.getLogger(__name__)

MIXED_CURRENCY_WARNING = "Some events use different currencies and are excluded from total"


def events_total(events: Iterable[SelectedEvent], quote_currency: str) -> float:
    """Sum of event prices in the quote currency."""
    currency = quote_currency.upper()
    return sum(e.event_price for e in events if e.event_currency.upper() == currency)


def quote_total(package_price: Optional[Price], events: Iterable[SelectedEvent], quote_currency: str) -> Optional[Price]:
    """
    Package price plus the events priced in the quote currency.

    An on-request or missing package price has no total; it is returned
    as is.
    """
    if package_price is None or package_price is ON_REQUEST:
        return package_price
    return package_price + events_total(events, quote_currency)


@dataclass
class EventLine:
    event: SelectedEvent
    included: bool
    warning: Optional[str] = None

    @property
    def currency_mismatch(self) -> bool:
        return not self.included


@dataclass
class EventAggregation:
    currency: str
    total: float
    lines: list[EventLine] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def event_count(self) -> int:
        return len(self.lines)

    @property
    def excluded_count(self) -> int:
        return sum(1 for line in self.lines if line.currency_mismatch)


def aggregate_events(events: Iterable[SelectedEvent], quote_currency: str) -> EventAggregation:
    """Total plus a per-event breakdown with currency mismatch warnings."""
    currency = quote_currency.upper()
    lines = []
    for event in events:
        if event.event_currency.upper() == currency:
            lines.append(EventLine(event=event, included=True))
        else:
            lines.append(EventLine(
                event=event,
                included=False,
                warning=f"Price in {event.event_currency.upper()}, quote is in {currency}; not included in total",
            ))

    result = EventAggregation(
        currency=currency,
        total=sum(line.event.event_price for line in lines if line.included),
        lines=lines,
    )
    if result.excluded_count:
        result.warnings.append(MIXED_CURRENCY_WARNING)
    return result


def _limit_error(max_events: int) -> FieldError:
    return FieldError("selectedEvents", f"Maximum {max_events} events allowed per quote")


class EventSelection:
    """Events chosen for a quote, in the order they were added."""

    def __init__(self, events: Optional[list[SelectedEvent]] = None, max_events: Optional[int] = None):
        self.max_events = max_events if max_events is not None else get_settings().max_events_per_quote
        self._events: list[SelectedEvent] = []
        for event in events or []:
            result = self.add(event)
            if not result.is_valid:
                raise ValueError("; ".join(result.messages))

    @property
    def events(self) -> tuple[SelectedEvent, ...]:
        return tuple(self._events)

    def __len__(self) -> int:
        return len(self._events)

    def add(self, event: SelectedEvent) -> ValidationResult:
        """Append an event; rejected when the selection is full or the id is already present."""
        if len(self._events) >= self.max_events:
            return ValidationResult(is_valid=False, errors=[_limit_error(self.max_events)])
        if any(e.event_id == event.event_id for e in self._events):
            return ValidationResult(
                is_valid=False,
                errors=[FieldError("eventId", f'Event "{event.event_id}" is already selected')],
            )
        self._events.append(event)
        return ValidationResult(is_valid=True)

    def remove(self, event_id: str) -> Optional[SelectedEvent]:
        for index, event in enumerate(self._events):
            if event.event_id == event_id:
                return self._events.pop(index)
        return None

    def total(self, quote_currency: str) -> float:
        return events_total(self._events, quote_currency)

    def aggregate(self, quote_currency: str) -> EventAggregation:
        return aggregate_events(self._events, quote_currency)


def validate_events_for_submission(events: list, max_events: Optional[int] = None) -> ValidationResult:
    """
    Validate selected events before a quote is saved.

    Accepts SelectedEvent instances or payload dicts. Errors are keyed
    like `selectedEvents[2].eventPrice`.
    """
    max_events = max_events if max_events is not None else get_settings().max_events_per_quote
    errors = []
    if len(events) > max_events:
        errors.append(_limit_error(max_events))

    for index, event in enumerate(events):
        if isinstance(event, SelectedEvent):
            data = {
                'event_id': event.event_id,
                'event_name': event.event_name,
                'event_price': event.event_price,
                'event_currency': event.event_currency,
                'added_at': event.added_at,
            }
        else:
            data = event
        try:
            SelectedEventPayload.model_validate(data)
        except ValidationError as e:
            errors.extend(flatten_errors(e, prefix=f"selectedEvents[{index}]"))

    if errors:
        logger.debug("Rejected %d event(s): %s", len(events), "; ".join(str(e) for e in errors))
    return ValidationResult(is_valid=not errors, errors=errors)
