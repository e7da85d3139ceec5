"""
Data models for the package pricing engine.

Uses dataclasses for structured, type-safe data representation.
Packages own their tiers and matrix; quotes hold frozen snapshots
(LinkedPackageSelection, SelectedEvent) copied at selection time.
"""
import calendar
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Optional, Union


class PriceMarker(str, Enum):
    """Non-numeric price values. Compares equal to its string value."""
    ON_REQUEST = "ON_REQUEST"

    def __str__(self) -> str:
        return self.value


ON_REQUEST = PriceMarker.ON_REQUEST

Price = Union[float, PriceMarker]

MONTH_NAMES = tuple(calendar.month_name[1:])

PRICING_FIELDS = ('currency', 'group_size_tiers', 'duration_options', 'pricing_matrix')


class PeriodType(str, Enum):
    MONTH = "month"
    SPECIAL = "special"


class PackageStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    DELETED = "deleted"


class ResolutionFailure(str, Enum):
    """Typed resolution failures (returned, never raised)."""
    NO_MATCHING_TIER = "NoMatchingTier"
    NO_MATCHING_PERIOD = "NoMatchingPeriod"
    NO_PRICE_FOR_DURATION = "NoPriceForDuration"


GENERIC_NO_PRICING_MESSAGE = "No pricing available for this date/group size"


@dataclass
class TraceStep:
    """A single step in the price resolution trace."""
    step: str
    description: str
    value: Optional[str] = None


@dataclass
class GroupSizeTier:
    """A headcount bracket with its own price column."""
    label: str
    min_people: int
    max_people: int

    def contains(self, people_count: int) -> bool:
        return self.min_people <= people_count <= self.max_people


@dataclass
class PriceCell:
    """Price for one tier × nights combination inside a period."""
    group_size_tier_index: int
    nights: int
    price: Price

    @property
    def is_on_request(self) -> bool:
        return self.price == ON_REQUEST


@dataclass
class PricingPeriod:
    """
    A row group of the pricing matrix.

    Month periods match by calendar month (any year), special periods
    by an inclusive [start_date, end_date] range.
    """
    period: str
    period_type: PeriodType = PeriodType.MONTH
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    prices: list[PriceCell] = field(default_factory=list)

    def __post_init__(self):
        self.period_type = PeriodType(self.period_type)

    @property
    def is_special(self) -> bool:
        return self.period_type == PeriodType.SPECIAL

    def find_cell(self, tier_index: int, nights: int) -> Optional[PriceCell]:
        """Return the cell for (tier_index, nights), or None if not authored."""
        for cell in self.prices:
            if cell.group_size_tier_index == tier_index and cell.nights == nights:
                return cell
        return None


@dataclass
class Inclusion:
    text: str
    category: str = "other"


@dataclass
class Package:
    """A super package: tiers, durations and the pricing matrix."""
    id: str
    name: str
    currency: str
    group_size_tiers: list[GroupSizeTier]
    duration_options: list[int]
    pricing_matrix: list[PricingPeriod] = field(default_factory=list)
    version: int = 1
    status: PackageStatus = PackageStatus.ACTIVE
    destination: Optional[str] = None
    inclusions: list[Inclusion] = field(default_factory=list)
    accommodation_examples: list[str] = field(default_factory=list)

    def __post_init__(self):
        self.status = PackageStatus(self.status)

    @property
    def is_linkable(self) -> bool:
        """Only active packages can be linked to new quotes."""
        return self.status == PackageStatus.ACTIVE


@dataclass
class PriceResolution:
    """
    Result of resolving a price from a package.

    On success `price` is the per-person price (or ON_REQUEST); on
    failure `failure` names the kind and `detail` explains it.
    """
    package_id: str
    people_count: int
    nights: int
    arrival_date: date
    currency: str
    price: Optional[Price] = None
    price_was_on_request: bool = False
    tier_index: Optional[int] = None
    tier_label: Optional[str] = None
    period_name: Optional[str] = None
    period_type: Optional[PeriodType] = None
    failure: Optional[ResolutionFailure] = None
    detail: Optional[str] = None
    trace: list[TraceStep] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.failure is None

    @property
    def message(self) -> Optional[str]:
        """Generic user-facing message for failures."""
        return GENERIC_NO_PRICING_MESSAGE if self.failure else None

    def add_trace(self, step: str, description: str, value: str = None):
        """Add a step to the resolution trace."""
        self.trace.append(TraceStep(step=step, description=description, value=value))

    def get_trace_text(self) -> str:
        """Get human-readable trace as formatted text."""
        lines = []
        for t in self.trace:
            if t.value:
                lines.append(f"→ {t.step}: {t.description} = {t.value}")
            else:
                lines.append(f"→ {t.step}: {t.description}")
        return "\n".join(lines)


@dataclass(frozen=True)
class SelectedTier:
    tier_index: int
    tier_label: str


@dataclass(frozen=True)
class LinkedPackageSelection:
    """Frozen snapshot of the tier/period/price a quote was resolved against."""
    package_id: str
    package_version: int
    selected_tier: SelectedTier
    selected_nights: int
    selected_period: str
    calculated_price: Price
    price_was_on_request: bool
    number_of_people: int
    arrival_date: date
    package_name: Optional[str] = None


@dataclass(frozen=True)
class PriceBreakdown:
    """How a quote's package price was derived."""
    price_per_person: Price
    number_of_people: int
    total_price: Price
    tier_used: str
    period_used: str
    currency: str


@dataclass(frozen=True)
class SelectedEvent:
    """An add-on event copied onto a quote at selection time."""
    event_id: str
    event_name: str
    event_price: float
    event_currency: str
    added_at: datetime = field(default_factory=datetime.now)
