"""
Boundary validation - pydantic models for payloads entering the core.

Payloads use the camelCase field names of the package/quote contract
(snake_case is accepted too). Validation failures are flattened into
per-field errors instead of propagating.
"""
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, ValidationError, field_validator, model_validator
from pydantic.alias_generators import to_camel

from ..config.settings import get_settings
from ..engine.models import (
    ON_REQUEST,
    GroupSizeTier,
    Inclusion,
    Package,
    PriceCell,
    PricingPeriod,
    SelectedEvent,
)


@dataclass
class FieldError:
    """A validation error tied to one field."""
    field: str
    message: str

    def __str__(self) -> str:
        return f"{self.field}: {self.message}"


@dataclass
class ValidationResult:
    """Result of validating a payload."""
    is_valid: bool
    errors: list[FieldError] = field(default_factory=list)

    @property
    def messages(self) -> list[str]:
        return [str(e) for e in self.errors]


def _location(loc: tuple) -> str:
    path = ""
    for part in loc:
        if isinstance(part, int):
            path += f"[{part}]"
        else:
            path += f".{part}" if path else str(part)
    return path or "__root__"


def flatten_errors(exc: ValidationError, prefix: str = "") -> list[FieldError]:
    """Convert a pydantic ValidationError into FieldErrors."""
    errors = []
    for err in exc.errors():
        location = _location(tuple(err["loc"]))
        if prefix:
            location = f"{prefix}.{location}" if not location.startswith("[") else prefix + location
        message = err["msg"]
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        errors.append(FieldError(field=location, message=message))
    return errors


def _date_part(value: Any) -> Any:
    """Accept full ISO datetimes where only the date matters."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, str) and "T" in value:
        return value.split("T", 1)[0]
    return value


class Schema(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, str_strip_whitespace=True)


NonNegativePrice = Annotated[float, Field(ge=0, le=1_000_000, allow_inf_nan=False)]
DateOnly = Annotated[date, BeforeValidator(_date_part)]


class GroupSizeTierSchema(Schema):
    label: str = Field(min_length=1, max_length=100)
    min_people: int = Field(ge=1, le=1000)
    max_people: int = Field(ge=1, le=1000)

    @model_validator(mode="after")
    def check_range(self):
        if self.max_people < self.min_people:
            raise ValueError("Maximum people must be greater than or equal to minimum people")
        return self


class PriceCellSchema(Schema):
    group_size_tier_index: int = Field(ge=0)
    nights: int = Field(ge=1, le=365)
    price: Union[NonNegativePrice, Literal["ON_REQUEST"]]


class PricingPeriodSchema(Schema):
    period: str = Field(min_length=1, max_length=200)
    period_type: Literal["month", "special"] = "month"
    start_date: Optional[DateOnly] = None
    end_date: Optional[DateOnly] = None
    prices: list[PriceCellSchema] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_special_dates(self):
        if self.period_type == "special":
            if self.start_date is None or self.end_date is None:
                raise ValueError("Start date and end date are required for special periods")
            if self.end_date < self.start_date:
                raise ValueError("End date must be after or equal to start date")
        return self


class InclusionSchema(Schema):
    text: str = Field(min_length=1, max_length=500)
    category: Literal["transfer", "accommodation", "activity", "service", "other"] = "other"


class PackagePayload(Schema):
    """Package as submitted by the authoring surface."""
    id: Optional[str] = None
    name: str = Field(min_length=1, max_length=200)
    destination: Optional[str] = Field(default=None, max_length=100)
    currency: str
    group_size_tiers: list[GroupSizeTierSchema] = Field(min_length=1, max_length=10)
    duration_options: list[Annotated[int, Field(ge=1, le=365)]] = Field(min_length=1, max_length=20)
    pricing_matrix: list[PricingPeriodSchema] = Field(default_factory=list, max_length=50)
    inclusions: list[InclusionSchema] = Field(default_factory=list, max_length=100)
    accommodation_examples: list[Annotated[str, Field(max_length=200)]] = Field(default_factory=list, max_length=50)
    status: Literal["active", "inactive"] = "active"
    version: int = Field(default=1, ge=1)

    @field_validator("currency")
    @classmethod
    def check_currency(cls, v: str) -> str:
        code = v.upper()
        supported = get_settings().supported_currencies
        if code not in supported:
            raise ValueError(f"Currency must be one of {', '.join(supported)}")
        return code

    @model_validator(mode="after")
    def check_tier_references(self):
        tier_count = len(self.group_size_tiers)
        for entry in self.pricing_matrix:
            for cell in entry.prices:
                if cell.group_size_tier_index >= tier_count:
                    raise ValueError(
                        f'Period "{entry.period}" references tier {cell.group_size_tier_index}, '
                        f"but only {tier_count} tiers are defined"
                    )
        return self

    def to_package(self, package_id: Optional[str] = None) -> Package:
        """Build the domain Package."""
        return Package(
            id=package_id or self.id or "",
            name=self.name,
            destination=self.destination,
            currency=self.currency,
            version=self.version,
            status=self.status,
            group_size_tiers=[
                GroupSizeTier(label=t.label, min_people=t.min_people, max_people=t.max_people)
                for t in self.group_size_tiers
            ],
            duration_options=list(self.duration_options),
            pricing_matrix=[
                PricingPeriod(
                    period=p.period,
                    period_type=p.period_type,
                    start_date=p.start_date,
                    end_date=p.end_date,
                    prices=[
                        PriceCell(
                            group_size_tier_index=c.group_size_tier_index,
                            nights=c.nights,
                            price=ON_REQUEST if c.price == "ON_REQUEST" else float(c.price),
                        )
                        for c in p.prices
                    ],
                )
                for p in self.pricing_matrix
            ],
            inclusions=[Inclusion(text=i.text, category=i.category) for i in self.inclusions],
            accommodation_examples=list(self.accommodation_examples),
        )


class CalculatePriceRequest(Schema):
    """Parameters for a price calculation."""
    package_id: str = Field(min_length=1)
    number_of_people: int = Field(ge=1, le=1000)
    number_of_nights: int = Field(ge=1, le=365)
    arrival_date: DateOnly


class SelectedEventPayload(Schema):
    """An add-on event submitted with a quote."""
    event_id: str
    event_name: str = ""
    event_price: float = Field(allow_inf_nan=False)
    event_currency: str = Field(min_length=3, max_length=3)
    added_at: Optional[datetime] = None

    @field_validator("event_id")
    @classmethod
    def require_event_id(cls, v: str) -> str:
        if not v:
            raise ValueError("Event ID is required")
        return v

    @field_validator("event_price")
    @classmethod
    def require_non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError("Event price must be non-negative")
        return v

    def to_event(self) -> SelectedEvent:
        if self.added_at is None:
            return SelectedEvent(self.event_id, self.event_name, self.event_price, self.event_currency.upper())
        return SelectedEvent(self.event_id, self.event_name, self.event_price, self.event_currency.upper(), self.added_at)


def validate_package_payload(data: dict) -> tuple[Optional[Package], ValidationResult]:
    """Validate an authoring payload and build the Package."""
    try:
        payload = PackagePayload.model_validate(data)
    except ValidationError as e:
        return None, ValidationResult(is_valid=False, errors=flatten_errors(e))
    return payload.to_package(), ValidationResult(is_valid=True)


def validate_calculate_request(data: dict) -> tuple[Optional[CalculatePriceRequest], ValidationResult]:
    """Validate a price calculation request."""
    try:
        request = CalculatePriceRequest.model_validate(data)
    except ValidationError as e:
        return None, ValidationResult(is_valid=False, errors=flatten_errors(e))
    return request, ValidationResult(is_valid=True)
