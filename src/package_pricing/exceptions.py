"""
Exceptions for package pricing collaborators and the quote sync engine.

Each QuotePriceError carries a stable `code`, whether retrying can help,
and a context dict for diagnostics.
"""
from typing import Any, Optional


class QuotePriceError(Exception):
    """Base error for quote price operations."""
    code = "QUOTE_PRICE_ERROR"
    is_retryable = False

    def __init__(self, message: str, context: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}

    @property
    def user_message(self) -> str:
        return self.message


class PackageNotFoundError(QuotePriceError):
    code = "PACKAGE_NOT_FOUND"

    def __init__(self, package_id: str, version: Optional[int] = None):
        detail = f" version {version}" if version is not None else ""
        super().__init__(
            f'Package with ID "{package_id}"{detail} not found or has been deleted',
            {"package_id": package_id, "version": version},
        )

    @property
    def user_message(self) -> str:
        return "The selected package is no longer available. Please select a different package."


class PackageInactiveError(QuotePriceError):
    code = "PACKAGE_INACTIVE"

    def __init__(self, package_id: str, status: str):
        super().__init__(
            f"The linked package is {status}",
            {"package_id": package_id, "status": status},
        )


class PackageImmutableError(QuotePriceError):
    """Raised when editing a deleted package."""
    code = "PACKAGE_IMMUTABLE"

    def __init__(self, package_id: str):
        super().__init__(f'Package "{package_id}" is deleted and cannot be modified', {"package_id": package_id})


class InvalidParametersError(QuotePriceError):
    """Quote parameters the package cannot price."""
    code = "INVALID_PARAMETERS"

    def __init__(self, message: str, validation_errors: list[str], context: Optional[dict[str, Any]] = None):
        super().__init__(message, {"validation_errors": validation_errors, **(context or {})})
        self.validation_errors = validation_errors


class DurationNotAvailableError(InvalidParametersError):
    code = "DURATION_NOT_AVAILABLE"

    def __init__(self, requested_nights: int, available_nights: list[int]):
        super().__init__(
            f"{requested_nights} nights is not available for this package",
            [
                f"Requested duration: {requested_nights} nights",
                f"Available durations: {', '.join(str(n) for n in available_nights)} nights",
            ],
            {"requested_nights": requested_nights, "available_nights": available_nights},
        )

    @property
    def user_message(self) -> str:
        nights = ", ".join(str(n) for n in self.context["available_nights"])
        return f"The selected duration is not available. Please choose from: {nights} nights."


class TierLimitExceededError(InvalidParametersError):
    code = "TIER_LIMIT_EXCEEDED"

    def __init__(self, requested_people: int, max_people: int):
        super().__init__(
            f"{requested_people} people is outside the package group size tiers",
            [
                f"Requested people: {requested_people}",
                f"Maximum tier limit: {max_people}",
            ],
            {"requested_people": requested_people, "max_people": max_people},
        )

    @property
    def user_message(self) -> str:
        return (
            "The number of people is outside the package group sizes. "
            f"Maximum: {self.context['max_people']} people."
        )


class DateOutOfRangeError(InvalidParametersError):
    code = "DATE_OUT_OF_RANGE"

    def __init__(self, requested_date: str, available_periods: list[str]):
        super().__init__(
            f"Date {requested_date} is outside available pricing periods",
            [
                f"Requested date: {requested_date}",
                f"Available periods: {', '.join(available_periods)}",
            ],
            {"requested_date": requested_date, "available_periods": available_periods},
        )

    @property
    def user_message(self) -> str:
        return "The selected date is outside available pricing periods. Please choose a different date."


class NetworkError(QuotePriceError):
    code = "NETWORK_ERROR"
    is_retryable = True

    def __init__(self, message: str = "Network request failed", context: Optional[dict[str, Any]] = None):
        super().__init__(message, context)

    @property
    def user_message(self) -> str:
        return "Unable to connect to the server. Please check your internet connection and try again."


class CalculationTimeoutError(QuotePriceError):
    code = "CALCULATION_TIMEOUT"
    is_retryable = True

    def __init__(self, timeout: float):
        super().__init__(f"Price calculation timed out after {timeout:g}s", {"timeout": timeout})

    @property
    def user_message(self) -> str:
        return "Price calculation is taking longer than expected. Please try again."


class CalculationError(QuotePriceError):
    """Server-side calculation failure; may be transient."""
    code = "CALCULATION_ERROR"
    is_retryable = True


def as_quote_price_error(error: BaseException) -> QuotePriceError:
    """Wrap any collaborator failure in the QuotePriceError taxonomy."""
    if isinstance(error, QuotePriceError):
        return error
    if isinstance(error, (ConnectionError, OSError)):
        return NetworkError(str(error) or "Network request failed", {"original_error": type(error).__name__})
    return CalculationError(str(error) or "An unknown error occurred", {"original_error": type(error).__name__})
