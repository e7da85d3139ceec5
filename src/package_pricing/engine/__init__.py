"""Engine subpackage - pricing matrix model and price resolution."""
from .models import (
    ON_REQUEST,
    GroupSizeTier,
    Package,
    PriceCell,
    PriceMarker,
    PriceResolution,
    PricingPeriod,
    ResolutionFailure,
)
from .matrix import is_complete, set_cell
from .price_resolver import resolve, check_parameters

__all__ = [
    'ON_REQUEST', 'GroupSizeTier', 'Package', 'PriceCell', 'PriceMarker',
    'PriceResolution', 'PricingPeriod', 'ResolutionFailure',
    'is_complete', 'set_cell', 'resolve', 'check_parameters',
]
