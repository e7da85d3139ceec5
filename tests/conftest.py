import os
import sys
from datetime import date

import pytest

# Add src to path for internal imports
src_path = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'src')
if src_path not in sys.path:
    sys.path.insert(0, src_path)

from package_pricing.config.settings import reset_settings
from package_pricing.engine.models import (
    ON_REQUEST,
    GroupSizeTier,
    Package,
    PeriodType,
    PriceCell,
    PricingPeriod,
)


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(autouse=True)
def fresh_settings(monkeypatch):
    """Each test sees default settings, unaffected by the environment."""
    for name in list(os.environ):
        if name.startswith("PACKAGE_PRICING_"):
            monkeypatch.delenv(name)
    reset_settings()
    yield
    reset_settings()


def full_period(name, prices_by_tier, **kwargs) -> PricingPeriod:
    """Build a period from {tier_index: {nights: price}}."""
    cells = [
        PriceCell(group_size_tier_index=tier_index, nights=nights, price=price)
        for tier_index, by_nights in prices_by_tier.items()
        for nights, price in by_nights.items()
    ]
    return PricingPeriod(period=name, prices=cells, **kwargs)


@pytest.fixture
def package() -> Package:
    """
    Tiers 6-11 / 12-999, durations 2-4 nights.

    January is fully priced (tier 0, 2 nights = 150); the New Year
    special covers 30 Dec 2024 to 2 Jan 2025.
    """
    return Package(
        id="benidorm",
        name="Benidorm Weekender",
        currency="GBP",
        group_size_tiers=[
            GroupSizeTier("6-11 People", 6, 11),
            GroupSizeTier("12+ People", 12, 999),
        ],
        duration_options=[2, 3, 4],
        pricing_matrix=[
            full_period("January", {
                0: {2: 150.0, 3: 195.0, 4: 240.0},
                1: {2: 140.0, 3: 180.0, 4: ON_REQUEST},
            }),
            full_period("New Year", {
                0: {2: 260.0, 3: ON_REQUEST, 4: ON_REQUEST},
                1: {2: 245.0, 3: ON_REQUEST, 4: ON_REQUEST},
            }, period_type=PeriodType.SPECIAL, start_date=date(2024, 12, 30), end_date=date(2025, 1, 2)),
        ],
    )
