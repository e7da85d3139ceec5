import math
from datetime import date

import pandas as pd
import pytest

from package_pricing.engine import ON_REQUEST, GroupSizeTier, PriceCell, PricingPeriod, is_complete, set_cell
from package_pricing.engine.matrix import (
    add_period,
    find_overlapping_specials,
    get_cell,
    parse_price_input,
    pricing_grid,
    remove_period,
    rename_period,
    validate_tiers,
)
from package_pricing.engine.models import PeriodType


def test_complete_matrix(package):
    result = is_complete(package.pricing_matrix, package.group_size_tiers, package.duration_options)
    assert result.is_valid
    assert result.errors == []
    assert result.filled_cells == result.total_cells == 12


def test_missing_cells_reported(package):
    package.pricing_matrix[0].prices = [c for c in package.pricing_matrix[0].prices if c.nights != 4]
    result = is_complete(package.pricing_matrix, package.group_size_tiers, package.duration_options)

    assert not result.is_valid
    assert result.errors == [
        "January: tier 6-11 People, 4 nights is empty",
        "January: tier 12+ People, 4 nights is empty",
    ]
    assert result.filled_cells == 10


def test_no_periods_is_incomplete(package):
    result = is_complete([], package.group_size_tiers, package.duration_options)
    assert not result.is_valid
    assert result.errors == ["no pricing periods defined"]


def test_on_request_counts_as_filled():
    tiers = [GroupSizeTier("All", 1, 10)]
    matrix = [PricingPeriod("May", prices=[PriceCell(0, 3, ON_REQUEST)])]
    assert is_complete(matrix, tiers, [3]).is_valid


@pytest.mark.parametrize("text", ["ON REQUEST", "on request", " on  request ", "On_Request", "ON_REQUEST"])
def test_parse_on_request(text):
    update = parse_price_input(text)
    assert update.accepted
    assert update.price is ON_REQUEST


@pytest.mark.parametrize("value, expected", [("150", 150.0), (" 99.50 ", 99.5), (0, 0.0), (175, 175.0)])
def test_parse_numbers(value, expected):
    update = parse_price_input(value)
    assert update.accepted
    assert update.price == expected


@pytest.mark.parametrize("value", ["", "   ", "-5", "abc", "nan", "inf", math.inf, -1, True, None])
def test_parse_rejects(value):
    update = parse_price_input(value)
    assert not update.accepted
    assert update.error


def test_set_cell_updates_existing(package):
    update = set_cell(package.pricing_matrix, 0, 0, 2, "175")
    assert update.accepted
    assert get_cell(package.pricing_matrix, 0, 0, 2) == 175.0


def test_set_cell_adds_missing():
    matrix = [PricingPeriod("May")]
    set_cell(matrix, 0, 1, 3, "on request")
    assert get_cell(matrix, 0, 1, 3) == ON_REQUEST
    assert get_cell(matrix, 0, 0, 3) is None


def test_set_cell_rejection_leaves_matrix(package):
    update = set_cell(package.pricing_matrix, 0, 0, 2, "-10")
    assert not update.accepted
    assert update.error == "Price must be non-negative"
    assert get_cell(package.pricing_matrix, 0, 0, 2) == 150.0


def test_set_cell_bad_address(package):
    with pytest.raises(IndexError):
        set_cell(package.pricing_matrix, 9, 0, 2, "10")
    with pytest.raises(ValueError):
        set_cell(package.pricing_matrix, 0, 0, 0, "10")


def test_add_special_period_requires_dates(package):
    errors = add_period(package.pricing_matrix, PricingPeriod("Easter", PeriodType.SPECIAL, date(2025, 4, 1)))
    assert errors == ['Special period "Easter" needs start and end dates']
    assert len(package.pricing_matrix) == 2


def test_add_special_period_end_before_start(package):
    period = PricingPeriod("Easter", PeriodType.SPECIAL, date(2025, 4, 21), date(2025, 4, 14))
    assert add_period(package.pricing_matrix, period)
    assert len(package.pricing_matrix) == 2


def test_add_month_period(package):
    assert add_period(package.pricing_matrix, PricingPeriod(" February ")) == []
    assert package.pricing_matrix[-1].period == "February"
    assert add_period(package.pricing_matrix, PricingPeriod("Febtober")) == ['"Febtober" is not a calendar month']


def test_remove_and_rename(package):
    removed = remove_period(package.pricing_matrix, 1)
    assert removed.period == "New Year"
    assert rename_period(package.pricing_matrix, 0, "  ") is False
    assert rename_period(package.pricing_matrix, 0, "january")
    assert package.pricing_matrix[0].period == "january"


def test_rename_keeps_month_periods_valid(package):
    assert rename_period(package.pricing_matrix, 0, "Summer") is False
    assert package.pricing_matrix[0].period == "January"

    # Special periods take any name
    assert rename_period(package.pricing_matrix, 1, "Hogmanay")
    assert package.pricing_matrix[1].period == "Hogmanay"


def test_validate_tiers_clean(package):
    assert validate_tiers(package.group_size_tiers) == []


def test_validate_tiers_problems():
    tiers = [
        GroupSizeTier("Small", 2, 6),
        GroupSizeTier("Medium", 5, 10),
        GroupSizeTier("Large", 15, 30),
        GroupSizeTier("Broken", 9, 3),
    ]
    problems = validate_tiers(tiers)
    assert 'Tier "Broken": minimum 9 exceeds maximum 3' in problems
    assert 'Tiers "Small" and "Medium" overlap (5-6 people)' in problems
    assert "No tier covers 11-14 people" in problems


def test_overlapping_specials(package):
    package.pricing_matrix.append(
        PricingPeriod("Hogmanay", PeriodType.SPECIAL, date(2024, 12, 31), date(2025, 1, 1))
    )
    package.pricing_matrix.append(
        PricingPeriod("Easter", PeriodType.SPECIAL, date(2025, 4, 14), date(2025, 4, 21))
    )
    assert find_overlapping_specials(package.pricing_matrix) == [
        'Special periods "New Year" and "Hogmanay" overlap'
    ]


def test_pricing_grid(package):
    grid = pricing_grid(package)

    assert isinstance(grid, pd.DataFrame)
    assert list(grid.index) == ["January", "New Year"]
    assert grid.shape == (2, 6)
    assert grid.loc["January", ("6-11 People", 2)] == 150.0
    assert grid.loc["January", ("12+ People", 4)] == "ON REQUEST"


def test_pricing_grid_missing_cells(package):
    package.pricing_matrix[0].prices.pop(0)
    grid = pricing_grid(package)
    assert pd.isna(grid.loc["January", ("6-11 People", 2)])
