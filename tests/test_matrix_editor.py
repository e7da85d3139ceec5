from datetime import date

import pytest

from package_pricing.engine import ON_REQUEST
from package_pricing.engine.matrix import get_cell
from package_pricing.engine.models import PeriodType
from package_pricing.exceptions import PackageImmutableError
from package_pricing.services.matrix_editor import CellKey, MatrixEditor
from package_pricing.services.package_store import PackageStore


@pytest.fixture
def editor(package):
    return MatrixEditor(package)


@pytest.fixture
def store(package):
    return PackageStore([package])


def test_start_editing_seeds_buffer(editor):
    editor.start_editing(0, 0, 2)
    assert editor.editing_cell == CellKey(0, 0, 2)
    assert editor.edit_value == "150"

    editor.start_editing(0, 1, 4)
    assert editor.edit_value == "ON REQUEST"


def test_start_editing_empty_cell(editor, package):
    package.pricing_matrix[0].prices.pop(0)
    editor.start_editing(0, 0, 2)
    assert editor.edit_value == ""


def test_enter_commits(editor, package):
    editor.start_editing(0, 0, 2)
    editor.type_value("165.5")
    update = editor.handle_key("Enter")

    assert update.accepted
    assert get_cell(package.pricing_matrix, 0, 0, 2) == 165.5
    assert editor.editing_cell is None


def test_enter_accepts_on_request_text(editor, package):
    editor.start_editing(0, 0, 3)
    editor.type_value(" on request ")
    editor.handle_key("Enter")
    assert get_cell(package.pricing_matrix, 0, 0, 3) == ON_REQUEST


def test_escape_discards(editor, package):
    editor.start_editing(0, 0, 2)
    editor.type_value("999")
    assert editor.handle_key("Escape") is None

    assert get_cell(package.pricing_matrix, 0, 0, 2) == 150.0
    assert editor.editing_cell is None
    assert editor.edit_value == ""


def test_rejected_commit_keeps_cell_open(editor, package):
    editor.start_editing(0, 0, 2)
    editor.type_value("cheap")
    update = editor.commit()

    assert not update.accepted
    assert editor.last_error == update.error
    assert editor.editing_cell == CellKey(0, 0, 2)
    assert get_cell(package.pricing_matrix, 0, 0, 2) == 150.0


def test_blank_commit_rejected(editor, package):
    editor.start_editing(0, 0, 2)
    editor.type_value("")
    assert not editor.commit().accepted
    assert get_cell(package.pricing_matrix, 0, 0, 2) == 150.0


def test_commit_without_cell(editor):
    assert not editor.commit().accepted
    assert editor.handle_key("Tab") is None


def test_period_management(editor, package):
    assert editor.add_period("Easter", PeriodType.SPECIAL, date(2025, 4, 14), date(2025, 4, 21)) == []
    assert not editor.validation().is_valid

    editor.start_editing(2, 0, 2)
    editor.remove_period(2)
    assert editor.editing_cell is None
    assert editor.validation().is_valid

    assert not editor.rename_period(0, "Summer")
    assert editor.rename_period(0, "january")
    assert package.pricing_matrix[0].period == "january"


def test_authoring_warnings(editor, package):
    assert editor.authoring_warnings() == []
    editor.add_period("Hogmanay", PeriodType.SPECIAL, date(2024, 12, 31), date(2025, 1, 1))
    package.group_size_tiers[1].min_people = 14
    assert editor.authoring_warnings() == [
        "No tier covers 12-13 people",
        'Special periods "New Year" and "Hogmanay" overlap',
    ]


def test_remove_earlier_period_keeps_open_cell(editor, package):
    editor.start_editing(1, 0, 2)
    editor.remove_period(0)
    assert editor.editing_cell == CellKey(0, 0, 2)

    editor.type_value("1")
    assert editor.handle_key("Enter").accepted
    assert package.pricing_matrix[0].period == "New Year"
    assert get_cell(package.pricing_matrix, 0, 0, 2) == 1.0


def test_remove_later_period_keeps_open_cell(editor):
    editor.add_period("Easter", PeriodType.SPECIAL, date(2025, 4, 14), date(2025, 4, 21))
    editor.start_editing(0, 0, 2)
    editor.remove_period(2)
    assert editor.editing_cell == CellKey(0, 0, 2)


def test_commit_saves_new_version(store):
    editor = MatrixEditor(store.get_package("benidorm"), store)
    editor.start_editing(0, 0, 2)
    editor.type_value("500")
    assert editor.handle_key("Enter").accepted

    live = store.get_package("benidorm")
    assert live.version == 2
    assert editor.package.version == 2
    assert get_cell(live.pricing_matrix, 0, 0, 2) == 500.0
    assert get_cell(store.get_package("benidorm", version=1).pricing_matrix, 0, 0, 2) == 150.0
    assert store.history("benidorm")[0].change_description == "January: tier 0, 2 nights"


def test_rejected_commit_is_not_saved(store):
    editor = MatrixEditor(store.get_package("benidorm"), store)
    editor.start_editing(0, 0, 2)
    editor.type_value("cheap")
    editor.commit()

    live = store.get_package("benidorm")
    assert live.version == 1
    assert get_cell(live.pricing_matrix, 0, 0, 2) == 150.0


def test_period_changes_save_new_versions(store):
    editor = MatrixEditor(store.get_package("benidorm"), store)
    editor.add_period("February")
    editor.rename_period(1, "Hogmanay")
    editor.remove_period(2)

    live = store.get_package("benidorm")
    assert live.version == 4
    assert [p.period for p in live.pricing_matrix] == ["January", "Hogmanay"]


def test_deleted_package_cannot_be_edited(store):
    editor = MatrixEditor(store.get_package("benidorm"), store)
    store.delete("benidorm")

    editor.start_editing(0, 0, 2)
    editor.type_value("500")
    update = editor.commit()
    assert not update.accepted
    assert editor.last_error == 'Package "benidorm" is deleted and cannot be modified'
    assert editor.editing_cell == CellKey(0, 0, 2)

    assert editor.add_period("February") == [update.error]
    assert not editor.rename_period(0, "january")
    with pytest.raises(PackageImmutableError):
        editor.remove_period(1)

    live = store.get_package("benidorm")
    assert live.version == 1
    assert get_cell(live.pricing_matrix, 0, 0, 2) == 150.0
    assert len(live.pricing_matrix) == 2
