"""
Matrix Editor - Cell editing state for authoring a package's pricing matrix.

A cell being typed into is held in a buffer and only written to the
matrix on commit (Enter). Escape discards the buffer.

Given a PackageStore, the editor works on a copy of the package and
saves every accepted change through the store, so the package version
is bumped and the previous version stays available to existing quotes.
Deleted packages cannot be edited.
"""
import copy
from dataclasses import dataclass
from datetime import date
from typing import Optional

from ..engine.matrix import (
    ON_REQUEST_LABEL,
    CellUpdate,
    MatrixValidation,
    add_period,
    find_overlapping_specials,
    get_cell,
    is_complete,
    remove_period,
    rename_period,
    set_cell,
    validate_tiers,
)
from ..engine.models import ON_REQUEST, Package, PackageStatus, PeriodType, PricingPeriod
from ..exceptions import PackageImmutableError
from .package_store import PackageStore


@dataclass(frozen=True)
class CellKey:
    """Address of a cell being edited."""
    period_index: int
    tier_index: int
    nights: int


class MatrixEditor:
    """Editing session over a package's pricing matrix."""

    def __init__(self, package: Package, store: Optional[PackageStore] = None):
        self.store = store
        # Without a store the package is edited in place (not yet registered)
        self.package = copy.deepcopy(package) if store is not None else package
        self.editing_cell: Optional[CellKey] = None
        self.edit_value: str = ""
        self.last_error: Optional[str] = None

    @property
    def matrix(self) -> list[PricingPeriod]:
        return self.package.pricing_matrix

    @property
    def is_deleted(self) -> bool:
        package = self.store.get_package(self.package.id) if self.store is not None else self.package
        return package.status == PackageStatus.DELETED

    def start_editing(self, period_index: int, tier_index: int, nights: int):
        """Open a cell for editing, seeding the buffer with its current value."""
        current = get_cell(self.matrix, period_index, tier_index, nights)
        self.editing_cell = CellKey(period_index, tier_index, nights)
        self.last_error = None
        if current is None:
            self.edit_value = ""
        elif current == ON_REQUEST:
            self.edit_value = ON_REQUEST_LABEL
        elif float(current).is_integer():
            self.edit_value = str(int(current))
        else:
            self.edit_value = str(current)

    def type_value(self, text: str):
        """Replace the edit buffer."""
        if self.editing_cell is None:
            return
        self.edit_value = text

    def commit(self) -> CellUpdate:
        """
        Write the buffer into the matrix.

        Rejected input keeps the cell open with the error for inline display.
        """
        if self.editing_cell is None:
            return CellUpdate(accepted=False, error="No cell is being edited")
        if self.is_deleted:
            update = CellUpdate(accepted=False, error=PackageImmutableError(self.package.id).message)
            self.last_error = update.error
            return update

        key = self.editing_cell
        update = set_cell(self.matrix, key.period_index, key.tier_index, key.nights, self.edit_value)
        if update.accepted:
            self._close()
            period = self.matrix[key.period_index].period
            self._save(f"{period}: tier {key.tier_index}, {key.nights} nights")
        else:
            self.last_error = update.error
        return update

    def cancel(self):
        """Discard the buffer without touching the matrix."""
        self._close()

    def handle_key(self, key: str) -> Optional[CellUpdate]:
        """Enter commits, Escape cancels; other keys are ignored."""
        if key == "Enter":
            return self.commit()
        if key == "Escape":
            self.cancel()
        return None

    def _close(self):
        self.editing_cell = None
        self.edit_value = ""
        self.last_error = None

    def _save(self, change_description: str):
        if self.store is None:
            return
        live = self.store.update(self.package.id, {'pricing_matrix': self.matrix}, change_description)
        self.package.version = live.version

    def add_period(
        self,
        name: str,
        period_type: PeriodType = PeriodType.MONTH,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None
    ) -> list[str]:
        """Add an empty period; returns validation errors."""
        if self.is_deleted:
            return [PackageImmutableError(self.package.id).message]
        period = PricingPeriod(
            period=name,
            period_type=period_type,
            start_date=start_date,
            end_date=end_date,
        )
        errors = add_period(self.matrix, period)
        if not errors:
            self._save(f"Added period {period.period}")
        return errors

    def remove_period(self, period_index: int) -> PricingPeriod:
        """Remove a period. The caller confirms before calling."""
        if self.is_deleted:
            raise PackageImmutableError(self.package.id)
        removed = remove_period(self.matrix, period_index)

        key = self.editing_cell
        if key is not None:
            if key.period_index == period_index:
                self._close()
            elif key.period_index > period_index:
                # Keep the open cell on the same period after the shift
                self.editing_cell = CellKey(key.period_index - 1, key.tier_index, key.nights)

        self._save(f"Removed period {removed.period}")
        return removed

    def rename_period(self, period_index: int, new_name: str) -> bool:
        if self.is_deleted:
            return False
        old_name = self.matrix[period_index].period
        if not rename_period(self.matrix, period_index, new_name):
            return False
        self._save(f"Renamed period {old_name} to {self.matrix[period_index].period}")
        return True

    def validation(self) -> MatrixValidation:
        """Completeness of the matrix against the package's tiers and durations."""
        return is_complete(self.matrix, self.package.group_size_tiers, self.package.duration_options)

    def authoring_warnings(self) -> list[str]:
        """Tier and special-period consistency problems."""
        return validate_tiers(self.package.group_size_tiers) + find_overlapping_specials(self.matrix)
