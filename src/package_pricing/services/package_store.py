"""
Package Store - In-memory package lookup with version history.

Stands in for the document store behind `getPackage`. Every edit that
touches a pricing-relevant field bumps the package version and keeps a
snapshot of the previous version so quotes priced against it can still
be reproduced.
"""
import copy
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Optional

from ..engine.models import PRICING_FIELDS, Package, PackageStatus
from ..exceptions import PackageImmutableError, PackageNotFoundError
from ..validation.schemas import validate_package_payload

logger = logging.getLogger(__name__)


@dataclass
class VersionEntry:
    """A stored snapshot of one package version."""
    version: int
    package: Package
    modified_at: datetime = field(default_factory=datetime.now)
    change_description: Optional[str] = None
    changed_fields: list[str] = field(default_factory=list)


class PackageStore:
    """Service for looking up and editing packages."""

    def __init__(self, packages: Optional[list[Package]] = None):
        self._packages: dict[str, Package] = {}
        self._history: dict[str, list[VersionEntry]] = {}
        for package in packages or []:
            self.add(package)

    def add(self, package: Package) -> Package:
        """Register a new package."""
        if not package.id:
            raise ValueError("Package id is required")
        if package.id in self._packages:
            raise ValueError(f"Package with ID '{package.id}' already exists")

        self._packages[package.id] = package
        self._history[package.id] = [
            VersionEntry(version=package.version, package=copy.deepcopy(package), change_description="created")
        ]
        return package

    def get_package(self, package_id: str, version: Optional[int] = None) -> Package:
        """
        Get a package by id.

        Returns the live package, or the stored snapshot of `version`.
        Deleted packages are still returned for existing quotes.
        """
        package = self._packages.get(package_id)
        if package is None:
            raise PackageNotFoundError(package_id)
        if version is None:
            return package

        for entry in self._history[package_id]:
            if entry.version == version:
                return entry.package
        raise PackageNotFoundError(package_id, version)

    def update(self, package_id: str, changes: dict, change_description: Optional[str] = None) -> Package:
        """
        Apply field changes to a package.

        The version increments only when a pricing-relevant field changes.
        """
        package = self.get_package(package_id)
        if package.status == PackageStatus.DELETED:
            raise PackageImmutableError(package_id)

        unknown = [key for key in changes if not hasattr(package, key) or key in ('id', 'version')]
        if unknown:
            raise ValueError(f"Cannot update fields: {', '.join(unknown)}")

        changed_fields = [key for key, value in changes.items() if getattr(package, key) != value]
        if not changed_fields:
            return package

        pricing_changed = any(key in PRICING_FIELDS for key in changed_fields)
        for key in changed_fields:
            setattr(package, key, copy.deepcopy(changes[key]))
        if 'status' in changed_fields:
            package.status = PackageStatus(package.status)

        if pricing_changed:
            package.version += 1
            self._history[package_id].append(VersionEntry(
                version=package.version,
                package=copy.deepcopy(package),
                change_description=change_description,
                changed_fields=changed_fields,
            ))
            logger.info("Package %s updated to version %d (%s)", package_id, package.version, ", ".join(changed_fields))
        else:
            # Same version, refresh the snapshot
            self._history[package_id][-1].package = copy.deepcopy(package)
        return package

    def set_status(self, package_id: str, status: PackageStatus) -> Package:
        """Activate or deactivate a package."""
        status = PackageStatus(status)
        if status == PackageStatus.DELETED:
            return self.delete(package_id)
        return self.update(package_id, {'status': status})

    def delete(self, package_id: str) -> Package:
        """Soft-delete: the package stays readable but can no longer change or be linked."""
        package = self.get_package(package_id)
        if package.status == PackageStatus.DELETED:
            return package
        package.status = PackageStatus.DELETED
        logger.info("Package %s deleted", package_id)
        return package

    def linkable_packages(self) -> list[Package]:
        """Packages that can be linked to new quotes."""
        return [p for p in self._packages.values() if p.is_linkable]

    def history(self, package_id: str) -> list[VersionEntry]:
        """Version history, newest first."""
        self.get_package(package_id)
        return sorted(self._history[package_id], key=lambda e: e.version, reverse=True)

    @classmethod
    def load_json(cls, path: Path) -> 'PackageStore':
        """
        Seed a store from a JSON file of package payloads.

        Invalid payloads are skipped with a warning.
        """
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)

        store = cls()
        for index, item in enumerate(data.get('packages', [])):
            package, validation = validate_package_payload(item)
            if not validation.is_valid:
                logger.warning("Skipping package %d in %s: %s", index, path, "; ".join(validation.messages))
                continue
            if not package.id:
                package.id = f"package-{index + 1}"
            store.add(package)
        return store
