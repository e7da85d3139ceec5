"""
Centralized settings and path configuration for package pricing.
"""
import logging
import os
from pathlib import Path
from dataclasses import dataclass
from typing import Optional


def get_project_root() -> Path:
    """Get the project root directory (where pyproject.toml lives)."""
    # Walk up from this file to find the project root
    current = Path(__file__).resolve()
    for parent in current.parents:
        if (parent / 'pyproject.toml').exists():
            return parent
    # Fallback to 4 levels up from this file
    return Path(__file__).resolve().parent.parent.parent.parent


@dataclass
class Settings:
    """Application settings with sensible defaults."""

    # Project paths
    project_root: Path

    # Seed data for the package store
    package_data: Optional[Path] = None

    # Quote defaults
    default_currency: str = 'GBP'
    supported_currencies: tuple = ('EUR', 'GBP', 'USD')
    max_events_per_quote: int = 20

    # Price sync
    price_tolerance: float = 0.01
    calculation_timeout: float = 30.0

    log_level: str = 'INFO'

    @classmethod
    def load(cls, project_root: Optional[Path] = None) -> 'Settings':
        """Load settings from the project structure and environment."""
        root = project_root or get_project_root()
        env = os.environ

        data_path = env.get('PACKAGE_PRICING_DATA')

        return cls(
            project_root=root,
            package_data=Path(data_path) if data_path else root / 'data' / 'packages.json',
            default_currency=env.get('PACKAGE_PRICING_CURRENCY', 'GBP').upper(),
            max_events_per_quote=int(env.get('PACKAGE_PRICING_MAX_EVENTS', 20)),
            calculation_timeout=float(env.get('PACKAGE_PRICING_TIMEOUT', 30.0)),
            log_level=env.get('PACKAGE_PRICING_LOG_LEVEL', 'INFO').upper(),
        )


# Default settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings.load()
    return _settings


def reset_settings():
    """Drop the cached settings so the next call reloads them."""
    global _settings
    _settings = None


def configure_logging(level: Optional[str] = None):
    """Configure root logging for scripts."""
    logging.basicConfig(
        level=level or get_settings().log_level,
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )
