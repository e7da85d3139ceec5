"""
Package Pricing

Tiered, period-based pricing for super packages.
Resolves a quote's price using Tier → Period → Nights lookup with ON REQUEST
fallback, and keeps linked quotes in sync with their package.
"""

__version__ = "1.0.0"
