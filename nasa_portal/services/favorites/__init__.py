"""Favorites domain components split by responsibility.

``analytics`` converts rows into schemas and aggregates stats, ``cache`` wraps
the stats cache, and ``transactions`` provides the unit-of-work guard shared by
both stores.
"""

from .analytics import FavoritesAnalytics
from .cache import StatsCache
from .transactions import storage_guard

__all__ = [
    "FavoritesAnalytics",
    "StatsCache",
    "storage_guard",
]
