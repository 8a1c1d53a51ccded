"""
Core constants used across the application. Keep these simple and documented.
"""

from typing import Final

# Privacy grid for any captured location: 0.005 degrees is roughly 500 m
LOCATION_GRID_DEGREES: Final[float] = 0.005

# Share of MAX_RECORDS evicted at once when a session overflows (5%)
SESSION_EVICTION_SHARE: Final[float] = 0.05

# Known recommendation categories, in display order
RECOMMENDATION_CATEGORIES: Final[tuple[str, ...]] = ("park", "museum", "library", "book", "event")

# Price strings considered free, and markers of a discounted price
FREE_PRICE_MARKERS: Final[tuple[str, ...]] = ("free", "無料")
DISCOUNT_PRICE_MARKERS: Final[tuple[str, ...]] = ("discount", "cheap", "安", "低料金")

# Weather strings that count as rain
RAIN_WEATHER_MARKERS: Final[tuple[str, ...]] = ("rain", "雨")

# Floor for any profile's confidence
MIN_CONFIDENCE: Final[float] = 0.1
