from typing import Final

from app.core.constants import MIN_CONFIDENCE  # noqa: F401

# Cold Start
COLD_START_THRESHOLD: Final[int] = 5  # Fewer signals than this → heuristic profile

# Recency Decay (exponential, half-life based)
RECENCY_HALF_LIFE_DAYS: Final[float] = 7.0

# Engagement Weights (view_item)
DWELL_SATURATION_MS: Final[float] = 30_000.0  # 30s of dwell = full weight
DEFAULT_DWELL_MS: Final[float] = 1_000.0
SCROLL_SATURATION: Final[float] = 0.8  # 80% scroll depth = full weight
DEFAULT_SCROLL_DEPTH: Final[float] = 0.1

# Cost Preference (free ratio thresholds)
FREE_RATIO_FREE: Final[float] = 0.8
FREE_RATIO_LOW: Final[float] = 0.5

# Indoor Preference
RAINY_OR_NIGHT_RATIO: Final[float] = 0.3
INDOOR_VIEW_RATIO: Final[float] = 0.6
NIGHT_AFTER_HOUR: Final[int] = 18  # hour > 18 counts as night
NIGHT_BEFORE_HOUR: Final[int] = 8  # hour < 8 counts as night

# Quiet Preference
LIBRARY_CATEGORY: Final[str] = "library"
LIBRARY_VIEW_SHARE: Final[float] = 0.3
LIBRARY_DWELL_RATIO: Final[float] = 1.5

# Distance Tolerance
DISTANCE_PERCENTILE: Final[float] = 0.8
DEFAULT_DISTANCE_KM: Final[float] = 5.0

# Mode
KID_SAFE_LEARNER_MIN: Final[int] = 2  # more than this → learner
PARENT_HINT_FAMILY_MIN: Final[int] = 1  # more than this → family

# Confidence (each sub-score saturates at 1.0)
CONFIDENCE_SIGNAL_SATURATION: Final[float] = 20.0
CONFIDENCE_EVENT_TYPES_SATURATION: Final[float] = 5.0
CONFIDENCE_SPAN_SATURATION_HOURS: Final[float] = 2.0

# Incremental Update
UPDATE_ALPHA: Final[float] = 0.3  # weight of the new observation
UPDATE_CONFIDENCE_STEP: Final[float] = 0.1

# Cold Start Heuristics
WEEKDAY_EVENING_FROM_HOUR: Final[int] = 17
WEEKDAY_EVENING_DISTANCE_KM: Final[float] = 3.0
WEEKEND_MORNING_HOURS: Final[tuple[int, int]] = (9, 11)  # inclusive
WEEKEND_MORNING_DISTANCE_KM: Final[float] = 10.0

# Time Window
TIME_WINDOW_SPAN_HOURS: Final[int] = 4
TIME_WINDOW_END_CAP: Final[int] = 18
COLD_START_TIME_WINDOW_END_CAP: Final[int] = 20

# Priors used when there is nothing to infer from
PRIOR_INTEREST_WEIGHTS: Final[dict[str, float]] = {
    "animals": 0.3,
    "nature": 0.3,
    "learning": 0.2,
    "experience": 0.2,
}
PRIOR_CATEGORY_WEIGHTS: Final[dict[str, float]] = {
    "park": 0.3,
    "museum": 0.2,
    "library": 0.2,
    "book": 0.15,
    "event": 0.15,
}
