from typing import Final

# Score weights (sum to 1.0)
WEIGHT_RELEVANCE: Final[float] = 0.45
WEIGHT_TRAVEL: Final[float] = 0.20
WEIGHT_COST: Final[float] = 0.15
WEIGHT_WEATHER_FIT: Final[float] = 0.10
WEIGHT_QUIET_SAFETY: Final[float] = 0.10

# Relevance
FALLBACK_CATEGORY_WEIGHT: Final[float] = 0.1  # category missing or zero in the profile
INTEREST_BOOST: Final[float] = 0.5

# Travel
UNKNOWN_DISTANCE_SCORE: Final[float] = 0.7
IN_RANGE_PENALTY: Final[float] = 0.3
OUT_OF_RANGE_START: Final[float] = 0.7
OUT_OF_RANGE_PENALTY: Final[float] = 0.5
MIN_TRAVEL_SCORE: Final[float] = 0.1

# Cost
UNKNOWN_PRICE_SCORE: Final[float] = 0.8

# Weather
UNKNOWN_WEATHER_SCORE: Final[float] = 0.8

# Quiet / safety
QUIET_SAFETY_BASE: Final[float] = 0.5
QUIET_MATCH_BONUS: Final[float] = 0.3
NOT_QUIET_MATCH_BONUS: Final[float] = 0.1
ACCESSIBLE_LEARNER_BONUS: Final[float] = 0.2

# Novelty: base + U(0, spread)
NOVELTY_BASE: Final[float] = 0.5
NOVELTY_SPREAD: Final[float] = 0.3

# Exploration (epsilon-greedy)
EPSILON_GREEDY: Final[float] = 0.10
EPSILON_COLD_START: Final[float] = 0.25
LOW_CONFIDENCE_THRESHOLD: Final[float] = 0.3
MIN_EXPLORATION_POOL: Final[int] = 5  # shuffle only pools larger than this

# Diversification
MMR_LAMBDA: Final[float] = 0.7
SAME_CATEGORY_PENALTY: Final[float] = 0.3
TAG_OVERLAP_PENALTY: Final[float] = 0.2
MAX_SAME_CATEGORY: Final[int] = 2
DEFAULT_LIMIT: Final[int] = 10

# Explanations
MAX_WHY: Final[int] = 3
WHY_TRAVEL_THRESHOLD: Final[float] = 0.8
WHY_COST_THRESHOLD: Final[float] = 0.8
WHY_WEATHER_THRESHOLD: Final[float] = 0.8
WHY_RELEVANCE_THRESHOLD: Final[float] = 0.7
WHY_INTEREST_MIN_WEIGHT: Final[float] = 0.3
WALKING_DISTANCE_KM: Final[float] = 1.0
SHORT_TRIP_KM: Final[float] = 3.0
MORNING_HOURS: Final[tuple[int, int]] = (9, 11)  # inclusive
AFTERNOON_HOURS: Final[tuple[int, int]] = (14, 16)  # inclusive

# Badges
BADGE_RELEVANCE_THRESHOLD: Final[float] = 0.8
BADGE_TRAVEL_THRESHOLD: Final[float] = 0.9
BADGE_COST_THRESHOLD: Final[float] = 0.9
BADGE_WEATHER_THRESHOLD: Final[float] = 0.9

# Profile used when the caller has none
DEFAULT_INTEREST_WEIGHTS: Final[dict[str, float]] = {
    "learning": 0.3,
    "experience": 0.3,
    "nature": 0.2,
    "culture": 0.2,
}
DEFAULT_CATEGORY_WEIGHTS: Final[dict[str, float]] = {
    "park": 0.25,
    "museum": 0.2,
    "library": 0.2,
    "book": 0.175,
    "event": 0.175,
}
DEFAULT_DISTANCE_KM: Final[float] = 5.0
DEFAULT_CONFIDENCE: Final[float] = 0.1
DEFAULT_TIME_WINDOW_END: Final[int] = 18
