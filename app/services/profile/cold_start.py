"""
Cold-start profile: time-of-day and day-of-week heuristics used while a session
has too few signals for statistical inference.
"""

from datetime import datetime

from loguru import logger

from app.models.profile import InferredProfile, RecommendationMode
from app.models.telemetry import SessionSignal
from app.services.profile.constants import (
    COLD_START_TIME_WINDOW_END_CAP,
    DEFAULT_DISTANCE_KM,
    MIN_CONFIDENCE,
    PRIOR_CATEGORY_WEIGHTS,
    PRIOR_INTEREST_WEIGHTS,
    TIME_WINDOW_SPAN_HOURS,
    WEEKDAY_EVENING_DISTANCE_KM,
    WEEKDAY_EVENING_FROM_HOUR,
    WEEKEND_MORNING_DISTANCE_KM,
    WEEKEND_MORNING_HOURS,
)


def format_time_window(start_hour: int, end_hour: int) -> str:
    return f"today {start_hour}:00-{end_hour}:00"


def build_cold_start_profile(signals: list[SessionSignal], now: datetime) -> InferredProfile:
    """
    Heuristic profile for a low-signal session.

    Weekday evenings favour short indoor trips, weekend mornings favour longer
    outdoor family trips. Any kid-safe interaction keeps the learner mode.
    """
    hour = now.hour
    is_weekday = now.weekday() < 5

    mode: RecommendationMode = "learner"
    indoor = False
    distance = DEFAULT_DISTANCE_KM

    if is_weekday and hour >= WEEKDAY_EVENING_FROM_HOUR:
        indoor = True
        distance = WEEKDAY_EVENING_DISTANCE_KM

    morning_from, morning_to = WEEKEND_MORNING_HOURS
    if not is_weekday and morning_from <= hour <= morning_to:
        indoor = False
        distance = WEEKEND_MORNING_DISTANCE_KM
        mode = "family"

    if any(signal.event.name == "kid_safe_interaction" for signal in signals):
        mode = "learner"

    logger.debug(f"Cold start profile for {len(signals)} signal(s): mode={mode} indoor={indoor}")

    return InferredProfile(
        interest_weights=dict(PRIOR_INTEREST_WEIGHTS),
        category_weights=dict(PRIOR_CATEGORY_WEIGHTS),
        cost_preference="free",
        indoor_preference=indoor,
        quiet_needed=False,
        distance_km_tolerance=distance,
        time_window=format_time_window(hour, min(COLD_START_TIME_WINDOW_END_CAP, hour + TIME_WINDOW_SPAN_HOURS)),
        mode=mode,
        confidence=MIN_CONFIDENCE,
    )
