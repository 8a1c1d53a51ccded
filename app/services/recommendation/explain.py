from app.models.profile import InferredProfile
from app.models.recommendation import RecoContext, ScoredCandidate
from app.services.recommendation.constants import (
    AFTERNOON_HOURS,
    BADGE_COST_THRESHOLD,
    BADGE_RELEVANCE_THRESHOLD,
    BADGE_TRAVEL_THRESHOLD,
    BADGE_WEATHER_THRESHOLD,
    MAX_WHY,
    MORNING_HOURS,
    SHORT_TRIP_KM,
    WALKING_DISTANCE_KM,
    WHY_COST_THRESHOLD,
    WHY_INTEREST_MIN_WEIGHT,
    WHY_RELEVANCE_THRESHOLD,
    WHY_TRAVEL_THRESHOLD,
    WHY_WEATHER_THRESHOLD,
)
from app.shared.markers import is_free_price, is_rainy


def _distance_reason(scored: ScoredCandidate) -> str | None:
    distance = scored.candidate.distance_km
    if scored.travel <= WHY_TRAVEL_THRESHOLD or distance is None:
        return None
    if distance <= WALKING_DISTANCE_KM:
        return "walking distance"
    if distance <= SHORT_TRIP_KM:
        return f"{distance:.1f}km"
    return None


def _cost_reason(scored: ScoredCandidate, profile: InferredProfile) -> str | None:
    if scored.cost <= WHY_COST_THRESHOLD:
        return None
    if is_free_price(scored.candidate.price):
        return "free"
    if profile.cost_preference != "any":
        return "affordable"
    return None


def _weather_reason(scored: ScoredCandidate, context: RecoContext) -> str | None:
    if scored.weather_fit <= WHY_WEATHER_THRESHOLD:
        return None
    rainy = is_rainy(context.weather)
    if rainy and scored.candidate.indoor:
        return "rain-friendly indoor"
    if not rainy and not scored.candidate.indoor:
        return "great outdoors"
    return None


def _interest_reason(scored: ScoredCandidate, profile: InferredProfile) -> str | None:
    if scored.relevance <= WHY_RELEVANCE_THRESHOLD:
        return None
    for tag in scored.candidate.tags:
        if profile.interest_weights.get(tag, 0.0) > WHY_INTEREST_MIN_WEIGHT:
            return tag
    return None


def _time_reason(context: RecoContext) -> str | None:
    if MORNING_HOURS[0] <= context.hour <= MORNING_HOURS[1]:
        return "great for morning"
    if AFTERNOON_HOURS[0] <= context.hour <= AFTERNOON_HOURS[1]:
        return "good afternoon pick"
    return None


def build_why(scored: ScoredCandidate, context: RecoContext, profile: InferredProfile) -> list[str]:
    """
    Short reasons for a recommendation, at most three.

    Reasons are checked in a fixed order (distance, cost, weather, interest,
    time of day) and the first three that apply are kept.
    """
    reasons = [
        _distance_reason(scored),
        _cost_reason(scored, profile),
        _weather_reason(scored, context),
        _interest_reason(scored, profile),
        _time_reason(context),
    ]
    return [reason for reason in reasons if reason][:MAX_WHY]


def build_badges(scored: ScoredCandidate) -> list[str]:
    badges = []
    if scored.relevance > BADGE_RELEVANCE_THRESHOLD:
        badges.append("recommended")
    if scored.travel > BADGE_TRAVEL_THRESHOLD:
        badges.append("nearby")
    if scored.cost > BADGE_COST_THRESHOLD:
        badges.append("great value")
    if scored.weather_fit > BADGE_WEATHER_THRESHOLD:
        badges.append("good weather match")
    if scored.candidate.accessibility:
        badges.append("accessible")
    return badges
