import random

from app.models.profile import InferredProfile
from app.models.recommendation import Candidate, RecoContext, ScoredCandidate
from app.services.recommendation.constants import (
    ACCESSIBLE_LEARNER_BONUS,
    FALLBACK_CATEGORY_WEIGHT,
    IN_RANGE_PENALTY,
    INTEREST_BOOST,
    MIN_TRAVEL_SCORE,
    NOT_QUIET_MATCH_BONUS,
    NOVELTY_BASE,
    NOVELTY_SPREAD,
    OUT_OF_RANGE_PENALTY,
    OUT_OF_RANGE_START,
    QUIET_MATCH_BONUS,
    QUIET_SAFETY_BASE,
    UNKNOWN_DISTANCE_SCORE,
    UNKNOWN_PRICE_SCORE,
    UNKNOWN_WEATHER_SCORE,
    WEIGHT_COST,
    WEIGHT_QUIET_SAFETY,
    WEIGHT_RELEVANCE,
    WEIGHT_TRAVEL,
    WEIGHT_WEATHER_FIT,
)
from app.shared.markers import is_discount_price, is_free_price, is_rainy


class RecommendationScoring:
    """
    Per-candidate sub-scores, each in [0, 1].
    """

    @staticmethod
    def relevance(candidate: Candidate, profile: InferredProfile) -> float:
        category_score = profile.category_weights.get(candidate.category) or FALLBACK_CATEGORY_WEIGHT
        interest_score = sum(profile.interest_weights.get(tag, 0.0) for tag in candidate.tags)
        return min(1.0, category_score + interest_score * INTEREST_BOOST)

    @staticmethod
    def travel(candidate: Candidate, profile: InferredProfile) -> float:
        """Closer is better; past the profile's tolerance the score drops quickly."""
        if candidate.distance_km is None:
            return UNKNOWN_DISTANCE_SCORE

        ratio = candidate.distance_km / profile.distance_km_tolerance
        if ratio <= 1.0:
            return 1.0 - ratio * IN_RANGE_PENALTY
        return max(MIN_TRAVEL_SCORE, OUT_OF_RANGE_START - (ratio - 1.0) * OUT_OF_RANGE_PENALTY)

    @staticmethod
    def cost(candidate: Candidate, profile: InferredProfile) -> float:
        if not candidate.price:
            return UNKNOWN_PRICE_SCORE

        free = is_free_price(candidate.price)
        if profile.cost_preference == "free":
            return 1.0 if free else 0.2
        if profile.cost_preference == "low":
            if free:
                return 1.0
            return 0.8 if is_discount_price(candidate.price) else 0.5
        return 1.0 if free else 0.7

    @staticmethod
    def weather_fit(candidate: Candidate, context: RecoContext) -> float:
        if not context.weather:
            return UNKNOWN_WEATHER_SCORE
        if is_rainy(context.weather):
            return 1.0 if candidate.indoor else 0.3
        return 0.7 if candidate.indoor else 1.0

    @staticmethod
    def quiet_safety(candidate: Candidate, profile: InferredProfile, context: RecoContext) -> float:
        score = QUIET_SAFETY_BASE
        if profile.quiet_needed and candidate.quiet:
            score += QUIET_MATCH_BONUS
        elif not profile.quiet_needed and not candidate.quiet:
            score += NOT_QUIET_MATCH_BONUS

        if context.mode == "learner" and candidate.accessibility:
            score += ACCESSIBLE_LEARNER_BONUS

        return min(1.0, score)

    @staticmethod
    def novelty(rng: random.Random) -> float:
        return NOVELTY_BASE + rng.random() * NOVELTY_SPREAD

    @staticmethod
    def score_candidate(
        candidate: Candidate,
        context: RecoContext,
        profile: InferredProfile,
        rng: random.Random,
    ) -> ScoredCandidate:
        """
        Score a candidate on every factor and combine them.

        Novelty is drawn but left out of the weighted total.
        """
        relevance = RecommendationScoring.relevance(candidate, profile)
        travel = RecommendationScoring.travel(candidate, profile)
        cost = RecommendationScoring.cost(candidate, profile)
        weather_fit = RecommendationScoring.weather_fit(candidate, context)
        quiet_safety = RecommendationScoring.quiet_safety(candidate, profile, context)

        total = (
            relevance * WEIGHT_RELEVANCE
            + travel * WEIGHT_TRAVEL
            + cost * WEIGHT_COST
            + weather_fit * WEIGHT_WEATHER_FIT
            + quiet_safety * WEIGHT_QUIET_SAFETY
        )

        return ScoredCandidate(
            candidate=candidate,
            relevance=relevance,
            travel=travel,
            cost=cost,
            weather_fit=weather_fit,
            quiet_safety=quiet_safety,
            novelty=RecommendationScoring.novelty(rng),
            total=total,
        )
