import random

from loguru import logger

from app.models.profile import InferredProfile
from app.models.recommendation import Candidate, RankedRecommendation, RecoContext, ScoredCandidate
from app.services.recommendation.constants import (
    DEFAULT_CATEGORY_WEIGHTS,
    DEFAULT_CONFIDENCE,
    DEFAULT_DISTANCE_KM,
    DEFAULT_INTEREST_WEIGHTS,
    DEFAULT_LIMIT,
    DEFAULT_TIME_WINDOW_END,
    EPSILON_COLD_START,
    EPSILON_GREEDY,
    LOW_CONFIDENCE_THRESHOLD,
    MAX_SAME_CATEGORY,
    MMR_LAMBDA,
)
from app.services.recommendation.diversity import RecommendationDiversity
from app.services.recommendation.explain import build_badges, build_why
from app.services.recommendation.scoring import RecommendationScoring
from app.shared.markers import is_rainy


def default_profile(context: RecoContext) -> InferredProfile:
    """Generic profile for callers that have none, derived from the request context only."""
    return InferredProfile(
        interest_weights=dict(DEFAULT_INTEREST_WEIGHTS),
        category_weights=dict(DEFAULT_CATEGORY_WEIGHTS),
        cost_preference="free",
        indoor_preference=is_rainy(context.weather),
        quiet_needed=False,
        distance_km_tolerance=DEFAULT_DISTANCE_KM,
        time_window=f"today {context.hour}:00-{DEFAULT_TIME_WINDOW_END}:00",
        mode=context.mode,
        confidence=DEFAULT_CONFIDENCE,
    )


class RankingEngine:
    """
    Ranks a candidate pool against a profile.

    Pipeline: score every candidate, epsilon-greedy ordering, MMR
    diversification, then the per-category cap. All randomness comes from the
    injected random.Random so a seeded engine is fully reproducible.
    """

    def __init__(self, rng: random.Random | None = None, seed: int | None = None):
        self.rng = rng or random.Random(seed)

    def rank(
        self,
        candidates: list[Candidate],
        context: RecoContext,
        profile: InferredProfile | None = None,
        *,
        limit: int = DEFAULT_LIMIT,
        rng: random.Random | None = None,
    ) -> list[RankedRecommendation]:
        if not candidates:
            return []

        rng = rng or self.rng
        effective_profile = profile or default_profile(context)

        # 1. Score
        scored = [
            self._score(candidate, context, effective_profile, rng) for candidate in candidates
        ]

        # 2. Explore / exploit
        epsilon = EPSILON_COLD_START if effective_profile.confidence < LOW_CONFIDENCE_THRESHOLD else EPSILON_GREEDY
        ordered = RecommendationDiversity.apply_epsilon_greedy(scored, epsilon, rng)

        # 3. Diversify
        diversified = RecommendationDiversity.apply_mmr(ordered, MMR_LAMBDA, limit)

        # 4. Category cap
        final = RecommendationDiversity.limit_same_category(diversified, MAX_SAME_CATEGORY)

        logger.debug(
            f"Ranked {len(candidates)} candidates into {len(final)} recommendations "
            f"(confidence={effective_profile.confidence:.2f})"
        )
        return [self._to_recommendation(item) for item in final]

    def _score(
        self,
        candidate: Candidate,
        context: RecoContext,
        profile: InferredProfile,
        rng: random.Random,
    ) -> ScoredCandidate:
        scored = RecommendationScoring.score_candidate(candidate, context, profile, rng)
        return scored.model_copy(update={"why": build_why(scored, context, profile)})

    @staticmethod
    def _to_recommendation(scored: ScoredCandidate) -> RankedRecommendation:
        data = scored.candidate.model_dump()
        data.update(score=scored.total, why=scored.why, badges=build_badges(scored))
        return RankedRecommendation.model_validate(data)
