import random
from collections import defaultdict

from loguru import logger

from app.models.recommendation import ScoredCandidate
from app.services.recommendation.constants import (
    MIN_EXPLORATION_POOL,
    SAME_CATEGORY_PENALTY,
    TAG_OVERLAP_PENALTY,
)


class RecommendationDiversity:
    """
    Ordering passes applied after scoring: exploration, MMR re-ranking and the
    per-category cap.
    """

    @staticmethod
    def apply_epsilon_greedy(
        scored: list[ScoredCandidate], epsilon: float, rng: random.Random
    ) -> list[ScoredCandidate]:
        """
        With probability epsilon shuffle the pool (explore), otherwise sort by total (exploit).

        Pools of MIN_EXPLORATION_POOL or fewer are always sorted. Returns a new list.
        """
        ordered = list(scored)
        if rng.random() < epsilon and len(ordered) > MIN_EXPLORATION_POOL:
            logger.debug(f"Exploring: shuffling {len(ordered)} candidates (epsilon={epsilon})")
            rng.shuffle(ordered)
            return ordered

        ordered.sort(key=lambda s: s.total, reverse=True)
        return ordered

    @staticmethod
    def diversity_score(candidate: ScoredCandidate, selected: list[ScoredCandidate]) -> float:
        if not selected:
            return 1.0

        category = candidate.candidate.category
        same_category = sum(1 for s in selected if s.candidate.category == category)
        category_diversity = max(0.0, 1.0 - same_category * SAME_CATEGORY_PENALTY)

        selected_tags = {tag for s in selected for tag in s.candidate.tags}
        overlap = len(set(candidate.candidate.tags) & selected_tags)
        tag_diversity = max(0.0, 1.0 - overlap * TAG_OVERLAP_PENALTY)

        return (category_diversity + tag_diversity) / 2

    @staticmethod
    def apply_mmr(scored: list[ScoredCandidate], lambda_: float, limit: int) -> list[ScoredCandidate]:
        """
        Maximal Marginal Relevance selection.

        Seeds with the highest total, then repeatedly takes the candidate that
        maximizes lambda * total + (1 - lambda) * diversity. Ties keep the
        earlier candidate in the incoming order.
        """
        target = min(limit, len(scored))
        if target <= 0:
            return []

        remaining = list(scored)
        first = max(remaining, key=lambda s: s.total)
        selected = [first]
        remaining.remove(first)

        while remaining and len(selected) < target:
            best_index = 0
            best_score = float("-inf")
            for index, candidate in enumerate(remaining):
                mmr_score = lambda_ * candidate.total + (1 - lambda_) * RecommendationDiversity.diversity_score(
                    candidate, selected
                )
                if mmr_score > best_score:
                    best_score = mmr_score
                    best_index = index
            selected.append(remaining.pop(best_index))

        return selected

    @staticmethod
    def limit_same_category(scored: list[ScoredCandidate], max_same: int) -> list[ScoredCandidate]:
        """Drop anything past max_same per category. Order is kept and nothing is backfilled."""
        counts: dict[str, int] = defaultdict(int)
        result = []
        for candidate in scored:
            category = candidate.candidate.category
            if counts[category] < max_same:
                result.append(candidate)
                counts[category] += 1
        return result
