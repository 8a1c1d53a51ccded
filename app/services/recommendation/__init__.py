"""
Candidate ranking: multi-factor scoring, epsilon-greedy exploration, MMR
diversification and a per-category cap, with short explanations and badges.
"""

from app.services.recommendation.engine import RankingEngine, default_profile
from app.services.recommendation.scoring import RecommendationScoring

__all__ = [
    "RankingEngine",
    "RecommendationScoring",
    "default_profile",
]
