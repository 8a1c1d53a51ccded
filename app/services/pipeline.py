import random

from loguru import logger

from app.core.security import redact_session_id
from app.models.profile import InferredProfile
from app.models.recommendation import Candidate, RankedRecommendation, RecoContext
from app.services.profile.inference import ProfileInferenceEngine
from app.services.recommendation.constants import DEFAULT_LIMIT
from app.services.recommendation.engine import RankingEngine
from app.services.telemetry.service import TelemetryService


class RecommendationPipeline:
    """
    Session signals → inferred profile → ranked recommendations.

    Holds no state of its own; the collaborators are passed in.
    """

    def __init__(
        self,
        telemetry: TelemetryService,
        inference: ProfileInferenceEngine,
        ranking: RankingEngine,
    ):
        self.telemetry = telemetry
        self.inference = inference
        self.ranking = ranking

    async def current_profile(self, session_id: str | None = None) -> InferredProfile:
        """Profile inferred from one session's signals; the default session when omitted."""
        session_id = session_id or self.telemetry.session_id
        signals = await self.telemetry.get_session_signals(session_id)
        profile = self.inference.infer_profile(signals)
        logger.debug(
            f"[{redact_session_id(session_id)}] Inferred profile from {len(signals)} signals "
            f"(confidence={profile.confidence:.2f}, mode={profile.mode})"
        )
        return profile

    async def recommend(
        self,
        candidates: list[Candidate],
        context: RecoContext,
        profile: InferredProfile | None = None,
        limit: int = DEFAULT_LIMIT,
        rng: random.Random | None = None,
        session_id: str | None = None,
    ) -> list[RankedRecommendation]:
        """
        Rank candidates for a session.

        Args:
            candidates: Candidate pool from the catalog
            context: Request-time context
            profile: Explicit profile; inferred from the session when omitted
            limit: Maximum number of recommendations
            rng: Per-call random source (seeded requests)
            session_id: Session whose signals drive the inferred profile

        Returns:
            Ranked recommendations, possibly fewer than limit
        """
        if not candidates:
            return []
        if profile is None:
            profile = await self.current_profile(session_id)
        return self.ranking.rank(candidates, context, profile, limit=limit, rng=rng)
