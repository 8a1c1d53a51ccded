import random

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, Field

from app.api.deps import get_pipeline, get_session_id, with_request_timeout
from app.models.profile import InferredProfile
from app.models.recommendation import Candidate, RankedRecommendation, RecoContext
from app.services.pipeline import RecommendationPipeline
from app.services.recommendation.constants import DEFAULT_LIMIT

router = APIRouter(tags=["recommendations"])


class RecommendationRequest(BaseModel):
    candidates: list[Candidate] = Field(default_factory=list, description="Candidate pool from the catalog")
    context: RecoContext
    profile: InferredProfile | None = Field(default=None, description="Use this profile instead of inferring one")
    limit: int = Field(default=DEFAULT_LIMIT, ge=1, le=50)
    seed: int | None = Field(default=None, description="Seed for reproducible exploration")


@router.post("/recommendations", response_model=list[RankedRecommendation])
async def recommend(
    payload: RecommendationRequest,
    request: Request,
    session_id: str = Depends(get_session_id),
    pipeline: RecommendationPipeline = Depends(get_pipeline),
):
    rng = random.Random(payload.seed) if payload.seed is not None else None
    return await with_request_timeout(
        request,
        pipeline.recommend(
            payload.candidates,
            payload.context,
            profile=payload.profile,
            limit=payload.limit,
            rng=rng,
            session_id=session_id,
        ),
    )
