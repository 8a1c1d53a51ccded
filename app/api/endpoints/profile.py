from fastapi import APIRouter, Depends, Request

from app.api.deps import get_pipeline, get_session_id, with_request_timeout
from app.models.profile import InferredProfile
from app.services.pipeline import RecommendationPipeline

router = APIRouter(tags=["profile"])


@router.get("/profile", response_model=InferredProfile)
async def get_profile(
    request: Request,
    session_id: str = Depends(get_session_id),
    pipeline: RecommendationPipeline = Depends(get_pipeline),
):
    """Profile inferred from the caller's session telemetry."""
    return await with_request_timeout(request, pipeline.current_profile(session_id))
