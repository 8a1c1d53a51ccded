from typing import Literal

from pydantic import BaseModel, Field

from app.core.constants import MIN_CONFIDENCE

CostPreference = Literal["free", "low", "any"]
RecommendationMode = Literal["learner", "family"]


class InferredProfile(BaseModel):
    """
    Preference profile inferred from one session's telemetry.

    Weight maps are normalized at inference time (each sums to 1, the interest
    map may be empty). The profile is a value: inference never mutates one,
    update_profile returns a new instance.
    """

    interest_weights: dict[str, float] = Field(default_factory=dict, description="Tag → normalized weight")
    category_weights: dict[str, float] = Field(default_factory=dict, description="Category → normalized weight")
    cost_preference: CostPreference = "any"
    indoor_preference: bool = False
    quiet_needed: bool = False
    distance_km_tolerance: float = Field(default=5.0, gt=0)
    time_window: str = ""
    mode: RecommendationMode = "learner"
    confidence: float = Field(default=MIN_CONFIDENCE, ge=MIN_CONFIDENCE, le=1.0)
