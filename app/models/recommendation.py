from pydantic import BaseModel, ConfigDict, Field

from app.models.profile import RecommendationMode


class Candidate(BaseModel):
    """
    A place, book or event supplied by the catalog.

    Extra catalog fields (title, address, ...) are kept and passed through to the
    ranked output untouched.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str
    category: str
    tags: list[str] = Field(default_factory=list)
    distance_km: float | None = Field(default=None, alias="distanceKm", ge=0)
    price: str | None = None
    indoor: bool = False
    quiet: bool = False
    accessibility: list[str] = Field(default_factory=list)


class RecoContext(BaseModel):
    """Request-time context."""

    mode: RecommendationMode = "learner"
    hour: int = Field(ge=0, le=23)
    weather: str | None = None


class ScoredCandidate(BaseModel):
    """A candidate with every scoring component kept for explanation and badges."""

    candidate: Candidate
    relevance: float
    travel: float
    cost: float
    weather_fit: float
    quiet_safety: float
    # Drawn per candidate, not part of total
    novelty: float
    total: float
    why: list[str] = Field(default_factory=list)


class RankedRecommendation(Candidate):
    score: float
    why: list[str] = Field(default_factory=list, max_length=3)
    badges: list[str] = Field(default_factory=list)
