"""
Telemetry models: interaction events, the context derived when they are captured,
and the records the session store keeps.

Events are a tagged union on ``name``. Each known event carries only the payload
fields that downstream inference reads; any other name validates as an
``UnknownEvent`` with an open payload so new UI events never break capture.
"""

from datetime import datetime
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Discriminator, Field, Tag, TypeAdapter


class GeoPoint(BaseModel):
    model_config = ConfigDict(frozen=True)

    lat: float
    lng: float


class EventPayload(BaseModel):
    """Fields every event may carry."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    location: GeoPoint | None = None
    parent_hint_expanded: bool = False


class ViewItemPayload(EventPayload):
    id: str | None = None
    kind: str | None = None
    dwell_ms: float | None = Field(default=None, ge=0)
    scroll_depth: float | None = Field(default=None, ge=0)
    category: str | None = None
    tags: tuple[str, ...] = ()
    distance_km: float | None = Field(default=None, alias="distanceKm")
    price: str | None = None
    indoor: bool | None = None


class ClickCtaPayload(EventPayload):
    id: str | None = None
    kind: str | None = None


class FilterApplyPayload(EventPayload):
    free_only: bool = False
    distance_km: float | None = None
    category: str | None = None


class KidSafeInteractionPayload(EventPayload):
    id: str | None = None
    kind: str | None = None


class ContentThemePayload(EventPayload):
    category: str | None = None
    tags: tuple[str, ...] = ()
    score: float | None = None


class UnknownPayload(EventPayload):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="allow")


class _BaseEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    # Stamped with the capture time when the caller leaves it empty
    ts: datetime | None = None


class ViewItemEvent(_BaseEvent):
    name: Literal["view_item"] = "view_item"
    payload: ViewItemPayload = Field(default_factory=ViewItemPayload)


class ClickCtaEvent(_BaseEvent):
    name: Literal["click_cta"] = "click_cta"
    payload: ClickCtaPayload = Field(default_factory=ClickCtaPayload)


class FilterApplyEvent(_BaseEvent):
    name: Literal["filter_apply"] = "filter_apply"
    payload: FilterApplyPayload = Field(default_factory=FilterApplyPayload)


class KidSafeInteractionEvent(_BaseEvent):
    name: Literal["kid_safe_interaction"] = "kid_safe_interaction"
    payload: KidSafeInteractionPayload = Field(default_factory=KidSafeInteractionPayload)


class ContentThemeEvent(_BaseEvent):
    name: Literal["content_theme"] = "content_theme"
    payload: ContentThemePayload = Field(default_factory=ContentThemePayload)


class UnknownEvent(_BaseEvent):
    name: str
    payload: UnknownPayload = Field(default_factory=UnknownPayload)


KNOWN_EVENT_NAMES = frozenset({"view_item", "click_cta", "filter_apply", "kid_safe_interaction", "content_theme"})


def _event_tag(value: Any) -> str:
    name = value.get("name") if isinstance(value, dict) else getattr(value, "name", None)
    return name if name in KNOWN_EVENT_NAMES else "unknown"


TelemetryEvent = Annotated[
    Union[
        Annotated[ViewItemEvent, Tag("view_item")],
        Annotated[ClickCtaEvent, Tag("click_cta")],
        Annotated[FilterApplyEvent, Tag("filter_apply")],
        Annotated[KidSafeInteractionEvent, Tag("kid_safe_interaction")],
        Annotated[ContentThemeEvent, Tag("content_theme")],
        Annotated[UnknownEvent, Tag("unknown")],
    ],
    Discriminator(_event_tag),
]

_event_adapter: TypeAdapter = TypeAdapter(TelemetryEvent)


def parse_event(data: dict[str, Any]) -> TelemetryEvent:
    """Validate a raw event dict into the matching event model."""
    return _event_adapter.validate_python(data)


class SessionContext(BaseModel):
    """Context derived at capture time. day_of_week follows datetime.weekday() (0=Monday)."""

    model_config = ConfigDict(frozen=True)

    hour: int = Field(ge=0, le=23)
    day_of_week: int = Field(ge=0, le=6)
    holiday: bool = False
    weather: str | None = None
    location: GeoPoint | None = None


class SessionSignal(BaseModel):
    model_config = ConfigDict(frozen=True)

    event: TelemetryEvent
    context: SessionContext


class TelemetryRecord(BaseModel):
    """A stored signal. timestamp is epoch seconds at capture, used for ordering and expiry."""

    model_config = ConfigDict(frozen=True)

    record_id: str
    session_id: str
    signal: SessionSignal
    timestamp: float


class SessionStats(BaseModel):
    session_id: str
    event_count: int = 0
    time_span_minutes: int = 0
    event_counts: dict[str, int] = Field(default_factory=dict)
