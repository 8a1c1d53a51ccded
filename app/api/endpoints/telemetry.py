from fastapi import APIRouter, Depends, Request, Response
from pydantic import BaseModel, Field

from app.api.deps import get_session_id, get_telemetry, remember_session, with_request_timeout
from app.models.telemetry import SessionSignal, SessionStats, TelemetryEvent
from app.services.telemetry.service import TelemetryService

router = APIRouter(prefix="/telemetry", tags=["telemetry"])


class EventBatch(BaseModel):
    events: list[TelemetryEvent] = Field(default_factory=list, description="Events to capture, in order")


class AcceptedResponse(BaseModel):
    accepted: int


class SessionSignalsResponse(BaseModel):
    session_id: str
    signals: list[SessionSignal]


@router.post("/events", status_code=202, response_model=AcceptedResponse)
async def capture_events(
    batch: EventBatch,
    session_id: str = Depends(get_session_id),
    telemetry: TelemetryService = Depends(get_telemetry),
):
    # Fire-and-forget: writes complete in the background
    for event in batch.events:
        telemetry.capture(event, session_id)
    return AcceptedResponse(accepted=len(batch.events))


@router.get("/session", response_model=SessionSignalsResponse)
async def get_session(
    request: Request,
    session_id: str = Depends(get_session_id),
    telemetry: TelemetryService = Depends(get_telemetry),
):
    signals = await with_request_timeout(request, telemetry.get_session_signals(session_id))
    return SessionSignalsResponse(session_id=session_id, signals=signals)


@router.get("/session/stats", response_model=SessionStats)
async def get_session_stats(
    request: Request,
    session_id: str = Depends(get_session_id),
    telemetry: TelemetryService = Depends(get_telemetry),
):
    return await with_request_timeout(request, telemetry.get_session_stats(session_id))


@router.delete("/session", status_code=204)
async def clear_session(
    request: Request,
    session_id: str = Depends(get_session_id),
    telemetry: TelemetryService = Depends(get_telemetry),
) -> Response:
    response = Response(status_code=204)
    remember_session(request, response, telemetry.clear_session(session_id))
    return response
