import asyncio
from collections.abc import Awaitable
from typing import Final, TypeVar

from fastapi import HTTPException, Request, Response
from loguru import logger

from app.services.pipeline import RecommendationPipeline
from app.services.telemetry.service import TelemetryService
from app.shared.ids import is_session_id, new_session_id

T = TypeVar("T")

SESSION_HEADER: Final[str] = "X-Session-Id"
SESSION_COOKIE: Final[str] = "session_id"


def get_telemetry(request: Request) -> TelemetryService:
    return request.app.state.telemetry


def get_pipeline(request: Request) -> RecommendationPipeline:
    return request.app.state.pipeline


def remember_session(request: Request, response: Response, session_id: str) -> None:
    """Hand the session id back to the client as a header and a cookie."""
    response.headers[SESSION_HEADER] = session_id
    response.set_cookie(
        SESSION_COOKIE,
        session_id,
        max_age=request.app.state.settings.TELEMETRY_SESSION_TIMEOUT_SECONDS,
        httponly=True,
        samesite="lax",
    )


def get_session_id(request: Request, response: Response) -> str:
    """
    Caller's anonymous session id.

    Read from the X-Session-Id header, then the session cookie. Missing or
    malformed ids get a freshly issued one. The id is echoed on the response.
    """
    session_id = request.headers.get(SESSION_HEADER) or request.cookies.get(SESSION_COOKIE)
    if not session_id or not is_session_id(session_id):
        session_id = new_session_id()
    remember_session(request, response, session_id)
    return session_id


async def with_request_timeout(request: Request, awaitable: Awaitable[T]) -> T:
    """Await with the configured request timeout; a timeout becomes a 504."""
    timeout = request.app.state.settings.REQUEST_TIMEOUT_SECONDS
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout)
    except asyncio.TimeoutError as exc:
        logger.warning(f"{request.method} {request.url.path} timed out after {timeout}s")
        raise HTTPException(status_code=504, detail="Request timed out") from exc
