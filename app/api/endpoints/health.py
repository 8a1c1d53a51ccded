from fastapi import APIRouter, Depends

from app.api.deps import get_telemetry
from app.core.version import __version__
from app.services.telemetry.service import TelemetryService

router = APIRouter(tags=["health"])


@router.get("/health", summary="Simple readiness probe")
async def health_check(telemetry: TelemetryService = Depends(get_telemetry)) -> dict[str, str]:
    return {
        "status": "ok",
        "version": __version__,
        "telemetry_store": type(telemetry.store).__name__,
    }
