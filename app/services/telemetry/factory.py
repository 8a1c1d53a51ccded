from loguru import logger

from app.core.config import Settings
from app.services.telemetry.context import ContextDeriver
from app.services.telemetry.redis_store import RedisSessionStore
from app.services.telemetry.service import TelemetryService
from app.services.telemetry.store import InMemorySessionStore, SessionStore


def create_session_store(config: Settings) -> SessionStore:
    """Build the session store selected by TELEMETRY_STORE_BACKEND."""
    if config.TELEMETRY_STORE_BACKEND == "redis":
        logger.info("Using Redis telemetry store")
        return RedisSessionStore(
            redis_url=config.REDIS_URL,
            key_prefix=config.REDIS_TELEMETRY_KEY,
            max_connections=config.REDIS_MAX_CONNECTIONS,
            ttl_seconds=config.TELEMETRY_SESSION_TIMEOUT_SECONDS * 2,
        )
    logger.info("Using in-memory telemetry store")
    return InMemorySessionStore()


def create_telemetry_service(config: Settings, store: SessionStore | None = None) -> TelemetryService:
    return TelemetryService(
        store=store or create_session_store(config),
        context_deriver=ContextDeriver(holidays=config.TELEMETRY_HOLIDAYS),
        session_timeout_seconds=config.TELEMETRY_SESSION_TIMEOUT_SECONDS,
        max_records_per_session=config.TELEMETRY_MAX_RECORDS_PER_SESSION,
    )
