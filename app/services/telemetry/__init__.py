"""
Session telemetry: capture of interaction events into a bounded, time-boxed,
anonymous session, plus the stores that hold them.
"""

from app.services.telemetry.context import ContextDeriver, snap_location
from app.services.telemetry.factory import create_session_store, create_telemetry_service
from app.services.telemetry.redis_store import RedisSessionStore
from app.services.telemetry.service import TelemetryService
from app.services.telemetry.store import InMemorySessionStore, SessionStore

__all__ = [
    "ContextDeriver",
    "InMemorySessionStore",
    "RedisSessionStore",
    "SessionStore",
    "TelemetryService",
    "create_session_store",
    "create_telemetry_service",
    "snap_location",
]
