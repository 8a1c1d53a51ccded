import asyncio
import itertools
import weakref
from collections import Counter
from collections.abc import Callable, Coroutine
from datetime import datetime
from typing import Any

from loguru import logger
from pydantic import ValidationError

from app.core.constants import SESSION_EVICTION_SHARE
from app.core.security import redact_session_id
from app.models.telemetry import SessionSignal, SessionStats, TelemetryEvent, TelemetryRecord, parse_event
from app.services.telemetry.context import ContextDeriver, snap_location
from app.services.telemetry.store import SessionStore
from app.shared.ids import format_record_id, new_session_id
from app.shared.timeutils import ensure_aware, local_now


class TelemetryService:
    """
    Captures interaction events for anonymous sessions.

    Every operation takes the caller's session id. Without one, the service's
    own default session is used, which suits a single in-process user.

    capture() is fire-and-forget: it never raises and never waits for storage.
    Writes run as background tasks, serialized per session so records keep
    their capture order. Storage failures are logged and the event is dropped.
    """

    def __init__(
        self,
        store: SessionStore,
        context_deriver: ContextDeriver | None = None,
        session_timeout_seconds: int = 1800,
        max_records_per_session: int = 1000,
        clock: Callable[[], datetime] | None = None,
    ):
        self.store = store
        self.context_deriver = context_deriver or ContextDeriver()
        self.session_timeout_seconds = session_timeout_seconds
        self.max_records_per_session = max_records_per_session
        self._clock = clock or local_now

        self.session_id = new_session_id()
        self._sequence = itertools.count()
        # Entries vanish once no write holds or awaits the lock
        self._session_locks: weakref.WeakValueDictionary[str, asyncio.Lock] = weakref.WeakValueDictionary()
        # Strong refs so scheduled writes are not garbage collected mid-flight
        self._pending: set[asyncio.Task] = set()

    @property
    def eviction_batch(self) -> int:
        return max(1, int(self.max_records_per_session * SESSION_EVICTION_SHARE))

    async def start(self) -> None:
        """Run the start-of-session cleanup."""
        await self._cleanup_old_sessions()

    def capture(self, event: TelemetryEvent | dict[str, Any], session_id: str | None = None) -> str:
        """
        Record an event in a session without blocking the caller.

        Called from a running event loop the write is scheduled as a task.
        Without a running loop it runs inline through asyncio.run, which blocks
        until stored; that path is for the in-memory store only, since a Redis
        client would be left bound to the closed loop.

        Args:
            event: Event model or raw event dict (validated into the tagged union)
            session_id: Session to record into; the default session when omitted

        Returns:
            The session id the event was recorded under
        """
        session_id = session_id or self.session_id
        try:
            record = self._build_record(event, session_id)
        except ValidationError as e:
            logger.warning(f"Dropping invalid telemetry event: {e}")
            return session_id
        except Exception as e:
            logger.warning(f"Failed to capture telemetry event: {e}")
            return session_id
        self._schedule(self._persist(record))
        return session_id

    def _build_record(self, event: TelemetryEvent | dict[str, Any], session_id: str) -> TelemetryRecord:
        if isinstance(event, dict):
            event = parse_event(event)

        now = self._clock()
        payload = event.payload
        location = snap_location(payload.location) if payload.location is not None else None

        updates: dict[str, Any] = {}
        if location is not None:
            updates["payload"] = payload.model_copy(update={"location": location})
        if event.ts is None:
            updates["ts"] = now
        if updates:
            event = event.model_copy(update=updates)

        signal = SessionSignal(event=event, context=self.context_deriver.derive(now, location=location))
        return TelemetryRecord(
            record_id=format_record_id(session_id, next(self._sequence)),
            session_id=session_id,
            signal=signal,
            timestamp=now.timestamp(),
        )

    def _schedule(self, coro: Coroutine[Any, Any, None]) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # Synchronous caller without an event loop: run the write inline (in-memory store only)
            asyncio.run(coro)
            return

        task = loop.create_task(coro)
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    def _lock_for(self, session_id: str) -> asyncio.Lock:
        lock = self._session_locks.get(session_id)
        if lock is None:
            lock = asyncio.Lock()
            self._session_locks[session_id] = lock
        return lock

    async def _persist(self, record: TelemetryRecord) -> None:
        session = redact_session_id(record.session_id)
        try:
            async with self._lock_for(record.session_id):
                await self._cleanup_old_sessions()
                if not await self.store.put(record):
                    logger.warning(f"[{session}] Telemetry record dropped: store rejected the write")
                    return
                await self._limit_session_records(record.session_id)
        except Exception as e:
            logger.exception(f"[{session}] Failed to save telemetry record: {e}")

    async def _limit_session_records(self, session_id: str) -> None:
        count = await self.store.count(session_id)
        if count <= self.max_records_per_session:
            return
        excess = count - self.max_records_per_session + self.eviction_batch
        evicted = await self.store.delete_oldest(session_id, excess)
        logger.debug(f"[{redact_session_id(session_id)}] Evicted {evicted} oldest telemetry records")

    async def _cleanup_old_sessions(self) -> None:
        cutoff = self._clock().timestamp() - self.session_timeout_seconds
        try:
            deleted = await self.store.delete_older_than(cutoff)
            if deleted:
                logger.debug(f"Removed {deleted} expired telemetry records")
        except Exception as e:
            logger.warning(f"Failed to cleanup old telemetry sessions: {e}")

    async def get_session_signals(self, session_id: str | None = None) -> list[SessionSignal]:
        """
        A session's signals, oldest first.

        Waits for writes already scheduled so reads see every earlier capture.
        Storage errors yield an empty list.
        """
        session_id = session_id or self.session_id
        await self.flush()
        try:
            records = await self.store.query_by_session(session_id)
        except Exception as e:
            logger.warning(f"[{redact_session_id(session_id)}] Failed to get session signals: {e}")
            return []
        records = sorted(records, key=lambda r: (r.timestamp, r.record_id))
        return [record.signal for record in records]

    def clear_session(self, session_id: str | None = None) -> str:
        """
        Drop a session's records and start a fresh anonymous session.

        Clearing the default session (or passing no id) replaces the default.
        Expired records of every session are removed as well.

        Returns:
            The new session id
        """
        previous = session_id or self.session_id
        fresh = new_session_id()
        if previous == self.session_id:
            self.session_id = fresh
        logger.info(f"Started telemetry session {redact_session_id(fresh)} (cleared {redact_session_id(previous)})")
        self._schedule(self._drop_session(previous))
        return fresh

    async def _drop_session(self, session_id: str) -> None:
        try:
            async with self._lock_for(session_id):
                deleted = await self.store.delete_session(session_id)
                logger.debug(f"[{redact_session_id(session_id)}] Deleted {deleted} telemetry records")
        except Exception as e:
            logger.warning(f"[{redact_session_id(session_id)}] Failed to delete telemetry session: {e}")
        await self._cleanup_old_sessions()

    async def get_session_stats(self, session_id: str | None = None) -> SessionStats:
        """Event counts and time span of a session, for debugging."""
        session_id = session_id or self.session_id
        signals = await self.get_session_signals(session_id)
        event_counts = Counter(signal.event.name for signal in signals)

        timestamps = [ensure_aware(signal.event.ts) for signal in signals if signal.event.ts is not None]
        time_span_minutes = 0
        if len(timestamps) > 1:
            time_span_minutes = round((max(timestamps) - min(timestamps)).total_seconds() / 60)

        return SessionStats(
            session_id=session_id,
            event_count=len(signals),
            time_span_minutes=time_span_minutes,
            event_counts=dict(event_counts),
        )

    async def flush(self) -> None:
        """Wait for every scheduled write and cleanup to finish."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def close(self) -> None:
        await self.flush()
        await self.store.close()
