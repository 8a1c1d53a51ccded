from collections import defaultdict
from typing import Protocol

from app.models.telemetry import TelemetryRecord


class SessionStore(Protocol):
    """
    Storage capability behind the telemetry service.

    Implementations only move records around; they never look inside signals.
    """

    async def put(self, record: TelemetryRecord) -> bool: ...

    async def query_by_session(self, session_id: str) -> list[TelemetryRecord]: ...

    async def count(self, session_id: str) -> int: ...

    async def delete_oldest(self, session_id: str, n: int) -> int: ...

    async def delete_older_than(self, cutoff: float) -> int: ...

    async def delete_session(self, session_id: str) -> int: ...

    async def close(self) -> None: ...


class InMemorySessionStore:
    """Process-local session store. Records are kept per session in insertion order."""

    def __init__(self) -> None:
        self._sessions: dict[str, list[TelemetryRecord]] = defaultdict(list)

    async def put(self, record: TelemetryRecord) -> bool:
        self._sessions[record.session_id].append(record)
        return True

    async def query_by_session(self, session_id: str) -> list[TelemetryRecord]:
        return sorted(self._sessions.get(session_id, []), key=lambda r: (r.timestamp, r.record_id))

    async def count(self, session_id: str) -> int:
        return len(self._sessions.get(session_id, []))

    async def delete_oldest(self, session_id: str, n: int) -> int:
        records = self._sessions.get(session_id)
        if not records or n <= 0:
            return 0
        records.sort(key=lambda r: (r.timestamp, r.record_id))
        removed = min(n, len(records))
        del records[:removed]
        return removed

    async def delete_older_than(self, cutoff: float) -> int:
        deleted = 0
        for session_id in list(self._sessions):
            records = self._sessions[session_id]
            kept = [r for r in records if r.timestamp >= cutoff]
            deleted += len(records) - len(kept)
            if kept:
                self._sessions[session_id] = kept
            else:
                del self._sessions[session_id]
        return deleted

    async def delete_session(self, session_id: str) -> int:
        return len(self._sessions.pop(session_id, []))

    async def close(self) -> None:
        self._sessions.clear()
