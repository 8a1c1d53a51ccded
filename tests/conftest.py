import fnmatch
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest

from app.models.telemetry import GeoPoint, SessionContext, SessionSignal, parse_event

# Wednesday
WEEKDAY_NOON = datetime(2026, 10, 14, 12, 0, tzinfo=timezone.utc)


class MutableClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + timedelta(**kwargs)


class FakeRedis:
    """Just enough of redis.asyncio.Redis for the sorted-set session store."""

    def __init__(self) -> None:
        self.zsets: dict[str, dict[str, float]] = {}
        self.expirations: dict[str, int] = {}
        self.closed = False

    def _ordered(self, key: str) -> list[tuple[str, float]]:
        members = self.zsets.get(key, {})
        return sorted(members.items(), key=lambda item: (item[1], item[0]))

    async def zadd(self, key: str, mapping: dict[str, float]) -> int:
        zset = self.zsets.setdefault(key, {})
        added = sum(1 for member in mapping if member not in zset)
        zset.update(mapping)
        return added

    async def expire(self, key: str, seconds: int) -> bool:
        self.expirations[key] = seconds
        return key in self.zsets

    async def zrange(self, key: str, start: int, end: int) -> list[str]:
        members = [member for member, _ in self._ordered(key)]
        return members[start:] if end == -1 else members[start : end + 1]

    async def zcard(self, key: str) -> int:
        return len(self.zsets.get(key, {}))

    async def zpopmin(self, key: str, count: int = 1) -> list[tuple[str, float]]:
        popped = self._ordered(key)[:count]
        for member, _ in popped:
            del self.zsets[key][member]
        if key in self.zsets and not self.zsets[key]:
            del self.zsets[key]
        return popped

    async def scan_iter(self, match: str | None = None, count: int | None = None):
        for key in list(self.zsets):
            if match is None or fnmatch.fnmatch(key, match):
                yield key

    async def zremrangebyscore(self, key: str, min_score: str, max_score: str) -> int:
        exclusive = max_score.startswith("(")
        limit = float(max_score.lstrip("("))
        zset = self.zsets.get(key, {})
        doomed = [m for m, score in zset.items() if (score < limit if exclusive else score <= limit)]
        for member in doomed:
            del zset[member]
        if key in self.zsets and not zset:
            del self.zsets[key]
        return len(doomed)

    async def delete(self, *keys: str) -> int:
        removed = [key for key in keys if self.zsets.pop(key, None) is not None]
        for key in keys:
            self.expirations.pop(key, None)
        return len(removed)

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def clock() -> MutableClock:
    return MutableClock(WEEKDAY_NOON)


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def make_signal():
    """Factory for SessionSignal with a hand-set context."""

    def _make(
        name: str,
        payload: dict[str, Any] | None = None,
        ts: datetime | None = WEEKDAY_NOON,
        hour: int = 12,
        day_of_week: int = 2,
        weather: str | None = None,
        location: GeoPoint | None = None,
    ) -> SessionSignal:
        event = parse_event({"name": name, "ts": ts, "payload": payload or {}})
        context = SessionContext(
            hour=hour,
            day_of_week=day_of_week,
            holiday=day_of_week >= 5,
            weather=weather,
            location=location,
        )
        return SessionSignal(event=event, context=context)

    return _make


@pytest.fixture
def clock_at():
    """Factory for clocks pinned to a given datetime."""
    return MutableClock
