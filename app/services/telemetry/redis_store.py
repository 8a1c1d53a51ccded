import redis.asyncio as redis
from loguru import logger
from pydantic import ValidationError

from app.core.security import redact_session_id
from app.models.telemetry import TelemetryRecord


class RedisSessionStore:
    """
    Redis-backed session store.

    Each session is one sorted set keyed "<prefix>session:<session_id>", members
    are JSON records scored by capture timestamp. Record ids sort in capture
    order, so equal timestamps still come back chronologically. The client binds
    to the event loop it first connects on, so use the store from one running loop.
    """

    def __init__(
        self,
        redis_url: str,
        key_prefix: str,
        max_connections: int = 20,
        ttl_seconds: int | None = None,
        client: redis.Redis | None = None,
    ) -> None:
        self.redis_url = redis_url
        self.key_prefix = key_prefix
        self.max_connections = max_connections
        # Safety net for sessions nobody cleans up; cleanup passes normally get there first
        self.ttl_seconds = ttl_seconds
        self._client: redis.Redis | None = client
        if not redis_url and client is None:
            logger.warning("REDIS_URL is not set. Telemetry storage will fail until configured.")

    async def get_client(self) -> redis.Redis:
        if self._client is None:
            logger.info("Creating Redis client for RedisSessionStore")
            self._client = redis.from_url(
                self.redis_url,
                decode_responses=True,
                encoding="utf-8",
                socket_connect_timeout=5,
                socket_timeout=5,
                max_connections=self.max_connections,
                health_check_interval=30,
                socket_keepalive=True,
            )
        return self._client

    def _session_key(self, session_id: str) -> str:
        return f"{self.key_prefix}session:{session_id}"

    async def put(self, record: TelemetryRecord) -> bool:
        """Append a record to its session.

        Returns:
            True if stored, False on a Redis error
        """
        key = self._session_key(record.session_id)
        try:
            client = await self.get_client()
            await client.zadd(key, {record.model_dump_json(): record.timestamp})
            if self.ttl_seconds:
                await client.expire(key, self.ttl_seconds)
            return True
        except (redis.RedisError, OSError) as exc:
            logger.error(f"Failed to store telemetry record in '{key}': {exc}")
            return False

    async def query_by_session(self, session_id: str) -> list[TelemetryRecord]:
        key = self._session_key(session_id)
        try:
            client = await self.get_client()
            raw_records = await client.zrange(key, 0, -1)
        except (redis.RedisError, OSError) as exc:
            logger.error(f"Failed to read telemetry session '{key}': {exc}")
            return []

        records = []
        for raw in raw_records:
            try:
                records.append(TelemetryRecord.model_validate_json(raw))
            except ValidationError as e:
                logger.warning(f"[{redact_session_id(session_id)}] Skipping undecodable telemetry record: {e}")
        return records

    async def count(self, session_id: str) -> int:
        key = self._session_key(session_id)
        try:
            client = await self.get_client()
            return int(await client.zcard(key))
        except (redis.RedisError, OSError) as exc:
            logger.error(f"Failed to count telemetry session '{key}': {exc}")
            return 0

    async def delete_oldest(self, session_id: str, n: int) -> int:
        if n <= 0:
            return 0
        key = self._session_key(session_id)
        try:
            client = await self.get_client()
            popped = await client.zpopmin(key, n)
            return len(popped)
        except (redis.RedisError, OSError) as exc:
            logger.error(f"Failed to evict records from '{key}': {exc}")
            return 0

    async def delete_older_than(self, cutoff: float) -> int:
        """Drop every record with timestamp < cutoff across all sessions.

        Returns:
            Number of records deleted
        """
        pattern = f"{self.key_prefix}session:*"
        try:
            client = await self.get_client()
            deleted_count = 0
            async for key in client.scan_iter(match=pattern, count=500):
                deleted_count += await client.zremrangebyscore(key, "-inf", f"({cutoff}")
            return deleted_count
        except (redis.RedisError, OSError) as exc:
            logger.error(f"Failed to delete telemetry older than {cutoff} matching '{pattern}': {exc}")
            return 0

    async def delete_session(self, session_id: str) -> int:
        """Drop every record of one session.

        Returns:
            Number of records deleted
        """
        key = self._session_key(session_id)
        try:
            client = await self.get_client()
            count = int(await client.zcard(key))
            await client.delete(key)
            return count
        except (redis.RedisError, OSError) as exc:
            logger.error(f"Failed to delete telemetry session '{key}': {exc}")
            return 0

    async def close(self) -> None:
        """Close and disconnect the Redis client"""
        if self._client is not None:
            try:
                await self._client.aclose()
                logger.info("RedisSessionStore client closed")
            except Exception as exc:
                logger.warning(f"Failed to close RedisSessionStore client: {exc}")
            finally:
                self._client = None
