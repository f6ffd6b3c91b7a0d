# common/streams/redis_backend.py

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

import redis.asyncio as redis
from redis.exceptions import RedisError

# reuse the sink contract so tests stay consistent
from .memory import SinkError, StreamSink

log = logging.getLogger(__name__)


class RedisStreamSink(StreamSink):
    """
    Bounded streams on top of Redis streams.

    contract
    append issues XADD with MAXLEN ~ max_len
    append_batch pipelines one XADD per entry and a single XTRIM MAXLEN ~ max_len
    any RedisError is raised as SinkError, nothing is retried
    """

    def __init__(self, client: Any):
        self._client = client

    @classmethod
    def from_url(cls, url: str, client: Optional[Any] = None) -> "RedisStreamSink":
        return cls(client or redis.Redis.from_url(url, decode_responses=True))

    async def append(self, stream: str, fields: Dict[str, str], max_len: int) -> str:
        try:
            return await self._client.xadd(stream, fields, maxlen=int(max_len), approximate=True)
        except RedisError as e:
            raise SinkError(f"XADD to {stream} failed: {e}") from e

    async def append_batch(self, stream: str, entries: Sequence[Dict[str, str]], max_len: int) -> List[str]:
        if not entries:
            return []
        try:
            async with self._client.pipeline(transaction=False) as pipe:
                for fields in entries:
                    pipe.xadd(stream, fields)
                pipe.xtrim(stream, maxlen=int(max_len), approximate=True)
                results = await pipe.execute()
        except RedisError as e:
            raise SinkError(f"batch of {len(entries)} entries to {stream} failed: {e}") from e
        trimmed = results[-1]
        if trimmed:
            log.debug("trimmed %s entries from %s", trimmed, stream)
        return list(results[:-1])

    async def length(self, stream: str) -> int:
        try:
            return int(await self._client.xlen(stream))
        except RedisError as e:
            raise SinkError(f"XLEN of {stream} failed: {e}") from e

    async def close(self) -> None:
        await self._client.aclose()
