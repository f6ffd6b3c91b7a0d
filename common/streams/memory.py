# common/streams/memory.py

from __future__ import annotations

import asyncio
import json
import time
from dataclasses import dataclass
from typing import Dict, List, Sequence


class SinkError(RuntimeError):
    """Append or flush was rejected by the stream backend."""


@dataclass(frozen=True)
class StreamEntry:
    stream: str
    entry_id: str
    fields: Dict[str, str]
    produced_at: float


class StreamSink:
    """
    Append only bounded streams.

    contract
    append adds one entry and trims the stream to about max_len entries
    append_batch adds entries in order then trims once
    length returns the current number of entries in the stream
    every method raises SinkError on failure, nothing is retried here
    """

    async def append(self, stream: str, fields: Dict[str, str], max_len: int) -> str:
        raise NotImplementedError

    async def append_batch(self, stream: str, entries: Sequence[Dict[str, str]], max_len: int) -> List[str]:
        raise NotImplementedError

    async def length(self, stream: str) -> int:
        raise NotImplementedError

    async def close(self) -> None:
        return None


class MemoryStreamSink(StreamSink):
    """
    In process bounded streams with approximate trimming.

    rules
    one entries are never reordered, ids grow monotonically per stream
    two trimming only drops whole nodes of node_size entries from the head,
        so a stream can exceed max_len by at most node_size - 1 entries
    """

    def __init__(self, node_size: int = 100) -> None:
        self.node_size = max(1, int(node_size))
        self._streams: Dict[str, List[StreamEntry]] = {}
        self._seq: Dict[str, int] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

    def _lock(self, stream: str) -> asyncio.Lock:
        if stream not in self._locks:
            self._locks[stream] = asyncio.Lock()
        return self._locks[stream]

    def _add(self, stream: str, fields: Dict[str, str]) -> str:
        seq = self._seq.get(stream, 0) + 1
        self._seq[stream] = seq
        now = time.time()
        entry = StreamEntry(
            stream=stream,
            entry_id=f"{int(now * 1000)}-{seq}",
            fields=json.loads(json.dumps(fields)),  # json safe copy
            produced_at=now,
        )
        self._streams.setdefault(stream, []).append(entry)
        return entry.entry_id

    def _trim(self, stream: str, max_len: int) -> int:
        entries = self._streams.get(stream, [])
        excess = len(entries) - max(0, int(max_len))
        whole_nodes = excess // self.node_size if excess > 0 else 0
        drop = whole_nodes * self.node_size
        if drop:
            del entries[:drop]
        return drop

    async def append(self, stream: str, fields: Dict[str, str], max_len: int) -> str:
        async with self._lock(stream):
            entry_id = self._add(stream, fields)
            self._trim(stream, max_len)
            return entry_id

    async def append_batch(self, stream: str, entries: Sequence[Dict[str, str]], max_len: int) -> List[str]:
        async with self._lock(stream):
            ids = [self._add(stream, fields) for fields in entries]
            self._trim(stream, max_len)
            return ids

    async def length(self, stream: str) -> int:
        async with self._lock(stream):
            return len(self._streams.get(stream, []))

    def entries(self, stream: str) -> List[StreamEntry]:
        return list(self._streams.get(stream, []))
