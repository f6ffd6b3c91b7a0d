# streaming/indexer.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional, Tuple

from common.settings import Settings
from common.streams import MemoryStreamSink, RedisStreamSink, StreamSink
from etl.extractor import FtEventExtractor
from ingestion.checkpoint import Checkpoint
from ingestion.reader import ChainReader
from streaming.emitter import StreamEmitter

log = logging.getLogger(__name__)


@dataclass
class RunStats:
    blocks: int = 0
    receipts: int = 0
    events: int = 0
    last_block: Optional[int] = None


def resolve_range(
    settings: Settings,
    checkpoint: Checkpoint,
    head_fn: Callable[[], int],
    start: Optional[int] = None,
    end: Optional[int] = None,
) -> Tuple[int, Optional[int]]:
    """
    Explicit heights win, then the configured ones. With no start the run
    continues after the checkpoint, or from the chain head on a fresh start.
    """
    if start is None:
        start = settings.indexer.start_block
    if end is None:
        end = settings.indexer.end_block
    if start is None:
        start = checkpoint.next_height(head_fn)
    if end is not None and end < start:
        raise ValueError("end block must be greater than or equal to start block")
    return start, end


def build_sink(settings: Settings, dry_run: bool = False) -> StreamSink:
    if dry_run:
        return MemoryStreamSink()
    return RedisStreamSink.from_url(settings.redis.url)


async def run_indexer(
    reader: ChainReader,
    emitter: StreamEmitter,
    start: int,
    end: Optional[int] = None,
    checkpoint: Optional[Checkpoint] = None,
) -> RunStats:
    """
    Process blocks in order: extract every receipt, flush the emitter at the
    end of each block, then advance the checkpoint. Sink and reader errors
    propagate and end the run.
    """
    extractor = FtEventExtractor(emitter)
    stats = RunStats()
    async for block in reader.blocks(start, end):
        for receipt, transaction in reader.receipts(block):
            stats.events += await extractor.on_receipt(receipt, transaction)
            stats.receipts += 1
        await emitter.flush(block.height)
        if checkpoint is not None:
            checkpoint.update(block.height)
        stats.blocks += 1
        stats.last_block = block.height
        log.debug("block %s done, %d events so far", block.height, stats.events)
    log.info(
        "indexed %d blocks, %d receipts, %d events (last block %s)",
        stats.blocks, stats.receipts, stats.events, stats.last_block,
    )
    return stats
