# ingestion/reader.py
"""
Chain reader: delivers blocks in height order with bounded read-ahead and
pairs every executed receipt with the transaction that started it.
"""
from __future__ import annotations

import asyncio
import logging
import time
from collections import deque
from contextlib import aclosing
from typing import AsyncIterator, Callable, Deque, Dict, List, Optional, Tuple

from pydantic import ValidationError

from ingestion.fetcher import ReaderError, fetch_block, fetch_last_final_height
from ingestion.models import Block, Transaction, TransactionReceipt

log = logging.getLogger(__name__)

FetchFn = Callable[[int], Optional[dict]]
HeadFn = Callable[[], int]


class ChainReader:
    """
    rules
    one blocks are yielded strictly in height order, read-ahead only fetches
    two heights with no block (None from fetch) are skipped
    three receipts whose transaction was never seen are skipped
    four with lookback_blocks set, blocks below start are read first for their transactions only
    """

    def __init__(
        self,
        fetch_block_fn: Optional[FetchFn] = None,
        *,
        prefetch_blocks: int = 0,
        lookback_blocks: int = 0,
        head_fn: Optional[HeadFn] = None,
        poll_interval: float = 1.0,
    ) -> None:
        self._fetch = fetch_block_fn or fetch_block
        self._head_fn = head_fn or fetch_last_final_height
        self.prefetch_blocks = max(0, int(prefetch_blocks))
        self.lookback_blocks = max(0, int(lookback_blocks))
        self.poll_interval = poll_interval
        self._head: Optional[int] = None
        self._tx_by_receipt: Dict[str, Transaction] = {}

    def _fetch_timed(self, height: int) -> Optional[dict]:
        started = time.perf_counter()
        raw = self._fetch(height)
        log.debug("fetched block %s in %.3fs", height, time.perf_counter() - started)
        return raw

    async def _await_head(self, height: int) -> None:
        # only used when running without an end bound
        while self._head is None or height > self._head:
            self._head = await asyncio.to_thread(self._head_fn)
            if height <= self._head:
                return
            await asyncio.sleep(self.poll_interval)

    async def _raw_blocks(self, start: int, end: Optional[int]) -> AsyncIterator[Tuple[int, dict]]:
        window = self.prefetch_blocks + 1
        pending: Deque[Tuple[int, asyncio.Task]] = deque()
        next_height = start
        try:
            while True:
                while len(pending) < window and (end is None or next_height <= end):
                    if end is None and (self._head is None or next_height > self._head):
                        if pending:
                            break
                        await self._await_head(next_height)
                    task = asyncio.create_task(asyncio.to_thread(self._fetch_timed, next_height))
                    pending.append((next_height, task))
                    next_height += 1
                if not pending:
                    return
                height, task = pending.popleft()
                raw = await task
                if raw is None:
                    log.debug("no block at height %s", height)
                    continue
                yield height, raw
        finally:
            for _, task in pending:
                task.cancel()

    async def warm_up(self, start: int) -> int:
        """
        Replays the lookback window below start so receipts executing at or
        after start can still be paired with transactions from earlier blocks.
        Nothing is yielded. Returns the number of blocks read.
        """
        first = max(0, start - self.lookback_blocks)
        seen = 0
        async for height, raw in self._raw_blocks(first, start - 1):
            self.receipts(self.parse_block(raw, height))
            seen += 1
        log.info("warmed up on %d blocks below %s, tracking %d receipts", seen, start, self.tracked_receipts())
        return seen

    async def blocks(self, start: int, end: Optional[int] = None) -> AsyncIterator[Block]:
        if self.lookback_blocks and start > 0:
            await self.warm_up(start)
        async with aclosing(self._raw_blocks(start, end)) as raws:
            async for height, raw in raws:
                yield self.parse_block(raw, height)

    @staticmethod
    def parse_block(raw: dict, height: int) -> Block:
        try:
            return Block.from_neardata(raw)
        except (ValidationError, ValueError, TypeError, AttributeError) as e:
            raise ReaderError(f"malformed block at height {height}: {e}") from e

    def receipts(self, block: Block) -> List[Tuple[TransactionReceipt, Transaction]]:
        for tx in block.transactions:
            for rid in tx.receipt_ids:
                self._tx_by_receipt[rid] = tx
        out: List[Tuple[TransactionReceipt, Transaction]] = []
        for receipt in block.receipts:
            tx = self._tx_by_receipt.pop(receipt.receipt_id, None)
            if tx is None:
                log.debug("skipping receipt %s in block %s, transaction not seen", receipt.receipt_id, block.height)
                continue
            for child in receipt.receipt_ids:
                self._tx_by_receipt[child] = tx
            out.append((receipt, tx))
        return out

    def tracked_receipts(self) -> int:
        return len(self._tx_by_receipt)
