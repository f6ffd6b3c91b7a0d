# streaming/emitter.py
from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional, Tuple

from common.streams import StreamSink
from etl.events import BurnEvent, EventContext, MintEvent, TransferEvent
from etl.extractor import FtEventHandler

log = logging.getLogger(__name__)

MINT_STREAM = "ft_mint"
TRANSFER_STREAM = "ft_transfer"
BURN_STREAM = "ft_burn"
STREAMS = (MINT_STREAM, TRANSFER_STREAM, BURN_STREAM)

BUFFERED = "buffered"
IMMEDIATE = "immediate"


def _context_fields(context: EventContext) -> Dict[str, Any]:
    return {
        "transaction_id": context.transaction_id,
        "receipt_id": context.receipt_id,
        "block_height": context.block_height,
        # u128 values travel as decimal strings
        "block_timestamp_nanosec": str(context.block_timestamp_nanosec),
        "token_id": context.contract_id,
    }


def mint_record(mint: MintEvent, context: EventContext) -> Dict[str, Any]:
    return {"owner_id": mint.owner_id, "amount": str(mint.amount), "memo": mint.memo, **_context_fields(context)}


def transfer_record(transfer: TransferEvent, context: EventContext) -> Dict[str, Any]:
    return {
        "old_owner_id": transfer.old_owner_id,
        "new_owner_id": transfer.new_owner_id,
        "amount": str(transfer.amount),
        "memo": transfer.memo,
        **_context_fields(context),
    }


def burn_record(burn: BurnEvent, context: EventContext) -> Dict[str, Any]:
    return {"owner_id": burn.owner_id, "amount": str(burn.amount), "memo": burn.memo, **_context_fields(context)}


class StreamEmitter(FtEventHandler):
    """
    Fans events out to one bounded stream per kind.

    buffered mode keeps entries per stream, tagged with their block height,
    until flush() appends them as one batch and trims each stream once.
    immediate mode appends and trims on every event.
    Sink errors propagate to the caller untouched.
    """

    def __init__(self, sink: StreamSink, max_stream_size: int = 10_000, mode: str = BUFFERED):
        if mode not in (BUFFERED, IMMEDIATE):
            raise ValueError(f"unknown emission mode: {mode!r}")
        if max_stream_size <= 0:
            raise ValueError("max_stream_size must be a positive integer")
        self.sink = sink
        self.max_stream_size = int(max_stream_size)
        self.mode = mode
        self._buffers: Dict[str, List[Tuple[int, Dict[str, str]]]] = {s: [] for s in STREAMS}

    async def handle_mint(self, mint: MintEvent, context: EventContext) -> None:
        await self._emit(MINT_STREAM, context, mint_record(mint, context))

    async def handle_transfer(self, transfer: TransferEvent, context: EventContext) -> None:
        await self._emit(TRANSFER_STREAM, context, transfer_record(transfer, context))

    async def handle_burn(self, burn: BurnEvent, context: EventContext) -> None:
        await self._emit(BURN_STREAM, context, burn_record(burn, context))

    async def _emit(self, stream: str, context: EventContext, record: Dict[str, Any]) -> None:
        fields = {"event": json.dumps(record)}
        if self.mode == IMMEDIATE:
            await self.sink.append(stream, fields, self.max_stream_size)
        else:
            self._buffers[stream].append((context.block_height, fields))

    def pending(self, stream: Optional[str] = None) -> int:
        if stream is not None:
            return len(self._buffers[stream])
        return sum(len(b) for b in self._buffers.values())

    async def flush(self, up_to_height: Optional[int] = None) -> int:
        """
        Append buffered entries produced at or below up_to_height (all when
        None), one batch per stream. Returns the number of entries written.
        """
        written = 0
        for stream in STREAMS:
            buf = self._buffers[stream]
            if not buf:
                continue
            if up_to_height is None:
                ready, rest = buf, []
            else:
                ready = [item for item in buf if item[0] <= up_to_height]
                rest = [item for item in buf if item[0] > up_to_height]
            if not ready:
                continue
            await self.sink.append_batch(stream, [fields for _, fields in ready], self.max_stream_size)
            self._buffers[stream] = rest
            written += len(ready)
        if written:
            log.debug("flushed %d entries up to block %s", written, up_to_height)
        return written
