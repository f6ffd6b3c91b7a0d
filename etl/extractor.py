# etl/extractor.py
"""
Turn one executed receipt into fungible token events.

Every log line goes through each classifier in LOG_CLASSIFIERS, then the
receipt's actions are scanned for native NEAR transfers. Results are not
deduplicated across classifiers: a line that is both a legacy transfer log
and a NEP-141 envelope yields two events.
"""
from __future__ import annotations

import logging
from functools import partial
from typing import Callable, List, Tuple

from etl.actions import scan_native_transfers
from etl.context import build_event_context
from etl.events import BurnEvent, EventContext, FtEvent, MintEvent, NATIVE_TOKEN_ID, TransferEvent
from etl.legacy import classify_legacy_transfer
from etl.nep141 import FT_BURN, FT_MINT, FT_TRANSFER, decode_standard_events
from ingestion.models import Transaction, TransactionReceipt

log = logging.getLogger(__name__)

LogClassifier = Callable[[str], List[FtEvent]]

LOG_CLASSIFIERS: Tuple[LogClassifier, ...] = (
    classify_legacy_transfer,
    partial(decode_standard_events, kind=FT_MINT),
    partial(decode_standard_events, kind=FT_TRANSFER),
    partial(decode_standard_events, kind=FT_BURN),
)


class FtEventHandler:
    async def handle_mint(self, mint: MintEvent, context: EventContext) -> None:
        raise NotImplementedError

    async def handle_transfer(self, transfer: TransferEvent, context: EventContext) -> None:
        raise NotImplementedError

    async def handle_burn(self, burn: BurnEvent, context: EventContext) -> None:
        raise NotImplementedError


def extract_events(receipt: TransactionReceipt, transaction: Transaction) -> List[Tuple[FtEvent, EventContext]]:
    """Pure detection step, in the order events must be emitted."""
    if not receipt.is_successful():
        return []

    out: List[Tuple[FtEvent, EventContext]] = []
    context = None
    for line in receipt.logs:
        for classify in LOG_CLASSIFIERS:
            for event in classify(line):
                if context is None:
                    context = build_event_context(receipt, transaction)
                out.append((event, context))

    native = scan_native_transfers(receipt)
    if native:
        native_context = build_event_context(receipt, transaction, contract_id=NATIVE_TOKEN_ID)
        out.extend((event, native_context) for event in native)
    return out


class FtEventExtractor:
    def __init__(self, handler: FtEventHandler):
        self.handler = handler

    async def on_receipt(self, receipt: TransactionReceipt, transaction: Transaction) -> int:
        """Forward every detected event to the handler. Returns how many were forwarded."""
        events = extract_events(receipt, transaction)
        for event, context in events:
            await self._dispatch(event, context)
        if events:
            log.debug("receipt %s in block %s produced %d events", receipt.receipt_id, receipt.block_height, len(events))
        return len(events)

    async def _dispatch(self, event: FtEvent, context: EventContext) -> None:
        if isinstance(event, MintEvent):
            await self.handler.handle_mint(event, context)
        elif isinstance(event, TransferEvent):
            await self.handler.handle_transfer(event, context)
        elif isinstance(event, BurnEvent):
            await self.handler.handle_burn(event, context)
        else:
            raise TypeError(f"unsupported event type {type(event).__name__}")
