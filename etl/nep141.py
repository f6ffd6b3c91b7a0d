# etl/nep141.py
"""
Decoder for NEP-141 fungible token events logged in the NEP-297 envelope:

    EVENT_JSON:{"standard":"nep141","version":"1.0.0","event":"ft_transfer","data":[{...}]}

A log that does not decode or validate simply is not an event of that kind.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Type

from pydantic import BaseModel, ValidationError

from etl.events import BurnEvent, FtEvent, MintEvent, TransferEvent, is_valid_account_id, parse_amount

log = logging.getLogger(__name__)

EVENT_JSON_PREFIX = "EVENT_JSON:"
STANDARD = "nep141"
VERSION = "1.0.0"

FT_MINT = "ft_mint"
FT_TRANSFER = "ft_transfer"
FT_BURN = "ft_burn"


def _account(v: str) -> str:
    if not is_valid_account_id(v):
        raise ValueError(f"invalid account id {v!r}")
    return v


def _amount(v: str) -> int:
    amount = parse_amount(v)
    if amount is None:
        raise ValueError(f"invalid amount {v!r}")
    return amount


class EventLogData(BaseModel):
    standard: str
    version: str
    event: str
    data: List[Dict[str, Any]]

    def validate_kind(self, kind: str) -> bool:
        return self.standard == STANDARD and self.version == VERSION and self.event == kind


class _FtMintData(BaseModel):
    owner_id: str
    amount: str
    memo: Optional[str] = None

    def to_event(self) -> MintEvent:
        return MintEvent(owner_id=_account(self.owner_id), amount=_amount(self.amount), memo=self.memo)


class _FtTransferData(BaseModel):
    old_owner_id: str
    new_owner_id: str
    amount: str
    memo: Optional[str] = None

    def to_event(self) -> TransferEvent:
        return TransferEvent(
            old_owner_id=_account(self.old_owner_id),
            new_owner_id=_account(self.new_owner_id),
            amount=_amount(self.amount),
            memo=self.memo,
        )


class _FtBurnData(BaseModel):
    owner_id: str
    amount: str
    memo: Optional[str] = None

    def to_event(self) -> BurnEvent:
        return BurnEvent(owner_id=_account(self.owner_id), amount=_amount(self.amount), memo=self.memo)


_DATA_MODELS: Dict[str, Type[BaseModel]] = {
    FT_MINT: _FtMintData,
    FT_TRANSFER: _FtTransferData,
    FT_BURN: _FtBurnData,
}


def parse_event_log(line: str) -> Optional[EventLogData]:
    if not isinstance(line, str) or not line.startswith(EVENT_JSON_PREFIX):
        return None
    try:
        return EventLogData.model_validate_json(line[len(EVENT_JSON_PREFIX):])
    except ValidationError:
        return None


def decode_standard_events(line: str, kind: str) -> List[FtEvent]:
    """
    Return every event of the given kind carried by one log line, or an
    empty list. An invalid entry anywhere in data rejects the whole line.
    """
    if kind not in _DATA_MODELS:
        raise ValueError(f"unknown NEP-141 event kind: {kind!r}")
    # cheap pre filter, most logs have nothing to do with NEP-141
    if STANDARD not in line:
        return []
    envelope = parse_event_log(line)
    if envelope is None or not envelope.validate_kind(kind):
        return []
    model = _DATA_MODELS[kind]
    try:
        events = [model.model_validate(entry).to_event() for entry in envelope.data]
    except (ValidationError, ValueError):
        return []
    log.debug("%s log: %s", kind, envelope)
    return events
