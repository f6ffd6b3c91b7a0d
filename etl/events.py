# etl/events.py
"""
Normalized fungible token events and the provenance attached to them.

Every value here is immutable and created once per receipt.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional, Union

# literal token id used for native NEAR movement
NATIVE_TOKEN_ID = "near"

MAX_U128 = 2**128 - 1

_ACCOUNT_RE = re.compile(r"^(([a-z\d]+[\-_])*[a-z\d]+\.)*([a-z\d]+[\-_])*[a-z\d]+$")
_AMOUNT_RE = re.compile(r"^[0-9]+$")


def is_valid_account_id(value) -> bool:
    if not isinstance(value, str):
        return False
    if not 2 <= len(value) <= 64:
        return False
    return _ACCOUNT_RE.match(value) is not None


def parse_amount(value) -> Optional[int]:
    """
    Parse a decimal u128 amount. Returns None instead of raising so callers
    can drop the candidate event.
    """
    if not isinstance(value, str) or not _AMOUNT_RE.match(value):
        return None
    amount = int(value)
    if amount > MAX_U128:
        return None
    return amount


@dataclass(frozen=True)
class EventContext:
    transaction_id: str
    receipt_id: str
    block_height: int
    block_timestamp_nanosec: int
    predecessor_id: str
    contract_id: str


@dataclass(frozen=True)
class MintEvent:
    owner_id: str
    amount: int
    memo: Optional[str] = None


@dataclass(frozen=True)
class TransferEvent:
    old_owner_id: str
    new_owner_id: str
    amount: int
    memo: Optional[str] = None


@dataclass(frozen=True)
class BurnEvent:
    owner_id: str
    amount: int
    memo: Optional[str] = None


FtEvent = Union[MintEvent, TransferEvent, BurnEvent]
