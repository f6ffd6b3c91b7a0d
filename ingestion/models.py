# ingestion/models.py
"""
ingestion.models
Typed views over the neardata block JSON that the extractor needs:
transactions, receipts with their execution outcome, and receipt actions.
"""
from __future__ import annotations

from typing import Any, List, Optional

from pydantic import BaseModel, model_validator

_SUCCESS_STATUSES = ("SuccessValue", "SuccessReceiptId")


class Action(BaseModel):
    """
    One receipt action. The view is either a bare name ("CreateAccount")
    or a single key object ({"Transfer": {"deposit": "1"}}).
    """
    kind: str
    deposit: int = 0
    method_name: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def from_view(cls, raw: Any) -> Any:
        if isinstance(raw, str):
            return {"kind": raw}
        if isinstance(raw, dict) and "kind" not in raw and len(raw) == 1:
            (kind, body), = raw.items()
            body = body if isinstance(body, dict) else {}
            return {
                "kind": kind,
                "deposit": body.get("deposit") or 0,
                "method_name": body.get("method_name"),
            }
        return raw


class Transaction(BaseModel):
    hash: str
    signer_id: str
    receiver_id: str
    # receipt produced by converting the transaction
    receipt_ids: List[str] = []

    @classmethod
    def from_neardata(cls, raw: dict) -> "Transaction":
        tx = raw.get("transaction") or {}
        outcome = ((raw.get("outcome") or {}).get("execution_outcome") or {}).get("outcome") or {}
        return cls(
            hash=tx.get("hash"),
            signer_id=tx.get("signer_id"),
            receiver_id=tx.get("receiver_id"),
            receipt_ids=outcome.get("receipt_ids") or [],
        )


class TransactionReceipt(BaseModel):
    receipt_id: str
    predecessor_id: str
    receiver_id: str
    # only action receipts carry a signer and actions
    signer_id: Optional[str] = None
    actions: List[Action] = []
    is_action: bool = False
    logs: List[str] = []
    receipt_ids: List[str] = []
    successful: bool = False
    block_height: int
    block_timestamp_nanosec: int

    def is_successful(self) -> bool:
        return self.successful

    @classmethod
    def from_neardata(cls, raw: dict, block_height: int, block_timestamp_nanosec: int) -> "TransactionReceipt":
        receipt = raw.get("receipt") or {}
        outcome = ((raw.get("execution_outcome") or {}).get("outcome")) or {}
        body = receipt.get("receipt") or {}
        action = body.get("Action") if isinstance(body, dict) else None
        status = outcome.get("status")
        return cls(
            receipt_id=receipt.get("receipt_id"),
            predecessor_id=receipt.get("predecessor_id"),
            receiver_id=receipt.get("receiver_id"),
            signer_id=action.get("signer_id") if action else None,
            actions=(action.get("actions") or []) if action else [],
            is_action=action is not None,
            logs=outcome.get("logs") or [],
            receipt_ids=outcome.get("receipt_ids") or [],
            successful=isinstance(status, dict) and any(k in status for k in _SUCCESS_STATUSES),
            block_height=block_height,
            block_timestamp_nanosec=block_timestamp_nanosec,
        )


class Block(BaseModel):
    height: int
    timestamp_nanosec: int
    transactions: List[Transaction] = []
    receipts: List[TransactionReceipt] = []

    @classmethod
    def from_neardata(cls, raw: dict) -> "Block":
        header = (raw.get("block") or {}).get("header") or {}
        height = header.get("height")
        ts = header.get("timestamp_nanosec") or header.get("timestamp")
        if height is None or ts is None:
            raise ValueError("block header is missing height or timestamp")
        height, ts = int(height), int(ts)
        txs: List[Transaction] = []
        receipts: List[TransactionReceipt] = []
        for shard in raw.get("shards") or []:
            chunk = shard.get("chunk") or {}
            for tx in chunk.get("transactions") or []:
                txs.append(Transaction.from_neardata(tx))
            for ro in shard.get("receipt_execution_outcomes") or []:
                receipts.append(TransactionReceipt.from_neardata(ro, height, ts))
        return cls(height=height, timestamp_nanosec=ts, transactions=txs, receipts=receipts)
