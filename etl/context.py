# etl/context.py
from typing import Optional

from etl.events import EventContext
from ingestion.models import Transaction, TransactionReceipt


def build_event_context(
    receipt: TransactionReceipt,
    transaction: Transaction,
    contract_id: Optional[str] = None,
) -> EventContext:
    """
    Provenance shared by every event of one receipt. The contract defaults to
    the receipt receiver; native NEAR transfers pass NATIVE_TOKEN_ID instead.
    """
    return EventContext(
        transaction_id=transaction.hash,
        receipt_id=receipt.receipt_id,
        block_height=receipt.block_height,
        block_timestamp_nanosec=receipt.block_timestamp_nanosec,
        predecessor_id=receipt.predecessor_id,
        contract_id=contract_id or receipt.receiver_id,
    )
