# etl/actions.py
from typing import List

from etl.events import TransferEvent
from ingestion.models import TransactionReceipt

TRANSFER_ACTION = "Transfer"
FUNCTION_CALL_ACTION = "FunctionCall"

# function calls must attach strictly more than this (in yoctoNEAR) to count
FUNCTION_CALL_MIN_DEPOSIT = 1


def scan_native_transfers(receipt: TransactionReceipt) -> List[TransferEvent]:
    """
    Native NEAR moved by a receipt's actions. These never produce a log line,
    so they are read from Transfer and FunctionCall deposits directly.
    """
    if not receipt.is_action or not receipt.signer_id:
        return []
    out: List[TransferEvent] = []
    for action in receipt.actions:
        if action.kind == TRANSFER_ACTION:
            if action.deposit <= 0:
                continue
        elif action.kind == FUNCTION_CALL_ACTION:
            if action.deposit <= FUNCTION_CALL_MIN_DEPOSIT:
                continue
        else:
            continue
        out.append(TransferEvent(
            old_owner_id=receipt.signer_id,
            new_owner_id=receipt.receiver_id,
            amount=action.deposit,
            memo=None,
        ))
    return out
