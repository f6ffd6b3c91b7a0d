# etl/legacy.py
from typing import List

from etl.events import TransferEvent, is_valid_account_id, parse_amount

LEGACY_PREFIX = "Transfer "


def classify_legacy_transfer(log: str) -> List[TransferEvent]:
    """
    Match the plain text log older token contracts emit before NEP-297:
        Transfer <amount> from <from> to <to>
    Returns one transfer or nothing.
    """
    if not isinstance(log, str) or not log.startswith(LEGACY_PREFIX):
        return []
    amount_s, sep, owners = log[len(LEGACY_PREFIX):].partition(" from ")
    if not sep:
        return []
    amount = parse_amount(amount_s)
    if amount is None:
        return []
    from_id, sep, to_id = owners.partition(" to ")
    if not sep:
        return []
    if not is_valid_account_id(from_id) or not is_valid_account_id(to_id):
        return []
    return [TransferEvent(old_owner_id=from_id, new_owner_id=to_id, amount=amount, memo=None)]
