import pytest

from ingestion.models import Action, Block, TransactionReceipt


def raw_outcome(receipt_id, status, logs=(), children=(), actions=None, signer="alice.near"):
    body = {"Data": {"data_id": "D", "data": None}}
    if actions is not None:
        body = {"Action": {"signer_id": signer, "signer_public_key": "ed25519:x", "gas_price": "1", "actions": actions}}
    return {
        "execution_outcome": {
            "id": receipt_id,
            "outcome": {"logs": list(logs), "receipt_ids": list(children), "executor_id": "bob.near", "status": status},
        },
        "receipt": {"predecessor_id": "alice.near", "receiver_id": "bob.near", "receipt_id": receipt_id, "receipt": body},
    }


def test_action_views():
    assert Action.model_validate("CreateAccount").kind == "CreateAccount"
    t = Action.model_validate({"Transfer": {"deposit": "1000000000000000000000000"}})
    assert (t.kind, t.deposit) == ("Transfer", 10**24)
    fc = Action.model_validate({"FunctionCall": {"method_name": "ft_transfer", "args": "", "gas": 1, "deposit": "1"}})
    assert (fc.kind, fc.deposit, fc.method_name) == ("FunctionCall", 1, "ft_transfer")


@pytest.mark.parametrize("status,ok", [
    ({"SuccessValue": ""}, True),
    ({"SuccessReceiptId": "X"}, True),
    ({"Failure": {"ActionError": {}}}, False),
    ("Unknown", False),
])
def test_receipt_success_flag(status, ok):
    r = TransactionReceipt.from_neardata(raw_outcome("R", status, actions=[]), 1, 2)
    assert r.is_successful() is ok


def test_data_receipt_has_no_signer():
    r = TransactionReceipt.from_neardata(raw_outcome("R", {"SuccessValue": ""}), 1, 2)
    assert r.is_action is False
    assert r.signer_id is None
    assert r.actions == []


def test_block_from_neardata():
    raw = {
        "block": {"header": {"height": 10, "timestamp": 5, "timestamp_nanosec": "1727000000123456789"}},
        "shards": [
            {
                "shard_id": 0,
                "chunk": {"transactions": [{
                    "transaction": {"hash": "T1", "signer_id": "alice.near", "receiver_id": "bob.near", "actions": []},
                    "outcome": {"execution_outcome": {"id": "T1", "outcome": {"receipt_ids": ["R1"]}}, "receipt": None},
                }]},
                "receipt_execution_outcomes": [
                    raw_outcome("R1", {"SuccessValue": ""}, logs=["hi"], children=["R2"], actions=[{"Transfer": {"deposit": "3"}}]),
                ],
            },
            {"shard_id": 1, "chunk": None, "receipt_execution_outcomes": []},
        ],
    }
    block = Block.from_neardata(raw)
    assert block.height == 10
    assert block.timestamp_nanosec == 1727000000123456789
    assert [t.hash for t in block.transactions] == ["T1"]
    assert block.transactions[0].receipt_ids == ["R1"]
    r = block.receipts[0]
    assert (r.receipt_id, r.signer_id, r.logs, r.receipt_ids) == ("R1", "alice.near", ["hi"], ["R2"])
    assert r.block_height == 10
    assert r.actions[0].deposit == 3


def test_block_without_header_is_rejected():
    with pytest.raises(ValueError):
        Block.from_neardata({"shards": []})
