import asyncio
import json

import pytest

from common.settings import Settings
from common.streams import MemoryStreamSink, SinkError
from ingestion.checkpoint import Checkpoint
from ingestion.reader import ChainReader
from streaming.emitter import MINT_STREAM, TRANSFER_STREAM, StreamEmitter
from streaming.indexer import resolve_range, run_indexer


def nep141(event, data):
    return "EVENT_JSON:" + json.dumps({"standard": "nep141", "version": "1.0.0", "event": event, "data": data})


def outcome(receipt_id, logs=(), actions=(), status=None, receiver="token.near"):
    return {
        "execution_outcome": {
            "id": receipt_id,
            "outcome": {"logs": list(logs), "receipt_ids": [], "status": status or {"SuccessValue": ""}},
        },
        "receipt": {
            "predecessor_id": "alice.near",
            "receiver_id": receiver,
            "receipt_id": receipt_id,
            "receipt": {"Action": {"signer_id": "alice.near", "actions": list(actions)}},
        },
    }


def fake_block(height):
    rid = f"R{height}"
    txs = [{
        "transaction": {"hash": f"T{height}", "signer_id": "alice.near", "receiver_id": "token.near"},
        "outcome": {"execution_outcome": {"id": f"T{height}", "outcome": {"receipt_ids": [rid]}}},
    }]
    logs = [
        f"Transfer {height} from alice.near to bob.near",
        nep141("ft_mint", [{"owner_id": "alice.near", "amount": str(height)}]),
    ]
    return {
        "block": {"header": {"height": height, "timestamp_nanosec": str(height * 1_000_000_000)}},
        "shards": [{"shard_id": 0, "chunk": {"transactions": txs}, "receipt_execution_outcomes": [outcome(rid, logs)]}],
    }


def settings(**indexer):
    return Settings.model_validate({"redis": {"url": "redis://localhost:6379/0"}, "indexer": indexer})


class FailingSink(MemoryStreamSink):
    async def append(self, stream, fields, max_len):
        raise SinkError("connection refused")

    async def append_batch(self, stream, entries, max_len):
        raise SinkError("connection refused")


@pytest.mark.asyncio
async def test_run_emits_in_block_order_and_checkpoints(tmp_path):
    sink = MemoryStreamSink()
    emitter = StreamEmitter(sink, max_stream_size=1000)
    cp = Checkpoint(str(tmp_path / "ckpt.json"))
    reader = ChainReader(fake_block, prefetch_blocks=4)

    stats = await asyncio.wait_for(run_indexer(reader, emitter, 100, 109, checkpoint=cp), timeout=2.0)

    assert (stats.blocks, stats.receipts, stats.events, stats.last_block) == (10, 10, 20, 109)
    transfers = [json.loads(e.fields["event"]) for e in sink.entries(TRANSFER_STREAM)]
    assert [t["block_height"] for t in transfers] == list(range(100, 110))
    assert [t["amount"] for t in transfers] == [str(h) for h in range(100, 110)]
    assert len(sink.entries(MINT_STREAM)) == 10
    assert emitter.pending() == 0
    assert cp.get_last() == 109


@pytest.mark.asyncio
async def test_failed_receipts_emit_nothing():
    def failed_block(h):
        raw = fake_block(h)
        raw["shards"][0]["receipt_execution_outcomes"][0]["execution_outcome"]["outcome"]["status"] = {"Failure": {}}
        return raw

    sink = MemoryStreamSink()
    stats = await run_indexer(ChainReader(failed_block), StreamEmitter(sink), 1, 3)
    assert stats.events == 0
    assert sink.entries(TRANSFER_STREAM) == []


@pytest.mark.asyncio
async def test_sink_failure_ends_run_without_checkpoint(tmp_path):
    sink = FailingSink()
    cp = Checkpoint(str(tmp_path / "ckpt.json"))
    with pytest.raises(SinkError):
        await run_indexer(ChainReader(fake_block), StreamEmitter(sink), 5, 6, checkpoint=cp)
    assert cp.get_last() is None


def test_resolve_range(tmp_path):
    cp = Checkpoint(str(tmp_path / "ckpt.json"))
    head = lambda: 5000

    assert resolve_range(settings(), cp, head, 10, 20) == (10, 20)
    assert resolve_range(settings(start_block=7, end_block=9), cp, head) == (7, 9)
    assert resolve_range(settings(), cp, head) == (5000, None)
    cp.update(41)
    assert resolve_range(settings(), cp, head) == (42, None)
    with pytest.raises(ValueError):
        resolve_range(settings(), cp, head, 30, 20)


def split_blocks(h):
    # transaction T1 lands in block 100, its receipt R1 executes in block 101
    if h == 100:
        txs = [{
            "transaction": {"hash": "T1", "signer_id": "alice.near", "receiver_id": "token.near"},
            "outcome": {"execution_outcome": {"id": "T1", "outcome": {"receipt_ids": ["R1"]}}},
        }]
        outcomes = []
    elif h == 101:
        txs = []
        outcomes = [outcome("R1", ["Transfer 7 from alice.near to bob.near"])]
    else:
        return None
    return {
        "block": {"header": {"height": h, "timestamp_nanosec": str(h * 1_000_000_000)}},
        "shards": [{"shard_id": 0, "chunk": {"transactions": txs}, "receipt_execution_outcomes": outcomes}],
    }


@pytest.mark.asyncio
async def test_resume_pairs_receipt_with_transaction_from_checkpointed_block(tmp_path):
    cp = Checkpoint(str(tmp_path / "ckpt.json"))
    cp.update(100)
    cfg = settings(lookback_blocks=5)
    start, end = resolve_range(cfg, cp, lambda: 5000, end=101)
    assert (start, end) == (101, 101)

    sink = MemoryStreamSink()
    reader = ChainReader(split_blocks, lookback_blocks=cfg.indexer.lookback_blocks)
    stats = await asyncio.wait_for(run_indexer(reader, StreamEmitter(sink), start, end, checkpoint=cp), timeout=2.0)

    assert (stats.blocks, stats.events) == (1, 1)
    transfer = json.loads(sink.entries(TRANSFER_STREAM)[0].fields["event"])
    assert (transfer["transaction_id"], transfer["receipt_id"], transfer["amount"]) == ("T1", "R1", "7")
    assert transfer["block_height"] == 101
    assert cp.get_last() == 101


@pytest.mark.asyncio
async def test_resume_without_lookback_cannot_pair_earlier_transaction():
    sink = MemoryStreamSink()
    stats = await run_indexer(ChainReader(split_blocks), StreamEmitter(sink), 101, 101)
    assert (stats.blocks, stats.events) == (1, 0)
