import pytest

from common.streams import MemoryStreamSink


@pytest.mark.asyncio
async def test_append_keeps_order_and_ids_grow():
    s = MemoryStreamSink()
    ids = [await s.append("ft_transfer", {"event": str(i)}, max_len=100) for i in range(3)]
    assert len(set(ids)) == 3
    assert [e.fields["event"] for e in s.entries("ft_transfer")] == ["0", "1", "2"]
    assert await s.length("ft_transfer") == 3
    assert await s.length("ft_mint") == 0


@pytest.mark.asyncio
async def test_approximate_trim_bound_immediate():
    s = MemoryStreamSink(node_size=10)
    for i in range(500):
        await s.append("ft_transfer", {"event": str(i)}, max_len=25)
        assert await s.length("ft_transfer") <= 25 + s.node_size - 1
    entries = s.entries("ft_transfer")
    # oldest entries are dropped first, the newest is always kept
    assert entries[-1].fields["event"] == "499"
    values = [int(e.fields["event"]) for e in entries]
    assert values == sorted(values)


@pytest.mark.asyncio
async def test_batch_trims_once_and_respects_bound():
    s = MemoryStreamSink(node_size=10)
    for start in range(0, 300, 40):
        await s.append_batch("ft_mint", [{"event": str(i)} for i in range(start, start + 40)], max_len=50)
        assert await s.length("ft_mint") <= 50 + s.node_size - 1
    values = [int(e.fields["event"]) for e in s.entries("ft_mint")]
    assert values[-1] == 319
    assert values == list(range(values[0], 320))

