# streaming/cli.py
import argparse
import asyncio
import logging
import sys

from common.logging_setup import setup_logging
from common.settings import load_settings
from common.streams import SinkError
from common.utils import parse_block_height
from ingestion.checkpoint import Checkpoint, CheckpointError
from ingestion.fetcher import ReaderError, fetch_block, fetch_last_final_height
from ingestion.reader import ChainReader
from streaming.emitter import StreamEmitter
from streaming.indexer import build_sink, resolve_range, run_indexer

log = logging.getLogger("ft_indexer")


async def _run(args) -> int:
    settings = load_settings(args.config)
    timeout = settings.neardata.timeout
    url = settings.neardata.url

    def fetch(height):
        return fetch_block(height, timeout=timeout, url=url)

    def head():
        return fetch_last_final_height(timeout=timeout, url=url)

    checkpoint = Checkpoint(settings.checkpoint.file)
    start, end = resolve_range(settings, checkpoint, head, args.start, args.end)
    reader = ChainReader(
        fetch,
        prefetch_blocks=settings.indexer.prefetch_blocks,
        lookback_blocks=settings.indexer.lookback_blocks,
        head_fn=head,
    )
    sink = build_sink(settings, dry_run=args.dry_run)
    emitter = StreamEmitter(sink, settings.redis.max_stream_size, settings.indexer.emission_mode)

    log.info("starting at block %s (end %s, mode %s)", start, end if end is not None else "none", emitter.mode)
    try:
        stats = await run_indexer(reader, emitter, start, end, checkpoint=None if args.dry_run else checkpoint)
    finally:
        await sink.close()
    return stats.events


def main():
    p = argparse.ArgumentParser(description="Stream NEAR fungible token events into bounded Redis streams")
    p.add_argument("start", nargs="?", type=parse_block_height, default=None,
                   help="First block height, e.g. 129_190_044")
    p.add_argument("end", nargs="?", type=parse_block_height, default=None,
                   help="Last block height (inclusive)")
    p.add_argument("--config", default="config.yaml", help="Path to config.yaml")
    p.add_argument("--dry-run", action="store_true",
                   help="Write to in-memory streams and leave the checkpoint alone")
    p.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    p.add_argument("--debug-fetch", action="store_true", help="Log block fetch timings")
    args = p.parse_args()
    if args.start is not None and args.end is None:
        p.error("an end block is required when a start block is given")

    setup_logging(
        getattr(logging, args.log_level),
        {"ingestion.reader": logging.DEBUG} if args.debug_fetch else None,
    )
    try:
        total = asyncio.run(_run(args))
    except (SinkError, ReaderError, CheckpointError, RuntimeError, ValueError) as e:
        log.error("indexer run failed: %s", e)
        sys.exit(1)
    except KeyboardInterrupt:
        log.info("interrupted")
        sys.exit(130)
    print(f"Emitted {total} events")


if __name__ == "__main__":
    main()
