# ingestion/fetcher.py
from __future__ import annotations

import os
import requests
from typing import Optional

from common.settings import DEFAULT_NEARDATA_URL


class ReaderError(RuntimeError):
    pass


def neardata_url() -> str:
    # read at call time so container env is honored
    return os.environ.get("NEARDATA_URL") or DEFAULT_NEARDATA_URL


def fetch_block(block_height: int, timeout: float = 30.0, url: Optional[str] = None) -> Optional[dict]:
    """
    Return the raw neardata block JSON, or None when no block was produced
    at that height.
    """
    if not isinstance(block_height, int) or block_height < 0:
        raise ValueError("block_height must be a non negative integer")
    u = f"{(url or neardata_url()).rstrip('/')}/v0/block/{block_height}"
    try:
        resp = requests.get(u, timeout=timeout)
        resp.raise_for_status()
        return resp.json()
    except requests.RequestException as e:
        raise ReaderError(f"neardata transport failed for block {block_height} url={u}") from e
    except ValueError as e:
        raise ReaderError(f"neardata returned invalid JSON for block {block_height}") from e


def fetch_last_final_height(timeout: float = 30.0, url: Optional[str] = None) -> int:
    u = f"{(url or neardata_url()).rstrip('/')}/v0/last_block/final"
    try:
        resp = requests.get(u, timeout=timeout)
        resp.raise_for_status()
        return int(resp.json()["block"]["header"]["height"])
    except requests.RequestException as e:
        raise ReaderError(f"neardata transport failed url={u}") from e
    except (ValueError, KeyError, TypeError) as e:
        raise ReaderError("neardata returned an unexpected last block payload") from e


__all__ = [
    "ReaderError",
    "fetch_block",
    "fetch_last_final_height",
]
