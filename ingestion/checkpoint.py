import json
import os
from typing import Callable, Optional

class CheckpointError(Exception):
    pass

class Checkpoint:
    """
    Height of the last block whose events were fully flushed to the streams.
    Stored as {"last_block": <height>} and replaced atomically on every update.
    """

    def __init__(self, path: str):
        self.path = path

    def _read(self) -> dict:
        try:
            with open(self.path, "r") as f:
                data = json.load(f)
        except FileNotFoundError:
            return {}
        except (OSError, json.JSONDecodeError) as e:
            raise CheckpointError(f"Failed to read checkpoint {self.path}: {e}")
        if not isinstance(data, dict):
            raise CheckpointError(f"Checkpoint {self.path} does not hold a JSON object")
        return data

    def get_last(self) -> Optional[int]:
        """Return the last flushed block height, or None before the first block."""
        last = self._read().get("last_block")
        if last is None:
            return None
        if isinstance(last, bool) or not isinstance(last, int) or last < 0:
            raise CheckpointError(f"Checkpoint {self.path} holds an invalid height: {last!r}")
        return last

    def next_height(self, fallback: Callable[[], int]) -> int:
        """Height to resume from; fallback is only called when nothing was flushed yet."""
        last = self.get_last()
        return fallback() if last is None else last + 1

    def update(self, block_height: int):
        tmp = self.path + ".tmp"
        try:
            with open(tmp, "w") as f:
                json.dump({"last_block": int(block_height)}, f)
            os.replace(tmp, self.path)
        except OSError as e:
            raise CheckpointError(f"Failed to write checkpoint {self.path}: {e}")
