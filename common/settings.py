import os
from typing import Literal, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, field_validator, model_validator, ValidationError

DEFAULT_NEARDATA_URL = "https://mainnet.neardata.xyz"


class Redis(BaseModel):
    url: str
    max_stream_size: int = 10_000

    @field_validator("url")
    @classmethod
    def must_be_redis(cls, v: str) -> str:
        if "${" in v:
            raise ValueError(f"unresolved placeholder in Redis URL {v!r}; set $REDIS_URL")
        if not v.startswith(("redis://", "rediss://", "unix://")):
            raise ValueError("Redis URL must use redis://, rediss:// or unix://")
        return v

    @field_validator("max_stream_size")
    @classmethod
    def must_be_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("max_stream_size must be a positive integer")
        return v


class Indexer(BaseModel):
    start_block: Optional[int] = None
    end_block: Optional[int] = None
    prefetch_blocks: int = 100
    lookback_blocks: int = 100
    emission_mode: Literal["buffered", "immediate"] = "buffered"

    @model_validator(mode="after")
    def check_range(self) -> "Indexer":
        if self.prefetch_blocks < 0 or self.lookback_blocks < 0:
            raise ValueError("prefetch_blocks and lookback_blocks must not be negative")
        if self.start_block is not None and self.end_block is not None and self.end_block < self.start_block:
            raise ValueError("end_block must be greater than or equal to start_block")
        return self


class Neardata(BaseModel):
    url: str = DEFAULT_NEARDATA_URL
    timeout: float = 30.0


class CheckpointCfg(BaseModel):
    file: str = "checkpoint.json"


class Settings(BaseModel):
    redis: Redis
    indexer: Indexer = Indexer()
    neardata: Neardata = Neardata()
    checkpoint: CheckpointCfg = CheckpointCfg()


def load_settings(path: str = "config.yaml") -> Settings:
    import yaml

    load_dotenv()
    cfg = {}
    if os.path.exists(path):
        with open(path, "r") as f:
            cfg = yaml.safe_load(f) or {}

    # allow secure override via env at runtime
    env_redis = os.environ.get("REDIS_URL")
    if env_redis:
        cfg.setdefault("redis", {})["url"] = env_redis

    try:
        return Settings.model_validate(cfg)
    except ValidationError as e:
        raise RuntimeError(f"Configuration error in {path}: {e}") from e
