# common/streams/__init__.py
from .memory import MemoryStreamSink, SinkError, StreamEntry, StreamSink
from .redis_backend import RedisStreamSink

__all__ = ["MemoryStreamSink", "RedisStreamSink", "SinkError", "StreamEntry", "StreamSink"]
