"""Result sinks for normalized records."""

from .base import RecordSink, encode_record
from .buffered import BufferedJsonSink
from .streaming import AsyncWriter, StreamingJsonSink

__all__ = [
    "RecordSink",
    "encode_record",
    "BufferedJsonSink",
    "StreamingJsonSink",
    "AsyncWriter",
]
