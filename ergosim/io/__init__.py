"""Data sinks for exported snapshots."""

from .sinks import DataSink, InMemorySink, JSONLinesSink, SinkRegistry

__all__ = [
    "DataSink",
    "InMemorySink",
    "JSONLinesSink",
    "SinkRegistry",
]
