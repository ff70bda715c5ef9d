"""
Data sinks receiving exported snapshots.

A sink acknowledges a snapshot by returning normally from :meth:`DataSink.write`
and signals a failed write by raising :class:`~ergosim.core.errors.ExportError`.
The driver resets its accumulators only after an acknowledged write.
"""

from __future__ import annotations

import json
import os
from abc import ABC, abstractmethod
from collections.abc import Callable
from pathlib import Path

from ergosim.core.errors import ExportError
from ergosim.core.snapshot import Snapshot
from ergosim.utils.logging_config import get_logger

logger = get_logger(__name__)

MEMORY_SCHEME = "memory://"
FILE_SCHEME = "file://"


class DataSink(ABC):
    """Abstract base class for snapshot sinks."""

    def __str__(self) -> str:
        """String representation of the sink."""
        return self.describe()

    @abstractmethod
    def write(self, snapshot: Snapshot) -> None:
        """
        Persist one snapshot.

        :param snapshot: Export unit of a finished segment
        :type snapshot: Snapshot
        :raises ExportError: If the sink did not acknowledge the snapshot
        """

    def describe(self) -> str:
        """Human-readable location of the sink, used in log messages."""
        return self.__class__.__name__

    def close(self) -> None:  # noqa: B027
        """Release resources held by the sink. No-op by default."""


class JSONLinesSink(DataSink):
    """
    Append export documents to a JSON-lines file.

    The address is a directory and the namespace the file stem. Every writer
    needs a file of its own, since a failed write truncates the file back to
    where that write started.

    :param address: Directory holding the output file
    :type address: str | Path
    :param namespace: File stem, ``<namespace>.jsonl`` is written
    :type namespace: str
    """

    def __init__(self, address: str | Path, namespace: str):
        address = str(address)
        if address.startswith(FILE_SCHEME):
            address = address[len(FILE_SCHEME):]
        self.path = Path(address) / f"{namespace}.jsonl"

    def describe(self) -> str:
        return f"JSONLinesSink({self.path})"

    def write(self, snapshot: Snapshot) -> None:
        """
        Append one line and fsync it before acknowledging.

        A failed write truncates the file back to its previous length, so an
        unacknowledged snapshot is never left behind next to its retry.

        :raises ExportError: If the line could not be written and synced
        """
        data = (json.dumps(snapshot.to_document(), separators=(",", ":")) + "\n").encode("utf-8")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("ab", buffering=0) as f:
                offset = f.tell()
                try:
                    view = memoryview(data)
                    while view:
                        view = view[f.write(view):]
                    os.fsync(f.fileno())
                except OSError:
                    f.truncate(offset)
                    raise
        except OSError as e:
            raise ExportError(f"Failed to write snapshot to {self.path}: {e}") from e


class InMemorySink(DataSink):
    """
    Keep snapshots in a list.

    Useful for tests and for embedding a simulation in another program.

    :param fail_next: Number of upcoming writes that raise ExportError
    :type fail_next: int
    """

    def __init__(self, namespace: str = "default", fail_next: int = 0):
        self.namespace = namespace
        self.snapshots: list[Snapshot] = []
        self.fail_next = fail_next
        self.failed_writes = 0

    def describe(self) -> str:
        return f"InMemorySink({self.namespace})"

    def write(self, snapshot: Snapshot) -> None:
        if self.fail_next > 0:
            self.fail_next -= 1
            self.failed_writes += 1
            raise ExportError(f"{self.describe()} rejected the snapshot")
        self.snapshots.append(snapshot)


SinkFactory = Callable[[str, str], DataSink]


class SinkRegistry:
    """Registry resolving sink addresses to sink implementations."""

    def __init__(self) -> None:
        self._factories: dict[str, SinkFactory] = {
            MEMORY_SCHEME: lambda address, namespace: InMemorySink(namespace),
            FILE_SCHEME: JSONLinesSink,
        }

    def register_sink(self, scheme: str, factory: SinkFactory) -> None:
        """Register a factory for addresses starting with ``scheme``."""
        self._factories[scheme] = factory

    def create_sink(self, address: str, namespace: str) -> DataSink:
        """
        Build the sink for an address.

        Addresses without a registered scheme are treated as directories.

        :param address: Sink address, e.g. ``memory://`` or ``/data/results``
        :type address: str
        :param namespace: Collection equivalent inside the sink
        :type namespace: str
        :return: A ready-to-use sink
        :rtype: DataSink
        :raises ValueError: If the address uses an unknown ``scheme://``
        """
        for scheme, factory in self._factories.items():
            if address.startswith(scheme):
                sink = factory(address, namespace)
                logger.debug("Resolved sink address %s to %s", address, sink.describe())
                return sink

        if "://" in address:
            raise ValueError(f"Unknown sink scheme in address: {address}")
        return JSONLinesSink(address, namespace)

    @property
    def supported_schemes(self) -> list[str]:
        """Get list of registered address schemes."""
        return list(self._factories.keys())
