"""
Export snapshots and their transport-agnostic document schema.

A snapshot is produced exactly once per export event and covers a disjoint
segment of samples. Its document form is what every data sink receives::

    {
        "node_id": "worker-17",
        "segment_start": "2024-01-01T10:00:00+00:00",
        "segment_end": "2024-01-01T10:05:00+00:00",
        "measures": [
            {"name": "Mean X", "count": 1200, "mean": 0.49, "m2": 99.8},
            ...
        ]
    }

The position of a measure in ``measures`` is its handle in the producing run.
"""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from ergosim.core.errors import SnapshotFormatError

DOCUMENT_KEYS: tuple[str, ...] = ("node_id", "segment_start", "segment_end", "measures")
MEASURE_KEYS: tuple[str, ...] = ("name", "count", "mean", "m2")


@dataclass(frozen=True)
class MeasureSnapshot:
    """Frozen accumulator state of one measure."""

    name: str
    count: int
    mean: float
    m2: float

    def to_document(self) -> dict[str, Any]:
        return {"name": self.name, "count": self.count, "mean": self.mean, "m2": self.m2}


@dataclass(frozen=True)
class Snapshot:
    """
    Immutable export unit of one node-local segment.

    :ivar node_id: Identifier of the producing node or worker
    :vartype node_id: str
    :ivar segment_start: Start of the segment (run start or previous reset)
    :vartype segment_start: datetime
    :ivar segment_end: Time the segment was cut
    :vartype segment_end: datetime
    :ivar measures: Accumulator states in handle order
    :vartype measures: tuple[MeasureSnapshot, ...]
    """

    node_id: str
    segment_start: datetime
    segment_end: datetime
    measures: tuple[MeasureSnapshot, ...]

    @property
    def registry_mapping(self) -> dict[str, int]:
        """``name -> handle`` mapping of the producing run."""
        return {measure.name: handle for handle, measure in enumerate(self.measures)}

    @property
    def sample_count(self) -> int:
        """Largest per-measure count in the segment."""
        return max((measure.count for measure in self.measures), default=0)

    def measure(self, name: str) -> MeasureSnapshot | None:
        for measure in self.measures:
            if measure.name == name:
                return measure
        return None

    def to_document(self) -> dict[str, Any]:
        """
        Convert to the export document schema.

        Timestamps are ISO-8601 strings, floats are kept as floats so a JSON
        round trip is lossless.

        :return: Plain dictionary ready for any sink
        :rtype: dict[str, Any]
        """
        return {
            "node_id": self.node_id,
            "segment_start": self.segment_start.isoformat(),
            "segment_end": self.segment_end.isoformat(),
            "measures": [measure.to_document() for measure in self.measures],
        }

    @classmethod
    def from_document(cls, document: Mapping[str, Any]) -> Snapshot:
        """
        Parse and validate an export document.

        :param document: Mapping following the export schema
        :type document: Mapping[str, Any]
        :return: The equivalent snapshot
        :rtype: Snapshot
        :raises SnapshotFormatError: If a key is missing or a value is malformed
        """
        missing = [key for key in DOCUMENT_KEYS if key not in document]
        if missing:
            raise SnapshotFormatError(f"Export document is missing keys: {missing}")

        node_id = document["node_id"]
        if not isinstance(node_id, str):
            raise SnapshotFormatError(f"node_id must be a string, got {node_id!r}")

        raw_measures = document["measures"]
        if not isinstance(raw_measures, (list, tuple)):
            raise SnapshotFormatError("measures must be a list")

        measures = tuple(_parse_measure(raw) for raw in raw_measures)
        names = [measure.name for measure in measures]
        if len(set(names)) != len(names):
            raise SnapshotFormatError(f"Duplicate measure names in document: {names}")

        return cls(
            node_id=node_id,
            segment_start=_parse_timestamp(document["segment_start"]),
            segment_end=_parse_timestamp(document["segment_end"]),
            measures=measures,
        )


def _parse_timestamp(value: Any) -> datetime:
    if isinstance(value, datetime):
        timestamp = value
    elif isinstance(value, str):
        try:
            timestamp = datetime.fromisoformat(value)
        except ValueError as e:
            raise SnapshotFormatError(f"Invalid timestamp {value!r}") from e
    else:
        raise SnapshotFormatError(f"Invalid timestamp {value!r}")

    # BSON-style sinks hand naive datetimes back, which are UTC by convention
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    return timestamp


def _parse_measure(raw: Any) -> MeasureSnapshot:
    if not isinstance(raw, Mapping):
        raise SnapshotFormatError(f"Measure entry must be a mapping, got {raw!r}")

    missing = [key for key in MEASURE_KEYS if key not in raw]
    if missing:
        raise SnapshotFormatError(f"Measure entry is missing keys: {missing}")

    name, count = raw["name"], raw["count"]
    if not isinstance(name, str):
        raise SnapshotFormatError(f"Measure name must be a string, got {name!r}")
    if isinstance(count, bool) or not isinstance(count, int) or count < 0:
        raise SnapshotFormatError(f"Invalid count {count!r} for measure {name!r}")

    try:
        mean, m2 = float(raw["mean"]), float(raw["m2"])
    except (TypeError, ValueError) as e:
        raise SnapshotFormatError(f"Non-numeric statistics for measure {name!r}") from e
    if not (math.isfinite(mean) and math.isfinite(m2)) or m2 < 0.0:
        raise SnapshotFormatError(
            f"Invalid statistics mean={mean!r} m2={m2!r} for measure {name!r}"
        )

    return MeasureSnapshot(name=name, count=count, mean=mean, m2=m2)
