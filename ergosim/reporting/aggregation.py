"""
Offline aggregation of exported snapshots.

This module is the consuming side of the export contract: it reads snapshot
documents written by any number of nodes, merges them per measure and
produces cluster-wide estimates with confidence intervals.
"""

import json
from collections.abc import Iterable, Mapping
from pathlib import Path

import pandas as pd

from ergosim.core.errors import SnapshotFormatError
from ergosim.core.merge import AggregateEstimate, aggregate_estimates
from ergosim.core.snapshot import Snapshot
from ergosim.utils.logging_config import get_logger

logger = get_logger(__name__)

ESTIMATE_COLUMNS: list[str] = [
    "count",
    "mean",
    "variance",
    "standard_error",
    "relative_error",
    "ci_lower",
    "ci_upper",
]


def load_snapshots(paths: Iterable[str | Path]) -> list[Snapshot]:
    """
    Read snapshots from JSON-lines files.

    :param paths: Files written by JSONLinesSink (one document per line)
    :type paths: Iterable[str | Path]
    :return: Parsed snapshots in file order
    :rtype: list[Snapshot]
    :raises SnapshotFormatError: If a line is not a valid export document

    Example:
        >>> snapshots = load_snapshots(Path("results").glob("*.jsonl"))
        >>> estimates = aggregate_estimates(snapshots)
    """
    snapshots: list[Snapshot] = []
    for path in paths:
        path = Path(path)
        with path.open(encoding="utf-8") as f:
            for line_number, line in enumerate(f, start=1):
                if not line.strip():
                    continue
                try:
                    snapshots.append(Snapshot.from_document(json.loads(line)))
                except (json.JSONDecodeError, SnapshotFormatError) as e:
                    raise SnapshotFormatError(f"{path}:{line_number}: {e}") from e

    logger.info("Loaded %d snapshots", len(snapshots))
    return snapshots


def aggregate_snapshot_files(paths: Iterable[str | Path]) -> dict[str, AggregateEstimate]:
    """Load every snapshot in ``paths`` and merge them per measure."""
    return aggregate_estimates(load_snapshots(paths))


def estimates_to_frame(
    estimates: Mapping[str, AggregateEstimate], level: float = 0.95
) -> pd.DataFrame:
    """
    Tabulate estimates, one row per measure.

    :param estimates: Output of aggregate_estimates
    :type estimates: Mapping[str, AggregateEstimate]
    :param level: Confidence level of the ``ci_lower``/``ci_upper`` columns
    :type level: float
    :return: Frame indexed by measure name with ESTIMATE_COLUMNS
    :rtype: pd.DataFrame
    """
    rows = []
    for name, estimate in estimates.items():
        ci_lower, ci_upper = estimate.confidence_interval(level)
        rows.append(
            {
                "measure": name,
                "count": estimate.count,
                "mean": estimate.mean,
                "variance": estimate.variance,
                "standard_error": estimate.standard_error,
                "relative_error": estimate.relative_error,
                "ci_lower": ci_lower,
                "ci_upper": ci_upper,
            }
        )

    if not rows:
        logger.warning("No estimates to tabulate")
        return pd.DataFrame(columns=ESTIMATE_COLUMNS, index=pd.Index([], name="measure"))

    return pd.DataFrame(rows).set_index("measure")[ESTIMATE_COLUMNS]


def summarize_nodes(snapshots: Iterable[Snapshot]) -> pd.DataFrame:
    """
    Per-node overview of the exported segments.

    :param snapshots: Snapshots from any number of nodes
    :type snapshots: Iterable[Snapshot]
    :return: Frame indexed by node id with columns ``segments``, ``samples``,
        ``first_segment_start`` and ``last_segment_end``
    :rtype: pd.DataFrame
    """
    records = [
        {
            "node_id": snapshot.node_id,
            "samples": snapshot.sample_count,
            "segment_start": snapshot.segment_start,
            "segment_end": snapshot.segment_end,
        }
        for snapshot in snapshots
    ]
    if not records:
        return pd.DataFrame(
            columns=["segments", "samples", "first_segment_start", "last_segment_end"],
            index=pd.Index([], name="node_id"),
        )

    frame = pd.DataFrame(records)
    return frame.groupby("node_id").agg(
        segments=("samples", "size"),
        samples=("samples", "sum"),
        first_segment_start=("segment_start", "min"),
        last_segment_end=("segment_end", "max"),
    )
