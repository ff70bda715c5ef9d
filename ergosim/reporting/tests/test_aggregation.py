"""
Tests for offline aggregation of exported snapshots.
"""

import json
import math
from datetime import datetime, timezone
from pathlib import Path

import pytest

from ergosim.core.errors import SnapshotFormatError
from ergosim.core.merge import aggregate_estimates
from ergosim.core.snapshot import MeasureSnapshot, Snapshot
from ergosim.io.sinks import JSONLinesSink
from ergosim.reporting.aggregation import (
    ESTIMATE_COLUMNS,
    aggregate_snapshot_files,
    estimates_to_frame,
    load_snapshots,
    summarize_nodes,
)


def _snapshot(node_id: str, minute: int, count: int, mean: float, m2: float) -> Snapshot:
    return Snapshot(
        node_id=node_id,
        segment_start=datetime(2024, 1, 1, 10, minute, tzinfo=timezone.utc),
        segment_end=datetime(2024, 1, 1, 10, minute + 5, tzinfo=timezone.utc),
        measures=(MeasureSnapshot("Mean X", count, mean, m2),),
    )


@pytest.fixture
def snapshots() -> list[Snapshot]:
    # 0.1, 0.3, 0.5 on node a and 0.7, 0.9 on node b
    return [
        _snapshot("a", 0, 3, 0.3, 0.08),
        _snapshot("b", 0, 2, 0.8, 0.02),
    ]


class TestLoadSnapshots:
    """Test load_snapshots function."""

    def test_load_files_written_by_sink(self, tmp_path: Path, snapshots: list[Snapshot]) -> None:
        """Test reading back what JSONLinesSink wrote."""
        for snapshot in snapshots:
            JSONLinesSink(tmp_path, snapshot.node_id).write(snapshot)

        loaded = load_snapshots(sorted(tmp_path.glob("*.jsonl")))

        assert loaded == snapshots

    def test_blank_lines_are_skipped(self, tmp_path: Path, snapshots: list[Snapshot]) -> None:
        """Test tolerance for empty lines."""
        path = tmp_path / "all.jsonl"
        path.write_text(
            "\n".join(["", json.dumps(snapshots[0].to_document()), "  "]), encoding="utf-8"
        )

        assert load_snapshots([path]) == snapshots[:1]

    def test_invalid_line_reports_location(self, tmp_path: Path, snapshots: list[Snapshot]) -> None:
        """Test that the file and line number of a bad document are reported."""
        path = tmp_path / "bad.jsonl"
        path.write_text(
            json.dumps(snapshots[0].to_document()) + "\n{broken\n", encoding="utf-8"
        )

        with pytest.raises(SnapshotFormatError, match="bad.jsonl:2"):
            load_snapshots([path])


class TestAggregateSnapshotFiles:
    """Test aggregate_snapshot_files function."""

    def test_files_from_two_nodes_merge(self, tmp_path: Path, snapshots: list[Snapshot]) -> None:
        """Test the cluster-wide estimate over several files."""
        for snapshot in snapshots:
            JSONLinesSink(tmp_path, snapshot.node_id).write(snapshot)

        estimates = aggregate_snapshot_files(tmp_path.glob("*.jsonl"))

        assert estimates["Mean X"].count == 5
        assert estimates["Mean X"].mean == pytest.approx(0.5)
        assert estimates["Mean X"].variance == pytest.approx(0.1)


class TestEstimatesToFrame:
    """Test estimates_to_frame function."""

    def test_frame_has_one_row_per_measure(self, snapshots: list[Snapshot]) -> None:
        """Test the tabulated estimates."""
        frame = estimates_to_frame(aggregate_estimates(snapshots))

        assert list(frame.columns) == ESTIMATE_COLUMNS
        assert list(frame.index) == ["Mean X"]
        row = frame.loc["Mean X"]
        assert row["count"] == 5
        assert row["mean"] == pytest.approx(0.5)
        assert row["standard_error"] == pytest.approx(math.sqrt(0.02))
        assert row["ci_lower"] < 0.5 < row["ci_upper"]

    def test_empty_estimates_give_empty_frame(self) -> None:
        """Test tabulating nothing."""
        frame = estimates_to_frame({})

        assert frame.empty
        assert list(frame.columns) == ESTIMATE_COLUMNS


class TestSummarizeNodes:
    """Test summarize_nodes function."""

    def test_summary_per_node(self, snapshots: list[Snapshot]) -> None:
        """Test segment and sample counts per node."""
        snapshots.append(_snapshot("a", 5, 4, 0.5, 0.1))

        summary = summarize_nodes(snapshots)

        assert summary.loc["a", "segments"] == 2
        assert summary.loc["a", "samples"] == 7
        assert summary.loc["b", "samples"] == 2
        assert summary.loc["a", "last_segment_end"] == datetime(
            2024, 1, 1, 10, 10, tzinfo=timezone.utc
        )

    def test_empty_summary(self) -> None:
        """Test summarizing no snapshots."""
        assert summarize_nodes([]).empty
