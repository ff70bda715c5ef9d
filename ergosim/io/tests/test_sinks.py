"""Unit tests for ergosim.io.sinks module."""

import json
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import patch

import pytest

from ergosim.core.errors import ExportError
from ergosim.core.snapshot import MeasureSnapshot, Snapshot
from ergosim.io.sinks import DataSink, InMemorySink, JSONLinesSink, SinkRegistry


@pytest.fixture
def snapshot() -> Snapshot:
    return Snapshot(
        node_id="node-1",
        segment_start=datetime(2024, 1, 1, 10, 0, tzinfo=timezone.utc),
        segment_end=datetime(2024, 1, 1, 10, 5, tzinfo=timezone.utc),
        measures=(MeasureSnapshot("Mean X", 5, 0.5, 0.4),),
    )


class TestDataSink:
    """Tests for the DataSink base class."""

    def test_cannot_instantiate_abstract_sink(self) -> None:
        """Test that write must be implemented."""
        with pytest.raises(TypeError):
            DataSink()

    def test_minimal_sink_has_default_description(self, snapshot: Snapshot) -> None:
        """Test the defaults of describe and close."""

        class ListSink(DataSink):
            def __init__(self) -> None:
                self.written = []

            def write(self, snapshot: Snapshot) -> None:
                self.written.append(snapshot)

        sink = ListSink()
        sink.write(snapshot)
        sink.close()

        assert str(sink) == "ListSink"
        assert sink.written == [snapshot]


class TestJSONLinesSink:
    """Tests for JSONLinesSink."""

    def test_write_appends_one_document_per_line(self, tmp_path: Path, snapshot: Snapshot) -> None:
        """Test that each acknowledged snapshot becomes one JSON line."""
        sink = JSONLinesSink(tmp_path / "results", "powers")

        sink.write(snapshot)
        sink.write(snapshot)

        lines = (tmp_path / "results" / "powers.jsonl").read_text(encoding="utf-8").splitlines()
        assert len(lines) == 2
        assert Snapshot.from_document(json.loads(lines[0])) == snapshot

    def test_file_scheme_is_stripped(self, tmp_path: Path) -> None:
        """Test that file:// addresses resolve to the directory."""
        sink = JSONLinesSink(f"file://{tmp_path}", "powers")

        assert sink.path == tmp_path / "powers.jsonl"
        assert str(tmp_path) in sink.describe()

    def test_os_error_is_reported_as_export_error(
        self, tmp_path: Path, snapshot: Snapshot
    ) -> None:
        """Test that file system failures are not acknowledged."""
        sink = JSONLinesSink(tmp_path, "powers")

        with patch("ergosim.io.sinks.os.fsync", side_effect=OSError("disk full")):
            with pytest.raises(ExportError, match="disk full"):
                sink.write(snapshot)

    def test_failed_fsync_leaves_no_partial_line(
        self, tmp_path: Path, snapshot: Snapshot
    ) -> None:
        """Test that an unacknowledged write is truncated away before the retry."""
        # Arrange
        sink = JSONLinesSink(tmp_path, "powers")
        sink.write(snapshot)
        size_before = sink.path.stat().st_size

        # Act
        with patch("ergosim.io.sinks.os.fsync", side_effect=[OSError("io error"), None]):
            with pytest.raises(ExportError):
                sink.write(snapshot)
            size_after_failure = sink.path.stat().st_size
            sink.write(snapshot)

        # Assert
        assert size_after_failure == size_before
        lines = sink.path.read_text(encoding="utf-8").splitlines()
        assert len(lines) == 2
        assert all(Snapshot.from_document(json.loads(line)) == snapshot for line in lines)


class TestInMemorySink:
    """Tests for InMemorySink."""

    def test_write_keeps_snapshots(self, snapshot: Snapshot) -> None:
        """Test that snapshots are stored in order."""
        sink = InMemorySink("powers")

        sink.write(snapshot)

        assert sink.snapshots == [snapshot]
        assert sink.describe() == "InMemorySink(powers)"

    def test_scripted_failures(self, snapshot: Snapshot) -> None:
        """Test that fail_next rejects the given number of writes."""
        sink = InMemorySink(fail_next=2)

        for _ in range(2):
            with pytest.raises(ExportError):
                sink.write(snapshot)
        sink.write(snapshot)

        assert sink.failed_writes == 2
        assert len(sink.snapshots) == 1


class TestSinkRegistry:
    """Tests for SinkRegistry."""

    def test_memory_scheme(self) -> None:
        """Test resolving memory:// addresses."""
        sink = SinkRegistry().create_sink("memory://", "powers")

        assert isinstance(sink, InMemorySink)
        assert sink.namespace == "powers"

    def test_plain_path_resolves_to_json_lines(self, tmp_path: Path) -> None:
        """Test that addresses without a scheme are directories."""
        sink = SinkRegistry().create_sink(str(tmp_path), "powers")

        assert isinstance(sink, JSONLinesSink)
        assert sink.path == tmp_path / "powers.jsonl"

    def test_unknown_scheme_raises_error(self) -> None:
        """Test that unsupported schemes are rejected."""
        with pytest.raises(ValueError, match="mongodb"):
            SinkRegistry().create_sink("mongodb://localhost:27017", "powers")

    def test_register_custom_scheme(self) -> None:
        """Test registering an additional sink factory."""
        registry = SinkRegistry()
        registry.register_sink("custom://", lambda address, namespace: InMemorySink(namespace))

        sink = registry.create_sink("custom://host", "powers")

        assert isinstance(sink, InMemorySink)
        assert "custom://" in registry.supported_schemes
