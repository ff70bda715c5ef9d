"""Unit tests for ergosim.reporting.report_renderer module."""

from ergosim.core.accumulator import AccumulatorSet, StatAccumulator
from ergosim.core.registry import MeasureRegistry
from ergosim.reporting.report_renderer import COLUMN_TITLES, ReportRenderer


def _accumulators() -> AccumulatorSet:
    registry = MeasureRegistry()
    registry.register("Mean X")
    registry.register("Mean X^2")
    accumulators = AccumulatorSet(registry)
    for x in (0.1, 0.3, 0.5, 0.7, 0.9):
        accumulators.accumulate(0, x)
        accumulators.accumulate(1, x**2)
    return accumulators


class TestReportRenderer:
    """Tests for ReportRenderer."""

    def test_render_has_header_separator_and_one_row_per_measure(self) -> None:
        """Test the table layout."""
        table = ReportRenderer().render(_accumulators())

        lines = table.splitlines()
        assert len(lines) == 4
        assert all(title in lines[0] for title in COLUMN_TITLES)
        assert set(lines[1]) <= {"-", "+"}
        assert "Mean X " in lines[2]
        assert "Mean X^2" in lines[3]

    def test_rows_contain_mean_and_errors(self) -> None:
        """Test the formatted cells of a row."""
        rows = ReportRenderer().rows(_accumulators())

        name, mean, error, relative = rows[0]
        assert name == "Mean X"
        assert mean == "0.5"
        assert error == "0.14142136"
        assert relative == "0.28284271"

    def test_render_does_not_modify_accumulators(self) -> None:
        """Test that rendering is a read-only operation."""
        accumulators = _accumulators()
        before = accumulators.items()

        ReportRenderer().render(accumulators)

        assert accumulators.items() == before

    def test_undefined_statistics_render_as_na(self) -> None:
        """Test cells of a measure with a single value."""
        acc = StatAccumulator()
        acc.accumulate(1.0)

        rows = ReportRenderer().rows({"only": acc})

        assert rows[0][1:] == ("1", "n/a", "n/a")

    def test_custom_number_format(self) -> None:
        """Test the number_format option."""
        renderer = ReportRenderer(number_format=".2f")

        assert renderer.format_number(0.123456) == "0.12"

    def test_empty_table_has_header_only(self) -> None:
        """Test rendering without measures."""
        table = ReportRenderer().render({})

        assert len(table.splitlines()) == 2
