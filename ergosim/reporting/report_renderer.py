"""
Plain-text rendering of accumulator tables.
"""

from __future__ import annotations

import math
from collections.abc import Iterable
from typing import Protocol

from ergosim.core.accumulator import StatAccumulator

COLUMN_TITLES: tuple[str, str, str, str] = (
    "MEASURE",
    "EXPECTATION",
    "UNCERTAINTY",
    "RELATIVE UNCERTAINTY",
)


class _HasItems(Protocol):
    def items(self) -> Iterable[tuple[str, StatAccumulator]]: ...


class ReportRenderer:
    """
    Format a read-only view of accumulators as a table.

    One row per measure with the columns name, mean, standard error and
    standard error relative to the mean. Rendering never mutates the
    accumulators.

    :param number_format: Format spec applied to every numeric cell
    :type number_format: str

    Example::

        >>> renderer = ReportRenderer()
        >>> print(renderer.render(accumulators))
          MEASURE  | EXPECTATION | UNCERTAINTY | RELATIVE UNCERTAINTY
        -----------+-------------+-------------+---------------------
            Mean X |  0.50012345 | 0.000912345 |        0.0018242391
    """

    def __init__(self, number_format: str = ".8g"):
        self.number_format = number_format

    def format_number(self, value: float) -> str:
        if math.isnan(value):
            return "n/a"
        return format(value, self.number_format)

    def rows(self, accumulators: _HasItems) -> list[tuple[str, str, str, str]]:
        """Formatted cells, one tuple per measure."""
        return [
            (
                name,
                self.format_number(acc.mean),
                self.format_number(acc.standard_error),
                self.format_number(acc.relative_error),
            )
            for name, acc in accumulators.items()
        ]

    def render(self, accumulators: _HasItems) -> str:
        """
        Render the table.

        :param accumulators: An AccumulatorSet or a ``name -> StatAccumulator`` mapping
        :return: Multi-line table, header first
        :rtype: str
        """
        rows = self.rows(accumulators)
        widths = [
            max([len(title)] + [len(row[column]) for row in rows]) + 2
            for column, title in enumerate(COLUMN_TITLES)
        ]

        lines = ["|".join(title.center(width) for title, width in zip(COLUMN_TITLES, widths))]
        lines.append("+".join("-" * width for width in widths))
        for row in rows:
            cells = [f" {row[0]} ".rjust(widths[0])]
            cells.extend(f" {cell} ".rjust(width) for cell, width in zip(row[1:], widths[1:]))
            lines.append("|".join(cells))
        return "\n".join(line.rstrip() for line in lines)
