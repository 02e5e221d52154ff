from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional, Sequence

from timesheet_common import (
    TOTAL_LABEL,
    TOTALS_ROW_LABEL,
    WEEKDAY_LABELS,
    Report,
)

CELL_DELIMITER = " | "
SEPARATOR_FILL = "="


@dataclass(frozen=True)
class ColumnSpec:
    align: str = "<"
    width: int = 0


def build_columns(report: Report) -> List[ColumnSpec]:
    columns = [ColumnSpec(align="<", width=report.tag_width)]
    columns.extend(
        ColumnSpec(align=">", width=report.column_width)
        for _ in range(len(WEEKDAY_LABELS) + 1)
    )
    return columns


def format_hours(value: Optional[Decimal]) -> str:
    if value is None or value == 0:
        return ""
    return str(value)


def _layout(columns: Sequence[ColumnSpec]) -> List[str]:
    return [f"{{:{column.align}{column.width}}}" for column in columns]


def format_row(cells: Sequence[str], columns: Sequence[ColumnSpec]) -> str:
    if len(cells) != len(columns):
        raise ValueError("Cells and columns must be the same length")
    parts = [layout.format(cell) for layout, cell in zip(_layout(columns), cells)]
    return CELL_DELIMITER.join(parts) + CELL_DELIMITER.rstrip()


def format_header(headers: Sequence[str], columns: Sequence[ColumnSpec]) -> str:
    return format_row(headers, columns) + " "


def format_separator(columns: Sequence[ColumnSpec]) -> str:
    label_column, *value_columns = columns
    line = SEPARATOR_FILL * (label_column.width + 1) + "|"
    for column in value_columns:
        line += SEPARATOR_FILL * (column.width + 2) + "|"
    return line


def format_report_row(
    label: str, values: Sequence[Decimal], columns: Sequence[ColumnSpec]
) -> str:
    return format_row([label] + [format_hours(value) for value in values], columns)


def render_report(report: Report) -> str:
    """Render the weekly matrix as a pipe-delimited table.

    Zero cells are left blank; the totals row follows a second separator.
    """

    columns = build_columns(report)
    separator = format_separator(columns)

    lines = [format_header([""] + WEEKDAY_LABELS + [TOTAL_LABEL], columns), separator]
    for project, values in report.rows():
        lines.append(format_report_row(project, values, columns))
    lines.append(separator)
    lines.append(format_report_row(TOTALS_ROW_LABEL, report.totals, columns))
    return "\n".join(lines) + "\n"
