#!/usr/bin/env python3

"""Timewarrior report that exports the weekly timesheet to CSV."""

from __future__ import annotations

import sys
from typing import List, Sequence

from timesheet import run
from timesheet_common import (
    TOTAL_LABEL,
    TOTALS_ROW_LABEL,
    WEEKDAY_LABELS,
    Report,
    TimesheetError,
    load_config,
)
from timesheet_table import format_hours

CSV_DELIMITER = ","


def csv_escape(value: str) -> str:
    return value.replace('"', '""')


def format_row(values: Sequence[str]) -> str:
    escaped = [f'"{csv_escape(value)}"' for value in values]
    return CSV_DELIMITER.join(escaped)


def build_rows(report: Report) -> List[List[str]]:
    rows: List[List[str]] = []
    for project, values in report.rows():
        rows.append([project] + [format_hours(value) for value in values])
    rows.append([TOTALS_ROW_LABEL] + [format_hours(value) for value in report.totals])
    return rows


def render_csv(report: Report) -> str:
    lines = [format_row(["Project"] + WEEKDAY_LABELS + [TOTAL_LABEL])]
    lines.extend(format_row(row) for row in build_rows(report))
    return "\n".join(lines) + "\n"


def main() -> None:
    try:
        run(load_config(), sys.stdin, sys.stdout, render=render_csv)
    except TimesheetError as exc:
        sys.stderr.write(f"timesheet_csv: {exc}\n")
        sys.exit(1)


if __name__ == "__main__":
    main()
