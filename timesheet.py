#!/usr/bin/env python3

"""Timewarrior report for weekly per-project timesheets."""

from __future__ import annotations

import sys
from typing import Callable, Iterable, Optional, TextIO

from timesheet_common import (
    Report,
    TimesheetConfig,
    TimesheetError,
    build_report,
    load_config,
)
from timesheet_table import render_report


def run(
    config: TimesheetConfig,
    stream: Iterable[str],
    output: TextIO,
    render: Optional[Callable[[Report], str]] = None,
) -> None:
    report = build_report(stream, config)
    output.write((render or render_report)(report))


def main() -> None:
    try:
        run(load_config(), sys.stdin, sys.stdout)
    except TimesheetError as exc:
        sys.stderr.write(f"timesheet: {exc}\n")
        sys.exit(1)


if __name__ == "__main__":
    main()
