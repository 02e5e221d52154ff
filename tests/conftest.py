from datetime import datetime, timezone

import pytest

from timesheet_common import DEBUG_ENV_VAR, TimesheetConfig

FIXED_NOW = datetime(2024, 1, 8, 9, 30, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    monkeypatch.delenv(DEBUG_ENV_VAR, raising=False)


@pytest.fixture
def utc_config():
    return TimesheetConfig(tz=timezone.utc, now=lambda: FIXED_NOW)


def make_input(projects, *records, extra_header=()):
    lines = ["", f"timesheet.projects: {projects}"]
    lines.extend(extra_header)
    lines.append("")
    lines.append("[")
    for index, record in enumerate(records):
        suffix = "," if index + 1 < len(records) else ""
        lines.append(record + suffix)
    lines.append("]")
    return [line + "\n" for line in lines]
