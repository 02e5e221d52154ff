#!/usr/bin/env python3

"""Shared helpers for the weekly timesheet report extensions."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone, tzinfo
from decimal import ROUND_HALF_UP, Decimal

import json
import os
import re
import sys
from typing import Callable, Dict, Iterable, List, Optional, Tuple

TIMEW_DATETIME_FORMAT = "%Y%m%dT%H%M%SZ"
TIMEW_DATETIME_PATTERN = re.compile(r"[0-9]{8}T[0-9]{6}Z")

PROJECTS_KEY = "timesheet.projects"
DEBUG_ENV_VAR = "TIMEWARRIOR_EXT_TIMESHEET_DEBUG"

HEADER_SENTINEL = "["
BODY_TERMINATOR = "]"

WEEKDAYS = 7
WEEKDAY_LABELS = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
TOTAL_LABEL = "Tot"
TOTALS_ROW_LABEL = "totals"
COLUMN_WIDTH = 6

SECONDS_PER_HOUR = Decimal(3600)
TENTH = Decimal("0.1")
ZERO = Decimal("0.0")


class TimesheetError(ValueError):
    kind = "TimesheetError"
    default_message = "timesheet report failed"

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(message or self.default_message)
        self.message = message or self.default_message

    def __str__(self) -> str:
        return f"{self.kind}: {self.message}"


class NoProjectsConfigured(TimesheetError):
    kind = "NoProjectsConfigured"
    default_message = f"no projects configured in '{PROJECTS_KEY}'"


class MalformedProjectsConfig(TimesheetError):
    kind = "MalformedProjectsConfig"
    default_message = f"'{PROJECTS_KEY}' must be a JSON array"


class MalformedConfigLine(TimesheetError):
    kind = "MalformedConfigLine"
    default_message = "configuration line is missing ':'"


class MalformedIntervalRecord(TimesheetError):
    kind = "MalformedIntervalRecord"
    default_message = "interval record is not a valid inclusion object"


class MalformedTimestamp(TimesheetError):
    kind = "MalformedTimestamp"
    default_message = "timestamp does not match YYYYMMDDTHHMMSSZ"


class NoProjectMatched(TimesheetError):
    kind = "NoProjectMatched"
    default_message = "interval has no tag matching a configured project"


class AmbiguousProject(TimesheetError):
    kind = "AmbiguousProject"
    default_message = "interval has more than one tag matching a configured project"


def _debug_enabled() -> bool:
    value = os.getenv(DEBUG_ENV_VAR, "").strip().lower()
    return value in {"1", "true", "yes", "on"}


def _debug(message: str) -> None:
    if _debug_enabled():
        sys.stderr.write(message.rstrip() + "\n")


def _system_now() -> datetime:
    return datetime.now(tz=timezone.utc).replace(microsecond=0)


@dataclass
class TimesheetConfig:
    """Collaborators handed to `run`.

    `tz` is the zone intervals are bucketed in (None means the host's local
    timezone) and `now` supplies the end of intervals that are still open.
    """

    tz: Optional[tzinfo] = None
    now: Callable[[], datetime] = _system_now


def load_config() -> TimesheetConfig:
    return TimesheetConfig()


def decode_timestamp(
    value: str,
    now: Callable[[], datetime] = _system_now,
    tz: Optional[tzinfo] = None,
) -> datetime:
    """Convert a `timew export` timestamp into an aware datetime in `tz`.

    An empty string stands for an interval that is still running and resolves
    to `now()`.
    """

    if value == "":
        return now().astimezone(tz)

    if not TIMEW_DATETIME_PATTERN.fullmatch(value):
        raise MalformedTimestamp(f"invalid timestamp '{value}'")
    try:
        parsed = datetime.strptime(value, TIMEW_DATETIME_FORMAT)
    except ValueError as exc:
        raise MalformedTimestamp(f"invalid timestamp '{value}'") from exc
    try:
        return parsed.replace(tzinfo=timezone.utc).astimezone(tz)
    except OverflowError as exc:
        raise MalformedTimestamp(f"timestamp out of range '{value}'") from exc


class ProjectRegistry:
    """Ordered list of project labels accepted as interval projects."""

    def __init__(self, labels: Optional[Iterable[str]] = None) -> None:
        self.labels: List[str] = list(labels) if labels is not None else []

    @classmethod
    def load(cls, raw: str) -> "ProjectRegistry":
        try:
            parsed = json.loads(raw)
        except ValueError as exc:
            raise MalformedProjectsConfig(
                f"'{PROJECTS_KEY}' is not valid JSON: {raw}"
            ) from exc

        if not isinstance(parsed, list):
            raise MalformedProjectsConfig(f"'{PROJECTS_KEY}' is not a JSON array: {raw}")

        labels: List[str] = []
        for item in parsed:
            if isinstance(item, str):
                labels.append(item)
            else:
                labels.append(json.dumps(item).strip('"'))
        return cls(labels)

    def contains(self, label: str) -> bool:
        return label in self.labels

    def __contains__(self, label: object) -> bool:
        return isinstance(label, str) and self.contains(label)

    def __len__(self) -> int:
        return len(self.labels)


@dataclass(frozen=True)
class Inclusion:
    id: int
    start: str
    end: str = ""
    tags: Tuple[str, ...] = ()
    annotation: str = ""

    @classmethod
    def from_json(cls, raw_json: str) -> "Inclusion":
        try:
            payload = json.loads(raw_json)
        except ValueError as exc:
            raise MalformedIntervalRecord(f"invalid JSON: {raw_json}") from exc

        if not isinstance(payload, dict):
            raise MalformedIntervalRecord(f"expected a JSON object: {raw_json}")

        entry_id = payload.get("id")
        if not isinstance(entry_id, int) or isinstance(entry_id, bool):
            raise MalformedIntervalRecord(f"missing or invalid 'id': {raw_json}")

        start = payload.get("start")
        if not isinstance(start, str):
            raise MalformedIntervalRecord(f"missing or invalid 'start': {raw_json}")

        end = payload.get("end", "")
        annotation = payload.get("annotation", "")
        if not isinstance(end, str) or not isinstance(annotation, str):
            raise MalformedIntervalRecord(f"invalid 'end' or 'annotation': {raw_json}")

        tags = payload.get("tags", [])
        if not isinstance(tags, list) or not all(isinstance(tag, str) for tag in tags):
            raise MalformedIntervalRecord(f"'tags' must be a list of strings: {raw_json}")

        return cls(
            id=entry_id,
            start=start,
            end=end,
            tags=tuple(tags),
            annotation=annotation,
        )


@dataclass(frozen=True)
class Interval:
    project: str
    total_seconds: int
    weekday: int
    inclusion: Optional[Inclusion] = field(default=None, compare=False)


class IntervalFactory:
    def __init__(
        self,
        registry: Optional[ProjectRegistry] = None,
        now: Callable[[], datetime] = _system_now,
        tz: Optional[tzinfo] = None,
    ) -> None:
        self.registry = registry
        self.now = now
        self.tz = tz

    def load_projects(self, raw: str) -> None:
        self.registry = ProjectRegistry.load(raw)
        _debug(f"[timesheet] projects {self.registry.labels}")

    def resolve_project(self, inclusion: Inclusion) -> str:
        project: Optional[str] = None
        for tag in inclusion.tags:
            if tag not in self.registry:
                continue
            if project is not None:
                raise AmbiguousProject(
                    f"@{inclusion.id} is tagged with both '{project}' and '{tag}'"
                )
            project = tag

        if project is None:
            raise NoProjectMatched(
                f"@{inclusion.id} has no project tag among {list(inclusion.tags)}"
            )
        return project

    def new_interval(self, raw_json: str) -> Interval:
        if self.registry is None or len(self.registry) == 0:
            raise NoProjectsConfigured()

        inclusion = Inclusion.from_json(raw_json)
        project = self.resolve_project(inclusion)

        start = decode_timestamp(inclusion.start, self.now, self.tz)
        end = decode_timestamp(inclusion.end, self.now, self.tz)
        total_seconds = int((end - start).total_seconds())
        if total_seconds < 0:
            _debug(
                f"[timesheet] @{inclusion.id} ends before it starts; "
                f"counting {total_seconds}s."
            )

        interval = Interval(
            project=project,
            total_seconds=total_seconds,
            weekday=start.weekday(),
            inclusion=inclusion,
        )
        _debug(
            f"[timesheet] @{inclusion.id} project={project} "
            f"weekday={interval.weekday} seconds={total_seconds}"
        )
        return interval


def split_config_line(line: str) -> Tuple[str, str]:
    key, separator, value = line.partition(":")
    if not separator:
        raise MalformedConfigLine(f"configuration line is missing ':': {line}")
    return key.strip().strip(":"), value.strip()


def read_report(
    stream: Iterable[str],
    config: Optional[TimesheetConfig] = None,
) -> Tuple[Dict[str, str], List[Interval]]:
    """Read a `timew` report header and the JSON export that follows it.

    The header ends at the line holding the opening `[` of the export array.
    Each following line holds one interval object, optionally followed by a
    comma.
    """

    config = config or TimesheetConfig()
    factory = IntervalFactory(now=config.now, tz=config.tz)
    options: Dict[str, str] = {}
    intervals: List[Interval] = []
    in_body = False

    for raw_line in stream:
        line = raw_line.strip()
        if line == "" or line == BODY_TERMINATOR:
            continue

        if in_body:
            intervals.append(factory.new_interval(line.strip(",")))
            continue

        if line == HEADER_SENTINEL:
            projects = options.get(PROJECTS_KEY)
            if projects is None:
                raise NoProjectsConfigured(f"'{PROJECTS_KEY}' is not set")
            factory.load_projects(projects)
            in_body = True
            continue

        key, value = split_config_line(line)
        options[key] = value

    _debug(f"[timesheet] header keys {sorted(options)}")
    _debug(f"[timesheet] read {len(intervals)} intervals")
    return options, intervals


def seconds_to_hours(seconds: int) -> Decimal:
    return (Decimal(seconds) / SECONDS_PER_HOUR).quantize(TENTH, rounding=ROUND_HALF_UP)


@dataclass
class Report:
    data: Dict[str, List[Decimal]]
    totals: List[Decimal]
    column_width: int = COLUMN_WIDTH
    tag_width: int = len(TOTALS_ROW_LABEL)

    @classmethod
    def from_intervals(
        cls,
        intervals: Iterable[Interval],
    ) -> "Report":
        raw_data: Dict[str, List[int]] = {}
        for interval in intervals:
            project_data = raw_data.setdefault(interval.project, [0] * WEEKDAYS)
            project_data[interval.weekday] += interval.total_seconds

        data: Dict[str, List[Decimal]] = {}
        totals = [ZERO] * (WEEKDAYS + 1)
        tag_width = len(TOTALS_ROW_LABEL)

        # Row and column totals are sums of the already rounded cells.
        for project in sorted(raw_data):
            tag_width = max(tag_width, len(project.encode("utf-8")))
            row = [ZERO] * (WEEKDAYS + 1)
            for weekday, seconds in enumerate(raw_data[project]):
                row[weekday] = seconds_to_hours(seconds)
                row[WEEKDAYS] += row[weekday]
                totals[weekday] += row[weekday]
            data[project] = row

        totals[WEEKDAYS] = sum(totals[:WEEKDAYS], ZERO)

        _debug(f"[timesheet] report rows={list(data)} tag_width={tag_width}")
        return cls(data=data, totals=totals, column_width=COLUMN_WIDTH, tag_width=tag_width)

    def rows(self) -> List[Tuple[str, List[Decimal]]]:
        return list(self.data.items())


def build_report(
    stream: Iterable[str], config: Optional[TimesheetConfig] = None
) -> Report:
    _, intervals = read_report(stream, config)
    return Report.from_intervals(intervals)

