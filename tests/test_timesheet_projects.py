import pytest

from timesheet_common import (
    AmbiguousProject,
    IntervalFactory,
    MalformedIntervalRecord,
    MalformedProjectsConfig,
    MalformedTimestamp,
    NoProjectMatched,
    NoProjectsConfigured,
    ProjectRegistry,
)


def test_registry_keeps_order_and_duplicates():
    registry = ProjectRegistry.load('["beta", "alpha", "beta"]')
    assert registry.labels == ["beta", "alpha", "beta"]
    assert registry.contains("alpha")
    assert not registry.contains("gamma")


def test_registry_serializes_non_string_elements():
    registry = ProjectRegistry.load('["alpha", 42]')
    assert registry.labels == ["alpha", "42"]


@pytest.mark.parametrize("raw", ["not json", '{"alpha": 1}', '"alpha"', ""])
def test_registry_rejects_invalid_values(raw):
    with pytest.raises(MalformedProjectsConfig):
        ProjectRegistry.load(raw)


def test_empty_registry_fails_on_first_interval(utc_config):
    factory = IntervalFactory(ProjectRegistry.load("[]"), tz=utc_config.tz)
    with pytest.raises(NoProjectsConfigured):
        factory.new_interval('{"id":1,"start":"20240108T090000Z","tags":["alpha"]}')


def test_missing_registry_fails(utc_config):
    factory = IntervalFactory(tz=utc_config.tz)
    with pytest.raises(NoProjectsConfigured):
        factory.new_interval('{"id":1,"start":"20240108T090000Z","tags":["alpha"]}')


@pytest.fixture
def factory(utc_config):
    return IntervalFactory(
        ProjectRegistry.load('["alpha","beta"]'), now=utc_config.now, tz=utc_config.tz
    )


def test_new_interval_resolves_project_and_duration(factory):
    interval = factory.new_interval(
        '{"id":1,"start":"20240110T080000Z","end":"20240110T091500Z",'
        '"tags":["meeting","alpha"],"annotation":"standup","extra":true}'
    )
    assert interval.project == "alpha"
    assert interval.total_seconds == 4500
    assert interval.weekday == 2
    assert interval.inclusion.annotation == "standup"
    assert interval.inclusion.tags == ("meeting", "alpha")


def test_open_interval_ends_now(factory):
    interval = factory.new_interval('{"id":7,"start":"20240108T090000Z","tags":["beta"]}')
    assert interval.total_seconds == 1800
    assert interval.inclusion.end == ""


def test_explicit_empty_end_ends_now(factory):
    interval = factory.new_interval(
        '{"id":7,"start":"20240108T090000Z","end":"","tags":["beta"]}'
    )
    assert interval.total_seconds == 1800


def test_negative_duration_is_kept_quietly(factory, capsys):
    interval = factory.new_interval(
        '{"id":3,"start":"20240108T100000Z","end":"20240108T090000Z","tags":["alpha"]}'
    )
    assert interval.total_seconds == -3600
    assert capsys.readouterr().err == ""


def test_ambiguous_project(factory):
    with pytest.raises(AmbiguousProject):
        factory.new_interval(
            '{"id":1,"start":"20240108T090000Z","end":"20240108T100000Z",'
            '"tags":["alpha","beta"]}'
        )


def test_repeated_project_tag_is_ambiguous(factory):
    with pytest.raises(AmbiguousProject):
        factory.new_interval(
            '{"id":1,"start":"20240108T090000Z","end":"20240108T100000Z",'
            '"tags":["alpha","alpha"]}'
        )


@pytest.mark.parametrize("tags", ['["meeting"]', "[]"])
def test_no_project_matched(factory, tags):
    with pytest.raises(NoProjectMatched):
        factory.new_interval(
            '{"id":1,"start":"20240108T090000Z","end":"20240108T100000Z",'
            f'"tags":{tags}}}'
        )


def test_missing_tags_means_no_project(factory):
    with pytest.raises(NoProjectMatched):
        factory.new_interval('{"id":1,"start":"20240108T090000Z"}')


@pytest.mark.parametrize(
    "record",
    [
        "not json",
        '["alpha"]',
        '{"start":"20240108T090000Z","tags":["alpha"]}',
        '{"id":"1","start":"20240108T090000Z","tags":["alpha"]}',
        '{"id":true,"start":"20240108T090000Z","tags":["alpha"]}',
        '{"id":1,"tags":["alpha"]}',
        '{"id":1,"start":"20240108T090000Z","end":null,"tags":["alpha"]}',
        '{"id":1,"start":"20240108T090000Z","tags":"alpha"}',
        '{"id":1,"start":"20240108T090000Z","tags":["alpha",2]}',
        '{"id":1,"start":"20240108T090000Z","annotation":5,"tags":["alpha"]}',
    ],
)
def test_malformed_interval_records(factory, record):
    with pytest.raises(MalformedIntervalRecord):
        factory.new_interval(record)


def test_bad_end_timestamp(factory):
    with pytest.raises(MalformedTimestamp):
        factory.new_interval(
            '{"id":1,"start":"20240108T090000Z","end":"tomorrow","tags":["alpha"]}'
        )


@pytest.mark.parametrize(
    "raw",
    ["['alpha']", "['alpha', /* c */ 'beta',]", '["alpha",]', "[alpha]"],
)
def test_registry_requires_strict_json(raw):
    with pytest.raises(MalformedProjectsConfig):
        ProjectRegistry.load(raw)


@pytest.mark.parametrize(
    "record",
    [
        "{id:1,start:'20240108T090000Z',end:'20240108T100000Z',tags:['alpha']}",
        '{"id":0x1,"start":"20240108T090000Z","tags":["alpha"]}',
        '{"id":1,"start":"20240108T090000Z","tags":["alpha"],}',
        '{"id":1, // comment\n"start":"20240108T090000Z","tags":["alpha"]}',
    ],
)
def test_interval_record_requires_strict_json(factory, record):
    with pytest.raises(MalformedIntervalRecord):
        factory.new_interval(record)
