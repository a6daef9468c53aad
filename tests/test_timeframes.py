from datetime import timedelta

import pytest

from trendhunter import timeframes
from trendhunter.errors import (
    DifferentResolutions,
    ExceedsMaxHourRange,
    InconsistentTimeframes,
    InvalidOffsetFormat,
    InvalidTimeframeFormat,
    ResolutionRatioTooLarge,
)
from trendhunter.timeframes import (
    FIXED_TIMEFRAMES,
    check_timeframe_resolution,
    convert_timeframe,
    decode_trend_datetime,
    extract_time_parts,
    get_resolution_and_range,
    is_valid_date,
    is_valid_offset,
    timeframe_to_timedelta,
    verify_consistent_timeframes,
)


def test_is_valid_date():
    assert is_valid_date("2024-09-13")
    assert is_valid_date("2024-09-13T22")
    assert not is_valid_date("2024/09/13")
    assert not is_valid_date("invalid")


def test_is_valid_offset():
    assert is_valid_offset("1-H")
    assert is_valid_offset("5-y")
    assert is_valid_offset("10-m")
    assert not is_valid_offset("invalid")
    assert not is_valid_offset("all")


def test_extract_time_parts():
    assert extract_time_parts("5-H") == (5, "H")
    assert extract_time_parts("10-d") == (10, "d")
    assert extract_time_parts("invalid") is None


def test_decode_trend_datetime():
    assert decode_trend_datetime("2024-09-13T22").hour == 22
    assert decode_trend_datetime("2024-09-13").hour == 0
    with pytest.raises(InvalidTimeframeFormat):
        decode_trend_datetime("2024-13-45")


@pytest.mark.parametrize("token", sorted(FIXED_TIMEFRAMES))
def test_fixed_timeframes_unchanged(token):
    assert convert_timeframe(token) == token


def test_all_expands_to_2024_through_today(frozen_now):
    assert convert_timeframe("all", True) == "2024-01-01 2024-09-13"


@pytest.mark.parametrize(
    "timeframe, expected",
    [
        ("now 1-H", "now 1-H"),
        ("2024-09-12T23 5-H", "2024-09-12T18 2024-09-12T23"),
        ("2024-09-12T23 1-d", "2024-09-11T23 2024-09-12T23"),
        ("2024-09-12 1-y", "2023-09-12 2024-09-12"),
        ("2024-09-12 1-m", "2024-08-13 2024-09-12"),
        ("2024-09-12T23 2024-09-13", "2024-09-12T23 2024-09-13T00"),
        ("2024-09-12 2024-09-13T12", "2024-09-12T00 2024-09-13T12"),
        ("2024-09-12 2024-09-13", "2024-09-12 2024-09-13"),
        ("2024-09-12 30-d", "2024-08-13 2024-09-12"),
        ("2024-09-12T23 168-H", "2024-09-05T23 2024-09-12T23"),
    ],
)
def test_convert_timeframe(timeframe, expected):
    assert convert_timeframe(timeframe) == expected


def test_month_offset_clamps_to_month_end():
    # 2024-03-31 minus one month is 2024-02-29, plus the one-day adjustment
    assert convert_timeframe("2024-03-31 1-m") == "2024-03-01 2024-03-31"


def test_now_and_today_are_substituted(frozen_now):
    assert convert_timeframe("now 5-H", True) == "2024-09-13T07 2024-09-13T12"
    assert convert_timeframe("today 1-m", True) == "2024-08-14 2024-09-13"
    assert convert_timeframe("today 3-d") == "2024-09-10 2024-09-13"


@pytest.mark.parametrize(
    "timeframe",
    ["2024-09-12T23 8-d", "2024-09-12T23 169-H", "2024-09-01T00 2024-09-09T01"],
)
def test_hour_ranges_over_seven_days(timeframe):
    with pytest.raises(ExceedsMaxHourRange):
        convert_timeframe(timeframe)


def test_invalid_offset():
    with pytest.raises((InvalidOffsetFormat, InvalidTimeframeFormat)):
        convert_timeframe("2024-09-12T23 invalid")
    with pytest.raises(InvalidOffsetFormat) as excinfo:
        convert_timeframe("2024-09-12T23 1H")
    assert excinfo.value.offset == "1H"


@pytest.mark.parametrize("timeframe", ["2024-09-12T23 all", "one two three", "2024-09-12", "last 5-d"])
def test_invalid_timeframe_format(timeframe):
    with pytest.raises(InvalidTimeframeFormat):
        convert_timeframe(timeframe)


def test_timeframe_to_timedelta():
    assert timeframe_to_timedelta("now 1-H") == timedelta(hours=1)
    assert timeframe_to_timedelta("now 5-H") == timedelta(hours=5)
    assert timeframe_to_timedelta("2024-09-12 2024-09-14") == timedelta(days=2)


def test_verify_consistent_timeframes():
    assert verify_consistent_timeframes("now 1-H")
    assert verify_consistent_timeframes(["now 1-H", "now 1-H"])
    assert verify_consistent_timeframes(["2024-01-01 2024-01-08", "2024-03-01 7-d"])

    with pytest.raises(InconsistentTimeframes) as excinfo:
        verify_consistent_timeframes(["now 1-H", "now 4-H"])
    assert excinfo.value.durations == [timedelta(hours=1), timedelta(hours=4)]


@pytest.mark.parametrize(
    "duration, resolution",
    [
        (timedelta(hours=4, minutes=59), "1 minute"),
        (timedelta(hours=5), "8 minutes"),
        (timedelta(hours=35, minutes=59), "8 minutes"),
        (timedelta(hours=36), "16 minutes"),
        (timedelta(hours=71, minutes=59), "16 minutes"),
        (timedelta(hours=72), "1 hour"),
        (timedelta(hours=191, minutes=59), "1 hour"),
        (timedelta(hours=192), "1 day"),
        (timedelta(hours=6479, minutes=59), "1 day"),
        (timedelta(hours=6480), "1 week"),
        (timedelta(hours=45599, minutes=59), "1 week"),
        (timedelta(hours=45600), "1 month"),
    ],
)
def test_resolution_boundaries(monkeypatch, duration, resolution):
    monkeypatch.setattr(timeframes, "timeframe_to_timedelta", lambda tf: duration)
    assert get_resolution_and_range("any")[0] == resolution


def test_get_resolution_and_range():
    assert get_resolution_and_range("now 4-H") == ("1 minute", "delta < 5 hours")
    assert get_resolution_and_range("now 1-d") == ("8 minutes", "5 hours <= delta < 36 hours")
    assert get_resolution_and_range("2024-01-01 2024-02-01")[0] == "1 day"


def test_check_timeframe_resolution():
    check_timeframe_resolution(["now 1-H", "now 1-H"])
    check_timeframe_resolution("2024-09-12T14 2024-09-12T15")

    with pytest.raises(DifferentResolutions) as excinfo:
        check_timeframe_resolution(["now 1-H", "now 24-H"])
    report = excinfo.value.report
    assert [row[0] for row in report] == ["now 1-H", "now 24-H"]
    assert [row[2] for row in report] == ["1 minute", "8 minutes"]

    with pytest.raises(ResolutionRatioTooLarge) as excinfo:
        check_timeframe_resolution(["now 1-H", "now 3-H"])
    assert excinfo.value.max_timeframe == "now 3-H"
    assert excinfo.value.min_timeframe == "now 1-H"


def test_check_timeframe_resolution_within_ratio():
    check_timeframe_resolution(["2024-01-01 2024-02-01", "2024-03-01 2024-03-20"])


@pytest.mark.parametrize("frames", [[], ["2024-09-12T14 2024-09-12T14"], "now 7-d"])
def test_check_timeframe_resolution_single_or_empty(frames):
    check_timeframe_resolution(frames)


def test_check_timeframe_resolution_validates_single_timeframe():
    with pytest.raises(InvalidTimeframeFormat):
        check_timeframe_resolution("last 5-d")
