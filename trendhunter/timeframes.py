"""
timeframes.py

Timeframe handling for Google Trends requests.

Google Trends accepts a handful of fixed relative windows ("now 1-H",
"today 12-m", "all", ...) or an explicit range "<start> <end>" where each
endpoint is YYYY-MM-DD or YYYY-MM-DDTHH. This module turns friendlier
expressions ("2024-09-12 1-m", "now 5-H", "2024-09-12T23 2024-09-13") into
that range syntax and checks that several timeframes can be compared in a
single request.

Usage:
    from trendhunter.timeframes import convert_timeframe

    convert_timeframe("2024-09-12T23 5-H")   # "2024-09-12T18 2024-09-12T23"
    convert_timeframe("2024-09-12 1-m")      # "2024-08-13 2024-09-12"
"""

import re
from datetime import datetime, timedelta, timezone
from typing import Sequence

import pandas as pd

from .errors import (
    DifferentResolutions,
    ExceedsMaxHourRange,
    InconsistentTimeframes,
    InvalidOffsetFormat,
    InvalidTimeframeFormat,
    ResolutionRatioTooLarge,
)
from .utils import ensure_list

VALID_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}(T\d{2})?$")
OFFSET_PATTERN = re.compile(r"\d+-?[Hdmy]$")
OFFSET_PARTS_PATTERN = re.compile(r"^(\d+)-([Hdmy])$")

FIXED_TIMEFRAMES = frozenset(
    {
        "now 1-H",
        "now 4-H",
        "now 1-d",
        "now 7-d",
        "today 1-m",
        "today 3-m",
        "today 5-y",
        "today 12-m",
        "all",
    }
)

DATE_FORMAT = "%Y-%m-%d"
DATE_T_FORMAT = "%Y-%m-%dT%H"

# "all" expanded to explicit dates
ALL_TIMEFRAME_START = "2024-01-01"

MAX_HOUR_RANGE = timedelta(days=7)

# (upper bound in hours, resolution, range description); the last tier has no bound
RESOLUTION_TIERS: list[tuple[float, str, str]] = [
    (5, "1 minute", "delta < 5 hours"),
    (36, "8 minutes", "5 hours <= delta < 36 hours"),
    (72, "16 minutes", "36 hours <= delta < 72 hours"),
    (24 * 8, "1 hour", "72 hours <= delta < 8 days"),
    (24 * 270, "1 day", "8 days <= delta < 270 days"),
    (24 * 1900, "1 week", "270 days <= delta < 1900 days"),
]
LAST_RESOLUTION = ("1 month", "delta >= 1900 days")


def utcnow() -> datetime:
    """Current UTC time (patched in tests)."""
    return datetime.now(timezone.utc)


def is_valid_date(date_str: str) -> bool:
    """True for YYYY-MM-DD or YYYY-MM-DDTHH."""
    return bool(VALID_DATE_PATTERN.match(date_str))


def is_valid_offset(offset_str: str) -> bool:
    """True when the string looks like an offset such as 5-H, 7-d, 3-m, 1-y."""
    return bool(OFFSET_PATTERN.search(offset_str))


def extract_time_parts(offset_str: str) -> tuple[int, str] | None:
    """Split "5-H" into (5, "H"); None when it does not parse."""
    match = OFFSET_PARTS_PATTERN.match(offset_str)
    if not match:
        return None
    return int(match.group(1)), match.group(2)


def decode_trend_datetime(date_str: str) -> datetime:
    """Parse YYYY-MM-DD (midnight) or YYYY-MM-DDTHH into a naive datetime."""
    fmt = DATE_T_FORMAT if "T" in date_str else DATE_FORMAT
    try:
        return datetime.strptime(date_str, fmt)
    except ValueError as e:
        raise InvalidTimeframeFormat(date_str, f"Invalid date in timeframe: {date_str}") from e


def _process_two_dates(date_part1: str, date_part2: str) -> str:
    if "T" not in date_part1 and "T" not in date_part2:
        return f"{date_part1} {date_part2}"

    # The hour-less side is parsed at midnight
    date1 = decode_trend_datetime(date_part1)
    date2 = decode_trend_datetime(date_part2)

    if abs(date2 - date1) > MAX_HOUR_RANGE:
        raise ExceedsMaxHourRange(f"{date_part1} {date_part2}")

    return f"{date1.strftime(DATE_T_FORMAT)} {date2.strftime(DATE_T_FORMAT)}"


def _process_date_with_offset(date_part1: str, offset_part: str) -> str:
    parts = extract_time_parts(offset_part)
    if parts is None:
        raise InvalidOffsetFormat(offset_part)
    count, unit = parts

    end = decode_trend_datetime(date_part1)
    fmt = DATE_T_FORMAT if "T" in date_part1 else DATE_FORMAT

    if unit in ("m", "y"):
        offset = pd.DateOffset(months=count) if unit == "m" else pd.DateOffset(years=count)
        start = end - offset
        if unit == "m":
            # Trends counts month windows one day shorter than calendar months
            start = start + timedelta(days=1)
        return f"{start.strftime(fmt)} {end.strftime(fmt)}"

    if "T" in date_part1 and ((unit == "d" and count > 7) or (unit == "H" and count > 7 * 24)):
        raise ExceedsMaxHourRange(
            f"{date_part1} {offset_part}",
            f"Offset cannot exceed 7 days for format with time: {date_part1} {offset_part}. "
            'Use YYYY-MM-DD format or "today".',
        )

    delta = timedelta(hours=count) if unit == "H" else timedelta(days=count)
    start = end - delta
    return f"{start.strftime(fmt)} {end.strftime(fmt)}"


def convert_timeframe(timeframe: str, convert_fixed_timeframes_to_dates: bool = False) -> str:
    """
    Convert a timeframe expression to the Google Trends range syntax.

    Args:
        timeframe: A fixed token ("now 7-d", "today 12-m", "all"), an explicit
            range ("2024-01-01 2024-02-01", "2024-09-12T10 2024-09-12T20"), or
            an anchor plus offset ("2024-09-12 3-m", "now 5-H").
        convert_fixed_timeframes_to_dates: Expand fixed tokens to explicit
            dates as well.

    Returns:
        The canonical timeframe string.

    Raises:
        InvalidTimeframeFormat: Unrecognized shape.
        InvalidOffsetFormat: The offset part does not parse.
        ExceedsMaxHourRange: An hour-precision range spans more than 7 days.
    """
    if timeframe in FIXED_TIMEFRAMES and not convert_fixed_timeframes_to_dates:
        return timeframe

    now = utcnow()
    if convert_fixed_timeframes_to_dates and timeframe == "all":
        return f"{ALL_TIMEFRAME_START} {now.strftime(DATE_FORMAT)}"

    expanded = timeframe.replace("now", now.strftime(DATE_T_FORMAT), 1)
    expanded = expanded.replace("today", now.strftime(DATE_FORMAT), 1)

    parts = expanded.split(" ")
    if len(parts) != 2:
        raise InvalidTimeframeFormat(expanded)

    date_part1, date_part2 = parts
    if is_valid_date(date_part1):
        if is_valid_date(date_part2):
            return _process_two_dates(date_part1, date_part2)
        if is_valid_offset(date_part2):
            return _process_date_with_offset(date_part1, date_part2)

    raise InvalidTimeframeFormat(expanded, f"Could not process timeframe: {expanded}")


def timeframe_to_timedelta(timeframe: str) -> timedelta:
    """Length of a timeframe, with fixed tokens expanded to dates."""
    start_str, end_str = convert_timeframe(timeframe, True).split(" ")
    return decode_trend_datetime(end_str) - decode_trend_datetime(start_str)


def verify_consistent_timeframes(timeframes: str | Sequence[str]) -> bool:
    """Check that every timeframe has exactly the same duration."""
    if isinstance(timeframes, str):
        return True

    durations = [timeframe_to_timedelta(tf) for tf in timeframes]
    if all(d == durations[0] for d in durations):
        return True

    raise InconsistentTimeframes(durations)


def get_resolution_and_range(timeframe: str) -> tuple[str, str]:
    """
    Sampling resolution Google Trends uses for a timeframe.

    Returns:
        (resolution, range description), e.g. ("8 minutes", "5 hours <= delta < 36 hours")
    """
    hours = timeframe_to_timedelta(timeframe).total_seconds() / 3600
    for upper, resolution, range_desc in RESOLUTION_TIERS:
        if hours < upper:
            return resolution, range_desc
    return LAST_RESOLUTION


def check_timeframe_resolution(timeframes: str | Sequence[str]) -> None:
    """
    Make sure timeframes can be plotted against each other.

    They must share a resolution, and the longest must be less than twice
    the shortest. Fewer than two timeframes always pass.

    Raises:
        DifferentResolutions: Timeframes fall into different resolution tiers.
        ResolutionRatioTooLarge: max duration >= 2 * min duration.
    """
    timeframes = ensure_list(timeframes)
    resolutions = [get_resolution_and_range(tf) for tf in timeframes]
    durations = [timeframe_to_timedelta(tf) for tf in timeframes]

    if len({res for res, _ in resolutions}) > 1:
        raise DifferentResolutions(
            [
                (tf, duration, res, range_desc)
                for tf, duration, (res, range_desc) in zip(timeframes, durations, resolutions)
            ]
        )

    if len(durations) <= 1:
        return

    min_index = max_index = 0
    for i, duration in enumerate(durations):
        if duration < durations[min_index]:
            min_index = i
        if duration > durations[max_index]:
            max_index = i

    if durations[max_index] >= durations[min_index] * 2:
        raise ResolutionRatioTooLarge(
            timeframes[max_index],
            durations[max_index],
            timeframes[min_index],
            durations[min_index],
        )
