"""
errors.py

Exceptions raised by the trendhunter client.

Validation errors (timeframes, request encoding) are raised before any
network I/O and are never retried. Transport and protocol errors carry the
context needed to diagnose a failure without re-running it.
"""

from typing import Any


class TrendsError(Exception):
    """Base exception for Google Trends errors."""

    pass


# ==================== Validation ====================


class InvalidTimeframeFormat(TrendsError, ValueError):
    """Raised when a timeframe is neither a fixed token nor a valid range."""

    def __init__(self, timeframe: str, message: str | None = None):
        self.timeframe = timeframe
        super().__init__(
            message
            or f"Invalid timeframe format: {timeframe}. "
            "Expected format: '<date> <offset>' or '<date> <date>'."
        )


class ExceedsMaxHourRange(TrendsError, ValueError):
    """Raised when an hour-precision range spans more than 7 days."""

    def __init__(self, timeframe: str, message: str | None = None):
        self.timeframe = timeframe
        super().__init__(
            message
            or f"Date difference cannot exceed 7 days for format with hours: {timeframe}"
        )


class InvalidOffsetFormat(TrendsError, ValueError):
    """Raised when an offset does not parse as <count>-<H|d|m|y>."""

    def __init__(self, offset: str):
        self.offset = offset
        super().__init__(f"Invalid offset format: {offset!r}, expected e.g. '5-H', '7-d', '3-m', '1-y'")


class InconsistentTimeframes(TrendsError, ValueError):
    """Raised when timeframes compared together have different durations."""

    def __init__(self, durations: list[Any]):
        self.durations = durations
        super().__init__(
            "Inconsistent timeframes detected: "
            + ", ".join(str(d) for d in durations)
        )


class DifferentResolutions(TrendsError, ValueError):
    """Raised when timeframes fall into different sampling resolutions."""

    def __init__(self, report: list[tuple[str, Any, str, str]]):
        # (timeframe, duration, resolution, range description)
        self.report = report
        lines = ["Different resolutions detected for the timeframes:"]
        for timeframe, duration, resolution, range_desc in report:
            lines.append(
                f"Timeframe: {timeframe}, Delta: {duration}, "
                f"Resolution: {resolution} (based on range: {range_desc})"
            )
        super().__init__("\n".join(lines))


class ResolutionRatioTooLarge(TrendsError, ValueError):
    """Raised when the longest timeframe is at least twice the shortest."""

    def __init__(
        self,
        max_timeframe: str,
        max_duration: Any,
        min_timeframe: str,
        min_duration: Any,
    ):
        self.max_timeframe = max_timeframe
        self.max_duration = max_duration
        self.min_timeframe = min_timeframe
        self.min_duration = min_duration
        super().__init__(
            f"The maximum delta {max_duration} (from timeframe {max_timeframe}) "
            f"should be less than twice the minimum delta {min_duration} "
            f"(from timeframe {min_timeframe})."
        )


class AmbiguousCombinationSize(TrendsError, ValueError):
    """Raised when keyword/timeframe/geo list lengths cannot be combined."""

    def __init__(self, lengths: list[int]):
        self.lengths = lengths
        super().__init__(
            "Ambiguous input sizes: unable to determine how to combine inputs "
            f"of lengths {', '.join(str(n) for n in lengths)}"
        )


class SingleKeywordOnly(TrendsError, ValueError):
    """Raised when an endpoint that takes one keyword receives several."""

    def __init__(self, keywords: list[Any]):
        self.keywords = keywords
        super().__init__(
            f"This endpoint only supports a single keyword, got {len(keywords)}: {keywords}"
        )


# ==================== Transport / protocol ====================


class RequestExhausted(TrendsError):
    """Raised when every retry attempt of a request failed."""

    def __init__(self, status_codes: list[int], max_retries: int, advisory: str | None = None):
        self.status_codes = status_codes
        self.max_retries = max_retries
        self.advisory = advisory
        message = f"Failed after {max_retries} retries (status codes: {status_codes})"
        if advisory:
            message = f"{message}. {advisory}"
        super().__init__(message)


class ResponseFormatError(TrendsError):
    """Raised when a response is not in the format the protocol expects."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        content_type: str | None = None,
    ):
        self.status_code = status_code
        self.content_type = content_type
        super().__init__(message)


class QuotaExceeded(TrendsError):
    """Raised when the session is over quota for related queries/topics."""

    def __init__(self) -> None:
        super().__init__(
            "API quota exceeded for related queries/topics. "
            "To resolve this, you can try:\n"
            "1. Use a different referer in request headers:\n"
            "   tr.related_queries(keyword, headers={'referer': 'https://www.google.com/'})\n"
            "2. Use a different IP address by configuring a proxy:\n"
            "   tr.set_proxy('http://proxy:port')\n"
            "   # or\n"
            "   Trends(proxy={'http': 'http://proxy:port', 'https': 'https://proxy:port'})\n"
            "3. Wait before making additional requests"
        )
