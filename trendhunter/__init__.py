"""
trendhunter

Google Trends client built on the explore -> widgetdata token protocol.
"""

from .client import Trends
from .config import TrendsConfig
from .errors import (
    AmbiguousCombinationSize,
    DifferentResolutions,
    ExceedsMaxHourRange,
    InconsistentTimeframes,
    InvalidOffsetFormat,
    InvalidTimeframeFormat,
    QuotaExceeded,
    RequestExhausted,
    ResolutionRatioTooLarge,
    ResponseFormatError,
    SingleKeywordOnly,
    TrendsError,
)
from .models import NewsArticle, TrendKeyword, TrendKeywordLite
from .timeframes import (
    check_timeframe_resolution,
    convert_timeframe,
    get_resolution_and_range,
    timeframe_to_timedelta,
    verify_consistent_timeframes,
)

__version__ = "0.1.0"

__all__ = [
    "Trends",
    "TrendsConfig",
    "NewsArticle",
    "TrendKeyword",
    "TrendKeywordLite",
    "convert_timeframe",
    "timeframe_to_timedelta",
    "verify_consistent_timeframes",
    "get_resolution_and_range",
    "check_timeframe_resolution",
    "TrendsError",
    "InvalidTimeframeFormat",
    "ExceedsMaxHourRange",
    "InvalidOffsetFormat",
    "InconsistentTimeframes",
    "DifferentResolutions",
    "ResolutionRatioTooLarge",
    "AmbiguousCombinationSize",
    "SingleKeywordOnly",
    "RequestExhausted",
    "ResponseFormatError",
    "QuotaExceeded",
]
