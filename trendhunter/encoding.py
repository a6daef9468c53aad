"""
encoding.py

Build the `req` payload sent to the explore endpoint.

A request compares one or more (keyword, timeframe, geo) items. Callers pass
each of the three as a scalar or a list; shorter lists are repeated so that
every item gets one of each.
"""

import json
from dataclasses import dataclass
from typing import Any

from .errors import AmbiguousCombinationSize, SingleKeywordOnly
from .utils import ensure_list

DEFAULT_TIMEFRAME = "today 12-m"


@dataclass(frozen=True)
class ComparisonItem:
    """One row of an explore request."""

    keyword: str | None
    time: str | None
    geo: str | None

    def to_dict(self) -> dict[str, str]:
        # Missing values are left out, the same way JSON.stringify drops undefined
        item = {"keyword": self.keyword, "time": self.time, "geo": self.geo}
        return {k: v for k, v in item.items() if v is not None}


def _double_until(items: list[Any], length: int) -> list[Any]:
    while len(items) < length:
        items = items + items
    return items


def align_comparison_items(keywords: Any, timeframes: Any, geos: Any) -> list[ComparisonItem]:
    """
    Combine keyword, timeframe and geo lists into comparison items.

    Every list length must divide the longest one. Shorter lists are then
    doubled (self-concatenated) until they reach at least that length, so a
    length ratio that is not a power of two overshoots: keywords=["a"] with
    three timeframes yields four items, the last with no timeframe or geo
    beyond what the doubled lists provide.

    Raises:
        AmbiguousCombinationSize: A length does not divide the longest.
    """
    data = [ensure_list(keywords), ensure_list(timeframes), ensure_list(geos)]
    lengths = [len(values) for values in data]
    max_len = max(lengths)

    if any(n == 0 or max_len % n != 0 for n in lengths):
        raise AmbiguousCombinationSize(lengths)

    kw_list, tf_list, geo_list = (_double_until(values, max_len) for values in data)

    def at(values: list[Any], i: int) -> Any:
        return values[i] if i < len(values) else None

    return [
        ComparisonItem(keyword=kw, time=at(tf_list, i), geo=at(geo_list, i))
        for i, kw in enumerate(kw_list)
    ]


def build_explore_request(
    items: list[ComparisonItem],
    category: int = 0,
    property_filter: str = "",
) -> dict[str, str]:
    """Serialize comparison items into the explore endpoint's `req` parameter."""
    return {
        "req": json.dumps(
            {
                "comparisonItem": [item.to_dict() for item in items],
                "category": category or 0,
                "property": property_filter or "",
            }
        )
    }


def encode_request(
    keywords: Any,
    timeframe: Any = DEFAULT_TIMEFRAME,
    geo: Any = "",
    category: int = 0,
    property_filter: str = "",
) -> dict[str, str]:
    """Align the inputs and build the explore request."""
    items = align_comparison_items(keywords, timeframe or DEFAULT_TIMEFRAME, geo or "")
    return build_explore_request(items, category, property_filter)


def build_single_keyword_request(
    keyword: Any,
    timeframe: Any = DEFAULT_TIMEFRAME,
    geo: Any = "",
    category: int = 0,
    property_filter: str = "",
) -> dict[str, str]:
    """
    Build an explore request for endpoints that accept exactly one keyword.

    Raises:
        SingleKeywordOnly: More (or fewer) than one keyword was given.
    """
    keywords = ensure_list(keyword)
    if len(keywords) != 1:
        raise SingleKeywordOnly(keywords)
    return encode_request(keywords, timeframe, geo, category, property_filter)
