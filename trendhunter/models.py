"""
models.py

Data classes for trending searches and their news articles.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any

from .utils import ensure_list, truncate_string

TIME_FORMAT = "%Y-%m-%d %H:%M:%S"


def _parse_pub_date(pub_date: str) -> float | None:
    """RFC 822 date from RSS ("Mon, 14 Oct 2024 10:00:00 -0700") to a UNIX timestamp."""
    try:
        return parsedate_to_datetime(pub_date).timestamp()
    except (TypeError, ValueError):
        return None


def _format_ts(ts: float) -> str:
    return datetime.fromtimestamp(ts, tz=timezone.utc).strftime(TIME_FORMAT)


@dataclass
class NewsArticle:
    """A news article attached to a trending search."""

    title: str | None = None
    snippet: str | None = None
    source: str | None = None
    url: str | None = None
    time: float | None = None  # UNIX timestamp
    picture: str | None = None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "NewsArticle":
        title = data.get("title") or data.get("snippet")
        snippet = data.get("snippet") or data.get("title")

        time_value = None
        raw_time = data.get("time")
        if isinstance(raw_time, (int, float)):
            time_value = float(raw_time)
        elif isinstance(raw_time, str) and raw_time:
            try:
                time_value = datetime.fromisoformat(raw_time.replace("Z", "+00:00")).timestamp()
            except ValueError:
                time_value = None
        elif data.get("pubDate"):
            time_value = _parse_pub_date(data["pubDate"])

        return cls(
            title=title,
            snippet=snippet,
            source=data.get("source"),
            url=data.get("url") or data.get("link"),
            time=time_value,
            picture=data.get("picture") or data.get("image"),
        )

    def __str__(self) -> str:
        s = f"Title   : {self.title}"
        if self.source:
            s += f"\nSource  : {self.source}"
        if self.time:
            s += f"\nTime    : {_format_ts(self.time)}"
        if self.snippet:
            s += f"\nSnippet : {self.snippet}"
        return s


# Field order of a trending-now item in the batchexecute payload
_TREND_KEYWORD_FIELDS = (
    "keyword",
    "news",
    "geo",
    "started_timestamp",
    "ended_timestamp",
    "_unk2",
    "volume",
    "_unk3",
    "volume_growth_pct",
    "trend_keywords",
    "topics",
    "news_tokens",
    "normalized_keyword",
)


@dataclass
class TrendKeyword:
    """A trending search from the "Trending now" batch RPC."""

    keyword: str
    news: list[NewsArticle] = field(default_factory=list)
    geo: str | None = None
    started_timestamp: list[int] | None = None
    ended_timestamp: list[int] | None = None
    volume: int | None = None
    volume_growth_pct: float | None = None
    trend_keywords: list[str] = field(default_factory=list)
    topics: list[int] = field(default_factory=list)
    news_tokens: list[Any] = field(default_factory=list)
    normalized_keyword: str | None = None

    @classmethod
    def from_api(cls, item: list[Any]) -> "TrendKeyword":
        values = dict(zip(_TREND_KEYWORD_FIELDS, item))
        news = [NewsArticle.from_api(n) for n in values.get("news") or [] if isinstance(n, dict)]
        return cls(
            keyword=values.get("keyword", ""),
            news=news,
            geo=values.get("geo"),
            started_timestamp=values.get("started_timestamp"),
            ended_timestamp=values.get("ended_timestamp"),
            volume=values.get("volume"),
            volume_growth_pct=values.get("volume_growth_pct"),
            trend_keywords=values.get("trend_keywords") or [],
            topics=values.get("topics") or [],
            news_tokens=values.get("news_tokens") or [],
            normalized_keyword=values.get("normalized_keyword"),
        )

    @property
    def is_trend_finished(self) -> bool:
        return self.ended_timestamp is not None

    def hours_since_started(self) -> float:
        if not self.started_timestamp:
            return 0
        start = datetime.fromtimestamp(self.started_timestamp[0], tz=timezone.utc)
        return (datetime.now(timezone.utc) - start).total_seconds() / 3600

    def __str__(self) -> str:
        timeframe = _format_ts(self.started_timestamp[0]) if self.started_timestamp else "?"
        if self.is_trend_finished:
            timeframe += " - " + _format_ts(self.ended_timestamp[0])
        else:
            timeframe += " - now"

        s = f"Keyword        : {self.keyword}"
        s += f"\nGeo            : {self.geo}"
        s += f"\nVolume         : {self.volume} ({self.volume_growth_pct}%)"
        s += f"\nTimeframe      : {timeframe}"
        s += (
            f"\nTrend keywords : {len(self.trend_keywords)} keywords "
            f"({truncate_string(','.join(self.trend_keywords), 50)})"
        )
        s += f"\nNews tokens    : {len(self.news_tokens)} tokens"
        return s


@dataclass
class TrendKeywordLite:
    """A trending search from an RSS feed or the realtime endpoint."""

    keyword: str
    volume: str | None = None
    trend_keywords: list[str] | None = None
    link: str | None = None
    started: float | None = None
    picture: str | None = None
    picture_source: str | None = None
    news: list[NewsArticle] = field(default_factory=list)

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "TrendKeywordLite":
        title = data.get("title")
        if isinstance(title, dict):
            title = title.get("query")

        trend_keywords = None
        if data.get("relatedQueries"):
            trend_keywords = [item.get("query") for item in data["relatedQueries"]]
        elif data.get("description"):
            trend_keywords = data["description"].split(", ")
        elif data.get("idsForDedup"):
            trend_keywords = sorted({word for ids in data["idsForDedup"] for word in ids.split(" ")})

        image = data.get("image") or {}
        articles = data.get("articles") or data.get("news_item") or []
        news = [NewsArticle.from_api(a) for a in ensure_list(articles) if isinstance(a, dict)]

        started = _parse_pub_date(data["pubDate"]) if data.get("pubDate") else None
        if started is None:
            times = [n.time for n in news if n.time]
            started = min(times) if times else None

        return cls(
            keyword=title,
            volume=data.get("formattedTraffic") or data.get("approx_traffic"),
            trend_keywords=trend_keywords,
            link=data.get("shareUrl") or data.get("link"),
            started=started,
            picture=data.get("picture") or image.get("imageUrl"),
            picture_source=data.get("picture_source") or image.get("source"),
            news=news,
        )

    def __str__(self) -> str:
        s = f"Keyword        : {self.keyword}"
        if self.volume:
            s += f"\nVolume         : {self.volume}"
        if self.started:
            s += f"\nStarted        : {_format_ts(self.started)}"
        if self.trend_keywords:
            s += (
                f"\nTrend keywords : {len(self.trend_keywords)} keywords "
                f"({truncate_string(','.join(self.trend_keywords), 50)})"
            )
        if self.news:
            s += f"\nNews           : {len(self.news)} news"
        return s
