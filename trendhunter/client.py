"""
client.py

Public Google Trends client.

Usage:
    from trendhunter import Trends

    tr = Trends(request_delay=5.0)
    df = tr.interest_over_time(["python", "javascript"], timeframe="today 3-m")
    related = tr.related_queries("python", geo="US")
    regions = tr.interest_by_region("python")
    trending = tr.trending_now(geo="US")
"""

import json
import time
from typing import Any, Callable
from urllib.parse import quote

import httpx

from .config import ProxyConfig, TrendsConfig, normalize_language
from .converter import TrendsDataConverter
from .encoding import build_single_keyword_request, encode_request
from .errors import ResponseFormatError
from .models import NewsArticle, TrendKeyword, TrendKeywordLite
from .protocol import (
    TokenExtractor,
    TokenProtocolClient,
    WidgetType,
    parse_protected_json,
)
from .timeframes import check_timeframe_resolution, convert_timeframe
from .transport import EXPLORE_PAGE_URL, SessionTransport
from .utils import ensure_list

BATCH_URL = "https://trends.google.com/_/TrendsUi/data/batchexecute"
HOT_TRENDS_URL = "https://trends.google.com/trends/hottrends/visualize/internal/data"

API_URL = "https://trends.google.com/trends/api"
API_TOPCHARTS_URL = f"{API_URL}/topcharts"
API_AUTOCOMPLETE_URL = f"{API_URL}/autocomplete/"
REALTIME_SEARCHES_URL = f"{API_URL}/realtimetrends"

EMBED_URL = "https://trends.google.com/trends/embed/explore"
EMBED_GEO_URL = f"{EMBED_URL}/GEO_MAP"
EMBED_TOPICS_URL = f"{EMBED_URL}/RELATED_TOPICS"
EMBED_QUERIES_URL = f"{EMBED_URL}/RELATED_QUERIES"
EMBED_TIMESERIES_URL = f"{EMBED_URL}/TIMESERIES"

DAILY_RSS_URL = "https://trends.google.com/trends/trendingsearches/daily/rss"
REALTIME_RSS_URL = "https://trends.google.com/trending/rss"

# batchexecute RPC ids
TRENDING_NOW_RPC = "i0OFE"
NEWS_BY_IDS_RPC = "w4opAf"


def parse_batch_response(response: httpx.Response, rpc_id: str) -> Any:
    """
    Extract the payload of one RPC from a batchexecute response.

    The body is an anti-XSSI line followed by length-prefixed JSON chunks;
    the RPC result is the chunk ["wrb.fr", rpc_id, "<json string>", ...].
    """
    if response.status_code != 200:
        raise ResponseFormatError(
            f"Invalid batch response: status {response.status_code}",
            status_code=response.status_code,
        )

    for line in response.text.split("\n")[1:]:
        line = line.strip()
        if not line.startswith("["):
            continue
        try:
            chunk = json.loads(line)
        except json.JSONDecodeError:
            continue
        for entry in chunk:
            if isinstance(entry, list) and len(entry) > 2 and entry[0] == "wrb.fr" and entry[1] == rpc_id:
                if entry[2] is None:
                    raise ResponseFormatError(f"Empty payload for RPC {rpc_id}", status_code=200)
                return json.loads(entry[2])

    raise ResponseFormatError(f"No result for RPC {rpc_id} in batch response", status_code=200)


class Trends:
    """
    Google Trends client.

    Args:
        language: Interface language; only the first two letters are kept.
        tzs: Timezone offset in minutes west of UTC (default: local offset).
        request_delay: Minimum seconds per two-request window.
        max_retries: Attempts per request before RequestExhausted.
        use_entity_names: Label series with the entity names Google resolved
            (token bullets) instead of the keywords passed in.
        proxy: "http://host:port" or {"http": ..., "https": ...}.
        config: A ready TrendsConfig; overrides the arguments above.
        transport: httpx transport (tests use httpx.MockTransport).
        clock / sleep: Timing functions for the throttle and backoff.
        extractor: Strategy that scrapes the widget token from explore pages.
    """

    def __init__(
        self,
        language: str = "en",
        tzs: int | None = None,
        request_delay: float = 5.0,
        max_retries: int = 3,
        use_entity_names: bool = False,
        proxy: ProxyConfig = None,
        *,
        config: TrendsConfig | None = None,
        transport: httpx.BaseTransport | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
        extractor: TokenExtractor | None = None,
    ):
        self.config = config or TrendsConfig(
            language=language,
            tz=tzs,
            request_delay=request_delay,
            max_retries=max_retries,
            use_entity_names=use_entity_names,
            proxy=proxy,
        )
        self.transport = SessionTransport(self.config, transport=transport, clock=clock, sleep=sleep)
        self.protocol = TokenProtocolClient(self.transport, self.config, extractor)

    @property
    def language(self) -> str:
        return self.config.language

    @property
    def tzs(self) -> int:
        return self.config.tz

    def set_proxy(self, proxy: ProxyConfig) -> None:
        """Set or clear the proxy; applies from the next request."""
        self.transport.set_proxy(proxy)

    # ==================== Explore widgets ====================

    def interest_over_time(
        self,
        keywords: str | list[str],
        timeframe: str | list[str] = "today 12-m",
        geo: str | list[str] = "",
        cat: int = 0,
        gprop: str = "",
        return_raw: bool = False,
        headers: dict[str, str] | None = None,
    ) -> Any:
        """
        Interest over time for up to five keywords.

        Several timeframes may be compared (one per keyword, or broadcast)
        as long as they share a resolution.

        Returns:
            DataFrame indexed by time with one column per keyword (long-format
            DataFrame for multi-range comparisons), or (token, data) when
            return_raw is set.
        """
        check_timeframe_resolution(timeframe)
        timeframes = [convert_timeframe(tf) for tf in ensure_list(timeframe)]

        token, data = self.protocol.get_token_data(
            EMBED_TIMESERIES_URL,
            encode_request(keywords, timeframes, geo, cat, gprop),
            headers=headers,
        )

        if return_raw:
            return token, data

        if token.type == WidgetType.TIMESERIES.value:
            return TrendsDataConverter.interest_over_time(data, self.protocol.extract_keywords(token))
        if token.type == WidgetType.MULTIRANGE_TIMESERIES.value:
            bullets = TrendsDataConverter.token_to_bullets(token)
            return TrendsDataConverter.multirange_interest_over_time(data, bullets)
        return data

    def _related(
        self,
        url: str,
        keyword: str,
        timeframe: str | list[str],
        geo: str,
        cat: int,
        gprop: str,
        return_raw: bool,
        headers: dict[str, str] | None,
    ) -> Any:
        timeframes = [convert_timeframe(tf) for tf in ensure_list(timeframe)]
        params = build_single_keyword_request(keyword, timeframes, geo, cat, gprop)
        token, data = self.protocol.get_token_data(
            url,
            params,
            headers=headers or {"referer": EXPLORE_PAGE_URL},
            raise_quota_error=True,
        )
        if return_raw:
            return token, data
        return TrendsDataConverter.related_queries(data)

    def related_queries(
        self,
        keyword: str,
        timeframe: str | list[str] = "today 12-m",
        geo: str = "",
        cat: int = 0,
        gprop: str = "",
        return_raw: bool = False,
        headers: dict[str, str] | None = None,
    ) -> Any:
        """
        Top and rising queries related to one keyword.

        Returns:
            {"top": DataFrame, "rising": DataFrame}

        Raises:
            SingleKeywordOnly: More than one keyword given.
            QuotaExceeded: Google flagged the session as over quota.
        """
        return self._related(EMBED_QUERIES_URL, keyword, timeframe, geo, cat, gprop, return_raw, headers)

    def related_topics(
        self,
        keyword: str,
        timeframe: str | list[str] = "today 12-m",
        geo: str = "",
        cat: int = 0,
        gprop: str = "",
        return_raw: bool = False,
        headers: dict[str, str] | None = None,
    ) -> Any:
        """Top and rising topics related to one keyword (see related_queries)."""
        return self._related(EMBED_TOPICS_URL, keyword, timeframe, geo, cat, gprop, return_raw, headers)

    def interest_by_region(
        self,
        keywords: str | list[str],
        timeframe: str | list[str] = "today 12-m",
        geo: str = "",
        cat: int = 0,
        gprop: str = "",
        resolution: str | None = None,
        inc_low_vol: bool = False,
        return_raw: bool = False,
        headers: dict[str, str] | None = None,
    ) -> Any:
        """
        Interest broken down by region.

        Args:
            resolution: COUNTRY, REGION, CITY or DMA. Defaults to COUNTRY for
                worldwide requests and REGION otherwise.
            inc_low_vol: Include regions with low search volume.

        Returns:
            DataFrame indexed by region name, one column per keyword.
        """
        timeframes = [convert_timeframe(tf) for tf in ensure_list(timeframe)]
        request_fix = {
            "resolution": resolution or ("COUNTRY" if not geo else "REGION"),
            "includeLowSearchVolumeGeos": inc_low_vol,
        }

        token, data = self.protocol.get_token_data(
            EMBED_GEO_URL,
            encode_request(keywords, timeframes, geo, cat, gprop),
            request_fix=request_fix,
            headers=headers,
        )

        if return_raw:
            return token, data

        bullets = token.bullets or [{"text": k} for k in ensure_list(keywords)]
        return TrendsDataConverter.geo_data(data, bullets)

    # ==================== Plain endpoints ====================

    def suggestions(
        self,
        keyword: str,
        language: str | None = None,
        return_raw: bool = False,
    ) -> Any:
        """Autocomplete suggestions (topics with their mid) for a keyword."""
        params = self.config.default_params
        if language:
            params["hl"] = normalize_language(language)
        url = API_AUTOCOMPLETE_URL + quote(keyword.replace("'", ""))

        data = parse_protected_json(self.transport.dispatch(url, params))
        if return_raw:
            return data
        return TrendsDataConverter.suggestions(data)

    def hot_trends(self) -> Any:
        """Raw hot trends data."""
        response = self.transport.dispatch(HOT_TRENDS_URL)
        try:
            return response.json()
        except json.JSONDecodeError as e:
            raise ResponseFormatError(f"Failed to parse hot trends data: {e}", status_code=response.status_code) from e

    def top_year_charts(self, year: str | int = "2023", geo: str = "GLOBAL") -> Any:
        """Year-in-review top charts."""
        params = {
            "date": str(year),
            "geo": geo,
            "isMobile": "false",
            **self.config.default_params,
        }
        return parse_protected_json(self.transport.dispatch(API_TOPCHARTS_URL, params))

    def trending_stories(
        self,
        geo: str = "US",
        category: str = "all",
        max_stories: int = 200,
        return_raw: bool = False,
    ) -> Any:
        """
        Real-time trending stories.

        Args:
            category: all, e (entertainment), b (business), t (top stories),
                m (health), s (sci/tech), h (top)
        """
        params = {
            "ns": 15,
            "geo": geo,
            "tz": self.config.tz,
            "hl": "en",
            "cat": category,
            "fi": "0",
            "fs": "0",
            "ri": max_stories,
            "rs": max_stories,
            "sort": 0,
        }
        data = parse_protected_json(self.transport.dispatch(REALTIME_SEARCHES_URL, params))
        if return_raw:
            return data

        stories = (data.get("storySummaries") or {}).get("trendingStories") or []
        return [
            {
                "title": story.get("title"),
                "entityNames": story.get("entityNames", []),
                "articles": story.get("articles", []),
            }
            for story in stories
        ]

    def _get_batch(self, rpc_id: str, data: Any) -> Any:
        req_data = json.dumps([[[rpc_id, json.dumps(data), None, "generic"]]])
        response = self.transport.dispatch(
            BATCH_URL,
            headers={"content-type": "application/x-www-form-urlencoded;charset=UTF-8"},
            method="POST",
            data={"f.req": req_data},
        )
        return parse_batch_response(response, rpc_id)

    def trending_now(
        self,
        geo: str = "US",
        language: str = "en",
        hours: int = 24,
        num_news: int = 0,
        return_raw: bool = False,
    ) -> Any:
        """Searches trending right now (the "Trending now" page)."""
        data = self._get_batch(TRENDING_NOW_RPC, [None, None, geo, num_news, language, hours, 1])
        if return_raw:
            return data
        return [TrendKeyword.from_api(item) for item in data[1]]

    def trending_now_news_by_ids(
        self,
        news_ids: list[Any],
        max_news: int = 3,
        return_raw: bool = False,
    ) -> Any:
        """News articles for the news tokens of trending-now items."""
        data = self._get_batch(NEWS_BY_IDS_RPC, [news_ids, max_news])
        if return_raw:
            return data
        return [NewsArticle.from_api(article) for article in data[0]]

    def _rss(self, url: str, geo: str, return_raw: bool) -> Any:
        response = self.transport.dispatch(url, {"geo": geo})
        if return_raw:
            return response.text
        return [TrendKeywordLite.from_api(item) for item in TrendsDataConverter.rss_items(response.text)]

    def trending_now_by_rss(self, geo: str = "US", return_raw: bool = False) -> Any:
        """Trending searches from the realtime RSS feed."""
        return self._rss(REALTIME_RSS_URL, geo, return_raw)

    def daily_trends_by_rss(self, geo: str = "US", return_raw: bool = False) -> Any:
        """Trending searches from the daily RSS feed."""
        return self._rss(DAILY_RSS_URL, geo, return_raw)

    # ==================== Lifecycle ====================

    def close(self) -> None:
        self.transport.close()

    def __enter__(self) -> "Trends":
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()
