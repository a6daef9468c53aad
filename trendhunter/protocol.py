"""
protocol.py

The explore -> widgetdata token handshake.

Phase 1 requests an embed/explore page. The widget description (type, token
and request parameters) is not served as JSON but embedded in the page as
JSON.parse('...'), so it has to be scraped out of the HTML/JS text.

Phase 2 sends the widget's request back together with its token to the
widgetdata endpoint matching the widget type. Those responses are "protected
JSON": a first line such as )]}', followed by the actual payload.
"""

import json
import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import httpx

from .config import TrendsConfig
from .encoding import encode_request
from .errors import QuotaExceeded, ResponseFormatError
from .transport import SessionTransport
from .utils import decode_escape_text

logger = logging.getLogger(__name__)

API_TOKEN_URL = "https://trends.google.com/trends/api/widgetdata"
API_TIMELINE_URL = f"{API_TOKEN_URL}/multiline"
API_MULTIRANGE_URL = f"{API_TOKEN_URL}/multirange"
API_GEO_URL = f"{API_TOKEN_URL}/comparedgeo"
API_RELATED_QUERIES_URL = f"{API_TOKEN_URL}/relatedsearches"

VALID_CONTENT_TYPES = frozenset(
    {
        "application/json",
        "application/javascript",
        "text/javascript",
    }
)

OVER_QUOTA_USER_TYPE = "USER_TYPE_EMBED_OVER_QUOTA"


class WidgetType(str, Enum):
    TIMESERIES = "fe_line_chart"
    MULTIRANGE_TIMESERIES = "fe_multi_range_chart"
    MULTI_HEAT_MAP = "fe_multi_heat_map"
    GEO_CHART = "fe_geo_chart_explore"
    RELATED_SEARCHES = "fe_related_searches"


# One widgetdata endpoint per widget type
WIDGET_ENDPOINTS: dict[WidgetType, str] = {
    WidgetType.TIMESERIES: API_TIMELINE_URL,
    WidgetType.MULTIRANGE_TIMESERIES: API_MULTIRANGE_URL,
    WidgetType.MULTI_HEAT_MAP: API_GEO_URL,
    WidgetType.GEO_CHART: API_GEO_URL,
    WidgetType.RELATED_SEARCHES: API_RELATED_QUERIES_URL,
}


@dataclass
class WidgetToken:
    """Widget description returned by the explore phase."""

    type: str
    token: str
    request: dict[str, Any] = field(default_factory=dict)
    bullets: list[dict[str, Any]] | None = None
    raw: dict[str, Any] = field(default_factory=dict, repr=False)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "WidgetToken":
        if not isinstance(data, dict) or "token" not in data:
            raise ResponseFormatError("Embedded widget data has no token")
        return cls(
            type=data.get("type", ""),
            token=data["token"],
            request=dict(data.get("request") or {}),
            bullets=data.get("bullets"),
            raw=data,
        )

    @property
    def widget_type(self) -> WidgetType:
        try:
            return WidgetType(self.type)
        except ValueError as e:
            raise ResponseFormatError(f"Unsupported widget type: {self.type!r}") from e

    @property
    def is_over_quota(self) -> bool:
        user_config = self.request.get("userConfig") or {}
        return user_config.get("userType") == OVER_QUOTA_USER_TYPE


class TokenExtractor(ABC):
    """Pulls the widget description out of an explore page."""

    @abstractmethod
    def extract(self, text: str) -> dict[str, Any] | None:
        """Return the embedded widget dict, or None if it cannot be found."""


class JsonParseLiteralExtractor(TokenExtractor):
    """Extracts the single-quoted literal passed to JSON.parse(...)."""

    PATTERN = re.compile(r"JSON\.parse\(\s*'([^']+)'\s*\)")

    def extract(self, text: str) -> dict[str, Any] | None:
        match = self.PATTERN.search(text)
        if not match:
            return None
        try:
            return json.loads(decode_escape_text(match.group(1)))
        except json.JSONDecodeError as e:
            raise ResponseFormatError(f"Failed to parse embedded widget data: {e}") from e


def parse_protected_json(response: httpx.Response) -> Any:
    """
    Parse a protected JSON response.

    The status must be 200 and the content type one of VALID_CONTENT_TYPES.
    The first line is an anti-XSSI preamble and is discarded.
    """
    content_type = response.headers.get("content-type", "").split(";")[0].strip().lower()

    if response.status_code != 200 or content_type not in VALID_CONTENT_TYPES:
        raise ResponseFormatError(
            f"Invalid response: status {response.status_code}, content type '{content_type}'",
            status_code=response.status_code,
            content_type=content_type,
        )

    parts = response.text.split("\n", 1)
    if len(parts) != 2:
        raise ResponseFormatError(
            "Protected JSON response has no payload after the preamble",
            status_code=response.status_code,
            content_type=content_type,
        )

    try:
        return json.loads(parts[1])
    except json.JSONDecodeError as e:
        raise ResponseFormatError(
            f"Failed to parse JSON data: {e}",
            status_code=response.status_code,
            content_type=content_type,
        ) from e


class TokenProtocolClient:
    """Runs the two-phase explore/widgetdata protocol over a SessionTransport."""

    def __init__(
        self,
        transport: SessionTransport,
        config: TrendsConfig | None = None,
        extractor: TokenExtractor | None = None,
    ):
        self.transport = transport
        self.config = config or transport.config
        self.extractor = extractor or JsonParseLiteralExtractor()

    def extract_token(self, text: str) -> WidgetToken:
        data = self.extractor.extract(text)
        if data is None:
            logger.warning("Failed to extract embedded widget data")
            raise ResponseFormatError("Could not find embedded widget data (JSON.parse literal) in response")
        return WidgetToken.from_dict(data)

    def extract_keywords(self, token: WidgetToken) -> list[str]:
        """
        Labels for the series returned by a widget.

        In entity-name mode these are the display names from the token's
        bullets; otherwise the keywords of the original request.
        """
        if self.config.use_entity_names and token.bullets:
            return [bullet.get("text", "") for bullet in token.bullets]
        return [
            item["complexKeywordsRestriction"]["keyword"][0]["value"]
            for item in token.request.get("comparisonItem", [])
        ]

    def token_to_data(self, token: WidgetToken, headers: dict[str, str] | None = None) -> Any:
        """Phase 2: fetch the widget data for a token."""
        url = WIDGET_ENDPOINTS[token.widget_type]
        params = {
            "req": json.dumps(token.request),
            "token": token.token,
            **self.config.default_params,
        }
        response = self.transport.dispatch(url, params, headers)
        return parse_protected_json(response)

    def get_token_data(
        self,
        url: str,
        params: dict[str, Any],
        request_fix: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
        raise_quota_error: bool = False,
    ) -> tuple[WidgetToken, Any]:
        """
        Run both phases.

        Args:
            url: Embed/explore URL for the widget kind wanted.
            params: Either a ready `req` dict (from encoding.encode_request) or
                keyword arguments for encode_request: keywords, timeframe, geo,
                cat, gprop.
            request_fix: Fields merged into the token's request before phase 2.
            headers: Extra request headers.
            raise_quota_error: Raise QuotaExceeded when the token says so.

        Returns:
            (token, parsed widget data)
        """
        if "req" in params:
            encoded = dict(params)
        else:
            encoded = encode_request(
                params["keywords"],
                params.get("timeframe"),
                params.get("geo"),
                params.get("cat", 0),
                params.get("gprop", ""),
            )
        encoded.update(self.config.default_params)

        response = self.transport.dispatch(url, encoded, headers)
        token = self.extract_token(response.text)

        if request_fix:
            token.request.update(request_fix)

        if raise_quota_error and token.is_over_quota:
            raise QuotaExceeded()

        data = self.token_to_data(token, headers)
        return token, data
