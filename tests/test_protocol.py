import json

import httpx
import pytest

from conftest import embed_page, protected_json, widget_request
from trendhunter.config import TrendsConfig
from trendhunter.encoding import encode_request
from trendhunter.errors import QuotaExceeded, ResponseFormatError
from trendhunter.protocol import (
    JsonParseLiteralExtractor,
    TokenExtractor,
    TokenProtocolClient,
    WidgetToken,
    WidgetType,
    parse_protected_json,
)
from trendhunter.transport import SessionTransport

EMBED_URL = "https://trends.google.com/trends/embed/explore/TIMESERIES"
EMBED_PATH = "/trends/embed/explore/TIMESERIES"
MULTILINE_PATH = "/trends/api/widgetdata/multiline"
COMPAREDGEO_PATH = "/trends/api/widgetdata/comparedgeo"

TIMELINE_DATA = {"default": {"timelineData": []}}


def make_widget(*keywords, type="fe_line_chart", token="APP6_UEAAAAA", **extra):
    widget = {"type": type, "token": token, "request": widget_request(*keywords)}
    widget.update(extra)
    return widget


@pytest.fixture
def protocol(server, clock):
    config = TrendsConfig(tz=0, request_delay=0, bootstrap_pause=0)
    transport = SessionTransport(config, transport=server.transport, clock=clock, sleep=clock.sleep)
    return TokenProtocolClient(transport)


def json_response(body, content_type="application/json; charset=utf-8", status_code=200):
    return httpx.Response(status_code, text=body, headers={"content-type": content_type})


# ==================== Extraction ====================


def test_extract_escaped_literal():
    html = "<script>JSON.parse( '{\\x22type\\x22:\\x22fe_line_chart\\x22,\\x22token\\x22:\\x22abc\\x22}' )</script>"
    assert JsonParseLiteralExtractor().extract(html) == {"type": "fe_line_chart", "token": "abc"}


def test_extract_decodes_unicode_escapes():
    html = "JSON.parse('{\\x22text\\x22:\\x22caf\\u00e9\\x22}')"
    assert JsonParseLiteralExtractor().extract(html) == {"text": "café"}


def test_extract_without_literal():
    assert JsonParseLiteralExtractor().extract("<html>nothing here</html>") is None


def test_extract_malformed_literal():
    with pytest.raises(ResponseFormatError):
        JsonParseLiteralExtractor().extract("JSON.parse('{not json')")


def test_widget_token_requires_token():
    with pytest.raises(ResponseFormatError):
        WidgetToken.from_dict({"type": "fe_line_chart"})


def test_widget_token_type():
    token = WidgetToken.from_dict(make_widget("python"))
    assert token.widget_type is WidgetType.TIMESERIES
    assert not token.is_over_quota

    with pytest.raises(ResponseFormatError):
        WidgetToken.from_dict(make_widget("python", type="fe_unknown_widget")).widget_type


# ==================== Protected JSON ====================


@pytest.mark.parametrize(
    "content_type",
    ["application/json; charset=utf-8", "application/javascript", "text/javascript; charset=UTF-8"],
)
def test_parse_protected_json(content_type):
    response = json_response(")]}',\n{\"default\": [1, 2]}", content_type)
    assert parse_protected_json(response) == {"default": [1, 2]}


def test_parse_protected_json_keeps_multiline_payload():
    response = json_response(")]}'\n{\"a\":\n [1,\n 2]}")
    assert parse_protected_json(response) == {"a": [1, 2]}


def test_parse_protected_json_rejects_html():
    with pytest.raises(ResponseFormatError) as excinfo:
        parse_protected_json(json_response("<html></html>", "text/html; charset=utf-8"))
    assert excinfo.value.content_type == "text/html"
    assert excinfo.value.status_code == 200


def test_parse_protected_json_rejects_bad_status():
    with pytest.raises(ResponseFormatError) as excinfo:
        parse_protected_json(json_response(")]}',\n{}", status_code=500))
    assert excinfo.value.status_code == 500


@pytest.mark.parametrize("body", [")]}',", ")]}',\n{truncated"])
def test_parse_protected_json_rejects_bad_payload(body):
    with pytest.raises(ResponseFormatError):
        parse_protected_json(json_response(body))


# ==================== Two-phase protocol ====================


def test_get_token_data(server, protocol):
    widget = make_widget("python", "rust")
    server.route(EMBED_PATH, embed_page(widget))
    server.route(MULTILINE_PATH, protected_json(TIMELINE_DATA))

    params = encode_request(["python", "rust"], "today 12-m", "US")
    token, data = protocol.get_token_data(EMBED_URL, params)

    assert token.token == "APP6_UEAAAAA"
    assert token.request == widget["request"]
    assert data == TIMELINE_DATA

    explore = server.hits(EMBED_PATH)[0]
    assert json.loads(explore.url.params["req"]) == json.loads(params["req"])
    assert explore.url.params["hl"] == "en"
    assert explore.url.params["tz"] == "0"

    widgetdata = server.hits(MULTILINE_PATH)[0]
    assert widgetdata.url.params["token"] == "APP6_UEAAAAA"
    assert json.loads(widgetdata.url.params["req"]) == widget["request"]
    assert widgetdata.url.params["hl"] == "en"


def test_get_token_data_encodes_keyword_params(server, protocol):
    server.route(EMBED_PATH, embed_page(make_widget("python")))
    server.route(MULTILINE_PATH, protected_json(TIMELINE_DATA))

    protocol.get_token_data(EMBED_URL, {"keywords": ["python"], "timeframe": "now 7-d", "geo": "GB"})

    req = json.loads(server.hits(EMBED_PATH)[0].url.params["req"])
    assert req["comparisonItem"] == [{"keyword": "python", "time": "now 7-d", "geo": "GB"}]


def test_widget_type_selects_endpoint(server, protocol):
    server.route(EMBED_PATH, embed_page(make_widget("python", type="fe_geo_chart_explore")))
    server.route(COMPAREDGEO_PATH, protected_json({"default": {"geoMapData": []}}))

    _, data = protocol.get_token_data(EMBED_URL, encode_request("python"))

    assert data == {"default": {"geoMapData": []}}
    assert server.hits(MULTILINE_PATH) == []


def test_request_fix_is_sent_in_phase_two(server, protocol):
    server.route(EMBED_PATH, embed_page(make_widget("python", type="fe_geo_chart_explore")))
    server.route(COMPAREDGEO_PATH, protected_json({"default": {"geoMapData": []}}))

    protocol.get_token_data(
        EMBED_URL,
        encode_request("python"),
        request_fix={"resolution": "REGION", "includeLowSearchVolumeGeos": False},
    )

    req = json.loads(server.hits(COMPAREDGEO_PATH)[0].url.params["req"])
    assert req["resolution"] == "REGION"
    assert req["includeLowSearchVolumeGeos"] is False
    assert req["comparisonItem"] == widget_request("python")["comparisonItem"]


def test_over_quota_stops_before_phase_two(server, protocol):
    widget = make_widget("python", type="fe_related_searches")
    widget["request"]["userConfig"] = {"userType": "USER_TYPE_EMBED_OVER_QUOTA"}
    server.route(EMBED_PATH, embed_page(widget))

    with pytest.raises(QuotaExceeded):
        protocol.get_token_data(EMBED_URL, encode_request("python"), raise_quota_error=True)
    assert server.hits("/trends/api/widgetdata/relatedsearches") == []


def test_over_quota_ignored_unless_requested(server, protocol):
    widget = make_widget("python", type="fe_related_searches")
    widget["request"]["userConfig"] = {"userType": "USER_TYPE_EMBED_OVER_QUOTA"}
    server.route(EMBED_PATH, embed_page(widget))
    server.route("/trends/api/widgetdata/relatedsearches", protected_json({"default": {"rankedList": []}}))

    token, _ = protocol.get_token_data(EMBED_URL, encode_request("python"))
    assert token.is_over_quota


def test_unknown_widget_type(server, protocol):
    server.route(EMBED_PATH, embed_page(make_widget("python", type="fe_unknown_widget")))

    with pytest.raises(ResponseFormatError, match="fe_unknown_widget"):
        protocol.get_token_data(EMBED_URL, encode_request("python"))
    assert [r.url.path for r in server.requests][-1] == EMBED_PATH


def test_missing_widget_data(server, protocol):
    server.route(EMBED_PATH, lambda request: httpx.Response(200, text="<html>consent page</html>"))

    with pytest.raises(ResponseFormatError, match="JSON.parse"):
        protocol.get_token_data(EMBED_URL, encode_request("python"))


def test_custom_extractor(server, clock):
    class FixedExtractor(TokenExtractor):
        def extract(self, text):
            return make_widget("python", token="FIXED")

    server.route(EMBED_PATH, lambda request: httpx.Response(200, text="{}"))
    server.route(MULTILINE_PATH, protected_json(TIMELINE_DATA))
    config = TrendsConfig(tz=0, request_delay=0, bootstrap_pause=0)
    transport = SessionTransport(config, transport=server.transport, clock=clock, sleep=clock.sleep)
    protocol = TokenProtocolClient(transport, extractor=FixedExtractor())

    token, _ = protocol.get_token_data(EMBED_URL, encode_request("python"))

    assert token.token == "FIXED"
    assert server.hits(MULTILINE_PATH)[0].url.params["token"] == "FIXED"


# ==================== Keywords ====================


def test_extract_keywords(protocol):
    token = WidgetToken.from_dict(
        make_widget("/m/05z1_", "rust", bullets=[{"text": "Python"}, {"text": "Rust"}])
    )
    assert protocol.extract_keywords(token) == ["/m/05z1_", "rust"]

    protocol.config.use_entity_names = True
    assert protocol.extract_keywords(token) == ["Python", "Rust"]


def test_extract_keywords_entity_names_without_bullets(protocol):
    protocol.config.use_entity_names = True
    token = WidgetToken.from_dict(make_widget("python"))
    assert protocol.extract_keywords(token) == ["python"]
