"""
converter.py

Turn raw widget/endpoint payloads into pandas DataFrames and plain dicts.
"""

import xml.etree.ElementTree as ET
from typing import Any

import pandas as pd

from .errors import ResponseFormatError


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _text(el: ET.Element | None) -> str | None:
    if el is None or el.text is None:
        return None
    return el.text.strip()


class TrendsDataConverter:
    """Static helpers that shape Google Trends responses."""

    @staticmethod
    def interest_over_time(data: dict[str, Any], keywords: list[str]) -> pd.DataFrame:
        """
        Timeline data as a DataFrame indexed by UTC time, one column per keyword.

        An `isPartial` column flags the last, still incomplete, point.
        """
        timeline = (data or {}).get("default", {}).get("timelineData", [])
        if not timeline:
            return pd.DataFrame()

        rows = []
        for point in timeline:
            row: dict[str, Any] = {"time [UTC]": int(point["time"])}
            values = point.get("value", [])
            for i, keyword in enumerate(keywords):
                row[keyword] = values[i] if i < len(values) else None
            row["isPartial"] = bool(point.get("isPartial", False))
            rows.append(row)

        df = pd.DataFrame(rows)
        df["time [UTC]"] = pd.to_datetime(df["time [UTC]"], unit="s", utc=True)
        return df.set_index("time [UTC]")

    @staticmethod
    def multirange_interest_over_time(data: dict[str, Any], bullets: list[dict[str, Any]]) -> pd.DataFrame:
        """
        Multi-range timeline in long format.

        Columns: range (index of the compared timeframe), keyword, time, value,
        formattedTime.
        """
        timeline = (data or {}).get("default", {}).get("timelineData", [])
        if not timeline:
            return pd.DataFrame()

        rows = []
        for point in timeline:
            for i, column in enumerate(point.get("columnData", [])):
                rows.append(
                    {
                        "range": i,
                        "keyword": bullets[i]["text"] if i < len(bullets) else None,
                        "time": int(column["time"]) if column.get("time") else None,
                        "value": column.get("value"),
                        "formattedTime": column.get("formattedTime", ""),
                    }
                )

        df = pd.DataFrame(rows)
        df["time"] = pd.to_datetime(df["time"], unit="s", utc=True)
        return df

    @staticmethod
    def related_queries(data: dict[str, Any]) -> dict[str, pd.DataFrame]:
        """
        Ranked lists as {"top": DataFrame, "rising": DataFrame}.

        Topic entries are flattened (topic.title, topic.type, topic.mid).
        """
        ranked = (data or {}).get("default", {}).get("rankedList") or []
        result = {"top": pd.DataFrame(), "rising": pd.DataFrame()}

        for key, index in (("top", 0), ("rising", 1)):
            if index < len(ranked) and ranked[index].get("rankedKeyword"):
                result[key] = pd.json_normalize(ranked[index]["rankedKeyword"])

        return result

    @staticmethod
    def geo_data(data: dict[str, Any], bullets: list[dict[str, Any]]) -> pd.DataFrame:
        """Interest per region, indexed by geoName with one column per bullet."""
        regions = (data or {}).get("default", {}).get("geoMapData")
        if not regions:
            return pd.DataFrame()

        labels = [bullet["text"] for bullet in bullets]
        rows = []
        for region in regions:
            row: dict[str, Any] = {
                "geoName": region.get("geoName", ""),
                "geoCode": region.get("geoCode", ""),
            }
            if "coordinates" in region:
                row["lat"] = region["coordinates"].get("lat")
                row["lng"] = region["coordinates"].get("lng")
            values = region.get("value", [])
            for i, label in enumerate(labels):
                row[label] = values[i] if i < len(values) else None
            rows.append(row)

        return pd.DataFrame(rows).set_index("geoName")

    @staticmethod
    def suggestions(data: dict[str, Any]) -> list[dict[str, str]]:
        topics = (data or {}).get("default", {}).get("topics")
        if not isinstance(topics, list):
            return []
        return [
            {"title": topic.get("title", ""), "type": topic.get("type", ""), "mid": topic.get("mid", "")}
            for topic in topics
        ]

    @staticmethod
    def token_to_bullets(token: Any) -> list[dict[str, Any]]:
        bullets = getattr(token, "bullets", None)
        if not bullets:
            return []
        return [{"text": b.get("text", ""), "color": b.get("color")} for b in bullets]

    @staticmethod
    def rss_items(xml_text: str) -> list[dict[str, Any]]:
        """
        Parse a trending-searches RSS feed.

        Each item becomes a dict with title, approx_traffic, link, pubDate,
        picture, picture_source and news_item (list of article dicts).
        """
        try:
            root = ET.fromstring(xml_text)
        except ET.ParseError as e:
            raise ResponseFormatError(f"Failed to parse RSS feed: {e}") from e
        items = []

        for item in root.iter("item"):
            entry: dict[str, Any] = {"news_item": []}
            for child in item:
                name = _local_name(child.tag)
                if name == "news_item":
                    article = {_local_name(c.tag).replace("news_item_", ""): _text(c) for c in child}
                    entry["news_item"].append(article)
                else:
                    entry[name] = _text(child)

            if entry.get("title"):
                items.append(entry)

        return items
