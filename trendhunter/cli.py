#!/usr/bin/env python3
"""
cli.py

Command line access to the Trends client.

Usage:
    trendhunter interest -k "python,javascript" -t "today 3-m" -g US
    trendhunter related -k python
    trendhunter region -k python --resolution REGION -g US
    trendhunter suggest -k "machine learn"
    trendhunter trending -g GB
    trendhunter rss -g US --daily
"""

import argparse
import logging
import sys

import httpx
import pandas as pd
from pydantic import ValidationError

from .client import Trends
from .config import TrendsConfig
from .errors import TrendsError

COMMANDS = ["interest", "related", "topics", "region", "suggest", "trending", "rss"]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="trendhunter", description="Google Trends client")
    parser.add_argument("command", choices=COMMANDS)
    parser.add_argument("--keywords", "-k", help="Comma-separated keywords")
    parser.add_argument("--geo", "-g", default="", help="Geographic region (e.g. US, GB-ENG)")
    parser.add_argument("--timeframe", "-t", default="today 12-m", help="Time range")
    parser.add_argument("--resolution", choices=["COUNTRY", "REGION", "CITY", "DMA"], help="Region resolution")
    parser.add_argument("--daily", action="store_true", help="Use the daily RSS feed (rss command)")
    parser.add_argument("--language", "-l", help="Interface language (default: en)")
    parser.add_argument("--delay", type=float, help="Request delay in seconds")
    parser.add_argument("--retries", type=int, help="Maximum retries per request")
    parser.add_argument("--proxy", help="Proxy URL")
    parser.add_argument("--entity-names", action="store_true", help="Label series with entity names")
    parser.add_argument("--limit", type=int, default=10, help="Rows to print")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    return parser


def _config_from_args(args: argparse.Namespace) -> TrendsConfig:
    overrides = {}
    if args.language:
        overrides["language"] = args.language
    if args.delay is not None:
        overrides["request_delay"] = args.delay
    if args.retries is not None:
        overrides["max_retries"] = args.retries
    if args.proxy:
        overrides["proxy"] = args.proxy
    if args.entity_names:
        overrides["use_entity_names"] = True
    return TrendsConfig.from_env(**overrides)


def _keywords(args: argparse.Namespace) -> list[str]:
    if not args.keywords:
        raise SystemExit(f"Error: --keywords required for '{args.command}' command")
    return [k.strip() for k in args.keywords.split(",") if k.strip()]


def run(args: argparse.Namespace, tr: Trends) -> None:
    limit = args.limit

    if args.command == "interest":
        df = tr.interest_over_time(_keywords(args), timeframe=args.timeframe, geo=args.geo)
        print(df.tail(limit) if isinstance(df, pd.DataFrame) else df)

    elif args.command in ("related", "topics"):
        keyword = _keywords(args)[0]
        fetch = tr.related_queries if args.command == "related" else tr.related_topics
        results = fetch(keyword, timeframe=args.timeframe, geo=args.geo)
        for kind in ("top", "rising"):
            print(f"\n{kind.title()} ({keyword}):")
            print("-" * 40)
            print(results[kind].head(limit))

    elif args.command == "region":
        df = tr.interest_by_region(
            _keywords(args),
            timeframe=args.timeframe,
            geo=args.geo,
            resolution=args.resolution,
        )
        print(df.head(limit))

    elif args.command == "suggest":
        for suggestion in tr.suggestions(args.keywords or "")[:limit]:
            print(f"  {suggestion['title']} ({suggestion['type']}) {suggestion['mid']}")

    elif args.command == "trending":
        for trend in tr.trending_now(geo=args.geo or "US")[:limit]:
            print(f"  - {trend.keyword} ({trend.volume})")

    elif args.command == "rss":
        geo = args.geo or "US"
        items = tr.daily_trends_by_rss(geo) if args.daily else tr.trending_now_by_rss(geo)
        for item in items[:limit]:
            print(item)
            print()


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        with Trends(config=_config_from_args(args)) as tr:
            run(args, tr)
    except TrendsError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except httpx.HTTPError as e:
        print(f"Network error: {e}", file=sys.stderr)
        return 1
    except ValidationError as e:
        print(f"Invalid TRENDHUNTER_* setting: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
