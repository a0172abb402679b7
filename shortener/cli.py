"""Command line interface for the URL shortener.

Commands are thin wrappers over :class:`LinkService` and the schema setup::

    shortener create --url="https://www.google.com"
    shortener create --url='["https://www.google.com", "https://www.github.com"]'
    shortener stats --code=abc123
    shortener migrate
    shortener run-server

``--config`` selects the YAML config file (default ``configs/config.yaml``).
"""

import argparse
import asyncio
import json
import os
import sys
from collections.abc import Sequence

from shortener.config import CONFIG_FILE_ENV, Settings, get_settings
from shortener.database import build_engine, build_session_factory, close_db, init_db
from shortener.dependencies import setup_logging
from shortener.errors import ShortCodeNotFound, ShortenerError
from shortener.link_service import LinkService
from shortener.models import Link
from shortener.repository import LinkRepository
from shortener.schemas import is_valid_url

__all__ = ["build_parser", "main", "parse_url_flag"]


def _strip_quotes(value: str) -> str:
    while len(value) >= 1 and (value[0] in "'\"" or value[-1] in "'\""):
        if value[0] in "'\"":
            value = value[1:]
        if value and value[-1] in "'\"":
            value = value[:-1]
    return value


def parse_url_flag(value: str) -> list[str]:
    """Split the ``--url`` value into one or more URLs.

    Accepts a single URL, a JSON array, or an array written with single
    quotes. Raises ``ValueError`` for an empty array.
    """
    value = value.strip()
    if not (value.startswith("[") and value.endswith("]")):
        return [value]

    for candidate in (value, value.replace("'", '"')):
        try:
            parsed = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(parsed, list):
            urls = [str(url).strip() for url in parsed if str(url).strip()]
            if not urls:
                raise ValueError("URL array cannot be empty")
            return urls

    # Not JSON at all, e.g. [https://a.com, https://b.com]
    urls = [_strip_quotes(part.strip()).strip() for part in value[1:-1].split(",")]
    urls = [url for url in urls if url]
    if not urls:
        raise ValueError("URL array cannot be empty")
    return urls


async def _create(settings: Settings, urls: list[str]) -> int:
    engine = build_engine(settings.database)
    try:
        async with build_session_factory(engine)() as session:
            service = LinkService(LinkRepository(session))
            results = await service.create_links(urls)
    finally:
        await close_db(engine)

    base_url = settings.server.base_url.rstrip("/")
    success_count = 0
    for index, (url, result) in enumerate(zip(urls, results), 1):
        print(f"[{index}/{len(urls)}] {url}")
        if isinstance(result, Link):
            success_count += 1
            print(f"  Code: {result.short_code}")
            print(f"  Full URL: {base_url}/{result.short_code}")
        else:
            print(f"  Failed to create short link: {result}")

    print(f"{success_count} out of {len(urls)} URL(s) shortened successfully.")
    return 0 if success_count == len(urls) else 1


async def _stats(settings: Settings, short_code: str) -> int:
    engine = build_engine(settings.database)
    try:
        async with build_session_factory(engine)() as session:
            service = LinkService(LinkRepository(session))
            link, total_clicks = await service.get_link_stats(short_code)
    except ShortCodeNotFound:
        print(f"Error: Short code '{short_code}' not found")
        return 1
    except ShortenerError as exc:
        print(f"Error retrieving statistics: {exc}")
        return 1
    finally:
        await close_db(engine)

    print(f"Statistics for short code: {link.short_code}")
    print(f"Long URL: {link.long_url}")
    print(f"Total clicks: {total_clicks}")
    print(f"Creation date: {link.created_at:%Y-%m-%d %H:%M:%S}")
    return 0


async def _migrate(settings: Settings) -> int:
    engine = build_engine(settings.database)
    try:
        await init_db(engine)
    finally:
        await close_db(engine)
    print("Database migrations executed successfully.")
    return 0


def _run_server(settings: Settings) -> int:
    import uvicorn

    uvicorn.run("shortener.main:app", host="0.0.0.0", port=settings.server.port)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="shortener",
        description="URL shortener with click statistics and destination monitoring",
    )
    parser.add_argument("--config", help="Path to the YAML config file")
    subparsers = parser.add_subparsers(dest="command", required=True)

    create = subparsers.add_parser("create", help="Create short URLs from one or more long URLs")
    create.add_argument("--url", required=True, help="The long URL(s) to shorten (single URL or JSON array)")

    stats = subparsers.add_parser("stats", help="Show click statistics for a short code")
    stats.add_argument("--code", required=True, help="The short code to get statistics for")

    subparsers.add_parser("migrate", help="Create the links and clicks tables")
    subparsers.add_parser("run-server", help="Run the API server, click workers and URL monitor")
    return parser


def main(argv: Sequence[str] | None = None, settings: Settings | None = None) -> int:
    args = build_parser().parse_args(argv)

    if args.config:
        os.environ[CONFIG_FILE_ENV] = args.config
        get_settings.cache_clear()
    settings = settings or get_settings()
    setup_logging(settings.log_level)

    if args.command == "create":
        try:
            urls = parse_url_flag(args.url)
        except ValueError as exc:
            print(f"Error: Failed to parse URL flag '{args.url}': {exc}")
            return 1
        for index, url in enumerate(urls, 1):
            if not is_valid_url(url):
                print(f"Error: Invalid URL format for URL #{index} ({url})")
                return 1
        return asyncio.run(_create(settings, urls))

    if args.command == "stats":
        return asyncio.run(_stats(settings, args.code))

    if args.command == "migrate":
        return asyncio.run(_migrate(settings))

    return _run_server(settings)


if __name__ == "__main__":
    sys.exit(main())
