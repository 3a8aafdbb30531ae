#!/usr/bin/env python3
"""Probe each provider once and write a JSON health report."""
import argparse
import asyncio
import json
import os
import sys
import time
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from sources import BaseConnector, ProviderRegistry, build_registry, default_provider_configs  # noqa: E402
from sources.errors import MangaApiError  # noqa: E402
from sources.http_client import JsonTransport  # noqa: E402
from solotoon_app.config import Settings  # noqa: E402


def _duration_ms(start: float) -> int:
    return int((time.time() - start) * 1000)


async def probe_provider(
    provider: BaseConnector,
    query: str,
    deep: bool,
    fetch_pages: bool
) -> Dict[str, Any]:
    result: Dict[str, Any] = {
        "provider_id": provider.id,
        "provider_name": provider.name,
        "search_ok": False,
        "search_count": 0,
        "search_ms": None,
        "details_ok": False,
        "details_ms": None,
        "chapters_ok": False,
        "chapters_count": 0,
        "chapters_ms": None,
        "pages_ok": False,
        "pages_count": 0,
        "pages_ms": None,
        "errors": []
    }

    # Search and chapter failures are absorbed by the connector, so empty means failed
    start = time.time()
    search_results = await provider.search(query, page=1)
    result["search_ms"] = _duration_ms(start)
    result["search_count"] = len(search_results)
    result["search_ok"] = bool(search_results)
    if not search_results:
        result["errors"].append("search: no results")

    if not deep or not search_results:
        return result

    series_id = search_results[0].id
    start = time.time()
    try:
        await provider.get_manga_details(series_id)
        result["details_ok"] = True
    except MangaApiError as exc:
        result["errors"].append(f"details: {exc}")
    result["details_ms"] = _duration_ms(start)

    start = time.time()
    chapters = await provider.get_chapters(series_id)
    result["chapters_ms"] = _duration_ms(start)
    result["chapters_count"] = len(chapters)
    result["chapters_ok"] = bool(chapters)
    if not chapters:
        result["errors"].append("chapters: no results")

    if not fetch_pages or not chapters or not provider.supports_pages:
        return result

    start = time.time()
    pages = await provider.get_pages(chapters[0].id)
    result["pages_ms"] = _duration_ms(start)
    result["pages_count"] = len(pages)
    result["pages_ok"] = bool(pages)
    if not pages:
        result["errors"].append("pages: no results")

    return result


def select_providers(registry: ProviderRegistry, requested: Optional[List[str]], limit: Optional[int]) -> List[BaseConnector]:
    if requested:
        ordered = [registry.get(pid) for pid in requested if pid in registry]
    else:
        ordered = registry.sorted_by_priority()

    if limit is not None and limit > 0:
        ordered = ordered[:limit]
    return ordered


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Probe manga providers for basic health.")
    parser.add_argument("--query", default="one piece", help="Search query to test.")
    parser.add_argument("--providers", default="", help="Comma-separated provider IDs to test.")
    parser.add_argument("--limit", type=int, default=0, help="Limit number of providers to test.")
    parser.add_argument("--deep", action="store_true", help="Also fetch details and chapters for first result.")
    parser.add_argument("--pages", action="store_true", help="Also fetch pages for first chapter.")
    parser.add_argument(
        "--output",
        default="instance/source_probe.json",
        help="Output JSON report path."
    )
    parser.add_argument("--env", default=".env", help="Path to .env file.")
    return parser.parse_args()


async def run_probe(args: argparse.Namespace) -> Dict[str, Any]:
    settings = Settings.from_env()
    transport = JsonTransport(timeout=settings.request_timeout, retry_backoff=settings.retry_backoff)
    registry = build_registry(transport, default_provider_configs(settings.consumet_url))

    requested = [item.strip() for item in args.providers.split(",") if item.strip()]
    providers = select_providers(registry, requested or None, args.limit if args.limit > 0 else None)

    try:
        results = []
        # Sequential: every provider sits behind the same Consumet host bucket
        for provider in providers:
            results.append(await probe_provider(provider, args.query, args.deep, args.pages))
    finally:
        await transport.close()

    return {
        "generated_at": time.strftime("%Y-%m-%dT%H:%M:%S%z"),
        "query": args.query,
        "deep": bool(args.deep),
        "pages": bool(args.pages),
        "total_providers": len(results),
        "search_failures": sum(1 for item in results if not item["search_ok"]),
        "chapter_failures": sum(1 for item in results if args.deep and item["search_ok"] and not item["chapters_ok"]),
        "page_failures": sum(1 for item in results if args.pages and item["chapters_ok"] and not item["pages_ok"]),
        "providers": results
    }


def main() -> int:
    args = parse_args()
    load_dotenv(args.env)

    report = asyncio.run(run_probe(args))

    output_dir = os.path.dirname(args.output)
    if output_dir:
        os.makedirs(output_dir, exist_ok=True)
    with open(args.output, "w", encoding="utf-8") as handle:
        json.dump(report, handle, indent=2, sort_keys=True)

    print(f"Wrote report to {args.output}")
    return 0 if report["search_failures"] == 0 else 1


if __name__ == "__main__":
    raise SystemExit(main())
