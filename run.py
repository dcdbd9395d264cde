"""CLI entrypoint."""
from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv as _load_dotenv

from placemap import config
from placemap.cache import Cache
from placemap.http import HttpClient, RequestMetrics
from placemap.models import Filters, MapRegion, Place
from placemap.pipeline import build_map_view, build_render_payload, render_summary
from placemap.places_client import PlacesClient, PlacesUnavailableError, parse_places_response
from placemap.reporting import write_render_outputs
from placemap.viewport import build_viewport_query, normalise_region

logger = logging.getLogger("run")


def _repo_root() -> Path:
    return Path(__file__).resolve().parent


def load_env(path: str = ".env", root_dir: Optional[Path] = None) -> None:
    """Optionally load a repo-root .env file without overriding real env vars."""
    root = Path(root_dir) if root_dir else _repo_root()
    env_path = (root / path).resolve()
    if not env_path.exists():
        return
    _load_dotenv(dotenv_path=env_path, override=False)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Filter and cluster places for a map viewport")
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--places", type=str, help="JSON file with a places list or {places: [...]}")
    source.add_argument("--fetch", action="store_true", help="Fetch places from the provider endpoint")
    parser.add_argument("--lat", type=float, default=None, help="Viewport center latitude")
    parser.add_argument("--lng", type=float, default=None, help="Viewport center longitude")
    parser.add_argument("--delta", type=float, default=None, help="Latitude span of the viewport")
    parser.add_argument("--lng-delta", type=float, default=None, help="Longitude span (default: --delta)")
    parser.add_argument("--category", action="append", default=[], help="Category key (repeatable)")
    parser.add_argument("--price", action="append", type=int, default=[], choices=[1, 2, 3, 4])
    parser.add_argument("--max-distance-km", type=float, default=None)
    parser.add_argument(
        "--capacity",
        type=str,
        default="any",
        choices=sorted(config.CAPACITY_OPTIONS.keys()),
    )
    parser.add_argument(
        "--time-window",
        type=str,
        default="any",
        choices=sorted(config.TIME_WINDOW_OPTIONS.keys()),
    )
    parser.add_argument("--at", type=str, default=None, help="Reference time HH:MM (default: now)")
    parser.add_argument("--config", type=str, default=None, help="Path to map_config.json")
    parser.add_argument("--endpoint", type=str, default=None, help="Places endpoint URL for --fetch")
    parser.add_argument("--cache-path", type=str, default=config.CACHE_DB_PATH)
    parser.add_argument("--no-cache", action="store_true")
    parser.add_argument("--out", type=str, default=config.OUTPUT_DIR)
    return parser.parse_args(argv)


def parse_reference_time(value: Optional[str], today: Optional[datetime] = None) -> datetime:
    base = today or datetime.now()
    if not value:
        return base
    hours, _, minutes = value.partition(":")
    try:
        return base.replace(hour=int(hours), minute=int(minutes or 0), second=0, microsecond=0)
    except ValueError as exc:
        raise ValueError(f"Invalid --at value {value!r}; expected HH:MM") from exc


def build_region(args: argparse.Namespace) -> MapRegion:
    city = config.CITY
    center = city.get("center") or {}
    lat = args.lat if args.lat is not None else center.get("lat")
    lng = args.lng if args.lng is not None else center.get("lng")
    if lat is None or lng is None:
        raise ValueError("Viewport center is not set; pass --lat/--lng or configure a city center")
    lat_delta = args.delta if args.delta is not None else float(city["latitude_delta"])
    lng_delta = args.lng_delta if args.lng_delta is not None else (
        args.delta if args.delta is not None else float(city["longitude_delta"])
    )
    return normalise_region(MapRegion(float(lat), float(lng), lat_delta, lng_delta))


def load_places_file(path: str) -> List[Place]:
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, list):
        data = {"places": data}
    if not isinstance(data, dict):
        raise ValueError(f"{path} must contain a list of places or an object with 'places'")
    return parse_places_response(data)


def fetch_places(
    args: argparse.Namespace, region: MapRegion, metrics: Optional[RequestMetrics] = None
) -> List[Place]:
    endpoint = args.endpoint or os.environ.get("PLACES_ENDPOINT") or config.PLACES_ENDPOINT
    if not endpoint:
        raise ValueError("No places endpoint: pass --endpoint, set PLACES_ENDPOINT or places_endpoint")
    http_client = HttpClient(
        os.environ.get("PLACES_API_KEY"),
        timeout=config.HTTP_TIMEOUT_SECONDS,
        retry_max=config.HTTP_RETRY_MAX,
        backoff_base=config.HTTP_BACKOFF_BASE,
        backoff_max=config.HTTP_BACKOFF_MAX,
        metrics=metrics,
    )
    query = build_viewport_query(
        region,
        categories=args.category or None,
        city=config.CITY.get("slug"),
        limit=config.PLACES_PAGE_SIZE,
    )
    with Cache(args.cache_path, ttl_seconds=config.CACHE_TTL_SECONDS) as cache:
        client = PlacesClient(
            http_client, endpoint, cache=cache, no_cache=args.no_cache, metrics=metrics
        )
        return client.fetch(query)


def main(argv: Optional[List[str]] = None) -> int:
    load_env()
    args = parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    metrics: Optional[RequestMetrics] = None
    try:
        if not config.load_map_config(args.config) and args.config:
            raise FileNotFoundError(f"Config file not found: {args.config}")
        region = build_region(args)
        reference = parse_reference_time(args.at)
        filters = Filters(
            categories=tuple(args.category),
            price_levels=tuple(args.price),
            max_distance_km=args.max_distance_km,
            capacity_key=args.capacity,
            time_window=args.time_window,
        )
        if args.fetch:
            metrics = RequestMetrics()
            places = fetch_places(args, region, metrics)
        else:
            places = load_places_file(args.places)
    except PlacesUnavailableError as exc:
        print(f"Place data unavailable: {exc}", file=sys.stderr)
        return 1
    except (OSError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    view = build_map_view(
        places,
        region,
        filters,
        reference_time=reference,
        category_config=config.category_config_map(),
    )

    lines = render_summary(view)
    if metrics is not None:
        logger.info("Places requests: %s", metrics.as_dict())
    paths = write_render_outputs(
        args.out,
        build_render_payload(view),
        lines,
        metrics=metrics.as_dict() if metrics is not None else None,
    )
    for line in lines:
        print(line)
    print(f"Done. Render payload written to {paths['render']}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
