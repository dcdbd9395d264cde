"""Project configuration.

Loads city and category settings from map_config.json when available,
falling back to sensible defaults. Keep engine thresholds centralized here.
"""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Optional

from .models import CategoryConfig

_REPO_ROOT = Path(__file__).resolve().parent.parent

# --- Provider endpoint ---

PLACES_ENDPOINT: Optional[str] = None
PLACES_PAGE_SIZE = 400

# --- Viewport ---

MIN_MAP_DELTA = 0.005
MAX_MAP_DELTA = 0.6
REGION_DECIMALS = 5
REGION_EPSILON = 0.00005
VIEWPORT_DEBOUNCE_SECONDS = 0.3

# --- Clustering ---

GEOHASH_PRECISION_STEPS = (
    (0.01, 7),
    (0.03, 6),
    (0.08, 5),
    (0.25, 4),
)
GEOHASH_MIN_PRECISION = 3
SPIDERFY_DELTA_THRESHOLD = 0.022
SPIDERFY_MAX_COUNT = 8
SPIDERFY_RADIUS_FACTOR = 0.18
SPIDERFY_MIN_RADIUS = 0.00012
SPIDERFY_MAX_RADIUS = 0.005

# --- Filters ---

EARTH_RADIUS_KM = 6371.0
DISTANCE_TOLERANCE_KM = 1e-9
WINDOW_SAMPLE_STEP_MINUTES = 60
SUMMARY_LABEL_LIMIT = 3
SUMMARY_SEPARATOR = " · "

PRICE_LEVEL_OPTIONS: List[Dict[str, Any]] = [
    {"key": "price-1", "label": "$", "level": 1},
    {"key": "price-2", "label": "$$", "level": 2},
    {"key": "price-3", "label": "$$$", "level": 3},
    {"key": "price-4", "label": "$$$$", "level": 4},
]

CAPACITY_OPTIONS: Dict[str, Dict[str, Any]] = {
    "any": {"label": "Any group size", "min": None, "max": None},
    "couple": {"label": "2+ people", "min": 2, "max": None},
    "small": {"label": "5+ people", "min": 5, "max": None},
    "medium": {"label": "8+ people", "min": 8, "max": None},
    "large": {"label": "10+ people", "min": 10, "max": None},
}

TIME_WINDOW_OPTIONS: Dict[str, Dict[str, Any]] = {
    "any": {"label": "Any time"},
    "open_now": {"label": "Open now"},
    "morning": {"label": "Morning", "start_hour": 6, "end_hour": 12},
    "afternoon": {"label": "Afternoon", "start_hour": 12, "end_hour": 17},
    "evening": {"label": "Evening", "start_hour": 17, "end_hour": 22},
    "late": {"label": "Late night", "start_hour": 22, "end_hour": 2},
}

# --- City defaults (used when no map_config.json) ---

_DEFAULT_CITY: Dict[str, Any] = {
    "slug": "bangkok",
    "name": "Bangkok",
    "center": {"lat": 13.7563, "lng": 100.5018},
    "latitude_delta": 0.35,
    "longitude_delta": 0.35,
}

_DEFAULT_CATEGORIES: List[Dict[str, Any]] = [
    {"key": "badminton", "label": "Badminton", "queryCategories": ["fitness"], "tagFilters": ["badminton"]},
    {
        "key": "chess",
        "label": "Chess Clubs",
        "queryCategories": ["community"],
        "tagFilters": ["chess", "board_games", "board_game"],
    },
    {
        "key": "art_gallery",
        "label": "Art Galleries",
        "queryCategories": ["arts_culture"],
        "tagFilters": ["art_gallery", "gallery"],
    },
    {
        "key": "board_games",
        "label": "Board Games",
        "queryCategories": ["community"],
        "tagFilters": ["board_games", "board_game"],
    },
    {"key": "yoga", "label": "Yoga Studios", "queryCategories": ["fitness"], "tagFilters": ["yoga"]},
    {
        "key": "rock_climbing",
        "label": "Climbing Gyms",
        "queryCategories": ["fitness"],
        "tagFilters": ["climbing", "rock_climbing", "bouldering"],
    },
    {
        "key": "running_parks",
        "label": "Running Parks",
        "queryCategories": ["outdoors"],
        "tagFilters": ["running", "jogging", "track"],
    },
]

# --- Mutable config (populated by load_map_config or directly) ---

CITY: Dict[str, Any] = dict(_DEFAULT_CITY)
CATEGORIES: List[Dict[str, Any]] = [dict(c) for c in _DEFAULT_CATEGORIES]

# --- HTTP ---

HTTP_TIMEOUT_SECONDS = 20
HTTP_RETRY_MAX = 4
HTTP_BACKOFF_BASE = 0.5
HTTP_BACKOFF_MAX = 8.0

# --- Cache and outputs ---

CACHE_DB_PATH = "places_cache.db"
CACHE_TTL_SECONDS = 15 * 60
OUTPUT_DIR = "out"


def parse_category_config(raw: Dict[str, Any]) -> CategoryConfig:
    key = str(raw.get("key") or "").strip()
    if not key:
        raise ValueError("Category config entries need a non-empty key")
    query_categories = raw.get("queryCategories", raw.get("query_categories")) or []
    tag_filters = raw.get("tagFilters", raw.get("tag_filters")) or []
    return CategoryConfig(
        key=key,
        label=str(raw.get("label") or key),
        query_categories=tuple(str(v) for v in query_categories),
        tag_filters=tuple(str(v) for v in tag_filters),
    )


def category_config_map(categories: Optional[List[Dict[str, Any]]] = None) -> Dict[str, CategoryConfig]:
    entries = CATEGORIES if categories is None else categories
    mapping: Dict[str, CategoryConfig] = {}
    for raw in entries:
        parsed = parse_category_config(raw)
        mapping[parsed.key] = parsed
    return mapping


def category_label_map(categories: Optional[List[Dict[str, Any]]] = None) -> Dict[str, str]:
    return {key: cfg.label for key, cfg in category_config_map(categories).items()}


def load_map_config(path: Optional[str] = None) -> bool:
    """Load map configuration from a JSON file.

    Updates module-level globals with values from the config file.
    Returns True if config was loaded, False if file not found.
    """
    if path is None:
        path = str(_REPO_ROOT / "map_config.json")

    config_path = Path(path)
    if not config_path.exists():
        return False

    with open(config_path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"{config_path} must contain a JSON object")

    globals_ref = globals()

    city = data.get("city")
    if isinstance(city, dict):
        merged = dict(_DEFAULT_CITY)
        merged.update(city)
        globals_ref["CITY"] = merged

    categories = data.get("categories")
    if categories is not None:
        if not isinstance(categories, list):
            raise ValueError("'categories' must be a list")
        # Validate before swapping in.
        category_config_map(categories)
        globals_ref["CATEGORIES"] = [dict(c) for c in categories]

    endpoint = data.get("places_endpoint")
    if endpoint:
        globals_ref["PLACES_ENDPOINT"] = str(endpoint)

    page_size = data.get("page_size")
    if page_size is not None:
        globals_ref["PLACES_PAGE_SIZE"] = int(page_size)

    debounce = data.get("debounce_seconds")
    if debounce is not None:
        globals_ref["VIEWPORT_DEBOUNCE_SECONDS"] = float(debounce)

    return True
