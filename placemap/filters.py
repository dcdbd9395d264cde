"""Multi-criteria place filtering and active-filter summaries.

Criteria run in a fixed order (category, price, distance, capacity, time
window) and stop at the first rejection. Missing or unparseable provider data
never rejects a place: only an actual mismatch does.
"""
from __future__ import annotations

import math
import re
from datetime import datetime
from typing import Dict, Iterable, List, Mapping, Optional, Set, Tuple

from . import config
from .attributes import resolve_capacity, resolve_price_level
from .geo import haversine_km
from .models import CategoryConfig, Coordinate, Filters, Place
from .opening_hours import extract_segments, is_open_during_window, is_place_open_now

_NON_KEY_RE = re.compile(r"[^a-z0-9]+")
_WORD_START_RE = re.compile(r"\b([a-z])")

REASON_CATEGORY = "category_mismatch"
REASON_PRICE = "price_mismatch"
REASON_DISTANCE = "too_far"
REASON_CAPACITY = "capacity_mismatch"
REASON_TIME_WINDOW = "closed_in_time_window"


def normalise_category_key(value: str) -> str:
    return _NON_KEY_RE.sub("_", value.strip().lower())


def format_category_label(key: str) -> str:
    return _WORD_START_RE.sub(lambda m: m.group(1).upper(), key.replace("_", " "))


def _normalised_set(values: Iterable[str]) -> Set[str]:
    return {k for k in (normalise_category_key(v) for v in values) if k}


def matches_category(
    place: Place,
    selected: Iterable[str],
    category_config: Optional[Mapping[str, CategoryConfig]] = None,
    taxonomy_tags: Optional[Mapping[str, Iterable[str]]] = None,
) -> bool:
    categories = _normalised_set(list(place.categories) + list(place.tags))
    tags = _normalised_set(place.tags)

    for key in selected:
        cfg = category_config.get(key) if category_config else None
        if cfg is not None:
            targets = _normalised_set(cfg.query_categories)
            if targets & categories:
                required = _normalised_set(cfg.tag_filters)
                if not required or required & tags:
                    return True
                continue

        taxonomy = list(taxonomy_tags.get(key) or []) if taxonomy_tags else []
        if any(t in categories or t in tags for t in taxonomy):
            return True

        normalised_key = normalise_category_key(key)
        if normalised_key in categories:
            return True
    return False


def matches_distance(place: Place, center: Coordinate, max_distance_km: float) -> bool:
    distance = haversine_km(center.latitude, center.longitude, place.lat, place.lng)
    if math.isnan(distance):
        return True
    return distance <= max_distance_km + config.DISTANCE_TOLERANCE_KM


def matches_capacity(place: Place, capacity_key: str) -> bool:
    option = config.CAPACITY_OPTIONS.get(capacity_key)
    if option is None:
        return True
    capacity = resolve_capacity(place)
    if capacity is None:
        return True
    low = option.get("min")
    high = option.get("max")
    if low is not None and capacity < low:
        return False
    if high is not None and capacity > high:
        return False
    return True


def matches_time_window(place: Place, time_window: str, reference: datetime) -> bool:
    if time_window == "any":
        return True
    if time_window == "open_now":
        open_now = is_place_open_now(place, reference)
        return True if open_now is None else open_now
    option = config.TIME_WINDOW_OPTIONS.get(time_window)
    if not option or option.get("start_hour") is None:
        return True
    start_hour = option["start_hour"]
    end_hour = option.get("end_hour", start_hour)
    result = is_open_during_window(extract_segments(place.metadata), start_hour, end_hour)
    return True if result is None else result


def rejection_reason(
    place: Place,
    filters: Filters,
    viewport_center: Coordinate,
    reference_time: datetime,
    category_config: Optional[Mapping[str, CategoryConfig]] = None,
    taxonomy_tags: Optional[Mapping[str, Iterable[str]]] = None,
) -> Optional[str]:
    if filters.categories and not matches_category(
        place, filters.categories, category_config, taxonomy_tags
    ):
        return REASON_CATEGORY

    if filters.price_levels:
        price = resolve_price_level(place)
        if price is not None and price not in filters.price_levels:
            return REASON_PRICE

    if filters.max_distance_km is not None and not matches_distance(
        place, viewport_center, filters.max_distance_km
    ):
        return REASON_DISTANCE

    if filters.capacity_key != "any" and not matches_capacity(place, filters.capacity_key):
        return REASON_CAPACITY

    if not matches_time_window(place, filters.time_window, reference_time):
        return REASON_TIME_WINDOW

    return None


def matches(
    place: Place,
    filters: Filters,
    viewport_center: Coordinate,
    reference_time: datetime,
    category_config: Optional[Mapping[str, CategoryConfig]] = None,
    taxonomy_tags: Optional[Mapping[str, Iterable[str]]] = None,
) -> bool:
    return (
        rejection_reason(
            place, filters, viewport_center, reference_time, category_config, taxonomy_tags
        )
        is None
    )


def apply_filters(
    places: Iterable[Place],
    filters: Filters,
    viewport_center: Coordinate,
    reference_time: Optional[datetime] = None,
    category_config: Optional[Mapping[str, CategoryConfig]] = None,
    taxonomy_tags: Optional[Mapping[str, Iterable[str]]] = None,
) -> Tuple[List[Place], Dict[str, int]]:
    reference = reference_time or datetime.now()
    filtered: List[Place] = []
    rejection_counts: Dict[str, int] = {}
    for place in places:
        reason = rejection_reason(
            place, filters, viewport_center, reference, category_config, taxonomy_tags
        )
        if reason:
            rejection_counts[reason] = rejection_counts.get(reason, 0) + 1
        else:
            filtered.append(place)
    return filtered, rejection_counts


def filter_places(
    places: Iterable[Place],
    filters: Filters,
    viewport_center: Coordinate,
    reference_time: Optional[datetime] = None,
    category_config: Optional[Mapping[str, CategoryConfig]] = None,
    taxonomy_tags: Optional[Mapping[str, Iterable[str]]] = None,
) -> List[Place]:
    filtered, _ = apply_filters(
        places, filters, viewport_center, reference_time, category_config, taxonomy_tags
    )
    return filtered


# Summary

def count_active_filters(filters: Filters) -> int:
    count = 0
    if filters.categories:
        count += 1
    if filters.price_levels:
        count += 1
    if filters.max_distance_km:
        count += 1
    if filters.capacity_key != "any":
        count += 1
    if filters.time_window != "any":
        count += 1
    return count


def join_with_limit(values: List[str], limit: int = config.SUMMARY_LABEL_LIMIT) -> str:
    if len(values) <= limit:
        return ", ".join(values)
    shown = ", ".join(values[:limit])
    return f"{shown} +{len(values) - limit}"


def price_level_label(level: int) -> str:
    for option in config.PRICE_LEVEL_OPTIONS:
        if option["level"] == level:
            return option["label"]
    return "$" * min(max(1, int(round(level))), 4)


def _format_km(value: float) -> str:
    return f"{value:g}"


def build_filter_summary(
    filters: Filters,
    label_map: Optional[Mapping[str, str]] = None,
) -> Optional[str]:
    labels = label_map or {}
    parts: List[str] = []
    if filters.categories:
        parts.append(
            join_with_limit([labels.get(k) or format_category_label(k) for k in filters.categories])
        )
    if filters.price_levels:
        prices = [price_level_label(level) for level in sorted(filters.price_levels)]
        parts.append(f"Price {', '.join(prices)}")
    if filters.max_distance_km:
        parts.append(f"Within {_format_km(filters.max_distance_km)} km")
    if filters.capacity_key != "any":
        option = config.CAPACITY_OPTIONS.get(filters.capacity_key)
        if option:
            parts.append(option["label"])
    if filters.time_window != "any":
        option = config.TIME_WINDOW_OPTIONS.get(filters.time_window)
        if option:
            parts.append(option["label"])
    if not parts:
        return None
    return config.SUMMARY_SEPARATOR.join(parts)
