"""Geohash bucketing and spiderfying of co-located places.

Buckets are rebuilt from scratch on every call. Bucket iteration follows the
order in which each geohash is first seen, so identical inputs always yield
identical output.
"""
from __future__ import annotations

import logging
import math
from typing import Dict, Iterable, List

from . import config
from .geo import clamp, encode_geohash, geohash_precision_for_delta
from .models import (
    Cluster,
    ClusterResult,
    Coordinate,
    GeoBucket,
    MapRegion,
    Place,
    RenderedPlace,
)

logger = logging.getLogger(__name__)


def bucket_places(places: Iterable[Place], precision: int) -> List[GeoBucket]:
    buckets: Dict[str, GeoBucket] = {}
    dropped = 0
    for place in places:
        if not place.has_valid_coordinates:
            dropped += 1
            continue
        key = encode_geohash(place.lat, place.lng, precision)
        bucket = buckets.get(key)
        if bucket is None:
            bucket = GeoBucket(key=key)
            buckets[key] = bucket
        bucket.add(place)
    if dropped:
        logger.debug("Dropped %s places with invalid coordinates before bucketing", dropped)
    return list(buckets.values())


def should_spiderfy(bucket_size: int, region: MapRegion) -> bool:
    return (
        bucket_size > 1
        and region.latitude_delta < config.SPIDERFY_DELTA_THRESHOLD
        and bucket_size <= config.SPIDERFY_MAX_COUNT
    )


def spider_radius(delta: float) -> float:
    return clamp(
        delta * config.SPIDERFY_RADIUS_FACTOR,
        config.SPIDERFY_MIN_RADIUS,
        config.SPIDERFY_MAX_RADIUS,
    )


def spiderfy(members: Iterable[Place], centroid: Coordinate, region: MapRegion) -> List[RenderedPlace]:
    ordered = sorted(members, key=lambda p: p.id)
    if not ordered:
        return []
    lat_radius = spider_radius(region.latitude_delta)
    lng_radius = spider_radius(region.longitude_delta)
    n = len(ordered)
    rendered: List[RenderedPlace] = []
    for index, place in enumerate(ordered):
        angle = 2 * math.pi * index / n
        rendered.append(
            RenderedPlace(
                place=place,
                coordinate=Coordinate(
                    centroid.latitude + math.sin(angle) * lat_radius,
                    centroid.longitude + math.cos(angle) * lng_radius,
                ),
            )
        )
    return rendered


def cluster(places: Iterable[Place], region: MapRegion) -> ClusterResult:
    precision = geohash_precision_for_delta(region.latitude_delta)
    clusters: List[Cluster] = []
    singles: List[RenderedPlace] = []

    for bucket in bucket_places(places, precision):
        size = len(bucket.places)
        if size == 1:
            place = bucket.places[0]
            singles.append(RenderedPlace(place=place, coordinate=place.coordinate))
            continue
        centroid = bucket.centroid
        if should_spiderfy(size, region):
            singles.extend(spiderfy(bucket.places, centroid, region))
            continue
        clusters.append(
            Cluster(id=bucket.key, coordinate=centroid, count=size, places=tuple(bucket.places))
        )

    return ClusterResult(clusters=tuple(clusters), singles=tuple(singles))
