"""Geospatial helpers."""
from __future__ import annotations

import math

import pygeohash

from . import config


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    if not all(math.isfinite(v) for v in (lat1, lon1, lat2, lon2)):
        return math.nan
    r = config.EARTH_RADIUS_KM
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlambda = math.radians(lon2 - lon1)

    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return r * c


def geohash_precision_for_delta(latitude_delta: float) -> int:
    for upper, precision in config.GEOHASH_PRECISION_STEPS:
        if latitude_delta < upper:
            return precision
    return config.GEOHASH_MIN_PRECISION


def encode_geohash(lat: float, lng: float, precision: int) -> str:
    return pygeohash.encode(lat, lng, precision=precision)


def clamp(value: float, lower: float, upper: float) -> float:
    return min(max(value, lower), upper)
