"""Value objects shared by the filtering and clustering stages."""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple


def _as_float(value: Any) -> float:
    if isinstance(value, bool):
        return math.nan
    try:
        return float(value)
    except (TypeError, ValueError):
        return math.nan


def _as_str_tuple(value: Any) -> Tuple[str, ...]:
    if not isinstance(value, (list, tuple)):
        return ()
    return tuple(v for v in value if isinstance(v, str))


def valid_coordinates(lat: float, lng: float) -> bool:
    """Finite and inside the WGS84 range a geohash can encode."""
    if not (math.isfinite(lat) and math.isfinite(lng)):
        return False
    return -90.0 <= lat <= 90.0 and -180.0 <= lng <= 180.0


def _clean(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None
    trimmed = value.strip()
    return trimmed or None


@dataclass(frozen=True)
class Coordinate:
    latitude: float
    longitude: float

    def to_dict(self) -> Dict[str, float]:
        return {"latitude": self.latitude, "longitude": self.longitude}


@dataclass(frozen=True)
class Place:
    id: str
    name: str
    lat: float
    lng: float
    categories: Tuple[str, ...] = ()
    tags: Tuple[str, ...] = ()
    address: Optional[str] = None
    locality: Optional[str] = None
    region: Optional[str] = None
    country: Optional[str] = None
    postcode: Optional[str] = None
    price_level: Optional[float] = None
    metadata: Optional[Dict[str, Any]] = field(default=None, compare=False, hash=False)

    @property
    def coordinate(self) -> Coordinate:
        return Coordinate(self.lat, self.lng)

    @property
    def has_valid_coordinates(self) -> bool:
        return valid_coordinates(self.lat, self.lng)

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "Place":
        price = raw.get("priceLevel", raw.get("price_level"))
        if isinstance(price, bool) or not isinstance(price, (int, float)):
            price = None
        metadata = raw.get("metadata")
        return cls(
            id=str(raw.get("id") or ""),
            name=str(raw.get("name") or ""),
            lat=_as_float(raw.get("lat")),
            lng=_as_float(raw.get("lng", raw.get("lon"))),
            categories=_as_str_tuple(raw.get("categories")),
            tags=_as_str_tuple(raw.get("tags")),
            address=_clean(raw.get("address")),
            locality=_clean(raw.get("locality") or raw.get("city")),
            region=_clean(raw.get("region")),
            country=_clean(raw.get("country")),
            postcode=_clean(raw.get("postcode")),
            price_level=price,
            metadata=metadata if isinstance(metadata, dict) else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "lat": self.lat,
            "lng": self.lng,
            "categories": list(self.categories),
            "tags": list(self.tags),
            "address": self.address,
            "locality": self.locality,
            "region": self.region,
            "country": self.country,
            "postcode": self.postcode,
            "priceLevel": self.price_level,
            "metadata": self.metadata,
        }


@dataclass(frozen=True)
class MapRegion:
    latitude: float
    longitude: float
    latitude_delta: float
    longitude_delta: float

    @property
    def center(self) -> Coordinate:
        return Coordinate(self.latitude, self.longitude)


@dataclass(frozen=True)
class Filters:
    categories: Tuple[str, ...] = ()
    price_levels: Tuple[int, ...] = ()
    max_distance_km: Optional[float] = None
    capacity_key: str = "any"
    time_window: str = "any"

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "Filters":
        levels = raw.get("priceLevels", raw.get("price_levels")) or []
        max_distance = raw.get("maxDistanceKm", raw.get("max_distance_km"))
        return cls(
            categories=_as_str_tuple(raw.get("categories")),
            price_levels=tuple(
                int(v) for v in levels if isinstance(v, (int, float)) and not isinstance(v, bool)
            ),
            max_distance_km=float(max_distance) if max_distance is not None else None,
            capacity_key=str(raw.get("capacityKey", raw.get("capacity_key")) or "any"),
            time_window=str(raw.get("timeWindow", raw.get("time_window")) or "any"),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "categories": list(self.categories),
            "priceLevels": list(self.price_levels),
            "maxDistanceKm": self.max_distance_km,
            "capacityKey": self.capacity_key,
            "timeWindow": self.time_window,
        }


@dataclass(frozen=True)
class OpeningSegment:
    start: int
    end: int

    @property
    def wraps(self) -> bool:
        return self.start > self.end

    @property
    def all_day(self) -> bool:
        return self.start == self.end


@dataclass(frozen=True)
class CategoryConfig:
    key: str
    label: str
    query_categories: Tuple[str, ...] = ()
    tag_filters: Tuple[str, ...] = ()


@dataclass
class GeoBucket:
    key: str
    places: List[Place] = field(default_factory=list)
    sum_lat: float = 0.0
    sum_lng: float = 0.0

    def add(self, place: Place) -> None:
        self.places.append(place)
        self.sum_lat += place.lat
        self.sum_lng += place.lng

    @property
    def centroid(self) -> Coordinate:
        n = len(self.places)
        return Coordinate(self.sum_lat / n, self.sum_lng / n)


@dataclass(frozen=True)
class Cluster:
    id: str
    coordinate: Coordinate
    count: int
    places: Tuple[Place, ...]


@dataclass(frozen=True)
class RenderedPlace:
    place: Place
    coordinate: Coordinate


@dataclass(frozen=True)
class LatLng:
    lat: float
    lng: float


@dataclass(frozen=True)
class ViewportBounds:
    sw: LatLng
    ne: LatLng


@dataclass(frozen=True)
class ViewportQuery:
    bounds: ViewportBounds
    limit: int
    city: Optional[str] = None
    categories: Optional[Tuple[str, ...]] = None
    force_refresh: bool = False

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "bounds": {
                "sw": {"lat": self.bounds.sw.lat, "lng": self.bounds.sw.lng},
                "ne": {"lat": self.bounds.ne.lat, "lng": self.bounds.ne.lng},
            },
            "limit": self.limit,
        }
        if self.city:
            out["city"] = self.city
        if self.categories:
            out["categories"] = list(self.categories)
        if self.force_refresh:
            out["forceRefresh"] = True
        return out

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "ViewportQuery":
        bounds = raw["bounds"]
        categories = raw.get("categories")
        return cls(
            bounds=ViewportBounds(
                sw=LatLng(float(bounds["sw"]["lat"]), float(bounds["sw"]["lng"])),
                ne=LatLng(float(bounds["ne"]["lat"]), float(bounds["ne"]["lng"])),
            ),
            limit=int(raw["limit"]),
            city=raw.get("city"),
            categories=tuple(categories) if categories else None,
            force_refresh=bool(raw.get("forceRefresh", False)),
        )


@dataclass(frozen=True)
class ClusterResult:
    clusters: Tuple[Cluster, ...]
    singles: Tuple[RenderedPlace, ...]


@dataclass(frozen=True)
class MapView:
    clusters: Tuple[Cluster, ...]
    singles: Tuple[RenderedPlace, ...]
    places: Tuple[Place, ...]
    summary: Optional[str]
    active_filter_count: int
    rejection_counts: Dict[str, int] = field(default_factory=dict, compare=False, hash=False)
