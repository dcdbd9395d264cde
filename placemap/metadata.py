"""Provider metadata shapes.

Place records carry an open-ended metadata bag whose layout depends on the
provider that produced it. The bag is split into one typed section per known
provider plus the remaining top-level fields, so resolvers can ask for the
field they need without probing arbitrary nesting.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

_MISSING = object()


def dig(mapping: Any, *keys: str) -> Any:
    """Walk nested mappings, returning None as soon as a level is absent."""
    current = mapping
    for key in keys:
        if not isinstance(current, Mapping):
            return None
        current = current.get(key, _MISSING)
        if current is _MISSING:
            return None
    return current


def _section(raw: Mapping[str, Any], key: str) -> Dict[str, Any]:
    value = raw.get(key)
    return dict(value) if isinstance(value, Mapping) else {}


@dataclass(frozen=True)
class FoursquareMetadata:
    hours: Dict[str, Any] = field(default_factory=dict)
    popular: Dict[str, Any] = field(default_factory=dict)
    price: Dict[str, Any] = field(default_factory=dict)
    venue: Dict[str, Any] = field(default_factory=dict)
    location: Dict[str, Any] = field(default_factory=dict)
    capacity: Any = None
    name: Optional[str] = None

    @classmethod
    def parse(cls, raw: Mapping[str, Any]) -> "FoursquareMetadata":
        name = raw.get("name")
        return cls(
            hours=_section(raw, "hours"),
            popular=_section(raw, "popular"),
            price=_section(raw, "price"),
            venue=_section(raw, "venue"),
            location=_section(raw, "location"),
            capacity=raw.get("capacity"),
            name=name if isinstance(name, str) else None,
        )


@dataclass(frozen=True)
class OpenStreetMapMetadata:
    tags: Dict[str, Any] = field(default_factory=dict)
    capacity: Any = None
    opening_hours: Any = None
    address: Any = None
    locality: Any = None
    region: Any = None
    country: Any = None
    postcode: Any = None

    @classmethod
    def parse(cls, raw: Mapping[str, Any]) -> "OpenStreetMapMetadata":
        return cls(
            tags=_section(raw, "tags"),
            capacity=raw.get("capacity"),
            opening_hours=raw.get("opening_hours"),
            address=raw.get("address"),
            locality=raw.get("locality"),
            region=raw.get("region"),
            country=raw.get("country"),
            postcode=raw.get("postcode"),
        )

    def tag(self, key: str) -> Optional[str]:
        value = self.tags.get(key)
        return value if isinstance(value, str) else None


@dataclass(frozen=True)
class GooglePlacesMetadata:
    price_level: Any = None
    open_now: Any = None

    @classmethod
    def parse(cls, raw: Mapping[str, Any]) -> "GooglePlacesMetadata":
        return cls(
            price_level=raw.get("priceLevel"),
            open_now=dig(raw, "openingHours", "openNow"),
        )


_PROVIDER_KEYS = ("foursquare", "openstreetmap", "google_places")


@dataclass(frozen=True)
class PlaceMetadata:
    extra: Dict[str, Any] = field(default_factory=dict)
    foursquare: Optional[FoursquareMetadata] = None
    openstreetmap: Optional[OpenStreetMapMetadata] = None
    google_places: Optional[GooglePlacesMetadata] = None

    def get(self, *keys: str) -> Any:
        return dig(self.extra, *keys)

    @property
    def is_empty(self) -> bool:
        return not self.extra and not any(
            (self.foursquare, self.openstreetmap, self.google_places)
        )


EMPTY_METADATA = PlaceMetadata()


def parse_metadata(raw: Any) -> PlaceMetadata:
    if isinstance(raw, PlaceMetadata):
        return raw
    if not isinstance(raw, Mapping):
        return EMPTY_METADATA
    extra = {k: v for k, v in raw.items() if k not in _PROVIDER_KEYS}
    fsq = raw.get("foursquare")
    osm = raw.get("openstreetmap")
    google = raw.get("google_places")
    return PlaceMetadata(
        extra=extra,
        foursquare=FoursquareMetadata.parse(fsq) if isinstance(fsq, Mapping) else None,
        openstreetmap=OpenStreetMapMetadata.parse(osm) if isinstance(osm, Mapping) else None,
        google_places=GooglePlacesMetadata.parse(google) if isinstance(google, Mapping) else None,
    )
