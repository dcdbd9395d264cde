"""Price, capacity, address and display-name resolution from place metadata."""
from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Sequence

from .metadata import PlaceMetadata, dig, parse_metadata
from .models import Place

Extractor = Callable[[PlaceMetadata], Any]

_NON_NUMERIC_RE = re.compile(r"[^0-9.]")
_GENERIC_NAME_RE = re.compile(r"^(unnamed|unknown|activity spot)$", re.IGNORECASE)
DEFAULT_PLACE_NAME = "Activity spot"


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def parse_numeric_string(candidate: str) -> Optional[float]:
    digits = _NON_NUMERIC_RE.sub("", candidate)
    if not digits:
        return None
    try:
        value = float(digits)
    except ValueError:
        return None
    return value if math.isfinite(value) else None


# Price

PRICE_EXTRACTORS: List[Extractor] = [
    lambda m: m.get("priceLevel"),
    lambda m: m.get("price_level"),
    lambda m: m.get("price_range"),
    lambda m: m.get("priceCategory"),
    lambda m: m.get("pricing"),
    lambda m: m.get("average_price"),
    lambda m: dig(m.foursquare.price, "tier") if m.foursquare else None,
    lambda m: m.google_places.price_level if m.google_places else None,
]


def parse_price_candidate(candidate: Any) -> Optional[int]:
    if _is_number(candidate):
        return round_half_up(candidate) if math.isfinite(candidate) else None
    if not isinstance(candidate, str):
        return None
    trimmed = candidate.strip()
    if not trimmed:
        return None
    dollars = trimmed.count("$")
    if dollars:
        return dollars
    numeric = parse_numeric_string(trimmed)
    return round_half_up(numeric) if numeric is not None else None


def resolve_price_level(place: Place) -> Optional[int]:
    explicit = place.price_level
    if _is_number(explicit) and math.isfinite(explicit):
        return round_half_up(explicit)
    return _first_resolved(parse_metadata(place.metadata), PRICE_EXTRACTORS, parse_price_candidate)


# Capacity

CAPACITY_EXTRACTORS: List[Extractor] = [
    lambda m: m.get("capacity"),
    lambda m: m.get("maxCapacity"),
    lambda m: m.get("max_group_size"),
    lambda m: m.get("maxGroupSize"),
    lambda m: m.get("groupSize"),
    lambda m: m.get("recommendedGroupSize"),
    lambda m: dig(m.foursquare.venue, "attributes", "capacity") if m.foursquare else None,
    lambda m: m.foursquare.capacity if m.foursquare else None,
    lambda m: m.openstreetmap.tags.get("capacity") if m.openstreetmap else None,
    lambda m: m.openstreetmap.capacity if m.openstreetmap else None,
]


def parse_capacity_candidate(candidate: Any) -> Optional[int]:
    if _is_number(candidate):
        value: Optional[float] = float(candidate) if math.isfinite(candidate) else None
    elif isinstance(candidate, str):
        value = parse_numeric_string(candidate)
    else:
        value = None
    if value is None or value <= 0:
        return None
    rounded = round_half_up(value)
    return rounded if rounded > 0 else None


def resolve_capacity(place: Place) -> Optional[int]:
    return _first_resolved(parse_metadata(place.metadata), CAPACITY_EXTRACTORS, parse_capacity_candidate)


def _first_resolved(
    meta: PlaceMetadata,
    extractors: Sequence[Extractor],
    parse: Callable[[Any], Optional[int]],
) -> Optional[int]:
    if meta.is_empty:
        return None
    for extractor in extractors:
        value = parse(extractor(meta))
        if value is not None:
            return value
    return None


# Address

@dataclass(frozen=True)
class AddressParts:
    address: Optional[str] = None
    locality: Optional[str] = None
    region: Optional[str] = None
    country: Optional[str] = None
    postcode: Optional[str] = None


EMPTY_ADDRESS = AddressParts()


def clean_string(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None
    trimmed = value.strip()
    return trimmed or None


def _combine(*segments: Any) -> Optional[str]:
    parts = [p for p in (clean_string(s) for s in segments) if p]
    if not parts:
        return None
    return re.sub(r"\s+", " ", " ".join(parts)).strip()


def _first_clean(*values: Any) -> Optional[str]:
    for value in values:
        cleaned = clean_string(value)
        if cleaned:
            return cleaned
    return None


def _foursquare_address(meta: PlaceMetadata) -> AddressParts:
    if meta.foursquare is None:
        return EMPTY_ADDRESS
    location = meta.foursquare.venue.get("location") or meta.foursquare.location
    if not isinstance(location, dict) or not location:
        return EMPTY_ADDRESS
    street = _combine(location.get("address"), location.get("neighborhood"))
    return AddressParts(
        address=clean_string(location.get("formatted_address")) or street,
        locality=clean_string(location.get("locality")),
        region=clean_string(location.get("region")),
        country=clean_string(location.get("country")),
        postcode=clean_string(location.get("postcode")),
    )


def _openstreetmap_address(meta: PlaceMetadata) -> AddressParts:
    osm = meta.openstreetmap
    if osm is None:
        return EMPTY_ADDRESS
    tag = osm.tag
    return AddressParts(
        address=_first_clean(
            osm.address,
            _combine(tag("addr:housenumber"), tag("addr:street")),
            tag("addr:place"),
            tag("addr:full"),
        ),
        locality=_first_clean(
            osm.locality,
            tag("addr:city"),
            tag("addr:town"),
            tag("addr:village"),
            tag("addr:municipality"),
            tag("addr:suburb"),
            tag("addr:neighbourhood"),
        ),
        region=_first_clean(osm.region, tag("addr:state"), tag("addr:province"), tag("is_in:state")),
        country=_first_clean(osm.country, tag("addr:country")),
        postcode=_first_clean(osm.postcode, tag("addr:postcode"), tag("postal_code"), tag("addr:postalcode")),
    )


def resolve_address_parts(place: Place) -> AddressParts:
    meta = parse_metadata(place.metadata)
    sources = [
        AddressParts(
            address=clean_string(place.address),
            locality=clean_string(place.locality),
            region=clean_string(place.region),
            country=clean_string(place.country),
            postcode=clean_string(place.postcode),
        ),
        _foursquare_address(meta),
        _openstreetmap_address(meta),
    ]
    return AddressParts(
        address=_first_clean(*(s.address for s in sources)),
        locality=_first_clean(*(s.locality for s in sources)),
        region=_first_clean(*(s.region for s in sources)),
        country=_first_clean(*(s.country for s in sources)),
        postcode=_first_clean(*(s.postcode for s in sources)),
    )


def format_place_address(place: Place) -> Optional[str]:
    parts = resolve_address_parts(place)
    ordered: List[str] = []
    for value in (parts.address, parts.locality, parts.region, parts.country):
        if value and value not in ordered:
            ordered.append(value)
    return ", ".join(ordered) if ordered else None


def format_short_address(place: Place) -> Optional[str]:
    parts = resolve_address_parts(place)
    if parts.locality:
        return parts.locality
    if parts.address:
        primary = re.split(r"[\n,]", parts.address)[0].strip()
        if primary:
            return primary
    return parts.region or parts.country


# Name

def _usable_name(value: Any) -> Optional[str]:
    cleaned = clean_string(value)
    if not cleaned or _GENERIC_NAME_RE.match(cleaned):
        return None
    return cleaned


def resolve_place_name(place: Place) -> str:
    primary = _usable_name(place.name)
    if primary:
        return primary
    meta = parse_metadata(place.metadata)
    fallbacks: List[Any] = []
    if meta.foursquare is not None:
        fallbacks.extend([meta.foursquare.venue.get("name"), meta.foursquare.name])
    if meta.openstreetmap is not None:
        tag = meta.openstreetmap.tag
        fallbacks.extend([tag("name"), tag("name:en"), tag("alt_name")])
    for candidate in fallbacks:
        resolved = _usable_name(candidate)
        if resolved:
            return resolved
    return clean_string(place.name) or DEFAULT_PLACE_NAME
