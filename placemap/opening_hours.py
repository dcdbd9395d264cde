"""Opening-hours normalisation.

Providers describe schedules in several incompatible ways: structured
``{start, end}`` entries nested under Foursquare-style timeframes, rendered
text ranges, and OpenStreetMap ``opening_hours`` strings. Everything is reduced
to day-independent :class:`OpeningSegment` values in minutes of day. A segment
whose start is after its end wraps past midnight; start == end means the place
is open all day.

Nothing here raises on bad input. Unparseable tokens are dropped and callers
get an empty segment list, which they must treat as "unknown".
"""
from __future__ import annotations

import re
from datetime import datetime
from typing import Any, Iterable, List, Optional

from . import config
from .metadata import PlaceMetadata, dig, parse_metadata
from .models import OpeningSegment, Place

MINUTES_PER_DAY = 1440

_HHMM_RE = re.compile(r"^\d{3,4}$")
_TIME_RE = re.compile(r"(\d{1,2})(?:[:.](\d{2}))?\s*(am|pm)?", re.IGNORECASE)
_RANGE_SPLIT_RE = re.compile(r"–|-")
_TEXT_RANGE_RE = re.compile(r"(\d{1,2}[:.]\d{2}|\d{1,2})\s*[-–]\s*(\d{1,2}[:.]\d{2}|\d{1,2})")

_START_KEYS = ("start", "startTime", "from", "begin")
_END_KEYS = ("end", "endTime", "to", "finish")
_ENTRY_LIST_KEYS = ("open", "segments", "entries")
_OPEN_FLAG_KEYS = ("openNow", "isOpen", "open_now", "is_open")
_HOURS_FLAG_KEYS = ("isOpen", "openNow", "open_now", "is_open")


def _to_minutes(hours: int, minutes: int) -> Optional[int]:
    if hours == 24:
        hours = 0
    if not (0 <= hours < 24 and 0 <= minutes < 60):
        return None
    return hours * 60 + minutes


def parse_time_token(value: Any) -> Optional[int]:
    """Parse ``HHMM``, ``H:MM``, ``H.MM`` or ``H[:MM] am/pm`` into minutes of day."""
    if not isinstance(value, str):
        return None
    trimmed = value.strip()
    if not trimmed:
        return None
    if _HHMM_RE.match(trimmed):
        padded = trimmed.zfill(4)
        return _to_minutes(int(padded[:-2]), int(padded[-2:]))
    match = _TIME_RE.search(trimmed)
    if not match:
        return None
    hours = int(match.group(1))
    minutes = int(match.group(2) or "0")
    meridiem = (match.group(3) or "").lower()
    if meridiem == "pm" and hours < 12:
        hours += 12
    if meridiem == "am" and hours == 12:
        hours = 0
    return _to_minutes(hours, minutes)


def parse_rendered_range(value: Any) -> Optional[OpeningSegment]:
    if not isinstance(value, str):
        return None
    parts = _RANGE_SPLIT_RE.split(value)
    if len(parts) != 2:
        return None
    start = parse_time_token(parts[0])
    end = parse_time_token(parts[1])
    if start is None or end is None:
        return None
    return OpeningSegment(start, end)


def _first_present(entry: Any, keys: Iterable[str]) -> Any:
    for key in keys:
        value = dig(entry, key)
        if value is not None:
            return value
    return None


def _segments_from_timeframes(timeframes: Any) -> List[OpeningSegment]:
    if not isinstance(timeframes, list):
        return []
    segments: List[OpeningSegment] = []
    for frame in timeframes:
        entries: Any = []
        for key in _ENTRY_LIST_KEYS:
            candidate = dig(frame, key)
            if isinstance(candidate, list):
                entries = candidate
                break
        for entry in entries:
            start = parse_time_token(_first_present(entry, _START_KEYS))
            end = parse_time_token(_first_present(entry, _END_KEYS))
            if start is not None and end is not None:
                segments.append(OpeningSegment(start, end))
                continue
            parsed = parse_rendered_range(dig(entry, "renderedTime"))
            if parsed:
                segments.append(parsed)
    return segments


def _segments_from_text(text: Any) -> List[OpeningSegment]:
    if not isinstance(text, str):
        return []
    segments: List[OpeningSegment] = []
    for part in text.split(";"):
        match = _TEXT_RANGE_RE.search(part)
        if not match:
            continue
        start = parse_time_token(match.group(1))
        end = parse_time_token(match.group(2))
        if start is not None and end is not None:
            segments.append(OpeningSegment(start, end))
    return segments


def _opening_hours_text(meta: PlaceMetadata) -> Any:
    osm = meta.openstreetmap
    if osm is not None:
        tagged = osm.tags.get("opening_hours")
        if tagged is not None:
            return tagged
        if osm.opening_hours is not None:
            return osm.opening_hours
    return meta.get("opening_hours")


def extract_segments(metadata: Any) -> List[OpeningSegment]:
    """Collect opening segments from every known provider shape.

    All shapes are merged: providers may describe the same place more than
    once and no single source is authoritative.
    """
    meta = parse_metadata(metadata)
    if meta.is_empty:
        return []
    fsq = meta.foursquare
    sources = [
        meta.get("hours", "timeframes"),
        meta.get("popular", "timeframes"),
        meta.get("timeframes"),
        dig(fsq.hours, "timeframes") if fsq else None,
        dig(fsq.popular, "timeframes") if fsq else None,
    ]
    segments: List[OpeningSegment] = []
    for timeframes in sources:
        segments.extend(_segments_from_timeframes(timeframes))
    segments.extend(_segments_from_text(_opening_hours_text(meta)))
    return segments


def segment_covers_minute(segment: OpeningSegment, minute: int) -> bool:
    if segment.all_day:
        return True
    if segment.wraps:
        return minute >= segment.start or minute <= segment.end
    return segment.start <= minute <= segment.end


def is_open_at_minute(segments: Iterable[OpeningSegment], minute: int) -> bool:
    normalised = minute % MINUTES_PER_DAY
    return any(segment_covers_minute(s, normalised) for s in segments)


def _window_sample_minutes(start_hour: int, end_hour: int, step: int) -> List[int]:
    start = (start_hour % 24) * 60
    end = (end_hour % 24) * 60
    if start == end:
        return [start]
    if end == 0:
        end = MINUTES_PER_DAY
    if start < end:
        return [m % MINUTES_PER_DAY for m in range(start, end + 1, step)]
    return list(range(start, MINUTES_PER_DAY, step)) + list(range(0, end + 1, step))


def is_open_during_window(
    segments: List[OpeningSegment],
    start_hour: int,
    end_hour: int,
    step_minutes: int = config.WINDOW_SAMPLE_STEP_MINUTES,
) -> Optional[bool]:
    """Sample the window at a fixed step.

    Returns None when there are no segments at all so callers can tell
    "closed" apart from "unknown".
    """
    if not segments:
        return None
    samples = _window_sample_minutes(start_hour, end_hour, max(1, int(step_minutes)))
    return any(is_open_at_minute(segments, m) for m in samples)


def resolve_open_now_flag(metadata: Any) -> Optional[bool]:
    meta = parse_metadata(metadata)
    candidates: List[Any] = [meta.get(k) for k in _OPEN_FLAG_KEYS]
    candidates.extend(meta.get("hours", k) for k in _HOURS_FLAG_KEYS)
    if meta.foursquare is not None:
        candidates.extend(dig(meta.foursquare.hours, k) for k in _HOURS_FLAG_KEYS)
    if meta.google_places is not None:
        candidates.append(meta.google_places.open_now)
    for candidate in candidates:
        if isinstance(candidate, bool):
            return candidate
    return None


def minute_of_day(reference: datetime) -> int:
    return reference.hour * 60 + reference.minute


def is_place_open_now(place: Place, reference: datetime) -> Optional[bool]:
    meta = parse_metadata(place.metadata)
    flag = resolve_open_now_flag(meta)
    if flag is not None:
        return flag
    segments = extract_segments(meta)
    if not segments:
        return None
    return is_open_at_minute(segments, minute_of_day(reference))
