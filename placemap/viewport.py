"""Viewport normalisation and debounced query planning."""
from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Iterable, Optional, Tuple

from . import config
from .geo import clamp
from .models import LatLng, MapRegion, ViewportBounds, ViewportQuery

logger = logging.getLogger(__name__)


def normalise_region(region: MapRegion) -> MapRegion:
    decimals = config.REGION_DECIMALS
    return MapRegion(
        latitude=round(region.latitude, decimals),
        longitude=round(region.longitude, decimals),
        latitude_delta=clamp(
            round(region.latitude_delta, decimals), config.MIN_MAP_DELTA, config.MAX_MAP_DELTA
        ),
        longitude_delta=clamp(
            round(region.longitude_delta, decimals), config.MIN_MAP_DELTA, config.MAX_MAP_DELTA
        ),
    )


def regions_approximately_equal(
    a: MapRegion, b: MapRegion, epsilon: float = config.REGION_EPSILON
) -> bool:
    return (
        abs(a.latitude - b.latitude) < epsilon
        and abs(a.longitude - b.longitude) < epsilon
        and abs(a.latitude_delta - b.latitude_delta) < epsilon
        and abs(a.longitude_delta - b.longitude_delta) < epsilon
    )


def bounds_from_region(region: MapRegion) -> ViewportBounds:
    lat_span = region.latitude_delta / 2
    lng_span = region.longitude_delta / 2
    return ViewportBounds(
        sw=LatLng(region.latitude - lat_span, region.longitude - lng_span),
        ne=LatLng(region.latitude + lat_span, region.longitude + lng_span),
    )


def build_viewport_query(
    region: MapRegion,
    categories: Optional[Iterable[str]] = None,
    city: Optional[str] = None,
    limit: Optional[int] = None,
) -> ViewportQuery:
    cats = tuple(categories) if categories else None
    return ViewportQuery(
        bounds=bounds_from_region(region),
        limit=int(limit if limit is not None else config.PLACES_PAGE_SIZE),
        city=city,
        categories=cats or None,
    )


@dataclass
class _PendingQuery:
    token: int
    query: ViewportQuery
    due_at: float
    timer: Optional[threading.Timer] = None


class ViewportQueryPlanner:
    """Collapse bursts of viewport changes into one query per quiet period.

    A single pending slot holds the most recent query. Every accepted change
    replaces the slot and restarts the quiet period, so only the latest region
    is ever emitted. Hosts either call ``poll()`` from their own loop or pass
    ``use_timer=True`` to let a cancellable ``threading.Timer`` fire it.
    """

    def __init__(
        self,
        on_query: Callable[[ViewportQuery], None],
        quiet_period: float = config.VIEWPORT_DEBOUNCE_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        use_timer: bool = False,
        timer_factory: Callable[..., threading.Timer] = threading.Timer,
        limit: Optional[int] = None,
        city: Optional[str] = None,
        categories: Optional[Iterable[str]] = None,
    ) -> None:
        if quiet_period <= 0:
            raise ValueError("quiet_period must be positive")
        self.on_query = on_query
        self.quiet_period = float(quiet_period)
        self.clock = clock
        self.use_timer = use_timer
        self.timer_factory = timer_factory
        self.limit = limit
        self.city = city
        self.categories: Tuple[str, ...] = tuple(categories or ())
        self._lock = threading.Lock()
        self._pending: Optional[_PendingQuery] = None
        self._token = 0
        self._last_region: Optional[MapRegion] = None
        self.last_query: Optional[ViewportQuery] = None
        self.fired_count = 0

    @property
    def last_region(self) -> Optional[MapRegion]:
        return self._last_region

    @property
    def pending_query(self) -> Optional[ViewportQuery]:
        with self._lock:
            return self._pending.query if self._pending else None

    def region_changed(self, region: MapRegion) -> bool:
        """Record a viewport change. Returns False when it was a near-duplicate."""
        normalised = normalise_region(region)
        with self._lock:
            last = self._last_region
            if last is not None and regions_approximately_equal(last, normalised):
                return False
            self._last_region = normalised
            self._schedule_locked(normalised)
        return True

    def set_categories(self, categories: Optional[Iterable[str]]) -> None:
        with self._lock:
            self.categories = tuple(categories or ())
            if self._last_region is not None:
                self._schedule_locked(self._last_region)

    def poll(self) -> Optional[ViewportQuery]:
        with self._lock:
            pending = self._pending
            if pending is None or self.clock() < pending.due_at:
                return None
            self._pending = None
        return self._emit(pending.query)

    def flush(self) -> Optional[ViewportQuery]:
        with self._lock:
            pending = self._pending
            self._pending = None
            if pending is None:
                return None
            self._cancel_timer(pending)
        return self._emit(pending.query)

    def cancel(self) -> None:
        with self._lock:
            if self._pending is not None:
                self._cancel_timer(self._pending)
            self._pending = None

    def _schedule_locked(self, region: MapRegion) -> None:
        if self._pending is not None:
            self._cancel_timer(self._pending)
        self._token += 1
        query = build_viewport_query(
            region, categories=self.categories, city=self.city, limit=self.limit
        )
        pending = _PendingQuery(
            token=self._token,
            query=query,
            due_at=self.clock() + self.quiet_period,
        )
        if self.use_timer:
            timer = self.timer_factory(self.quiet_period, self._fire_if_current, args=(pending.token,))
            timer.daemon = True
            pending.timer = timer
            timer.start()
        self._pending = pending

    def _fire_if_current(self, token: int) -> None:
        with self._lock:
            pending = self._pending
            if pending is None or pending.token != token:
                return
            self._pending = None
        self._emit(pending.query)

    def _cancel_timer(self, pending: _PendingQuery) -> None:
        if pending.timer is not None:
            pending.timer.cancel()

    def _emit(self, query: ViewportQuery) -> ViewportQuery:
        self.last_query = query
        self.fired_count += 1
        logger.debug("Viewport query planned: %s", query.to_dict()["bounds"])
        self.on_query(query)
        return query
