"""Places provider client with caching and response parsing."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import requests

from .cache import Cache, make_request_cache_key
from .http import HttpClient, RequestMetrics
from .models import Place, ViewportQuery

logger = logging.getLogger(__name__)


class PlacesUnavailableError(RuntimeError):
    """The provider could not supply place data for a query."""


class PlacesClient:
    def __init__(
        self,
        http_client: HttpClient,
        endpoint: str,
        cache: Optional[Cache] = None,
        no_cache: bool = False,
        metrics: Optional[RequestMetrics] = None,
    ) -> None:
        if not endpoint:
            raise ValueError("A places endpoint URL is required")
        self.http = http_client
        self.endpoint = endpoint
        self.cache = cache
        self.no_cache = no_cache
        self.metrics = metrics if metrics is not None else RequestMetrics()

    def fetch_raw(self, query: ViewportQuery) -> Dict[str, Any]:
        params = build_query_params(query)
        key = make_request_cache_key(self.endpoint, params)
        use_cache = self.cache is not None and not self.no_cache and not query.force_refresh
        if use_cache:
            cached = self.cache.get_response(key)
            if cached is not None:
                self.metrics.cache_hits += 1
                logger.debug("Places cache hit for %s", params.get("sw"))
                return cached

        try:
            payload = self.http.get_json(self.endpoint, params)
        except (requests.RequestException, ValueError) as exc:
            self.metrics.failures += 1
            raise PlacesUnavailableError(f"Places request failed: {exc}") from exc
        if not isinstance(payload, dict) or not isinstance(payload.get("places"), list):
            self.metrics.failures += 1
            raise PlacesUnavailableError("Unexpected places response shape.")

        if self.cache is not None and not self.no_cache:
            self.cache.set_response(key, payload)
        return payload

    def fetch(self, query: ViewportQuery) -> List[Place]:
        return parse_places_response(self.fetch_raw(query))


def build_query_params(query: ViewportQuery) -> Dict[str, str]:
    sw = query.bounds.sw
    ne = query.bounds.ne
    params: Dict[str, str] = {
        "sw": f"{sw.lat},{sw.lng}",
        "ne": f"{ne.lat},{ne.lng}",
    }
    if query.categories:
        params["categories"] = ",".join(query.categories)
    if query.limit:
        params["limit"] = str(query.limit)
    if query.force_refresh:
        params["force"] = "1"
    if query.city:
        params["city"] = query.city
    return params


# Adapter/mapper for provider place records

def parse_places_response(response: Dict[str, Any]) -> List[Place]:
    records = response.get("places") or []
    parsed: List[Place] = []
    skipped = 0
    for record in records:
        if not isinstance(record, dict) or not record.get("id"):
            skipped += 1
            continue
        place = Place.from_dict(record)
        if not place.has_valid_coordinates:
            skipped += 1
            continue
        parsed.append(place)
    if skipped:
        logger.debug("Skipped %s place records without id or valid coordinates", skipped)
    return parsed
