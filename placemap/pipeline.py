"""Map view orchestration: filter, cluster, summarise."""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional

from .attributes import format_short_address, resolve_place_name
from .clustering import cluster
from .filters import apply_filters, build_filter_summary, count_active_filters
from .models import CategoryConfig, Filters, MapRegion, MapView, Place

logger = logging.getLogger(__name__)


def build_map_view(
    places: Iterable[Place],
    region: MapRegion,
    filters: Filters,
    reference_time: Optional[datetime] = None,
    category_config: Optional[Mapping[str, CategoryConfig]] = None,
    taxonomy_tags: Optional[Mapping[str, Iterable[str]]] = None,
    label_map: Optional[Mapping[str, str]] = None,
) -> MapView:
    places = list(places)
    filtered, rejection_counts = apply_filters(
        places,
        filters,
        region.center,
        reference_time=reference_time,
        category_config=category_config,
        taxonomy_tags=taxonomy_tags,
    )
    logger.info(
        "Filters: %s of %s places kept (rejections: %s)",
        len(filtered),
        len(places),
        rejection_counts or "none",
    )

    clustered = cluster(filtered, region)
    logger.info(
        "Clustering: %s clusters, %s singles (delta=%s)",
        len(clustered.clusters),
        len(clustered.singles),
        region.latitude_delta,
    )

    if label_map is None and category_config:
        label_map = {key: cfg.label for key, cfg in category_config.items()}

    return MapView(
        clusters=clustered.clusters,
        singles=clustered.singles,
        places=tuple(filtered),
        summary=build_filter_summary(filters, label_map),
        active_filter_count=count_active_filters(filters),
        rejection_counts=rejection_counts,
    )


def build_place_row(place: Place) -> Dict[str, Any]:
    row = place.to_dict()
    row["display_name"] = resolve_place_name(place)
    row["short_address"] = format_short_address(place)
    return row


def build_render_payload(view: MapView) -> Dict[str, Any]:
    return {
        "clusters": [
            {
                "id": c.id,
                "coordinate": c.coordinate.to_dict(),
                "count": c.count,
                "places": [p.id for p in c.places],
            }
            for c in view.clusters
        ],
        "singles": [
            {"place": build_place_row(s.place), "coordinate": s.coordinate.to_dict()}
            for s in view.singles
        ],
        "places": [build_place_row(p) for p in view.places],
        "summary": view.summary,
        "active_filter_count": view.active_filter_count,
        "rejections": dict(view.rejection_counts),
    }


def render_summary(view: MapView) -> List[str]:
    count = len(view.places)
    if count:
        headline = f"{count} place{'' if count == 1 else 's'} in view"
    else:
        headline = "No places in view"
    lines = [
        headline,
        f"Clusters: {len(view.clusters)}",
        f"Markers: {len(view.singles)}",
    ]
    if view.summary:
        lines.append(f"Filters ({view.active_filter_count}): {view.summary}")
    if view.rejection_counts:
        counts = ", ".join(f"{k}={v}" for k, v in sorted(view.rejection_counts.items()))
        lines.append(f"Rejected: {counts}")
    return lines
