"""Geometry helpers for computing search viewports."""

from .bbox import (
    MeterBoxSpec,
    ZoomViewportSpec,
    box_from_meters,
    box_from_zoom_viewport,
    ground_resolution_meters_per_pixel,
    meters_per_degree_latitude,
    meters_per_degree_longitude,
    normalize_longitude,
    validate_geo_point,
)

__all__ = [
    'MeterBoxSpec',
    'ZoomViewportSpec',
    'box_from_meters',
    'box_from_zoom_viewport',
    'ground_resolution_meters_per_pixel',
    'meters_per_degree_latitude',
    'meters_per_degree_longitude',
    'normalize_longitude',
    'validate_geo_point',
]
