"""
Bounding box geometry for viewport searches.

Converts linear (meters) and pixel (Web Mercator zoom) viewport sizes into a
bounding box around a center point, using the WGS-84 series approximations for
the length of one degree of latitude and longitude.
"""

import math
from dataclasses import dataclass
from typing import Tuple

from stayfinder.errors import GeoPointError
from stayfinder.models import BoundingBox, GeoPoint


# Web Mercator ground resolution at the equator for zoom 0, meters/pixel
EQUATOR_RESOLUTION_M_PER_PX = 156543.03392


@dataclass(frozen=True)
class MeterBoxSpec:
    """Viewport size in meters.

    Attributes:
        width_meters: East-west extent
        height_meters: North-south extent
        safety_meters: Extra margin added on every side
    """
    width_meters: float
    height_meters: float
    safety_meters: float

    def scaled(self, factor: float) -> 'MeterBoxSpec':
        """Return a copy with width and height multiplied by factor.

        The safety margin is not scaled.
        """
        return MeterBoxSpec(
            width_meters=self.width_meters * factor,
            height_meters=self.height_meters * factor,
            safety_meters=self.safety_meters,
        )


@dataclass(frozen=True)
class ZoomViewportSpec:
    """Viewport size as a map zoom level plus screen dimensions in pixels."""
    zoom: float
    width_px: float
    height_px: float
    safety_meters: float


def meters_per_degree_latitude(phi: float) -> float:
    """Length of one degree of latitude at phi (radians), in meters."""
    return (
        111132.92
        - 559.82 * math.cos(2 * phi)
        + 1.175 * math.cos(4 * phi)
        - 0.0023 * math.cos(6 * phi)
    )


def meters_per_degree_longitude(phi: float) -> float:
    """Length of one degree of longitude at phi (radians), in meters."""
    return (
        111412.84 * math.cos(phi)
        - 93.5 * math.cos(3 * phi)
        + 0.118 * math.cos(5 * phi)
    )


def normalize_longitude(lng: float) -> float:
    """Wrap a longitude into [-180, 180].

    Same result as repeatedly adding or subtracting 360 until the value is in
    range, so 180 and -180 are both left alone.
    """
    if lng > 180:
        lng -= 360 * math.ceil((lng - 180) / 360)
    elif lng < -180:
        lng += 360 * math.ceil((-180 - lng) / 360)
    return lng


def validate_geo_point(point: GeoPoint) -> GeoPoint:
    """Raise GeoPointError unless point has finite, in-range coordinates."""
    if not math.isfinite(point.lat) or not math.isfinite(point.lng):
        raise GeoPointError("Latitude and longitude must be finite numbers")
    if point.lat < -90 or point.lat > 90:
        raise GeoPointError(f"Latitude must be within [-90, 90], got {point.lat}")
    if point.lng < -180 or point.lng > 180:
        raise GeoPointError(f"Longitude must be within [-180, 180], got {point.lng}")
    return point


def box_from_meters(center: GeoPoint, spec: MeterBoxSpec) -> BoundingBox:
    """Compute a bounding box of the given size in meters around center.

    Latitude is not clamped: a center close to a pole can produce a north or
    south edge beyond +/-90. Longitudes are wrapped into [-180, 180].

    Args:
        center: Box center
        spec: Width, height and safety margin in meters

    Returns:
        (north, east, south, west) in degrees

    Raises:
        GeoPointError: If center is not a valid coordinate
    """
    validate_geo_point(center)

    phi = center.lat * math.pi / 180

    height = spec.height_meters + 2 * spec.safety_meters
    width = spec.width_meters + 2 * spec.safety_meters

    delta_lat = (height / 2) / meters_per_degree_latitude(phi)
    delta_lng = (width / 2) / meters_per_degree_longitude(phi)

    return (
        center.lat + delta_lat,
        normalize_longitude(center.lng + delta_lng),
        center.lat - delta_lat,
        normalize_longitude(center.lng - delta_lng),
    )


def ground_resolution_meters_per_pixel(lat: float, zoom: float) -> float:
    """Meters covered by one pixel at lat (degrees) and zoom, Web Mercator."""
    return EQUATOR_RESOLUTION_M_PER_PX * math.cos(lat * math.pi / 180) / (2 ** zoom)


def box_from_zoom_viewport(
    center: GeoPoint,
    spec: ZoomViewportSpec
) -> Tuple[BoundingBox, float, float]:
    """Compute the bounding box a map viewport would show around center.

    Returns:
        (bbox, width_meters, height_meters) where the meter sizes are the
        viewport extent before the safety margin

    Raises:
        GeoPointError: If center is not a valid coordinate
    """
    validate_geo_point(center)

    resolution = ground_resolution_meters_per_pixel(center.lat, spec.zoom)
    width_meters = resolution * spec.width_px
    height_meters = resolution * spec.height_px

    bbox = box_from_meters(
        center,
        MeterBoxSpec(
            width_meters=width_meters,
            height_meters=height_meters,
            safety_meters=spec.safety_meters,
        ),
    )
    return bbox, width_meters, height_meters
