"""
Data models for Stayfinder.

This module defines the value objects passed between the viewport resolver,
the batch fetcher and the provider adapters.
"""

import math
from dataclasses import dataclass, asdict, field
from enum import Enum
from typing import Any, List, Optional, Tuple

from stayfinder.errors import AddressError, AppError, BoundingBoxParseError, GeoPointError


# [northLat, eastLng, southLat, westLng]
BoundingBox = Tuple[float, float, float, float]


@dataclass(frozen=True)
class GeoPoint:
    """A geocoded point in degrees.

    Attributes:
        lat: Latitude, expected within [-90, 90]
        lng: Longitude, expected within [-180, 180]
    """
    lat: float
    lng: float


class ViewportStrategy(str, Enum):
    """Which tier of the viewport ladder produced a result."""
    METERS_PRIMARY = "metersPrimary"
    METERS_PRIMARY_EXPANDED = "metersPrimaryExpanded"
    ZOOM_FALLBACK = "zoomFallback"


@dataclass(frozen=True)
class ViewportMeta:
    """How the final search viewport was computed.

    Attributes:
        strategy: Tier that produced the listing ids
        width_meters: Viewport width before the safety margin
        height_meters: Viewport height before the safety margin
        safety_meters: Margin added to each side
    """
    strategy: ViewportStrategy
    width_meters: float
    height_meters: float
    safety_meters: float

    def to_dict(self) -> dict:
        data = asdict(self)
        data['strategy'] = self.strategy.value
        return data


@dataclass(frozen=True)
class ResolvedSearchFlags:
    """Search parameters handed to the rental search provider."""
    bbox: BoundingBox
    zoom_level: Optional[int] = None
    query_address: Optional[str] = None
    refinement_path: Optional[str] = None
    search_by_map: Optional[bool] = None


@dataclass(frozen=True)
class ListingsFromAddress:
    """Result of resolving an address to a search viewport."""
    listing_ids: List[str]
    bbox: BoundingBox
    viewport_meta: ViewportMeta

    def to_dict(self) -> dict:
        return {
            'listingIds': list(self.listing_ids),
            'bbox': list(self.bbox),
            'viewportMeta': self.viewport_meta.to_dict(),
        }


@dataclass
class DerivedRecord:
    """Detail payload derived from one listing's provider response.

    Attributes:
        listing_id: Provider listing identifier
        html_texts: Unique htmlText fragments found in the response
        structured_items: Title/action pairs from structured list items
        lat: Listing latitude, when the response carries one
        lng: Listing longitude, when the response carries one
    """
    listing_id: str
    html_texts: List[str] = field(default_factory=list)
    structured_items: List[dict] = field(default_factory=list)
    lat: Optional[float] = None
    lng: Optional[float] = None

    def to_dict(self) -> dict:
        return {
            'listingId': self.listing_id,
            'htmlTexts': list(self.html_texts),
            'structuredItems': [dict(item) for item in self.structured_items],
            'lat': self.lat,
            'lng': self.lng,
        }


@dataclass
class FetchOutcome:
    """Per-slot result of fetching one listing: a record or an error."""
    listing_id: str
    record: Optional[DerivedRecord] = None
    error: Optional[AppError] = None
    attempts: int = 0

    @property
    def ok(self) -> bool:
        return self.error is None and self.record is not None


def parse_geo_point(lat_str: Any, lng_str: Any) -> GeoPoint:
    """Parse provider coordinate strings into a validated GeoPoint.

    Raises:
        GeoPointError: If either value is not a string, not a finite number,
            or outside its valid range
    """
    if not isinstance(lat_str, str) or not isinstance(lng_str, str):
        raise GeoPointError("Latitude and longitude must be strings")

    try:
        lat = float(lat_str.strip())
    except ValueError:
        lat = math.nan
    try:
        lng = float(lng_str.strip())
    except ValueError:
        lng = math.nan

    if not math.isfinite(lat):
        raise GeoPointError(f'Invalid latitude: "{lat_str}" is not a finite number')
    if not math.isfinite(lng):
        raise GeoPointError(f'Invalid longitude: "{lng_str}" is not a finite number')
    if lat < -90 or lat > 90:
        raise GeoPointError(f"Latitude must be within [-90, 90], got {lat}")
    if lng < -180 or lng > 180:
        raise GeoPointError(f"Longitude must be within [-180, 180], got {lng}")

    return GeoPoint(lat=lat, lng=lng)


def parse_bounding_box(text: Any) -> BoundingBox:
    """Parse "neLat,neLng,swLat,swLng" into a BoundingBox.

    Raises:
        BoundingBoxParseError: On anything other than four finite numbers
    """
    if not text or not isinstance(text, str):
        raise BoundingBoxParseError("Bounding box input must be a non-empty string")

    trimmed = text.strip()
    if not trimmed:
        raise BoundingBoxParseError("Bounding box input cannot be empty")

    parts = [p.strip() for p in trimmed.split(',') if p.strip()]
    if len(parts) != 4:
        raise BoundingBoxParseError(
            'Invalid bbox format. Expected "neLat,neLng,swLat,swLng", '
            f"got {len(parts)} segment(s)"
        )

    try:
        numbers = [float(p) for p in parts]
    except ValueError:
        raise BoundingBoxParseError("bbox must contain only finite numbers")
    if not all(math.isfinite(n) for n in numbers):
        raise BoundingBoxParseError("bbox must contain only finite numbers")

    north, east, south, west = numbers
    return (north, east, south, west)


def normalize_address(raw: Any) -> str:
    """Trim a free-form street address; empty input raises AddressError."""
    address = raw.strip() if isinstance(raw, str) else ""
    if not address:
        raise AddressError("Address cannot be empty")
    return address
