"""LocationIQ forward geocoding adapter."""

import logging
from typing import Optional

import aiohttp
from pydantic import BaseModel, ValidationError

from stayfinder.config.settings import ProviderConfig
from stayfinder.errors import DomainError, InvalidResponseError, to_app_error
from stayfinder.models import GeoPoint, parse_geo_point
from stayfinder.providers.http import request_json


logger = logging.getLogger(__name__)


class LocationIqHit(BaseModel):
    """One forward-geocoding match; LocationIQ sends coordinates as strings."""
    lat: Optional[str] = None
    lon: Optional[str] = None
    display_name: Optional[str] = None


class LocationIqGeocoder:
    """
    Geocodes street addresses with the LocationIQ search endpoint.

    Only the first match is used.
    """

    def __init__(self, session: aiohttp.ClientSession, config: ProviderConfig):
        self.session = session
        self.config = config

    async def forward_geocode(self, address: str, timeout_ms: Optional[int] = None) -> GeoPoint:
        """
        Resolve an address to a GeoPoint.

        Raises:
            InvalidResponseError: No matches, or the first match has no usable
                coordinates
            InvalidInputError: Coordinates present but invalid
            RequestTimeoutError, TransportError: From the HTTP call
        """
        data = await request_json(
            self.session,
            "GET",
            self.config.locationiq_url,
            params={
                "key": self.config.locationiq_api_key or "",
                "q": address,
                "format": "json",
            },
            timeout_ms=timeout_ms or self.config.default_timeout_ms,
        )

        if not isinstance(data, list) or not data:
            raise InvalidResponseError("LocationIQ returned no results")

        try:
            first = LocationIqHit.model_validate(data[0])
        except ValidationError as e:
            raise InvalidResponseError(f"LocationIQ result has unexpected shape: {e}") from e

        if not first.lat or not first.lon:
            raise InvalidResponseError("LocationIQ result missing lat/lon")

        try:
            point = parse_geo_point(first.lat, first.lon)
        except DomainError as e:
            raise to_app_error(e) from e

        logger.info(f"Geocoded {address!r} -> {first.display_name or 'unnamed match'}")
        return point
