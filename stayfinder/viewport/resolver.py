"""
Viewport resolver for Stayfinder.

Turns a street address into a search viewport and the listing ids found inside
it, walking a fixed ladder of tiers: a meters-based primary box, the same box
expanded, and finally a zoom-based map viewport.
"""

import logging
from typing import List, Optional

from stayfinder.config.settings import ViewportTierConfig
from stayfinder.errors import AppError, DomainError, InvalidResponseError, to_app_error
from stayfinder.geo.bbox import MeterBoxSpec, box_from_meters, box_from_zoom_viewport
from stayfinder.models import (
    BoundingBox,
    GeoPoint,
    ListingsFromAddress,
    ResolvedSearchFlags,
    ViewportMeta,
    ViewportStrategy,
)
from stayfinder.providers.base import Geocoding, RentalSearch


logger = logging.getLogger(__name__)


class ViewportResolver:
    """
    Resolves an address to listing ids using a deterministic tier ladder.

    Tier order:
        1. Primary meters box (default 350m x 250m, 10m safety)
        2. Primary box scaled by the expansion factor, only when the primary
           search succeeded with zero ids
        3. Zoom-based fallback viewport (default zoom 17, 400x300 px)

    A search error at the primary tier is logged and absorbed; the resolver
    goes straight to the fallback tier. Only the fallback tier's search error
    reaches the caller.

    Attributes:
        geocoding: Forward geocoder for the address
        rental_search: Provider search over a bounding box
        tiers: Tier sizes and fixed search flags
    """

    def __init__(
        self,
        geocoding: Geocoding,
        rental_search: RentalSearch,
        tiers: Optional[ViewportTierConfig] = None
    ):
        self.geocoding = geocoding
        self.rental_search = rental_search
        self.tiers = tiers or ViewportTierConfig()

    async def resolve(self, address: str, timeout_ms: Optional[int] = None) -> ListingsFromAddress:
        """
        Find listing ids around an address.

        Args:
            address: Street address to geocode
            timeout_ms: Per-call timeout forwarded to the collaborators

        Returns:
            Listing ids, the bbox that produced them and the tier metadata

        Raises:
            AppError: Geocoding errors verbatim; InvalidInputError for invalid
                geometry; the fallback tier's search error; or
                InvalidResponseError when no tier yields listings
        """
        center = await self.geocoding.forward_geocode(address, timeout_ms)
        logger.debug(f"Geocoded {address!r} to ({center.lat}, {center.lng})")

        primary_spec = self.tiers.primary_spec()
        primary_bbox = self._box_from_meters(center, primary_spec)

        primary_ids: Optional[List[str]]
        try:
            primary_ids = await self._search(address, primary_bbox, timeout_ms)
        except AppError as e:
            logger.warning(
                f"Primary viewport search failed ({e.kind}: {e.message}); "
                f"skipping expansion and using zoom fallback"
            )
            primary_ids = None

        if primary_ids:
            logger.info(f"Primary viewport returned {len(primary_ids)} listing(s)")
            return self._result(primary_ids, primary_bbox, ViewportStrategy.METERS_PRIMARY, primary_spec)

        if primary_ids is not None:
            expanded_spec = self.tiers.expanded_spec()
            expanded_bbox = self._box_from_meters(center, expanded_spec)
            logger.info(
                f"Primary viewport empty, retrying with "
                f"{expanded_spec.width_meters:.0f}m x {expanded_spec.height_meters:.0f}m"
            )
            try:
                expanded_ids = await self._search(address, expanded_bbox, timeout_ms)
            except AppError as e:
                logger.warning(f"Expanded viewport search failed ({e.kind}: {e.message})")
                expanded_ids = []

            if expanded_ids:
                logger.info(f"Expanded viewport returned {len(expanded_ids)} listing(s)")
                return self._result(
                    expanded_ids,
                    expanded_bbox,
                    ViewportStrategy.METERS_PRIMARY_EXPANDED,
                    expanded_spec,
                )

        try:
            fallback_bbox, width_meters, height_meters = box_from_zoom_viewport(
                center, self.tiers.fallback_spec()
            )
        except DomainError as e:
            raise to_app_error(e) from e

        if width_meters < primary_spec.width_meters or height_meters < primary_spec.height_meters:
            raise InvalidResponseError(
                "Zoom-based fallback viewport is smaller than primary meters-based viewport; "
                "cannot proceed"
            )

        logger.info(
            f"Using zoom fallback viewport {width_meters:.0f}m x {height_meters:.0f}m "
            f"at zoom {self.tiers.fallback_zoom}"
        )
        fallback_ids = await self._search(address, fallback_bbox, timeout_ms)

        if not fallback_ids:
            raise InvalidResponseError(
                "No listingIds found after primary meters-based viewport, "
                "expanded retry, and zoom-based fallback"
            )

        return self._result(
            fallback_ids,
            fallback_bbox,
            ViewportStrategy.ZOOM_FALLBACK,
            MeterBoxSpec(
                width_meters=width_meters,
                height_meters=height_meters,
                safety_meters=primary_spec.safety_meters,
            ),
        )

    def build_flags(self, address: str, bbox: BoundingBox) -> ResolvedSearchFlags:
        """Search flags for one tier: the bbox plus the fixed parameters."""
        return ResolvedSearchFlags(
            bbox=bbox,
            zoom_level=self.tiers.search_zoom,
            query_address=address,
            refinement_path=self.tiers.refinement_path,
            search_by_map=self.tiers.search_by_map,
        )

    async def _search(
        self,
        address: str,
        bbox: BoundingBox,
        timeout_ms: Optional[int]
    ) -> List[str]:
        return await self.rental_search.find_listing_ids(self.build_flags(address, bbox), timeout_ms)

    @staticmethod
    def _box_from_meters(center: GeoPoint, spec: MeterBoxSpec) -> BoundingBox:
        try:
            return box_from_meters(center, spec)
        except DomainError as e:
            raise to_app_error(e) from e

    @staticmethod
    def _result(
        listing_ids: List[str],
        bbox: BoundingBox,
        strategy: ViewportStrategy,
        spec: MeterBoxSpec
    ) -> ListingsFromAddress:
        return ListingsFromAddress(
            listing_ids=list(listing_ids),
            bbox=bbox,
            viewport_meta=ViewportMeta(
                strategy=strategy,
                width_meters=spec.width_meters,
                height_meters=spec.height_meters,
                safety_meters=spec.safety_meters,
            ),
        )
