"""
Collaborator contracts consumed by the viewport resolver and batch fetcher.

Implementations return the value on success and raise an AppError subclass on
failure. Per-call timeouts are enforced here, not by the callers.
"""

from typing import List, Optional, Protocol

from stayfinder.models import DerivedRecord, GeoPoint, ResolvedSearchFlags


class Geocoding(Protocol):
    async def forward_geocode(self, address: str, timeout_ms: Optional[int] = None) -> GeoPoint:
        ...


class RentalSearch(Protocol):
    async def find_listing_ids(
        self,
        flags: ResolvedSearchFlags,
        timeout_ms: Optional[int] = None
    ) -> List[str]:
        ...


class DetailFetch(Protocol):
    async def fetch(self, listing_id: str, timeout_ms: Optional[int] = None) -> DerivedRecord:
        ...
