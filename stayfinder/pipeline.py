"""
Address-to-details pipeline.

Resolves the search viewport for an address, then fetches detail records for
the listing ids it returned.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

import aiohttp

from stayfinder.config.settings import StayfinderSettings
from stayfinder.errors import DomainError, to_app_error
from stayfinder.fetching.batch_fetcher import BatchFetcher
from stayfinder.models import DerivedRecord, ListingsFromAddress, normalize_address
from stayfinder.providers.airbnb import AirbnbDetailClient, AirbnbSearchClient
from stayfinder.providers.locationiq import LocationIqGeocoder
from stayfinder.viewport.resolver import ViewportResolver


logger = logging.getLogger(__name__)


@dataclass
class PipelineResult:
    viewport: ListingsFromAddress
    records: List[DerivedRecord]

    def to_dict(self) -> dict:
        data = self.viewport.to_dict()
        data['records'] = [r.to_dict() for r in self.records]
        return data


async def find_listing_details(
    address: str,
    resolver: ViewportResolver,
    fetcher: BatchFetcher,
    timeout_ms: Optional[int] = None
) -> PipelineResult:
    """
    Resolve the viewport for an address and fetch every listing it contains.

    Raises:
        AppError: InvalidInputError for an empty address, otherwise whatever
            the resolver or fetcher raised
    """
    try:
        address = normalize_address(address)
    except DomainError as e:
        raise to_app_error(e) from e

    viewport = await resolver.resolve(address, timeout_ms)
    logger.info(
        f"Resolved {len(viewport.listing_ids)} listing(s) via "
        f"{viewport.viewport_meta.strategy.value}"
    )

    records = await fetcher.fetch_all(viewport.listing_ids, timeout_ms)
    return PipelineResult(viewport=viewport, records=records)


def build_pipeline(
    settings: StayfinderSettings,
    session: aiohttp.ClientSession
) -> Tuple[ViewportResolver, BatchFetcher]:
    """Wire the concrete provider adapters into a (resolver, fetcher) pair."""
    resolver = ViewportResolver(
        geocoding=LocationIqGeocoder(session, settings.providers),
        rental_search=AirbnbSearchClient(session, settings.providers),
        tiers=settings.viewport,
    )
    fetcher = BatchFetcher(
        AirbnbDetailClient(session, settings.providers),
        settings.batch_fetch,
    )
    return resolver, fetcher
