"""
Airbnb search and listing detail adapters.

The search adapter implements RentalSearch; the detail adapter implements
DetailFetch. Neither retries; retry policy lives in the batch fetcher.
"""

import base64
import copy
import json
import logging
from typing import Any, Dict, List, Optional

import aiohttp

from stayfinder.config.settings import ProviderConfig
from stayfinder.models import DerivedRecord, ResolvedSearchFlags
from stayfinder.providers.extraction import derive_record, extract_listing_ids
from stayfinder.providers.http import request_json


logger = logging.getLogger(__name__)

API_KEY_HEADER = "x-airbnb-api-key"

# Request sections that each carry their own rawParams filter list
SEARCH_REQUEST_SECTIONS = ("staysSearchRequest", "staysMapSearchRequestV2")

DEFAULT_SEARCH_BODY: Dict[str, Any] = {
    "operationName": "StaysSearch",
    "variables": {
        "staysSearchRequest": {"requestedPageType": "STAYS_SEARCH", "rawParams": []},
        "staysMapSearchRequestV2": {"requestedPageType": "STAYS_SEARCH", "rawParams": []},
    },
}


def search_filters(flags: ResolvedSearchFlags) -> Dict[str, str]:
    """Map search flags to Airbnb rawParams filter names and string values."""
    north, east, south, west = flags.bbox
    filters = {
        "neLat": str(north),
        "neLng": str(east),
        "swLat": str(south),
        "swLng": str(west),
    }
    if flags.zoom_level is not None:
        filters["zoomLevel"] = str(flags.zoom_level)
    if flags.query_address:
        filters["query"] = flags.query_address
    if flags.refinement_path:
        filters["refinementPaths"] = flags.refinement_path
    if flags.search_by_map is not None:
        filters["searchByMap"] = "true" if flags.search_by_map else "false"
    return filters


def build_search_body(template: Dict[str, Any], flags: ResolvedSearchFlags) -> Dict[str, Any]:
    """
    Copy the search body template and set the viewport filters on it.

    Each filter is written to the rawParams list of both request sections,
    replacing an existing entry with the same filterName.
    """
    body = copy.deepcopy(template)
    variables = body.get("variables")
    if not isinstance(variables, dict):
        variables = body["variables"] = {}

    filters = search_filters(flags)
    for section_name in SEARCH_REQUEST_SECTIONS:
        section = variables.get(section_name)
        if not isinstance(section, dict):
            section = variables[section_name] = {}
        raw_params = section.get("rawParams")
        if not isinstance(raw_params, list):
            raw_params = section["rawParams"] = []

        for name, value in filters.items():
            existing = next(
                (p for p in raw_params if isinstance(p, dict) and p.get("filterName") == name),
                None,
            )
            if existing is not None:
                existing["filterValues"] = [value]
            else:
                raw_params.append({"filterName": name, "filterValues": [value]})

    return body


def encode_listing_id(listing_id: str) -> str:
    """Airbnb's global id for a stay: base64 of "StayListing:<id>"."""
    return base64.b64encode(f"StayListing:{listing_id}".encode("utf-8")).decode("ascii")


class AirbnbSearchClient:
    """Finds listing ids inside a bounding box via the StaysSearch endpoint."""

    def __init__(
        self,
        session: aiohttp.ClientSession,
        config: ProviderConfig,
        body_template: Optional[Dict[str, Any]] = None
    ):
        self.session = session
        self.config = config
        self.body_template = body_template or DEFAULT_SEARCH_BODY

    async def find_listing_ids(
        self,
        flags: ResolvedSearchFlags,
        timeout_ms: Optional[int] = None
    ) -> List[str]:
        """
        Search one viewport.

        Returns:
            Listing ids found in the viewport; empty when none matched
        """
        data = await request_json(
            self.session,
            "POST",
            self.config.airbnb_search_url,
            headers={
                API_KEY_HEADER: self.config.airbnb_api_key or "",
                "content-type": "application/json",
            },
            json_body=build_search_body(self.body_template, flags),
            timeout_ms=timeout_ms or self.config.default_timeout_ms,
        )
        ids = extract_listing_ids(data)
        logger.debug(f"Search over bbox {list(flags.bbox)} returned {len(ids)} id(s)")
        return ids


class AirbnbDetailClient:
    """Fetches one listing's detail sections and derives a DerivedRecord."""

    def __init__(self, session: aiohttp.ClientSession, config: ProviderConfig):
        self.session = session
        self.config = config

    async def fetch(self, listing_id: str, timeout_ms: Optional[int] = None) -> DerivedRecord:
        data = await request_json(
            self.session,
            "GET",
            self.config.airbnb_detail_url,
            headers={API_KEY_HEADER: self.config.airbnb_api_key or ""},
            params={
                "operationName": "StaysPdpSections",
                "variables": json.dumps({"id": encode_listing_id(listing_id)}),
            },
            timeout_ms=timeout_ms or self.config.default_timeout_ms,
        )
        return derive_record(listing_id, data)
