"""
Property-based tests for the viewport resolver tier ladder.

Search and geocoding collaborators are replaced by scripted stubs so each
test controls exactly what every tier returns.
"""

import asyncio

import pytest
from hypothesis import given, settings, strategies as st

from stayfinder.config.settings import ViewportTierConfig
from stayfinder.errors import (
    InvalidInputError,
    InvalidResponseError,
    RequestTimeoutError,
    TransportError,
)
from stayfinder.geo.bbox import box_from_meters, box_from_zoom_viewport
from stayfinder.models import GeoPoint, ViewportStrategy
from stayfinder.viewport.resolver import ViewportResolver


ADDRESS = "1 Main St, Austin, TX"
AUSTIN = GeoPoint(lat=30.2672, lng=-97.7431)


class StubGeocoder:
    def __init__(self, result):
        self.result = result
        self.calls = []

    async def forward_geocode(self, address, timeout_ms=None):
        self.calls.append((address, timeout_ms))
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


class ScriptedSearch:
    """Returns (or raises) the next scripted response on every call."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    async def find_listing_ids(self, flags, timeout_ms=None):
        self.calls.append((flags, timeout_ms))
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def resolve(search, center=AUSTIN, tiers=None, timeout_ms=None):
    resolver = ViewportResolver(StubGeocoder(center), search, tiers)
    return asyncio.run(resolver.resolve(ADDRESS, timeout_ms))


def test_primary_tier_success():
    """Primary viewport with listings returns immediately with metersPrimary."""
    search = ScriptedSearch(["111", "222"])

    result = resolve(search)

    assert result.listing_ids == ["111", "222"]
    assert result.viewport_meta.strategy == ViewportStrategy.METERS_PRIMARY
    assert result.viewport_meta.width_meters == 350
    assert result.viewport_meta.height_meters == 250
    assert result.viewport_meta.safety_meters == 10
    assert result.bbox == box_from_meters(AUSTIN, ViewportTierConfig().primary_spec())
    assert len(search.calls) == 1


def test_primary_empty_then_expanded_success():
    """
    **Property: Tier ordering**

    Zero ids for the primary box and listings for the expanded box yields
    metersPrimaryExpanded.
    """
    search = ScriptedSearch([], ["333"])

    result = resolve(search)

    assert result.listing_ids == ["333"]
    assert result.viewport_meta.strategy == ViewportStrategy.METERS_PRIMARY_EXPANDED
    assert result.viewport_meta.width_meters == pytest.approx(525)
    assert result.viewport_meta.height_meters == pytest.approx(375)
    assert result.viewport_meta.safety_meters == 10
    assert len(search.calls) == 2

    primary_bbox = search.calls[0][0].bbox
    expanded_bbox = search.calls[1][0].bbox
    assert expanded_bbox[0] > primary_bbox[0]
    assert expanded_bbox[2] < primary_bbox[2]
    assert result.bbox == expanded_bbox


@pytest.mark.parametrize("primary_error", [
    TransportError("connection reset"),
    RequestTimeoutError(timeout_ms=5000),
    InvalidResponseError("HTTP 503", status_code=503),
])
def test_primary_error_skips_expansion_and_uses_fallback(primary_error):
    """
    **Property: Primary error absorbed**

    A failing primary search goes straight to the zoom fallback; the expanded
    tier is never tried and the primary error is not surfaced.
    """
    search = ScriptedSearch(primary_error, ["444"])

    result = resolve(search)

    assert result.listing_ids == ["444"]
    assert result.viewport_meta.strategy == ViewportStrategy.ZOOM_FALLBACK
    assert len(search.calls) == 2

    expected_bbox, width, height = box_from_zoom_viewport(AUSTIN, ViewportTierConfig().fallback_spec())
    assert result.bbox == expected_bbox
    assert search.calls[1][0].bbox == expected_bbox
    assert result.viewport_meta.width_meters == width
    assert result.viewport_meta.height_meters == height
    assert result.viewport_meta.safety_meters == 10


def test_expanded_error_falls_through_to_fallback():
    search = ScriptedSearch([], TransportError("boom"), ["555"])

    result = resolve(search)

    assert result.viewport_meta.strategy == ViewportStrategy.ZOOM_FALLBACK
    assert len(search.calls) == 3


def test_all_tiers_empty_fails():
    """With zero ids from every tier the resolver raises InvalidResponseError."""
    search = ScriptedSearch([], [], [])

    with pytest.raises(InvalidResponseError, match="No listingIds found"):
        resolve(search)

    assert len(search.calls) == 3


def test_fallback_error_propagates_unchanged():
    fallback_error = TransportError("fallback down")
    search = ScriptedSearch(TransportError("primary down"), fallback_error)

    with pytest.raises(TransportError) as exc_info:
        resolve(search)

    assert exc_info.value is fallback_error


def test_fallback_smaller_than_primary_fails():
    """
    At high latitudes the zoom fallback covers less ground than the primary
    box, so the resolver stops instead of searching a stricter filter.
    """
    search = ScriptedSearch([], [])

    with pytest.raises(InvalidResponseError, match="smaller than primary"):
        resolve(search, center=GeoPoint(lat=60.0, lng=10.0))

    assert len(search.calls) == 2


def test_geocoding_error_aborts():
    error = RequestTimeoutError("geocoder timed out", timeout_ms=100)
    geocoder = StubGeocoder(error)
    search = ScriptedSearch()
    resolver = ViewportResolver(geocoder, search)

    with pytest.raises(RequestTimeoutError) as exc_info:
        asyncio.run(resolver.resolve(ADDRESS, 100))

    assert exc_info.value is error
    assert geocoder.calls == [(ADDRESS, 100)]
    assert search.calls == []


def test_invalid_geocoded_point_is_input_error():
    search = ScriptedSearch()

    with pytest.raises(InvalidInputError, match="Latitude"):
        resolve(search, center=GeoPoint(lat=95.0, lng=0.0))

    assert search.calls == []


def test_search_flags_carry_fixed_parameters():
    search = ScriptedSearch(["1"])

    resolve(search, timeout_ms=2500)

    flags, timeout_ms = search.calls[0]
    assert timeout_ms == 2500
    assert flags.zoom_level == 17
    assert flags.query_address == ADDRESS
    assert flags.refinement_path == "/homes"
    assert flags.search_by_map is True


def test_custom_tier_configuration():
    """Tier sizes come from the configuration passed to the resolver."""
    tiers = ViewportTierConfig(
        primary_width_meters=100,
        primary_height_meters=80,
        safety_meters=5,
        expansion_factor=2.0,
        search_zoom=15,
    )
    search = ScriptedSearch([], ["9"])

    result = resolve(search, tiers=tiers)

    assert result.viewport_meta.width_meters == 200
    assert result.viewport_meta.height_meters == 160
    assert result.viewport_meta.safety_meters == 5
    assert search.calls[0][0].zoom_level == 15
    assert search.calls[0][0].bbox == box_from_meters(AUSTIN, tiers.primary_spec())


# Per-tier scripted outcome: an error or a number of listing ids
tier_outcomes = st.one_of(
    st.just("error"),
    st.integers(min_value=0, max_value=3),
)


def _response(outcome, prefix):
    if outcome == "error":
        return TransportError(f"{prefix} failed")
    return [f"{prefix}-{i}" for i in range(outcome)]


@given(
    primary=tier_outcomes,
    expanded=tier_outcomes,
    fallback=tier_outcomes,
    lat=st.floats(min_value=-40, max_value=40),
    lng=st.floats(min_value=-179, max_value=179),
)
@settings(max_examples=100, deadline=None)
def test_tier_ladder_outcomes(primary, expanded, fallback, lat, lng):
    """
    **Property: Tier ladder**

    For any scripted combination of tier outcomes, the resolver produces
    exactly one of: a success tagged with the first tier that found
    listings, the fallback tier's error, or an empty-result error.
    """
    responses = [_response(primary, "p")]
    if primary == 0:
        responses.append(_response(expanded, "e"))
    responses.append(_response(fallback, "f"))
    search = ScriptedSearch(*responses)

    center = GeoPoint(lat=lat, lng=lng)

    if isinstance(primary, int) and primary > 0:
        expected = (ViewportStrategy.METERS_PRIMARY, "p-")
    elif primary == 0 and isinstance(expanded, int) and expanded > 0:
        expected = (ViewportStrategy.METERS_PRIMARY_EXPANDED, "e-")
    elif fallback == "error":
        with pytest.raises(TransportError, match="f failed"):
            resolve(search, center=center)
        return
    elif fallback == 0:
        with pytest.raises(InvalidResponseError, match="No listingIds found"):
            resolve(search, center=center)
        return
    else:
        expected = (ViewportStrategy.ZOOM_FALLBACK, "f-")

    result = resolve(search, center=center)

    assert result.viewport_meta.strategy == expected[0]
    assert all(i.startswith(expected[1]) for i in result.listing_ids)
    assert len(result.listing_ids) > 0
