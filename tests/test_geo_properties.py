"""
Property-based tests for viewport geometry.

These tests verify that bounding boxes computed from meter and zoom viewports
have the requested size, are deterministic, and wrap longitude correctly.
"""

import math

import pytest
from hypothesis import given, settings, strategies as st

from stayfinder.errors import GeoPointError
from stayfinder.geo.bbox import (
    EQUATOR_RESOLUTION_M_PER_PX,
    MeterBoxSpec,
    ZoomViewportSpec,
    box_from_meters,
    box_from_zoom_viewport,
    ground_resolution_meters_per_pixel,
    meters_per_degree_latitude,
    meters_per_degree_longitude,
    normalize_longitude,
)
from stayfinder.models import GeoPoint


# Centers away from the poles and the antimeridian so boxes never wrap
latitudes = st.floats(min_value=-80, max_value=80, allow_nan=False)
longitudes = st.floats(min_value=-170, max_value=170, allow_nan=False)
centers = st.builds(GeoPoint, lat=latitudes, lng=longitudes)

meter_specs = st.builds(
    MeterBoxSpec,
    width_meters=st.floats(min_value=1, max_value=5000),
    height_meters=st.floats(min_value=1, max_value=5000),
    safety_meters=st.floats(min_value=0, max_value=100),
)

zoom_specs = st.builds(
    ZoomViewportSpec,
    zoom=st.integers(min_value=10, max_value=20),
    width_px=st.integers(min_value=100, max_value=2000),
    height_px=st.integers(min_value=100, max_value=2000),
    safety_meters=st.floats(min_value=0, max_value=100),
)


@given(center=centers, spec=meter_specs)
@settings(max_examples=200)
def test_box_width_matches_requested_meters(center, spec):
    """
    **Property: Box size round-trip**

    For any valid center and meter spec, the box width and height converted
    back to meters with the same meters-per-degree formulas equal the
    requested size plus the safety margin on both sides.
    """
    north, east, south, west = box_from_meters(center, spec)
    phi = center.lat * math.pi / 180

    width = (east - west) * meters_per_degree_longitude(phi)
    height = (north - south) * meters_per_degree_latitude(phi)

    assert width == pytest.approx(spec.width_meters + 2 * spec.safety_meters, rel=1e-6)
    assert height == pytest.approx(spec.height_meters + 2 * spec.safety_meters, rel=1e-6)


@given(center=centers, spec=meter_specs)
@settings(max_examples=100)
def test_box_is_centered(center, spec):
    """The box center is the requested center when no wrap occurs."""
    north, east, south, west = box_from_meters(center, spec)

    assert (north + south) / 2 == pytest.approx(center.lat, abs=1e-9)
    assert (east + west) / 2 == pytest.approx(center.lng, abs=1e-9)
    assert north > south
    assert east > west


@given(center=centers, spec=zoom_specs)
@settings(max_examples=100)
def test_zoom_viewport_deterministic(center, spec):
    """
    **Property: Zoom viewport determinism**

    The same center and zoom spec always produce the same bbox and sizes,
    and the result equals box_from_meters applied to the computed sizes.
    """
    first = box_from_zoom_viewport(center, spec)
    second = box_from_zoom_viewport(center, spec)
    assert first == second

    bbox, width_meters, height_meters = first
    expected = box_from_meters(
        center,
        MeterBoxSpec(width_meters=width_meters, height_meters=height_meters,
                     safety_meters=spec.safety_meters),
    )
    assert bbox == expected


@given(center=centers, spec=zoom_specs)
@settings(max_examples=100)
def test_zoom_viewport_sizes_follow_ground_resolution(center, spec):
    """Viewport meters are pixels times the ground resolution at the center."""
    _, width_meters, height_meters = box_from_zoom_viewport(center, spec)
    resolution = ground_resolution_meters_per_pixel(center.lat, spec.zoom)

    assert width_meters == pytest.approx(resolution * spec.width_px)
    assert height_meters == pytest.approx(resolution * spec.height_px)


def test_ground_resolution_known_values():
    """Equator resolution halves with every zoom level."""
    assert ground_resolution_meters_per_pixel(0, 0) == pytest.approx(EQUATOR_RESOLUTION_M_PER_PX)
    assert ground_resolution_meters_per_pixel(0, 17) == pytest.approx(1.194328566, rel=1e-6)
    assert ground_resolution_meters_per_pixel(60, 17) == pytest.approx(
        ground_resolution_meters_per_pixel(0, 17) * 0.5, rel=1e-9
    )


def test_meters_per_degree_known_values():
    """WGS-84 series values at the equator and 45 degrees."""
    assert meters_per_degree_latitude(0) == pytest.approx(110574.2727, abs=1e-3)
    assert meters_per_degree_longitude(0) == pytest.approx(111319.458, abs=1e-3)
    assert meters_per_degree_latitude(math.pi / 4) == pytest.approx(111131.745, abs=1e-2)


def test_antimeridian_east_edge_wraps_negative():
    """A wide box just west of 180 degrees wraps its east edge to negative longitudes."""
    center = GeoPoint(lat=0, lng=179.9999)
    north, east, south, west = box_from_meters(
        center, MeterBoxSpec(width_meters=10000, height_meters=10000, safety_meters=10)
    )

    assert east < 0
    assert -180 <= east <= 180
    assert 179 < west < 180
    # Unordered output is returned as-is, not rejected
    assert east < west


def test_antimeridian_west_edge_wraps_positive():
    center = GeoPoint(lat=10, lng=-179.9999)
    _, east, _, west = box_from_meters(
        center, MeterBoxSpec(width_meters=10000, height_meters=10000, safety_meters=0)
    )

    assert west > 0
    assert -180 < east < -179


def test_latitude_not_clamped_near_pole():
    """A center near the pole can yield a north edge beyond 90 degrees."""
    north, _, south, _ = box_from_meters(
        GeoPoint(lat=89.99, lng=0),
        MeterBoxSpec(width_meters=5000, height_meters=5000, safety_meters=10),
    )

    assert north > 90
    assert south < 89.99


@pytest.mark.parametrize("lat,lng", [
    (90.5, 0),
    (-91, 0),
    (0, 180.01),
    (0, -200),
    (float("nan"), 0),
    (0, float("inf")),
])
def test_invalid_center_rejected(lat, lng):
    spec = MeterBoxSpec(width_meters=350, height_meters=250, safety_meters=10)

    with pytest.raises(GeoPointError):
        box_from_meters(GeoPoint(lat=lat, lng=lng), spec)

    with pytest.raises(GeoPointError):
        box_from_zoom_viewport(GeoPoint(lat=lat, lng=lng), ZoomViewportSpec(17, 400, 300, 10))


@pytest.mark.parametrize("value,expected", [
    (180, 180),
    (-180, -180),
    (181, -179),
    (-181, 179),
    (540, 180),
    (-540, -180),
    (725, 5),
    (0, 0),
])
def test_normalize_longitude_examples(value, expected):
    assert normalize_longitude(value) == pytest.approx(expected)


@given(value=st.floats(min_value=-10000, max_value=10000, allow_nan=False))
@settings(max_examples=200)
def test_normalize_longitude_range_and_equivalence(value):
    """
    **Property: Longitude wraparound**

    Normalized longitudes are in [-180, 180] and differ from the input by a
    whole number of turns.
    """
    result = normalize_longitude(value)

    assert -180 <= result <= 180
    turns = (value - result) / 360
    assert turns == pytest.approx(round(turns), abs=1e-9)
