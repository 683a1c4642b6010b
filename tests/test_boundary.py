import pytest

from communitymap.geo.boundary import boundary_feature, boundary_ring
from communitymap.geo.crs import KM_PER_DEGREE
from communitymap.geo.distance import haversine_km


@pytest.mark.parametrize(
    "center",
    [(-23.5505, -46.6333), (0.0, 0.0), (60.0, 10.0), (-3.1190, -60.0217)],
)
def test_ring_is_closed_with_n_plus_one_points(center) -> None:
    lat, lon = center
    ring = boundary_ring(center_lat=lat, center_lon=lon, radius_km=2.0, num_points=64)
    assert len(ring) == 65
    assert ring[0] == ring[-1]
    # Every vertex sits roughly on the 2 km circle.
    for p_lon, p_lat in ring:
        assert haversine_km(lat, lon, p_lat, p_lon) == pytest.approx(2.0, abs=0.02)


def test_ring_offsets_follow_degree_conversion() -> None:
    ring = boundary_ring(center_lat=-23.5505, center_lon=-46.6333, radius_km=2.0, num_points=64)
    # Angle 0: pure longitude offset, widened by 1/cos(lat).
    lon0, lat0 = ring[0]
    assert lat0 == pytest.approx(-23.5505)
    assert lon0 > -46.6333 + 2.0 / KM_PER_DEGREE
    # Angle pi/2 (index 16 of 64): pure latitude offset.
    lon16, lat16 = ring[16]
    assert lat16 == pytest.approx(-23.5505 + 2.0 / KM_PER_DEGREE)
    assert lon16 == pytest.approx(-46.6333, abs=1e-9)


def test_custom_point_count() -> None:
    ring = boundary_ring(center_lat=10.0, center_lon=10.0, radius_km=0.5, num_points=8)
    assert len(ring) == 9
    assert ring[0] == ring[-1]


def test_invalid_parameters() -> None:
    with pytest.raises(ValueError):
        boundary_ring(center_lat=0.0, center_lon=0.0, radius_km=0.0)
    with pytest.raises(ValueError):
        boundary_ring(center_lat=0.0, center_lon=0.0, num_points=2)


def test_boundary_feature_is_geojson_polygon() -> None:
    feature = boundary_feature(center_lat=-23.5, center_lon=-46.6, name="Heliópolis")
    assert feature["type"] == "Feature"
    assert feature["geometry"]["type"] == "Polygon"
    assert len(feature["geometry"]["coordinates"][0]) == 65
    assert feature["properties"]["name"] == "Heliópolis"
    assert feature["properties"]["radius_km"] == 2.0
