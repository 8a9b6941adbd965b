import pytest

from core.models import GeoCoordinate, Zone
from utils.geometry import (
    calculate_center,
    compute_corners,
    distance_from_zone,
    distance_meters,
    expand_boundaries,
    geodesic_distance,
    is_inside,
    measure_zone,
)

CENTER = GeoCoordinate(13.067439, 80.237617)


class TestComputeCorners:

    def test_scenario_center_inside_derived_rectangle(self):
        corners = compute_corners(CENTER, 10, 12)
        assert len(corners.ring()) == 4
        assert is_inside(CENTER, corners)

    def test_corner_labels(self):
        corners = compute_corners(CENTER, 10, 12)
        assert corners.north_east.latitude > CENTER.latitude
        assert corners.north_east.longitude > CENTER.longitude
        assert corners.north_west.latitude > CENTER.latitude
        assert corners.north_west.longitude < CENTER.longitude
        assert corners.south_east.latitude < CENTER.latitude
        assert corners.south_east.longitude > CENTER.longitude
        assert corners.south_west.latitude < CENTER.latitude
        assert corners.south_west.longitude < CENTER.longitude

    def test_dimensions_are_exact_without_margin(self):
        corners = compute_corners(CENTER, 10, 12)
        width = distance_meters(corners.north_west, corners.north_east)
        length = distance_meters(corners.north_east, corners.south_east)
        assert width == pytest.approx(10, rel=1e-3)
        assert length == pytest.approx(12, rel=1e-6)

    @pytest.mark.parametrize('lat,lng', [(0.0, 0.0), (51.5, -0.12), (-33.9, 151.2), (64.1, -21.9)])
    def test_center_always_inside(self, lat, lng):
        center = GeoCoordinate(lat, lng)
        for width, length in [(1, 1), (10, 12), (75.5, 3)]:
            assert is_inside(center, compute_corners(center, width, length))

    def test_rejects_non_positive_dimensions(self):
        with pytest.raises(ValueError):
            compute_corners(CENTER, 0, 12)

    def test_zone_derives_corners(self):
        zone = Zone(id='z', building_name='B', floor_number=1, center=CENTER, width_meters=10, length_meters=12)
        assert zone.corners == compute_corners(CENTER, 10, 12)

    def test_zone_rejects_bad_dimensions(self):
        with pytest.raises(ValueError):
            Zone(id='z', building_name='B', floor_number=1, center=CENTER, width_meters=-1, length_meters=12)


class TestIsInside:

    corners = compute_corners(CENTER, 10, 12)

    def test_point_outside(self):
        assert not is_inside(GeoCoordinate(CENTER.latitude + 0.001, CENTER.longitude), self.corners)
        assert not is_inside(GeoCoordinate(CENTER.latitude, CENTER.longitude - 0.001), self.corners)

    def test_point_just_inside(self):
        ne = self.corners.north_east
        point = GeoCoordinate(ne.latitude - 1e-7, ne.longitude - 1e-7)
        assert is_inside(point, self.corners)

    def test_south_and_west_edges_are_inside(self):
        sw = self.corners.south_west
        assert is_inside(GeoCoordinate(sw.latitude, CENTER.longitude), self.corners)
        assert is_inside(GeoCoordinate(CENTER.latitude, sw.longitude), self.corners)
        assert is_inside(sw, self.corners)

    def test_north_and_east_edges_are_outside(self):
        ne = self.corners.north_east
        assert not is_inside(GeoCoordinate(ne.latitude, CENTER.longitude), self.corners)
        assert not is_inside(GeoCoordinate(CENTER.latitude, ne.longitude), self.corners)
        assert not is_inside(ne, self.corners)
        assert not is_inside(self.corners.north_west, self.corners)
        assert not is_inside(self.corners.south_east, self.corners)


class TestDistance:

    def test_zero_for_same_point(self):
        assert distance_meters(CENTER, CENTER) == 0

    @pytest.mark.parametrize('a,b', [
        (GeoCoordinate(13.067439, 80.237617), GeoCoordinate(13.068439, 80.238617)),
        (GeoCoordinate(-33.9, 151.2), GeoCoordinate(51.5, -0.12)),
        (GeoCoordinate(0.0, 179.9), GeoCoordinate(0.0, -179.9)),
    ])
    def test_symmetric_and_non_negative(self, a, b):
        assert distance_meters(a, b) == distance_meters(b, a)
        assert distance_meters(a, b) > 0

    def test_one_degree_latitude(self):
        # 6378137 * pi / 180
        d = distance_meters(GeoCoordinate(0.0, 0.0), GeoCoordinate(1.0, 0.0))
        assert d == pytest.approx(111319.49, abs=0.01)

    def test_distance_from_zone(self):
        zone = Zone(id='z', building_name='B', floor_number=1, center=CENTER, width_meters=10, length_meters=12)
        assert distance_from_zone(CENTER, zone) == 0
        assert distance_from_zone(GeoCoordinate(CENTER.latitude + 0.001, CENTER.longitude), zone) == pytest.approx(111.3, abs=0.1)

    def test_geodesic_close_to_haversine_at_room_scale(self):
        other = GeoCoordinate(CENTER.latitude + 0.0005, CENTER.longitude + 0.0005)
        assert geodesic_distance(CENTER, other) == pytest.approx(distance_meters(CENTER, other), rel=0.01)


class TestZoneHelpers:

    def test_calculate_center_round_trips(self):
        center = calculate_center(compute_corners(CENTER, 10, 12))
        assert center.latitude == pytest.approx(CENTER.latitude, abs=1e-12)
        assert center.longitude == pytest.approx(CENTER.longitude, abs=1e-12)

    def test_measure_zone(self):
        width, length = measure_zone(compute_corners(CENTER, 10, 12))
        assert width == pytest.approx(10, rel=0.01)
        assert length == pytest.approx(12, rel=0.01)

    def test_expand_boundaries_adds_margin_on_every_side(self):
        corners = compute_corners(CENTER, 10, 12)
        expanded = expand_boundaries(corners, 2)
        width, length = measure_zone(expanded)
        # ellipsoidal measurement vs spherical derivation differs by under 1% per pass
        assert width == pytest.approx(14, rel=0.02)
        assert length == pytest.approx(16, rel=0.02)
        assert is_inside(corners.north_east, expanded)

    def test_expand_boundaries_rejects_negative_margin(self):
        with pytest.raises(ValueError):
            expand_boundaries(compute_corners(CENTER, 10, 12), -1)
