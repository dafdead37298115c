"""
test_projections.py — Map Tiling and Forward Projection Tests
==============================================================

Verifies:
  - The twelve-area layout and its containment rules
  - Known projected positions (north pole, octant vertices)
  - Central-meridian symmetry and hemisphere mirroring
  - Antimeridian handling and input validation
  - Conformality measured through Tissot's indicatrix
"""

import pytest
import numpy as np

from common.constants import HALF_ROOT_3
from common.errors import CoordinateRangeError, MapAreaLookupError
from common.types import AngleUnit, LatLon
from geospatial.projections import (
    MAP_AREAS,
    CahillConcialdiProjection,
    find_map_area,
    forward_project,
    project_batch,
)


class TestMapAreas:
    """The Butterfly layout table."""

    def test_twelve_areas(self):
        assert len(MAP_AREAS) == 12

    def test_hemispheres(self):
        assert [a.is_north for a in MAP_AREAS] == [True] * 5 + [False] * 7

    def test_antimeridian_areas(self):
        assert [i for i, a in enumerate(MAP_AREAS) if a.has_antimeridian] == [4, 11]

    def test_contains_includes_edges(self):
        area = MAP_AREAS[2]
        assert area.contains(LatLon(0.0, -25.0))
        assert area.contains(LatLon(90.0, 65.0))
        assert not area.contains(LatLon(10.0, 65.5))

    def test_antimeridian_contains(self):
        area = MAP_AREAS[4]
        assert area.contains(LatLon(50.0, 170.0))
        assert area.contains(LatLon(50.0, -170.0))
        assert not area.contains(LatLon(50.0, -160.0))

    def test_normalize_folds_hemispheres(self):
        c = MAP_AREAS[8].normalize(LatLon(-30.0, 25.0))
        assert (c.lat, c.lon) == (30.0, 5.0)

    def test_normalize_across_antimeridian(self):
        c = MAP_AREAS[4].normalize(LatLon(10.0, -170.0))
        assert c.lon == pytest.approx(-10.0)

    @pytest.mark.parametrize("lat,lon,expected", [
        (10.0, 0.0, 2),
        (50.0, -160.0, 0),
        (50.0, -170.0, 4),
        (50.0, 170.0, 4),
        (-10.0, 0.0, 8),
        (-60.0, 0.0, 7),
        (-60.0, 40.0, 9),
        (-60.0, -170.0, 11),
        (0.0, -25.0, 1),
    ])
    def test_find_map_area(self, lat, lon, expected):
        assert find_map_area(LatLon(lat, lon)) == expected

    def test_every_grid_coordinate_covered(self):
        for lat in range(-90, 91, 5):
            for lon in range(-180, 180, 5):
                find_map_area(LatLon(float(lat), float(lon)))


class TestForwardProject:
    """Forward projection through the map areas."""

    def test_north_pole_at_origin(self):
        p = forward_project(LatLon(90.0, 0.0))
        assert (p.x, p.y) == (0.0, 0.0)

    def test_north_pole_same_in_all_northern_areas(self):
        for idx in range(5):
            p = forward_project(LatLon(90.0, 40.0), idx)
            assert p.x == pytest.approx(0.0, abs=1e-9)
            assert p.y == pytest.approx(0.0, abs=1e-9)

    def test_shared_vertex(self):
        expected = (-50.0, 50.0 * np.sqrt(3))
        for p in (
            forward_project(LatLon(0.0, -25.0)),
            forward_project(LatLon(0.0, -25.0), 1),
            forward_project(LatLon(0.0, -25.0), 2),
        ):
            assert p.x == pytest.approx(expected[0])
            assert p.y == pytest.approx(expected[1])

    @pytest.mark.parametrize("lat", [5.0, 30.0, 60.0, 85.0])
    @pytest.mark.parametrize("d", [1.0, 12.0, 30.0, 45.0])
    def test_mirror_symmetry_of_central_area(self, lat, d):
        west = forward_project(LatLon(lat, 20.0 - d), 2)
        east = forward_project(LatLon(lat, 20.0 + d), 2)
        assert west.x == pytest.approx(-east.x, abs=1e-9)
        assert west.y == pytest.approx(east.y, abs=1e-9)

    def test_southern_area_mirrors_across_equator(self):
        """Area 8 hangs below area 2, reflected about the shared equator."""
        north = forward_project(LatLon(10.0, 35.0), 2)
        south = forward_project(LatLon(-10.0, 35.0), 8)
        assert south.x == pytest.approx(north.x, abs=1e-9)
        assert south.y + north.y == pytest.approx(100.0 * 2 * HALF_ROOT_3, abs=1e-9)

    def test_unnormalized_longitude(self):
        a = forward_project(LatLon(50.0, 190.0), 4)
        b = forward_project(LatLon(50.0, -170.0), 4)
        assert a == b

    def test_longitude_wrapped_before_lookup(self):
        assert forward_project(LatLon(50.0, 300.0)) == forward_project(LatLon(50.0, -60.0))
        assert forward_project(LatLon(50.0, 300.0), 1) == forward_project(LatLon(50.0, -60.0), 1)
        assert forward_project(LatLon(-20.0, -200.0)) == forward_project(LatLon(-20.0, 160.0))

    def test_radians_accepted(self):
        deg = forward_project(LatLon(40.0, 30.0))
        rad = forward_project(LatLon(np.radians(40.0), np.radians(30.0), AngleUnit.RADIANS))
        assert rad.x == pytest.approx(deg.x)
        assert rad.y == pytest.approx(deg.y)

    @pytest.mark.parametrize("index", [-1, 12])
    def test_invalid_area_index(self, index):
        with pytest.raises(MapAreaLookupError):
            forward_project(LatLon(0.0, 0.0), index)

    def test_lookup_error_is_lookup_error(self):
        with pytest.raises(LookupError):
            forward_project(LatLon(0.0, 0.0), 99)

    def test_rejects_non_coordinate(self):
        with pytest.raises(CoordinateRangeError):
            forward_project((10.0, 20.0))

    def test_project_batch(self):
        lats = [10.0, 45.0, -30.0]
        lons = [0.0, 100.0, -60.0]
        out = project_batch(lats, lons)
        assert out.shape == (3, 2)
        for row, lat, lon in zip(out, lats, lons):
            np.testing.assert_allclose(row, forward_project(LatLon(lat, lon)).as_tuple())

    def test_project_batch_shape_mismatch(self):
        with pytest.raises(ValueError):
            project_batch([1.0, 2.0], [1.0])


class TestDistortion:
    """Local distortion of the projection."""

    @pytest.mark.parametrize("lat,lon", [(40.0, 20.5), (70.0, 10.0), (15.0, 30.0)])
    def test_locally_conformal(self, lat, lon):
        projection = CahillConcialdiProjection(area_index=2)
        t = projection.compute_distortion(np.radians(lat), np.radians(lon))
        assert t.semi_major / t.semi_minor == pytest.approx(1.0, abs=1e-3)
        assert t.angular_distortion_rad < 2e-3
        assert t.is_conformal()

    def test_not_equal_area(self):
        projection = CahillConcialdiProjection(area_index=2)
        near_pole = projection.compute_distortion(np.radians(80.0), np.radians(20.0))
        near_base = projection.compute_distortion(np.radians(2.0), np.radians(25.0))
        assert near_pole.area_scale != pytest.approx(near_base.area_scale, rel=0.05)

    def test_adapter_properties(self):
        projection = CahillConcialdiProjection(area_index=3)
        assert projection.preserves_angles
        assert not projection.preserves_area
        assert "area 3" in projection.name
