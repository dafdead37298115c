"""
test_projection_checks.py — Geometric Consistency Checker Tests
================================================================

Verifies:
  - Every built-in check passes on the projection as shipped
  - Strict mode raises on violations
  - Residuals are recorded in the audit trail
  - Check inputs are validated
"""

import pytest

from common.errors import ProjectionConsistencyError
from common.types import LatLon
from geospatial.projections import forward_project
from validation.projection_checks import (
    STITCHED_EQUATOR,
    STITCHED_MERIDIANS,
    ProjectionConsistencyChecker,
    ValidationResult,
    project_cell,
)


@pytest.fixture
def checker():
    return ProjectionConsistencyChecker()


class TestCheckAll:

    def test_all_checks_pass(self, checker):
        results = checker.check_all()
        assert len(results) == 6
        failed = [r.test_name for r in results if not r.passed]
        assert failed == []

    def test_results_are_validation_results(self, checker):
        result = checker.check_north_pole_identity()
        assert isinstance(result, ValidationResult)
        assert result.details["num_checked"] == 25


class TestIndividualChecks:

    @pytest.mark.parametrize("area_index", [3, 10])
    def test_mirror_symmetry_other_areas(self, checker, area_index):
        result = checker.check_mirror_symmetry(area_index=area_index, lats_deg=(10.0, 40.0, 80.0))
        assert result.passed, result.message

    def test_stitching_tables(self):
        assert len(STITCHED_MERIDIANS) == 8
        assert {(n, s) for n, s, _ in STITCHED_EQUATOR} == {(1, 6), (2, 8), (3, 10)}

    def test_stitching_reports_gap(self, checker):
        result = checker.check_tile_stitching()
        assert result.passed
        assert 0.0 < result.details["residual"] < 5e-3

    def test_series_gap_where_branches_meet(self):
        """Neighbouring tiles part slightly at 45°, where the pole branches switch."""
        west = forward_project(LatLon(45.0, -115.0), 0)
        east = forward_project(LatLon(45.0, -115.0), 1)
        assert 1e-3 < west.distance_to(east) < 5e-3

    def test_equator_edges_exact(self):
        gap = forward_project(LatLon(0.0, 20.0), 2).distance_to(forward_project(LatLon(0.0, 20.0), 8))
        assert gap < 1e-9

    def test_round_trip_of_southern_cell(self, checker):
        result = checker.check_cell_round_trip(area_index=8, cell_sw=(-30.0, 40.0))
        assert result.passed

    def test_round_trip_rejects_polar_cell(self, checker):
        with pytest.raises(ValueError):
            checker.check_cell_round_trip(area_index=2, cell_sw=(89.0, 20.0))

    def test_polar_continuity_rejects_ordinary_cell(self, checker):
        with pytest.raises(ValueError):
            checker.check_polar_continuity(cells=((2, 45.0, 20.0),))

    def test_coarse_coverage(self, checker):
        result = checker.check_containment_coverage(step_deg=5.0)
        assert result.passed
        assert result.details["num_uncovered"] == 0


class TestStrictMode:

    def test_strict_mode_raises(self):
        strict = ProjectionConsistencyChecker(strict_mode=True)
        with pytest.raises(ProjectionConsistencyError):
            strict.check_tile_stitching(tolerance=-1.0)

    def test_lenient_mode_reports(self, checker):
        result = checker.check_tile_stitching(tolerance=-1.0)
        assert not result.passed


class TestAuditIntegration:

    def test_residuals_logged(self, audit, run_id):
        checker = ProjectionConsistencyChecker(audit=audit)
        with audit.run_context(run_id):
            checker.check_mirror_symmetry()
            checker.check_polar_continuity()

        checks = audit.get_run_summary(run_id)["tolerance_checks"]
        assert checks["mirror_symmetry"]["passed"]
        assert checks["polar_continuity"]["tolerance"] == 1e-9

    def test_failed_check_logged(self, audit, run_id):
        checker = ProjectionConsistencyChecker(audit=audit)
        with audit.run_context(run_id):
            checker.check_cell_round_trip(tolerance=-1.0)

        checks = audit.get_run_summary(run_id)["tolerance_checks"]
        assert not checks["cell_round_trip"]["passed"]


def test_project_cell_corner_order():
    cell = project_cell(2, 10.0, 20.0)
    sw, se, ne, nw = cell.cell_corners
    # y grows away from the north pole, x eastwards in area 2
    assert se.x > sw.x
    assert nw.y < sw.y
