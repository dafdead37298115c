"""
Geometric Consistency Tests for the Butterfly Projection.

This module verifies that the forward projection, the map-area tiling
and the inverse cell mapping agree with the geometric properties the map
is built on.

Test Categories
---------------
1. Coverage (every coordinate belongs to some map area)
2. Symmetry (each octant is symmetric about its central meridian)
3. Continuity (adjacent tiles meet along their shared edges; polar
   cells converge on the pole)
4. Invertibility (inverse cell mapping undoes the bilinear model)
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple
import numpy as np

from common.errors import ProjectionConsistencyError
from common.logging_config import AuditLogger, get_logger
from common.types import AngleUnit, LatLon, Point
from geospatial.coordinate_models import NORTH_POLE, oblique_coordinate
from geospatial.inverse_mapping import GridCell
from geospatial.projections import (
    MAP_AREAS,
    OCTANT_SCALE,
    forward_project,
)

logger = get_logger(__name__)


# Pairs of map areas drawn edge to edge: (west area, east area, shared
# meridian, lat range) for meridian edges and (north area, south area,
# lon range) for equator edges
STITCHED_MERIDIANS: Tuple[Tuple[int, int, float, Tuple[float, float]], ...] = (
    (0, 1, -115.0, (0.0, 90.0)),
    (1, 2, -25.0, (0.0, 90.0)),
    (2, 3, 65.0, (0.0, 90.0)),
    (3, 4, 155.0, (0.0, 90.0)),
    (5, 6, -115.0, (-90.0, 0.0)),
    (6, 7, -25.0, (-90.0, -45.0)),
    (9, 10, 65.0, (-90.0, -45.0)),
    (10, 11, 155.0, (-90.0, 0.0)),
)

STITCHED_EQUATOR: Tuple[Tuple[int, int, Tuple[float, float]], ...] = (
    (1, 6, (-115.0, -25.0)),
    (2, 8, (-25.0, 65.0)),
    (3, 10, (65.0, 155.0)),
)


@dataclass
class ValidationResult:
    """Result of a validation check.

    Attributes
    ----------
    test_name : str
        Name of the test.
    passed : bool
        Whether the test passed.
    message : str
        Description of result.
    details : dict
        Additional details.
    """
    test_name: str
    passed: bool
    message: str
    details: Dict[str, Any]


def _bilinear_point(corners: Sequence[Point], u: float, v: float) -> Point:
    """Bilinear image of relative coordinate (u, v) in a cell."""
    sw, se, ne, nw = corners
    south_x = sw.x + (se.x - sw.x) * u
    south_y = sw.y + (se.y - sw.y) * u
    north_x = nw.x + (ne.x - nw.x) * u
    north_y = nw.y + (ne.y - nw.y) * u
    return Point(south_x + (north_x - south_x) * v, south_y + (north_y - south_y) * v)


def _octant_frame(point: Point, area_index: int) -> Point:
    """Undo an area's placement, returning octant units about its pole."""
    area = MAP_AREAS[area_index]
    local = point.scale(1 / OCTANT_SCALE).translate(area.origin.scale(-1.0))
    return local.rotate(-area.angle)


def project_cell(area_index: int, lat: float, lon: float) -> GridCell:
    """Grid cell with SW corner (lat, lon), projected in map units."""
    corners = [
        forward_project(LatLon(lat + d_lat, lon + d_lon), area_index)
        for d_lat, d_lon in ((0, 0), (0, 1), (1, 1), (1, 0))
    ]
    return GridCell(LatLon(lat, lon), corners)


class ProjectionConsistencyChecker:
    """Checker for geometric consistency of the projection.

    Each check returns a ``ValidationResult`` and, when an audit logger is
    given, records its residual as a tolerance check.
    """

    def __init__(
        self,
        strict_mode: bool = False,
        log_violations: bool = True,
        audit: Optional[AuditLogger] = None
    ):
        """Initialize projection checker.

        Parameters
        ----------
        strict_mode : bool
            If True, raise ProjectionConsistencyError on violations.
        log_violations : bool
            Whether to log violations.
        audit : AuditLogger, optional
            Audit trail receiving every check's residual.
        """
        self.strict_mode = strict_mode
        self.log_violations = log_violations
        self.audit = audit
        self._logger = get_logger("ProjectionConsistencyChecker")

    def _report(
        self,
        result: ValidationResult,
        residual: Optional[float] = None,
        tolerance: Optional[float] = None
    ) -> ValidationResult:
        if self.audit is not None and residual is not None:
            self.audit.log_tolerance_check(
                check_name=result.test_name,
                residual_value=residual,
                tolerance=tolerance,
                context=result.details
            )

        if not result.passed:
            if self.log_violations:
                self._logger.warning(f"{result.test_name} failed: {result.message}")
            if self.strict_mode:
                raise ProjectionConsistencyError(f"{result.test_name}: {result.message}")
        return result

    def check_all(self) -> List[ValidationResult]:
        """Run all projection checks with their default parameters.

        Returns
        -------
        List[ValidationResult]
            Results of all checks.
        """
        results = []

        # 1. Every coordinate is drawn somewhere
        results.append(self.check_containment_coverage())

        # 2. Octant symmetry
        results.append(self.check_mirror_symmetry())

        # 3. Inverse undoes the bilinear model
        results.append(self.check_cell_round_trip())

        # 4. Shared tile edges
        results.append(self.check_tile_stitching())

        # 5. Pole convergence of polar cells
        results.append(self.check_polar_continuity())

        # 6. Oblique transform degenerates to the identity
        results.append(self.check_north_pole_identity())

        passed = sum(r.passed for r in results)
        logger.info(f"Projection checks: {passed}/{len(results)} passed")
        return results

    def check_containment_coverage(self, step_deg: float = 1.0) -> ValidationResult:
        """Check that every grid coordinate lies in at least one map area."""
        lats = np.arange(-90.0, 90.0 + step_deg / 2, step_deg)
        lons = np.arange(-180.0, 180.0, step_deg)

        uncovered = []
        for lat in lats:
            for lon in lons:
                coord = LatLon(float(lat), float(lon))
                if not any(area.contains(coord) for area in MAP_AREAS):
                    uncovered.append(coord.as_tuple())

        return self._report(ValidationResult(
            test_name="containment_coverage",
            passed=not uncovered,
            message=f"Coverage check: {len(uncovered)} uncovered coordinates",
            details={
                'num_checked': int(lats.size * lons.size),
                'num_uncovered': len(uncovered),
                'uncovered_sample': uncovered[:10],
            }
        ))

    def check_mirror_symmetry(
        self,
        area_index: int = 2,
        offsets_deg: Sequence[float] = (5.0, 15.0, 25.0, 40.0),
        lats_deg: Optional[Sequence[float]] = None,
        tolerance: float = 1e-9
    ) -> ValidationResult:
        """Check that an area is mirror-symmetric about its central meridian.

        Positions are compared in the area's own octant frame, where the
        central meridian is the vertical axis through the pole.
        """
        area = MAP_AREAS[area_index]
        if lats_deg is None:
            lats_deg = (10.0, 30.0, 50.0, 70.0, 85.0)
        hemisphere = 1.0 if area.is_north else -1.0

        residual = 0.0
        for lat in lats_deg:
            for d in offsets_deg:
                west = _octant_frame(forward_project(
                    LatLon(hemisphere * lat, area.center_lon - d), area_index
                ), area_index)
                east = _octant_frame(forward_project(
                    LatLon(hemisphere * lat, area.center_lon + d), area_index
                ), area_index)
                residual = max(residual, abs(west.x + east.x), abs(west.y - east.y))

        return self._report(ValidationResult(
            test_name="mirror_symmetry",
            passed=residual <= tolerance,
            message=f"Mirror symmetry of area {area_index}: residual {residual:.3e}",
            details={'area_index': area_index, 'residual': residual}
        ), residual, tolerance)

    def check_cell_round_trip(
        self,
        area_index: int = 2,
        cell_sw: Tuple[float, float] = (60.0, 20.0),
        samples_per_side: int = 5,
        tolerance: float = 1e-6
    ) -> ValidationResult:
        """Check that inverting bilinear points recovers their coordinates.

        Points are placed by the bilinear model of a projected cell, so the
        inverse must reproduce their relative coordinates up to rounding.
        """
        cell = project_cell(area_index, *cell_sw)
        if cell.is_polar:
            raise ValueError(f"Round-trip check needs an ordinary cell, got {cell!r}")

        rel = np.linspace(0.0, 1.0, samples_per_side)
        residual = 0.0
        for u in rel:
            for v in rel:
                point = _bilinear_point(cell.cell_corners, float(u), float(v))
                coord = cell.inverse(point)
                residual = max(
                    residual,
                    abs(coord.lat - (cell_sw[0] + v)),
                    abs(coord.lon - (cell_sw[1] + u))
                )

        return self._report(ValidationResult(
            test_name="cell_round_trip",
            passed=residual <= tolerance,
            message=f"Cell round trip: max error {residual:.3e} degrees",
            details={'area_index': area_index, 'cell_sw': cell_sw, 'residual': residual}
        ), residual, tolerance)

    def check_tile_stitching(
        self,
        samples_per_edge: int = 7,
        tolerance: float = 5e-3
    ) -> ValidationResult:
        """Check that adjacent tiles project shared edges to the same place.

        The truncated series does not land both octant halves exactly on
        the triangle edge. Where the north-pole and vertex-pole branches
        meet (45° latitude on a shared meridian) neighbouring tiles are
        about 2.5e-3 map units apart.
        """
        residual = 0.0
        worst: Optional[Tuple[int, int]] = None

        def compare(coord: LatLon, first: int, second: int) -> None:
            nonlocal residual, worst
            gap = forward_project(coord, first).distance_to(forward_project(coord, second))
            if gap > residual:
                residual, worst = gap, (first, second)

        for west, east, lon, (lat_lo, lat_hi) in STITCHED_MERIDIANS:
            for lat in np.linspace(lat_lo, lat_hi, samples_per_edge):
                compare(LatLon(float(lat), lon), west, east)

        for north, south, (lon_lo, lon_hi) in STITCHED_EQUATOR:
            for lon in np.linspace(lon_lo, lon_hi, samples_per_edge):
                compare(LatLon(0.0, float(lon)), north, south)

        return self._report(ValidationResult(
            test_name="tile_stitching",
            passed=residual <= tolerance,
            message=f"Tile stitching: max gap {residual:.3e} map units",
            details={'residual': residual, 'worst_pair': worst}
        ), residual, tolerance)

    def check_polar_continuity(
        self,
        cells: Sequence[Tuple[int, float, float]] = ((2, 89.0, 20.0), (7, -90.0, -10.0)),
        tolerance: float = 1e-9
    ) -> ValidationResult:
        """Check that inverting a polar cell's pole corner yields the pole.

        Parameters
        ----------
        cells : sequence of tuple
            (area index, SW lat, SW lon) of polar cells.
        tolerance : float
            Allowed error in degrees.
        """
        residual = 0.0
        for area_index, lat, lon in cells:
            cell = project_cell(area_index, lat, lon)
            if not cell.is_polar:
                raise ValueError(f"Cell ({lat}, {lon}) in area {area_index} is not polar")
            coord = cell.inverse(cell.pole_corner)
            expected_lat = 90.0 if cell.is_north_polar else -90.0
            residual = max(residual, abs(coord.lat - expected_lat), abs(coord.lon - lon))

        return self._report(ValidationResult(
            test_name="polar_continuity",
            passed=residual <= tolerance,
            message=f"Polar continuity: max error {residual:.3e} degrees",
            details={'num_cells': len(cells), 'residual': residual}
        ), residual, tolerance)

    def check_north_pole_identity(
        self,
        coords: Optional[Sequence[LatLon]] = None
    ) -> ValidationResult:
        """Check that the oblique transform about the north pole is the identity."""
        if coords is None:
            coords = [
                LatLon(lat, lon, AngleUnit.RADIANS)
                for lat in (-1.2, -0.3, 0.0, 0.7, 1.5)
                for lon in (-3.0, -1.0, 0.0, 2.0, 3.1)
            ]

        mismatches = [c.as_tuple() for c in coords if oblique_coordinate(c, NORTH_POLE) != c]

        return self._report(ValidationResult(
            test_name="north_pole_identity",
            passed=not mismatches,
            message=f"North pole identity: {len(mismatches)} mismatches",
            details={'num_checked': len(coords), 'mismatches': mismatches}
        ))
