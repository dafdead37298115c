"""
Inverse Mapping of Projected Grid Cells.

This module maps a planar point inside a projected 1°×1° grid cell back
to the spherical coordinate it came from, which is how a plate-carrée
source raster is resampled into the Butterfly projection.

Cell Models
-----------
1. Ordinary cells: the four projected corners are treated as a bilinear
   image of the unit square (relative lon u, relative lat v). Recovering
   (u, v) from a point solves a quadratic in u.
2. Polar cells: a cell touching a pole degenerates into an isosceles
   triangle with its apex at the pole. Relative latitude follows the
   distance from the apex and relative longitude the bearing from it.

Along the antimeridian cut at 168.5°W a 1° cell is only half inside its
map area; the mask polygon restricts drawing to the true fractional cell.
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple
import numpy as np

from common.constants import TWO_PI
from common.errors import CellGeometryError
from common.logging_config import get_logger
from common.types import LatLon, Point

logger = get_logger(__name__)


@dataclass(frozen=True)
class InversionConfig:
    """Numerical tolerances for the inverse mapping.

    Attributes
    ----------
    root_tolerance : float
        How far outside [0, 1] a relative coordinate may fall (rounding
        on cell edges) and still be accepted.
    degenerate_tolerance : float
        Relative size below which the quadratic's leading coefficient is
        treated as zero (near-parallelogram cells).
    discriminant_tolerance : float
        Relative size below which a negative discriminant is treated as
        a double root.
    """
    root_tolerance: float = 1e-9
    degenerate_tolerance: float = 1e-12
    discriminant_tolerance: float = 1e-12


DEFAULT_INVERSION_CONFIG = InversionConfig()


def _wrap_signed(angle: float) -> float:
    """Wrap an angle difference into [-π, π)."""
    return (angle + np.pi) % TWO_PI - np.pi


class GridCell:
    """A projected 1°×1° grid cell.

    Parameters
    ----------
    sw_corner : LatLon
        Spherical coordinate of the cell's SW corner, in degrees.
    cell_corners : sequence of Point
        Projected corners in the order SW, SE, NE, NW.
    mask_corners : sequence of Point, optional
        Projected corners of the drawable part of the cell (at most four
        points, same order). Defaults to the cell corners.
    config : InversionConfig, optional
        Numerical tolerances.

    Notes
    -----
    - A north-polar cell has NE == NW (both at the north pole).
    - A south-polar cell has SW == SE (both at the south pole).
    """

    def __init__(
        self,
        sw_corner: LatLon,
        cell_corners: Sequence[Point],
        mask_corners: Optional[Sequence[Point]] = None,
        config: InversionConfig = DEFAULT_INVERSION_CONFIG
    ):
        if len(cell_corners) != 4:
            raise ValueError(f"A grid cell needs 4 corners, got {len(cell_corners)}")
        if mask_corners is not None and not 3 <= len(mask_corners) <= 4:
            raise ValueError(f"A cell mask needs 3 or 4 corners, got {len(mask_corners)}")

        self.sw_corner = sw_corner.to_degrees()
        self.cell_corners: Tuple[Point, ...] = tuple(cell_corners)
        self.mask_corners: Tuple[Point, ...] = tuple(
            mask_corners if mask_corners is not None else cell_corners
        )
        self.config = config

        self.is_north_polar = self.cell_corners[2] == self.cell_corners[3]
        self.is_south_polar = self.cell_corners[0] == self.cell_corners[1]

    @property
    def is_polar(self) -> bool:
        return self.is_north_polar or self.is_south_polar

    @property
    def pole_corner(self) -> Optional[Point]:
        """Projected pole of a polar cell (None for ordinary cells)."""
        if self.is_north_polar:
            return self.cell_corners[2]
        if self.is_south_polar:
            return self.cell_corners[1]
        return None

    def inverse(self, point: Point) -> LatLon:
        """Spherical coordinate in degrees of a point inside this cell."""
        if self.is_polar:
            return inverse_polar(self, point)
        return inverse_bilinear(self, point)

    def is_in_mask(self, point: Point) -> bool:
        """Whether a point lies inside the cell mask."""
        return point_in_polygon(point, self.mask_corners)

    def pixel_bounds(self) -> Tuple[int, int, int, int]:
        """Integer bounding box (min_x, max_x, min_y, max_y) of the mask."""
        xs = [p.x for p in self.mask_corners]
        ys = [p.y for p in self.mask_corners]
        return (
            int(np.floor(min(xs))),
            int(np.ceil(max(xs))),
            int(np.floor(min(ys))),
            int(np.ceil(max(ys))),
        )

    def __repr__(self) -> str:
        kind = "north-polar" if self.is_north_polar else (
            "south-polar" if self.is_south_polar else "ordinary"
        )
        return f"GridCell(sw=({self.sw_corner.lat:g}, {self.sw_corner.lon:g}), {kind})"


def point_in_polygon(point: Point, polygon: Sequence[Point]) -> bool:
    """Even-odd point-in-polygon test.

    Counts the polygon edges that lie on or below the point (smaller or
    equal y) within the point's column. Each edge's x-range is half-open,
    so a vertex shared by two edges is counted once.

    Parameters
    ----------
    point : Point
        The point to test.
    polygon : sequence of Point
        Vertices in order; the polygon may be non-convex.

    Returns
    -------
    bool
        True if the crossing count is odd.
    """
    crossings = 0
    n = len(polygon)
    for idx in range(n):
        a = polygon[idx]
        b = polygon[(idx + 1) % n]
        if min(a.x, b.x) <= point.x < max(a.x, b.x):
            if (
                point.y >= max(a.y, b.y) or
                point.y >= min(a.y, b.y) and
                point.y >= a.y + (point.x - a.x) / (b.x - a.x) * (b.y - a.y)
            ):
                crossings += 1
    return crossings % 2 == 1


def _bilinear_roots(a: float, b: float, c: float, config: InversionConfig) -> List[float]:
    """Real roots of a·u² + b·u + c = 0, tolerant of a ≈ 0."""
    scale = max(abs(b), abs(c), 1.0)
    if abs(a) <= config.degenerate_tolerance * scale:
        if abs(b) <= config.degenerate_tolerance * scale:
            raise CellGeometryError(
                "Degenerate cell: bilinear system has no unique solution"
            )
        # Near-parallelogram cell: the equation is linear
        logger.debug(f"Linear bilinear inversion (a={a:.3e}, b={b:.3e})")
        return [-c / b]

    discriminant = b * b - 4 * a * c
    if discriminant < 0:
        if discriminant < -config.discriminant_tolerance * max(b * b, abs(4 * a * c)):
            raise CellGeometryError(
                f"Point outside cell: negative discriminant {discriminant:.3e}"
            )
        discriminant = 0.0

    # Cancellation-free form of the quadratic formula
    q = -0.5 * (b + np.copysign(np.sqrt(discriminant), b))
    if q == 0:
        return [0.0]
    return [q / a, c / q]


def inverse_bilinear(cell: GridCell, point: Point) -> LatLon:
    """Invert the bilinear map of an ordinary cell.

    Parameters
    ----------
    cell : GridCell
        Non-polar cell.
    point : Point
        Point inside the cell.

    Returns
    -------
    LatLon
        Coordinate in degrees: SW corner + (v, u).

    Raises
    ------
    CellGeometryError
        If no root, or two distinct roots, fall inside the unit square.

    Notes
    -----
    With SW = (A, B), SE = (C, D), NE = (G, H), NW = (E, F) a relative
    coordinate (u, v) is drawn at

        x' - A = (C - A)u + (E - A)v + (A + G - C - E)uv
        y' - B = (D - B)u + (F - B)v + (B + H - D - F)uv

    Writing J = x' - A, K = y' - B, L = C - A, M = D - B, N = E - A,
    P = F - B, Q = A + G - C - E, R = B + H - D - F and eliminating v:

        (QM - LR)u² + (JR + NM - LP - QK)u + (JP - NK) = 0
    """
    sw, se, ne, nw = cell.cell_corners

    j = point.x - sw.x
    k = point.y - sw.y
    l = se.x - sw.x
    m = se.y - sw.y
    n = nw.x - sw.x
    p = nw.y - sw.y
    q = sw.x + ne.x - se.x - nw.x
    r = sw.y + ne.y - se.y - nw.y

    a = q * m - l * r
    b = j * r + n * m - l * p - q * k
    c = j * p - n * k

    tol = cell.config.root_tolerance
    solutions = []
    for u in _bilinear_roots(a, b, c, cell.config):
        if not np.isfinite(u):
            continue
        denom_x = n + q * u
        denom_y = p + r * u
        # v from whichever equation is better conditioned
        if abs(denom_x) >= abs(denom_y):
            if denom_x == 0:
                continue
            v = (j - l * u) / denom_x
        else:
            v = (k - m * u) / denom_y
        if -tol <= u <= 1 + tol and -tol <= v <= 1 + tol:
            solutions.append((u, v))

    if not solutions:
        raise CellGeometryError(
            f"No solution inside {cell!r} for point ({point.x}, {point.y})"
        )
    u, v = solutions[0]
    if len(solutions) > 1:
        u2, v2 = solutions[1]
        if abs(u - u2) > tol or abs(v - v2) > tol:
            raise CellGeometryError(
                f"Ambiguous solutions ({u}, {v}) and ({u2}, {v2}) inside {cell!r}"
            )

    return cell.sw_corner.offset(float(v), float(u))


def inverse_polar(cell: GridCell, point: Point) -> LatLon:
    """Invert a pole-adjacent (triangular) cell.

    Parameters
    ----------
    cell : GridCell
        Polar cell.
    point : Point
        Point inside the cell.

    Returns
    -------
    LatLon
        Coordinate in degrees.

    Notes
    -----
    The cell is taken as an isosceles triangle with its apex at the pole.
    Relative latitude is linear in the distance to the apex; relative
    longitude is the bearing from the apex as a fraction of the apex
    angle. Northern and southern cells sweep longitude in opposite senses.
    """
    if not cell.is_polar:
        raise CellGeometryError(f"{cell!r} is not a polar cell")

    sw, se, ne, nw = cell.cell_corners
    pole = cell.pole_corner
    north = cell.is_north_polar

    if point == pole:
        return cell.sw_corner.offset(1.0 if north else 0.0, 0.0)

    if north:
        cell_height = pole.distance_to(se)
        rel_lat = 1 - pole.distance_to(point) / cell_height
        start = pole.angle_to(sw)
        cell_width = start - pole.angle_to(se)
        sweep = start - pole.angle_to(point)
    else:
        cell_height = pole.distance_to(ne)
        rel_lat = pole.distance_to(point) / cell_height
        start = pole.angle_to(nw)
        cell_width = pole.angle_to(ne) - start
        sweep = pole.angle_to(point) - start

    if cell_width < 0:
        cell_width += TWO_PI
    if cell_height == 0 or cell_width == 0:
        raise CellGeometryError(f"Degenerate polar cell {cell!r}")
    rel_lon = _wrap_signed(sweep) / cell_width

    return cell.sw_corner.offset(float(rel_lat), float(rel_lon))
