"""
Conformal Cahill Octant Projection.

This module maps a spherical coordinate inside one octant of the sphere to
planar coordinates inside an upright equilateral triangle: the north pole
is the top vertex at (0, 0), the equator is the bottom side, and the 0°
meridian is the altitude (axis of symmetry). The y axis points down.

Scientific Context
------------------
Domain: Conformal cartography, complex analysis
Model: Polynomial approximation of the conformal map of a spherical
octant onto an equilateral triangle

Method
------
1. The octant is folded about its axis of symmetry (negative longitudes
   are mirrored).
2. Each half is projected from the nearer of two poles: the north pole
   or an auxiliary pole on the equator at the octant's east vertex.
3. Around the chosen pole, z = tan(π/4 - φ/2)^(2/3) · exp(i·2λ/3) is a
   stereographic radius compressed by the 2/3 power that unfolds 120° of
   the hemisphere into the 60° corner of the triangle.
4. A truncated odd-power series corrects z towards the exact conformal
   map (error below 0.1% over the octant).

The series, its truncation and its scale constant define the projection;
they are not tunable.

References
----------
- Cahill, B.J.S. (1909). An account of a new land map of the world.
- Kunimune, J. Map-Projections, ``Octohedral.faceProject`` and
  ``Octohedral.polynomial``.
"""

import numpy as np

from common.constants import (
    HALF_ROOT_3,
    QUARTER_PI,
    PI_OVER_6,
    ProjectionConstants,
)
from common.types import (
    AngleUnit,
    ComplexNumber,
    LatLon,
    Point,
    complex_from_polar,
)
from geospatial.coordinate_models import Pole, oblique_coordinate


HEXAGON_SCALE = ProjectionConstants.HEXAGON_SCALE.value

# Pole on the equator at the east vertex of the octant
VERTEX_POLE = Pole.from_radians(0.0, QUARTER_PI, -3 * QUARTER_PI)

_ROTATION = complex_from_polar(1.0, -PI_OVER_6)
_SCALE = complex_from_polar(HEXAGON_SCALE, -PI_OVER_6)


def apply_conformal_correction(z: ComplexNumber) -> ComplexNumber:
    """Apply the polynomial conformal correction to a complex coordinate.

    Parameters
    ----------
    z : complex
        Base coordinate: compressed stereographic position around a pole.

    Returns
    -------
    complex
        Corrected position, in units where the hexagon of six octants has
        unit circumradius.

    Notes
    -----
    z₁ = z·e^(-iπ/6)
    w  = z₁ + z₁⁷/21 + z₁¹¹/99 + z₁¹³·16/1287
    result = w / (HEXAGON_SCALE·e^(-iπ/6))
    """
    z1 = z * _ROTATION
    w = (
        z1
        + z1 ** 7 / 21
        + z1 ** 11 / 99
        + z1 ** 13 / (1287 / 16)
    )
    return w / _SCALE


def project_octant(coord: LatLon) -> Point:
    """Project a coordinate inside the reference octant.

    Parameters
    ----------
    coord : LatLon
        Coordinate in radians with 0 <= lat <= π/2 and |lon| <= π/4,
        measured from the octant's central meridian.

    Returns
    -------
    Point
        Position in octant units: the pole at (0, 0) and the two equator
        vertices at (±1/2, √3/2).

    Examples
    --------
    >>> p = project_octant(LatLon(0.0, QUARTER_PI, AngleUnit.RADIANS))
    >>> round(p.x, 12), round(p.y, 12) == round(HALF_ROOT_3, 12)
    (0.5, True)
    """
    if not coord.is_radians:
        raise ValueError("project_octant expects a coordinate in radians")

    # Temporarily negate negative longitudes to use the octant's symmetry
    negate = -1 if coord.lon < 0 else 1
    folded = LatLon(coord.lat, negate * coord.lon, AngleUnit.RADIANS)

    oblique = oblique_coordinate(folded, VERTEX_POLE)

    # Project from whichever pole the point is closer to
    from_north = folded.lat > oblique.lat
    selected = folded if from_north else oblique

    radius = np.tan(QUARTER_PI - selected.lat / 2) ** (2 / 3)
    z = apply_conformal_correction(
        complex_from_polar(float(radius), selected.lon * 2 / 3)
    )

    if from_north:
        return Point(float(negate * z.imag), float(z.real))

    # The vertex half is rotated by 60° and moved onto the vertex
    return Point(
        float(negate * (-HALF_ROOT_3 * z.real - z.imag / 2 + 1 / 2)),
        float(-z.real / 2 + HALF_ROOT_3 * z.imag + HALF_ROOT_3)
    )
