"""
Coordinate Models for Oblique Spherical Frames.

This module re-expresses spherical coordinates relative to an arbitrary
reference pole instead of the geographic pole. The octant projection uses
it to look at a point from the auxiliary pole placed at an octant vertex.

Scientific Context
------------------
Domain: Spherical trigonometry
Model: Unit sphere (the projection is defined on the sphere, not on an
ellipsoid)

Oblique Frame
-------------
Seen from a pole P with orientation θ, a point X has
- latitude  φ' = π/2 - d(P, X), the angular distance from P's equator
- longitude λ' = bearing of X from P, rotated by -θ, wrapped into (-π, π]

References
----------
- Snyder, J.P. (1987). Map Projections - A Working Manual. USGS Prof.
  Paper 1395, pp. 29-32 (transformation of map graticules).
- Kunimune, J. Map-Projections, ``Projection.obliquifySphc``.
"""

from dataclasses import dataclass
import numpy as np

from common.constants import HALF_PI, TWO_PI
from common.types import AngleUnit, LatLon


@dataclass(frozen=True)
class Pole:
    """A reference pole: a spherical position plus an orientation.

    Attributes
    ----------
    position : LatLon
        Location of the pole, in radians.
    theta : float
        Orientation in radians; the longitude offset subtracted from every
        bearing measured from this pole.
    """
    position: LatLon
    theta: float = 0.0

    def __post_init__(self):
        if not self.position.is_radians:
            raise ValueError("Pole position must be expressed in radians")

    @classmethod
    def from_radians(cls, lat: float, lon: float, theta: float = 0.0) -> 'Pole':
        return cls(LatLon(lat, lon, AngleUnit.RADIANS), theta)

    @property
    def lat(self) -> float:
        return self.position.lat

    @property
    def lon(self) -> float:
        return self.position.lon


# The standard geographic north pole
NORTH_POLE = Pole.from_radians(HALF_PI, 0.0, 0.0)


def wrap_longitude(lon_rad: float) -> float:
    """Wrap a longitude into (-π, π] by repeated ±2π adjustment.

    Inputs several turns out of range are brought back one turn at a time.
    """
    while lon_rad > np.pi:
        lon_rad -= TWO_PI
    while lon_rad < -np.pi:
        lon_rad += TWO_PI
    return lon_rad


def oblique_coordinate(coord: LatLon, pole: Pole) -> LatLon:
    """Compute a coordinate as seen from the frame of ``pole``.

    Parameters
    ----------
    coord : LatLon
        Spherical coordinate in radians.
    pole : Pole
        The reference pole.

    Returns
    -------
    LatLon
        Oblique coordinate in radians.

    Notes
    -----
    The bearing is recovered with an arc-cosine, which is indeterminate
    when the point lies on the pole's axis. There the longitude falls back
    to 0 or -π, selected by the sign of cos(Δλ) and by which side of the
    pole's latitude the point lies on.

    Examples
    --------
    >>> c = LatLon(0.3, -1.2, AngleUnit.RADIANS)
    >>> oblique_coordinate(c, NORTH_POLE) == c
    True
    """
    if not coord.is_radians:
        raise ValueError("oblique_coordinate expects a coordinate in radians")

    if pole == NORTH_POLE:
        return coord

    d_lon = pole.lon - coord.lon
    cos_d_lon = np.cos(d_lon)

    indeterminate = False
    if pole.lat == HALF_PI:
        lat1 = coord.lat
        lon1 = d_lon
    else:
        lat1 = HALF_PI - pole.position.angular_distance_to(coord)
        numerator = (
            np.cos(pole.lat) * np.sin(coord.lat) -
            np.sin(pole.lat) * np.cos(coord.lat) * cos_d_lon
        )
        cos_lat1 = np.cos(lat1)
        ratio = numerator / cos_lat1 if cos_lat1 != 0 else np.nan
        indeterminate = bool(np.isnan(ratio)) or not -1.0 <= ratio <= 1.0
        if indeterminate:
            on_near_side = (
                (cos_d_lon >= 0 and coord.lat < pole.lat) or
                (cos_d_lon < 0 and coord.lat < -pole.lat)
            )
            lon1 = 0.0 if on_near_side else -np.pi
        else:
            lon1 = np.arccos(ratio) - np.pi

    if not indeterminate and np.sin(-d_lon) > 0:
        lon1 = -lon1

    lon1 = wrap_longitude(float(lon1 - pole.theta))
    return LatLon(float(lat1), lon1, AngleUnit.RADIANS)
