"""
Butterfly Map Tiling, Forward Projection and Distortion Tracking.

This module partitions the sphere into the twelve map areas of the
Cahill-Concialdi "Bat" layout and places the conformal octant projection
of each area on the plane. It also exposes the projection through the
generic projection-adapter interface so its local distortion can be
quantified.

Scientific Context
------------------
Domain: Cartography, octahedral interrupted projections
Model: Conformal octant projection, twelve oriented tiles

Layout
------
- Five northern areas share the north pole at the planar origin; each is
  rotated by a multiple of 60°. The antimeridian cut runs along the
  Bering Strait at 168.5°W.
- Seven southern areas are drawn around three separate copies of the
  south pole (left, bottom and right lobes).
- Areas overlap on their edges. A boundary point projects to different
  places in two non-adjacent areas, so callers drawing a continuous line
  pin every vertex to one area with an explicit index.

References
----------
- Cahill, B.J.S. (1909). An account of a new land map of the world.
- Concialdi, L. (2021). The Cahill-Concialdi Bat map.
- Tissot, A. (1859). Mémoire sur la représentation des surfaces.
- Snyder, J.P. (1987). Map Projections - A Working Manual, pp. 20-26.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple
import numpy as np
from numpy.typing import NDArray

from common.constants import DEGS_IN_CIRCLE, ProjectionConstants
from common.errors import CoordinateRangeError, MapAreaLookupError
from common.logging_config import get_logger
from common.types import AngleUnit, LatLon, Point
from geospatial.cahill_conformal import project_octant

logger = get_logger(__name__)

OCTANT_SCALE = ProjectionConstants.OCTANT_SCALE.value

NORTH_POLE_ORIGIN = Point(0.0, 0.0)
SOUTH_POLE_LEFT_ORIGIN = Point(*ProjectionConstants.south_pole_origins()["left"])
SOUTH_POLE_BOTTOM_ORIGIN = Point(*ProjectionConstants.south_pole_origins()["bottom"])
SOUTH_POLE_RIGHT_ORIGIN = Point(*ProjectionConstants.south_pole_origins()["right"])


@dataclass(frozen=True)
class MapArea:
    """One of the twelve map areas (a whole or partial octant).

    Attributes
    ----------
    center_lon : float
        Longitude in degrees of the octant's central meridian.
    sw_corner : LatLon
        SW corner of the area's bounding box, in degrees.
    ne_corner : LatLon
        NE corner of the area's bounding box, in degrees.
    origin : Point
        Planar position of the area's projected pole, in octant units
        (before scaling by ``OCTANT_SCALE``).
    angle : float
        Rotation in radians of the octant about its pole. 0 points the
        octant down for the north pole; positive angles run clockwise in
        screen space.

    Notes
    -----
    - ``is_north`` is derived from the NE latitude (> 0).
    - ``has_antimeridian`` is set when the SW longitude exceeds the NE
      longitude, i.e. the box wraps through 180°.
    """
    center_lon: float
    sw_corner: LatLon
    ne_corner: LatLon
    origin: Point
    angle: float

    @classmethod
    def from_degrees(
        cls,
        center_lon: float,
        sw: Tuple[float, float],
        ne: Tuple[float, float],
        origin: Point,
        angle_deg: float
    ) -> 'MapArea':
        """Build an area from corner tuples and a rotation in degrees."""
        return cls(
            center_lon=center_lon,
            sw_corner=LatLon(*sw),
            ne_corner=LatLon(*ne),
            origin=origin,
            angle=float(np.radians(angle_deg))
        )

    @property
    def is_north(self) -> bool:
        return self.ne_corner.lat > 0

    @property
    def has_antimeridian(self) -> bool:
        return self.sw_corner.lon > self.ne_corner.lon

    @property
    def lon_span_end(self) -> float:
        """East edge longitude, shifted past 180° for antimeridian areas."""
        if self.has_antimeridian:
            return self.ne_corner.lon + DEGS_IN_CIRCLE
        return self.ne_corner.lon

    def contains(self, coord: LatLon) -> bool:
        """Check whether a coordinate lies inside the area's bounding box.

        Parameters
        ----------
        coord : LatLon
            Coordinate in degrees with lon in [-180°, 180°].

        Returns
        -------
        bool
            True if inside (edges included).
        """
        coord = coord.to_degrees()
        if not self.sw_corner.lat <= coord.lat <= self.ne_corner.lat:
            return False
        if self.has_antimeridian:
            return self.sw_corner.lon <= coord.lon or coord.lon <= self.ne_corner.lon
        return self.sw_corner.lon <= coord.lon <= self.ne_corner.lon

    def normalize(self, coord: LatLon) -> LatLon:
        """Express a coordinate in the reference octant of this area.

        Latitude becomes the distance from the equator (both hemispheres
        share the northern octant geometry) and longitude the signed
        difference from the central meridian.
        """
        coord = coord.to_degrees()
        if self.has_antimeridian:
            lon = coord.lon + DEGS_IN_CIRCLE if coord.lon < 0 else coord.lon
            center = (
                self.center_lon + DEGS_IN_CIRCLE
                if self.center_lon < 0 else self.center_lon
            )
            d_lon = lon - center
        else:
            d_lon = coord.lon - self.center_lon
        return LatLon(abs(coord.lat), d_lon)

    def project(self, coord: LatLon) -> Point:
        """Project a coordinate through this area's placement.

        Parameters
        ----------
        coord : LatLon
            Coordinate in degrees (radians are converted).

        Returns
        -------
        Point
            Map position in map units (scaled, not tilted).
        """
        point = project_octant(self.normalize(coord).to_radians())

        # The southern octant is the mirror image of the northern one
        if not self.is_north:
            point = Point(-point.x, point.y)

        return point.rotate(self.angle).translate(self.origin).scale(OCTANT_SCALE)


# The twelve map areas, in drawing order
MAP_AREAS: Tuple[MapArea, ...] = tuple(
    MapArea.from_degrees(*params) for params in [
        (-160, (0, -168.5), (90, -115), NORTH_POLE_ORIGIN, 120),
        (-70, (0, -115), (90, -25), NORTH_POLE_ORIGIN, 60),
        (20, (0, -25), (90, 65), NORTH_POLE_ORIGIN, 0),
        (110, (0, 65), (90, 155), NORTH_POLE_ORIGIN, -60),
        (-160, (0, 155), (90, -168.5), NORTH_POLE_ORIGIN, -120),
        (-160, (-90, -150), (0, -115), SOUTH_POLE_LEFT_ORIGIN, 180),
        (-70, (-90, -115), (0, -25), SOUTH_POLE_LEFT_ORIGIN, -120),
        (20, (-90, -25), (-45, 15), SOUTH_POLE_LEFT_ORIGIN, -60),
        (20, (-45, -25), (0, 65), SOUTH_POLE_BOTTOM_ORIGIN, -180),
        (20, (-90, 15), (-45, 65), SOUTH_POLE_RIGHT_ORIGIN, 60),
        (110, (-90, 65), (0, 155), SOUTH_POLE_RIGHT_ORIGIN, 120),
        (-160, (-90, 155), (0, -150), SOUTH_POLE_RIGHT_ORIGIN, 180),
    ]
)


def find_map_area(coord: LatLon) -> int:
    """Index of the first map area containing a coordinate.

    Raises
    ------
    MapAreaLookupError
        If no area contains the coordinate.
    """
    for idx, area in enumerate(MAP_AREAS):
        if area.contains(coord):
            return idx
    logger.debug(f"No map area contains {coord}")
    raise MapAreaLookupError(f"No map area contains {coord}")


def forward_project(coord: LatLon, area_index: Optional[int] = None) -> Point:
    """Project a spherical coordinate to its map position.

    Parameters
    ----------
    coord : LatLon
        Spherical coordinate, usually in degrees; radians are accepted and
        converted. Longitudes outside [-180°, 180°] are wrapped into
        that range first.
    area_index : int, optional
        Force projection through ``MAP_AREAS[area_index]``. Without it the
        first area containing the coordinate is used.

    Returns
    -------
    Point
        Map position in map units, scaled but not tilted.

    Raises
    ------
    CoordinateRangeError
        If the coordinate is not a valid spherical coordinate.
    MapAreaLookupError
        If the index is invalid or no area contains the coordinate.

    Examples
    --------
    >>> p = forward_project(LatLon(90, 0))
    >>> (p.x, p.y) == (0.0, 0.0)
    True
    """
    if not isinstance(coord, LatLon):
        raise CoordinateRangeError(f"Expected a LatLon, got {type(coord).__name__}")
    coord = coord.to_degrees()
    half_circle = DEGS_IN_CIRCLE / 2
    if not -half_circle <= coord.lon <= half_circle:
        coord = LatLon(coord.lat, (coord.lon + half_circle) % DEGS_IN_CIRCLE - half_circle)

    if area_index is None:
        area_index = find_map_area(coord)
    elif not 0 <= area_index < len(MAP_AREAS):
        raise MapAreaLookupError(
            f"Map area index {area_index} out of range [0, {len(MAP_AREAS) - 1}]"
        )

    return MAP_AREAS[area_index].project(coord)


def project_batch(
    lats_deg: Sequence[float],
    lons_deg: Sequence[float],
    area_index: Optional[int] = None
) -> NDArray[np.float64]:
    """Project arrays of coordinates.

    Parameters
    ----------
    lats_deg, lons_deg : array_like
        Coordinates in degrees, same length.
    area_index : int, optional
        Area forced for every coordinate.

    Returns
    -------
    ndarray
        (N, 2) array of projected x/y pairs in map units.
    """
    lats = np.asarray(lats_deg, dtype=np.float64)
    lons = np.asarray(lons_deg, dtype=np.float64)
    if lats.shape != lons.shape:
        raise ValueError("Latitude and longitude arrays must have the same shape")

    out = np.empty((lats.size, 2), dtype=np.float64)
    for i, (lat, lon) in enumerate(zip(lats.ravel(), lons.ravel())):
        out[i] = forward_project(LatLon(float(lat), float(lon)), area_index).as_tuple()
    return out


@dataclass
class TissotIndicatrix:
    """Tissot's indicatrix describing local distortion at a point.

    Attributes
    ----------
    semi_major : float
        Semi-major axis of the distortion ellipse (map units per radian).
    semi_minor : float
        Semi-minor axis of the distortion ellipse (map units per radian).
    orientation_rad : float
        Orientation of the major axis in radians.
    area_scale : float
        Area distortion factor (h * k * sin θ').
    angular_distortion_rad : float
        Maximum angular distortion in radians.

    Notes
    -----
    For a conformal projection semi_major = semi_minor (a circle).
    """
    semi_major: float
    semi_minor: float
    orientation_rad: float
    area_scale: float
    angular_distortion_rad: float

    def is_conformal(self, rtol: float = 1e-3) -> bool:
        """Whether the ellipse is a circle to within ``rtol``.

        The default matches the truncation error of the conformal series.
        """
        return bool(self.semi_major - self.semi_minor <= rtol * self.semi_major)


class ProjectionAdapter(ABC):
    """Abstract base class for map projection adapters."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable name of the projection."""
        pass

    @property
    @abstractmethod
    def preserves_angles(self) -> bool:
        """Whether this is a conformal projection."""
        pass

    @property
    @abstractmethod
    def preserves_area(self) -> bool:
        """Whether this is an equal-area projection."""
        pass

    @abstractmethod
    def to_projected(
        self,
        lat_rad: float,
        lon_rad: float
    ) -> Tuple[float, float]:
        """Transform spherical coordinates to projected coordinates.

        Parameters
        ----------
        lat_rad, lon_rad : float
            Spherical coordinates in radians.

        Returns
        -------
        Tuple[float, float]
            (x, y) projected coordinates in map units.
        """
        pass

    @abstractmethod
    def compute_distortion(
        self,
        lat_rad: float,
        lon_rad: float
    ) -> TissotIndicatrix:
        """Compute local distortion at a point."""
        pass


class CahillConcialdiProjection(ProjectionAdapter):
    """The Butterfly projection behind the adapter interface.

    Parameters
    ----------
    area_index : int, optional
        Pin every projection to one map area. Distortion is only
        meaningful inside a single area, so pinning avoids switching tiles
        between the finite-difference samples.
    """

    def __init__(self, area_index: Optional[int] = None):
        self._area_index = area_index

    @property
    def name(self) -> str:
        if self._area_index is None:
            return "Cahill-Concialdi Bat"
        return f"Cahill-Concialdi Bat (area {self._area_index})"

    @property
    def preserves_angles(self) -> bool:
        return True

    @property
    def preserves_area(self) -> bool:
        return False

    def to_projected(self, lat_rad: float, lon_rad: float) -> Tuple[float, float]:
        point = forward_project(
            LatLon(lat_rad, lon_rad, AngleUnit.RADIANS),
            self._area_index
        )
        return point.as_tuple()

    def compute_distortion(self, lat_rad: float, lon_rad: float) -> TissotIndicatrix:
        return compute_tissot_indicatrix(self, lat_rad, lon_rad)


def compute_tissot_indicatrix(
    projection: ProjectionAdapter,
    lat_rad: float,
    lon_rad: float,
    delta: float = 1e-5
) -> TissotIndicatrix:
    """Compute Tissot's indicatrix numerically on the unit sphere.

    Parameters
    ----------
    projection : ProjectionAdapter
        The projection to analyze.
    lat_rad, lon_rad : float
        Location in radians.
    delta : float
        Small angular offset for numerical differentiation.

    Returns
    -------
    TissotIndicatrix
        Local distortion characteristics.

    Notes
    -----
    h = |∂P/∂φ|, k = |∂P/∂λ| / cos φ and θ' is the angle between the
    projected meridian and parallel. With A = sqrt(h² + k² + 2hk sin θ')
    and B = sqrt(h² + k² - 2hk sin θ') the ellipse axes are (A ± B)/2.
    """
    x0, y0 = projection.to_projected(lat_rad, lon_rad)

    # ∂x/∂λ, ∂y/∂λ (east-west)
    x_e, y_e = projection.to_projected(lat_rad, lon_rad + delta)
    dxdl = (x_e - x0) / delta
    dydl = (y_e - y0) / delta

    # ∂x/∂φ, ∂y/∂φ (north-south)
    x_n, y_n = projection.to_projected(lat_rad + delta, lon_rad)
    dxdp = (x_n - x0) / delta
    dydp = (y_n - y0) / delta

    cos_lat = np.cos(lat_rad)
    h = np.hypot(dxdp, dydp)
    k = np.hypot(dxdl, dydl) / cos_lat

    sin_theta = np.abs(dxdp * dydl - dydp * dxdl) / (h * k * cos_lat)
    sin_theta = np.clip(sin_theta, 0.0, 1.0)

    big_a = np.sqrt(h**2 + k**2 + 2 * h * k * sin_theta)
    big_b = np.sqrt(max(h**2 + k**2 - 2 * h * k * sin_theta, 0.0))
    a = (big_a + big_b) / 2
    b = (big_a - big_b) / 2

    theta = 0.5 * np.arctan2(2 * (dxdp * dxdl + dydp * dydl),
                             dxdp**2 + dydp**2 - dxdl**2 - dydl**2)

    return TissotIndicatrix(
        semi_major=float(a),
        semi_minor=float(b),
        orientation_rad=float(theta),
        area_scale=float(h * k * sin_theta),
        angular_distortion_rad=float(2 * np.arcsin(np.clip((a - b) / (a + b), 0.0, 1.0)))
    )
