"""
Geometry Primitives for the Projection Engine.

This module defines the value types exchanged between the projection
modules and their collaborators: planar points, unit-tagged spherical
coordinates and complex numbers.

Design Rationale
----------------
All types are immutable. Planar transforms (translate, scale, rotate)
return new points, so a chain such as
``point.rotate(angle).translate(origin).scale(factor)`` never aliases the
input. Spherical coordinates carry their unit explicitly because
collaborators pass both degrees and radians at different call sites.
"""

import cmath
from dataclasses import dataclass
from enum import Enum
from typing import Tuple
import numpy as np
from numpy.typing import NDArray

from common.constants import HALF_PI
from common.errors import CoordinateRangeError
from common.units import AngleLike, angle_to_degrees


@dataclass(frozen=True)
class Point:
    """A Cartesian 2D point in abstract planar units.

    Attributes
    ----------
    x : float
        Horizontal coordinate (increasing to the right).
    y : float
        Vertical coordinate (increasing downwards, as in SVG).

    Examples
    --------
    >>> Point(1.0, 0.0).rotate(np.pi / 2).translate(Point(1.0, 1.0)).scale(2.0).to_svg()
    '2,4'
    """
    x: float
    y: float

    def angle_to(self, other: 'Point') -> float:
        """Angle in radians of the vector from this point to ``other``."""
        return float(np.arctan2(other.y - self.y, other.x - self.x))

    def distance_to(self, other: 'Point') -> float:
        """Cartesian distance to ``other``."""
        return float(np.hypot(other.y - self.y, other.x - self.x))

    def translate(self, delta: 'Point') -> 'Point':
        return Point(self.x + delta.x, self.y + delta.y)

    def scale(self, factor: float) -> 'Point':
        return Point(self.x * factor, self.y * factor)

    def rotate(self, theta: float) -> 'Point':
        """Rotate about the origin by ``theta`` radians."""
        cos_theta = np.cos(theta)
        sin_theta = np.sin(theta)
        return Point(
            float(self.x * cos_theta - self.y * sin_theta),
            float(self.x * sin_theta + self.y * cos_theta)
        )

    def to_svg(self) -> str:
        """SVG-friendly representation rounded to at most 2 decimals."""
        return f"{self.x:.2f},{self.y:.2f}".replace(".00", "")

    def as_tuple(self) -> Tuple[float, float]:
        return self.x, self.y


class AngleUnit(Enum):
    """Unit tag of a spherical coordinate."""
    DEGREES = "degree"
    RADIANS = "radian"


@dataclass(frozen=True)
class LatLon:
    """A pair of spherical coordinates on the unit sphere.

    Attributes
    ----------
    lat : float
        Latitude, positive north. Range: [-90°, 90°] or [-π/2, π/2].
    lon : float
        Longitude, positive east. Not normalized: values beyond ±180°
        are legitimate during antimeridian-aware arithmetic.
    unit : AngleUnit
        Whether ``lat`` and ``lon`` are in degrees (default) or radians.

    Raises
    ------
    CoordinateRangeError
        If a component is not finite or the latitude is out of range.

    Notes
    -----
    Conversion between units is always explicit; arithmetic on two
    coordinates with different units is a bug.
    """
    lat: float
    lon: float
    unit: AngleUnit = AngleUnit.DEGREES

    def __post_init__(self):
        """Validate coordinate ranges."""
        if not (np.isfinite(self.lat) and np.isfinite(self.lon)):
            raise CoordinateRangeError(
                f"Coordinate ({self.lat}, {self.lon}) is not finite"
            )
        limit = 90.0 if self.unit is AngleUnit.DEGREES else HALF_PI
        if not -limit <= self.lat <= limit:
            raise CoordinateRangeError(
                f"Latitude {self.lat} {self.unit.value} out of range "
                f"[{-limit}, {limit}]"
                + (". Did you pass degrees instead of radians?"
                   if self.unit is AngleUnit.RADIANS else "")
            )

    @property
    def is_radians(self) -> bool:
        return self.unit is AngleUnit.RADIANS

    def to_radians(self) -> 'LatLon':
        """Return the coordinate in radians (self if already radians)."""
        if self.is_radians:
            return self
        return LatLon(
            float(np.radians(self.lat)),
            float(np.radians(self.lon)),
            AngleUnit.RADIANS
        )

    def to_degrees(self) -> 'LatLon':
        """Return the coordinate in degrees (self if already degrees)."""
        if not self.is_radians:
            return self
        return LatLon(
            float(np.degrees(self.lat)),
            float(np.degrees(self.lon)),
            AngleUnit.DEGREES
        )

    def as_tuple(self) -> Tuple[float, float]:
        return self.lat, self.lon

    def offset(self, d_lat: float, d_lon: float) -> 'LatLon':
        """Add a relative offset expressed in this coordinate's unit."""
        return LatLon(self.lat + d_lat, self.lon + d_lon, self.unit)

    def angular_distance_to(self, other: 'LatLon') -> float:
        """Great-circle distance in radians on the unit sphere.

        Parameters
        ----------
        other : LatLon
            The other coordinate, in any unit.

        Returns
        -------
        float
            Central angle between the two coordinates in [0, π].

        Notes
        -----
        d = π/2 - asin(sin φ₁ sin φ₂ + cos φ₁ cos φ₂ cos Δλ), with the
        arcsine argument clipped to [-1, 1] against rounding.
        """
        a = self.to_radians()
        b = other.to_radians()
        cos_d_lon = np.cos(a.lon - b.lon)
        s = (
            np.sin(a.lat) * np.sin(b.lat) +
            np.cos(a.lat) * np.cos(b.lat) * cos_d_lon
        )
        return float(HALF_PI - np.arcsin(np.clip(s, -1.0, 1.0)))

    @classmethod
    def from_quantities(cls, lat: AngleLike, lon: AngleLike) -> 'LatLon':
        """Create a degree coordinate from pint angle quantities.

        Parameters
        ----------
        lat, lon : pint.Quantity or float
            Angles in any unit; bare numbers are taken as degrees.

        Returns
        -------
        LatLon
            Coordinate in degrees.
        """
        return cls(
            angle_to_degrees(lat, "lat"),
            angle_to_degrees(lon, "lon"),
            AngleUnit.DEGREES
        )


# Complex numbers are Python's immutable built-in type; multiply, divide
# and integer power are the native operators.
ComplexNumber = complex


def complex_from_polar(radius: float, angle: float) -> ComplexNumber:
    """Build a complex number from its modulus and argument (radians)."""
    return cmath.rect(radius, angle)


# Type aliases for array types
CoordinateArray = NDArray[np.float64]  # Shape: (N,) latitudes or longitudes
PlanarArray = NDArray[np.float64]  # Shape: (N, 2) projected x/y pairs
