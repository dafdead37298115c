"""
Mathematical and Map Constants for the Butterfly Projection Engine.

This module provides the constants used by the projection, tiling and
rasterization code. Every constant carries its unit and its provenance so
that the reference output of the projection can be traced back to the
source of each number.

References
----------
- Cahill, B.J.S. (1909). An account of a new land map of the world.
  Scottish Geographical Magazine, 25(9), 449-469.
- Concialdi, L. (2021). The Cahill-Concialdi Bat map.
- Kunimune, J. Map-Projections, ``Octohedral.java`` (conformal Cahill).
"""

from dataclasses import dataclass
from typing import Final
import numpy as np


@dataclass(frozen=True)
class Constant:
    """A constant with uncertainty and provenance.

    Attributes
    ----------
    value : float
        The nominal value of the constant.
    uncertainty : float
        The standard uncertainty of the constant (0 for exact values).
    unit : str
        The unit of the constant.
    source : str
        Reference for the constant value.
    description : str
        Human-readable description of the constant.
    """
    value: float
    uncertainty: float
    unit: str
    source: str
    description: str


# Exact derived constants used directly in arithmetic
HALF_ROOT_3: Final[float] = np.sqrt(3) / 2
TWO_PI: Final[float] = 2 * np.pi
HALF_PI: Final[float] = np.pi / 2
QUARTER_PI: Final[float] = np.pi / 4
PI_OVER_6: Final[float] = np.pi / 6
DEGS_IN_CIRCLE: Final[float] = 360.0


class ProjectionConstants:
    """Registry of the constants that define the Butterfly map.

    Conformal Octant
    ----------------
    The octant projection is a polynomial approximation of the conformal
    map of a spherical octant onto an equilateral triangle. Its single
    fitted constant scales the hexagon formed by six octants.

    Map Layout
    ----------
    Planar placement of the projected octants in abstract map units (the
    SVG length unit of the reference drawing).
    """

    # =========================================================================
    # Conformal octant projection
    # =========================================================================

    HEXAGON_SCALE: Final[Constant] = Constant(
        value=1.1129126745,
        uncertainty=5e-11,
        unit="dimensionless",
        source="Kunimune, Map-Projections, Octohedral.java",
        description="2^(2/3)/6 * integral_0^pi sin^(-1/3)(x) dx; "
                    "unit circumradius for the hexagon of six octants"
    )

    # =========================================================================
    # Map layout (abstract map units)
    # =========================================================================

    OCTANT_SCALE: Final[Constant] = Constant(
        value=100.0,
        uncertainty=0.0,
        unit="map unit",
        source="Cahill-Concialdi reference drawing",
        description="Side length of a projected octant"
    )

    MAP_VIEW_ORIGIN_X: Final[Constant] = Constant(
        value=142.0,
        uncertainty=0.0,
        unit="map unit",
        source="Cahill-Concialdi reference drawing",
        description="Horizontal offset of the projected north pole in the view"
    )

    MAP_VIEW_ORIGIN_Y: Final[Constant] = Constant(
        value=45.5,
        uncertainty=0.0,
        unit="map unit",
        source="Cahill-Concialdi reference drawing",
        description="Vertical offset of the projected north pole in the view"
    )

    MAP_WIDTH: Final[Constant] = Constant(
        value=302.0,
        uncertainty=0.0,
        unit="map unit",
        source="Cahill-Concialdi reference drawing",
        description="Width of the map view"
    )

    MAP_HEIGHT: Final[Constant] = Constant(
        value=178.0,
        uncertainty=0.0,
        unit="map unit",
        source="Cahill-Concialdi reference drawing",
        description="Height of the map view"
    )

    MAP_TILT_DEG: Final[Constant] = Constant(
        value=-5.4,
        uncertainty=0.0,
        unit="degree",
        source="Cahill-Concialdi reference drawing",
        description="Clockwise-negative tilt of the whole map in the view"
    )

    # =========================================================================
    # Raster sources
    # =========================================================================

    SOURCE_RASTER_PPD: Final[Constant] = Constant(
        value=10.0,
        uncertainty=0.0,
        unit="pixel/degree",
        source="Natural Earth / NASA Blue Marble 3600x1800 plate carree",
        description="Pixels per degree of the plate carree source rasters"
    )

    @staticmethod
    def south_pole_origins() -> dict:
        """Planar positions of the three projected south poles.

        Returns
        -------
        dict
            Mapping of 'left', 'bottom' and 'right' to ``(x, y)`` tuples in
            octant units (before scaling by ``OCTANT_SCALE``).

        Notes
        -----
        The southern continuation is drawn as three hexagonal lobes; each
        lobe is centred on its own copy of the south pole.
        """
        cos_30 = float(np.cos(PI_OVER_6))
        return {
            "left": (-1.5, cos_30),
            "bottom": (0.0, 2 * cos_30),
            "right": (1.5, cos_30),
        }
