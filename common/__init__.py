"""
Common utilities and infrastructure for the Butterfly Projection Engine.

This package provides foundational components used across all modules:
- Mathematical and map constants with provenance
- pint angle quantities
- Geometry primitives (points, spherical coordinates, complex numbers)
- Error taxonomy
- Logging and audit trail infrastructure
"""

from common.constants import ProjectionConstants
from common.units import Q_, angle_to_degrees, angle_to_radians
from common.types import (
    Point,
    LatLon,
    AngleUnit,
    ComplexNumber,
    complex_from_polar,
)
from common.errors import (
    ProjectionError,
    CoordinateRangeError,
    CellGeometryError,
    MapAreaLookupError,
    ProjectionConsistencyError,
)
from common.logging_config import get_logger, AuditLogger

__all__ = [
    "ProjectionConstants",
    "Q_",
    "angle_to_degrees",
    "angle_to_radians",
    "Point",
    "LatLon",
    "AngleUnit",
    "ComplexNumber",
    "complex_from_polar",
    "ProjectionError",
    "CoordinateRangeError",
    "CellGeometryError",
    "MapAreaLookupError",
    "ProjectionConsistencyError",
    "get_logger",
    "AuditLogger",
]
