"""
Exception Types for the Projection Engine.

All conditions raised by the engine are local and recoverable by the
caller: computations are deterministic, so retrying with the same input
reproduces the same error.
"""


class ProjectionError(Exception):
    """Base class for all projection engine errors."""


class CoordinateRangeError(ProjectionError, ValueError):
    """A spherical coordinate violates its precondition.

    Raised for non-finite values and for latitudes outside [-90°, 90°]
    (or [-π/2, π/2] for radian coordinates).
    """


class CellGeometryError(ProjectionError, ValueError):
    """The inverse mapping of a grid cell has no unique solution.

    Raised when the bilinear inversion finds no root inside the unit
    square, finds two distinct ones, or when the cell is degenerate.
    Silently clamping instead would hide malformed cell geometry upstream.
    """


class MapAreaLookupError(ProjectionError, LookupError):
    """No map area could be selected for a coordinate.

    Either the explicit area index is invalid or no area's bounding box
    contains the coordinate.
    """


class ProjectionConsistencyError(ProjectionError):
    """A consistency check failed while running in strict mode."""
