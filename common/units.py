"""
Angle Units for the Projection Engine.

This module provides a centralized unit system using the `pint` library so
that angles entering the engine from collaborators carry their unit. The
engine itself works on plain floats in degrees or radians; this layer is
the single place where tagged quantities are turned into those floats.

Example Usage
-------------
>>> from common.units import Q_, angle_to_degrees
>>> round(angle_to_degrees(Q_(0.5, 'turn')), 9)
180.0
"""

from typing import Union
import warnings

import pint

# Shared registry; quantities from different registries cannot be mixed
ureg = pint.UnitRegistry()

# Convenience alias for creating quantities
Q_ = ureg.Quantity

AngleLike = Union[float, int, pint.Quantity]


def _angle_to(value: AngleLike, unit: str, name: str) -> float:
    if isinstance(value, pint.Quantity):
        try:
            return float(value.to(unit).magnitude)
        except pint.DimensionalityError as e:
            raise ValueError(
                f"'{name}' must be an angle, got units of {value.units}"
            ) from e
    warnings.warn(
        f"Bare number {value} provided for '{name}' without units. "
        f"Assuming {unit}. Consider using explicit units.",
        UserWarning,
        stacklevel=3
    )
    return float(value)


def angle_to_degrees(value: AngleLike, name: str = "angle") -> float:
    """Convert an angle quantity to a float in degrees.

    Parameters
    ----------
    value : float or pint.Quantity
        The angle. Bare numbers are assumed to be degrees.
    name : str
        Name used in warnings and error messages.

    Returns
    -------
    float
        The angle in degrees.

    Raises
    ------
    ValueError
        If the quantity is not dimensionless (i.e. not an angle).
    """
    return _angle_to(value, "degree", name)


def angle_to_radians(value: AngleLike, name: str = "angle") -> float:
    """Convert an angle quantity to a float in radians.

    Bare numbers are assumed to be radians.
    """
    return _angle_to(value, "radian", name)

