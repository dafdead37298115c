"""
Validation Framework for the Butterfly Projection Engine.

This module provides geometric consistency checks of the projection.
"""

from validation.projection_checks import (
    ValidationResult,
    ProjectionConsistencyChecker,
)

__all__ = [
    "ValidationResult",
    "ProjectionConsistencyChecker",
]
