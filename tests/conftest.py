"""
conftest.py — Shared pytest fixtures for the Butterfly projection test suite
"""

import uuid

import pytest
import numpy as np

import sys, os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from common.logging_config import AuditLogger
from common.types import LatLon, Point
from geospatial.inverse_mapping import GridCell
from geospatial.projections import forward_project
from geospatial.rasterization import MapView


@pytest.fixture
def view():
    """Reference view at one pixel per map unit."""
    return MapView()


@pytest.fixture
def small_view():
    """Half-resolution view for fast sample-grid tests."""
    return MapView(pixels_per_unit=0.5)


@pytest.fixture
def audit():
    """The process-wide audit logger."""
    return AuditLogger()


@pytest.fixture
def run_id():
    """Unique audit run id (the audit logger is a singleton)."""
    return f"test-{uuid.uuid4().hex[:8]}"


@pytest.fixture
def unit_square_cell():
    """Axis-aligned unit square cell with SW corner at (10°, 20°)."""
    corners = [Point(0.0, 0.0), Point(1.0, 0.0), Point(1.0, 1.0), Point(0.0, 1.0)]
    return GridCell(LatLon(10.0, 20.0), corners)


@pytest.fixture
def canvas_cell():
    """Factory for a cell projected through a map area onto a view's canvas."""
    def _make(area_index, lat, lon, view):
        corners = [
            view.to_canvas(forward_project(LatLon(lat + d_lat, lon + d_lon), area_index))
            for d_lat, d_lon in ((0, 0), (0, 1), (1, 1), (1, 0))
        ]
        return GridCell(LatLon(lat, lon), corners)
    return _make


def bilinear_point(corners, u, v):
    """Bilinear image of relative coordinate (u, v) in a cell."""
    sw, se, ne, nw = (np.array(c.as_tuple()) for c in corners)
    south = sw + (se - sw) * u
    north = nw + (ne - nw) * u
    x, y = south + (north - south) * v
    return Point(float(x), float(y))
