"""
Geospatial Module for the Butterfly Projection Engine.

All sphere-to-plane calculations originate from this module. Callers
outside it work only with LatLon and Point values.

This module provides:
- Oblique spherical frames
- The conformal Cahill octant projection
- Butterfly map-area tiling and forward projection with distortion tracking
- Inverse mapping of projected grid cells
- Raster resampling support
"""

from geospatial.coordinate_models import (
    Pole,
    NORTH_POLE,
    oblique_coordinate,
    wrap_longitude,
)

from geospatial.cahill_conformal import (
    apply_conformal_correction,
    project_octant,
)

from geospatial.projections import (
    MapArea,
    MAP_AREAS,
    find_map_area,
    forward_project,
    project_batch,
    ProjectionAdapter,
    CahillConcialdiProjection,
    compute_tissot_indicatrix,
)

from geospatial.inverse_mapping import (
    InversionConfig,
    GridCell,
    inverse_bilinear,
    inverse_polar,
    point_in_polygon,
)

from geospatial.rasterization import (
    MapView,
    SampleGrid,
    iter_area_cells,
    iter_cell_samples,
    source_pixel_offset,
    build_sample_grid,
)

__all__ = [
    # Coordinate models
    "Pole",
    "NORTH_POLE",
    "oblique_coordinate",
    "wrap_longitude",
    # Octant projection
    "apply_conformal_correction",
    "project_octant",
    # Map tiling and projections
    "MapArea",
    "MAP_AREAS",
    "find_map_area",
    "forward_project",
    "project_batch",
    "ProjectionAdapter",
    "CahillConcialdiProjection",
    "compute_tissot_indicatrix",
    # Inverse mapping
    "InversionConfig",
    "GridCell",
    "inverse_bilinear",
    "inverse_polar",
    "point_in_polygon",
    # Rasterization
    "MapView",
    "SampleGrid",
    "iter_area_cells",
    "iter_cell_samples",
    "source_pixel_offset",
    "build_sample_grid",
]
