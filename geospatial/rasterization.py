"""
Raster Resampling onto the Butterfly Map.

A plate-carrée source raster is redrawn in the Butterfly projection by
walking every 1°×1° grid cell of every map area, projecting its corners
onto the output canvas and inverting each canvas pixel inside the cell
back to a spherical coordinate. The coordinate then selects the source
pixel to copy.

This module produces the per-pixel coordinate grid (``SampleGrid``);
reading image files and writing pixel values are left to the caller.

Canvas Placement
----------------
Map positions are tilted by the view's tilt angle, moved by the view
origin (so the whole map has non-negative coordinates) and scaled by the
canvas resolution:

    canvas = (rotate(p, tilt) + origin) · pixels_per_unit
"""

from dataclasses import asdict, dataclass, field
from typing import Dict, Iterator, Optional, Sequence, Tuple
import numpy as np
from numpy.typing import NDArray

from common.constants import DEGS_IN_CIRCLE, ProjectionConstants
from common.errors import CellGeometryError
from common.logging_config import AuditLogger, get_logger
from common.types import LatLon, Point
from geospatial.inverse_mapping import (
    DEFAULT_INVERSION_CONFIG,
    GridCell,
    InversionConfig,
)
from geospatial.projections import MAP_AREAS, forward_project

logger = get_logger(__name__)

SOURCE_RASTER_PPD = ProjectionConstants.SOURCE_RASTER_PPD.value


@dataclass(frozen=True)
class MapView:
    """Placement of the map on an output canvas.

    Attributes
    ----------
    origin : Point
        Offset added to tilted map positions, in map units.
    width : float
        View width in map units.
    height : float
        View height in map units.
    tilt_deg : float
        Rotation applied to the whole map, in degrees.
    pixels_per_unit : float
        Canvas resolution (pixels per map unit).
    """
    origin: Point = field(default_factory=lambda: Point(
        ProjectionConstants.MAP_VIEW_ORIGIN_X.value,
        ProjectionConstants.MAP_VIEW_ORIGIN_Y.value
    ))
    width: float = ProjectionConstants.MAP_WIDTH.value
    height: float = ProjectionConstants.MAP_HEIGHT.value
    tilt_deg: float = ProjectionConstants.MAP_TILT_DEG.value
    pixels_per_unit: float = 1.0

    def __post_init__(self):
        if self.pixels_per_unit <= 0:
            raise ValueError(f"pixels_per_unit must be positive, got {self.pixels_per_unit}")

    @classmethod
    def for_canvas_width(cls, width_px: int, **kwargs) -> 'MapView':
        """View whose canvas is ``width_px`` pixels wide."""
        width = kwargs.get("width", ProjectionConstants.MAP_WIDTH.value)
        return cls(pixels_per_unit=width_px / width, **kwargs)

    @property
    def tilt_rad(self) -> float:
        return float(np.radians(self.tilt_deg))

    @property
    def canvas_width(self) -> int:
        return int(round(self.width * self.pixels_per_unit))

    @property
    def canvas_height(self) -> int:
        return int(round(self.height * self.pixels_per_unit))

    def to_canvas(self, point: Point) -> Point:
        """Map position (map units) to canvas pixels."""
        return (
            point
            .rotate(self.tilt_rad)
            .translate(self.origin)
            .scale(self.pixels_per_unit)
        )

    def to_dict(self) -> Dict[str, float]:
        params = asdict(self)
        params["origin"] = self.origin.as_tuple()
        return params


def iter_area_cells(
    area_index: int,
    view: MapView,
    config: InversionConfig = DEFAULT_INVERSION_CONFIG
) -> Iterator[GridCell]:
    """Yield the 1°×1° canvas cells covering one map area.

    Parameters
    ----------
    area_index : int
        Index into ``MAP_AREAS``.
    view : MapView
        Canvas placement.
    config : InversionConfig
        Tolerances handed to each cell.

    Yields
    ------
    GridCell
        Cells in row order from the area's SW corner. Cells cut by the
        area's fractional west or east edge carry a narrower mask.

    Notes
    -----
    Areas that wrap through the antimeridian iterate longitudes past 180°
    so the cell sequence stays contiguous.
    """
    area = MAP_AREAS[area_index]
    sw, ne = area.sw_corner, area.ne_corner
    lon_end = area.lon_span_end

    start_lon = int(np.floor(sw.lon))
    end_lon = int(np.ceil(lon_end))

    # Corners are shared by up to four cells
    projected: Dict[Tuple[float, float], Point] = {}

    def corner(lat: float, lon: float) -> Point:
        key = (lat, lon)
        if key not in projected:
            projected[key] = view.to_canvas(forward_project(LatLon(lat, lon), area_index))
        return projected[key]

    for lat in range(int(sw.lat), int(ne.lat)):
        for lon in range(start_lon, end_lon):
            lon_w = max(float(lon), sw.lon)
            lon_e = min(float(lon + 1), lon_end)
            cell_corners = [
                corner(lat, lon),
                corner(lat, lon + 1),
                corner(lat + 1, lon + 1),
                corner(lat + 1, lon),
            ]
            if lon_w == lon and lon_e == lon + 1:
                mask_corners = cell_corners
            else:
                mask_corners = [
                    corner(lat, lon_w),
                    corner(lat, lon_e),
                    corner(lat + 1, lon_e),
                    corner(lat + 1, lon_w),
                ]
            yield GridCell(LatLon(lat, lon), cell_corners, mask_corners, config)


def iter_mask_pixels(cell: GridCell) -> Iterator[Tuple[int, int]]:
    """Yield the integer pixels inside a cell's mask."""
    min_x, max_x, min_y, max_y = cell.pixel_bounds()
    for x in range(min_x, max_x + 1):
        for y in range(min_y, max_y + 1):
            if cell.is_in_mask(Point(float(x), float(y))):
                yield x, y


def iter_cell_samples(cell: GridCell) -> Iterator[Tuple[int, int, LatLon]]:
    """Yield ``(x, y, coord)`` for every integer pixel inside a cell's mask.

    Raises
    ------
    CellGeometryError
        If a pixel inside the mask cannot be inverted.
    """
    for x, y in iter_mask_pixels(cell):
        yield x, y, cell.inverse(Point(float(x), float(y)))


def source_pixel_offset(
    coord: LatLon,
    pixels_per_degree: float = SOURCE_RASTER_PPD
) -> Tuple[int, int]:
    """Pixel of a plate-carrée source raster holding a coordinate.

    Parameters
    ----------
    coord : LatLon
        Spherical coordinate (any unit).
    pixels_per_degree : float
        Source raster resolution; the raster spans 360°×180°.

    Returns
    -------
    tuple of int
        (column, row), counted from the raster's top-left corner at
        (90°N, 180°W). The south pole is clamped onto the last row.

    Examples
    --------
    >>> source_pixel_offset(LatLon(0.0, 0.0))
    (1800, 900)
    """
    coord = coord.to_degrees()
    column = int(np.floor(pixels_per_degree * ((coord.lon + DEGS_IN_CIRCLE / 2) % DEGS_IN_CIRCLE)))
    row = int(np.floor(pixels_per_degree * (DEGS_IN_CIRCLE / 4 - coord.lat)))
    last_row = int(round(pixels_per_degree * DEGS_IN_CIRCLE / 2)) - 1
    return column, min(row, last_row)


@dataclass
class SampleGrid:
    """Spherical coordinate sampled by every canvas pixel.

    Attributes
    ----------
    lat : ndarray
        (H, W) latitudes in degrees, NaN where no area covers the pixel.
    lon : ndarray
        (H, W) longitudes in degrees, NaN where uncovered. Values past
        180° occur in antimeridian areas.
    area : ndarray
        (H, W) index of the map area drawn at each pixel, -1 if uncovered.
    """
    lat: NDArray[np.float64]
    lon: NDArray[np.float64]
    area: NDArray[np.int64]

    @classmethod
    def empty(cls, height: int, width: int) -> 'SampleGrid':
        return cls(
            lat=np.full((height, width), np.nan),
            lon=np.full((height, width), np.nan),
            area=np.full((height, width), -1, dtype=np.int64)
        )

    @property
    def shape(self) -> Tuple[int, int]:
        return self.area.shape

    @property
    def covered(self) -> NDArray[np.bool_]:
        return self.area >= 0

    @property
    def coverage(self) -> float:
        """Fraction of canvas pixels covered by the map."""
        return float(np.mean(self.covered))

    def source_indices(
        self,
        pixels_per_degree: float = SOURCE_RASTER_PPD
    ) -> Tuple[NDArray[np.int64], NDArray[np.int64]]:
        """Vectorized ``source_pixel_offset`` over the grid.

        Returns
        -------
        tuple of ndarray
            (columns, rows), -1 where the pixel is uncovered.
        """
        covered = self.covered
        columns = np.full(self.shape, -1, dtype=np.int64)
        rows = np.full(self.shape, -1, dtype=np.int64)
        half_circle = DEGS_IN_CIRCLE / 2
        last_row = int(round(pixels_per_degree * half_circle)) - 1

        columns[covered] = np.floor(
            pixels_per_degree * np.mod(self.lon[covered] + half_circle, DEGS_IN_CIRCLE)
        ).astype(np.int64)
        rows[covered] = np.minimum(
            np.floor(pixels_per_degree * (DEGS_IN_CIRCLE / 4 - self.lat[covered])),
            last_row
        ).astype(np.int64)
        return columns, rows


def build_sample_grid(
    view: MapView,
    area_indices: Optional[Sequence[int]] = None,
    audit: Optional[AuditLogger] = None,
    config: InversionConfig = DEFAULT_INVERSION_CONFIG
) -> SampleGrid:
    """Invert every canvas pixel covered by the selected map areas.

    Parameters
    ----------
    view : MapView
        Canvas placement and resolution.
    area_indices : sequence of int, optional
        Areas to draw, in drawing order. Defaults to all twelve. Where
        areas overlap, later areas overwrite earlier ones.
    audit : AuditLogger, optional
        Receives one record per cell that failed to invert.
    config : InversionConfig
        Inversion tolerances.

    Returns
    -------
    SampleGrid
        Coordinates sampled at each pixel.
    """
    if area_indices is None:
        area_indices = range(len(MAP_AREAS))

    height, width = view.canvas_height, view.canvas_width
    grid = SampleGrid.empty(height, width)
    failed_cells = 0

    for area_index in area_indices:
        logger.debug(f"Sampling map area {area_index}")
        for cell in iter_area_cells(area_index, view, config):
            samples = []
            try:
                for x, y in iter_mask_pixels(cell):
                    if 0 <= x < width and 0 <= y < height:
                        samples.append((x, y, cell.inverse(Point(float(x), float(y)))))
            except CellGeometryError as e:
                failed_cells += 1
                logger.warning(f"Skipping {cell!r} in area {area_index}: {e}")
                if audit is not None:
                    audit.log_inversion_failure(
                        cell_sw=cell.sw_corner.as_tuple(),
                        pixel=(float(x), float(y)),
                        reason=str(e),
                        context={"area": area_index}
                    )
                continue

            # Later areas overwrite earlier ones on shared edges
            for x, y, coord in samples:
                grid.lat[y, x] = coord.lat
                grid.lon[y, x] = coord.lon
                grid.area[y, x] = area_index

    logger.info(
        f"Sampled {int(np.sum(grid.covered))} of {width * height} pixels "
        f"({failed_cells} cells skipped)"
    )
    return grid
