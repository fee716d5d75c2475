import typing
import numpy as np
import numpy.typing as npt

from rendering.core import config
from rendering.core.logging_config import get_logger

logger = get_logger(__name__)

class UniformGrid:
    def __init__(self, triangles: npt.NDArray[np.float64], density: float = config.GRID_DENSITY, max_resolution: int = config.GRID_MAX_RESOLUTION) -> None:
        """
        triangles: numpy array of shape (N, 3, 3) float64
                   N triangles, 3 vertices each, 3 coordinates (xyz)
        """
        self.count: int = len(triangles)
        self.cells: dict[int, npt.NDArray[np.int64]] = {}

        padding: float = 1.0e-4
        if self.count == 0:
            self.min_bounds: npt.NDArray[np.float64] = np.zeros(3, dtype=np.float64)
            self.max_bounds: npt.NDArray[np.float64] = np.zeros(3, dtype=np.float64)
            self.resolution: npt.NDArray[np.int64] = np.ones(3, dtype=np.int64)
            self.cell_size: npt.NDArray[np.float64] = np.ones(3, dtype=np.float64)
            return

        # 1. Bounding box of the whole mesh, padded so no triangle touches the outer faces
        triangle_min: npt.NDArray[np.float64] = np.min(triangles, axis=1)
        triangle_max: npt.NDArray[np.float64] = np.max(triangles, axis=1)
        self.min_bounds = np.min(triangle_min, axis=0) - padding
        self.max_bounds = np.max(triangle_max, axis=0) + padding
        extent: npt.NDArray[np.float64] = self.max_bounds - self.min_bounds

        # 2. Cells per axis proportional to the extent, about `density` triangles per cell
        volume: float = float(np.prod(extent))
        factor: float = float(np.cbrt(density * self.count / volume))
        self.resolution = np.clip(np.ceil(extent * factor), 1, max_resolution).astype(np.int64)
        self.cell_size = extent / self.resolution

        # 3. Bin every triangle into all the cells its bounding box overlaps
        slack: npt.NDArray[np.float64] = self.cell_size * 1.0e-6
        lo: npt.NDArray[np.int64] = self.cell_of(triangle_min - slack)
        hi: npt.NDArray[np.int64] = self.cell_of(triangle_max + slack)
        bins: dict[int, list[int]] = {}
        for index in range(self.count):
            for x in range(lo[index, 0], hi[index, 0] + 1):
                for y in range(lo[index, 1], hi[index, 1] + 1):
                    for z in range(lo[index, 2], hi[index, 2] + 1):
                        bins.setdefault(self.flat_index(x, y, z), []).append(index)
        self.cells = {key: np.array(value, dtype=np.int64) for key, value in bins.items()}

        logger.debug(f"grid: {self.count} triangles in {tuple(self.resolution.tolist())} cells, {len(self.cells)} occupied")
        pass

    def cell_of(self, points: npt.NDArray[np.float64]) -> npt.NDArray[np.int64]:
        cells: npt.NDArray[np.float64] = np.floor((points - self.min_bounds) / self.cell_size)
        return np.clip(cells, 0, self.resolution - 1).astype(np.int64)

    def flat_index(self, x: int, y: int, z: int) -> int:
        return int((x * self.resolution[1] + y) * self.resolution[2] + z)

    def traverse(self, origin: npt.NDArray[np.float64], direction: npt.NDArray[np.float64], min_t: float, max_t: float) -> typing.Iterator[tuple[npt.NDArray[np.int64], float]]:
        """
        Walks the cells pierced by the ray in front-to-back order (3D-DDA).
        Yields (triangle indices of an occupied cell, parameter t where the ray leaves that cell).
        """
        if self.count == 0:
            return

        # 1. Clip the ray against the grid box (slab test)
        with np.errstate(divide="ignore", invalid="ignore"):
            inverse_direction: npt.NDArray[np.float64] = 1.0 / direction
            t0: npt.NDArray[np.float64] = (self.min_bounds - origin) * inverse_direction
            t1: npt.NDArray[np.float64] = (self.max_bounds - origin) * inverse_direction
        parallel: npt.NDArray[np.bool_] = direction == 0.0
        if np.any(parallel & ((origin < self.min_bounds) | (origin > self.max_bounds))):
            return
        t_near: npt.NDArray[np.float64] = np.where(parallel, -np.inf, np.minimum(t0, t1))
        t_far: npt.NDArray[np.float64] = np.where(parallel, np.inf, np.maximum(t0, t1))
        t_enter: float = max(float(np.max(t_near)), min_t)
        t_exit: float = min(float(np.min(t_far)), max_t)
        if t_enter > t_exit:
            return

        # 2. Starting cell and per-axis crossing parameters
        cell: npt.NDArray[np.int64] = self.cell_of((origin + direction * t_enter)[np.newaxis, :])[0]
        step: npt.NDArray[np.int64] = np.sign(direction).astype(np.int64)
        with np.errstate(divide="ignore", invalid="ignore"):
            next_boundary: npt.NDArray[np.float64] = self.min_bounds + (cell + (step > 0)) * self.cell_size
            t_max: npt.NDArray[np.float64] = np.where(parallel, np.inf, (next_boundary - origin) * inverse_direction)
            t_delta: npt.NDArray[np.float64] = np.where(parallel, np.inf, self.cell_size * np.abs(inverse_direction))

        # 3. March
        while True:
            t_next: float = float(np.min(t_max))
            triangles: npt.NDArray[np.int64] | None = self.cells.get(self.flat_index(cell[0], cell[1], cell[2]))
            if triangles is not None:
                yield triangles, min(t_next, t_exit)
            if t_next > t_exit:
                return
            axis: int = int(np.argmin(t_max))
            cell[axis] += step[axis]
            if cell[axis] < 0 or cell[axis] >= self.resolution[axis]:
                return
            t_max[axis] += t_delta[axis]
