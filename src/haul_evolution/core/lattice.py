"""
Lattice Module

Connectivity structure over the simulation-eligible bins: integer bounds,
O(1) bin lookup by lattice coordinate, and triangulated faces built over
2x2 neighborhoods that tolerate missing corners.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple, TYPE_CHECKING
import numpy as np
from scipy.spatial import KDTree

from .bins import Bin, BinGrid, BinKey
from .projection import Projection
from .validation import EmptyInputError, validate_bin_size

if TYPE_CHECKING:
    from .trips import TripRecord

Face = Tuple[int, int, int]


def build_faces(index_by_key: Dict[BinKey, int]) -> List[Face]:
    """
    Triangulate a (possibly sparse) bin lattice.

    For each unit cell with corners 00, 10, 01, 11 emit {00, 10, 01} when
    those three exist and {10, 11, 01} when those three exist. Faces are
    0-based indices into the bin list.
    """
    if not index_by_key:
        return []

    keys = np.array(list(index_by_key.keys()))
    min_bx, min_by = keys.min(axis=0)
    max_bx, max_by = keys.max(axis=0)

    faces: List[Face] = []
    for bx in range(int(min_bx), int(max_bx)):
        for by in range(int(min_by), int(max_by)):
            i00 = index_by_key.get((bx, by))
            i10 = index_by_key.get((bx + 1, by))
            i01 = index_by_key.get((bx, by + 1))
            i11 = index_by_key.get((bx + 1, by + 1))

            if i00 is not None and i10 is not None and i01 is not None:
                faces.append((i00, i10, i01))
            if i10 is not None and i11 is not None and i01 is not None:
                faces.append((i10, i11, i01))

    return faces


@dataclass(frozen=True)
class LatticeSnapshot:
    """
    Read-only view of the lattice state handed to output consumers.

    All arrays are marked non-writeable.
    """
    bx: np.ndarray
    by: np.ndarray
    x: np.ndarray
    y: np.ndarray
    z_cur: np.ndarray
    z_prop: np.ndarray
    faces: np.ndarray
    bounds: Tuple[int, int, int, int]  # (min_bx, max_bx, min_by, max_by)
    bin_size: float
    lat0: float
    lon0: float
    trip: Optional['TripRecord'] = None

    def __post_init__(self):
        for name in ("bx", "by", "x", "y", "z_cur", "z_prop", "faces"):
            getattr(self, name).flags.writeable = False

    @property
    def num_bins(self) -> int:
        return len(self.z_cur)

    @property
    def shape(self) -> Tuple[int, int]:
        """Raster dimensions (rows, cols) of the integer bounding box."""
        min_bx, max_bx, min_by, max_by = self.bounds
        return (max_by - min_by + 1, max_bx - min_bx + 1)

    def elevation_grid(self, which: str = "current", nodata: float = -9999.0) -> np.ndarray:
        """
        Rasterise elevations onto the lattice bounding box.

        Args:
            which: "current" for z_cur, "target" for z_prop
            nodata: Value for cells without an eligible bin

        Returns:
            2D array [rows = by, cols = bx]
        """
        if which == "current":
            values = self.z_cur
        elif which == "target":
            values = self.z_prop
        else:
            raise ValueError(f"Unknown elevation kind: {which}")

        min_bx, _, min_by, _ = self.bounds
        grid = np.full(self.shape, nodata)
        grid[self.by - min_by, self.bx - min_bx] = values
        return grid


@dataclass
class Lattice:
    """
    Simulation-eligible bins plus their triangulated faces.

    Attributes:
        bins: Eligible bins (working copies, mutated by the evolution engine)
        faces: Triangles as 0-based bin indices; static for a run
        index_by_key: (bx, by) -> index into bins
        bin_size: Bin edge length in meters
        projection: Projection anchor shared by all coordinate conversions
    """
    bins: List[Bin]
    faces: List[Face]
    index_by_key: Dict[BinKey, int]
    bin_size: float
    projection: Projection

    # Cached derived data
    _xy: Optional[np.ndarray] = field(default=None, repr=False)
    _tree: Optional[KDTree] = field(default=None, repr=False)
    _bounds: Optional[Tuple[int, int, int, int]] = field(default=None, repr=False)

    @classmethod
    def build(
        cls,
        bins: Sequence[Bin],
        bin_size: float,
        projection: Projection,
    ) -> Lattice:
        """
        Build the lattice over eligible bins.

        Raises:
            EmptyInputError: If no bins are given
        """
        bin_size = validate_bin_size(bin_size)
        if not bins:
            raise EmptyInputError(
                "No bins with both existing and proposed elevations. "
                "Check that the sample file carries both elevation kinds "
                "over the same area."
            )

        bins = list(bins)
        for b in bins:
            if b.z_cur is None or b.z_prop is None:
                raise ValueError(
                    f"Bin {b.key} is not simulation-eligible "
                    "(needs both existing and proposed elevations)"
                )

        index_by_key = {b.key: i for i, b in enumerate(bins)}
        return cls(
            bins=bins,
            faces=build_faces(index_by_key),
            index_by_key=index_by_key,
            bin_size=bin_size,
            projection=projection,
        )

    @classmethod
    def from_grid(cls, grid: BinGrid) -> Lattice:
        """Filter a raw grid to its eligible bins and build the lattice."""
        return cls.build(grid.eligible_bins(), grid.bin_size, grid.projection)

    def __len__(self) -> int:
        return len(self.bins)

    @property
    def bin_area(self) -> float:
        return self.bin_size * self.bin_size

    @property
    def lat0(self) -> float:
        return self.projection.lat0

    @property
    def lon0(self) -> float:
        return self.projection.lon0

    @property
    def bounds(self) -> Tuple[int, int, int, int]:
        """Integer lattice bounds (min_bx, max_bx, min_by, max_by)."""
        if self._bounds is None:
            keys = np.array(list(self.index_by_key.keys()))
            min_bx, min_by = keys.min(axis=0)
            max_bx, max_by = keys.max(axis=0)
            self._bounds = (int(min_bx), int(max_bx), int(min_by), int(max_by))
        return self._bounds

    @property
    def xy(self) -> np.ndarray:
        """Nx2 array of bin positions (positions are static for a run)."""
        if self._xy is None:
            self._xy = np.array([(b.x, b.y) for b in self.bins], dtype=np.float64)
        return self._xy

    def get(self, bx: int, by: int) -> Optional[Bin]:
        idx = self.index_by_key.get((bx, by))
        return None if idx is None else self.bins[idx]

    def key_for(self, x: float, y: float) -> BinKey:
        return (
            int(np.floor(x / self.bin_size)),
            int(np.floor(y / self.bin_size)),
        )

    def nearest_index(self, x: float, y: float) -> int:
        """Index of the bin whose position is nearest to (x, y)."""
        if self._tree is None:
            self._tree = KDTree(self.xy)
        _, idx = self._tree.query([x, y])
        return int(idx)

    def locate(self, x: float, y: float) -> int:
        """Index of the bin containing (x, y), else of the nearest bin."""
        idx = self.index_by_key.get(self.key_for(x, y))
        if idx is not None:
            return idx
        return self.nearest_index(x, y)

    def locate_geographic(self, lat: float, lon: float) -> int:
        x, y = self.projection.to_local(lat, lon)
        return self.locate(x, y)

    def snapshot(self, trip: Optional['TripRecord'] = None) -> LatticeSnapshot:
        """Copy the current state into a read-only snapshot."""
        faces = np.array(self.faces, dtype=np.int64).reshape(-1, 3)
        return LatticeSnapshot(
            bx=np.array([b.bx for b in self.bins], dtype=np.int64),
            by=np.array([b.by for b in self.bins], dtype=np.int64),
            x=self.xy[:, 0].copy(),
            y=self.xy[:, 1].copy(),
            z_cur=np.array([b.z_cur for b in self.bins], dtype=np.float64),
            z_prop=np.array([b.z_prop for b in self.bins], dtype=np.float64),
            faces=faces,
            bounds=self.bounds,
            bin_size=self.bin_size,
            lat0=self.lat0,
            lon0=self.lon0,
            trip=trip,
        )

    def statistics(self) -> dict:
        """Basic statistics for the current surface."""
        z_cur = np.array([b.z_cur for b in self.bins])
        z_prop = np.array([b.z_prop for b in self.bins])
        min_bx, max_bx, min_by, max_by = self.bounds
        return {
            "bins": len(self.bins),
            "faces": len(self.faces),
            "min_bx": min_bx,
            "max_bx": max_bx,
            "min_by": min_by,
            "max_by": max_by,
            "min_elevation": float(z_cur.min()),
            "max_elevation": float(z_cur.max()),
            "mean_elevation": float(z_cur.mean()),
            "mean_offset_from_target": float(np.mean(z_cur - z_prop)),
        }
