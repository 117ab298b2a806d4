"""
Bin Grid Module

Assigns geo-referenced elevation samples to a uniform grid of square bins
and aggregates per-bin elevation statistics.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Dict, Iterator, List, Optional, Sequence, Tuple
import numpy as np

from .projection import Projection
from .validation import validate_bin_size, validate_non_empty

BinKey = Tuple[int, int]


@dataclass(frozen=True)
class Sample:
    """
    A single geo-referenced observation.

    Attributes:
        lat: Latitude in degrees
        lon: Longitude in degrees
        z_exist: Existing ground elevation, if measured
        z_prop: Proposed (design) elevation, if specified
    """
    lat: float
    lon: float
    z_exist: Optional[float] = None
    z_prop: Optional[float] = None


@dataclass
class Bin:
    """
    Unit cell of the simulation grid.

    Attributes:
        bx, by: Integer lattice coordinate
        samples: Samples that fell into this bin
        lat_center, lon_center: Mean sample position
        x, y: Planar position of the mean sample position (meters)
        z_exist_mean: Mean existing elevation, None if no sample carried one
        z_prop_mean: Mean proposed elevation, None if no sample carried one
        z_cur: Live simulated elevation (set on simulation-eligible copies)
        z_prop: Target elevation clamp (set on simulation-eligible copies)
    """
    bx: int
    by: int
    samples: Tuple[Sample, ...] = ()
    lat_center: float = 0.0
    lon_center: float = 0.0
    x: float = 0.0
    y: float = 0.0
    z_exist_mean: Optional[float] = None
    z_prop_mean: Optional[float] = None
    z_cur: Optional[float] = None
    z_prop: Optional[float] = None

    @property
    def key(self) -> BinKey:
        return (self.bx, self.by)

    @property
    def is_eligible(self) -> bool:
        """A bin takes part in simulation only with both elevation means."""
        return self.z_exist_mean is not None and self.z_prop_mean is not None

    def working_copy(self) -> Bin:
        """Copy with z_cur/z_prop initialised from the load-time means."""
        return replace(self, z_cur=self.z_exist_mean, z_prop=self.z_prop_mean)


def _mean_or_none(values: List[float]) -> Optional[float]:
    if not values:
        return None
    return float(np.mean(values))


@dataclass
class BinGrid:
    """
    Raw bin grid produced from samples.

    Holds every populated bin, including ones lacking an existing or a
    proposed elevation. Filtering to the simulation-eligible set returns
    copies and never mutates this grid.
    """
    bins: Dict[BinKey, Bin]
    bin_size: float
    projection: Projection

    def __len__(self) -> int:
        return len(self.bins)

    def __iter__(self) -> Iterator[Bin]:
        return iter(self.bins.values())

    def __contains__(self, key: BinKey) -> bool:
        return key in self.bins

    def get(self, bx: int, by: int) -> Optional[Bin]:
        return self.bins.get((bx, by))

    def key_for(self, x: float, y: float) -> BinKey:
        """Lattice coordinate containing planar point (x, y)."""
        return (
            int(np.floor(x / self.bin_size)),
            int(np.floor(y / self.bin_size)),
        )

    def eligible_bins(self) -> List[Bin]:
        """Working copies of the bins that have both elevation means, sorted by key."""
        return [
            self.bins[key].working_copy()
            for key in sorted(self.bins)
            if self.bins[key].is_eligible
        ]

    def statistics(self) -> dict:
        """Counts of populated bins by elevation coverage."""
        bins = list(self.bins.values())
        return {
            "total_bins": len(bins),
            "eligible_bins": sum(1 for b in bins if b.is_eligible),
            "existing_only": sum(
                1 for b in bins if b.z_exist_mean is not None and b.z_prop_mean is None
            ),
            "proposed_only": sum(
                1 for b in bins if b.z_prop_mean is not None and b.z_exist_mean is None
            ),
            "samples": sum(len(b.samples) for b in bins),
        }

    @classmethod
    def from_samples(
        cls,
        samples: Sequence[Sample],
        bin_size: float = 0.6096,
        origin: Optional[Tuple[float, float]] = None,
    ) -> BinGrid:
        """
        Bin samples onto a uniform square lattice.

        Args:
            samples: Input samples (duplicates accumulate, no dedup)
            bin_size: Bin edge length in meters
            origin: Optional (lat0, lon0) projection anchor; defaults to the
                mean of all sample coordinates

        Returns:
            BinGrid keyed by (bx, by) with bx = floor(x / bin_size)

        Raises:
            EmptyInputError: If samples is empty
            BinSizeError: If bin_size is not positive
        """
        validate_non_empty(samples, "elevation samples")
        bin_size = validate_bin_size(bin_size)

        projection = Projection(*origin) if origin else Projection.from_samples(samples)

        lat = np.array([s.lat for s in samples], dtype=np.float64)
        lon = np.array([s.lon for s in samples], dtype=np.float64)
        x, y = projection.to_local(lat, lon)

        bx_all = np.floor(np.asarray(x) / bin_size).astype(np.int64)
        by_all = np.floor(np.asarray(y) / bin_size).astype(np.int64)

        # Group sample indices by cell
        members: Dict[BinKey, List[int]] = {}
        for i, key in enumerate(zip(bx_all.tolist(), by_all.tolist())):
            members.setdefault(key, []).append(i)

        bins: Dict[BinKey, Bin] = {}
        for (bx, by), idx in members.items():
            cell = tuple(samples[i] for i in idx)

            lat_center = float(np.mean(lat[idx]))
            lon_center = float(np.mean(lon[idx]))
            cx, cy = projection.to_local(lat_center, lon_center)

            bins[(bx, by)] = Bin(
                bx=bx,
                by=by,
                samples=cell,
                lat_center=lat_center,
                lon_center=lon_center,
                x=cx,
                y=cy,
                z_exist_mean=_mean_or_none(
                    [s.z_exist for s in cell if s.z_exist is not None]
                ),
                z_prop_mean=_mean_or_none(
                    [s.z_prop for s in cell if s.z_prop is not None]
                ),
            )

        return cls(bins=bins, bin_size=bin_size, projection=projection)
