"""
Trip Records

A trip is one haul event: a load of material cut at one location and
placed at another. Detailed blade geometry and measured cross-section
profiles are optional per trip.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Optional, Tuple
import numpy as np

from .projection import haversine_distance


@dataclass(frozen=True)
class GeoPoint:
    """Latitude/longitude pair in degrees."""
    lat: float
    lon: float


@dataclass(frozen=True)
class GeoSegment:
    """Explicit start/stop coordinates of a cut or fill pass."""
    start: GeoPoint
    stop: GeoPoint

    @property
    def length_m(self) -> float:
        """Great-circle length of the pass."""
        return haversine_distance(
            self.start.lat, self.start.lon, self.stop.lat, self.stop.lon
        )


@dataclass(frozen=True)
class Profile:
    """
    Measured cut/fill depth curve along a segment.

    Points are (distance_along_segment, depth) pairs, kept sorted by
    distance. Lookups interpolate linearly and clamp to the end depths
    outside the measured range.
    """
    points: Tuple[Tuple[float, float], ...]

    def __post_init__(self):
        if len(self.points) == 0:
            raise ValueError("Profile needs at least one (distance, depth) point")
        ordered = tuple(sorted(
            ((float(d), float(z)) for d, z in self.points),
            key=lambda p: p[0],
        ))
        object.__setattr__(self, "points", ordered)

    @classmethod
    def from_pairs(cls, pairs: Iterable[Tuple[float, float]]) -> Profile:
        return cls(tuple(pairs))

    @property
    def distances(self) -> np.ndarray:
        return np.array([p[0] for p in self.points])

    @property
    def depths(self) -> np.ndarray:
        return np.array([p[1] for p in self.points])

    def depth_at(self, distance: float) -> float:
        """Interpolated depth at a distance along the segment."""
        return float(np.interp(distance, self.distances, self.depths))


@dataclass(frozen=True)
class BinOperation:
    """
    Planned elevation change for one bin, addressed by lattice key.

    Attributes:
        bx: Bin column
        by: Bin row
        depth_m: Meters to cut or fill at the bin
    """
    bx: int
    by: int
    depth_m: float

    @property
    def key(self) -> Tuple[int, int]:
        return (self.bx, self.by)


@dataclass(frozen=True)
class TripGeometry:
    """
    Optional detailed blade geometry for a trip.

    Attributes:
        cut: Explicit cut pass endpoints
        fill: Explicit fill pass endpoints
        cut_length_m: Recorded cut length, used when cut is absent
        heading_deg: Compass heading (0 = north, clockwise)
        cut_profile: Measured cut cross-section
        fill_profile: Measured fill cross-section
        cut_bins: Planned per-bin cut depths; replace the cut footprint when set
        fill_bins: Planned per-bin fill depths; replace the fill footprint when set
    """
    cut: Optional[GeoSegment] = None
    fill: Optional[GeoSegment] = None
    cut_length_m: Optional[float] = None
    heading_deg: Optional[float] = None
    cut_profile: Optional[Profile] = None
    fill_profile: Optional[Profile] = None
    cut_bins: Tuple[BinOperation, ...] = ()
    fill_bins: Tuple[BinOperation, ...] = ()


@dataclass(frozen=True)
class TripRecord:
    """
    One haul event.

    Attributes:
        trip_index: Sort key and identity; trips replay in ascending order
        bcy: Bank cubic yards moved
        start: Load (cut) location
        end: Dump (fill) location
        geometry: Optional detailed geometry
    """
    trip_index: int
    bcy: float
    start: GeoPoint
    end: GeoPoint
    geometry: TripGeometry = field(default_factory=TripGeometry)

    @property
    def has_detailed_geometry(self) -> bool:
        """True when both explicit cut and fill passes are recorded."""
        return self.geometry.cut is not None and self.geometry.fill is not None

    @property
    def length_m(self) -> float:
        """Great-circle distance from start to end."""
        return haversine_distance(
            self.start.lat, self.start.lon, self.end.lat, self.end.lon
        )
