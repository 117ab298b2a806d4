"""
Footprint Module

Determines which bins a trip's cut and fill operations cover.

Two modes:
    - Strip: a fixed-width strip of bins centered on the bin at a location,
      laid out along a static reference direction.
    - Blade: rotated rectangles of equipment width centered on the cut and
      fill segments, taken from explicit trip geometry or derived from the
      trip's start/end points.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional, Tuple, TYPE_CHECKING
import numpy as np

from .config import EquipmentConfig, EvolutionMode

if TYPE_CHECKING:
    from shapely.geometry import Polygon
    from .lattice import Lattice
    from .trips import GeoSegment, TripRecord


@dataclass(frozen=True)
class Segment:
    """Planar line segment (meters) from (x0, y0) to (x1, y1)."""
    x0: float
    y0: float
    x1: float
    y1: float

    @property
    def length(self) -> float:
        return math.hypot(self.x1 - self.x0, self.y1 - self.y0)

    def is_degenerate(self, epsilon: float = 1e-6) -> bool:
        return self.length < epsilon

    @property
    def unit(self) -> Tuple[float, float]:
        """Unit vector along the segment; (0, 0) for a zero-length segment."""
        length = self.length
        if length == 0.0:
            return (0.0, 0.0)
        return ((self.x1 - self.x0) / length, (self.y1 - self.y0) / length)


@dataclass(frozen=True)
class FootprintHit:
    """
    A bin covered by a footprint.

    Attributes:
        index: Bin index in the lattice
        s: Distance along the segment from its start (m)
        t: Signed lateral offset from the segment axis (m)
    """
    index: int
    s: float
    t: float


@dataclass(frozen=True)
class Footprint:
    """Bins covered by one cut or fill operation."""
    segment: Segment
    width: float
    hits: Tuple[FootprintHit, ...]
    degenerate: bool = False

    def __len__(self) -> int:
        return len(self.hits)

    @property
    def is_empty(self) -> bool:
        return len(self.hits) == 0

    @property
    def indices(self) -> Tuple[int, ...]:
        return tuple(h.index for h in self.hits)

    @property
    def polygon(self) -> Optional['Polygon']:
        """Rotated rectangle as a shapely Polygon (None when degenerate)."""
        if self.degenerate or self.segment.length == 0.0:
            return None

        from shapely.geometry import LineString

        axis = LineString([
            (self.segment.x0, self.segment.y0),
            (self.segment.x1, self.segment.y1),
        ])
        return axis.buffer(self.width / 2, cap_style=2)


def _heading_unit(heading_deg: float) -> Tuple[float, float]:
    """Compass heading (0 = north, clockwise) to a planar unit vector."""
    rad = math.radians(heading_deg)
    return (math.sin(rad), math.cos(rad))


class FootprintResolver:
    """
    Resolves trip footprints against a lattice.

    Resolution is read-only: resolving the same trip twice against an
    unchanged lattice yields identical hits.
    """

    def __init__(self, lattice: 'Lattice', config: Optional[EquipmentConfig] = None):
        self.lattice = lattice
        self.config = config or EquipmentConfig(bin_size=lattice.bin_size)

    # ------------------------------------------------------------------
    # Segments
    # ------------------------------------------------------------------

    def _local(self, lat: float, lon: float) -> Tuple[float, float]:
        return self.lattice.projection.to_local(lat, lon)

    def _segment_from_geo(self, geo: 'GeoSegment') -> Segment:
        x0, y0 = self._local(geo.start.lat, geo.start.lon)
        x1, y1 = self._local(geo.stop.lat, geo.stop.lon)
        return Segment(x0, y0, x1, y1)

    def travel_direction(self, trip: 'TripRecord') -> Tuple[float, float]:
        """
        Unit vector from trip start to end in planar coordinates.

        Falls back to the recorded heading when start and end coincide,
        and to (0, 0) when there is no heading either.
        """
        xs, ys = self._local(trip.start.lat, trip.start.lon)
        xe, ye = self._local(trip.end.lat, trip.end.lon)
        dx, dy = xe - xs, ye - ys
        length = math.hypot(dx, dy)

        if length < 1e-9:
            if trip.geometry.heading_deg is not None:
                return _heading_unit(trip.geometry.heading_deg)
            return (0.0, 0.0)

        return (dx / length, dy / length)

    def cut_segment(self, trip: 'TripRecord') -> Segment:
        """
        Cut pass segment.

        Uses the explicit cut pass when recorded. Otherwise the segment ends
        at the trip start and extends backward along the travel direction by
        the recorded cut length, or by a length estimated from the bank
        volume at a fixed cut depth.
        """
        if trip.geometry.cut is not None:
            return self._segment_from_geo(trip.geometry.cut)

        x1, y1 = self._local(trip.start.lat, trip.start.lon)
        ux, uy = self.travel_direction(trip)

        cut_length = trip.geometry.cut_length_m
        if cut_length is None:
            cut_length = self.config.estimated_cut_length(self.config.bank_m3(trip.bcy))

        return Segment(x1 - ux * cut_length, y1 - uy * cut_length, x1, y1)

    def fill_segment(self, trip: 'TripRecord') -> Segment:
        """
        Fill pass segment.

        Uses the explicit fill pass when recorded. Otherwise a segment of
        dump-travel length ending at the trip end, oriented along the travel
        direction.
        """
        if trip.geometry.fill is not None:
            return self._segment_from_geo(trip.geometry.fill)

        x1, y1 = self._local(trip.end.lat, trip.end.lon)
        ux, uy = self.travel_direction(trip)
        travel = self.config.dump_travel

        return Segment(x1 - ux * travel, y1 - uy * travel, x1, y1)

    # ------------------------------------------------------------------
    # Footprints
    # ------------------------------------------------------------------

    def rectangle(self, segment: Segment, width: Optional[float] = None) -> Footprint:
        """
        Bins whose positions fall inside the rotated rectangle of the given
        width centered on the segment axis.

        A bin is inside when its projection s onto the segment satisfies
        0 <= s <= length and its lateral offset satisfies |t| <= width / 2.
        A segment shorter than the degenerate epsilon collapses to the
        single nearest bin.
        """
        width = self.config.equipment_width if width is None else width
        length = segment.length

        if length < self.config.degenerate_epsilon:
            idx = self.lattice.nearest_index(segment.x0, segment.y0)
            return Footprint(
                segment=segment,
                width=width,
                hits=(FootprintHit(idx, 0.0, 0.0),),
                degenerate=True,
            )

        ux, uy = segment.unit
        nx, ny = -uy, ux
        half_w = width * 0.5
        bin_size = self.lattice.bin_size

        min_x = min(segment.x0, segment.x1) - half_w
        max_x = max(segment.x0, segment.x1) + half_w
        min_y = min(segment.y0, segment.y1) - half_w
        max_y = max(segment.y0, segment.y1) + half_w

        # Scan only the part of the bounding box that overlaps the lattice
        lat_bx_min, lat_bx_max, lat_by_min, lat_by_max = self.lattice.bounds
        bx_min = max(math.floor(min_x / bin_size), lat_bx_min)
        bx_max = min(math.floor(max_x / bin_size), lat_bx_max)
        by_min = max(math.floor(min_y / bin_size), lat_by_min)
        by_max = min(math.floor(max_y / bin_size), lat_by_max)

        if bx_min > bx_max or by_min > by_max:
            return Footprint(segment=segment, width=width, hits=())

        index_by_key = self.lattice.index_by_key
        candidates = [
            index_by_key[(bx, by)]
            for bx in range(bx_min, bx_max + 1)
            for by in range(by_min, by_max + 1)
            if (bx, by) in index_by_key
        ]

        if not candidates:
            return Footprint(segment=segment, width=width, hits=())

        idx = np.array(candidates, dtype=np.int64)
        rx = self.lattice.xy[idx, 0] - segment.x0
        ry = self.lattice.xy[idx, 1] - segment.y0
        s = rx * ux + ry * uy
        t = rx * nx + ry * ny

        inside = (s >= 0) & (s <= length) & (np.abs(t) <= half_w)
        hits = tuple(
            FootprintHit(int(i), float(si), float(ti))
            for i, si, ti in zip(idx[inside], s[inside], t[inside])
        )
        return Footprint(segment=segment, width=width, hits=hits)

    def strip(
        self,
        x: float,
        y: float,
        direction_deg: Optional[float] = None,
    ) -> Footprint:
        """
        Fixed-width strip of bins centered on the bin at (x, y).

        The strip spans ceil(equipment_width / bin_size) bin offsets along
        (-sin d, cos d) for reference direction d. Each offset position
        snaps to its containing (or nearest) bin; a bin reached by several
        offsets is listed once, so a strip clipped at the lattice edge
        spreads its volume over fewer bins instead of stacking extra
        shares on the edge bin.
        """
        if direction_deg is None:
            direction_deg = self.config.strip_direction_deg

        center = self.lattice.bins[self.lattice.locate(x, y)]
        rad = math.radians(direction_deg)
        px, py = -math.sin(rad), math.cos(rad)

        bin_size = self.lattice.bin_size
        half = self.config.width_bins // 2

        hits = {}
        for w in range(-half, half + 1):
            offset = w * bin_size
            idx = self.lattice.locate(center.x + offset * px, center.y + offset * py)
            if idx not in hits:
                hits[idx] = FootprintHit(idx, 0.0, offset)

        segment = Segment(center.x, center.y, center.x, center.y)
        return Footprint(
            segment=segment,
            width=self.config.equipment_width,
            hits=tuple(hits.values()),
        )

    def resolve_cut(self, trip: 'TripRecord') -> Footprint:
        if self.config.mode is EvolutionMode.STRIP:
            return self.strip(*self._local(trip.start.lat, trip.start.lon))
        return self.rectangle(self.cut_segment(trip))

    def resolve_fill(self, trip: 'TripRecord') -> Footprint:
        if self.config.mode is EvolutionMode.STRIP:
            return self.strip(*self._local(trip.end.lat, trip.end.lon))
        return self.rectangle(self.fill_segment(trip))


@dataclass(frozen=True)
class TripDimensions:
    """Footprint sizes of a trip in meters and whole bins."""
    trip_index: int
    bcy: float
    width_bins: int
    cut_length_m: Optional[float]
    cut_length_bins: int
    fill_length_m: Optional[float]
    fill_length_bins: int
    general_length_m: float
    general_length_bins: int

    def summary(self) -> str:
        """Return human-readable summary."""
        def describe(label: str, length_m: Optional[float], length_bins: int) -> str:
            if length_m is None:
                return (
                    f"  {label}: no detailed coordinates, "
                    f"{self.width_bins} x {length_bins} bins (default)"
                )
            return (
                f"  {label}: {length_m:.2f} m = {length_bins} bins, "
                f"{self.width_bins} x {length_bins} bins"
            )

        lines = [
            "=" * 50,
            "TRIP DIMENSIONS",
            "=" * 50,
            f"Trip Index:        {self.trip_index}",
            f"BCY:               {self.bcy:.2f}",
            f"Equipment Width:   {self.width_bins} bins",
            describe("Cut", self.cut_length_m, self.cut_length_bins),
            describe("Fill", self.fill_length_m, self.fill_length_bins),
            f"  General: {self.general_length_m:.2f} m = "
            f"{self.general_length_bins} bins (start to end)",
            "=" * 50,
        ]
        return "\n".join(lines)


def _length_bins(length_m: float, bin_size: float) -> int:
    return max(1, int(math.ceil(length_m / bin_size)))


def trip_dimensions(
    trip: 'TripRecord',
    config: Optional[EquipmentConfig] = None,
) -> TripDimensions:
    """
    Size a trip's cut and fill passes in meters and bins.

    Explicit passes are measured with the haversine distance; a pass
    without explicit coordinates reports a one-bin default length.
    """
    config = config or EquipmentConfig()

    cut_m = trip.geometry.cut.length_m if trip.geometry.cut is not None else None
    fill_m = trip.geometry.fill.length_m if trip.geometry.fill is not None else None
    general_m = trip.length_m

    return TripDimensions(
        trip_index=trip.trip_index,
        bcy=trip.bcy,
        width_bins=config.width_bins,
        cut_length_m=cut_m,
        cut_length_bins=_length_bins(cut_m, config.bin_size) if cut_m is not None else 1,
        fill_length_m=fill_m,
        fill_length_bins=_length_bins(fill_m, config.bin_size) if fill_m is not None else 1,
        general_length_m=general_m,
        general_length_bins=_length_bins(general_m, config.bin_size),
    )
