"""
Sample and Trip Loaders

Reads elevation samples and haul trips from delimited text files, and
writes/generates synthetic sites for demos and tests.

Malformed rows are dropped, not raised: one bad record must not abort a
run. Missing required columns and empty inputs are fatal.
"""

from __future__ import annotations

import csv
import logging
import math
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from ..core.bins import Sample
from ..core.projection import to_geographic
from ..core.trips import (
    BinOperation,
    GeoPoint,
    GeoSegment,
    Profile,
    TripGeometry,
    TripRecord,
)
from ..core.validation import ValidationError, validate_non_empty

logger = logging.getLogger(__name__)


def _parse_float(value: Optional[str]) -> Optional[float]:
    """Parse a float, returning None for blanks, garbage and non-finite values."""
    if value is None:
        return None
    value = value.strip()
    if not value:
        return None
    try:
        parsed = float(value)
    except ValueError:
        return None
    return parsed if math.isfinite(parsed) else None


def parse_profile(text: Optional[str]) -> Optional[Profile]:
    """
    Parse a cross-section profile from "distance=depth;distance=depth" text.

    Pairs that do not parse are ignored. Points are sorted by distance.

    Args:
        text: Profile string, e.g. "0=0.05;1.5=0.06;3=0.04"

    Returns:
        Profile, or None when no pair parses
    """
    if text is None or not text.strip():
        return None

    points = []
    for pair in text.split(';'):
        if not pair.strip():
            continue
        key, sep, value = pair.partition('=')
        if not sep:
            continue
        distance, depth = _parse_float(key), _parse_float(value)
        if distance is not None and depth is not None:
            points.append((distance, depth))

    return Profile.from_pairs(points) if points else None


def parse_bin_operations(text: Optional[str]) -> Tuple[BinOperation, ...]:
    """
    Parse planned per-bin depths from "bx:by=depth;bx:by=depth" text.

    Entries whose key is not two integers or whose depth does not parse
    are ignored.

    Args:
        text: Operation string, e.g. "4:7=0.05;5:7=0.04"

    Returns:
        Tuple of BinOperation in text order (empty when nothing parses)
    """
    if text is None or not text.strip():
        return ()

    operations = []
    for entry in text.split(';'):
        key, sep, value = entry.partition('=')
        if not sep:
            continue
        bx, colon, by = key.partition(':')
        depth = _parse_float(value)
        if not colon or depth is None:
            continue
        try:
            operations.append(BinOperation(int(bx.strip()), int(by.strip()), depth))
        except ValueError:
            continue

    return tuple(operations)


class SampleLoader:
    """
    Loads elevation samples from delimited text.

    Columns are located by case-insensitive substring match against the
    header: Latitude, Longitude, Existing, Proposed. A row needs a
    latitude, a longitude and at least one elevation.

    Supported formats:
        - CSV (.csv)
        - Grid data exports (.agd)
        - Plain text with a comma-separated header (.txt)
    """

    COLUMN_KEYS = {
        "lat": "latitude",
        "lon": "longitude",
        "z_exist": "existing",
        "z_prop": "proposed",
    }

    @classmethod
    def load(cls, filepath: str | Path) -> List[Sample]:
        """
        Load samples from file, auto-detecting format.

        Args:
            filepath: Path to sample file

        Returns:
            List of Sample in file order

        Raises:
            ValueError: If the format is not supported
            ValidationError: If latitude/longitude columns are missing
            EmptyInputError: If no row yields a sample
        """
        filepath = Path(filepath)
        suffix = filepath.suffix.lower()

        loaders = {
            '.csv': cls._load_delimited,
            '.agd': cls._load_delimited,
            '.txt': cls._load_delimited,
        }

        if suffix not in loaders:
            raise ValueError(f"Unsupported format: {suffix}")

        samples = loaders[suffix](filepath)
        validate_non_empty(samples, f"elevation samples in {filepath.name}")
        return samples

    @classmethod
    def _column_indices(cls, header: Sequence[str]) -> Dict[str, int]:
        indices = {}
        for name, needle in cls.COLUMN_KEYS.items():
            for i, column in enumerate(header):
                if needle in column.lower():
                    indices[name] = i
                    break
        return indices

    @classmethod
    def _load_delimited(cls, filepath: Path) -> List[Sample]:
        with open(filepath, 'r', newline='', encoding='utf-8-sig') as f:
            reader = csv.reader(f)
            header = next(reader, None)
            if header is None:
                return []

            cols = cls._column_indices(header)
            missing = [k for k in ("lat", "lon") if k not in cols]
            if missing:
                raise ValidationError(
                    f"{filepath.name}: no column matching "
                    f"{', '.join(cls.COLUMN_KEYS[k].title() for k in missing)} "
                    f"in header {header}"
                )

            def field(row: List[str], name: str) -> Optional[float]:
                idx = cols.get(name)
                if idx is None or idx >= len(row):
                    return None
                return _parse_float(row[idx])

            samples: List[Sample] = []
            dropped = 0
            for line_no, row in enumerate(reader, start=2):
                if not any(cell.strip() for cell in row):
                    continue

                lat, lon = field(row, "lat"), field(row, "lon")
                z_exist, z_prop = field(row, "z_exist"), field(row, "z_prop")

                if lat is None or lon is None or (z_exist is None and z_prop is None):
                    logger.debug(f"{filepath.name}:{line_no}: dropped malformed sample row")
                    dropped += 1
                    continue

                samples.append(Sample(lat=lat, lon=lon, z_exist=z_exist, z_prop=z_prop))

        if dropped:
            logger.warning(f"{filepath.name}: dropped {dropped} malformed sample rows")
        logger.info(f"Loaded {len(samples)} samples from {filepath.name}")
        return samples


class TripLoader:
    """
    Loads haul trips from CSV.

    Header names are matched exactly (case-insensitive). Columns in
    REQUIRED must be present; any column in OPTIONAL may be absent or blank.
    """

    REQUIRED = ("trip_index", "start_lat", "start_lon", "end_lat", "end_lon", "bcy")
    OPTIONAL = (
        "cut_start_lat", "cut_start_lon", "cut_stop_lat", "cut_stop_lon",
        "fill_start_lat", "fill_start_lon", "fill_stop_lat", "fill_stop_lon",
        "cut_length_m", "heading_deg", "cut_profile", "fill_profile",
        "cut_bins", "fill_bins",
    )
    TEXT_COLUMNS = ("cut_profile", "fill_profile", "cut_bins", "fill_bins")

    @classmethod
    def load(cls, filepath: str | Path) -> List[TripRecord]:
        """
        Load trips from CSV, sorted by trip index.

        Args:
            filepath: Path to trips CSV

        Returns:
            List of TripRecord sorted ascending by trip_index

        Raises:
            ValidationError: If a required column is missing
            EmptyInputError: If no row yields a trip
        """
        filepath = Path(filepath)

        with open(filepath, 'r', newline='', encoding='utf-8-sig') as f:
            reader = csv.reader(f)
            header = next(reader, None)
            cols = {}
            if header is not None:
                cols = {name.strip().lower(): i for i, name in enumerate(header)}

            missing = [name for name in cls.REQUIRED if name not in cols]
            if missing:
                raise ValidationError(
                    f"{filepath.name}: missing required trip columns: {', '.join(missing)}"
                )

            trips: List[TripRecord] = []
            dropped = 0
            for line_no, row in enumerate(reader, start=2):
                if not any(cell.strip() for cell in row):
                    continue
                trip = cls._parse_row(row, cols)
                if trip is None:
                    logger.debug(f"{filepath.name}:{line_no}: dropped malformed trip row")
                    dropped += 1
                    continue
                trips.append(trip)

        if dropped:
            logger.warning(f"{filepath.name}: dropped {dropped} malformed trip rows")

        validate_non_empty(trips, f"trips in {filepath.name}")
        trips.sort(key=lambda t: t.trip_index)
        logger.info(f"Loaded {len(trips)} trips from {filepath.name}")
        return trips

    @staticmethod
    def _segment(values: Dict[str, Optional[float]], prefix: str) -> Optional[GeoSegment]:
        coords = [
            values.get(f"{prefix}_start_lat"),
            values.get(f"{prefix}_start_lon"),
            values.get(f"{prefix}_stop_lat"),
            values.get(f"{prefix}_stop_lon"),
        ]
        if any(c is None for c in coords):
            return None
        return GeoSegment(GeoPoint(coords[0], coords[1]), GeoPoint(coords[2], coords[3]))

    @classmethod
    def _parse_row(cls, row: List[str], cols: Dict[str, int]) -> Optional[TripRecord]:
        def raw(name: str) -> Optional[str]:
            idx = cols.get(name)
            if idx is None or idx >= len(row):
                return None
            return row[idx]

        required = {name: _parse_float(raw(name)) for name in cls.REQUIRED}
        if any(v is None for v in required.values()):
            return None
        if not required["trip_index"].is_integer():
            return None

        values = {
            name: _parse_float(raw(name))
            for name in cls.OPTIONAL
            if name not in cls.TEXT_COLUMNS
        }

        geometry = TripGeometry(
            cut=cls._segment(values, "cut"),
            fill=cls._segment(values, "fill"),
            cut_length_m=values["cut_length_m"],
            heading_deg=values["heading_deg"],
            cut_profile=parse_profile(raw("cut_profile")),
            fill_profile=parse_profile(raw("fill_profile")),
            cut_bins=parse_bin_operations(raw("cut_bins")),
            fill_bins=parse_bin_operations(raw("fill_bins")),
        )

        return TripRecord(
            trip_index=int(required["trip_index"]),
            bcy=required["bcy"],
            start=GeoPoint(required["start_lat"], required["start_lon"]),
            end=GeoPoint(required["end_lat"], required["end_lon"]),
            geometry=geometry,
        )


def write_samples_csv(samples: Sequence[Sample], filepath: str | Path) -> None:
    """
    Write samples in the column layout SampleLoader reads.

    Missing elevations are written as blank cells.
    """
    def fmt(value: Optional[float]) -> str:
        return "" if value is None else f"{value:.4f}"

    with open(Path(filepath), 'w', newline='', encoding='utf-8') as f:
        writer = csv.writer(f)
        writer.writerow(['Latitude', 'Longitude', 'Existing Elevation', 'Proposed Elevation'])
        for s in samples:
            writer.writerow([f"{s.lat:.9f}", f"{s.lon:.9f}", fmt(s.z_exist), fmt(s.z_prop)])


def write_trips_csv(trips: Sequence[TripRecord], filepath: str | Path) -> None:
    """Write trips in the column layout TripLoader reads."""
    def fmt(value: Optional[float], pattern: str = ".9f") -> str:
        return "" if value is None else format(value, pattern)

    def profile(p: Optional[Profile]) -> str:
        if p is None:
            return ""
        return ";".join(f"{d:g}={z:g}" for d, z in p.points)

    def operations(ops: Sequence[BinOperation]) -> str:
        return ";".join(f"{op.bx}:{op.by}={op.depth_m:g}" for op in ops)

    def segment(s: Optional[GeoSegment]) -> List[str]:
        if s is None:
            return [""] * 4
        return [fmt(s.start.lat), fmt(s.start.lon), fmt(s.stop.lat), fmt(s.stop.lon)]

    with open(Path(filepath), 'w', newline='', encoding='utf-8') as f:
        writer = csv.writer(f)
        writer.writerow(list(TripLoader.REQUIRED) + list(TripLoader.OPTIONAL))
        for t in trips:
            g = t.geometry
            writer.writerow(
                [t.trip_index, fmt(t.start.lat), fmt(t.start.lon),
                 fmt(t.end.lat), fmt(t.end.lon), fmt(t.bcy, ".4f")]
                + segment(g.cut)
                + segment(g.fill)
                + [fmt(g.cut_length_m, ".4f"), fmt(g.heading_deg, ".2f"),
                   profile(g.cut_profile), profile(g.fill_profile),
                   operations(g.cut_bins), operations(g.fill_bins)]
            )


def generate_sample_site(
    size: Tuple[float, float] = (30.0, 30.0),
    spacing: float = 0.5,
    origin: Tuple[float, float] = (38.0, -92.0),
    base_elevation: float = 100.0,
    hill_height: float = 0.5,
    num_trips: int = 20,
    bcy: float = 2.0,
    seed: int = 42,
) -> Tuple[List[Sample], List[TripRecord]]:
    """
    Generate a synthetic site and haul trips for testing.

    The existing surface is a gentle hill with noise over a flat design
    pad at base_elevation. Trips haul from the high half of the site to
    the low half; every other trip carries explicit cut/fill passes and a
    cut profile.

    Args:
        size: (width, height) of the site in meters
        spacing: Sample spacing in meters
        origin: (lat, lon) of the site's south-west corner
        base_elevation: Design pad elevation
        hill_height: Peak height of the existing hill above the pad
        num_trips: Number of trips to generate
        bcy: Bank cubic yards per trip
        seed: Random seed for reproducibility

    Returns:
        (samples, trips)
    """
    rng = np.random.default_rng(seed)
    lat0, lon0 = origin

    width, height = size
    x = np.arange(0, width, spacing)
    y = np.arange(0, height, spacing)
    xx, yy = np.meshgrid(x, y)

    # Ridge along x, cut on the east half and fill on the west half
    z_exist = base_elevation + (
        hill_height * np.sin(np.pi * xx / width) * (xx / width - 0.5) * 2
        + 0.02 * rng.standard_normal(xx.shape)
    )
    z_prop = np.full(xx.shape, base_elevation)

    lat, lon = to_geographic(xx.ravel(), yy.ravel(), lat0, lon0)
    samples = [
        Sample(lat=float(la), lon=float(lo), z_exist=float(ze), z_prop=float(zp))
        for la, lo, ze, zp in zip(lat, lon, z_exist.ravel(), z_prop.ravel())
    ]

    def geo(px: float, py: float) -> GeoPoint:
        la, lo = to_geographic(px, py, lat0, lon0)
        return GeoPoint(float(la), float(lo))

    trips = []
    for k in range(num_trips):
        sx = rng.uniform(0.6 * width, 0.9 * width)
        sy = rng.uniform(0.1 * height, 0.9 * height)
        ex = rng.uniform(0.1 * width, 0.4 * width)
        ey = sy + rng.uniform(-1.0, 1.0)

        geometry = TripGeometry()
        if k % 2 == 1:
            geometry = TripGeometry(
                cut=GeoSegment(geo(sx + 4.0, sy), geo(sx, sy)),
                fill=GeoSegment(geo(ex + 3.0, ey), geo(ex, ey)),
                cut_profile=Profile.from_pairs([(0.0, 0.04), (2.0, 0.06), (4.0, 0.05)]),
            )

        trips.append(TripRecord(
            trip_index=k + 1,
            bcy=bcy,
            start=geo(sx, sy),
            end=geo(ex, ey),
            geometry=geometry,
        ))

    return samples, trips
