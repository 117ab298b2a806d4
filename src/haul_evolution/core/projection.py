"""
Projection Module

Converts geographic coordinates to a local planar (x, y) system in meters,
anchored at a site centroid.

Footprint math is planar (equirectangular approximation), while trip lengths
given as geographic endpoints are measured with the haversine great-circle
distance.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Tuple, Union, TYPE_CHECKING
import numpy as np

if TYPE_CHECKING:
    from .bins import Sample

ArrayLike = Union[float, np.ndarray]

EARTH_RADIUS_M = 6_371_000.0


def to_local_xy(
    lat: ArrayLike,
    lon: ArrayLike,
    lat0: float,
    lon0: float,
) -> Tuple[ArrayLike, ArrayLike]:
    """
    Project latitude/longitude (degrees) to local x/y (meters).

    x = R * cos(lat0) * (lon - lon0)
    y = R * (lat - lat0)

    Accepts scalars or numpy arrays; returns the same kind.
    """
    lat0_rad = np.radians(lat0)
    x = EARTH_RADIUS_M * np.cos(lat0_rad) * (np.radians(lon) - np.radians(lon0))
    y = EARTH_RADIUS_M * (np.radians(lat) - lat0_rad)

    if np.ndim(x) == 0:
        return float(x), float(y)
    return x, y


def to_geographic(
    x: ArrayLike,
    y: ArrayLike,
    lat0: float,
    lon0: float,
) -> Tuple[ArrayLike, ArrayLike]:
    """Inverse of to_local_xy: local x/y (meters) back to latitude/longitude."""
    lat0_rad = np.radians(lat0)
    lat = np.degrees(lat0_rad + np.asarray(y) / EARTH_RADIUS_M)
    lon = np.degrees(
        np.radians(lon0) + np.asarray(x) / (EARTH_RADIUS_M * np.cos(lat0_rad))
    )

    if np.ndim(lat) == 0:
        return float(lat), float(lon)
    return lat, lon


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in meters between two lat/lon points."""
    lat1_rad, lon1_rad = np.radians(lat1), np.radians(lon1)
    lat2_rad, lon2_rad = np.radians(lat2), np.radians(lon2)

    d_lat = lat2_rad - lat1_rad
    d_lon = lon2_rad - lon1_rad

    a = (
        np.sin(d_lat / 2) ** 2 +
        np.cos(lat1_rad) * np.cos(lat2_rad) * np.sin(d_lon / 2) ** 2
    )
    c = 2 * np.arctan2(np.sqrt(a), np.sqrt(1 - a))

    return float(EARTH_RADIUS_M * c)


def centroid(samples: Iterable['Sample']) -> Tuple[float, float]:
    """Arithmetic mean (lat, lon) of all samples; the default projection anchor."""
    coords = np.array([(s.lat, s.lon) for s in samples], dtype=np.float64)
    if coords.size == 0:
        raise ValueError("Cannot compute centroid of an empty sample set")
    lat0, lon0 = coords.mean(axis=0)
    return float(lat0), float(lon0)


@dataclass(frozen=True)
class Projection:
    """
    Projection anchored at (lat0, lon0), shared by every conversion in a run.
    """
    lat0: float
    lon0: float

    @classmethod
    def from_samples(cls, samples: Iterable['Sample']) -> Projection:
        return cls(*centroid(samples))

    def to_local(self, lat: ArrayLike, lon: ArrayLike) -> Tuple[ArrayLike, ArrayLike]:
        return to_local_xy(lat, lon, self.lat0, self.lon0)

    def to_geographic(self, x: ArrayLike, y: ArrayLike) -> Tuple[ArrayLike, ArrayLike]:
        return to_geographic(x, y, self.lat0, self.lon0)
