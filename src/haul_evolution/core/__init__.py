"""Core data structures and algorithms."""

from .bins import Sample, Bin, BinGrid
from .config import EquipmentConfig, EvolutionMode
from .lattice import Lattice, LatticeSnapshot
from .trips import BinOperation, GeoPoint, GeoSegment, Profile, TripGeometry, TripRecord
from .footprint import Footprint, FootprintResolver
from .distribution import VolumeDistributor, DistributionResult
from .engine import TripEvolutionEngine, TripOutcome

__all__ = [
    "Sample",
    "Bin",
    "BinGrid",
    "EquipmentConfig",
    "EvolutionMode",
    "Lattice",
    "LatticeSnapshot",
    "BinOperation",
    "GeoPoint",
    "GeoSegment",
    "Profile",
    "TripGeometry",
    "TripRecord",
    "Footprint",
    "FootprintResolver",
    "VolumeDistributor",
    "DistributionResult",
    "TripEvolutionEngine",
    "TripOutcome",
]
