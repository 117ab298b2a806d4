"""
Haul Evolution

Simulates progressive terrain reshaping by earthmoving equipment:
elevation samples are binned onto a square lattice, then haul trips are
replayed in order, each cutting soil from one footprint and placing it on
another until the surface approaches its design grade.
"""

__version__ = "0.1.0"

from .core.bins import Sample, BinGrid
from .core.config import EquipmentConfig, EvolutionMode
from .core.lattice import Lattice, LatticeSnapshot
from .core.trips import TripRecord
from .core.engine import TripEvolutionEngine, TripOutcome
from .io.loaders import SampleLoader, TripLoader
from .analysis.grading import GradeReport, grade_check

__all__ = [
    "Sample",
    "BinGrid",
    "EquipmentConfig",
    "EvolutionMode",
    "Lattice",
    "LatticeSnapshot",
    "TripRecord",
    "TripEvolutionEngine",
    "TripOutcome",
    "SampleLoader",
    "TripLoader",
    "GradeReport",
    "grade_check",
]
