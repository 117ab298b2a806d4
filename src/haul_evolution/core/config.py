"""
Equipment Configuration

Fixed equipment and soil parameters consumed by the simulation. Defaults
describe a 15 ft scraper working a 2 ft x 2 ft bin grid.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum

from .validation import (
    ValidationError,
    validate_bin_size,
    validate_positive,
    validate_soil_factor,
)


class EvolutionMode(Enum):
    """How a trip's footprint is laid onto the lattice."""
    STRIP = "strip"    # Fixed-width strip at a static reference direction
    BLADE = "blade"    # Rotated rectangles along cut/fill segments


@dataclass(frozen=True)
class EquipmentConfig:
    """
    Equipment and soil parameters for a simulation run.

    Attributes:
        bin_size: Bin edge length (m)
        equipment_width: Blade/bowl width (m)
        max_cut_depth: Hard cap on cut depth per bin per trip (m)
        swell: Bank -> loose volume factor
        shrink: Loose -> compacted volume factor
        dump_travel: Fill spread length when no fill pass is recorded (m)
        yd3_per_m3: Cubic yards per cubic meter
        mode: Footprint mode
        fixed_cut_depth: Depth used to estimate a cut length from volume (m)
        reference_profile_depth: Depth that maps to unit profile weight (m)
        degenerate_epsilon: Segments shorter than this collapse to one bin (m)
        strip_direction_deg: Reference direction for strip mode (degrees)
    """
    bin_size: float = 0.6096
    equipment_width: float = 4.572
    max_cut_depth: float = 0.06096
    swell: float = 1.30
    shrink: float = 0.64
    dump_travel: float = 5.0
    yd3_per_m3: float = 1.30795061931439
    mode: EvolutionMode = EvolutionMode.BLADE
    fixed_cut_depth: float = 0.06096
    reference_profile_depth: float = 0.1
    degenerate_epsilon: float = 1e-6
    strip_direction_deg: float = 0.0

    def __post_init__(self):
        validate_bin_size(self.bin_size)
        validate_positive(self.equipment_width, "equipment_width")
        validate_positive(self.max_cut_depth, "max_cut_depth")
        validate_soil_factor(self.swell, "swell")
        validate_soil_factor(self.shrink, "shrink")
        validate_positive(self.dump_travel, "dump_travel")
        validate_positive(self.yd3_per_m3, "yd3_per_m3")
        validate_positive(self.fixed_cut_depth, "fixed_cut_depth")
        validate_positive(self.reference_profile_depth, "reference_profile_depth")
        validate_positive(self.degenerate_epsilon, "degenerate_epsilon")

        if not isinstance(self.mode, EvolutionMode):
            try:
                object.__setattr__(self, "mode", EvolutionMode(self.mode))
            except ValueError:
                raise ValidationError(
                    f"mode must be one of {[m.value for m in EvolutionMode]}, "
                    f"got {self.mode!r}"
                )

    @property
    def bin_area(self) -> float:
        return self.bin_size * self.bin_size

    @property
    def net_factor(self) -> float:
        """Bank -> compacted volume factor (swell * shrink)."""
        return self.swell * self.shrink

    @property
    def width_bins(self) -> int:
        """Equipment width in whole bins, rounded up."""
        return int(math.ceil(self.equipment_width / self.bin_size - 1e-9))

    def bank_m3(self, bcy: float) -> float:
        """Bank cubic yards to bank cubic meters."""
        return bcy / self.yd3_per_m3

    def loose_m3(self, bcy: float) -> float:
        return self.bank_m3(bcy) * self.swell

    def compacted_m3(self, bcy: float) -> float:
        return self.loose_m3(bcy) * self.shrink

    def estimated_cut_length(self, bank_m3: float) -> float:
        """Cut length needed to excavate a bank volume at a fixed depth."""
        return bank_m3 / (
            self.equipment_width * min(self.max_cut_depth, self.fixed_cut_depth)
        )
