"""
Grade Check Module

Compares the evolved surface against its design target and reports
where work remains.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union
import numpy as np

from ..core.lattice import Lattice, LatticeSnapshot

# 0.1 ft
GRADE_TOLERANCE_M = 0.03048


@dataclass
class GradeReport:
    """
    Grade check results.

    Deviations are z_cur - z_prop: positive means the bin is still high
    (cut remaining), negative means it is still low (fill remaining).
    """
    total_bins: int
    too_high: int
    too_low: int
    within_tolerance: int
    tolerance: float
    remaining_cut_m3: float
    remaining_fill_m3: float
    max_above: float
    max_below: float
    mean_abs_deviation: float

    @property
    def percent_on_grade(self) -> float:
        if self.total_bins == 0:
            return 0.0
        return 100.0 * self.within_tolerance / self.total_bins

    @property
    def on_grade(self) -> bool:
        return self.too_high == 0 and self.too_low == 0

    def summary(self) -> str:
        """Return human-readable summary."""
        lines = [
            "=" * 50,
            "GRADE CHECK",
            "=" * 50,
            f"Bins:              {self.total_bins:,}",
            f"Tolerance:         +/- {self.tolerance:.4f} m",
            f"",
            f"Within tolerance:  {self.within_tolerance:,} ({self.percent_on_grade:.1f}%)",
            f"Too high (cut):    {self.too_high:,}",
            f"Too low (fill):    {self.too_low:,}",
            f"",
            f"REMAINING WORK:",
            f"  Cut:             {self.remaining_cut_m3:,.3f} m3",
            f"  Fill:            {self.remaining_fill_m3:,.3f} m3",
            f"  Max Above Grade: {self.max_above:.4f} m",
            f"  Max Below Grade: {self.max_below:.4f} m",
            f"  Mean |Dev|:      {self.mean_abs_deviation:.4f} m",
            "=" * 50,
        ]
        return "\n".join(lines)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "total_bins": self.total_bins,
            "too_high": self.too_high,
            "too_low": self.too_low,
            "within_tolerance": self.within_tolerance,
            "tolerance": self.tolerance,
            "remaining_cut_m3": self.remaining_cut_m3,
            "remaining_fill_m3": self.remaining_fill_m3,
            "max_above": self.max_above,
            "max_below": self.max_below,
            "mean_abs_deviation": self.mean_abs_deviation,
            "percent_on_grade": self.percent_on_grade,
        }


def grade_check(
    surface: Union[Lattice, LatticeSnapshot],
    tolerance: float = GRADE_TOLERANCE_M,
) -> GradeReport:
    """
    Classify every bin against its target elevation.

    Args:
        surface: Live lattice or a snapshot of one
        tolerance: Allowed |z_cur - z_prop| in meters

    Returns:
        GradeReport
    """
    if tolerance < 0:
        raise ValueError(f"tolerance must be non-negative, got {tolerance}")

    if isinstance(surface, LatticeSnapshot):
        z_cur, z_prop = surface.z_cur, surface.z_prop
    else:
        z_cur = np.array([b.z_cur for b in surface.bins], dtype=np.float64)
        z_prop = np.array([b.z_prop for b in surface.bins], dtype=np.float64)

    bin_area = surface.bin_size * surface.bin_size
    deviation = z_cur - z_prop

    too_high = deviation > tolerance
    too_low = deviation < -tolerance
    empty = deviation.size == 0

    return GradeReport(
        total_bins=int(deviation.size),
        too_high=int(too_high.sum()),
        too_low=int(too_low.sum()),
        within_tolerance=int((~too_high & ~too_low).sum()),
        tolerance=tolerance,
        remaining_cut_m3=float(np.clip(deviation, 0, None).sum() * bin_area),
        remaining_fill_m3=float(np.clip(-deviation, 0, None).sum() * bin_area),
        max_above=0.0 if empty else float(max(deviation.max(), 0.0)),
        max_below=0.0 if empty else float(max(-deviation.min(), 0.0)),
        mean_abs_deviation=0.0 if empty else float(np.abs(deviation).mean()),
    )
