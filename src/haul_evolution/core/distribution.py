"""
Volume Distribution Module

Allocates a volume of soil across the bins of a footprint under per-bin
capacity limits.

Capacity is the volume a bin can absorb before its current elevation
reaches the target: a cut may not go below the target and a fill may not
rise above it. Volume beyond the footprint's total capacity is dropped,
not redistributed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Dict, Optional, Sequence, TYPE_CHECKING
import numpy as np

if TYPE_CHECKING:
    from .bins import Bin
    from .footprint import Footprint
    from .lattice import Lattice
    from .trips import Profile

# Capacity (m3) of a bin; application lowers/raises a bin by a volume (m3)
# and returns the volume actually applied after clamping.
CapacityFn = Callable[['Bin'], float]
ApplyFn = Callable[['Bin', float], float]

MIN_PROFILE_WEIGHT = 0.1


def cut_capacity(b: 'Bin', bin_area: float, max_cut_depth: float) -> float:
    """Room to cut before reaching the target, capped at max_cut_depth (m3)."""
    return max(0.0, min(max_cut_depth, b.z_cur - b.z_prop)) * bin_area


def fill_capacity(b: 'Bin', bin_area: float) -> float:
    """Room to fill before reaching the target (m3)."""
    return max(0.0, b.z_prop - b.z_cur) * bin_area


def apply_cut(b: 'Bin', volume: float, bin_area: float) -> float:
    """Lower z_cur by volume / bin_area, never below z_prop and never upward."""
    before = b.z_cur
    b.z_cur = min(before, max(before - volume / bin_area, b.z_prop))
    return (before - b.z_cur) * bin_area


def apply_fill(b: 'Bin', volume: float, bin_area: float) -> float:
    """Raise z_cur by volume / bin_area, never above z_prop and never downward."""
    before = b.z_cur
    b.z_cur = max(before, min(before + volume / bin_area, b.z_prop))
    return (b.z_cur - before) * bin_area


@dataclass
class DistributionResult:
    """
    Outcome of distributing one volume over a footprint.

    Attributes:
        requested: Volume asked for (m3)
        capacity: Total (possibly profile-weighted) capacity of the footprint (m3)
        applied: Volume applied per bin index, after clamping (m3)
        profile_weighted: Whether a measured profile shaped the allocation
    """
    requested: float
    capacity: float
    applied: Dict[int, float] = field(default_factory=dict)
    profile_weighted: bool = False

    @property
    def placed(self) -> float:
        """Total volume actually moved (m3)."""
        return float(sum(self.applied.values()))

    @property
    def discarded(self) -> float:
        """Requested volume that found no capacity (m3)."""
        return max(0.0, self.requested - self.placed)

    @property
    def bins_touched(self) -> int:
        return sum(1 for v in self.applied.values() if v > 0)

    @property
    def is_noop(self) -> bool:
        return self.bins_touched == 0

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "requested": self.requested,
            "capacity": self.capacity,
            "placed": self.placed,
            "discarded": self.discarded,
            "bins_touched": self.bins_touched,
            "profile_weighted": self.profile_weighted,
        }


class VolumeDistributor:
    """
    Distributes volumes over footprints of a lattice.

    Supports:
    - Uniform per-bin allocation (strip mode)
    - Allocation proportional to remaining capacity (blade mode)
    - Profile-weighted allocation from a measured cross-section
    """

    def __init__(self, lattice: 'Lattice', reference_profile_depth: float = 0.1):
        self.lattice = lattice
        self.reference_profile_depth = reference_profile_depth

    def distribute(
        self,
        footprint: 'Footprint',
        volume: float,
        capacity: CapacityFn,
        apply: ApplyFn,
        profile: Optional['Profile'] = None,
    ) -> DistributionResult:
        """
        Allocate volume across footprint bins in proportion to capacity.

        Each bin receives min(volume, total_capacity) * capacity_i / total_capacity,
        so no allocation exceeds its bin's capacity. With a profile, each
        capacity is first scaled by max(0.1, depth(s) / reference_depth),
        where s is the bin's distance along the footprint segment. A zero
        total capacity is a silent no-op.

        Args:
            footprint: Bins to distribute over
            volume: Volume to place (m3)
            capacity: Per-bin capacity function
            apply: Per-bin application function
            profile: Optional measured depth profile

        Returns:
            DistributionResult with per-bin applied volumes
        """
        bins = self.lattice.bins
        hits = footprint.hits
        weighted = profile is not None and not footprint.degenerate

        if not hits or volume <= 0:
            return DistributionResult(requested=volume, capacity=0.0, profile_weighted=weighted)

        caps = np.array([capacity(bins[h.index]) for h in hits], dtype=np.float64)

        if weighted:
            depths = np.array([profile.depth_at(h.s) for h in hits])
            weights = np.maximum(MIN_PROFILE_WEIGHT, depths / self.reference_profile_depth)
            caps = caps * weights

        total = float(caps.sum())
        result = DistributionResult(requested=volume, capacity=total, profile_weighted=weighted)
        if total <= 0:
            return result

        remaining = min(volume, total)
        for hit, cap in zip(hits, caps):
            if cap <= 0:
                continue
            take = remaining * (cap / total)
            if take > 0:
                result.applied[hit.index] = result.applied.get(hit.index, 0.0) + apply(
                    bins[hit.index], take
                )

        return result

    def distribute_uniform(
        self,
        indices: Sequence[int],
        volume: float,
        capacity: CapacityFn,
        apply: ApplyFn,
    ) -> DistributionResult:
        """
        Split volume evenly across bins.

        Each bin's application clamps at its target and any excess is
        dropped. Capacity is only reported, it does not shape the split.
        """
        bins = self.lattice.bins
        total = float(sum(capacity(bins[idx]) for idx in indices))
        result = DistributionResult(requested=volume, capacity=total)

        if not indices or volume <= 0:
            return result

        share = volume / len(indices)
        for idx in indices:
            result.applied[idx] = result.applied.get(idx, 0.0) + apply(bins[idx], share)
        return result
