"""
Trip Evolution Engine

Replays haul trips in ascending trip-index order against a shared lattice,
moving each trip's soil from its cut footprint to its fill footprint.

Per trip:
    1. Convert bank cubic yards to bank, loose and compacted cubic meters
    2. Resolve the cut and fill footprints
    3. Remove the bank volume from the cut footprint
    4. Add the compacted volume to the fill footprint
    5. Hand a read-only snapshot of the lattice to observers

A trip that carries planned per-bin depths for a half applies them
directly to those bins instead of resolving a footprint for that half.

Cut and fill halves are evaluated independently: a half with an empty
footprint or zero capacity is skipped without affecting the other.
Applied trips are never rolled back.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import partial
from typing import Callable, Iterable, Iterator, List, Optional, Sequence, Tuple

from .bins import BinGrid, Sample
from .config import EquipmentConfig, EvolutionMode
from .distribution import (
    DistributionResult,
    VolumeDistributor,
    apply_cut,
    apply_fill,
    cut_capacity,
    fill_capacity,
)
from .footprint import Footprint, FootprintResolver
from .lattice import Lattice, LatticeSnapshot
from .trips import BinOperation, TripRecord
from .validation import TripOrderError, ValidationError, validate_non_empty

logger = logging.getLogger(__name__)

Observer = Callable[[LatticeSnapshot], None]

__all__ = [
    "EquipmentConfig",
    "EvolutionMode",
    "TripOutcome",
    "TripEvolutionEngine",
]


@dataclass
class TripOutcome:
    """
    Result of applying one trip.

    Attributes:
        trip: The trip applied
        bank_m3: In-situ volume removed at the cut (m3)
        loose_m3: Volume after excavation swell (m3)
        compacted_m3: Volume placed at the fill after shrink (m3)
        cut: Cut distribution, None when the cut half was skipped
        fill: Fill distribution, None when the fill half was skipped
    """
    trip: TripRecord
    bank_m3: float
    loose_m3: float
    compacted_m3: float
    cut: Optional[DistributionResult] = None
    fill: Optional[DistributionResult] = None

    @property
    def cut_skipped(self) -> bool:
        return self.cut is None or self.cut.is_noop

    @property
    def fill_skipped(self) -> bool:
        return self.fill is None or self.fill.is_noop

    @property
    def cut_placed(self) -> float:
        return self.cut.placed if self.cut is not None else 0.0

    @property
    def fill_placed(self) -> float:
        return self.fill.placed if self.fill is not None else 0.0

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "trip_index": self.trip.trip_index,
            "bcy": self.trip.bcy,
            "bank_m3": self.bank_m3,
            "loose_m3": self.loose_m3,
            "compacted_m3": self.compacted_m3,
            "cut": self.cut.to_dict() if self.cut is not None else None,
            "fill": self.fill.to_dict() if self.fill is not None else None,
        }


class TripEvolutionEngine:
    """
    Evolves a lattice toward its target surface one trip at a time.

    The engine is the single writer of bin elevations. Observers receive
    read-only snapshots and never the live lattice.

    Example:
        >>> engine = TripEvolutionEngine.from_samples(samples, EquipmentConfig())
        >>> engine.subscribe(lambda snap: print(snap.trip, snap.z_cur.mean()))
        >>> outcomes = engine.run(trips)
    """

    def __init__(
        self,
        lattice: Lattice,
        config: Optional[EquipmentConfig] = None,
        observers: Optional[Iterable[Observer]] = None,
    ):
        self.lattice = lattice
        self.config = config or EquipmentConfig(bin_size=lattice.bin_size)

        if abs(self.config.bin_size - lattice.bin_size) > 1e-12:
            raise ValidationError(
                f"Configured bin size {self.config.bin_size} does not match "
                f"the lattice bin size {lattice.bin_size}"
            )

        self.resolver = FootprintResolver(lattice, self.config)
        self.distributor = VolumeDistributor(
            lattice, reference_profile_depth=self.config.reference_profile_depth
        )
        self.observers: List[Observer] = list(observers or [])
        self._last_index: Optional[int] = None

    @classmethod
    def from_samples(
        cls,
        samples: Sequence[Sample],
        config: Optional[EquipmentConfig] = None,
        origin: Optional[Tuple[float, float]] = None,
    ) -> TripEvolutionEngine:
        """
        Bin samples and build the lattice in one step.

        Args:
            samples: Elevation samples
            config: Equipment parameters (bin size is taken from here)
            origin: Optional (lat0, lon0) projection anchor

        Raises:
            EmptyInputError: If there are no samples or no eligible bins
        """
        config = config or EquipmentConfig()
        grid = BinGrid.from_samples(samples, bin_size=config.bin_size, origin=origin)
        return cls(Lattice.from_grid(grid), config)

    @property
    def last_trip_index(self) -> Optional[int]:
        """Index of the most recently applied trip, None before the first."""
        return self._last_index

    def subscribe(self, observer: Observer) -> None:
        self.observers.append(observer)

    def _notify(self, trip: Optional[TripRecord]) -> None:
        if not self.observers:
            return
        snapshot = self.lattice.snapshot(trip)
        for observer in self.observers:
            observer(snapshot)

    # ------------------------------------------------------------------
    # Per-trip application
    # ------------------------------------------------------------------

    def _distribute(self, footprint: Footprint, volume: float, capacity, apply, profile):
        if self.config.mode is EvolutionMode.STRIP:
            return self.distributor.distribute_uniform(
                footprint.indices, volume, capacity, apply
            )
        return self.distributor.distribute(footprint, volume, capacity, apply, profile)

    def _apply_planned(
        self,
        trip: TripRecord,
        operations: Sequence[BinOperation],
        capacity,
        apply,
        label: str,
    ) -> Optional[DistributionResult]:
        """
        Apply planned per-bin depths directly, bypassing footprint resolution.

        Each depth is applied to the bin at its lattice key and clamped at
        the bin's target. Keys outside the lattice and non-positive depths
        are skipped.
        """
        area = self.lattice.bin_area
        index_by_key = self.lattice.index_by_key
        bins = self.lattice.bins

        planned = [op for op in operations if op.depth_m > 0]
        result = DistributionResult(
            requested=sum(op.depth_m for op in planned) * area,
            capacity=0.0,
        )

        missing = 0
        for op in planned:
            idx = index_by_key.get(op.key)
            if idx is None:
                missing += 1
                continue
            result.capacity += capacity(bins[idx])
            result.applied[idx] = result.applied.get(idx, 0.0) + apply(
                bins[idx], op.depth_m * area
            )

        if missing:
            logger.debug(
                f"Trip {trip.trip_index}: {missing} planned {label} bins "
                "outside the lattice"
            )
        if not result.applied:
            logger.info(f"Trip {trip.trip_index}: {label} skipped, no planned bins in lattice")
            return None
        if result.is_noop:
            logger.info(f"Trip {trip.trip_index}: {label} skipped, zero capacity")
        return result

    def _cut(self, trip: TripRecord, bank_m3: float) -> Optional[DistributionResult]:
        if trip.geometry.cut_bins:
            area = self.lattice.bin_area
            return self._apply_planned(
                trip,
                trip.geometry.cut_bins,
                partial(cut_capacity, bin_area=area, max_cut_depth=float("inf")),
                partial(apply_cut, bin_area=area),
                "cut",
            )

        footprint = self.resolver.resolve_cut(trip)
        logger.debug(
            f"Trip {trip.trip_index}: cut segment {footprint.segment}, "
            f"{len(footprint)} bins"
        )
        if footprint.is_empty:
            logger.info(f"Trip {trip.trip_index}: cut skipped, no bins in footprint")
            return None

        area = self.lattice.bin_area
        if self.config.mode is EvolutionMode.STRIP:
            # Strip mode clamps at target only
            capacity = partial(cut_capacity, bin_area=area, max_cut_depth=float("inf"))
        else:
            capacity = partial(
                cut_capacity, bin_area=area, max_cut_depth=self.config.max_cut_depth
            )

        result = self._distribute(
            footprint,
            bank_m3,
            capacity,
            partial(apply_cut, bin_area=area),
            trip.geometry.cut_profile,
        )
        if result.is_noop:
            logger.info(f"Trip {trip.trip_index}: cut skipped, zero capacity")
        return result

    def _fill(self, trip: TripRecord, compacted_m3: float) -> Optional[DistributionResult]:
        if trip.geometry.fill_bins:
            area = self.lattice.bin_area
            return self._apply_planned(
                trip,
                trip.geometry.fill_bins,
                partial(fill_capacity, bin_area=area),
                partial(apply_fill, bin_area=area),
                "fill",
            )

        footprint = self.resolver.resolve_fill(trip)
        logger.debug(
            f"Trip {trip.trip_index}: fill segment {footprint.segment}, "
            f"{len(footprint)} bins"
        )
        if footprint.is_empty:
            logger.info(f"Trip {trip.trip_index}: fill skipped, no bins in footprint")
            return None

        area = self.lattice.bin_area
        result = self._distribute(
            footprint,
            compacted_m3,
            partial(fill_capacity, bin_area=area),
            partial(apply_fill, bin_area=area),
            trip.geometry.fill_profile,
        )
        if result.is_noop:
            logger.info(f"Trip {trip.trip_index}: fill skipped, zero capacity")
        return result

    def apply_trip(self, trip: TripRecord) -> TripOutcome:
        """
        Apply a single trip to the lattice.

        Args:
            trip: Trip whose index is greater than every trip applied so far

        Returns:
            TripOutcome with the cut and fill distributions

        Raises:
            TripOrderError: If the trip index does not increase
        """
        if self._last_index is not None and trip.trip_index <= self._last_index:
            raise TripOrderError(
                f"Trip {trip.trip_index} applied after trip {self._last_index}; "
                "trips must be applied in strictly increasing index order"
            )

        bank = self.config.bank_m3(trip.bcy)
        outcome = TripOutcome(
            trip=trip,
            bank_m3=bank,
            loose_m3=self.config.loose_m3(trip.bcy),
            compacted_m3=self.config.compacted_m3(trip.bcy),
        )

        outcome.cut = self._cut(trip, outcome.bank_m3)
        outcome.fill = self._fill(trip, outcome.compacted_m3)
        self._last_index = trip.trip_index

        logger.info(
            f"Trip {trip.trip_index}: bank {outcome.bank_m3:.3f} m3, "
            f"cut {outcome.cut_placed:.3f} m3, "
            f"fill {outcome.fill_placed:.3f} of {outcome.compacted_m3:.3f} m3"
        )
        return outcome

    # ------------------------------------------------------------------
    # Replay
    # ------------------------------------------------------------------

    def _ordered(self, trips: Iterable[TripRecord]) -> List[TripRecord]:
        """Sort trips by index, keeping the first of any duplicate index."""
        ordered: List[TripRecord] = []
        for trip in sorted(trips, key=lambda t: t.trip_index):
            if ordered and trip.trip_index == ordered[-1].trip_index:
                logger.warning(f"Skipping duplicate trip index {trip.trip_index}")
                continue
            ordered.append(trip)
        return ordered

    def iter_states(
        self,
        trips: Iterable[TripRecord],
        max_trips: Optional[int] = None,
    ) -> Iterator[TripOutcome]:
        """
        Apply trips in ascending index order, yielding after each one.

        Trips at or below the last applied index are skipped with a warning.
        """
        if max_trips is not None and max_trips < 1:
            raise ValidationError(f"max_trips must be at least 1, got {max_trips}")

        ordered = self._ordered(trips)
        if max_trips is not None:
            ordered = ordered[:max_trips]

        for trip in ordered:
            if self._last_index is not None and trip.trip_index <= self._last_index:
                logger.warning(
                    f"Skipping trip {trip.trip_index}, already past {self._last_index}"
                )
                continue
            yield self.apply_trip(trip)

    def run(
        self,
        trips: Sequence[TripRecord],
        every_n: int = 1,
        max_trips: Optional[int] = None,
    ) -> List[TripOutcome]:
        """
        Replay a trip sequence.

        Observers get the initial state, every Nth applied trip, and the
        final trip.

        Args:
            trips: Trips in any order
            every_n: Notify observers after every Nth trip
            max_trips: Apply at most this many trips (None applies all)

        Returns:
            One TripOutcome per applied trip

        Raises:
            EmptyInputError: If trips is empty
            ValidationError: If every_n or max_trips is below 1
        """
        validate_non_empty(trips, "trips")
        if every_n < 1:
            raise ValidationError(f"every_n must be at least 1, got {every_n}")
        if max_trips is not None and max_trips < 1:
            raise ValidationError(f"max_trips must be at least 1, got {max_trips}")

        self._notify(None)

        outcomes: List[TripOutcome] = []
        for outcome in self.iter_states(trips, max_trips=max_trips):
            outcomes.append(outcome)
            if len(outcomes) % every_n == 0:
                self._notify(outcome.trip)

        if outcomes and len(outcomes) % every_n != 0:
            self._notify(outcomes[-1].trip)

        logger.info(f"Applied {len(outcomes)} trips")
        return outcomes
