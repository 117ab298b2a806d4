"""
Basic Haul Evolution Example

This example demonstrates:
1. Generating a synthetic site and trip log
2. Binning samples onto the lattice
3. Replaying trips in blade mode while watching snapshots
4. Checking the final surface against design grade
5. Comparing blade and strip footprints

Run from the project root:
    python examples/basic_simulation.py
"""

import sys
from pathlib import Path

# Add src to path for development
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from haul_evolution.core.bins import BinGrid
from haul_evolution.core.config import EquipmentConfig, EvolutionMode
from haul_evolution.core.engine import TripEvolutionEngine
from haul_evolution.core.footprint import trip_dimensions
from haul_evolution.core.lattice import Lattice
from haul_evolution.io.loaders import generate_sample_site
from haul_evolution.analysis.grading import grade_check


def main():
    print("=" * 60)
    print("HAUL EVOLUTION - EXAMPLE")
    print("=" * 60)

    # =========================================================================
    # Step 1: Generate a site
    # =========================================================================
    print("\n[1] Generating sample site...")

    samples, trips = generate_sample_site(
        size=(30.0, 20.0),       # 30m x 20m pad
        spacing=0.3,             # one sample every 0.3m
        hill_height=0.4,         # +/- 0.4m around design grade
        num_trips=60,
        bcy=1.5,
    )
    print(f"    Samples: {len(samples):,}")
    print(f"    Trips:   {len(trips):,}")

    # =========================================================================
    # Step 2: Bin samples
    # =========================================================================
    print("\n[2] Binning samples...")

    config = EquipmentConfig()
    grid = BinGrid.from_samples(samples, bin_size=config.bin_size)
    lattice = Lattice.from_grid(grid)

    stats = lattice.statistics()
    print(f"    Bins:    {stats['bins']:,} ({stats['faces']:,} faces)")
    print(f"    Offset from target: {stats['mean_offset_from_target']:+.3f} m")

    print("\n" + trip_dimensions(trips[1], config).summary())

    # =========================================================================
    # Step 3: Replay trips
    # =========================================================================
    print("\n[3] Replaying trips (blade mode)...")

    engine = TripEvolutionEngine(lattice, config)

    def report(snapshot):
        label = "initial" if snapshot.trip is None else f"trip {snapshot.trip.trip_index:>3}"
        high = (snapshot.z_cur - snapshot.z_prop).max()
        print(f"    {label}: highest bin {high:+.3f} m above grade")

    engine.subscribe(report)
    outcomes = engine.run(trips, every_n=15)

    cut = sum(o.cut_placed for o in outcomes)
    fill = sum(o.fill_placed for o in outcomes)
    print(f"    Cut placed:  {cut:.2f} m3")
    print(f"    Fill placed: {fill:.2f} m3")

    # =========================================================================
    # Step 4: Grade check
    # =========================================================================
    print("\n[4] Grade check...")
    print(grade_check(engine.lattice).summary())

    # =========================================================================
    # Step 5: Strip mode for comparison
    # =========================================================================
    print("\n[5] Strip mode on the same site...")

    strip_config = EquipmentConfig(mode=EvolutionMode.STRIP)
    strip_engine = TripEvolutionEngine.from_samples(samples, strip_config)
    strip_engine.run(trips)

    blade_report = grade_check(engine.lattice)
    strip_report = grade_check(strip_engine.lattice)
    print(f"    Blade: {blade_report.percent_on_grade:.1f}% on grade")
    print(f"    Strip: {strip_report.percent_on_grade:.1f}% on grade")

    print("\n" + "=" * 60)
    print("Done.")


if __name__ == "__main__":
    main()
