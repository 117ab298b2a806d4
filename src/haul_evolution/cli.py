"""
Command Line Interface for Haul Evolution

Usage:
    haul-evolution info <samples>
    haul-evolution simulate <samples> <trips> [--mode blade|strip] [--every-n N]
    haul-evolution trip-dimensions <trips>
    haul-evolution generate-sample --output <dir>
"""

import json
import logging
import sys
from pathlib import Path
from typing import Optional

import click

from .core.bins import BinGrid
from .core.config import EquipmentConfig, EvolutionMode
from .core.engine import TripEvolutionEngine
from .core.footprint import trip_dimensions
from .core.lattice import Lattice, LatticeSnapshot
from .core.validation import ValidationError
from .io.loaders import (
    SampleLoader,
    TripLoader,
    generate_sample_site,
    write_samples_csv,
    write_trips_csv,
)
from .analysis.grading import GRADE_TOLERANCE_M, grade_check
from .utils.logging_utils import setup_logging

DEFAULTS = EquipmentConfig()


@click.group()
@click.version_option(version="0.1.0")
def main():
    """Haul Evolution Tool

    Replay earthmoving haul trips over a binned elevation surface and
    watch it evolve toward design grade.
    """
    pass


@main.command()
@click.argument('samples_file', type=click.Path(exists=True))
@click.option('--bin-size', default=DEFAULTS.bin_size, show_default=True,
              help='Bin edge length in meters')
def info(samples_file: str, bin_size: float):
    """Display information about an elevation sample file."""
    click.echo(f"Loading: {samples_file}")

    try:
        samples = SampleLoader.load(samples_file)
        grid = BinGrid.from_samples(samples, bin_size=bin_size)
        lattice = Lattice.from_grid(grid)
    except (OSError, ValueError) as e:
        click.echo(f"Error loading file: {e}", err=True)
        sys.exit(1)

    grid_stats = grid.statistics()
    lattice_stats = lattice.statistics()

    click.echo("\n" + "=" * 50)
    click.echo("SAMPLE INFO")
    click.echo("=" * 50)
    click.echo(f"File:           {samples_file}")
    click.echo(f"Samples:        {len(samples):,}")
    click.echo(f"Origin:         {lattice.lat0:.7f}, {lattice.lon0:.7f}")
    click.echo(f"")
    click.echo(f"Bins ({bin_size:g} m):")
    click.echo(f"  Populated:    {grid_stats['total_bins']:,}")
    click.echo(f"  Eligible:     {grid_stats['eligible_bins']:,}")
    click.echo(f"  Existing only:{grid_stats['existing_only']:>7,}")
    click.echo(f"  Proposed only:{grid_stats['proposed_only']:>7,}")
    click.echo(f"")
    click.echo(f"Lattice:")
    click.echo(f"  Bx:           {lattice_stats['min_bx']} to {lattice_stats['max_bx']}")
    click.echo(f"  By:           {lattice_stats['min_by']} to {lattice_stats['max_by']}")
    click.echo(f"  Faces:        {lattice_stats['faces']:,}")
    click.echo(f"  Mean offset:  {lattice_stats['mean_offset_from_target']:+.3f} m")
    click.echo("=" * 50)


@main.command()
@click.argument('samples_file', type=click.Path(exists=True))
@click.argument('trips_file', type=click.Path(exists=True))
@click.option('--mode', '-m', type=click.Choice([m.value for m in EvolutionMode]),
              default=EvolutionMode.BLADE.value, show_default=True,
              help='Footprint mode')
@click.option('--every-n', default=1, show_default=True,
              help='Report every Nth trip')
@click.option('--max-trips', type=click.IntRange(min=1), default=None,
              help='Apply at most this many trips (default: all)')
@click.option('--bin-size', default=DEFAULTS.bin_size, show_default=True,
              help='Bin edge length in meters')
@click.option('--equipment-width', default=DEFAULTS.equipment_width, show_default=True,
              help='Equipment width in meters')
@click.option('--max-cut-depth', default=DEFAULTS.max_cut_depth, show_default=True,
              help='Maximum cut depth per bin per trip in meters')
@click.option('--swell', default=DEFAULTS.swell, show_default=True,
              help='Bank to loose swell factor')
@click.option('--shrink', default=DEFAULTS.shrink, show_default=True,
              help='Loose to compacted shrink factor')
@click.option('--tolerance', default=GRADE_TOLERANCE_M, show_default=True,
              help='Grade check tolerance in meters')
@click.option('--output', '-o', type=click.Path(), help='Output JSON file for results')
@click.option('--verbose', '-v', is_flag=True, help='Log per-trip details')
def simulate(
    samples_file: str,
    trips_file: str,
    mode: str,
    every_n: int,
    max_trips: Optional[int],
    bin_size: float,
    equipment_width: float,
    max_cut_depth: float,
    swell: float,
    shrink: float,
    tolerance: float,
    output: Optional[str],
    verbose: bool,
):
    """Replay haul trips over an elevation surface.

    Trips are applied in ascending trip index order. Each trip removes its
    bank volume from the cut footprint and places the compacted volume on
    the fill footprint.

    Examples:

        # Blade mode, report every 10th trip
        haul-evolution simulate samples.csv trips.csv --every-n 10

        # Strip mode, first 50 trips only
        haul-evolution simulate samples.csv trips.csv -m strip --max-trips 50
    """
    setup_logging(logging.DEBUG if verbose else logging.WARNING)

    try:
        config = EquipmentConfig(
            bin_size=bin_size,
            equipment_width=equipment_width,
            max_cut_depth=max_cut_depth,
            swell=swell,
            shrink=shrink,
            mode=mode,
        )
    except ValidationError as e:
        click.echo(f"Error in equipment parameters: {e}", err=True)
        sys.exit(1)

    click.echo(f"Loading samples: {samples_file}")
    try:
        samples = SampleLoader.load(samples_file)
        click.echo(f"  Loaded {len(samples):,} samples")
        engine = TripEvolutionEngine.from_samples(samples, config)
        click.echo(f"  {len(engine.lattice):,} eligible bins, "
                   f"{len(engine.lattice.faces):,} faces")
    except (OSError, ValueError) as e:
        click.echo(f"Error loading samples: {e}", err=True)
        sys.exit(1)

    click.echo(f"Loading trips: {trips_file}")
    try:
        trips = TripLoader.load(trips_file)
        click.echo(f"  Loaded {len(trips):,} trips")
    except (OSError, ValueError) as e:
        click.echo(f"Error loading trips: {e}", err=True)
        sys.exit(1)

    def report(snapshot: LatticeSnapshot):
        if snapshot.trip is None:
            click.echo(f"  initial      mean z {snapshot.z_cur.mean():.4f}")
            return
        click.echo(f"  trip {snapshot.trip.trip_index:>6}  "
                   f"mean z {snapshot.z_cur.mean():.4f}")

    engine.subscribe(report)

    click.echo(f"Applying trips ({config.mode.value} mode)...")
    try:
        outcomes = engine.run(trips, every_n=every_n, max_trips=max_trips)
    except ValidationError as e:
        click.echo(f"Error applying trips: {e}", err=True)
        sys.exit(1)

    cut_total = sum(o.cut_placed for o in outcomes)
    fill_total = sum(o.fill_placed for o in outcomes)
    click.echo(f"")
    click.echo(f"Applied {len(outcomes):,} trips")
    click.echo(f"  Cut placed:   {cut_total:,.3f} m3")
    click.echo(f"  Fill placed:  {fill_total:,.3f} m3")
    click.echo(f"  Cut skipped:  {sum(1 for o in outcomes if o.cut_skipped)}")
    click.echo(f"  Fill skipped: {sum(1 for o in outcomes if o.fill_skipped)}")

    grade = grade_check(engine.lattice, tolerance=tolerance)
    click.echo("\n" + grade.summary())

    if output:
        try:
            with open(output, 'w', encoding='utf-8') as f:
                json.dump({
                    "config": {
                        "mode": config.mode.value,
                        "bin_size": config.bin_size,
                        "equipment_width": config.equipment_width,
                        "max_cut_depth": config.max_cut_depth,
                        "swell": config.swell,
                        "shrink": config.shrink,
                    },
                    "trips": [o.to_dict() for o in outcomes],
                    "grade": grade.to_dict(),
                }, f, indent=2)
            click.echo(f"\nResults saved to: {output}")
        except OSError as e:
            click.echo(f"Error saving output: {e}", err=True)
            sys.exit(1)


@main.command('trip-dimensions')
@click.argument('trips_file', type=click.Path(exists=True))
@click.option('--bin-size', default=DEFAULTS.bin_size, show_default=True,
              help='Bin edge length in meters')
@click.option('--equipment-width', default=DEFAULTS.equipment_width, show_default=True,
              help='Equipment width in meters')
def trip_dimensions_command(trips_file: str, bin_size: float, equipment_width: float):
    """Show footprint dimensions of the first trip in a trips file."""
    try:
        config = EquipmentConfig(bin_size=bin_size, equipment_width=equipment_width)
        trips = TripLoader.load(trips_file)
    except (OSError, ValueError) as e:
        click.echo(f"Error loading trips: {e}", err=True)
        sys.exit(1)

    click.echo(trip_dimensions(trips[0], config).summary())


@main.command('generate-sample')
@click.option('--output', '-o', required=True, type=click.Path(file_okay=False),
              help='Output directory for samples.csv and trips.csv')
@click.option('--size', '-s', default='30,30', help='Site size as "width,height" in meters')
@click.option('--spacing', default=0.5, help='Sample spacing in meters (default: 0.5)')
@click.option('--trips', 'num_trips', default=20, help='Number of trips (default: 20)')
@click.option('--bcy', default=2.0, help='Bank cubic yards per trip (default: 2.0)')
@click.option('--seed', default=42, help='Random seed (default: 42)')
def generate_sample(
    output: str,
    size: str,
    spacing: float,
    num_trips: int,
    bcy: float,
    seed: int,
):
    """Generate a synthetic site and trip log for testing.

    Example:
        haul-evolution generate-sample -o demo --size 40,40 --trips 50
    """
    try:
        width, height = [float(x) for x in size.split(',')]
    except ValueError:
        click.echo("Error: Size must be 'width,height'", err=True)
        sys.exit(1)

    click.echo(f"Generating sample site...")
    click.echo(f"  Size: {width} x {height} m")
    click.echo(f"  Spacing: {spacing} m")

    samples, trips = generate_sample_site(
        size=(width, height),
        spacing=spacing,
        num_trips=num_trips,
        bcy=bcy,
        seed=seed,
    )

    out_dir = Path(output)
    out_dir.mkdir(parents=True, exist_ok=True)
    write_samples_csv(samples, out_dir / "samples.csv")
    write_trips_csv(trips, out_dir / "trips.csv")

    click.echo(f"  Generated {len(samples):,} samples and {len(trips):,} trips")
    click.echo(f"Saved to: {out_dir}")


if __name__ == '__main__':
    main()
