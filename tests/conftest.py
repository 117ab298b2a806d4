"""
Shared pytest fixtures and configuration for haul_evolution tests.
"""

import pytest

from haul_evolution.core.bins import Sample
from haul_evolution.core.config import EquipmentConfig
from haul_evolution.core.projection import to_geographic
from haul_evolution.core.trips import GeoPoint, TripRecord, TripGeometry

# Projection anchor shared by all synthetic sites
ORIGIN = (38.0, -92.0)


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "scenario: end-to-end trip replay scenarios"
    )


def geo(x, y):
    """Local (x, y) meters about ORIGIN to a GeoPoint."""
    lat, lon = to_geographic(x, y, *ORIGIN)
    return GeoPoint(lat, lon)


def samples_for_cells(cells, bin_size=1.0):
    """
    One sample at the center of each cell.

    Args:
        cells: {(bx, by): (z_exist, z_prop)}; either elevation may be None
    """
    samples = []
    for (bx, by), (z_exist, z_prop) in cells.items():
        lat, lon = to_geographic((bx + 0.5) * bin_size, (by + 0.5) * bin_size, *ORIGIN)
        samples.append(Sample(lat=lat, lon=lon, z_exist=z_exist, z_prop=z_prop))
    return samples


def center(bx, by, bin_size=1.0):
    """GeoPoint at the center of a bin."""
    return geo((bx + 0.5) * bin_size, (by + 0.5) * bin_size)


def make_trip(index, bcy, start, end=None, **geometry):
    """TripRecord with optional geometry keyword arguments."""
    return TripRecord(
        trip_index=index,
        bcy=bcy,
        start=start,
        end=end if end is not None else start,
        geometry=TripGeometry(**geometry),
    )


@pytest.fixture
def test_config():
    """Unit conversions and a 1 m bin / 1 m blade so volumes read as depths."""
    return EquipmentConfig(
        bin_size=1.0,
        equipment_width=1.0,
        max_cut_depth=5.0,
        swell=1.0,
        shrink=1.0,
        yd3_per_m3=1.0,
    )


@pytest.fixture
def grid_3x3():
    """3x3 bins, all existing 10 and proposed 8."""
    return {(bx, by): (10.0, 8.0) for bx in range(3) for by in range(3)}


@pytest.fixture
def make_engine(test_config):
    """Factory building an engine over cells with the shared origin."""
    from haul_evolution.core.engine import TripEvolutionEngine

    def factory(cells, config=None):
        config = config or test_config
        samples = samples_for_cells(cells, config.bin_size)
        return TripEvolutionEngine.from_samples(samples, config, origin=ORIGIN)

    return factory


@pytest.fixture
def sample_site():
    """Small synthetic site with trips for fast tests."""
    from haul_evolution.io.loaders import generate_sample_site

    return generate_sample_site(size=(12.0, 12.0), spacing=0.5, num_trips=6, seed=7)


@pytest.fixture
def tmp_output_dir(tmp_path):
    """Temporary directory for test outputs."""
    return tmp_path


@pytest.fixture
def cli_runner():
    """Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()
