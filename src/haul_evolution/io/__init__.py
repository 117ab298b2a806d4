"""I/O modules for loading and saving samples and trips."""

from .loaders import (
    SampleLoader,
    TripLoader,
    parse_profile,
    parse_bin_operations,
    write_samples_csv,
    write_trips_csv,
    generate_sample_site,
)

__all__ = [
    "SampleLoader",
    "TripLoader",
    "parse_profile",
    "parse_bin_operations",
    "write_samples_csv",
    "write_trips_csv",
    "generate_sample_site",
]
