"""
Tests for sample and trip loading.
"""

import logging

import pytest

from haul_evolution.io.loaders import (
    SampleLoader,
    TripLoader,
    generate_sample_site,
    parse_bin_operations,
    parse_profile,
    write_samples_csv,
    write_trips_csv,
)
from haul_evolution.core.trips import BinOperation
from haul_evolution.core.validation import EmptyInputError, ValidationError

from conftest import center, make_trip


def _write(path, text):
    path.write_text(text, encoding="utf-8")
    return path


TRIP_HEADER = "trip_index,start_lat,start_lon,end_lat,end_lon,BCY"


class TestParseProfile:
    """Tests for profile string parsing."""

    def test_sorted_pairs(self):
        profile = parse_profile("1.5=0.06;0=0.05;3=0.04")
        assert profile.points == ((0.0, 0.05), (1.5, 0.06), (3.0, 0.04))

    def test_bad_pairs_ignored(self):
        profile = parse_profile("a=1;2;;1=0.1;3=x")
        assert profile.points == ((1.0, 0.1),)

    def test_splits_on_first_equals(self):
        assert parse_profile("1=2=3") is None

    @pytest.mark.parametrize("text", [None, "", "   ", "junk"])
    def test_nothing_parses(self, text):
        assert parse_profile(text) is None


class TestParseBinOperations:
    """Tests for planned per-bin operation parsing."""

    def test_entries_in_text_order(self):
        ops = parse_bin_operations("4:7=0.05; 5:7=0.04")
        assert [(op.bx, op.by, op.depth_m) for op in ops] == [(4, 7, 0.05), (5, 7, 0.04)]

    def test_negative_keys(self):
        ops = parse_bin_operations("-2:-3=0.1")
        assert ops[0].key == (-2, -3)

    def test_bad_entries_ignored(self):
        ops = parse_bin_operations("x:1=2;3=1;1:2=;1.5:2=1;;2:2=0.3")
        assert [op.key for op in ops] == [(2, 2)]

    @pytest.mark.parametrize("text", [None, "", "  ", "junk"])
    def test_nothing_parses(self, text):
        assert parse_bin_operations(text) == ()


class TestSampleLoader:
    """Tests for elevation sample files."""

    def test_substring_header_match(self, tmp_path):
        path = _write(tmp_path / "site.agd", (
            "Point,Latitude (deg),Longitude (deg),Existing Elev,Proposed Elev,Code\n"
            "1,38.0,-92.0,100.5,99.0,A\n"
            "2,38.00001,-92.00001,,99.0,A\n"
        ))
        samples = SampleLoader.load(path)
        assert len(samples) == 2
        assert samples[0].z_exist == 100.5
        assert samples[1].z_exist is None
        assert samples[1].z_prop == 99.0

    def test_case_insensitive_headers(self, tmp_path):
        path = _write(tmp_path / "site.csv", "LATITUDE,longitude,existing\n38,-92,1\n")
        assert SampleLoader.load(path)[0].lat == 38.0

    def test_malformed_rows_dropped(self, tmp_path, caplog):
        path = _write(tmp_path / "site.csv", (
            "Latitude,Longitude,Existing,Proposed\n"
            "38.0,-92.0,100,99\n"
            "north,-92.0,100,99\n"
            "38.0,,100,99\n"
            "38.0,-92.0,,\n"
            "\n"
            "38.0,-92.0,nan,99\n"
        ))
        with caplog.at_level(logging.WARNING, logger="haul_evolution"):
            samples = SampleLoader.load(path)

        assert len(samples) == 2
        assert samples[1].z_exist is None
        assert "dropped 3 malformed sample rows" in caplog.text

    def test_missing_lat_lon_columns(self, tmp_path):
        path = _write(tmp_path / "site.csv", "X,Y,Existing\n1,2,3\n")
        with pytest.raises(ValidationError, match="Latitude"):
            SampleLoader.load(path)

    def test_empty_file(self, tmp_path):
        path = _write(tmp_path / "site.csv", "Latitude,Longitude,Existing\n")
        with pytest.raises(EmptyInputError):
            SampleLoader.load(path)

    def test_byte_order_mark(self, tmp_path):
        path = tmp_path / "site.csv"
        path.write_text("Latitude,Longitude,Existing\n38,-92,1\n", encoding="utf-8-sig")
        samples = SampleLoader.load(path)
        assert samples[0].lat == 38.0
        assert samples[0].z_exist == 1.0

    def test_unsupported_format(self, tmp_path):
        path = _write(tmp_path / "site.xml", "<xml/>")
        with pytest.raises(ValueError, match="Unsupported format"):
            SampleLoader.load(path)


class TestTripLoader:
    """Tests for trip files."""

    def test_required_columns_only(self, tmp_path):
        path = _write(tmp_path / "trips.csv", (
            f"{TRIP_HEADER}\n"
            "2,38.0,-92.0,38.001,-92.001,12.5\n"
            "1,38.0,-92.0,38.002,-92.002,10\n"
        ))
        trips = TripLoader.load(path)
        assert [t.trip_index for t in trips] == [1, 2]
        assert trips[1].bcy == 12.5
        assert not trips[0].has_detailed_geometry
        assert trips[0].geometry.cut_profile is None

    def test_missing_required_column(self, tmp_path):
        path = _write(tmp_path / "trips.csv", "trip_index,start_lat,start_lon,end_lat,end_lon\n1,1,1,1,1\n")
        with pytest.raises(ValidationError, match="bcy"):
            TripLoader.load(path)

    def test_exact_name_match(self, tmp_path):
        path = _write(tmp_path / "trips.csv", (
            "trip_index,start_lat,start_lon,end_lat,end_lon,BCY_total\n1,1,1,1,1,1\n"
        ))
        with pytest.raises(ValidationError):
            TripLoader.load(path)

    def test_detailed_geometry(self, tmp_path):
        path = _write(tmp_path / "trips.csv", (
            f"{TRIP_HEADER},cut_start_lat,cut_start_lon,cut_stop_lat,cut_stop_lon,"
            "fill_start_lat,fill_start_lon,fill_stop_lat,fill_stop_lon,"
            "cut_length_m,heading_deg,cut_profile,fill_profile\n"
            "1,38,-92,38.001,-92,3,38,-92,38.0001,-92,38.001,-92,38.0011,-92,"
            "4.5,12.0,0=0.05;2=0.06,\n"
        ))
        trip = TripLoader.load(path)[0]

        assert trip.has_detailed_geometry
        assert trip.geometry.cut.stop.lat == 38.0001
        assert trip.geometry.cut_length_m == 4.5
        assert trip.geometry.heading_deg == 12.0
        assert trip.geometry.cut_profile.points == ((0.0, 0.05), (2.0, 0.06))
        assert trip.geometry.fill_profile is None

    def test_byte_order_mark(self, tmp_path):
        path = tmp_path / "trips.csv"
        path.write_text(f"{TRIP_HEADER}\n1,38,-92,38.0001,-92,2\n", encoding="utf-8-sig")

        trips = TripLoader.load(path)

        assert [t.trip_index for t in trips] == [1]
        assert trips[0].bcy == 2.0

    def test_planned_bin_columns(self, tmp_path):
        path = _write(tmp_path / "trips.csv", (
            f"{TRIP_HEADER},cut_bins,fill_bins\n"
            "1,38,-92,38.001,-92,3,4:7=0.05;5:7=0.04,\n"
        ))
        geometry = TripLoader.load(path)[0].geometry

        assert [op.key for op in geometry.cut_bins] == [(4, 7), (5, 7)]
        assert geometry.fill_bins == ()

    def test_partial_segment_is_absent(self, tmp_path):
        path = _write(tmp_path / "trips.csv", (
            f"{TRIP_HEADER},cut_start_lat,cut_start_lon,cut_stop_lat,cut_stop_lon\n"
            "1,38,-92,38.001,-92,3,38,-92,,-92\n"
        ))
        assert TripLoader.load(path)[0].geometry.cut is None

    def test_malformed_rows_dropped(self, tmp_path, caplog):
        path = _write(tmp_path / "trips.csv", (
            f"{TRIP_HEADER}\n"
            "1,38,-92,38.001,-92,3\n"
            "x,38,-92,38.001,-92,3\n"
            "2,38,-92,38.001,-92,\n"
            "2.5,38,-92,38.001,-92,3\n"
            "3,38,-92,38.001,-92,3,extra\n"
        ))
        with caplog.at_level(logging.WARNING, logger="haul_evolution"):
            trips = TripLoader.load(path)

        assert [t.trip_index for t in trips] == [1, 3]
        assert "dropped 3 malformed trip rows" in caplog.text

    def test_no_trips(self, tmp_path):
        path = _write(tmp_path / "trips.csv", f"{TRIP_HEADER}\n")
        with pytest.raises(EmptyInputError):
            TripLoader.load(path)


class TestWriters:
    """Written files read back through the loaders."""

    def test_generated_site_loads(self, tmp_path):
        samples, trips = generate_sample_site(size=(6.0, 6.0), spacing=1.0, num_trips=4)
        write_samples_csv(samples, tmp_path / "samples.csv")
        write_trips_csv(trips, tmp_path / "trips.csv")

        loaded_samples = SampleLoader.load(tmp_path / "samples.csv")
        loaded_trips = TripLoader.load(tmp_path / "trips.csv")

        assert len(loaded_samples) == len(samples)
        assert [t.trip_index for t in loaded_trips] == [1, 2, 3, 4]
        assert loaded_trips[1].has_detailed_geometry
        assert loaded_trips[1].geometry.cut_profile is not None
        assert not loaded_trips[0].has_detailed_geometry

    def test_planned_bins_written(self, tmp_path):
        trip = make_trip(
            1, 2.0, center(0, 0), center(3, 0),
            cut_bins=(BinOperation(0, 0, 0.05), BinOperation(1, 0, 0.04)),
            fill_bins=(BinOperation(3, 0, 0.03),),
        )
        write_trips_csv([trip], tmp_path / "trips.csv")

        loaded = TripLoader.load(tmp_path / "trips.csv")[0].geometry

        assert loaded.cut_bins == trip.geometry.cut_bins
        assert loaded.fill_bins == trip.geometry.fill_bins


class TestGenerateSampleSite:
    """Tests for synthetic site generation."""

    def test_reproducible(self):
        a = generate_sample_site(size=(4.0, 4.0), num_trips=3, seed=1)
        b = generate_sample_site(size=(4.0, 4.0), num_trips=3, seed=1)
        assert a == b

    def test_counts(self):
        samples, trips = generate_sample_site(size=(5.0, 4.0), spacing=0.5, num_trips=7)
        assert len(samples) == 10 * 8
        assert len(trips) == 7
        assert all(s.z_prop == 100.0 for s in samples)
