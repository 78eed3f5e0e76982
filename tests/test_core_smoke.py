"""Smoke tests for configuration, platforms, weeks and run metadata."""

from pathlib import Path

import pytest

from delivery_core import ConfigError, DataPaths, Platform, __version__
from delivery_core.metadata import (
    IngestMetadata,
    metadata_path,
    read_ingest_metadata,
    should_skip_ingest,
    write_ingest_metadata,
)
from delivery_core.strategies import STRATEGIES, get_strategy
from delivery_core.weeks import previous_week, unique_weeks, week_bounds


def test_version() -> None:
    assert __version__


def test_config_creation() -> None:
    """DataPaths derives every layer from the root."""
    paths = DataPaths.from_root("data")
    assert paths.data_root == Path("data")
    assert paths.raw_uploads == Path("data/a_raw/uploads")
    assert paths.locations_csv == Path("data/b_clean/locations.csv")
    assert paths.clean_transactions == Path("data/b_clean/transactions")
    assert paths.mart_weekly == Path("data/c_processed/weekly_financials")


def test_ensure_dirs(tmp_path) -> None:
    paths = DataPaths.from_root(tmp_path)
    paths.ensure_dirs()
    assert paths.raw_uploads.is_dir()
    assert paths.exports.is_dir()


class TestPlatform:
    @pytest.mark.parametrize("raw", ["ubereats", "Uber Eats", "uber_eats", "UBER-EATS"])
    def test_parse_spellings(self, raw) -> None:
        assert Platform.parse(raw) is Platform.UBER_EATS

    def test_parse_unknown(self) -> None:
        with pytest.raises(ConfigError, match="Unknown platform"):
            Platform.parse("postmates")

    def test_every_platform_has_a_strategy(self) -> None:
        assert set(STRATEGIES) == set(Platform)
        assert get_strategy("DoorDash").platform is Platform.DOORDASH

    def test_static_fields(self) -> None:
        assert Platform.GRUBHUB.alias_field == "grubhub_name"
        assert Platform.GRUBHUB.key_field == "grubhub_address"
        assert Platform.DOORDASH.display_name == "DoorDash"


class TestWeeks:
    def test_week_bounds(self) -> None:
        assert week_bounds("2025-10-12") == ("2025-10-06", "2025-10-12")
        assert week_bounds("2025-10-13") == ("2025-10-13", "2025-10-19")

    def test_previous_week(self) -> None:
        assert previous_week("2025-10-06", "2025-10-12") == ("2025-09-29", "2025-10-05")

    def test_unique_weeks_ignores_bad_dates(self) -> None:
        assert unique_weeks(["2025-10-07", "2025-10-08", "", "garbage", "2025-09-30"]) == [
            "2025-10-06",
            "2025-09-29",
        ]


class TestMetadata:
    @pytest.fixture
    def meta(self) -> IngestMetadata:
        return IngestMetadata(
            client_id="c1",
            platform="doordash",
            source_digest="ab" * 32,
            rows_read=10,
            transactions=9,
            skipped_rows=1,
            last_run="2025-10-13T09:00:00",
            status="ok",
        )

    def test_round_trip(self, tmp_path, meta) -> None:
        write_ingest_metadata(tmp_path, meta)
        assert read_ingest_metadata(tmp_path, "c1", "doordash", meta.source_digest) == meta

    def test_skip_only_after_success(self, tmp_path, meta) -> None:
        assert not should_skip_ingest(tmp_path, "c1", "doordash", meta.source_digest)
        write_ingest_metadata(tmp_path, meta)
        assert should_skip_ingest(tmp_path, "c1", "doordash", meta.source_digest)
        assert not should_skip_ingest(tmp_path, "c1", "doordash", meta.source_digest, force=True)

        meta.status = "failed"
        write_ingest_metadata(tmp_path, meta)
        assert not should_skip_ingest(tmp_path, "c1", "doordash", meta.source_digest)

    def test_corrupted_metadata_is_missing(self, tmp_path, meta) -> None:
        path = metadata_path(tmp_path, "c1", "doordash", meta.source_digest)
        path.parent.mkdir(parents=True)
        path.write_text("{not json", encoding="utf-8")
        assert read_ingest_metadata(tmp_path, "c1", "doordash", meta.source_digest) is None
