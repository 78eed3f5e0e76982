"""Unified configuration for the delivery payments core.

This module provides the filesystem layout used by the CSV-backed
repositories and the ingestion run metadata, plus the named business
constants shared by the resolver, the metrics layer and the income
statement.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

# Synthetic cost of goods sold, as a share of sales including tax. This is a
# business approximation, not an observed figure; callers may override it.
COGS_RATE = 0.46

# Edit-distance similarity gates (0..1). The backfill gate is deliberately
# higher than the gate used for operator-facing suggestions.
BACKFILL_SIMILARITY_THRESHOLD = 0.90
SUGGESTION_SIMILARITY_THRESHOLD = 0.80

UNMAPPED_BUCKET_TAG = "unmapped_bucket"
UNMAPPED_BUCKET_NAME = "Unmapped Locations"


@dataclass
class DataPaths:
    """All filesystem paths used by the durable store.

    Attributes:
        data_root: Root directory for all data layers.

    Directory Structure:
        data_root/
        ├── a_raw/
        │   └── uploads/            # original platform CSVs + _meta/ run records
        ├── b_clean/
        │   ├── clients.csv
        │   ├── locations.csv
        │   └── transactions/       # one CSV per platform
        └── c_processed/
            ├── weekly_financials/  # weekly_financials.csv
            └── exports/            # CSV exports for the dashboard layer
    """

    data_root: Path

    @classmethod
    def from_root(cls, data_root: str | Path) -> DataPaths:
        """Create DataPaths from a root directory.

        Args:
            data_root: Root directory for all data.

        Returns:
            DataPaths instance.

        Examples:
            >>> paths = DataPaths.from_root("data")
            >>> paths.locations_csv
            PosixPath('data/b_clean/locations.csv')
        """
        if isinstance(data_root, str):
            data_root = Path(data_root)
        return cls(data_root=data_root)

    @property
    def raw_uploads(self) -> Path:
        """Bronze layer: uploaded CSV buffers as received."""
        return self.data_root / "a_raw" / "uploads"

    @property
    def clean_root(self) -> Path:
        return self.data_root / "b_clean"

    @property
    def clean_transactions(self) -> Path:
        """Silver layer: deduplicated transactions, one CSV per platform."""
        return self.clean_root / "transactions"

    @property
    def clients_csv(self) -> Path:
        return self.clean_root / "clients.csv"

    @property
    def locations_csv(self) -> Path:
        return self.clean_root / "locations.csv"

    @property
    def mart_weekly(self) -> Path:
        """Gold layer: weekly financials per location."""
        return self.data_root / "c_processed" / "weekly_financials"

    @property
    def exports(self) -> Path:
        """Gold layer: CSV exports consumed by the reporting layer."""
        return self.data_root / "c_processed" / "exports"

    def ensure_dirs(self) -> None:
        """Create all directories in the data structure."""
        for path in [
            self.raw_uploads,
            self.clean_transactions,
            self.mart_weekly,
            self.exports,
        ]:
            path.mkdir(parents=True, exist_ok=True)
