"""Durable repositories backed by CSV files under a DataPaths root.

Each repository keeps its working set in memory (reusing the in-memory
implementations) and rewrites its CSV after every mutation. Files are
written with ``utf-8-sig`` so they open cleanly in spreadsheet tools.
"""

from __future__ import annotations

import logging
from dataclasses import fields
from pathlib import Path

import pandas as pd

from delivery_core.config import DataPaths
from delivery_core.exceptions import RepositoryError
from delivery_core.models import TRANSACTION_TYPES, Client, Location, WeeklyFinancial
from delivery_core.platforms import Platform
from delivery_core.repositories.memory import (
    InMemoryClientRepository,
    InMemoryLocationRepository,
    InMemoryTransactionRepository,
    InMemoryWeeklyFinancialRepository,
)

logger = logging.getLogger(__name__)


def read_records(path: Path, record_type: type) -> list:
    """Load records of ``record_type`` from a CSV file (missing file -> [])."""
    if not path.exists():
        return []
    try:
        df = pd.read_csv(path, dtype=str, keep_default_na=False, encoding="utf-8-sig")
    except pd.errors.EmptyDataError:
        return []
    except (OSError, pd.errors.ParserError) as e:
        raise RepositoryError(f"Could not read {path}: {e}") from e
    logger.debug("Loaded %d %s records from %s", len(df), record_type.__name__, path)
    return [record_type.from_dict(rec) for rec in df.to_dict(orient="records")]


def write_records(path: Path, record_type: type, records: list) -> None:
    """Rewrite a CSV file with the given records."""
    columns = [f.name for f in fields(record_type)]
    df = pd.DataFrame([r.to_dict() for r in records], columns=columns)
    path.parent.mkdir(parents=True, exist_ok=True)
    try:
        df.to_csv(path, index=False, encoding="utf-8-sig")
    except OSError as e:
        raise RepositoryError(f"Could not write {path}: {e}") from e


class CsvClientRepository(InMemoryClientRepository):
    def __init__(self, paths: DataPaths) -> None:
        super().__init__()
        self.path = paths.clients_csv
        for client in read_records(self.path, Client):
            self._clients[client.id] = client

    def _changed(self) -> None:
        write_records(self.path, Client, list(self._clients.values()))


class CsvLocationRepository(InMemoryLocationRepository):
    def __init__(self, paths: DataPaths) -> None:
        super().__init__()
        self.path = paths.locations_csv
        for location in read_records(self.path, Location):
            self._locations[location.id] = location

    def _changed(self) -> None:
        write_records(self.path, Location, list(self._locations.values()))


class CsvTransactionRepository(InMemoryTransactionRepository):
    def __init__(self, paths: DataPaths) -> None:
        super().__init__()
        self.directory = paths.clean_transactions
        for platform in Platform:
            for txn in read_records(self._path(platform), TRANSACTION_TYPES[platform]):
                self._rows[platform][(txn.client_id, txn.natural_key)] = txn

    def _path(self, platform: Platform) -> Path:
        return self.directory / f"{platform.value}_transactions.csv"

    def _changed(self, platform: Platform) -> None:
        write_records(
            self._path(platform),
            TRANSACTION_TYPES[platform],
            list(self._rows[platform].values()),
        )


class CsvWeeklyFinancialRepository(InMemoryWeeklyFinancialRepository):
    def __init__(self, paths: DataPaths) -> None:
        super().__init__()
        self.path = paths.mart_weekly / "weekly_financials.csv"
        self._rows = read_records(self.path, WeeklyFinancial)

    def _changed(self) -> None:
        write_records(self.path, WeeklyFinancial, self._rows)
