"""Persistence layer: repository protocols and their implementations.

Examples:
    >>> from delivery_core.repositories import Repositories
    >>> repos = Repositories.in_memory()
    >>> repos = Repositories.from_paths(DataPaths.from_root("data"))
"""

from __future__ import annotations

from dataclasses import dataclass

from delivery_core.config import DataPaths
from delivery_core.repositories.base import (
    ClientRepository,
    LocationRepository,
    TransactionRepository,
    WeeklyFinancialRepository,
)
from delivery_core.repositories.csv_store import (
    CsvClientRepository,
    CsvLocationRepository,
    CsvTransactionRepository,
    CsvWeeklyFinancialRepository,
)
from delivery_core.repositories.memory import (
    InMemoryClientRepository,
    InMemoryLocationRepository,
    InMemoryTransactionRepository,
    InMemoryWeeklyFinancialRepository,
)


@dataclass
class Repositories:
    """The set of repositories a core operation works against."""

    clients: ClientRepository
    locations: LocationRepository
    transactions: TransactionRepository
    weekly: WeeklyFinancialRepository

    @classmethod
    def in_memory(cls) -> Repositories:
        return cls(
            clients=InMemoryClientRepository(),
            locations=InMemoryLocationRepository(),
            transactions=InMemoryTransactionRepository(),
            weekly=InMemoryWeeklyFinancialRepository(),
        )

    @classmethod
    def from_paths(cls, paths: DataPaths) -> Repositories:
        """Open (or create) the CSV-backed store under ``paths.data_root``."""
        paths.ensure_dirs()
        return cls(
            clients=CsvClientRepository(paths),
            locations=CsvLocationRepository(paths),
            transactions=CsvTransactionRepository(paths),
            weekly=CsvWeeklyFinancialRepository(paths),
        )


__all__ = [
    "ClientRepository",
    "LocationRepository",
    "Repositories",
    "TransactionRepository",
    "WeeklyFinancialRepository",
]
