"""Repository interfaces.

Core components depend only on these protocols, never on a concrete store.
:mod:`delivery_core.repositories.memory` backs tests;
:mod:`delivery_core.repositories.csv_store` persists to the DataPaths layout.
"""

from __future__ import annotations

from collections.abc import Collection, Iterable
from typing import Protocol

from delivery_core.models import Client, Location, Transaction, WeeklyFinancial
from delivery_core.platforms import Platform


class ClientRepository(Protocol):
    def get(self, client_id: str) -> Client | None: ...

    def list(self) -> list[Client]: ...

    def save(self, client: Client) -> Client: ...


class LocationRepository(Protocol):
    """Canonical locations, keyed by id."""

    def get(self, location_id: str) -> Location | None: ...

    def list_by_client(self, client_id: str) -> list[Location]: ...

    def find_by_tag(self, client_id: str, tag: str) -> list[Location]: ...

    def find_by_store_code(self, client_id: str, store_code: str) -> Location | None: ...

    def save(self, location: Location) -> Location:
        """Insert or replace a location by id."""
        ...

    def delete(self, location_id: str) -> None: ...


class TransactionRepository(Protocol):
    """Platform transactions, unique per (client, platform, natural key)."""

    def upsert(self, platform: Platform, transactions: Iterable[Transaction]) -> int:
        """Insert or replace by natural key. Returns the number of new keys."""
        ...

    def list(
        self,
        platform: Platform,
        client_id: str | None = None,
        location_ids: Collection[str] | None = None,
        start: str | None = None,
        end: str | None = None,
    ) -> list[Transaction]: ...

    def count(self, platform: Platform, client_id: str | None = None) -> int: ...

    def set_location(
        self, platform: Platform, client_id: str, natural_key: str, location_id: str
    ) -> None:
        """Repair the location of one stored transaction."""
        ...

    def reassign_location(self, from_ids: Collection[str], to_id: str) -> int:
        """Move every transaction of ``from_ids`` (all platforms) to ``to_id``."""
        ...

    def count_for_location(self, location_id: str) -> int: ...

    def delete_by_date_range(
        self, platform: Platform, client_id: str | None, start: str, end: str
    ) -> int:
        """Purge a client's transactions in an inclusive date window.

        Raises:
            MissingParameterError: If client_id is not given.
        """
        ...


class WeeklyFinancialRepository(Protocol):
    def list(
        self,
        client_id: str | None = None,
        location_id: str | None = None,
        start: str | None = None,
        end: str | None = None,
    ) -> list[WeeklyFinancial]: ...

    def replace_for_client(self, client_id: str, rows: Iterable[WeeklyFinancial]) -> int:
        """Delete all of the client's rows, then store ``rows``."""
        ...
