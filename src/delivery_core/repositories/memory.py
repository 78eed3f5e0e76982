"""In-memory repositories.

Used by the test suite and as the working set of the CSV-backed store.
"""

from __future__ import annotations

from collections.abc import Collection, Iterable
from dataclasses import replace

from delivery_core.exceptions import MissingParameterError
from delivery_core.models import Client, Location, Transaction, WeeklyFinancial
from delivery_core.platforms import Platform
from delivery_core.weeks import in_window


class InMemoryClientRepository:
    def __init__(self) -> None:
        self._clients: dict[str, Client] = {}

    def get(self, client_id: str) -> Client | None:
        return self._clients.get(client_id)

    def list(self) -> list[Client]:
        return sorted(self._clients.values(), key=lambda c: c.name)

    def save(self, client: Client) -> Client:
        self._clients[client.id] = client
        self._changed()
        return client

    def _changed(self) -> None:
        pass


class InMemoryLocationRepository:
    def __init__(self) -> None:
        self._locations: dict[str, Location] = {}

    def get(self, location_id: str) -> Location | None:
        return self._locations.get(location_id)

    def list_by_client(self, client_id: str) -> list[Location]:
        return [loc for loc in self._locations.values() if loc.client_id == client_id]

    def find_by_tag(self, client_id: str, tag: str) -> list[Location]:
        return [loc for loc in self.list_by_client(client_id) if loc.location_tag == tag]

    def find_by_store_code(self, client_id: str, store_code: str) -> Location | None:
        wanted = store_code.strip().lower()
        for loc in self.list_by_client(client_id):
            if loc.store_code and loc.store_code.strip().lower() == wanted:
                return loc
        return None

    def save(self, location: Location) -> Location:
        self._locations[location.id] = location
        self._changed()
        return location

    def delete(self, location_id: str) -> None:
        self._locations.pop(location_id, None)
        self._changed()

    def _changed(self) -> None:
        pass


class InMemoryTransactionRepository:
    def __init__(self) -> None:
        self._rows: dict[Platform, dict[tuple[str, str], Transaction]] = {p: {} for p in Platform}

    def upsert(self, platform: Platform, transactions: Iterable[Transaction]) -> int:
        store = self._rows[platform]
        inserted = 0
        for txn in transactions:
            key = (txn.client_id, txn.natural_key)
            if key not in store:
                inserted += 1
            store[key] = txn
        self._changed(platform)
        return inserted

    def list(
        self,
        platform: Platform,
        client_id: str | None = None,
        location_ids: Collection[str] | None = None,
        start: str | None = None,
        end: str | None = None,
    ) -> list[Transaction]:
        result = []
        for txn in self._rows[platform].values():
            if client_id is not None and txn.client_id != client_id:
                continue
            if location_ids is not None and txn.location_id not in location_ids:
                continue
            if not in_window(txn.order_date, start, end):
                continue
            result.append(txn)
        return result

    def count(self, platform: Platform, client_id: str | None = None) -> int:
        return len(self.list(platform, client_id=client_id))

    def set_location(
        self, platform: Platform, client_id: str, natural_key: str, location_id: str
    ) -> None:
        store = self._rows[platform]
        key = (client_id, natural_key)
        if key in store:
            store[key] = replace(store[key], location_id=location_id)
            self._changed(platform)

    def reassign_location(self, from_ids: Collection[str], to_id: str) -> int:
        moved = 0
        for platform, store in self._rows.items():
            touched = False
            for key, txn in store.items():
                if txn.location_id in from_ids:
                    store[key] = replace(txn, location_id=to_id)
                    moved += 1
                    touched = True
            if touched:
                self._changed(platform)
        return moved

    def count_for_location(self, location_id: str) -> int:
        return sum(
            1
            for store in self._rows.values()
            for txn in store.values()
            if txn.location_id == location_id
        )

    def delete_by_date_range(
        self, platform: Platform, client_id: str | None, start: str, end: str
    ) -> int:
        if not client_id:
            raise MissingParameterError("client_id", "delete_by_date_range")
        store = self._rows[platform]
        doomed = [
            key
            for key, txn in store.items()
            if txn.client_id == client_id and txn.order_date and start <= txn.order_date <= end
        ]
        for key in doomed:
            del store[key]
        if doomed:
            self._changed(platform)
        return len(doomed)

    def _changed(self, platform: Platform) -> None:
        pass


class InMemoryWeeklyFinancialRepository:
    def __init__(self) -> None:
        self._rows: list[WeeklyFinancial] = []

    def list(
        self,
        client_id: str | None = None,
        location_id: str | None = None,
        start: str | None = None,
        end: str | None = None,
    ) -> list[WeeklyFinancial]:
        return [
            row
            for row in self._rows
            if (client_id is None or row.client_id == client_id)
            and (location_id is None or row.location_id == location_id)
            and in_window(row.week_start, start, end)
        ]

    def replace_for_client(self, client_id: str, rows: Iterable[WeeklyFinancial]) -> int:
        if not client_id:
            raise MissingParameterError("client_id", "replace_for_client")
        new_rows = list(rows)
        self._rows = [row for row in self._rows if row.client_id != client_id] + new_rows
        self._changed()
        return len(new_rows)

    def _changed(self) -> None:
        pass
