"""Tests for the authoritative master-list import."""

import pytest

from conftest import CLIENT_ID, add_location
from delivery_core.locations.master_list import import_master_list, read_master_list_csv

HEADER = ["Status", "Name", "Store Code", "DoorDash Key", "Address", "City", "State", "Zip", "UE Label", "GH Address"]


@pytest.fixture
def rows() -> list[list[str]]:
    return [
        HEADER,
        ["Active", "Henderson", "NV008", "NV008 - Henderson", "123 N. Main Street", "Henderson", "NV", "89052", "NV008", ""],
        ["Active", "Summerlin", "NV012", "", "9 Park Avenue", "Las Vegas", "NV", "89135"],
        ["Closed", "Old Store", "NV001", "", "", "", "", ""],
        ["Active", "No Code", "", "", "", "", "", ""],
    ]


class TestImportMasterList:
    def test_summary(self, repos, rows) -> None:
        summary = import_master_list(repos.locations, CLIENT_ID, rows)
        assert (summary.created, summary.updated, summary.skipped, summary.total) == (2, 0, 2, 4)

    def test_created_locations(self, repos, rows) -> None:
        import_master_list(repos.locations, CLIENT_ID, rows)
        henderson = repos.locations.find_by_store_code(CLIENT_ID, "nv008")
        assert henderson.canonical_name == "Henderson"
        assert henderson.is_verified
        assert henderson.doordash_store_key == "NV008 - Henderson"
        assert henderson.uber_eats_store_label == "NV008"
        assert henderson.grubhub_address is None

        summerlin = repos.locations.find_by_store_code(CLIENT_ID, "NV012")
        assert summerlin.uber_eats_store_label is None

    def test_reimport_updates_in_place(self, repos, rows) -> None:
        """Upserts by store code; ingestion aliases are kept."""
        import_master_list(repos.locations, CLIENT_ID, rows)
        henderson = repos.locations.find_by_store_code(CLIENT_ID, "NV008")
        henderson.doordash_name = "Capriotti's Henderson"
        repos.locations.save(henderson)

        rows[1][1] = "Henderson - Sunset"
        summary = import_master_list(repos.locations, CLIENT_ID, rows)
        assert (summary.created, summary.updated) == (0, 2)
        assert len(repos.locations.list_by_client(CLIENT_ID)) == 2

        updated = repos.locations.get(henderson.id)
        assert updated.canonical_name == "Henderson - Sunset"
        assert updated.doordash_name == "Capriotti's Henderson"

    def test_verifies_existing_unverified_location(self, repos, rows) -> None:
        existing = add_location(repos, "loc-x", "Henderson", store_code="NV008")
        existing.is_verified = False
        repos.locations.save(existing)
        import_master_list(repos.locations, CLIENT_ID, rows)
        assert repos.locations.get("loc-x").is_verified


def test_read_master_list_csv(tmp_path, repos, rows) -> None:
    path = tmp_path / "master.csv"
    lines = [",".join(f'"{c}"' for c in (row + [""] * (10 - len(row)))) for row in rows]
    path.write_text("\n".join(lines) + "\n", encoding="utf-8-sig")

    parsed = read_master_list_csv(path)
    assert parsed[1][2] == "NV008"
    summary = import_master_list(repos.locations, CLIENT_ID, parsed)
    assert summary.created == 2
