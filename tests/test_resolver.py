"""Tests for the Location Resolver strategy chains and the unmapped bucket."""

import pytest

from conftest import CLIENT_ID, add_location
from delivery_core.config import UNMAPPED_BUCKET_NAME, UNMAPPED_BUCKET_TAG
from delivery_core.locations.master_list import import_master_list
from delivery_core.locations.resolver import LocationResolver
from delivery_core.models import StoreReference
from delivery_core.platforms import Platform
from delivery_core.strategies import STRATEGIES


@pytest.fixture
def henderson(repos):
    return add_location(
        repos,
        "loc-nv008",
        "Henderson",
        store_code="NV008",
        address="123 N. Main Street",
        uber_eats_store_label="NV008",
        doordash_store_key="NV008 - Henderson",
    )


@pytest.fixture
def resolver(repos) -> LocationResolver:
    return LocationResolver(repos.locations)


class TestUberEats:
    def test_paren_code(self, repos, henderson, resolver) -> None:
        """The code in parentheses matches the stored Uber Eats label."""
        location_id = resolver.resolve(CLIENT_ID, "Capriotti's Sandwich Shop (NV008)", Platform.UBER_EATS)
        assert location_id == henderson.id

    def test_paren_code_matches_master_store_code(self, repos, resolver) -> None:
        """An 8-column master list has no Uber Eats label; the store code still matches."""
        import_master_list(
            repos.locations,
            CLIENT_ID,
            [
                ["Status", "Name", "Store Code", "DoorDash Key", "Address", "City", "State", "Zip"],
                ["Active", "Henderson", "NV008", "NV008 - Henderson", "123 N. Main Street", "Henderson", "NV", "89052"],
            ],
        )
        henderson = repos.locations.find_by_store_code(CLIENT_ID, "NV008")
        assert henderson.uber_eats_store_label is None
        location_id = resolver.resolve(CLIENT_ID, "Capriotti's (NV008)", Platform.UBER_EATS)
        assert location_id == henderson.id

    def test_stored_label_wins_over_store_code(self, repos, resolver) -> None:
        labelled = add_location(repos, "loc-a", "Henderson", uber_eats_store_label="NV008")
        add_location(repos, "loc-b", "Old Henderson", store_code="NV008")
        assert resolver.resolve(CLIENT_ID, "Capriotti's (NV008)", Platform.UBER_EATS) == labelled.id

    def test_full_label(self, repos, resolver) -> None:
        """Older exports use the whole label as the store name."""
        loc = add_location(repos, "loc-2", "Summerlin", uber_eats_store_label="Capriotti's Summerlin")
        assert resolver.resolve(CLIENT_ID, "capriotti's summerlin", Platform.UBER_EATS) == loc.id

    def test_alias_name(self, repos, resolver) -> None:
        loc = add_location(repos, "loc-3", "Green Valley", uber_eats_name="Capriotti's Green Valley")
        assert resolver.resolve(CLIENT_ID, "Capriotti's Green Valley", Platform.UBER_EATS) == loc.id


class TestDoorDash:
    def test_platform_key(self, repos, henderson, resolver) -> None:
        location_id = resolver.resolve(
            CLIENT_ID, "Capriotti's", Platform.DOORDASH, platform_key="NV008 - Henderson"
        )
        assert location_id == henderson.id

    def test_numeric_suffix(self, repos, resolver) -> None:
        """A purely numeric key matches the numeric suffix of the stored key."""
        loc = add_location(repos, "loc-tx", "Austin", doordash_store_key="TX008")
        assert resolver.resolve(CLIENT_ID, "Capriotti's", Platform.DOORDASH, platform_key="0008") == loc.id

    def test_descriptive_name(self, repos, henderson, resolver) -> None:
        location_id = resolver.resolve(CLIENT_ID, "Capriotti's Henderson", Platform.DOORDASH)
        assert location_id == henderson.id

    def test_name_exception(self, repos, henderson) -> None:
        """Anomalous names resolve through the injected exception table."""
        resolver = LocationResolver(repos.locations, name_exceptions={"Capriotti's Kiosk": "NV008"})
        assert resolver.resolve(CLIENT_ID, "CAPRIOTTI'S KIOSK", Platform.DOORDASH) == henderson.id

    def test_ambiguous_suffix_goes_to_bucket(self, repos, resolver) -> None:
        """Two locations ending in 008 are never guessed between."""
        add_location(repos, "loc-a", "Henderson", doordash_store_key="NV008")
        add_location(repos, "loc-b", "Austin", doordash_store_key="TX008")
        location_id = resolver.resolve(CLIENT_ID, "Unknown Place", Platform.DOORDASH, platform_key="8")
        assert location_id == resolver.unmapped_bucket(CLIENT_ID).id


class TestGrubhub:
    def test_address(self, repos, henderson, resolver) -> None:
        location_id = resolver.resolve(
            CLIENT_ID,
            "Capriotti's Sandwich Shop",
            Platform.GRUBHUB,
            address="123 North Main St, Suite 200",
        )
        assert location_id == henderson.id

    def test_store_number_suffix(self, repos, henderson, resolver) -> None:
        location_id = resolver.resolve(
            CLIENT_ID, "Capriotti's Sandwich Shop", Platform.GRUBHUB, platform_key="008"
        )
        assert location_id == henderson.id

    def test_shared_store_name_does_not_match(self, repos, henderson, resolver) -> None:
        """Grubhub names every store alike, so names alone never match."""
        henderson.grubhub_name = "Capriotti's Sandwich Shop"
        repos.locations.save(henderson)
        location_id = resolver.resolve(CLIENT_ID, "Capriotti's Sandwich Shop", Platform.GRUBHUB)
        assert location_id != henderson.id

    def test_unknown_stores_share_one_bucket(self, repos, henderson, resolver) -> None:
        first = resolver.resolve(CLIENT_ID, "Store X", Platform.GRUBHUB, address="1 Nowhere Rd")
        second = resolver.resolve(CLIENT_ID, "Store Y", Platform.GRUBHUB, address="2 Elsewhere Ave")
        assert first == second
        assert len(repos.locations.find_by_tag(CLIENT_ID, UNMAPPED_BUCKET_TAG)) == 1


class TestUnmappedBucket:
    def test_created_lazily(self, repos, resolver) -> None:
        assert repos.locations.find_by_tag(CLIENT_ID, UNMAPPED_BUCKET_TAG) == []
        bucket_id = resolver.resolve(CLIENT_ID, "Nowhere", Platform.UBER_EATS)
        bucket = repos.locations.get(bucket_id)
        assert bucket.canonical_name == UNMAPPED_BUCKET_NAME
        assert bucket.is_unmapped_bucket
        assert not bucket.is_verified

    def test_bucket_never_receives_aliases(self, repos, resolver) -> None:
        bucket_id = resolver.resolve_and_maybe_update_alias(
            CLIENT_ID, StoreReference(name="Nowhere"), Platform.UBER_EATS
        )
        assert repos.locations.get(bucket_id).uber_eats_name is None

    def test_bucket_is_never_a_match_candidate(self, repos, resolver) -> None:
        bucket = resolver.unmapped_bucket(CLIENT_ID)
        assert resolver.match(CLIENT_ID, StoreReference(name=UNMAPPED_BUCKET_NAME), Platform.UBER_EATS) is None
        assert resolver.unmapped_bucket(CLIENT_ID).id == bucket.id

    def test_unresolved_references_are_recorded(self, repos, resolver) -> None:
        resolver.resolve(CLIENT_ID, "Nowhere", Platform.DOORDASH, platform_key="ZZ1")
        assert resolver.unresolved == [
            (Platform.DOORDASH, StoreReference(name="Nowhere", platform_key="ZZ1"))
        ]

    def test_clients_are_isolated(self, repos, henderson, resolver) -> None:
        """Another client's locations are never matched."""
        location_id = resolver.resolve("other-client", "Shop (NV008)", Platform.UBER_EATS)
        assert location_id != henderson.id
        assert repos.locations.get(location_id).client_id == "other-client"


class TestAliases:
    def test_alias_set_on_first_match(self, repos, henderson, resolver) -> None:
        resolver.resolve_and_maybe_update_alias(
            CLIENT_ID, StoreReference(name="Capriotti's Sandwich Shop (NV008)"), Platform.UBER_EATS
        )
        assert repos.locations.get(henderson.id).uber_eats_name == "Capriotti's Sandwich Shop (NV008)"

    def test_alias_never_overwritten(self, repos, henderson, resolver) -> None:
        henderson.uber_eats_name = "Original Name (NV008)"
        repos.locations.save(henderson)
        resolver.resolve_and_maybe_update_alias(
            CLIENT_ID, StoreReference(name="Renamed Shop (NV008)"), Platform.UBER_EATS
        )
        assert repos.locations.get(henderson.id).uber_eats_name == "Original Name (NV008)"

    def test_resolve_does_not_touch_aliases(self, repos, henderson, resolver) -> None:
        resolver.resolve(CLIENT_ID, "Shop (NV008)", Platform.UBER_EATS)
        assert repos.locations.get(henderson.id).uber_eats_name is None


class TestDeterminism:
    def test_same_reference_same_result(self, repos, henderson) -> None:
        """Independent resolvers agree, and repeated calls are stable."""
        ref = StoreReference(name="Capriotti's Henderson", platform_key="8")
        first = LocationResolver(repos.locations)
        second = LocationResolver(repos.locations)
        results = {
            first.resolve_and_maybe_update_alias(CLIENT_ID, ref, Platform.DOORDASH),
            first.resolve_and_maybe_update_alias(CLIENT_ID, ref, Platform.DOORDASH),
            second.resolve_and_maybe_update_alias(CLIENT_ID, ref, Platform.DOORDASH),
        }
        assert results == {henderson.id}

    def test_chain_order(self) -> None:
        """Strategies run in a fixed order per platform."""
        names = {p: [s.__name__ for s in STRATEGIES[p].resolver_chain] for p in Platform}
        assert names[Platform.UBER_EATS] == ["match_paren_code", "match_full_label", "match_alias_name"]
        assert names[Platform.DOORDASH][:2] == ["match_name_exception", "match_platform_key"]
        assert names[Platform.GRUBHUB] == ["match_address", "match_store_number"]
