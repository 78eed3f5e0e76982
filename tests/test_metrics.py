"""Tests for per-platform metric rules and the Metrics Aggregator."""

import pytest

from conftest import CLIENT_ID, add_location
from delivery_core.config import UNMAPPED_BUCKET_TAG
from delivery_core.locations.resolver import LocationResolver
from delivery_core.metrics.aggregate import (
    aggregate,
    available_weeks,
    dashboard_overview,
    week_over_week,
)
from delivery_core.metrics.platform_metrics import (
    derive_metrics,
    doordash_figures,
    is_ad_description,
    uber_eats_figures,
)
from delivery_core.models import (
    DoorDashTransaction,
    GrubhubTransaction,
    MetricsFilter,
    UberEatsTransaction,
)
from delivery_core.platforms import Platform


def dd(key, location_id, **kwargs) -> DoorDashTransaction:
    kwargs.setdefault("order_date", "2025-10-07")
    kwargs.setdefault("channel", "Marketplace")
    kwargs.setdefault("order_status", "Delivered")
    return DoorDashTransaction(
        client_id=CLIENT_ID, transaction_id=key, order_number=key, location_id=location_id, **kwargs
    )


def ue(key, location_id, **kwargs) -> UberEatsTransaction:
    kwargs.setdefault("order_date", "2025-10-07")
    kwargs.setdefault("order_status", "Completed")
    return UberEatsTransaction(
        client_id=CLIENT_ID, workflow_id=key, order_id=key, location_id=location_id, **kwargs
    )


def gh(key, location_id, **kwargs) -> GrubhubTransaction:
    kwargs.setdefault("order_date", "2025-10-07")
    kwargs.setdefault("transaction_type", "Prepaid Order")
    return GrubhubTransaction(
        client_id=CLIENT_ID, transaction_id=key, order_number=key, location_id=location_id, **kwargs
    )


@pytest.fixture
def seeded(repos):
    """Two locations, a bucket, and one week of orders on each platform."""
    add_location(repos, "loc-a", "Henderson")
    add_location(repos, "loc-b", "Summerlin")
    bucket = LocationResolver(repos.locations).unmapped_bucket(CLIENT_ID)

    repos.transactions.upsert(
        Platform.DOORDASH,
        [
            dd("d1", "loc-a", subtotal=100.0, offers=-10.0, net_total=70.0),
            dd("d2", "loc-b", subtotal=50.0, net_total=40.0),
            # Catering is not a marketplace order but its payout counts
            dd("d3", "loc-a", subtotal=200.0, channel="Catering", net_total=150.0),
            dd(
                "d4",
                "loc-a",
                order_status="",
                transaction_type="Ad",
                other_payments=-20.0,
                other_payments_description="Sponsored listing ads",
                net_total=-20.0,
            ),
        ],
    )
    repos.transactions.upsert(
        Platform.UBER_EATS,
        [
            ue(
                "u1",
                "loc-a",
                sales_excl_tax=100.0,
                tax=10.0,
                subtotal=110.0,
                marketing_adjustment=-5.0,
                offers_on_items=-8.0,
                net_payout=80.0,
            ),
            ue("u2", bucket.id, subtotal=40.0, net_payout=30.0),
        ],
    )
    repos.transactions.upsert(
        Platform.GRUBHUB,
        [gh("g1", "loc-b", subtotal=30.0, subtotal_sales_tax=2.0, merchant_net_total=25.0)],
    )
    return repos


class TestPlatformRules:
    def test_ad_description(self) -> None:
        assert is_ad_description("Ad Spend - Sponsored listing")
        assert not is_ad_description("Price adjustment")
        assert not is_ad_description("")

    def test_uber_eats_ad_spend_on_any_status(self) -> None:
        txn = ue(
            "u9",
            None,
            order_status="Unfulfilled",
            other_payments=25.0,
            other_payments_description="Advertising fee",
        )
        fig = uber_eats_figures(txn)
        assert not fig.is_order
        assert fig.ad_spend == 25.0

    def test_doordash_status_fallback_to_transaction_type(self) -> None:
        """Without a status column, transaction type "Order" counts."""
        fig = doordash_figures(dd("d9", None, order_status="", transaction_type="Order", subtotal=12.0))
        assert fig.is_order
        assert fig.sales == 12.0


class TestDoorDashMetrics:
    def test_rules(self, seeded) -> None:
        [m] = aggregate(seeded, MetricsFilter(client_id=CLIENT_ID, platform="doordash"))
        assert m.platform == "doordash"
        assert m.total_orders == 2
        assert m.total_sales == pytest.approx(150.0)
        assert m.marketing_driven_sales == pytest.approx(100.0)
        assert m.orders_from_marketing == 1
        assert m.ad_spend == pytest.approx(20.0)
        assert m.offer_discount_value == pytest.approx(10.0)
        assert m.total_marketing_investment == pytest.approx(30.0)
        assert m.marketing_roas == pytest.approx(100.0 / 30.0)
        assert m.aov == pytest.approx(75.0)

    def test_catering_payout_included(self, seeded) -> None:
        """Net payout spans every row, not only completed orders."""
        [m] = aggregate(seeded, MetricsFilter(client_id=CLIENT_ID, platform=Platform.DOORDASH))
        assert m.net_payout == pytest.approx(70.0 + 40.0 + 150.0 - 20.0)
        assert m.net_payout_percent == pytest.approx(240.0 / 150.0 * 100.0)


class TestInvariants:
    def test_organic_plus_marketing(self, seeded) -> None:
        for m in aggregate(seeded, MetricsFilter(client_id=CLIENT_ID)):
            assert m.organic_sales + m.marketing_driven_sales == pytest.approx(m.total_sales)
            assert m.organic_orders + m.orders_from_marketing == m.total_orders
            assert m.total_marketing_investment == pytest.approx(m.ad_spend + m.offer_discount_value)

    def test_zero_investment_roas_is_zero(self, seeded) -> None:
        [m] = aggregate(seeded, MetricsFilter(client_id=CLIENT_ID, platform="grubhub"))
        assert m.total_marketing_investment == 0
        assert m.marketing_roas == 0

    def test_empty_platform_reports_zeros(self, repos) -> None:
        metrics = aggregate(repos, MetricsFilter(client_id=CLIENT_ID))
        assert [m.platform for m in metrics] == ["ubereats", "doordash", "grubhub"]
        assert all(m.total_sales == 0 and m.aov == 0 for m in metrics)

    def test_derive_metrics_zero_denominators(self) -> None:
        derived = derive_metrics({})
        assert derived["aov"] == 0
        assert derived["net_payout_percent"] == 0


class TestPortfolio:
    def test_blended_roas_from_sums(self, seeded) -> None:
        """Blended ROAS divides summed sales by summed investment."""
        overview = dashboard_overview(seeded, MetricsFilter(client_id=CLIENT_ID))
        marketing_sales = 100.0 + 110.0
        investment = 30.0 + 8.0
        assert overview.blended_roas == pytest.approx(marketing_sales / investment)
        assert overview.total_sales == pytest.approx(150.0 + 150.0 + 32.0)
        assert overview.total_orders == 2 + 2 + 1
        assert len(overview.platform_breakdown) == 3

    def test_location_grouping(self, seeded) -> None:
        rows = aggregate(seeded, MetricsFilter(client_id=CLIENT_ID), group_by="location")
        by_key = {(m.location_id, m.platform): m for m in rows}
        assert by_key[("loc-a", "doordash")].total_sales == pytest.approx(100.0)
        assert by_key[("loc-b", "grubhub")].location_name == "Summerlin"

    def test_consolidated_grouping(self, seeded) -> None:
        rows = aggregate(seeded, MetricsFilter(client_id=CLIENT_ID), group_by="consolidated")
        henderson = next(m for m in rows if m.location_id == "loc-a")
        assert henderson.platform == "all"
        assert henderson.total_sales == pytest.approx(100.0 + 110.0)

    def test_exclude_bucket(self, seeded) -> None:
        f = MetricsFilter(client_id=CLIENT_ID, platform="ubereats", exclude_location_tag=UNMAPPED_BUCKET_TAG)
        [m] = aggregate(seeded, f)
        assert m.total_orders == 1

    def test_only_bucket(self, seeded) -> None:
        f = MetricsFilter(client_id=CLIENT_ID, platform="ubereats", location_tag=UNMAPPED_BUCKET_TAG)
        [m] = aggregate(seeded, f)
        assert m.total_sales == pytest.approx(40.0)

    def test_location_filter(self, seeded) -> None:
        [m] = aggregate(seeded, MetricsFilter(client_id=CLIENT_ID, location_id="loc-b", platform="grubhub"))
        assert m.total_sales == pytest.approx(32.0)

    def test_unknown_grouping(self, seeded) -> None:
        with pytest.raises(ValueError):
            aggregate(seeded, MetricsFilter(), group_by="region")


class TestWeekOverWeek:
    def test_percent_change(self) -> None:
        assert week_over_week(120.0, 100.0) == pytest.approx(20.0)
        assert week_over_week(80.0, 100.0) == pytest.approx(-20.0)

    @pytest.mark.parametrize("previous", [0.0, None])
    def test_no_baseline(self, previous) -> None:
        """No prior data is "no comparison", never 0% or infinity."""
        assert week_over_week(50.0, previous) is None

    def test_overview_without_prior_week(self, seeded) -> None:
        f = MetricsFilter(client_id=CLIENT_ID, week_start="2025-10-06", week_end="2025-10-12")
        overview = dashboard_overview(seeded, f)
        assert overview.week_over_week["total_sales"] is None

    def test_overview_with_prior_week(self, seeded) -> None:
        seeded.transactions.upsert(
            Platform.GRUBHUB,
            [gh("g0", "loc-b", order_date="2025-09-30", subtotal=16.0, merchant_net_total=12.5)],
        )
        f = MetricsFilter(client_id=CLIENT_ID, week_start="2025-10-06", week_end="2025-10-12")
        overview = dashboard_overview(seeded, f)
        assert overview.week_over_week["total_orders"] == pytest.approx((5 - 1) / 1 * 100.0)


def test_available_weeks(seeded) -> None:
    seeded.transactions.upsert(Platform.GRUBHUB, [gh("g0", "loc-b", order_date="2025-09-30")])
    assert available_weeks(seeded, CLIENT_ID) == ["2025-10-06", "2025-09-29"]
