"""Metrics Aggregator.

Computes platform-level, location-level and portfolio-level metrics for any
combination of filters. Transactions are reduced to per-row figures by the
platform strategy, collected into a pandas frame and summed; every ratio is
then derived from the sums (never averaged), so portfolio figures such as
blended ROAS stay consistent with their parts.

Example:
    >>> from delivery_core.metrics.aggregate import aggregate, dashboard_overview
    >>> from delivery_core.models import MetricsFilter
    >>>
    >>> f = MetricsFilter(client_id="capriottis", week_start="2025-10-06", week_end="2025-10-12")
    >>> for m in aggregate(repos, f):
    ...     print(m.platform, m.total_sales, m.marketing_roas)
    >>> overview = dashboard_overview(repos, f)
    >>> overview.week_over_week["total_sales"]  # None when last week had no sales
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field, replace

import pandas as pd

from delivery_core.config import UNMAPPED_BUCKET_NAME, UNMAPPED_BUCKET_TAG
from delivery_core.locations.matching import normalize_location_name
from delivery_core.metrics.platform_metrics import (
    SUM_COLUMNS,
    LocationMetrics,
    PlatformMetrics,
    derive_metrics,
)
from delivery_core.models import Location, MetricsFilter, Transaction
from delivery_core.platforms import Platform
from delivery_core.repositories import Repositories
from delivery_core.strategies import get_strategy
from delivery_core.weeks import previous_week, unique_weeks

logger = logging.getLogger(__name__)

FRAME_COLUMNS = ["platform", "location_id", "order_date", *SUM_COLUMNS]

# Overview figures compared week over week
WOW_METRICS = [
    "total_sales",
    "total_orders",
    "average_aov",
    "total_marketing_investment",
    "blended_roas",
    "net_payout",
    "net_payout_percent",
]


@dataclass
class DashboardOverview:
    """Portfolio totals with the per-platform breakdown."""

    total_sales: float = 0.0
    total_orders: int = 0
    average_aov: float = 0.0
    total_marketing_investment: float = 0.0
    blended_roas: float = 0.0
    net_payout: float = 0.0
    net_payout_percent: float = 0.0
    marketing_driven_sales: float = 0.0
    platform_breakdown: list[PlatformMetrics] = field(default_factory=list)
    week_over_week: dict[str, float | None] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return asdict(self)


class _LocationLookup:
    """Memoized location lookups for tag filtering and naming."""

    def __init__(self, repos: Repositories) -> None:
        self.repos = repos
        self._cache: dict[str, Location | None] = {}

    def get(self, location_id: str | None) -> Location | None:
        if not location_id:
            return None
        if location_id not in self._cache:
            self._cache[location_id] = self.repos.locations.get(location_id)
        return self._cache[location_id]

    def tag(self, location_id: str | None) -> str | None:
        # Transactions without a location belong to the unmapped bucket
        location = self.get(location_id)
        if location is None:
            return UNMAPPED_BUCKET_TAG
        return location.location_tag

    def name(self, location_id: str | None) -> str:
        location = self.get(location_id)
        if location is None:
            return UNMAPPED_BUCKET_NAME
        return location.canonical_name


def filtered_transactions(
    repos: Repositories,
    filters: MetricsFilter,
    platform: Platform,
    lookup: _LocationLookup | None = None,
) -> list[Transaction]:
    """Transactions of one platform matching every filter."""
    if filters.platform is not None and filters.platform is not platform:
        return []
    location_ids = {filters.location_id} if filters.location_id else None
    txns = repos.transactions.list(
        platform,
        client_id=filters.client_id,
        location_ids=location_ids,
        start=filters.week_start,
        end=filters.week_end,
    )
    if filters.location_tag is None and filters.exclude_location_tag is None:
        return txns

    lookup = lookup or _LocationLookup(repos)
    kept = []
    for txn in txns:
        tag = lookup.tag(txn.location_id)
        if filters.location_tag is not None and tag != filters.location_tag:
            continue
        if filters.exclude_location_tag is not None and tag == filters.exclude_location_tag:
            continue
        kept.append(txn)
    return kept


def figures_frame(repos: Repositories, filters: MetricsFilter | None = None) -> pd.DataFrame:
    """One row per transaction with the summable metric inputs.

    Columns: platform, location_id, order_date, orders, marketing_orders,
    sales, marketing_sales, ad_spend, offers, payout.
    """
    filters = filters or MetricsFilter()
    lookup = _LocationLookup(repos)
    records = []
    for platform in filters.platforms():
        figures_of = get_strategy(platform).figures
        for txn in filtered_transactions(repos, filters, platform, lookup):
            fig = figures_of(txn)
            records.append(
                {
                    "platform": platform.value,
                    "location_id": txn.location_id or "",
                    "order_date": txn.order_date,
                    "orders": int(fig.is_order),
                    "marketing_orders": int(fig.is_marketing),
                    "sales": fig.sales,
                    "marketing_sales": fig.sales if fig.is_marketing else 0.0,
                    "ad_spend": fig.ad_spend,
                    "offers": fig.offers,
                    "payout": fig.payout,
                }
            )
    return pd.DataFrame.from_records(records, columns=FRAME_COLUMNS)


def _sums(df: pd.DataFrame) -> dict:
    if df.empty:
        return {col: 0 for col in SUM_COLUMNS}
    return df[SUM_COLUMNS].sum().to_dict()


def platform_metrics(repos: Repositories, filters: MetricsFilter | None = None) -> list[PlatformMetrics]:
    """Metrics per platform; platforms without data report zeros."""
    filters = filters or MetricsFilter()
    df = figures_frame(repos, filters)
    result = []
    for platform in filters.platforms():
        subset = df[df["platform"] == platform.value]
        result.append(PlatformMetrics(platform=platform.value, **derive_metrics(_sums(subset))))
    return result


def location_metrics(repos: Repositories, filters: MetricsFilter | None = None) -> list[LocationMetrics]:
    """Metrics per (location, platform) pair that has transactions."""
    filters = filters or MetricsFilter()
    df = figures_frame(repos, filters)
    if df.empty:
        return []

    lookup = _LocationLookup(repos)
    grouped = df.groupby(["location_id", "platform"], sort=True)[SUM_COLUMNS].sum()
    result = []
    for (location_id, platform), sums in grouped.iterrows():
        result.append(
            LocationMetrics(
                platform=platform,
                location_id=location_id,
                location_name=lookup.name(location_id),
                **derive_metrics(sums.to_dict()),
            )
        )
    return result


def consolidated_location_metrics(
    repos: Repositories, filters: MetricsFilter | None = None
) -> list[LocationMetrics]:
    """Metrics per canonical store name, across platforms and duplicate records.

    Location records that share a normalized canonical name (duplicates not
    yet merged) are reported as one store. ``location_id`` is the first id
    of the group and ``platform`` is "all".
    """
    filters = filters or MetricsFilter()
    df = figures_frame(repos, filters)
    if df.empty:
        return []

    lookup = _LocationLookup(repos)
    names = {loc_id: lookup.name(loc_id) for loc_id in df["location_id"].unique()}
    df = df.assign(
        location_name=df["location_id"].map(names),
        store_key=df["location_id"].map(lambda i: normalize_location_name(names[i])),
    )

    result = []
    for _, group in df.groupby("store_key", sort=True):
        first_id = sorted(group["location_id"].unique())[0]
        result.append(
            LocationMetrics(
                platform="all",
                location_id=first_id,
                location_name=names[first_id],
                **derive_metrics(_sums(group)),
            )
        )
    return result


def aggregate(
    repos: Repositories,
    filters: MetricsFilter | None = None,
    *,
    group_by: str = "platform",
) -> list[PlatformMetrics] | list[LocationMetrics]:
    """Aggregate metrics for a filter combination.

    Args:
        repos: Repositories to read from.
        filters: Any combination of client, location, platform, week window
            and location tag. Empty filters aggregate everything.
        group_by: "platform", "location" or "consolidated".

    Returns:
        PlatformMetrics list for "platform"; LocationMetrics list otherwise.

    Raises:
        ValueError: If group_by is not a known grouping.
    """
    if group_by == "platform":
        return platform_metrics(repos, filters)
    if group_by == "location":
        return location_metrics(repos, filters)
    if group_by == "consolidated":
        return consolidated_location_metrics(repos, filters)
    raise ValueError(
        f"Invalid group_by '{group_by}'. Must be 'platform', 'location' or 'consolidated'."
    )


def week_over_week(current: float | None, previous: float | None) -> float | None:
    """Percent change ``(current - previous) / previous * 100``.

    Returns None when there is no previous value or it is zero; callers must
    render that as "no data", not as 0% or infinity.

    Examples:
        >>> week_over_week(120.0, 100.0)
        20.0
        >>> week_over_week(50.0, 0.0) is None
        True
    """
    if previous is None or current is None or previous == 0:
        return None
    return (current - previous) / previous * 100.0


def _overview_from(breakdown: list[PlatformMetrics]) -> DashboardOverview:
    sums = {
        "sales": sum(m.total_sales for m in breakdown),
        "marketing_sales": sum(m.marketing_driven_sales for m in breakdown),
        "orders": sum(m.total_orders for m in breakdown),
        "marketing_orders": sum(m.orders_from_marketing for m in breakdown),
        "ad_spend": sum(m.ad_spend for m in breakdown),
        "offers": sum(m.offer_discount_value for m in breakdown),
        "payout": sum(m.net_payout for m in breakdown),
    }
    derived = derive_metrics(sums)
    return DashboardOverview(
        total_sales=derived["total_sales"],
        total_orders=derived["total_orders"],
        average_aov=derived["aov"],
        total_marketing_investment=derived["total_marketing_investment"],
        blended_roas=derived["marketing_roas"],
        net_payout=derived["net_payout"],
        net_payout_percent=derived["net_payout_percent"],
        marketing_driven_sales=derived["marketing_driven_sales"],
        platform_breakdown=breakdown,
    )


def dashboard_overview(repos: Repositories, filters: MetricsFilter | None = None) -> DashboardOverview:
    """Portfolio overview: platform sums with ratios recomputed from the sums.

    When both week_start and week_end are set, week_over_week compares each
    headline figure with the same window shifted back seven days.
    """
    filters = filters or MetricsFilter()
    overview = _overview_from(platform_metrics(repos, filters))

    if filters.week_start and filters.week_end:
        prev_start, prev_end = previous_week(filters.week_start, filters.week_end)
        previous = _overview_from(
            platform_metrics(repos, replace(filters, week_start=prev_start, week_end=prev_end))
        )
        overview.week_over_week = {
            name: week_over_week(getattr(overview, name), getattr(previous, name))
            for name in WOW_METRICS
        }
    return overview


def available_weeks(repos: Repositories, client_id: str | None = None) -> list[str]:
    """Monday week starts that have transactions, newest first."""
    dates = []
    for platform in Platform:
        dates.extend(t.order_date for t in repos.transactions.list(platform, client_id=client_id))
    return unique_weeks(dates)
