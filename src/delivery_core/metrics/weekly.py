"""Weekly financials per location.

WeeklyFinancial rows are a cache fully derivable from transactions. They
are regenerated wholesale per client (delete, then rebuild from the current
transaction set) and never patched incrementally, so a correction to the
transactions can never leave stale partial weeks behind.
"""

from __future__ import annotations

import logging
from dataclasses import fields

import pandas as pd

from delivery_core.config import COGS_RATE
from delivery_core.exceptions import MissingParameterError
from delivery_core.locations.resolver import LocationResolver
from delivery_core.metrics.aggregate import figures_frame
from delivery_core.models import MetricsFilter, WeeklyFinancial
from delivery_core.repositories import Repositories
from delivery_core.weeks import week_bounds

logger = logging.getLogger(__name__)


def _ratio(numerator: float, denominator: float, scale: float = 1.0) -> float:
    return numerator / denominator * scale if denominator else 0.0


def weekly_row(
    client_id: str,
    location_id: str,
    week_start: str,
    week_end: str,
    sales: float,
    marketing_sales: float,
    marketing_spend: float,
    payout: float,
    cogs_rate: float = COGS_RATE,
) -> WeeklyFinancial:
    """Build one WeeklyFinancial with its derived ratios."""
    return WeeklyFinancial(
        client_id=client_id,
        location_id=location_id,
        week_start=week_start,
        week_end=week_end,
        sales=sales,
        marketing_sales=marketing_sales,
        marketing_spend=marketing_spend,
        marketing_percent=_ratio(marketing_spend, sales, 100.0),
        roas=_ratio(marketing_sales, marketing_spend),
        payout=payout,
        payout_percent=_ratio(payout, sales, 100.0),
        payout_with_cogs=payout - sales * cogs_rate,
    )


def regenerate_weekly_financials(
    repos: Repositories,
    client_id: str | None,
    *,
    cogs_rate: float = COGS_RATE,
) -> int:
    """Delete and rebuild a client's weekly financials from its transactions.

    This operation needs exclusive access to the client's weekly rows for
    its duration; callers must not run two regenerations for one client
    concurrently.

    Args:
        repos: Repositories to read transactions from and write rows to.
        client_id: Client to regenerate. Required.
        cogs_rate: Share of sales deducted as synthetic cost of goods sold.

    Returns:
        Number of weekly rows written.

    Raises:
        MissingParameterError: If client_id is empty.
    """
    if not client_id:
        raise MissingParameterError("client_id", "regenerate_weekly_financials")

    df = figures_frame(repos, MetricsFilter(client_id=client_id))
    df = df[df["order_date"] != ""]
    if df.empty:
        written = repos.weekly.replace_for_client(client_id, [])
        logger.info("No transactions for %s, cleared weekly financials", client_id)
        return written

    if (df["location_id"] == "").any():
        bucket_id = LocationResolver(repos.locations).unmapped_bucket(client_id).id
        df = df.assign(location_id=df["location_id"].replace("", bucket_id))

    df = df.assign(week_start=df["order_date"].map(lambda d: week_bounds(d)[0]))
    df = df.assign(marketing_spend=df["ad_spend"] + df["offers"])
    grouped = df.groupby(["location_id", "week_start"], sort=True)[
        ["sales", "marketing_sales", "marketing_spend", "payout"]
    ].sum()

    rows = []
    for (location_id, week_start), sums in grouped.iterrows():
        rows.append(
            weekly_row(
                client_id=client_id,
                location_id=location_id,
                week_start=week_start,
                week_end=week_bounds(week_start)[1],
                sales=float(sums["sales"]),
                marketing_sales=float(sums["marketing_sales"]),
                marketing_spend=float(sums["marketing_spend"]),
                payout=float(sums["payout"]),
                cogs_rate=cogs_rate,
            )
        )

    written = repos.weekly.replace_for_client(client_id, rows)
    logger.info("Regenerated %d weekly financial rows for %s", written, client_id)
    return written


def weekly_frame(
    repos: Repositories,
    client_id: str | None = None,
    start: str | None = None,
    end: str | None = None,
) -> pd.DataFrame:
    """Stored weekly financials as a DataFrame (columns of WeeklyFinancial)."""
    columns = [f.name for f in fields(WeeklyFinancial)]
    rows = repos.weekly.list(client_id=client_id, start=start, end=end)
    return pd.DataFrame([r.to_dict() for r in rows], columns=columns)
