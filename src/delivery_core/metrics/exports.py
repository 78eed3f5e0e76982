"""CSV exports of weekly financials for the reporting layer.

Two layouts are produced: one row per (week, location), and a portfolio
overview with one row per week whose ratios are recomputed from the summed
figures.
"""

from __future__ import annotations

import logging
from pathlib import Path

import numpy as np
import pandas as pd

from delivery_core.config import COGS_RATE
from delivery_core.metrics.weekly import weekly_frame
from delivery_core.repositories import Repositories

logger = logging.getLogger(__name__)

BY_LOCATION_COLUMNS = [
    "week_start",
    "week_end",
    "location_id",
    "location_name",
    "sales",
    "marketing_sales",
    "marketing_spend",
    "marketing_percent",
    "roas",
    "payout",
    "payout_percent",
    "payout_with_cogs",
]

OVERVIEW_COLUMNS = [
    "week_start",
    "week_end",
    "locations",
    "sales",
    "marketing_sales",
    "marketing_spend",
    "marketing_percent",
    "roas",
    "payout",
    "payout_percent",
    "payout_with_cogs",
]


def _safe_ratio(numerator: pd.Series, denominator: pd.Series, scale: float = 1.0) -> pd.Series:
    out = np.where(denominator != 0, numerator / denominator.where(denominator != 0, 1) * scale, 0.0)
    return pd.Series(out, index=numerator.index)


def weekly_by_location_frame(
    repos: Repositories,
    client_id: str,
    start: str | None = None,
    end: str | None = None,
) -> pd.DataFrame:
    """Weekly financials with location names, newest week first."""
    df = weekly_frame(repos, client_id, start, end)
    if df.empty:
        return pd.DataFrame(columns=BY_LOCATION_COLUMNS)

    names = {}
    for location_id in df["location_id"].unique():
        location = repos.locations.get(location_id)
        names[location_id] = location.canonical_name if location else ""
    df = df.assign(location_name=df["location_id"].map(names))
    df = df.sort_values(["week_start", "location_name"], ascending=[False, True])
    return df[BY_LOCATION_COLUMNS].reset_index(drop=True)


def weekly_overview_frame(
    repos: Repositories,
    client_id: str,
    start: str | None = None,
    end: str | None = None,
) -> pd.DataFrame:
    """Portfolio totals per week, ratios recomputed from the sums."""
    df = weekly_frame(repos, client_id, start, end)
    if df.empty:
        return pd.DataFrame(columns=OVERVIEW_COLUMNS)

    grouped = (
        df.groupby(["week_start", "week_end"], sort=True)
        .agg(
            locations=("location_id", "nunique"),
            sales=("sales", "sum"),
            marketing_sales=("marketing_sales", "sum"),
            marketing_spend=("marketing_spend", "sum"),
            payout=("payout", "sum"),
            payout_with_cogs=("payout_with_cogs", "sum"),
        )
        .reset_index()
    )
    grouped["marketing_percent"] = _safe_ratio(grouped["marketing_spend"], grouped["sales"], 100.0)
    grouped["roas"] = _safe_ratio(grouped["marketing_sales"], grouped["marketing_spend"])
    grouped["payout_percent"] = _safe_ratio(grouped["payout"], grouped["sales"], 100.0)
    grouped = grouped.sort_values("week_start", ascending=False)
    return grouped[OVERVIEW_COLUMNS].reset_index(drop=True)


def export_weekly_by_location_csv(
    repos: Repositories,
    client_id: str,
    path: str | Path,
    start: str | None = None,
    end: str | None = None,
) -> Path:
    """Write weekly financials by location to CSV and return the path."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    df = weekly_by_location_frame(repos, client_id, start, end)
    df.round(2).to_csv(path, index=False, encoding="utf-8-sig")
    logger.info("Exported %d weekly location rows to %s", len(df), path)
    return path


def export_weekly_overview_csv(
    repos: Repositories,
    client_id: str,
    path: str | Path,
    start: str | None = None,
    end: str | None = None,
) -> Path:
    """Write the weekly portfolio overview to CSV and return the path."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    df = weekly_overview_frame(repos, client_id, start, end)
    df.round(2).to_csv(path, index=False, encoding="utf-8-sig")
    logger.info("Exported %d weekly overview rows to %s", len(df), path)
    return path
