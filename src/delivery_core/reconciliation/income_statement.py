"""Income statement across the three platforms.

Builds a per-platform statement in a fixed taxonomy plus portfolio totals,
with every line also expressed as a percentage of that column's sales
including tax. Cost of goods sold is a synthetic estimate
(``COGS_RATE`` x sales incl. tax), not observed data.

Net payout is summed across all transaction statuses for full cash
reconciliation while sales lines only count completed orders, so net
payout can legitimately diverge from the sales-derived subtotal.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

import pandas as pd

from delivery_core.config import COGS_RATE
from delivery_core.metrics.aggregate import filtered_transactions
from delivery_core.models import MetricsFilter
from delivery_core.platforms import Platform
from delivery_core.reconciliation.line_items import (
    LINE_ITEMS,
    LINE_KEYS,
    MARKETING_ITEMS,
    OTHER_ITEMS,
    RECONCILING_ITEMS,
)
from delivery_core.repositories import Repositories
from delivery_core.strategies import get_strategy

logger = logging.getLogger(__name__)

# Lines that are costs to the merchant when exported as a signed sheet
_EXPORT_NEGATED = {"cost_of_goods_sold"}


@dataclass
class StatementColumn:
    """One column of the income statement (a platform or the totals).

    Attributes:
        amounts: Line key -> signed amount (``transactions`` is a count).
        percents: Line key -> percent of sales incl. tax (0 when no sales).
    """

    amounts: dict[str, float] = field(default_factory=dict)
    percents: dict[str, float] = field(default_factory=dict)

    def __getitem__(self, key: str) -> float:
        return self.amounts[key]

    def to_dict(self) -> dict:
        return {"amounts": dict(self.amounts), "percents": dict(self.percents)}


@dataclass
class IncomeStatement:
    client_id: str | None
    start: str | None
    end: str | None
    cogs_rate: float
    platforms: dict[Platform, StatementColumn]
    totals: StatementColumn

    def to_dict(self) -> dict:
        return {
            "client_id": self.client_id,
            "start": self.start,
            "end": self.end,
            "cogs_rate": self.cogs_rate,
            "platforms": {p.value: col.to_dict() for p, col in self.platforms.items()},
            "totals": self.totals.to_dict(),
        }


def finalize_column(lines: dict[str, float], cogs_rate: float) -> StatementColumn:
    """Complete raw line items with subtotals, residual, COGS and percents.

    Args:
        lines: Itemized lines from a platform reducer (missing keys are 0).
        cogs_rate: Share of sales incl. tax booked as cost of goods sold.

    Returns:
        StatementColumn in which the reconciling lines sum to net payout.
    """
    amounts = {key: float(lines.get(key, 0.0)) for key in LINE_KEYS}
    amounts["marketing"] = sum(amounts[k] for k in MARKETING_ITEMS)

    known_others = sum(amounts[k] for k in OTHER_ITEMS)
    accounted = sum(amounts[k] for k in RECONCILING_ITEMS if k != "others") + known_others
    amounts["unaccounted"] = amounts["net_payout"] - accounted
    amounts["others"] = known_others + amounts["unaccounted"]

    amounts["cost_of_goods_sold"] = amounts["sales_incl_tax"] * cogs_rate
    amounts["net_margin"] = amounts["net_payout"] - amounts["cost_of_goods_sold"]

    base = amounts["sales_incl_tax"]
    percents = {
        key: (value / base * 100.0 if base else 0.0)
        for key, value in amounts.items()
        if key != "transactions"
    }
    return StatementColumn(amounts=amounts, percents=percents)


def build_income_statement(
    repos: Repositories,
    client_id: str | None,
    start: str | None = None,
    end: str | None = None,
    *,
    location_id: str | None = None,
    cogs_rate: float = COGS_RATE,
) -> IncomeStatement:
    """Build the income statement for a client and date range.

    Args:
        repos: Repositories to read transactions from.
        client_id: Client to report on. Without one, an all-zero statement
            is returned.
        start: Inclusive start date (YYYY-MM-DD), or None for open.
        end: Inclusive end date (YYYY-MM-DD), or None for open.
        location_id: Optionally restrict to one location.
        cogs_rate: Cost-of-goods-sold share of sales incl. tax.

    Returns:
        IncomeStatement with one column per platform and the totals.

    Examples:
        >>> stmt = build_income_statement(repos, "capriottis", "2025-10-06", "2025-10-12")
        >>> stmt.platforms[Platform.DOORDASH]["net_payout"]
        1523.4
    """
    raw_columns: dict[Platform, dict[str, float]] = {}
    if not client_id:
        logger.warning("Income statement requested without a client id, returning zeros")
    for platform in Platform:
        if not client_id:
            raw_columns[platform] = {}
            continue
        filters = MetricsFilter(
            client_id=client_id, location_id=location_id, week_start=start, week_end=end
        )
        txns = filtered_transactions(repos, filters, platform)
        raw_columns[platform] = get_strategy(platform).income_lines(txns)
        logger.debug("%s: %d transactions in income statement", platform.value, len(txns))

    totals_raw: dict[str, float] = {}
    for lines in raw_columns.values():
        for key, value in lines.items():
            totals_raw[key] = totals_raw.get(key, 0.0) + value

    columns = {p: finalize_column(lines, cogs_rate) for p, lines in raw_columns.items()}
    totals = finalize_column(totals_raw, cogs_rate)
    return IncomeStatement(
        client_id=client_id,
        start=start,
        end=end,
        cogs_rate=cogs_rate,
        platforms=columns,
        totals=totals,
    )


def income_statement_frame(statement: IncomeStatement) -> pd.DataFrame:
    """Lay the statement out as a table: one row per line item.

    Columns are the label, then amount and percent for each platform and
    for the totals. Cost of goods sold is shown as a negative amount.
    """
    records = []
    for key, label in LINE_ITEMS:
        sign = -1.0 if key in _EXPORT_NEGATED else 1.0
        record: dict[str, object] = {"line_item": label.strip(), "key": key}
        for platform, column in statement.platforms.items():
            record[f"{platform.value}_amount"] = round(sign * column.amounts[key], 2)
            record[f"{platform.value}_percent"] = round(sign * column.percents.get(key, 0.0), 2)
        record["total_amount"] = round(sign * statement.totals.amounts[key], 2)
        record["total_percent"] = round(sign * statement.totals.percents.get(key, 0.0), 2)
        records.append(record)
    return pd.DataFrame.from_records(records)


def income_statement_to_csv(statement: IncomeStatement, path: str | Path) -> Path:
    """Write the statement as CSV (utf-8-sig) and return the path."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    income_statement_frame(statement).to_csv(path, index=False, encoding="utf-8-sig")
    logger.info("Wrote income statement to %s", path)
    return path
