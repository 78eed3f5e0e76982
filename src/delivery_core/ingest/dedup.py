"""Transaction Deduplicator.

Platform exports can carry several rows per order (line-item detail,
adjustments replayed in later rows). This module collapses them to one
transaction per platform-native unique key.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from delivery_core.models import Transaction

logger = logging.getLogger(__name__)

RowBuilder = Callable[[Mapping[str, Any], str], "Transaction | None"]


@dataclass
class DedupResult:
    """Unique transactions plus visibility into what was dropped.

    Attributes:
        transactions: One transaction per natural key, in first-seen key order.
        rows_read: Rows offered to the deduplicator.
        skipped_rows: Rows dropped for a missing identifying field.
        collapsed_rows: Rows folded into an earlier key (last row wins).
    """

    transactions: list[Transaction] = field(default_factory=list)
    rows_read: int = 0
    skipped_rows: int = 0
    collapsed_rows: int = 0


def deduplicate(
    rows: Iterable[Mapping[str, Any]],
    client_id: str,
    build: RowBuilder,
) -> DedupResult:
    """Build transactions from rows and keep the last row per natural key.

    Later rows win because, in the observed export layouts, they carry the
    more complete aggregated fields for a multi-row order.

    Args:
        rows: Normalized rows for one platform.
        client_id: Client the export belongs to.
        build: Row builder returning a transaction, or None to skip the row.

    Returns:
        DedupResult with the unique transactions and skip counts.
    """
    unique: dict[str, Transaction] = {}
    result = DedupResult()

    for row in rows:
        result.rows_read += 1
        txn = build(row, client_id)
        if txn is None:
            result.skipped_rows += 1
            continue
        if txn.natural_key in unique:
            result.collapsed_rows += 1
        unique[txn.natural_key] = txn

    result.transactions = list(unique.values())
    logger.info(
        "Processed %d rows -> %d unique transactions (%d skipped, %d collapsed)",
        result.rows_read,
        len(result.transactions),
        result.skipped_rows,
        result.collapsed_rows,
    )
    return result
