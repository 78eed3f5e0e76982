"""Platform strategy table.

Maps each :class:`~delivery_core.platforms.Platform` to the behaviour that
differs per marketplace: how rows become transactions, how a transaction
names its store, which resolution strategies run (in order), and how a
transaction feeds metrics and the income statement. Callers look behaviour
up here instead of branching on platform names.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from delivery_core.ingest import rows
from delivery_core.locations import resolver
from delivery_core.metrics import platform_metrics
from delivery_core.models import StoreReference, Transaction
from delivery_core.platforms import Platform
from delivery_core.reconciliation import line_items


@dataclass(frozen=True)
class PlatformStrategy:
    """Per-platform behaviour.

    Attributes:
        platform: Platform this entry describes.
        build_row: Normalized row + client id -> transaction, or None to skip.
        reference: Transaction -> the store reference it carries.
        resolver_chain: Ordered location-matching strategies.
        figures: Transaction -> metric inputs.
        income_lines: Transactions -> signed income-statement line items.
    """

    platform: Platform
    build_row: Callable[[Mapping[str, Any], str], Transaction | None]
    reference: Callable[[Any], StoreReference]
    resolver_chain: tuple[resolver.Strategy, ...]
    figures: Callable[[Any], platform_metrics.TransactionFigures]
    income_lines: Callable[[Iterable[Any]], dict[str, float]]


STRATEGIES: dict[Platform, PlatformStrategy] = {
    Platform.UBER_EATS: PlatformStrategy(
        platform=Platform.UBER_EATS,
        build_row=rows.build_uber_eats,
        reference=rows.uber_eats_reference,
        resolver_chain=(
            resolver.match_paren_code,
            resolver.match_full_label,
            resolver.match_alias_name,
        ),
        figures=platform_metrics.uber_eats_figures,
        income_lines=line_items.uber_eats_lines,
    ),
    Platform.DOORDASH: PlatformStrategy(
        platform=Platform.DOORDASH,
        build_row=rows.build_doordash,
        reference=rows.doordash_reference,
        resolver_chain=(
            resolver.match_name_exception,
            resolver.match_platform_key,
            resolver.match_alias_name,
            resolver.match_numeric_suffix,
            resolver.match_descriptive_name,
        ),
        figures=platform_metrics.doordash_figures,
        income_lines=line_items.doordash_lines,
    ),
    Platform.GRUBHUB: PlatformStrategy(
        platform=Platform.GRUBHUB,
        build_row=rows.build_grubhub,
        reference=rows.grubhub_reference,
        resolver_chain=(
            resolver.match_address,
            resolver.match_store_number,
        ),
        figures=platform_metrics.grubhub_figures,
        income_lines=line_items.grubhub_lines,
    ),
}


def get_strategy(platform: Platform | str) -> PlatformStrategy:
    """Look up the strategy for a platform (accepts loose spellings)."""
    return STRATEGIES[Platform.parse(platform)]
