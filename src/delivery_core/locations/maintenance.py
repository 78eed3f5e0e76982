"""Offline location maintenance: backfill, suggestions, duplicates, merge, delete.

This is the only place edit-distance matching is applied to stored data,
and it is gated: the batch backfill runs the deterministic resolver chain
first and accepts a fuzzy match only at or above
``BACKFILL_SIMILARITY_THRESHOLD``. Nothing here creates canonical Locations.
"""

from __future__ import annotations

import logging
from collections import Counter, defaultdict
from dataclasses import dataclass, field, fields

from delivery_core.config import BACKFILL_SIMILARITY_THRESHOLD, SUGGESTION_SIMILARITY_THRESHOLD
from delivery_core.exceptions import NotFoundError, RepositoryError
from delivery_core.locations.matching import normalize_location_name, similarity
from delivery_core.locations.resolver import LocationResolver
from delivery_core.metrics.weekly import regenerate_weekly_financials
from delivery_core.models import Location, MergeResult, StoreReference, Transaction
from delivery_core.platforms import Platform
from delivery_core.repositories import Repositories
from delivery_core.strategies import get_strategy

logger = logging.getLogger(__name__)

# Location attributes a merge copies from sources into empty target slots
_MERGEABLE_FIELDS = [
    f.name
    for f in fields(Location)
    if f.name not in ("id", "client_id", "canonical_name", "is_verified", "location_tag")
]


@dataclass
class LocationMatchSuggestion:
    """Best canonical candidate for an unmapped platform store name."""

    location_name: str
    platform: str
    order_count: int
    confidence: float = 0.0
    matched_location_id: str | None = None
    matched_location_name: str | None = None


@dataclass
class BackfillMatch:
    platform: str
    location_name: str
    location_id: str
    method: str  # "resolver" | "fuzzy"
    confidence: float
    transactions: int


@dataclass
class BackfillReport:
    """Matched/unmatched report of a backfill run."""

    matched: list[BackfillMatch] = field(default_factory=list)
    unmatched: list[tuple[str, str]] = field(default_factory=list)
    transactions_updated: int = 0


def _is_unmapped(txn: Transaction, bucket_ids: set[str]) -> bool:
    return not txn.location_id or txn.location_id in bucket_ids


def _real_locations(repos: Repositories, client_id: str) -> list[Location]:
    return [loc for loc in repos.locations.list_by_client(client_id) if not loc.is_unmapped_bucket]


def _bucket_ids(repos: Repositories, client_id: str) -> set[str]:
    return {loc.id for loc in repos.locations.list_by_client(client_id) if loc.is_unmapped_bucket}


def best_name_match(
    name: str, platform: Platform, candidates: list[Location]
) -> tuple[Location | None, float]:
    """Highest-similarity candidate by platform alias or canonical name.

    Ties keep the first candidate in id order, so results are deterministic.
    """
    best: Location | None = None
    best_score = 0.0
    for loc in sorted(candidates, key=lambda c: c.id):
        score = max(similarity(name, loc.alias(platform)), similarity(name, loc.canonical_name))
        if score > best_score:
            best, best_score = loc, score
    return best, best_score


def match_suggestions(
    repos: Repositories,
    client_id: str,
    threshold: float = SUGGESTION_SIMILARITY_THRESHOLD,
) -> list[LocationMatchSuggestion]:
    """Suggest canonical locations for unmapped platform store names.

    Every distinct unmapped store name is reported with its order count;
    a match is attached only when its similarity reaches ``threshold``.
    Suggestions are sorted by order count, largest first.
    """
    candidates = _real_locations(repos, client_id)
    bucket_ids = _bucket_ids(repos, client_id)
    suggestions = []

    for platform in Platform:
        counts: Counter[str] = Counter()
        for txn in repos.transactions.list(platform, client_id=client_id):
            if _is_unmapped(txn, bucket_ids) and txn.store_name:
                counts[txn.store_name] += 1

        for name, order_count in counts.items():
            best, score = best_name_match(name, platform, candidates)
            suggestion = LocationMatchSuggestion(
                location_name=name,
                platform=platform.value,
                order_count=order_count,
                confidence=round(score, 4),
            )
            if best is not None and score >= threshold:
                suggestion.matched_location_id = best.id
                suggestion.matched_location_name = best.canonical_name
            suggestions.append(suggestion)

    return sorted(suggestions, key=lambda s: (-s.order_count, s.platform, s.location_name))


def backfill_locations(
    repos: Repositories,
    client_id: str,
    *,
    threshold: float = BACKFILL_SIMILARITY_THRESHOLD,
    resolver: LocationResolver | None = None,
    dry_run: bool = False,
) -> BackfillReport:
    """Repair location ids of unmapped transactions.

    Each unmapped store reference goes through the deterministic resolver
    chain first; only when that fails is a fuzzy name match considered, and
    only at or above ``threshold``. Transactions that still do not match
    keep their location.

    Args:
        repos: Repositories to read and repair.
        client_id: Client to backfill.
        threshold: Minimum similarity for a fuzzy match.
        resolver: Resolver to reuse (one is created when omitted).
        dry_run: Report matches without writing them.

    Returns:
        BackfillReport with matched and unmatched references.
    """
    resolver = resolver or LocationResolver(repos.locations)
    candidates = _real_locations(repos, client_id)
    bucket_ids = _bucket_ids(repos, client_id)
    report = BackfillReport()

    for platform in Platform:
        strategy = get_strategy(platform)
        groups: dict[StoreReference, list[Transaction]] = defaultdict(list)
        for txn in repos.transactions.list(platform, client_id=client_id):
            if _is_unmapped(txn, bucket_ids):
                groups[strategy.reference(txn)].append(txn)

        for reference, txns in groups.items():
            location = resolver.match(client_id, reference, platform)
            method, confidence = "resolver", 1.0
            if location is None:
                location, confidence = best_name_match(reference.name, platform, candidates)
                method = "fuzzy"
                if confidence < threshold:
                    location = None

            if location is None:
                report.unmatched.append((platform.value, reference.name))
                continue

            report.matched.append(
                BackfillMatch(
                    platform=platform.value,
                    location_name=reference.name,
                    location_id=location.id,
                    method=method,
                    confidence=round(confidence, 4),
                    transactions=len(txns),
                )
            )
            if dry_run:
                continue
            for txn in txns:
                repos.transactions.set_location(platform, client_id, txn.natural_key, location.id)
            report.transactions_updated += len(txns)

    logger.info(
        "Backfill for %s: %d references matched, %d unmatched, %d transactions updated",
        client_id,
        len(report.matched),
        len(report.unmatched),
        report.transactions_updated,
    )
    return report


def find_duplicate_locations(repos: Repositories, client_id: str) -> list[list[Location]]:
    """Groups of a client's locations sharing a normalized canonical name."""
    groups: dict[str, list[Location]] = defaultdict(list)
    for loc in _real_locations(repos, client_id):
        groups[normalize_location_name(loc.canonical_name)].append(loc)
    return [
        sorted(group, key=lambda loc: loc.id)
        for _, group in sorted(groups.items())
        if len(group) > 1
    ]


def merge_locations(repos: Repositories, target_id: str, source_ids: list[str]) -> MergeResult:
    """Merge duplicate locations into ``target_id``.

    Transactions of the sources move to the target and empty target
    attributes are filled from the sources (existing values are kept). The
    sources are deleted and the client's weekly financials are regenerated,
    so the target keeps one row per week.

    Raises:
        NotFoundError: If the target or a source does not exist.
        RepositoryError: If locations belong to different clients, the target
            is among the sources, or a source is the unmapped bucket.
    """
    target = repos.locations.get(target_id)
    if target is None:
        raise NotFoundError(f"Target location '{target_id}' not found")

    sources = []
    for source_id in source_ids:
        if source_id == target_id:
            raise RepositoryError("Cannot merge a location into itself")
        source = repos.locations.get(source_id)
        if source is None:
            raise NotFoundError(f"Source location '{source_id}' not found")
        if source.client_id != target.client_id:
            raise RepositoryError(
                f"Location '{source_id}' belongs to another client than '{target_id}'"
            )
        if source.is_unmapped_bucket:
            raise RepositoryError("The unmapped bucket cannot be merged into a location")
        sources.append(source)

    for source in sources:
        for attr in _MERGEABLE_FIELDS:
            if getattr(target, attr) in (None, "") and getattr(source, attr) not in (None, ""):
                setattr(target, attr, getattr(source, attr))
        target.is_verified = target.is_verified or source.is_verified
    repos.locations.save(target)

    moved = repos.transactions.reassign_location(set(source_ids), target_id)
    for source in sources:
        repos.locations.delete(source.id)
    regenerated = regenerate_weekly_financials(repos, target.client_id)

    logger.info(
        "Merged %d locations into %s: %d transactions moved, %d weekly rows regenerated",
        len(sources),
        target.canonical_name,
        moved,
        regenerated,
    )
    return MergeResult(
        target_id=target_id,
        merged_ids=[s.id for s in sources],
        transactions_moved=moved,
        weekly_rows_regenerated=regenerated,
    )


def delete_location(
    repos: Repositories, location_id: str, reassign_to: str | None = None
) -> int:
    """Delete a location, optionally moving its transactions first.

    The client's weekly financials are regenerated afterwards so no row
    refers to the deleted location.

    Returns:
        Number of transactions moved to ``reassign_to``.

    Raises:
        NotFoundError: If either location does not exist.
        RepositoryError: If transactions still reference the location and no
            ``reassign_to`` was given, or ``reassign_to`` is the location
            itself or belongs to another client.
    """
    location = repos.locations.get(location_id)
    if location is None:
        raise NotFoundError(f"Location '{location_id}' not found")

    moved = 0
    if reassign_to is not None:
        if reassign_to == location_id:
            raise RepositoryError("Cannot reassign transactions to the location being deleted")
        replacement = repos.locations.get(reassign_to)
        if replacement is None:
            raise NotFoundError(f"Location '{reassign_to}' not found")
        if replacement.client_id != location.client_id:
            raise RepositoryError(
                f"Location '{reassign_to}' belongs to another client than '{location_id}'"
            )
        moved = repos.transactions.reassign_location({location_id}, reassign_to)
    elif repos.transactions.count_for_location(location_id):
        raise RepositoryError(
            f"Location '{location_id}' still has transactions; pass reassign_to to move them"
        )

    repos.locations.delete(location_id)
    regenerate_weekly_financials(repos, location.client_id)
    logger.info("Deleted location %s (%d transactions moved)", location.canonical_name, moved)
    return moved
