"""Ingestion pipeline: one platform export -> persisted transactions.

raw bytes -> Schema Normalizer (decode, caption detection, tolerant columns)
          -> Transaction Deduplicator (one row per platform-native key)
          -> Location Resolver (location id per store reference)
          -> TransactionRepository.upsert (by natural key)

Re-ingesting an identical export is a no-op with respect to duplicates:
upserts replace rows under the same (client, platform, key).

Example:
    >>> from delivery_core import DataPaths, Repositories
    >>> from delivery_core.ingest.pipeline import ingest_file
    >>>
    >>> paths = DataPaths.from_root("data")
    >>> repos = Repositories.from_paths(paths)
    >>> result = ingest_file(repos, "capriottis", "doordash", "exports/dd_week_41.csv", paths=paths)
    >>> result.transactions, result.skipped_rows
    (1840, 3)
"""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path

from delivery_core.config import DataPaths
from delivery_core.exceptions import DataQualityError, IngestionError, MissingParameterError
from delivery_core.ingest.dedup import deduplicate
from delivery_core.ingest.format_detector import read_export
from delivery_core.locations.resolver import LocationResolver
from delivery_core.metadata import (
    IngestMetadata,
    buffer_digest,
    read_ingest_metadata,
    should_skip_ingest,
    write_ingest_metadata,
)
from delivery_core.models import IngestResult
from delivery_core.platforms import Platform
from delivery_core.repositories import Repositories
from delivery_core.strategies import get_strategy

logger = logging.getLogger(__name__)


def ingest_csv(
    repos: Repositories,
    client_id: str,
    platform: Platform | str,
    buffer: bytes,
    *,
    resolver: LocationResolver | None = None,
    paths: DataPaths | None = None,
    force: bool = False,
) -> IngestResult:
    """Ingest one platform CSV export for a client.

    Args:
        repos: Repositories to resolve against and persist into.
        client_id: Client the export belongs to.
        platform: Platform the export came from.
        buffer: Raw CSV bytes.
        resolver: Resolver to reuse across files of one pass; a new one is
            created when omitted.
        paths: When given, the buffer is archived under raw_uploads and run
            metadata is written; an identical buffer already ingested with
            status "ok" is skipped unless ``force``.
        force: Ingest even if metadata says this buffer was already ingested.

    Returns:
        IngestResult with row, transaction and skipped-row counts plus the
        store references routed to the unmapped bucket.

    Raises:
        MissingParameterError: If client_id is empty.
        DataQualityError: If the buffer is empty or has no header row.
        IngestionError: If a later stage fails.
    """
    if not client_id:
        raise MissingParameterError("client_id", "ingest_csv")
    platform = Platform.parse(platform)
    strategy = get_strategy(platform)
    digest = buffer_digest(buffer or b"")

    if repos.clients.get(client_id) is None:
        logger.warning("Ingesting %s data for unknown client %s", platform.value, client_id)

    if paths is not None:
        if should_skip_ingest(paths.raw_uploads, client_id, platform.value, digest, force=force):
            meta = read_ingest_metadata(paths.raw_uploads, client_id, platform.value, digest)
            logger.info("Identical %s export already ingested, skipping", platform.display_name)
            return IngestResult(
                platform=platform,
                rows_read=meta.rows_read if meta else 0,
                transactions=meta.transactions if meta else 0,
                skipped_rows=meta.skipped_rows if meta else 0,
                skipped=True,
            )
        _archive_buffer(paths, client_id, platform, digest, buffer)

    resolver = resolver or LocationResolver(repos.locations)
    unresolved_before = len(resolver.unresolved)
    rows_read = 0
    try:
        parsed = read_export(buffer, platform)
        rows_read = len(parsed.rows) + parsed.malformed_lines
        dedup = deduplicate(parsed.rows, client_id, strategy.build_row)
        skipped_rows = dedup.skipped_rows + parsed.malformed_lines

        for txn in dedup.transactions:
            txn.location_id = resolver.resolve_and_maybe_update_alias(
                client_id, strategy.reference(txn), platform
            )

        inserted = repos.transactions.upsert(platform, dedup.transactions)
        logger.info(
            "Ingested %d %s transactions for %s (%d new, %d rows skipped)",
            len(dedup.transactions),
            platform.display_name,
            client_id,
            inserted,
            skipped_rows,
        )
    except DataQualityError:
        logger.error("Unusable %s export for %s", platform.display_name, client_id)
        _write_status(paths, client_id, platform, digest, rows_read, 0, 0, "failed")
        raise
    except Exception as e:
        logger.error("Error ingesting %s export for %s: %s", platform.display_name, client_id, e)
        _write_status(paths, client_id, platform, digest, rows_read, 0, 0, "failed")
        raise IngestionError(f"{platform.display_name} ingestion failed: {e}") from e

    _write_status(
        paths,
        client_id,
        platform,
        digest,
        rows_read,
        len(dedup.transactions),
        skipped_rows,
        "ok",
    )

    unmapped = []
    for p, ref in resolver.unresolved[unresolved_before:]:
        if p is platform and ref.name not in unmapped:
            unmapped.append(ref.name)

    return IngestResult(
        platform=platform,
        rows_read=rows_read,
        transactions=len(dedup.transactions),
        skipped_rows=skipped_rows,
        unmapped_references=unmapped,
    )


def ingest_file(
    repos: Repositories,
    client_id: str,
    platform: Platform | str,
    path: str | Path,
    **kwargs,
) -> IngestResult:
    """Read a CSV file from disk and ingest it with :func:`ingest_csv`."""
    buffer = Path(path).read_bytes()
    return ingest_csv(repos, client_id, platform, buffer, **kwargs)


def _archive_buffer(
    paths: DataPaths, client_id: str, platform: Platform, digest: str, buffer: bytes
) -> None:
    paths.raw_uploads.mkdir(parents=True, exist_ok=True)
    target = paths.raw_uploads / f"{client_id}_{platform.value}_{digest[:12]}.csv"
    if not target.exists():
        target.write_bytes(buffer)


def _write_status(
    paths: DataPaths | None,
    client_id: str,
    platform: Platform,
    digest: str,
    rows_read: int,
    transactions: int,
    skipped_rows: int,
    status: str,
) -> None:
    if paths is None:
        return
    write_ingest_metadata(
        paths.raw_uploads,
        IngestMetadata(
            client_id=client_id,
            platform=platform.value,
            source_digest=digest,
            rows_read=rows_read,
            transactions=transactions,
            skipped_rows=skipped_rows,
            last_run=datetime.now().isoformat(timespec="seconds"),
            status=status,
        ),
    )
