"""Authoritative master-list import.

The master list is the only source of new canonical Locations. It arrives as
spreadsheet rows with fixed column positions:

    0 status | 1 canonical name | 2 store code | 3 DoorDash store key |
    4 address | 5 city | 6 state | 7 zip |
    8 Uber Eats store label (optional) | 9 Grubhub address (optional)

Only rows with status "Active" are imported. Rows are upserted by
(client, store code); a row without a store code cannot be matched and is
skipped. Every outcome is counted in the returned ImportSummary.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Iterable, Sequence
from pathlib import Path

import pandas as pd

from delivery_core.ingest.cleaning_utils import clean_store_number, strip_invisibles
from delivery_core.models import ImportSummary, Location
from delivery_core.repositories.base import LocationRepository

logger = logging.getLogger(__name__)

COL_STATUS = 0
COL_NAME = 1
COL_STORE_CODE = 2
COL_DOORDASH_KEY = 3
COL_ADDRESS = 4
COL_CITY = 5
COL_STATE = 6
COL_ZIP = 7
COL_UBER_EATS_LABEL = 8
COL_GRUBHUB_ADDRESS = 9

ACTIVE_STATUS = "active"


def _cell(row: Sequence[object], index: int) -> str:
    if index >= len(row):
        return ""
    return strip_invisibles(row[index])


def _is_header(row: Sequence[object]) -> bool:
    return _cell(row, COL_STATUS).lower() == "status"


def read_master_list_csv(path: str | Path) -> list[list[str]]:
    """Read a master-list sheet exported as CSV into positional rows."""
    df = pd.read_csv(path, header=None, dtype=str, keep_default_na=False, encoding="utf-8-sig")
    return df.values.tolist()


def import_master_list(
    locations: LocationRepository,
    client_id: str,
    rows: Iterable[Sequence[object]],
) -> ImportSummary:
    """Create or update canonical Locations from master-list rows.

    Created locations are verified. On update, the master list's name,
    address and platform keys replace stored values, while the free-text
    platform aliases recorded during ingestion are left untouched.

    Args:
        locations: Location repository to upsert into.
        client_id: Client owning the locations.
        rows: Positional rows; a leading header row is ignored.

    Returns:
        ImportSummary(created, updated, skipped, total).
    """
    summary = ImportSummary()

    for row in rows:
        if not row or _is_header(row):
            continue
        summary.total += 1

        status = _cell(row, COL_STATUS).lower()
        name = _cell(row, COL_NAME)
        code = clean_store_number(_cell(row, COL_STORE_CODE))
        if status != ACTIVE_STATUS:
            logger.debug("Skipping inactive master row %r (status=%r)", name, status)
            summary.skipped += 1
            continue
        if not code:
            logger.warning("Skipping master row %r: missing store code", name)
            summary.skipped += 1
            continue

        fields = {
            "canonical_name": name or code,
            "store_code": code,
            "doordash_store_key": _cell(row, COL_DOORDASH_KEY) or None,
            "address": _cell(row, COL_ADDRESS) or None,
            "city": _cell(row, COL_CITY) or None,
            "state": _cell(row, COL_STATE) or None,
            "zip_code": _cell(row, COL_ZIP) or None,
            "uber_eats_store_label": _cell(row, COL_UBER_EATS_LABEL) or None,
            "grubhub_address": _cell(row, COL_GRUBHUB_ADDRESS) or None,
        }

        existing = locations.find_by_store_code(client_id, code)
        if existing is None:
            location = Location(
                id=str(uuid.uuid4()),
                client_id=client_id,
                is_verified=True,
                **fields,
            )
            locations.save(location)
            summary.created += 1
            logger.debug("Created location %s (%s)", location.canonical_name, code)
            continue

        for attr, value in fields.items():
            if value is not None:
                setattr(existing, attr, value)
        existing.is_verified = True
        locations.save(existing)
        summary.updated += 1

    logger.info(
        "Master list import for %s: %d created, %d updated, %d skipped, %d total",
        client_id,
        summary.created,
        summary.updated,
        summary.skipped,
        summary.total,
    )
    return summary
