"""Run metadata for ingestion.

Every ingestion of a platform export that runs against a DataPaths layout
leaves a JSON record in ``a_raw/uploads/_meta/``. The record names the
buffer by its sha256 digest, so a caller can tell whether an identical
file was already ingested successfully. Skipping is an optimisation only:
ingestion upserts by natural key and stays idempotent regardless.
"""

from __future__ import annotations

import hashlib
import json
from dataclasses import asdict, dataclass
from pathlib import Path


@dataclass
class IngestMetadata:
    """Metadata for one ingestion run.

    Attributes:
        client_id: Client the file was ingested for.
        platform: Platform value ("ubereats", "doordash", "grubhub").
        source_digest: sha256 hex digest of the uploaded buffer.
        rows_read: Raw rows parsed from the file.
        transactions: Unique transactions persisted.
        skipped_rows: Rows dropped for missing identifying fields.
        last_run: ISO timestamp of when the run finished.
        status: "ok" or "failed".
    """

    client_id: str
    platform: str
    source_digest: str
    rows_read: int
    transactions: int
    skipped_rows: int
    last_run: str  # ISO timestamp
    status: str  # "ok" | "failed"

    def to_dict(self) -> dict:
        """Convert metadata to dictionary for JSON serialization."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> IngestMetadata:
        """Create metadata from dictionary."""
        return cls(**data)


def buffer_digest(buffer: bytes) -> str:
    return hashlib.sha256(buffer).hexdigest()


def metadata_path(stage_dir: Path, client_id: str, platform: str, digest: str) -> Path:
    """Compute the metadata file path for one uploaded buffer.

    Args:
        stage_dir: Directory for the stage (e.g., a_raw/uploads).
        client_id: Client id.
        platform: Platform value.
        digest: sha256 digest of the buffer.

    Returns:
        Path to the metadata JSON file.
    """
    return stage_dir / "_meta" / f"{client_id}_{platform}_{digest[:12]}.json"


def write_ingest_metadata(stage_dir: Path, metadata: IngestMetadata) -> None:
    """Write metadata JSON to the _meta/ subdirectory."""
    meta_path = metadata_path(
        stage_dir, metadata.client_id, metadata.platform, metadata.source_digest
    )
    meta_path.parent.mkdir(parents=True, exist_ok=True)

    with open(meta_path, "w", encoding="utf-8") as f:
        json.dump(metadata.to_dict(), f, indent=2, ensure_ascii=False)


def read_ingest_metadata(
    stage_dir: Path,
    client_id: str,
    platform: str,
    digest: str,
) -> IngestMetadata | None:
    """Read metadata JSON if it exists.

    Returns:
        IngestMetadata if the file exists and parses, None otherwise.
    """
    meta_path = metadata_path(stage_dir, client_id, platform, digest)

    if not meta_path.exists():
        return None

    try:
        with open(meta_path, encoding="utf-8") as f:
            data = json.load(f)
        return IngestMetadata.from_dict(data)
    except (json.JSONDecodeError, KeyError, TypeError):
        # Corrupted metadata is treated as missing
        return None


def should_skip_ingest(
    stage_dir: Path,
    client_id: str,
    platform: str,
    digest: str,
    force: bool = False,
) -> bool:
    """Check whether an identical buffer was already ingested successfully."""
    if force:
        return False

    metadata = read_ingest_metadata(stage_dir, client_id, platform, digest)
    if metadata is None:
        return False
    return metadata.status == "ok"
