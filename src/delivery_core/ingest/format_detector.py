"""Format detection and CSV decoding for platform exports.

Uber Eats changed its payment export over time without a version marker:
newer files carry a descriptive caption sentence above the real header row.
Detection of that caption is kept here, isolated from the row builders, so
that the next format drift is a local change with its own tests.
"""

from __future__ import annotations

import csv
import io
import logging
import re
from dataclasses import dataclass

import pandas as pd

from delivery_core.exceptions import DataQualityError
from delivery_core.ingest.cleaning_utils import strip_bom
from delivery_core.platforms import Platform

logger = logging.getLogger(__name__)

# Phrases only ever seen in the caption sentence, never in a header cell
CAPTION_RE = re.compile(
    r"\b(as per|whether it|either|mode of|platform from which)\b", re.IGNORECASE
)

_FALLBACK_ENCODINGS = ("utf-8-sig", "cp1252", "latin-1")


def decode_buffer(buffer: bytes) -> str:
    """Decode an uploaded buffer and strip a leading byte-order mark.

    Raises:
        DataQualityError: If the buffer is empty.
    """
    if not buffer or not buffer.strip():
        raise DataQualityError("Uploaded file is empty")

    for encoding in _FALLBACK_ENCODINGS:
        try:
            text = buffer.decode(encoding)
            break
        except UnicodeDecodeError:
            logger.debug("Buffer is not %s, trying next encoding", encoding)
    else:  # pragma: no cover - latin-1 decodes any byte string
        raise DataQualityError("Uploaded file could not be decoded")
    return strip_bom(text)


def first_cell(line: str) -> str:
    try:
        cells = next(csv.reader([line]))
    except (csv.Error, StopIteration):
        return line
    return cells[0] if cells else ""


def is_caption_line(line: str) -> bool:
    """True when a raw line reads like a descriptive sentence, not a header."""
    return bool(CAPTION_RE.search(first_cell(line)))


def detect_header_line(lines: list[str], platform: Platform) -> int:
    """Return the 0-based index of the header row.

    Only Uber Eats exports carry a caption row. The first two raw lines are
    inspected: when line 1 is a caption and a second line exists, parsing
    starts at line 2.

    Examples:
        >>> detect_header_line(['"Order ID as per Uber records",x', "Store Name,Order ID"],
        ...                    Platform.UBER_EATS)
        1
        >>> detect_header_line(["Store Name,Order ID", "A,1"], Platform.UBER_EATS)
        0
    """
    if platform is not Platform.UBER_EATS or len(lines) < 2:
        return 0
    if is_caption_line(lines[0]):
        logger.debug("Caption row detected: %r", lines[0][:80])
        return 1
    return 0


@dataclass
class ParsedExport:
    """Rows of a platform export plus the count of lines dropped as malformed."""

    rows: list[dict[str, str]]
    malformed_lines: int = 0


def read_export(buffer: bytes, platform: Platform) -> ParsedExport:
    """Parse a platform export, counting lines with too many cells.

    Args:
        buffer: Raw CSV bytes as uploaded.
        platform: Platform the export came from.

    Returns:
        ParsedExport with one dict per data row (every value is a string;
        missing cells are "") and the number of over-long lines dropped.

    Raises:
        DataQualityError: If the buffer is empty or has no header row.
    """
    text = decode_buffer(buffer)
    head = [line.rstrip("\r") for line in text.split("\n", 2)[:2]]
    header_idx = detect_header_line(head, platform)
    # Only the caption line is cut; quoted cells in the body stay untouched
    body = text.split("\n", 1)[1] if header_idx else text
    if not body.strip():
        raise DataQualityError(f"No header row found in {platform.display_name} export")

    malformed: list[list[str]] = []

    def count_bad_line(cells: list[str]) -> None:
        malformed.append(cells)
        logger.warning(
            "Dropped malformed %s line with %d cells: %r",
            platform.display_name,
            len(cells),
            cells[:3],
        )
        return None

    try:
        df = pd.read_csv(
            io.StringIO(body),
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
            engine="python",
            on_bad_lines=count_bad_line,
        )
    except pd.errors.EmptyDataError as e:
        raise DataQualityError(f"No header row found in {platform.display_name} export") from e

    df = df.fillna("")
    logger.debug("Parsed %d rows, columns: %s", len(df), list(df.columns)[:10])
    return ParsedExport(rows=df.to_dict(orient="records"), malformed_lines=len(malformed))


def parse_csv(buffer: bytes, platform: Platform) -> list[dict[str, str]]:
    """Parse a platform export into row mappings (header -> raw string).

    Raises:
        DataQualityError: If the buffer is empty or has no header row.
    """
    return read_export(buffer, platform).rows
