"""String normalization and similarity for store references.

Addresses are reduced to a canonical form (lowercase, suite/unit suffix
dropped, directional and street-type words contracted, punctuation removed)
so that two spellings of one street address compare equal. Store names get a
looser normalization used only for edit-distance similarity.

Examples:
    >>> normalize_address("123 N. Main Street, Suite 4")
    '123 n main st'
    >>> normalize_address("123 North Main St Ste 4")
    '123 n main st'
    >>> numeric_suffix("NV008")
    '8'
"""

from __future__ import annotations

import re

DIRECTIONALS = {
    "north": "n",
    "south": "s",
    "east": "e",
    "west": "w",
    "northeast": "ne",
    "northwest": "nw",
    "southeast": "se",
    "southwest": "sw",
}

STREET_TYPES = {
    "street": "st",
    "avenue": "ave",
    "av": "ave",
    "boulevard": "blvd",
    "drive": "dr",
    "road": "rd",
    "lane": "ln",
    "court": "ct",
    "place": "pl",
    "parkway": "pkwy",
    "highway": "hwy",
    "circle": "cir",
    "terrace": "ter",
    "trail": "trl",
    "square": "sq",
    "suite": "ste",
}

CORPORATE_WORDS = {"inc", "llc", "corp", "corporation", "co"}
STREET_WORDS = {word for word in STREET_TYPES if len(word) > 3}

_SUITE_RE = re.compile(
    r"(?:\b(?:suite|ste|unit|apt|apartment|bldg|building)\b|#)\s*[a-z0-9-]+\b",
)
_ADDRESS_PUNCT_RE = re.compile(r"[.,;:'\"()]")
_NON_ALNUM_RE = re.compile(r"[^a-z0-9\s]")
_PAREN_CODE_RE = re.compile(r"\(([^)]+)\)")
_TRAILING_DIGITS_RE = re.compile(r"(\d+)\s*$")
_STORE_CODE_TOKEN_RE = re.compile(r"\b[a-z]{2,3}\d+\b")


def normalize_address(address: str | None) -> str:
    """Reduce a street address to its canonical comparison form.

    The result is idempotent: normalizing it again returns it unchanged.
    """
    if not address:
        return ""
    s = _ADDRESS_PUNCT_RE.sub(" ", address.lower())
    s = _SUITE_RE.sub(" ", s)
    s = _NON_ALNUM_RE.sub(" ", s)
    tokens = []
    for token in s.split():
        token = DIRECTIONALS.get(token, token)
        token = STREET_TYPES.get(token, token)
        tokens.append(token)
    return " ".join(tokens)


def normalize_location_name(name: str | None) -> str:
    """Normalize a store name for similarity scoring.

    Lowercases, strips punctuation, collapses whitespace and drops
    corporate suffixes, the word "of" and full street-type words.
    """
    if not name:
        return ""
    s = name.lower().replace("'", "").replace("’", "")
    s = re.sub(r"[^\w\s]", " ", s).replace("_", " ")
    drop = CORPORATE_WORDS | STREET_WORDS | {"of"}
    return " ".join(t for t in s.split() if t not in drop)


def levenshtein(a: str, b: str) -> int:
    """Classic edit distance (insert, delete, substitute all cost 1)."""
    if a == b:
        return 0
    if len(a) < len(b):
        a, b = b, a
    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i]
        for j, cb in enumerate(b, start=1):
            current.append(
                min(
                    previous[j] + 1,
                    current[j - 1] + 1,
                    previous[j - 1] + (ca != cb),
                )
            )
        previous = current
    return previous[-1]


def similarity(a: str | None, b: str | None) -> float:
    """Name similarity in [0, 1]: ``(maxLen - distance) / maxLen``.

    Both names are normalized with :func:`normalize_location_name` first.
    An empty name has no similarity to anything.

    Examples:
        >>> similarity("Henderson - Sunset Rd., LLC", "henderson sunset rd")
        1.0
    """
    na, nb = normalize_location_name(a), normalize_location_name(b)
    if not na or not nb:
        return 0.0
    longer = max(len(na), len(nb))
    return (longer - levenshtein(na, nb)) / longer


def extract_paren_code(name: str | None) -> str | None:
    """Return the code embedded in parentheses, e.g. "Shop (IA069)" -> "IA069"."""
    if not name:
        return None
    match = _PAREN_CODE_RE.search(name)
    if match is None:
        return None
    code = match.group(1).strip()
    return code or None


def numeric_suffix(code: str | None) -> str | None:
    """Trailing digits of a code with leading zeros stripped ("NV008" -> "8")."""
    if not code:
        return None
    match = _TRAILING_DIGITS_RE.search(code.strip())
    if match is None:
        return None
    return match.group(1).lstrip("0") or "0"


def descriptive_part(value: str | None) -> str:
    """Descriptive portion of a store code or name.

    Drops parenthesized content and code-like tokens ("NV008") and then
    applies :func:`normalize_location_name`. "NV008 - Henderson" and
    "Henderson (NV008)" both reduce to "henderson".
    """
    if not value:
        return ""
    s = _PAREN_CODE_RE.sub(" ", value.lower())
    s = _STORE_CODE_TOKEN_RE.sub(" ", s)
    return normalize_location_name(s)
