"""Location Resolver: platform store references -> canonical Location ids.

Resolution walks a deterministic, ordered chain of matching strategies per
platform; the first strategy that yields exactly one location wins.
Strategies that can be ambiguous (suffix and substring matching) refuse to
pick between several candidates rather than guess. When nothing matches,
the reference is routed to the client's single unmapped-bucket Location.

Live resolution never creates canonical locations and never uses fuzzy
matching; see :mod:`delivery_core.locations.maintenance` for the gated
batch backfill.

Example:
    >>> from delivery_core.repositories import Repositories
    >>> from delivery_core.locations.resolver import LocationResolver
    >>>
    >>> repos = Repositories.in_memory()
    >>> resolver = LocationResolver(repos.locations)
    >>> resolver.resolve("capriottis", "Capriotti's (NV008)", Platform.UBER_EATS)
    '...'
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field

from delivery_core.config import UNMAPPED_BUCKET_NAME, UNMAPPED_BUCKET_TAG
from delivery_core.ingest.cleaning_utils import clean_store_number
from delivery_core.locations.matching import (
    descriptive_part,
    extract_paren_code,
    normalize_address,
    normalize_location_name,
    numeric_suffix,
)
from delivery_core.models import Location, StoreReference
from delivery_core.platforms import Platform
from delivery_core.repositories.base import LocationRepository

logger = logging.getLogger(__name__)

# Known DoorDash store names that do not follow the merchant-key convention,
# mapped (lowercase literal name) to the master store code they belong to.
# Deployments register their anomalies through LocationResolver(name_exceptions=...).
DOORDASH_NAME_EXCEPTIONS: dict[str, str] = {}

# Descriptive substrings shorter than this are too weak to match on
MIN_DESCRIPTIVE_LENGTH = 4


@dataclass
class MatchContext:
    """Inputs shared by every strategy in one resolution."""

    reference: StoreReference
    platform: Platform
    candidates: list[Location]
    name_exceptions: Mapping[str, str] = field(default_factory=dict)


Strategy = Callable[[MatchContext], "Location | None"]


def _single(matches: list[Location], strategy: str, ctx: MatchContext) -> Location | None:
    if len(matches) == 1:
        return matches[0]
    if len(matches) > 1:
        logger.debug(
            "%s: %r is ambiguous between %s, skipping",
            strategy,
            ctx.reference.name,
            [loc.id for loc in matches],
        )
    return None


def _eq(a: str | None, b: str | None) -> bool:
    return bool(a) and bool(b) and a.strip().lower() == b.strip().lower()  # type: ignore[union-attr]


def match_name_exception(ctx: MatchContext) -> Location | None:
    """Literal lowercase lookup of the display name in the exception table."""
    code = ctx.name_exceptions.get(ctx.reference.name.strip().lower())
    if not code:
        return None
    return _single([loc for loc in ctx.candidates if _eq(loc.store_code, code)], "exception", ctx)


def match_platform_key(ctx: MatchContext) -> Location | None:
    """Exact match of the platform key against the stored key for that platform."""
    key = ctx.reference.platform_key
    if not key:
        return None
    field_name = ctx.platform.key_field
    matches = [loc for loc in ctx.candidates if _eq(getattr(loc, field_name), key)]
    return _single(matches, "platform_key", ctx)


def match_alias_name(ctx: MatchContext) -> Location | None:
    """Normalized equality with a previously recorded platform alias."""
    wanted = normalize_location_name(ctx.reference.name)
    if not wanted:
        return None
    matches = [
        loc
        for loc in ctx.candidates
        if normalize_location_name(loc.alias(ctx.platform)) == wanted
    ]
    return _single(matches, "alias_name", ctx)


def match_numeric_suffix(ctx: MatchContext) -> Location | None:
    """Purely numeric key vs. numeric suffix of the stored key ("8" ~ "NV008")."""
    key = ctx.reference.platform_key.strip()
    if not key.isdigit():
        return None
    wanted = key.lstrip("0") or "0"
    matches = [
        loc
        for loc in ctx.candidates
        if numeric_suffix(loc.platform_key(ctx.platform) or loc.store_code) == wanted
    ]
    return _single(matches, "numeric_suffix", ctx)


def match_descriptive_name(ctx: MatchContext) -> Location | None:
    """Substring containment between the display name and a location's descriptive part."""
    incoming = descriptive_part(ctx.reference.name)
    if len(incoming) < MIN_DESCRIPTIVE_LENGTH:
        return None
    matches = []
    for loc in ctx.candidates:
        stored = descriptive_part(loc.platform_key(ctx.platform) or loc.canonical_name)
        if len(stored) < MIN_DESCRIPTIVE_LENGTH:
            continue
        if stored in incoming or incoming in stored:
            matches.append(loc)
    return _single(matches, "descriptive_name", ctx)


def match_paren_code(ctx: MatchContext) -> Location | None:
    """Code in parentheses ("Name (IA069)") vs. the stored label, then the master store code."""
    code = extract_paren_code(ctx.reference.name)
    if code is None:
        return None
    matches = [loc for loc in ctx.candidates if _eq(loc.platform_key(ctx.platform), code)]
    if matches:
        return _single(matches, "paren_code", ctx)
    matches = [loc for loc in ctx.candidates if _eq(loc.store_code, code)]
    return _single(matches, "paren_code", ctx)


def match_full_label(ctx: MatchContext) -> Location | None:
    """Whole display name vs. the stored platform label (older label format)."""
    name = ctx.reference.name
    matches = [loc for loc in ctx.candidates if _eq(loc.platform_key(ctx.platform), name)]
    return _single(matches, "full_label", ctx)


def match_address(ctx: MatchContext) -> Location | None:
    """Normalized street address equality (platform address, then master address)."""
    wanted = normalize_address(ctx.reference.address)
    if not wanted:
        return None
    matches = [
        loc
        for loc in ctx.candidates
        if wanted in (normalize_address(loc.platform_key(ctx.platform)), normalize_address(loc.address))
    ]
    return _single(matches, "address", ctx)


def match_store_number(ctx: MatchContext) -> Location | None:
    """Store number vs. the master store code, then leading-zero-insensitive suffix."""
    number = clean_store_number(ctx.reference.platform_key)
    if not number:
        return None
    exact = [loc for loc in ctx.candidates if _eq(loc.store_code, number)]
    if exact:
        return _single(exact, "store_number", ctx)
    if not number.isdigit():
        return None
    wanted = number.lstrip("0") or "0"
    matches = [loc for loc in ctx.candidates if numeric_suffix(loc.store_code) == wanted]
    return _single(matches, "store_number", ctx)


class LocationResolver:
    """Resolves platform store references for one repository of locations.

    The resolver memoizes results per (client, platform, reference), so
    within one ingestion pass the same reference always yields the same id,
    even after an alias update changes which strategy would fire first.
    """

    def __init__(
        self,
        locations: LocationRepository,
        name_exceptions: Mapping[str, str] | None = None,
    ) -> None:
        """Initialize the resolver.

        Args:
            locations: Location repository to match against.
            name_exceptions: DoorDash anomalous store names (lowercase) to
                master store codes. Defaults to DOORDASH_NAME_EXCEPTIONS.
        """
        self.locations = locations
        table = DOORDASH_NAME_EXCEPTIONS if name_exceptions is None else name_exceptions
        self.name_exceptions = {k.strip().lower(): v for k, v in table.items()}
        self._cache: dict[tuple[str, Platform, StoreReference], str] = {}
        self.unresolved: list[tuple[Platform, StoreReference]] = []

    def unmapped_bucket(self, client_id: str) -> Location:
        """Return the client's unmapped bucket, creating it when absent."""
        existing = self.locations.find_by_tag(client_id, UNMAPPED_BUCKET_TAG)
        if existing:
            return sorted(existing, key=lambda loc: loc.id)[0]
        bucket = Location(
            id=str(uuid.uuid4()),
            client_id=client_id,
            canonical_name=UNMAPPED_BUCKET_NAME,
            is_verified=False,
            location_tag=UNMAPPED_BUCKET_TAG,
        )
        logger.info("Created unmapped bucket %s for client %s", bucket.id, client_id)
        return self.locations.save(bucket)

    def match(self, client_id: str, reference: StoreReference, platform: Platform) -> Location | None:
        """Run the strategy chain without falling back to the bucket."""
        from delivery_core.strategies import get_strategy

        candidates = [
            loc for loc in self.locations.list_by_client(client_id) if not loc.is_unmapped_bucket
        ]
        ctx = MatchContext(
            reference=reference,
            platform=platform,
            candidates=candidates,
            name_exceptions=self.name_exceptions if platform is Platform.DOORDASH else {},
        )
        for strategy in get_strategy(platform).resolver_chain:
            location = strategy(ctx)
            if location is not None:
                logger.debug(
                    "Resolved %s reference %r via %s -> %s",
                    platform.value,
                    reference.name,
                    strategy.__name__,
                    location.id,
                )
                return location
        return None

    def resolve(
        self,
        client_id: str,
        platform_reference: str,
        platform: Platform,
        platform_key: str | None = None,
        address: str | None = None,
    ) -> str:
        """Resolve a store reference to a Location id. Never raises for unmatched input.

        Args:
            client_id: Client owning the locations.
            platform_reference: Store display name from the export.
            platform: Platform the reference came from.
            platform_key: Merchant key or store number, if any.
            address: Store street address, if any.

        Returns:
            Matching Location id, or the client's unmapped bucket id.
        """
        reference = StoreReference(
            name=(platform_reference or "").strip(),
            platform_key=(platform_key or "").strip(),
            address=(address or "").strip(),
        )
        return self.resolve_and_maybe_update_alias(client_id, reference, platform, update_alias=False)

    def resolve_and_maybe_update_alias(
        self,
        client_id: str,
        reference: StoreReference,
        platform: Platform,
        *,
        update_alias: bool = True,
    ) -> str:
        """Resolve a reference and record its display name as the platform alias.

        Preconditions:
            ``reference`` comes from ``platform``'s export for ``client_id``.

        Postconditions:
            - The returned id is an existing Location of the client.
            - No Location other than the unmapped bucket was created.
            - If the matched Location had no alias for ``platform``, it now
              holds ``reference.name``; an existing alias is never overwritten.
            - The bucket never receives aliases.

        Returns:
            Location id.
        """
        platform = Platform.parse(platform)
        cache_key = (client_id, platform, reference)
        if cache_key in self._cache:
            return self._cache[cache_key]

        location = self.match(client_id, reference, platform)
        if location is None:
            bucket = self.unmapped_bucket(client_id)
            logger.warning(
                "Unresolved %s store reference %r (key=%r, address=%r) -> unmapped bucket",
                platform.display_name,
                reference.name,
                reference.platform_key,
                reference.address,
            )
            self.unresolved.append((platform, reference))
            self._cache[cache_key] = bucket.id
            return bucket.id

        if update_alias and reference.name:
            self._set_alias_once(location, platform, reference.name)
        self._cache[cache_key] = location.id
        return location.id

    def _set_alias_once(self, location: Location, platform: Platform, name: str) -> None:
        current = location.alias(platform)
        if current:
            if current != name:
                logger.debug(
                    "Keeping %s alias %r on %s (seen %r)",
                    platform.value,
                    current,
                    location.id,
                    name,
                )
            return
        setattr(location, platform.alias_field, name)
        self.locations.save(location)
        logger.info("Recorded %s alias %r for %s", platform.display_name, name, location.canonical_name)
