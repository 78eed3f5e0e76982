"""Entities and value objects of the delivery payments core.

Clients own Locations; Locations are referenced by platform transactions;
WeeklyFinancial rows are derived from transactions and can always be
regenerated. Records round-trip through plain dictionaries so that the
CSV-backed repositories can persist them with pandas.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from typing import Any, ClassVar, Union

from delivery_core.config import UNMAPPED_BUCKET_TAG
from delivery_core.platforms import Platform


def _coerce(value: Any, type_name: str) -> Any:
    """Coerce a CSV cell (string or NaN) back to the declared field type."""
    if value is None or (isinstance(value, float) and value != value):
        value = ""
    if type_name == "float":
        try:
            return float(value) if value != "" else 0.0
        except (TypeError, ValueError):
            return 0.0
    if type_name == "int":
        return int(float(value)) if value != "" else 0
    if type_name == "bool":
        return str(value).strip().lower() in ("true", "1", "yes")
    if type_name.startswith("str | None"):
        return str(value) if value != "" else None
    return str(value)


class _Record:
    """to_dict/from_dict for flat dataclasses."""

    def to_dict(self) -> dict:
        """Convert the record to a dictionary for serialization."""
        return asdict(self)  # type: ignore[call-overload]

    @classmethod
    def from_dict(cls, data: dict) -> Any:
        """Create a record from a dictionary, ignoring unknown keys."""
        kwargs = {}
        for f in fields(cls):  # type: ignore[arg-type]
            if f.name in data:
                kwargs[f.name] = _coerce(data[f.name], str(f.type))
        return cls(**kwargs)


@dataclass(frozen=True)
class Client(_Record):
    """A tenant brand whose locations are analyzed."""

    id: str
    name: str


@dataclass
class Location(_Record):
    """Canonical physical store.

    Attributes:
        id: Location id.
        client_id: Owning client.
        canonical_name: Canonical display name.
        store_code: Master store code (e.g. "NV008").
        address, city, state, zip_code: Postal address from the master list.
        uber_eats_name, doordash_name, grubhub_name: Free-text store names as
            seen on each platform. Set once, never silently overwritten.
        uber_eats_store_label: Code Uber Eats embeds in its store names.
        doordash_store_key: DoorDash merchant store key.
        grubhub_address: Street address Grubhub reports for the store.
        is_verified: True when created from the master list.
        location_tag: Optional tag; "unmapped_bucket" marks the overflow bucket.
    """

    id: str
    client_id: str
    canonical_name: str
    store_code: str | None = None
    address: str | None = None
    city: str | None = None
    state: str | None = None
    zip_code: str | None = None
    uber_eats_name: str | None = None
    doordash_name: str | None = None
    grubhub_name: str | None = None
    uber_eats_store_label: str | None = None
    doordash_store_key: str | None = None
    grubhub_address: str | None = None
    is_verified: bool = False
    location_tag: str | None = None

    def alias(self, platform: Platform) -> str | None:
        return getattr(self, platform.alias_field)

    def platform_key(self, platform: Platform) -> str | None:
        return getattr(self, platform.key_field)

    @property
    def is_unmapped_bucket(self) -> bool:
        return self.location_tag == UNMAPPED_BUCKET_TAG


@dataclass
class UberEatsTransaction(_Record):
    """One Uber Eats order settlement, keyed by workflow id."""

    platform: ClassVar[Platform] = Platform.UBER_EATS
    key_field: ClassVar[str] = "workflow_id"

    client_id: str
    workflow_id: str
    order_id: str
    location_id: str | None = None
    store_name: str = ""
    order_status: str = ""
    order_date: str = ""
    order_time: str = ""
    sales_excl_tax: float = 0.0
    tax: float = 0.0
    subtotal: float = 0.0
    delivery_fee: float = 0.0
    service_fee: float = 0.0
    marketplace_fee: float = 0.0
    offers_on_items: float = 0.0
    delivery_offer_redemptions: float = 0.0
    offer_redemption_fee: float = 0.0
    marketing_promotion: str = ""
    marketing_adjustment: float = 0.0
    other_payments: float = 0.0
    other_payments_description: str = ""
    marketplace_facilitator_tax: float = 0.0
    backup_withholding_tax: float = 0.0
    tip: float = 0.0
    net_payout: float = 0.0

    @property
    def natural_key(self) -> str:
        return self.workflow_id


@dataclass
class DoorDashTransaction(_Record):
    """One DoorDash financial-report row, keyed by DoorDash transaction id."""

    platform: ClassVar[Platform] = Platform.DOORDASH
    key_field: ClassVar[str] = "transaction_id"

    client_id: str
    transaction_id: str
    order_number: str
    location_id: str | None = None
    store_name: str = ""
    store_id: str = ""
    order_date: str = ""
    order_time: str = ""
    channel: str = ""
    transaction_type: str = ""
    order_status: str = ""
    subtotal: float = 0.0
    tax_subtotal: float = 0.0
    commission: float = 0.0
    customer_fees: float = 0.0
    error_charges: float = 0.0
    offers: float = 0.0
    delivery_redemptions: float = 0.0
    marketing_credits: float = 0.0
    third_party_contribution: float = 0.0
    other_payments: float = 0.0
    other_payments_description: str = ""
    marketing_fees: float = 0.0
    merchant_fees: float = 0.0
    tax_remitted: float = 0.0
    net_total: float = 0.0

    @property
    def natural_key(self) -> str:
        return self.transaction_id

    @property
    def marketing_spend(self) -> float:
        """Ads plus every promotional component, as absolute amounts."""
        return (
            abs(self.other_payments)
            + abs(self.offers)
            + abs(self.delivery_redemptions)
            + abs(self.marketing_credits)
            + abs(self.third_party_contribution)
        )


@dataclass
class GrubhubTransaction(_Record):
    """One Grubhub transaction, keyed by Grubhub transaction id."""

    platform: ClassVar[Platform] = Platform.GRUBHUB
    key_field: ClassVar[str] = "transaction_id"

    client_id: str
    transaction_id: str
    order_number: str
    location_id: str | None = None
    store_name: str = ""
    street_address: str = ""
    store_number: str = ""
    order_date: str = ""
    transaction_type: str = ""
    order_channel: str = ""
    fulfillment_type: str = ""
    subtotal: float = 0.0
    subtotal_sales_tax: float = 0.0
    commission: float = 0.0
    delivery_commission: float = 0.0
    processing_fee: float = 0.0
    merchant_service_fee: float = 0.0
    merchant_funded_promotion: float = 0.0
    merchant_net_total: float = 0.0
    transaction_note: str = ""
    delivery_charge: float = 0.0
    grubhub_plus_fee: float = 0.0
    tip: float = 0.0
    total_restaurant_bill: float = 0.0

    @property
    def natural_key(self) -> str:
        return self.transaction_id

    @property
    def sale_amount(self) -> float:
        return self.subtotal + self.subtotal_sales_tax


Transaction = Union[UberEatsTransaction, DoorDashTransaction, GrubhubTransaction]

TRANSACTION_TYPES: dict[Platform, type] = {
    Platform.UBER_EATS: UberEatsTransaction,
    Platform.DOORDASH: DoorDashTransaction,
    Platform.GRUBHUB: GrubhubTransaction,
}


@dataclass
class WeeklyFinancial(_Record):
    """Derived weekly aggregate for one location (Monday to Sunday)."""

    client_id: str
    location_id: str
    week_start: str
    week_end: str
    sales: float = 0.0
    marketing_sales: float = 0.0
    marketing_spend: float = 0.0
    marketing_percent: float = 0.0
    roas: float = 0.0
    payout: float = 0.0
    payout_percent: float = 0.0
    payout_with_cogs: float = 0.0


@dataclass
class MetricsFilter:
    """Filters accepted by every query-style operation.

    Attributes:
        client_id: Restrict to one client.
        location_id: Restrict to one location.
        platform: Restrict to one platform (accepts loose spellings).
        week_start: Inclusive start date, YYYY-MM-DD.
        week_end: Inclusive end date, YYYY-MM-DD.
        location_tag: Keep only locations carrying this tag.
        exclude_location_tag: Drop locations carrying this tag.
    """

    client_id: str | None = None
    location_id: str | None = None
    platform: Platform | None = None
    week_start: str | None = None
    week_end: str | None = None
    location_tag: str | None = None
    exclude_location_tag: str | None = None

    def __post_init__(self) -> None:
        if self.platform is not None:
            self.platform = Platform.parse(self.platform)

    def platforms(self) -> list[Platform]:
        return [self.platform] if self.platform is not None else list(Platform)


@dataclass
class IngestResult:
    """Outcome of ingesting one platform export."""

    platform: Platform
    rows_read: int
    transactions: int
    skipped_rows: int
    unmapped_references: list[str] = field(default_factory=list)
    skipped: bool = False


@dataclass
class ImportSummary:
    """Outcome of a master-list import."""

    created: int = 0
    updated: int = 0
    skipped: int = 0
    total: int = 0


@dataclass
class MergeResult:
    """Outcome of merging duplicate locations into one target."""

    target_id: str
    merged_ids: list[str]
    transactions_moved: int
    weekly_rows_regenerated: int


@dataclass(frozen=True)
class StoreReference:
    """A platform's reference to a store, as it appears in an export row.

    Attributes:
        name: Free-text store display name.
        platform_key: Merchant key / store number, when the platform has one.
        address: Street address, when the platform reports one.
    """

    name: str
    platform_key: str = ""
    address: str = ""
