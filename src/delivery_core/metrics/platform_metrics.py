"""Per-platform metric definitions.

Every platform reports sales, marketing and payout differently. Each
platform gets one function that reduces a transaction to the same
:class:`TransactionFigures`; everything downstream (platform, location and
weekly aggregates) sums those figures and derives ratios from the sums.

Platform rules:
    Uber Eats: an order counts when its status is "Completed"; sales are
        the subtotal (sales excl. tax + tax); marketing-driven when the
        marketing adjustment is nonzero; ad spend is positive "other
        payments" described as advertising, on rows of any status.
    DoorDash: an order counts on the Marketplace channel (or no channel)
        with a delivered/picked-up status (or, when no status column is
        present, transaction type "Order"); marketing-driven when its
        marketing spend is nonzero; ad spend is |other payments| on
        Marketplace rows.
    Grubhub: an order counts when its transaction type is "Prepaid Order"
        (or empty); sales are subtotal + sales tax; marketing-driven when
        the merchant-funded promotion is nonzero; no ad spend.

Net payout is summed over every transaction, whatever its status.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import asdict, dataclass

from delivery_core.models import DoorDashTransaction, GrubhubTransaction, UberEatsTransaction

AD_DESCRIPTION_RE = re.compile(
    r"\b(ad|ads|advertising|paid\s*promotion|ad\s*spend|ad\s*fee|ad\s*campaign)\b",
    re.IGNORECASE,
)
NOT_AD_DESCRIPTION_RE = re.compile(r"\b(adjust\w*|added|upgrade)\b", re.IGNORECASE)

DOORDASH_MARKETPLACE = "marketplace"
DOORDASH_COMPLETED_STATUSES = {"delivered", "picked up"}
GRUBHUB_ORDER_TYPE = "prepaid order"

# Columns of the figures frame summed by the aggregators
SUM_COLUMNS = ["orders", "marketing_orders", "sales", "marketing_sales", "ad_spend", "offers", "payout"]


@dataclass(frozen=True)
class TransactionFigures:
    """One transaction reduced to the platform-independent metric inputs.

    Attributes:
        is_order: Counts toward orders and sales (completion/channel rules).
        sales: Sales amount credited (0 when not an order).
        is_marketing: Order was touched by marketing.
        ad_spend: Advertising spend carried by the row.
        offers: Offer/discount value carried by the row.
        payout: Net payout of the row (all statuses).
    """

    is_order: bool
    sales: float
    is_marketing: bool
    ad_spend: float
    offers: float
    payout: float


def is_ad_description(description: str) -> bool:
    """True when an "other payments" description refers to advertising.

    Examples:
        >>> is_ad_description("Ad Spend - Sponsored listing")
        True
        >>> is_ad_description("Price adjustment")
        False
    """
    if not description:
        return False
    return bool(AD_DESCRIPTION_RE.search(description)) and not NOT_AD_DESCRIPTION_RE.search(
        description
    )


def uber_eats_figures(txn: UberEatsTransaction) -> TransactionFigures:
    completed = txn.order_status.strip().lower() == "completed"
    ad_spend = (
        txn.other_payments
        if txn.other_payments > 0 and is_ad_description(txn.other_payments_description)
        else 0.0
    )
    offers = (
        abs(txn.offers_on_items) + abs(txn.delivery_offer_redemptions) + abs(txn.offer_redemption_fee)
        if completed
        else 0.0
    )
    return TransactionFigures(
        is_order=completed,
        sales=txn.subtotal if completed else 0.0,
        is_marketing=completed and txn.marketing_adjustment != 0,
        ad_spend=ad_spend,
        offers=offers,
        payout=txn.net_payout,
    )


def doordash_is_marketplace(txn: DoorDashTransaction) -> bool:
    channel = txn.channel.strip().lower()
    return channel in ("", DOORDASH_MARKETPLACE)


def doordash_is_completed(txn: DoorDashTransaction) -> bool:
    if not doordash_is_marketplace(txn):
        return False
    status = txn.order_status.strip().lower()
    if status:
        return status in DOORDASH_COMPLETED_STATUSES
    return txn.transaction_type.strip().lower() == "order"


def doordash_figures(txn: DoorDashTransaction) -> TransactionFigures:
    completed = doordash_is_completed(txn)
    offers = (
        abs(txn.offers)
        + abs(txn.delivery_redemptions)
        + abs(txn.marketing_credits)
        + abs(txn.third_party_contribution)
    )
    return TransactionFigures(
        is_order=completed,
        sales=txn.subtotal if completed else 0.0,
        is_marketing=completed and txn.marketing_spend != 0,
        ad_spend=abs(txn.other_payments) if doordash_is_marketplace(txn) else 0.0,
        offers=offers if completed else 0.0,
        payout=txn.net_total,
    )


def grubhub_is_completed(txn: GrubhubTransaction) -> bool:
    kind = txn.transaction_type.strip().lower()
    return kind in ("", GRUBHUB_ORDER_TYPE)


def grubhub_figures(txn: GrubhubTransaction) -> TransactionFigures:
    completed = grubhub_is_completed(txn)
    return TransactionFigures(
        is_order=completed,
        sales=txn.sale_amount if completed else 0.0,
        is_marketing=completed and txn.merchant_funded_promotion != 0,
        ad_spend=0.0,
        offers=abs(txn.merchant_funded_promotion) if completed else 0.0,
        payout=txn.merchant_net_total,
    )


def _ratio(numerator: float, denominator: float, scale: float = 1.0) -> float:
    if not denominator:
        return 0.0
    return numerator / denominator * scale


@dataclass
class PlatformMetrics:
    """Marketing and payout metrics for one platform."""

    platform: str
    total_sales: float = 0.0
    marketing_driven_sales: float = 0.0
    organic_sales: float = 0.0
    total_orders: int = 0
    orders_from_marketing: int = 0
    organic_orders: int = 0
    aov: float = 0.0
    ad_spend: float = 0.0
    offer_discount_value: float = 0.0
    total_marketing_investment: float = 0.0
    marketing_investment_percent: float = 0.0
    marketing_roas: float = 0.0
    net_payout: float = 0.0
    net_payout_percent: float = 0.0

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class LocationMetrics(PlatformMetrics):
    """Platform metrics for one location."""

    location_id: str = ""
    location_name: str = ""


def derive_metrics(sums: Mapping[str, float]) -> dict:
    """Derive the metric fields from summed figures.

    Ratios are always computed from the summed numerators and denominators,
    never averaged, and a zero denominator yields 0 rather than NaN/inf.

    Args:
        sums: Mapping with the SUM_COLUMNS keys.

    Returns:
        Keyword arguments for PlatformMetrics / LocationMetrics.
    """
    sales = float(sums.get("sales", 0.0))
    marketing_sales = float(sums.get("marketing_sales", 0.0))
    orders = int(sums.get("orders", 0))
    marketing_orders = int(sums.get("marketing_orders", 0))
    ad_spend = float(sums.get("ad_spend", 0.0))
    offers = float(sums.get("offers", 0.0))
    payout = float(sums.get("payout", 0.0))
    investment = ad_spend + offers
    return {
        "total_sales": sales,
        "marketing_driven_sales": marketing_sales,
        "organic_sales": sales - marketing_sales,
        "total_orders": orders,
        "orders_from_marketing": marketing_orders,
        "organic_orders": orders - marketing_orders,
        "aov": _ratio(sales, orders),
        "ad_spend": ad_spend,
        "offer_discount_value": offers,
        "total_marketing_investment": investment,
        "marketing_investment_percent": _ratio(investment, sales, 100.0),
        "marketing_roas": _ratio(marketing_sales, investment),
        "net_payout": payout,
        "net_payout_percent": _ratio(payout, sales, 100.0),
    }
