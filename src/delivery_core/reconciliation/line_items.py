"""Income-statement taxonomy and per-platform line-item reducers.

Amounts are signed by their effect on the merchant's payout: revenue is
positive, platform charges and marketing are negative. Sales-derived lines
only take transactions that meet the platform's completion/channel rules;
net payout takes every transaction. The residual between the itemized lines
and the observed payout is reported as "unaccounted", so each platform's
statement always reconciles to the cash actually paid out.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable

from delivery_core.metrics.platform_metrics import (
    doordash_is_marketplace,
    doordash_figures,
    grubhub_figures,
    uber_eats_figures,
)
from delivery_core.models import DoorDashTransaction, GrubhubTransaction, UberEatsTransaction

# (key, label) in statement order. Indented labels are sub-items.
LINE_ITEMS: list[tuple[str, str]] = [
    ("transactions", "Transactions"),
    ("sales_incl_tax", "Sales (incl. tax)"),
    ("sales_excl_tax", "Sales (excl. tax)"),
    ("unfulfilled_sales", "Unfulfilled sales"),
    ("unfulfilled_refunds", "Unfulfilled refunds"),
    ("taxes", "Taxes"),
    ("taxes_withheld", "Taxes withheld"),
    ("taxes_backup", "Backup withholding tax"),
    ("commissions", "Commissions"),
    ("restaurant_delivery_charge", "Restaurant delivery charge"),
    ("marketing", "Marketing"),
    ("loyalty", "  Loyalty"),
    ("ad_spend", "  Ad spend"),
    ("promo_spend", "  Promo spend"),
    ("platform_marketing_fee", "  Platform marketing fee"),
    ("merchant_funded_discount", "  Merchant-funded discount"),
    ("third_party_funded_discount", "  Third-party-funded discount"),
    ("customer_refunds", "Customer refunds"),
    ("won_disputes", "Won disputes"),
    ("others", "Others"),
    ("customer_tip", "  Customer tip"),
    ("restaurant_fees", "  Restaurant fees"),
    ("miscellaneous", "  Miscellaneous"),
    ("unaccounted", "  Unaccounted"),
    ("net_payout", "Net payout"),
    ("cost_of_goods_sold", "Cost of goods sold (est.)"),
    ("net_margin", "Net margin"),
]

LINE_KEYS = [key for key, _ in LINE_ITEMS]

MARKETING_ITEMS = [
    "loyalty",
    "ad_spend",
    "promo_spend",
    "platform_marketing_fee",
    "merchant_funded_discount",
    "third_party_funded_discount",
]

OTHER_ITEMS = ["customer_tip", "restaurant_fees", "miscellaneous"]

# Lines whose sum equals net payout (taxes and unfulfilled sales are memo lines)
RECONCILING_ITEMS = [
    "sales_incl_tax",
    "unfulfilled_refunds",
    "taxes_withheld",
    "taxes_backup",
    "commissions",
    "restaurant_delivery_charge",
    "marketing",
    "customer_refunds",
    "won_disputes",
    "others",
]


def uber_eats_lines(transactions: Iterable[UberEatsTransaction]) -> dict[str, float]:
    lines: dict[str, float] = defaultdict(float)
    for txn in transactions:
        figures = uber_eats_figures(txn)
        lines["net_payout"] += txn.net_payout
        lines["ad_spend"] -= figures.ad_spend
        if not figures.ad_spend:
            lines["miscellaneous"] += txn.other_payments

        if figures.is_order:
            lines["transactions"] += 1
            lines["sales_excl_tax"] += txn.sales_excl_tax
            lines["taxes"] += txn.tax
            lines["sales_incl_tax"] += txn.subtotal
            lines["taxes_withheld"] -= abs(txn.marketplace_facilitator_tax)
            lines["taxes_backup"] -= abs(txn.backup_withholding_tax)
            lines["commissions"] -= abs(txn.marketplace_fee)
            lines["restaurant_delivery_charge"] += txn.delivery_fee
            lines["promo_spend"] -= abs(txn.offers_on_items) + abs(txn.delivery_offer_redemptions)
            lines["platform_marketing_fee"] -= abs(txn.offer_redemption_fee)
            lines["merchant_funded_discount"] += txn.marketing_adjustment
            lines["customer_tip"] += txn.tip
            lines["miscellaneous"] += txn.service_fee
        elif txn.order_status.strip():
            lines["unfulfilled_sales"] += txn.subtotal
            lines["unfulfilled_refunds"] += txn.net_payout
    return dict(lines)


def doordash_lines(transactions: Iterable[DoorDashTransaction]) -> dict[str, float]:
    lines: dict[str, float] = defaultdict(float)
    for txn in transactions:
        figures = doordash_figures(txn)
        lines["net_payout"] += txn.net_total
        lines["ad_spend"] -= figures.ad_spend
        lines["customer_refunds"] += min(txn.error_charges, 0.0)
        lines["won_disputes"] += max(txn.error_charges, 0.0)

        if figures.is_order:
            lines["transactions"] += 1
            lines["sales_excl_tax"] += txn.subtotal
            lines["taxes"] += txn.tax_subtotal
            lines["sales_incl_tax"] += txn.subtotal + txn.tax_subtotal
            lines["taxes_withheld"] -= abs(txn.tax_remitted)
            lines["commissions"] -= abs(txn.commission)
            lines["promo_spend"] -= abs(txn.offers) + abs(txn.delivery_redemptions)
            lines["platform_marketing_fee"] -= abs(txn.marketing_fees)
            lines["third_party_funded_discount"] += abs(txn.marketing_credits) + abs(
                txn.third_party_contribution
            )
            lines["restaurant_fees"] -= abs(txn.merchant_fees)
            lines["miscellaneous"] += txn.customer_fees
        elif doordash_is_marketplace(txn) and txn.transaction_type.strip().lower() in ("", "order"):
            lines["unfulfilled_sales"] += txn.subtotal + txn.tax_subtotal
            lines["unfulfilled_refunds"] += txn.net_total
    return dict(lines)


def grubhub_lines(transactions: Iterable[GrubhubTransaction]) -> dict[str, float]:
    lines: dict[str, float] = defaultdict(float)
    for txn in transactions:
        figures = grubhub_figures(txn)
        lines["net_payout"] += txn.merchant_net_total
        kind = txn.transaction_type.strip().lower()

        if figures.is_order:
            lines["transactions"] += 1
            lines["sales_excl_tax"] += txn.subtotal
            lines["taxes"] += txn.subtotal_sales_tax
            lines["sales_incl_tax"] += txn.sale_amount
            lines["commissions"] -= (
                abs(txn.commission) + abs(txn.delivery_commission) + abs(txn.processing_fee)
            )
            lines["restaurant_delivery_charge"] += txn.delivery_charge
            lines["merchant_funded_discount"] -= abs(txn.merchant_funded_promotion)
            lines["restaurant_fees"] -= abs(txn.merchant_service_fee) + abs(txn.grubhub_plus_fee)
            lines["customer_tip"] += txn.tip
        elif "cancel" in kind:
            lines["unfulfilled_sales"] += abs(txn.sale_amount)
            lines["unfulfilled_refunds"] += txn.merchant_net_total
        elif "refund" in kind or "adjustment" in kind:
            lines["customer_refunds"] += txn.merchant_net_total
    return dict(lines)
