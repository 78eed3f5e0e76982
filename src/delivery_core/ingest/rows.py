"""Row builders: normalized export rows -> platform transactions.

Each platform's canonical fields are listed with every header spelling seen
across export revisions, most current first. Builders return None for rows
missing an identifying field; the caller counts them as skipped.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from delivery_core.ingest.cleaning_utils import (
    clean_store_number,
    get_column_value,
    to_date,
    to_money,
)
from delivery_core.models import (
    DoorDashTransaction,
    GrubhubTransaction,
    StoreReference,
    UberEatsTransaction,
)

UBER_EATS_COLUMNS: dict[str, tuple[str, ...]] = {
    "store_name": ("Store Name", "Location", "Store_Name", "store_name"),
    "workflow_id": ("Workflow ID", "Workflow_ID", "workflow_id"),
    "order_id": ("Order ID", "Order_ID", "order_id"),
    "order_status": ("Order Status", "Order_Status", "order_status"),
    "order_date": ("Order Date", "Date", "Order_Date", "order_date"),
    "order_time": ("Order Accept Time", "Time", "Order_Accept_Time"),
    "sales_excl_tax": ("Sales (excl. tax)", "Sales_excl_tax", "sales_excl_tax"),
    "tax": ("Tax on Sales", "Tax", "Tax_on_Sales", "tax_on_sales"),
    "delivery_fee": ("Delivery Fee", "Delivery_Fee", "delivery_fee"),
    "service_fee": ("Service Fee", "Service_Fee", "service_fee"),
    "marketplace_fee": ("Marketplace Fee", "Platform Fee", "Platform_Fee", "marketplace_fee"),
    "offers_on_items": ("Offers on items (incl. tax)", "Offers_on_items", "offers_on_items"),
    "delivery_offer_redemptions": (
        "Delivery Offer Redemptions (incl. tax)",
        "Delivery_Offer_Redemptions",
        "delivery_offer_redemptions",
    ),
    "offer_redemption_fee": ("Offer Redemption Fee", "offer_redemption_fee"),
    "marketing_promotion": ("Marketing Promotion", "Marketing_Promo", "marketing_promotion"),
    "marketing_adjustment": ("Marketing Adjustment", "Marketing_Amount", "marketing_adjustment"),
    "other_payments": ("Other payments", "Other_payments", "other_payments"),
    "other_payments_description": (
        "Other payments description",
        "Other_payments_description",
        "other_payments_description",
    ),
    "marketplace_facilitator_tax": ("Marketplace Facilitator Tax", "Tax withheld"),
    "backup_withholding_tax": ("Backup Withholding Tax", "backup_withholding_tax"),
    "tip": ("Tip", "Tips", "tip"),
    "net_payout": ("Total payout ", "Total payout", "Net_Payout", "net_payout"),
}

DOORDASH_COLUMNS: dict[str, tuple[str, ...]] = {
    "transaction_id": ("DoorDash transaction ID", "Transaction_ID", "transaction_id"),
    "order_number": ("DoorDash order ID", "Order_ID", "order_id"),
    "store_name": ("Store name", "Store_name", "location"),
    "store_id": ("Store ID", "Merchant Store ID", "Store_ID", "store_id"),
    "timestamp": ("Timestamp local time", "Timestamp", "timestamp"),
    "order_date": ("Timestamp local date", "Order date"),
    "channel": ("Channel", "channel"),
    "transaction_type": ("Transaction type", "Transaction_type", "transaction_type"),
    "order_status": ("Final order status", "Order status", "order_status"),
    "subtotal": ("Subtotal", "subtotal"),
    "tax_subtotal": ("Tax (subtotal)", "Tax"),
    "commission": ("Commission",),
    "customer_fees": ("Customer fees",),
    "error_charges": ("Error charges",),
    "offers": ("Offers",),
    "delivery_redemptions": ("Delivery redemptions",),
    "marketing_credits": ("Credits", "DoorDash marketing credit"),
    "third_party_contribution": (
        "Third-party contribution",
        "Third-party contributions",
        "Third Party Contributions",
    ),
    "other_payments": ("Other payments",),
    "other_payments_description": ("Other payments description",),
    "marketing_fees": ("Marketing fees",),
    "merchant_fees": ("Merchant fees",),
    "tax_remitted": (
        "Tax remitted by DoorDash to tax authorities",
        "Tax remitted",
    ),
    "net_total": ("Net total", "Net payout", "net_total"),
}

GRUBHUB_COLUMNS: dict[str, tuple[str, ...]] = {
    "store_name": ("store_name", "Store Name"),
    "street_address": ("street_address", "Street Address", "address"),
    "store_number": ("store_number", "Store Number"),
    "order_number": ("order_number", "Order Number"),
    "transaction_id": ("transaction_id", "Transaction ID"),
    "transaction_date": ("transaction_date", "Transaction Date"),
    "transaction_type": ("transaction_type", "Transaction Type"),
    "order_channel": ("order_channel",),
    "fulfillment_type": ("fulfillment_type",),
    "subtotal": ("subtotal",),
    "subtotal_sales_tax": ("subtotal_sales_tax",),
    "commission": ("commission",),
    "delivery_commission": ("delivery_commission",),
    "processing_fee": ("processing_fee",),
    "merchant_service_fee": ("merchant_service_fee",),
    "merchant_funded_promotion": ("merchant_funded_promotion",),
    "merchant_net_total": ("merchant_net_total",),
    "transaction_note": ("transaction_note",),
    "delivery_charge": ("delivery_charge",),
    "grubhub_plus_fee": ("grubhub_plus_fee",),
    "tip": ("tip",),
    "total_restaurant_bill": ("total_restaurant_bill",),
}


def _getter(row: Mapping[str, Any], columns: dict[str, tuple[str, ...]]):
    def get(field: str) -> str:
        return get_column_value(row, *columns[field])

    def money(field: str) -> float:
        return to_money(get(field))

    return get, money


def build_uber_eats(row: Mapping[str, Any], client_id: str) -> UberEatsTransaction | None:
    """Build an Uber Eats transaction, or None when workflow/order id is missing.

    Examples:
        >>> txn = build_uber_eats(
        ...     {"Workflow ID": "w1", "Order ID": "o1",
        ...      "Sales (excl. tax)": "100.00", "Tax on Sales": "8.00"}, "c1")
        >>> txn.subtotal
        108.0
    """
    get, money = _getter(row, UBER_EATS_COLUMNS)
    workflow_id = get("workflow_id")
    order_id = get("order_id")
    if not workflow_id or not order_id:
        return None

    sales_excl_tax = money("sales_excl_tax")
    tax = money("tax")
    return UberEatsTransaction(
        client_id=client_id,
        workflow_id=workflow_id,
        order_id=order_id,
        store_name=get("store_name"),
        order_status=get("order_status"),
        order_date=to_date(get("order_date")),
        order_time=get("order_time"),
        sales_excl_tax=sales_excl_tax,
        tax=tax,
        subtotal=round(sales_excl_tax + tax, 2),
        delivery_fee=money("delivery_fee"),
        service_fee=money("service_fee"),
        marketplace_fee=money("marketplace_fee"),
        offers_on_items=money("offers_on_items"),
        delivery_offer_redemptions=money("delivery_offer_redemptions"),
        offer_redemption_fee=money("offer_redemption_fee"),
        marketing_promotion=get("marketing_promotion"),
        marketing_adjustment=money("marketing_adjustment"),
        other_payments=money("other_payments"),
        other_payments_description=get("other_payments_description"),
        marketplace_facilitator_tax=money("marketplace_facilitator_tax"),
        backup_withholding_tax=money("backup_withholding_tax"),
        tip=money("tip"),
        net_payout=money("net_payout"),
    )


def build_doordash(row: Mapping[str, Any], client_id: str) -> DoorDashTransaction | None:
    """Build a DoorDash transaction, or None when transaction/order id is missing."""
    get, money = _getter(row, DOORDASH_COLUMNS)
    transaction_id = get("transaction_id")
    order_number = get("order_number")
    if not transaction_id or not order_number:
        return None

    timestamp = get("timestamp")
    order_date = to_date(timestamp) or to_date(get("order_date"))
    order_time = timestamp.split(" ", 1)[1] if " " in timestamp else ""
    return DoorDashTransaction(
        client_id=client_id,
        transaction_id=transaction_id,
        order_number=order_number,
        store_name=get("store_name"),
        store_id=get("store_id"),
        order_date=order_date,
        order_time=order_time,
        channel=get("channel"),
        transaction_type=get("transaction_type"),
        order_status=get("order_status"),
        subtotal=money("subtotal"),
        tax_subtotal=money("tax_subtotal"),
        commission=money("commission"),
        customer_fees=money("customer_fees"),
        error_charges=money("error_charges"),
        offers=money("offers"),
        delivery_redemptions=money("delivery_redemptions"),
        marketing_credits=money("marketing_credits"),
        third_party_contribution=money("third_party_contribution"),
        other_payments=money("other_payments"),
        other_payments_description=get("other_payments_description"),
        marketing_fees=money("marketing_fees"),
        merchant_fees=money("merchant_fees"),
        tax_remitted=money("tax_remitted"),
        net_total=money("net_total"),
    )


def build_grubhub(row: Mapping[str, Any], client_id: str) -> GrubhubTransaction | None:
    """Build a Grubhub transaction, or None when transaction id/order number is missing."""
    get, money = _getter(row, GRUBHUB_COLUMNS)
    transaction_id = get("transaction_id")
    order_number = get("order_number")
    if not transaction_id or not order_number:
        return None

    return GrubhubTransaction(
        client_id=client_id,
        transaction_id=transaction_id,
        order_number=order_number,
        store_name=get("store_name"),
        street_address=get("street_address"),
        store_number=clean_store_number(get("store_number")),
        order_date=to_date(get("transaction_date")),
        transaction_type=get("transaction_type"),
        order_channel=get("order_channel"),
        fulfillment_type=get("fulfillment_type"),
        subtotal=money("subtotal"),
        subtotal_sales_tax=money("subtotal_sales_tax"),
        commission=money("commission"),
        delivery_commission=money("delivery_commission"),
        processing_fee=money("processing_fee"),
        merchant_service_fee=money("merchant_service_fee"),
        merchant_funded_promotion=money("merchant_funded_promotion"),
        merchant_net_total=money("merchant_net_total"),
        transaction_note=get("transaction_note"),
        delivery_charge=money("delivery_charge"),
        grubhub_plus_fee=money("grubhub_plus_fee"),
        tip=money("tip"),
        total_restaurant_bill=money("total_restaurant_bill"),
    )


def uber_eats_reference(txn: UberEatsTransaction) -> StoreReference:
    return StoreReference(name=txn.store_name)


def doordash_reference(txn: DoorDashTransaction) -> StoreReference:
    return StoreReference(name=txn.store_name, platform_key=txn.store_id)


def grubhub_reference(txn: GrubhubTransaction) -> StoreReference:
    return StoreReference(
        name=txn.store_name,
        platform_key=txn.store_number,
        address=txn.street_address,
    )
