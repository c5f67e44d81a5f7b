"""
Order Transformer — Cleaning & Hydration Functions

Turns the raw row sets fetched by the benchmark order extractor into the
nested order records sent to the benchmark service:
  1. clean_orders()        — parse dates, zero cancelled amounts, flags
  2. clean_order_items()   — typed prices, zeroed for cancelled orders
  3. clean_customers()     — gender buckets, birth year/month, flags
  4. clean_dispatches() / clean_payments() — matched labels, costs
  5. validate_referential_integrity() — every referenced row must exist
  6. hydrate_orders()      — join everything into nested records
"""

import logging
from typing import Any, Callable, Optional

import numpy as np
import pandas as pd

from benchmark_exceptions import OrderDataError
from matchers.name_matcher import FALLBACK_LABEL

logger = logging.getLogger(__name__)

CANCELLED_STATUS = 4
MISSING_COUNTRY = "--"
EPOCH_CHANGED = "1970-01-01 00:00:00"
UNKNOWN_GENDER = "unknown"

GENDER_MAP = {
    "mr": "male",
    "mrs": "female",
    "ms": "female",
}

Matcher = Callable[[str], str]


# -------------------------------------------------------------------
# Helpers
# -------------------------------------------------------------------

def _parse_datetimes(values: pd.Series, column: str, required: bool = True) -> pd.Series:
    """
    Parse a column of ISO-8601 date/datetime values.

    Unparseable values always raise; missing values raise only when the
    column is required. MySQL zero dates count as missing.
    """
    if not required:
        values = values.map(
            lambda v: None if isinstance(v, str) and v.startswith("0000-00-00") else v
        )
    try:
        parsed = pd.to_datetime(values, format="ISO8601")
    except (ValueError, TypeError) as exc:
        raise OrderDataError(f"Unparseable {column} value: {exc}") from exc

    if required and parsed.isna().any():
        raise OrderDataError(f"{int(parsed.isna().sum())} rows have no {column}")
    return parsed


def _to_float(values: pd.Series) -> pd.Series:
    return pd.to_numeric(values).astype(float).fillna(0.0)


def _optional_int(value: Any) -> Optional[int]:
    return None if pd.isna(value) else int(value)


def _optional_str(value: Any) -> Optional[str]:
    return None if value is None or pd.isna(value) else str(value)


def _is_blank(value: Any) -> bool:
    # whitespace-only names still go through the matcher
    return value is None or pd.isna(value) or str(value) == ""


def _label(name: Any, matcher: Matcher) -> str:
    return FALLBACK_LABEL if _is_blank(name) else matcher(str(name))


# -------------------------------------------------------------------
# 1. Orders
# -------------------------------------------------------------------

def clean_orders(orders_df: pd.DataFrame) -> pd.DataFrame:
    """
    Clean the raw orders DataFrame.

    Steps:
    - Sort ascending by order_id
    - Parse order_time strictly (missing or malformed → OrderDataError)
    - Format changed, defaulting to the epoch when empty
    - Zero invoice_amount and invoice_shipping of cancelled orders
    - Derive has_referer
    """
    df = orders_df.sort_values("order_id").reset_index(drop=True)

    df["order_id"] = df["order_id"].astype(int)
    df["status"] = df["status"].astype(int)
    df["order_time"] = _parse_datetimes(df["order_time"], "order_time")

    changed = _parse_datetimes(df["changed"], "changed", required=False)
    df["changed"] = changed.dt.strftime("%Y-%m-%d %H:%M:%S").fillna(EPOCH_CHANGED)

    for column in ("invoice_amount", "invoice_amount_net", "invoice_shipping"):
        df[column] = _to_float(df[column])

    df["is_cancelled"] = df["status"] == CANCELLED_STATUS
    cancelled = int(df["is_cancelled"].sum())
    if cancelled:
        df.loc[df["is_cancelled"], ["invoice_amount", "invoice_shipping"]] = 0.0
        logger.info(f"Orders: zeroed amounts of {cancelled} cancelled orders")

    df["has_referer"] = df["referer"].fillna("").astype(str).str.strip() != ""

    logger.info(f"Orders cleaned: {len(df):,} records")
    return df


# -------------------------------------------------------------------
# 2. Order Items
# -------------------------------------------------------------------

def clean_order_items(details_df: pd.DataFrame, cancelled_order_ids: set[int]) -> pd.DataFrame:
    """Type item columns and zero the prices of items on cancelled orders."""
    df = details_df.sort_values("detail_id").reset_index(drop=True)

    df["detail_id"] = df["detail_id"].astype(int)
    df["order_id"] = df["order_id"].astype(int)
    df["amount"] = pd.to_numeric(df["amount"]).fillna(0).astype(int)

    on_cancelled = df["order_id"].isin(cancelled_order_ids).to_numpy()
    df["unit_price"] = np.where(on_cancelled, 0.0, _to_float(df["unit_price"]))
    df["total_price"] = np.where(on_cancelled, 0.0, _to_float(df["total_price"]))

    return df


# -------------------------------------------------------------------
# 3. Customers
# -------------------------------------------------------------------

def clean_customers(customers_df: pd.DataFrame) -> pd.DataFrame:
    """
    Clean the raw customers DataFrame.

    Steps:
    - Bucket salutation into male / female / unknown
    - registered = account_mode 0 (not a guest account)
    - Split birthday into birth_year / birth_month
    - Format first_login as register_date (YYYY-MM-DD)
    """
    df = customers_df.copy()

    df["customer_id"] = df["customer_id"].astype(int)
    df["gender"] = df["salutation"].map(GENDER_MAP).fillna(UNKNOWN_GENDER)
    df["registered"] = pd.to_numeric(df["account_mode"]) == 0
    df["has_newsletter"] = df["has_newsletter"].fillna(0).astype(bool)

    birthday = _parse_datetimes(df["birthday"], "birthday", required=False)
    df["birth_year"] = birthday.dt.year
    df["birth_month"] = birthday.dt.month

    first_login = _parse_datetimes(df["first_login"], "first_login", required=False)
    df["register_date"] = first_login.dt.strftime("%Y-%m-%d")

    unknown = int((df["gender"] == UNKNOWN_GENDER).sum())
    if unknown:
        logger.info(f"Customers: {unknown} with unknown gender")

    return df


# -------------------------------------------------------------------
# 4. Dispatch & Payment
# -------------------------------------------------------------------

def clean_dispatches(dispatch_df: pd.DataFrame, matcher: Matcher) -> pd.DataFrame:
    """Label dispatch methods and default missing cost tiers to 0."""
    df = dispatch_df.copy()
    df["dispatch_id"] = df["dispatch_id"].astype(int)
    df["label"] = df["name"].map(lambda name: _label(name, matcher))
    df["min_price"] = _to_float(df["min_price"])
    df["max_price"] = _to_float(df["max_price"])
    return df


def clean_payments(payment_df: pd.DataFrame, matcher: Matcher) -> pd.DataFrame:
    """
    Label payment means and type their cost columns.

    The per-country surcharge is a free-text column; values that are not
    a plain number count as 0.
    """
    df = payment_df.copy()
    df["payment_id"] = df["payment_id"].astype(int)
    df["label"] = df["name"].map(lambda name: _label(name, matcher))
    df["percent_costs"] = _to_float(df["percent_costs"])
    df["absolute_costs"] = _to_float(df["absolute_costs"])
    df["absolute_costs_per_country"] = pd.to_numeric(
        df["absolute_costs_per_country"], errors="coerce"
    ).astype(float).fillna(0.0)
    return df


# -------------------------------------------------------------------
# 5. Referential Integrity
# -------------------------------------------------------------------

def validate_referential_integrity(
    orders_df: pd.DataFrame,
    dispatch_df: pd.DataFrame,
    payment_df: pd.DataFrame,
    customers_df: pd.DataFrame,
) -> None:
    """
    Ensure every dispatch, payment and customer id referenced by an order
    has a fetched row.

    Raises
    ------
    OrderDataError
        Listing each missing reference and the affected order ids.
    """
    checks = [
        ("dispatch_id", dispatch_df, "dispatch"),
        ("payment_id", payment_df, "payment"),
        ("customer_id", customers_df, "customer"),
    ]

    problems = []
    affected: set[int] = set()
    for column, lookup_df, label in checks:
        known = set(lookup_df[column].astype(int))
        orphaned = ~orders_df[column].astype(int).isin(known)
        if orphaned.any():
            missing_ids = sorted(set(orders_df.loc[orphaned, column].astype(int)))
            order_ids = orders_df.loc[orphaned, "order_id"].astype(int).tolist()
            affected.update(order_ids)
            problems.append(f"missing {label} rows {missing_ids} for orders {order_ids}")

    if problems:
        message = "Referential integrity: " + "; ".join(problems)
        logger.error(message)
        raise OrderDataError(message, order_ids=sorted(affected))

    logger.info("Referential integrity: all orders have dispatch, payment and customer rows")


# -------------------------------------------------------------------
# 6. Hydration
# -------------------------------------------------------------------

def _country_lookup(countries_df: pd.DataFrame) -> dict[int, str]:
    return {
        int(order_id): country
        for order_id, country in zip(countries_df["order_id"], countries_df["country_iso"])
        if not _is_blank(country) and str(country).strip()
    }


def _item_record(item) -> dict:
    return {
        "detailId": int(item.detail_id),
        "unitPrice": float(item.unit_price),
        "totalPrice": float(item.total_price),
        "amount": int(item.amount),
        "packUnit": _optional_str(item.pack_unit),
        "purchaseUnit": _optional_str(item.purchase_unit),
    }


def _customer_record(customer: dict, customer_id: int, billing: str, shipping: str) -> dict:
    return {
        "id": customer_id,
        "registered": bool(customer["registered"]),
        "birthYear": _optional_int(customer["birth_year"]),
        "birthMonth": _optional_int(customer["birth_month"]),
        "gender": customer["gender"],
        "registerDate": _optional_str(customer["register_date"]),
        "hasNewsletter": bool(customer["has_newsletter"]),
        "billing": {"country": billing},
        "shipping": {"country": shipping},
    }


def hydrate_orders(
    orders_df: pd.DataFrame,
    details_df: pd.DataFrame,
    dispatch_df: pd.DataFrame,
    payment_df: pd.DataFrame,
    customers_df: pd.DataFrame,
    billing_df: pd.DataFrame,
    shipping_df: pd.DataFrame,
    shipment_matcher: Matcher,
    payment_matcher: Matcher,
) -> list[dict]:
    """
    Join the fetched row sets into nested order records, ascending by id.

    Parameters
    ----------
    orders_df : pd.DataFrame
        Base order rows.
    details_df : pd.DataFrame
        Line items of those orders.
    dispatch_df, payment_df, customers_df : pd.DataFrame
        Rows referenced by the orders' dispatch, payment and customer ids.
    billing_df, shipping_df : pd.DataFrame
        ``order_id`` → ``country_iso`` pairs.
    shipment_matcher, payment_matcher : callable
        Map raw method names onto canonical labels.

    Returns
    -------
    list[dict]
        One record per order; empty when ``orders_df`` is empty.
    """
    if orders_df.empty:
        return []

    orders = clean_orders(orders_df)
    validate_referential_integrity(orders, dispatch_df, payment_df, customers_df)

    cancelled_ids = set(orders.loc[orders["is_cancelled"], "order_id"])
    items = clean_order_items(details_df, cancelled_ids)
    items_by_order = {
        int(order_id): [_item_record(item) for item in group.itertuples(index=False)]
        for order_id, group in items.groupby("order_id", sort=False)
    }

    customers = clean_customers(customers_df).set_index("customer_id").to_dict("index")
    dispatches = clean_dispatches(dispatch_df, shipment_matcher).set_index("dispatch_id").to_dict("index")
    payments = clean_payments(payment_df, payment_matcher).set_index("payment_id").to_dict("index")
    billing_countries = _country_lookup(billing_df)
    shipping_countries = _country_lookup(shipping_df)

    hydrated = []
    for order in orders.itertuples(index=False):
        order_id = int(order.order_id)
        customer_id = int(order.customer_id)
        dispatch = dispatches[int(order.dispatch_id)]
        payment = payments[int(order.payment_id)]
        order_time = order.order_time

        hydrated.append({
            "orderId": order_id,
            "status": int(order.status),
            "currency": _optional_str(order.currency),
            "shippingCosts": float(order.invoice_shipping),
            "changed": order.changed,
            "invoiceAmount": float(order.invoice_amount),
            "invoiceAmountNet": float(order.invoice_amount_net),
            "isTaxFree": bool(order.taxfree),
            "isNet": bool(order.net),
            "date": order_time.strftime("%Y-%m-%d"),
            "datetime": {
                "year": order_time.year,
                "month": order_time.month,
                "day": order_time.day,
                "hours": order_time.hour,
                "minutes": order_time.minute,
                "seconds": order_time.second,
            },
            "customer": _customer_record(
                customers[customer_id],
                customer_id,
                billing=billing_countries.get(order_id, MISSING_COUNTRY),
                shipping=shipping_countries.get(order_id, MISSING_COUNTRY),
            ),
            "analytics": {
                "device": _optional_str(order.device_type),
                "referer": bool(order.has_referer),
            },
            "shipment": {
                "name": dispatch["label"],
                "cost": {
                    "minPrice": float(dispatch["min_price"]),
                    "maxPrice": float(dispatch["max_price"]),
                },
            },
            "payment": {
                "name": payment["label"],
                "cost": {
                    "percentCosts": float(payment["percent_costs"]),
                    "absoluteCosts": float(payment["absolute_costs"]),
                    "absoluteCostsPerCountry": float(payment["absolute_costs_per_country"]),
                },
            },
            "items": items_by_order.get(order_id, []),
        })

    logger.info(f"Hydrated {len(hydrated):,} orders")
    return hydrated
