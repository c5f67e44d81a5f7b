"""
Benchmark Orders Extractor

Incrementally extracts a shop's orders for the benchmark report. Each call
pulls the next batch of orders after the shop's persisted cursor, joins
line items, dispatch, payment, customer and country data, hydrates them
into nested order records and advances the cursor, all inside a single
transaction.
"""

import logging
from typing import Callable, Optional

import pandas as pd
from sqlalchemy import bindparam, create_engine, text
from sqlalchemy.engine import Connection
from sqlalchemy.exc import SQLAlchemyError

from benchmark_exceptions import StorageAccessError
from extractors.order_cursor import advance_order_cursor, load_order_cursor
from matchers.name_matcher import payment_matcher as default_payment_matcher
from matchers.name_matcher import shipment_matcher as default_shipment_matcher
from transforms.order_transformer import hydrate_orders

logger = logging.getLogger(__name__)

# -------------------------------------------------------------------
# Queries
# -------------------------------------------------------------------
ORDERS_QUERY = text("""
    SELECT id AS order_id, ordertime AS order_time, status, currency,
           invoice_shipping, changed, invoice_amount, invoice_amount_net,
           taxfree, net, deviceType AS device_type, referer,
           dispatchID AS dispatch_id, paymentID AS payment_id,
           userID AS customer_id
    FROM s_order
    WHERE id > :last_order_id
      AND subshopID = :shop_id
      AND status != -1
    ORDER BY id ASC
    LIMIT :batch_size
""")

ORDER_DETAILS_QUERY = text("""
    SELECT id AS detail_id, orderID AS order_id, price AS unit_price,
           price * quantity AS total_price, quantity AS amount,
           pack_unit, unit AS purchase_unit
    FROM s_order_details
    WHERE orderID IN :order_ids
    ORDER BY id
""").bindparams(bindparam("order_ids", expanding=True))

DISPATCH_QUERY = text("""
    SELECT dispatch.id AS dispatch_id, dispatch.name AS name,
           MIN(costs.value) AS min_price, MAX(costs.value) AS max_price
    FROM s_premium_dispatch dispatch
    LEFT JOIN s_premium_shippingcosts costs ON costs.dispatchID = dispatch.id
    WHERE dispatch.id IN :dispatch_ids
    GROUP BY dispatch.id, dispatch.name
""").bindparams(bindparam("dispatch_ids", expanding=True))

PAYMENT_QUERY = text("""
    SELECT id AS payment_id, name, debit_percent AS percent_costs,
           surcharge AS absolute_costs,
           surchargestring AS absolute_costs_per_country
    FROM s_core_paymentmeans
    WHERE id IN :payment_ids
""").bindparams(bindparam("payment_ids", expanding=True))

CUSTOMERS_QUERY = text("""
    SELECT customer.id AS customer_id, customer.accountmode AS account_mode,
           customer.birthday AS birthday, customer.salutation AS salutation,
           customer.firstlogin AS first_login,
           CASE WHEN EXISTS (
               SELECT 1 FROM s_campaigns_mailaddresses newsletter
               WHERE newsletter.email = customer.email AND newsletter.customer = 1
           ) THEN 1 ELSE 0 END AS has_newsletter
    FROM s_user customer
    WHERE customer.id IN :customer_ids
    ORDER BY customer.id
""").bindparams(bindparam("customer_ids", expanding=True))

BILLING_COUNTRY_QUERY = text("""
    SELECT address.orderID AS order_id, country.countryiso AS country_iso
    FROM s_order_billingaddress address
    INNER JOIN s_core_countries country ON country.id = address.countryID
    WHERE address.orderID IN :order_ids
""").bindparams(bindparam("order_ids", expanding=True))

SHIPPING_COUNTRY_QUERY = text("""
    SELECT address.orderID AS order_id, country.countryiso AS country_iso
    FROM s_order_shippingaddress address
    INNER JOIN s_core_countries country ON country.id = address.countryID
    WHERE address.orderID IN :order_ids
""").bindparams(bindparam("order_ids", expanding=True))


# -------------------------------------------------------------------
# Helpers
# -------------------------------------------------------------------

def unique_column_values(df: pd.DataFrame, column: str) -> list[int]:
    """Unique non-null ids of ``column``, used as lookup keys (order irrelevant)."""
    return [int(value) for value in df[column].dropna().unique()]


def _fetch_orders(conn: Connection, shop_id: int, last_order_id: int, batch_size: int) -> pd.DataFrame:
    return pd.read_sql(
        ORDERS_QUERY,
        conn,
        params={"last_order_id": last_order_id, "shop_id": shop_id, "batch_size": batch_size},
    )


def _fetch_by_ids(conn: Connection, query, param: str, ids: list[int]) -> pd.DataFrame:
    return pd.read_sql(query, conn, params={param: ids})


# -------------------------------------------------------------------
# Extraction
# -------------------------------------------------------------------

def extract_orders(
    connection_url: str,
    shop_id: int,
    batch_size: Optional[int] = None,
    shipment_matcher: Optional[Callable[[str], str]] = None,
    payment_matcher: Optional[Callable[[str], str]] = None,
) -> dict:
    """
    Extract the next batch of orders for a shop and advance its cursor.

    Parameters
    ----------
    connection_url : str
        SQLAlchemy connection string for the shop database.
    shop_id : int
        Shop whose orders (``subshopID``) and cursor row are used.
    batch_size : int, optional
        Overrides the persisted batch size for this call only.
    shipment_matcher, payment_matcher : callable, optional
        Map raw dispatch / payment names onto canonical labels. Default to
        the built-in label tables.

    Returns
    -------
    dict
        ``{"list": [order, ...]}`` ascending by ``orderId``. Empty when no
        new orders exist, in which case the cursor is left untouched.

    Raises
    ------
    StorageAccessError
        If the database cannot be reached or any query fails.
    BenchmarkConfigError
        If the shop has no cursor row.
    OrderDataError
        If a date is unparseable or a referenced row is missing.
    """
    if batch_size is not None and batch_size < 1:
        raise ValueError(f"batch_size must be positive, got {batch_size}")

    shipment_matcher = shipment_matcher or default_shipment_matcher()
    payment_matcher = payment_matcher or default_payment_matcher()

    try:
        engine = create_engine(connection_url)
        with engine.begin() as conn:
            orders = _extract_batch(conn, shop_id, batch_size, shipment_matcher, payment_matcher)
    except (SQLAlchemyError, pd.errors.DatabaseError) as exc:
        # pd.read_sql re-raises failed queries as pandas' DatabaseError
        logger.error(f"Shop {shop_id}: order extraction failed: {exc}")
        raise StorageAccessError(f"Order extraction for shop {shop_id} failed") from exc

    return {"list": orders}


def _extract_batch(
    conn: Connection,
    shop_id: int,
    batch_size: Optional[int],
    shipment_matcher: Callable[[str], str],
    payment_matcher: Callable[[str], str],
) -> list[dict]:
    cursor = load_order_cursor(conn, shop_id)
    batch = batch_size if batch_size is not None else cursor.batch_size
    if batch < 1:
        raise ValueError(f"Shop {shop_id}: configured batch size {batch} is not positive")

    orders_df = _fetch_orders(conn, shop_id, cursor.last_order_id, batch)
    if orders_df.empty:
        logger.info(f"Shop {shop_id}: no orders after {cursor.last_order_id}")
        return []

    logger.info(
        f"Shop {shop_id}: fetched {len(orders_df):,} orders after {cursor.last_order_id}"
    )

    order_ids = unique_column_values(orders_df, "order_id")
    dispatch_ids = unique_column_values(orders_df, "dispatch_id")
    payment_ids = unique_column_values(orders_df, "payment_id")
    customer_ids = unique_column_values(orders_df, "customer_id")

    details_df = _fetch_by_ids(conn, ORDER_DETAILS_QUERY, "order_ids", order_ids)
    dispatch_df = _fetch_by_ids(conn, DISPATCH_QUERY, "dispatch_ids", dispatch_ids)
    payment_df = _fetch_by_ids(conn, PAYMENT_QUERY, "payment_ids", payment_ids)
    customers_df = _fetch_by_ids(conn, CUSTOMERS_QUERY, "customer_ids", customer_ids)
    billing_df = _fetch_by_ids(conn, BILLING_COUNTRY_QUERY, "order_ids", order_ids)
    shipping_df = _fetch_by_ids(conn, SHIPPING_COUNTRY_QUERY, "order_ids", order_ids)

    logger.info(
        f"Shop {shop_id}: joined {len(details_df):,} items, "
        f"{len(customers_df):,} customers, {len(dispatch_df):,} dispatches, "
        f"{len(payment_df):,} payments"
    )

    orders = hydrate_orders(
        orders_df,
        details_df,
        dispatch_df,
        payment_df,
        customers_df,
        billing_df,
        shipping_df,
        shipment_matcher=shipment_matcher,
        payment_matcher=payment_matcher,
    )

    advance_order_cursor(conn, shop_id, max(order["orderId"] for order in orders))
    logger.info(f"✓ Shop {shop_id}: extracted {len(orders):,} orders")
    return orders


# -------------------------------------------------------------------
# Standalone run
# -------------------------------------------------------------------

if __name__ == "__main__":
    import json
    import os

    from dotenv import load_dotenv

    from benchmark_settings import log_level, shop_db_url

    load_dotenv()
    logging.basicConfig(level=log_level(), format="%(asctime)s [%(levelname)s] %(message)s")

    override = os.getenv("BENCHMARK_BATCH_OVERRIDE")
    payload = extract_orders(
        shop_db_url(),
        shop_id=int(os.getenv("BENCHMARK_SHOP_ID", "1")),
        batch_size=int(override) if override else None,
    )
    print(json.dumps(payload, indent=2))
