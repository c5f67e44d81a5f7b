"""
Shared fixtures: a SQLite shop database with reference data, and helpers
to add orders and read a shop's cursor back.
"""

from datetime import date, datetime

import pytest
from sqlalchemy import create_engine, insert, select

from models.shop_models import (
    Base,
    BenchmarkConfig,
    Country,
    Customer,
    Dispatch,
    NewsletterAddress,
    Order,
    OrderBillingAddress,
    OrderDetail,
    OrderShippingAddress,
    PaymentMean,
    ShippingCost,
)


@pytest.fixture
def shop_db(tmp_path):
    """
    SQLite shop database with:
    - countries DE (1), AT (2) and one without ISO code (3)
    - dispatch 1 "DHL Paket" (tiers 4.90 / 9.90), dispatch 2 unnamed, no tiers
    - payment 1 "PayPal", payment 2 "Rechnung" (surcharge string "2.5")
    - customers 1 mr / 2 mrs / 3 ms / 4 no salutation
    - cursor rows: shop 1 at order 9 (batch 100), shop 2 at order 0 (batch 50)
    """
    url = f"sqlite:///{tmp_path / 'shop.db'}"
    engine = create_engine(url)
    Base.metadata.create_all(engine)

    with engine.begin() as conn:
        conn.execute(insert(Country.__table__), [
            {"id": 1, "countryname": "Deutschland", "countryiso": "DE", "iso3": "DEU"},
            {"id": 2, "countryname": "Österreich", "countryiso": "AT", "iso3": "AUT"},
            {"id": 3, "countryname": "Nowhere", "countryiso": None, "iso3": None},
        ])
        conn.execute(insert(Dispatch.__table__), [
            {"id": 1, "name": "DHL Paket"},
            {"id": 2, "name": ""},
        ])
        conn.execute(insert(ShippingCost.__table__), [
            {"dispatchID": 1, "from": 0.0, "value": 4.90},
            {"dispatchID": 1, "from": 5.0, "value": 9.90},
        ])
        conn.execute(insert(PaymentMean.__table__), [
            {"id": 1, "name": "PayPal", "debit_percent": 0.0, "surcharge": 0.0, "surchargestring": ""},
            {"id": 2, "name": "Rechnung", "debit_percent": 1.0, "surcharge": 1.5, "surchargestring": "2.5"},
        ])
        conn.execute(insert(Customer.__table__), [
            {"id": 1, "email": "max@example.com", "accountmode": 0, "salutation": "mr",
             "birthday": date(1980, 5, 17), "firstlogin": date(2020, 1, 2)},
            {"id": 2, "email": "erika@example.com", "accountmode": 1, "salutation": "mrs",
             "birthday": None, "firstlogin": date(2021, 6, 30)},
            {"id": 3, "email": "anna@example.com", "accountmode": 0, "salutation": "ms",
             "birthday": date(1995, 11, 3), "firstlogin": None},
            {"id": 4, "email": "kim@example.com", "accountmode": 0, "salutation": None,
             "birthday": None, "firstlogin": None},
        ])
        conn.execute(insert(NewsletterAddress.__table__), [
            {"customer": True, "groupID": 1, "email": "max@example.com"},
            {"customer": False, "groupID": 1, "email": "erika@example.com"},
        ])
        conn.execute(insert(BenchmarkConfig.__table__), [
            {"shop_id": 1, "active": True, "batch_size": 100, "last_order_id": 9},
            {"shop_id": 2, "active": True, "batch_size": 50, "last_order_id": 0},
        ])

    engine.dispose()
    return url


@pytest.fixture
def add_order(shop_db):
    """Return a function inserting one order with its items and addresses."""
    engine = create_engine(shop_db)
    detail_ids = iter(range(1, 10_000))

    def _add_order(
        order_id,
        *,
        shop_id=1,
        status=0,
        customer_id=1,
        dispatch_id=1,
        payment_id=1,
        ordertime=datetime(2024, 3, 5, 14, 30, 15),
        changed=datetime(2024, 3, 6, 8, 0, 0),
        invoice_amount=119.0,
        invoice_amount_net=100.0,
        invoice_shipping=4.9,
        referer="",
        device_type="desktop",
        items=((19.99, 2),),
        billing_country=1,
        shipping_country=1,
    ):
        with engine.begin() as conn:
            conn.execute(insert(Order.__table__), [{
                "id": order_id,
                "userID": customer_id,
                "invoice_amount": invoice_amount,
                "invoice_amount_net": invoice_amount_net,
                "invoice_shipping": invoice_shipping,
                "ordertime": ordertime,
                "status": status,
                "paymentID": payment_id,
                "dispatchID": dispatch_id,
                "net": False,
                "taxfree": False,
                "referer": referer,
                "subshopID": shop_id,
                "currency": "EUR",
                "deviceType": device_type,
                "changed": changed,
            }])
            if items:
                conn.execute(insert(OrderDetail.__table__), [
                    {"id": next(detail_ids), "orderID": order_id, "price": price,
                     "quantity": quantity, "pack_unit": "Stück", "unit": "Liter"}
                    for price, quantity in items
                ])
            if billing_country is not None:
                conn.execute(insert(OrderBillingAddress.__table__), [
                    {"orderID": order_id, "userID": customer_id, "countryID": billing_country}
                ])
            if shipping_country is not None:
                conn.execute(insert(OrderShippingAddress.__table__), [
                    {"orderID": order_id, "userID": customer_id, "countryID": shipping_country}
                ])

    yield _add_order
    engine.dispose()


@pytest.fixture
def read_cursor(shop_db):
    """Return a function reading ``(batch_size, last_order_id)`` for a shop."""
    engine = create_engine(shop_db)

    def _read_cursor(shop_id):
        with engine.connect() as conn:
            row = conn.execute(
                select(BenchmarkConfig.batch_size, BenchmarkConfig.last_order_id)
                .where(BenchmarkConfig.shop_id == shop_id)
            ).one()
        return row.batch_size, row.last_order_id

    yield _read_cursor
    engine.dispose()
