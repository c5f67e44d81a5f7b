"""
Shop Models — SQLAlchemy ORM Entities

Declarative models for the shop tables read by the benchmark order
extractor and the category repository. Column names follow the shop's
physical schema; Python attribute names are snake_case.

Self-references and many-to-many links are plain foreign-key columns.
Trees and link lists are materialized by repositories, not navigated
through lazy relationships.
"""

from datetime import datetime

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Table,
    Text,
)
from sqlalchemy.orm import declarative_base

Base = declarative_base()


# -------------------------------------------------------------------
# Orders
# -------------------------------------------------------------------

class Order(Base):
    __tablename__ = "s_order"

    id = Column(Integer, primary_key=True)
    ordernumber = Column(String(255))
    user_id = Column("userID", Integer, ForeignKey("s_user.id"), nullable=False)
    invoice_amount = Column(Float, nullable=False, default=0.0)
    invoice_amount_net = Column(Float, nullable=False, default=0.0)
    invoice_shipping = Column(Float, nullable=False, default=0.0)
    invoice_shipping_net = Column(Float, nullable=False, default=0.0)
    ordertime = Column(DateTime, nullable=False)
    status = Column(Integer, nullable=False, default=0)
    cleared = Column(Integer, nullable=False, default=0)
    payment_id = Column("paymentID", Integer, nullable=False)
    dispatch_id = Column("dispatchID", Integer, nullable=False)
    net = Column(Boolean, nullable=False, default=False)
    taxfree = Column(Boolean, nullable=False, default=False)
    referer = Column(Text)
    subshop_id = Column("subshopID", Integer, nullable=False, index=True)
    currency = Column(String(5), nullable=False, default="EUR")
    currency_factor = Column("currencyFactor", Float, nullable=False, default=1.0)
    device_type = Column("deviceType", String(50), default="desktop")
    changed = Column(DateTime)


class OrderDetail(Base):
    __tablename__ = "s_order_details"

    id = Column(Integer, primary_key=True)
    order_id = Column("orderID", Integer, ForeignKey("s_order.id"), nullable=False, index=True)
    ordernumber = Column(String(255))
    article_ordernumber = Column("articleordernumber", String(255))
    name = Column(String(255))
    price = Column(Float, nullable=False, default=0.0)
    quantity = Column(Integer, nullable=False, default=1)
    pack_unit = Column(String(255))
    unit = Column(String(255))


class OrderBillingAddress(Base):
    __tablename__ = "s_order_billingaddress"

    id = Column(Integer, primary_key=True)
    order_id = Column("orderID", Integer, ForeignKey("s_order.id"), nullable=False, index=True)
    user_id = Column("userID", Integer)
    city = Column(String(70))
    zipcode = Column(String(50))
    country_id = Column("countryID", Integer, ForeignKey("s_core_countries.id"))


class OrderShippingAddress(Base):
    __tablename__ = "s_order_shippingaddress"

    id = Column(Integer, primary_key=True)
    order_id = Column("orderID", Integer, ForeignKey("s_order.id"), nullable=False, index=True)
    user_id = Column("userID", Integer)
    city = Column(String(70))
    zipcode = Column(String(50))
    country_id = Column("countryID", Integer, ForeignKey("s_core_countries.id"))


# -------------------------------------------------------------------
# Dispatch & Payment
# -------------------------------------------------------------------

class Dispatch(Base):
    __tablename__ = "s_premium_dispatch"

    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False, default="")
    description = Column(Text)
    active = Column(Boolean, nullable=False, default=True)
    position = Column(Integer, nullable=False, default=0)


class ShippingCost(Base):
    """One weight/price tier of a dispatch method."""

    __tablename__ = "s_premium_shippingcosts"

    id = Column(Integer, primary_key=True)
    tier_from = Column("from", Float, nullable=False, default=0.0)
    value = Column(Float, nullable=False)
    factor = Column(Float, nullable=False, default=0.0)
    dispatch_id = Column("dispatchID", Integer, ForeignKey("s_premium_dispatch.id"), nullable=False)


class PaymentMean(Base):
    __tablename__ = "s_core_paymentmeans"

    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False, default="")
    description = Column(String(255))
    debit_percent = Column(Float, nullable=False, default=0.0)
    surcharge = Column(Float, nullable=False, default=0.0)
    surcharge_string = Column("surchargestring", String(255), nullable=False, default="")
    active = Column(Boolean, nullable=False, default=True)


# -------------------------------------------------------------------
# Customers
# -------------------------------------------------------------------

class Customer(Base):
    __tablename__ = "s_user"

    id = Column(Integer, primary_key=True)
    email = Column(String(70), nullable=False, index=True)
    accountmode = Column(Integer, nullable=False, default=0)
    salutation = Column(String(30))
    firstname = Column(String(255))
    lastname = Column(String(255))
    birthday = Column(Date)
    firstlogin = Column(Date)
    subshop_id = Column("subshopID", Integer, nullable=False, default=1)


class NewsletterAddress(Base):
    __tablename__ = "s_campaigns_mailaddresses"

    id = Column(Integer, primary_key=True)
    customer = Column(Boolean, nullable=False, default=False)
    group_id = Column("groupID", Integer, nullable=False, default=0)
    email = Column(String(90), nullable=False, index=True)
    added = Column(DateTime, default=datetime.now)


class Country(Base):
    __tablename__ = "s_core_countries"

    id = Column(Integer, primary_key=True)
    countryname = Column(String(255))
    countryiso = Column(String(255))
    iso3 = Column(String(45))
    active = Column(Boolean, nullable=False, default=True)


# -------------------------------------------------------------------
# Benchmark cursor
# -------------------------------------------------------------------

class BenchmarkConfig(Base):
    """Per-shop extraction cursor: batch size and last extracted order id."""

    __tablename__ = "s_benchmark_config"

    id = Column(Integer, primary_key=True)
    shop_id = Column(Integer, nullable=False, unique=True)
    active = Column(Boolean, nullable=False, default=False)
    batch_size = Column(Integer, nullable=False, default=1000)
    last_order_id = Column(Integer, nullable=False, default=0)
    last_sent = Column(DateTime)


# -------------------------------------------------------------------
# Categories
# -------------------------------------------------------------------

category_articles = Table(
    "s_articles_categories",
    Base.metadata,
    Column("id", Integer, primary_key=True),
    Column("articleID", Integer, nullable=False, index=True),
    Column("categoryID", Integer, ForeignKey("s_categories.id", ondelete="CASCADE"), nullable=False, index=True),
)

category_avoided_customer_groups = Table(
    "s_categories_avoid_customergroups",
    Base.metadata,
    Column("categoryID", Integer, ForeignKey("s_categories.id", ondelete="CASCADE"), primary_key=True),
    Column("customergroupID", Integer, primary_key=True),
)


class Category(Base):
    __tablename__ = "s_categories"

    id = Column(Integer, primary_key=True)
    parent_id = Column("parent", Integer, ForeignKey("s_categories.id", ondelete="SET NULL"), index=True)
    name = Column("description", String(255), nullable=False)
    position = Column(Integer)
    meta_keywords = Column("metakeywords", Text)
    meta_description = Column("metadescription", Text)
    cms_headline = Column("cmsheadline", String(255))
    cms_text = Column("cmstext", Text)
    active = Column(Boolean, nullable=False, default=True)
    template = Column(String(255))
    blog = Column(Boolean, nullable=False, default=False)
    show_filter_groups = Column("showfiltergroups", Boolean, nullable=False, default=True)
    external = Column(String(255))
    hide_filter = Column("hidefilter", Boolean, nullable=False, default=False)
    hide_top = Column("hidetop", Boolean, nullable=False, default=False)
    no_view_select = Column("noviewselect", Boolean, nullable=False, default=False)
    media_id = Column("mediaID", Integer)
    changed = Column(DateTime, nullable=False, default=datetime.now, onupdate=datetime.now)
    added = Column(DateTime, nullable=False, default=datetime.now)
