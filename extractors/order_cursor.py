"""
Order Cursor — Per-Shop Extraction State

Reads and advances the ``s_benchmark_config`` row that remembers, for each
shop, how many orders one extraction may pull and the id of the last order
already extracted. Both functions run on a caller-supplied connection so the
cursor read and update share the extraction's transaction.
"""

import logging
from dataclasses import dataclass

from sqlalchemy import select, update
from sqlalchemy.engine import Connection

from benchmark_exceptions import BenchmarkConfigError
from models.shop_models import BenchmarkConfig

logger = logging.getLogger(__name__)

_config = BenchmarkConfig.__table__


@dataclass(frozen=True)
class OrderCursor:
    shop_id: int
    batch_size: int
    last_order_id: int


def load_order_cursor(conn: Connection, shop_id: int) -> OrderCursor:
    """
    Load the cursor row for ``shop_id``, locking it for the rest of the
    transaction where the dialect supports ``SELECT ... FOR UPDATE``.

    Raises
    ------
    BenchmarkConfigError
        If the shop has no cursor row.
    """
    query = (
        select(_config.c.batch_size, _config.c.last_order_id)
        .where(_config.c.shop_id == shop_id)
        .with_for_update()
    )
    row = conn.execute(query).first()

    if row is None:
        raise BenchmarkConfigError(
            f"No benchmark config row for shop {shop_id}", shop_id=shop_id
        )

    cursor = OrderCursor(
        shop_id=shop_id,
        batch_size=int(row.batch_size),
        last_order_id=int(row.last_order_id or 0),
    )
    logger.info(
        f"Shop {shop_id}: cursor at order {cursor.last_order_id}, "
        f"batch size {cursor.batch_size}"
    )
    return cursor


def advance_order_cursor(conn: Connection, shop_id: int, last_order_id: int) -> None:
    """Persist ``last_order_id`` as the new high-water mark for ``shop_id``."""
    conn.execute(
        update(_config)
        .where(_config.c.shop_id == shop_id)
        .values(last_order_id=last_order_id)
    )
    logger.info(f"Shop {shop_id}: cursor advanced to order {last_order_id}")
