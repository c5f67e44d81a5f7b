"""
Master Seed Script — Seeds the Shop Database

Usage:
    python -m source_databases.seed_data

Connects to the shop database named by the SHOP_DB_* environment
variables, creates the schema and inserts sample orders for every shop
listed in SEED_SHOP_IDS (default: 1).
"""

import os
import sys
import logging
import time

from dotenv import load_dotenv

from benchmark_settings import shop_db_url
from source_databases.shop_source import seed_shop

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
)
logger = logging.getLogger(__name__)


def main():
    load_dotenv()

    shop_ids = [int(s) for s in os.getenv("SEED_SHOP_IDS", "1").split(",") if s.strip()]
    num_orders = int(os.getenv("SEED_NUM_ORDERS", "10000"))
    url = shop_db_url()

    results = {}
    start_total = time.time()

    for shop_id in shop_ids:
        logger.info("=" * 60)
        logger.info(f"SEEDING shop {shop_id}")
        logger.info("=" * 60)

        start = time.time()
        try:
            results[shop_id] = seed_shop(url, shop_id=shop_id, num_orders=num_orders)
        except Exception as e:
            logger.error(f"Seeding shop {shop_id} failed: {e}")
            results[shop_id] = 0
        logger.info(f"Shop {shop_id} seeding took {time.time() - start:.1f}s")

    # ---------------------------------------------------------------
    # Summary
    # ---------------------------------------------------------------
    elapsed = time.time() - start_total
    logger.info("=" * 60)
    logger.info("SEEDING SUMMARY")
    logger.info("=" * 60)
    for shop_id, count in results.items():
        logger.info(f"  Shop {shop_id:<5} orders : {count:>10,}")
    logger.info(f"  Total orders       : {sum(results.values()):>10,}")
    logger.info(f"  Total time         : {elapsed:.1f}s")
    logger.info("=" * 60)

    # Non-zero exit if any shop failed
    if any(v == 0 for v in results.values()):
        logger.warning("One or more shops failed to seed!")
        sys.exit(1)


if __name__ == "__main__":
    main()
