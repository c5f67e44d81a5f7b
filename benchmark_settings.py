"""
Settings — Environment Configuration

Connection and tuning values read from environment variables. Entry points
call ``load_dotenv()`` first so a local ``.env`` file can supply them.
"""

import os


def shop_db_url() -> str:
    """SQLAlchemy connection string for the shop database."""
    url = os.getenv("SHOP_DB_URL")
    if url:
        return url
    return (
        f"mysql+pymysql://{os.getenv('SHOP_DB_USER', 'shop_user')}"
        f":{os.getenv('SHOP_DB_PASSWORD', 'shop_pass')}"
        f"@{os.getenv('SHOP_DB_HOST', 'localhost')}"
        f":{os.getenv('SHOP_DB_PORT', '3306')}"
        f"/{os.getenv('SHOP_DB_NAME', 'shopware')}"
    )


def default_batch_size() -> int:
    """Batch size written to newly seeded cursor rows."""
    return int(os.getenv("BENCHMARK_BATCH_SIZE", "1000"))


def matcher_similarity_threshold() -> float:
    return float(os.getenv("MATCHER_SIMILARITY_THRESHOLD", "0.8"))


def log_level() -> str:
    return os.getenv("LOG_LEVEL", "INFO").upper()
