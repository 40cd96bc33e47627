import logging
from logging import INFO
from tortoise import Tortoise
from marketplace.core.config import DB_URL

# Set logging level for Tortoise ORM
logging.getLogger('tortoise').setLevel(INFO)
log = logging.getLogger("marketplace.db")

# Users, catalogue, orders (with items and timeline), pickup tasks and inboxes
MODELS_MODULES = [
    "marketplace.models.user",
    "marketplace.models.catalog",
    "marketplace.models.order",
    "marketplace.models.pickup",
    "marketplace.models.notification",
]


async def init_db(db_url: str = DB_URL, generate_schemas: bool = True):
    """Connects Tortoise to `db_url`; creates missing tables unless told not to."""
    try:
        await Tortoise.init(db_url=db_url, modules={"models": MODELS_MODULES})
        if generate_schemas:
            await Tortoise.generate_schemas(safe=True)
        log.info("Database connection established.")
    except Exception as e:
        log.error(f"FATAL ERROR: Could not connect to database at {db_url}. Error: {e}")
        # The app must not start without a database
        raise


async def close_db():
    await Tortoise.close_connections()
    log.info("Database connections closed.")
