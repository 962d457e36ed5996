from loguru import logger
from tortoise import Tortoise

from bookscrapper.utils.db_utils import to_tortoise_dsn

MODEL_MODULES = ["bookscrapper.storage.models"]


async def init_db(db_url: str, *, generate_schemas: bool = True) -> None:
    """
    Connect Tortoise to the scrapper database and create missing tables.
    """
    logger.info("Initializing scrapper database and ORM models...")

    await Tortoise.init(
        db_url=to_tortoise_dsn(db_url),
        modules={"models": MODEL_MODULES},
    )

    if generate_schemas:
        await Tortoise.generate_schemas(safe=True)
        logger.info("Scrapper tables created or verified.")


async def close_db() -> None:
    await Tortoise.close_connections()
