"""
Initialize the database: create all tables.
Run with: python -m scripts.init_db
"""

import asyncio
from loguru import logger
from oncoshare.database import engine, Base
from oncoshare.models import Category, Document, DocumentComment, User, Video, VideoComment  # noqa: F401

DEFAULT_CATEGORIES = [
    ("Breast Cancer", "Screening, treatment and survivorship"),
    ("Lung Cancer", "Early detection and therapy options"),
    ("Nutrition", "Diet during and after treatment"),
]


async def init(seed_categories: bool = True):
    logger.info("Creating database tables...")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
        if seed_categories:
            existing = (await conn.execute(Category.__table__.select().limit(1))).first()
            if existing is None:
                await conn.execute(
                    Category.__table__.insert(),
                    [{"name": name, "description": description} for name, description in DEFAULT_CATEGORIES],
                )
                logger.info(f"Seeded {len(DEFAULT_CATEGORIES)} categories")
    logger.info("All tables created successfully.")
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(init())
