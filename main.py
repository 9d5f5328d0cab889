# main.py
import asyncio
import logging
from category_tree.config import Config, setup_logging
from category_tree.database import Database
from category_tree.services import (
    CategoryService,
    HttpCategoryStore,
    InMemoryCategoryStore,
    ReportService,
    SyncController,
)
from category_tree.utils import flatten_tree
from category_tree.utils.formatters import format_amount, format_datetime

async def open_store():
    """Create the store selected by STORE_BACKEND"""
    if Config.STORE_BACKEND == "http":
        return HttpCategoryStore(), None
    if Config.STORE_BACKEND == "postgres":
        db = Database()
        await db.connect()
        return CategoryService(db), db
    return InMemoryCategoryStore(), None

async def main():
    # Setup logging
    setup_logging()
    logger = logging.getLogger(__name__)

    store, db = await open_store()
    controller = SyncController(store)
    try:
        await controller.mount()
        if controller.error:
            logger.error(f"Could not load categories: {controller.error.message}")
            return

        controller.expand_all()
        for row in flatten_tree(controller.forest, controller.expanded):
            record = row.node.record
            logger.info(
                f"{'  ' * row.node.level}{record.name} "
                f"[{record.product_count or 0} products, {format_amount(record.revenue)}] "
                f"created {format_datetime(record.created_at)}"
            )

        stats = ReportService(store).summarize(controller.records)
        logger.info(
            f"{stats['total_categories']} categories, "
            f"{stats['active_percentage']}% active, depth {stats['tree_depth']}"
        )
    except Exception as e:
        logger.error(f"Error loading categories: {e}", exc_info=True)
        raise
    finally:
        await controller.close()
        await store.close()
        if db:
            await db.close()

if __name__ == "__main__":
    asyncio.run(main())
