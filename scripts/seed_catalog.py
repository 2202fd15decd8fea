#!/usr/bin/env python3
"""Seed the demo product catalog.

Creates the catalog tables if needed and loads a small deterministic
catalog of brands, categories, products, reviews and comments.

Usage:
    python scripts/seed_catalog.py
    python scripts/seed_catalog.py --database-url sqlite+aiosqlite:///./catalog.db
    python scripts/seed_catalog.py --no-clear
"""

import argparse
import asyncio

import structlog

from storefront.catalog.seed import seed_demo_catalog
from storefront.infrastructure.config import settings
from storefront.infrastructure.database import Base, build_engine, build_session_factory
from storefront.infrastructure.logging import configure_logging

logger = structlog.get_logger()


async def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Seed the demo product catalog",
    )
    parser.add_argument(
        "--database-url",
        default=settings.database_url,
        help="Async SQLAlchemy URL (default: DATABASE_URL setting)",
    )
    parser.add_argument(
        "--no-clear",
        action="store_true",
        help="Don't clear existing catalog rows before seeding",
    )
    args = parser.parse_args()

    configure_logging(settings.log_level)

    engine = build_engine(args.database_url)
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

        session_factory = build_session_factory(engine)
        async with session_factory() as session:
            summary = await seed_demo_catalog(session, clear_existing=not args.no_clear)
    finally:
        await engine.dispose()

    print(f"Seeded {len(summary.product_ids)} products")
    print(f"  Brands: {summary.brands}")
    print(f"  Categories: {summary.categories}")
    print(f"  Category links: {summary.product_categories}")
    print(f"  Reviews: {summary.reviews}")
    print(f"  Comments: {summary.comments}")


if __name__ == "__main__":
    asyncio.run(main())
